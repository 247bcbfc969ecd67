"""
Token-level salvage for files the full parser rejects.

One linear pass over the Pygments Ruby token stream, tracking ``{``/``}``
nesting. It recovers the connector's top-level keys and the member names
declared directly under ``actions``, ``triggers`` and ``methods``. Nothing in
here raises: a failure yields an empty result annotated with a note.
"""

import logging
from dataclasses import dataclass, field

from pygments.lexers.ruby import RubyLexer
from pygments.token import Comment, Punctuation, Text, Whitespace

from connector_inspect.analyze.constants import ROOT_KEYS, SALVAGE_CONTAINERS
from connector_inspect.models.ir import (
    Bundle,
    Graph,
    Issue,
    Loc,
    Node,
    NodeKind,
    Severity,
)
from connector_inspect.parse.syntax import IDENTIFIER_RE

logger = logging.getLogger(__name__)

# Upper bound on token visits (main pass plus container look-ahead).
DEFAULT_TOKEN_BUDGET = 2_000_000


@dataclass(frozen=True)
class Token:
    """One lexical token with line/column and byte-range positions."""

    line: int
    column: int
    begin: int
    end: int
    type: str
    text: str

    def to_dict(self) -> dict:
        return {
            "line": self.line,
            "column": self.column,
            "begin": self.begin,
            "end": self.end,
            "type": self.type,
            "text": self.text,
        }


@dataclass(frozen=True)
class SalvagedMember:
    name: str
    line: int
    column: int


@dataclass
class SalvageResult:
    root_keys: dict[str, list[dict[str, int]]] = field(default_factory=dict)
    actions: list[SalvagedMember] = field(default_factory=list)
    triggers: list[SalvagedMember] = field(default_factory=list)
    methods: list[SalvagedMember] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def members(self, container: str) -> list[SalvagedMember]:
        return getattr(self, container)


def lex_tokens(source: str) -> list[Token]:
    """
    Tokenize Ruby source with Pygments.

    Positions follow the parser's convention: 1-based line, 0-based byte
    column, and byte offsets into the UTF-8 encoding.

    Args:
        source: Decoded source text

    Returns:
        Tokens in source order (whitespace included)
    """
    return [
        Token(line=line, column=column, begin=begin, end=end, type=str(token_type), text=text)
        for token_type, text, line, column, begin, end in _lex_typed(source)
    ]


def _significant(source: str) -> list[tuple]:
    """Tokens that matter for structure: (token_type, text, line, column, begin, end)."""
    out = []
    for tok in _lex_typed(source):
        token_type, text = tok[0], tok[1]
        if token_type in Whitespace or token_type in Comment:
            continue
        if token_type in Text and not text.strip():
            continue
        out.append(tok)
    return out


def _lex_typed(source: str) -> list[tuple]:
    """Raw Pygments stream as (token_type, text, line, column, begin, end)."""
    line = 1
    line_start = 0
    offset = 0
    out = []
    for _, token_type, text in RubyLexer().get_tokens_unprocessed(source):
        if not text:
            continue
        size = len(text.encode("utf-8"))
        out.append((token_type, text, line, offset - line_start, offset, offset + size))
        newlines = text.count("\n")
        if newlines:
            line += newlines
            tail = text[text.rfind("\n") + 1 :]
            line_start = offset + size - len(tail.encode("utf-8"))
        offset += size
    return out


def _is_punct(tok: tuple, char: str) -> bool:
    return tok[0] in Punctuation and tok[1] == char


def _label_at(tokens: list[tuple], i: int) -> str | None:
    """Name of the ``name:`` label starting at token i, if there is one."""
    if i + 1 >= len(tokens):
        return None
    name_tok, colon = tokens[i], tokens[i + 1]
    if not IDENTIFIER_RE.match(name_tok[1]):
        return None
    if not _is_punct(colon, ":") or colon[4] != name_tok[5]:
        return None
    return name_tok[1]


def salvage(source: str, token_budget: int = DEFAULT_TOKEN_BUDGET) -> SalvageResult:
    """
    Recover connector structure from the token stream alone.

    Args:
        source: Source text the full parser could not read
        token_budget: Maximum token visits before giving up

    Returns:
        SalvageResult; empty with a ``salvage_error`` note on internal failure
    """
    try:
        return _scan(_significant(source), token_budget)
    except Exception as e:
        logger.exception("Salvage lexer failed")
        return SalvageResult(notes=[f"salvage_error: {type(e).__name__}: {e}"])


def _scan(tokens: list[tuple], budget: int) -> SalvageResult:
    result = SalvageResult()
    depth = 0
    visits = 0

    i = 0
    while i < len(tokens):
        visits += 1
        if visits > budget:
            result.notes.append("scan_truncated")
            return result

        tok = tokens[i]
        if _is_punct(tok, "{"):
            depth += 1
        elif _is_punct(tok, "}"):
            depth = max(depth - 1, 0)
        else:
            key = _label_at(tokens, i)
            if key is not None and depth <= 1:
                if key in ROOT_KEYS:
                    result.root_keys.setdefault(key, []).append(
                        {"line": tok[2], "column": tok[3]}
                    )
                if key in SALVAGE_CONTAINERS:
                    used = _collect_members(tokens, i + 2, result.members(key), budget - visits)
                    visits += used
                    if visits > budget:
                        result.notes.append("scan_truncated")
                        return result
        i += 1

    return result


def _collect_members(
    tokens: list[tuple], start: int, out: list[SalvagedMember], budget: int
) -> int:
    """Collect labels one level inside the hash that follows a container key.

    Returns the number of tokens visited.
    """
    local_depth = 0
    opened = False
    j = start
    visited = 0
    while j < len(tokens) and visited <= budget:
        visited += 1
        tok = tokens[j]
        if _is_punct(tok, "{"):
            local_depth += 1
            opened = True
        elif _is_punct(tok, "}"):
            if not opened:
                break
            local_depth -= 1
            if local_depth == 0:
                break
        elif not opened and _is_punct(tok, ","):
            break
        elif opened and local_depth == 1:
            name = _label_at(tokens, j)
            if name is not None:
                out.append(SalvagedMember(name=name, line=tok[2], column=tok[3]))
        j += 1
    return visited


_CONTAINER_KINDS = {
    "actions": (NodeKind.ACTIONS, NodeKind.ACTION),
    "triggers": (NodeKind.TRIGGERS, NodeKind.TRIGGER),
    "methods": (NodeKind.METHODS, NodeKind.METHOD),
}


def salvage_bundle(
    filename: str, source: str, diagnostics: list[str] | None = None, reason: str | None = None
) -> Bundle:
    """
    Build the degraded bundle for a file the full parser rejected.

    Args:
        filename: Input path recorded in the root meta
        source: Source text
        diagnostics: Parser diagnostics to carry on the syntax_error issue
        reason: Fatal parser message

    Returns:
        Bundle with ``salvaged`` set and an empty graph
    """
    logger.warning(f"{filename}: parser failed; salvage mode engaged")
    result = salvage(source)

    context = {"diagnostics": list(diagnostics or [])}
    if reason:
        context["reason"] = reason
    issues = [
        Issue(
            severity=Severity.ERROR,
            code="syntax_error",
            message="Parser failed; salvage mode engaged",
            context=context,
        )
    ]

    containers = []
    stats = {}
    for key, (container_kind, member_kind) in _CONTAINER_KINDS.items():
        members = [
            Node(
                kind=member_kind.value,
                name=m.name,
                loc=Loc(line=m.line, column=m.column),
            )
            for m in result.members(key)
        ]
        containers.append(Node(kind=container_kind.value, name=key, children=members))
        stats[key] = len(members)

    root = Node(
        kind=NodeKind.CONNECTOR.value,
        name="(salvaged)",
        meta={
            "filename": filename,
            "root_keys": list(result.root_keys),
            "salvage_notes": list(result.notes),
        },
    ).with_children(containers)

    return Bundle(root=root, issues=issues, graph=Graph(), stats=stats, salvaged=True)
