"""
Full parser for connector source files.

Uses tree-sitter with the Ruby grammar and converts the result into the
immutable ``SyntaxNode`` tree the walker consumes. ``parse_source`` never
raises: any failure comes back as a ``ParseResult`` with no tree and a fatal
message, which sends the pipeline into salvage mode.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import tree_sitter
import tree_sitter_ruby

from connector_inspect.models.ir import Loc
from connector_inspect.parse.syntax import (
    STRING_PART_TYPES,
    SyntaxKind,
    SyntaxNode,
    associate_comments,
    kind_for,
)

logger = logging.getLogger(__name__)

# How many syntax error positions a fatal message lists before summarizing.
MAX_REPORTED_ERRORS = 5


@dataclass
class ParseResult:
    """Outcome of a parse attempt."""

    tree: SyntaxNode | None
    comments: dict[SyntaxNode, list[SyntaxNode]] = field(default_factory=dict)
    diagnostics: list[str] = field(default_factory=list)
    fatal: str | None = None
    grammar: str = ""

    @property
    def ok(self) -> bool:
        return self.tree is not None


@dataclass
class _Frame:
    """Conversion state for one tree-sitter node whose children are pending."""

    ts_node: Any
    field_name: str | None
    children: list[SyntaxNode] = field(default_factory=list)
    fields: dict[str, SyntaxNode] = field(default_factory=dict)


def load_language() -> tuple[Any, str]:
    """
    Build the Ruby ``Language`` object for the installed binding.

    Current bindings take the grammar capsule alone; older ones also want the
    language name.

    Returns:
        Tuple of (language, description of the grammar in use)
    """
    capsule = tree_sitter_ruby.language()
    try:
        return tree_sitter.Language(capsule), "tree-sitter-ruby"
    except TypeError:
        logger.debug("Language(capsule) rejected; retrying with the legacy signature")
        return tree_sitter.Language(capsule, "ruby"), "tree-sitter-ruby (legacy binding)"


def make_parser(language: Any) -> Any:
    """Create a parser bound to ``language`` across binding versions."""
    try:
        return tree_sitter.Parser(language)
    except TypeError:
        parser = tree_sitter.Parser()
        if hasattr(parser, "set_language"):
            parser.set_language(language)
        else:
            parser.language = language
        return parser


def parse_source(source: str, filename: str = "<source>") -> ParseResult:
    """
    Parse connector source into a syntax tree.

    Args:
        source: Decoded source text
        filename: Name used in diagnostics

    Returns:
        ParseResult with a tree, comment associations and non-fatal
        diagnostics; or no tree and a fatal message
    """
    try:
        language, grammar = load_language()
        parser = make_parser(language)
    except Exception as e:
        logger.warning(f"Ruby grammar unavailable: {e}")
        return ParseResult(tree=None, fatal=f"grammar unavailable: {e}")

    data = source.encode("utf-8")
    try:
        ts_tree = parser.parse(data)
    except Exception as e:
        logger.warning(f"{filename}: parser raised {type(e).__name__}: {e}")
        return ParseResult(tree=None, fatal=f"{type(e).__name__}: {e}", grammar=grammar)

    errors: list[str] = []
    diagnostics: list[str] = []
    try:
        tree = convert_tree(ts_tree, data, errors, diagnostics)
    except Exception as e:
        logger.warning(f"{filename}: could not convert syntax tree: {e}")
        return ParseResult(tree=None, fatal=f"{type(e).__name__}: {e}", grammar=grammar)

    if errors:
        shown = "; ".join(errors[:MAX_REPORTED_ERRORS])
        more = len(errors) - MAX_REPORTED_ERRORS
        if more > 0:
            shown += f"; and {more} more"
        fatal = f"{filename}: syntax error(s): {shown}"
        logger.warning(fatal)
        return ParseResult(
            tree=None, diagnostics=diagnostics + errors, fatal=fatal, grammar=grammar
        )

    return ParseResult(
        tree=tree,
        comments=associate_comments(tree),
        diagnostics=diagnostics,
        grammar=grammar,
    )


def convert_tree(
    ts_tree: Any, data: bytes, errors: list[str], diagnostics: list[str]
) -> SyntaxNode:
    """
    Convert a tree-sitter tree into SyntaxNodes with an explicit stack.

    Only named nodes are kept. ERROR nodes are appended to ``errors``; tokens
    the grammar had to invent (MISSING) are appended to ``diagnostics``.
    """
    cursor = ts_tree.walk()
    stack = [_Frame(cursor.node, None)]
    descend = True

    while True:
        if descend and cursor.goto_first_child():
            stack.append(_Frame(cursor.node, cursor.field_name))
            continue

        frame = stack.pop()
        built = _build_node(frame, data, errors, diagnostics)
        if not stack:
            return built
        if built is not None:
            parent = stack[-1]
            parent.children.append(built)
            if frame.field_name and frame.field_name not in parent.fields:
                parent.fields[frame.field_name] = built

        if cursor.goto_next_sibling():
            stack.append(_Frame(cursor.node, cursor.field_name))
            descend = True
        else:
            cursor.goto_parent()
            descend = False


def _build_node(
    frame: _Frame, data: bytes, errors: list[str], diagnostics: list[str]
) -> SyntaxNode | None:
    ts_node = frame.ts_node
    row, column = ts_node.start_point
    end_row, _ = ts_node.end_point
    position = f"line {row + 1}, column {column}"

    if ts_node.is_missing:
        diagnostics.append(f"missing {ts_node.type!r} inserted at {position}")
        return None
    if ts_node.type == "ERROR":
        errors.append(f"unexpected input at {position}")
    if not ts_node.is_named:
        return None

    loc = Loc(
        line=row + 1,
        column=column,
        length=ts_node.end_byte - ts_node.start_byte,
        begin=ts_node.start_byte,
        end=ts_node.end_byte,
    )
    kind = kind_for(ts_node.type)
    value = _literal_value(kind, ts_node, frame.children, data)
    return SyntaxNode(
        kind=kind,
        type=ts_node.type,
        loc=loc,
        end_line=end_row + 1,
        value=value,
        children=frame.children,
        fields=frame.fields,
    )


def _literal_value(
    kind: SyntaxKind, ts_node: Any, children: list[SyntaxNode], data: bytes
) -> str | None:
    if kind is SyntaxKind.STRING or (kind is SyntaxKind.SYMBOL and children):
        if any(child.type not in STRING_PART_TYPES for child in children):
            return None
        return "".join(child.value or "" for child in children)

    if children:
        return None

    text = data[ts_node.start_byte : ts_node.end_byte].decode("utf-8", errors="replace")
    if kind in (SyntaxKind.SYMBOL, SyntaxKind.HASH_KEY):
        return text.lstrip(":").rstrip(":")
    return text
