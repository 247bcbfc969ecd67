"""
Parser-independent syntax tree.

The Ruby grammar has well over a hundred node types; the analyzer cares about a
dozen of them. ``SyntaxKind`` is that closed set (everything else is ``OTHER``),
and ``SyntaxNode`` is an immutable node carrying only what the walker reads:
kind, raw grammar type, location, literal value, children and named fields.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from connector_inspect.models.ir import Loc


class SyntaxKind(Enum):
    PROGRAM = "program"
    HASH = "hash"
    PAIR = "pair"
    CALL = "call"
    LAMBDA = "lambda"
    BLOCK = "block"
    ARGUMENTS = "arguments"
    PARAMETERS = "parameters"
    STRING = "string"
    SYMBOL = "symbol"
    HASH_KEY = "hash_key"
    IDENTIFIER = "identifier"
    CONSTANT = "constant"
    SCOPE = "scope"
    SUBSHELL = "subshell"
    ASSIGNMENT = "assignment"
    COMMENT = "comment"
    ERROR = "error"
    OTHER = "other"


# Grammar node type -> kind. Older grammar releases named calls ``method_call``
# and used ``symbol`` for both ``:foo`` and ``foo:``.
GRAMMAR_KINDS: dict[str, SyntaxKind] = {
    "program": SyntaxKind.PROGRAM,
    "hash": SyntaxKind.HASH,
    "pair": SyntaxKind.PAIR,
    "call": SyntaxKind.CALL,
    "method_call": SyntaxKind.CALL,
    "lambda": SyntaxKind.LAMBDA,
    "block": SyntaxKind.BLOCK,
    "do_block": SyntaxKind.BLOCK,
    "argument_list": SyntaxKind.ARGUMENTS,
    "block_parameters": SyntaxKind.PARAMETERS,
    "lambda_parameters": SyntaxKind.PARAMETERS,
    "method_parameters": SyntaxKind.PARAMETERS,
    "string": SyntaxKind.STRING,
    "simple_symbol": SyntaxKind.SYMBOL,
    "delimited_symbol": SyntaxKind.SYMBOL,
    "symbol": SyntaxKind.SYMBOL,
    "hash_key_symbol": SyntaxKind.HASH_KEY,
    "identifier": SyntaxKind.IDENTIFIER,
    "constant": SyntaxKind.CONSTANT,
    "scope_resolution": SyntaxKind.SCOPE,
    "subshell": SyntaxKind.SUBSHELL,
    "assignment": SyntaxKind.ASSIGNMENT,
    "comment": SyntaxKind.COMMENT,
    "ERROR": SyntaxKind.ERROR,
}

STRING_PART_TYPES = frozenset({"string_content", "escape_sequence"})

IDENTIFIER_RE = re.compile(r"\A[A-Za-z_][A-Za-z0-9_]*\Z")


def kind_for(grammar_type: str) -> SyntaxKind:
    return GRAMMAR_KINDS.get(grammar_type, SyntaxKind.OTHER)


@dataclass(frozen=True, eq=False)
class SyntaxNode:
    """Immutable syntax node.

    ``value`` holds the literal text for leaves, the unquoted content of a
    string without interpolation, and the bare name of symbols and hash keys.
    Nodes compare and hash by identity so they can key lookup tables.
    """

    kind: SyntaxKind
    type: str
    loc: Loc
    end_line: int
    value: str | None = None
    children: tuple[SyntaxNode, ...] = ()
    fields: Mapping[str, SyntaxNode] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def get_field(self, name: str) -> SyntaxNode | None:
        return self.fields.get(name)

    @property
    def line(self) -> int:
        return self.loc.line or 0

    def __repr__(self):
        return f"SyntaxNode({self.type}, line={self.loc.line}, value={self.value!r})"


def walk(node: SyntaxNode | None) -> Iterator[SyntaxNode]:
    """Pre-order traversal without recursion (connector files nest deeply)."""
    if node is None:
        return
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


# ---------- literal helpers --------------------------------------------------


def symbol_or_string(node: SyntaxNode | None) -> str | None:
    """Name carried by a symbol, hash-key label or literal string."""
    if node is None:
        return None
    if node.kind in (SyntaxKind.SYMBOL, SyntaxKind.HASH_KEY, SyntaxKind.STRING):
        return node.value
    return None


def string_literal(node: SyntaxNode | None) -> str | None:
    """Content of a plain (non-interpolated) string literal."""
    if node is None or node.kind is not SyntaxKind.STRING:
        return None
    return node.value


def constant_name(node: SyntaxNode | None) -> str | None:
    """Fully qualified constant name (``Proc``, ``Foo::Bar``)."""
    if node is None:
        return None
    if node.kind is SyntaxKind.CONSTANT:
        return node.value
    if node.kind is SyntaxKind.SCOPE:
        scope = constant_name(node.get_field("scope"))
        name = constant_name(node.get_field("name"))
        if name is None:
            return None
        return f"{scope}::{name}" if scope else name
    return None


def call_name(node: SyntaxNode) -> str | None:
    """Method name of a call node."""
    method = node.get_field("method")
    if method is None:
        return None
    return method.value


def call_arguments(node: SyntaxNode) -> list[SyntaxNode]:
    """Positional argument nodes of a call (comments excluded)."""
    args = node.get_field("arguments")
    if args is None:
        return []
    return [c for c in args.children if c.kind is not SyntaxKind.COMMENT]


# ---------- hash helpers -----------------------------------------------------


def hash_pairs(node: SyntaxNode | None) -> list[SyntaxNode]:
    if node is None or node.kind is not SyntaxKind.HASH:
        return []
    return [c for c in node.children if c.kind is SyntaxKind.PAIR]


def pair_key(pair: SyntaxNode) -> str | None:
    return symbol_or_string(pair.get_field("key"))


def pair_value(pair: SyntaxNode) -> SyntaxNode | None:
    return pair.get_field("value")


def hash_keys(node: SyntaxNode | None) -> list[str]:
    keys = []
    for pair in hash_pairs(node):
        key = pair_key(pair)
        if key is not None:
            keys.append(key)
    return keys


def key_value(node: SyntaxNode | None, key: str) -> SyntaxNode | None:
    """Value of the first pair whose key is ``key``."""
    for pair in hash_pairs(node):
        if pair_key(pair) == key:
            return pair_value(pair)
    return None


def dig_pair(node: SyntaxNode | None, path: list[str]) -> SyntaxNode | None:
    """Follow nested hash keys and return the pair for the final segment."""
    current = node
    last_pair = None
    for segment in path:
        if current is None or current.kind is not SyntaxKind.HASH:
            return None
        last_pair = next((p for p in hash_pairs(current) if pair_key(p) == segment), None)
        if last_pair is None:
            return None
        current = pair_value(last_pair)
    return last_pair


# ---------- comments ---------------------------------------------------------


def associate_comments(root: SyntaxNode) -> dict[SyntaxNode, list[SyntaxNode]]:
    """
    Attach leading comment runs to the node that follows them.

    A run is a sequence of comments on consecutive lines. It attaches to the
    next non-comment sibling when that sibling starts on the line right after
    the run. Comments sharing a line with the previous sibling's end are
    trailing comments and never start a run.

    Args:
        root: Tree to scan

    Returns:
        Mapping of node -> its leading comment nodes in source order
    """
    associations: dict[SyntaxNode, list[SyntaxNode]] = {}

    for parent in walk(root):
        run: list[SyntaxNode] = []
        previous_end_line = None
        for child in parent.children:
            if child.kind is SyntaxKind.COMMENT:
                if previous_end_line is not None and child.line == previous_end_line:
                    continue
                if run and child.line != run[-1].end_line + 1:
                    run = []
                run.append(child)
                continue

            if run and child.line == run[-1].end_line + 1:
                associations[child] = list(run)
                if child.kind is SyntaxKind.ASSIGNMENT and child.get_field("right") is not None:
                    associations[child.get_field("right")] = list(run)
            run = []
            previous_end_line = child.end_line

    return associations


def comment_text(comments: list[SyntaxNode]) -> str | None:
    """Join comment lines with their ``#`` markers stripped."""
    lines = [re.sub(r"\A#\s?", "", c.value or "").rstrip() for c in comments]
    return "\n".join(lines) if lines else None
