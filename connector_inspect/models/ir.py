"""IR data models for analyzed connectors.

These are the value types every stage shares: the walker and the salvage lexer
produce them, the emitters only read them. All of them are immutable once built.
Trees are assembled bottom-up; "adding a child" means building a new parent with
``Node.with_children``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from connector_inspect.util.hashing import node_id


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NodeKind(Enum):
    CONNECTOR = "connector"
    CONNECTION = "connection"
    TEST = "test"
    METHODS = "methods"
    METHOD = "method"
    OBJECT_DEFINITIONS = "object_definitions"
    OBJECT_DEFINITION = "object_definition"
    ACTIONS = "actions"
    ACTION = "action"
    TRIGGERS = "triggers"
    TRIGGER = "trigger"
    PICK_LISTS = "pick_lists"
    PICK_LIST = "pick_list"
    WEBHOOK_KEYS = "webhook_keys"
    STREAMS = "streams"
    STREAM = "stream"


def _frozen(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


def _plain(value: Any) -> Any:
    """Convert frozen containers back into JSON-friendly ones."""
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_plain(v) for v in value)
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class Loc:
    """Source position: 1-based line, 0-based column, byte range [begin, end)."""

    line: int | None = None
    column: int | None = None
    length: int | None = None
    begin: int | None = None
    end: int | None = None

    def to_dict(self) -> dict[str, int]:
        data = {
            "line": self.line,
            "column": self.column,
            "length": self.length,
            "begin": self.begin,
            "end": self.end,
        }
        return {k: v for k, v in data.items() if v is not None}


EMPTY_LOC = Loc()


@dataclass(frozen=True)
class Node:
    """One element of the connector IR tree.

    ``id`` is derived from (kind, name, loc) unless given, so identical input
    always produces identical identifiers.
    """

    kind: str
    name: str
    loc: Loc = EMPTY_LOC
    meta: Mapping[str, Any] = field(default_factory=dict)
    children: tuple[Node, ...] = ()
    id: str = ""

    def __post_init__(self):
        object.__setattr__(self, "meta", _frozen(self.meta))
        object.__setattr__(self, "children", tuple(self.children))
        if not self.id:
            object.__setattr__(self, "id", node_id(self.kind, self.name, self.loc.to_dict()))

    def with_children(self, children: list[Node] | tuple[Node, ...]) -> Node:
        """Return a copy of this node (same id) with a new child list."""
        return replace(self, children=tuple(children))

    def walk(self) -> Iterator[Node]:
        """Pre-order iteration over this node and its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_all(self, kind: str) -> list[Node]:
        return [n for n in self.walk() if n.kind == kind]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "loc": self.loc.to_dict(),
            "meta": _plain(self.meta),
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class Issue:
    """A single diagnostic produced while analyzing a connector."""

    severity: Severity
    code: str
    message: str
    loc: Loc = EMPTY_LOC
    context: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "context", _frozen(self.context))

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "loc": self.loc.to_dict(),
            "context": _plain(self.context),
        }


@dataclass(frozen=True)
class GraphNode:
    id: str
    label: str
    kind: str


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    label: str = ""


@dataclass(frozen=True)
class Graph:
    """Directed call graph. Nodes and edges keep first-registration order."""

    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()
    directed: bool = True

    def node_index(self) -> dict[str, GraphNode]:
        return {n.id: n for n in self.nodes}

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": {n.id: {"label": n.label, "kind": n.kind} for n in self.nodes},
            "edges": [[e.source, e.target, {"label": e.label}] for e in self.edges],
        }


class GraphBuilder:
    """Mutable accumulator used during a walk; ``freeze`` yields the final Graph.

    Registering an existing node or an identical edge again is a no-op.
    """

    def __init__(self):
        self._nodes: dict[str, GraphNode] = {}
        self._edges: dict[GraphEdge, None] = {}

    def add_node(self, node_id: str, label: str, kind: str) -> None:
        if node_id not in self._nodes:
            self._nodes[node_id] = GraphNode(id=node_id, label=label, kind=kind)

    def add_edge(self, source: str, target: str, label: str = "") -> None:
        self._edges.setdefault(GraphEdge(source=source, target=target, label=label), None)

    def freeze(self) -> Graph:
        return Graph(nodes=tuple(self._nodes.values()), edges=tuple(self._edges))


@dataclass(frozen=True)
class LambdaRecord:
    """A discovered block/lambda body and the label it was registered under."""

    owner: str
    role: str
    loc: Loc = EMPTY_LOC

    def to_dict(self) -> dict[str, Any]:
        return {"owner": self.owner, "role": self.role, "loc": self.loc.to_dict()}


@dataclass(frozen=True)
class MethodCall:
    """A statically resolved ``call(:name)`` dispatch."""

    source: str
    target: str
    name: str
    loc: Loc = EMPTY_LOC


@dataclass(frozen=True)
class Bundle:
    """Aggregate result of one analysis run."""

    root: Node | None
    issues: tuple[Issue, ...] = ()
    graph: Graph = field(default_factory=Graph)
    stats: Mapping[str, int] = field(default_factory=dict)
    salvaged: bool = False
    lambdas: tuple[LambdaRecord, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "issues", tuple(self.issues))
        object.__setattr__(self, "lambdas", tuple(self.lambdas))
        object.__setattr__(self, "stats", _frozen(self.stats))

    @property
    def filename(self) -> str | None:
        if self.root is None:
            return None
        return self.root.meta.get("filename")

    def issues_by_severity(self, severity: Severity) -> list[Issue]:
        return [i for i in self.issues if i.severity is severity]

    def with_stats(self, **counters: int) -> Bundle:
        stats = dict(self.stats)
        stats.update(counters)
        return replace(self, stats=stats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root.to_dict() if self.root else None,
            "issues": [issue.to_dict() for issue in self.issues],
            "graph": self.graph.to_dict(),
            "stats": dict(self.stats),
            "salvaged": self.salvaged,
            "lambdas": [lam.to_dict() for lam in self.lambdas],
        }
