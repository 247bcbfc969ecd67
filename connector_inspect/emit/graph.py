"""
Call graph renderings: Graphviz DOT and flat JSON.
"""

import re
from typing import Any

from connector_inspect.emit.base import EmitContext, Emitter, JsonEmitter
from connector_inspect.models.ir import Graph

SHAPES = {
    "action": "box",
    "trigger": "diamond",
    "method": "oval",
    "lambda": "ellipse",
    "http": "parallelogram",
}
DEFAULT_SHAPE = "plaintext"


def dot_quote(text: str) -> str:
    """Quote a string as a DOT identifier."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def graph_id(name: str) -> str:
    """Reduce a graph name to a bare DOT identifier."""
    cleaned = re.sub(r"\W+", "_", name).strip("_")
    if not cleaned:
        return "Connector"
    return f"_{cleaned}" if cleaned[0].isdigit() else cleaned


def to_dot(graph: Graph, name: str = "Connector") -> str:
    """
    Render a graph as DOT, one statement per line.

    Args:
        graph: Graph to render
        name: Graph name (sanitized)

    Returns:
        DOT source
    """
    lines = [f"digraph {graph_id(name)} {{", "  rankdir=LR;"]
    for node in graph.nodes:
        shape = SHAPES.get(node.kind, DEFAULT_SHAPE)
        lines.append(
            f"  {dot_quote(node.id)} [label={dot_quote(node.label or node.id)}, shape={shape}];"
        )
    for edge in graph.edges:
        attrs = f" [label={dot_quote(edge.label)}]" if edge.label else ""
        lines.append(f"  {dot_quote(edge.source)} -> {dot_quote(edge.target)}{attrs};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def graph_document(graph: Graph) -> dict[str, Any]:
    """Flat nodes/edges document."""
    return {
        "nodes": [{"id": n.id, "label": n.label, "kind": n.kind} for n in graph.nodes],
        "edges": [{"from": e.source, "to": e.target, "label": e.label} for e in graph.edges],
    }


class DotEmitter(Emitter):
    kind = "dot"
    suffix = "graph"
    ext = ".dot"
    description = "Call graph in Graphviz DOT"

    def render(self, ctx: EmitContext) -> str:
        return to_dot(ctx.bundle.graph, ctx.graph_name)


class GraphJsonEmitter(JsonEmitter):
    kind = "graphjson"
    suffix = "graph"
    description = "Call graph as flat JSON"

    def build(self, ctx: EmitContext) -> Any:
        return graph_document(ctx.bundle.graph)
