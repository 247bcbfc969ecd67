"""
Line-delimited event stream: issues and outbound HTTP calls.
"""

from collections.abc import Iterator
from typing import Any

from connector_inspect.emit.base import EmitContext, JsonLinesEmitter


def events(ctx: EmitContext) -> Iterator[dict[str, Any]]:
    bundle = ctx.bundle
    for issue in bundle.issues:
        yield {"type": "issue", **issue.to_dict()}

    nodes = bundle.graph.node_index()
    for edge in bundle.graph.edges:
        target = nodes.get(edge.target)
        if target is None or target.kind != "http":
            continue
        yield {
            "type": "http_call",
            "from": edge.source,
            "to": edge.target,
            "endpoint": target.label,
            "meta": {"label": edge.label},
        }


class EventsEmitter(JsonLinesEmitter):
    kind = "ndjson"
    suffix = "events"
    ext = ".ndjson"
    description = "Issues and HTTP calls, one JSON event per line"

    def records(self, ctx: EmitContext) -> Iterator[dict[str, Any]]:
        return events(ctx)
