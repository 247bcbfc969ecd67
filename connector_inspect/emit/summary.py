"""
Human-readable Markdown summary.
"""

from typing import Any

from connector_inspect.emit.base import EmitContext, Emitter
from connector_inspect.emit.templates import render_template
from connector_inspect.models.ir import Bundle, NodeKind

SECTIONS = (
    (NodeKind.ACTION, "Actions"),
    (NodeKind.TRIGGER, "Triggers"),
    (NodeKind.METHOD, "Methods"),
)


def summary_context(bundle: Bundle) -> dict[str, Any]:
    """Template variables for summary.md.j2."""
    issues = [
        {
            "severity": issue.severity.value,
            "code": issue.code,
            "message": issue.message,
            "where": f"line {issue.loc.line}" if issue.loc.line is not None else "unknown loc",
        }
        for issue in bundle.issues
    ]
    root = bundle.root
    if root is None:
        return {"root": None, "issues": issues, "salvaged": bundle.salvaged}

    counts = {}
    sections = []
    for kind, title in SECTIONS:
        nodes = sorted(root.find_all(kind.value), key=lambda n: n.name)
        counts[kind.value] = len(nodes)
        if nodes:
            entries = [
                {"name": n.name, "line": n.loc.line if n.loc.line is not None else "?"}
                for n in nodes
            ]
            sections.append({"title": title, "entries": entries})

    return {
        "root": root,
        "counts": counts,
        "sections": sections,
        "issues": issues,
        "salvaged": bundle.salvaged,
    }


def markdown_summary(bundle: Bundle) -> str:
    return render_template("summary.md.j2", **summary_context(bundle))


class SummaryEmitter(Emitter):
    kind = "md"
    suffix = "summary"
    ext = ".md"
    description = "Markdown summary"

    def render(self, ctx: EmitContext) -> str:
        return markdown_summary(ctx.bundle)
