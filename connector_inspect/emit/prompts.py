"""
Prompt templates for LLM review of the context atoms.
"""

from connector_inspect.emit.base import EmitContext, Emitter
from connector_inspect.emit.templates import render_template
from connector_inspect.util.files import safe_filename


class PromptsEmitter(Emitter):
    kind = "prompts"
    suffix = "prompts"
    ext = ".md"
    description = "Prompt templates for reviewing the context atoms"

    def render(self, ctx: EmitContext) -> str:
        root = ctx.bundle.root
        return render_template(
            "prompts.md.j2",
            name=root.name if root is not None else "Workato Connectors",
            context_file=safe_filename(f"{ctx.base}.context", ".jsonl"),
            dangerous_calls=list(ctx.dangerous_calls),
        )
