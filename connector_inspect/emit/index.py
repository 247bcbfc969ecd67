"""
Manifest of the artifacts written in one run.
"""

from typing import Any

from connector_inspect import __version__
from connector_inspect.emit.base import EmitContext, JsonEmitter


class IndexEmitter(JsonEmitter):
    kind = "index"
    suffix = "index"
    always_pretty = True
    description = "Manifest of the other artifacts"

    def build(self, ctx: EmitContext) -> Any:
        return {
            "artifacts": dict(ctx.artifacts),
            "input": {
                "file": ctx.bundle.filename or ctx.filename,
                "sha256": ctx.source_sha256,
            },
            "salvaged": ctx.bundle.salvaged,
            "generator": f"connector-inspect {__version__}",
        }
