"""
Base classes for output emitters.

Every emitter turns one Bundle (and, for some, the raw source) into one
artifact file. Emitters never depend on each other having run.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from connector_inspect.analyze.constants import DEFAULT_DANGEROUS_CALLS
from connector_inspect.models.ir import Bundle
from connector_inspect.util.files import safe_filename, to_json, to_json_lines, write_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmitContext:
    """Everything an emitter may read."""

    bundle: Bundle
    source: str | None = None
    filename: str | None = None
    pretty: bool = True
    graph_name: str = "Connector"
    max_context_bytes: int = 12_000
    slice_bytes: int = 16_384
    namespace: str = "workato-connectors"
    dangerous_calls: tuple[str, ...] = DEFAULT_DANGEROUS_CALLS
    base: str = "connector"
    source_sha256: str | None = None
    artifacts: Mapping[str, str] = field(default_factory=dict)


class Emitter:
    """Base class for output emitters."""

    kind: str = ""
    suffix: str = ""
    ext: str = ""
    needs_source: bool = False
    description: str = ""

    def filename(self, base: str) -> str:
        return safe_filename(f"{base}.{self.suffix}", self.ext)

    def render(self, ctx: EmitContext) -> str:
        """
        Produce the artifact content.

        Args:
            ctx: Bundle, source and output options

        Returns:
            Complete file content
        """
        raise NotImplementedError

    def write(self, ctx: EmitContext, outdir: Path, base: str) -> Path | None:
        """Render and write the artifact; None if it was skipped."""
        if self.needs_source and ctx.source is None:
            logger.debug(f"Skipping {self.kind}: source text unavailable")
            return None
        path = write_text(outdir / self.filename(base), self.render(ctx))
        logger.debug(f"Wrote {self.kind} artifact to {path}")
        return path


class JsonEmitter(Emitter):
    """Emitter whose artifact is a single JSON document."""

    ext = ".json"
    always_pretty = False

    def build(self, ctx: EmitContext) -> Any:
        raise NotImplementedError

    def render(self, ctx: EmitContext) -> str:
        return to_json(self.build(ctx), pretty=self.always_pretty or ctx.pretty)


class JsonLinesEmitter(Emitter):
    """Emitter whose artifact is one JSON record per line."""

    ext = ".jsonl"

    def records(self, ctx: EmitContext) -> Iterable[dict[str, Any]]:
        raise NotImplementedError

    def render(self, ctx: EmitContext) -> str:
        return to_json_lines(self.records(ctx))
