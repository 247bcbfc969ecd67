"""
Output emitters and the registry that drives them.
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

from connector_inspect.emit.atoms import ContextEmitter, EmbedEmitter, UpsertEmitter
from connector_inspect.emit.base import EmitContext, Emitter
from connector_inspect.emit.events import EventsEmitter
from connector_inspect.emit.graph import DotEmitter, GraphJsonEmitter
from connector_inspect.emit.index import IndexEmitter
from connector_inspect.emit.ir_json import IrJsonEmitter, SchemaEmitter, SourceMapEmitter
from connector_inspect.emit.prompts import PromptsEmitter
from connector_inspect.emit.sarif import SarifEmitter
from connector_inspect.emit.summary import SummaryEmitter
from connector_inspect.emit.tokens import TokensEmitter
from connector_inspect.exceptions import OutputDirectoryError, UnknownEmitKindError
from connector_inspect.util.files import ensure_dir

logger = logging.getLogger(__name__)

# Registry in write order; the index manifest comes last so it can list the rest.
EMITTERS: dict[str, Emitter] = {
    emitter.kind: emitter
    for emitter in (
        IrJsonEmitter(),
        DotEmitter(),
        GraphJsonEmitter(),
        SummaryEmitter(),
        EventsEmitter(),
        SarifEmitter(),
        SchemaEmitter(),
        SourceMapEmitter(),
        EmbedEmitter(),
        ContextEmitter(),
        UpsertEmitter(),
        PromptsEmitter(),
        TokensEmitter(),
        IndexEmitter(),
    )
}

DEFAULT_KINDS: tuple[str, ...] = tuple(EMITTERS)


def resolve_kinds(kinds: list[str] | tuple[str, ...] | None) -> list[str]:
    """
    Validate requested kinds and put them in write order.

    Args:
        kinds: Requested kinds; None or empty means all

    Returns:
        Kinds in registry order, without duplicates

    Raises:
        UnknownEmitKindError: If any kind is not registered
    """
    if not kinds:
        return list(DEFAULT_KINDS)
    requested = [kind.strip() for kind in kinds if kind.strip()]
    unknown = [kind for kind in dict.fromkeys(requested) if kind not in EMITTERS]
    if unknown:
        raise UnknownEmitKindError(
            unknown, {name: emitter.description for name, emitter in EMITTERS.items()}
        )
    return [kind for kind in EMITTERS if kind in requested]


def prepare_outdir(outdir: str | Path) -> Path:
    """Create the output directory if needed."""
    try:
        return ensure_dir(outdir)
    except OSError as e:
        raise OutputDirectoryError(str(outdir), e.strerror or str(e)) from e


@dataclass
class EmitResult:
    """Artifacts written by one emission pass."""

    paths: dict[str, str] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)


def write_artifacts(
    ctx: EmitContext, outdir: str | Path, base: str, kinds: list[str] | tuple[str, ...] | None
) -> EmitResult:
    """
    Write one artifact per requested kind.

    A failing emitter is logged and recorded; the remaining kinds are still
    written.

    Args:
        ctx: Emit context
        outdir: Output directory (created if missing)
        base: Base file name
        kinds: Kinds to write; None means all

    Returns:
        EmitResult mapping kind -> written path (skipped kinds are absent) and
        kind -> error message for emitters that failed

    Raises:
        OutputDirectoryError: If a file cannot be written to the output directory
    """
    selected = resolve_kinds(kinds)
    out = prepare_outdir(outdir)
    ctx = replace(ctx, base=base)

    result = EmitResult()
    for kind in selected:
        emitter = EMITTERS[kind]
        if kind == IndexEmitter.kind:
            ctx = replace(ctx, artifacts=dict(result.paths))
        try:
            path = emitter.write(ctx, out, base)
        except OSError as e:
            raise OutputDirectoryError(str(out), e.strerror or str(e)) from e
        except Exception as e:
            logger.exception(f"Emitter {kind} failed")
            result.failures[kind] = f"{type(e).__name__}: {e}"
            continue
        if path is not None:
            result.paths[kind] = str(path)
    return result


__all__ = [
    "DEFAULT_KINDS",
    "EMITTERS",
    "EmitContext",
    "EmitResult",
    "Emitter",
    "prepare_outdir",
    "resolve_kinds",
    "write_artifacts",
]
