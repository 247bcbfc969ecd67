"""
End-to-end run: read, parse, walk or salvage, emit.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from connector_inspect.analyze.walker import ConnectorWalker
from connector_inspect.config import InspectorConfig
from connector_inspect.emit import EmitContext, prepare_outdir, resolve_kinds, write_artifacts
from connector_inspect.models.ir import Bundle
from connector_inspect.parse.ruby import parse_source
from connector_inspect.parse.salvage import salvage_bundle
from connector_inspect.util.files import SourceFile, read_source

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of one CLI run."""

    bundle: Bundle
    artifacts: dict[str, str] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)
    outdir: Path | None = None


def analyze_source(source: SourceFile, config: InspectorConfig | None = None) -> Bundle:
    """
    Analyze decoded connector source.

    Args:
        source: Source file contents
        config: Effective settings (defaults if omitted)

    Returns:
        Bundle from the walker, the salvage lexer, or an empty bundle when no
        connector hash exists
    """
    config = config or InspectorConfig()
    result = parse_source(source.text, source.path)

    if not result.ok:
        bundle = salvage_bundle(source.path, source.text, result.diagnostics, result.fatal)
    else:
        walker = ConnectorWalker(
            filename=source.path,
            tree=result.tree,
            comments=result.comments,
            diagnostics=result.diagnostics,
            max_warnings=config.max_warnings,
            dangerous_calls=config.dangerous_calls,
        )
        bundle = walker.walk()
        if bundle is None:
            logger.info(f"{source.path}: nothing to analyze")
            bundle = Bundle(root=None, issues=walker.issues)

    return bundle.with_stats(source_lines=source.line_count)


def analyze_file(path: str | Path, config: InspectorConfig | None = None) -> Bundle:
    """Read and analyze a connector file."""
    return analyze_source(read_source(path), config)


def run(path: str | Path, config: InspectorConfig) -> RunResult:
    """
    Run the whole pipeline for one input file.

    Environment problems (unknown emit kind, missing input, unusable output
    directory) raise before any analysis happens.

    Args:
        path: Connector source file
        config: Effective settings

    Returns:
        RunResult with the bundle, the written artifact paths and any emitter
        failures
    """
    kinds = resolve_kinds(config.emit)
    source = read_source(path)
    outdir = prepare_outdir(config.outdir)

    bundle = analyze_source(source, config)

    ctx = EmitContext(
        bundle=bundle,
        source=source.text,
        filename=source.path,
        pretty=config.pretty,
        graph_name=config.graph_name,
        max_context_bytes=config.max_context_bytes,
        slice_bytes=config.slice_bytes,
        namespace=config.namespace,
        dangerous_calls=config.dangerous_calls,
        source_sha256=source.sha256,
    )
    emitted = write_artifacts(ctx, outdir, config.base, kinds)
    return RunResult(
        bundle=bundle, artifacts=emitted.paths, failures=emitted.failures, outdir=outdir
    )
