"""
CLI entry point for connector-inspect.
"""

import logging
from functools import wraps
from importlib.metadata import PackageNotFoundError, version

import typer
from rich.console import Console
from rich.markup import escape

from connector_inspect import __version__
from connector_inspect.analyze.pipeline import run
from connector_inspect.config import resolve_config
from connector_inspect.exceptions import InspectorError, format_error_for_cli
from connector_inspect.models.ir import Severity
from connector_inspect.util.logging import debug_requested, setup_logging

app = typer.Typer(
    name="connector-inspect",
    help="Static analyzer for Workato connector definitions (never executes connector code)",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)

VERSIONED_DISTRIBUTIONS = ("tree-sitter", "tree-sitter-ruby", "pygments", "jinja2")


def handle_errors(func):
    """Decorator to handle exceptions in CLI commands with nice formatting."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except InspectorError as e:
            # Our custom exceptions with helpful messages
            console.print(format_error_for_cli(e))
            raise typer.Exit(e.exit_code)
        except Exception as e:
            # Unexpected errors
            logger.debug("Unexpected error", exc_info=True)
            console.print(f"[red]Unexpected error:[/red] {str(e)}")
            console.print("\n[yellow]This may be a bug. Re-run with --verbose for details.[/yellow]")
            raise typer.Exit(1)

    return wrapper


def _log_environment() -> None:
    for dist in VERSIONED_DISTRIBUTIONS:
        try:
            logger.debug(f"{dist} {version(dist)}")
        except PackageNotFoundError:
            logger.debug(f"{dist} not installed")


def _split_kinds(emit: str | None) -> list[str] | None:
    if emit is None:
        return None
    return [kind.strip() for kind in emit.split(",") if kind.strip()]


@app.command()
@handle_errors
def inspect(
    path: str = typer.Argument(..., help="Connector source file to analyze"),
    outdir: str | None = typer.Option(None, "--outdir", help="Output directory (default: ./out)"),
    base: str | None = typer.Option(
        None, "--base", help="Base filename for outputs (default: connector)"
    ),
    emit: str | None = typer.Option(
        None, "--emit", help="Comma-separated emission kinds (default: all)"
    ),
    pretty: bool | None = typer.Option(
        None, "--pretty/--no-pretty", help="Pretty-print JSON (default: on)"
    ),
    graph_name: str | None = typer.Option(None, "--graph-name", help="Graph name for DOT"),
    max_warnings: int | None = typer.Option(
        None, "--max-warnings", min=0, help="Cap number of warnings collected (default: 10000)"
    ),
    config: str | None = typer.Option(
        None, "--config", help="Config file (default: ./connector-inspect.yaml if present)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Analyze a connector definition and write the requested artifacts."""
    setup_logging(verbose)
    if debug_requested():
        logger.debug(f"connector-inspect {__version__}")
        _log_environment()

    settings = resolve_config(
        config,
        {
            "outdir": outdir,
            "base": base,
            "emit": _split_kinds(emit),
            "pretty": pretty,
            "graph_name": graph_name,
            "max_warnings": max_warnings,
        },
    )

    result = run(path, settings)
    bundle = result.bundle

    console.print(f"[green]✓ Wrote {len(result.artifacts)} artifact(s) to {result.outdir}[/green]")
    for kind, error in result.failures.items():
        console.print(f"[yellow]⚠ Could not write {kind} artifact: {escape(error)}[/yellow]")
    counts = ", ".join(
        f"{len(bundle.issues_by_severity(severity))} {severity.value}" for severity in Severity
    )
    console.print(f"[dim]  Issues: {counts}[/dim]")
    if bundle.salvaged:
        console.print(
            "[yellow]⚠ Parser failed; salvage mode extracted a partial structure[/yellow]"
        )
    elif bundle.root is None:
        console.print("[yellow]⚠ No connector definition found in the input[/yellow]")


def main():
    app()


if __name__ == "__main__":
    main()
