"""
Custom exceptions for connector-inspect with helpful error messages.

Only environment problems (missing input, unusable output directory, bad config)
raise. Problems found inside the analyzed connector are reported as issues.
"""


class InspectorError(Exception):
    """Base exception for connector-inspect errors."""

    exit_code = 1

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.message)

    def __str__(self):
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class InputError(InspectorError):
    """Errors reading the connector source file."""

    exit_code = 2


class InputFileNotFoundError(InputError):
    """Connector source file does not exist."""

    def __init__(self, file_path: str):
        message = f"File not found: {file_path}"
        suggestion = (
            "Check that the file path is correct and the file exists:\n" f"  ls -l {file_path}"
        )
        super().__init__(message, suggestion)


class InputNotReadableError(InputError):
    """Connector source path exists but cannot be read as a file."""

    def __init__(self, file_path: str, reason: str = ""):
        message = f"Cannot read input: {file_path}"
        if reason:
            message += f" ({reason})"
        suggestion = (
            "Pass the path of a single connector source file, for example:\n"
            "  connector-inspect connectors/my_connector.rb"
        )
        super().__init__(message, suggestion)


class OutputDirectoryError(InspectorError):
    """Output directory cannot be created or written."""

    def __init__(self, path: str, reason: str = ""):
        message = f"Cannot write to output directory: {path}"
        if reason:
            message += f" ({reason})"
        suggestion = "Choose a writable location with:\n  connector-inspect <file> --outdir <dir>"
        super().__init__(message, suggestion)


class ConfigError(InspectorError):
    """Configuration file missing, unreadable or invalid."""

    def __init__(self, path: str, details: str):
        message = f"Invalid configuration in {path}:\n  {details}"
        suggestion = (
            "Fix the configuration file or run without it.\n"
            "Supported keys: outdir, base, emit, pretty, graph_name, max_warnings,\n"
            "max_context_bytes, slice_bytes, namespace, dangerous_calls"
        )
        super().__init__(message, suggestion)


class UnknownEmitKindError(InspectorError):
    """Requested emission kind does not exist."""

    def __init__(self, kinds: list[str], available: dict[str, str]):
        message = f"Unknown emit kind(s): {', '.join(kinds)}"
        width = max((len(kind) for kind in available), default=0)
        suggestion = "Available kinds:\n" + "\n".join(
            f"  {kind.ljust(width)}  {description}" for kind, description in available.items()
        )
        super().__init__(message, suggestion)


def format_error_for_cli(error: Exception) -> str:
    """
    Format an exception for CLI display with helpful information.

    Args:
        error: The exception to format

    Returns:
        Formatted error message string (rich markup)
    """
    if isinstance(error, InspectorError):
        output = f"[red]Error:[/red] {error.message}"
        if error.suggestion:
            output += f"\n\n[yellow]{error.suggestion}[/yellow]"
        return output
    else:
        return f"[red]Error:[/red] {str(error)}"
