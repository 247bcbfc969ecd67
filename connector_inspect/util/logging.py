"""
Logging configuration.

The package logs through ``logging.getLogger(__name__)`` everywhere; this module
only decides where those records go.
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

DEBUG_ENV_VAR = "CONNECTOR_INSPECT_DEBUG"


def debug_requested() -> bool:
    """True when debug logging was requested through the environment."""
    return os.environ.get(DEBUG_ENV_VAR) == "1"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Attach a rich handler to the package logger.

    Args:
        verbose: Log at DEBUG instead of WARNING

    Returns:
        The configured package logger
    """
    level = logging.DEBUG if verbose or debug_requested() else logging.WARNING
    logger = logging.getLogger("connector_inspect")
    logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=Console(stderr=True), show_time=False, show_path=False, markup=False
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
    return logger
