"""
Jinja2 template rendering for text artifacts.
"""

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

TEMPLATE_DIR = Path(__file__).parent / "templates"


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    """
    Get or create the Jinja2 environment (cached).

    Returns:
        Environment loading from the package template directory
    """
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render_template(template_name: str, **context) -> str:
    """Render a packaged template with the given context."""
    return get_environment().get_template(template_name).render(**context)
