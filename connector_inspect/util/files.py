"""
File utility functions.
"""

import json
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from connector_inspect.exceptions import InputFileNotFoundError, InputNotReadableError
from connector_inspect.util.hashing import sha256_bytes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    """Decoded connector source plus the facts diagnostics need."""

    path: str
    text: str
    line_count: int
    sha256: str | None = None


def ensure_dir(path: str | Path) -> Path:
    """Ensure directory exists, creating if necessary."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def read_source(path: str | Path) -> SourceFile:
    """
    Read a connector source file as UTF-8.

    Invalid byte sequences are replaced rather than rejected so that a single
    stray byte never prevents analysis.

    Args:
        path: Path to the connector file

    Returns:
        SourceFile with decoded text and line count

    Raises:
        InputFileNotFoundError: If the path does not exist
        InputNotReadableError: If the path is not a readable regular file
    """
    p = Path(path)
    if not p.exists():
        raise InputFileNotFoundError(str(path))
    if not p.is_file():
        raise InputNotReadableError(str(path), "not a regular file")

    try:
        raw = p.read_bytes()
    except OSError as e:
        raise InputNotReadableError(str(path), e.strerror or str(e)) from e

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning(f"{path} is not valid UTF-8; undecodable bytes were replaced")
        text = raw.decode("utf-8", errors="replace")

    return SourceFile(
        path=str(path), text=text, line_count=count_lines(text), sha256=sha256_bytes(raw)
    )


def count_lines(text: str) -> int:
    """Count lines the way editors do (a trailing newline does not open a new line)."""
    if not text:
        return 0
    return text.count("\n") + (0 if text.endswith("\n") else 1)


def slice_source(source: str | None, loc: dict[str, Any] | None, max_bytes: int) -> str | None:
    """
    Return the source text covered by a location, capped at max_bytes.

    Locations carry byte offsets, so slicing happens on the UTF-8 encoding.
    A cut that lands inside a multi-byte character is dropped, not garbled.
    """
    if source is None or not loc:
        return None
    start = loc.get("begin")
    end = loc.get("end")
    if start is None or end is None:
        return None
    stop = min(end, start + max_bytes)
    return source.encode("utf-8")[start:stop].decode("utf-8", errors="ignore")


def safe_filename(base: str, ext: str) -> str:
    """Build an output filename, replacing characters that do not belong in one."""
    base = re.sub(r"[^\w\-.]+", "_", base)
    return f"{base}{ext}"


def write_text(path: str | Path, content: str) -> Path:
    """Write text to file, creating parent directories if needed."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


def to_json(data: Any, pretty: bool = True) -> str:
    """Serialize to JSON text: indented with a trailing newline, or compact."""
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def to_json_lines(records: Iterable[dict[str, Any]]) -> str:
    """Serialize records as one compact JSON document per line."""
    return "".join(json.dumps(record, ensure_ascii=False) + "\n" for record in records)

