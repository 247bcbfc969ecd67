"""
Hashing utilities for content digests and deterministic identifiers.
"""

import hashlib
from typing import Any


def sha256_bytes(data: bytes) -> str:
    """Compute SHA256 hash of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def short_digest(*parts: Any, length: int = 16) -> str:
    """
    Hash a sequence of values into a short hex digest.

    None renders as an empty string so a missing location field hashes the
    same way on every run.
    """
    data = "\0".join("" if part is None else str(part) for part in parts)
    return hashlib.sha1(data.encode("utf-8")).hexdigest()[:length]


def node_id(kind: str, name: str, loc: dict[str, Any]) -> str:
    """Stable IR node identifier derived from kind, name and location."""
    return "n_" + short_digest(
        kind, name, loc.get("begin"), loc.get("end"), loc.get("line"), loc.get("column")
    )


def lambda_atom_id(owner: str, loc: dict[str, Any]) -> str:
    """Stable identifier for a lambda body atom."""
    return "lam:" + short_digest(owner, loc.get("begin"), loc.get("end"))
