"""
Configuration loading for connector-inspect.

Settings come from three layers: built-in defaults, an optional YAML file
(``connector-inspect.yaml`` in the working directory, or ``--config``) and
command-line flags, in increasing order of precedence.
"""

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validate

from connector_inspect.analyze.constants import DEFAULT_DANGEROUS_CALLS
from connector_inspect.analyze.issues import DEFAULT_MAX_WARNINGS
from connector_inspect.emit import DEFAULT_KINDS
from connector_inspect.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "connector-inspect.yaml"
SCHEMA_FILE = Path(__file__).parent / "schema" / "config.schema.json"


@dataclass(frozen=True)
class InspectorConfig:
    """Effective settings for one run."""

    outdir: str = "./out"
    base: str = "connector"
    emit: tuple[str, ...] = DEFAULT_KINDS
    pretty: bool = True
    graph_name: str = "Connector"
    max_warnings: int = DEFAULT_MAX_WARNINGS
    max_context_bytes: int = 12_000
    slice_bytes: int = 16_384
    namespace: str = "workato-connectors"
    dangerous_calls: tuple[str, ...] = DEFAULT_DANGEROUS_CALLS

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "InspectorConfig":
        """Build a config from a (validated) mapping, ignoring None values."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known or value is None:
                continue
            if key in ("emit", "dangerous_calls"):
                value = tuple(value)
            values[key] = value
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def find_config_file(explicit: str | Path | None = None, cwd: Path | None = None) -> Path | None:
    """
    Locate the config file to use.

    Args:
        explicit: Path given with --config; must exist
        cwd: Directory searched for the default file name

    Returns:
        Path of the config file, or None when no file applies
    """
    if explicit is not None:
        path = Path(explicit)
        if not path.is_file():
            raise ConfigError(str(path), "file does not exist")
        return path

    candidate = (cwd or Path.cwd()) / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load and validate a YAML config file."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(str(path), f"YAML syntax error: {e}") from e
    except OSError as e:
        raise ConfigError(str(path), e.strerror or str(e)) from e

    if data is None:
        logger.debug(f"{path} is empty; using defaults")
        return {}
    if not isinstance(data, dict):
        raise ConfigError(str(path), f"expected a mapping, got {type(data).__name__}")

    _validate_config_schema(path, data)
    return data


def _validate_config_schema(path: Path, data: dict[str, Any]) -> None:
    """Validate config against JSON schema."""
    schema = json.loads(SCHEMA_FILE.read_text(encoding="utf-8"))
    try:
        validate(instance=data, schema=schema)
    except ValidationError as e:
        location = ".".join(str(p) for p in e.path) or "(root)"
        raise ConfigError(str(path), f"{e.message}\n  Path: {location}") from e


def resolve_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
    cwd: Path | None = None,
) -> InspectorConfig:
    """
    Merge defaults, config file and command-line overrides.

    Args:
        config_path: Explicit config file (--config)
        overrides: Flag values; None means "not given on the command line"
        cwd: Directory searched for connector-inspect.yaml

    Returns:
        Effective InspectorConfig
    """
    merged: dict[str, Any] = InspectorConfig().to_dict()

    path = find_config_file(config_path, cwd)
    if path is not None:
        logger.debug(f"Loading configuration from {path}")
        merged.update(load_config_file(path))

    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    return InspectorConfig.from_mapping(merged)
