"""
Pytest configuration and shared fixtures.
"""

from pathlib import Path

import pytest

from connector_inspect.analyze.pipeline import analyze_source
from connector_inspect.config import InspectorConfig
from connector_inspect.util.files import SourceFile, count_lines


@pytest.fixture
def fixtures_dir():
    """Return path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def connectors_dir(fixtures_dir):
    """Return path to the connector source fixtures."""
    return fixtures_dir / "connectors"


@pytest.fixture
def acme_connector(connectors_dir):
    """Well-formed connector exercising every section."""
    return connectors_dir / "acme_crm.rb"


@pytest.fixture
def problems_connector(connectors_dir):
    """Connector with cycles, duplicates and other structural problems."""
    return connectors_dir / "problems.rb"


@pytest.fixture
def broken_connector(connectors_dir):
    """Connector with a syntax error that forces salvage mode."""
    return connectors_dir / "broken.rb"


@pytest.fixture
def analyze_text():
    """Analyze a Ruby snippet in memory and return the bundle."""

    def _analyze(text: str, **settings):
        source = SourceFile(path="snippet.rb", text=text, line_count=count_lines(text))
        return analyze_source(source, InspectorConfig(**settings))

    return _analyze

