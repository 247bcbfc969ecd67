"""
connector-inspect: static analyzer for Workato-style connector definitions.

Parses a Ruby connector source file without executing it, builds an intermediate
representation (IR) of its declared components, extracts the internal method and
outbound HTTP call graph, flags structural and safety issues, and writes the result
in several machine- and human-readable formats.

Main features:
- Resilient parsing with a token-level salvage mode for files that do not parse
- Method call cycle, undefined and unused method detection
- JSON IR, Graphviz DOT, Markdown, NDJSON, SARIF and JSON Schema outputs
- Source-sliced context atoms for retrieval and indexing tools
"""

__version__ = "0.3.0"
