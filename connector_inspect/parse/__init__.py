"""
Parsing: full tree-sitter parser, parser-independent syntax tree, salvage lexer.
"""

from connector_inspect.parse.ruby import ParseResult, parse_source
from connector_inspect.parse.salvage import SalvageResult, lex_tokens, salvage, salvage_bundle

__all__ = [
    "ParseResult",
    "SalvageResult",
    "lex_tokens",
    "parse_source",
    "salvage",
    "salvage_bundle",
]
