"""
Lexical token stream of the source file.
"""

from collections.abc import Iterator
from typing import Any

from connector_inspect.emit.base import EmitContext, JsonLinesEmitter
from connector_inspect.parse.salvage import lex_tokens


class TokensEmitter(JsonLinesEmitter):
    kind = "tokens"
    suffix = "tokens"
    ext = ".ndjson"
    needs_source = True
    description = "Lexical token stream"

    def records(self, ctx: EmitContext) -> Iterator[dict[str, Any]]:
        for token in lex_tokens(ctx.source or ""):
            yield token.to_dict()
