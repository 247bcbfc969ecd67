"""
IR documents: the full bundle, its JSON schema and the node source map.
"""

from typing import Any

from connector_inspect.emit.base import EmitContext, JsonEmitter

IR_SCHEMA_VERSION = "1-0-0"


class IrJsonEmitter(JsonEmitter):
    kind = "json"
    suffix = "ir"
    description = "Full analysis bundle"

    def build(self, ctx: EmitContext) -> Any:
        return ctx.bundle.to_dict()


def ir_schema(version: str = IR_SCHEMA_VERSION) -> dict[str, Any]:
    """
    Versioned JSON schema describing the IR document (not the connector).

    Args:
        version: Schema version recorded in the document

    Returns:
        Draft-07 JSON schema
    """
    loc = {
        "type": "object",
        "properties": {
            name: {"type": "integer"} for name in ("line", "column", "length", "begin", "end")
        },
    }
    return {
        "$id": "https://example.com/workato-connector-ir.schema.json",
        "$schema": "http://json-schema.org/draft-07/schema#",
        "title": "Workato Connector IR",
        "version": version,
        "type": "object",
        "required": ["root", "issues", "graph", "stats", "salvaged"],
        "properties": {
            "root": {"oneOf": [{"$ref": "#/definitions/node"}, {"type": "null"}]},
            "issues": {"type": "array", "items": {"$ref": "#/definitions/issue"}},
            "graph": {
                "type": "object",
                "properties": {
                    "nodes": {"type": "object"},
                    "edges": {"type": "array", "items": {"type": "array"}},
                },
            },
            "stats": {"type": "object", "additionalProperties": {"type": "integer"}},
            "salvaged": {"type": "boolean"},
            "lambdas": {"type": "array", "items": {"$ref": "#/definitions/lambda"}},
        },
        "definitions": {
            "loc": loc,
            "node": {
                "type": "object",
                "required": ["id", "kind", "name", "loc", "meta", "children"],
                "properties": {
                    "id": {"type": "string"},
                    "kind": {"type": "string"},
                    "name": {"type": "string"},
                    "loc": {"$ref": "#/definitions/loc"},
                    "meta": {"type": "object"},
                    "children": {"type": "array", "items": {"$ref": "#/definitions/node"}},
                },
            },
            "issue": {
                "type": "object",
                "required": ["severity", "code", "message"],
                "properties": {
                    "severity": {"type": "string", "enum": ["info", "warning", "error"]},
                    "code": {"type": "string"},
                    "message": {"type": "string"},
                    "loc": {"$ref": "#/definitions/loc"},
                    "context": {"type": "object"},
                },
            },
            "lambda": {
                "type": "object",
                "required": ["owner", "role"],
                "properties": {
                    "owner": {"type": "string"},
                    "role": {"type": "string"},
                    "loc": {"$ref": "#/definitions/loc"},
                },
            },
        },
    }


class SchemaEmitter(JsonEmitter):
    kind = "schema"
    suffix = "schema"
    always_pretty = True
    description = "JSON schema of the IR document"

    def build(self, ctx: EmitContext) -> Any:
        return ir_schema()


class SourceMapEmitter(JsonEmitter):
    kind = "sourcemap"
    suffix = "sourcemap"
    description = "Node id to kind, name and location"

    def build(self, ctx: EmitContext) -> Any:
        root = ctx.bundle.root
        if root is None:
            return {}
        return {
            node.id: {"kind": node.kind, "name": node.name, "loc": node.loc.to_dict()}
            for node in root.walk()
        }
