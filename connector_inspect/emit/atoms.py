"""
Context atoms: addressable IR units with their source text.

An atom is one IR node (or one raw lambda body) with a fully-qualified path
name, its location and the HTTP facts the graph knows about it. Three
emitters share the enumeration: plain embedding records, LLM context blocks
and bulk-upsert records for an external vector index.
"""

from collections.abc import Iterator
from pathlib import PurePath
from typing import Any

from connector_inspect.emit.base import EmitContext, JsonLinesEmitter
from connector_inspect.models.ir import Bundle, Node
from connector_inspect.util.files import slice_source
from connector_inspect.util.hashing import lambda_atom_id

CODE_ATOM_KINDS = frozenset({"action", "trigger", "method", "lambda"})


def http_summary(bundle: Bundle, node: Node) -> dict[str, list[str]]:
    """
    HTTP verbs and endpoint labels reachable directly from a node's lambdas.

    Actions and triggers own every edge whose source starts with their label
    followed by ``#``; a method owns the edges leaving ``method:<name>``.
    """
    if node.kind in ("action", "trigger"):
        label = node.meta.get("label") or f"{node.kind}:{node.name}"
        prefix = f"{label}#"

        def owns(source: str) -> bool:
            return source.startswith(prefix)

    elif node.kind == "method":
        owner = f"method:{node.name}"

        def owns(source: str) -> bool:
            return source == owner

    else:
        return {}

    nodes = bundle.graph.node_index()
    endpoints = []
    for edge in bundle.graph.edges:
        target = nodes.get(edge.target)
        if target is not None and target.kind == "http" and owns(edge.source):
            endpoints.append(target.label)
    verbs = list(dict.fromkeys(label.split(" ", 1)[0] for label in endpoints))
    return {"verbs": verbs, "endpoints": endpoints}


def enumerate_atoms(bundle: Bundle) -> list[dict[str, Any]]:
    """All node atoms in pre-order, then one atom per lambda record."""
    root = bundle.root
    if root is None:
        return []
    filename = root.meta.get("filename")

    atoms = []
    stack: list[tuple[Node, tuple[str, ...]]] = [(root, ())]
    while stack:
        node, parents = stack.pop()
        path = (*parents, f"{node.kind}.{node.name}")
        atoms.append(
            {
                "id": node.id,
                "kind": node.kind,
                "name": node.name,
                "fqname": "/".join(path),
                "loc": node.loc.to_dict(),
                "file": filename,
                "keys": list(node.meta.get("keys") or node.meta.get("root_keys") or []),
                "http": http_summary(bundle, node),
                "doc": node.meta.get("doc"),
            }
        )
        stack.extend((child, path) for child in reversed(node.children))

    for record in bundle.lambdas:
        loc = record.loc.to_dict()
        atoms.append(
            {
                "id": lambda_atom_id(record.owner, loc),
                "kind": "lambda",
                "name": record.role,
                "fqname": record.owner,
                "loc": loc,
                "file": filename,
            }
        )
    return atoms


def role_of(atom: dict[str, Any]) -> str:
    """Role of an atom: the sub-key after the last ``#``, else its name."""
    fqname = atom.get("fqname") or ""
    if "#" in fqname:
        return fqname.rsplit("#", 1)[1]
    return atom.get("name") or "unknown"


def code_atoms(ctx: EmitContext) -> Iterator[tuple[dict[str, Any], str]]:
    """Action/trigger/method/lambda atoms with their non-empty source text."""
    for atom in enumerate_atoms(ctx.bundle):
        if atom["kind"] not in CODE_ATOM_KINDS:
            continue
        text = slice_source(ctx.source, atom["loc"], ctx.max_context_bytes)
        if text:
            yield atom, text


class EmbedEmitter(JsonLinesEmitter):
    kind = "embed"
    suffix = "embed"
    needs_source = True
    description = "Every atom with its source slice"

    def records(self, ctx: EmitContext) -> Iterator[dict[str, Any]]:
        for atom in enumerate_atoms(ctx.bundle):
            yield {**atom, "text": slice_source(ctx.source, atom["loc"], ctx.slice_bytes)}


class ContextEmitter(JsonLinesEmitter):
    kind = "context"
    suffix = "context"
    needs_source = True
    description = "Code atoms as LLM context blocks"

    def records(self, ctx: EmitContext) -> Iterator[dict[str, Any]]:
        for atom, text in code_atoms(ctx):
            yield {
                "id": atom["id"],
                "kind": atom["kind"],
                "role": role_of(atom),
                "fqname": atom["fqname"],
                "loc": atom["loc"],
                "file": atom["file"],
                "http": atom.get("http", {}),
                "keys": atom.get("keys", []),
                "text": text,
                "doc": atom.get("doc"),
            }


class UpsertEmitter(JsonLinesEmitter):
    kind = "upsert"
    suffix = "upsert"
    needs_source = True
    description = "Code atoms as bulk-upsert records for a vector index"

    def records(self, ctx: EmitContext) -> Iterator[dict[str, Any]]:
        for atom, text in code_atoms(ctx):
            http = atom.get("http") or {}
            yield {
                "id": atom["id"],
                "namespace": ctx.namespace,
                "doc_id": PurePath(atom["file"] or "").name,
                "section": atom["fqname"],
                "text": text,
                "metadata": {
                    "kind": atom["kind"],
                    "role": role_of(atom),
                    "http_verbs": http.get("verbs"),
                    "endpoints": http.get("endpoints"),
                    "loc": atom["loc"],
                    "model_suggested_token_count": len(text) // 4,
                },
            }
