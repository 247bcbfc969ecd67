"""
Connector walker: turns a syntax tree into the connector IR.

The walker finds the literal hash that most plausibly is the connector
definition, builds one IR node per recognized section, registers every
lambda body with the call graph and reports structural problems as issues.
"""

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from connector_inspect.analyze.callgraph import (
    CallGraphRegistrar,
    resolve_lambda,
    scan_subshells,
)
from connector_inspect.analyze.constants import (
    ACTION_LAMBDA_KEYS,
    ACTION_REQUIRED,
    DEFAULT_DANGEROUS_CALLS,
    DOCUMENTED_EXTRA_KEYS,
    PICK_LIST_KEYS,
    ROOT_KEYS,
    TRIGGER_LAMBDA_KEYS,
    TRIGGER_REQUIRED,
)
from connector_inspect.analyze.cycles import analyze_methods
from connector_inspect.analyze.issues import DEFAULT_MAX_WARNINGS, IssueCollector
from connector_inspect.models.ir import Bundle, Issue, Loc, Node, NodeKind
from connector_inspect.parse.syntax import (
    SyntaxKind,
    SyntaxNode,
    comment_text,
    dig_pair,
    hash_keys,
    hash_pairs,
    key_value,
    pair_key,
    pair_value,
    string_literal,
    walk,
)

logger = logging.getLogger(__name__)

# Minimum number of recognized root keys for a hash to count as the connector.
MIN_CONNECTOR_SCORE = 2

DYNAMIC_NAME = "(dynamic)"


@dataclass(frozen=True)
class OperationKind:
    """How actions and triggers differ: vocabulary, required keys, lambda keys."""

    container: NodeKind
    member: NodeKind
    title: str
    required: tuple[str, ...]
    lambda_keys: tuple[str, ...]


ACTIONS = OperationKind(
    container=NodeKind.ACTIONS,
    member=NodeKind.ACTION,
    title="Action",
    required=ACTION_REQUIRED,
    lambda_keys=ACTION_LAMBDA_KEYS,
)
TRIGGERS = OperationKind(
    container=NodeKind.TRIGGERS,
    member=NodeKind.TRIGGER,
    title="Trigger",
    required=TRIGGER_REQUIRED,
    lambda_keys=TRIGGER_LAMBDA_KEYS,
)


def connector_score(node: SyntaxNode) -> int:
    """Number of distinct recognized root keys in a hash."""
    return len(set(hash_keys(node)) & ROOT_KEYS)


def find_connector_hash(tree: SyntaxNode) -> SyntaxNode | None:
    """
    Pick the hash most likely to be the connector definition.

    Hashes are visited in pre-order; a later hash replaces the current best
    only with a strictly higher score, so the first hash to reach the top
    score wins ties.

    Returns:
        The best hash with at least MIN_CONNECTOR_SCORE recognized keys
    """
    best = None
    best_score = MIN_CONNECTOR_SCORE - 1
    for node in walk(tree):
        if node.kind is not SyntaxKind.HASH:
            continue
        score = connector_score(node)
        if score > best_score:
            best, best_score = node, score
    return best


class ConnectorWalker:
    """
    Single-use walker over one parsed connector file.

    Usage:
        walker = ConnectorWalker(filename, tree, comments)
        bundle = walker.walk()   # None when no connector hash exists
        walker.issues            # issues either way
    """

    def __init__(
        self,
        filename: str,
        tree: SyntaxNode,
        comments: dict[SyntaxNode, list[SyntaxNode]] | None = None,
        diagnostics: Iterable[str] = (),
        max_warnings: int = DEFAULT_MAX_WARNINGS,
        dangerous_calls: Iterable[str] = DEFAULT_DANGEROUS_CALLS,
    ):
        self.filename = filename
        self.tree = tree
        self.comments = comments or {}
        self.diagnostics = list(diagnostics)
        self.collector = IssueCollector(max_warnings)
        self.registrar = CallGraphRegistrar(
            issues=self.collector, dangerous_calls=frozenset(dangerous_calls)
        )
        self.methods_defined: dict[str, Loc] = {}

    @property
    def issues(self) -> tuple[Issue, ...]:
        return self.collector.issues

    def walk(self) -> Bundle | None:
        """Analyze the tree; see the class docstring for the None case."""
        for message in self.diagnostics:
            self.collector.info("parse_diagnostic", message)

        connector = find_connector_hash(self.tree)
        if connector is None:
            self.collector.warning(
                "no_connector_hash", "No plausible top-level connector hash found", self.tree.loc
            )
            return None

        logger.debug(f"{self.filename}: connector hash at line {connector.line}")
        root = self._build_root(connector)
        stats = self._finalize(root)

        return Bundle(
            root=root,
            issues=self.collector.issues,
            graph=self.registrar.graph.freeze(),
            stats=stats,
            salvaged=False,
            lambdas=self.registrar.lambdas,
        )

    # ---------- root ---------------------------------------------------------

    def _build_root(self, connector: SyntaxNode) -> Node:
        keys = hash_keys(connector)
        for key in dict.fromkeys(keys):
            if key in ROOT_KEYS or key in DOCUMENTED_EXTRA_KEYS or key in PICK_LIST_KEYS:
                continue
            self.collector.info(
                "unknown_root_key", f"Unknown root key: {key!r}", connector.loc, key=key
            )

        meta = {
            "filename": self.filename,
            "root_keys": sorted(set(keys)),
            "doc": self._doc(connector),
        }
        for literal_key in ("version", "description"):
            literal = string_literal(key_value(connector, literal_key))
            if literal is not None:
                meta[literal_key] = literal

        root = Node(
            kind=NodeKind.CONNECTOR.value,
            name=string_literal(key_value(connector, "title")) or "(untitled)",
            loc=connector.loc,
            meta=meta,
        )

        extractors: list[tuple[str, Callable[[SyntaxNode], Node | None]]] = [
            ("connection", self._extract_connection),
            ("test", self._extract_test),
            ("methods", self._extract_methods),
            ("object_definitions", self._extract_object_definitions),
            ("actions", lambda h: self._extract_operations(h, ACTIONS)),
            ("triggers", lambda h: self._extract_operations(h, TRIGGERS)),
            ("pick_lists", self._extract_pick_lists),
            ("webhook_keys", self._extract_webhook_keys),
            ("streams", self._extract_streams),
        ]
        children = []
        for section, extract in extractors:
            try:
                child = extract(connector)
            except Exception as e:
                logger.exception(f"Failed to extract section {section}")
                self.collector.error(
                    "analysis_error",
                    f"Could not analyze section {section}: {type(e).__name__}: {e}",
                    connector.loc,
                    section=section,
                )
                continue
            if child is not None:
                children.append(child)

        return root.with_children(children)

    def _doc(self, node: SyntaxNode | None) -> str | None:
        if node is None or node not in self.comments:
            return None
        return comment_text(self.comments[node])

    # ---------- sections -----------------------------------------------------

    def _extract_connection(self, connector: SyntaxNode) -> Node | None:
        conn = key_value(connector, "connection")
        if conn is None:
            return None

        meta = {}
        base_uri = dig_pair(conn, ["base_uri"])
        if base_uri is not None and string_literal(pair_value(base_uri)) is not None:
            meta["base_uri_literal"] = string_literal(pair_value(base_uri))
        auth_type = dig_pair(conn, ["authorization", "type"])
        if auth_type is not None and string_literal(pair_value(auth_type)) is not None:
            meta["authorization_type_literal"] = string_literal(pair_value(auth_type))

        registered = []
        for key, value in self._pairs(conn):
            body = resolve_lambda(value)
            if body is not None:
                self.registrar.register(f"connection#{key}", body, key)
                registered.append(key)
        authorization = key_value(conn, "authorization")
        for key, value in self._pairs(authorization):
            body = resolve_lambda(value)
            if body is not None:
                self.registrar.register(f"connection#authorization.{key}", body, key)
                registered.append(f"authorization.{key}")
        if registered:
            meta["lambdas"] = registered

        return Node(
            kind=NodeKind.CONNECTION.value, name="connection", loc=conn.loc, meta=meta
        )

    def _extract_test(self, connector: SyntaxNode) -> Node | None:
        test = key_value(connector, "test")
        if test is None:
            return None
        body = resolve_lambda(test)
        if body is not None:
            self.registrar.register("connector#test", body, "test")
        else:
            self.collector.warning(
                "test_not_lambda", "test key found but not a lambda/proc block", test.loc
            )
        return Node(kind=NodeKind.TEST.value, name="test", loc=test.loc)

    def _extract_methods(self, connector: SyntaxNode) -> Node | None:
        methods = key_value(connector, "methods")
        if methods is None or methods.kind is not SyntaxKind.HASH:
            return None

        entries = []
        for pair in hash_pairs(methods):
            name = pair_key(pair) or DYNAMIC_NAME
            value = pair_value(pair)
            loc = value.loc if value is not None else pair.loc
            self.methods_defined.setdefault(name, loc)

            body = resolve_lambda(value)
            if body is not None:
                self.registrar.register(f"method:{name}", body, "method")
            else:
                self.collector.warning(
                    "method_not_lambda", f"methods.{name} is not a lambda/proc", loc, name=name
                )
            entries.append(
                Node(
                    kind=NodeKind.METHOD.value,
                    name=name,
                    loc=loc,
                    meta={
                        "args": list(body.args) if body else [],
                        "lambda": body is not None,
                        "doc": self._doc(pair),
                    },
                )
            )

        return Node(
            kind=NodeKind.METHODS.value, name="methods", loc=methods.loc, children=entries
        )

    def _extract_object_definitions(self, connector: SyntaxNode) -> Node | None:
        definitions = key_value(connector, "object_definitions")
        if definitions is None or definitions.kind is not SyntaxKind.HASH:
            return None

        entries = []
        for pair in hash_pairs(definitions):
            name = pair_key(pair) or DYNAMIC_NAME
            value = pair_value(pair)
            for key, field_value in self._pairs(value):
                body = resolve_lambda(field_value)
                if body is not None:
                    self.registrar.register(f"object_definition:{name}#{key}", body, key)
            entries.append(
                Node(
                    kind=NodeKind.OBJECT_DEFINITION.value,
                    name=name,
                    loc=value.loc if value is not None else pair.loc,
                    meta={"keys": sorted(set(hash_keys(value)))},
                )
            )

        return Node(
            kind=NodeKind.OBJECT_DEFINITIONS.value,
            name="object_definitions",
            loc=definitions.loc,
            children=entries,
        )

    def _extract_operations(self, connector: SyntaxNode, op: OperationKind) -> Node | None:
        container = key_value(connector, op.container.value)
        if container is None or container.kind is not SyntaxKind.HASH:
            return None

        kind = op.member.value
        seen: Counter = Counter()
        entries = []
        for pair in hash_pairs(container):
            name = pair_key(pair) or DYNAMIC_NAME
            seen[name] += 1
            occurrence = seen[name]
            label = f"{kind}:{name}" if occurrence == 1 else f"{kind}:{name}~{occurrence}"
            if occurrence > 1:
                self.collector.warning(
                    f"duplicate_{kind}",
                    f"Duplicate {kind}: {name}",
                    pair.loc,
                    name=name,
                    occurrence=occurrence,
                )
            entries.append(self._extract_operation(op, name, label, occurrence, pair))

        return Node(
            kind=op.container.value,
            name=op.container.value,
            loc=container.loc,
            children=entries,
        )

    def _extract_operation(
        self, op: OperationKind, name: str, label: str, occurrence: int, pair: SyntaxNode
    ) -> Node:
        kind = op.member.value
        body_hash = pair_value(pair)
        loc = body_hash.loc if body_hash is not None else pair.loc

        if body_hash is None or body_hash.kind is not SyntaxKind.HASH:
            self.collector.warning(
                f"{kind}_not_hash", f"{op.title} {name} is not a hash", loc, name=name
            )
            return Node(kind=kind, name=name, loc=loc)

        keys = hash_keys(body_hash)
        missing = [key for key in op.required if key not in keys]
        if missing:
            self.collector.warning(
                f"{kind}_missing_required_keys",
                f"{op.title} {name} missing keys: {', '.join(missing)}",
                loc,
                name=name,
                missing=missing,
            )

        self.registrar.graph.add_node(label, label, kind)
        for key in op.lambda_keys:
            value = key_value(body_hash, key)
            if value is None:
                continue
            body = resolve_lambda(value)
            if body is None:
                self.collector.warning(
                    "not_lambda",
                    f"{op.title} {name}.{key} is not a lambda/proc",
                    value.loc,
                    name=name,
                    key=key,
                )
                continue
            lambda_label = f"{label}#{key}"
            self.registrar.register(lambda_label, body, key)
            self.registrar.graph.add_edge(label, lambda_label, "has")

        meta = {
            "keys": sorted(set(keys)),
            "doc": self._doc(pair),
            "label": label,
            "occurrence": occurrence,
        }
        title = string_literal(key_value(body_hash, "title"))
        if title is not None:
            meta["title"] = title
        return Node(kind=kind, name=name, loc=loc, meta=meta)

    def _extract_pick_lists(self, connector: SyntaxNode) -> Node | None:
        pick_lists = None
        for key in PICK_LIST_KEYS:
            pick_lists = key_value(connector, key)
            if pick_lists is not None:
                break
        if pick_lists is None:
            return None

        entries = []
        for name, value in self._pairs(pick_lists):
            body = resolve_lambda(value)
            if body is not None:
                self.registrar.register(f"pick_list:{name}", body, "pick_list")
            else:
                self.collector.warning(
                    "pick_list_not_lambda",
                    f"pick_lists.{name} is not a lambda/proc",
                    value.loc if value is not None else pick_lists.loc,
                    name=name,
                )
            entries.append(
                Node(
                    kind=NodeKind.PICK_LIST.value,
                    name=name,
                    loc=value.loc if value is not None else pick_lists.loc,
                    meta={"args": list(body.args) if body else [], "lambda": body is not None},
                )
            )

        return Node(
            kind=NodeKind.PICK_LISTS.value,
            name="pick_lists",
            loc=pick_lists.loc,
            children=entries,
        )

    def _extract_webhook_keys(self, connector: SyntaxNode) -> Node | None:
        webhook_keys = key_value(connector, "webhook_keys")
        if webhook_keys is None:
            return None
        body = resolve_lambda(webhook_keys)
        if body is not None:
            self.registrar.register("connector#webhook_keys", body, "webhook_keys")
        else:
            self.collector.warning(
                "webhook_keys_not_lambda", "webhook_keys is not a lambda/proc", webhook_keys.loc
            )
        return Node(kind=NodeKind.WEBHOOK_KEYS.value, name="webhook_keys", loc=webhook_keys.loc)

    def _extract_streams(self, connector: SyntaxNode) -> Node | None:
        streams = key_value(connector, "streams")
        if streams is None:
            return None

        entries = []
        for name, value in self._pairs(streams):
            body = resolve_lambda(value)
            if body is not None:
                self.registrar.register(f"stream:{name}", body, "stream")
            entries.append(
                Node(
                    kind=NodeKind.STREAM.value,
                    name=name,
                    loc=value.loc if value is not None else streams.loc,
                    meta={"lambda": body is not None},
                )
            )
        return Node(
            kind=NodeKind.STREAMS.value, name="streams", loc=streams.loc, children=entries
        )

    @staticmethod
    def _pairs(node: SyntaxNode | None) -> list[tuple[str, SyntaxNode | None]]:
        return [(pair_key(p) or DYNAMIC_NAME, pair_value(p)) for p in hash_pairs(node)]

    # ---------- whole-file checks --------------------------------------------

    def _finalize(self, root: Node) -> dict[str, int]:
        scan_subshells(self.tree, self.collector)

        analysis = analyze_methods(self.methods_defined, self.registrar.method_calls)
        for issue in analysis.issues:
            self.collector.add_issue(issue)

        stats = dict(self.registrar.stats)
        stats.update(analysis.stats)
        stats["actions"] = len(root.find_all(NodeKind.ACTION.value))
        stats["triggers"] = len(root.find_all(NodeKind.TRIGGER.value))
        stats["methods"] = len(self.methods_defined)
        stats["lambdas"] = len(self.registrar.lambdas)
        return stats
