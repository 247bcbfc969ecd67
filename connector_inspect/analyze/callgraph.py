"""
Call-graph registration for lambda bodies.

Each registered body is scanned once for the calls that matter to a
connector: outbound HTTP verbs, ``call(:method)`` dispatch, error handlers,
streaming checkpoints and dangerous primitives.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field

from connector_inspect.analyze.constants import (
    CAPABILITY_CALL,
    CHECKPOINT_CALL,
    DEFAULT_DANGEROUS_CALLS,
    ERROR_HANDLER_CALL,
    HTTP_VERBS,
    LAMBDA_CONSTRUCTORS,
)
from connector_inspect.analyze.issues import IssueCollector
from connector_inspect.models.ir import GraphBuilder, LambdaRecord, Loc, MethodCall
from connector_inspect.parse.syntax import (
    IDENTIFIER_RE,
    SyntaxKind,
    SyntaxNode,
    call_arguments,
    call_name,
    constant_name,
    walk,
)

logger = logging.getLogger(__name__)

# Literal endpoint characters kept in HTTP node ids and labels.
ENDPOINT_LITERAL_LIMIT = 50


@dataclass(frozen=True)
class LambdaBody:
    """A resolved block/lambda value."""

    node: SyntaxNode
    args: tuple[str, ...] = ()

    @property
    def loc(self) -> Loc:
        return self.node.loc


def resolve_lambda(node: SyntaxNode | None) -> LambdaBody | None:
    """
    Recognize ``-> {}``, ``lambda {}``, ``proc {}`` and ``Proc.new {}``.

    Args:
        node: Value node to inspect

    Returns:
        LambdaBody with rendered parameter names, or None if the value is
        not a lambda
    """
    if node is None:
        return None

    if node.kind is SyntaxKind.LAMBDA:
        params = node.get_field("parameters")
        if params is None:
            body = node.get_field("body")
            params = body.get_field("parameters") if body is not None else None
        return LambdaBody(node=node, args=render_parameters(params))

    if node.kind is not SyntaxKind.CALL:
        return None
    block = node.get_field("block")
    if block is None:
        return None

    name = call_name(node)
    receiver = node.get_field("receiver")
    is_constructor = receiver is None and name in LAMBDA_CONSTRUCTORS
    is_proc_new = name == "new" and constant_name(receiver) == "Proc"
    if not (is_constructor or is_proc_new):
        return None
    return LambdaBody(node=node, args=render_parameters(block.get_field("parameters")))


def render_parameters(params: SyntaxNode | None) -> tuple[str, ...]:
    """Render a parameter list the way it reads in source (``a``, ``b:``, ``*rest``)."""
    if params is None:
        return ()
    rendered = []
    for param in params.children:
        if param.kind is SyntaxKind.COMMENT:
            continue
        name_node = param.get_field("name")
        name = name_node.value if name_node is not None else ""
        if param.type == "identifier":
            rendered.append(param.value or "")
        elif param.type == "optional_parameter":
            rendered.append(name)
        elif param.type == "keyword_parameter":
            rendered.append(f"{name}:")
        elif param.type == "splat_parameter":
            rendered.append(f"*{name}")
        elif param.type == "hash_splat_parameter":
            rendered.append(f"**{name}")
        elif param.type == "block_parameter":
            rendered.append(f"&{name}")
        else:
            rendered.append(param.type)
    return tuple(rendered)


@dataclass
class CallGraphRegistrar:
    """Accumulates graph nodes, edges, lambda records and dispatch records."""

    issues: IssueCollector
    dangerous_calls: frozenset[str] = frozenset(DEFAULT_DANGEROUS_CALLS)
    graph: GraphBuilder = field(default_factory=GraphBuilder)
    stats: Counter = field(default_factory=Counter)
    lambdas: list[LambdaRecord] = field(default_factory=list)
    method_calls: list[MethodCall] = field(default_factory=list)

    def register(self, owner: str, body: LambdaBody, role: str) -> None:
        """
        Register a lambda body under ``owner`` and scan it for calls.

        A failure while scanning becomes an ``analysis_error`` issue; other
        bodies are unaffected.
        """
        self.graph.add_node(owner, owner, "method" if role == "method" else "lambda")
        self.lambdas.append(LambdaRecord(owner=owner, role=role, loc=body.loc))
        try:
            self._scan(owner, body.node)
        except Exception as e:
            logger.exception(f"Failed to analyze body of {owner}")
            self.issues.error(
                "analysis_error",
                f"Could not analyze {owner}: {type(e).__name__}: {e}",
                body.loc,
                owner=owner,
            )

    def _scan(self, owner: str, root: SyntaxNode) -> None:
        method_tokens: set[int] = set()
        for node in walk(root):
            if node.kind is SyntaxKind.CALL:
                method = node.get_field("method")
                if method is not None:
                    method_tokens.add(id(method))
                self._classify_call(owner, node)
            elif (
                node.kind is SyntaxKind.IDENTIFIER
                and node.value == CHECKPOINT_CALL
                and id(node) not in method_tokens
            ):
                self._checkpoint(owner)

    def _classify_call(self, owner: str, node: SyntaxNode) -> None:
        name = call_name(node)
        receiver = node.get_field("receiver")

        if receiver is None and name in HTTP_VERBS:
            self._http_call(owner, name, node)
        elif receiver is None and name == CAPABILITY_CALL:
            self._dispatch(owner, node)
        elif name == ERROR_HANDLER_CALL:
            self.graph.add_edge(owner, owner, ERROR_HANDLER_CALL)
            self.stats["error_handlers"] += 1
        elif name == CHECKPOINT_CALL:
            self._checkpoint(owner)
        elif name in self.dangerous_calls:
            self.issues.warning("dangerous_call", f"Use of {name} inside {owner}", node.loc)

    def _http_call(self, owner: str, verb: str, node: SyntaxNode) -> None:
        args = call_arguments(node)
        literal = None
        if args and args[0].kind is SyntaxKind.STRING and args[0].value is not None:
            literal = args[0].value[:ENDPOINT_LITERAL_LIMIT]
        http_id = f"{owner}::http#{verb}({literal if literal is not None else '...'})"
        label = f"{verb.upper()} {literal if literal is not None else '(dynamic)'}"
        self.graph.add_node(http_id, label, "http")
        self.graph.add_edge(owner, http_id, "calls")
        self.stats[f"http_{verb}"] += 1

    def _dispatch(self, owner: str, node: SyntaxNode) -> None:
        args = call_arguments(node)
        first = args[0] if args else None
        if (
            first is not None
            and first.kind in (SyntaxKind.SYMBOL, SyntaxKind.STRING)
            and first.value is not None
        ):
            # Literals that are not identifiers (model ids, URLs) are not
            # method names.
            if IDENTIFIER_RE.match(first.value):
                target = f"method:{first.value}"
                self.method_calls.append(
                    MethodCall(source=owner, target=target, name=first.value, loc=node.loc)
                )
                self.graph.add_node(target, target, "method")
                self.graph.add_edge(owner, target, "calls")
                self.stats["method_calls"] += 1
            return

        what = first.type if first is not None else "unknown"
        self.issues.warning(
            "dynamic_call",
            f"Dynamic method dispatch via call({what}) in {owner}",
            node.loc,
            owner=owner,
        )

    def _checkpoint(self, owner: str) -> None:
        self.graph.add_edge(owner, owner, CHECKPOINT_CALL)
        self.stats["streaming_checkpoints"] += 1


def scan_subshells(tree: SyntaxNode, issues: IssueCollector) -> int:
    """Flag backtick / %x command execution anywhere in the file."""
    found = 0
    for node in walk(tree):
        if node.kind is SyntaxKind.SUBSHELL:
            found += 1
            issues.warning("dangerous_xstr", "Backtick command execution detected", node.loc)
    return found

