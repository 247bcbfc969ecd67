"""
Method reachability: call cycles, undefined and unused methods.

Pure functions over the dispatch records collected during the walk; the
syntax tree is never revisited here.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from connector_inspect.models.ir import EMPTY_LOC, Issue, Loc, MethodCall, Severity

METHOD_PREFIX = "method:"


@dataclass
class MethodAnalysis:
    issues: list[Issue] = field(default_factory=list)
    stats: dict[str, int] = field(default_factory=dict)


def method_adjacency(
    calls: Iterable[MethodCall],
) -> tuple[dict[str, list[str]], dict[tuple[str, str], list[Loc]]]:
    """
    Build method -> called methods adjacency from dispatch records.

    Only method-to-method calls count; calls made from actions, triggers or
    other lambdas are edges into the method graph, not within it.

    Returns:
        Tuple of (adjacency in first-seen order, call-site locations per edge)
    """
    adjacency: dict[str, list[str]] = {}
    edge_locs: dict[tuple[str, str], list[Loc]] = {}
    for call in calls:
        if not (call.source.startswith(METHOD_PREFIX) and call.target.startswith(METHOD_PREFIX)):
            continue
        caller = call.source[len(METHOD_PREFIX) :]
        callee = call.target[len(METHOD_PREFIX) :]
        targets = adjacency.setdefault(caller, [])
        if callee not in targets:
            targets.append(callee)
        edge_locs.setdefault((caller, callee), []).append(call.loc)
    return adjacency, edge_locs


def tarjan_scc(nodes: Iterable[str], adjacency: dict[str, list[str]]) -> list[list[str]]:
    """
    Strongly connected components, Tarjan's algorithm without recursion.

    Components come out in completion order; members of each component are
    listed in the order they were first visited.
    """
    index: dict[str, int] = {}
    low: dict[str, int] = {}
    on_stack: set[str] = set()
    stack: list[str] = []
    components: list[list[str]] = []
    counter = 0

    for start in nodes:
        if start in index:
            continue
        work = [(start, 0)]
        index[start] = low[start] = counter
        counter += 1
        stack.append(start)
        on_stack.add(start)

        while work:
            v, i = work[-1]
            successors = adjacency.get(v, [])
            if i < len(successors):
                work[-1] = (v, i + 1)
                w = successors[i]
                if w not in index:
                    index[w] = low[w] = counter
                    counter += 1
                    stack.append(w)
                    on_stack.add(w)
                    work.append((w, 0))
                elif w in on_stack:
                    low[v] = min(low[v], index[w])
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[v])
            if low[v] == index[v]:
                component = []
                while True:
                    w = stack.pop()
                    on_stack.discard(w)
                    component.append(w)
                    if w == v:
                        break
                component.reverse()
                components.append(component)

    return components


def _first_edge_loc(
    component: list[str], edge_locs: dict[tuple[str, str], list[Loc]]
) -> Loc:
    members = set(component)
    for (caller, callee), locs in edge_locs.items():
        if caller in members and callee in members and locs:
            return locs[0]
    return EMPTY_LOC


def find_cycles(
    defined: Iterable[str], calls: list[MethodCall]
) -> tuple[list[Issue], dict[str, int]]:
    """
    Report method call cycles.

    Args:
        defined: Method names declared under ``methods``
        calls: Every statically resolved dispatch record

    Returns:
        Tuple of (method_cycle issues, method graph counters)
    """
    adjacency, edge_locs = method_adjacency(calls)
    callees = [callee for targets in adjacency.values() for callee in targets]
    nodes = list(dict.fromkeys([*defined, *adjacency, *callees]))

    issues = []
    for component in tarjan_scc(nodes, adjacency):
        if len(component) > 1:
            path = " → ".join([*component, component[0]])
            issues.append(
                Issue(
                    severity=Severity.ERROR,
                    code="method_cycle",
                    message=f"methods cycle: {path}",
                    loc=_first_edge_loc(component, edge_locs),
                    context={"cycle": component},
                )
            )
        else:
            name = component[0]
            if name in adjacency.get(name, []):
                issues.append(
                    Issue(
                        severity=Severity.ERROR,
                        code="method_cycle",
                        message=f"methods self-recursion: {name} calls itself",
                        loc=edge_locs[(name, name)][0],
                        context={"cycle": [name]},
                    )
                )

    stats = {
        "method_graph_nodes": len(nodes),
        "method_graph_edges": sum(len(targets) for targets in adjacency.values()),
        "method_cycles": len(issues),
    }
    return issues, stats


def find_undefined_and_unused(defined: dict[str, Loc], calls: list[MethodCall]) -> list[Issue]:
    """
    Compare dispatch targets with declared methods.

    Every call site of an undeclared method is a warning; every declared
    method nobody calls is an info issue located at its definition.
    """
    issues = []
    called = {call.name for call in calls}

    for call in calls:
        if call.name not in defined:
            issues.append(
                Issue(
                    severity=Severity.WARNING,
                    code="undefined_method",
                    message=f"call(:{call.name}) has no corresponding methods.{call.name}",
                    loc=call.loc,
                    context={"method": call.name},
                )
            )

    for name, loc in defined.items():
        if name not in called:
            issues.append(
                Issue(
                    severity=Severity.INFO,
                    code="unused_method",
                    message=f"methods.{name} is never called",
                    loc=loc,
                    context={"method": name},
                )
            )
    return issues


def analyze_methods(defined: dict[str, Loc], calls: list[MethodCall]) -> MethodAnalysis:
    """Run every method-level check and gather the results."""
    issues = find_undefined_and_unused(defined, calls)
    cycle_issues, stats = find_cycles(defined, calls)
    return MethodAnalysis(issues=issues + cycle_issues, stats=stats)
