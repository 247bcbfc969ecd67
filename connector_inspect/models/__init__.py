"""
Data models shared by the parser, the walker and the emitters.
"""

from connector_inspect.models.ir import (
    EMPTY_LOC,
    Bundle,
    Graph,
    GraphBuilder,
    GraphEdge,
    GraphNode,
    Issue,
    LambdaRecord,
    Loc,
    MethodCall,
    Node,
    NodeKind,
    Severity,
)

__all__ = [
    "EMPTY_LOC",
    "Bundle",
    "Graph",
    "GraphBuilder",
    "GraphEdge",
    "GraphNode",
    "Issue",
    "LambdaRecord",
    "Loc",
    "MethodCall",
    "Node",
    "NodeKind",
    "Severity",
]
