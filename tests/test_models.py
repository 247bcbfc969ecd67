"""
Tests for IR data models.
"""

import dataclasses

import pytest

from connector_inspect.models import (
    Bundle,
    GraphBuilder,
    Issue,
    LambdaRecord,
    Loc,
    Node,
    Severity,
)


def _leaf(name, line):
    loc = Loc(line=line, column=2, begin=line * 10, end=line * 10 + 5)
    return Node(kind="action", name=name, loc=loc)


class TestLoc:
    """Tests for source locations."""

    def test_to_dict_omits_missing_fields(self):
        assert Loc(line=3, column=0).to_dict() == {"line": 3, "column": 0}
        assert Loc().to_dict() == {}


class TestNode:
    """Tests for IR nodes."""

    def test_id_is_derived_and_deterministic(self):
        """Test identical nodes get identical ids."""
        assert _leaf("a", 1).id == _leaf("a", 1).id
        assert _leaf("a", 1).id != _leaf("a", 2).id

    def test_explicit_id_is_kept(self):
        assert Node(kind="x", name="y", id="fixed").id == "fixed"

    def test_nodes_are_immutable(self):
        """Test nodes and their meta cannot be modified."""
        node = Node(kind="x", name="y", meta={"a": 1})

        with pytest.raises(dataclasses.FrozenInstanceError):
            node.name = "z"
        with pytest.raises(TypeError):
            node.meta["a"] = 2

    def test_with_children_keeps_id(self):
        parent = Node(kind="actions", name="actions", loc=Loc(line=1))
        updated = parent.with_children([_leaf("a", 2)])

        assert updated.id == parent.id
        assert len(updated.children) == 1
        assert parent.children == ()

    def test_walk_is_preorder(self):
        """Test walk visits parents before children, in child order."""
        tree = Node(
            kind="connector",
            name="root",
            children=(
                Node(kind="actions", name="actions", children=(_leaf("a", 2), _leaf("b", 3))),
                Node(kind="methods", name="methods"),
            ),
        )

        assert [n.name for n in tree.walk()] == ["root", "actions", "a", "b", "methods"]
        assert [n.name for n in tree.find_all("action")] == ["a", "b"]

    def test_to_dict_plain_containers(self):
        """Test meta is serialized back to plain JSON types."""
        node = Node(kind="x", name="y", meta={"keys": ("a", "b"), "nested": {"k": 1}})

        data = node.to_dict()

        assert data["meta"] == {"keys": ["a", "b"], "nested": {"k": 1}}
        assert data["children"] == []
        assert set(data) == {"id", "kind", "name", "loc", "meta", "children"}


class TestGraphBuilder:
    """Tests for graph accumulation."""

    def test_duplicates_are_ignored(self):
        builder = GraphBuilder()
        builder.add_node("a", "A", "method")
        builder.add_node("a", "other", "lambda")
        builder.add_edge("a", "b", "calls")
        builder.add_edge("a", "b", "calls")
        builder.add_edge("a", "b", "http")

        graph = builder.freeze()

        assert [n.label for n in graph.nodes] == ["A"]
        assert len(graph.edges) == 2

    def test_to_dict_shape(self):
        builder = GraphBuilder()
        builder.add_node("a", "A", "method")
        builder.add_edge("a", "a", "calls")

        data = builder.freeze().to_dict()

        assert data["nodes"] == {"a": {"label": "A", "kind": "method"}}
        assert data["edges"] == [["a", "a", {"label": "calls"}]]

    def test_node_index(self):
        builder = GraphBuilder()
        builder.add_node("a", "A", "method")
        graph = builder.freeze()

        index = graph.node_index()
        assert index["a"].label == "A"
        assert "missing" not in index


class TestBundle:
    """Tests for the aggregate result."""

    def test_filename_comes_from_root_meta(self):
        root = Node(kind="connector", name="X", meta={"filename": "x.rb"})

        assert Bundle(root=root).filename == "x.rb"
        assert Bundle(root=None).filename is None

    def test_issues_by_severity(self):
        bundle = Bundle(
            root=None,
            issues=[
                Issue(Severity.INFO, "a", "m"),
                Issue(Severity.WARNING, "b", "m"),
                Issue(Severity.WARNING, "c", "m"),
            ],
        )

        assert [i.code for i in bundle.issues_by_severity(Severity.WARNING)] == ["b", "c"]
        assert bundle.issues_by_severity(Severity.ERROR) == []

    def test_with_stats_returns_new_bundle(self):
        bundle = Bundle(root=None, stats={"actions": 1})
        updated = bundle.with_stats(source_lines=10)

        assert dict(updated.stats) == {"actions": 1, "source_lines": 10}
        assert dict(bundle.stats) == {"actions": 1}

    def test_to_dict_keys(self):
        bundle = Bundle(
            root=None,
            lambdas=[LambdaRecord(owner="method:x", role="method", loc=Loc(line=1))],
        )

        data = bundle.to_dict()

        assert data["root"] is None
        assert data["salvaged"] is False
        assert data["lambdas"] == [{"owner": "method:x", "role": "method", "loc": {"line": 1}}]
        assert data["graph"] == {"nodes": {}, "edges": []}

    def test_issue_to_dict(self):
        issue = Issue(Severity.ERROR, "syntax_error", "bad", Loc(line=2), {"reason": "x"})

        assert issue.to_dict() == {
            "severity": "error",
            "code": "syntax_error",
            "message": "bad",
            "loc": {"line": 2},
            "context": {"reason": "x"},
        }
