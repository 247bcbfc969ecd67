"""
Tests for salvage mode.
"""

from connector_inspect.models import Severity
from connector_inspect.parse import lex_tokens, salvage, salvage_bundle


class TestLexTokens:
    """Tests for the token stream."""

    def test_positions(self):
        """Test line, column and byte offsets of tokens."""
        tokens = [t for t in lex_tokens("a = 1\n'é' + 2\n") if t.text.strip()]

        first, last = tokens[0], tokens[-1]
        assert (first.line, first.column, first.begin, first.end) == (1, 0, 0, 1)
        assert last.text == "2"
        assert last.line == 2
        # "'é' + " is seven bytes
        assert last.column == 7

    def test_to_dict(self):
        token = lex_tokens("x")[0]
        assert set(token.to_dict()) == {"line", "column", "begin", "end", "type", "text"}
        assert token.type.startswith("Token.")


class TestSalvage:
    """Tests for structure recovery from tokens."""

    def test_broken_fixture(self, broken_connector):
        """Test members are recovered despite the syntax error."""
        result = salvage(broken_connector.read_text())

        assert list(result.root_keys) == ["title", "actions", "triggers", "methods"]
        assert [m.name for m in result.actions] == ["first_action", "second_action"]
        assert [m.name for m in result.triggers] == ["on_event"]
        assert [m.name for m in result.methods] == ["helper"]
        assert result.notes == []

    def test_member_positions(self, broken_connector):
        result = salvage(broken_connector.read_text())
        first = result.actions[0]

        assert (first.line, first.column) == (4, 4)

    def test_nested_labels_are_not_members(self):
        """Test only labels directly inside the container hash count."""
        result = salvage("{ actions: { a: { input_fields: { b: 1 } }, c: {} } ) }")

        assert [m.name for m in result.actions] == ["a", "c"]

    def test_container_without_hash(self):
        """Test a container key whose value is not a hash yields nothing."""
        result = salvage("{ methods: nil, actions: { x: {} } ) }")

        assert result.methods == []
        assert [m.name for m in result.actions] == ["x"]

    def test_unknown_root_keys_are_not_recorded(self):
        result = salvage("{ title: 'x', custom: 1 ) }")
        assert list(result.root_keys) == ["title"]

    def test_repeated_root_key_positions(self):
        result = salvage("{\n  title: 'a',\n  title: 'b'\n) }")
        assert [p["line"] for p in result.root_keys["title"]] == [2, 3]

    def test_interpolation_braces_do_not_nest(self):
        """Test braces inside string interpolation do not change depth."""
        result = salvage('{ title: "a#{b}", actions: { x: {} } ) }')
        assert [m.name for m in result.actions] == ["x"]

    def test_token_budget(self):
        """Test an exhausted budget leaves a truncation note."""
        result = salvage("{ title: 'x', actions: { a: {}, b: {} } }", token_budget=3)
        assert "scan_truncated" in result.notes

    def test_empty_input(self):
        result = salvage("")
        assert result.root_keys == {}
        assert result.notes == []


class TestSalvageBundle:
    """Tests for the degraded bundle."""

    def test_bundle_shape(self, broken_connector):
        bundle = salvage_bundle(
            "broken.rb", broken_connector.read_text(), ["unexpected input"], "syntax error"
        )

        assert bundle.salvaged
        assert bundle.root.name == "(salvaged)"
        assert bundle.root.meta["filename"] == "broken.rb"
        assert [c.name for c in bundle.root.children] == ["actions", "triggers", "methods"]
        assert [c.kind for c in bundle.root.children[0].children] == ["action", "action"]
        assert dict(bundle.stats) == {"actions": 2, "triggers": 1, "methods": 1}
        assert bundle.graph.nodes == ()

    def test_syntax_error_issue(self, broken_connector):
        bundle = salvage_bundle(
            "broken.rb", broken_connector.read_text(), ["unexpected input"], "syntax error"
        )

        assert len(bundle.issues) == 1
        issue = bundle.issues[0]
        assert issue.severity is Severity.ERROR
        assert issue.code == "syntax_error"
        assert issue.context["diagnostics"] == ["unexpected input"]
        assert issue.context["reason"] == "syntax error"

    def test_no_reason(self):
        bundle = salvage_bundle("x.rb", "")
        assert "reason" not in bundle.issues[0].context
        assert bundle.root.meta["root_keys"] == []
