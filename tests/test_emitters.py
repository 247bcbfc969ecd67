"""
Tests for output emitters.
"""

import json
from dataclasses import replace

import pytest
from jsonschema import validate

from connector_inspect.analyze.pipeline import analyze_file
from connector_inspect.emit import (
    DEFAULT_KINDS,
    EMITTERS,
    EmitContext,
    resolve_kinds,
    write_artifacts,
)
from connector_inspect.emit.atoms import enumerate_atoms, http_summary, role_of
from connector_inspect.emit.graph import dot_quote, graph_document, graph_id, to_dot
from connector_inspect.emit.ir_json import ir_schema
from connector_inspect.emit.sarif import sarif_report
from connector_inspect.emit.summary import markdown_summary
from connector_inspect.exceptions import UnknownEmitKindError
from connector_inspect.models import Bundle, Issue, Loc, Severity


@pytest.fixture
def acme_bundle(acme_connector):
    return analyze_file(acme_connector)


@pytest.fixture
def acme_ctx(acme_bundle, acme_connector):
    return EmitContext(
        bundle=acme_bundle,
        source=acme_connector.read_text(encoding="utf-8"),
        filename=str(acme_connector),
    )


def _render(kind, ctx):
    return EMITTERS[kind].render(ctx)


def _lines(text):
    return [json.loads(line) for line in text.splitlines()]


class TestRegistry:
    """Tests for kind resolution and artifact writing."""

    def test_default_kinds(self):
        assert DEFAULT_KINDS == (
            "json",
            "dot",
            "graphjson",
            "md",
            "ndjson",
            "sarif",
            "schema",
            "sourcemap",
            "embed",
            "context",
            "upsert",
            "prompts",
            "tokens",
            "index",
        )

    def test_resolve_kinds_orders_and_dedups(self):
        assert resolve_kinds(["index", "json", "json", " dot "]) == ["json", "dot", "index"]
        assert resolve_kinds(None) == list(DEFAULT_KINDS)
        assert resolve_kinds([]) == list(DEFAULT_KINDS)

    def test_unknown_kind(self):
        with pytest.raises(UnknownEmitKindError) as exc_info:
            resolve_kinds(["json", "pdf"])

        assert "pdf" in exc_info.value.message
        assert "json" not in exc_info.value.message
        assert EMITTERS["sarif"].description in exc_info.value.suggestion

    def test_write_all_kinds(self, acme_ctx, tmp_path):
        """Test every kind writes exactly one file."""
        paths = write_artifacts(acme_ctx, tmp_path / "out", "acme", None).paths

        assert list(paths) == list(DEFAULT_KINDS)
        written = sorted(p.name for p in (tmp_path / "out").iterdir())
        assert written == sorted(
            [
                "acme.ir.json",
                "acme.graph.dot",
                "acme.graph.json",
                "acme.summary.md",
                "acme.events.ndjson",
                "acme.sarif.json",
                "acme.schema.json",
                "acme.sourcemap.json",
                "acme.embed.jsonl",
                "acme.context.jsonl",
                "acme.upsert.jsonl",
                "acme.prompts.md",
                "acme.tokens.ndjson",
                "acme.index.json",
            ]
        )

    def test_index_lists_previous_artifacts(self, acme_ctx, tmp_path):
        paths = write_artifacts(acme_ctx, tmp_path, "acme", ["json", "md", "index"]).paths

        index = json.loads((tmp_path / "acme.index.json").read_text())
        assert index["artifacts"] == {"json": paths["json"], "md": paths["md"]}
        assert index["salvaged"] is False
        assert index["generator"].startswith("connector-inspect ")

    def test_source_dependent_kinds_skip_without_source(self, acme_bundle, tmp_path):
        ctx = EmitContext(bundle=acme_bundle)

        paths = write_artifacts(ctx, tmp_path, "x", ["json", "embed", "tokens"]).paths

        assert list(paths) == ["json"]
        assert not (tmp_path / "x.embed.jsonl").exists()

    def test_subset_writes_only_requested(self, acme_ctx, tmp_path):
        write_artifacts(acme_ctx, tmp_path, "connector", ["sarif"])
        assert [p.name for p in tmp_path.iterdir()] == ["connector.sarif.json"]

    def test_failing_emitter_does_not_stop_the_rest(self, acme_ctx, tmp_path, monkeypatch):
        """Test one broken emitter is recorded and the later kinds are still written."""

        def broken(ctx):
            raise RuntimeError("template exploded")

        monkeypatch.setattr(EMITTERS["md"], "render", broken)

        result = write_artifacts(acme_ctx, tmp_path, "acme", ["json", "md", "sarif", "index"])

        assert list(result.paths) == ["json", "sarif", "index"]
        assert result.failures == {"md": "RuntimeError: template exploded"}
        assert not (tmp_path / "acme.summary.md").exists()
        index = json.loads((tmp_path / "acme.index.json").read_text())
        assert sorted(index["artifacts"]) == ["json", "sarif"]


class TestIrJson:
    """Tests for the IR document and its schema."""

    def test_ir_matches_schema(self, acme_ctx):
        validate(instance=json.loads(_render("json", acme_ctx)), schema=ir_schema())

    def test_salvaged_ir_matches_schema(self, broken_connector):
        bundle = analyze_file(broken_connector)
        document = json.loads(_render("json", EmitContext(bundle=bundle)))

        validate(instance=document, schema=ir_schema())
        assert document["salvaged"] is True

    def test_empty_ir_matches_schema(self):
        document = json.loads(_render("json", EmitContext(bundle=Bundle(root=None))))

        validate(instance=document, schema=ir_schema())
        assert document["root"] is None

    def test_compact_output(self, acme_ctx):
        text = _render("json", replace(acme_ctx, pretty=False))
        assert "\n" not in text

    def test_schema_is_always_pretty(self, acme_ctx):
        text = _render("schema", replace(acme_ctx, pretty=False))
        assert json.loads(text)["version"] == "1-0-0"
        assert text.endswith("\n")

    def test_sourcemap(self, acme_ctx, acme_bundle):
        sourcemap = json.loads(_render("sourcemap", acme_ctx))

        assert sourcemap[acme_bundle.root.id] == {
            "kind": "connector",
            "name": "Acme CRM",
            "loc": acme_bundle.root.loc.to_dict(),
        }
        assert len(sourcemap) == sum(1 for _ in acme_bundle.root.walk())

    def test_sourcemap_without_root(self):
        assert json.loads(_render("sourcemap", EmitContext(bundle=Bundle(root=None)))) == {}


class TestGraph:
    """Tests for DOT and graph JSON."""

    def test_dot_structure(self, acme_ctx, acme_bundle):
        dot = _render("dot", replace(acme_ctx, graph_name="Acme CRM"))
        lines = dot.splitlines()

        assert lines[0] == "digraph Acme_CRM {"
        assert lines[1] == "  rankdir=LR;"
        assert lines[-1] == "}"
        graph = acme_bundle.graph
        assert len(lines) == 3 + len(graph.nodes) + len(graph.edges)

    def test_dot_shapes_and_labels(self, acme_bundle):
        dot = to_dot(acme_bundle.graph)

        assert '"action:get_contact" [label="action:get_contact", shape=box];' in dot
        assert '"connector#test::http#get(/me)" [label="GET /me", shape=parallelogram];' in dot
        assert '"method:fetch_contact" -> "method:fetch_contact::http#get(...)"' in dot

    @pytest.mark.parametrize(
        "name,expected",
        [("Connector", "Connector"), ("my graph!", "my_graph"), ("42", "_42"), ("!!", "Connector")],
    )
    def test_graph_id(self, name, expected):
        assert graph_id(name) == expected

    def test_dot_quote(self):
        assert dot_quote('a "b"\\c\nd') == '"a \\"b\\"\\\\c\\nd"'

    def test_graph_document(self, acme_bundle):
        document = graph_document(acme_bundle.graph)

        assert len(document["nodes"]) == len(acme_bundle.graph.nodes)
        assert {"from", "to", "label"} == set(document["edges"][0])


class TestEvents:
    """Tests for the event stream."""

    def test_issue_and_http_events(self, acme_ctx):
        events = _lines(_render("ndjson", acme_ctx))

        assert events[0]["type"] == "issue"
        assert events[0]["code"] == "unused_method"
        http = [e for e in events if e["type"] == "http_call"]
        assert len(http) == 6
        assert {
            "type": "http_call",
            "from": "connector#test",
            "to": "connector#test::http#get(/me)",
            "endpoint": "GET /me",
            "meta": {"label": "calls"},
        } in http

    def test_empty_bundle(self):
        assert _render("ndjson", EmitContext(bundle=Bundle(root=None))) == ""


class TestSarif:
    """Tests for SARIF output."""

    def test_levels_and_regions(self):
        bundle = Bundle(
            root=None,
            issues=[
                Issue(Severity.ERROR, "method_cycle", "cycle", Loc(line=4, column=2)),
                Issue(Severity.INFO, "unused_method", "unused"),
                Issue(Severity.WARNING, "method_cycle", "again", Loc(line=9)),
            ],
        )

        report = sarif_report(bundle, "c.rb")
        run = report["runs"][0]
        results = run["results"]

        assert report["version"] == "2.1.0"
        assert [r["level"] for r in results] == ["error", "note", "warning"]
        region = results[0]["locations"][0]["physicalLocation"]["region"]
        assert region == {"startLine": 4, "startColumn": 3}
        assert "region" not in results[1]["locations"][0]["physicalLocation"]
        assert [rule["id"] for rule in run["tool"]["driver"]["rules"]] == [
            "method_cycle",
            "unused_method",
        ]

    def test_uri_defaults_to_filename(self, acme_ctx, acme_connector):
        report = json.loads(_render("sarif", acme_ctx))
        location = report["runs"][0]["results"][0]["locations"][0]["physicalLocation"]

        assert location["artifactLocation"]["uri"] == str(acme_connector)


class TestSummary:
    """Tests for the Markdown summary."""

    def test_sections(self, acme_bundle, acme_connector):
        summary = markdown_summary(acme_bundle)

        assert summary.startswith("# Acme CRM\n")
        assert f"File: `{acme_connector}`" in summary
        assert "Counts: **2** actions, **1** triggers, **3** methods" in summary
        assert "Acme CRM connector.\nSyncs contacts." in summary
        assert "- **create_contact** (line 63)\n- **get_contact** (line 51)" in summary
        assert "## Issues (1)" in summary
        assert "- [info] **unused_method** at line 38: methods.unused_helper is never called" in (
            summary
        )
        assert summary.rstrip().endswith("no code was executed.")

    def test_section_headings(self, acme_bundle):
        """Test each non-empty section gets a heading followed by its entries."""
        summary = markdown_summary(acme_bundle)

        assert "## Actions\n- **create_contact**" in summary
        assert "## Triggers\n- **" in summary
        assert "## Methods\n- **" in summary

    def test_salvaged(self, broken_connector):
        summary = markdown_summary(analyze_file(broken_connector))

        assert summary.startswith("# (salvaged)\n")
        assert "> Salvage mode" in summary
        assert "- **first_action** (line 4)" in summary
        assert "[error] **syntax_error** at unknown loc" in summary

    def test_no_root(self):
        bundle = Bundle(root=None, issues=[Issue(Severity.WARNING, "no_connector_hash", "none")])
        summary = markdown_summary(bundle)

        assert summary.startswith("# Connector summary")
        assert "_No connector structure found._" in summary
        assert "## Issues (1)" in summary


class TestAtoms:
    """Tests for atom enumeration and the atom emitters."""

    def test_enumeration_order(self, acme_bundle):
        atoms = enumerate_atoms(acme_bundle)
        node_atoms = [a for a in atoms if "http" in a]

        assert atoms[0]["fqname"] == "connector.Acme CRM"
        assert atoms[1]["fqname"] == "connector.Acme CRM/connection.connection"
        assert len(node_atoms) == sum(1 for _ in acme_bundle.root.walk())
        assert len(atoms) - len(node_atoms) == len(acme_bundle.lambdas)

    def test_http_summary(self, acme_bundle):
        actions = {n.name: n for n in acme_bundle.root.find_all("action")}
        methods = {n.name: n for n in acme_bundle.root.find_all("method")}

        assert http_summary(acme_bundle, actions["create_contact"]) == {
            "verbs": ["POST"],
            "endpoints": ["POST /contacts"],
        }
        assert http_summary(acme_bundle, methods["fetch_contact"])["verbs"] == ["GET"]
        assert http_summary(acme_bundle, acme_bundle.root) == {}

    def test_role_of(self):
        assert role_of({"fqname": "action:x#execute", "name": "execute"}) == "execute"
        assert role_of({"fqname": "connector.X", "name": "X"}) == "X"
        assert role_of({}) == "unknown"

    def test_embed_has_text_for_every_atom(self, acme_ctx):
        records = _lines(_render("embed", acme_ctx))

        assert records[0]["text"].startswith("{")
        assert all("text" in r for r in records)

    def test_context_blocks(self, acme_ctx):
        records = _lines(_render("context", acme_ctx))
        execute = next(r for r in records if r["fqname"] == "action:get_contact#execute")

        assert {r["kind"] for r in records} == {"action", "trigger", "method", "lambda"}
        assert execute["role"] == "execute"
        assert execute["text"].startswith("lambda do |_connection, input|")

    def test_context_respects_byte_cap(self, acme_ctx):
        records = _lines(_render("context", replace(acme_ctx, max_context_bytes=10)))
        assert all(len(r["text"].encode("utf-8")) <= 10 for r in records)

    def test_upsert_records(self, acme_ctx):
        records = _lines(_render("upsert", replace(acme_ctx, namespace="crm")))
        action = next(r for r in records if r["section"].endswith("action.create_contact"))

        assert action["namespace"] == "crm"
        assert action["doc_id"] == "acme_crm.rb"
        assert action["metadata"]["http_verbs"] == ["POST"]
        assert action["metadata"]["model_suggested_token_count"] == len(action["text"]) // 4


class TestTextArtifacts:
    """Tests for prompts and tokens."""

    def test_prompts(self, acme_ctx):
        prompts = _render("prompts", replace(acme_ctx, base="acme", dangerous_calls=("eval",)))

        assert prompts.startswith("# Prompt Templates for Acme CRM")
        assert "`acme.context.jsonl`" in prompts
        assert "(eval, backticks)" in prompts

    def test_tokens(self, acme_ctx):
        tokens = _lines(_render("tokens", acme_ctx))

        assert tokens[0]["line"] == 1
        assert tokens[0]["text"].startswith("#")
        assert all(set(t) == {"line", "column", "begin", "end", "type", "text"} for t in tokens)
