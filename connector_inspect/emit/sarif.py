"""
SARIF 2.1.0 report for CI code-scanning integrations.
"""

from typing import Any

from connector_inspect.emit.base import EmitContext, JsonEmitter
from connector_inspect.models.ir import Bundle, Issue, Severity

SARIF_VERSION = "2.1.0"
SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"
TOOL_NAME = "Workato Connector Inspector"
TOOL_URI = "https://github.com/workato/workato-connector-sdk"

LEVELS = {
    Severity.INFO: "note",
    Severity.WARNING: "warning",
    Severity.ERROR: "error",
}


def _result(issue: Issue, uri: str) -> dict[str, Any]:
    physical: dict[str, Any] = {"artifactLocation": {"uri": uri}}
    if issue.loc.line is not None:
        # SARIF columns are 1-based; IR columns are 0-based.
        physical["region"] = {
            "startLine": issue.loc.line,
            "startColumn": (issue.loc.column or 0) + 1,
        }
    return {
        "ruleId": issue.code,
        "level": LEVELS.get(issue.severity, "note"),
        "message": {"text": issue.message},
        "locations": [{"physicalLocation": physical}],
    }


def sarif_report(bundle: Bundle, uri: str | None = None) -> dict[str, Any]:
    """
    Build a SARIF log with one run.

    Args:
        bundle: Analysis result
        uri: Artifact URI; defaults to the analyzed file name

    Returns:
        SARIF document
    """
    uri = uri if uri is not None else (bundle.filename or "")
    codes = list(dict.fromkeys(issue.code for issue in bundle.issues))
    return {
        "version": SARIF_VERSION,
        "$schema": SARIF_SCHEMA,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": TOOL_NAME,
                        "informationUri": TOOL_URI,
                        "rules": [{"id": code, "name": code} for code in codes],
                    }
                },
                "results": [_result(issue, uri) for issue in bundle.issues],
            }
        ],
    }


class SarifEmitter(JsonEmitter):
    kind = "sarif"
    suffix = "sarif"
    description = "SARIF 2.1.0 static analysis report"

    def build(self, ctx: EmitContext) -> Any:
        return sarif_report(ctx.bundle, ctx.bundle.filename or ctx.filename)
