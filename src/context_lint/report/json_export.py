"""JSON export — one document per run."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from context_lint.analysis.schemas import Finding, FunctionDefinition, Report
from context_lint.report.text import display_path


def export_json(report: Report, strip_prefix: Path | None = None) -> str:
    """Export the report as pretty-printed JSON."""
    double = report.double_context
    unattributed = report.unattributed
    payload: dict[str, Any] = {
        "summary": {
            "files_scanned": report.files_scanned,
            "crates": report.crates,
            "has_deny_findings": report.has_deny_findings,
        },
        "double_context": {
            "warnings": [_double_to_dict(f, strip_prefix) for f in double],
            "total": len(double),
        },
        "unattributed": {
            "warnings": [
                _unattributed_to_dict(f, strip_prefix) for f in unattributed
            ],
            "total": len(unattributed),
        },
    }
    if report.annotated_definitions:
        payload["annotated"] = [
            _definition_to_dict(d, strip_prefix)
            for d in report.annotated_definitions
        ]
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _location(path: Path, line: int, strip_prefix: Path | None) -> dict[str, Any]:
    return {"file": display_path(path, strip_prefix), "line": line}


def _double_to_dict(
    finding: Finding, strip_prefix: Path | None
) -> dict[str, Any]:
    definition = (
        _location(finding.related_file, finding.related_span.line, strip_prefix)
        if finding.related_file is not None and finding.related_span is not None
        else None
    )
    return {
        "function_name": finding.function_name,
        "severity": str(finding.severity),
        "call_site": _location(finding.file, finding.span.line, strip_prefix),
        "definition": definition,
        "inner_context": finding.inner_context,
        "outer_context": finding.outer_context,
        "context_method": finding.context_method,
        "context_call": (
            {
                "line": finding.context_span.line,
                "column": finding.context_span.column,
            }
            if finding.context_span is not None
            else None
        ),
        "identical": finding.identical,
    }


def _unattributed_to_dict(
    finding: Finding, strip_prefix: Path | None
) -> dict[str, Any]:
    return {
        "function_name": finding.function_name,
        "severity": str(finding.severity),
        "location": _location(finding.file, finding.span.line, strip_prefix),
        "is_method": finding.is_method,
        "is_pub": finding.is_pub,
        "is_async": finding.is_async,
    }


def _definition_to_dict(
    definition: FunctionDefinition, strip_prefix: Path | None
) -> dict[str, Any]:
    return {
        "function_name": definition.name,
        "path": definition.display_path,
        "location": _location(
            definition.file, definition.span.line, strip_prefix
        ),
        "context": definition.context_message,
        "is_method": definition.is_method,
    }
