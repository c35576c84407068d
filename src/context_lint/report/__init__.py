"""Render a :class:`~context_lint.analysis.schemas.Report` for output."""

from __future__ import annotations

from pathlib import Path

from context_lint.analysis.schemas import Report
from context_lint.constants import OutputFormat
from context_lint.report.json_export import export_json
from context_lint.report.text import format_text


def render_report(
    report: Report,
    fmt: OutputFormat,
    strip_prefix: Path | None = None,
) -> str:
    """Dispatch to the renderer for *fmt*."""
    if fmt == OutputFormat.JSON:
        return export_json(report, strip_prefix)
    return format_text(report, strip_prefix)


__all__ = ["export_json", "format_text", "render_report"]
