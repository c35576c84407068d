"""Text report — rustc-like blocks per finding, then totals."""

from __future__ import annotations

from pathlib import Path

from context_lint.analysis.schemas import Finding, FunctionDefinition, Report
from context_lint.constants import COMPLEX_EXPRESSION, Severity


def format_text(report: Report, strip_prefix: Path | None = None) -> str:
    """Render *report* as human-readable text.

    Double-context findings come first, then unattributed functions,
    each section followed by its total. Empty sections are omitted and
    a clean report renders as an empty string (plus the annotated list
    for verbose runs).
    """
    parts: list[str] = []

    if report.annotated_definitions:
        parts.append(
            _format_annotated(report.annotated_definitions, strip_prefix)
        )
    if report.double_context:
        parts.append(_format_double_context(report.double_context, strip_prefix))
    if report.unattributed:
        parts.append(_format_unattributed(report.unattributed, strip_prefix))

    return "\n".join(parts)


def display_path(path: Path, strip_prefix: Path | None) -> str:
    """*path* relative to *strip_prefix* when it lies beneath it."""
    if strip_prefix is not None and path.is_relative_to(strip_prefix):
        return path.relative_to(strip_prefix).as_posix()
    return path.as_posix()


def _label(finding: Finding) -> str:
    return "error" if finding.severity == Severity.DENY else "warning"


def _format_double_context(
    findings: list[Finding], strip_prefix: Path | None
) -> str:
    lines: list[str] = []
    for f in findings:
        outer = (
            f.outer_context
            if f.outer_context is not None
            else COMPLEX_EXPRESSION
        )
        lines.append(f"{_label(f)}: double context on `{f.function_name}`")
        lines.append(
            f"  --> {display_path(f.file, strip_prefix)}"
            f":{f.span.line}:{f.span.column}"
        )
        lines.append(
            f'   | inner context (from #[context]): "{f.inner_context}"'
        )
        if f.related_file is not None and f.related_span is not None:
            lines.append(
                "   |   defined at: "
                f"{display_path(f.related_file, strip_prefix)}"
                f":{f.related_span.line}"
            )
        lines.append(
            f"   | outer context (from .{f.context_method}()): \"{outer}\""
        )
        if f.context_span is not None:
            lines.append(
                f"   |   added at: {display_path(f.file, strip_prefix)}"
                f":{f.context_span.line}:{f.context_span.column}"
            )
        if f.identical:
            lines.append("   |")
            lines.append("   = note: these context strings are identical")
        lines.append("")

    n = len(findings)
    lines.append(f"Found {n} double-context warning{'' if n == 1 else 's'}")
    return "\n".join(lines) + "\n"


def _format_unattributed(
    findings: list[Finding], strip_prefix: Path | None
) -> str:
    lines: list[str] = []
    for f in findings:
        kind = "method" if f.is_method else "fn"
        vis = "pub " if f.is_pub else ""
        asyncness = "async " if f.is_async else ""
        lines.append(
            f"{_label(f)}: {kind} returning Result without #[context]: "
            f"`{f.function_name}`"
        )
        lines.append(
            f"  --> {display_path(f.file, strip_prefix)}"
            f":{f.span.line}:{f.span.column}"
        )
        lines.append(f"   | {vis}{asyncness}{kind} {f.function_name}")
        lines.append("")

    n = len(findings)
    lines.append(
        f"Found {n} unattributed function{'' if n == 1 else 's'} "
        "returning anyhow::Result"
    )
    return "\n".join(lines) + "\n"


def _format_annotated(
    definitions: list[FunctionDefinition], strip_prefix: Path | None
) -> str:
    lines = [f"Found {len(definitions)} annotated functions"]
    for d in definitions:
        kind = "method" if d.is_method else "fn"
        lines.append(
            f"  {display_path(d.file, strip_prefix)}:{d.span.line} "
            f'{kind} {d.name}() #[context("{d.context_message or ""}")]'
        )
    return "\n".join(lines) + "\n"
