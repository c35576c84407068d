"""Diagnostic Aggregator — merge rule output into one ordered report."""

from __future__ import annotations

from collections.abc import Iterable

from context_lint.analysis.schemas import Finding, FunctionDefinition, Report
from context_lint.constants import Severity


def aggregate(
    *finding_groups: Iterable[Finding],
    files_scanned: int = 0,
    crates: Iterable[str] = (),
    annotated: Iterable[FunctionDefinition] | None = None,
) -> Report:
    """Concatenate findings and sort by (file, line, column).

    Every finding passed in is kept. ``annotated`` is attached only for
    verbose runs and is ordered the same way as findings.
    """
    findings = sorted(
        (f for group in finding_groups for f in group),
        key=Finding.sort_key,
    )
    annotated_defs = sorted(
        annotated or (),
        key=lambda d: (d.file.as_posix(), d.span.line, d.span.column),
    )
    return Report(
        findings=findings,
        has_deny_findings=any(f.severity == Severity.DENY for f in findings),
        files_scanned=files_scanned,
        crates=list(crates),
        annotated_definitions=annotated_defs,
    )
