"""Unattributed-Function Rule — generic Result returned without #[context]."""

from __future__ import annotations

from collections.abc import Iterable

from context_lint.analysis.schemas import Finding, FunctionDefinition
from context_lint.config import RunConfig
from context_lint.constants import LintLevel, ReturnShape, RuleId, Severity

_POLICY_SEVERITY: dict[LintLevel, Severity] = {
    LintLevel.WARN: Severity.WARN,
    LintLevel.DENY: Severity.DENY,
}


def check_unattributed(
    definitions: Iterable[FunctionDefinition],
    config: RunConfig,
) -> list[Finding]:
    """Flag definitions returning ``anyhow::Result`` without an annotation.

    Severity follows ``config.unattributed_policy``; ``allow`` emits
    nothing. Findings are ordered by file, then position.
    """
    severity = _POLICY_SEVERITY.get(config.unattributed_policy)
    if severity is None:
        return []

    flagged = sorted(
        (d for d in definitions if is_unattributed(d)),
        key=lambda d: (d.file.as_posix(), d.span.line, d.span.column),
    )
    return [_finding(d, severity) for d in flagged]


def is_unattributed(definition: FunctionDefinition) -> bool:
    """True if *definition* should carry a context annotation but lacks one."""
    if definition.return_shape != ReturnShape.GENERIC_ERROR_RESULT:
        return False
    if not definition.file_imports_generic_error_result:
        return False
    if definition.has_context_attribute or definition.context_message:
        return False
    return not (
        definition.is_test
        or definition.is_main
        or definition.is_trait_impl_method
        or definition.is_trait_item
    )


def _finding(definition: FunctionDefinition, severity: Severity) -> Finding:
    kind = "method" if definition.is_method else "fn"
    return Finding(
        rule=RuleId.UNATTRIBUTED,
        severity=severity,
        file=definition.file,
        span=definition.span,
        message=(
            f"{kind} `{definition.name}` returns anyhow::Result "
            "without #[context]"
        ),
        function_name=definition.name,
        is_method=definition.is_method,
        is_pub=definition.is_pub,
        is_async=definition.is_async,
    )
