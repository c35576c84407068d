"""Double-Context Rule — annotated callee wrapped again at the call site."""

from __future__ import annotations

from collections.abc import Iterable

from context_lint.analysis.schemas import (
    CallExpression,
    Finding,
    FunctionDefinition,
)
from context_lint.constants import COMPLEX_EXPRESSION, RuleId, Severity


def check_double_context(calls: Iterable[CallExpression]) -> list[Finding]:
    """Emit one ``deny`` finding per offending call site.

    A call is offending when it resolves to a definition carrying a
    context message and is itself wrapped in ``.context()`` or
    ``.with_context()``. This check has no policy toggle.
    """
    findings: list[Finding] = []
    for call in calls:
        if not call.wrapped_by_context or not call.targets:
            continue
        target = call.targets[0]
        if target.context_message is None:
            continue
        findings.append(_finding(call, target))
    return findings


def is_context_identical(inner: str, outer: str | None) -> bool:
    """Inner and outer context strings match, ignoring case."""
    if outer is None:
        return False
    return inner == outer or inner.casefold() == outer.casefold()


def _finding(call: CallExpression, target: FunctionDefinition) -> Finding:
    inner = target.context_message or ""
    outer = call.context_argument
    method = call.context_method or "context"
    message = (
        f"double context on `{call.name}`: its definition already attaches "
        f'"{inner}" via #[context], and .{method}() adds '
        f'"{outer if outer is not None else COMPLEX_EXPRESSION}"'
    )
    return Finding(
        rule=RuleId.DOUBLE_CONTEXT,
        severity=Severity.DENY,
        file=call.file,
        span=call.span,
        message=message,
        function_name=call.name,
        related_file=target.file,
        related_span=target.span,
        inner_context=inner,
        outer_context=outer,
        context_method=method,
        context_span=call.context_span,
        identical=is_context_identical(inner, outer),
        is_method=target.is_method,
        is_pub=target.is_pub,
    )
