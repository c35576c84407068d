"""Lint rules evaluated over the definition index and resolved calls."""

from context_lint.analysis.rules.double_context import (
    check_double_context,
    is_context_identical,
)
from context_lint.analysis.rules.unattributed import (
    check_unattributed,
    is_unattributed,
)

__all__ = [
    "check_double_context",
    "check_unattributed",
    "is_context_identical",
    "is_unattributed",
]
