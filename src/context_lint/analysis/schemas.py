"""Pydantic models for the analysis data flow."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import tree_sitter
from pydantic import BaseModel, ConfigDict, Field

from context_lint.constants import (
    CallKind,
    ReturnShape,
    RuleId,
    Severity,
)


@dataclass(frozen=True)
class SourceUnit:
    """A parsed Rust file and the facts the analysis needs about it."""

    path: Path
    crate: str  # crate name as an identifier (hyphens → underscores)
    module_path: tuple[str, ...]  # modules implied by the file location
    source: bytes
    tree: tree_sitter.Tree
    imports: tuple[str, ...] = ()  # expanded top-level `use` paths

    @property
    def root(self) -> tree_sitter.Node:
        return self.tree.root_node


class Span(BaseModel):
    """A 1-based source position range."""

    model_config = ConfigDict(frozen=True)

    line: int
    column: int
    end_line: int
    end_column: int

    @classmethod
    def from_node(cls, node: tree_sitter.Node) -> Span:
        return cls(
            line=node.start_point[0] + 1,
            column=node.start_point[1] + 1,
            end_line=node.end_point[0] + 1,
            end_column=node.end_point[1] + 1,
        )


class FunctionDefinition(BaseModel):
    """A function item found in the workspace."""

    model_config = ConfigDict(frozen=True)

    name: str
    qualified_path: tuple[str, ...]  # crate, modules, impl type, name
    file: Path
    span: Span
    context_message: str | None = None
    has_context_attribute: bool = False
    is_test: bool = False
    is_main: bool = False
    is_trait_impl_method: bool = False
    is_trait_item: bool = False
    is_method: bool = False  # has a `self` receiver
    is_pub: bool = False
    is_async: bool = False
    return_shape: ReturnShape = ReturnShape.OTHER
    file_imports_generic_error_result: bool = False

    @property
    def owner_path(self) -> tuple[str, ...]:
        """Qualified path without the function name."""
        return self.qualified_path[:-1]

    @property
    def display_path(self) -> str:
        return "::".join(self.qualified_path)


class CallExpression(BaseModel):
    """A call site and, once resolved, the definitions it may target."""

    model_config = ConfigDict(frozen=True)

    name: str
    qualifier: tuple[str, ...] = ()
    kind: CallKind = CallKind.PATH
    file: Path
    span: Span
    scope: tuple[str, ...] = ()  # crate and module path of the caller
    wrapped_by_context: bool = False
    context_method: str | None = None  # "context" or "with_context"
    context_argument: str | None = None
    context_span: Span | None = None
    targets: tuple[FunctionDefinition, ...] = ()

    @property
    def is_resolved(self) -> bool:
        return bool(self.targets)


class Finding(BaseModel):
    """A single reported issue tied to a rule, file and span."""

    model_config = ConfigDict(frozen=True)

    rule: RuleId
    severity: Severity
    file: Path
    span: Span
    message: str
    function_name: str
    related_file: Path | None = None  # definition of the callee
    related_span: Span | None = None
    inner_context: str | None = None  # from #[context]
    outer_context: str | None = None  # from .context() / .with_context()
    context_method: str | None = None
    context_span: Span | None = None  # the .context() / .with_context() name
    identical: bool = False
    is_method: bool = False
    is_pub: bool = False
    is_async: bool = False

    def sort_key(self) -> tuple[str, int, int, str, str]:
        return (
            self.file.as_posix(),
            self.span.line,
            self.span.column,
            str(self.rule),
            self.message,
        )


class Report(BaseModel):
    """Ordered findings from one run plus the summary severity."""

    model_config = ConfigDict(frozen=True)

    findings: list[Finding] = Field(
        default_factory=lambda: list[Finding]()
    )
    has_deny_findings: bool = False
    files_scanned: int = 0
    crates: list[str] = Field(default_factory=lambda: list[str]())
    # Populated only for verbose runs.
    annotated_definitions: list[FunctionDefinition] = Field(
        default_factory=lambda: list[FunctionDefinition]()
    )

    def by_rule(self, rule: RuleId) -> list[Finding]:
        return [f for f in self.findings if f.rule == rule]

    @property
    def double_context(self) -> list[Finding]:
        return self.by_rule(RuleId.DOUBLE_CONTEXT)

    @property
    def unattributed(self) -> list[Finding]:
        return self.by_rule(RuleId.UNATTRIBUTED)
