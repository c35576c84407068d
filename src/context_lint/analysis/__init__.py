"""Whole-workspace error-context analysis via tree-sitter."""

from context_lint.analysis.aggregator import aggregate
from context_lint.analysis.engine import (
    analyze_units,
    analyze_workspace,
    run_analysis,
)
from context_lint.analysis.indexer import (
    DefinitionIndex,
    FileIndex,
    build_index,
    index_file,
    index_source_unit,
    mark_test_modules,
)
from context_lint.analysis.parser import load_source_unit, parse_source
from context_lint.analysis.resolver import (
    extract_calls,
    resolve_call,
    resolve_source_unit,
)
from context_lint.analysis.schemas import (
    CallExpression,
    Finding,
    FunctionDefinition,
    Report,
    SourceUnit,
    Span,
)

__all__ = [
    "CallExpression",
    "DefinitionIndex",
    "FileIndex",
    "Finding",
    "FunctionDefinition",
    "Report",
    "SourceUnit",
    "Span",
    "aggregate",
    "analyze_units",
    "analyze_workspace",
    "build_index",
    "extract_calls",
    "index_file",
    "index_source_unit",
    "load_source_unit",
    "mark_test_modules",
    "parse_source",
    "resolve_call",
    "resolve_source_unit",
    "run_analysis",
]
