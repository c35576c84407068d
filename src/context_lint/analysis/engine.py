"""Orchestrate the two-phase whole-workspace analysis."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from context_lint.analysis.aggregator import aggregate
from context_lint.analysis.indexer import (
    DefinitionIndex,
    FileIndex,
    build_index,
    index_file,
    mark_test_modules,
)
from context_lint.analysis.parser import load_source_unit
from context_lint.analysis.resolver import resolve_source_unit
from context_lint.analysis.rules import check_double_context, check_unattributed
from context_lint.analysis.schemas import (
    Finding,
    FunctionDefinition,
    Report,
    SourceUnit,
)
from context_lint.config import RunConfig
from context_lint.workspace.schemas import CrateSource, WorkspaceLayout

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 8


async def run_analysis(
    layout: WorkspaceLayout,
    config: RunConfig,
    *,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> Report:
    """Read, parse and analyse every file of the workspace.

    Phase 1 reads, parses and indexes each file in worker threads. The
    per-file batches are merged into one frozen index (the barrier);
    phase 2 then resolves calls and evaluates the rules per file against
    that read-only index. The first tool error aborts the run.
    """
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _load_and_index(
        crate: CrateSource, path: Path
    ) -> tuple[SourceUnit, FileIndex]:
        async with semaphore:
            return await asyncio.to_thread(_parse_and_index, path, crate)

    results = await asyncio.gather(
        *(
            _load_and_index(crate, path)
            for crate in layout.crates
            for path in crate.files
        )
    )
    logger.info("Parsed and indexed %d files", len(results))

    return await _analyze_indexed(
        [unit for unit, _ in results],
        [indexed for _, indexed in results],
        config,
        semaphore,
        crates=[crate.name for crate in layout.crates],
    )


async def analyze_units(
    units: Sequence[SourceUnit],
    config: RunConfig,
    *,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> Report:
    """Analyse already-parsed Source Units (index, barrier, rules)."""
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _index(unit: SourceUnit) -> FileIndex:
        async with semaphore:
            return await asyncio.to_thread(index_file, unit)

    batches = await asyncio.gather(*(_index(unit) for unit in units))
    crates = sorted({unit.crate for unit in units})
    return await _analyze_indexed(
        list(units), list(batches), config, semaphore, crates=crates
    )


def analyze_workspace(
    layout: WorkspaceLayout,
    config: RunConfig,
    *,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> Report:
    """Synchronous entry point for :func:`run_analysis`."""
    return asyncio.run(
        run_analysis(layout, config, max_concurrency=max_concurrency)
    )


async def _analyze_indexed(
    units: list[SourceUnit],
    batches: list[FileIndex],
    config: RunConfig,
    semaphore: asyncio.Semaphore,
    *,
    crates: list[str],
) -> Report:
    # Barrier: merge in path order so candidate order never depends on
    # the order files were supplied or finished.
    order = sorted(range(len(units)), key=lambda i: units[i].path.as_posix())
    # Files reached through `#[cfg(test)] mod name;` are only known once
    # every declaring file has been indexed.
    test_modules = [m for batch in batches for m in batch.test_modules]
    definitions = [
        mark_test_modules(batch.definitions, test_modules)
        for batch in batches
    ]
    index = build_index(definitions[i] for i in order)
    logger.info(
        "Index complete: %d definitions, %d annotated",
        len(index),
        len(index.annotated()),
    )

    async def _check(
        unit: SourceUnit, own: list[FunctionDefinition]
    ) -> tuple[list[Finding], list[Finding]]:
        async with semaphore:
            return await asyncio.to_thread(
                _check_unit, unit, own, index, config
            )

    per_file = await asyncio.gather(
        *(_check(units[i], definitions[i]) for i in order)
    )

    report = aggregate(
        [f for double, _ in per_file for f in double],
        [f for _, unattributed in per_file for f in unattributed],
        files_scanned=len(units),
        crates=crates,
        annotated=index.annotated() if config.verbose else None,
    )
    logger.info(
        "Found %d double-context and %d unattributed findings",
        len(report.double_context),
        len(report.unattributed),
    )
    return report


def _parse_and_index(
    path: Path, crate: CrateSource
) -> tuple[SourceUnit, FileIndex]:
    unit = load_source_unit(path, crate)
    return unit, index_file(unit)


def _check_unit(
    unit: SourceUnit,
    definitions: list[FunctionDefinition],
    index: DefinitionIndex,
    config: RunConfig,
) -> tuple[list[Finding], list[Finding]]:
    calls = resolve_source_unit(unit, index, config)
    return (
        check_double_context(calls),
        check_unattributed(definitions, config),
    )
