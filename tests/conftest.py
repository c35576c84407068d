"""Shared test fixtures — Rust snippet parsing and the fixture workspace."""

from __future__ import annotations

import os
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from context_lint.analysis.parser import parse_source
from context_lint.analysis.schemas import SourceUnit
from context_lint.config import RunConfig

FIXTURE_WORKSPACE = Path(__file__).resolve().parent / "fixtures" / "workspace"

ParseRust = Callable[..., SourceUnit]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer CONTEXT_LINT_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith("CONTEXT_LINT_"):
            monkeypatch.delenv(key)


@pytest.fixture
def parse_rust() -> ParseRust:
    """Factory parsing a dedented Rust snippet into a SourceUnit.

    The leading newline of a triple-quoted snippet is dropped so line 1
    is the first line of code.
    """

    def _parse(
        source: str,
        *,
        path: str | Path = "/ws/src/lib.rs",
        crate: str = "demo",
        module_path: tuple[str, ...] = (),
    ) -> SourceUnit:
        return parse_source(
            textwrap.dedent(source).lstrip("\n"),
            path=Path(path),
            crate=crate,
            module_path=module_path,
        )

    return _parse


@pytest.fixture
def run_config() -> RunConfig:
    return RunConfig()


@pytest.fixture
def fixture_workspace() -> Path:
    return FIXTURE_WORKSPACE
