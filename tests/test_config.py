"""Tests for Settings parsing and RunConfig construction."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from context_lint.config import RunConfig, Settings
from context_lint.constants import (
    DEFAULT_AMBIGUOUS_NAMES,
    LintLevel,
    OutputFormat,
)


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings()
        assert s.unattributed == LintLevel.DENY
        assert s.output_format == OutputFormat.TEXT
        assert s.verbose is False
        assert s.max_concurrency == 8
        assert s.ambiguous_names == list(DEFAULT_AMBIGUOUS_NAMES)
        assert "target" in s.skip_directories

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONTEXT_LINT_UNATTRIBUTED", "warn")
        monkeypatch.setenv("CONTEXT_LINT_OUTPUT_FORMAT", "json")
        s = Settings()
        assert s.unattributed == LintLevel.WARN
        assert s.output_format == OutputFormat.JSON

    def test_comma_separated_names_from_env(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CONTEXT_LINT_AMBIGUOUS_NAMES", "open , read,")
        assert Settings().ambiguous_names == ["open", "read"]

    def test_list_passthrough(self) -> None:
        s = Settings(ambiguous_names=["new", "open"])
        assert s.ambiguous_names == ["new", "open"]

    def test_duplicate_names_warn(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="context_lint.config"):
            Settings(ambiguous_names="open,open")  # type: ignore[arg-type]
        assert "Duplicate names" in caplog.text
        assert "open" in caplog.text

    def test_concurrency_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            Settings(max_concurrency=0)

    def test_log_level_normalised(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CONTEXT_LINT_LOG_LEVEL", " debug ")
        assert Settings().log_level == "DEBUG"

    def test_unknown_log_level_rejected(self) -> None:
        with pytest.raises(ValueError):
            Settings(log_level="verbose")

    def test_invalid_level_rejected(self) -> None:
        with pytest.raises(ValueError):
            Settings(unattributed="forbid")  # type: ignore[arg-type]


class TestRunConfig:
    def test_from_settings_uses_settings(self) -> None:
        settings = Settings(
            unattributed=LintLevel.WARN,
            ambiguous_names=["open"],
            verbose=True,
        )
        config = RunConfig.from_settings(settings)
        assert config.unattributed_policy == LintLevel.WARN
        assert config.verbose is True
        assert config.ambiguous_names == frozenset({"open"})
        assert config.manifest_path is None

    def test_overrides_win(self) -> None:
        config = RunConfig.from_settings(
            Settings(unattributed=LintLevel.WARN),
            unattributed_policy=LintLevel.ALLOW,
            output_format=OutputFormat.JSON,
            verbose=False,
            manifest_path=Path("ws/Cargo.toml"),
        )
        assert config.unattributed_policy == LintLevel.ALLOW
        assert config.output_format == OutputFormat.JSON
        assert config.manifest_path == Path("ws/Cargo.toml")

    def test_frozen(self) -> None:
        config = RunConfig()
        with pytest.raises(AttributeError):
            config.verbose = True  # type: ignore[misc]

    def test_is_ambiguous(self) -> None:
        config = RunConfig()
        assert config.is_ambiguous("open") is True
        assert config.is_ambiguous("load_config") is False
        assert RunConfig(ambiguous_names=frozenset()).is_ambiguous(
            "open"
        ) is False
