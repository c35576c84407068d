"""Environment-based configuration and the per-run configuration value."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

from context_lint.constants import (
    DEFAULT_AMBIGUOUS_NAMES,
    LintLevel,
    OutputFormat,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and ``CONTEXT_LINT_*`` environment variables."""

    # Checks
    unattributed: LintLevel = LintLevel.DENY
    ambiguous_names: Annotated[list[str], NoDecode] = list(
        DEFAULT_AMBIGUOUS_NAMES
    )

    # Output
    output_format: OutputFormat = OutputFormat.TEXT
    verbose: bool = False

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = (
        "WARNING"
    )

    # Analysis
    max_concurrency: int = 8

    # Workspace walking
    respect_gitignore: bool = True
    skip_directories: Annotated[list[str], NoDecode] = [
        "target",
        "node_modules",
        ".git",
        ".hg",
        ".svn",
    ]

    @field_validator("ambiguous_names", "skip_directories", mode="before")
    @classmethod
    def _parse_list(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("ambiguous_names")
    @classmethod
    def _validate_names(cls, v: list[str]) -> list[str]:
        seen: set[str] = set()
        dupes: list[str] = []
        for name in v:
            if name in seen:
                dupes.append(name)
            seen.add(name)
        if dupes:
            logger.warning(
                "Duplicate names in CONTEXT_LINT_AMBIGUOUS_NAMES: %s",
                ", ".join(dupes),
            )
        return v

    @field_validator("max_concurrency")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_concurrency must be at least 1")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "CONTEXT_LINT_",
        "extra": "ignore",
    }


@dataclass(frozen=True)
class RunConfig:
    """Settings for a single analysis run.

    Built once at startup and passed explicitly to every component;
    never mutated afterwards.
    """

    unattributed_policy: LintLevel = LintLevel.DENY
    output_format: OutputFormat = OutputFormat.TEXT
    verbose: bool = False
    ambiguous_names: frozenset[str] = field(
        default_factory=lambda: frozenset(DEFAULT_AMBIGUOUS_NAMES)
    )
    manifest_path: Path | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        unattributed_policy: LintLevel | None = None,
        output_format: OutputFormat | None = None,
        verbose: bool | None = None,
        manifest_path: Path | None = None,
    ) -> RunConfig:
        """Merge environment settings with explicit (CLI) overrides."""
        return cls(
            unattributed_policy=(
                unattributed_policy
                if unattributed_policy is not None
                else settings.unattributed
            ),
            output_format=(
                output_format
                if output_format is not None
                else settings.output_format
            ),
            verbose=verbose if verbose is not None else settings.verbose,
            ambiguous_names=frozenset(settings.ambiguous_names),
            manifest_path=manifest_path,
        )

    def is_ambiguous(self, name: str) -> bool:
        """Return True if *name* is on the fail-closed common-name list."""
        return name in self.ambiguous_names
