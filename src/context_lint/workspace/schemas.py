"""Pydantic models for workspace discovery."""

from pathlib import Path

from pydantic import BaseModel, Field


class CrateSource(BaseModel):
    """A workspace member crate and its Rust source files."""

    name: str  # package name as declared in Cargo.toml
    root: Path  # directory holding the crate's Cargo.toml
    files: list[Path] = Field(default_factory=lambda: list[Path]())

    @property
    def ident(self) -> str:
        """Crate name as it appears in Rust paths."""
        return self.name.replace("-", "_")


class WorkspaceLayout(BaseModel):
    """Output of discovery — every member crate, ordered by directory."""

    root: Path
    manifest_path: Path
    crates: list[CrateSource] = Field(
        default_factory=lambda: list[CrateSource]()
    )

    @property
    def file_count(self) -> int:
        return sum(len(c.files) for c in self.crates)
