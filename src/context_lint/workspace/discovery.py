"""Locate the workspace manifest and enumerate member crates and files."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

import pathspec

from context_lint.config import Settings
from context_lint.constants import MANIFEST_FILE_NAME, RUST_SOURCE_SUFFIX
from context_lint.errors import ManifestError
from context_lint.workspace.schemas import CrateSource, WorkspaceLayout

logger = logging.getLogger(__name__)


def discover_workspace(
    manifest_path: Path | None = None,
    settings: Settings | None = None,
) -> WorkspaceLayout:
    """Read the root manifest and return a :class:`WorkspaceLayout`.

    * ``manifest_path`` may point at a ``Cargo.toml`` or at the
      directory holding it; defaults to the current directory.
    * ``[workspace].members`` globs are expanded (minus ``exclude``);
      a root ``[package]`` is itself a member.
    * Raises :class:`ManifestError` when the manifest is missing,
      unreadable or declares neither a package nor a workspace.
    """
    if settings is None:
        settings = Settings()

    manifest = _locate_manifest(manifest_path)
    data = _read_manifest(manifest)
    root = manifest.parent

    member_dirs = _member_dirs(root, data, manifest)
    gitignore_spec = (
        _load_gitignore(root)
        if settings.respect_gitignore
        else pathspec.GitIgnoreSpec.from_lines([])
    )
    skip_dirs = set(settings.skip_directories)

    crates: list[CrateSource] = []
    for crate_dir in member_dirs:
        name = _package_name(crate_dir)
        files = _walk_rust_files(crate_dir, root, skip_dirs, gitignore_spec)
        crates.append(CrateSource(name=name, root=crate_dir, files=files))
        logger.debug(
            "Crate %s: %d Rust files under %s", name, len(files), crate_dir
        )

    layout = WorkspaceLayout(root=root, manifest_path=manifest, crates=crates)
    logger.info(
        "Discovered %d crates, %d Rust files",
        len(layout.crates),
        layout.file_count,
    )
    return layout


def _locate_manifest(manifest_path: Path | None) -> Path:
    candidate = (
        Path(manifest_path) if manifest_path else Path.cwd()
    ).resolve()
    if candidate.is_dir():
        candidate = candidate / MANIFEST_FILE_NAME
    if not candidate.is_file():
        msg = f"Manifest not found: {candidate}"
        raise ManifestError(msg, path=candidate)
    return candidate


def _read_manifest(path: Path) -> dict[str, Any]:
    """Parse a Cargo.toml, mapping read and decode failures to ManifestError."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except OSError as exc:
        msg = f"Reading {path}: {exc}"
        raise ManifestError(msg, path=path) from exc
    except tomllib.TOMLDecodeError as exc:
        msg = f"Malformed manifest {path}: {exc}"
        raise ManifestError(msg, path=path) from exc


def _member_dirs(
    root: Path, data: dict[str, Any], manifest: Path
) -> list[Path]:
    """Expand workspace members into sorted, de-duplicated crate dirs."""
    dirs: set[Path] = set()
    workspace = data.get("workspace")
    if "package" in data:
        dirs.add(root)

    if isinstance(workspace, dict):
        excluded = {
            (root / pattern).resolve()
            for pattern in workspace.get("exclude", [])
        }
        for pattern in workspace.get("members", []):
            dirs.update(_expand_member(root, pattern, manifest) - excluded)
    elif "package" not in data:
        msg = f"{manifest} declares neither [package] nor [workspace]"
        raise ManifestError(msg, path=manifest)

    return sorted(dirs)


def _expand_member(root: Path, pattern: str, manifest: Path) -> set[Path]:
    try:
        matches = sorted(root.glob(pattern))
    except (ValueError, NotImplementedError) as exc:
        msg = f"Invalid workspace member pattern {pattern!r} in {manifest}"
        raise ManifestError(msg, path=manifest) from exc

    found: set[Path] = set()
    for match in matches:
        if (match / MANIFEST_FILE_NAME).is_file():
            found.add(match.resolve())
    if not found:
        logger.warning("Workspace member %r matched no crates", pattern)
    return found


def _package_name(crate_dir: Path) -> str:
    manifest = crate_dir / MANIFEST_FILE_NAME
    data = _read_manifest(manifest)
    package = data.get("package")
    if not isinstance(package, dict) or not package.get("name"):
        msg = f"{manifest} has no [package].name"
        raise ManifestError(msg, path=manifest)
    return str(package["name"])


def _walk_rust_files(
    crate_dir: Path,
    root: Path,
    skip_dirs: set[str],
    gitignore_spec: pathspec.PathSpec,
) -> list[Path]:
    """Return every ``.rs`` file of a crate, sorted.

    Hidden directories, ``skip_dirs``, nested packages (directories with
    their own Cargo.toml) and gitignored paths are skipped. Symlinks that
    resolve outside the workspace root are ignored. Each directory is
    entered at most once, so symlink cycles terminate.
    """
    resolved_root = root.resolve()
    files: list[Path] = []
    _walk_inner(
        crate_dir, root, skip_dirs, gitignore_spec,
        resolved_root, files, {crate_dir.resolve()},
    )
    return sorted(files)


def _walk_inner(
    current: Path,
    root: Path,
    skip_dirs: set[str],
    gitignore_spec: pathspec.PathSpec,
    resolved_root: Path,
    files: list[Path],
    visited: set[Path],
) -> None:
    """Recursive walk helper with symlink and cycle protection."""
    for item in sorted(current.iterdir()):
        if item.is_symlink():
            resolved = item.resolve()
            if not resolved.is_relative_to(resolved_root):
                continue
        rel = item.relative_to(root).as_posix()
        if item.is_dir():
            if item.name.startswith(".") or item.name in skip_dirs:
                continue
            if (item / MANIFEST_FILE_NAME).is_file():
                continue
            if gitignore_spec.match_file(rel + "/"):
                continue
            real = item.resolve()
            if real in visited:
                continue
            visited.add(real)
            _walk_inner(
                item, root, skip_dirs, gitignore_spec,
                resolved_root, files, visited,
            )
        elif item.is_file() and item.suffix == RUST_SOURCE_SUFFIX:
            if not gitignore_spec.match_file(rel):
                files.append(item)


def _load_gitignore(root: Path) -> pathspec.PathSpec:
    """Load .gitignore patterns using pathspec."""
    gitignore = root / ".gitignore"
    if not gitignore.exists():
        return pathspec.GitIgnoreSpec.from_lines([])
    try:
        with open(gitignore, encoding="utf-8") as f:
            return pathspec.GitIgnoreSpec.from_lines(f)
    except OSError:
        return pathspec.GitIgnoreSpec.from_lines([])
