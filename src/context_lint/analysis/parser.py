"""Parse Rust source files into :class:`SourceUnit` objects via tree-sitter."""

from __future__ import annotations

import re
import threading
from pathlib import Path

import tree_sitter
import tree_sitter_rust

from context_lint.analysis.schemas import SourceUnit
from context_lint.constants import (
    CRATE_ROOT_FILES,
    CRATE_SOURCE_DIR,
    MODULE_DIR_FILE,
)
from context_lint.errors import SourceParseError, SourceReadError
from context_lint.workspace.schemas import CrateSource

_LANGUAGE = tree_sitter.Language(tree_sitter_rust.language())

_USE_PREFIX_RE = re.compile(r"^(?:pub(?:\s*\([^)]*\))?\s+)?use\s+")
_USE_ALIAS_RE = re.compile(r"\s+as\s+\w+")
_COMMENT_RE = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)


def load_source_unit(path: Path, crate: CrateSource) -> SourceUnit:
    """Read and parse one file of *crate*.

    Raises :class:`SourceReadError` if the file cannot be read as UTF-8
    and :class:`SourceParseError` if it does not parse cleanly.
    """
    try:
        raw = path.read_bytes()
        raw.decode("utf-8")
    except OSError as exc:
        msg = f"Reading {path}: {exc}"
        raise SourceReadError(msg, path=path) from exc
    except UnicodeDecodeError as exc:
        msg = f"Reading {path}: not valid UTF-8"
        raise SourceReadError(msg, path=path) from exc

    return parse_source(
        raw,
        path=path,
        crate=crate.ident,
        module_path=module_path_for(path, crate.root),
    )


def parse_source(
    source: str | bytes,
    *,
    path: Path,
    crate: str,
    module_path: tuple[str, ...] = (),
) -> SourceUnit:
    """Parse Rust *source* into a :class:`SourceUnit`."""
    raw = source.encode("utf-8") if isinstance(source, str) else source
    tree = _get_parser().parse(raw)
    root = tree.root_node
    if root.has_error:
        bad = _first_error_node(root)
        line = bad.start_point[0] + 1 if bad else None
        column = bad.start_point[1] + 1 if bad else None
        where = f":{line}:{column}" if line is not None else ""
        msg = f"Parsing {path}{where}: syntax error"
        raise SourceParseError(msg, path=path, line=line, column=column)

    return SourceUnit(
        path=path,
        crate=crate.replace("-", "_"),
        module_path=module_path,
        source=raw,
        tree=tree,
        imports=tuple(_top_level_imports(root)),
    )


def module_path_for(path: Path, crate_root: Path) -> tuple[str, ...]:
    """Module path implied by a file's location under ``src/``.

    ``src/lib.rs`` and ``src/main.rs`` are the crate root, ``src/a/mod.rs``
    is ``a`` and ``src/a/b.rs`` is ``a::b``. Files outside ``src/``
    (tests, examples, benches) are crate roots of their own.
    """
    src_dir = crate_root / CRATE_SOURCE_DIR
    try:
        rel = path.relative_to(src_dir)
    except ValueError:
        return ()

    parts = list(rel.parts)
    if len(parts) == 1 and parts[0] in CRATE_ROOT_FILES:
        return ()
    if parts[-1] == MODULE_DIR_FILE:
        parts = parts[:-1]
    else:
        parts[-1] = Path(parts[-1]).stem
    return tuple(parts)


def expand_use_declaration(text: str) -> list[str]:
    """Expand a ``use`` declaration into the full paths it imports.

    ``use anyhow::{Context, Result as R};`` yields
    ``["anyhow::Context", "anyhow::Result"]``. Aliases are dropped and
    ``self`` inside a group refers to the group's prefix.
    """
    body = _COMMENT_RE.sub("", text).strip()
    body = _USE_PREFIX_RE.sub("", body).rstrip().rstrip(";")
    body = _USE_ALIAS_RE.sub("", body)
    body = re.sub(r"\s+", "", body)
    return [_normalize_use_path(p) for p in _expand_tree("", body) if p]


def _expand_tree(prefix: str, tree: str) -> list[str]:
    brace = tree.find("{")
    if brace == -1:
        return [prefix + tree]

    head = tree[:brace]
    close = _matching_brace(tree, brace)
    inner = tree[brace + 1 : close]
    paths: list[str] = []
    for part in _split_top_level(inner):
        if part:
            paths.extend(_expand_tree(prefix + head, part))
    return paths


def _matching_brace(text: str, start: int) -> int:
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                return i
    return len(text)


def _split_top_level(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


def _normalize_use_path(path: str) -> str:
    path = path.removeprefix("::")
    if path.endswith("::self"):
        path = path[: -len("::self")]
    return path


def _top_level_imports(root: tree_sitter.Node) -> list[str]:
    imports: list[str] = []
    for child in root.children:
        if child.type == "use_declaration" and child.text:
            imports.extend(expand_use_declaration(child.text.decode("utf-8")))
    return imports


def _first_error_node(root: tree_sitter.Node) -> tree_sitter.Node | None:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        stack.extend(
            child
            for child in reversed(node.children)
            if child.has_error or child.is_missing
        )
    return None


# ---------------------------------------------------------------------------
# Parser cache
# ---------------------------------------------------------------------------

# Parsers are not safe to share between worker threads.
_local = threading.local()


def _get_parser() -> tree_sitter.Parser:
    """Get or create this thread's cached tree-sitter parser."""
    parser: tree_sitter.Parser | None = getattr(_local, "parser", None)
    if parser is None:
        parser = tree_sitter.Parser(_LANGUAGE)
        _local.parser = parser
    return parser
