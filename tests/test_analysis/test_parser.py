"""Tests for the tree-sitter parser wrapper and use-path expansion."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from context_lint.analysis.parser import (
    expand_use_declaration,
    load_source_unit,
    module_path_for,
)
from context_lint.analysis.schemas import SourceUnit
from context_lint.errors import SourceParseError, SourceReadError
from context_lint.workspace.schemas import CrateSource

ParseRust = Callable[..., SourceUnit]


class TestParseSource:
    def test_collects_top_level_imports(self, parse_rust: ParseRust) -> None:
        unit = parse_rust(
            """
            use anyhow::{Context, Result};
            use std::path::Path;

            fn main() {}
            """
        )
        assert unit.imports == (
            "anyhow::Context",
            "anyhow::Result",
            "std::path::Path",
        )
        assert unit.root.type == "source_file"

    def test_nested_use_is_not_top_level(self, parse_rust: ParseRust) -> None:
        unit = parse_rust(
            """
            mod inner {
                use anyhow::Result;
            }
            """
        )
        assert unit.imports == ()

    def test_crate_name_normalized(self, parse_rust: ParseRust) -> None:
        unit = parse_rust("fn f() {}", crate="my-crate")
        assert unit.crate == "my_crate"

    def test_syntax_error_raises(self, parse_rust: ParseRust) -> None:
        with pytest.raises(SourceParseError) as exc_info:
            parse_rust(
                """
                fn ok() {}

                fn broken( {
                """
            )
        err = exc_info.value
        assert err.path == Path("/ws/src/lib.rs")
        assert err.line is not None
        assert err.line >= 3
        assert "syntax error" in str(err)

    def test_syntax_error_after_deep_nesting(
        self, parse_rust: ParseRust
    ) -> None:
        chain = "String::new()" + ".clone()" * 1000
        with pytest.raises(SourceParseError) as exc_info:
            parse_rust(f"fn f() {{\n    let s = {chain}.;\n}}\n")
        assert exc_info.value.line is not None
        assert exc_info.value.line <= 3


class TestLoadSourceUnit:
    def test_reads_and_parses(self, tmp_path: Path) -> None:
        src = tmp_path / "src"
        (src / "net").mkdir(parents=True)
        path = src / "net" / "tcp.rs"
        path.write_text("pub fn connect() {}\n", encoding="utf-8")
        crate = CrateSource(name="my-app", root=tmp_path, files=[path])

        unit = load_source_unit(path, crate)

        assert unit.crate == "my_app"
        assert unit.module_path == ("net", "tcp")
        assert unit.source == b"pub fn connect() {}\n"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        crate = CrateSource(name="demo", root=tmp_path)
        with pytest.raises(SourceReadError):
            load_source_unit(tmp_path / "src" / "gone.rs", crate)

    def test_non_utf8_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.rs"
        path.write_bytes(b"fn f() { let s = \"\xff\xfe\"; }")
        crate = CrateSource(name="demo", root=tmp_path)
        with pytest.raises(SourceReadError, match="UTF-8"):
            load_source_unit(path, crate)


@pytest.mark.parametrize(
    ("rel", "expected"),
    [
        ("src/lib.rs", ()),
        ("src/main.rs", ()),
        ("src/config.rs", ("config",)),
        ("src/net/mod.rs", ("net",)),
        ("src/net/tcp.rs", ("net", "tcp")),
        ("tests/integration.rs", ()),
        ("build.rs", ()),
    ],
)
def test_module_path_for(rel: str, expected: tuple[str, ...]) -> None:
    root = Path("/ws/crates/demo")
    assert module_path_for(root / rel, root) == expected


class TestExpandUseDeclaration:
    def test_group_with_alias(self) -> None:
        assert expand_use_declaration(
            "use anyhow::{Context, Result as R};"
        ) == ["anyhow::Context", "anyhow::Result"]

    def test_nested_groups_and_self(self) -> None:
        assert expand_use_declaration(
            "pub use crate::a::{self, b::{c, d}};"
        ) == ["crate::a", "crate::a::b::c", "crate::a::b::d"]

    def test_glob_with_leading_colons(self) -> None:
        assert expand_use_declaration("use ::anyhow::*;") == ["anyhow::*"]

    def test_restricted_visibility(self) -> None:
        assert expand_use_declaration(
            "pub(crate) use anyhow::Result;"
        ) == ["anyhow::Result"]

    def test_multiline_with_comments(self) -> None:
        text = """use anyhow::{
            // error handling
            Context,
            Result, /* alias */
        };"""
        assert expand_use_declaration(text) == [
            "anyhow::Context",
            "anyhow::Result",
        ]
