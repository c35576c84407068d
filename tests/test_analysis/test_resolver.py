"""Tests for call extraction and name-based resolution."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from context_lint.analysis.indexer import build_index, index_source_unit
from context_lint.analysis.resolver import (
    extract_calls,
    path_suffix_matches,
    resolve_source_unit,
)
from context_lint.analysis.schemas import CallExpression, SourceUnit
from context_lint.config import RunConfig
from context_lint.constants import COMPLEX_EXPRESSION, CallKind

ParseRust = Callable[..., SourceUnit]


def _resolve(
    units: list[SourceUnit], config: RunConfig | None = None
) -> list[CallExpression]:
    """Index every unit, then resolve the calls of the last one."""
    index = build_index(index_source_unit(u) for u in units)
    return resolve_source_unit(units[-1], index, config or RunConfig())


def _call(calls: list[CallExpression], name: str) -> CallExpression:
    matches = [c for c in calls if c.name == name]
    assert len(matches) == 1, f"expected one call to {name}: {matches}"
    return matches[0]


LIB = """
use anyhow::{Context, Result};

#[context("Loading config")]
fn load_config() -> Result<Config> {
    Ok(Config)
}

#[context("Fetching")]
async fn fetch() -> Result<()> {
    Ok(())
}
"""


class TestContextWrapper:
    def test_context_with_try(self, parse_rust: ParseRust) -> None:
        unit = parse_rust(
            LIB
            + """
fn run() -> Result<()> {
    load_config().context("Loading config")?;
    Ok(())
}
"""
        )
        call = _call(extract_calls(unit), "load_config")
        assert call.wrapped_by_context is True
        assert call.context_method == "context"
        assert call.context_argument == "Loading config"
        assert call.context_span is not None
        assert call.scope == ("demo",)

    def test_await_is_transparent(self, parse_rust: ParseRust) -> None:
        unit = parse_rust(
            LIB
            + """
async fn run() -> Result<()> {
    fetch().await.context("fetching")?;
    (load_config()).context("paren")?;
    Ok(())
}
"""
        )
        calls = extract_calls(unit)
        assert _call(calls, "fetch").wrapped_by_context is True
        assert _call(calls, "load_config").context_argument == "paren"

    @pytest.mark.parametrize(
        ("wrapper", "expected"),
        [
            ('.with_context(|| format!("Reading {}", p))',
             'format!("Reading {}", p)'),
            ('.with_context(|| "static text")', "static text"),
            (".context(msg)", COMPLEX_EXPRESSION),
            ('.with_context(|| { let m = 1; m })', COMPLEX_EXPRESSION),
        ],
    )
    def test_context_argument(
        self, parse_rust: ParseRust, wrapper: str, expected: str
    ) -> None:
        unit = parse_rust(
            LIB
            + f"""
fn run(p: &str, msg: &str) -> Result<()> {{
    load_config(){wrapper}?;
    Ok(())
}}
"""
        )
        call = _call(extract_calls(unit), "load_config")
        assert call.context_argument == expected

    @pytest.mark.parametrize(
        "expr",
        [
            "load_config()?",
            "load_config().map_err(|e| e)?",
            "load_config().unwrap().context(\"late\")",
            "wrap(load_config()).context(\"outer\")?",
        ],
    )
    def test_not_wrapped(self, parse_rust: ParseRust, expr: str) -> None:
        unit = parse_rust(
            LIB
            + f"""
fn run() -> Result<()> {{
    {expr};
    Ok(())
}}
"""
        )
        call = _call(extract_calls(unit), "load_config")
        assert call.wrapped_by_context is False
        assert call.context_method is None

    def test_method_call_kind(self, parse_rust: ParseRust) -> None:
        unit = parse_rust(
            """
            fn run(store: &Store) {
                store.open().context("x");
            }
            """
        )
        call = _call(extract_calls(unit), "open")
        assert call.kind == CallKind.METHOD
        assert call.wrapped_by_context is True


class TestCallee:
    def test_path_and_turbofish(self, parse_rust: ParseRust) -> None:
        unit = parse_rust(
            """
            fn run() {
                net::tcp::connect();
                load::<Config>();
                Vec::<u8>::with_capacity(4);
                (self.callback)();
            }
            """
        )
        calls = extract_calls(unit)
        assert _call(calls, "connect").qualifier == ("net", "tcp")
        assert _call(calls, "load").qualifier == ()
        assert _call(calls, "with_capacity").qualifier == ("Vec",)
        assert len(calls) == 3

    def test_scope_tracks_inline_modules(
        self, parse_rust: ParseRust
    ) -> None:
        unit = parse_rust(
            """
            mod outer {
                mod inner {
                    fn run() { helper(); }
                }
            }
            """,
            module_path=("net",),
        )
        call = _call(extract_calls(unit), "helper")
        assert call.scope == ("demo", "net", "outer", "inner")


class TestResolution:
    def test_single_candidate(self, parse_rust: ParseRust) -> None:
        unit = parse_rust(
            LIB
            + """
fn run() -> Result<()> {
    load_config()?;
    Ok(())
}
"""
        )
        call = _call(_resolve([unit]), "load_config")
        assert call.is_resolved
        assert call.targets[0].context_message == "Loading config"

    def test_unknown_name_unresolved(self, parse_rust: ParseRust) -> None:
        unit = parse_rust("fn run() { external(); }")
        call = _call(_resolve([unit]), "external")
        assert call.is_resolved is False

    def test_ambiguous_name_across_crates(
        self, parse_rust: ParseRust
    ) -> None:
        a = parse_rust(
            '#[context("a")]\npub fn open() {}\n',
            path="/ws/a/src/lib.rs",
            crate="a",
        )
        b = parse_rust(
            '#[context("b")]\npub fn open() {}\n'
            'fn run() { open().context("x"); }\n',
            path="/ws/b/src/lib.rs",
            crate="b",
        )
        call = _call(_resolve([a, b]), "open")
        assert call.is_resolved is False

    def test_ambiguous_list_is_configurable(
        self, parse_rust: ParseRust
    ) -> None:
        a = parse_rust('#[context("a")]\npub fn open() {}\n', crate="a")
        b = parse_rust(
            '#[context("b")]\npub fn open() {}\nfn run() { open(); }\n',
            crate="b",
        )
        config = RunConfig(ambiguous_names=frozenset())
        call = _call(_resolve([a, b], config), "open")
        assert len(call.targets) == 2

    def test_unqualified_candidates_must_agree(
        self, parse_rust: ParseRust
    ) -> None:
        a = parse_rust('#[context("a")]\npub fn sync_all() {}\n', crate="a")
        b = parse_rust(
            "pub fn sync_all() {}\nfn run() { sync_all(); }\n",
            crate="b",
        )
        call = _call(_resolve([a, b]), "sync_all")
        assert call.is_resolved is False

    def test_unqualified_candidates_agreeing(
        self, parse_rust: ParseRust
    ) -> None:
        a = parse_rust('#[context("a")]\npub fn sync_all() {}\n', crate="a")
        b = parse_rust(
            '#[context("b")]\npub fn sync_all() {}\n'
            "fn run() { sync_all(); }\n",
            crate="b",
        )
        call = _call(_resolve([a, b]), "sync_all")
        assert [t.qualified_path for t in call.targets] == [
            ("a", "sync_all"),
            ("b", "sync_all"),
        ]

    def test_qualified_suffix_match(self, parse_rust: ParseRust) -> None:
        unit = parse_rust(
            """
            mod net {
                #[context("net")]
                pub fn open() {}
            }
            mod fs {
                pub fn open() {}
            }
            fn run() {
                net::open();
                fs::open();
                disk::open();
            }
            """
        )
        calls = _resolve([unit])
        net_call, fs_call, disk_call = (
            c for c in calls if c.name == "open"
        )
        assert net_call.targets[0].qualified_path == ("demo", "net", "open")
        assert fs_call.targets[0].qualified_path == ("demo", "fs", "open")
        assert disk_call.is_resolved is False

    def test_single_ambiguous_candidate_needs_suffix(
        self, parse_rust: ParseRust
    ) -> None:
        unit = parse_rust(
            """
            mod net {
                #[context("net")]
                pub fn open() {}
            }
            fn run() {
                net::open();
                File::open();
            }
            """
        )
        calls = [c for c in _resolve([unit]) if c.name == "open"]
        assert calls[0].is_resolved is True
        assert calls[1].is_resolved is False

    def test_single_plain_candidate_qualified(
        self, parse_rust: ParseRust
    ) -> None:
        lib = parse_rust(
            '#[context("Loading")]\npub fn load_config() {}\n',
            path="/ws/storage/src/config.rs",
            crate="storage",
            module_path=("config",),
        )
        app = parse_rust(
            "fn run() { storage::config::load_config(); }\n",
            path="/ws/app/src/main.rs",
            crate="app",
        )
        call = _call(_resolve([lib, app]), "load_config")
        assert call.is_resolved is True

    def test_type_qualified_call(self, parse_rust: ParseRust) -> None:
        unit = parse_rust(
            """
            impl Store {
                #[context("Opening store")]
                pub fn open() -> Self { todo!() }
            }
            impl Cache {
                pub fn open() -> Self { todo!() }
            }
            fn run() {
                Store::open();
            }
            """
        )
        call = _call(_resolve([unit]), "open")
        assert call.targets[0].qualified_path == ("demo", "Store", "open")

    def test_crate_and_super_paths(self, parse_rust: ParseRust) -> None:
        unit = parse_rust(
            """
            #[context("root")]
            fn open() {}

            mod inner {
                fn open() {}

                fn run() {
                    crate::open();
                    super::open();
                    self::open();
                }
            }
            """
        )
        calls = [c for c in _resolve([unit]) if c.name == "open"]
        paths = [c.targets[0].qualified_path for c in calls]
        assert paths == [
            ("demo", "open"),
            ("demo", "open"),
            ("demo", "inner", "open"),
        ]

    def test_method_syntax_only_matches_methods(
        self, parse_rust: ParseRust
    ) -> None:
        unit = parse_rust(
            """
            #[context("free")]
            fn flush_all() {}

            impl Writer {
                #[context("method")]
                fn flush_all(&mut self) {}
            }

            fn run(w: &mut Writer) {
                w.flush_all();
            }
            """
        )
        call = _call(_resolve([unit]), "flush_all")
        assert [t.qualified_path for t in call.targets] == [
            ("demo", "Writer", "flush_all"),
        ]

    def test_method_syntax_without_method_candidate(
        self, parse_rust: ParseRust
    ) -> None:
        unit = parse_rust(
            """
            #[context("free")]
            fn flush_all() {}

            fn run(w: &mut Writer) {
                w.flush_all();
            }
            """
        )
        call = _call(_resolve([unit]), "flush_all")
        assert call.is_resolved is False


@pytest.mark.parametrize(
    ("owner", "qualifier", "expected"),
    [
        (("demo", "net"), ("net",), True),
        (("demo", "net", "tcp"), ("net", "tcp"), True),
        (("demo", "net"), ("tcp",), False),
        (("demo",), ("demo", "net"), False),
        (("demo", "net"), (), False),
    ],
)
def test_path_suffix_matches(
    owner: tuple[str, ...], qualifier: tuple[str, ...], expected: bool
) -> None:
    assert path_suffix_matches(owner, qualifier) is expected
