"""Constants shared by the analysis, reporting and CLI layers.

Rule ids, policy levels, Rust path conventions and exit codes live here.
StrEnum members are str-compatible, so downstream code (JSON output,
argparse choices, env settings) works unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class LintLevel(StrEnum):
    """Policy level for a configurable check."""

    ALLOW = "allow"
    WARN = "warn"
    DENY = "deny"


class Severity(StrEnum):
    """Severity attached to an emitted finding."""

    WARN = "warn"
    DENY = "deny"


class RuleId(StrEnum):
    """Identifiers of the lint rules."""

    DOUBLE_CONTEXT = "double-context"
    UNATTRIBUTED = "unattributed"


class OutputFormat(StrEnum):
    """Report output formats."""

    TEXT = "text"
    JSON = "json"


class ReturnShape(StrEnum):
    """Syntactic classification of a function's return type."""

    GENERIC_ERROR_RESULT = "generic_error_result"  # anyhow::Result<T>
    TYPED_ERROR_RESULT = "typed_error_result"  # Result<T, E>, io::Result<T>
    OTHER = "other"


class CallKind(StrEnum):
    """How a callee was written at the call site."""

    PATH = "path"  # foo(), mod::foo(), Type::foo()
    METHOD = "method"  # recv.foo()


# ── Context Annotation ───────────────────────────────────

# Attribute paths recognised as the fn_error_context annotation.
CONTEXT_ATTRIBUTE_PATHS = frozenset({
    "context",
    "fn_error_context::context",
})

# Methods that attach context at a call site (eager, lazy).
CONTEXT_METHODS = frozenset({"context", "with_context"})

# Shown when the context argument is not a literal we can read.
COMPLEX_EXPRESSION = "<complex expression>"

# ── Generic Error Result ─────────────────────────────────

GENERIC_RESULT_CRATE = "anyhow"
RESULT_TYPE_NAME = "Result"

# Use-paths that bring the generic Result alias into scope.
GENERIC_RESULT_IMPORTS = frozenset({
    "anyhow::Result",
    "anyhow::*",
})

# ── Resolution ───────────────────────────────────────────

# Path keywords that carry no module name of their own.
PATH_KEYWORDS = frozenset({"crate", "self", "super", "Self"})

# Unqualified calls to these names are too ambiguous to resolve by
# name alone when more than one definition shares the name.
DEFAULT_AMBIGUOUS_NAMES: tuple[str, ...] = (
    "new",
    "open",
    "close",
    "read",
    "write",
    "parse",
    "from_str",
    "from",
    "into",
    "try_from",
    "try_into",
    "default",
    "clone",
    "copy",
    "run",
    "start",
    "stop",
    "init",
    "create",
    "delete",
    "remove",
    "update",
    "get",
    "set",
    "load",
    "save",
    "build",
    "execute",
    "exec",
    "send",
    "recv",
    "connect",
    "bind",
    "listen",
    "accept",
    "flush",
    "sync",
    "drop",
    "status",
    "display",
    "fmt",
)

# ── Workspace ────────────────────────────────────────────

MANIFEST_FILE_NAME = "Cargo.toml"
RUST_SOURCE_SUFFIX = ".rs"
CRATE_SOURCE_DIR = "src"
CRATE_ROOT_FILES = frozenset({"lib.rs", "main.rs"})
MODULE_DIR_FILE = "mod.rs"

# ── Exit Codes ───────────────────────────────────────────

EXIT_OK = 0
EXIT_DENY_FINDINGS = 1
EXIT_TOOL_ERROR = 2
