"""Call-Site Resolver — extract call expressions and resolve them by name.

Resolution is name-based, not type-based. Every ambiguous case resolves
to nothing rather than guessing:

* method-syntax calls only consider definitions with a ``self`` receiver;
* ``crate::``/``self::``/``super::`` paths are looked up by absolute path;
* a single candidate resolves directly, except that a qualified call to
  an ambiguous common name must also match by path suffix;
* several candidates: an unqualified common name is unresolved, a
  qualified call keeps the candidates whose owner path ends with the
  written qualifier (exactly one must remain), and any other unqualified
  call resolves only if all candidates agree on carrying a context
  annotation.
"""

from __future__ import annotations

import logging

import tree_sitter

from context_lint.analysis.indexer import DefinitionIndex
from context_lint.analysis.schemas import (
    CallExpression,
    FunctionDefinition,
    SourceUnit,
    Span,
)
from context_lint.analysis.syntax import (
    node_text,
    path_segments,
    same_node,
    string_value,
)
from context_lint.config import RunConfig
from context_lint.constants import (
    COMPLEX_EXPRESSION,
    CONTEXT_METHODS,
    PATH_KEYWORDS,
    CallKind,
)

logger = logging.getLogger(__name__)

# Wrappers looked through between a call and a `.context()` receiver.
_TRANSPARENT_WRAPPERS = frozenset({
    "await_expression",
    "try_expression",
    "parenthesized_expression",
})

_STRING_TYPES = frozenset({"string_literal", "raw_string_literal"})
_COMMENT_TYPES = frozenset({"line_comment", "block_comment"})


def resolve_source_unit(
    unit: SourceUnit,
    index: DefinitionIndex,
    config: RunConfig,
) -> list[CallExpression]:
    """Extract and resolve every call expression in *unit*."""
    calls = [
        resolve_call(call, index, config)
        for call in extract_calls(unit)
    ]
    logger.debug(
        "%s: %d calls, %d resolved",
        unit.path,
        len(calls),
        sum(1 for c in calls if c.is_resolved),
    )
    return calls


def extract_calls(unit: SourceUnit) -> list[CallExpression]:
    """Walk the tree collecting every call with a nameable callee."""
    calls: list[CallExpression] = []
    _walk_calls(unit.root, unit, (unit.crate, *unit.module_path), calls)
    return calls


def resolve_call(
    call: CallExpression,
    index: DefinitionIndex,
    config: RunConfig,
) -> CallExpression:
    """Return *call* with ``targets`` filled in (empty if unresolved)."""
    targets = _resolve_targets(call, index, config)
    if not targets:
        return call
    return call.model_copy(update={"targets": targets})


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def _walk_calls(
    root: tree_sitter.Node,
    unit: SourceUnit,
    scope: tuple[str, ...],
    out: list[CallExpression],
) -> None:
    """Walk the AST depth-first collecting call expressions in source order."""
    stack = [(root, scope)]
    while stack:
        node, scope = stack.pop()
        if node.type == "call_expression":
            call = _call_from_node(node, unit, scope)
            if call is not None:
                out.append(call)

        child_scope = scope
        if node.type == "mod_item":
            child_scope = (*scope, node_text(node.child_by_field_name("name")))

        stack.extend(
            (child, child_scope) for child in reversed(node.named_children)
        )


def _call_from_node(
    node: tree_sitter.Node,
    unit: SourceUnit,
    scope: tuple[str, ...],
) -> CallExpression | None:
    callee = _callee(node.child_by_field_name("function"))
    if callee is None:
        return None
    name, qualifier, kind = callee

    wrapper = _context_wrapper(node)
    context_method: str | None = None
    context_argument: str | None = None
    context_span: Span | None = None
    if wrapper is not None:
        wrapper_call, method_node = wrapper
        context_method = node_text(method_node)
        context_argument = _context_argument(wrapper_call)
        context_span = Span.from_node(method_node)

    return CallExpression(
        name=name,
        qualifier=qualifier,
        kind=kind,
        file=unit.path,
        span=Span.from_node(node),
        scope=scope,
        wrapped_by_context=wrapper is not None,
        context_method=context_method,
        context_argument=context_argument,
        context_span=context_span,
    )


def _callee(
    func: tree_sitter.Node | None,
) -> tuple[str, tuple[str, ...], CallKind] | None:
    """Extract ``(name, qualifier, kind)`` from a call's function position.

    ``foo()`` → ``("foo", (), PATH)``; ``a::b::foo()`` →
    ``("foo", ("a", "b"), PATH)``; ``recv.foo()`` → ``("foo", (), METHOD)``.
    Closures, indexing and other computed callees yield None.
    """
    if func is None:
        return None
    if func.type == "generic_function":
        return _callee(func.child_by_field_name("function"))
    if func.type == "identifier":
        return node_text(func), (), CallKind.PATH
    if func.type == "scoped_identifier":
        segs = path_segments(func)
        return segs[-1], tuple(segs[:-1]), CallKind.PATH
    if func.type == "field_expression":
        field = func.child_by_field_name("field")
        if field is not None and field.type == "field_identifier":
            return node_text(field), (), CallKind.METHOD
    return None


def _context_wrapper(
    call: tree_sitter.Node,
) -> tuple[tree_sitter.Node, tree_sitter.Node] | None:
    """Find a ``.context(..)``/``.with_context(..)`` whose receiver is *call*.

    Looks through ``.await``, ``?`` and parentheses. Returns the wrapping
    call expression and its method-name node.
    """
    inner = call
    parent = inner.parent
    while parent is not None and parent.type in _TRANSPARENT_WRAPPERS:
        inner = parent
        parent = parent.parent

    if parent is None or parent.type != "field_expression":
        return None
    if not same_node(parent.child_by_field_name("value"), inner):
        return None
    method = parent.child_by_field_name("field")
    if method is None or node_text(method) not in CONTEXT_METHODS:
        return None

    outer = parent.parent
    if outer is None or outer.type != "call_expression":
        return None
    if not same_node(outer.child_by_field_name("function"), parent):
        return None
    return outer, method


def _context_argument(call: tree_sitter.Node) -> str | None:
    """Best-effort text of the context a call site adds."""
    args = call.child_by_field_name("arguments")
    if args is None:
        return None
    values = [c for c in args.named_children if c.type not in _COMMENT_TYPES]
    if not values:
        return None
    first = values[0]
    if first.type == "closure_expression":
        body = first.child_by_field_name("body")
        return _describe_value(body) if body is not None else COMPLEX_EXPRESSION
    return _describe_value(first)


def _describe_value(node: tree_sitter.Node) -> str:
    if node.type in _STRING_TYPES:
        return string_value(node)
    if node.type == "macro_invocation":
        macro = node_text(node.child_by_field_name("macro"))
        if macro.split("::")[-1] == "format":
            return node_text(node)
    return COMPLEX_EXPRESSION


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _resolve_targets(
    call: CallExpression,
    index: DefinitionIndex,
    config: RunConfig,
) -> tuple[FunctionDefinition, ...]:
    candidates = index.candidates(call.name)
    if call.kind == CallKind.METHOD:
        candidates = tuple(c for c in candidates if c.is_method)
    if not candidates:
        return ()

    if call.qualifier and call.qualifier[0] in ("crate", "self", "super"):
        absolute = _absolute_path(call.qualifier, call.scope)
        if absolute is not None:
            hit = index.by_path((*absolute, call.name))
            if hit is not None and any(c is hit for c in candidates):
                return (hit,)

    named = tuple(s for s in call.qualifier if s not in PATH_KEYWORDS)
    if named:
        return _resolve_qualified(call.name, named, candidates, config)
    return _resolve_unqualified(call.name, candidates, config)


def _resolve_qualified(
    name: str,
    qualifier: tuple[str, ...],
    candidates: tuple[FunctionDefinition, ...],
    config: RunConfig,
) -> tuple[FunctionDefinition, ...]:
    if len(candidates) == 1 and not config.is_ambiguous(name):
        return candidates
    narrowed = tuple(
        c for c in candidates if path_suffix_matches(c.owner_path, qualifier)
    )
    return narrowed if len(narrowed) == 1 else ()


def _resolve_unqualified(
    name: str,
    candidates: tuple[FunctionDefinition, ...],
    config: RunConfig,
) -> tuple[FunctionDefinition, ...]:
    if len(candidates) == 1:
        return candidates
    if config.is_ambiguous(name):
        return ()
    presence = {c.context_message is not None for c in candidates}
    return candidates if len(presence) == 1 else ()


def path_suffix_matches(
    owner_path: tuple[str, ...], qualifier: tuple[str, ...]
) -> bool:
    """True if *owner_path* ends with the *qualifier* segments."""
    if not qualifier or len(qualifier) > len(owner_path):
        return False
    return owner_path[-len(qualifier):] == qualifier


def _absolute_path(
    qualifier: tuple[str, ...], scope: tuple[str, ...]
) -> tuple[str, ...] | None:
    """Rewrite a ``crate``/``self``/``super`` qualifier as an absolute path."""
    segs = list(qualifier)
    if segs[0] == "crate":
        path = [scope[0]]
        segs = segs[1:]
    else:
        path = list(scope)
    while segs and segs[0] in ("self", "super"):
        if segs[0] == "super":
            if len(path) <= 1:
                return None
            path.pop()
        segs = segs[1:]
    return (*path, *segs)
