"""Definition Indexer — extract every function item from a Source Unit.

Walks the tree once, tracking the enclosing module chain, impl blocks
and test scopes, and produces one :class:`FunctionDefinition` per ``fn``
item with a body. The per-file batches are merged into a workspace-wide
:class:`DefinitionIndex` by :func:`build_index`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace

import tree_sitter

from context_lint.analysis.schemas import (
    FunctionDefinition,
    SourceUnit,
    Span,
)
from context_lint.analysis.syntax import (
    attribute_arguments,
    attribute_path,
    count_type_arguments,
    first_string_literal,
    inner_attributes,
    node_text,
    outer_attributes,
    path_segments,
    type_name,
)
from context_lint.constants import (
    CONTEXT_ATTRIBUTE_PATHS,
    GENERIC_RESULT_CRATE,
    GENERIC_RESULT_IMPORTS,
    RESULT_TYPE_NAME,
    ReturnShape,
)

logger = logging.getLogger(__name__)

_CFG_ALL_RE = re.compile(r"^\(all\((.*)\)\)$", re.DOTALL)
_GENERIC_RESULT_PATHS = (
    [RESULT_TYPE_NAME],
    [GENERIC_RESULT_CRATE, RESULT_TYPE_NAME],
)


@dataclass(frozen=True)
class _Scope:
    """Enclosing-item state while walking the tree."""

    modules: tuple[str, ...]
    in_test: bool = False
    in_trait_impl: bool = False
    in_trait: bool = False
    impl_type: str | None = None


class DefinitionIndex:
    """Workspace-wide function index keyed by simple name and by path.

    Candidates for a name keep insertion order. Once :meth:`freeze` is
    called the index is read-only and may be shared between threads.
    """

    def __init__(self) -> None:
        self._by_name: dict[str, list[FunctionDefinition]] = {}
        self._by_path: dict[tuple[str, ...], FunctionDefinition | None] = {}
        self._frozen = False
        self._count = 0

    def add(self, definition: FunctionDefinition) -> None:
        if self._frozen:
            raise RuntimeError("DefinitionIndex is frozen")
        self._by_name.setdefault(definition.name, []).append(definition)
        path = definition.qualified_path
        # A path seen twice (e.g. cfg-gated twins) is ambiguous.
        self._by_path[path] = None if path in self._by_path else definition
        self._count += 1

    def extend(self, definitions: Iterable[FunctionDefinition]) -> None:
        for definition in definitions:
            self.add(definition)

    def freeze(self) -> DefinitionIndex:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def candidates(self, name: str) -> tuple[FunctionDefinition, ...]:
        return tuple(self._by_name.get(name, ()))

    def by_path(self, path: tuple[str, ...]) -> FunctionDefinition | None:
        return self._by_path.get(path)

    def annotated(self) -> list[FunctionDefinition]:
        """Every definition carrying a context message, in index order."""
        return [d for d in self if d.context_message is not None]

    def __iter__(self) -> Iterator[FunctionDefinition]:
        for defs in self._by_name.values():
            yield from defs

    def __len__(self) -> int:
        return self._count

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


def build_index(
    batches: Iterable[list[FunctionDefinition]],
) -> DefinitionIndex:
    """Merge per-file batches into one frozen index."""
    index = DefinitionIndex()
    for batch in batches:
        index.extend(batch)
    logger.debug("Indexed %d function definitions", len(index))
    return index.freeze()


@dataclass(frozen=True)
class FileIndex:
    """Phase-1 output for one file."""

    definitions: list[FunctionDefinition]
    # Absolute module paths of `#[cfg(test)] mod name;` declared here.
    test_modules: list[tuple[str, ...]]


def index_file(unit: SourceUnit) -> FileIndex:
    """Index *unit* and note which out-of-line modules are test-only."""
    imports_generic = imports_generic_error_result(unit)
    file_is_test = any(_is_cfg_test(a) for a in inner_attributes(unit.root))
    scope = _Scope(
        modules=(unit.crate, *unit.module_path),
        in_test=file_is_test,
    )
    result = FileIndex(definitions=[], test_modules=[])
    _walk(unit.root, unit, scope, imports_generic, result)
    return result


def index_source_unit(unit: SourceUnit) -> list[FunctionDefinition]:
    """Extract every function definition in *unit*, in source order."""
    return index_file(unit).definitions


def mark_test_modules(
    definitions: list[FunctionDefinition],
    test_modules: Iterable[tuple[str, ...]],
) -> list[FunctionDefinition]:
    """Flag definitions living under an out-of-line ``cfg(test)`` module."""
    prefixes = set(test_modules)
    if not prefixes:
        return definitions
    return [
        d.model_copy(update={"is_test": True})
        if not d.is_test and _under_any(d.qualified_path, prefixes)
        else d
        for d in definitions
    ]


def _under_any(
    path: tuple[str, ...], prefixes: set[tuple[str, ...]]
) -> bool:
    return any(path[:i] in prefixes for i in range(1, len(path)))


def imports_generic_error_result(unit: SourceUnit) -> bool:
    """True if the file brings ``anyhow::Result`` into scope.

    A top-level ``type Result<..> = ...`` alias that does not point at
    ``anyhow::Result`` shadows the import.
    """
    if not any(path in GENERIC_RESULT_IMPORTS for path in unit.imports):
        return False
    return not _has_foreign_result_alias(unit.root)


def _has_foreign_result_alias(root: tree_sitter.Node) -> bool:
    for child in root.named_children:
        if child.type != "type_item":
            continue
        if node_text(child.child_by_field_name("name")) != RESULT_TYPE_NAME:
            continue
        target = child.child_by_field_name("type")
        if target is not None and target.type == "generic_type":
            target = target.child_by_field_name("type")
        if path_segments(target) not in _GENERIC_RESULT_PATHS:
            return True
    return False


def _walk(
    root: tree_sitter.Node,
    unit: SourceUnit,
    scope: _Scope,
    imports_generic: bool,
    out: FileIndex,
) -> None:
    # Explicit stack: generated code can nest far deeper than the
    # interpreter's recursion limit.
    stack = [(child, scope) for child in reversed(root.named_children)]
    while stack:
        child, scope = stack.pop()
        kind = child.type
        inner = scope
        body = child.child_by_field_name("body")
        if kind == "function_item":
            out.definitions.append(
                _definition(child, unit, scope, imports_generic)
            )
            # Items nested in a function body are not impl members.
            inner = replace(
                scope, in_trait_impl=False, in_trait=False, impl_type=None
            )
        elif kind == "mod_item":
            name = node_text(child.child_by_field_name("name"))
            in_test = scope.in_test or any(
                _is_cfg_test(a) for a in outer_attributes(child)
            )
            if body is None:
                if in_test:
                    out.test_modules.append((*scope.modules, name))
                continue
            in_test = in_test or any(
                _is_cfg_test(a) for a in inner_attributes(body)
            )
            inner = _Scope(modules=(*scope.modules, name), in_test=in_test)
        elif kind == "impl_item":
            inner = _Scope(
                modules=scope.modules,
                in_test=scope.in_test
                or any(_is_cfg_test(a) for a in outer_attributes(child)),
                in_trait_impl=child.child_by_field_name("trait") is not None,
                impl_type=type_name(child.child_by_field_name("type")),
            )
        elif kind == "trait_item":
            inner = _Scope(
                modules=scope.modules,
                in_test=scope.in_test,
                in_trait=True,
                impl_type=node_text(child.child_by_field_name("name")),
            )
        else:
            # Statements, blocks and expressions may hold nested items.
            body = child

        if body is not None:
            stack.extend(
                (grandchild, inner)
                for grandchild in reversed(body.named_children)
            )


def _definition(
    node: tree_sitter.Node,
    unit: SourceUnit,
    scope: _Scope,
    imports_generic: bool,
) -> FunctionDefinition:
    name_node = node.child_by_field_name("name")
    name = node_text(name_node)
    attrs = outer_attributes(node)

    context_attrs = [
        a for a in attrs if attribute_path(a) in CONTEXT_ATTRIBUTE_PATHS
    ]
    context_message: str | None = None
    if context_attrs:
        literal = first_string_literal(attribute_arguments(context_attrs[0]))
        context_message = literal or None

    owner = scope.modules
    if scope.impl_type is not None:
        owner = (*owner, scope.impl_type)
    is_method = _has_self_receiver(node)

    return FunctionDefinition(
        name=name,
        qualified_path=(*owner, name),
        file=unit.path,
        span=Span.from_node(name_node if name_node is not None else node),
        context_message=context_message,
        has_context_attribute=bool(context_attrs),
        is_test=scope.in_test
        or any(_is_test_attribute(a) or _is_cfg_test(a) for a in attrs),
        is_main=name == "main" and scope.impl_type is None,
        is_trait_impl_method=scope.in_trait_impl,
        is_trait_item=scope.in_trait,
        is_method=is_method,
        is_pub=any(c.type == "visibility_modifier" for c in node.children),
        is_async=_is_async(node),
        return_shape=classify_return_type(
            node.child_by_field_name("return_type")
        ),
        file_imports_generic_error_result=imports_generic,
    )


def classify_return_type(node: tree_sitter.Node | None) -> ReturnShape:
    """Classify a return type syntactically.

    ``Result<T>`` and ``anyhow::Result<T>`` are the generic error result.
    Any ``Result`` with a spelled-out error type (``Result<T, E>``) or a
    module-qualified single-argument alias (``io::Result<T>``) is typed.
    """
    if node is None or node.type != "generic_type":
        return ReturnShape.OTHER

    segs = path_segments(node.child_by_field_name("type"))
    if not segs or segs[-1] != RESULT_TYPE_NAME:
        return ReturnShape.OTHER

    arg_count = count_type_arguments(
        node.child_by_field_name("type_arguments")
    )
    if arg_count >= 2:
        return ReturnShape.TYPED_ERROR_RESULT
    if arg_count != 1:
        return ReturnShape.OTHER
    if segs in _GENERIC_RESULT_PATHS:
        return ReturnShape.GENERIC_ERROR_RESULT
    return ReturnShape.TYPED_ERROR_RESULT


def _has_self_receiver(node: tree_sitter.Node) -> bool:
    params = node.child_by_field_name("parameters")
    if params is None or not params.named_children:
        return False
    first = params.named_children[0]
    if first.type == "self_parameter":
        return True
    if first.type == "parameter":
        return node_text(first.child_by_field_name("pattern")) == "self"
    return False


def _is_async(node: tree_sitter.Node) -> bool:
    for child in node.children:
        if child.type == "function_modifiers":
            return any(c.type == "async" for c in child.children)
    return False


def _is_test_attribute(attr: tree_sitter.Node) -> bool:
    """``#[test]`` or a runner variant such as ``#[tokio::test]``."""
    segs = attribute_path(attr).split("::")
    return segs[-1] == "test" and len(segs) <= 2


def _is_cfg_test(attr: tree_sitter.Node) -> bool:
    """``#[cfg(test)]`` or ``#[cfg(all(test, ...))]``."""
    if attribute_path(attr) != "cfg":
        return False
    args = re.sub(r"\s+", "", node_text(attribute_arguments(attr)))
    if args == "(test)":
        return True
    m = _CFG_ALL_RE.match(args)
    return bool(m) and "test" in m.group(1).split(",")
