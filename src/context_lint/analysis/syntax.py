"""Small helpers over tree-sitter Rust nodes shared by indexer and resolver."""

from __future__ import annotations

import re

import tree_sitter

# Nodes that may sit between an item and its outer attributes.
_ATTRIBUTE_TRIVIA = frozenset({"attribute_item", "line_comment", "block_comment"})

_RAW_STRING_RE = re.compile(r'^r(#*)"(.*)"\1$', re.DOTALL)
_STRING_TYPES = frozenset({"string_literal", "raw_string_literal"})


def node_text(node: tree_sitter.Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8")


def same_node(a: tree_sitter.Node | None, b: tree_sitter.Node) -> bool:
    """True if *a* and *b* denote the same syntax node."""
    return (
        a is not None
        and a.type == b.type
        and a.start_byte == b.start_byte
        and a.end_byte == b.end_byte
    )


def outer_attributes(item: tree_sitter.Node) -> list[tree_sitter.Node]:
    """Return the ``attribute`` nodes decorating *item*, in source order.

    tree-sitter places ``#[...]`` as sibling ``attribute_item`` nodes
    before the item they decorate, possibly interleaved with comments.
    """
    attrs: list[tree_sitter.Node] = []
    sibling = item.prev_sibling
    while sibling is not None and sibling.type in _ATTRIBUTE_TRIVIA:
        if sibling.type == "attribute_item":
            attrs.extend(c for c in sibling.named_children if c.type == "attribute")
        sibling = sibling.prev_sibling
    attrs.reverse()
    return attrs


def inner_attributes(container: tree_sitter.Node) -> list[tree_sitter.Node]:
    """Return ``#![...]`` attributes at the top of a file or module body."""
    attrs: list[tree_sitter.Node] = []
    for child in container.named_children:
        if child.type == "inner_attribute_item":
            attrs.extend(c for c in child.named_children if c.type == "attribute")
        elif child.type not in ("line_comment", "block_comment"):
            break
    return attrs


def attribute_path(attr: tree_sitter.Node) -> str:
    """``tokio::test`` for ``#[tokio::test]``."""
    path = attr.named_children[0] if attr.named_children else None
    return re.sub(r"\s+", "", node_text(path))


def attribute_arguments(attr: tree_sitter.Node) -> tree_sitter.Node | None:
    return attr.child_by_field_name("arguments")


def first_string_literal(node: tree_sitter.Node | None) -> str | None:
    """Value of the first string literal inside a token tree, if any."""
    if node is None:
        return None
    for child in node.children:
        if child.type in _STRING_TYPES:
            return string_value(child)
        if child.type == "token_tree":
            found = first_string_literal(child)
            if found is not None:
                return found
    return None


def string_value(node: tree_sitter.Node) -> str:
    """Literal contents of a (raw) string literal, escapes left as written."""
    text = node_text(node)
    if node.type == "raw_string_literal":
        m = _RAW_STRING_RE.match(text)
        return m.group(2) if m else text
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return text[1:-1]
    return text


def path_segments(node: tree_sitter.Node | None) -> list[str]:
    """Segments of a path expression such as ``crate::a::b``.

    Generic arguments are dropped: ``Vec::<u8>::new`` gives
    ``["Vec", "new"]``. Qualified-self paths (``<T as Trait>::f``) keep
    their written form as one opaque segment.
    """
    if node is None:
        return []
    if node.type in ("scoped_identifier", "scoped_type_identifier"):
        prefix = path_segments(node.child_by_field_name("path"))
        return [*prefix, node_text(node.child_by_field_name("name"))]
    if node.type in ("generic_type", "generic_type_with_turbofish"):
        return path_segments(node.child_by_field_name("type"))
    return [node_text(node)]


def type_name(node: tree_sitter.Node | None) -> str | None:
    """Bare name of a type: ``Foo`` for ``&mut crate::m::Foo<T>``."""
    if node is None:
        return None
    if node.type in ("reference_type", "pointer_type"):
        return type_name(node.child_by_field_name("type"))
    if node.type in ("generic_type", "scoped_type_identifier"):
        segs = path_segments(node)
        return segs[-1] if segs else None
    if node.type in ("type_identifier", "primitive_type"):
        return node_text(node)
    return None


def count_type_arguments(node: tree_sitter.Node | None) -> int:
    """Number of type arguments in ``<...>``, ignoring lifetimes."""
    if node is None:
        return 0
    return sum(
        1
        for child in node.named_children
        if child.type not in ("lifetime", "line_comment", "block_comment")
    )
