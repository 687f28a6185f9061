"""Flattened-text offset indexing over document trees.

The flattened text of a tree is the concatenation of its text-bearing
leaves in depth-first pre-order, with no separators.  Highlights are stored
as offsets into that string, because it is the only thing that survives a
re-render: the nodes themselves are new on every render.

Any tree can be indexed by supplying a ``LeafAccess``; the default covers
``marginalia.document`` trees.
"""

# Pattern: Functional Core (pure functions, no tree mutation)

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from marginalia.document.nodes import Element, TextNode

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class LeafAccess(Protocol):
    """How the indexer sees a tree: leaves, their text, ordered children."""

    def is_text_leaf(self, node: Any) -> bool: ...

    def text(self, node: Any) -> str: ...

    def text_length(self, node: Any) -> int: ...

    def children(self, node: Any) -> Iterable[Any]: ...


class DocumentLeafAccess:
    """``LeafAccess`` for ``Element``/``TextNode`` trees."""

    def is_text_leaf(self, node: Any) -> bool:
        return isinstance(node, TextNode)

    def text(self, node: Any) -> str:
        return node.data

    def text_length(self, node: Any) -> int:
        return len(node.data)

    def children(self, node: Any) -> Iterable[Any]:
        if isinstance(node, Element):
            return node.children
        return ()


DOCUMENT_ACCESS = DocumentLeafAccess()


@dataclass(frozen=True, slots=True)
class LeafPosition:
    """A point inside a text leaf: the leaf and an offset into its text."""

    node: Any
    offset: int


def iter_leaves(root: Any, access: LeafAccess = DOCUMENT_ACCESS) -> Iterator[Any]:
    """Yield text-bearing leaves under *root* in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if access.is_text_leaf(node):
            yield node
            continue
        stack.extend(reversed(list(access.children(node))))


def flatten(root: Any, access: LeafAccess = DOCUMENT_ACCESS) -> str:
    """Return the flattened text of *root*."""
    return "".join(access.text(leaf) for leaf in iter_leaves(root, access))


def locate(
    root: Any,
    offset: int,
    *,
    prefer_end: bool = False,
    access: LeafAccess = DOCUMENT_ACCESS,
) -> LeafPosition | None:
    """Map a flattened-text offset to a position inside a leaf.

    An offset on the junction of two leaves resolves to the start of the
    later leaf, or to the end of the earlier one when *prefer_end* is set
    (the right choice for an exclusive end boundary).  The total length
    always resolves to the end of the last leaf.

    Returns:
        The position, or None when *offset* is negative, beyond the
        flattened length, or the tree has no text leaves.
    """
    if offset < 0:
        return None

    consumed = 0
    last: Any = None
    for leaf in iter_leaves(root, access):
        length = access.text_length(leaf)
        end = consumed + length
        if offset < end or (prefer_end and offset == end and length):
            return LeafPosition(leaf, offset - consumed)
        consumed = end
        last = leaf

    if last is not None and offset == consumed:
        return LeafPosition(last, access.text_length(last))
    return None


def index_of(
    root: Any,
    leaf: Any,
    local_offset: int,
    *,
    access: LeafAccess = DOCUMENT_ACCESS,
) -> int:
    """Map a position inside *leaf* to its flattened-text offset.

    Raises:
        ValueError: If *leaf* is not a text leaf under *root*, or
            *local_offset* lies outside its text.
    """
    if not access.is_text_leaf(leaf):
        msg = f"{leaf!r} is not a text leaf"
        raise ValueError(msg)
    if not 0 <= local_offset <= access.text_length(leaf):
        msg = (
            f"Offset {local_offset} outside leaf of length "
            f"{access.text_length(leaf)}"
        )
        raise ValueError(msg)

    consumed = 0
    for candidate in iter_leaves(root, access):
        if candidate is leaf:
            return consumed + local_offset
        consumed += access.text_length(candidate)

    msg = f"{leaf!r} is not under the given root"
    raise ValueError(msg)


def position_index(
    root: Any, position: LeafPosition, *, access: LeafAccess = DOCUMENT_ACCESS
) -> int:
    """``index_of`` for a ``LeafPosition``."""
    return index_of(root, position.node, position.offset, access=access)
