"""Highlight marker elements: atomic wrap, unwrap, lookup.

A marker is an inline element carrying ``data-highlight-id`` that encloses
exactly the text of one highlight.  Wrapping either succeeds completely or
raises ``StructuralSpanError`` before touching the tree, so a failed
capture or restoration never leaves split text or a half-built marker.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from marginalia.annotations.errors import StructuralSpanError
from marginalia.document.nodes import Element, Node, TextNode

if TYPE_CHECKING:
    from marginalia.annotations.offsets import LeafPosition

MARKER_ID_ATTR = "data-highlight-id"


def make_marker(
    annotation_id: str,
    color: str,
    *,
    tag: str = "mark",
    css_class: str = "highlight-span",
) -> Element:
    """Build an empty marker element for one highlight."""
    return Element(
        tag,
        {
            "class": css_class,
            MARKER_ID_ATTR: annotation_id,
            "style": f"background-color: {color}",
        },
    )


def is_marker(node: Node) -> bool:
    return isinstance(node, Element) and MARKER_ID_ATTR in node.attrs


def marker_id(node: Node) -> str | None:
    """Return the highlight id carried by *node*, or None if not a marker."""
    if isinstance(node, Element):
        return node.attrs.get(MARKER_ID_ATTR)
    return None


def find_markers(root: Element, annotation_id: str | None = None) -> list[Element]:
    """Markers under *root* in document order, optionally for one id."""
    return [
        node
        for node in root.iter()
        if isinstance(node, Element)
        and MARKER_ID_ATTR in node.attrs
        and (annotation_id is None or node.attrs[MARKER_ID_ATTR] == annotation_id)
    ]


def unwrap_marker(marker: Element) -> None:
    """Replace *marker* with its children and merge the surrounding text."""
    parent = marker.parent
    if parent is None:
        msg = f"Marker {marker_id(marker)!r} is not attached to a tree"
        raise ValueError(msg)
    marker.replace_with(*list(marker.children))
    parent.normalize(deep=False)


def unwrap_markers(root: Element, annotation_id: str | None = None) -> int:
    """Unwrap every marker for *annotation_id* (or all markers); return count."""
    markers = find_markers(root, annotation_id)
    for marker in markers:
        unwrap_marker(marker)
    return len(markers)


# ---------------------------------------------------------------------------
# Wrapping
# ---------------------------------------------------------------------------


def _adjacent_leaf(node: Node, *, forward: bool) -> TextNode | None:
    """The next (or previous) non-empty text node in document order."""
    current: Node = node
    while True:
        parent = current.parent
        if parent is None:
            return None
        position = parent.index(current)
        siblings = (
            parent.children[position + 1 :]
            if forward
            else parent.children[:position][::-1]
        )
        for sibling in siblings:
            leaves = (
                [sibling]
                if isinstance(sibling, TextNode)
                else [n for n in sibling.iter() if isinstance(n, TextNode)]
            )
            if not forward:
                leaves.reverse()
            for leaf in leaves:
                if isinstance(leaf, TextNode) and leaf.data:
                    return leaf
        current = parent


def _path_to(node: Node, ancestor: Element) -> list[Node]:
    """Nodes from *node* up to, but excluding, *ancestor* (bottom-up)."""
    path: list[Node] = []
    current: Node | None = node
    while current is not None and current is not ancestor:
        path.append(current)
        current = current.parent
    return path


def _common_ancestor(a: Node, b: Node) -> Element | None:
    ancestors: list[Element] = []
    current = a.parent
    while current is not None:
        ancestors.append(current)
        current = current.parent
    current = b.parent
    while current is not None:
        if any(candidate is current for candidate in ancestors):
            return current
        current = current.parent
    return None


def _describe(node: Node) -> str:
    return f"<{node.tag}>" if isinstance(node, Element) else "text"


def _contains_block(node: Node) -> bool:
    return isinstance(node, Element) and any(
        isinstance(el, Element) and el.is_block for el in node.iter()
    )


def _check_edge(path: list[Node], *, at_start: bool) -> None:
    """A lifted boundary must sit at the very edge of every enclosing element."""
    for node in path[:-1]:
        parent = node.parent
        if parent is None:
            break
        edge = parent.children[0] if at_start else parent.children[-1]
        if edge is not node:
            side = "starts" if at_start else "ends"
            msg = f"selection {side} partway into {_describe(parent)}"
            raise StructuralSpanError(msg)


def _enclose(nodes: list[Node], marker: Element) -> Element:
    parent = nodes[0].parent
    if parent is None:
        msg = "Cannot wrap detached nodes"
        raise ValueError(msg)
    parent.insert(parent.index(nodes[0]), marker)
    for node in nodes:
        marker.append(node)
    return marker


def wrap_range(start: LeafPosition, end: LeafPosition, marker: Element) -> Element:
    """Enclose the text between *start* and *end* in *marker*.

    Boundaries inside text nodes split them.  A boundary at the very start
    (or end) of an inline element's text lifts outside that element, so
    ``Hello <b>world</b>`` can be wrapped whole.  Spans that would cut an
    element in two, or that contain block-level elements, are refused.

    Raises:
        StructuralSpanError: The range is not one wrappable inline span.
            The tree is unchanged.
        ValueError: The range is empty.
    """
    ts, ks = start.node, start.offset
    te, ke = end.node, end.offset
    if not isinstance(ts, TextNode) or not isinstance(te, TextNode):
        msg = "range boundaries must lie in text"
        raise StructuralSpanError(msg)

    # Boundary on a leaf junction: move onto the leaf that holds the text.
    if ts is not te and ks == len(ts):
        following = _adjacent_leaf(ts, forward=True)
        if following is not None:
            ts, ks = following, 0
    if ts is not te and ke == 0:
        preceding = _adjacent_leaf(te, forward=False)
        if preceding is not None:
            te, ke = preceding, len(preceding)

    if ts is te:
        if not 0 <= ks < ke <= len(ts):
            msg = f"Empty or inverted range [{ks}, {ke}) in one text node"
            raise ValueError(msg)
        if ts.parent is None:
            msg = "text is not attached to a tree"
            raise StructuralSpanError(msg)
        middle = ts.split(ks) if ks else ts
        if ke - ks < len(middle):
            middle.split(ke - ks)
        return _enclose([middle], marker)

    ancestor = _common_ancestor(ts, te)
    if ancestor is None:
        msg = "boundaries are in different trees"
        raise StructuralSpanError(msg)

    start_path = _path_to(ts, ancestor)
    end_path = _path_to(te, ancestor)
    first, last = start_path[-1], end_path[-1]
    if ancestor.index(first) > ancestor.index(last):
        msg = f"Range end precedes range start in <{ancestor.tag}>"
        raise ValueError(msg)

    if first is not ts:
        if ks != 0:
            msg = f"selection starts partway into {_describe(first)}"
            raise StructuralSpanError(msg)
        _check_edge(start_path, at_start=True)
    if last is not te:
        if ke != len(te):
            msg = f"selection ends partway into {_describe(last)}"
            raise StructuralSpanError(msg)
        _check_edge(end_path, at_start=False)

    run = ancestor.children[ancestor.index(first) : ancestor.index(last) + 1]
    for node in run:
        if _contains_block(node):
            msg = f"selection spans block element {_describe(node)}"
            raise StructuralSpanError(msg)

    # Validation done; from here on the tree is mutated.
    if first is ts and ks > 0:
        first = ts.split(ks)
    if last is te and ke < len(te):
        te.split(ke)

    run = ancestor.children[ancestor.index(first) : ancestor.index(last) + 1]
    return _enclose(run, marker)
