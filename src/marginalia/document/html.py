"""HTML adapter for the document tree.

Parsing walks the selectolax (Lexbor) DOM via child/next iteration, which
exposes text nodes, and rebuilds it as a mutable ``Element``/``TextNode``
tree.  Serialisation is the inverse and is used for display and export.
"""

# Pattern: Functional Core (pure functions for parse and serialise)

from __future__ import annotations

import html as html_module
from typing import Any

from selectolax.lexbor import LexborHTMLParser

from marginalia.document.nodes import Element, Node, TextNode

# Tags dropped entirely, children included
STRIP_TAGS = frozenset(("script", "style", "noscript", "template"))

# Elements serialised without a closing tag
VOID_TAGS = frozenset(
    (
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    )
)


def _convert(node: Any) -> Node | None:
    """Convert one selectolax node (and its subtree) to a tree node."""
    tag = node.tag

    # Text node: selectolax uses "-text" as the tag
    if tag == "-text":
        text = node.text_content
        return TextNode(text) if text else None

    # Comments and other non-element nodes
    if not tag or tag[0] in "-_!" or tag in STRIP_TAGS:
        return None

    attrs = {
        name: value if value is not None else ""
        for name, value in node.attributes.items()
    }
    element = Element(tag, attrs)
    child = node.child
    while child is not None:
        converted = _convert(child)
        if converted is not None:
            element.append(converted)
        child = child.next
    return element


def parse_html(html: str, *, root_tag: str = "div") -> Element:
    """Parse an HTML fragment or document into a detached tree.

    The returned root is a fresh ``root_tag`` element holding the body's
    children; it stands in for the viewer container the document is
    mounted into.

    Args:
        html: HTML fragment or full document.
        root_tag: Tag of the synthetic root element.

    Returns:
        Root element.  Empty input yields an empty root.
    """
    root = Element(root_tag)
    if not html:
        return root

    tree = LexborHTMLParser(html)
    body = tree.body
    source = body if body is not None else tree.root
    if source is None:
        return root

    child = source.child
    while child is not None:
        converted = _convert(child)
        if converted is not None:
            root.append(converted)
        child = child.next
    return root


def _attrs_html(attrs: dict[str, str]) -> str:
    return "".join(
        f' {name}="{html_module.escape(value, quote=True)}"'
        for name, value in attrs.items()
    )


def to_html(node: Node, *, include_self: bool = True) -> str:
    """Serialise *node* to HTML.

    Args:
        node: Node to serialise.
        include_self: When False and *node* is an element, emit only its
            children (the equivalent of ``innerHTML``).
    """
    if isinstance(node, TextNode):
        return html_module.escape(node.data, quote=False)
    if not isinstance(node, Element):
        msg = f"Cannot serialise {node!r}"
        raise TypeError(msg)

    inner = "".join(to_html(child) for child in node.children)
    if not include_self:
        return inner
    if node.tag in VOID_TAGS:
        return f"<{node.tag}{_attrs_html(node.attrs)}>"
    return f"<{node.tag}{_attrs_html(node.attrs)}>{inner}</{node.tag}>"
