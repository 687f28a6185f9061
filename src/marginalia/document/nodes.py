"""Mutable document tree used by the render pipeline and the marker layer.

A deliberately small DOM: elements with ordered children and text nodes,
both carrying a parent link.  Only the operations needed to split, wrap and
unwrap text ranges are provided.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

# Block-level elements.  A highlight marker is inline, so it may never wrap
# one of these or straddle their boundaries.
BLOCK_TAGS = frozenset(
    (
        "address",
        "article",
        "aside",
        "blockquote",
        "body",
        "dd",
        "details",
        "div",
        "dl",
        "dt",
        "figcaption",
        "figure",
        "footer",
        "form",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hr",
        "html",
        "li",
        "main",
        "nav",
        "ol",
        "p",
        "pre",
        "section",
        "summary",
        "table",
        "tbody",
        "td",
        "tfoot",
        "th",
        "thead",
        "tr",
        "ul",
    )
)


class Node:
    """Base class for tree nodes."""

    __slots__ = ("parent",)

    def __init__(self) -> None:
        self.parent: Element | None = None

    def detach(self) -> None:
        """Remove this node from its parent, if any."""
        if self.parent is not None:
            self.parent.remove(self)

    def replace_with(self, *nodes: Node) -> None:
        """Replace this node in its parent with *nodes* (in order)."""
        parent = self.parent
        if parent is None:
            msg = "Cannot replace a node that has no parent"
            raise ValueError(msg)
        position = parent.index(self)
        parent.remove(self)
        for offset, node in enumerate(nodes):
            parent.insert(position + offset, node)

    @property
    def text_content(self) -> str:
        raise NotImplementedError


class TextNode(Node):
    """A run of character data."""

    __slots__ = ("data",)

    def __init__(self, data: str) -> None:
        super().__init__()
        self.data = data

    def __repr__(self) -> str:
        return f"TextNode({self.data!r})"

    def __len__(self) -> int:
        return len(self.data)

    @property
    def text_content(self) -> str:
        return self.data

    def split(self, offset: int) -> TextNode:
        """Split at *offset*, keeping the head here and returning the new tail.

        The tail is inserted into the parent directly after this node.
        """
        if not 0 <= offset <= len(self.data):
            msg = f"Split offset {offset} outside text of length {len(self.data)}"
            raise ValueError(msg)
        tail = TextNode(self.data[offset:])
        self.data = self.data[:offset]
        if self.parent is not None:
            self.parent.insert(self.parent.index(self) + 1, tail)
        return tail


class Element(Node):
    """An element with a tag name, attributes and ordered children."""

    __slots__ = ("attrs", "children", "tag")

    def __init__(
        self,
        tag: str,
        attrs: dict[str, str] | None = None,
        children: list[Node] | None = None,
    ) -> None:
        super().__init__()
        self.tag = tag.lower()
        self.attrs: dict[str, str] = dict(attrs or {})
        self.children: list[Node] = []
        for child in children or ():
            self.append(child)

    def __repr__(self) -> str:
        return f"Element({self.tag!r}, children={len(self.children)})"

    @property
    def is_block(self) -> bool:
        return self.tag in BLOCK_TAGS

    @property
    def text_content(self) -> str:
        return "".join(
            node.data for node in self.iter() if isinstance(node, TextNode)
        )

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attrs.get(name, default)

    def append(self, child: Node) -> Node:
        return self.insert(len(self.children), child)

    def insert(self, index: int, child: Node) -> Node:
        child.detach()
        child.parent = self
        self.children.insert(index, child)
        return child

    def remove(self, child: Node) -> None:
        self.children.pop(self.index(child))
        child.parent = None

    def index(self, child: Node) -> int:
        # Identity, not equality: two text nodes with equal data are distinct.
        for position, candidate in enumerate(self.children):
            if candidate is child:
                return position
        msg = f"{child!r} is not a child of {self!r}"
        raise ValueError(msg)

    def iter(self) -> Iterator[Node]:
        """Yield this element and all descendants in document order."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, Element):
                stack.extend(reversed(node.children))

    def contains(self, node: Node) -> bool:
        """Return True when *node* is this element or one of its descendants."""
        current: Node | None = node
        while current is not None:
            if current is self:
                return True
            current = current.parent
        return False

    def normalize(self, *, deep: bool = True) -> None:
        """Merge adjacent text nodes and drop empty ones.

        Args:
            deep: Also normalise descendant elements.
        """
        merged: list[Node] = []
        for child in self.children:
            if isinstance(child, TextNode):
                if not child.data:
                    child.parent = None
                    continue
                previous = merged[-1] if merged else None
                if isinstance(previous, TextNode):
                    previous.data += child.data
                    child.parent = None
                    continue
            elif deep and isinstance(child, Element):
                child.normalize()
            merged.append(child)
        self.children = merged
