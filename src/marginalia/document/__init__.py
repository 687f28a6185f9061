"""Document tree model and HTML adapter."""

from marginalia.document.html import STRIP_TAGS, parse_html, to_html
from marginalia.document.identity import document_key
from marginalia.document.nodes import BLOCK_TAGS, Element, Node, TextNode

__all__ = [
    "BLOCK_TAGS",
    "STRIP_TAGS",
    "Element",
    "Node",
    "TextNode",
    "document_key",
    "parse_html",
    "to_html",
]
