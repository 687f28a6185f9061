"""Render pipeline: raw text or markdown to a document tree.

Markdown files go through markdown2 with ``safe_mode="escape"`` (raw HTML
in the source is escaped, not rendered) and are parsed into a tree.  Any
other file is shown verbatim as a single text node.  Highlights captured
on one style of render only restore onto the same style, because the two
produce different flattened text for the same source.
"""

# Pattern: Imperative Shell (async entry point around pure renderers)

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

import markdown2

from marginalia.document.html import parse_html
from marginalia.document.nodes import Element, TextNode

logger = logging.getLogger(__name__)

RenderMode = Literal["markdown", "text"]
WrapMode = Literal["auto", "original"]

_VIEWER_CLASS = "viewer-content"


@dataclass(frozen=True)
class RenderedDocument:
    """A rendered tree and the pipeline style that produced it."""

    root: Element
    mode: RenderMode


def is_markdown_name(name: str, extensions: tuple[str, ...] = (".md",)) -> bool:
    return name.lower().endswith(tuple(ext.lower() for ext in extensions))


def render_markdown(content: str) -> Element:
    """Render markdown source into a viewer root element."""
    html = markdown2.markdown(content, safe_mode="escape")
    root = parse_html(str(html))
    root.attrs = {
        "class": f"{_VIEWER_CLASS} markdown-mode",
        "style": "white-space: normal",
    }
    return root


def render_text(content: str, wrap_mode: WrapMode = "auto") -> Element:
    """Show *content* verbatim.

    ``original`` keeps the source line breaks only (``white-space: pre``);
    ``auto`` also wraps long lines (``pre-wrap``).
    """
    white_space = "pre" if wrap_mode == "original" else "pre-wrap"
    root = Element(
        "div", {"class": _VIEWER_CLASS, "style": f"white-space: {white_space}"}
    )
    if content:
        root.append(TextNode(content))
    return root


def render_document(
    content: str,
    name: str,
    *,
    wrap_mode: WrapMode = "auto",
    markdown_extensions: tuple[str, ...] = (".md",),
) -> RenderedDocument:
    """Render *content*, choosing the pipeline from the file *name*.

    A markdown render that fails falls back to the verbatim text render so
    the document stays readable.
    """
    if is_markdown_name(name, markdown_extensions):
        try:
            return RenderedDocument(render_markdown(content), "markdown")
        except Exception:
            logger.exception("Markdown render of %s failed; showing plain text", name)
    return RenderedDocument(render_text(content, wrap_mode), "text")


async def render_document_async(
    content: str,
    name: str,
    *,
    wrap_mode: WrapMode = "auto",
    markdown_extensions: tuple[str, ...] = (".md",),
) -> RenderedDocument:
    """Render off the event loop; completion is the render-complete signal."""
    return await asyncio.to_thread(
        render_document,
        content,
        name,
        wrap_mode=wrap_mode,
        markdown_extensions=markdown_extensions,
    )
