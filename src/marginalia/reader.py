"""Open a document: activate its key, render it, restore its highlights."""

# Pattern: Imperative Shell

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from marginalia.annotations.service import (
    begin_render,
    restore_after_render,
    set_active_document,
)
from marginalia.document.identity import document_key
from marginalia.render import render_document_async

if TYPE_CHECKING:
    from marginalia.annotations.restore import RestoreReport
    from marginalia.annotations.service import AnnotationContext
    from marginalia.render import RenderedDocument, WrapMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenedDocument:
    key: str
    rendered: RenderedDocument
    report: RestoreReport


async def open_document(
    ctx: AnnotationContext,
    name: str,
    content: str,
    *,
    key: str | None = None,
    wrap_mode: WrapMode = "auto",
    markdown_extensions: tuple[str, ...] = (".md",),
) -> OpenedDocument:
    """Render *content* and re-apply its stored highlights.

    The render is awaited before restoring.  If another document is opened
    on the same context meanwhile, this call's restoration is dropped
    (``report.aborted``) and its tree is never mounted.
    """
    key = key or document_key(name, content)
    set_active_document(ctx, key)
    token = begin_render(ctx)

    rendered = await render_document_async(
        content,
        name,
        wrap_mode=wrap_mode,
        markdown_extensions=markdown_extensions,
    )
    report = restore_after_render(ctx, token, rendered.root)
    if report.aborted:
        logger.info("Highlights for %s not restored: a newer render took over", name)
    return OpenedDocument(key, rendered, report)
