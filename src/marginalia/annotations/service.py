"""Host-facing highlight operations.

All state lives in an explicit ``AnnotationContext`` the host creates once
and passes to every call: the store, the generation guard, the active
document key and its annotation set, and the tree currently mounted by the
renderer.  Every capture and delete is persisted before the call returns.

Typical flow::

    set_active_document(ctx, key)
    token = begin_render(ctx)
    root = ...render...
    report = restore_after_render(ctx, token, root)
    annotation = capture(ctx, start, end, "#ffeb3b")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from marginalia.annotations.capture import capture_selection, new_annotation_id, now_ms
from marginalia.annotations.errors import NoActiveDocumentError, StaleGenerationError
from marginalia.annotations.generation import GenerationGuard
from marginalia.annotations.markers import marker_id, unwrap_markers
from marginalia.annotations.models import DEFAULT_COLOR, Annotation, parse_records
from marginalia.annotations.restore import RestoreReport
from marginalia.annotations.restore import restore_all as restore_tree
from marginalia.document.nodes import Element

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from marginalia.annotations.generation import GenerationToken
    from marginalia.annotations.offsets import LeafPosition
    from marginalia.config import Settings
    from marginalia.render import RenderedDocument
    from marginalia.store.base import AnnotationStore

logger = logging.getLogger(__name__)


@dataclass
class AnnotationContext:
    """Everything the highlight operations read and mutate.

    Attributes:
        store: Persistence backend for annotation sets.
        guard: Render generation tracker.
        default_color: Color used when a capture names none.
        preview_length: Characters of captured text kept as preview.
        marker_tag: Element name of highlight markers.
        marker_class: CSS class of highlight markers.
        id_factory: Produces new highlight ids.
        clock: Produces creation timestamps (epoch milliseconds).
        active_key: Key of the active document, if any.
        annotations: Active document's annotation set, in storage order.
        malformed_count: Records dropped when the active set was loaded.
        root: Tree mounted for the active document, if rendered.
        token: Generation the mounted tree belongs to.
    """

    store: AnnotationStore
    guard: GenerationGuard = field(default_factory=GenerationGuard)
    default_color: str = DEFAULT_COLOR
    preview_length: int = 50
    marker_tag: str = "mark"
    marker_class: str = "highlight-span"
    id_factory: Callable[[], str] = new_annotation_id
    clock: Callable[[], int] = now_ms
    active_key: str | None = None
    annotations: list[Annotation] = field(default_factory=list)
    malformed_count: int = 0
    root: Element | None = None
    token: GenerationToken | None = None

    @classmethod
    def from_settings(
        cls, store: AnnotationStore, settings: Settings, **overrides: Any
    ) -> AnnotationContext:
        """Build a context with marker and preview options from *settings*."""
        options: dict[str, Any] = {
            "default_color": settings.highlight.default_color,
            "preview_length": settings.highlight.preview_length,
            "marker_tag": settings.highlight.marker_tag,
            "marker_class": settings.highlight.marker_class,
        }
        options.update(overrides)
        return cls(store=store, **options)


def _dedupe(annotations: list[Annotation]) -> tuple[list[Annotation], int]:
    """Keep the first annotation per id; return the survivors and drop count."""
    seen: set[str] = set()
    kept: list[Annotation] = []
    for annotation in annotations:
        if annotation.id in seen:
            logger.warning("Dropping duplicate highlight id %s", annotation.id)
            continue
        seen.add(annotation.id)
        kept.append(annotation)
    return kept, len(annotations) - len(kept)


def _load(records: Iterable[Any]) -> tuple[list[Annotation], int]:
    annotations, malformed = parse_records(records)
    annotations, duplicates = _dedupe(annotations)
    return annotations, malformed + duplicates


def _persist(ctx: AnnotationContext) -> None:
    if ctx.active_key is None:
        msg = "No active document to persist highlights for"
        raise NoActiveDocumentError(msg)
    ctx.store.save(ctx.active_key, [a.to_record() for a in ctx.annotations])


def _require_mounted(ctx: AnnotationContext) -> Element:
    if ctx.active_key is None or ctx.root is None or ctx.token is None:
        msg = "No document is active and rendered; call set_active_document first"
        raise NoActiveDocumentError(msg)
    return ctx.root


# ---------------------------------------------------------------------------
# Document lifecycle
# ---------------------------------------------------------------------------


def set_active_document(ctx: AnnotationContext, key: str) -> list[Annotation]:
    """Make *key* the active document and load its annotation set.

    Malformed stored records are dropped (and counted).  Any previously
    mounted tree is forgotten; the next render must be mounted.
    """
    annotations, malformed = _load(ctx.store.load(key))
    ctx.active_key = key
    ctx.annotations = annotations
    ctx.malformed_count = malformed
    ctx.root = None
    ctx.token = None
    logger.info(
        "Active document %s: %d highlight(s), %d malformed record(s) dropped",
        key,
        len(annotations),
        malformed,
    )
    return list(annotations)


def begin_render(ctx: AnnotationContext) -> GenerationToken:
    """Record that a render of the active document has started."""
    if ctx.active_key is None:
        msg = "set_active_document must be called before rendering"
        raise NoActiveDocumentError(msg)
    ctx.root = None
    ctx.token = None
    return ctx.guard.begin(ctx.active_key)


def mount(ctx: AnnotationContext, token: GenerationToken, root: Element) -> bool:
    """Adopt *root* as the active tree if *token* is still current."""
    if not ctx.guard.is_current(token) or token.document_key != ctx.active_key:
        logger.debug(
            "Discarding render generation %d of %s (stale)",
            token.serial,
            token.document_key,
        )
        return False
    ctx.root = root
    ctx.token = token
    return True


# ---------------------------------------------------------------------------
# Capture / delete
# ---------------------------------------------------------------------------


def capture(
    ctx: AnnotationContext,
    start: LeafPosition,
    end: LeafPosition,
    color: str | None = None,
) -> Annotation:
    """Capture a selection of the mounted tree and persist it.

    Raises:
        NoActiveDocumentError: Nothing is mounted.
        CaptureError: The selection cannot be highlighted; nothing changed.
    """
    root = _require_mounted(ctx)
    annotation = capture_selection(
        root,
        start,
        end,
        color or ctx.default_color,
        existing=ctx.annotations,
        preview_length=ctx.preview_length,
        marker_tag=ctx.marker_tag,
        marker_class=ctx.marker_class,
        id_factory=ctx.id_factory,
        clock=ctx.clock,
    )
    ctx.annotations.append(annotation)
    try:
        _persist(ctx)
    except Exception:
        # Nothing may exist only in memory: undo the capture.
        ctx.annotations.pop()
        unwrap_markers(root, annotation.id)
        raise
    return annotation


def delete(ctx: AnnotationContext, annotation_id: str) -> bool:
    """Remove a highlight from the active set and unwrap its marker.

    Returns:
        False if the active set holds no highlight with that id.
    """
    if ctx.active_key is None:
        msg = "No active document"
        raise NoActiveDocumentError(msg)

    remaining = [a for a in ctx.annotations if a.id != annotation_id]
    if len(remaining) == len(ctx.annotations):
        return False

    # Save first: a failed save must leave the set and the tree as they were.
    ctx.store.save(ctx.active_key, [a.to_record() for a in remaining])
    ctx.annotations = remaining
    if ctx.root is not None:
        unwrap_markers(ctx.root, annotation_id)
    logger.info("Deleted highlight %s from %s", annotation_id, ctx.active_key)
    return True


def delete_marker(ctx: AnnotationContext, marker: Element) -> bool:
    """``delete`` for the highlight a marker element belongs to."""
    annotation_id = marker_id(marker)
    if annotation_id is None:
        msg = f"{marker!r} is not a highlight marker"
        raise ValueError(msg)
    return delete(ctx, annotation_id)


# ---------------------------------------------------------------------------
# Restoration
# ---------------------------------------------------------------------------


def restore_all(ctx: AnnotationContext) -> RestoreReport:
    """Re-apply the active set to the mounted tree.

    A restoration for a render that has since been superseded is a silent
    no-op (``report.aborted``).

    Raises:
        NoActiveDocumentError: Nothing is mounted.
    """
    root = _require_mounted(ctx)
    token = ctx.token
    if token is None:
        msg = "No render generation mounted"
        raise NoActiveDocumentError(msg)
    try:
        report = restore_tree(
            root,
            ctx.annotations,
            guard=ctx.guard,
            token=token,
            marker_tag=ctx.marker_tag,
            marker_class=ctx.marker_class,
        )
    except StaleGenerationError:
        logger.debug("Skipping restoration of stale generation %d", token.serial)
        return RestoreReport.aborted_report()
    report.malformed_count = ctx.malformed_count
    return report


def restore_after_render(
    ctx: AnnotationContext, token: GenerationToken, root: Element
) -> RestoreReport:
    """Mount *root* for *token* and restore, unless the token went stale."""
    if not mount(ctx, token, root):
        return RestoreReport.aborted_report()
    return restore_all(ctx)


async def restore_when_rendered(
    ctx: AnnotationContext,
    token: GenerationToken,
    rendered: Awaitable[Element | RenderedDocument],
) -> RestoreReport:
    """Wait for the render to complete, then check the token and restore.

    If another render started while waiting (the user switched documents),
    nothing is mounted or restored.
    """
    result = await rendered
    root = result if isinstance(result, Element) else result.root
    return restore_after_render(ctx, token, root)


# ---------------------------------------------------------------------------
# Export / import
# ---------------------------------------------------------------------------


def get_all(ctx: AnnotationContext, key: str) -> list[Annotation]:
    """Return a copy of the annotation set stored for *key*."""
    if key == ctx.active_key:
        return list(ctx.annotations)
    annotations, _malformed = _load(ctx.store.load(key))
    return annotations


def import_all(
    ctx: AnnotationContext, key: str, records: Iterable[Any]
) -> RestoreReport | None:
    """Replace the annotation set of *key* wholesale.

    Records may be ``Annotation`` objects or stored-shape dicts; malformed
    ones and repeated ids are dropped.  When *key* is the active document
    and a tree is mounted, the new set is restored immediately.

    Returns:
        The restoration report, or None if no restoration ran.
    """
    annotations, dropped = _load(
        a.to_record() if isinstance(a, Annotation) else a for a in records
    )
    ctx.store.save(key, [a.to_record() for a in annotations])
    logger.info(
        "Imported %d highlight(s) for %s (%d dropped)", len(annotations), key, dropped
    )

    if key != ctx.active_key:
        return None
    ctx.annotations = annotations
    ctx.malformed_count = dropped
    if ctx.root is None or ctx.token is None:
        return None
    return restore_all(ctx)
