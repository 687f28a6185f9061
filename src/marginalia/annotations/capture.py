"""Turn a live selection into a stored highlight.

The selection arrives as two leaf positions in the mounted tree.  It is
converted to flattened-text offsets (the only coordinates that survive a
re-render), checked, and wrapped in a marker.  Any failure raises a
``CaptureError`` subclass and leaves the tree untouched.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING
from uuid import uuid4

from marginalia.annotations.errors import (
    EmptySelectionError,
    OverlappingSelectionError,
)
from marginalia.annotations.markers import make_marker, wrap_range
from marginalia.annotations.models import Annotation
from marginalia.annotations.offsets import locate, position_index

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from marginalia.annotations.offsets import LeafPosition
    from marginalia.document.nodes import Element


logger = logging.getLogger(__name__)


def new_annotation_id() -> str:
    return uuid4().hex


def now_ms() -> int:
    return int(time.time() * 1000)


def check_overlap(
    start_index: int, end_index: int, existing: Iterable[Annotation]
) -> None:
    """Raise ``OverlappingSelectionError`` if the range hits an existing one."""
    for annotation in existing:
        if annotation.overlaps(start_index, end_index):
            raise OverlappingSelectionError(start_index, end_index, annotation.id)


def capture_selection(
    root: Element,
    start: LeafPosition,
    end: LeafPosition,
    color: str,
    *,
    existing: Iterable[Annotation] = (),
    preview_length: int = 50,
    marker_tag: str = "mark",
    marker_class: str = "highlight-span",
    id_factory: Callable[[], str] = new_annotation_id,
    clock: Callable[[], int] = now_ms,
) -> Annotation:
    """Capture the selection ``[start, end)`` in *root* as a highlight.

    Args:
        root: The mounted document tree.
        start: Selection start (leaf, offset).
        end: Selection end (leaf, offset), exclusive.
        color: Style token stored with the highlight.
        existing: Highlights already on this document; overlaps are refused.
        preview_length: Characters of captured text kept as a preview.
        marker_tag: Element name of the marker.
        marker_class: CSS class of the marker.
        id_factory: Produces the new highlight id.
        clock: Produces the creation timestamp (epoch milliseconds).

    Returns:
        The new Annotation.  Persisting it is the caller's job.

    Raises:
        EmptySelectionError: The selection is empty or inverted.
        OverlappingSelectionError: The selection overlaps a highlight.
        StructuralSpanError: The selection crosses element boundaries.
        ValueError: A boundary is not a text position under *root*.
    """
    start_index = position_index(root, start)
    end_index = position_index(root, end)
    if end_index <= start_index:
        raise EmptySelectionError(start_index, end_index)

    check_overlap(start_index, end_index, existing)

    # Re-resolve so boundaries sitting on leaf junctions normalise the same
    # way they will on restoration.
    resolved_start = locate(root, start_index)
    resolved_end = locate(root, end_index, prefer_end=True)
    if resolved_start is None or resolved_end is None:
        msg = f"Offsets [{start_index}, {end_index}) not found in document"
        raise ValueError(msg)

    annotation_id = id_factory()
    marker = wrap_range(
        resolved_start,
        resolved_end,
        make_marker(annotation_id, color, tag=marker_tag, css_class=marker_class),
    )

    text = marker.text_content
    annotation = Annotation(
        id=annotation_id,
        color=color,
        preview=text[:preview_length],
        start_index=start_index,
        end_index=end_index,
        timestamp=clock(),
    )
    logger.info(
        "Captured highlight %s [%d, %d) %r",
        annotation.id,
        start_index,
        end_index,
        annotation.preview,
    )
    return annotation
