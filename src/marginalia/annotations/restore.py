"""Re-apply stored highlights to a freshly rendered tree.

Restoration is idempotent (markers for an id are removed before being
re-created) and tolerant of partial failure: an annotation whose offsets
no longer resolve, or whose span no longer has a wrappable shape, is
recorded in the report and the batch carries on.  Only precondition
violations (stale render, missing tree) raise.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from marginalia.annotations.errors import MissingDocumentError, StructuralSpanError
from marginalia.annotations.markers import (
    find_markers,
    make_marker,
    marker_id,
    unwrap_marker,
    unwrap_markers,
    wrap_range,
)
from marginalia.annotations.offsets import locate

if TYPE_CHECKING:
    from collections.abc import Sequence

    from marginalia.annotations.generation import GenerationGuard, GenerationToken
    from marginalia.annotations.models import Annotation
    from marginalia.document.nodes import Element

logger = logging.getLogger(__name__)


class FailureReason(enum.StrEnum):
    """Why a single highlight could not be restored."""

    RANGE_NOT_FOUND = "range_not_found"
    STRUCTURAL_SPAN = "structural_span"
    OVERLAP = "overlap"


@dataclass(frozen=True, slots=True)
class RestoreFailure:
    annotation_id: str
    reason: FailureReason
    detail: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.annotation_id,
            "reason": str(self.reason),
            "detail": self.detail,
        }


@dataclass
class RestoreReport:
    """Outcome of one ``restore_all`` batch."""

    success_count: int = 0
    failures: list[RestoreFailure] = field(default_factory=list)
    malformed_count: int = 0
    aborted: bool = False

    @property
    def fail_count(self) -> int:
        return len(self.failures)

    @classmethod
    def aborted_report(cls) -> RestoreReport:
        return cls(aborted=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "successCount": self.success_count,
            "failCount": self.fail_count,
            "failures": [failure.to_dict() for failure in self.failures],
        }


def _restore_one(
    root: Element,
    annotation: Annotation,
    applied: list[Annotation],
    *,
    marker_tag: str,
    marker_class: str,
) -> RestoreFailure | None:
    unwrap_markers(root, annotation.id)

    for other in applied:
        if other.overlaps(annotation.start_index, annotation.end_index):
            return RestoreFailure(
                annotation.id,
                FailureReason.OVERLAP,
                f"overlaps {other.id}, restored earlier",
            )

    start = locate(root, annotation.start_index)
    end = locate(root, annotation.end_index, prefer_end=True)
    if start is None or end is None:
        return RestoreFailure(
            annotation.id,
            FailureReason.RANGE_NOT_FOUND,
            f"[{annotation.start_index}, {annotation.end_index}) "
            "is outside the document text",
        )
    if start.node is end.node and start.offset >= end.offset:
        return RestoreFailure(
            annotation.id,
            FailureReason.RANGE_NOT_FOUND,
            "range collapses to zero length",
        )

    marker = make_marker(
        annotation.id, annotation.color, tag=marker_tag, css_class=marker_class
    )
    try:
        wrap_range(start, end, marker)
    except StructuralSpanError as exc:
        return RestoreFailure(annotation.id, FailureReason.STRUCTURAL_SPAN, str(exc))
    return None


def restore_all(
    root: Element | None,
    annotations: Sequence[Annotation],
    *,
    guard: GenerationGuard,
    token: GenerationToken,
    marker_tag: str = "mark",
    marker_class: str = "highlight-span",
) -> RestoreReport:
    """Apply *annotations* to *root*, in storage order.

    Markers already in the tree for ids not in *annotations* are unwrapped
    first, so deleted highlights never linger.

    Raises:
        StaleGenerationError: *token* is not the current render.
        MissingDocumentError: *root* is None.
    """
    guard.check(token)
    if root is None:
        msg = f"No document tree mounted for {token.document_key!r}"
        raise MissingDocumentError(msg)

    known = {annotation.id for annotation in annotations}
    for orphan in find_markers(root):
        if marker_id(orphan) not in known and orphan.parent is not None:
            unwrap_marker(orphan)

    report = RestoreReport()
    applied: list[Annotation] = []
    for annotation in annotations:
        failure = _restore_one(
            root,
            annotation,
            applied,
            marker_tag=marker_tag,
            marker_class=marker_class,
        )
        if failure is None:
            applied.append(annotation)
            report.success_count += 1
        else:
            logger.warning(
                "Highlight %s not restored (%s): %s",
                failure.annotation_id,
                failure.reason,
                failure.detail,
            )
            report.failures.append(failure)

    logger.info(
        "Restored %d/%d highlights for %s (generation %d)",
        report.success_count,
        len(annotations),
        token.document_key,
        token.serial,
    )
    return report
