"""Capture, persistence and restoration of text-range highlights."""

from marginalia.annotations.errors import (
    AnnotationError,
    CaptureError,
    EmptySelectionError,
    MissingDocumentError,
    NoActiveDocumentError,
    OverlappingSelectionError,
    StaleGenerationError,
    StructuralSpanError,
)
from marginalia.annotations.generation import GenerationGuard, GenerationToken
from marginalia.annotations.models import Annotation, parse_records
from marginalia.annotations.offsets import (
    LeafAccess,
    LeafPosition,
    flatten,
    index_of,
    iter_leaves,
    locate,
)
from marginalia.annotations.restore import FailureReason, RestoreFailure, RestoreReport
from marginalia.annotations.service import (
    AnnotationContext,
    begin_render,
    capture,
    delete,
    delete_marker,
    get_all,
    import_all,
    mount,
    restore_after_render,
    restore_all,
    restore_when_rendered,
    set_active_document,
)

__all__ = [
    "Annotation",
    "AnnotationContext",
    "AnnotationError",
    "CaptureError",
    "EmptySelectionError",
    "FailureReason",
    "GenerationGuard",
    "GenerationToken",
    "LeafAccess",
    "LeafPosition",
    "MissingDocumentError",
    "NoActiveDocumentError",
    "OverlappingSelectionError",
    "RestoreFailure",
    "RestoreReport",
    "StaleGenerationError",
    "StructuralSpanError",
    "begin_render",
    "capture",
    "delete",
    "delete_marker",
    "flatten",
    "get_all",
    "import_all",
    "index_of",
    "iter_leaves",
    "locate",
    "mount",
    "parse_records",
    "restore_after_render",
    "restore_all",
    "restore_when_rendered",
    "set_active_document",
]
