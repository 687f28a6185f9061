"""Exception hierarchy for highlight capture and restoration."""

from __future__ import annotations


class AnnotationError(Exception):
    """Base class for all highlight errors."""


class CaptureError(AnnotationError):
    """A selection could not be captured.  No state was changed."""


class EmptySelectionError(CaptureError):
    """The selection is zero-length or inverted."""

    def __init__(self, start_index: int, end_index: int) -> None:
        self.start_index = start_index
        self.end_index = end_index
        super().__init__(
            f"Selection [{start_index}, {end_index}) is empty; select some text first"
        )


class StructuralSpanError(CaptureError):
    """The range does not form one contiguous, wrappable inline span."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            f"Selection crosses a block or element boundary ({reason}); "
            "try selecting a smaller span within one paragraph"
        )


class OverlappingSelectionError(CaptureError):
    """The selection intersects an existing highlight."""

    def __init__(self, start_index: int, end_index: int, existing_id: str) -> None:
        self.start_index = start_index
        self.end_index = end_index
        self.existing_id = existing_id
        super().__init__(
            f"Selection [{start_index}, {end_index}) overlaps highlight {existing_id}"
        )


class NoActiveDocumentError(AnnotationError):
    """No document is active and mounted."""


class StaleGenerationError(AnnotationError):
    """A restoration was requested for a render that is no longer current."""


class MissingDocumentError(AnnotationError):
    """Restoration was requested without a document tree."""
