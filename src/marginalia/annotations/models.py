"""Annotation record model and stored-record parsing."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
    model_validator,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#ffeb3b"


class Annotation(BaseModel):
    """One persisted highlight over flattened document text.

    ``start_index``/``end_index`` form a half-open interval of flattened-text
    offsets.  Serialised with the camelCase aliases of the stored record
    shape (``startIndex``, ``endIndex``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    color: str = DEFAULT_COLOR
    preview: str = ""
    start_index: StrictInt = Field(alias="startIndex", ge=0)
    end_index: StrictInt = Field(alias="endIndex", ge=0)
    timestamp: int = 0

    @field_validator("color", mode="before")
    @classmethod
    def _blank_color_is_default(cls, value: Any) -> Any:
        return value or DEFAULT_COLOR

    @field_validator("timestamp", mode="before")
    @classmethod
    def _lenient_timestamp(cls, value: Any) -> int:
        # Display-only field: unparseable values become 0.
        if isinstance(value, bool):
            return 0
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0

    @model_validator(mode="after")
    def _non_empty_range(self) -> Annotation:
        if self.end_index <= self.start_index:
            msg = (
                f"endIndex ({self.end_index}) must be greater than "
                f"startIndex ({self.start_index})"
            )
            raise ValueError(msg)
        return self

    @property
    def length(self) -> int:
        return self.end_index - self.start_index

    def overlaps(self, start: int, end: int) -> bool:
        """Return True when ``[start, end)`` intersects this annotation."""
        return start < self.end_index and self.start_index < end

    def to_record(self) -> dict[str, Any]:
        """Return the stored record shape."""
        return self.model_dump(by_alias=True)


def parse_records(records: Iterable[Any]) -> tuple[list[Annotation], int]:
    """Validate stored records, dropping malformed ones.

    Args:
        records: Raw records as loaded from a store or import payload.

    Returns:
        ``(annotations, malformed_count)``; valid records keep their order.
    """
    annotations: list[Annotation] = []
    malformed = 0
    for position, record in enumerate(records):
        try:
            annotations.append(Annotation.model_validate(record))
        except ValidationError as exc:
            malformed += 1
            logger.warning(
                "Dropping malformed annotation record #%d: %s",
                position,
                exc.errors(include_url=False),
            )
    return annotations, malformed
