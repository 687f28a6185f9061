"""Render generation tracking.

Every render of a document gets a fresh token.  Restoration is only
allowed to land on the tree produced by the render whose token is still
current; a restoration queued for a document the user has since left is
discarded instead of being projected onto someone else's text.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass

from marginalia.annotations.errors import StaleGenerationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GenerationToken:
    """Identity of one render instance of one document."""

    document_key: str
    serial: int


class GenerationGuard:
    """Tracks the active document key and the current render token."""

    def __init__(self) -> None:
        self._serials = itertools.count(1)
        self._current: GenerationToken | None = None

    @property
    def current(self) -> GenerationToken | None:
        return self._current

    def begin(self, document_key: str) -> GenerationToken:
        """Start a new render of *document_key*, superseding older tokens."""
        token = GenerationToken(document_key, next(self._serials))
        if self._current is not None:
            logger.debug(
                "Generation %d (%s) superseded by %d (%s)",
                self._current.serial,
                self._current.document_key,
                token.serial,
                document_key,
            )
        self._current = token
        return token

    def is_current(self, token: GenerationToken) -> bool:
        return token == self._current

    def check(self, token: GenerationToken) -> None:
        """Raise ``StaleGenerationError`` unless *token* is current."""
        if not self.is_current(token):
            msg = (
                f"Render generation {token.serial} of {token.document_key!r} "
                "is no longer current"
            )
            raise StaleGenerationError(msg)
