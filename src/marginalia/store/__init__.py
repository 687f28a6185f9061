"""Annotation set persistence backends."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from marginalia.store.base import AnnotationStore, MemoryStore, Record
from marginalia.store.json_file import JsonFileStore

if TYPE_CHECKING:
    from marginalia.config import Settings

logger = logging.getLogger(__name__)

__all__ = [
    "AnnotationStore",
    "JsonFileStore",
    "MemoryStore",
    "Record",
    "open_store",
]


def open_store(settings: Settings) -> AnnotationStore:
    """Build the store selected by ``settings.store.backend``."""
    backend = settings.store.backend
    if backend == "memory":
        store: AnnotationStore = MemoryStore()
    elif backend == "json":
        store = JsonFileStore(settings.store.path)
    else:
        from marginalia.store.sql import SqlStore

        store = SqlStore(settings.store.url)
    logger.info("Using %s highlight store", backend)
    return store
