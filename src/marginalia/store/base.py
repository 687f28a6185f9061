"""Store protocol and the in-memory backend."""

from __future__ import annotations

import copy
from typing import Any, Protocol

type Record = dict[str, Any]


class AnnotationStore(Protocol):
    """Key-value persistence of ordered annotation record lists.

    Keys are opaque document keys.  A missing key loads as an empty list.
    ``save`` replaces the whole list for the key.
    """

    def load(self, key: str) -> list[Record]: ...

    def save(self, key: str, records: list[Record]) -> None: ...


class MemoryStore:
    """Process-local store.  Records are copied in and out."""

    def __init__(self, initial: dict[str, list[Record]] | None = None) -> None:
        self._data: dict[str, list[Record]] = copy.deepcopy(initial or {})

    def load(self, key: str) -> list[Record]:
        return copy.deepcopy(self._data.get(key, []))

    def save(self, key: str, records: list[Record]) -> None:
        self._data[key] = copy.deepcopy(records)

    def keys(self) -> list[str]:
        return list(self._data)
