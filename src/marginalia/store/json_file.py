"""JSON file backend: one object mapping document keys to record lists."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from marginalia.store.base import Record

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Persist all annotation sets in a single JSON document.

    Every save rewrites the file through a temporary sibling and
    ``os.replace`` so a crash mid-write never leaves a truncated file.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.exception(
                "Highlight store %s is corrupt; treating as empty", self.path
            )
            return {}
        if not isinstance(data, dict):
            logger.error(
                "Highlight store %s holds %s, expected an object; treating as empty",
                self.path,
                type(data).__name__,
            )
            return {}
        return data

    def load(self, key: str) -> list[Record]:
        records = self._read().get(key, [])
        if not isinstance(records, list):
            logger.error("Highlight set for %r is not a list; ignoring it", key)
            return []
        return records

    def save(self, key: str, records: list[Record]) -> None:
        data = self._read()
        data[key] = records
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved %d highlight(s) for %r to %s", len(records), key, self.path)

    def keys(self) -> list[str]:
        return list(self._read())
