"""Stable document keys."""

from __future__ import annotations

import hashlib
from pathlib import PurePath


def document_key(name: str, content: str | bytes) -> str:
    """Derive the key a document's highlights are stored under.

    The key combines the file's base name with a content digest, so the
    same file opened from a different folder shares its highlights while
    an edited file (whose offsets would no longer line up) does not.
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    digest = hashlib.sha256(data).hexdigest()[:16]
    return f"{PurePath(name).name}:{digest}"
