"""Shared fixtures for unit tests."""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

import pytest

from marginalia.annotations import (
    AnnotationContext,
    begin_render,
    mount,
    set_active_document,
)
from marginalia.annotations.offsets import LeafPosition, locate
from marginalia.document import parse_html
from marginalia.render import render_text
from marginalia.store import MemoryStore

if TYPE_CHECKING:
    from marginalia.annotations import GenerationToken
    from marginalia.document import Element

SAMPLE_TEXT = "Hello world. This is a test."
SAMPLE_KEY = "sample.txt:0123456789abcdef"
FIXED_TIMESTAMP = 1_700_000_000_000


def at(root: Element, offset: int, *, prefer_end: bool = False) -> LeafPosition:
    """Resolve a flattened offset, failing the test if it is not found."""
    position = locate(root, offset, prefer_end=prefer_end)
    assert position is not None, f"offset {offset} not found"
    return position


def record(
    annotation_id: str, start: int, end: int, color: str = "#ffeb3b"
) -> dict[str, object]:
    """A stored-shape annotation record."""
    return {
        "id": annotation_id,
        "color": color,
        "preview": "",
        "startIndex": start,
        "endIndex": end,
        "timestamp": FIXED_TIMESTAMP,
    }


def open_mounted(
    ctx: AnnotationContext, key: str, root: Element
) -> GenerationToken:
    """Activate *key*, start a render and mount *root* for it."""
    set_active_document(ctx, key)
    token = begin_render(ctx)
    assert mount(ctx, token, root)
    return token


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def ctx(store: MemoryStore) -> AnnotationContext:
    """Context with deterministic ids (hl-1, hl-2, ...) and a fixed clock."""
    counter = itertools.count(1)
    return AnnotationContext(
        store=store,
        id_factory=lambda: f"hl-{next(counter)}",
        clock=lambda: FIXED_TIMESTAMP,
    )


@pytest.fixture
def text_root() -> Element:
    """Verbatim render of SAMPLE_TEXT."""
    return render_text(SAMPLE_TEXT)


@pytest.fixture
def inline_root() -> Element:
    """A paragraph with inline formatting: ``Hello <b>world</b>!``."""
    return parse_html("<p>Hello <b>world</b>!</p>")
