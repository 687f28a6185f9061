"""Tests for open_document(): render, then restore."""

from __future__ import annotations

import asyncio

import pytest

from marginalia.annotations import AnnotationContext, capture, flatten
from marginalia.annotations.markers import find_markers, marker_id
from marginalia.document import document_key, to_html
from marginalia.reader import open_document
from marginalia.store import MemoryStore
from tests.unit.conftest import SAMPLE_TEXT, at

MARKDOWN = "# Notes\n\nHello **world**, and more text.\n"


class TestOpenDocument:
    @pytest.mark.asyncio
    async def test_text_round_trip(self, ctx: AnnotationContext) -> None:
        opened = await open_document(ctx, "notes.txt", SAMPLE_TEXT)
        assert opened.key == document_key("notes.txt", SAMPLE_TEXT)
        assert opened.rendered.mode == "text"
        assert ctx.root is opened.rendered.root

        root = opened.rendered.root
        capture(ctx, at(root, 6), at(root, 11, prefer_end=True))
        captured = to_html(root)

        reopened = await open_document(ctx, "notes.txt", SAMPLE_TEXT)
        assert reopened.report.success_count == 1
        assert to_html(reopened.rendered.root) == captured

    @pytest.mark.asyncio
    async def test_markdown_round_trip(self, ctx: AnnotationContext) -> None:
        opened = await open_document(ctx, "notes.md", MARKDOWN)
        assert opened.rendered.mode == "markdown"
        root = opened.rendered.root
        start = flatten(root).index("world")
        annotation = capture(
            ctx, at(root, start), at(root, start + 5, prefer_end=True)
        )
        assert annotation.preview == "world"

        reopened = await open_document(ctx, "notes.md", MARKDOWN)
        assert reopened.report.success_count == 1
        (marker,) = find_markers(reopened.rendered.root)
        assert marker.text_content == "world"

    @pytest.mark.asyncio
    async def test_shared_store_between_contexts(self, store: MemoryStore) -> None:
        first = AnnotationContext(store=store)
        opened = await open_document(first, "notes.txt", SAMPLE_TEXT)
        root = opened.rendered.root
        annotation = capture(first, at(root, 0), at(root, 5, prefer_end=True))

        second = AnnotationContext(store=store)
        reopened = await open_document(second, "notes.txt", SAMPLE_TEXT)
        markers = find_markers(reopened.rendered.root)
        assert [marker_id(m) for m in markers] == [annotation.id]

    @pytest.mark.asyncio
    async def test_edited_file_gets_new_key(self, ctx: AnnotationContext) -> None:
        opened = await open_document(ctx, "notes.txt", SAMPLE_TEXT)
        root = opened.rendered.root
        capture(ctx, at(root, 0), at(root, 5, prefer_end=True))

        edited = await open_document(ctx, "notes.txt", "Changed. " + SAMPLE_TEXT)
        assert edited.key != opened.key
        assert edited.report.success_count == 0
        assert find_markers(edited.rendered.root) == []

    @pytest.mark.asyncio
    async def test_concurrent_opens_last_one_wins(
        self, ctx: AnnotationContext, store: MemoryStore
    ) -> None:
        store.save(
            document_key("a.txt", SAMPLE_TEXT),
            [
                {
                    "id": "from-a",
                    "color": "#ffeb3b",
                    "startIndex": 0,
                    "endIndex": 5,
                }
            ],
        )
        first, second = await asyncio.gather(
            open_document(ctx, "a.txt", SAMPLE_TEXT),
            open_document(ctx, "b.txt", "Other text."),
        )
        assert first.report.aborted
        assert not second.report.aborted
        assert ctx.active_key == second.key
        assert find_markers(first.rendered.root) == []
