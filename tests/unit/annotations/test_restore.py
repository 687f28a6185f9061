"""Tests for restore_all() over a tree.

Restoration must reproduce exactly the markers capture produced, survive a
full re-render, and skip (not abort on) highlights that no longer fit.
"""

from __future__ import annotations

import pytest

from marginalia.annotations.capture import capture_selection
from marginalia.annotations.errors import MissingDocumentError, StaleGenerationError
from marginalia.annotations.generation import GenerationGuard
from marginalia.annotations.markers import find_markers, make_marker, marker_id
from marginalia.annotations.models import Annotation
from marginalia.annotations.restore import (
    FailureReason,
    RestoreFailure,
    RestoreReport,
    restore_all,
)
from marginalia.document import Element, parse_html, to_html
from marginalia.render import render_text
from tests.unit.conftest import SAMPLE_KEY, SAMPLE_TEXT, at, record


def _annotation(annotation_id: str, start: int, end: int) -> Annotation:
    return Annotation.model_validate(record(annotation_id, start, end))


def _restore(root: Element | None, annotations: list[Annotation]) -> RestoreReport:
    guard = GenerationGuard()
    token = guard.begin(SAMPLE_KEY)
    return restore_all(root, annotations, guard=guard, token=token)


def _marked(root: Element) -> dict[str, str]:
    return {marker_id(m) or "": m.text_content for m in find_markers(root)}


class TestRestoreAll:
    """Happy paths."""

    def test_restores_onto_fresh_render(self, text_root: Element) -> None:
        report = _restore(text_root, [_annotation("a", 6, 11)])
        assert report.success_count == 1
        assert report.fail_count == 0
        assert _marked(text_root) == {"a": "world"}

    def test_document_edges(self, text_root: Element) -> None:
        report = _restore(
            text_root, [_annotation("head", 0, 5), _annotation("tail", 20, 28)]
        )
        assert report.success_count == 2
        assert _marked(text_root) == {"head": "Hello", "tail": " a test."}

    def test_matches_captured_markup(self) -> None:
        """Restoring into a new render yields the same HTML as capturing."""
        captured = render_text(SAMPLE_TEXT)
        capture_selection(
            captured,
            at(captured, 6),
            at(captured, 11, prefer_end=True),
            "#ffeb3b",
            id_factory=lambda: "a",
        )
        restored = render_text(SAMPLE_TEXT)
        _restore(restored, [_annotation("a", 6, 11)])
        assert to_html(restored) == to_html(captured)

    def test_idempotent(self, text_root: Element) -> None:
        annotations = [_annotation("a", 6, 11), _annotation("b", 13, 17)]
        _restore(text_root, annotations)
        once = to_html(text_root)
        report = _restore(text_root, annotations)
        assert report.success_count == 2
        assert to_html(text_root) == once

    def test_across_inline_elements(self, inline_root: Element) -> None:
        report = _restore(inline_root, [_annotation("a", 0, 11)])
        assert report.success_count == 1
        (marker,) = find_markers(inline_root)
        assert to_html(marker, include_self=False) == "Hello <b>world</b>"

    def test_empty_set(self, text_root: Element) -> None:
        report = _restore(text_root, [])
        assert report.success_count == 0
        assert report.failures == []

    def test_marker_options(self, text_root: Element) -> None:
        guard = GenerationGuard()
        token = guard.begin(SAMPLE_KEY)
        restore_all(
            text_root,
            [_annotation("a", 0, 5)],
            guard=guard,
            token=token,
            marker_tag="span",
            marker_class="hl",
        )
        (marker,) = find_markers(text_root)
        assert (marker.tag, marker.get("class")) == ("span", "hl")


class TestPartialFailure:
    """One bad highlight never blocks the others."""

    def test_out_of_range(self, text_root: Element) -> None:
        report = _restore(
            text_root, [_annotation("bad", 20, 40), _annotation("good", 0, 5)]
        )
        assert report.success_count == 1
        (failure,) = report.failures
        assert failure.annotation_id == "bad"
        assert failure.reason is FailureReason.RANGE_NOT_FOUND
        assert _marked(text_root) == {"good": "Hello"}

    def test_structural_span(self) -> None:
        root = parse_html("<p>one</p><p>two</p>")
        before = to_html(root)
        report = _restore(root, [_annotation("a", 1, 5)])
        assert report.success_count == 0
        assert report.failures[0].reason is FailureReason.STRUCTURAL_SPAN
        assert to_html(root) == before

    def test_overlap_keeps_first_in_storage_order(self, text_root: Element) -> None:
        report = _restore(
            text_root, [_annotation("first", 6, 11), _annotation("second", 8, 15)]
        )
        assert report.success_count == 1
        assert report.failures[0].annotation_id == "second"
        assert report.failures[0].reason is FailureReason.OVERLAP
        assert _marked(text_root) == {"first": "world"}

    def test_text_shrank_since_capture(self) -> None:
        annotation = _annotation("a", 20, 28)
        report = _restore(render_text("Hello"), [annotation])
        (failure,) = report.failures
        assert failure.reason is FailureReason.RANGE_NOT_FOUND
        assert "outside the document text" in failure.detail


class TestOrphans:
    """Markers for ids no longer in the set are removed."""

    def test_deleted_highlight_is_unwrapped(self, text_root: Element) -> None:
        _restore(text_root, [_annotation("a", 0, 5), _annotation("b", 6, 11)])
        _restore(text_root, [_annotation("b", 6, 11)])
        assert _marked(text_root) == {"b": "world"}
        assert text_root.text_content == SAMPLE_TEXT

    def test_nested_orphan(self) -> None:
        root = parse_html("<p>ab</p>")
        para = root.children[0]
        assert isinstance(para, Element)
        text = para.children[0]
        orphan = make_marker("gone", "red")
        text.replace_with(orphan)
        orphan.append(text)
        report = _restore(root, [])
        assert report.success_count == 0
        assert find_markers(root) == []
        assert to_html(root, include_self=False) == "<p>ab</p>"


class TestPreconditions:
    """Stale generations and missing trees raise."""

    def test_stale_token(self, text_root: Element) -> None:
        guard = GenerationGuard()
        stale = guard.begin(SAMPLE_KEY)
        guard.begin("other.txt:0000000000000000")
        with pytest.raises(StaleGenerationError):
            restore_all(text_root, [_annotation("a", 0, 5)], guard=guard, token=stale)
        assert find_markers(text_root) == []

    def test_missing_tree(self) -> None:
        with pytest.raises(MissingDocumentError):
            _restore(None, [_annotation("a", 0, 5)])


class TestRestoreReport:
    """Report serialisation."""

    def test_to_dict(self) -> None:
        report = RestoreReport(
            success_count=2,
            failures=[RestoreFailure("x", FailureReason.OVERLAP, "overlaps y")],
        )
        assert report.to_dict() == {
            "successCount": 2,
            "failCount": 1,
            "failures": [{"id": "x", "reason": "overlap", "detail": "overlaps y"}],
        }

    def test_aborted(self) -> None:
        report = RestoreReport.aborted_report()
        assert report.aborted
        assert report.success_count == 0
