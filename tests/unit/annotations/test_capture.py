"""Tests for capture_selection()."""

from __future__ import annotations

from typing import Any

import pytest

from marginalia.annotations.capture import capture_selection, check_overlap
from marginalia.annotations.errors import (
    CaptureError,
    EmptySelectionError,
    OverlappingSelectionError,
    StructuralSpanError,
)
from marginalia.annotations.markers import find_markers
from marginalia.annotations.models import Annotation
from marginalia.document import Element, TextNode, parse_html, to_html
from tests.unit.conftest import FIXED_TIMESTAMP, at


def _capture(root: Element, start: int, end: int, **kwargs: Any) -> Annotation:
    kwargs.setdefault("id_factory", lambda: "new")
    kwargs.setdefault("clock", lambda: FIXED_TIMESTAMP)
    return capture_selection(
        root, at(root, start), at(root, end, prefer_end=True), "#ff0", **kwargs
    )


class TestCaptureSelection:
    """Successful captures."""

    def test_records_offsets_and_preview(self, text_root: Element) -> None:
        annotation = _capture(text_root, 6, 11)
        assert annotation.id == "new"
        assert annotation.start_index == 6
        assert annotation.end_index == 11
        assert annotation.preview == "world"
        assert annotation.color == "#ff0"
        assert annotation.timestamp == FIXED_TIMESTAMP

    def test_wraps_exactly_the_selection(self, text_root: Element) -> None:
        _capture(text_root, 6, 11)
        (marker,) = find_markers(text_root, "new")
        assert marker.text_content == "world"
        assert text_root.text_content == "Hello world. This is a test."

    def test_preview_is_truncated(self) -> None:
        root = Element("div", children=[TextNode("x" * 80)])
        annotation = _capture(root, 0, 80, preview_length=10)
        assert annotation.preview == "x" * 10

    def test_marker_options(self, text_root: Element) -> None:
        _capture(text_root, 0, 5, marker_tag="span", marker_class="hl")
        (marker,) = find_markers(text_root)
        assert marker.tag == "span"
        assert marker.get("class") == "hl"

    def test_end_on_leaf_junction(self, inline_root: Element) -> None:
        """Selecting up to the start of <b> does not pull <b> in."""
        _capture(inline_root, 0, 6)
        (marker,) = find_markers(inline_root)
        assert marker.text_content == "Hello "

    def test_boundaries_from_raw_selection(self, inline_root: Element) -> None:
        """A selection ending at offset 0 of a later leaf is normalised."""
        world = at(inline_root, 6)
        assert world.node.data == "world"
        annotation = capture_selection(
            inline_root, at(inline_root, 0), world, "#ff0", id_factory=lambda: "new"
        )
        assert annotation.end_index == 6
        assert find_markers(inline_root)[0].text_content == "Hello "

    def test_adjacent_to_existing(self, text_root: Element) -> None:
        first = _capture(text_root, 0, 5)
        second = _capture(text_root, 5, 11, existing=[first])
        assert second.preview == " world"


class TestCaptureRefusals:
    """Refused captures raise and leave the tree alone."""

    def test_empty(self, text_root: Element) -> None:
        before = to_html(text_root)
        with pytest.raises(EmptySelectionError):
            capture_selection(text_root, at(text_root, 4), at(text_root, 4), "#ff0")
        assert to_html(text_root) == before

    def test_inverted(self, text_root: Element) -> None:
        with pytest.raises(EmptySelectionError) as excinfo:
            capture_selection(text_root, at(text_root, 9), at(text_root, 4), "#ff0")
        assert (excinfo.value.start_index, excinfo.value.end_index) == (9, 4)

    def test_overlap(self, text_root: Element) -> None:
        first = _capture(text_root, 6, 11)
        before = to_html(text_root)
        with pytest.raises(OverlappingSelectionError) as excinfo:
            _capture(text_root, 8, 15, existing=[first])
        assert excinfo.value.existing_id == "new"
        assert to_html(text_root) == before

    def test_structural(self) -> None:
        root = parse_html("<p>one</p><p>two</p>")
        before = to_html(root)
        with pytest.raises(StructuralSpanError):
            _capture(root, 1, 5)
        assert to_html(root) == before

    def test_errors_share_a_base(self) -> None:
        assert issubclass(EmptySelectionError, CaptureError)
        assert issubclass(OverlappingSelectionError, CaptureError)
        assert issubclass(StructuralSpanError, CaptureError)

    def test_messages_are_user_facing(self) -> None:
        assert "select some text" in str(EmptySelectionError(3, 3))
        assert "smaller span" in str(StructuralSpanError("x"))


class TestCheckOverlap:
    """check_overlap() uses half-open intervals."""

    @pytest.fixture
    def existing(self) -> list[Annotation]:
        return [Annotation(id="a", color="red", startIndex=5, endIndex=10)]

    @pytest.mark.parametrize(("start", "end"), [(0, 5), (10, 12)])
    def test_touching_is_allowed(
        self, existing: list[Annotation], start: int, end: int
    ) -> None:
        check_overlap(start, end, existing)

    @pytest.mark.parametrize(("start", "end"), [(4, 6), (9, 11), (6, 8), (0, 20)])
    def test_intersecting_is_refused(
        self, existing: list[Annotation], start: int, end: int
    ) -> None:
        with pytest.raises(OverlappingSelectionError):
            check_overlap(start, end, existing)
