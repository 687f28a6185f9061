"""Tests for the mutable document tree."""

from __future__ import annotations

import pytest

from marginalia.document import Element, TextNode


def _paragraph() -> tuple[Element, TextNode, Element, TextNode]:
    hello = TextNode("Hello ")
    world = TextNode("world")
    bold = Element("b", children=[world])
    para = Element("p", children=[hello, bold])
    return para, hello, bold, world


class TestTreeStructure:
    """Parent links and child bookkeeping."""

    def test_append_sets_parent(self) -> None:
        para, hello, bold, world = _paragraph()
        assert hello.parent is para
        assert bold.parent is para
        assert world.parent is bold

    def test_insert_moves_node_between_parents(self) -> None:
        """Inserting an attached node detaches it from its old parent."""
        para, hello, bold, _world = _paragraph()
        bold.insert(0, hello)
        assert hello.parent is bold
        assert para.children == [bold]

    def test_index_is_by_identity(self) -> None:
        """Equal text in distinct nodes is never confused."""
        a, b = TextNode("x"), TextNode("x")
        parent = Element("span", children=[a, b])
        assert parent.index(b) == 1

    def test_index_of_foreign_node_raises(self) -> None:
        para, *_ = _paragraph()
        with pytest.raises(ValueError, match="not a child"):
            para.index(TextNode("stray"))

    def test_iter_is_document_order(self) -> None:
        para, hello, bold, world = _paragraph()
        assert list(para.iter()) == [para, hello, bold, world]

    def test_text_content(self) -> None:
        para, *_ = _paragraph()
        assert para.text_content == "Hello world"

    def test_replace_with_multiple_nodes(self) -> None:
        para, hello, bold, world = _paragraph()
        bold.replace_with(world)
        assert para.children == [hello, world]
        assert world.parent is para
        assert bold.parent is None

    def test_replace_detached_node_raises(self) -> None:
        with pytest.raises(ValueError):
            TextNode("x").replace_with(TextNode("y"))

    def test_contains(self) -> None:
        para, _hello, bold, world = _paragraph()
        assert para.contains(world)
        assert not bold.contains(para)

    def test_is_block(self) -> None:
        assert Element("p").is_block
        assert Element("DIV").is_block
        assert not Element("b").is_block
        assert not Element("mark").is_block


class TestSplit:
    """TextNode.split()."""

    def test_split_inserts_tail_after_head(self) -> None:
        para, hello, bold, _ = _paragraph()
        tail = hello.split(2)
        assert hello.data == "He"
        assert tail.data == "llo "
        assert para.children == [hello, tail, bold]

    def test_split_at_edges_creates_empty_node(self) -> None:
        node = TextNode("abc")
        Element("span", children=[node])
        assert node.split(3).data == ""
        assert node.data == "abc"

    def test_split_out_of_range_raises(self) -> None:
        with pytest.raises(ValueError):
            TextNode("abc").split(4)


class TestNormalize:
    """Element.normalize() merges text like DOM normalize()."""

    def test_merges_adjacent_text(self) -> None:
        span = Element("span", children=[TextNode("a"), TextNode("b"), TextNode("c")])
        span.normalize()
        assert len(span.children) == 1
        assert span.text_content == "abc"

    def test_drops_empty_text(self) -> None:
        span = Element("span", children=[TextNode(""), Element("i"), TextNode("")])
        span.normalize()
        assert [child.__class__ for child in span.children] == [Element]

    def test_shallow_leaves_descendants(self) -> None:
        inner = Element("i", children=[TextNode("a"), TextNode("b")])
        outer = Element("span", children=[inner])
        outer.normalize(deep=False)
        assert len(inner.children) == 2
        outer.normalize()
        assert len(inner.children) == 1
