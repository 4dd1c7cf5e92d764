"""Tests for the IR node types and the normalization pass."""

import dataclasses

import pytest

from docmorph.formatting.ir import (
    BLOCK_TYPES,
    INLINE_TYPES,
    CodeSpan,
    Document,
    Emphasis,
    Heading,
    Image,
    LineBreak,
    Link,
    ListBlock,
    ListItem,
    Paragraph,
    Strong,
    Table,
    TableAlignment,
    TableCell,
    TableRow,
    Text,
    Underline,
)
from docmorph.formatting.normalize import normalize, normalize_inlines

from conftest import para, row


class TestNodes:
    """Tests for the node dataclasses."""

    def test_tags(self):
        """Each node type reports its serialized tag."""
        assert ListBlock.tag == "List"
        assert Paragraph.tag == "Paragraph"
        assert Strong.tag == "Strong"
        assert set(BLOCK_TYPES) == {
            "Paragraph",
            "Heading",
            "List",
            "Blockquote",
            "CodeBlock",
            "HorizontalRule",
            "Table",
        }
        assert "Image" in INLINE_TYPES
        assert "LineBreak" in INLINE_TYPES

    def test_nodes_are_frozen(self):
        """Nodes cannot be mutated in place."""
        text = Text(text="a")
        with pytest.raises(dataclasses.FrozenInstanceError):
            text.text = "b"

    def test_equality_is_structural(self):
        """Equal content compares equal; differing node kinds do not."""
        assert Strong(inlines=[Text(text="x")]) == Strong(inlines=[Text(text="x")])
        assert Strong(inlines=[Text(text="x")]) != Emphasis(inlines=[Text(text="x")])

    def test_with_inlines_keeps_fields(self):
        """Rebuilding a container keeps its own attributes."""
        link = Link(href="https://example.com", inlines=[Text(text="a")])
        rebuilt = link.with_inlines([Text(text="b")])
        assert rebuilt == Link(href="https://example.com", inlines=[Text(text="b")])

    def test_plain_text(self):
        """Plain text flattens formatting and uses image alt text."""
        paragraph = para(
            Text(text="a "),
            Strong(inlines=[Emphasis(inlines=[Text(text="b")])]),
            LineBreak(),
            CodeSpan(text="c"),
            Image(src="x.png", alt="pic"),
            Underline(inlines=[Text(text="d")]),
        )
        assert paragraph.plain_text == "a b\ncpicd"

    def test_document_plain_text(self):
        """Document plain text joins top-level paragraphs and headings."""
        doc = Document(
            blocks=[
                Heading(level=1, inlines=[Text(text="T")]),
                para(Text(text="body")),
                ListBlock(items=[ListItem(blocks=[para(Text(text="skipped"))])]),
            ]
        )
        assert doc.plain_text == "T\n\nbody"

    def test_table_rows_and_columns(self):
        """Header row comes first and column count is the widest row."""
        table = Table(header_row=row("a", "b"), rows=[row("c"), row("d", "e", "f")])
        assert table.all_rows[0] == row("a", "b")
        assert len(table.all_rows) == 3
        assert table.column_count == 3

    def test_alignment_values(self):
        """Alignments serialize as lowercase strings."""
        assert TableAlignment("center") is TableAlignment.CENTER
        assert TableAlignment.RIGHT.value == "right"


class TestNormalize:
    """Tests for the canonicalization pass."""

    def test_merges_adjacent_text(self):
        """Adjacent Text runs merge left to right."""
        merged = normalize_inlines([Text(text="a"), Text(text="b"), Text(text="c")])
        assert merged == [Text(text="abc")]

    def test_drops_empty_text(self):
        """Empty Text runs disappear."""
        merged = normalize_inlines([Text(text=""), Strong(inlines=[Text(text="")])])
        assert merged == [Strong(inlines=[])]

    def test_other_nodes_break_merge_chain(self):
        """Text on either side of another node stays separate."""
        inlines = [Text(text="a"), LineBreak(), Text(text="b")]
        assert normalize_inlines(inlines) == inlines

    def test_normalizes_inside_containers(self):
        """Container children are normalized before their parent."""
        merged = normalize_inlines(
            [
                Strong(inlines=[Text(text="x"), Text(text="y")]),
                Text(text="z"),
                Text(text=""),
            ]
        )
        assert merged == [Strong(inlines=[Text(text="xy")]), Text(text="z")]

    def test_empty_list_item(self):
        """An empty list item holds exactly one empty paragraph."""
        doc = normalize(Document(blocks=[ListBlock(items=[ListItem(blocks=[])])]))
        assert doc.blocks[0].items[0].blocks == [Paragraph(inlines=[])]

    def test_empty_table_cell(self):
        """An empty table cell holds exactly one empty paragraph."""
        table = Table(rows=[TableRow(cells=[TableCell(blocks=[])])])
        doc = normalize(Document(blocks=[table]))
        assert doc.blocks[0].rows[0].cells[0].blocks == [Paragraph(inlines=[])]

    def test_idempotent(self, sample_document, assert_merged):
        """Normalizing twice gives the same tree as normalizing once."""
        messy = Document(
            blocks=[
                para(Text(text="a"), Text(text=""), Text(text="b")),
                ListBlock(
                    items=[
                        ListItem(blocks=[]),
                        ListItem(blocks=[para(Text(text="x"), Text(text="y"))]),
                    ]
                ),
                *sample_document.blocks,
            ]
        )
        once = normalize(messy)
        assert normalize(once) == once
        assert_merged(once)

    def test_does_not_modify_input(self):
        """The input tree is left as it was."""
        original = Document(blocks=[para(Text(text="a"), Text(text="b"))])
        normalize(original)
        assert original.blocks[0].inlines == [Text(text="a"), Text(text="b")]

    def test_normal_document_is_unchanged(self, sample_document):
        """A document already in normal form is returned equal."""
        assert normalize(sample_document) == sample_document
