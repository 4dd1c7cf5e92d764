"""Tests for the Markdown mapper and writer."""

import pytest

from docmorph.formats.markdown_handler import MarkdownHandler
from docmorph.formatting.ir import (
    Blockquote,
    CodeBlock,
    CodeSpan,
    Document,
    Emphasis,
    Heading,
    HorizontalRule,
    Image,
    LineBreak,
    Link,
    ListBlock,
    ListItem,
    Paragraph,
    Strong,
    Table,
    TableAlignment,
    Text,
    Underline,
)
from docmorph.formatting.markdown_mapper import (
    find_underline_close,
    is_underline_close,
    is_underline_open,
    raw_markup_to_inlines,
    underline_to_tokens,
)
from docmorph.formatting.markdown_writer import escape_markdown

from conftest import para, row


@pytest.fixture
def handler():
    return MarkdownHandler()


class TestUnderlineAdapter:
    """Tests for the raw-markup underline helpers."""

    def test_open_and_close(self):
        """Only exact <u> and </u> inline markup match."""
        assert is_underline_open({"type": "inline_html", "raw": "<U>"})
        assert is_underline_close({"type": "inline_html", "raw": "</u>"})
        assert not is_underline_open({"type": "text", "raw": "<u>"})
        assert not is_underline_open({"type": "inline_html", "raw": "<u class='x'>"})

    def test_find_close_skips_nested(self):
        """The matching close accounts for nested pairs."""
        tokens = [
            {"type": "inline_html", "raw": "<u>"},
            {"type": "inline_html", "raw": "<u>"},
            {"type": "inline_html", "raw": "</u>"},
            {"type": "inline_html", "raw": "</u>"},
        ]
        assert find_underline_close(tokens, 0) == 3
        assert find_underline_close(tokens[:3], 0) is None

    def test_raw_markup(self):
        """Self-contained underline and breaks map; other markup stays text."""
        assert raw_markup_to_inlines("<u>x</u><br/><span>y</span>") == [
            Underline(inlines=[Text(text="x")]),
            LineBreak(),
            Text(text="<span>y</span>"),
        ]

    def test_underline_to_tokens(self):
        """Children are wrapped in raw open and close tags."""
        child = {"type": "text", "raw": "x"}
        assert underline_to_tokens([child]) == [
            {"type": "inline_html", "raw": "<u>"},
            child,
            {"type": "inline_html", "raw": "</u>"},
        ]


class TestMarkdownParsing:
    """Tests for Markdown to IR."""

    def test_heading_and_bold(self, handler):
        """A heading and a paragraph with strong text."""
        doc = handler.parse("# Title\n\nA **bold** word.")
        assert doc == Document(
            blocks=[
                Heading(level=1, inlines=[Text(text="Title")]),
                para(Text(text="A "), Strong(inlines=[Text(text="bold")]), Text(text=" word.")),
            ]
        )

    def test_emphasis_code_and_link(self, handler):
        """Inline markup maps onto inline nodes."""
        doc = handler.parse("*a* `b` [c](http://x.org)")
        assert doc.blocks[0].inlines == [
            Emphasis(inlines=[Text(text="a")]),
            Text(text=" "),
            CodeSpan(text="b"),
            Text(text=" "),
            Link(href="http://x.org", inlines=[Text(text="c")]),
        ]

    def test_code_span_special_characters(self, handler):
        """Code spans keep their literal characters."""
        doc = handler.parse("`a<b & c`")
        assert doc.blocks[0].inlines == [CodeSpan(text="a<b & c")]

    def test_image(self, handler):
        """Images keep their source and alt text."""
        doc = handler.parse("![alt text](pic.png)")
        assert doc.blocks[0].inlines == [Image(src="pic.png", alt="alt text")]

    def test_underline(self, handler):
        """<u> markup becomes Underline."""
        doc = handler.parse("Some <u>under **bold**</u> text")
        assert doc.blocks[0].inlines == [
            Text(text="Some "),
            Underline(inlines=[Text(text="under "), Strong(inlines=[Text(text="bold")])]),
            Text(text=" text"),
        ]

    def test_soft_and_hard_breaks(self, handler):
        """Soft breaks become spaces; hard breaks become LineBreak."""
        assert handler.parse("a\nb").blocks == [para(Text(text="a b"))]
        assert handler.parse("a  \nb").blocks == [
            para(Text(text="a"), LineBreak(), Text(text="b"))
        ]

    def test_strikethrough_is_flattened(self, handler):
        """Strikethrough keeps only its content."""
        assert handler.parse("~~gone~~").blocks == [para(Text(text="gone"))]

    def test_lists(self, handler):
        """Bullet and numbered lists map to ListBlock."""
        doc = handler.parse("- a\n- b\n\n1. x\n2. y\n")
        assert doc.blocks == [
            ListBlock(
                ordered=False,
                items=[
                    ListItem(blocks=[para(Text(text="a"))]),
                    ListItem(blocks=[para(Text(text="b"))]),
                ],
            ),
            ListBlock(
                ordered=True,
                items=[
                    ListItem(blocks=[para(Text(text="x"))]),
                    ListItem(blocks=[para(Text(text="y"))]),
                ],
            ),
        ]

    def test_blockquote_code_and_rule(self, handler):
        """Block constructs map to their IR counterparts."""
        doc = handler.parse("> quoted\n\n```python extra\nx = 1\n```\n\n---\n")
        assert doc.blocks == [
            Blockquote(blocks=[para(Text(text="quoted"))]),
            CodeBlock(text="x = 1", language="python"),
            HorizontalRule(),
        ]

    def test_table(self, handler):
        """GFM tables keep header, rows and alignment."""
        doc = handler.parse("| a | b | c |\n| :-- | :-: | --: |\n| 1 | 2 | 3 |\n")
        assert doc.blocks == [
            Table(
                header_row=row("a", "b", "c"),
                rows=[row("1", "2", "3")],
                alignments=[
                    TableAlignment.LEFT,
                    TableAlignment.CENTER,
                    TableAlignment.RIGHT,
                ],
            )
        ]

    def test_table_without_alignment(self, handler):
        """A table that states no alignment has none."""
        doc = handler.parse("| a | b |\n| --- | --- |\n| 1 | 2 |\n")
        assert doc.blocks[0].alignments is None

    def test_table_partial_alignment(self, handler):
        """Unstated columns default to left once any column is aligned."""
        doc = handler.parse("| a | b |\n| --- | --: |\n| 1 | 2 |\n")
        assert doc.blocks[0].alignments == [TableAlignment.LEFT, TableAlignment.RIGHT]

    def test_block_html(self, handler):
        """Block-level HTML is kept as paragraph text."""
        assert handler.parse("<div>hi</div>\n").blocks == [para(Text(text="<div>hi</div>"))]

    def test_normalized(self, handler, assert_merged):
        """Parsed documents are already in normal form."""
        assert_merged(handler.parse("a \\* b _c_ **d\\_e** f\nnext line"))


class TestMarkdownWriter:
    """Tests for IR to Markdown."""

    def test_escape_inline_specials(self):
        """Characters with inline meaning are always escaped."""
        assert escape_markdown("a*b_c`d[e]|f~g<h\\") == "a\\*b\\_c\\`d\\[e\\]\\|f\\~g\\<h\\\\"

    def test_escape_line_start(self):
        """Block markers are escaped only at the start of a line."""
        assert escape_markdown("# x", at_line_start=True) == "\\# x"
        assert escape_markdown("# x") == "# x"
        assert escape_markdown("1. x", at_line_start=True) == "1\\. x"
        assert escape_markdown("a\n- b") == "a\n\\- b"

    def test_escape_entities(self):
        """Only entity-like ampersands are escaped."""
        assert escape_markdown("AT&amp;T & co") == "AT\\&amp;T & co"

    def test_heading_trailing_hash(self, handler):
        """A trailing hash is escaped so it stays part of the heading."""
        doc = Document(blocks=[Heading(level=2, inlines=[Text(text="C#")])])
        assert handler.serialize(doc) == "## C\\#\n"

    def test_code_fence_longer_than_content(self, handler):
        """Fences outgrow any backtick run in the code."""
        doc = Document(blocks=[CodeBlock(text="```\nx")])
        assert handler.serialize(doc) == "````\n```\nx\n````\n"

    def test_code_span_with_backtick(self, handler):
        """Inline code containing backticks uses a longer fence."""
        doc = Document(blocks=[para(CodeSpan(text="a`b"))])
        assert handler.serialize(doc) == "``a`b``\n"

    def test_empty_list_item(self, handler):
        """An empty item prints as a bare marker."""
        doc = Document(
            blocks=[
                ListBlock(
                    items=[
                        ListItem(blocks=[Paragraph(inlines=[])]),
                        ListItem(blocks=[para(Text(text="b"))]),
                    ]
                )
            ]
        )
        assert handler.serialize(doc) == "-\n- b\n"

    def test_loose_list_item(self, handler):
        """Multi-block items are indented under their marker."""
        doc = Document(
            blocks=[
                ListBlock(
                    ordered=True,
                    items=[ListItem(blocks=[para(Text(text="a")), para(Text(text="b"))])],
                )
            ]
        )
        assert handler.serialize(doc) == "1. a\n\n   b\n"

    def test_link_destination_with_space(self, handler):
        """Destinations with spaces are wrapped in angle brackets."""
        doc = Document(blocks=[para(Link(href="a b.html", inlines=[Text(text="x")]))])
        assert handler.serialize(doc) == "[x](<a b.html>)\n"

    def test_line_break(self, handler):
        """Hard breaks print as two trailing spaces."""
        doc = Document(blocks=[para(Text(text="a"), LineBreak(), Text(text="b"))])
        assert handler.serialize(doc) == "a  \nb\n"

    def test_headerless_table(self, handler):
        """The first row of a header-less table becomes the header."""
        doc = Document(blocks=[Table(rows=[row("a", "b"), row("c")])])
        assert handler.serialize(doc) == "| a | b |\n| --- | --- |\n| c |  |\n"

    def test_underline(self, handler):
        """Underline prints as <u> markup."""
        doc = Document(blocks=[para(Underline(inlines=[Text(text="u")]))])
        assert handler.serialize(doc) == "<u>u</u>\n"

    def test_empty_document(self, handler):
        """An empty document prints nothing."""
        assert handler.serialize(Document()) == ""


class TestMarkdownRoundTrip:
    """Tests for write-then-read stability."""

    def test_sample_document(self, handler, sample_document):
        """Every supported construct survives a round trip."""
        assert handler.parse(handler.serialize(sample_document)) == sample_document

    @pytest.mark.parametrize(
        "text",
        [
            "1. not a list",
            "# not a heading",
            "- not a bullet",
            "> not a quote",
            "a * b _ c ` d [e](f) | g ~ h < i \\ j",
            "AT&amp;T & co",
            "2) also not a list",
        ],
    )
    def test_literal_text(self, handler, text):
        """Text that looks like markup comes back literally."""
        doc = Document(blocks=[para(Text(text=text))])
        assert handler.parse(handler.serialize(doc)) == doc

    def test_nested_list(self, handler):
        """Nested lists survive."""
        doc = Document(
            blocks=[
                ListBlock(
                    items=[
                        ListItem(
                            blocks=[
                                para(Text(text="one")),
                                ListBlock(
                                    ordered=True,
                                    items=[ListItem(blocks=[para(Text(text="inner"))])],
                                ),
                            ]
                        ),
                        ListItem(blocks=[para(Text(text="two"))]),
                    ]
                )
            ]
        )
        assert handler.parse(handler.serialize(doc)) == doc

    def test_underline_and_break(self, handler):
        """Underline and hard breaks survive."""
        doc = Document(
            blocks=[
                para(
                    Text(text="x "),
                    Underline(inlines=[Emphasis(inlines=[Text(text="y")])]),
                    LineBreak(),
                    Text(text="z"),
                )
            ]
        )
        assert handler.parse(handler.serialize(doc)) == doc

    def test_code_with_backticks(self, handler):
        """Code blocks and spans containing fences survive."""
        doc = Document(
            blocks=[
                CodeBlock(text="```\ninner\n```", language="md"),
                para(CodeSpan(text="a``b")),
            ]
        )
        assert handler.parse(handler.serialize(doc)) == doc

    def test_exclamation_before_link(self, handler):
        """A trailing exclamation mark does not turn the following link into an image."""
        doc = Document(
            blocks=[para(Text(text="Wow!"), Link(href="u", inlines=[Text(text="a")]))]
        )
        output = handler.serialize(doc)
        assert output == "Wow\\![a](u)\n"
        assert handler.parse(output) == doc
