"""Pytest fixtures for DocMorph tests."""

from pathlib import Path

import pytest
from loguru import logger

from docmorph import config
from docmorph.formatting.ir import (
    Blockquote,
    CodeBlock,
    CodeSpan,
    Document,
    Emphasis,
    Heading,
    HorizontalRule,
    Inline,
    InlineContainer,
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
)


SETTINGS_ENV = [
    "DOCMORPH_LOG_LEVEL",
    "DOCMORPH_LOG_FILE",
    "DOCMORPH_LATEX_STANDALONE",
    "DOCMORPH_DOCX_BODY_FONT",
    "DOCMORPH_DOCX_FONT_SIZE",
    "DOCMORPH_DOCX_CODE_FONT",
    "DOCMORPH_DOCX_LINK_COLOR",
]


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch):
    """Start every test from default settings and loguru sinks."""
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "_settings", None)
    yield
    logger.remove()


def para(*inlines: Inline) -> Paragraph:
    return Paragraph(inlines=list(inlines))


def cell(text: str) -> TableCell:
    return TableCell(blocks=[para(Text(text=text))] if text else [Paragraph(inlines=[])])


def row(*texts: str) -> TableRow:
    return TableRow(cells=[cell(text) for text in texts])


@pytest.fixture
def sample_document() -> Document:
    """A normalized document every format can express."""
    return Document(
        blocks=[
            Heading(level=1, inlines=[Text(text="Title")]),
            para(
                Text(text="A "),
                Strong(inlines=[Text(text="bold")]),
                Text(text=" and "),
                Emphasis(inlines=[Text(text="italic")]),
                Text(text=" word with "),
                CodeSpan(text="code"),
                Text(text=" and a "),
                Link(href="https://example.com", inlines=[Text(text="link")]),
                Text(text="."),
            ),
            ListBlock(
                ordered=False,
                items=[
                    ListItem(blocks=[para(Text(text="one"))]),
                    ListItem(blocks=[para(Text(text="two"))]),
                ],
            ),
            ListBlock(
                ordered=True,
                items=[
                    ListItem(blocks=[para(Text(text="first"))]),
                    ListItem(blocks=[para(Text(text="second"))]),
                ],
            ),
            Blockquote(blocks=[para(Text(text="Quoted"))]),
            CodeBlock(text="print('hi')", language="python"),
            HorizontalRule(),
            Table(
                header_row=row("Name", "Qty"),
                rows=[row("apple", "3"), row("pear", "10")],
                alignments=[TableAlignment.LEFT, TableAlignment.RIGHT],
            ),
        ]
    )


@pytest.fixture
def sample_markdown() -> str:
    """Markdown source with one of each common construct."""
    return (
        "# Title\n"
        "\n"
        "A **bold** word.\n"
        "\n"
        "- one\n"
        "- two\n"
    )


@pytest.fixture
def sample_latex() -> str:
    """LaTeX source with one of each common construct."""
    return (
        "\\section{Title}\n"
        "\n"
        "A \\textbf{bold} word.\n"
        "\n"
        "\\begin{itemize}\n"
        "\\item one\n"
        "\\item two\n"
        "\\end{itemize}\n"
    )


@pytest.fixture
def tmp_markdown_file(tmp_path: Path, sample_markdown: str) -> Path:
    """Create a temporary Markdown file for testing."""
    file_path = tmp_path / "doc.md"
    file_path.write_text(sample_markdown, encoding="utf-8")
    return file_path


@pytest.fixture
def tmp_latex_file(tmp_path: Path, sample_latex: str) -> Path:
    """Create a temporary LaTeX file for testing."""
    file_path = tmp_path / "doc.tex"
    file_path.write_text(sample_latex, encoding="utf-8")
    return file_path


@pytest.fixture
def assert_merged():
    """Check that no inline sequence holds empty or adjacent Text nodes."""

    def check_inlines(inlines: list[Inline]) -> None:
        previous_text = False
        for inline in inlines:
            if isinstance(inline, Text):
                assert inline.text != "", "empty Text node"
                assert not previous_text, "adjacent Text nodes"
                previous_text = True
            else:
                previous_text = False
            if isinstance(inline, InlineContainer):
                check_inlines(inline.inlines)

    def check_blocks(blocks) -> None:
        for block in blocks:
            if isinstance(block, (Paragraph, Heading)):
                check_inlines(block.inlines)
            elif isinstance(block, ListBlock):
                for item in block.items:
                    assert item.blocks, "empty ListItem"
                    check_blocks(item.blocks)
            elif isinstance(block, Blockquote):
                check_blocks(block.blocks)
            elif isinstance(block, Table):
                for table_row in block.all_rows:
                    for table_cell in table_row.cells:
                        assert table_cell.blocks, "empty TableCell"
                        check_blocks(table_cell.blocks)

    def check(document: Document) -> None:
        check_blocks(document.blocks)

    return check
