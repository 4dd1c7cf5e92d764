"""Tests for the conversion pipeline."""

import json
from pathlib import Path

import pytest

from docmorph.core.converter import ConversionError, DocumentConverter
from docmorph.formats import LatexHandler, MarkdownHandler
from docmorph.formatting.ir import Document, Heading, Text


class TestResolveHandler:
    """Tests for handler resolution."""

    def test_by_path(self):
        """The file extension picks the handler."""
        assert isinstance(DocumentConverter().resolve_handler(Path("a.md")), MarkdownHandler)

    def test_name_beats_path(self):
        """An explicit format name overrides the extension."""
        handler = DocumentConverter().resolve_handler(Path("a.txt"), "latex")
        assert isinstance(handler, LatexHandler)

    def test_standalone_passed_to_latex(self):
        """The LaTeX handler receives the converter's standalone choice."""
        handler = DocumentConverter(standalone=True).resolve_handler(format_name="latex")
        assert handler.standalone is True

    def test_unsupported(self):
        """Unsupported formats raise ConversionError."""
        with pytest.raises(ConversionError, match="Unsupported file format"):
            DocumentConverter().resolve_handler(Path("a.pdf"))

    def test_nothing_to_go_on(self):
        """Without a name or path the format cannot be determined."""
        with pytest.raises(ConversionError):
            DocumentConverter().resolve_handler()


class TestDocumentConverter:
    """Tests for DocumentConverter."""

    @pytest.mark.asyncio
    async def test_markdown_to_latex(self, tmp_markdown_file: Path, tmp_path: Path):
        """A Markdown file converts to LaTeX."""
        output = tmp_path / "out.tex"
        document = await DocumentConverter().convert_file(tmp_markdown_file, output)

        assert output.exists()
        latex = output.read_text(encoding="utf-8")
        assert "\\section{Title}" in latex
        assert "\\textbf{bold}" in latex
        assert "\\begin{itemize}" in latex
        assert len(document.blocks) == 3

    @pytest.mark.asyncio
    async def test_latex_to_markdown(self, tmp_latex_file: Path, tmp_path: Path, sample_markdown):
        """A LaTeX file converts to Markdown."""
        output = tmp_path / "out.md"
        await DocumentConverter().convert_file(tmp_latex_file, output)
        assert output.read_text(encoding="utf-8") == sample_markdown

    @pytest.mark.asyncio
    async def test_markdown_to_docx_and_back(self, tmp_markdown_file: Path, tmp_path: Path):
        """DOCX output can be read back to the same document."""
        converter = DocumentConverter()
        docx_path = tmp_path / "out.docx"
        original = await converter.convert_file(tmp_markdown_file, docx_path)
        assert await converter.load_file(docx_path) == original

    @pytest.mark.asyncio
    async def test_target_format_overrides_extension(self, tmp_markdown_file: Path, tmp_path: Path):
        """--to style overrides work with any output name."""
        output = tmp_path / "out.txt"
        await DocumentConverter().convert_file(tmp_markdown_file, output, target_format="json")
        assert json.loads(output.read_text(encoding="utf-8"))["type"] == "Document"

    @pytest.mark.asyncio
    async def test_missing_input(self, tmp_path: Path):
        """A missing input file raises ConversionError."""
        with pytest.raises(ConversionError, match="Input file not found"):
            await DocumentConverter().convert_file(tmp_path / "nope.md", tmp_path / "o.tex")

    @pytest.mark.asyncio
    async def test_empty_input(self, tmp_path: Path):
        """An input without content raises ConversionError."""
        empty = tmp_path / "empty.md"
        empty.write_text("  \n", encoding="utf-8")
        with pytest.raises(ConversionError, match="no content"):
            await DocumentConverter().load_file(empty)

    @pytest.mark.asyncio
    async def test_convert_bytes(self):
        """Content converts between named formats."""
        output = await DocumentConverter().convert_bytes(
            b"# Title\n\nA **bold** word.", "markdown", "latex"
        )
        assert output.decode("utf-8") == "\\section{Title}\n\nA \\textbf{bold} word."

    @pytest.mark.asyncio
    async def test_validation_passes(self):
        """Valid documents pass validation."""
        output = await DocumentConverter(validate=True).convert_bytes(
            b"text", "markdown", "markdown"
        )
        assert output == b"text\n"

    @pytest.mark.asyncio
    async def test_validation_failure(self, monkeypatch):
        """Invalid IR stops the conversion with every violation listed."""

        async def broken_load(self, data):
            return Document(blocks=[Heading(level=9, inlines=[Text(text="x")])])

        monkeypatch.setattr(MarkdownHandler, "load", broken_load)
        with pytest.raises(ConversionError, match="IR validation failed") as exc_info:
            await DocumentConverter(validate=True).convert_bytes(b"x", "markdown", "latex")
        assert "blocks[0]: heading level" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_validation_off_by_default(self, monkeypatch):
        """Without validation the document is written as is."""

        async def broken_load(self, data):
            return Document(blocks=[Heading(level=9, inlines=[Text(text="x")])])

        monkeypatch.setattr(MarkdownHandler, "load", broken_load)
        output = await DocumentConverter().convert_bytes(b"x", "markdown", "latex")
        assert output == b"\\section{x}"
