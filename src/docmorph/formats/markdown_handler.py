"""Markdown (.md) file handler."""

from docmorph.formats.base import TextFormatHandler
from docmorph.formatting.ir import Document
from docmorph.formatting.markdown_mapper import MarkdownMapper, parse_markdown_ast
from docmorph.formatting.markdown_writer import MarkdownWriter
from docmorph.formatting.normalize import normalize


class MarkdownHandler(TextFormatHandler):
    """Handler for Markdown files.

    Parsing goes through mistune's token AST (with the GFM table and
    strikethrough plugins); printing maps the IR back onto the same token
    shape and renders it with ``MarkdownWriter``.
    """

    format_name = "markdown"

    def __init__(self) -> None:
        self.mapper = MarkdownMapper()
        self.writer = MarkdownWriter()

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".md", ".markdown")

    def parse(self, text: str) -> Document:
        return normalize(self.mapper.to_ir(parse_markdown_ast(text)))

    def serialize(self, document: Document) -> str:
        return self.writer.render(self.mapper.from_ir(document))
