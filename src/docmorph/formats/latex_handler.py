"""LaTeX (.tex) file handler."""

from typing import Optional

from docmorph.config import get_settings
from docmorph.formats.base import TextFormatHandler
from docmorph.formatting.ir import Document
from docmorph.formatting.latex_parser import LatexParser
from docmorph.formatting.latex_writer import LatexWriter


class LatexHandler(TextFormatHandler):
    """Handler for LaTeX source files.

    Args:
        standalone: Wrap output in a compilable article. Defaults to the
            ``DOCMORPH_LATEX_STANDALONE`` setting.
    """

    format_name = "latex"

    def __init__(self, standalone: Optional[bool] = None) -> None:
        if standalone is None:
            standalone = get_settings().latex_standalone
        self.standalone = standalone
        self.parser = LatexParser()
        self.writer = LatexWriter()

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".tex", ".latex")

    def parse(self, text: str) -> Document:
        return self.parser.parse(text)

    def serialize(self, document: Document) -> str:
        return self.writer.render(document, standalone=self.standalone)
