"""Public conversion entry points.

Markdown and LaTeX are converted synchronously; DOCX work happens in a
worker thread, so those two functions are coroutines. Every parser
returns a normalized document.
"""

from typing import Optional

from docmorph.formats.docx_handler import DOCXHandler
from docmorph.formats.latex_handler import LatexHandler
from docmorph.formats.markdown_handler import MarkdownHandler
from docmorph.formatting.ir import Document


def parse_markdown_to_ir(markdown: str) -> Document:
    """Parse Markdown text into a normalized IR document."""
    return MarkdownHandler().parse(markdown)


def serialize_ir_to_markdown(document: Document) -> str:
    """Render an IR document as Markdown text."""
    return MarkdownHandler().serialize(document)


def parse_latex_to_ir(latex: str) -> Document:
    """Parse LaTeX source into a normalized IR document.

    Never raises on malformed input; unknown constructs degrade to
    literal text.
    """
    return LatexHandler().parse(latex)


def serialize_ir_to_latex(document: Document, standalone: Optional[bool] = None) -> str:
    """Render an IR document as LaTeX.

    Args:
        document: The document to render
        standalone: Wrap in a compilable article; defaults to the
            ``DOCMORPH_LATEX_STANDALONE`` setting

    Returns:
        LaTeX source
    """
    return LatexHandler(standalone=standalone).serialize(document)


async def parse_docx_to_ir(data: bytes) -> Document:
    """Parse DOCX bytes into a normalized IR document.

    Raises:
        ContainerFormatError: If the container cannot be read
    """
    return await DOCXHandler().load(data)


async def serialize_ir_to_docx(document: Document) -> bytes:
    """Render an IR document as DOCX bytes.

    Raises:
        ContainerFormatError: If the document cannot be built
    """
    return await DOCXHandler().dump(document)
