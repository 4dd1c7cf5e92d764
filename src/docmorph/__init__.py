"""DocMorph - convert documents between Markdown, LaTeX and DOCX through one IR."""

__version__ = "0.1.0"

from docmorph.api import (
    parse_docx_to_ir,
    parse_latex_to_ir,
    parse_markdown_to_ir,
    serialize_ir_to_docx,
    serialize_ir_to_latex,
    serialize_ir_to_markdown,
)

__all__ = [
    "__version__",
    "parse_docx_to_ir",
    "parse_latex_to_ir",
    "parse_markdown_to_ir",
    "serialize_ir_to_docx",
    "serialize_ir_to_latex",
    "serialize_ir_to_markdown",
]
