"""Document format handlers for DocMorph."""

from docmorph.formats.base import ContainerFormatError, FormatHandler, TextFormatHandler
from docmorph.formats.markdown_handler import MarkdownHandler
from docmorph.formats.latex_handler import LatexHandler
from docmorph.formats.docx_handler import DOCXHandler
from docmorph.formats.json_handler import IRJSONHandler

__all__ = [
    "ContainerFormatError",
    "FormatHandler",
    "TextFormatHandler",
    "MarkdownHandler",
    "LatexHandler",
    "DOCXHandler",
    "IRJSONHandler",
    "HANDLER_MAP",
    "FORMAT_NAMES",
    "SUPPORTED_EXTENSIONS",
    "get_handler",
    "get_handler_by_name",
]

# Map file extensions to handlers
HANDLER_MAP: dict[str, type[FormatHandler]] = {
    ".md": MarkdownHandler,
    ".markdown": MarkdownHandler,
    ".tex": LatexHandler,
    ".latex": LatexHandler,
    ".docx": DOCXHandler,
    ".json": IRJSONHandler,
}

# Map --from / --to names to handlers
FORMAT_NAMES: dict[str, type[FormatHandler]] = {
    handler.format_name: handler
    for handler in (MarkdownHandler, LatexHandler, DOCXHandler, IRJSONHandler)
}

SUPPORTED_EXTENSIONS = tuple(HANDLER_MAP.keys())


def get_handler(extension: str) -> type[FormatHandler]:
    """Get the appropriate handler class for a file extension."""
    ext = extension.lower()
    if ext not in HANDLER_MAP:
        raise ValueError(
            f"Unsupported file format: {ext}. "
            f"Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}"
        )
    return HANDLER_MAP[ext]


def get_handler_by_name(name: str) -> type[FormatHandler]:
    """Get the handler class for a format name such as 'markdown'."""
    key = name.lower()
    if key not in FORMAT_NAMES:
        raise ValueError(
            f"Unknown format name: {name}. "
            f"Known formats: {', '.join(FORMAT_NAMES)}"
        )
    return FORMAT_NAMES[key]
