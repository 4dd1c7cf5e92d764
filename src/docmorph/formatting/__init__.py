"""Document IR, normalization and per-format mappers."""

from docmorph.formatting.ir import (
    IR_VERSION,
    Block,
    Blockquote,
    CodeBlock,
    CodeSpan,
    Document,
    Emphasis,
    Heading,
    HorizontalRule,
    Image,
    Inline,
    InlineContainer,
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
from docmorph.formatting.normalize import normalize
from docmorph.formatting.serialization import document_from_dict, document_to_dict
from docmorph.formatting.validation import IRValidationError, validate_document

__all__ = [
    "IR_VERSION",
    "Block",
    "Blockquote",
    "CodeBlock",
    "CodeSpan",
    "Document",
    "Emphasis",
    "Heading",
    "HorizontalRule",
    "Image",
    "Inline",
    "InlineContainer",
    "LineBreak",
    "Link",
    "ListBlock",
    "ListItem",
    "Paragraph",
    "Strong",
    "Table",
    "TableAlignment",
    "TableCell",
    "TableRow",
    "Text",
    "Underline",
    "normalize",
    "document_from_dict",
    "document_to_dict",
    "IRValidationError",
    "validate_document",
]
