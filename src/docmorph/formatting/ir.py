"""Intermediate Representation for converted documents.

This module defines the tagged tree that every format parser produces and
every format printer consumes. Nodes are frozen dataclasses: passes over the
tree build new nodes with ``dataclasses.replace`` instead of mutating, so
intermediate trees stay comparable.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar, Optional


IR_VERSION = "1"


class TableAlignment(str, Enum):
    """Per-column alignment of a table."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


# =============================================================================
# Inline nodes
# =============================================================================

@dataclass(frozen=True)
class Inline:
    """Base class for inline (text-flow) nodes."""

    tag: ClassVar[str] = "Inline"

    @property
    def plain_text(self) -> str:
        return ""


@dataclass(frozen=True)
class Text(Inline):
    """A run of literal text."""

    tag: ClassVar[str] = "Text"

    text: str = ""

    @property
    def plain_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class InlineContainer(Inline):
    """An inline node whose content is itself a sequence of inlines.

    Strong, Emphasis, Underline and Link share this base so that passes over
    the tree can recurse through one ``with_inlines`` call instead of
    handling each variant separately.
    """

    tag: ClassVar[str] = "InlineContainer"

    inlines: list[Inline] = field(default_factory=list)

    def with_inlines(self, inlines: list[Inline]) -> "InlineContainer":
        """Return a copy of this node with different children."""
        return replace(self, inlines=inlines)

    @property
    def plain_text(self) -> str:
        return inlines_plain_text(self.inlines)


@dataclass(frozen=True)
class Strong(InlineContainer):
    tag: ClassVar[str] = "Strong"


@dataclass(frozen=True)
class Emphasis(InlineContainer):
    tag: ClassVar[str] = "Emphasis"


@dataclass(frozen=True)
class Underline(InlineContainer):
    tag: ClassVar[str] = "Underline"


@dataclass(frozen=True)
class Link(InlineContainer):
    """A hyperlink; ``inlines`` is the label."""

    tag: ClassVar[str] = "Link"

    href: str = ""


@dataclass(frozen=True)
class CodeSpan(Inline):
    tag: ClassVar[str] = "CodeSpan"

    text: str = ""

    @property
    def plain_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class LineBreak(Inline):
    tag: ClassVar[str] = "LineBreak"

    @property
    def plain_text(self) -> str:
        return "\n"


@dataclass(frozen=True)
class Image(Inline):
    tag: ClassVar[str] = "Image"

    src: str = ""
    alt: Optional[str] = None

    @property
    def plain_text(self) -> str:
        return self.alt or ""


def inlines_plain_text(inlines: list[Inline]) -> str:
    """Get the text content of an inline sequence without formatting."""
    return "".join(inline.plain_text for inline in inlines)


# =============================================================================
# Block nodes
# =============================================================================

@dataclass(frozen=True)
class Block:
    """Base class for block-level nodes."""

    tag: ClassVar[str] = "Block"


@dataclass(frozen=True)
class Paragraph(Block):
    tag: ClassVar[str] = "Paragraph"

    inlines: list[Inline] = field(default_factory=list)

    @property
    def plain_text(self) -> str:
        return inlines_plain_text(self.inlines)


@dataclass(frozen=True)
class Heading(Block):
    """A section heading.

    Attributes:
        level: Heading depth, 1 (top) to 6
        inlines: Heading content
    """

    tag: ClassVar[str] = "Heading"

    level: int = 1
    inlines: list[Inline] = field(default_factory=list)

    @property
    def plain_text(self) -> str:
        return inlines_plain_text(self.inlines)


@dataclass(frozen=True)
class ListItem:
    tag: ClassVar[str] = "ListItem"

    blocks: list[Block] = field(default_factory=list)


@dataclass(frozen=True)
class ListBlock(Block):
    """An ordered or unordered list (tagged ``List``)."""

    tag: ClassVar[str] = "List"

    ordered: bool = False
    items: list[ListItem] = field(default_factory=list)


@dataclass(frozen=True)
class Blockquote(Block):
    tag: ClassVar[str] = "Blockquote"

    blocks: list[Block] = field(default_factory=list)


@dataclass(frozen=True)
class CodeBlock(Block):
    """Preformatted code.

    Attributes:
        text: Raw code, lines joined with ``\\n``
        language: Optional language identifier
    """

    tag: ClassVar[str] = "CodeBlock"

    text: str = ""
    language: Optional[str] = None


@dataclass(frozen=True)
class HorizontalRule(Block):
    tag: ClassVar[str] = "HorizontalRule"


@dataclass(frozen=True)
class TableCell:
    """A table cell; holds a full block sequence."""

    tag: ClassVar[str] = "TableCell"

    blocks: list[Block] = field(default_factory=list)


@dataclass(frozen=True)
class TableRow:
    tag: ClassVar[str] = "TableRow"

    cells: list[TableCell] = field(default_factory=list)


@dataclass(frozen=True)
class Table(Block):
    """A table.

    Attributes:
        header_row: Optional header; never repeated in ``rows``
        rows: Body rows
        alignments: Optional per-column alignment, index-correlated with
            the column position
    """

    tag: ClassVar[str] = "Table"

    header_row: Optional[TableRow] = None
    rows: list[TableRow] = field(default_factory=list)
    alignments: Optional[list[TableAlignment]] = None

    @property
    def all_rows(self) -> list[TableRow]:
        """Header row (if any) followed by the body rows."""
        if self.header_row is None:
            return list(self.rows)
        return [self.header_row, *self.rows]

    @property
    def column_count(self) -> int:
        return max((len(row.cells) for row in self.all_rows), default=0)


# =============================================================================
# Document
# =============================================================================

@dataclass(frozen=True)
class Document:
    """Root of an IR tree: an ordered sequence of blocks."""

    tag: ClassVar[str] = "Document"

    blocks: list[Block] = field(default_factory=list)

    @property
    def plain_text(self) -> str:
        """Get the text of top-level paragraphs and headings."""
        parts = [
            block.plain_text
            for block in self.blocks
            if isinstance(block, (Paragraph, Heading))
        ]
        return "\n\n".join(parts)


BLOCK_TYPES: dict[str, type] = {
    cls.tag: cls
    for cls in (
        Paragraph,
        Heading,
        ListBlock,
        Blockquote,
        CodeBlock,
        HorizontalRule,
        Table,
    )
}

INLINE_TYPES: dict[str, type] = {
    cls.tag: cls
    for cls in (
        Text,
        Strong,
        Emphasis,
        Underline,
        CodeSpan,
        LineBreak,
        Link,
        Image,
    )
}
