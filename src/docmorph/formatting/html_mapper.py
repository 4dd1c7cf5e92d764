"""HTML to IR mapper.

The DOCX reader lets mammoth turn the container into semantic HTML, then
walks that HTML here with BeautifulSoup. Dispatch is by tag name; an
element we do not know is transparent, so its text is never dropped.
"""

import re
from typing import Optional, Union

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString, PageElement, Tag
from loguru import logger

from docmorph.formatting.ir import (
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


HEADING_TAGS = {f"h{level}": level for level in range(1, 7)}

BLOCK_TAGS = {
    "p",
    "ul",
    "ol",
    "li",
    "blockquote",
    "pre",
    "hr",
    "table",
    *HEADING_TAGS,
}

TRANSPARENT_INLINE_TAGS = {"s", "del", "strike", "sup", "sub"}

INLINE_TAGS = {
    "strong",
    "b",
    "em",
    "i",
    "u",
    "span",
    "code",
    "br",
    "a",
    "img",
    *TRANSPARENT_INLINE_TAGS,
}

ALIGNMENTS = {alignment.value: alignment for alignment in TableAlignment}

WHITESPACE = re.compile(r"\s+")
TEXT_ALIGN_STYLE = re.compile(r"text-align\s*:\s*(left|center|right)", re.IGNORECASE)
UNDERLINE_STYLE = re.compile(r"text-decoration[^;]*underline", re.IGNORECASE)


class HtmlMapper:
    """Map an HTML fragment onto IR blocks."""

    def to_ir(self, html: str) -> Document:
        """Convert an HTML fragment to a (not yet normalized) Document.

        Args:
            html: HTML markup, typically mammoth output

        Returns:
            Document built from the markup
        """
        soup = BeautifulSoup(html, "html.parser")
        return Document(blocks=self.map_blocks(soup.children))

    # =========================================================================
    # Blocks
    # =========================================================================

    def map_blocks(self, nodes) -> list[Block]:
        """Map sibling nodes to blocks, gathering loose inlines into paragraphs."""
        blocks: list[Block] = []
        pending: list[Inline] = []

        def flush() -> None:
            if _has_content(pending):
                blocks.append(Paragraph(inlines=_trim(pending)))
            pending.clear()

        for node in nodes:
            if isinstance(node, Tag) and self._is_block(node):
                flush()
                blocks.extend(self._map_block(node))
            else:
                pending.extend(self.map_inline(node))

        flush()
        return blocks

    def _is_block(self, tag: Tag) -> bool:
        if tag.name in BLOCK_TAGS:
            return True
        if tag.name in INLINE_TAGS:
            return False
        # Unknown wrapper: a block container if it holds block content
        return tag.find(list(BLOCK_TAGS)) is not None

    def _map_block(self, tag: Tag) -> list[Block]:
        name = tag.name
        if name == "p":
            return [Paragraph(inlines=_trim(self.map_inlines(tag.children)))]
        if name in HEADING_TAGS:
            return [
                Heading(
                    level=HEADING_TAGS[name],
                    inlines=_trim(self.map_inlines(tag.children)),
                )
            ]
        if name in ("ul", "ol"):
            items = [
                ListItem(blocks=self.map_blocks(li.children))
                for li in tag.find_all("li", recursive=False)
            ]
            return [ListBlock(ordered=name == "ol", items=items)]
        if name == "li":
            # A list item outside any list
            return self.map_blocks(tag.children)
        if name == "blockquote":
            return [Blockquote(blocks=self.map_blocks(tag.children))]
        if name == "pre":
            return [CodeBlock(text=_preformatted_text(tag), language=_code_language(tag))]
        if name == "hr":
            return [HorizontalRule()]
        if name == "table":
            return [self._map_table(tag)]

        logger.debug(f"Descending into unknown block element <{name}>")
        return self.map_blocks(tag.children)

    def _map_table(self, table: Tag) -> Table:
        # Rows of nested tables belong to those tables
        row_tags = [tr for tr in table.find_all("tr") if tr.find_parent("table") is table]
        rows = [self._map_row(tr) for tr in row_tags]

        header_row: Optional[TableRow] = None
        if row_tags and row_tags[0].find("th", recursive=False) is not None:
            header_row = rows.pop(0)

        alignments: Optional[list[TableAlignment]] = None
        if row_tags:
            alignments = _sniff_alignments(row_tags[0].find_all(["td", "th"], recursive=False))

        return Table(header_row=header_row, rows=rows, alignments=alignments)

    def _map_row(self, tr: Tag) -> TableRow:
        return TableRow(
            cells=[
                TableCell(blocks=self.map_blocks(cell.children))
                for cell in tr.find_all(["td", "th"], recursive=False)
            ]
        )

    # =========================================================================
    # Inlines
    # =========================================================================

    def map_inlines(self, nodes) -> list[Inline]:
        inlines: list[Inline] = []
        for node in nodes:
            inlines.extend(self.map_inline(node))
        return inlines

    def map_inline(self, node: Union[PageElement, Tag]) -> list[Inline]:
        if isinstance(node, Comment):
            return []
        if isinstance(node, NavigableString):
            text = WHITESPACE.sub(" ", str(node))
            return [Text(text=text)] if text else []
        if not isinstance(node, Tag):
            return []

        name = node.name
        if name in ("strong", "b"):
            return [Strong(inlines=self.map_inlines(node.children))]
        if name in ("em", "i"):
            return [Emphasis(inlines=self.map_inlines(node.children))]
        if name == "u":
            return [Underline(inlines=self.map_inlines(node.children))]
        if name == "span" and UNDERLINE_STYLE.search(node.get("style", "")):
            return [Underline(inlines=self.map_inlines(node.children))]
        if name == "code":
            return [CodeSpan(text=node.get_text())]
        if name == "br":
            return [LineBreak()]
        if name == "a" and node.get("href"):
            return [Link(href=node["href"], inlines=self.map_inlines(node.children))]
        if name == "img":
            return [Image(src=node.get("src", ""), alt=node.get("alt") or None)]
        # span, anchors without href, s/del/strike/sup/sub and unknown tags
        return self.map_inlines(node.children)


def _has_content(inlines: list[Inline]) -> bool:
    """Check whether an inline run holds anything besides whitespace."""
    for inline in inlines:
        if isinstance(inline, Text):
            if inline.text.strip():
                return True
        elif isinstance(inline, InlineContainer):
            if _has_content(inline.inlines):
                return True
        elif not isinstance(inline, LineBreak):
            return True
    return False


def _trim(inlines: list[Inline]) -> list[Inline]:
    """Strip outer whitespace from a paragraph's first and last text runs."""
    inlines = list(inlines)
    if inlines and isinstance(inlines[0], Text):
        inlines[0] = Text(text=inlines[0].text.lstrip())
    if inlines and isinstance(inlines[-1], Text):
        inlines[-1] = Text(text=inlines[-1].text.rstrip())
    return inlines


def _preformatted_text(pre: Tag) -> str:
    """Get the text of a <pre>, with <br> as newlines."""
    parts: list[str] = []
    for node in pre.descendants:
        if isinstance(node, Comment):
            continue
        if isinstance(node, NavigableString):
            parts.append(str(node))
        elif isinstance(node, Tag) and node.name == "br":
            parts.append("\n")
    return "".join(parts)


def _code_language(pre: Tag) -> Optional[str]:
    code = pre.find("code")
    if code is None:
        return None
    for css_class in code.get("class") or []:
        if css_class.startswith("language-"):
            return css_class[len("language-") :] or None
    return None


def _sniff_alignments(cells: list[Tag]) -> Optional[list[TableAlignment]]:
    """Read per-column alignment from the first row's cells."""
    values: list[Optional[str]] = []
    for cell in cells:
        value = (cell.get("align") or "").lower() or None
        if value is None:
            style = TEXT_ALIGN_STYLE.search(cell.get("style", ""))
            value = style.group(1).lower() if style else None
        values.append(value)

    if not any(value in ALIGNMENTS for value in values):
        return None
    return [ALIGNMENTS.get(value, TableAlignment.LEFT) for value in values]
