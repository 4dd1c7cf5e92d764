"""Two-way mapping between mistune's token AST and the IR.

mistune 3 hands back plain dicts (``type``, ``children``, ``raw``,
``attrs``). The mapper only ever reads them through ``.get`` so a token
missing an optional key degrades instead of raising.
"""

import html
import re
from typing import Any, Optional

import mistune
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
    inlines_plain_text,
)


Token = dict[str, Any]

MARKDOWN_PLUGINS = ["strikethrough", "table"]

ALIGNMENTS = {alignment.value: alignment for alignment in TableAlignment}


def parse_markdown_ast(text: str) -> list[Token]:
    """Parse Markdown source into mistune's token AST."""
    markdown = mistune.create_markdown(renderer=None, plugins=MARKDOWN_PLUGINS)
    tokens, _state = markdown.parse(text)
    return tokens if isinstance(tokens, list) else []


# =============================================================================
# Underline adapter
#
# Markdown has no underline syntax; the HTML <u> wrapper is the only
# form that survives a round trip. Everything that looks at raw markup
# lives here.
# =============================================================================

UNDERLINE_OPEN = re.compile(r"^<u>$", re.IGNORECASE)
UNDERLINE_CLOSE = re.compile(r"^</u>$", re.IGNORECASE)
LINE_BREAK_TAG = re.compile(r"^<br\s*/?>$", re.IGNORECASE)
RAW_MARKUP_PARTS = re.compile(r"(<u>.*?</u>|<br\s*/?>)", re.IGNORECASE | re.DOTALL)
SELF_CONTAINED_UNDERLINE = re.compile(r"^<u>(.*)</u>$", re.IGNORECASE | re.DOTALL)


def is_underline_open(token: Token) -> bool:
    return token.get("type") == "inline_html" and bool(
        UNDERLINE_OPEN.match(token.get("raw", "").strip())
    )


def is_underline_close(token: Token) -> bool:
    return token.get("type") == "inline_html" and bool(
        UNDERLINE_CLOSE.match(token.get("raw", "").strip())
    )


def find_underline_close(tokens: list[Token], start: int) -> Optional[int]:
    """Find the sibling ``</u>`` that pairs with the ``<u>`` at ``start``."""
    depth = 0
    for index in range(start, len(tokens)):
        if is_underline_open(tokens[index]):
            depth += 1
        elif is_underline_close(tokens[index]):
            depth -= 1
            if depth == 0:
                return index
    return None


def raw_markup_to_inlines(raw: str) -> list[Inline]:
    """Map a raw HTML string to inlines.

    ``<u>x</u>`` becomes Underline and ``<br>`` becomes LineBreak; any
    other markup is kept as opaque text.
    """
    inlines: list[Inline] = []
    for part in RAW_MARKUP_PARTS.split(raw):
        if not part:
            continue
        if LINE_BREAK_TAG.match(part):
            inlines.append(LineBreak())
            continue
        underline = SELF_CONTAINED_UNDERLINE.match(part)
        if underline:
            inlines.append(Underline(inlines=[Text(text=underline.group(1))]))
            continue
        inlines.append(Text(text=part))
    return inlines


def underline_to_tokens(children: list[Token]) -> list[Token]:
    """Wrap already-mapped children in ``<u>`` / ``</u>`` raw tokens."""
    return [
        {"type": "inline_html", "raw": "<u>"},
        *children,
        {"type": "inline_html", "raw": "</u>"},
    ]


# =============================================================================
# Mapper
# =============================================================================

class MarkdownMapper:
    """Map between mistune token lists and IR Documents."""

    # -------------------------------------------------------------------------
    # AST -> IR
    # -------------------------------------------------------------------------

    def to_ir(self, tokens: list[Token]) -> Document:
        """Convert a mistune token list to a (not yet normalized) Document."""
        return Document(blocks=self._map_blocks(tokens))

    def _map_blocks(self, tokens: list[Token]) -> list[Block]:
        blocks: list[Block] = []
        for token in tokens:
            block = self._map_block(token)
            if block is not None:
                blocks.append(block)
        return blocks

    def _map_block(self, token: Token) -> Optional[Block]:
        kind = token.get("type", "")
        attrs = token.get("attrs") or {}
        children = token.get("children") or []

        if kind in ("paragraph", "block_text"):
            return Paragraph(inlines=self._map_inlines(children))
        if kind == "heading":
            level = attrs.get("level", 1)
            if not isinstance(level, int) or not 1 <= level <= 6:
                level = 1
            return Heading(level=level, inlines=self._map_inlines(children))
        if kind == "list":
            items = [
                ListItem(blocks=self._map_blocks(child.get("children") or []))
                for child in children
                if child.get("type") == "list_item"
            ]
            return ListBlock(ordered=bool(attrs.get("ordered", False)), items=items)
        if kind == "block_quote":
            return Blockquote(blocks=self._map_blocks(children))
        if kind == "block_code":
            return self._map_code(token)
        if kind == "thematic_break":
            return HorizontalRule()
        if kind == "table":
            return self._map_table(children)
        if kind == "block_html":
            raw = token.get("raw", "").strip()
            return Paragraph(inlines=raw_markup_to_inlines(raw)) if raw else None
        if kind != "blank_line":
            logger.debug(f"Skipping unsupported Markdown block token: {kind}")
        return None

    def _map_code(self, token: Token) -> CodeBlock:
        text = token.get("raw", "")
        if text.endswith("\n"):
            text = text[:-1]
        info = ((token.get("attrs") or {}).get("info") or "").strip()
        language = info.split()[0] if info else None
        return CodeBlock(text=text, language=language)

    def _map_table(self, sections: list[Token]) -> Table:
        header_row: Optional[TableRow] = None
        rows: list[TableRow] = []
        raw_alignments: list[Optional[str]] = []

        for section in sections:
            kind = section.get("type")
            if kind == "table_head":
                cells = section.get("children") or []
                header_row = self._map_row(cells)
                raw_alignments = [(cell.get("attrs") or {}).get("align") for cell in cells]
            elif kind == "table_body":
                for row in section.get("children") or []:
                    rows.append(self._map_row(row.get("children") or []))

        return Table(
            header_row=header_row,
            rows=rows,
            alignments=self._map_alignments(raw_alignments),
        )

    def _map_row(self, cells: list[Token]) -> TableRow:
        return TableRow(
            cells=[
                TableCell(blocks=[Paragraph(inlines=self._map_inlines(cell.get("children") or []))])
                for cell in cells
            ]
        )

    def _map_alignments(
        self, raw_alignments: list[Optional[str]]
    ) -> Optional[list[TableAlignment]]:
        """Recognized values pass through; the rest default to LEFT.

        When no column states a preference the field is left absent.
        """
        if not any(value in ALIGNMENTS for value in raw_alignments):
            return None
        return [ALIGNMENTS.get(value, TableAlignment.LEFT) for value in raw_alignments]

    def _map_inlines(self, tokens: list[Token]) -> list[Inline]:
        inlines: list[Inline] = []
        index = 0
        while index < len(tokens):
            token = tokens[index]
            if is_underline_open(token):
                close = find_underline_close(tokens, index)
                if close is not None:
                    inner = self._map_inlines(tokens[index + 1 : close])
                    inlines.append(Underline(inlines=inner))
                    index = close + 1
                    continue
            inlines.extend(self._map_inline(token))
            index += 1
        return inlines

    def _map_inline(self, token: Token) -> list[Inline]:
        kind = token.get("type", "")
        attrs = token.get("attrs") or {}
        children = token.get("children") or []

        if kind == "text":
            return [Text(text=token.get("raw", ""))]
        if kind == "softbreak":
            return [Text(text=" ")]
        if kind == "linebreak":
            return [Text(text=" ")] if attrs.get("soft") else [LineBreak()]
        if kind == "strong":
            return [Strong(inlines=self._map_inlines(children))]
        if kind == "emphasis":
            return [Emphasis(inlines=self._map_inlines(children))]
        if kind == "codespan":
            return [CodeSpan(text=html.unescape(token.get("raw", "")))]
        if kind == "link":
            return [Link(href=attrs.get("url", ""), inlines=self._map_inlines(children))]
        if kind == "image":
            alt = inlines_plain_text(self._map_inlines(children))
            return [Image(src=attrs.get("url", ""), alt=alt or None)]
        if kind == "strikethrough":
            return self._map_inlines(children)
        if kind == "inline_html":
            return raw_markup_to_inlines(token.get("raw", ""))

        logger.debug(f"Flattening unsupported Markdown inline token: {kind}")
        if children:
            return self._map_inlines(children)
        raw = token.get("raw", "")
        return [Text(text=raw)] if raw else []

    # -------------------------------------------------------------------------
    # IR -> AST
    # -------------------------------------------------------------------------

    def from_ir(self, document: Document) -> list[Token]:
        """Convert a Document to mistune-shaped tokens for the writer."""
        return self._blocks_to_tokens(document.blocks)

    def _blocks_to_tokens(self, blocks: list[Block]) -> list[Token]:
        tokens: list[Token] = []
        for block in blocks:
            token = self._block_to_token(block)
            if token is not None:
                tokens.append(token)
        return tokens

    def _block_to_token(self, block: Block) -> Optional[Token]:
        if isinstance(block, Paragraph):
            return {"type": "paragraph", "children": self._inlines_to_tokens(block.inlines)}
        if isinstance(block, Heading):
            return {
                "type": "heading",
                "attrs": {"level": block.level},
                "children": self._inlines_to_tokens(block.inlines),
            }
        if isinstance(block, ListBlock):
            items = [
                {"type": "list_item", "children": self._blocks_to_tokens(item.blocks)}
                for item in block.items
            ]
            return {
                "type": "list",
                "tight": all(len(item.blocks) <= 1 for item in block.items),
                "attrs": {"ordered": block.ordered, "depth": 0},
                "children": items,
            }
        if isinstance(block, Blockquote):
            return {"type": "block_quote", "children": self._blocks_to_tokens(block.blocks)}
        if isinstance(block, CodeBlock):
            token: Token = {"type": "block_code", "raw": block.text + "\n"}
            if block.language:
                token["attrs"] = {"info": block.language}
            return token
        if isinstance(block, HorizontalRule):
            return {"type": "thematic_break"}
        if isinstance(block, Table):
            return self._table_to_token(block)
        return None

    def _table_to_token(self, table: Table) -> Optional[Token]:
        rows = table.all_rows
        if not rows:
            return None
        # A header-less table promotes its first body row
        header, body = rows[0], rows[1:]
        columns = table.column_count
        alignments = list(table.alignments or [])

        def cells(row: TableRow, head: bool) -> list[Token]:
            padded = list(row.cells) + [TableCell()] * (columns - len(row.cells))
            result = []
            for index, cell in enumerate(padded):
                align = alignments[index].value if index < len(alignments) else None
                result.append(
                    {
                        "type": "table_cell",
                        "attrs": {"align": align, "head": head},
                        "children": self._cell_to_tokens(cell),
                    }
                )
            return result

        return {
            "type": "table",
            "children": [
                {"type": "table_head", "children": cells(header, True)},
                {
                    "type": "table_body",
                    "children": [
                        {"type": "table_row", "children": cells(row, False)} for row in body
                    ],
                },
            ],
        }

    def _cell_to_tokens(self, cell: TableCell) -> list[Token]:
        """Flatten a cell's blocks into one inline run."""
        tokens: list[Token] = []
        for block in cell.blocks:
            if isinstance(block, (Paragraph, Heading)):
                inline_tokens = self._inlines_to_tokens(block.inlines)
            elif isinstance(block, CodeBlock):
                inline_tokens = [{"type": "codespan", "raw": block.text}]
            else:
                continue
            if tokens and inline_tokens:
                tokens.append({"type": "text", "raw": " "})
            tokens.extend(inline_tokens)
        return tokens

    def _inlines_to_tokens(self, inlines: list[Inline]) -> list[Token]:
        tokens: list[Token] = []
        for inline in inlines:
            tokens.extend(self._inline_to_tokens(inline))
        return tokens

    def _inline_to_tokens(self, inline: Inline) -> list[Token]:
        if isinstance(inline, Text):
            return [{"type": "text", "raw": inline.text}]
        if isinstance(inline, Strong):
            return [{"type": "strong", "children": self._inlines_to_tokens(inline.inlines)}]
        if isinstance(inline, Emphasis):
            return [{"type": "emphasis", "children": self._inlines_to_tokens(inline.inlines)}]
        if isinstance(inline, Underline):
            return underline_to_tokens(self._inlines_to_tokens(inline.inlines))
        if isinstance(inline, Link):
            return [
                {
                    "type": "link",
                    "attrs": {"url": inline.href},
                    "children": self._inlines_to_tokens(inline.inlines),
                }
            ]
        if isinstance(inline, CodeSpan):
            # The writer receives unescaped text
            return [{"type": "codespan", "raw": inline.text}]
        if isinstance(inline, Image):
            children = [{"type": "text", "raw": inline.alt}] if inline.alt else []
            return [{"type": "image", "attrs": {"url": inline.src}, "children": children}]
        if isinstance(inline, LineBreak):
            return [{"type": "linebreak"}]
        return []
