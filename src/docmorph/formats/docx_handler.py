"""Microsoft Word (.docx) file handler."""

import asyncio
import io
from dataclasses import dataclass, replace
from typing import Optional

import docx
import mammoth
from docx.enum.style import WD_STYLE_TYPE
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor
from loguru import logger

from docmorph.config import Settings, get_settings
from docmorph.formats.base import ContainerFormatError, FormatHandler
from docmorph.formatting.html_mapper import HtmlMapper
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
    Paragraph,
    Strong,
    Table,
    TableAlignment,
    Text,
    Underline,
)
from docmorph.formatting.normalize import normalize


# Extra mammoth style mappings for the styles this handler writes
STYLE_MAP = "\n".join(
    [
        "u => u",
        "p[style-name='Quote'] => blockquote > p:fresh",
        "p[style-name='Code Block'] => pre",
        "r[style-name='Inline Code'] => code",
    ]
)

CODE_BLOCK_STYLE = "Code Block"
INLINE_CODE_STYLE = "Inline Code"
HYPERLINK_STYLE = "Hyperlink"
QUOTE_STYLE = "Quote"
LIST_STYLE = "List Paragraph"
TABLE_STYLE = "Table Grid"

PARAGRAPH_ALIGNMENT = {
    TableAlignment.LEFT: WD_ALIGN_PARAGRAPH.LEFT,
    TableAlignment.CENTER: WD_ALIGN_PARAGRAPH.CENTER,
    TableAlignment.RIGHT: WD_ALIGN_PARAGRAPH.RIGHT,
}

LIST_LEVELS = 9
BULLET_CHARS = ["•", "◦", "▪"]


class DOCXHandler(FormatHandler):
    """Handler for Microsoft Word (.docx) files.

    Reading goes through mammoth, which turns the container into semantic
    HTML that ``HtmlMapper`` maps onto the IR. Writing builds the document
    directly with python-docx. Both libraries block, so each call runs in
    a worker thread.
    """

    format_name = "docx"

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.mapper = HtmlMapper()

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".docx",)

    async def load(self, data: bytes) -> Document:
        """Parse DOCX bytes into a normalized Document.

        Raises:
            ContainerFormatError: If mammoth cannot read the container
        """
        return await asyncio.to_thread(self._load, data)

    def _load(self, data: bytes) -> Document:
        result = _read_container(mammoth.convert_to_html, data, style_map=STYLE_MAP)
        for message in result.messages:
            logger.debug(f"mammoth: {message}")

        document = normalize(self.mapper.to_ir(result.value))
        if document.blocks:
            return document

        # Nothing structural came through; keep at least the text
        logger.warning("DOCX produced no structured content, falling back to raw text")
        raw = _read_container(mammoth.extract_raw_text, data).value
        paragraphs = [
            Paragraph(inlines=[Text(text=line.strip())])
            for line in raw.splitlines()
            if line.strip()
        ]
        return normalize(Document(blocks=paragraphs))

    async def dump(self, document: Document) -> bytes:
        """Render a Document as DOCX bytes.

        Raises:
            ContainerFormatError: If python-docx fails to build the file
        """
        return await asyncio.to_thread(self._dump, document)

    def _dump(self, document: Document) -> bytes:
        try:
            builder = _DocxBuilder(self.settings)
        except Exception as exc:
            raise ContainerFormatError(str(exc)) from exc
        builder.add_blocks(builder.doc, document.blocks, _Context())

        buffer = io.BytesIO()
        try:
            builder.doc.save(buffer)
        except Exception as exc:
            raise ContainerFormatError(str(exc)) from exc
        return buffer.getvalue()


def _read_container(convert, data: bytes, **kwargs):
    """Run one mammoth conversion over DOCX bytes.

    Raises:
        ContainerFormatError: If mammoth cannot read the container
    """
    try:
        return convert(io.BytesIO(data), **kwargs)
    except Exception as exc:
        raise ContainerFormatError(str(exc)) from exc


@dataclass(frozen=True)
class _Context:
    """Block-level state carried down while building."""

    quote: bool = False
    alignment: Optional[TableAlignment] = None


@dataclass(frozen=True)
class _RunFormat:
    """Character formatting accumulated through nested inlines."""

    bold: bool = False
    italic: bool = False
    underline: bool = False
    hyperlink: Optional[object] = None


class _DocxBuilder:
    """Builds one python-docx document from IR blocks."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.doc = docx.Document()
        self._abstract_ids: dict[bool, int] = {}
        self._setup_styles()

    def _setup_styles(self) -> None:
        styles = self.doc.styles

        # Set default font
        font = styles["Normal"].font
        font.name = self.settings.docx_body_font
        font.size = Pt(self.settings.docx_font_size)

        code_block = styles.add_style(CODE_BLOCK_STYLE, WD_STYLE_TYPE.PARAGRAPH)
        code_block.base_style = styles["Normal"]
        code_block.font.name = self.settings.docx_code_font
        code_block.paragraph_format.space_after = Pt(6)

        inline_code = styles.add_style(INLINE_CODE_STYLE, WD_STYLE_TYPE.CHARACTER)
        inline_code.font.name = self.settings.docx_code_font

        # The default template may or may not define the Hyperlink style
        try:
            hyperlink = styles[HYPERLINK_STYLE]
        except KeyError:
            hyperlink = styles.add_style(HYPERLINK_STYLE, WD_STYLE_TYPE.CHARACTER)
        hyperlink.font.color.rgb = RGBColor.from_string(self.settings.docx_link_color)
        hyperlink.font.underline = True

    # =========================================================================
    # Blocks
    # =========================================================================

    def add_blocks(self, container, blocks: list[Block], context: _Context) -> None:
        """Append blocks to a document body or a table cell."""
        for block in blocks:
            self.add_block(container, block, context)

    def add_block(self, container, block: Block, context: _Context) -> None:
        if isinstance(block, Paragraph):
            style = QUOTE_STYLE if context.quote else None
            paragraph = container.add_paragraph(style=style)
            self._align(paragraph, context)
            self.add_inlines(paragraph, block.inlines)
        elif isinstance(block, Heading):
            paragraph = container.add_paragraph(style=f"Heading {block.level}")
            self._align(paragraph, context)
            self.add_inlines(paragraph, block.inlines)
        elif isinstance(block, ListBlock):
            self._add_list(container, block, depth=0, numbering=None)
        elif isinstance(block, Blockquote):
            self.add_blocks(container, block.blocks, replace(context, quote=True))
        elif isinstance(block, CodeBlock):
            self._add_code_block(container, block)
        elif isinstance(block, HorizontalRule):
            self._add_horizontal_line(container)
        elif isinstance(block, Table):
            self._add_table(container, block)

    def _align(self, paragraph, context: _Context) -> None:
        if context.alignment is not None:
            paragraph.alignment = PARAGRAPH_ALIGNMENT[TableAlignment(context.alignment)]

    def _add_code_block(self, container, block: CodeBlock) -> None:
        """Add code as one paragraph with a line break per source line."""
        paragraph = container.add_paragraph(style=CODE_BLOCK_STYLE)
        run = paragraph.add_run()
        for index, line in enumerate(block.text.split("\n")):
            if index:
                run.add_break()
            run.add_text(line)

    def _add_horizontal_line(self, container) -> None:
        """Add a horizontal line separator."""
        para = container.add_paragraph()
        para.paragraph_format.space_before = Pt(12)
        para.paragraph_format.space_after = Pt(12)

        # Create horizontal line using paragraph border
        pPr = para._p.get_or_add_pPr()
        pBdr = OxmlElement("w:pBdr")
        bottom = OxmlElement("w:bottom")
        bottom.set(qn("w:val"), "single")
        bottom.set(qn("w:sz"), "6")
        bottom.set(qn("w:space"), "1")
        bottom.set(qn("w:color"), "auto")
        pBdr.append(bottom)
        pPr.append(pBdr)

    # =========================================================================
    # Lists
    # =========================================================================

    def _add_list(
        self,
        container,
        block: ListBlock,
        depth: int,
        numbering: Optional[tuple[int, bool]],
    ) -> None:
        """Add list items as numbered paragraphs.

        Nested lists of the same kind share the enclosing list's numbering
        instance one level deeper; a top-level list or a change of kind
        starts a new instance.
        """
        if numbering is None or numbering[1] != block.ordered:
            numbering = (self._new_num(block.ordered), block.ordered)
        num_id = numbering[0]
        level = min(depth, LIST_LEVELS - 1)

        for item in block.items:
            blocks = list(item.blocks)
            paragraph = container.add_paragraph(style=LIST_STYLE)
            self._set_numbering(paragraph, num_id, level)
            if blocks and isinstance(blocks[0], Paragraph):
                self.add_inlines(paragraph, blocks.pop(0).inlines)

            for child in blocks:
                if isinstance(child, ListBlock):
                    self._add_list(container, child, depth + 1, numbering)
                elif isinstance(child, Paragraph):
                    continuation = container.add_paragraph(style=LIST_STYLE)
                    self.add_inlines(continuation, child.inlines)
                else:
                    self.add_block(container, child, _Context())

    def _set_numbering(self, paragraph, num_id: int, level: int) -> None:
        numPr = paragraph._p.get_or_add_pPr().get_or_add_numPr()
        numPr.get_or_add_ilvl().val = level
        numPr.get_or_add_numId().val = num_id

    def _new_num(self, ordered: bool) -> int:
        """Add a numbering instance (w:num) for one list; returns its numId."""
        numbering = self.doc.part.numbering_part.element
        abstract_id = self._abstract_num(ordered)

        existing = [int(value) for value in numbering.xpath("./w:num/@w:numId")]
        num_id = max(existing, default=0) + 1

        num = OxmlElement("w:num")
        num.set(qn("w:numId"), str(num_id))
        abstract_ref = OxmlElement("w:abstractNumId")
        abstract_ref.set(qn("w:val"), str(abstract_id))
        num.append(abstract_ref)
        if ordered:
            # Every ordered list counts from 1
            override = OxmlElement("w:lvlOverride")
            override.set(qn("w:ilvl"), "0")
            start = OxmlElement("w:startOverride")
            start.set(qn("w:val"), "1")
            override.append(start)
            num.append(override)
        numbering.append(num)
        return num_id

    def _abstract_num(self, ordered: bool) -> int:
        """Get (creating once) the bullet or decimal abstract definition."""
        if ordered in self._abstract_ids:
            return self._abstract_ids[ordered]

        numbering = self.doc.part.numbering_part.element
        existing = [int(v) for v in numbering.xpath("./w:abstractNum/@w:abstractNumId")]
        abstract_id = max(existing, default=-1) + 1

        abstract = OxmlElement("w:abstractNum")
        abstract.set(qn("w:abstractNumId"), str(abstract_id))
        multi = OxmlElement("w:multiLevelType")
        multi.set(qn("w:val"), "hybridMultilevel")
        abstract.append(multi)

        for level in range(LIST_LEVELS):
            abstract.append(self._list_level(level, ordered))

        # abstractNum definitions must precede every w:num
        first_num = numbering.find(qn("w:num"))
        if first_num is not None:
            first_num.addprevious(abstract)
        else:
            numbering.append(abstract)

        self._abstract_ids[ordered] = abstract_id
        return abstract_id

    def _list_level(self, level: int, ordered: bool):
        lvl = OxmlElement("w:lvl")
        lvl.set(qn("w:ilvl"), str(level))

        start = OxmlElement("w:start")
        start.set(qn("w:val"), "1")
        num_fmt = OxmlElement("w:numFmt")
        num_fmt.set(qn("w:val"), "decimal" if ordered else "bullet")
        lvl_text = OxmlElement("w:lvlText")
        if ordered:
            lvl_text.set(qn("w:val"), f"%{level + 1}.")
        else:
            lvl_text.set(qn("w:val"), BULLET_CHARS[level % len(BULLET_CHARS)])
        jc = OxmlElement("w:lvlJc")
        jc.set(qn("w:val"), "left")

        pPr = OxmlElement("w:pPr")
        ind = OxmlElement("w:ind")
        ind.set(qn("w:left"), str(720 * (level + 1)))
        ind.set(qn("w:hanging"), "360")
        pPr.append(ind)

        for element in (start, num_fmt, lvl_text, jc, pPr):
            lvl.append(element)
        return lvl

    # =========================================================================
    # Tables
    # =========================================================================

    def _add_table(self, container, table: Table) -> None:
        rows = table.all_rows
        columns = table.column_count
        if not rows or not columns:
            return

        docx_table = container.add_table(len(rows), columns)
        docx_table.style = TABLE_STYLE
        alignments = list(table.alignments or [])

        for row_index, row in enumerate(rows):
            for column in range(columns):
                cell = docx_table.cell(row_index, column)
                blocks = row.cells[column].blocks if column < len(row.cells) else []
                alignment = alignments[column] if column < len(alignments) else None
                self._fill_cell(cell, blocks, _Context(alignment=alignment))

        if table.header_row is not None:
            # Repeat the header on every page
            trPr = docx_table.rows[0]._tr.get_or_add_trPr()
            header = OxmlElement("w:tblHeader")
            header.set(qn("w:val"), "true")
            trPr.append(header)

    def _fill_cell(self, cell, blocks: list[Block], context: _Context) -> None:
        initial = cell.paragraphs[0]
        self.add_blocks(cell, blocks, context)

        # A new cell already holds one empty paragraph
        if len(cell.paragraphs) > 1 and not initial.runs:
            initial._p.getparent().remove(initial._p)
        elif context.alignment is not None:
            self._align(initial, context)

    # =========================================================================
    # Inlines
    # =========================================================================

    def add_inlines(
        self, paragraph, inlines: list[Inline], fmt: Optional[_RunFormat] = None
    ) -> None:
        """Add inline nodes as runs, accumulating formatting through nesting."""
        fmt = fmt or _RunFormat()
        for inline in inlines:
            if isinstance(inline, Text):
                self._add_run(paragraph, inline.text, fmt)
            elif isinstance(inline, Strong):
                self.add_inlines(paragraph, inline.inlines, replace(fmt, bold=True))
            elif isinstance(inline, Emphasis):
                self.add_inlines(paragraph, inline.inlines, replace(fmt, italic=True))
            elif isinstance(inline, Underline):
                self.add_inlines(paragraph, inline.inlines, replace(fmt, underline=True))
            elif isinstance(inline, CodeSpan):
                run = self._add_run(paragraph, inline.text, fmt)
                run.style = INLINE_CODE_STYLE
            elif isinstance(inline, LineBreak):
                self._add_run(paragraph, "", fmt).add_break()
            elif isinstance(inline, Link):
                self._add_link(paragraph, inline, fmt)
            elif isinstance(inline, Image):
                label = f"{inline.alt} {inline.src}" if inline.alt else inline.src
                self._add_run(paragraph, f"[{label}]", fmt)

    def _add_run(self, paragraph, text: str, fmt: _RunFormat):
        run = paragraph.add_run(text)
        if fmt.bold:
            run.bold = True
        if fmt.italic:
            run.italic = True
        if fmt.underline:
            run.underline = True
        if fmt.hyperlink is not None:
            run.style = HYPERLINK_STYLE
            fmt.hyperlink.append(run._r)
        return run

    def _add_link(self, paragraph, link: Link, fmt: _RunFormat) -> None:
        """Add a real w:hyperlink element whose runs carry the label."""
        if not link.href or fmt.hyperlink is not None:
            self.add_inlines(paragraph, link.inlines, fmt)
            return

        r_id = paragraph.part.relate_to(link.href, RT.HYPERLINK, is_external=True)
        hyperlink = OxmlElement("w:hyperlink")
        hyperlink.set(qn("r:id"), r_id)
        paragraph._p.append(hyperlink)
        self.add_inlines(paragraph, link.inlines, replace(fmt, hyperlink=hyperlink))
