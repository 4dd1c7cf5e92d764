"""Canonicalization pass giving every IR tree a unique normal form.

Parsers are free to emit one ``Text`` run per source token, or transient
empty runs; after ``normalize`` two trees describing the same content
compare equal, which is what round-trip checks rely on.
"""

from dataclasses import replace

from docmorph.formatting.ir import (
    Block,
    Blockquote,
    Document,
    Heading,
    Inline,
    InlineContainer,
    ListBlock,
    ListItem,
    Paragraph,
    Table,
    TableCell,
    TableRow,
    Text,
)


def normalize(document: Document) -> Document:
    """Return the normal form of ``document``.

    Pure and idempotent: the input tree is never modified, and
    ``normalize(normalize(doc)) == normalize(doc)``.
    """
    return replace(document, blocks=normalize_blocks(document.blocks))


def normalize_blocks(blocks: list[Block]) -> list[Block]:
    return [_normalize_block(block) for block in blocks]


def _normalize_block(block: Block) -> Block:
    if isinstance(block, (Paragraph, Heading)):
        return replace(block, inlines=normalize_inlines(block.inlines))
    if isinstance(block, ListBlock):
        return replace(block, items=[_normalize_item(item) for item in block.items])
    if isinstance(block, Blockquote):
        return replace(block, blocks=normalize_blocks(block.blocks))
    if isinstance(block, Table):
        header = _normalize_row(block.header_row) if block.header_row else None
        return replace(
            block,
            header_row=header,
            rows=[_normalize_row(row) for row in block.rows],
        )
    # CodeBlock and HorizontalRule are leaves
    return block


def _normalize_item(item: ListItem) -> ListItem:
    return replace(item, blocks=_non_empty(normalize_blocks(item.blocks)))


def _normalize_row(row: TableRow) -> TableRow:
    cells = [
        replace(cell, blocks=_non_empty(normalize_blocks(cell.blocks)))
        for cell in row.cells
    ]
    return replace(row, cells=cells)


def _non_empty(blocks: list[Block]) -> list[Block]:
    """Materialize an empty container as a single empty paragraph."""
    return blocks if blocks else [Paragraph(inlines=[])]


def normalize_inlines(inlines: list[Inline]) -> list[Inline]:
    """Normalize one inline sequence.

    Containers are normalized first (post-order), then adjacent ``Text``
    runs are merged left to right and empty runs dropped. Any other node
    ends the current merge chain.
    """
    merged: list[Inline] = []
    for inline in inlines:
        if isinstance(inline, InlineContainer):
            inline = inline.with_inlines(normalize_inlines(inline.inlines))

        if isinstance(inline, Text):
            if merged and isinstance(merged[-1], Text):
                merged[-1] = Text(text=merged[-1].text + inline.text)
            elif inline.text:
                merged.append(inline)
            continue

        merged.append(inline)
    return merged
