"""JSON-shaped dict codec for IR trees.

Every node becomes a dict tagged with ``"type"``; optional fields are
omitted when absent. The dict form is what ``validate_document`` walks and
what the IR JSON format handler reads and writes.
"""

from typing import Any

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
from docmorph.formatting.validation import IRValidationError, validate_document


# =============================================================================
# IR -> dict
# =============================================================================

def document_to_dict(document: Document, include_version: bool = False) -> dict[str, Any]:
    """Convert a Document to its tagged-dict form."""
    data: dict[str, Any] = {
        "type": Document.tag,
        "blocks": [block_to_dict(block) for block in document.blocks],
    }
    if include_version:
        data["version"] = IR_VERSION
    return data


def block_to_dict(block: Block) -> dict[str, Any]:
    data: dict[str, Any] = {"type": block.tag}
    if isinstance(block, (Paragraph, Heading)):
        if isinstance(block, Heading):
            data["level"] = block.level
        data["inlines"] = [inline_to_dict(inline) for inline in block.inlines]
    elif isinstance(block, ListBlock):
        data["ordered"] = block.ordered
        data["items"] = [
            {"type": ListItem.tag, "blocks": [block_to_dict(b) for b in item.blocks]}
            for item in block.items
        ]
    elif isinstance(block, Blockquote):
        data["blocks"] = [block_to_dict(b) for b in block.blocks]
    elif isinstance(block, CodeBlock):
        data["text"] = block.text
        if block.language is not None:
            data["language"] = block.language
    elif isinstance(block, Table):
        if block.header_row is not None:
            data["headerRow"] = _row_to_dict(block.header_row)
        data["rows"] = [_row_to_dict(row) for row in block.rows]
        if block.alignments is not None:
            data["alignments"] = [TableAlignment(a).value for a in block.alignments]
    return data


def _row_to_dict(row: TableRow) -> dict[str, Any]:
    return {
        "type": TableRow.tag,
        "cells": [
            {"type": TableCell.tag, "blocks": [block_to_dict(b) for b in cell.blocks]}
            for cell in row.cells
        ],
    }


def inline_to_dict(inline: Inline) -> dict[str, Any]:
    data: dict[str, Any] = {"type": inline.tag}
    if isinstance(inline, (Text, CodeSpan)):
        data["text"] = inline.text
    elif isinstance(inline, Link):
        data["href"] = inline.href
        data["inlines"] = [inline_to_dict(child) for child in inline.inlines]
    elif isinstance(inline, (Strong, Emphasis, Underline)):
        data["inlines"] = [inline_to_dict(child) for child in inline.inlines]
    elif isinstance(inline, Image):
        data["src"] = inline.src
        if inline.alt is not None:
            data["alt"] = inline.alt
    return data


# =============================================================================
# dict -> IR
# =============================================================================

def document_from_dict(value: Any) -> Document:
    """Build a Document from its tagged-dict form.

    The value is validated first; every violation is reported at once.

    Raises:
        IRValidationError: If ``value`` is not a well-formed IR document
    """
    violations = validate_document(value)
    if violations:
        raise IRValidationError(violations)
    return Document(blocks=[block_from_dict(b) for b in value["blocks"]])


def block_from_dict(data: dict[str, Any]) -> Block:
    kind = data["type"]
    if kind == Paragraph.tag:
        return Paragraph(inlines=_inlines_from(data["inlines"]))
    if kind == Heading.tag:
        return Heading(level=data["level"], inlines=_inlines_from(data["inlines"]))
    if kind == ListBlock.tag:
        return ListBlock(
            ordered=data["ordered"],
            items=[
                ListItem(blocks=[block_from_dict(b) for b in item["blocks"]])
                for item in data["items"]
            ],
        )
    if kind == Blockquote.tag:
        return Blockquote(blocks=[block_from_dict(b) for b in data["blocks"]])
    if kind == CodeBlock.tag:
        return CodeBlock(text=data["text"], language=data.get("language"))
    if kind == HorizontalRule.tag:
        return HorizontalRule()
    if kind == Table.tag:
        header = data.get("headerRow")
        alignments = data.get("alignments")
        return Table(
            header_row=_row_from_dict(header) if header is not None else None,
            rows=[_row_from_dict(row) for row in data["rows"]],
            alignments=(
                [TableAlignment(a) for a in alignments] if alignments is not None else None
            ),
        )
    raise ValueError(f"Unknown block type: {kind}")


def _row_from_dict(data: dict[str, Any]) -> TableRow:
    return TableRow(
        cells=[
            TableCell(blocks=[block_from_dict(b) for b in cell["blocks"]])
            for cell in data["cells"]
        ]
    )


def _inlines_from(items: list[dict[str, Any]]) -> list[Inline]:
    return [inline_from_dict(item) for item in items]


def inline_from_dict(data: dict[str, Any]) -> Inline:
    kind = data["type"]
    if kind == Text.tag:
        return Text(text=data["text"])
    if kind == Strong.tag:
        return Strong(inlines=_inlines_from(data["inlines"]))
    if kind == Emphasis.tag:
        return Emphasis(inlines=_inlines_from(data["inlines"]))
    if kind == Underline.tag:
        return Underline(inlines=_inlines_from(data["inlines"]))
    if kind == CodeSpan.tag:
        return CodeSpan(text=data["text"])
    if kind == LineBreak.tag:
        return LineBreak()
    if kind == Link.tag:
        return Link(href=data["href"], inlines=_inlines_from(data["inlines"]))
    if kind == Image.tag:
        return Image(src=data["src"], alt=data.get("alt"))
    raise ValueError(f"Unknown inline type: {kind}")
