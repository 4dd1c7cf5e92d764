"""Structural validation of IR trees.

``validate_document`` walks an untyped value (typically decoded JSON
crossing the IR boundary, or a typed tree built by hand) and reports every
node whose shape does not match its declared tag. It is advisory: nothing in
the parse/print pipeline calls it implicitly.
"""

import dataclasses
from enum import Enum
from typing import Any

from docmorph.formatting.ir import (
    BLOCK_TYPES,
    INLINE_TYPES,
    Document,
    TableAlignment,
)


ALIGNMENT_VALUES = {alignment.value for alignment in TableAlignment}

# Dataclass fields whose tagged-dict key differs from the attribute name
FIELD_KEYS = {"header_row": "headerRow"}


class IRValidationError(ValueError):
    """A value failed structural validation as an IR document."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        summary = "; ".join(violations[:5])
        if len(violations) > 5:
            summary += f"; ... ({len(violations) - 5} more)"
        super().__init__(f"Invalid IR document: {summary}")


def validate_document(value: Any) -> list[str]:
    """Validate the shape of an IR document.

    Args:
        value: A ``Document`` or its tagged-dict form

    Returns:
        List of violations, each prefixed with the node path. Empty when
        the value is a well-formed document.
    """
    validator = _ShapeValidator()
    validator.check_document(_untyped(value))
    return validator.violations


def _untyped(value: Any) -> Any:
    """Turn typed IR nodes into tagged dicts without assuming a valid shape.

    Values that are not IR nodes are left as they are so the shape walk can
    report them.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        data: dict[str, Any] = {"type": getattr(value, "tag", type(value).__name__)}
        for field in dataclasses.fields(value):
            item = getattr(value, field.name)
            if item is not None:
                data[FIELD_KEYS.get(field.name, field.name)] = _untyped(item)
        return data
    if isinstance(value, list):
        return [_untyped(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    return value


class _ShapeValidator:
    """Collects violations while walking a tagged-dict tree."""

    def __init__(self) -> None:
        self.violations: list[str] = []

    def _fail(self, path: str, message: str) -> None:
        self.violations.append(f"{path}: {message}")

    def _node(self, value: Any, path: str, allowed: set[str], kind: str) -> str:
        """Return the node's tag, or '' after recording why it has none."""
        if not isinstance(value, dict):
            self._fail(path, f"expected a {kind} object, got {type(value).__name__}")
            return ""
        tag = value.get("type")
        if not isinstance(tag, str):
            self._fail(path, f"{kind} is missing a string 'type'")
            return ""
        if tag not in allowed:
            self._fail(path, f"unknown {kind} type {tag!r}")
            return ""
        return tag

    def _sequence(self, node: dict, key: str, path: str) -> list:
        items = node.get(key)
        if not isinstance(items, list):
            self._fail(path, f"'{key}' must be a list")
            return []
        return items

    def _string(self, node: dict, key: str, path: str, optional: bool = False) -> None:
        if optional and node.get(key) is None:
            return
        if not isinstance(node.get(key), str):
            self._fail(path, f"'{key}' must be a string")

    # -------------------------------------------------------------------------

    def check_document(self, value: Any) -> None:
        path = "document"
        if not self._node(value, path, {Document.tag}, "document"):
            return
        self._blocks(value, "blocks", "blocks")

    def _blocks(self, node: dict, key: str, path: str) -> None:
        for index, block in enumerate(self._sequence(node, key, path)):
            self._block(block, f"{path}[{index}]")

    def _inlines(self, node: dict, path: str) -> None:
        key_path = f"{path}.inlines"
        for index, inline in enumerate(self._sequence(node, "inlines", path)):
            self._inline(inline, f"{key_path}[{index}]")

    def _block(self, value: Any, path: str) -> None:
        tag = self._node(value, path, set(BLOCK_TYPES), "block")
        if tag == "Paragraph":
            self._inlines(value, path)
        elif tag == "Heading":
            level = value.get("level")
            if isinstance(level, bool) or not isinstance(level, int) or not 1 <= level <= 6:
                self._fail(path, f"heading level must be an integer 1..6, got {level!r}")
            self._inlines(value, path)
        elif tag == "List":
            if not isinstance(value.get("ordered"), bool):
                self._fail(path, "'ordered' must be a boolean")
            for index, item in enumerate(self._sequence(value, "items", path)):
                item_path = f"{path}.items[{index}]"
                if self._node(item, item_path, {"ListItem"}, "list item"):
                    self._blocks(item, "blocks", f"{item_path}.blocks")
        elif tag == "Blockquote":
            self._blocks(value, "blocks", f"{path}.blocks")
        elif tag == "CodeBlock":
            self._string(value, "text", path)
            self._string(value, "language", path, optional=True)
        elif tag == "Table":
            self._table(value, path)

    def _table(self, value: dict, path: str) -> None:
        header = value.get("headerRow")
        if header is not None:
            self._row(header, f"{path}.headerRow")
        for index, row in enumerate(self._sequence(value, "rows", path)):
            self._row(row, f"{path}.rows[{index}]")

        alignments = value.get("alignments")
        if alignments is None:
            return
        if not isinstance(alignments, list):
            self._fail(path, "'alignments' must be a list")
            return
        for index, alignment in enumerate(alignments):
            if alignment not in ALIGNMENT_VALUES:
                self._fail(
                    f"{path}.alignments[{index}]",
                    f"alignment must be one of {sorted(ALIGNMENT_VALUES)}, got {alignment!r}",
                )

    def _row(self, value: Any, path: str) -> None:
        if not self._node(value, path, {"TableRow"}, "table row"):
            return
        for index, cell in enumerate(self._sequence(value, "cells", path)):
            cell_path = f"{path}.cells[{index}]"
            if self._node(cell, cell_path, {"TableCell"}, "table cell"):
                self._blocks(cell, "blocks", f"{cell_path}.blocks")

    def _inline(self, value: Any, path: str) -> None:
        tag = self._node(value, path, set(INLINE_TYPES), "inline")
        if tag in ("Text", "CodeSpan"):
            self._string(value, "text", path)
        elif tag in ("Strong", "Emphasis", "Underline"):
            self._inlines(value, path)
        elif tag == "Link":
            self._string(value, "href", path)
            self._inlines(value, path)
        elif tag == "Image":
            self._string(value, "src", path)
            self._string(value, "alt", path, optional=True)
