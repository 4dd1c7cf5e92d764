"""Conversion orchestration for DocMorph."""

from docmorph.core.converter import ConversionError, DocumentConverter

__all__ = [
    "ConversionError",
    "DocumentConverter",
]
