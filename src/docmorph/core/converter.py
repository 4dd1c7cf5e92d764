"""Main document conversion orchestrator."""

from pathlib import Path
from typing import Optional

from loguru import logger

from docmorph.formats import (
    FormatHandler,
    LatexHandler,
    get_handler,
    get_handler_by_name,
)
from docmorph.formatting.ir import Document
from docmorph.formatting.validation import validate_document


class ConversionError(Exception):
    """Error during document conversion."""

    pass


class DocumentConverter:
    """Orchestrates the conversion pipeline.

    Pipeline:
    1. Resolve source and target handlers (by name or file extension)
    2. Read and parse the input into a normalized IR document
    3. Optionally validate the IR
    4. Render the IR with the target handler and write it out
    """

    def __init__(self, validate: bool = False, standalone: Optional[bool] = None) -> None:
        """Initialize the converter.

        Args:
            validate: Whether to run structural validation on the IR
                before writing
            standalone: Passed to the LaTeX handler; None uses the setting
        """
        self.validate = validate
        self.standalone = standalone

    def resolve_handler(
        self, path: Optional[Path] = None, format_name: Optional[str] = None
    ) -> FormatHandler:
        """Create the handler for an explicit format name or a file path.

        Raises:
            ConversionError: If neither identifies a supported format
        """
        try:
            if format_name:
                handler_class = get_handler_by_name(format_name)
            elif path is not None:
                handler_class = get_handler(Path(path).suffix)
            else:
                raise ConversionError("Cannot determine format without a name or a path")
        except ValueError as exc:
            raise ConversionError(str(exc)) from exc

        if handler_class is LatexHandler:
            return LatexHandler(standalone=self.standalone)
        return handler_class()

    async def load_file(
        self, input_path: Path, source_format: Optional[str] = None
    ) -> Document:
        """Read a file into a normalized IR document.

        Raises:
            ConversionError: If the file is missing, unsupported or empty
        """
        input_path = Path(input_path)
        if not input_path.exists():
            raise ConversionError(f"Input file not found: {input_path}")

        handler = self.resolve_handler(input_path, source_format)
        data = input_path.read_bytes()
        logger.debug(f"Read {len(data)} bytes from {input_path}")
        return await self._load(handler, data)

    async def convert_file(
        self,
        input_path: Path,
        output_path: Path,
        source_format: Optional[str] = None,
        target_format: Optional[str] = None,
    ) -> Document:
        """Convert a document file.

        Args:
            input_path: Path to input document
            output_path: Path for output document
            source_format: Format name overriding the input extension
            target_format: Format name overriding the output extension

        Returns:
            The normalized Document that was written

        Raises:
            ConversionError: If conversion fails
        """
        output_path = Path(output_path)
        target = self.resolve_handler(output_path, target_format)

        document = await self.load_file(input_path, source_format)
        self._check(document)

        await target.write(document, output_path)
        logger.debug(f"Wrote {output_path}")
        return document

    async def convert_bytes(
        self, data: bytes, source_format: str, target_format: str
    ) -> bytes:
        """Convert document content between two named formats.

        Raises:
            ConversionError: If a format is unknown or the input is empty
        """
        source = self.resolve_handler(format_name=source_format)
        target = self.resolve_handler(format_name=target_format)

        document = await self._load(source, data)
        self._check(document)
        return await target.dump(document)

    async def _load(self, handler: FormatHandler, data: bytes) -> Document:
        if not data.strip():
            raise ConversionError("Input contains no content")

        document = await handler.load(data)
        logger.debug(
            f"Parsed {len(document.blocks)} block(s) with {type(handler).__name__}"
        )
        return document

    def _check(self, document: Document) -> None:
        if not self.validate:
            return
        violations = validate_document(document)
        if violations:
            details = "\n".join(f"  - {violation}" for violation in violations)
            raise ConversionError(f"IR validation failed:\n{details}")
        logger.debug("IR validation passed")
