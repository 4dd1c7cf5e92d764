"""Abstract base classes for document format handlers."""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path

from docmorph.formatting.ir import Document


class ContainerFormatError(Exception):
    """A binary container could not be read or written.

    Raised from the underlying library error, so ``__cause__`` keeps the
    original exception.
    """


class FormatHandler(ABC):
    """Abstract base class for document format handlers.

    Each handler converts between the bytes of one format and an IR
    Document. ``load`` always returns a normalized document.
    """

    #: Short name used by ``--from`` / ``--to``
    format_name: str = ""

    @property
    @abstractmethod
    def supported_extensions(self) -> tuple[str, ...]:
        """Return tuple of supported file extensions (e.g., ('.md',))."""
        ...

    @abstractmethod
    async def load(self, data: bytes) -> Document:
        """Parse document bytes into IR.

        Args:
            data: Raw content of a document in this format

        Returns:
            Normalized Document
        """
        ...

    @abstractmethod
    async def dump(self, document: Document) -> bytes:
        """Render an IR document to bytes of this format.

        Args:
            document: The Document to render

        Returns:
            Encoded document
        """
        ...

    async def read(self, path: Path) -> Document:
        """Read and parse a document file."""
        data = await asyncio.to_thread(Path(path).read_bytes)
        return await self.load(data)

    async def write(self, document: Document, path: Path) -> None:
        """Render a document and write it to ``path``."""
        data = await self.dump(document)
        await asyncio.to_thread(Path(path).write_bytes, data)


class TextFormatHandler(FormatHandler):
    """Base class for formats whose content is UTF-8 text.

    Subclasses implement the synchronous ``parse`` / ``serialize`` pair;
    the async interface wraps them without leaving the event loop.
    """

    encoding = "utf-8"

    @abstractmethod
    def parse(self, text: str) -> Document:
        """Parse source text into a normalized Document."""
        ...

    @abstractmethod
    def serialize(self, document: Document) -> str:
        """Render a Document as source text."""
        ...

    async def load(self, data: bytes) -> Document:
        # utf-8-sig drops a BOM some editors prepend
        return self.parse(data.decode("utf-8-sig"))

    async def dump(self, document: Document) -> bytes:
        return self.serialize(document).encode(self.encoding)
