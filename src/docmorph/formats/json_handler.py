"""IR JSON (.json) file handler."""

import json

from docmorph.formats.base import TextFormatHandler
from docmorph.formatting.ir import Document
from docmorph.formatting.normalize import normalize
from docmorph.formatting.serialization import document_from_dict, document_to_dict


class IRJSONHandler(TextFormatHandler):
    """Handler for IR documents stored as JSON.

    Reading validates the tree and raises ``IRValidationError`` listing
    every violation; ``json.JSONDecodeError`` propagates for input that is
    not JSON at all.
    """

    format_name = "json"

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".json",)

    def parse(self, text: str) -> Document:
        return normalize(document_from_dict(json.loads(text)))

    def serialize(self, document: Document) -> str:
        data = document_to_dict(document, include_version=True)
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
