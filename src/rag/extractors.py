"""Document text extraction for various file types.

Supports: PDF, DOCX, TXT
"""

import logging
import re
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import PurePath

from docx import Document as DocxDocument
from pypdf import PdfReader

from src.core.errors import ExtractionError, NoExtractableText, UnsupportedFileType

logger = logging.getLogger(__name__)


class TextExtractor(ABC):
    """Base class for text extractors."""

    @abstractmethod
    def extract(self, content: bytes) -> str:
        """Extract text from document content."""

    @abstractmethod
    def file_types(self) -> list[str]:
        """Return the file type tags (extensions) this extractor handles."""

    @abstractmethod
    def mime_types(self) -> list[str]:
        """Return list of supported MIME types."""


class PlainTextExtractor(TextExtractor):
    """Extract text from plain text files."""

    def extract(self, content: bytes) -> str:
        """Decode bytes as UTF-8, replacing undecodable sequences."""
        return content.decode("utf-8", errors="replace")

    def file_types(self) -> list[str]:
        return ["txt"]

    def mime_types(self) -> list[str]:
        return ["text/plain"]


class PDFExtractor(TextExtractor):
    """Extract the text layer of PDF files using pypdf."""

    def extract(self, content: bytes) -> str:
        """Concatenate the text of all pages in page order."""
        try:
            reader = PdfReader(BytesIO(content))
            pages = [page.extract_text() or "" for page in reader.pages]
        except Exception as e:
            raise ExtractionError(f"PDF extraction failed: {e}") from e

        return "\n\n".join(text for text in pages if text.strip())

    def file_types(self) -> list[str]:
        return ["pdf"]

    def mime_types(self) -> list[str]:
        return ["application/pdf"]


class DOCXExtractor(TextExtractor):
    """Extract text from Word documents using python-docx."""

    def extract(self, content: bytes) -> str:
        """Extract paragraph text in document order, then table cell text."""
        try:
            doc = DocxDocument(BytesIO(content))
        except Exception as e:
            raise ExtractionError(f"DOCX extraction failed: {e}") from e

        text_parts = [para.text.strip() for para in doc.paragraphs if para.text.strip()]

        for table in doc.tables:
            for row in table.rows:
                row_text = " | ".join(cell.text.strip() for cell in row.cells)
                if row_text.replace("|", "").strip():
                    text_parts.append(row_text)

        # Images carry no text layer; they are skipped, not fatal
        if doc.inline_shapes:
            logger.warning(
                f"[Extractor] DOCX contains {len(doc.inline_shapes)} inline image(s); "
                "their content was not extracted"
            )

        return "\n\n".join(text_parts)

    def file_types(self) -> list[str]:
        return ["docx"]

    def mime_types(self) -> list[str]:
        return ["application/vnd.openxmlformats-officedocument.wordprocessingml.document"]


def file_type_from_name(file_name: str) -> str:
    """Derive the file type tag from a file name's extension (lower-cased)."""
    return PurePath(file_name or "").suffix.lstrip(".").lower()


class DocumentExtractor:
    """Unified document extractor that delegates to specific extractors."""

    def __init__(self, extractors: list[TextExtractor] | None = None):
        self.extractors: list[TextExtractor] = extractors or [
            PlainTextExtractor(),
            PDFExtractor(),
            DOCXExtractor(),
        ]

        self._type_map: dict[str, TextExtractor] = {}
        self._mime_map: dict[str, str] = {}
        for extractor in self.extractors:
            for file_type in extractor.file_types():
                self._type_map[file_type] = extractor
            for mime_type in extractor.mime_types():
                self._mime_map[mime_type] = extractor.file_types()[0]

    def supports(self, file_type: str) -> bool:
        """Check if a file type tag is supported."""
        return file_type.lower() in self._type_map

    def supported_types(self) -> list[str]:
        """Get all supported file type tags."""
        return list(self._type_map.keys())

    def file_type_for_mime(self, mime_type: str | None) -> str | None:
        """Map a MIME type to its file type tag, if supported."""
        return self._mime_map.get(mime_type or "")

    def extract(self, content: bytes, file_type: str) -> str:
        """Extract text from a document.

        Args:
            content: Raw document bytes
            file_type: File type tag (``txt``, ``pdf`` or ``docx``)

        Returns:
            Extracted, normalised text (never empty)

        Raises:
            UnsupportedFileType: If no extractor handles ``file_type``
            ExtractionError: If the document cannot be parsed
            NoExtractableText: If the document contains no text
        """
        extractor = self._type_map.get((file_type or "").lower())
        if not extractor:
            raise UnsupportedFileType(file_type, self.supported_types())

        text = self._clean_text(extractor.extract(content))

        if not text:
            raise NoExtractableText(f"No text could be extracted from {file_type.upper()} file")

        return text

    def _clean_text(self, text: str) -> str:
        """Normalise line endings and collapse runs of blank lines."""
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        text = re.sub(r"[ \t]+\n", "\n", text)
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()


__all__ = [
    "DOCXExtractor",
    "DocumentExtractor",
    "PDFExtractor",
    "PlainTextExtractor",
    "TextExtractor",
    "file_type_from_name",
]
