"""Readable-text extraction from uploaded file blobs (PDF via PyMuPDF, plain text)."""

import logging
import re

import pymupdf  # PyMuPDF

logger = logging.getLogger(__name__)

# Control characters that Postgres TEXT cannot store (NUL, etc.)
_ILLEGAL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

_TEXT_TYPES = ("application/json", "application/xml", "application/x-yaml")


class TextExtractor:
    """Turns raw blob bytes into text the completion service can read."""

    @staticmethod
    def is_supported(content_type: str) -> bool:
        return (
            content_type == "application/pdf"
            or content_type.startswith("text/")
            or content_type in _TEXT_TYPES
        )

    async def extract(self, data: bytes, content_type: str) -> str | None:
        """
        Extract text from a blob.

        Returns None when the type is unsupported or the bytes cannot be
        parsed; callers treat that as "file unreadable".
        """
        if content_type == "application/pdf":
            return self._extract_pdf(data)
        if self.is_supported(content_type):
            return _ILLEGAL_CHARS.sub("", data.decode("utf-8", errors="replace"))
        return None

    @staticmethod
    def _extract_pdf(data: bytes) -> str | None:
        try:
            doc = pymupdf.open(stream=data, filetype="pdf")
        except Exception:
            logger.warning("Could not open PDF (%d bytes)", len(data), exc_info=True)
            return None
        try:
            pages = [doc[page_num].get_text() for page_num in range(len(doc))]
        finally:
            doc.close()
        return _ILLEGAL_CHARS.sub("", "\n\n".join(pages))


# Singleton instance
text_extractor = TextExtractor()
