"""
Credit Report Parser - Exceptions

Only the top-level parse and the document collaborators raise. Everything
below them degrades to "field absent" instead.
"""
from typing import Optional


class CreditParserError(Exception):
    """Base class for all parser errors."""


class ExtractionFailure(CreditParserError):
    """No scores, no profiles and no accounts could be extracted."""

    def __init__(self, message: str, text_length: int = 0, too_short: bool = False):
        super().__init__(message)
        self.text_length = text_length
        self.too_short = too_short


class TextTooShortError(ExtractionFailure):
    """Extracted text is too short to hold a report; the document likely needs OCR."""

    def __init__(self, message: str, text_length: int = 0):
        super().__init__(message, text_length=text_length, too_short=True)


class TextExtractionError(CreditParserError):
    """A document could not be turned into text."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class OcrUnavailableError(TextExtractionError):
    """OCR was requested but Tesseract (or poppler) is not installed."""
