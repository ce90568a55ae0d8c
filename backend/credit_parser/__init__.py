"""Credit Report Parser - multi-bureau credit report text extraction."""
from .exceptions import (
    CreditParserError, ExtractionFailure, TextTooShortError,
    TextExtractionError, OcrUnavailableError,
)
from .services.parsing import parse_report, CreditReportParser

__version__ = "1.0.0"

__all__ = [
    "parse_report", "CreditReportParser",
    "CreditParserError", "ExtractionFailure", "TextTooShortError",
    "TextExtractionError", "OcrUnavailableError",
]
