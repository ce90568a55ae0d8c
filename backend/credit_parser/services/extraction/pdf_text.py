"""
Credit Report Parser - PDF Text Extractor

Text-layer extraction with pdfplumber. Scanned PDFs come back (nearly)
empty; the OCR fallback decides what to do with them.
"""
from __future__ import annotations
import logging
from pathlib import Path

import pdfplumber

from ...exceptions import TextExtractionError

logger = logging.getLogger(__name__)


class PdfTextExtractor:
    """TextExtractor for PDF reports."""

    def __init__(self, layout: bool = False):
        # layout=True keeps column spacing, which the normalizer turns into tabs
        self.layout = layout

    def extract_text(self, pdf_path: str) -> str:
        path = Path(pdf_path)
        if not path.exists():
            raise TextExtractionError(f"File not found: {pdf_path}", source=str(pdf_path))

        logger.info(f"Extracting text from PDF: {pdf_path}")
        pages = []
        try:
            with pdfplumber.open(str(path)) as pdf:
                for page in pdf.pages:
                    page_text = page.extract_text(layout=self.layout)
                    if page_text:
                        pages.append(page_text)
        except Exception as e:
            logger.error(f"pdfplumber extraction failed: {e}")
            raise TextExtractionError(f"Cannot read PDF: {e}", source=str(pdf_path)) from e

        text = "\n\n".join(pages)
        logger.info(f"Extracted {len(text)} characters from {len(pages)} pages")
        return text
