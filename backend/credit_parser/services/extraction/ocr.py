"""
Credit Report Parser - OCR Fallback

Tesseract OCR for image-only PDFs. pdf2image renders each page, pytesseract
reads it. Both are optional installs (the "ocr" extra), so they are only
imported when OCR actually runs.
"""
from __future__ import annotations
import logging
import os
import shutil

from ...config import OCR_DPI, OCR_MIN_ALNUM_RATIO, OCR_MIN_TEXT_LENGTH, POPPLER_PATH, TESSERACT_CMD
from ...exceptions import OcrUnavailableError, TextExtractionError

logger = logging.getLogger(__name__)

TESSERACT_CONFIG = r"--oem 3 --psm 6"


class TesseractOcr:
    """OcrFallback collaborator."""

    def __init__(
        self,
        min_text_length: int = OCR_MIN_TEXT_LENGTH,
        min_alnum_ratio: float = OCR_MIN_ALNUM_RATIO,
        dpi: int = OCR_DPI,
    ):
        self.min_text_length = min_text_length
        self.min_alnum_ratio = min_alnum_ratio
        self.dpi = dpi

    def needs_ocr(self, text: str) -> bool:
        """True when extracted text is too short or mostly non-alphanumeric."""
        stripped = (text or "").strip()
        if len(stripped) < self.min_text_length:
            return True
        visible = [c for c in stripped if not c.isspace()]
        alnum = sum(1 for c in visible if c.isalnum())
        return alnum / len(visible) < self.min_alnum_ratio

    def is_available(self) -> bool:
        if TESSERACT_CMD and os.path.exists(TESSERACT_CMD):
            return True
        return shutil.which("tesseract") is not None

    def extract_text_via_ocr(self, pdf_path: str) -> str:
        try:
            from pdf2image import convert_from_path
            import pytesseract
        except ImportError as e:
            raise OcrUnavailableError(f"OCR libraries not installed: {e}", source=str(pdf_path)) from e

        if TESSERACT_CMD and os.path.exists(TESSERACT_CMD):
            pytesseract.pytesseract.tesseract_cmd = TESSERACT_CMD
        if not self.is_available():
            raise OcrUnavailableError("Tesseract executable not found", source=str(pdf_path))

        logger.info(f"Converting PDF to images for OCR: {pdf_path}")
        try:
            if POPPLER_PATH and os.path.exists(POPPLER_PATH):
                images = convert_from_path(pdf_path, dpi=self.dpi, poppler_path=POPPLER_PATH)
            else:
                images = convert_from_path(pdf_path, dpi=self.dpi)
        except Exception as e:
            raise TextExtractionError(f"Cannot render PDF pages: {e}", source=str(pdf_path)) from e

        pages = []
        for index, image in enumerate(images):
            try:
                page_text = pytesseract.image_to_string(image, config=TESSERACT_CONFIG)
            except Exception as e:
                logger.warning(f"OCR failed on page {index + 1}: {e}")
                continue
            if page_text:
                pages.append(page_text)

        text = "\n".join(pages)
        logger.info(f"OCR extracted {len(text)} characters from {len(images)} pages")
        return text
