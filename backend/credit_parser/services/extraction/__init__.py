"""Credit Report Parser - Document Extraction

Collaborators that turn a document into report text.
"""
from .html_report import HtmlReportExtractor
from .ocr import TesseractOcr
from .pdf_text import PdfTextExtractor

__all__ = ["HtmlReportExtractor", "PdfTextExtractor", "TesseractOcr"]
