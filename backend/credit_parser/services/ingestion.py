"""
Credit Report Parser - Report Ingestion

Document in, database rows out:

    extract text (PDF / HTML / plain text)
    -> OCR fallback when the text layer is unusable
    -> parse_report
    -> ReportRepository.save (one transaction)
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ..exceptions import TextExtractionError
from ..models.ssot import AccountDiscrepancy, FormatHint, ParseResult, PersonalProfileVariant
from .extraction import HtmlReportExtractor, PdfTextExtractor, TesseractOcr
from .parsing import CreditReportParser
from .persistence import ReportRepository

logger = logging.getLogger(__name__)


@dataclass
class IngestionSummary:
    client_id: str
    source_file: str
    format_tag: Optional[str] = None
    used_ocr: bool = False
    score_saved: bool = False
    profiles: List[PersonalProfileVariant] = field(default_factory=list)
    accounts_parsed: int = 0
    accounts_inserted: int = 0
    accounts_skipped: int = 0
    discrepancies: List[AccountDiscrepancy] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "client_id": self.client_id,
            "source_file": self.source_file,
            "format": self.format_tag,
            "used_ocr": self.used_ocr,
            "score_saved": self.score_saved,
            "profiles": [p.to_dict() for p in self.profiles],
            "accounts_parsed": self.accounts_parsed,
            "accounts_inserted": self.accounts_inserted,
            "accounts_skipped": self.accounts_skipped,
            "discrepancies": [d.to_dict() for d in self.discrepancies],
        }


class ReportIngestionService:
    """Run one uploaded report through extraction, parsing and persistence."""

    def __init__(
        self,
        db: Session,
        parser: Optional[CreditReportParser] = None,
        pdf_extractor: Optional[PdfTextExtractor] = None,
        html_extractor: Optional[HtmlReportExtractor] = None,
        ocr: Optional[TesseractOcr] = None,
    ):
        self.db = db
        self.parser = parser or CreditReportParser()
        self.pdf_extractor = pdf_extractor or PdfTextExtractor()
        self.html_extractor = html_extractor or HtmlReportExtractor()
        self.ocr = ocr or TesseractOcr()
        self.repository = ReportRepository(db)

    def extract_text(self, file_path: Union[str, Path]):
        """Return (text, used_ocr) for a document."""
        path = Path(file_path)
        suffix = path.suffix.lower()

        if suffix in (".html", ".htm"):
            return self.html_extractor.extract_text(str(path)), False

        if suffix != ".pdf":
            try:
                return path.read_text(encoding="utf-8", errors="replace"), False
            except OSError as e:
                raise TextExtractionError(f"Cannot read file: {e}", source=str(path)) from e

        text = self.pdf_extractor.extract_text(str(path))
        if not self.ocr.needs_ocr(text):
            return text, False

        logger.info(f"PDF text layer unusable ({len(text.strip())} characters); trying OCR")
        try:
            ocr_text = self.ocr.extract_text_via_ocr(str(path))
        except TextExtractionError as e:
            logger.warning(f"OCR fallback failed, keeping extracted text: {e}")
            return text, False
        if len(ocr_text.strip()) > len(text.strip()):
            return ocr_text, True
        return text, False

    def ingest(
        self,
        client_id: str,
        file_path: Union[str, Path],
        format_hint: Union[FormatHint, str] = FormatHint.AUTO,
    ) -> IngestionSummary:
        text, used_ocr = self.extract_text(file_path)
        result: ParseResult = self.parser.parse(text, format_hint)
        saved = self.repository.save(client_id, result)

        summary = IngestionSummary(
            client_id=client_id,
            source_file=str(file_path),
            format_tag=result.trace.format_tag.value if result.trace.format_tag else None,
            used_ocr=used_ocr,
            score_saved=saved.score_saved,
            profiles=result.profiles,
            accounts_parsed=len(result.accounts),
            accounts_inserted=saved.items_inserted,
            accounts_skipped=saved.items_skipped,
            discrepancies=result.discrepancies,
        )
        logger.info(
            f"Ingested {file_path} for client {client_id}: "
            f"{summary.accounts_inserted}/{summary.accounts_parsed} records inserted"
        )
        return summary
