"""
Report Ingestion Tests

Covers:
- OCR heuristics (short text, garbage text)
- Text extraction routing by file type and the OCR fallback decision
- Full ingest of a text report into the database
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from credit_parser.database import init_db
from credit_parser.exceptions import OcrUnavailableError, TextExtractionError
from credit_parser.models.db_models import CreditItemDB
from credit_parser.services.extraction import PdfTextExtractor, TesseractOcr
from credit_parser.services.ingestion import ReportIngestionService


REPORT = """CREDIT ACCOUNTS
1. CHASE BANK USA
Account #: 44445555****
TransUnion Experian Equifax
Account Status: Open Open Open
Balance: $1,250.00 $1,250.00 $1,250.00
"""


class FakePdfExtractor:
    def __init__(self, text):
        self.text = text

    def extract_text(self, path):
        return self.text


class FakeOcr(TesseractOcr):
    """Real heuristics, canned OCR output."""

    def __init__(self, ocr_text=None, error=None):
        super().__init__(min_text_length=100, min_alnum_ratio=0.3)
        self.ocr_text = ocr_text
        self.error = error
        self.calls = 0

    def extract_text_via_ocr(self, pdf_path):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.ocr_text


@pytest.fixture
def db():
    engine = create_engine("sqlite://")
    init_db(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


class TestOcrHeuristics:
    """Tests for TesseractOcr.needs_ocr"""

    @pytest.fixture
    def ocr(self):
        return TesseractOcr(min_text_length=100, min_alnum_ratio=0.3)

    def test_short_text_needs_ocr(self, ocr):
        assert ocr.needs_ocr("") is True
        assert ocr.needs_ocr("Page 1 of 12") is True

    def test_garbage_text_needs_ocr(self, ocr):
        assert ocr.needs_ocr("#$%^&*()!@" * 20 + "abc") is True

    def test_real_text_does_not(self, ocr):
        assert ocr.needs_ocr(REPORT * 2) is False


class TestExtractText:
    """Tests for ReportIngestionService.extract_text"""

    def test_plain_text_file(self, db, tmp_path):
        path = tmp_path / "report.txt"
        path.write_text(REPORT, encoding="utf-8")

        text, used_ocr = ReportIngestionService(db).extract_text(path)
        assert text == REPORT
        assert used_ocr is False

    def test_missing_text_file(self, db, tmp_path):
        with pytest.raises(TextExtractionError):
            ReportIngestionService(db).extract_text(tmp_path / "missing.txt")

    def test_missing_pdf(self, db, tmp_path):
        with pytest.raises(TextExtractionError):
            PdfTextExtractor().extract_text(str(tmp_path / "missing.pdf"))

    def test_good_pdf_text_skips_ocr(self, db):
        ocr = FakeOcr(ocr_text="unused")
        service = ReportIngestionService(db, pdf_extractor=FakePdfExtractor(REPORT * 2), ocr=ocr)

        text, used_ocr = service.extract_text("report.pdf")
        assert used_ocr is False
        assert ocr.calls == 0

    def test_scanned_pdf_uses_ocr(self, db):
        ocr = FakeOcr(ocr_text=REPORT * 2)
        service = ReportIngestionService(db, pdf_extractor=FakePdfExtractor(""), ocr=ocr)

        text, used_ocr = service.extract_text("scan.pdf")
        assert used_ocr is True
        assert text == REPORT * 2

    def test_ocr_unavailable_keeps_extracted_text(self, db):
        ocr = FakeOcr(error=OcrUnavailableError("Tesseract executable not found"))
        service = ReportIngestionService(db, pdf_extractor=FakePdfExtractor("Page 1"), ocr=ocr)

        text, used_ocr = service.extract_text("scan.pdf")
        assert text == "Page 1"
        assert used_ocr is False

    def test_shorter_ocr_text_ignored(self, db):
        ocr = FakeOcr(ocr_text="x")
        service = ReportIngestionService(db, pdf_extractor=FakePdfExtractor("Page 1 of 2"), ocr=ocr)

        text, used_ocr = service.extract_text("scan.pdf")
        assert text == "Page 1 of 2"
        assert used_ocr is False


class TestIngest:
    """Tests for ReportIngestionService.ingest"""

    def test_ingest_text_report(self, db, tmp_path):
        path = tmp_path / "report.txt"
        path.write_text(REPORT, encoding="utf-8")

        summary = ReportIngestionService(db).ingest("client-1", path)

        assert summary.format_tag == "unified"
        assert summary.accounts_parsed == 3
        assert summary.accounts_inserted == 3
        assert summary.used_ocr is False
        assert summary.to_dict()["discrepancies"] == []
        assert db.query(CreditItemDB).count() == 3

    def test_ingest_scanned_pdf(self, db):
        ocr = FakeOcr(ocr_text=REPORT)
        service = ReportIngestionService(db, pdf_extractor=FakePdfExtractor(""), ocr=ocr)

        summary = service.ingest("client-1", "scan.pdf")
        assert summary.used_ocr is True
        assert summary.accounts_inserted == 3
