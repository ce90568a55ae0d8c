"""
IdentityIQ HTML Extractor Tests

Rendering of score, personal and account tables into report text, and
parsing the rendered text end to end.
"""
from datetime import date

import pytest

from credit_parser.exceptions import TextExtractionError
from credit_parser.models.ssot import Bureau, DiscrepancyFlag
from credit_parser.services.extraction import HtmlReportExtractor
from credit_parser.services.parsing import parse_report


def _row(label, *values):
    cells = "".join(f'<td class="info">{v}</td>' for v in values)
    return f'<tr><td class="label">{label}</td>{cells}</tr>'


IDENTITYIQ_HTML = f"""
<html>
<head><style>.label {{ font-weight: bold; }}</style></head>
<body>
<div id="CreditScore">
  <table class="rpt_table4column">
    <tr><th></th><th>TransUnion</th><th>Experian</th><th>Equifax</th></tr>
    {_row("Credit Score:", "720", "715", "730")}
    {_row("Lender Rank:", "Good", "Good", "Good")}
  </table>
</div>
<table class="rpt_table4column">
  {_row("Credit Report Date:", "01/15/2024", "01/15/2024", "01/15/2024")}
  {_row("Name:", "JOHN DOE", "JOHN DOE", "JOHN A DOE")}
  {_row("Current Address(es):", "1 MAIN ST", "1 MAIN ST", "2 OAK AVE")}
</table>
<div class="sub_header">Chase Bank USA</div>
<table class="rpt_content_table rpt_table4column">
  {_row("Account #:", "4444****", "4444****", "4444****")}
  {_row("Balance:", "$1,250.00", "$1,300.00", "$1,250.00")}
  {_row("Account Status:", "Open", "Open", "Closed")}
</table>
<div class="sub_header">Midland Funding (Original Creditor: CITIBANK N.A.)</div>
<table class="rpt_content_table rpt_table4column">
  {_row("Account #", "8888****", "8888****", "")}
  {_row("Balance:", "$500.00", "$500.00", "")}
</table>
<script>var tracking = "TransUnion: 999";</script>
</body>
</html>
"""


class TestHtmlRendering:
    """Tests for HtmlReportExtractor.render"""

    @pytest.fixture
    def extractor(self):
        return HtmlReportExtractor()

    def test_sections_rendered(self, extractor):
        text = extractor.render(IDENTITYIQ_HTML)

        assert "CREDIT SCORE\n| | TransUnion | Experian | Equifax |\n| Credit Score: | 720 | 715 | 730 |" in text
        assert "Lender Rank" not in text
        assert "| Current Address: | 1 MAIN ST | 1 MAIN ST | 2 OAK AVE |" in text
        assert "CREDIT ACCOUNTS\n1. CHASE BANK USA\n" in text
        assert "| Balance: | $1,250.00 | $1,300.00 | $1,250.00 |" in text
        assert "tracking" not in text

    def test_original_creditor_split_from_header(self, extractor):
        text = extractor.render(IDENTITYIQ_HTML)
        assert "2. MIDLAND FUNDING\nOriginal Creditor: CITIBANK N.A.\n" in text

    def test_labels_get_colons_and_blanks_get_placeholders(self, extractor):
        text = extractor.render(IDENTITYIQ_HTML)
        assert "| Account #: | 8888**** | 8888**** | - |" in text

    def test_generic_html(self, extractor):
        html = (
            "<html><body><p>Hello</p><script>ignored()</script>"
            "<table><tr><td>A</td><td>B</td></tr></table></body></html>"
        )
        assert extractor.render(html) == "Hello\n\nA | B"

    def test_extract_text_from_file(self, extractor, tmp_path):
        path = tmp_path / "report.html"
        path.write_text(IDENTITYIQ_HTML, encoding="utf-8")
        assert extractor.extract_text(str(path)).startswith("CREDIT SCORE")

    def test_missing_file(self, extractor, tmp_path):
        with pytest.raises(TextExtractionError) as exc_info:
            extractor.extract_text(str(tmp_path / "missing.html"))
        assert exc_info.value.source.endswith("missing.html")


class TestRenderedReportParsing:
    """Rendered HTML goes through the same parser as PDF text"""

    @pytest.fixture
    def result(self):
        return parse_report(HtmlReportExtractor().render(IDENTITYIQ_HTML))

    def test_scores(self, result):
        assert (result.scores.transunion, result.scores.experian, result.scores.equifax) == (720, 715, 730)
        assert result.scores.report_date == date(2024, 1, 15)

    def test_profiles(self, result):
        by_bureau = {p.bureau: p for p in result.profiles}
        assert len(by_bureau) == 3
        assert by_bureau[Bureau.EQUIFAX].name == "JOHN A DOE"
        assert by_bureau[Bureau.TRANSUNION].date_reported == date(2024, 1, 15)

    def test_accounts(self, result):
        assert len(result.accounts) == 6

        chase = result.record_for("CHASE BANK USA", Bureau.EQUIFAX)
        assert chase.fields.status == "CLOSED"
        assert chase.normalized_account_number == "4444"
        assert result.trace.strategy_for("CHASE BANK USA", Bureau.EQUIFAX) == "pipe_table"

        midland = result.record_for("MIDLAND FUNDING", Bureau.EQUIFAX)
        assert midland.original_creditor == "CITIBANK N.A."
        assert midland.fields.is_empty()

    def test_discrepancies(self, result):
        assert len(result.discrepancies) == 1
        assert result.discrepancies[0].account_name == "CHASE BANK USA"
        assert result.discrepancies[0].flags == [DiscrepancyFlag.INACCURATE_BALANCE]
