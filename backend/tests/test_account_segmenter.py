"""
Account Segmenter Tests

Covers:
- Numbered entries with inline and following-line account numbers
- Bare creditor names confirmed by a nearby account number
- Account-type lines never becoming accounts
- Duplicate spans for the same tradeline
- Spans widened back to an account number printed just above them
- Bureau-prefixed pipe rows and per-bureau tables
"""
import pytest

from credit_parser.models.ssot import Bureau, ParseTrace, RawAccountSpan
from credit_parser.services.parsing.account_segmenter import AccountSegmenter


class TestNumberedAccounts:
    """Tests for '1. CREDITOR' style entries"""

    @pytest.fixture
    def segmenter(self):
        return AccountSegmenter()

    def test_two_numbered_accounts(self, segmenter):
        """Each numbered entry becomes one span ending where the next begins"""
        text = (
            "1. CHASE BANK USA\n"
            "Account #: 44445555****\n"
            "Balance: $1,250.00\n"
            "2. CAPITAL ONE Account #: 5178****\n"
            "Balance: $300.00"
        )
        spans = segmenter.segment(text)

        assert [s.account_name for s in spans] == ["CHASE BANK USA", "CAPITAL ONE"]
        assert spans[0].account_number == "44445555****"
        assert spans[1].account_number == "5178****"
        assert "Balance: $1,250.00" in spans[0].text
        assert "CAPITAL ONE" not in spans[0].text
        assert spans[0].source == "numbered"

    def test_account_type_line_is_not_an_account(self, segmenter):
        """A line like 'REVOLVING Account #: 1234' never yields a span named REVOLVING"""
        spans = segmenter.segment("REVOLVING Account #: 1234\nBalance: $100.00")
        assert all(s.account_name != "REVOLVING" for s in spans)
        assert spans == []

    def test_numbered_account_type_rejected(self, segmenter):
        spans = segmenter.segment("1. INSTALLMENT\nAccount #: 9999****")
        assert spans == []

    def test_section_headers_rejected(self, segmenter):
        spans = segmenter.segment("1. PAYMENT HISTORY\nAccount #: 9999****")
        assert spans == []

    def test_spans_stop_at_end_marker(self, segmenter):
        """Inquiries after the last account are not part of it"""
        text = "1. CHASE BANK USA\nAccount #: 4444****\nINQUIRIES\nDISCOVER 01/01/2020"
        spans = segmenter.segment(text)
        assert len(spans) == 1
        assert "INQUIRIES" not in spans[0].text

    def test_segment_counts_recorded_on_trace(self, segmenter):
        trace = ParseTrace()
        segmenter.segment("1. CHASE BANK USA\nAccount #: 4444****", trace)
        assert trace.segment_counts == {"numbered": 1}


class TestBareNameAccounts:
    """Tests for creditor names without a number prefix"""

    @pytest.fixture
    def segmenter(self):
        return AccountSegmenter()

    def test_bare_name_with_account_number_below(self, segmenter):
        text = (
            "MIDLAND CREDIT MANAGEMENT\n"
            "Acct #: 8888****\n"
            "Date Opened: 01/15/2019\n"
            "Balance: $640.00"
        )
        spans = segmenter.segment(text)

        assert len(spans) == 1
        assert spans[0].account_name == "MIDLAND CREDIT MANAGEMENT"
        assert spans[0].account_number == "8888****"
        assert spans[0].source == "bare_name"

    def test_bare_name_without_number_ignored(self, segmenter):
        """An uppercase line with no account number nearby is not an account"""
        spans = segmenter.segment("IMPORTANT NOTICE\nPlease review your report.")
        assert spans == []

    def test_repeated_account_merged(self, segmenter):
        """The same name and number seen twice yields one span"""
        text = (
            "1. CAPITAL ONE\n"
            "Account #: 5178****\n"
            "Balance: $300.00\n"
            "\n"
            "CAPITAL ONE\n"
            "Account #: 5178****\n"
            "Balance: $300.00"
        )
        spans = segmenter.segment(text)
        assert len(spans) == 1
        assert spans[0].account_name == "CAPITAL ONE"


class TestPipeRows:
    """Tests for bureau-prefixed pipe rows"""

    @pytest.fixture
    def segmenter(self):
        return AccountSegmenter()

    def test_pipe_rows_become_presets(self, segmenter):
        """Rows for the same account attach per-bureau presets to one span"""
        text = (
            "TransUnion | CAPITAL ONE | 5178****1234 | $300.00 | Open\n"
            "Experian | CAPITAL ONE | 5178****1234 | $320.00 | Open | Disputed"
        )
        spans = segmenter.segment(text)

        assert len(spans) == 1
        span = spans[0]
        assert span.source == "pipe_row"
        assert span.presets[Bureau.TRANSUNION] == {"balance": "$300.00", "status": "Open"}
        assert span.presets[Bureau.EXPERIAN]["balance"] == "$320.00"
        assert span.presets[Bureau.EXPERIAN]["reason"] == "Disputed"
        assert Bureau.EQUIFAX not in span.presets

    def test_pipe_row_attaches_to_numbered_span(self, segmenter):
        text = (
            "1. CAPITAL ONE\n"
            "Account #: 5178****\n"
            "TransUnion | CAPITAL ONE | 5178**** | $300.00 | Open"
        )
        spans = segmenter.segment(text)
        assert len(spans) == 1
        assert spans[0].source == "numbered"
        assert spans[0].presets[Bureau.TRANSUNION]["balance"] == "$300.00"


class TestSegmentTable:
    """Tests for per-bureau account tables"""

    def test_table_rows_preset_for_bureau(self):
        text = (
            "Account Name | Account # | Balance | Status\n"
            "CHASE BANK USA | 4444**** | $1,250.00 | Current\n"
            "CAPITAL ONE | 5178**** | $300.00 | Closed"
        )
        spans = AccountSegmenter().segment_table(text, Bureau.EXPERIAN)

        assert [s.account_name for s in spans] == ["CHASE BANK USA", "CAPITAL ONE"]
        assert spans[0].account_number == "4444****"
        assert spans[0].presets == {Bureau.EXPERIAN: {"balance": "$1,250.00", "status": "Current"}}
        assert spans[1].source == "table_row"

    def test_no_table_header(self):
        spans = AccountSegmenter().segment_table("1. CHASE BANK USA\nBalance: $1.00", Bureau.EXPERIAN)
        assert spans == []


class TestSpanWidening:
    """Tests for spans whose account number is printed above the name"""

    TEXT = (
        "1. CAPITAL ONE\n"
        "Balance: $300.00\n"
        "Account #: 5555****\n"
        "CHASE BANK USA\n"
        "Balance: $100.00"
    )

    def _span(self, text, name="CHASE BANK USA", number="5555****"):
        start = text.index(name)
        return RawAccountSpan(
            account_name=name,
            account_number=number,
            start=start,
            end=len(text),
            text=text[start:],
            source="bare_name",
        )

    def test_span_widens_to_number_line(self):
        """The span start moves back to the line holding its own number"""
        span = self._span(self.TEXT)
        AccountSegmenter()._verify_number(self.TEXT, span, [span])

        assert span.start == self.TEXT.index("Account #: 5555****")
        assert span.text.startswith("Account #: 5555****\nCHASE BANK USA")
        assert span.text.endswith("Balance: $100.00")

    def test_number_outside_window_left_alone(self):
        span = self._span(self.TEXT)
        original_start = span.start
        AccountSegmenter(backtrack_window=5)._verify_number(self.TEXT, span, [span])

        assert span.start == original_start
        assert span.text.startswith("CHASE BANK USA")

    def test_never_widens_into_previous_span(self):
        """The previous account's start bounds the search"""
        text = (
            "Account #: 5555****\n"
            "MIDLAND FUNDING\n"
            "Balance: $50.00\n"
            "CHASE BANK USA\n"
            "Balance: $100.00"
        )
        previous = self._span(text, name="MIDLAND FUNDING", number=None)
        span = self._span(text)
        original_start = span.start
        AccountSegmenter()._verify_number(text, span, [previous, span])

        assert span.start == original_start
        assert span.text.startswith("CHASE BANK USA")

    def test_number_inside_span_not_widened(self):
        text = "CHASE BANK USA\nAccount #: 5555****\nBalance: $100.00"
        span = self._span(text)
        AccountSegmenter()._verify_number(text, span, [span])

        assert span.start == 0
