"""
Score and Personal Profile Parser Tests

Covers:
- Three-column score tables (aligned and pipe)
- Inline per-bureau scores and the 300-900 range check
- Report date and reference number
- Profile tables, per-bureau profile blocks and shared profiles
"""
from datetime import date

import pytest

from credit_parser.models.ssot import Bureau
from credit_parser.services.parsing.score_profile_parser import ScoreAndProfileParser


@pytest.fixture
def parser():
    return ScoreAndProfileParser()


class TestScores:
    """Tests for parse_scores"""

    def test_aligned_score_table(self, parser):
        text = (
            "Report Date: 01/15/2024\n"
            "Reference #: ABC12345\n"
            "CREDIT SCORE\n"
            "TransUnion Experian Equifax\n"
            "Credit Score: 720 715 730"
        )
        scores = parser.parse_scores(text)

        assert scores.transunion == 720
        assert scores.experian == 715
        assert scores.equifax == 730
        assert scores.report_date == date(2024, 1, 15)
        assert scores.reference_number == "ABC12345"

    def test_pipe_score_table_in_header_order(self, parser):
        text = (
            "| | Equifax | TransUnion | Experian |\n"
            "| Credit Score: | 730 | 720 | 715 |"
        )
        scores = parser.parse_scores(text)
        assert scores.score_for(Bureau.EQUIFAX) == 730
        assert scores.score_for(Bureau.TRANSUNION) == 720
        assert scores.score_for(Bureau.EXPERIAN) == 715

    def test_inline_scores(self, parser):
        text = "TransUnion: 720\nExperian Credit Score: 715\nEquifax - 730"
        scores = parser.parse_scores(text)
        assert (scores.transunion, scores.experian, scores.equifax) == (720, 715, 730)

    def test_partial_inline_scores(self, parser):
        scores = parser.parse_scores("Experian Score: 680")
        assert scores.experian == 680
        assert scores.transunion is None
        assert scores.equifax is None

    def test_out_of_range_values_ignored(self, parser):
        """Numbers outside 300-900 are not scores"""
        assert parser.parse_scores("TransUnion: 150\nExperian: 999") is None

    def test_no_scores(self, parser):
        assert parser.parse_scores("1. CHASE BANK USA\nBalance: $1,250.00") is None

    def test_report_date_falls_back_to_first_date(self, parser):
        scores = parser.parse_scores("Printed 03/02/2024\nTransUnion: 700")
        assert scores.report_date == date(2024, 3, 2)

    def test_reference_must_contain_digit(self, parser):
        scores = parser.parse_scores("Reference Number: PENDING\nTransUnion: 700")
        assert scores.reference_number is None


class TestProfiles:
    """Tests for parse_profiles"""

    def test_pipe_profile_table(self, parser):
        text = (
            "PERSONAL PROFILE\n"
            "| | TransUnion | Experian | Equifax |\n"
            "| Name: | JOHN DOE | JOHN DOE | JOHN A DOE |\n"
            "| Date of Birth: | 01/01/1980 | 01/01/1980 | - |\n"
            "| Current Address: | 1 MAIN ST | 1 MAIN ST | 2 OAK AVE |\n"
            "CREDIT ACCOUNTS\n"
            "1. CHASE BANK USA"
        )
        profiles = parser.parse_profiles(text)
        by_bureau = {p.bureau: p for p in profiles}

        assert len(profiles) == 3
        assert by_bureau[Bureau.TRANSUNION].name == "JOHN DOE"
        assert by_bureau[Bureau.TRANSUNION].date_of_birth == date(1980, 1, 1)
        assert by_bureau[Bureau.EQUIFAX].name == "JOHN A DOE"
        assert by_bureau[Bureau.EQUIFAX].date_of_birth is None
        assert by_bureau[Bureau.EQUIFAX].current_address == "2 OAK AVE"

    def test_per_bureau_blocks(self, parser):
        text = (
            "PERSONAL INFORMATION\n"
            "TransUnion\n"
            "Name: JOHN DOE\n"
            "Date of Birth: 01/01/1980\n"
            "Experian\n"
            "Name: JOHN A DOE\n"
            "Employer: ACME CORP\n"
        )
        profiles = parser.parse_profiles(text)
        by_bureau = {p.bureau: p for p in profiles}

        assert set(by_bureau) == {Bureau.TRANSUNION, Bureau.EXPERIAN}
        assert by_bureau[Bureau.TRANSUNION].name == "JOHN DOE"
        assert by_bureau[Bureau.TRANSUNION].employer is None
        assert by_bureau[Bureau.EXPERIAN].employer == "ACME CORP"

    def test_profile_without_bureaus_is_shared(self, parser):
        """A profile naming no bureau applies to all three"""
        text = "PERSONAL PROFILE\nName: JOHN DOE\nCurrent Address: 1 MAIN ST"
        profiles = parser.parse_profiles(text)

        assert [p.bureau for p in profiles] == [Bureau.TRANSUNION, Bureau.EXPERIAN, Bureau.EQUIFAX]
        assert all(p.name == "JOHN DOE" for p in profiles)
        assert all(p.current_address == "1 MAIN ST" for p in profiles)

    def test_no_profile_section(self, parser):
        assert parser.parse_profiles("CREDIT ACCOUNTS\n1. CHASE BANK USA") == []
