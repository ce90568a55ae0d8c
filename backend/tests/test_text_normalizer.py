"""
Text Normalizer Tests

Whitespace handling, page-wrap repair, glued tokens and idempotence.
"""
import pytest

from credit_parser.services.parsing.text_normalizer import TextNormalizer


SAMPLES = [
    "1. CHASE BANK US\nA\nAccount #: 44445555****",
    "TransUnion    Experian    Equifax\r\nBalance:    $100.00    $200.00    $300.00",
    "TransUnionExperianEquifax\nBalance: $1.00$2.00$3.00",
    "PERSONAL PROFILE\n\n\n\nName:  JOHN   DOE\u00a0\u200b",
    "Account #: 1234\n56\nBalance: $500.00\n12",
    "1\ufe0f\u20e3 CAPITAL ONE\n$300.00Pay Status: Current",
    "   \n  leading and trailing   \n\n",
    "1. CHASE BANK US\nA ",
    "Account #: 1234\n56\t\n",
]


class TestTextNormalizer:
    """Tests for TextNormalizer.normalize"""

    @pytest.fixture
    def normalizer(self):
        return TextNormalizer()

    @pytest.mark.parametrize("raw", SAMPLES)
    def test_idempotent(self, normalizer, raw):
        """Normalizing already-normalized text changes nothing"""
        once = normalizer.normalize(raw)
        assert normalizer.normalize(once) == once

    def test_empty_input(self, normalizer):
        """Empty and None input normalize to an empty string"""
        assert normalizer.normalize("") == ""
        assert normalizer.normalize(None) == ""

    def test_line_endings_unified(self, normalizer):
        """CRLF and CR become LF"""
        assert normalizer.normalize("A LINE\r\nB LINE\rC LINE") == "A LINE\nB LINE\nC LINE"

    def test_page_break_letter_join(self, normalizer):
        """A dangling letter fragment is glued back onto the word it was cut from"""
        text = normalizer.normalize("1. CHASE BANK US\nA\nAccount #: 44445555****")
        assert text.split("\n")[0] == "1. CHASE BANK USA"
        assert "Account #: 44445555****" in text

    def test_trailing_whitespace_fragment_joined(self, normalizer):
        """A fragment on the last line is joined even with trailing spaces"""
        assert normalizer.normalize("1. CHASE BANK US\nA ") == "1. CHASE BANK USA"
        assert normalizer.normalize("1. CHASE BANK US\nA\t\n") == "1. CHASE BANK USA"

    def test_digit_fragment_after_complete_amount_kept(self, normalizer):
        """A digit line after a complete amount is not a wrap"""
        text = normalizer.normalize("Balance: $500.00\n12")
        assert text == "Balance: $500.00\n12"

    def test_digit_fragment_joined(self, normalizer):
        """A digit line after a cut-off number is joined"""
        text = normalizer.normalize("Account #: 1234\n56")
        assert text == "Account #: 123456"

    def test_wide_gaps_become_tabs(self, normalizer):
        """Runs of 4+ spaces keep their column meaning as a tab"""
        text = normalizer.normalize("Balance:    $100.00    $200.00    $300.00")
        assert text == "Balance:\t$100.00\t$200.00\t$300.00"

    def test_wide_gaps_collapsed_without_column_preservation(self):
        """With column preservation off, every space run is one space"""
        text = TextNormalizer(preserve_columns=False).normalize("Balance:    $100.00    $200.00")
        assert text == "Balance: $100.00 $200.00"

    def test_double_spaces_collapsed(self, normalizer):
        """Short space runs collapse to one space"""
        assert normalizer.normalize("Name:  JOHN   DOE") == "Name: JOHN DOE"

    def test_blank_line_runs_limited(self, normalizer):
        """Three or more newlines shrink to one blank line"""
        assert normalizer.normalize("ONE LINE\n\n\n\nTWO LINE") == "ONE LINE\n\nTWO LINE"

    def test_invisible_characters_removed(self, normalizer):
        """Zero-width characters and non-breaking spaces are cleaned"""
        assert normalizer.normalize("CHASE\u200b BANK\u00a0USA\ufeff") == "CHASE BANK USA"

    def test_keycap_digits(self, normalizer):
        """Keycap emoji digits become plain numbered entries"""
        assert normalizer.normalize("1\ufe0f\u20e3 CAPITAL ONE") == "1. CAPITAL ONE"

    def test_smashed_bureau_names_split(self, normalizer):
        """Bureau names glued together are separated"""
        assert normalizer.normalize("TransUnionExperianEquifax") == "TransUnion Experian Equifax"

    def test_smashed_label_split(self, normalizer):
        """A label glued onto the previous value gets its space back"""
        text = normalizer.normalize("Balance: $300.00Pay Status: Current")
        assert text == "Balance: $300.00 Pay Status: Current"
