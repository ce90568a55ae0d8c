"""
Credit Report Parser - Text Normalizer

Cleans raw extracted report text before any pattern matching:
whitespace, soft line-breaks from PDF page wraps, labels glued onto values,
invisible characters and keycap digits. normalize() is idempotent.
"""
from __future__ import annotations
import logging
import re
from typing import List

from ...config import PRESERVE_TABLE_COLUMNS
from .vocabulary import BUREAU_NAME_PATTERN, SMASHABLE_LABELS

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# digit + optional VS16 + combining enclosing keycap
KEYCAP_RE = re.compile("([0-9])\ufe0f?\u20e3")

# Zero-width / formatting characters and stray control characters
INVISIBLE_RE = re.compile("[\u200b-\u200f\u2060-\u2064\ufeff\u00ad\ufe0e\ufe0f\u20e3\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

WIDE_GAP_RE = re.compile(r"[ \t]*(?: {4,}|\t)[ \t]*")
SPACE_RUN_RE = re.compile(r"[ \t\f\v]{2,}")
SPACE_RUN_NO_TAB_RE = re.compile(r" {2,}")
NEWLINE_EDGE_RE = re.compile(r"[ \t]*\n[ \t]*")
BLANK_RUN_RE = re.compile(r"\n{3,}")

# Short dangling fragments left on their own line by a mid-token wrap
LETTER_FRAGMENT_RE = re.compile(r"[A-Za-z]{1,2}")
DIGIT_FRAGMENT_RE = re.compile(r"\d{1,4}[Xx*]*")
MIXED_FRAGMENT_RE = re.compile(r"[A-Za-z0-9]{1,2}")

# The previous line already ends in a complete amount/date: a following digit line is not a wrap
COMPLETE_NUMBER_RE = re.compile(r"(?:\.\d{2}|\d{1,2}/\d{1,2}/\d{2,4}|\d{1,2}/\d{4})$")

SMASHED_BUREAUS_RE = re.compile(
    r"(" + BUREAU_NAME_PATTERN + r")(?=(?:" + BUREAU_NAME_PATTERN + r"))"
)
SMASHED_LABEL_RE = re.compile(
    r"(?<=[A-Za-z0-9$.,%)*])(?=(?:"
    + "|".join(re.escape(label) for label in sorted(SMASHABLE_LABELS, key=len, reverse=True))
    + r")\s*[:#])"
)


class TextNormalizer:
    """
    Normalize raw report text.

    With preserve_columns, runs of 4+ spaces become a single tab so the
    column-recovery strategies can still split bureau values apart.
    """

    def __init__(self, preserve_columns: bool = PRESERVE_TABLE_COLUMNS):
        self.preserve_columns = preserve_columns

    def normalize(self, raw_text: str) -> str:
        if not raw_text:
            return ""

        text = raw_text.replace("\r\n", "\n").replace("\r", "\n")
        text = text.replace("\u00a0", " ")
        text = KEYCAP_RE.sub(r"\1.", text)
        text = INVISIBLE_RE.sub("", text)

        text = self._collapse_horizontal(text)
        text = NEWLINE_EDGE_RE.sub("\n", text)
        text = BLANK_RUN_RE.sub("\n\n", text).strip()
        text = self._repair_soft_breaks(text)
        text = self._repair_smashed_tokens(text)
        return text.strip()

    # =========================================================================
    # STEPS
    # =========================================================================

    def _collapse_horizontal(self, text: str) -> str:
        if not self.preserve_columns:
            return SPACE_RUN_RE.sub(" ", text)
        text = WIDE_GAP_RE.sub("\t", text)
        return SPACE_RUN_NO_TAB_RE.sub(" ", text)

    def _repair_soft_breaks(self, text: str) -> str:
        """
        Re-join tokens a page or column wrap split across lines.

        Only a line holding a single short token is treated as the tail of a
        wrapped token: "CHASE BANK US\\nA" -> "CHASE BANK USA". Letter/digit
        joins get a space instead of being merged.
        """
        lines: List[str] = []
        for line in text.split("\n"):
            if lines and lines[-1] and line:
                joined = self._join_fragment(lines[-1], line)
                if joined is not None:
                    lines[-1] = joined
                    continue
            lines.append(line)
        return "\n".join(lines)

    @staticmethod
    def _join_fragment(previous: str, fragment: str):
        last = previous[-1]
        if last.isalpha() and LETTER_FRAGMENT_RE.fullmatch(fragment):
            return previous + fragment
        if last.isdigit() and DIGIT_FRAGMENT_RE.fullmatch(fragment):
            if COMPLETE_NUMBER_RE.search(previous):
                return None
            return previous + fragment
        if MIXED_FRAGMENT_RE.fullmatch(fragment) and (
            (last.isalpha() and fragment[0].isdigit()) or (last.isdigit() and fragment[0].isalpha())
        ):
            return previous + " " + fragment
        return None

    @staticmethod
    def _repair_smashed_tokens(text: str) -> str:
        text = SMASHED_BUREAUS_RE.sub(r"\1 ", text)
        return SMASHED_LABEL_RE.sub(" ", text)
