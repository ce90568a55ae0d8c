"""
Credit Report Parser - Scores and Personal Profile

Reads the three bureau scores, the report date / reference number and the
per-bureau personal profile variants. Both parsers try a three-column
table first and fall back to per-bureau inline matches.
"""
from __future__ import annotations
import logging
import re
from typing import Dict, List, Optional

from ...models.ssot import Bureau, BUREAU_ORDER, PersonalProfileVariant, ScoreTriple
from .field_normalizer import FieldNormalizer
from .table_layout import (
    HEADER_SEQUENCE_RE, bureau_mentions, iter_label_pairs, split_columns, split_label_line, split_triple,
)
from .vocabulary import BUREAU_NAME_RE, map_profile_label

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

MIN_SCORE = 300
MAX_SCORE = 900

SCORE_NUMBER_RE = re.compile(r"(?<![\d/.,$])(\d{3})(?![\d/,]|\.\d)")

INLINE_SCORE_RES = {
    Bureau.TRANSUNION: re.compile(r"Trans\s?Union", re.IGNORECASE),
    Bureau.EXPERIAN: re.compile(r"Experian", re.IGNORECASE),
    Bureau.EQUIFAX: re.compile(r"Equifax", re.IGNORECASE),
}
INLINE_SCORE_TAIL_RE = re.compile(r"[^\S\n]*[:\-]?[^\S\n]*(?:(?:Credit[^\S\n]+)?Score[^\S\n]*:?[^\S\n]*)?(\d{3})\b")

DATE_VALUE = r"\d{1,2}/\d{1,2}/\d{4}"
REPORT_DATE_RE = re.compile(
    r"(?:Credit\s+)?Report\s+Date|Date\s+of\s+Report|Report\s+Generated(?:\s+On)?",
    re.IGNORECASE,
)
ANY_DATE_RE = re.compile(DATE_VALUE)
REFERENCE_RE = re.compile(r"Reference\s*(?:#|Number|No\.?)?\s*[:#]?\s*([A-Z0-9][A-Z0-9\-]{3,})", re.IGNORECASE)

PROFILE_SECTION_RE = re.compile(
    r"^[ \t]*PERSONAL\s+(?:PROFILE|INFORMATION)[^\n]*\n(?P<body>.*?)"
    r"(?=^[ \t]*(?:CREDIT\s+ACCOUNTS|TRADE\s?LINES|ACCOUNT\s+HISTORY|CREDIT\s+SCORE|"
    r"SATISFACTORY\s+ACCOUNTS|ADVERSE\s+ACCOUNTS|INQUIRIES|PUBLIC\s+RECORDS)\b|\Z)",
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)

DATE_FIELDS = {"date_of_birth", "date_reported"}


class ScoreAndProfileParser:
    """Parse scores and personal profile variants from normalized text."""

    def __init__(self, normalizer: Optional[FieldNormalizer] = None):
        self.normalizer = normalizer or FieldNormalizer()

    # =========================================================================
    # SCORES
    # =========================================================================

    def parse_scores(self, text: str) -> Optional[ScoreTriple]:
        scores = ScoreTriple()
        if not self._scores_from_table(text, scores):
            self._scores_inline(text, scores)

        if not scores.has_scores():
            logger.debug("No credit scores found")
            return None

        scores.report_date = self._report_date(text)
        scores.reference_number = self._reference_number(text)
        logger.info(
            f"Extracted credit scores - TU: {scores.transunion}, "
            f"EX: {scores.experian}, EQ: {scores.equifax}"
        )
        return scores

    def _scores_from_table(self, text: str, scores: ScoreTriple) -> bool:
        lines = text.split("\n")
        for index, line in enumerate(lines):
            order = self._line_bureau_order(line)
            if not order:
                continue
            for candidate in lines[index + 1:index + 7]:
                if "score" not in candidate.lower() and not re.fullmatch(r"[\s|\d]+", candidate):
                    continue
                numbers = [int(n) for n in SCORE_NUMBER_RE.findall(candidate) if MIN_SCORE <= int(n) <= MAX_SCORE]
                if len(numbers) == 3:
                    for bureau, number in zip(order, numbers):
                        scores.set_score(bureau, number)
                    return True
        return False

    def _scores_inline(self, text: str, scores: ScoreTriple) -> None:
        for bureau, name_re in INLINE_SCORE_RES.items():
            for match in name_re.finditer(text):
                tail = INLINE_SCORE_TAIL_RE.match(text, match.end())
                if not tail:
                    continue
                score = int(tail.group(1))
                if MIN_SCORE <= score <= MAX_SCORE:
                    scores.set_score(bureau, score)
                    break

    def _report_date(self, text: str):
        labelled = REPORT_DATE_RE.search(text)
        if labelled:
            value = ANY_DATE_RE.search(text, labelled.end(), labelled.end() + 40)
            if value:
                return self.normalizer.normalize_date(value.group(0))
        first = ANY_DATE_RE.search(text)
        return self.normalizer.normalize_date(first.group(0)) if first else None

    @staticmethod
    def _reference_number(text: str) -> Optional[str]:
        for match in REFERENCE_RE.finditer(text):
            value = match.group(1)
            if re.search(r"\d", value):
                return value
        return None

    # =========================================================================
    # PERSONAL PROFILE
    # =========================================================================

    def parse_profiles(self, text: str) -> List[PersonalProfileVariant]:
        section = PROFILE_SECTION_RE.search(text)
        if not section:
            logger.debug("No personal profile section found")
            return []
        body = section.group("body")

        variants = {bureau: PersonalProfileVariant(bureau=bureau) for bureau in BUREAU_ORDER}
        self._profiles_from_table(body, variants)
        self._profiles_inline(body, variants)

        profiles = [v for v in variants.values() if not v.is_empty()]
        logger.info(f"Extracted {len(profiles)} personal profile variants")
        return profiles

    def _profiles_from_table(self, body: str, variants: Dict[Bureau, PersonalProfileVariant]) -> None:
        order: Optional[List[Bureau]] = None
        for line in body.split("\n"):
            header = self._line_bureau_order(line)
            if header:
                order = header
                continue
            if order is None:
                continue
            values = self._row_values(line)
            if values is None:
                continue
            label, cells = values
            key = map_profile_label(label)
            if not key:
                continue
            for bureau, cell in zip(order, cells):
                self._set_profile_field(variants[bureau], key, cell)

    def _row_values(self, line: str):
        if "|" in line or "\t" in line:
            cells = split_columns(line)
            if "|" not in line:
                cells = [c for c in cells if c]
            if len(cells) >= 4:
                return cells[0], cells[-3:]
            return None
        parsed = split_label_line(line)
        if not parsed:
            return None
        label, values = parsed
        triple = split_triple(values)
        return (label, triple) if triple else None

    def _profiles_inline(self, body: str, variants: Dict[Bureau, PersonalProfileVariant]) -> None:
        mentions = bureau_mentions(body)
        if not mentions:
            # No bureau named at all: one profile shared by every bureau
            if HEADER_SEQUENCE_RE.search(body) or BUREAU_NAME_RE.search(body):
                return
            for label, value in iter_label_pairs(body):
                key = map_profile_label(label)
                if key:
                    for variant in variants.values():
                        self._set_profile_field(variant, key, value)
            return

        for index, (_, end, bureau) in enumerate(mentions):
            stop = len(body)
            for later_start, _, later in mentions[index + 1:]:
                if later != bureau:
                    stop = later_start
                    break
            for label, value in iter_label_pairs(body[end:stop]):
                key = map_profile_label(label)
                if key:
                    self._set_profile_field(variants[bureau], key, value)

    def _set_profile_field(self, variant: PersonalProfileVariant, key: str, raw: Optional[str]) -> None:
        if getattr(variant, key) is not None:
            return
        if key in DATE_FIELDS:
            value = self.normalizer.normalize_date(raw)
        else:
            value = self.normalizer.clean_value(raw)
        if value is not None:
            setattr(variant, key, value)

    def _line_bureau_order(self, line: str) -> Optional[List[Bureau]]:
        """Bureau order of a three-bureau header line in any column layout."""
        found = []
        for match in BUREAU_NAME_RE.finditer(line):
            bureau = self.normalizer.normalize_bureau(match.group(0))
            if bureau is not None and bureau not in found:
                found.append(bureau)
        if len(found) != 3:
            return None
        leftover = BUREAU_NAME_RE.sub(" ", line)
        if re.search(r"\d", leftover) or len(re.sub(r"[|:\t]", " ", leftover).split()) > 3:
            return None
        return found

