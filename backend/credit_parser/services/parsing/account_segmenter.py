"""
Credit Report Parser - Account Segmenter

Splits an accounts section into one RawAccountSpan per tradeline.

Three candidate patterns run over the same section:
    numbered    "1. CHASE BANK USA  Account #: 4444****"
    bare name   "MIDLAND CREDIT MANAGEMENT" followed in its block by "Acct #: ..."
    pipe row    "TransUnion | CHASE BANK USA | 4444**** | $1,250.00 | Open"
Span boundaries are resolved from candidate start offsets, never by
searching for the account name again.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ...config import ACCOUNT_NUMBER_BACKTRACK_WINDOW
from ...models.ssot import Bureau, RawAccountSpan, ParseTrace
from .field_normalizer import FieldNormalizer
from .table_layout import split_columns, header_order
from .vocabulary import (
    ACCOUNT_NUMBER_MARKER_RE, ACCOUNT_TYPE_TERMS, BUREAU_NAME_PATTERN, BUREAU_NAME_RE,
    END_MARKER_RE, GENERIC_NAME_WORDS, NOT_REPORTED, SECTION_HEADERS, STATUS_WORDS,
    cut_at_next_label, is_field_label, map_label,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PATTERNS
# =============================================================================

NUMBERED_RE = re.compile(r"(?m)^[ \t]*(?P<index>\d{1,3})[.)][ \t]+(?P<rest>[A-Z][^\n]*)$")

# An all-uppercase line, optionally followed inline by an account-number marker
BARE_NAME_RE = re.compile(
    r"(?m)^[ \t]*(?P<name>[A-Z][A-Z0-9&'.,/\-]*(?:[ ][A-Z0-9&'.,/\-]+)*)"
    r"[ \t]*(?P<tail>(?:Account|Acct|ACCOUNT|ACCT|#)[^\n]*)?$"
)

PIPE_ROW_RE = re.compile(
    r"(?im)^[ \t]*\|?[ \t]*(?P<bureau>" + BUREAU_NAME_PATTERN + r")[ \t]*[:|][ \t]*"
    r"(?P<name>[A-Za-z][^|\n]*?)[ \t]*\|[ \t]*"
    r"(?P<number>[Xx*\d][Xx*\d\-]{3,})[ \t]*\|[ \t]*"
    r"(?P<balance>-?\$?-?[\d,]+(?:\.\d+)?)[ \t]*"
    r"(?:\|[ \t]*(?P<status>[^|\n]*?)[ \t]*)?"
    r"(?:\|[ \t]*(?P<reason>[^|\n]*?)[ \t]*)?\|?[ \t]*$"
)

MONTH_WORDS = {"JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"}

EXTRA_NON_NAMES = {"PAYMENT HISTORY", "TWO-YEAR PAYMENT HISTORY", "ACCOUNT DETAILS", "DETAILS"}

TABLE_NAME_COLUMN_RE = re.compile(r"(?:account|creditor|company)(?:\s*name)?|name", re.IGNORECASE)
TABLE_NUMBER_COLUMN_RE = re.compile(r"(?:account|acct\.?)\s*(?:#|number|no\.?)|#|number", re.IGNORECASE)

# Lines a bare-name candidate looks ahead for its account-number marker
BARE_NAME_LOOKAHEAD = 400


@dataclass
class _Candidate:
    name: str
    start: int
    number: Optional[str]
    source: str


class AccountSegmenter:
    """Find account boundaries inside an accounts section."""

    def __init__(self, normalizer: Optional[FieldNormalizer] = None,
                 backtrack_window: int = ACCOUNT_NUMBER_BACKTRACK_WINDOW):
        self.normalizer = normalizer or FieldNormalizer()
        self.backtrack_window = backtrack_window

    def segment(self, section_text: str, trace: Optional[ParseTrace] = None) -> List[RawAccountSpan]:
        numbered = self._numbered_candidates(section_text)
        numbered_spans = self._resolve_spans(section_text, numbered)

        bare = [
            c for c in self._bare_name_candidates(section_text)
            if not self._belongs_to_numbered(section_text, c, numbered_spans)
        ]

        spans = self._resolve_spans(section_text, sorted(numbered + bare, key=lambda c: c.start))
        for span in spans:
            if span.account_number is None:
                marker = ACCOUNT_NUMBER_MARKER_RE.search(span.text)
                if marker:
                    span.account_number = marker.group("number")
            self._verify_number(section_text, span, spans)

        spans = self._deduplicate(spans)
        self._attach_pipe_rows(section_text, spans)

        if trace is not None:
            for span in spans:
                trace.count_segment(span.source)
        logger.debug(f"Segmented {len(spans)} accounts")
        return sorted(spans, key=lambda s: s.start)

    def segment_table(self, section_text: str, bureau: Bureau) -> List[RawAccountSpan]:
        """
        Accounts laid out as table rows under a header such as
        "Account Name | Account # | Balance | Status". Each row becomes a span
        whose fields are preset for the given bureau.
        """
        lines = section_text.split("\n")
        spans: List[RawAccountSpan] = []
        columns: Optional[Dict[int, str]] = None
        position = 0
        for line in lines:
            line_start = position
            position += len(line) + 1
            if "|" not in line and "\t" not in line:
                continue
            cells = split_columns(line)
            if columns is None:
                columns = self._table_columns(cells)
                continue
            row = {columns[i]: cell for i, cell in enumerate(cells) if i in columns and cell}
            name = row.pop("__name__", None)
            if not name or not self._is_valid_name(name):
                continue
            number = row.pop("__number__", None)
            spans.append(RawAccountSpan(
                account_name=name,
                account_number=number,
                start=line_start,
                end=line_start + len(line),
                text=line,
                source="table_row",
                presets={bureau: row},
            ))
        return spans

    # =========================================================================
    # CANDIDATES
    # =========================================================================

    def _numbered_candidates(self, text: str) -> List[_Candidate]:
        candidates = []
        for match in NUMBERED_RE.finditer(text):
            name, number = self._split_name_and_number(match.group("rest"))
            if not name or not self._is_valid_name(name):
                logger.debug(f"Rejected numbered candidate '{match.group('rest')[:40]}'")
                continue
            candidates.append(_Candidate(name, match.start(), number, "numbered"))
        return candidates

    def _bare_name_candidates(self, text: str) -> List[_Candidate]:
        candidates = []
        for match in BARE_NAME_RE.finditer(text):
            name = self._clean_name(match.group("name"))
            if len(name) < 3 or not self._is_valid_name(name):
                continue
            number = None
            tail = match.group("tail")
            if tail:
                marker = ACCOUNT_NUMBER_MARKER_RE.search(tail)
                number = marker.group("number") if marker else None
            if number is None:
                block = self._block_after(text, match.end())
                marker = ACCOUNT_NUMBER_MARKER_RE.search(block)
                if not marker:
                    continue
                number = marker.group("number")
            candidates.append(_Candidate(name, match.start(), number, "bare_name"))
        return candidates

    @staticmethod
    def _block_after(text: str, position: int) -> str:
        block = text[position:position + BARE_NAME_LOOKAHEAD]
        blank = block.find("\n\n")
        return block[:blank] if blank >= 0 else block

    def _split_name_and_number(self, rest: str) -> Tuple[str, Optional[str]]:
        rest = rest.split("\t")[0]
        number = None
        marker = ACCOUNT_NUMBER_MARKER_RE.search(rest)
        if marker:
            number = marker.group("number")
            rest = rest[:marker.start()]
        rest = cut_at_next_label(" " + rest).strip()
        return self._clean_name(rest), number

    @staticmethod
    def _clean_name(name: str) -> str:
        name = re.sub(r"\s*\([^)]*\)\s*$", "", name)
        name = re.sub(r"[\s:#\-]+$", "", name)
        name = re.sub(r"\s+(?:ACCOUNT|ACCT\.?)$", "", name, flags=re.IGNORECASE)
        return re.sub(r"\s+", " ", name).strip()

    def _is_valid_name(self, name: str) -> bool:
        upper = name.upper().strip()
        if len(upper) < 2 or len(upper) > 60 or not upper[0].isalpha():
            return False
        if upper in NOT_REPORTED or upper in SECTION_HEADERS or upper in ACCOUNT_TYPE_TERMS:
            return False
        if upper in EXTRA_NON_NAMES:
            return False
        if is_field_label(upper):
            return False

        words = upper.split()
        meaningful = [w for w in words if w not in GENERIC_NAME_WORDS and re.search(r"[A-Z0-9]", w)]
        starts_with_type = words[0] in ACCOUNT_TYPE_TERMS or " ".join(words[:2]) in ACCOUNT_TYPE_TERMS
        if starts_with_type and len(meaningful) < 2:
            return False

        if all(BUREAU_NAME_RE.fullmatch(w) for w in words):
            return False
        if header_order(name):
            return False
        if all(w.lower() in STATUS_WORDS or w in MONTH_WORDS for w in words):
            return False
        return True

    @staticmethod
    def _table_columns(cells: List[str]) -> Optional[Dict[int, str]]:
        columns: Dict[int, str] = {}
        for index, cell in enumerate(cells):
            if TABLE_NUMBER_COLUMN_RE.fullmatch(cell.strip().rstrip(":")):
                columns[index] = "__number__"
            elif TABLE_NAME_COLUMN_RE.fullmatch(cell.strip().rstrip(":")):
                columns[index] = "__name__"
            else:
                key = map_label(cell)
                if key:
                    columns[index] = key
        if "__name__" not in columns.values() or len(columns) < 3:
            return None
        return columns

    # =========================================================================
    # SPANS
    # =========================================================================

    @staticmethod
    def _resolve_spans(text: str, candidates: List[_Candidate]) -> List[RawAccountSpan]:
        spans = []
        for index, candidate in enumerate(candidates):
            end = candidates[index + 1].start if index + 1 < len(candidates) else len(text)
            end_marker = END_MARKER_RE.search(text, candidate.start + 1, end)
            if end_marker:
                end = end_marker.start()
            spans.append(RawAccountSpan(
                account_name=candidate.name,
                account_number=candidate.number,
                start=candidate.start,
                end=end,
                text=text[candidate.start:end],
                source=candidate.source,
            ))
        return spans

    @staticmethod
    def _belongs_to_numbered(text: str, candidate: _Candidate, numbered: List[RawAccountSpan]) -> bool:
        """
        A bare-name line inside a numbered account is part of that account
        unless the numbered account already printed its own number above it.
        """
        for span in numbered:
            if not (span.start < candidate.start < span.end):
                continue
            first_number = ACCOUNT_NUMBER_MARKER_RE.search(text, span.start, span.end)
            return first_number is None or first_number.start() >= candidate.start
        return False

    def _verify_number(self, text: str, span: RawAccountSpan, spans: List[RawAccountSpan]) -> None:
        """Widen a span backward when its own account number sits just before it."""
        number = span.account_number
        if not number or number in span.text:
            return
        floor = max([s.start for s in spans if s.start < span.start] or [0])
        window_start = max(floor, span.start - self.backtrack_window)
        found = text.rfind(number, window_start, span.start)
        if found < 0:
            logger.debug(f"Account number for '{span.account_name}' not found near its span")
            return
        span.start = text.rfind("\n", 0, found) + 1
        span.text = text[span.start:span.end]

    def _identity(self, name: str, number: Optional[str]) -> Tuple[str, Optional[str]]:
        return " ".join(name.upper().split()), self.normalizer.normalize_account_number(number)

    def _deduplicate(self, spans: List[RawAccountSpan]) -> List[RawAccountSpan]:
        kept: List[RawAccountSpan] = []
        for span in spans:
            name_key, number_key = self._identity(span.account_name, span.account_number)
            duplicate = None
            for existing in kept:
                existing_name, existing_number = self._identity(existing.account_name, existing.account_number)
                if existing_name != name_key:
                    continue
                if existing_number == number_key or existing_number is None or number_key is None:
                    duplicate = existing
                    break
            if duplicate is None:
                kept.append(span)
                continue
            logger.debug(f"Merged duplicate account span '{span.account_name}'")
            if duplicate.account_number is None:
                duplicate.account_number = span.account_number
            if len(span.text) > len(duplicate.text):
                duplicate.start, duplicate.end, duplicate.text = span.start, span.end, span.text
        return kept

    def _attach_pipe_rows(self, text: str, spans: List[RawAccountSpan]) -> None:
        for match in PIPE_ROW_RE.finditer(text):
            name = self._clean_name(match.group("name"))
            if not self._is_valid_name(name):
                continue
            bureau = self.normalizer.normalize_bureau(match.group("bureau"))
            number = match.group("number")
            preset = {"balance": match.group("balance")}
            if match.group("status"):
                preset["status"] = match.group("status")
            if match.group("reason"):
                preset["reason"] = match.group("reason")

            name_key, number_key = self._identity(name, number)
            target = None
            for span in spans:
                span_name, span_number = self._identity(span.account_name, span.account_number)
                if span_name == name_key and span_number in (number_key, None):
                    target = span
                    break
            if target is None:
                target = RawAccountSpan(
                    account_name=name,
                    account_number=number,
                    start=match.start(),
                    end=match.end(),
                    text=match.group(0),
                    source="pipe_row",
                )
                spans.append(target)
            elif target.account_number is None:
                target.account_number = number
            target.presets.setdefault(bureau, {}).update(
                {k: v for k, v in preset.items() if k not in target.presets.get(bureau, {})}
            )
