"""
Credit Report Parser - Format Detector

Classifies normalized report text into one of three layout families and
returns the account sections to segment:

    per_bureau  "TransUnion Credit File ... Credit Accounts" once per bureau
    sample      "SATISFACTORY ACCOUNTS" / "ADVERSE ACCOUNTS" sections
    unified     one "CREDIT ACCOUNTS" section carrying all three bureaus
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from ...models.ssot import Bureau, FormatHint, ReportFormat
from .field_normalizer import FieldNormalizer
from .vocabulary import ACCOUNTS_HEADER_RE, BUREAU_NAME_PATTERN, END_MARKER_RE

logger = logging.getLogger(__name__)


# =============================================================================
# PATTERNS
# =============================================================================

BUREAU_FILE_RE = re.compile(
    r"^[ \t]*(?P<bureau>" + BUREAU_NAME_PATTERN + r")[ \t]+Credit[ \t]+(?:File|Report)\b",
    re.IGNORECASE | re.MULTILINE,
)
BUREAU_ACCOUNTS_RE = re.compile(r"^[ \t]*Credit[ \t]+Accounts\b[^\n]*$", re.IGNORECASE | re.MULTILINE)

SAMPLE_SECTION_RE = re.compile(
    r"^[ \t]*(?P<kind>SATISFACTORY|ADVERSE)[ \t]+ACCOUNTS\b[^\n]*$",
    re.IGNORECASE | re.MULTILINE,
)

# Creditor line, then "Acct #", "Date Opened" and "Balance" within a few lines
SAMPLE_ACCOUNT_RE = re.compile(
    r"^[ \t]*[A-Z][A-Z0-9&'.,/ \-]{2,}\n"
    r"[ \t]*Acct\.?\s*#[^\n]*\n"
    r"(?:[^\n]*\n){0,4}?[ \t]*Date\s+Opened[^\n]*\n"
    r"(?:[^\n]*\n){0,4}?[ \t]*Balance",
    re.MULTILINE,
)

# Unified accounts sections also stop where the profile or score block starts
UNIFIED_END_RE = re.compile(r"^[ \t]*(?:PERSONAL\s+PROFILE|PERSONAL\s+INFORMATION|CREDIT\s+SCORE)\b", re.MULTILINE)


@dataclass
class ReportSection:
    text: str
    start: int = 0
    end: int = 0
    bureau: Optional[Bureau] = None
    label: Optional[str] = None


@dataclass
class DetectedFormat:
    format_tag: ReportFormat
    sections: List[ReportSection] = field(default_factory=list)


class FormatDetector:
    """Pick the layout family; per-bureau is tried first, unified always last."""

    def __init__(self, normalizer: Optional[FieldNormalizer] = None):
        self.normalizer = normalizer or FieldNormalizer()

    def detect(self, text: str, format_hint: FormatHint = FormatHint.AUTO) -> DetectedFormat:
        sections = self.per_bureau_sections(text)
        if sections:
            logger.info(f"Detected per-bureau report with {len(sections)} bureau sections")
            return DetectedFormat(ReportFormat.PER_BUREAU, sections)

        if format_hint == FormatHint.PER_BUREAU:
            logger.warning("Per-bureau format requested but no bureau sections found; trying unified")
            return DetectedFormat(ReportFormat.UNIFIED, self.unified_sections(text))

        sections = self.sample_sections(text)
        if sections:
            logger.info(f"Detected sample-style report with {len(sections)} sections")
            return DetectedFormat(ReportFormat.SAMPLE, sections)

        logger.info("Using unified report format")
        return DetectedFormat(ReportFormat.UNIFIED, self.unified_sections(text))

    # =========================================================================
    # SECTIONS
    # =========================================================================

    def per_bureau_sections(self, text: str, minimum: int = 1) -> List[ReportSection]:
        markers = list(BUREAU_FILE_RE.finditer(text))
        sections = []
        for index, marker in enumerate(markers):
            region_end = markers[index + 1].start() if index + 1 < len(markers) else len(text)
            accounts = BUREAU_ACCOUNTS_RE.search(text, marker.end(), region_end)
            if not accounts:
                continue
            end = region_end
            end_marker = END_MARKER_RE.search(text, accounts.end(), region_end)
            if end_marker:
                end = end_marker.start()
            sections.append(ReportSection(
                text=text[accounts.end():end],
                start=accounts.end(),
                end=end,
                bureau=self.normalizer.normalize_bureau(marker.group("bureau")),
                label=marker.group(0).strip(),
            ))
        if len({s.bureau for s in sections}) < minimum:
            return []
        return sections

    def sample_sections(self, text: str) -> List[ReportSection]:
        headers = list(SAMPLE_SECTION_RE.finditer(text))
        if headers:
            sections = []
            for index, header in enumerate(headers):
                end = headers[index + 1].start() if index + 1 < len(headers) else len(text)
                end_marker = END_MARKER_RE.search(text, header.end(), end)
                if end_marker:
                    end = end_marker.start()
                sections.append(ReportSection(
                    text=text[header.end():end],
                    start=header.end(),
                    end=end,
                    label=header.group("kind").lower(),
                ))
            return sections

        if not ACCOUNTS_HEADER_RE.search(text) and SAMPLE_ACCOUNT_RE.search(text):
            return [ReportSection(text=text, start=0, end=len(text), label="full_text")]
        return []

    def unified_sections(self, text: str) -> List[ReportSection]:
        header = ACCOUNTS_HEADER_RE.search(text)
        if not header:
            logger.debug("No accounts header found; segmenting the full text")
            return [ReportSection(text=text, start=0, end=len(text), label="full_text")]

        end = len(text)
        for pattern in (END_MARKER_RE, UNIFIED_END_RE):
            marker = pattern.search(text, header.end())
            if marker and marker.start() < end:
                end = marker.start()
        return [ReportSection(
            text=text[header.end():end],
            start=header.end(),
            end=end,
            label=header.group(0).strip(),
        )]
