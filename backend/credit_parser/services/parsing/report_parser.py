"""
Credit Report Parser - Report Parser

Entry point of the parsing core. Runs the pipeline over one report's text:

    normalize -> detect format -> scores/profiles -> segment accounts
    -> extract per-bureau fields -> merge/build records -> discrepancies

Nothing here touches the database; the ParseResult is handed to the
persistence layer by the caller.
"""
from __future__ import annotations
import logging
from typing import List, Optional, Union

from ...config import OCR_MIN_TEXT_LENGTH
from ...exceptions import ExtractionFailure, TextTooShortError
from ...models.ssot import (
    BUREAU_ORDER, Bureau, BureauFieldSet, FormatHint, ParseResult, ParseTrace, ParsedAccount, RawAccountSpan, ReportFormat,
)
from ..audit.discrepancy_rules import DiscrepancyDetector
from .account_segmenter import AccountSegmenter
from .bureau_extractor import AccountLevelData, BureauColumnExtractor, scan_labeled_fields
from .field_normalizer import FieldNormalizer
from .flat_items import FlatItemParser
from .format_detector import DetectedFormat, FormatDetector, ReportSection
from .record_builder import RecordBuilder
from .score_profile_parser import ScoreAndProfileParser
from .table_layout import bureau_named_outside_values
from .text_normalizer import TextNormalizer

logger = logging.getLogger(__name__)


class CreditReportParser:
    """
    Parse IdentityIQ-style three-bureau credit report text.

    Every collaborator can be swapped in through the constructor; the
    defaults share one FieldNormalizer, which holds no per-call state.
    """

    def __init__(
        self,
        text_normalizer: Optional[TextNormalizer] = None,
        detector: Optional[FormatDetector] = None,
        segmenter: Optional[AccountSegmenter] = None,
        extractor: Optional[BureauColumnExtractor] = None,
        score_parser: Optional[ScoreAndProfileParser] = None,
        record_builder: Optional[RecordBuilder] = None,
        discrepancy_detector: Optional[DiscrepancyDetector] = None,
        flat_parser: Optional[FlatItemParser] = None,
    ):
        self.normalizer = FieldNormalizer()
        self.text_normalizer = text_normalizer or TextNormalizer()
        self.detector = detector or FormatDetector(self.normalizer)
        self.segmenter = segmenter or AccountSegmenter(self.normalizer)
        self.extractor = extractor or BureauColumnExtractor(self.normalizer)
        self.score_parser = score_parser or ScoreAndProfileParser(self.normalizer)
        self.record_builder = record_builder or RecordBuilder(self.normalizer)
        self.discrepancy_detector = discrepancy_detector or DiscrepancyDetector()
        self.flat_parser = flat_parser or FlatItemParser(self.normalizer)

    def parse(self, raw_text: str, format_hint: Union[FormatHint, str] = FormatHint.AUTO) -> ParseResult:
        """
        Parse one report.

        Raises:
            TextTooShortError: the text is too short to be a real report
            ExtractionFailure: no scores, profiles or accounts were found
        """
        format_hint = FormatHint(format_hint)
        raw_length = len(raw_text or "")
        text = self.text_normalizer.normalize(raw_text or "")
        if not text:
            logger.error("Report text is empty after normalization")
            raise TextTooShortError("Report text is empty", text_length=raw_length)

        trace = ParseTrace()
        detected = self.detector.detect(text, format_hint)
        trace.format_tag = detected.format_tag
        trace.section_count = len(detected.sections)

        result = ParseResult(trace=trace)

        try:
            result.scores = self.score_parser.parse_scores(text)
        except Exception as e:
            logger.warning(f"Score parsing failed: {e}", exc_info=True)
            trace.warn(f"scores: {e}")

        try:
            result.profiles = self.score_parser.parse_profiles(text)
        except Exception as e:
            logger.warning(f"Profile parsing failed: {e}", exc_info=True)
            trace.warn(f"profiles: {e}")

        accounts = self._parse_accounts(detected, trace)

        if not accounts and detected.format_tag != ReportFormat.UNIFIED:
            logger.info(f"No accounts in {detected.format_tag.value} layout; retrying as unified")
            accounts = self._parse_unified(self.detector.unified_sections(text), trace)

        if not accounts:
            accounts = self.flat_parser.parse(text)
            for account in accounts:
                trace.count_segment(account.source)
                for bureau in account.bureau_fields:
                    trace.record_strategy(account.account_name, bureau, "flat_row")

        result.accounts = self.record_builder.build(accounts)
        result.discrepancies = self.discrepancy_detector.detect_accounts(result.accounts)

        if not result.accounts and result.scores is None and not result.profiles:
            length = len(text)
            if length < OCR_MIN_TEXT_LENGTH:
                logger.error(f"Nothing extracted from {length} characters of text")
                raise TextTooShortError(
                    f"Report text is too short ({length} characters); the document may need OCR",
                    text_length=length,
                )
            logger.error(f"Nothing extracted from {length} characters of text")
            raise ExtractionFailure(
                "No scores, profiles or accounts found; the report format was not recognized",
                text_length=length,
            )

        if not result.accounts:
            logger.warning("Parsed scores/profiles but no accounts")
            trace.warn("no accounts found")

        logger.info(
            f"Parsed {detected.format_tag.value} report: {len(result.accounts)} records, "
            f"{len(result.profiles)} profiles, {len(result.discrepancies)} discrepancies"
        )
        return result

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def _parse_accounts(self, detected: DetectedFormat, trace: ParseTrace) -> List[ParsedAccount]:
        if detected.format_tag == ReportFormat.PER_BUREAU:
            return self._parse_per_bureau(detected.sections, trace)
        if detected.format_tag == ReportFormat.SAMPLE:
            return self._parse_sample(detected.sections, trace)
        return self._parse_unified(detected.sections, trace)

    def _parse_per_bureau(self, sections: List[ReportSection], trace: ParseTrace) -> List[ParsedAccount]:
        accounts = []
        for section in sections:
            spans = self.segmenter.segment_table(section.text, section.bureau)
            if spans:
                for span in spans:
                    trace.count_segment(span.source)
            else:
                spans = self.segmenter.segment(section.text, trace)

            for span in spans:
                try:
                    field_map = scan_labeled_fields(span.text)
                    for key, value in span.presets.get(section.bureau, {}).items():
                        field_map.setdefault(key, value)
                    account = self._account_from_span(span, section.label)
                    account.bureau_fields[section.bureau] = self.normalizer.to_field_set(field_map)
                    trace.record_strategy(account.account_name, section.bureau, "bureau_file")
                    accounts.append(account)
                except Exception as e:
                    logger.warning(f"Skipping account '{span.account_name}': {e}", exc_info=True)
                    trace.warn(f"account {span.account_name}: {e}")
        return accounts

    def _parse_sample(self, sections: List[ReportSection], trace: ParseTrace) -> List[ParsedAccount]:
        accounts = []
        for section in sections:
            for span in self.segmenter.segment(section.text, trace):
                try:
                    account = self._account_from_span(span, section.label)
                    account.shared = True
                    account.shared_fields = self.normalizer.to_field_set(scan_labeled_fields(span.text))
                    for bureau in BUREAU_ORDER:
                        trace.record_strategy(account.account_name, bureau, "direct_scan")
                    accounts.append(account)
                except Exception as e:
                    logger.warning(f"Skipping account '{span.account_name}': {e}", exc_info=True)
                    trace.warn(f"account {span.account_name}: {e}")
        return accounts

    def _parse_unified(self, sections: List[ReportSection], trace: ParseTrace) -> List[ParsedAccount]:
        accounts = []
        for section in sections:
            for span in self.segmenter.segment(section.text, trace):
                try:
                    accounts.append(self._build_parsed(span, section.label, trace))
                except Exception as e:
                    logger.warning(f"Skipping account '{span.account_name}': {e}", exc_info=True)
                    trace.warn(f"account {span.account_name}: {e}")
        return accounts

    def _account_from_span(
        self,
        span: RawAccountSpan,
        section_label: Optional[str],
        level: Optional[AccountLevelData] = None,
    ) -> ParsedAccount:
        level = level or self.extractor.extract_account_level(span.text)
        return ParsedAccount(
            account_name=span.account_name,
            account_number=span.account_number,
            account_type=level.account_type,
            date_opened=self.normalizer.normalize_date(level.date_opened),
            original_creditor=level.original_creditor,
            section=section_label,
            source=span.source,
        )

    def _build_parsed(self, span: RawAccountSpan, section_label: Optional[str], trace: ParseTrace) -> ParsedAccount:
        level = self.extractor.extract_account_level(span.text)
        account = self._account_from_span(span, section_label, level)
        scope = level.scope

        # "Bureau: All Bureaus", or a block naming no bureau at all
        account.shared = scope == "all" or (
            scope is None and not span.presets and not bureau_named_outside_values(span.text)
        )

        if scope not in (None, "all"):
            bureau = Bureau(scope)
            field_set = self.normalizer.to_field_set(scan_labeled_fields(span.text))
            self._apply_presets(field_set, span, bureau)
            account.bureau_fields[bureau] = field_set
            trace.record_strategy(account.account_name, bureau, "direct_scan")
            return account

        for bureau in BUREAU_ORDER:
            field_set, strategy = self.extractor.extract_with_strategy(span.text, bureau)
            if self._apply_presets(field_set, span, bureau) and strategy is None:
                strategy = "pipe_row"
            if strategy is not None:
                account.bureau_fields[bureau] = field_set
                trace.record_strategy(account.account_name, bureau, strategy)

        if account.shared:
            account.shared_fields = self.normalizer.to_field_set(scan_labeled_fields(span.text))
            for bureau in BUREAU_ORDER:
                if bureau not in account.bureau_fields and not account.shared_fields.is_empty():
                    trace.record_strategy(account.account_name, bureau, "direct_scan")
        return account

    def _apply_presets(self, field_set: BureauFieldSet, span: RawAccountSpan, bureau: Bureau) -> bool:
        preset = span.presets.get(bureau)
        if not preset:
            return False
        field_set.fill_missing(self.normalizer.to_field_set(preset))
        return True


def parse_report(raw_text: str, format_hint: Union[FormatHint, str] = FormatHint.AUTO) -> ParseResult:
    """Parse one report's text with the default pipeline."""
    return CreditReportParser().parse(raw_text, format_hint)
