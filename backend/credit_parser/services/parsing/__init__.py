"""Credit Report Parser - Parsing Layer

Turns raw report text into a ParseResult (SSOT).
Raw text never leaves this layer.
"""
from .account_segmenter import AccountSegmenter
from .bureau_extractor import BureauColumnExtractor
from .field_normalizer import FieldNormalizer
from .flat_items import FlatItemParser
from .format_detector import FormatDetector
from .record_builder import RecordBuilder
from .report_parser import CreditReportParser, parse_report
from .score_profile_parser import ScoreAndProfileParser
from .text_normalizer import TextNormalizer

__all__ = [
    "AccountSegmenter",
    "BureauColumnExtractor",
    "CreditReportParser",
    "FieldNormalizer",
    "FlatItemParser",
    "FormatDetector",
    "RecordBuilder",
    "ScoreAndProfileParser",
    "TextNormalizer",
    "parse_report",
]
