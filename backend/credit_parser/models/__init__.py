"""Credit Report Parser - Data Models"""
from .ssot import (
    # Enums
    Bureau, FormatHint, ReportFormat, DiscrepancyFlag, DisputeStatus,
    # Segmentation / extraction
    RawAccountSpan, BureauFieldSet, ParsedAccount,
    # Parse output
    AccountRecord, AccountDiscrepancy, ScoreTriple, PersonalProfileVariant,
    ParseTrace, ParseResult,
)

__all__ = [
    "Bureau", "FormatHint", "ReportFormat", "DiscrepancyFlag", "DisputeStatus",
    "RawAccountSpan", "BureauFieldSet", "ParsedAccount",
    "AccountRecord", "AccountDiscrepancy", "ScoreTriple", "PersonalProfileVariant",
    "ParseTrace", "ParseResult",
]
