"""Credit Report Parser - Audit

Cross-bureau discrepancy detection over parsed account records.
"""
from .discrepancy_rules import (
    DiscrepancyDetector,
    DiscrepancyRules,
    classify_standing,
    detect_discrepancies,
    group_records_by_account,
)

__all__ = [
    "DiscrepancyDetector",
    "DiscrepancyRules",
    "classify_standing",
    "detect_discrepancies",
    "group_records_by_account",
]
