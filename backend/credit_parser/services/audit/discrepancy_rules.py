"""
Credit Report Parser - Cross-Bureau Discrepancy Rules

Flags accounts that the three bureaus report differently. Only bureaus
that actually reported data for an account take part in a comparison,
and at least two are needed for any flag.
"""
from __future__ import annotations
import logging
import re
from typing import Dict, List, Optional, Tuple

from ...models.ssot import (
    AccountDiscrepancy, AccountRecord, Bureau, BureauFieldSet, BUREAU_ORDER, DiscrepancyFlag,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ACCOUNT GROUPING
# =============================================================================

def group_records_by_account(
    records: List[AccountRecord]
) -> List[Tuple[AccountRecord, Dict[Bureau, BureauFieldSet]]]:
    """
    Group per-bureau records back into accounts.

    Returns (first record, field sets by bureau) pairs in first-seen order.
    """
    groups: Dict[Tuple[str, Optional[str]], Tuple[AccountRecord, Dict[Bureau, BureauFieldSet]]] = {}
    for record in records:
        key = (" ".join(record.account_name.upper().split()), record.normalized_account_number)
        if key not in groups:
            groups[key] = (record, {})
        groups[key][1][record.bureau] = record.fields
    return list(groups.values())


# =============================================================================
# STATUS CLASSIFICATION
# =============================================================================

LATE_RE = re.compile(
    r"\blate\b|delinquen|past\s*due|\b\d{2,3}\s*days\b|collection|charge[\s\-]?off|charged\s*off|derogatory",
    re.IGNORECASE,
)
GOOD_PHRASE_RE = re.compile(r"never\s*late|as\s*agreed", re.IGNORECASE)
GOOD_RE = re.compile(r"\bcurrent\b|\bgood\b|\bok\b|\bpays?\s*as\s*agreed\b", re.IGNORECASE)

LATE = "late"
GOOD = "good"


def classify_standing(field_set: BureauFieldSet) -> Optional[str]:
    """
    LATE, GOOD or None for one bureau's reported standing.

    Payment status is read before account status; "never late" and
    "paid as agreed" count as good standing despite containing "late".
    """
    for raw in (field_set.payment_status, field_set.status):
        if not raw:
            continue
        text = raw.replace("_", " ")
        if GOOD_PHRASE_RE.search(text):
            return GOOD
        if LATE_RE.search(text):
            return LATE
        if GOOD_RE.search(text):
            return GOOD
    return None


# =============================================================================
# RULES
# =============================================================================

class DiscrepancyRules:
    """Each rule looks at one account's field sets and returns a flag or None."""

    @staticmethod
    def check_balance_mismatch(field_sets: Dict[Bureau, BureauFieldSet]) -> Optional[DiscrepancyFlag]:
        balances = {
            bureau: fs.balance
            for bureau, fs in field_sets.items()
            if fs.has("balance")
        }
        if len(balances) >= 2 and len(set(balances.values())) > 1:
            return DiscrepancyFlag.INACCURATE_BALANCE
        return None

    @staticmethod
    def check_last_active_mismatch(field_sets: Dict[Bureau, BureauFieldSet]) -> Optional[DiscrepancyFlag]:
        dates = {
            bureau: fs.date_last_active
            for bureau, fs in field_sets.items()
            if fs.date_last_active is not None
        }
        if len(dates) >= 2 and len(set(dates.values())) > 1:
            return DiscrepancyFlag.INACCURATE_DATE
        return None

    @staticmethod
    def check_status_conflict(field_sets: Dict[Bureau, BureauFieldSet]) -> Optional[DiscrepancyFlag]:
        standings = {classify_standing(fs) for fs in field_sets.values()}
        if LATE in standings and GOOD in standings:
            return DiscrepancyFlag.STATUS_CONFLICT
        return None


class DiscrepancyDetector:
    """Run every discrepancy rule over an account's bureau field sets."""

    def __init__(self):
        self.rules = DiscrepancyRules()

    def detect(self, field_sets: Dict[Bureau, BureauFieldSet]) -> List[DiscrepancyFlag]:
        reported = {
            bureau: fs for bureau, fs in field_sets.items()
            if fs is not None and not fs.is_empty()
        }
        if len(reported) < 2:
            return []

        flags = []
        for check in (
            self.rules.check_balance_mismatch,
            self.rules.check_last_active_mismatch,
            self.rules.check_status_conflict,
        ):
            flag = check(reported)
            if flag is not None:
                flags.append(flag)
        return flags

    def detect_accounts(self, records: List[AccountRecord]) -> List[AccountDiscrepancy]:
        """Discrepancies for every account that has at least one flag."""
        discrepancies = []
        for reference, field_sets in group_records_by_account(records):
            flags = self.detect(field_sets)
            if not flags:
                continue
            discrepancies.append(AccountDiscrepancy(
                account_name=reference.account_name,
                account_number=reference.account_number,
                flags=flags,
                bureaus=[b for b in BUREAU_ORDER if b in field_sets and not field_sets[b].is_empty()],
            ))
        logger.info(f"Found {len(discrepancies)} accounts with cross-bureau discrepancies")
        return discrepancies


def detect_discrepancies(records: List[AccountRecord]) -> List[AccountDiscrepancy]:
    """Convenience wrapper around DiscrepancyDetector.detect_accounts."""
    return DiscrepancyDetector().detect_accounts(records)
