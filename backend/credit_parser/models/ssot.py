"""
Credit Report Parser - Single Source of Truth Models

These dataclasses are the only structures that leave the parsing pipeline.
Raw text never travels past the parser; everything downstream (discrepancy
detection, persistence, serialization) reads these objects.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields as dataclass_fields, replace
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Any, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class Bureau(str, Enum):
    TRANSUNION = "transunion"
    EXPERIAN = "experian"
    EQUIFAX = "equifax"

    @property
    def display_name(self) -> str:
        return BUREAU_DISPLAY_NAMES[self]


BUREAU_DISPLAY_NAMES = {
    Bureau.TRANSUNION: "TransUnion",
    Bureau.EXPERIAN: "Experian",
    Bureau.EQUIFAX: "Equifax",
}

# Fixed column order used whenever a layout gives no header to read it from
BUREAU_ORDER: List[Bureau] = [Bureau.TRANSUNION, Bureau.EXPERIAN, Bureau.EQUIFAX]


class FormatHint(str, Enum):
    AUTO = "auto"
    PER_BUREAU = "per_bureau"


class ReportFormat(str, Enum):
    """Layout family detected for a report."""
    PER_BUREAU = "per_bureau"
    SAMPLE = "sample"
    UNIFIED = "unified"


class DiscrepancyFlag(str, Enum):
    INACCURATE_BALANCE = "INACCURATE_BALANCE"
    INACCURATE_DATE = "INACCURATE_DATE"
    STATUS_CONFLICT = "STATUS_CONFLICT"


class DisputeStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    DELETED = "deleted"
    VERIFIED = "verified"


def _serialize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value


# =============================================================================
# SEGMENTATION OUTPUT
# =============================================================================

@dataclass
class RawAccountSpan:
    """
    One account's slice of the accounts section.

    `presets` holds raw per-bureau field maps captured directly by a
    bureau-prefixed pipe row (e.g. "TransUnion | NAME | NUM | $BAL | STATUS").
    """
    account_name: str
    account_number: Optional[str] = None
    start: int = 0
    end: int = 0
    text: str = ""
    source: str = "numbered"
    presets: Dict[Bureau, Dict[str, str]] = field(default_factory=dict)


# =============================================================================
# PER-BUREAU FIELDS
# =============================================================================

# Field names that may appear in `BureauFieldSet.extracted_fields`
FIELD_SET_KEYS = (
    "balance", "high_limit", "monthly_pay", "past_due",
    "status", "payment_status",
    "date_opened", "date_last_active", "date_reported",
    "payment_history", "terms", "reason",
)


@dataclass
class BureauFieldSet:
    """
    Values one bureau reports for one account.

    Balance defaults to 0 while the other money fields stay None when absent.
    `extracted_fields` lists the fields actually found in the text, so an
    explicit $0.00 balance can be told apart from a missing one.
    """
    balance: float = 0.0
    high_limit: Optional[float] = None
    monthly_pay: Optional[float] = None
    past_due: Optional[float] = None

    # status holds the account state (canonical code); payment_status the
    # payment condition as printed. They never carry the same vocabulary.
    status: Optional[str] = None
    payment_status: Optional[str] = None

    date_opened: Optional[date] = None
    date_last_active: Optional[date] = None
    date_reported: Optional[date] = None

    payment_history: Optional[str] = None
    terms: Optional[str] = None
    reason: Optional[str] = None

    extracted_fields: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.extracted_fields

    def has(self, name: str) -> bool:
        return name in self.extracted_fields

    def copy(self) -> BureauFieldSet:
        return replace(self, extracted_fields=list(self.extracted_fields))

    def fill_missing(self, other: BureauFieldSet) -> None:
        """Copy every field `other` found that this set did not."""
        for name in other.extracted_fields:
            if name in self.extracted_fields:
                continue
            setattr(self, name, getattr(other, name))
            self.extracted_fields.append(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            f.name: _serialize(getattr(self, f.name))
            for f in dataclass_fields(self)
            if f.name != "extracted_fields"
        }


# =============================================================================
# ACCOUNTS
# =============================================================================

@dataclass
class ParsedAccount:
    """
    One tradeline as read from the report, before per-bureau records exist.

    `shared` marks accounts whose block applies to all bureaus at once
    ("Bureau: All Bureaus", or a block that names no bureau at all);
    `shared_fields` then holds the account-level values.
    """
    account_name: str
    account_number: Optional[str] = None
    account_type: Optional[str] = None
    date_opened: Optional[date] = None
    original_creditor: Optional[str] = None

    bureau_fields: Dict[Bureau, BureauFieldSet] = field(default_factory=dict)
    shared: bool = False
    shared_fields: Optional[BureauFieldSet] = None

    section: Optional[str] = None
    source: str = "numbered"


@dataclass
class AccountRecord:
    """One (account, bureau) pair - the unit that gets persisted and disputed."""
    bureau: Bureau
    account_name: str
    account_number: Optional[str] = None
    normalized_account_number: Optional[str] = None
    account_type: Optional[str] = None
    original_creditor: Optional[str] = None
    fields: BureauFieldSet = field(default_factory=BureauFieldSet)
    dispute_status: DisputeStatus = DisputeStatus.PENDING

    @property
    def uniqueness_key(self) -> Tuple[str, str, Optional[str]]:
        return (
            self.bureau.value,
            " ".join(self.account_name.upper().split()),
            self.normalized_account_number or None,
        )

    @property
    def date_opened(self) -> Optional[date]:
        return self.fields.date_opened

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "bureau": self.bureau.value,
            "account_name": self.account_name,
            "account_number": self.account_number,
            "normalized_account_number": self.normalized_account_number,
            "account_type": self.account_type,
            "original_creditor": self.original_creditor,
            "dispute_status": self.dispute_status.value,
        }
        data.update(self.fields.to_dict())
        return data


@dataclass
class AccountDiscrepancy:
    """Cross-bureau disagreement flags for one account."""
    account_name: str
    account_number: Optional[str] = None
    flags: List[DiscrepancyFlag] = field(default_factory=list)
    bureaus: List[Bureau] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_name": self.account_name,
            "account_number": self.account_number,
            "flags": [flag.value for flag in self.flags],
            "bureaus": [bureau.value for bureau in self.bureaus],
        }


# =============================================================================
# SCORES AND PROFILES
# =============================================================================

@dataclass
class ScoreTriple:
    transunion: Optional[int] = None
    experian: Optional[int] = None
    equifax: Optional[int] = None
    report_date: Optional[date] = None
    reference_number: Optional[str] = None

    def score_for(self, bureau: Bureau) -> Optional[int]:
        return getattr(self, bureau.value)

    def set_score(self, bureau: Bureau, score: int) -> None:
        setattr(self, bureau.value, score)

    def has_scores(self) -> bool:
        return any(self.score_for(b) is not None for b in BUREAU_ORDER)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _serialize(getattr(self, f.name)) for f in dataclass_fields(self)}


@dataclass
class PersonalProfileVariant:
    """Identity data as one bureau reports it."""
    bureau: Bureau
    name: Optional[str] = None
    date_of_birth: Optional[date] = None
    current_address: Optional[str] = None
    previous_address: Optional[str] = None
    employer: Optional[str] = None
    date_reported: Optional[date] = None

    def is_empty(self) -> bool:
        return all(
            getattr(self, f.name) is None
            for f in dataclass_fields(self) if f.name != "bureau"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _serialize(getattr(self, f.name)) for f in dataclass_fields(self)}


# =============================================================================
# RESULT
# =============================================================================

@dataclass
class ParseTrace:
    """
    Diagnostics for one parse run.

    Records the detected layout and, for every (account, bureau) pair, which
    extraction strategy produced its fields.
    """
    format_tag: Optional[ReportFormat] = None
    section_count: int = 0
    segment_counts: Dict[str, int] = field(default_factory=dict)
    strategy_hits: Dict[Tuple[str, str], str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def count_segment(self, source: str) -> None:
        self.segment_counts[source] = self.segment_counts.get(source, 0) + 1

    def record_strategy(self, account_name: str, bureau: Bureau, strategy: str) -> None:
        self.strategy_hits[(account_name, bureau.value)] = strategy

    def strategy_for(self, account_name: str, bureau: Bureau) -> Optional[str]:
        return self.strategy_hits.get((account_name, bureau.value))

    def warn(self, message: str) -> None:
        self.warnings.append(message)


@dataclass
class ParseResult:
    scores: Optional[ScoreTriple] = None
    profiles: List[PersonalProfileVariant] = field(default_factory=list)
    accounts: List[AccountRecord] = field(default_factory=list)
    discrepancies: List[AccountDiscrepancy] = field(default_factory=list)
    trace: ParseTrace = field(default_factory=ParseTrace)

    def accounts_named(self, account_name: str) -> List[AccountRecord]:
        return [a for a in self.accounts if a.account_name == account_name]

    def record_for(self, account_name: str, bureau: Bureau) -> Optional[AccountRecord]:
        for account in self.accounts:
            if account.account_name == account_name and account.bureau == bureau:
                return account
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": _serialize(self.trace.format_tag),
            "scores": self.scores.to_dict() if self.scores else None,
            "profiles": [p.to_dict() for p in self.profiles],
            "accounts": [a.to_dict() for a in self.accounts],
            "discrepancies": [d.to_dict() for d in self.discrepancies],
        }
