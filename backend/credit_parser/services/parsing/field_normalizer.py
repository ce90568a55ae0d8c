"""
Credit Report Parser - Field Normalizer

Pure, stateless value normalization. A single FieldNormalizer instance is
safe to share across parse runs and threads.
"""
from __future__ import annotations
import logging
import re
from datetime import date, datetime
from typing import Dict, Optional, Tuple

from dateutil import parser as date_parser

from ...models.ssot import Bureau, BureauFieldSet
from .vocabulary import (
    NOT_REPORTED, ACCOUNT_STATE, PAYMENT_CONDITION,
    ACCOUNT_STATE_TERMS, PAYMENT_CONDITION_TERMS,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Raw status text -> canonical code. Exact match first, then whole-word search.
STATUS_SYNONYMS: Dict[str, str] = {
    "charged off": "CHARGED_OFF",
    "charge off": "CHARGED_OFF",
    "charge-off": "CHARGED_OFF",
    "charged-off": "CHARGED_OFF",
    "chargeoff": "CHARGED_OFF",
    "chrg off": "CHARGED_OFF",
    "c/o": "CHARGED_OFF",
    "co": "CHARGED_OFF",
    "collection": "COLLECTION",
    "collections": "COLLECTION",
    "in collection": "COLLECTION",
    "late payment": "LATE_PAYMENT",
    "late": "LATE_PAYMENT",
    "delinquent": "LATE_PAYMENT",
    "delinquency": "LATE_PAYMENT",
    "default": "DEFAULT",
    "defaulted": "DEFAULT",
    "closed": "CLOSED",
    "closed account": "CLOSED",
    "paid": "PAID",
    "paid off": "PAID",
    "satisfied": "PAID",
    "current": "CURRENT",
    "open": "CURRENT",
    "active": "CURRENT",
}

# Short synonyms only count as an exact match ("Co-signer" is not a charge-off)
_EXACT_ONLY_SYNONYMS = {"co", "c/o"}

_SYNONYM_SEARCH = [
    (re.compile(r"(?<![a-z])" + re.escape(key) + r"(?![a-z])"), code)
    for key, code in sorted(STATUS_SYNONYMS.items(), key=lambda item: len(item[0]), reverse=True)
    if key not in _EXACT_ONLY_SYNONYMS
]

_PAYMENT_TERM_RES = [re.compile(r"(?<![a-z])" + re.escape(t) + r"(?![a-z])") for t in PAYMENT_CONDITION_TERMS]
_STATE_TERM_RES = [re.compile(r"(?<![a-z])" + re.escape(t) + r"(?![a-z])") for t in ACCOUNT_STATE_TERMS]

DATE_FORMATS = ["%m/%d/%Y", "%m/%d/%y", "%Y-%m-%d", "%m-%d-%Y", "%m/%Y", "%m-%Y", "%b %Y", "%B %Y"]

_EUROPEAN_AMOUNT_RE = re.compile(r"^(-?\d{1,3}(?:\.\d{3})*),(\d{1,2})$")

MONEY_KEYS = ("high_limit", "monthly_pay", "past_due")
DATE_KEYS = ("date_opened", "date_last_active", "date_reported")
TEXT_KEYS = ("payment_history", "terms", "reason")


class FieldNormalizer:
    """Normalizes raw field strings into canonical values."""

    # -------------------------------------------------------------------------
    # Text
    # -------------------------------------------------------------------------

    def clean_value(self, raw: Optional[str]) -> Optional[str]:
        """Collapse whitespace, drop placeholders, de-duplicate spilled repeats."""
        if raw is None:
            return None
        text = re.sub(r"\s+", " ", str(raw)).strip()
        # Trailing dash is a column-padding artifact
        text = text.rstrip("-").strip()
        if text.upper() in NOT_REPORTED:
            return None
        return self.collapse_repeated(text)

    @staticmethod
    def collapse_repeated(value: str) -> str:
        """
        "Open Open Open" -> "Open", "Paid as agreed Paid as agreed" -> "Paid as agreed".

        A value that is one word or phrase repeated back-to-back means a
        capture spilled over several bureau columns; keep the first copy.
        """
        words = value.split()
        count = len(words)
        lowered = [w.lower() for w in words]
        for period in range(1, count // 2 + 1):
            if count % period:
                continue
            if lowered == lowered[:period] * (count // period):
                return " ".join(words[:period])
        return value

    def normalize_account_name(self, raw: Optional[str]) -> str:
        if not raw:
            return ""
        name = re.sub(r"\s+", " ", raw).strip()
        return re.sub(r"^(?:THE|A|AN)\s+", "", name, flags=re.IGNORECASE)

    # -------------------------------------------------------------------------
    # Numbers
    # -------------------------------------------------------------------------

    def normalize_balance(self, raw: Optional[str]) -> float:
        """
        Parse a money string, defaulting to 0.

        "$1,350.00" -> 1350.0, "5,000" -> 5000.0, "1.200,00" -> 1200.0, "" -> 0.0
        """
        if raw is None:
            return 0.0
        cleaned = re.sub(r"[^\d.,\-]", "", str(raw))
        if not cleaned:
            return 0.0

        european = _EUROPEAN_AMOUNT_RE.match(cleaned)
        if european:
            cleaned = european.group(1).replace(".", "") + "." + european.group(2)
        else:
            cleaned = cleaned.replace(",", "")

        try:
            return float(cleaned)
        except ValueError:
            logger.debug(f"Unparseable amount '{raw}', using 0")
            return 0.0

    def normalize_money(self, raw: Optional[str]) -> Optional[float]:
        """Like normalize_balance, but None when the text holds no amount at all."""
        cleaned = self.clean_value(raw)
        if cleaned is None or not re.search(r"\d", cleaned):
            return None
        return self.normalize_balance(cleaned)

    def normalize_account_number(self, raw: Optional[str]) -> Optional[str]:
        """
        Reduce a (masked) account number to a stable identifier.

        Four trailing digits after a mask (or alone) win; otherwise the first
        digit run; otherwise the cleaned string itself.
        """
        if raw is None:
            return None
        cleaned = re.sub(r"[\-\s_]", "", str(raw))
        if not cleaned:
            return None
        trailing = re.search(r"(?:^|[Xx*])(\d{4})$", cleaned)
        if trailing:
            return trailing.group(1)
        digits = re.search(r"\d+", cleaned)
        if digits:
            return digits.group(0)
        return cleaned

    # -------------------------------------------------------------------------
    # Bureau / status / dates
    # -------------------------------------------------------------------------

    def normalize_bureau(self, raw: Optional[str]) -> Optional[Bureau]:
        if not raw:
            return None
        text = raw.strip().lower()
        if "transunion" in text or "trans union" in text or text in ("tu", "tuc"):
            return Bureau.TRANSUNION
        if "experian" in text or text in ("exp", "xpn", "ex"):
            return Bureau.EXPERIAN
        if "equifax" in text or text in ("eqf", "efx", "eq"):
            return Bureau.EQUIFAX
        return None

    def normalize_status(self, raw: Optional[str]) -> Optional[str]:
        """Map raw status text to a canonical code (e.g. "Charged Off" -> CHARGED_OFF)."""
        if raw is None:
            return None
        text = re.sub(r"\s+", " ", str(raw)).strip().lower()
        if not text:
            return None
        if text in STATUS_SYNONYMS:
            return STATUS_SYNONYMS[text]
        for pattern, code in _SYNONYM_SEARCH:
            if pattern.search(text):
                return code
        return re.sub(r"[^A-Z0-9]+", "_", text.upper()).strip("_") or None

    def vocabulary_bucket(self, raw: Optional[str]) -> Optional[str]:
        """Return ACCOUNT_STATE, PAYMENT_CONDITION or None for unrecognized text."""
        if not raw:
            return None
        text = raw.lower()
        if any(p.search(text) for p in _PAYMENT_TERM_RES):
            return PAYMENT_CONDITION
        if any(p.search(text) for p in _STATE_TERM_RES):
            return ACCOUNT_STATE
        return None

    def route_status(
        self,
        status_raw: Optional[str],
        payment_raw: Optional[str],
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        Split status text into (canonical status, payment status).

        Payment-condition wording always lands in payment_status and
        account-state wording in status, whichever label it was printed under.
        """
        status = self.clean_value(status_raw)
        payment = self.clean_value(payment_raw)

        if status and self.vocabulary_bucket(status) == PAYMENT_CONDITION:
            if payment is None:
                status, payment = None, status
            elif self.vocabulary_bucket(payment) == ACCOUNT_STATE:
                status, payment = payment, status
            else:
                status = None

        if payment and self.vocabulary_bucket(payment) == ACCOUNT_STATE:
            if status is None:
                status, payment = payment, None
            else:
                payment = None

        return self.normalize_status(status), payment

    def normalize_date(self, raw: Optional[str]) -> Optional[date]:
        text = self.clean_value(raw)
        if not text:
            return None

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue

        # Free-form dates ("March 3, 2021"); a four-digit year is required so
        # stray numbers are never turned into today's date
        if not re.search(r"\b\d{4}\b", text):
            return None
        try:
            return date_parser.parse(text, default=datetime(2000, 1, 1), fuzzy=True).date()
        except (ValueError, OverflowError):
            logger.debug(f"Unparseable date '{raw}'")
            return None

    # -------------------------------------------------------------------------
    # Field maps
    # -------------------------------------------------------------------------

    def to_field_set(self, field_map: Dict[str, str]) -> BureauFieldSet:
        """Build a BureauFieldSet from raw extracted strings keyed by field name."""
        field_set = BureauFieldSet()
        found = field_set.extracted_fields

        balance = self.clean_value(field_map.get("balance"))
        if balance is not None and re.search(r"\d", balance):
            field_set.balance = self.normalize_balance(balance)
            found.append("balance")

        for key in MONEY_KEYS:
            value = self.normalize_money(field_map.get(key))
            if value is not None:
                setattr(field_set, key, value)
                found.append(key)

        status, payment_status = self.route_status(
            field_map.get("status"), field_map.get("payment_status")
        )
        if status is not None:
            field_set.status = status
            found.append("status")
        if payment_status is not None:
            field_set.payment_status = payment_status
            found.append("payment_status")

        for key in DATE_KEYS:
            value = self.normalize_date(field_map.get(key))
            if value is not None:
                setattr(field_set, key, value)
                found.append(key)

        for key in TEXT_KEYS:
            value = self.clean_value(field_map.get(key))
            if value is not None:
                setattr(field_set, key, value)
                found.append(key)

        return field_set
