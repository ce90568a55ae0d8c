"""
Credit Report Parser - Shared Vocabulary

Label, heading and status word lists shared by the normalizer, segmenter and
extractors. Everything here is read-only module state.
"""
from __future__ import annotations
import re
from typing import List, Optional, Pattern, Tuple


# =============================================================================
# PLACEHOLDERS
# =============================================================================

NOT_REPORTED = {"", "-", "--", "—", "–", "N/A", "NA", "NOT REPORTED", "NOTREPORTED", "NOT AVAILABLE", "NONE"}


# =============================================================================
# BUREAUS
# =============================================================================

BUREAU_NAME_PATTERN = r"Trans\s?Union|Experian|Equifax"
BUREAU_NAME_RE = re.compile(BUREAU_NAME_PATTERN, re.IGNORECASE)


# =============================================================================
# SECTIONS
# =============================================================================

SECTION_HEADERS = {
    "CREDIT ACCOUNTS", "ACCOUNTS", "TRADE LINES", "TRADELINES", "ACCOUNT HISTORY",
    "PERSONAL PROFILE", "PERSONAL INFORMATION", "CREDIT SCORE", "CREDIT SCORES",
    "CREDIT SCORE DASHBOARD", "INQUIRIES", "CREDIT INQUIRIES", "PUBLIC RECORDS",
    "SATISFACTORY ACCOUNTS", "ADVERSE ACCOUNTS", "DETAILS BY BUREAU", "SUMMARY",
    "ACCOUNT SUMMARY", "CREDITOR CONTACTS", "END OF REPORT", "RISK FACTORS",
    "ALERTS", "EMPLOYMENT", "ADDRESSES", "ADDRESS HISTORY", "SCORE FACTORS",
    "TRANSUNION EXPERIAN EQUIFAX",
}

ACCOUNTS_HEADER_RE = re.compile(
    r"^[ \t]*(?:CREDIT\s+ACCOUNTS|TRADE\s?LINES|ACCOUNT\s+HISTORY|ACCOUNTS)"
    r"[ \t]*(?:\([^)\n]*\))?[ \t]*:?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)

END_MARKER_RE = re.compile(
    r"^[ \t]*(?:INQUIRIES|CREDIT\s+INQUIRIES|PUBLIC\s+RECORDS|END\s+OF\s+REPORT|CREDITOR\s+CONTACTS)\b",
    re.IGNORECASE | re.MULTILINE,
)


# =============================================================================
# ACCOUNT NAME FILTERS
# =============================================================================

# Account types printed as standalone lines; never creditor names on their own
ACCOUNT_TYPE_TERMS = {
    "REVOLVING", "INSTALLMENT", "MORTGAGE", "OPEN", "AUTO", "AUTO LOAN",
    "STUDENT LOAN", "CREDIT CARD", "CHARGE ACCOUNT", "COLLECTION", "LINE OF CREDIT",
    "UNKNOWN", "REAL ESTATE", "LEASE", "CHECK CREDIT",
}

# Words that do not count toward a candidate name's "meaningful" length
GENERIC_NAME_WORDS = {"ACCOUNT", "ACCOUNTS", "ACCT", "TYPE", "LOAN", "CARD", "NUMBER"}

ACCOUNT_NUMBER_MARKER_RE = re.compile(
    r"(?:\bAccount\s*(?:#|Number|No\.?)|\bAcct\.?\s*(?:#|Number|No\.?)?|(?<![A-Za-z0-9])#)"
    r"[ \t]*:?[ \t|]*"
    r"(?P<number>[Xx*\d][Xx*\d\-]{3,})",
    re.IGNORECASE,
)


# =============================================================================
# FIELD LABELS
# =============================================================================

# Priority order matters for the substring fallback: payment status must be
# checked before the generic status label.
FIELD_LABELS: List[Tuple[str, str, str]] = [
    # (key, exact pattern, substring fallback)
    ("payment_status", r"pay(?:ment)?\s*status|payment\s*rating", r"pay(?:ment)?\s*status"),
    ("status", r"(?:account\s*|acct\.?\s*)?status|account\s*condition|condition", r"status"),
    ("balance", r"(?:current\s*)?balance(?:\s*(?:owed|due|amount))?|amount\s*owed", r"balance"),
    ("monthly_pay", r"monthly\s*pay(?:ment)?|scheduled\s*payment(?:\s*amount)?|payment\s*amount", r"monthly"),
    ("high_limit", r"high\s*(?:limit|credit|balance)|credit\s*limit|limit|original\s*amount", r"limit|high\s*credit"),
    ("past_due", r"(?:amount\s*)?past\s*due(?:\s*amount)?", r"past\s*due"),
    ("date_opened", r"date\s*opened|open(?:ed)?\s*date|opened", r"opened"),
    ("date_last_active", r"date\s*(?:of\s*)?last\s*activ(?:e|ity)|last\s*activ(?:e|ity)(?:\s*date)?", r"last\s*activ"),
    ("date_reported", r"(?:date\s*)?(?:last\s*)?reported(?:\s*date)?|status\s*date", r"reported"),
    ("payment_history", r"(?:two[-\s]*year\s*)?payment\s*(?:history|pattern)", r"history"),
    ("terms", r"terms?|no\.?\s*of\s*months(?:\s*\(terms\))?", r"terms"),
    ("reason", r"comments?|remarks?|reason|creditor\s*remarks|status\s*details?", r"comment|remark|reason"),
]

_FIELD_LABEL_RES: List[Tuple[str, Pattern, Pattern]] = [
    (key, re.compile(exact, re.IGNORECASE), re.compile(fallback, re.IGNORECASE))
    for key, exact, fallback in FIELD_LABELS
]

ACCOUNT_LABELS: List[Tuple[str, str]] = [
    ("account_type", r"(?:account|acct\.?|loan)?\s*type(?:\s*-\s*detail)?"),
    ("original_creditor", r"orig(?:inal)?\.?\s*creditor(?:\s*name)?"),
    ("bureau", r"bureau"),
]

_ACCOUNT_LABEL_RES = [(key, re.compile(pattern, re.IGNORECASE)) for key, pattern in ACCOUNT_LABELS]


def clean_label(label: str) -> str:
    label = re.sub(r"\s+", " ", label or "").strip()
    return label.rstrip(":").strip()


def map_label(label: str) -> Optional[str]:
    """
    Map a printed field label to its BureauFieldSet key.

    Exact vocabulary wins; otherwise keywords are tried in priority order
    ("Pay Status" before "Status", and so on).
    """
    cleaned = clean_label(label)
    if not cleaned or len(cleaned) > 40:
        return None
    for key, exact, _ in _FIELD_LABEL_RES:
        if exact.fullmatch(cleaned):
            return key
    for key, _, fallback in _FIELD_LABEL_RES:
        if fallback.search(cleaned):
            return key
    return None


def map_account_label(label: str) -> Optional[str]:
    cleaned = clean_label(label)
    for key, pattern in _ACCOUNT_LABEL_RES:
        if pattern.fullmatch(cleaned):
            return key
    return None


# Printed labels, used to find where one inline "Label: value" ends and the next begins
LABEL_WORDS = [
    "Account #", "Account Number", "Acct #", "Account Type", "Account Status",
    "Pay Status", "Payment Status", "Balance", "High Balance", "High Credit",
    "High Limit", "Credit Limit", "Monthly Payment", "Monthly Pay", "Past Due",
    "Date Opened", "Date Last Active", "Last Active", "Date Reported",
    "Last Reported", "Payment History", "Two-Year Payment History", "Terms",
    "Comments", "Remarks", "Reason", "Original Creditor", "Bureau", "Status",
    "Name", "Date of Birth", "Current Address", "Previous Address", "Employer",
    "Current Balance", "Scheduled Payment", "Date of Last Activity", "Last Activity",
    "Amount Past Due", "No. of Months (terms)", "Account Type - Detail", "Creditor Remarks",
    "Credit Report Date",
]

_LABEL_ALTERNATION = "|".join(
    re.escape(word).replace(r"\ ", r"\s+")
    for word in sorted(LABEL_WORDS, key=len, reverse=True)
)

# A label starting a new "Label:" pair inside a run of text
NEXT_LABEL_RE = re.compile(r"\s+(?=(?:" + _LABEL_ALTERNATION + r")\s*[:#])", re.IGNORECASE)

# Labels that get split back out when PDF extraction glued them onto a value
SMASHABLE_LABELS = [
    word for word in LABEL_WORDS
    if " " in word or word in ("Balance", "Comments", "Remarks", "Employer")
]


def cut_at_next_label(value: str) -> str:
    """Trim an inline value where the next known "Label:" begins."""
    match = NEXT_LABEL_RE.search(value)
    return value[:match.start()] if match else value


# =============================================================================
# STATUS VOCABULARY
# =============================================================================

ACCOUNT_STATE = "account_state"
PAYMENT_CONDITION = "payment_condition"

# Checked first: phrases that name a payment condition even though they
# contain an account-state word ("Paid as agreed", "Closed ... late")
PAYMENT_CONDITION_TERMS = [
    "as agreed", "never late", "late", "delinquent", "delinquency", "past due", "collection", "collections",
    "charge off", "charged off", "charge-off", "chargeoff", "derogatory",
    "current", "repossession", "foreclosure", "bankruptcy", "default", "ok",
]

ACCOUNT_STATE_TERMS = [
    "open", "closed", "paid", "active", "inactive", "transferred", "refinanced",
    "sold", "frozen",
]

# Multi-word values that must stay together when a row of three values is rebuilt
STATUS_PHRASES = [
    "paid or paying as agreed", "paid as agreed", "pays as agreed", "never late",
    "not reported", "charged off", "charge off", "in collection", "closed by grantor",
    "closed by consumer", "account closed", "late 30 days", "late 60 days",
    "late 90 days", "late 120 days", "30 days late", "60 days late", "90 days late",
    "120 days late", "collection/chargeoff", "auto loan", "credit card",
    "student loan", "real estate", "line of credit", "open account",
]

STATUS_WORDS = {
    "open", "closed", "paid", "current", "late", "collection", "chargeoff",
    "charge-off", "derogatory", "delinquent", "transferred", "refinanced",
    "active", "inactive", "individual", "joint", "authorized", "revolving",
    "installment", "mortgage", "unknown", "ok", "bankruptcy", "repossession",
    "foreclosure", "paid/closed", "open/current",
}

# Profile labels -> PersonalProfileVariant attribute
PROFILE_LABELS: List[Tuple[str, str]] = [
    ("name", r"(?:full\s*)?name"),
    ("date_of_birth", r"date\s*of\s*birth|dob|birth\s*(?:date|year)"),
    ("current_address", r"current\s*address(?:es)?|address"),
    ("previous_address", r"previous\s*address(?:es)?|former\s*address(?:es)?"),
    ("employer", r"employers?|employment"),
    ("date_reported", r"(?:credit\s*)?report(?:ed)?\s*date|date\s*reported"),
]

_PROFILE_LABEL_RES = [(key, re.compile(pattern, re.IGNORECASE)) for key, pattern in PROFILE_LABELS]


def map_profile_label(label: str) -> Optional[str]:
    cleaned = clean_label(label)
    for key, pattern in _PROFILE_LABEL_RES:
        if pattern.fullmatch(cleaned):
            return key
    return None


def is_field_label(text: str) -> bool:
    """True when the text is exactly a known field label (no fuzzy matching)."""
    cleaned = clean_label(text)
    return any(exact.fullmatch(cleaned) for _, exact, _ in _FIELD_LABEL_RES)
