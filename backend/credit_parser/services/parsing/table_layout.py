"""
Credit Report Parser - Table Layout Helpers

Low-level helpers for the three-bureau layouts found in report text:
pipe rows, whitespace-aligned columns and "Label: value" pairs.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ...models.ssot import Bureau, BUREAU_ORDER
from .field_normalizer import FieldNormalizer
from .vocabulary import (
    BUREAU_NAME_PATTERN, BUREAU_NAME_RE, LABEL_WORDS, NOT_REPORTED, STATUS_PHRASES, STATUS_WORDS,
)

_fields = FieldNormalizer()


# =============================================================================
# PATTERNS
# =============================================================================

# Three bureau names in a row, e.g. "TransUnion Experian Equifax"
HEADER_SEQUENCE_RE = re.compile(
    r"(" + BUREAU_NAME_PATTERN + r")[ \t]+(" + BUREAU_NAME_PATTERN + r")[ \t]+(" + BUREAU_NAME_PATTERN + r")",
    re.IGNORECASE,
)

NUMBERED_LINE_RE = re.compile(r"^[ \t]*\d{1,3}[.)][ \t]+[A-Z]")

BUREAU_CELL_RE = re.compile(r"(?:" + BUREAU_NAME_PATTERN + r")\s*(?:®|\(R\))?", re.IGNORECASE)

_LABEL_ALTERNATION = "|".join(
    re.escape(word).replace(r"\ ", r"\s+")
    for word in sorted(LABEL_WORDS, key=len, reverse=True)
)

# "Label:" anywhere in a block (a known label followed by a colon)
LABEL_PAIR_RE = re.compile(r"(?<![A-Za-z])(?P<label>" + _LABEL_ALTERNATION + r")[ \t]*:", re.IGNORECASE)

# A known label alone on its line (vertical layouts put the value on the next line)
LABEL_LINE_RE = re.compile(r"[ \t]*(?P<label>" + _LABEL_ALTERNATION + r")[ \t]*:?[ \t]*", re.IGNORECASE)

# Any "Label: values" row; labels never contain digits or "$"
LABEL_ROW_RE = re.compile(r"^[ \t]*(?P<label>[A-Za-z][A-Za-z #/().\-]*?)[ \t]*:[ \t]*(?P<values>\S.*?)[ \t]*$")
LABEL_PREFIX_RE = re.compile(r"^[ \t]*(?P<label>" + _LABEL_ALTERNATION + r")(?:[ \t]+|$)", re.IGNORECASE)

MONEY_RE = re.compile(r"-?\$-?[\d,]+(?:\.\d{1,2})?")
ATOMIC_TOKEN_RE = re.compile(
    r"-?\$?-?[\d,]+(?:\.\d+)?%?"            # amounts and plain numbers
    r"|\d{1,2}/\d{1,2}/\d{2,4}"             # MM/DD/YYYY
    r"|\d{1,2}/\d{4}"                       # MM/YYYY
    r"|\d{4}-\d{2}-\d{2}"                   # ISO
    r"|[Xx*\d]{4,}"                         # masked numbers
    r"|[-—–]+"                              # placeholders
)

_PHRASE_WORDS = sorted((phrase.split() for phrase in STATUS_PHRASES), key=len, reverse=True)


# =============================================================================
# PIPE ROWS
# =============================================================================

def split_pipe_row(line: str) -> List[str]:
    """Split "| a | b | c |" into ["a", "b", "c"], keeping empty inner cells."""
    stripped = line.strip()
    cells = stripped.split("|")
    if stripped.startswith("|"):
        cells = cells[1:]
    if stripped.endswith("|") and cells:
        cells = cells[:-1]
    return [cell.strip() for cell in cells]


def split_columns(line: str) -> List[str]:
    """Split a row on pipes, else tabs, else runs of 2+ spaces."""
    if "|" in line:
        return split_pipe_row(line)
    if "\t" in line:
        return [cell.strip() for cell in line.strip().split("\t")]
    return [cell.strip() for cell in re.split(r" {2,}", line.strip())]


def bureau_of_cell(cell: str) -> Optional[Bureau]:
    """The bureau a header cell names, if the cell is nothing but a bureau name."""
    cell = (cell or "").strip().rstrip(":")
    if not BUREAU_CELL_RE.fullmatch(cell):
        return None
    return _fields.normalize_bureau(cell)


@dataclass
class TableLayout:
    """Column positions of the three bureaus, read once from a table's header row."""
    columns: Dict[Bureau, int]

    @classmethod
    def from_header(cls, cells: List[str]) -> Optional[TableLayout]:
        positions: Dict[Bureau, int] = {}
        for index, cell in enumerate(cells):
            bureau = bureau_of_cell(cell)
            if bureau is not None and bureau not in positions:
                positions[bureau] = index
        if len(positions) < len(BUREAU_ORDER):
            return None
        # Header without a label column: every data row has one extra leading cell
        offset = 1 if bureau_of_cell(cells[0]) is not None else 0
        return cls({bureau: index + offset for bureau, index in positions.items()})

    @classmethod
    def default(cls) -> TableLayout:
        return cls({bureau: index + 1 for index, bureau in enumerate(BUREAU_ORDER)})

    def value(self, cells: List[str], bureau: Bureau) -> Optional[str]:
        index = self.columns.get(bureau)
        if index is None or index >= len(cells):
            return None
        return cells[index]


# =============================================================================
# ALIGNED COLUMNS
# =============================================================================

def header_order(line: str) -> Optional[List[Bureau]]:
    """
    Bureau order of a whitespace-aligned header line such as
    "TransUnion  Experian  Equifax" (an optional short caption is allowed).
    """
    if "|" in line or '"' in line:
        return None
    found = [_fields.normalize_bureau(m.group(0)) for m in BUREAU_NAME_RE.finditer(line)]
    if len(found) != 3 or len(set(found)) != 3:
        return None
    leftover = BUREAU_NAME_RE.sub(" ", line).replace(":", " ").strip()
    if re.search(r"[\d$]", leftover) or len(leftover.split()) > 3:
        return None
    return found


def split_label_line(line: str) -> Optional[Tuple[str, str]]:
    """Split "Label: values" (or "Known Label values") into (label, values)."""
    match = LABEL_ROW_RE.match(line)
    if match:
        return match.group("label"), match.group("values")
    match = LABEL_PREFIX_RE.match(line)
    if match and line[match.end():].strip():
        return match.group("label"), line[match.end():].strip()
    return None


def _phrase_length(tokens: List[str], start: int) -> int:
    lowered = [t.lower() for t in tokens[start:start + 6]]
    for words in _PHRASE_WORDS:
        if lowered[:len(words)] == words:
            return len(words)
    return 0


def split_triple(values: str) -> Optional[List[str]]:
    """
    Split one row's value text into exactly three bureau values.

    Tries tab columns, then wide-space columns, then three money amounts,
    then rebuilds values from known status phrases and atomic tokens
    (amounts, dates, placeholders). Returns None when no split yields three.
    """
    values = values.strip()
    if not values:
        return None

    for cells in (values.split("\t"), re.split(r" {2,}", values)):
        cells = [c.strip() for c in cells if c.strip()]
        if len(cells) == 3:
            return cells

    money = MONEY_RE.findall(values)
    if len(money) == 3 and not MONEY_RE.sub("", values).strip():
        return money

    tokens = values.split()
    segments: List[str] = []
    pending: List[str] = []
    used_phrase = False

    def flush():
        if pending:
            segments.append(" ".join(pending))
            pending.clear()

    index = 0
    while index < len(tokens):
        length = _phrase_length(tokens, index)
        if length:
            flush()
            segments.append(" ".join(tokens[index:index + length]))
            index += length
            used_phrase = True
            continue
        token = tokens[index]
        if (
            ATOMIC_TOKEN_RE.fullmatch(token)
            or token.lower() in STATUS_WORDS
            or token.upper() in NOT_REPORTED
        ):
            flush()
            segments.append(token)
        else:
            pending.append(token)
        index += 1
    flush()

    if len(segments) == 3:
        return segments
    if len(tokens) == 3 and not used_phrase and all(t[:1].isupper() for t in tokens):
        return tokens
    return None


# =============================================================================
# LABEL / VALUE PAIRS
# =============================================================================

def iter_label_pairs(block: str) -> List[Tuple[str, str]]:
    """
    All known "Label: value" pairs in a block, in order.

    Handles several pairs on one line ("Pay Status: Current Balance: $100"),
    values on the following line, and labels printed without a colon on
    their own line.
    """
    pairs: List[Tuple[str, str]] = []
    lines = block.split("\n")
    for line_index, line in enumerate(lines):
        matches = list(LABEL_PAIR_RE.finditer(line))
        if matches:
            for i, match in enumerate(matches):
                end = matches[i + 1].start() if i + 1 < len(matches) else len(line)
                value = line[match.end():end].strip()
                if not value:
                    value = _next_value_line(lines, line_index) if i + 1 == len(matches) else ""
                pairs.append((match.group("label"), value))
        elif LABEL_LINE_RE.fullmatch(line):
            label = LABEL_LINE_RE.fullmatch(line).group("label")
            pairs.append((label, _next_value_line(lines, line_index)))
    return pairs


def _next_value_line(lines: List[str], index: int) -> str:
    for candidate in lines[index + 1:index + 3]:
        candidate = candidate.strip()
        if not candidate:
            continue
        if LABEL_PAIR_RE.match(candidate) or LABEL_LINE_RE.fullmatch(candidate):
            return ""
        return candidate
    return ""


# =============================================================================
# BUREAU-SCOPED BLOCKS
# =============================================================================

def _heading_line_re(pattern: str) -> re.Pattern:
    return re.compile(r"(?im)^[ \t]*\[?[ \t]*(?:" + pattern + r")[ \t]*\]?[ \t]*:?[ \t]*$")


_ANY_HEADING_RE = _heading_line_re(BUREAU_NAME_PATTERN)
_BUREAU_HEADING_RES = {
    Bureau.TRANSUNION: _heading_line_re(r"Trans\s?Union"),
    Bureau.EXPERIAN: _heading_line_re(r"Experian"),
    Bureau.EQUIFAX: _heading_line_re(r"Equifax"),
}

# What may surround a bureau name that opens a section line:
# "[TransUnion Details]", "- Experian:", "Equifax (R) Balance: $10"
MENTION_PREFIX_RE = re.compile(r"[ \t]*[\[(*\-\u2022]?[ \t]*")
MENTION_SUFFIX_RE = re.compile(
    r"[ \t]*(?:®|\(R\))?[ \t]*(?:(?:details?|section|data|information|file|report)\b)?[ \t]*[\]):\-\u2013]?[ \t]*",
    re.IGNORECASE,
)

_BUREAU_WORD_RES = {
    Bureau.TRANSUNION: re.compile(r"Trans\s?Union", re.IGNORECASE),
    Bureau.EXPERIAN: re.compile(r"Experian", re.IGNORECASE),
    Bureau.EQUIFAX: re.compile(r"Equifax", re.IGNORECASE),
}


def heading_block(text: str, bureau: Bureau) -> Optional[str]:
    """Lines under a heading line that is just the bureau's name, up to the next bureau heading."""
    heading = _BUREAU_HEADING_RES[bureau].search(text)
    if not heading:
        return None
    end = len(text)
    following = _ANY_HEADING_RE.search(text, heading.end())
    if following:
        end = following.start()
    numbered = re.search(r"(?m)^[ \t]*\d{1,3}[.)][ \t]+[A-Z]", text[heading.end():end])
    if numbered:
        end = heading.end() + numbered.start()
    return text[heading.end():end]


def bureau_mentions(text: str, leading_only: bool = False) -> List[Tuple[int, int, Bureau]]:
    """
    Bureau name mentions that can start a bureau-scoped block.

    Mentions inside a three-bureau header sequence or on pipe rows are
    column headers / row tags, not section starts. With leading_only, a
    mention must also open its line and be followed by nothing, a caption
    word or a field label.
    """
    excluded = [(m.start(), m.end()) for m in HEADER_SEQUENCE_RE.finditer(text)]
    mentions = []
    for match in BUREAU_NAME_RE.finditer(text):
        if any(start <= match.start() < end for start, end in excluded):
            continue
        line_start = text.rfind("\n", 0, match.start()) + 1
        line_end = text.find("\n", match.end())
        line = text[line_start:line_end if line_end >= 0 else len(text)]
        if "|" in line:
            continue
        if leading_only and not _opens_section(
            text[line_start:match.start()], line[match.end() - line_start:]
        ):
            continue
        bureau = _fields.normalize_bureau(match.group(0))
        if bureau is not None:
            mentions.append((match.start(), match.end(), bureau))
    return mentions


def _opens_section(before: str, after: str) -> bool:
    if not MENTION_PREFIX_RE.fullmatch(before):
        return False
    rest = MENTION_SUFFIX_RE.match(after)
    remainder = after[rest.end():]
    return not remainder.strip() or bool(LABEL_PAIR_RE.match(remainder))


def mention_block(text: str, bureau: Bureau) -> Optional[str]:
    """Text from the bureau's first line-opening mention to the next one of another bureau."""
    mentions = bureau_mentions(text, leading_only=True)
    for index, (start, end, found) in enumerate(mentions):
        if found != bureau:
            continue
        stop = len(text)
        for later_start, _, later in mentions[index + 1:]:
            if later != bureau:
                stop = later_start
                break
        return text[end:stop]
    return None


def bracketed_block(text: str, bureau: Bureau) -> Optional[str]:
    """Content of a "[TransUnion ...]" style section."""
    word = _BUREAU_WORD_RES[bureau].pattern
    match = re.search(
        r"\[[ \t]*(?:" + word + r")[^\]\n]*\](?P<body>.*?)(?=\[[ \t]*(?:" + BUREAU_NAME_PATTERN + r")|\Z)",
        text,
        re.IGNORECASE | re.DOTALL,
    )
    return match.group("body") if match else None


def bureau_named_outside_values(text: str) -> bool:
    """
    True when a bureau is named as a header, heading or row tag.

    Names that only occur inside a "Label: value" value ("Comments:
    disputed with Experian") do not count.
    """
    if HEADER_SEQUENCE_RE.search(text):
        return True
    value_line = False
    for line in text.split("\n"):
        if not line.strip():
            continue
        if value_line:
            value_line = False
            continue
        pairs = list(LABEL_PAIR_RE.finditer(line))
        head = line[:pairs[0].start()] if pairs else line
        if BUREAU_NAME_RE.search(head):
            return True
        # A label with nothing after it takes the next line as its value
        value_line = bool(pairs) and not line[pairs[-1].end():].strip()
    return False
