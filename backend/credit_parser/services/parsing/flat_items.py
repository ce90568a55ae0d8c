"""
Credit Report Parser - Flat Item Fallback

Last-resort reader for exports that list one bureau/account pair per line,
with no accounts section to segment:

    TransUnion | CHASE BANK | 4444****1234 | $1,250.00 | Open
    Experian<TAB>CHASE BANK<TAB>4444****1234<TAB>$1,250.00<TAB>Open
    Equifax,CHASE BANK,4444****1234,"$1,250.00",Open
    TransUnion CHASE BANK Account: 4444****1234 Balance: $1,250.00 Open
"""
from __future__ import annotations
import csv
import logging
import re
from typing import List, Optional

from ...models.ssot import BureauFieldSet, ParsedAccount
from .field_normalizer import FieldNormalizer
from .table_layout import split_pipe_row
from .vocabulary import BUREAU_NAME_PATTERN

logger = logging.getLogger(__name__)

INLINE_ITEM_RE = re.compile(
    r"(?P<bureau>" + BUREAU_NAME_PATTERN + r")[ \t:]+(?P<name>[A-Z][A-Za-z0-9&'., /\-]*?)[ \t]+"
    r"Acc(?:oun)?t(?:[ \t]*(?:#|Number|No\.?))?[ \t]*:?[ \t]*(?P<number>[Xx*\d][Xx*\d\-]{3,})[ \t]+"
    r"Balance[ \t]*:?[ \t]*(?P<balance>-?\$?-?[\d,]+(?:\.\d+)?)"
    r"(?:[ \t]+(?P<status>[A-Za-z][^\n]*?))?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)

MIN_ROW_CELLS = 5


class FlatItemParser:
    """Parse one-line-per-item exports into single-bureau accounts."""

    def __init__(self, normalizer: Optional[FieldNormalizer] = None):
        self.normalizer = normalizer or FieldNormalizer()

    def parse(self, text: str) -> List[ParsedAccount]:
        accounts: List[ParsedAccount] = []
        for line in text.split("\n"):
            cells = self._split_row(line)
            if cells is None:
                continue
            account = self._account_from_cells(cells)
            if account is not None:
                accounts.append(account)

        if not accounts:
            for match in INLINE_ITEM_RE.finditer(text):
                account = self._account_from_cells([
                    match.group("bureau"), match.group("name"), match.group("number"),
                    match.group("balance"), match.group("status") or "",
                ])
                if account is not None:
                    accounts.append(account)

        logger.info(f"Flat item fallback found {len(accounts)} items")
        return accounts

    def _split_row(self, line: str) -> Optional[List[str]]:
        line = line.strip()
        if not line:
            return None
        if "|" in line:
            cells = split_pipe_row(line)
        elif "\t" in line:
            cells = [c.strip() for c in line.split("\t")]
        elif "," in line:
            cells = self._split_csv(line)
        else:
            return None
        if len(cells) < MIN_ROW_CELLS or self.normalizer.normalize_bureau(cells[0]) is None:
            return None
        return cells

    @staticmethod
    def _split_csv(line: str) -> List[str]:
        cells = [c.strip() for c in next(csv.reader([line], skipinitialspace=True))]
        # An unquoted "$1,250.00" splits into "$1" and "250.00"; glue it back
        if len(cells) > MIN_ROW_CELLS and re.fullmatch(r"\d{3}(?:\.\d{1,2})?", cells[4]):
            cells[3:5] = [cells[3] + "," + cells[4]]
        return cells

    def _account_from_cells(self, cells: List[str]) -> Optional[ParsedAccount]:
        bureau = self.normalizer.normalize_bureau(cells[0])
        name = self.normalizer.normalize_account_name(cells[1])
        if bureau is None or not name:
            return None

        field_map = {"balance": cells[3]}
        status = cells[4] if len(cells) > 4 else ""
        if status:
            field_map["status"] = status
        if len(cells) > 5 and cells[5]:
            field_map["reason"] = cells[5]
        field_set = self.normalizer.to_field_set(field_map)
        if field_set.is_empty():
            field_set = BureauFieldSet()

        return ParsedAccount(
            account_name=name,
            account_number=self.normalizer.clean_value(cells[2]),
            bureau_fields={bureau: field_set},
            source="flat_row",
        )
