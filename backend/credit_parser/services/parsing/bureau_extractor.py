"""
Credit Report Parser - Bureau Column Extractor

Given one account's text and a bureau, pull that bureau's field values.

Report text arrives in many shapes, so extraction is an ordered list of
strategies; the first that yields any field wins:

    1. aligned_table         "TransUnion Experian Equifax" header + "Label: v1 v2 v3" rows
    2. broken_aligned_table  same, after normalization glued the rows together
    3. csv_quoted            "Label","v1","v2","v3"
    4. pipe_table            | Label | v1 | v2 | v3 | with a bureau header row
    5. vertical_block        bureau name heading followed by its own Label: value list
    6. inline_triple         "Balance: $1 $2 $3" with no header (fixed TU/EX/EQ order)
    7. bureau_section        "[TransUnion ...]" or a line opened by a bureau name, up to the next one
    8. direct_scan           account-level labels, only for accounts shared by all bureaus
"""
from __future__ import annotations
import csv
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ...models.ssot import Bureau, BureauFieldSet, BUREAU_ORDER
from .field_normalizer import FieldNormalizer
from .table_layout import (
    HEADER_SEQUENCE_RE, LABEL_PAIR_RE, NUMBERED_LINE_RE, TableLayout,
    bracketed_block, header_order, heading_block, iter_label_pairs, mention_block,
    split_label_line, split_pipe_row, split_triple,
)
from .vocabulary import map_account_label, map_label

logger = logging.getLogger(__name__)

FieldMap = Dict[str, str]

QUOTED_ROW_RE = re.compile(r'^[ \t]*"[^"\n]*"(?:[ \t]*,[ \t]*"[^"\n]*"){3,}[ \t]*$')

# Fields a headerless "Label: v1 v2 v3" line may carry
INLINE_TRIPLE_KEYS = {"balance", "high_limit", "payment_status", "monthly_pay", "reason"}

# Free text spanning the row: split only on real column gaps, else shared by every bureau
UNSPLIT_KEYS = {"payment_history"}

ALL_BUREAUS_RE = re.compile(r"all\s*bureaus|all\s*three|joint\s*report", re.IGNORECASE)


@dataclass
class AccountLevelData:
    """Values printed once per account rather than once per bureau."""
    account_type: Optional[str] = None
    original_creditor: Optional[str] = None
    date_opened: Optional[str] = None
    scope: Optional[str] = None  # "all", a bureau value, or None


def scan_labeled_fields(block: str) -> FieldMap:
    """First value of every known field label in a block."""
    field_map: FieldMap = {}
    for label, value in iter_label_pairs(block):
        key = map_label(label)
        if key and value and key not in field_map:
            field_map[key] = value
    return field_map


def _column_or_row(values: str, column: int) -> str:
    cells = [cell.strip() for cell in values.split("\t") if cell.strip()]
    return cells[column] if len(cells) == 3 else values


class BureauColumnExtractor:
    """Extract one bureau's fields from an account span."""

    def __init__(self, normalizer: Optional[FieldNormalizer] = None):
        self.normalizer = normalizer or FieldNormalizer()
        self.strategies: List[Tuple[str, Callable[[str, Bureau], FieldMap]]] = [
            ("aligned_table", self._from_aligned_table),
            ("broken_aligned_table", self._from_broken_aligned_table),
            ("csv_quoted", self._from_quoted_csv),
            ("pipe_table", self._from_pipe_table),
            ("vertical_block", self._from_vertical_block),
            ("inline_triple", self._from_inline_triples),
            ("bureau_section", self._from_bureau_section),
        ]

    def extract(self, span_text: str, bureau: Bureau, shared: bool = False) -> BureauFieldSet:
        field_set, _ = self.extract_with_strategy(span_text, bureau, shared)
        return field_set

    def extract_with_strategy(
        self,
        span_text: str,
        bureau: Bureau,
        shared: bool = False,
    ) -> Tuple[BureauFieldSet, Optional[str]]:
        """Return the bureau's field set and the name of the strategy that produced it."""
        for name, strategy in self.strategies:
            field_map = strategy(span_text, bureau)
            if not field_map:
                continue
            field_set = self.normalizer.to_field_set(field_map)
            if not field_set.is_empty():
                logger.debug(f"{bureau.value}: {name} matched {field_set.extracted_fields}")
                return field_set, name

        if shared:
            field_set = self.normalizer.to_field_set(scan_labeled_fields(span_text))
            if not field_set.is_empty():
                return field_set, "direct_scan"

        return BureauFieldSet(), None

    def extract_account_level(self, span_text: str) -> AccountLevelData:
        data = AccountLevelData()
        for label, value in iter_label_pairs(span_text):
            value = self.normalizer.clean_value(value)
            if not value:
                continue
            key = map_account_label(label) or map_label(label)
            if key == "account_type" and data.account_type is None:
                data.account_type = self._first_of_row(value)
            elif key == "original_creditor" and data.original_creditor is None:
                data.original_creditor = self._first_of_row(value)
            elif key == "date_opened" and data.date_opened is None:
                data.date_opened = self._first_of_row(value)
            elif key == "bureau" and data.scope is None:
                if ALL_BUREAUS_RE.search(value):
                    data.scope = "all"
                else:
                    bureau = self.normalizer.normalize_bureau(value)
                    if bureau is not None:
                        data.scope = bureau.value
        return data

    def _first_of_row(self, value: str) -> Optional[str]:
        triple = split_pipe_row(value) if "|" in value else split_triple(value)
        if triple:
            for item in triple:
                cleaned = self.normalizer.clean_value(item)
                if cleaned:
                    return cleaned
            return None
        return value

    # =========================================================================
    # STRATEGIES
    # =========================================================================

    def _from_aligned_table(self, text: str, bureau: Bureau) -> FieldMap:
        lines = text.split("\n")
        for index, line in enumerate(lines):
            order = header_order(line)
            if order:
                return self._read_aligned_rows(lines[index + 1:], order.index(bureau))
        return {}

    def _from_broken_aligned_table(self, text: str, bureau: Bureau) -> FieldMap:
        header = HEADER_SEQUENCE_RE.search(text)
        if not header:
            return {}
        order = [self.normalizer.normalize_bureau(g) for g in header.groups()]
        if len(set(order)) != 3:
            return {}
        # Labels start rows again; normalization may have joined them into one line
        body = LABEL_PAIR_RE.sub(lambda m: "\n" + m.group(0), text[header.end():])
        return self._read_aligned_rows(body.split("\n"), order.index(bureau))

    def _read_aligned_rows(self, lines: List[str], column: int) -> FieldMap:
        field_map: FieldMap = {}
        for line in lines:
            if NUMBERED_LINE_RE.match(line):
                break
            parsed = split_label_line(line)
            if not parsed:
                continue
            label, values = parsed
            key = map_label(label)
            if not key or key in field_map:
                continue
            if key in UNSPLIT_KEYS:
                field_map[key] = _column_or_row(values, column)
                continue
            triple = split_triple(values)
            if triple is None:
                logger.debug(f"Could not split '{values}' into three bureau values")
                continue
            field_map[key] = triple[column]
        return field_map

    def _from_quoted_csv(self, text: str, bureau: Bureau) -> FieldMap:
        rows = [
            row for row in csv.reader(
                (line.strip() for line in text.split("\n") if QUOTED_ROW_RE.match(line)),
                skipinitialspace=True,
            )
        ]
        if not rows:
            return {}
        layout = TableLayout.default()
        field_map: FieldMap = {}
        for row in rows:
            header = TableLayout.from_header(row)
            if header:
                layout = header
                continue
            key = map_label(row[0])
            if not key or key in field_map:
                continue
            value = layout.value(row, bureau)
            if value:
                field_map[key] = value
        return field_map

    def _from_pipe_table(self, text: str, bureau: Bureau) -> FieldMap:
        layout: Optional[TableLayout] = None
        field_map: FieldMap = {}
        for line in text.split("\n"):
            if "|" not in line:
                continue
            cells = split_pipe_row(line)
            header = TableLayout.from_header(cells)
            if header:
                layout = header
                continue
            if len(cells) < 2:
                continue
            key = map_label(cells[0])
            if not key or key in field_map:
                continue
            value = (layout or TableLayout.default()).value(cells, bureau)
            if value:
                field_map[key] = value
        return field_map

    def _from_vertical_block(self, text: str, bureau: Bureau) -> FieldMap:
        block = heading_block(text, bureau)
        if block is None:
            return {}
        return scan_labeled_fields(block)

    def _from_inline_triples(self, text: str, bureau: Bureau) -> FieldMap:
        column = BUREAU_ORDER.index(bureau)
        field_map: FieldMap = {}
        for line in text.split("\n"):
            parsed = split_label_line(line)
            if not parsed:
                continue
            label, values = parsed
            key = map_label(label)
            if key not in INLINE_TRIPLE_KEYS or key in field_map:
                continue
            triple = split_triple(values)
            if triple:
                field_map[key] = triple[column]
        return field_map

    def _from_bureau_section(self, text: str, bureau: Bureau) -> FieldMap:
        block = bracketed_block(text, bureau)
        if block is None:
            block = mention_block(text, bureau)
        if block is None:
            return {}
        return scan_labeled_fields(block)
