"""
Credit Report Parser - IdentityIQ HTML Extractor

Renders an IdentityIQ HTML report into the text layouts the parsing core
reads. Nothing is interpreted here; the HTML is only re-shaped:

    CREDIT SCORE / PERSONAL PROFILE   pipe tables with a bureau header row
    CREDIT ACCOUNTS                   "N. CREDITOR" followed by a pipe table

Other HTML falls back to its visible text with table rows rendered as
"cell | cell | cell".
"""
from __future__ import annotations
import logging
import re
from pathlib import Path
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from ...exceptions import TextExtractionError
from ...models.ssot import BUREAU_ORDER

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

BUREAU_HEADER_ROW = "| | " + " | ".join(b.display_name for b in BUREAU_ORDER) + " |"

# Sub headers that are report sections, not creditors
NON_ACCOUNT_SECTIONS = {
    "RISK", "RISK FACTORS", "PERSONAL INFORMATION", "ALERTS",
    "ADDRESSES", "ADDRESS HISTORY", "EMPLOYMENT", "INQUIRIES",
    "PUBLIC RECORDS", "CREDIT SCORE", "SCORE FACTORS", "SUMMARY",
    "ACCOUNT SUMMARY", "CREDITOR CONTACTS",
}

ORIGINAL_CREDITOR_RE = re.compile(r"\s*\(Original Creditor:\s*([^)]+)\)", re.IGNORECASE)

PERSONAL_LABELS = ("Credit Report Date", "Name", "Date of Birth", "Current Address", "Previous Address", "Employer")


def _cell_text(cell: Tag) -> str:
    text = cell.get_text(" ", strip=True)
    return re.sub(r"\s+", " ", text).replace("|", "/")


def _label_text(cell: Tag) -> str:
    label = _cell_text(cell)
    return re.sub(r"\((?:es|s)\)", "", label).strip()


def _split_original_creditor(creditor_name: str):
    """Pull "(Original Creditor: X)" out of a creditor header."""
    match = ORIGINAL_CREDITOR_RE.search(creditor_name)
    if match:
        return ORIGINAL_CREDITOR_RE.sub("", creditor_name).strip(), match.group(1).strip()
    return creditor_name, None


class HtmlReportExtractor:
    """TextExtractor for IdentityIQ HTML reports."""

    def extract_text(self, html_path: str) -> str:
        logger.info(f"Reading HTML report: {html_path}")
        try:
            html_content = Path(html_path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.error(f"Failed to read HTML file: {e}")
            raise TextExtractionError(f"Cannot read HTML file: {e}", source=str(html_path))
        return self.render(html_content)

    def render(self, html_content: str) -> str:
        soup = BeautifulSoup(html_content, "html.parser")
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()

        if not soup.select("table.rpt_table4column"):
            logger.debug("No IdentityIQ tables found; rendering generic HTML")
            return self._render_generic(soup)

        parts: List[str] = []
        scores = self._render_scores(soup)
        if scores:
            parts.append(scores)
        personal = self._render_personal(soup)
        if personal:
            parts.append(personal)
        accounts = self._render_accounts(soup)
        if accounts:
            parts.append(accounts)

        text = "\n\n".join(parts)
        logger.info(f"Rendered HTML report to {len(text)} characters")
        return text

    # =========================================================================
    # IDENTITYIQ SECTIONS
    # =========================================================================

    @staticmethod
    def _table_rows(table: Tag, labels: Optional[tuple] = None) -> List[str]:
        rows = []
        for tr in table.find_all("tr"):
            label_cell = tr.find("td", class_="label")
            if not label_cell:
                continue
            info_cells = tr.find_all("td", class_="info")
            if len(info_cells) < 3:
                continue
            label = _label_text(label_cell)
            if labels and not any(label.lower().startswith(l.lower()) for l in labels):
                continue
            values = [_cell_text(cell) or "-" for cell in info_cells[:3]]
            rows.append(f"| {label} | " + " | ".join(values) + " |")
        return rows

    def _render_scores(self, soup: BeautifulSoup) -> Optional[str]:
        section = soup.find("div", id="CreditScore")
        table = section.find("table", class_="rpt_table4column") if section else None
        if table is None:
            for candidate in soup.find_all("table", class_="rpt_table4column"):
                label = candidate.find("td", class_="label")
                if label and "Credit Score" in label.get_text():
                    table = candidate
                    break
        if table is None:
            logger.debug("Credit score table not found")
            return None
        rows = self._table_rows(table, ("Credit Score",))
        if not rows:
            return None
        return "\n".join(["CREDIT SCORE", BUREAU_HEADER_ROW] + rows)

    def _render_personal(self, soup: BeautifulSoup) -> Optional[str]:
        for table in soup.find_all("table", class_="rpt_table4column"):
            if "crPrint" in (table.get("class") or []):
                continue
            rows = self._table_rows(table, PERSONAL_LABELS)
            if any(row.startswith(("| Name", "| Date of Birth")) for row in rows):
                return "\n".join(["PERSONAL PROFILE", BUREAU_HEADER_ROW] + rows)
        logger.debug("Personal information table not found")
        return None

    def _render_accounts(self, soup: BeautifulSoup) -> Optional[str]:
        headers = soup.select("div.sub_header")
        blocks: List[str] = []
        for index, header in enumerate(headers):
            creditor_name = header.get_text(" ", strip=True)
            if not creditor_name or len(creditor_name) < 2:
                continue
            if creditor_name.upper() in NON_ACCOUNT_SECTIONS:
                continue

            next_header = headers[index + 1] if index + 1 < len(headers) else None
            rows = self._account_rows(header, next_header)
            if not rows:
                continue

            name, original_creditor = _split_original_creditor(creditor_name)
            block = [f"{len(blocks) + 1}. {name.upper()}"]
            if original_creditor:
                block.append(f"Original Creditor: {original_creditor}")
            block.append(BUREAU_HEADER_ROW)
            block.extend(rows)
            blocks.append("\n".join(block))

        if not blocks:
            return None
        logger.info(f"Rendered {len(blocks)} account blocks from HTML")
        return "CREDIT ACCOUNTS\n" + "\n\n".join(blocks)

    @staticmethod
    def _account_rows(header: Tag, next_header: Optional[Tag]) -> List[str]:
        rows = []
        for elem in header.find_all_next():
            if elem is next_header:
                break
            if elem.name != "tr":
                continue
            # Print tables repeat other accounts' data
            parent_table = elem.find_parent("table")
            if parent_table is None:
                continue
            table_classes = parent_table.get("class") or []
            if "crPrint" in table_classes:
                continue
            if "rpt_content_table" not in table_classes and "rpt_table4column" not in table_classes:
                continue

            label_cell = elem.find("td", class_="label")
            info_cells = elem.find_all("td", class_="info")
            if not label_cell or len(info_cells) < 3:
                continue
            label = _label_text(label_cell)
            if not label.endswith(":"):
                label += ":"
            values = [_cell_text(cell) or "-" for cell in info_cells[:3]]
            rows.append(f"| {label} | " + " | ".join(values) + " |")
        return rows

    # =========================================================================
    # GENERIC HTML
    # =========================================================================

    @staticmethod
    def _render_generic(soup: BeautifulSoup) -> str:
        table_lines: List[str] = []
        for table in soup.find_all("table"):
            for tr in table.find_all("tr"):
                cells = [_cell_text(cell) for cell in tr.find_all(["td", "th"])]
                if any(cells):
                    table_lines.append(" | ".join(cells))
            table.decompose()

        text = soup.get_text("\n")
        lines = [line.strip() for line in text.split("\n")]
        body = "\n".join(line for line in lines if line)
        if table_lines:
            body = (body + "\n\n" if body else "") + "\n".join(table_lines)
        return body
