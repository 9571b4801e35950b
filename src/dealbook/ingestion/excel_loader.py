"""Spreadsheet loading for the deal export.

Uses openpyxl in read-only mode so rows stream from the workbook instead of
being loaded as a whole sheet.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple

from openpyxl import load_workbook

LOGGER = logging.getLogger(__name__)

TEXT = "text"
NUMBER = "number"
DATE = "date"

# Spreadsheet header -> (storage field, cell type)
COLUMN_MAP: Dict[str, Tuple[str, str]] = {
    "TARGET NAME": ("target_name", TEXT),
    "ANNOUNCEMENT DATE": ("announcement_date", DATE),
    "TRANSACTION TYPE": ("transaction_type", TEXT),
    "TRANSACTION STATUS": ("transaction_status", TEXT),
    "TRANSACTION VALUE (IN $MM)": ("transaction_value", NUMBER),
    "DIVESTOR NAME": ("divestor_name", TEXT),
    "ACQUIRER NAME": ("acquirer_name", TEXT),
    "TARGET REGION": ("target_region", TEXT),
    "TARGET DESCRIPTION": ("target_description", TEXT),
    "EV/EBITDA MULTIPLE": ("ev_ebitda_multiple", NUMBER),
    "EV/REVENUE MULTIPLE": ("ev_revenue_multiple", NUMBER),
    "ACQUIRER COUNTRY": ("acquirer_country", TEXT),
    "TARGET INDUSTRY 1": ("target_industry_1", TEXT),
    "TARGET INDUSTRY 2": ("target_industry_2", TEXT),
    "DEAL SUMMARY": ("deal_summary", TEXT),
    "TRANSACTION CONSIDERATIONS": ("transaction_considerations", TEXT),
    "TARGET ENTERPRISE VALUE (IN $MM)": ("target_enterprise_value", NUMBER),
    "TARGET REVENUE (IN $MM)": ("target_revenue", NUMBER),
    "TARGET EBITDA (IN $MM)": ("target_ebitda", NUMBER),
}

STORAGE_COLUMNS: List[str] = ["id"] + [storage for storage, _ in COLUMN_MAP.values()]

_SLASH_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")


def _header_key(header: Any) -> str:
    # Exports disagree on "EV / EBITDA" vs "EV/EBITDA"
    return re.sub(r"\s*/\s*", "/", " ".join(str(header).split())).upper()


def parse_numeric(value: Any) -> float | int | None:
    """Parse a number cell; spaces are thousand separators in the export."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    cleaned = re.sub(r"\s", "", str(value)).replace(",", "")
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_date(value: Any) -> str | None:
    """Parse a date cell into an ISO ``YYYY-MM-DD`` string."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    match = _SLASH_DATE_RE.match(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000 if year < 50 else 1900
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return None
    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        return None


def parse_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


_PARSERS = {TEXT: parse_text, NUMBER: parse_numeric, DATE: parse_date}


def iter_deal_rows(path: Path) -> Iterator[Dict[str, Any] | None]:
    """Yield one storage-shaped record per data row of the first worksheet.

    Blank rows yield ``None`` so callers can count them. Unknown columns are
    ignored with a warning.
    """
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        try:
            headers = next(rows)
        except StopIteration:
            LOGGER.warning("Worksheet %s in %s is empty", sheet.title, path)
            return

        columns: List[Tuple[int, str, str]] = []
        for position, header in enumerate(headers):
            if header is None:
                continue
            mapped = COLUMN_MAP.get(_header_key(header))
            if mapped is None:
                LOGGER.warning("Ignoring unknown column %r in %s", header, path)
                continue
            columns.append((position, *mapped))

        LOGGER.info("Reading worksheet %s with %d known columns", sheet.title, len(columns))
        for row in rows:
            if row is None or all(cell is None or str(cell).strip() == "" for cell in row):
                yield None
                continue
            record: Dict[str, Any] = {storage: None for storage in STORAGE_COLUMNS[1:]}
            for position, storage, kind in columns:
                cell = row[position] if position < len(row) else None
                record[storage] = _PARSERS[kind](cell)
            yield record
    finally:
        workbook.close()
