"""Settlement report parsing.

Reports are comma delimited with a header row. The columns read here are
``customer_id``, ``customer_email``, ``reporting_category``, ``gross`` and
``fee``; any others are ignored. Numeric cells that do not parse count as
zero rather than failing the run, so one damaged cell cannot sink a whole
month's report. Lines holding only delimiters (``,,,,``) are kept as
zero-valued rows with no customer.
"""

from __future__ import annotations

import csv
import io
from decimal import Decimal, InvalidOperation
from pathlib import Path

import structlog

from settlement_recon.errors import MalformedInputError
from settlement_recon.models import SettlementRecord

logger = structlog.get_logger(__name__)

QUOTE_CHARS = "'\""

CUSTOMER_ID = "customer_id"
CUSTOMER_EMAIL = "customer_email"
REPORTING_CATEGORY = "reporting_category"
GROSS = "gross"
FEE = "fee"


def _clean(value: str) -> str:
    return value.strip().strip(QUOTE_CHARS).strip()


def _is_blank(cells: list[str]) -> bool:
    # A line of bare delimiters is a row of empty cells, not a blank line
    return len(cells) <= 1 and not any(cells)


def parse_amount(raw: str | None) -> Decimal:
    """Parse a decimal cell, defaulting to zero when it cannot be parsed."""
    if not raw:
        return Decimal("0")
    try:
        amount = Decimal(raw.strip())
    except InvalidOperation:
        return Decimal("0")
    if not amount.is_finite():
        return Decimal("0")
    return amount


def parse_rows(text: str) -> list[dict[str, str]]:
    """Split report text into header-keyed rows of cleaned strings.

    Raises:
        MalformedInputError: If the text holds no header row.
    """
    rows = [
        cells
        for cells in (
            [_clean(cell) for cell in row]
            for row in csv.reader(io.StringIO(text), skipinitialspace=True)
        )
        if not _is_blank(cells)
    ]
    if not rows:
        raise MalformedInputError("Settlement report is empty (no header row)")

    headers = rows[0]
    parsed: list[dict[str, str]] = []
    for cells in rows[1:]:
        # Short rows get empty strings for the missing trailing fields
        padded = cells + [""] * (len(headers) - len(cells))
        parsed.append(dict(zip(headers, padded)))
    return parsed


def record_from_row(row: dict[str, str]) -> SettlementRecord:
    """Build a typed record from one header-keyed row."""
    return SettlementRecord(
        customer_id=row.get(CUSTOMER_ID, ""),
        customer_email=row.get(CUSTOMER_EMAIL, ""),
        reporting_category=row.get(REPORTING_CATEGORY, ""),
        gross=parse_amount(row.get(GROSS)),
        fee=parse_amount(row.get(FEE)),
    )


def parse_report(text: str) -> list[SettlementRecord]:
    """Parse report text into settlement records, in file order."""
    records = [record_from_row(row) for row in parse_rows(text)]
    logger.info("report_parsed", record_count=len(records))
    return records


def read_report(path: Path) -> list[SettlementRecord]:
    """Read and parse a report file.

    Raises:
        MalformedInputError: If the file cannot be read or holds no header.
    """
    try:
        # utf-8-sig drops the BOM some spreadsheet exports prepend
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedInputError(f"Cannot read settlement report {path}: {e}") from e
    logger.debug("report_read", path=str(path), size=len(text))
    return parse_report(text)
