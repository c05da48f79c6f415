"""Console and JSON rendering of reconciliation results."""

from __future__ import annotations

import json
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from settlement_recon.derivation import CENTS
from settlement_recon.models import Classification, TraceEntry
from settlement_recon.reconciler import ReconciliationResult

TABLE_HEADERS = ("Customer ID", "Gross", "Fee", "Contains Excluded Product")
COLUMN_WIDTHS = (22, 15, 15, 26)

NO_CUSTOMER_LABEL = "Additional processor fees"


def money(amount: Decimal) -> str:
    """Format an amount to two places, rounding half-up."""
    return f"{amount.quantize(CENTS, rounding=ROUND_HALF_UP):.2f}"


def _flag(entry: TraceEntry) -> str:
    if entry.contains_excluded_product is None:
        return "N/A"
    return "Yes" if entry.contains_excluded_product else "No"


def bucket_rows(trace: Iterable[TraceEntry]) -> list[tuple[str, str, str, str]]:
    """Table rows for entries that count toward the exclusion bucket."""
    rows = []
    for entry in trace:
        if entry.classification is Classification.NO_CUSTOMER:
            rows.append((NO_CUSTOMER_LABEL, money(entry.gross), money(entry.fee), _flag(entry)))
        elif entry.classification is Classification.EXCLUSION_LIST:
            rows.append((entry.customer_id, money(entry.gross), money(entry.fee), _flag(entry)))
    return rows


def _format_row(cells: tuple[str, ...]) -> str:
    parts = [f" {cell[: width - 2]:<{width - 2}} " for cell, width in zip(cells, COLUMN_WIDTHS)]
    return "|" + "|".join(parts) + "|"


def _separator() -> str:
    return "+" + "+".join("-" * width for width in COLUMN_WIDTHS) + "+"


def render_table(result: ReconciliationResult) -> str:
    """Render the exclusion-bucket contributions with a closing total row."""
    lines = [_separator(), _format_row(TABLE_HEADERS), _separator()]
    for row in bucket_rows(result.trace):
        lines.append(_format_row(row))
    lines.append(_separator())
    lines.append(
        _format_row(
            (
                "Total",
                money(result.totals.exclusion_bucket_gross),
                # Bucket fees are held in balance sign; show them as reported
                money(-result.totals.exclusion_bucket_fee),
                "",
            )
        )
    )
    lines.append(_separator())
    return "\n".join(lines)


def render_summary(result: ReconciliationResult) -> str:
    summary = result.summary
    return "\n".join(
        [
            f"Gross Amount Before Fees: ${money(summary.gross_before_fees)}",
            f"Balance Change From Activity: ${money(summary.net_balance_change)}",
            f"Platform Gross Sales = ${money(summary.platform_gross_sales)}",
            f"Platform Net Disbursed = ${money(summary.platform_net_disbursed)}",
        ]
    )


def render_text(result: ReconciliationResult) -> str:
    return f"{render_table(result)}\n\n{render_summary(result)}"


def render_json(result: ReconciliationResult) -> str:
    return json.dumps(result.to_dict(), indent=2)
