"""One-call reconciliation over parsed settlement records."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from settlement_recon.aggregator import AggregateTotals, InvoiceLookup, aggregate
from settlement_recon.derivation import ReconciliationSummary, derive
from settlement_recon.models import ReconciliationConfig, SettlementRecord, TraceEntry

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReconciliationResult:
    """Figures, totals and per-record trace for one run."""

    summary: ReconciliationSummary
    totals: AggregateTotals
    trace: tuple[TraceEntry, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "totals": self.totals.to_dict(),
            "trace": [
                {
                    "record_index": entry.record_index,
                    "customer_id": entry.customer_id,
                    "classification": entry.classification.value,
                    "gross": str(entry.gross),
                    "fee": str(entry.fee),
                    "contains_excluded_product": entry.contains_excluded_product,
                    "product_id": entry.product_id,
                    "notes": list(entry.notes),
                }
                for entry in self.trace
            ],
        }


async def reconcile(
    records: Sequence[SettlementRecord],
    config: ReconciliationConfig,
    lookup: InvoiceLookup,
) -> ReconciliationResult:
    """Aggregate ``records`` and derive the reported figures."""
    totals, trace = await aggregate(records, config, lookup)
    summary = derive(totals)
    logger.info(
        "summary_derived",
        gross_before_fees=str(summary.gross_before_fees),
        net_balance_change=str(summary.net_balance_change),
        platform_gross_sales=str(summary.platform_gross_sales),
        platform_net_disbursed=str(summary.platform_net_disbursed),
    )
    return ReconciliationResult(summary=summary, totals=totals, trace=tuple(trace))
