"""Final reconciliation figures derived from aggregate totals."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from settlement_recon.aggregator import AggregateTotals

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ReconciliationSummary:
    """The four reported figures, unrounded."""

    gross_before_fees: Decimal
    net_balance_change: Decimal
    platform_gross_sales: Decimal
    platform_net_disbursed: Decimal

    def rounded(self, quantize: Decimal = CENTS) -> ReconciliationSummary:
        """Return a copy rounded half-up for display."""
        return ReconciliationSummary(
            gross_before_fees=self.gross_before_fees.quantize(quantize, rounding=ROUND_HALF_UP),
            net_balance_change=self.net_balance_change.quantize(quantize, rounding=ROUND_HALF_UP),
            platform_gross_sales=self.platform_gross_sales.quantize(quantize, rounding=ROUND_HALF_UP),
            platform_net_disbursed=self.platform_net_disbursed.quantize(
                quantize, rounding=ROUND_HALF_UP
            ),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "gross_before_fees": str(self.gross_before_fees),
            "net_balance_change": str(self.net_balance_change),
            "platform_gross_sales": str(self.platform_gross_sales),
            "platform_net_disbursed": str(self.platform_net_disbursed),
        }


def net_balance_change(totals: AggregateTotals) -> Decimal:
    """Charges plus refunds and other negative activity, less fees."""
    return totals.gross_before_fees + totals.negative_gross + totals.fee_total


def derive(totals: AggregateTotals) -> ReconciliationSummary:
    """Compute the reported figures from the totals of a completed pass.

    Platform gross is whatever charge volume is left once the exclusion
    bucket and the excluded-product lines of platform invoices are taken
    out, so ``platform_gross_sales + exclusion_bucket_gross +
    platform_ammo_adjustment == gross_before_fees`` holds exactly.
    """
    net = net_balance_change(totals)
    return ReconciliationSummary(
        gross_before_fees=totals.gross_before_fees,
        net_balance_change=net,
        platform_gross_sales=(
            totals.gross_before_fees
            - totals.exclusion_bucket_gross
            - totals.platform_ammo_adjustment
        ),
        platform_net_disbursed=net - totals.exclusion_bucket_gross - totals.exclusion_bucket_fee,
    )
