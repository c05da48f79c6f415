"""Proportional allocation of a settlement fee across invoice lines."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from settlement_recon.errors import DivisionUndefinedError
from settlement_recon.models import InvoiceLine


def allocate_fees(lines: Sequence[InvoiceLine], total_fee: Decimal) -> dict[str, Decimal]:
    """Split ``total_fee`` across lines in proportion to quantity.

    Lines sharing a product id accumulate into one entry. Allocations are
    left unrounded so they sum back to ``total_fee``.

    Raises:
        DivisionUndefinedError: If the line quantities sum to zero.
    """
    total_quantity = sum(line.quantity for line in lines)
    if total_quantity == 0:
        raise DivisionUndefinedError(
            f"Cannot prorate fee {total_fee} over {len(lines)} line(s) with zero total quantity",
            total_fee=total_fee,
        )

    allocation: dict[str, Decimal] = {}
    for line in lines:
        share = total_fee * Decimal(line.quantity) / Decimal(total_quantity)
        allocation[line.product_id] = allocation.get(line.product_id, Decimal("0")) + share
    return allocation
