"""Value types shared by the reconciliation components."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

# Email substrings marking internal and test accounts
DEFAULT_SUPPRESSION_MARKERS = ("razoyo", "automaticffl", "refactored.group")


class Classification(str, Enum):
    """Accounting bucket a settlement record falls into."""

    SUPPRESSED = "suppressed"
    NO_CUSTOMER = "no_customer"
    EXCLUSION_LIST = "exclusion_list"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class SettlementRecord:
    """One row of a payment-processor settlement report."""

    customer_id: str = ""
    customer_email: str = ""
    reporting_category: str = ""
    gross: Decimal = Decimal("0")
    fee: Decimal = Decimal("0")


@dataclass(frozen=True)
class InvoiceLine:
    """Line item of an invoice, amount in the report's currency units."""

    product_id: str
    quantity: int
    amount: Decimal


@dataclass(frozen=True)
class Invoice:
    """Most recent invoice for a customer."""

    lines: tuple[InvoiceLine, ...] = ()
    invoice_id: str | None = None
    currency: str | None = None

    def has_product(self, product_id: str) -> bool:
        return any(line.product_id == product_id for line in self.lines)


@dataclass(frozen=True)
class ReconciliationConfig:
    """Resolved configuration the core consumes."""

    excluded_product_id: str
    exclusion_customer_ids: frozenset[str] = frozenset()
    suppression_markers: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        excluded_product_id: str,
        exclusion_customer_ids: list[str] | tuple[str, ...] | set[str] = (),
        suppression_markers: list[str] | tuple[str, ...] | None = None,
    ) -> ReconciliationConfig:
        """Build a config, falling back to the default suppression markers."""
        markers = DEFAULT_SUPPRESSION_MARKERS if suppression_markers is None else suppression_markers
        return cls(
            excluded_product_id=excluded_product_id,
            exclusion_customer_ids=frozenset(
                customer_id.strip() for customer_id in exclusion_customer_ids if customer_id.strip()
            ),
            suppression_markers=tuple(marker.lower() for marker in markers),
        )


@dataclass(frozen=True)
class TraceEntry:
    """How one record (or one invoice line of it) was treated.

    ``contains_excluded_product`` is None where no invoice applies
    (no-customer rows and suppressed rows).
    """

    record_index: int
    customer_id: str
    classification: Classification
    gross: Decimal = Decimal("0")
    fee: Decimal = Decimal("0")
    contains_excluded_product: bool | None = None
    product_id: str | None = None
    notes: tuple[str, ...] = field(default_factory=tuple)
