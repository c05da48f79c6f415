"""Single-pass accumulation of settlement totals.

The aggregator folds records into an immutable ``AggregateTotals`` value:

* every non-suppressed record feeds the activity figures (charges, negative
  gross, fees);
* no-customer rows and exclusion-list rows feed the exclusion bucket, the
  latter through the customer's latest invoice so that lines of the
  excluded product stay out and the fee is prorated over what remains;
* a second pass over platform candidates (customer id present, not on the
  exclusion list) totals the excluded-product amounts that must come off
  platform gross.

Both passes share one ``CachedInvoiceLookup`` so a customer is fetched once
per run.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal

import structlog

from settlement_recon.classifier import classify
from settlement_recon.errors import DivisionUndefinedError, InvoiceLookupError
from settlement_recon.models import (
    Classification,
    Invoice,
    ReconciliationConfig,
    SettlementRecord,
    TraceEntry,
)
from settlement_recon.proration import allocate_fees

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")

CHARGE_CATEGORY = "charge"

InvoiceLookup = Callable[[str], Awaitable[Invoice | None]]


@dataclass(frozen=True)
class AggregateTotals:
    """Running totals for one reconciliation pass.

    All fee figures are in balance sign: the negated report fee, so a fee
    the processor charged lowers the balance. ``fee_total`` covers every
    counted record; the bucket fees cover only their own rows.
    """

    gross_before_fees: Decimal = ZERO
    negative_gross: Decimal = ZERO
    fee_total: Decimal = ZERO
    no_customer_gross: Decimal = ZERO
    no_customer_fee: Decimal = ZERO
    exclusion_list_gross: Decimal = ZERO
    exclusion_list_fee: Decimal = ZERO
    exclusion_ammo_total: Decimal = ZERO
    platform_ammo_adjustment: Decimal = ZERO
    suppressed_count: int = 0

    @property
    def exclusion_bucket_gross(self) -> Decimal:
        """Gross of no-customer and exclusion-list rows together."""
        return self.no_customer_gross + self.exclusion_list_gross

    @property
    def exclusion_bucket_fee(self) -> Decimal:
        """Fee of no-customer and exclusion-list rows together."""
        return self.no_customer_fee + self.exclusion_list_fee

    @property
    def ammo_product_total(self) -> Decimal:
        """Excluded-product amounts seen on any looked-up invoice."""
        return self.exclusion_ammo_total + self.platform_ammo_adjustment

    def with_activity(self, record: SettlementRecord) -> AggregateTotals:
        """Fold a record into the charge, refund and fee figures."""
        gross_before_fees = self.gross_before_fees
        if record.reporting_category == CHARGE_CATEGORY:
            gross_before_fees += record.gross
        negative_gross = self.negative_gross
        if record.gross < 0:
            negative_gross += record.gross
        return replace(
            self,
            gross_before_fees=gross_before_fees,
            negative_gross=negative_gross,
            fee_total=self.fee_total - record.fee,
        )

    def to_dict(self) -> dict[str, str | int]:
        """Serialize totals with decimals as strings."""
        return {
            "gross_before_fees": str(self.gross_before_fees),
            "negative_gross": str(self.negative_gross),
            "fee_total": str(self.fee_total),
            "no_customer_gross": str(self.no_customer_gross),
            "no_customer_fee": str(self.no_customer_fee),
            "exclusion_list_gross": str(self.exclusion_list_gross),
            "exclusion_list_fee": str(self.exclusion_list_fee),
            "exclusion_bucket_gross": str(self.exclusion_bucket_gross),
            "exclusion_bucket_fee": str(self.exclusion_bucket_fee),
            "exclusion_ammo_total": str(self.exclusion_ammo_total),
            "platform_ammo_adjustment": str(self.platform_ammo_adjustment),
            "ammo_product_total": str(self.ammo_product_total),
            "suppressed_count": self.suppressed_count,
        }


class CachedInvoiceLookup:
    """Per-run memo over an invoice lookup.

    Failed lookups are logged and remembered as "no invoice", so one
    customer's API error never aborts the run and is not retried by the
    second pass.
    """

    def __init__(self, lookup: InvoiceLookup):
        self._lookup = lookup
        self._cache: dict[str, Invoice | None] = {}
        self.calls = 0

    async def __call__(self, customer_id: str) -> Invoice | None:
        if customer_id in self._cache:
            logger.debug("invoice_cache_hit", customer_id=customer_id)
            return self._cache[customer_id]

        self.calls += 1
        try:
            invoice = await self._lookup(customer_id)
        except InvoiceLookupError as e:
            logger.warning("invoice_lookup_failed", customer_id=customer_id, error=str(e))
            invoice = None
        if invoice is None:
            logger.info("no_invoice_found", customer_id=customer_id)
        self._cache[customer_id] = invoice
        return invoice


def _as_cached(lookup: InvoiceLookup) -> CachedInvoiceLookup:
    if isinstance(lookup, CachedInvoiceLookup):
        return lookup
    return CachedInvoiceLookup(lookup)


async def _apply_exclusion_record(
    totals: AggregateTotals,
    index: int,
    record: SettlementRecord,
    config: ReconciliationConfig,
    lookup: CachedInvoiceLookup,
) -> tuple[AggregateTotals, list[TraceEntry]]:
    invoice = await lookup(record.customer_id)
    has_excluded = invoice is not None and invoice.has_product(config.excluded_product_id)

    if invoice is None or not has_excluded:
        whole = replace(
            totals,
            exclusion_list_gross=totals.exclusion_list_gross + record.gross,
            exclusion_list_fee=totals.exclusion_list_fee - record.fee,
        )
        entry = TraceEntry(
            record_index=index,
            customer_id=record.customer_id,
            classification=Classification.EXCLUSION_LIST,
            gross=record.gross,
            fee=record.fee,
            contains_excluded_product=False,
            notes=() if invoice is not None else ("no_invoice",),
        )
        return whole, [entry]

    try:
        allocation = allocate_fees(invoice.lines, record.fee)
    except DivisionUndefinedError as e:
        logger.warning(
            "proration_undefined",
            customer_id=record.customer_id,
            invoice_id=invoice.invoice_id,
            error=str(e),
        )
        fallback = replace(
            totals,
            exclusion_list_gross=totals.exclusion_list_gross + record.gross,
            exclusion_list_fee=totals.exclusion_list_fee - record.fee,
        )
        entry = TraceEntry(
            record_index=index,
            customer_id=record.customer_id,
            classification=Classification.EXCLUSION_LIST,
            gross=record.gross,
            fee=record.fee,
            contains_excluded_product=True,
            notes=("proration_undefined",),
        )
        return fallback, [entry]

    gross = totals.exclusion_list_gross
    fee = totals.exclusion_list_fee
    ammo = totals.exclusion_ammo_total
    entries: list[TraceEntry] = []
    for line in invoice.lines:
        if line.product_id == config.excluded_product_id:
            ammo += line.amount
            continue
        # Repeated products share one allocation, so each line takes its own share
        line_fee = _line_fee(invoice, line.product_id, line.quantity, allocation)
        gross += line.amount
        fee -= line_fee
        entries.append(
            TraceEntry(
                record_index=index,
                customer_id=record.customer_id,
                classification=Classification.EXCLUSION_LIST,
                gross=line.amount,
                fee=line_fee,
                contains_excluded_product=True,
                product_id=line.product_id,
            )
        )
    updated = replace(
        totals,
        exclusion_list_gross=gross,
        exclusion_list_fee=fee,
        exclusion_ammo_total=ammo,
    )
    return updated, entries


def _line_fee(
    invoice: Invoice, product_id: str, quantity: int, allocation: dict[str, Decimal]
) -> Decimal:
    product_quantity = sum(
        line.quantity for line in invoice.lines if line.product_id == product_id
    )
    if product_quantity == 0:
        return ZERO
    return allocation[product_id] * Decimal(quantity) / Decimal(product_quantity)


async def _apply_record(
    totals: AggregateTotals,
    index: int,
    record: SettlementRecord,
    classification: Classification,
    config: ReconciliationConfig,
    lookup: CachedInvoiceLookup,
) -> tuple[AggregateTotals, list[TraceEntry]]:
    if classification is Classification.SUPPRESSED:
        logger.info(
            "record_suppressed",
            record_index=index,
            customer_id=record.customer_id,
            customer_email=record.customer_email,
        )
        entry = TraceEntry(
            record_index=index,
            customer_id=record.customer_id,
            classification=classification,
        )
        return replace(totals, suppressed_count=totals.suppressed_count + 1), [entry]

    totals = totals.with_activity(record)

    if classification is Classification.NO_CUSTOMER:
        updated = replace(
            totals,
            no_customer_gross=totals.no_customer_gross + record.gross,
            no_customer_fee=totals.no_customer_fee - record.fee,
        )
        entry = TraceEntry(
            record_index=index,
            customer_id="",
            classification=classification,
            gross=record.gross,
            fee=record.fee,
        )
        return updated, [entry]

    if classification is Classification.EXCLUSION_LIST:
        return await _apply_exclusion_record(totals, index, record, config, lookup)

    # Platform totals are derived by subtraction; nothing to accumulate here
    return totals, []


async def _platform_ammo_entry(
    index: int,
    record: SettlementRecord,
    config: ReconciliationConfig,
    lookup: CachedInvoiceLookup,
) -> TraceEntry:
    invoice = await lookup(record.customer_id)
    excluded = ZERO
    if invoice is not None:
        excluded = sum(
            (line.amount for line in invoice.lines if line.product_id == config.excluded_product_id),
            ZERO,
        )
    return TraceEntry(
        record_index=index,
        customer_id=record.customer_id,
        classification=Classification.UNCLASSIFIED,
        gross=excluded,
        contains_excluded_product=invoice is not None and invoice.has_product(config.excluded_product_id),
        product_id=config.excluded_product_id,
        notes=() if invoice is not None else ("no_invoice",),
    )


async def aggregate(
    records: Sequence[SettlementRecord],
    config: ReconciliationConfig,
    lookup: InvoiceLookup,
) -> tuple[AggregateTotals, list[TraceEntry]]:
    """Run both passes over ``records`` and return the totals and trace.

    Lookups run one at a time, in record order.
    """
    cached = _as_cached(lookup)
    totals = AggregateTotals()
    trace: list[TraceEntry] = []
    candidates: list[tuple[int, SettlementRecord]] = []

    for index, record in enumerate(records):
        classification = classify(
            record, config.exclusion_customer_ids, config.suppression_markers
        )
        totals, entries = await _apply_record(
            totals, index, record, classification, config, cached
        )
        trace.extend(entries)
        if classification is Classification.UNCLASSIFIED:
            candidates.append((index, record))

    for index, record in candidates:
        entry = await _platform_ammo_entry(index, record, config, cached)
        totals = replace(
            totals, platform_ammo_adjustment=totals.platform_ammo_adjustment + entry.gross
        )
        trace.append(entry)

    logger.info(
        "aggregation_complete",
        records=len(records),
        suppressed=totals.suppressed_count,
        platform_candidates=len(candidates),
        invoice_lookups=cached.calls,
    )
    return totals, trace
