"""Settlement reconciliation - platform gross and net from processor reports."""

__version__ = "0.1.0"

from settlement_recon.aggregator import AggregateTotals, CachedInvoiceLookup, aggregate
from settlement_recon.classifier import classify, is_suppressed
from settlement_recon.derivation import ReconciliationSummary, derive
from settlement_recon.errors import (
    DivisionUndefinedError,
    InvoiceLookupError,
    MalformedInputError,
    ReconciliationError,
)
from settlement_recon.models import (
    Classification,
    Invoice,
    InvoiceLine,
    ReconciliationConfig,
    SettlementRecord,
    TraceEntry,
)
from settlement_recon.proration import allocate_fees
from settlement_recon.reconciler import ReconciliationResult, reconcile
from settlement_recon.report import parse_report, read_report

__all__ = [
    # Version
    "__version__",
    # Data model
    "SettlementRecord",
    "Invoice",
    "InvoiceLine",
    "ReconciliationConfig",
    "Classification",
    "TraceEntry",
    # Components
    "parse_report",
    "read_report",
    "classify",
    "is_suppressed",
    "allocate_fees",
    "AggregateTotals",
    "CachedInvoiceLookup",
    "aggregate",
    "ReconciliationSummary",
    "derive",
    "ReconciliationResult",
    "reconcile",
    # Errors
    "ReconciliationError",
    "MalformedInputError",
    "DivisionUndefinedError",
    "InvoiceLookupError",
]
