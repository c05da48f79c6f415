"""Assign settlement records to accounting buckets."""

from __future__ import annotations

from collections.abc import Collection, Iterable

from settlement_recon.models import (
    DEFAULT_SUPPRESSION_MARKERS,
    Classification,
    SettlementRecord,
)


def is_suppressed(
    email: str | None, markers: Iterable[str] = DEFAULT_SUPPRESSION_MARKERS
) -> bool:
    """Return True if the email belongs to an internal or test account."""
    if not email:
        return False
    lowered = email.lower()
    return any(marker.lower() in lowered for marker in markers if marker)


def classify(
    record: SettlementRecord,
    exclusion_customer_ids: Collection[str],
    markers: Iterable[str] = DEFAULT_SUPPRESSION_MARKERS,
) -> Classification:
    """Classify a record.

    Suppression wins over everything else, so an internal account that is
    also on the exclusion list still counts nowhere. Records left
    UNCLASSIFIED are platform sales; their totals come from subtraction
    in the derivation, not from accumulating them here.
    """
    if is_suppressed(record.customer_email, markers):
        return Classification.SUPPRESSED
    if not record.customer_id:
        return Classification.NO_CUSTOMER
    if record.customer_id in exclusion_customer_ids:
        return Classification.EXCLUSION_LIST
    return Classification.UNCLASSIFIED
