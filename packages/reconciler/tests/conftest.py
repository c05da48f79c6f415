"""Pytest configuration and fixtures."""

import os
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_API_URL", "https://api.stripe.test")

from settlement_recon.models import (  # noqa: E402
    Invoice,
    InvoiceLine,
    ReconciliationConfig,
    SettlementRecord,
)


def make_record(
    customer_id: str = "",
    gross: str = "0",
    fee: str = "0",
    category: str = "charge",
    email: str = "",
) -> SettlementRecord:
    return SettlementRecord(
        customer_id=customer_id,
        customer_email=email,
        reporting_category=category,
        gross=Decimal(gross),
        fee=Decimal(fee),
    )


def make_invoice(*lines: tuple[str, int, str], invoice_id: str = "in_test") -> Invoice:
    return Invoice(
        lines=tuple(
            InvoiceLine(product_id=product, quantity=quantity, amount=Decimal(amount))
            for product, quantity, amount in lines
        ),
        invoice_id=invoice_id,
        currency="usd",
    )


@pytest.fixture
def config():
    """Config excluding product "ammo" for customers cus_channel and cus_other."""
    return ReconciliationConfig.build(
        excluded_product_id="ammo",
        exclusion_customer_ids=["cus_channel", "cus_other"],
    )


@pytest.fixture
def lookup_from():
    """Build an AsyncMock lookup answering from a customer -> invoice mapping."""

    def _build(invoices: dict[str, Invoice | None]) -> AsyncMock:
        def _lookup(customer_id: str) -> Invoice | None:
            return invoices.get(customer_id)

        return AsyncMock(side_effect=_lookup)

    return _build


@pytest.fixture
def mock_invoice_list_response():
    """Mock Stripe invoice list response (amounts in cents)."""
    return {
        "object": "list",
        "data": [
            {
                "id": "in_1Abc",
                "customer": "cus_channel",
                "currency": "usd",
                "lines": {
                    "object": "list",
                    "data": [
                        {
                            "id": "il_1",
                            "amount": 5000,
                            "currency": "usd",
                            "quantity": 1,
                            "price": {"id": "price_1", "product": "prod_widget"},
                        },
                        {
                            "id": "il_2",
                            "amount": 2599,
                            "currency": "usd",
                            "quantity": 3,
                            "pricing": {"price_details": {"product": "ammo"}},
                        },
                    ],
                },
            }
        ],
        "has_more": False,
    }
