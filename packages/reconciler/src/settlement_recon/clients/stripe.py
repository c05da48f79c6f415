"""Stripe API client for looking up customers' latest invoices."""

import asyncio
from decimal import Decimal
from typing import Any, cast

import httpx
import structlog

from settlement_recon.config import get_settings
from settlement_recon.errors import InvoiceLookupError
from settlement_recon.models import Invoice, InvoiceLine

logger = structlog.get_logger(__name__)

# Currencies Stripe bills in whole units rather than cents
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
        "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
    }
)


class StripeAPIError(InvoiceLookupError):
    """Base exception for Stripe API errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthenticationError(StripeAPIError):
    """The secret key was rejected."""

    pass


class RateLimitError(StripeAPIError):
    """Rate limit exceeded."""

    pass


def minor_to_major(amount: int | None, currency: str | None) -> Decimal:
    """Convert a Stripe minor-unit integer to currency units."""
    if amount is None:
        return Decimal("0")
    if currency and currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return Decimal(amount)
    return Decimal(amount) / Decimal(100)


def _line_product(line: dict[str, Any]) -> str:
    price = line.get("price")
    if isinstance(price, dict) and price.get("product"):
        return str(price["product"])
    # API versions from 2025-03-31 moved price details under "pricing"
    pricing = line.get("pricing")
    if isinstance(pricing, dict):
        details = pricing.get("price_details")
        if isinstance(details, dict) and details.get("product"):
            return str(details["product"])
    return ""


def invoice_from_payload(payload: dict[str, Any]) -> Invoice:
    """Build an Invoice from a Stripe invoice object."""
    currency = payload.get("currency")
    lines_obj = payload.get("lines") or {}
    raw_lines = lines_obj.get("data", []) if isinstance(lines_obj, dict) else []
    lines = tuple(
        InvoiceLine(
            product_id=_line_product(line),
            quantity=int(line.get("quantity") or 0),
            amount=minor_to_major(line.get("amount"), line.get("currency") or currency),
        )
        for line in raw_lines
        if isinstance(line, dict)
    )
    return Invoice(lines=lines, invoice_id=payload.get("id"), currency=currency)


class StripeClient:
    """Async client for the Stripe invoices endpoint."""

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.stripe_api_url).rstrip("/")
        if secret_key is None and settings.stripe_secret_key is not None:
            secret_key = settings.stripe_secret_key.get_secret_value()
        if not secret_key:
            raise AuthenticationError("No Stripe secret key configured")
        self._secret_key = secret_key
        self._timeout = timeout if timeout is not None else settings.stripe_timeout
        self._max_retries = max_retries if max_retries is not None else settings.stripe_max_retries
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "StripeClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._secret_key}"}

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        retry_count: int = 0,
    ) -> dict[str, Any]:
        """Make an authenticated API request with retry logic."""
        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                headers=self._get_headers(),
            )
        except httpx.RequestError as e:
            if retry_count < self._max_retries:
                await asyncio.sleep(2**retry_count)  # Exponential backoff
                return await self._request(method, path, params, retry_count + 1)
            raise StripeAPIError(f"Request failed: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError("Invalid Stripe secret key", status_code=401)

        if response.status_code == 429:
            if retry_count < self._max_retries:
                await asyncio.sleep(2**retry_count)
                return await self._request(method, path, params, retry_count + 1)
            raise RateLimitError("Rate limited by Stripe", status_code=429)

        if response.status_code >= 400:
            try:
                error_detail = response.json() if response.content else {}
            except ValueError:
                error_detail = {"raw": response.text[:500] if response.text else "empty response"}
            raise StripeAPIError(
                f"API error: {response.status_code}",
                status_code=response.status_code,
                details=error_detail,
            )

        try:
            data = response.json() if response.content else {}
        except ValueError as e:
            raise StripeAPIError("Invalid response format", status_code=response.status_code) from e
        if not isinstance(data, dict):
            raise StripeAPIError("Invalid response format")
        return cast(dict[str, Any], data)

    async def list_invoices(self, customer_id: str, limit: int = 1) -> list[dict[str, Any]]:
        """List a customer's invoices, newest first."""
        result = await self._request(
            "GET",
            "/v1/invoices",
            params={"customer": customer_id, "limit": min(max(limit, 1), 100)},
        )
        items = result.get("data")
        return items if isinstance(items, list) else []

    async def latest_invoice(self, customer_id: str) -> Invoice | None:
        """Return the customer's most recent invoice, or None if they have none."""
        invoices = await self.list_invoices(customer_id, limit=1)
        if not invoices:
            return None
        try:
            invoice = invoice_from_payload(invoices[0])
        except (ArithmeticError, AttributeError, TypeError, ValueError) as e:
            raise StripeAPIError(f"Malformed invoice for customer {customer_id}: {e}") from e
        logger.debug(
            "invoice_fetched",
            customer_id=customer_id,
            invoice_id=invoice.invoice_id,
            line_count=len(invoice.lines),
        )
        return invoice
