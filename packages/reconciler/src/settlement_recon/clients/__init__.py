"""Invoice source clients."""

from settlement_recon.clients.stripe import (
    AuthenticationError,
    RateLimitError,
    StripeAPIError,
    StripeClient,
)

__all__ = [
    "StripeClient",
    "StripeAPIError",
    "AuthenticationError",
    "RateLimitError",
]
