"""
Error taxonomy for the pricing core.

Every error carries a stable ``kind`` tag so callers can branch on the
category without parsing messages.  Insufficient data is deliberately
absent: an empty signal series is a valid, low-confidence result.
"""

from __future__ import annotations


class PricingError(Exception):
    """Base class for all pricing-core errors."""

    kind = "pricing_error"
    retryable = False

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message,
                "retryable": self.retryable, **self.context}


class InvalidLocation(PricingError):
    """Latitude/longitude outside WGS84 bounds or not finite."""

    kind = "invalid_location"


class UnsupportedPeril(PricingError):
    """Peril unknown, or the provider cannot serve this peril/location."""

    kind = "unsupported_peril"


class InvalidPolicy(PricingError):
    """Policy fields other than location are malformed."""

    kind = "invalid_policy"


class TransientFetchError(PricingError):
    """Network, timeout or 5xx failure that survived every retry."""

    kind = "transient_fetch"
    retryable = True


class FetchCancelled(PricingError):
    kind = "cancelled"
