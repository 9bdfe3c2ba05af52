"""
Error taxonomy for the invoice marketplace.

Engine entry points never raise these to their callers: they are carried
back inside a Result so the caller can branch on the type. Lower-level
components (WalletLedger, Invoice) do raise them, and the engine converts
them at its boundary.

Kinds:
- VALIDATION:      malformed input, never retried
- NOT_FOUND:       unknown invoice
- STATE_CONFLICT:  invoice is in the wrong state for the call
- BUSINESS_RULE:   rejected by a market rule, retry with adjusted input
- INTEGRITY:       stale or forged reference
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Category of a marketplace error."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    STATE_CONFLICT = "state_conflict"
    BUSINESS_RULE = "business_rule"
    INTEGRITY = "integrity"


class MarketError(Exception):
    """Base class for all marketplace errors."""

    kind: ErrorKind = ErrorKind.VALIDATION
    retryable: bool = False
    code: str = "market_error"

    def __init__(self, message: str = "", invoice_id: Optional[int] = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.invoice_id = invoice_id

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "kind": self.kind.value,
            "message": self.message,
            "invoice_id": self.invoice_id,
            "retryable": self.retryable,
        }


class ValidationError(MarketError):
    kind = ErrorKind.VALIDATION
    code = "validation_error"


class NotFoundError(MarketError):
    kind = ErrorKind.NOT_FOUND
    code = "not_found"


class InvoiceClosedError(MarketError):
    kind = ErrorKind.STATE_CONFLICT
    code = "invoice_closed"


class BiddingExpiredError(MarketError):
    kind = ErrorKind.STATE_CONFLICT
    code = "bidding_expired"


class AlreadyFinalizedError(MarketError):
    kind = ErrorKind.STATE_CONFLICT
    code = "already_finalized"


class BidTooHighError(MarketError):
    kind = ErrorKind.BUSINESS_RULE
    retryable = True
    code = "bid_too_high"


class BidBelowMinimumError(MarketError):
    kind = ErrorKind.BUSINESS_RULE
    retryable = True
    code = "bid_below_minimum"


class InsufficientFundsError(MarketError):
    kind = ErrorKind.BUSINESS_RULE
    retryable = True
    code = "insufficient_funds"


class UnknownBidError(MarketError):
    kind = ErrorKind.INTEGRITY
    code = "unknown_bid"


class InvalidTransitionError(MarketError):
    """Raised by Invoice when a status change would move backwards."""
    kind = ErrorKind.INTEGRITY
    code = "invalid_transition"


__all__ = [
    "ErrorKind",
    "MarketError",
    "ValidationError",
    "NotFoundError",
    "InvoiceClosedError",
    "BiddingExpiredError",
    "AlreadyFinalizedError",
    "BidTooHighError",
    "BidBelowMinimumError",
    "InsufficientFundsError",
    "UnknownBidError",
    "InvalidTransitionError",
]
