"""
Bid admissibility rules.

Pure functions of (invoice, bidder balance, amount, now): nothing here
mutates state or reads a clock, so the rules can be checked in isolation
from the engine.

Rules, in the order they are evaluated (first failure wins):
1. Invoice status is OPEN                  -> InvoiceClosedError
2. now <= bidding_end_at                   -> BiddingExpiredError
3. amount <= face_amount - spread          -> BidTooHighError
4. amount >= min_bid                       -> BidBelowMinimumError
5. balance >= amount                       -> InsufficientFundsError
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional

from invoice_market.core.auction.invoice import BID_SPREAD, Invoice
from invoice_market.core.errors import (
    BidBelowMinimumError,
    BiddingExpiredError,
    BidTooHighError,
    InsufficientFundsError,
    InvoiceClosedError,
    MarketError,
)


@dataclass
class BidCheck:
    """Result of checking a proposed bid."""
    admissible: bool
    error: Optional[MarketError] = None

    @property
    def reason(self) -> str:
        return self.error.message if self.error else ""


ADMISSIBLE = BidCheck(admissible=True)


# =============================================================================
# Individual Rules
# =============================================================================


def check_open(invoice: Invoice, balance: Decimal, amount: Decimal, now: float, spread: Decimal) -> Optional[MarketError]:
    if not invoice.is_open:
        return InvoiceClosedError(
            f"Bidding is closed: invoice {invoice.invoice_id} is {invoice.status.name}",
            invoice.invoice_id,
        )
    return None


def check_not_expired(invoice: Invoice, balance: Decimal, amount: Decimal, now: float, spread: Decimal) -> Optional[MarketError]:
    if now > invoice.bidding_end_at:
        return BiddingExpiredError(
            f"Bidding time for invoice {invoice.invoice_id} is over",
            invoice.invoice_id,
        )
    return None


def check_below_ceiling(invoice: Invoice, balance: Decimal, amount: Decimal, now: float, spread: Decimal) -> Optional[MarketError]:
    max_allowed = invoice.face_amount - spread
    if amount > max_allowed:
        return BidTooHighError(
            f"Bid {amount} is above the allowed maximum of {max_allowed}",
            invoice.invoice_id,
        )
    return None


def check_above_minimum(invoice: Invoice, balance: Decimal, amount: Decimal, now: float, spread: Decimal) -> Optional[MarketError]:
    if amount < invoice.min_bid:
        return BidBelowMinimumError(
            f"Bid {amount} is below the required minimum of {invoice.min_bid}",
            invoice.invoice_id,
        )
    return None


def check_funds(invoice: Invoice, balance: Decimal, amount: Decimal, now: float, spread: Decimal) -> Optional[MarketError]:
    if balance < amount:
        return InsufficientFundsError(
            f"Insufficient wallet balance: have {balance}, need {amount}",
            invoice.invoice_id,
        )
    return None


RULES: List[Callable[..., Optional[MarketError]]] = [
    check_open,
    check_not_expired,
    check_below_ceiling,
    check_above_minimum,
    check_funds,
]


def check_bid(
    invoice: Invoice,
    balance: Decimal,
    amount: Decimal,
    now: float,
    spread: Optional[Decimal] = None,
) -> BidCheck:
    """
    Decide whether a bid is admissible.

    Args:
        invoice: Target invoice (read only)
        balance: Bidder's current wallet balance
        amount: Proposed bid amount
        now: Current time in epoch seconds
        spread: Override for the invoice's bid spread

    Returns:
        BidCheck with the first violated rule, or ADMISSIBLE
    """
    spread = invoice.bid_spread if spread is None else spread
    for rule in RULES:
        error = rule(invoice, balance, amount, now, spread)
        if error is not None:
            return BidCheck(admissible=False, error=error)
    return ADMISSIBLE


class BidValidator:
    """
    Bid rules bound to a market spread.

    Args:
        spread: Required distance below face amount (default 20)
    """

    def __init__(self, spread: Decimal = BID_SPREAD):
        self.spread = spread

    def check(self, invoice: Invoice, balance: Decimal, amount: Decimal, now: float) -> BidCheck:
        return check_bid(invoice, balance, amount, now, self.spread)

    def max_allowed(self, invoice: Invoice) -> Decimal:
        return invoice.face_amount - self.spread
