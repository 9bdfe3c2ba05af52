"""
Invoice - the auctioned unit of the marketplace.

A business lists an invoice at its face amount; bidders offer to buy it
at a discount. Each invoice resolves either automatically at
bidding_end_at (highest bid wins if it clears min_bid) or manually, when
the business picks any bid it has received.

Status transitions are monotonic:

    OPEN -> ENDED_AWAITING_MANUAL -> FINALIZED
    OPEN -> FINALIZED
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import IntEnum
from typing import Any, List, Optional

from invoice_market.core.errors import InvalidTransitionError

# =============================================================================
# Constants
# =============================================================================

# Bids must be at least this far below the face amount
BID_SPREAD = Decimal("20")


# =============================================================================
# Enums
# =============================================================================


class InvoiceStatus(IntEnum):
    """Resolution state of an invoice."""
    OPEN = 0                    # Accepting bids
    ENDED_AWAITING_MANUAL = 1   # Expired in manual mode, business must choose
    FINALIZED = 2               # Resolved, with or without a winner


_ALLOWED_TRANSITIONS = {
    InvoiceStatus.OPEN: (InvoiceStatus.ENDED_AWAITING_MANUAL, InvoiceStatus.FINALIZED),
    InvoiceStatus.ENDED_AWAITING_MANUAL: (InvoiceStatus.FINALIZED,),
    InvoiceStatus.FINALIZED: (),
}


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class Bid:
    """
    An accepted bid. Never amended or withdrawn.

    sequence is the bid's position in its invoice's bid list, which is
    also submission order.
    """
    invoice_id: int
    bidder_id: Any
    amount: Decimal
    placed_at: float
    sequence: int = 0

    def to_dict(self) -> dict:
        return {
            "invoice_id": self.invoice_id,
            "bidder_id": self.bidder_id,
            "amount": str(self.amount),
            "placed_at": self.placed_at,
            "sequence": self.sequence,
        }


@dataclass
class Invoice:
    """
    An invoice listed for sale.

    Attributes:
        invoice_id: Unique, monotonically assigned
        owner_id: Listing business
        title: Display title
        face_amount: Nominal value of the invoice
        bidding_end_at: Epoch seconds after which bids are refused
        auto_accept_highest: Resolve automatically at expiry
        min_bid: Floor for bids and for the automatic winner (0 in manual mode)
        bids: Accepted bids in submission order
        status: Current InvoiceStatus
        winning_bid: Set once, at finalization
    """
    invoice_id: int
    owner_id: Any
    title: str
    face_amount: Decimal
    bidding_end_at: float
    auto_accept_highest: bool = False
    min_bid: Decimal = Decimal("0")
    bids: List[Bid] = field(default_factory=list)
    status: InvoiceStatus = InvoiceStatus.OPEN
    winning_bid: Optional[Bid] = None
    created_at: float = field(default_factory=time.time)
    finalized_at: Optional[float] = None
    bid_spread: Decimal = BID_SPREAD

    def __post_init__(self):
        if not self.auto_accept_highest:
            self.min_bid = Decimal("0")

    # =========================================================================
    # Derived values
    # =========================================================================

    @property
    def max_allowed_bid(self) -> Decimal:
        """Highest admissible bid amount."""
        return self.face_amount - self.bid_spread

    @property
    def is_open(self) -> bool:
        return self.status == InvoiceStatus.OPEN

    @property
    def is_finalized(self) -> bool:
        return self.status == InvoiceStatus.FINALIZED

    def is_expired(self, now: float) -> bool:
        """Bidding window has passed at `now`."""
        return now >= self.bidding_end_at

    def highest_bid(self) -> Optional[Bid]:
        """
        Bid with the largest amount.

        Ties go to the earliest bid: a strict comparison in a
        left-to-right scan keeps the first maximum.
        """
        if not self.bids:
            return None
        best = self.bids[0]
        for bid in self.bids[1:]:
            if bid.amount > best.amount:
                best = bid
        return best

    def contains_bid(self, bid: Any) -> bool:
        """Whether `bid` is one of this invoice's own accepted bids."""
        if not isinstance(bid, Bid):
            return False
        if bid.invoice_id != self.invoice_id:
            return False
        if not 0 <= bid.sequence < len(self.bids):
            return False
        return self.bids[bid.sequence] == bid

    # =========================================================================
    # Mutations (engine only)
    # =========================================================================

    def next_bid(self, bidder_id: Any, amount: Decimal, placed_at: float) -> Bid:
        """Build the bid that append_bid would store next."""
        return Bid(
            invoice_id=self.invoice_id,
            bidder_id=bidder_id,
            amount=amount,
            placed_at=placed_at,
            sequence=len(self.bids),
        )

    def append_bid(self, bid: Bid) -> None:
        if bid.sequence != len(self.bids) or bid.invoice_id != self.invoice_id:
            raise InvalidTransitionError(
                f"Bid out of order for invoice {self.invoice_id}", self.invoice_id
            )
        self.bids.append(bid)

    def transition(self, new_status: InvoiceStatus) -> None:
        """Move to `new_status`, refusing backward or repeated transitions."""
        if new_status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Invoice {self.invoice_id}: {self.status.name} -> {new_status.name} not allowed",
                self.invoice_id,
            )
        self.status = new_status

    def finalize(self, winning_bid: Optional[Bid], now: float) -> None:
        """Finalize with `winning_bid`, or with no sale when it is None."""
        if winning_bid is not None and not self.contains_bid(winning_bid):
            raise InvalidTransitionError(
                f"Winning bid does not belong to invoice {self.invoice_id}", self.invoice_id
            )
        self.transition(InvoiceStatus.FINALIZED)
        # keep the stored bid, not the caller's equal copy
        self.winning_bid = self.bids[winning_bid.sequence] if winning_bid is not None else None
        self.finalized_at = now

    # =========================================================================
    # Utility
    # =========================================================================

    def summary(self) -> dict:
        """Plain-data view for display collaborators."""
        return {
            "invoice_id": self.invoice_id,
            "owner_id": self.owner_id,
            "title": self.title,
            "face_amount": str(self.face_amount),
            "bidding_end_at": self.bidding_end_at,
            "auto_accept_highest": self.auto_accept_highest,
            "min_bid": str(self.min_bid),
            "max_allowed_bid": str(self.max_allowed_bid),
            "status": self.status.name,
            "bid_count": len(self.bids),
            "winning_bid": self.winning_bid.to_dict() if self.winning_bid else None,
        }

    def __repr__(self) -> str:
        return (
            f"Invoice(id={self.invoice_id}, status={self.status.name}, "
            f"face={self.face_amount}, bids={len(self.bids)})"
        )
