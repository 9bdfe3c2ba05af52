"""
Engine events and their delivery to notifiers.

Every state change in the engine produces one plain-data event. The
EventBus stamps each event with a sequence number and hands it to every
subscribed notifier in subscription order. Events are published while the
engine lock is held, so sequence order is mutation order.

A notifier that raises is logged and skipped; it cannot undo or block the
mutation that produced the event.
"""

import itertools
import threading
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Optional, Protocol, Type, TypeVar

from invoice_market.utils.logger import get_logger
from invoice_market.utils.validation import format_amount

if TYPE_CHECKING:
    from invoice_market.core.auction.invoice import Bid

logger = get_logger("events")

E = TypeVar("E", bound="MarketEvent")


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class MarketEvent:
    """Base event. `sequence` is assigned by the EventBus."""
    sequence: int = field(default=0, kw_only=True)

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class InvoiceCreated(MarketEvent):
    invoice_id: int
    owner_id: Any
    title: str
    face_amount: Decimal
    auto_accept_highest: bool


@dataclass(frozen=True)
class BidAccepted(MarketEvent):
    invoice_id: int
    bid: "Bid"


@dataclass(frozen=True)
class BidRejected(MarketEvent):
    invoice_id: Any
    bidder_id: Any
    amount: Any
    reason: str
    code: str


@dataclass(frozen=True)
class InvoiceFinalized(MarketEvent):
    invoice_id: int
    winning_bid: Optional["Bid"]
    manual: bool = False


@dataclass(frozen=True)
class AuctionExpiredNoSale(MarketEvent):
    invoice_id: int
    highest_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class BiddingEnded(MarketEvent):
    """Manual-mode invoice expired; the business still has to choose."""
    invoice_id: int
    bid_count: int


@dataclass(frozen=True)
class FundsDeposited(MarketEvent):
    user_id: Any
    amount: Decimal
    balance: Decimal


# =============================================================================
# Notifiers
# =============================================================================


class Notifier(Protocol):
    """Receives engine events. Output only: must not call back into the engine."""

    def notify(self, event: MarketEvent) -> None:
        ...


class RecordingNotifier:
    """Keeps every event it receives, for tests and polling UIs."""

    def __init__(self):
        self.events: List[MarketEvent] = []

    def notify(self, event: MarketEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: Type[E]) -> List[E]:
        return [e for e in self.events if isinstance(e, event_type)]

    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def clear(self) -> None:
        self.events.clear()


def describe(event: MarketEvent, currency: str = "EUR") -> str:
    """One-line human readable text for an event."""
    if isinstance(event, InvoiceCreated):
        return f"Invoice #{event.invoice_id} uploaded: {event.title} ({format_amount(event.face_amount, currency)})"
    if isinstance(event, BidAccepted):
        return (
            f"Bid placed on invoice #{event.invoice_id}: "
            f"{format_amount(event.bid.amount, currency)} by bidder {event.bid.bidder_id}"
        )
    if isinstance(event, BidRejected):
        return f"Bid rejected on invoice #{event.invoice_id}: {event.reason}"
    if isinstance(event, InvoiceFinalized):
        if event.winning_bid is None:
            return f"Invoice #{event.invoice_id} is finalized without a sale"
        return (
            f"Invoice #{event.invoice_id} is finalized with bid of "
            f"{format_amount(event.winning_bid.amount, currency)}"
        )
    if isinstance(event, AuctionExpiredNoSale):
        if event.highest_amount is None:
            return f"Invoice #{event.invoice_id} ended with no bids. No sale."
        return f"Invoice #{event.invoice_id} ended. Highest bid didn't meet the minimum. No sale."
    if isinstance(event, BiddingEnded):
        return f"Invoice #{event.invoice_id}: bidding ended. Manual finalize pending!"
    if isinstance(event, FundsDeposited):
        return f"Deposited {format_amount(event.amount, currency)} to wallet of user {event.user_id}"
    return event.name


class LoggingNotifier:
    """Writes each event through the logger."""

    def __init__(self, currency: str = "EUR"):
        self.currency = currency

    def notify(self, event: MarketEvent) -> None:
        text = describe(event, self.currency)
        if isinstance(event, BidRejected):
            logger.warning(text)
        else:
            logger.info(text)


# =============================================================================
# Event Bus
# =============================================================================


class EventBus:
    """Fan-out of events to subscribed notifiers."""

    def __init__(self, notifiers: Optional[List[Notifier]] = None):
        self._notifiers: List[Notifier] = list(notifiers or [])
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self.published = 0
        self.delivery_failures = 0

    def subscribe(self, notifier: Notifier) -> None:
        self._notifiers.append(notifier)

    def unsubscribe(self, notifier: Notifier) -> None:
        if notifier in self._notifiers:
            self._notifiers.remove(notifier)

    def publish(self, event: MarketEvent) -> MarketEvent:
        """Stamp `event` with the next sequence number and deliver it."""
        with self._lock:
            stamped = replace(event, sequence=next(self._counter))
            self.published += 1

        for notifier in list(self._notifiers):
            try:
                notifier.notify(stamped)
            except Exception as e:
                self.delivery_failures += 1
                logger.error(f"Notifier {type(notifier).__name__} failed on {stamped.name}: {e}")

        return stamped
