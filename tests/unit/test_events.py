"""
Unit tests for event delivery.
"""

import logging
from decimal import Decimal

import pytest

from invoice_market.core.auction import Bid
from invoice_market.core.events import (
    AuctionExpiredNoSale,
    BidAccepted,
    BidRejected,
    BiddingEnded,
    EventBus,
    FundsDeposited,
    InvoiceCreated,
    InvoiceFinalized,
    LoggingNotifier,
    RecordingNotifier,
    describe,
)


class ExplodingNotifier:
    def notify(self, event):
        raise RuntimeError("display unavailable")


@pytest.fixture
def bid():
    return Bid(invoice_id=3, bidder_id="alice", amount=Decimal("160"), placed_at=1.0)


class TestEventBus:
    """Tests for sequencing and fan-out."""

    def test_sequence_numbers_increase(self):
        recorder = RecordingNotifier()
        bus = EventBus([recorder])

        bus.publish(InvoiceCreated(1, "acme", "A", Decimal("100"), False))
        bus.publish(AuctionExpiredNoSale(1))

        assert [e.sequence for e in recorder.events] == [1, 2]
        assert bus.published == 2

    def test_publish_returns_stamped_copy(self):
        event = AuctionExpiredNoSale(7)
        stamped = EventBus().publish(event)

        assert stamped.sequence == 1
        assert event.sequence == 0

    def test_delivery_in_subscription_order(self):
        order = []

        class Tagger:
            def __init__(self, tag):
                self.tag = tag

            def notify(self, event):
                order.append(self.tag)

        bus = EventBus([Tagger("first")])
        bus.subscribe(Tagger("second"))
        bus.publish(AuctionExpiredNoSale(1))

        assert order == ["first", "second"]

    def test_failing_notifier_isolated(self):
        recorder = RecordingNotifier()
        bus = EventBus([ExplodingNotifier(), recorder])

        bus.publish(AuctionExpiredNoSale(1))

        assert len(recorder.events) == 1
        assert bus.delivery_failures == 1

    def test_unsubscribe(self):
        recorder = RecordingNotifier()
        bus = EventBus([recorder])
        bus.unsubscribe(recorder)
        bus.publish(AuctionExpiredNoSale(1))

        assert recorder.events == []


class TestDescribe:
    """Tests for human readable event text."""

    def test_finalized_with_winner(self, bid):
        text = describe(InvoiceFinalized(3, bid))
        assert text == "Invoice #3 is finalized with bid of €160.00"

    def test_no_sale_texts(self):
        assert "no bids" in describe(AuctionExpiredNoSale(3))
        assert "didn't meet the minimum" in describe(AuctionExpiredNoSale(3, Decimal("100")))

    def test_other_events(self, bid):
        assert "Manual finalize pending" in describe(BiddingEnded(3, 2))
        assert "160.00" in describe(BidAccepted(3, bid))
        assert "too high" in describe(BidRejected(3, "alice", Decimal("190"), "too high", "bid_too_high"))
        assert "USD 5.00" in describe(FundsDeposited("alice", Decimal("5"), Decimal("5")), currency="USD")

    def test_logging_notifier(self, caplog, bid):
        with caplog.at_level(logging.INFO, logger="invoice_market"):
            LoggingNotifier().notify(InvoiceFinalized(3, bid))

        assert "finalized with bid" in caplog.text

    def test_event_names(self, bid):
        assert BidAccepted(3, bid).name == "BidAccepted"
