"""
Unit tests for the Invoice entity and its status machine.
"""

import pytest
from decimal import Decimal

from invoice_market.core.auction import Bid, Invoice, InvoiceStatus
from invoice_market.core.errors import InvalidTransitionError

NOW = 1_700_000_000.0


@pytest.fixture
def invoice():
    return Invoice(
        invoice_id=1,
        owner_id="acme",
        title="Consulting",
        face_amount=Decimal("100"),
        bidding_end_at=NOW + 3600,
    )


def add_bid(invoice, bidder, amount, placed_at=NOW):
    bid = invoice.next_bid(bidder, Decimal(amount), placed_at)
    invoice.append_bid(bid)
    return bid


class TestInvoiceFields:
    """Tests for derived values."""

    def test_manual_mode_forces_zero_min_bid(self):
        invoice = Invoice(1, "acme", "t", Decimal("100"), NOW, auto_accept_highest=False, min_bid=Decimal("50"))
        assert invoice.min_bid == Decimal("0")

    def test_auto_mode_keeps_min_bid(self):
        invoice = Invoice(1, "acme", "t", Decimal("100"), NOW, auto_accept_highest=True, min_bid=Decimal("50"))
        assert invoice.min_bid == Decimal("50")

    def test_max_allowed_bid(self, invoice):
        assert invoice.max_allowed_bid == Decimal("80")

    def test_expiry(self, invoice):
        assert not invoice.is_expired(NOW)
        assert invoice.is_expired(NOW + 3600)

    def test_summary(self, invoice):
        add_bid(invoice, "alice", 70)
        summary = invoice.summary()

        assert summary["status"] == "OPEN"
        assert summary["bid_count"] == 1
        assert summary["max_allowed_bid"] == "80"
        assert summary["winning_bid"] is None


class TestBids:
    """Tests for bid storage and lookup."""

    def test_bids_keep_submission_order(self, invoice):
        first = add_bid(invoice, "alice", 50)
        second = add_bid(invoice, "bob", 60)

        assert invoice.bids == [first, second]
        assert (first.sequence, second.sequence) == (0, 1)

    def test_highest_bid_tie_goes_to_earliest(self, invoice):
        first = add_bid(invoice, "alice", 70, NOW)
        add_bid(invoice, "bob", 70, NOW + 1)

        assert invoice.highest_bid() is first

    def test_highest_bid_none_without_bids(self, invoice):
        assert invoice.highest_bid() is None

    def test_contains_bid(self, invoice):
        bid = add_bid(invoice, "alice", 50)
        forged = Bid(invoice_id=1, bidder_id="alice", amount=Decimal("79"), placed_at=NOW, sequence=0)
        other_invoice = Bid(invoice_id=2, bidder_id="alice", amount=Decimal("50"), placed_at=NOW, sequence=0)

        assert invoice.contains_bid(bid)
        assert not invoice.contains_bid(forged)
        assert not invoice.contains_bid(other_invoice)
        assert not invoice.contains_bid("not a bid")

    def test_out_of_order_append_rejected(self, invoice):
        stale = invoice.next_bid("alice", Decimal("10"), NOW)
        add_bid(invoice, "bob", 20)

        with pytest.raises(InvalidTransitionError):
            invoice.append_bid(stale)


class TestStatusMachine:
    """Tests for monotonic status transitions."""

    def test_open_to_awaiting_to_finalized(self, invoice):
        bid = add_bid(invoice, "alice", 50)
        invoice.transition(InvoiceStatus.ENDED_AWAITING_MANUAL)
        invoice.finalize(bid, NOW)

        assert invoice.status == InvoiceStatus.FINALIZED
        assert invoice.winning_bid is bid
        assert invoice.finalized_at == NOW

    def test_finalize_keeps_stored_bid(self, invoice):
        stored = add_bid(invoice, "alice", 50)
        copy = Bid(
            invoice_id=stored.invoice_id,
            bidder_id=stored.bidder_id,
            amount=stored.amount,
            placed_at=stored.placed_at,
            sequence=stored.sequence,
        )

        invoice.finalize(copy, NOW)

        assert invoice.winning_bid is stored
        assert invoice.winning_bid is invoice.bids[0]

    def test_open_to_finalized_without_winner(self, invoice):
        invoice.finalize(None, NOW)

        assert invoice.is_finalized
        assert invoice.winning_bid is None

    def test_backward_transition_rejected(self, invoice):
        invoice.transition(InvoiceStatus.ENDED_AWAITING_MANUAL)

        with pytest.raises(InvalidTransitionError):
            invoice.transition(InvoiceStatus.OPEN)

    def test_finalize_twice_rejected(self, invoice):
        invoice.finalize(None, NOW)

        with pytest.raises(InvalidTransitionError):
            invoice.finalize(None, NOW)

    def test_finalize_with_foreign_bid_leaves_invoice_open(self, invoice):
        foreign = Bid(invoice_id=9, bidder_id="x", amount=Decimal("1"), placed_at=NOW)

        with pytest.raises(InvalidTransitionError):
            invoice.finalize(foreign, NOW)

        assert invoice.status == InvoiceStatus.OPEN
        assert invoice.winning_bid is None
