"""
Integration tests for concurrent access to the engine.

Bids, sweeps and manual finalization are fired from several threads at
once; the engine lock must keep wallets and invoices consistent.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from invoice_market.core.auction import AuctionEngine, InvoiceStatus
from invoice_market.core.clock import ManualClock
from invoice_market.core.errors import InsufficientFundsError
from invoice_market.core.events import RecordingNotifier


def test_concurrent_bids_never_overdraw():
    """Many threads spending one wallet: exactly balance/amount bids succeed."""
    clock = ManualClock()
    engine = AuctionEngine(clock=clock)
    engine.open_account("alice", 100)
    invoice = engine.create_invoice("acme", "A", 1000, clock() + 60).unwrap()

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(
            lambda _: engine.place_bid(invoice.invoice_id, "alice", 10), range(64)
        ))

    accepted = [r for r in results if r.ok]
    rejected = [r for r in results if not r.ok]

    assert len(accepted) == 10
    assert all(isinstance(r.error, InsufficientFundsError) for r in rejected)
    assert engine.balance("alice") == Decimal("0")
    assert len(invoice.bids) == 10
    assert [b.sequence for b in invoice.bids] == list(range(10))


def test_sweep_racing_bids_never_accepts_after_finalization():
    clock = ManualClock()
    recorder = RecordingNotifier()
    engine = AuctionEngine(clock=clock, notifiers=[recorder])
    for i in range(8):
        engine.open_account(f"u{i}", 10_000)
    invoice = engine.create_invoice("acme", "A", 1000, clock() + 10, True, 0).unwrap()
    engine.place_bid(invoice.invoice_id, "u0", 1)

    start = threading.Barrier(9)

    def bidder(i):
        start.wait()
        for n in range(50):
            engine.place_bid(invoice.invoice_id, f"u{i}", 1 + n)

    def sweeper():
        start.wait()
        clock.advance(11)
        for _ in range(20):
            engine.sweep()

    threads = [threading.Thread(target=bidder, args=(i,)) for i in range(8)]
    threads.append(threading.Thread(target=sweeper))
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert invoice.status == InvoiceStatus.FINALIZED
    assert invoice.winning_bid in invoice.bids

    names = recorder.names()
    finalized_at = names.index("InvoiceFinalized")
    assert "BidAccepted" not in names[finalized_at + 1:]

    spent = sum((b.amount for b in invoice.bids), Decimal("0"))
    remaining = sum((engine.balance(f"u{i}") for i in range(8)), Decimal("0"))
    assert spent + remaining == Decimal("80000")


def test_manual_finalize_races_auto_finalize():
    """Exactly one resolution wins; the invoice is finalized once."""
    for _ in range(20):
        clock = ManualClock()
        recorder = RecordingNotifier()
        engine = AuctionEngine(clock=clock, notifiers=[recorder])
        engine.open_account("alice", 1000)
        engine.open_account("bob", 1000)
        invoice = engine.create_invoice("acme", "A", 500, clock() + 10, True, 0).unwrap()
        low = engine.place_bid(invoice.invoice_id, "alice", 100).unwrap()
        engine.place_bid(invoice.invoice_id, "bob", 200)

        clock.advance(10)
        barrier = threading.Barrier(2)
        outcome = {}

        def manual():
            barrier.wait()
            outcome["manual"] = engine.manual_finalize(invoice.invoice_id, low)

        def sweep():
            barrier.wait()
            outcome["sweep"] = engine.sweep()

        threads = [threading.Thread(target=manual), threading.Thread(target=sweep)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert invoice.status == InvoiceStatus.FINALIZED
        finalized = [n for n in recorder.names() if n == "InvoiceFinalized"]
        assert len(finalized) == 1
        if outcome["manual"].ok:
            assert invoice.winning_bid is low
            assert outcome["sweep"].finalized == []
        else:
            assert outcome["manual"].error.code == "already_finalized"
            assert invoice.winning_bid.bidder_id == "bob"
