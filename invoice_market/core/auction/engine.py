"""
AuctionEngine - orchestration of the invoice marketplace.

Entry points:
- create_invoice:   list an invoice for sale
- place_bid:        validate, lock the bidder's funds, record the bid
- manual_finalize:  business picks a winning bid at any time before finalization
- deposit:          top up a wallet
- sweep:            advance every expired OPEN invoice

Concurrency:
-----------
All entry points run under one engine-wide lock and perform every check
before the first mutation, so each call either applies completely or not at
all. The sweep takes the same lock, which serializes it against bids and
manual finalization on the same invoice.

Errors:
------
Entry points return a Result carrying either the value or a typed
MarketError. They do not raise for business failures.

Funds:
-----
A bid debits the bidder immediately. Losing bids are not refunded, neither
on finalization nor on a no-sale expiry.
"""

import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Generic, List, Optional, TypeVar

from invoice_market.core.auction.invoice import Bid, Invoice, InvoiceStatus
from invoice_market.core.auction.requests import build_invoice_request
from invoice_market.core.auction.store import InvoiceStore
from invoice_market.core.auction.validator import BidValidator
from invoice_market.core.clock import Clock, system_clock
from invoice_market.core.config import MarketConfig
from invoice_market.core.errors import (
    AlreadyFinalizedError,
    InsufficientFundsError,
    MarketError,
    NotFoundError,
    UnknownBidError,
    ValidationError,
)
from invoice_market.core.events import (
    AuctionExpiredNoSale,
    BidAccepted,
    BiddingEnded,
    BidRejected,
    EventBus,
    FundsDeposited,
    InvoiceCreated,
    InvoiceFinalized,
    Notifier,
)
from invoice_market.core.wallet import WalletLedger
from invoice_market.utils.logger import get_logger
from invoice_market.utils.validation import parse_amount, parse_positive_amount

logger = get_logger("engine")

T = TypeVar("T")


# =============================================================================
# Results
# =============================================================================


@dataclass
class Result(Generic[T]):
    """Outcome of an engine call: a value or a typed error."""
    value: Optional[T] = None
    error: Optional[MarketError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the carried error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: MarketError) -> "Result[T]":
        return cls(error=error)


@dataclass
class SweepReport:
    """What a single sweep did."""
    now: float
    examined: int = 0
    finalized: List[int] = field(default_factory=list)
    no_sale: List[int] = field(default_factory=list)
    awaiting_manual: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return len(self.finalized) + len(self.no_sale) + len(self.awaiting_manual)


# =============================================================================
# Auction Engine
# =============================================================================


class AuctionEngine:
    """
    Single-process invoice auction engine.

    Owns its invoice store and wallet ledger; nothing is shared through
    module globals.

    Args:
        config: Market parameters (spread, sweep interval)
        clock: Time source returning epoch seconds
        wallets: Wallet ledger, created empty if omitted
        store: Invoice store, created empty if omitted
        notifiers: Event receivers, in delivery order
    """

    def __init__(
        self,
        config: Optional[MarketConfig] = None,
        clock: Optional[Clock] = None,
        wallets: Optional[WalletLedger] = None,
        store: Optional[InvoiceStore] = None,
        notifiers: Optional[List[Notifier]] = None,
    ):
        self.config = config or MarketConfig()
        self.clock = clock or system_clock
        self.wallets = wallets if wallets is not None else WalletLedger()
        self.store = store if store is not None else InvoiceStore()
        self.events = EventBus(notifiers)
        self.validator = BidValidator(self.config.bid_spread)

        self._lock = threading.RLock()
        self.sweep_count = 0

    def subscribe(self, notifier: Notifier) -> None:
        self.events.subscribe(notifier)

    # =========================================================================
    # Invoice Creation
    # =========================================================================

    def create_invoice(
        self,
        owner_id: Any,
        title: Any,
        face_amount: Any,
        bidding_end_at: Any,
        auto_accept_highest: bool = False,
        min_bid: Any = 0,
    ) -> Result[Invoice]:
        """
        List a new invoice.

        bidding_end_at may lie in the past; the invoice then starts expired
        and is resolved by the next sweep.

        Returns:
            Result with the new OPEN Invoice, or ValidationError
        """
        try:
            request = build_invoice_request(
                owner_id=owner_id,
                title=title,
                face_amount=face_amount,
                bidding_end_at=bidding_end_at,
                auto_accept_highest=auto_accept_highest,
                min_bid=min_bid,
            )
        except ValidationError as e:
            logger.warning(f"Invoice rejected: {e.message}")
            return Result.failure(e)

        with self._lock:
            invoice = Invoice(
                invoice_id=self.store.next_id(),
                owner_id=request.owner_id,
                title=request.title,
                face_amount=request.face_amount,
                bidding_end_at=request.bidding_end_at,
                auto_accept_highest=request.auto_accept_highest,
                min_bid=request.min_bid,
                created_at=self.clock(),
                bid_spread=self.config.bid_spread,
            )
            self.store.add(invoice)

            self.events.publish(InvoiceCreated(
                invoice_id=invoice.invoice_id,
                owner_id=invoice.owner_id,
                title=invoice.title,
                face_amount=invoice.face_amount,
                auto_accept_highest=invoice.auto_accept_highest,
            ))

        logger.info(
            f"Invoice #{invoice.invoice_id} created: face={invoice.face_amount}, "
            f"mode={'auto' if invoice.auto_accept_highest else 'manual'}, min_bid={invoice.min_bid}"
        )
        return Result.success(invoice)

    # =========================================================================
    # Bidding
    # =========================================================================

    def place_bid(self, invoice_id: Any, bidder_id: Any, amount: Any) -> Result[Bid]:
        """
        Submit a bid.

        Checks, first failure wins: invoice exists, invoice OPEN, not past
        bidding_end_at, amount <= face - spread, amount >= min_bid, bidder
        balance >= amount. An amount that is not a finite number fails with
        ValidationError once the invoice is found; its sign is left to the
        rules, so a negative bid is below the minimum and a zero bid on a
        manual-mode invoice is admissible.

        On success the bidder's wallet is debited by `amount` and the bid is
        appended. On failure nothing changes and BidRejected is emitted.
        """
        with self._lock:
            invoice = self.store.get(invoice_id)
            if invoice is None:
                return self._reject(
                    invoice_id, bidder_id, amount,
                    NotFoundError(f"Invoice {invoice_id} not found", invoice_id),
                )

            try:
                value = parse_amount(amount, "bid amount")
            except ValidationError as e:
                e.invoice_id = invoice.invoice_id
                return self._reject(invoice_id, bidder_id, amount, e)

            now = self.clock()
            check = self.validator.check(invoice, self.wallets.balance(bidder_id), value, now)
            if not check.admissible:
                return self._reject(invoice_id, bidder_id, value, check.error)

            bid = invoice.next_bid(bidder_id, value, now)
            try:
                self.wallets.debit(bidder_id, value)
            except InsufficientFundsError as e:
                e.invoice_id = invoice_id
                return self._reject(invoice_id, bidder_id, value, e)
            invoice.append_bid(bid)

            self.events.publish(BidAccepted(invoice_id=invoice.invoice_id, bid=bid))

        logger.info(f"Bid accepted on invoice #{invoice.invoice_id}: bidder={bidder_id}, amount={value}")
        return Result.success(bid)

    def _reject(self, invoice_id: Any, bidder_id: Any, amount: Any, error: MarketError) -> Result:
        self.events.publish(BidRejected(
            invoice_id=invoice_id,
            bidder_id=bidder_id,
            amount=amount,
            reason=error.message,
            code=error.code,
        ))
        logger.debug(f"Bid rejected on invoice {invoice_id}: {error.code} ({error.message})")
        return Result.failure(error)

    # =========================================================================
    # Manual Finalization
    # =========================================================================

    def manual_finalize(self, invoice_id: Any, chosen_bid: Any) -> Result[Invoice]:
        """
        Finalize an invoice with a bid chosen by the business.

        Allowed whenever the invoice is not yet FINALIZED, before or after
        expiry, and for bids placed at any point.

        Returns:
            Result with the finalized Invoice, or NotFoundError,
            AlreadyFinalizedError, UnknownBidError
        """
        with self._lock:
            invoice = self.store.get(invoice_id)
            if invoice is None:
                return Result.failure(NotFoundError(f"Invoice {invoice_id} not found", invoice_id))

            if invoice.is_finalized:
                return Result.failure(AlreadyFinalizedError(
                    f"Invoice {invoice_id} already finalized", invoice_id,
                ))

            if not invoice.contains_bid(chosen_bid):
                return Result.failure(UnknownBidError(
                    f"Bid is not one of invoice {invoice_id}'s bids", invoice_id,
                ))

            invoice.finalize(chosen_bid, self.clock())
            self.events.publish(InvoiceFinalized(
                invoice_id=invoice.invoice_id,
                winning_bid=invoice.winning_bid,
                manual=True,
            ))

        logger.info(f"Invoice #{invoice_id} finalized manually: winner={chosen_bid.bidder_id}, amount={chosen_bid.amount}")
        return Result.success(invoice)

    # =========================================================================
    # Wallets
    # =========================================================================

    def deposit(self, user_id: Any, amount: Any) -> Result[Decimal]:
        """Top up a wallet. Returns the new balance."""
        with self._lock:
            try:
                value = parse_positive_amount(amount, "deposit amount")
                balance = self.wallets.deposit(user_id, value)
            except ValidationError as e:
                logger.warning(f"Deposit rejected for user {user_id}: {e.message}")
                return Result.failure(e)

            self.events.publish(FundsDeposited(user_id=user_id, amount=value, balance=balance))

        return Result.success(balance)

    def open_account(self, user_id: Any, initial_balance: Any = 0, display_name: str = "") -> Result:
        with self._lock:
            try:
                return Result.success(self.wallets.open_account(user_id, initial_balance, display_name))
            except ValidationError as e:
                return Result.failure(e)

    def balance(self, user_id: Any) -> Decimal:
        return self.wallets.balance(user_id)

    # =========================================================================
    # Sweep
    # =========================================================================

    def sweep(self, now: Optional[float] = None) -> SweepReport:
        """
        Advance every OPEN invoice whose bidding window has passed.

        - auto mode: highest bid wins if it clears min_bid, else no sale
        - manual mode: ENDED_AWAITING_MANUAL, business decides later

        Never raises. A failure on one invoice is logged and recorded in the
        report; the remaining invoices are still processed.
        """
        with self._lock:
            if now is None:
                now = self.clock()
            report = SweepReport(now=now)

            for invoice in self.store.open_invoices():
                report.examined += 1
                try:
                    if invoice.is_expired(now):
                        self._resolve_expired(invoice, now, report)
                except Exception as e:
                    report.failed.append(invoice.invoice_id)
                    logger.error(f"Sweep failed for invoice #{invoice.invoice_id}: {e!r}")

            self.sweep_count += 1

        if report.changed or report.failed:
            logger.info(
                f"Sweep {self.sweep_count}: finalized={len(report.finalized)}, "
                f"no_sale={len(report.no_sale)}, awaiting_manual={len(report.awaiting_manual)}, "
                f"failed={len(report.failed)}"
            )
        return report

    def _resolve_expired(self, invoice: Invoice, now: float, report: SweepReport) -> None:
        """Resolve one expired OPEN invoice. Decides fully before mutating."""
        if not invoice.auto_accept_highest:
            invoice.transition(InvoiceStatus.ENDED_AWAITING_MANUAL)
            report.awaiting_manual.append(invoice.invoice_id)
            self.events.publish(BiddingEnded(invoice_id=invoice.invoice_id, bid_count=len(invoice.bids)))
            return

        highest = invoice.highest_bid()
        if highest is not None and highest.amount >= invoice.min_bid:
            invoice.finalize(highest, now)
            report.finalized.append(invoice.invoice_id)
            self.events.publish(InvoiceFinalized(invoice_id=invoice.invoice_id, winning_bid=highest))
            return

        invoice.finalize(None, now)
        report.no_sale.append(invoice.invoice_id)
        self.events.publish(AuctionExpiredNoSale(
            invoice_id=invoice.invoice_id,
            highest_amount=highest.amount if highest else None,
        ))

    # =========================================================================
    # Queries
    # =========================================================================

    def get_invoice(self, invoice_id: Any) -> Result[Invoice]:
        invoice = self.store.get(invoice_id)
        if invoice is None:
            return Result.failure(NotFoundError(f"Invoice {invoice_id} not found", invoice_id))
        return Result.success(invoice)

    def invoices_for_owner(self, owner_id: Any) -> List[Invoice]:
        """Business view: every invoice listed by `owner_id`."""
        with self._lock:
            return self.store.for_owner(owner_id)

    def listable_invoices(self) -> List[Invoice]:
        """Bidder view: invoices not yet finalized."""
        with self._lock:
            return self.store.listable()

    def stats(self) -> dict:
        """Get engine statistics."""
        with self._lock:
            return {
                **self.store.stats(),
                **self.wallets.stats(),
                "sweep_count": self.sweep_count,
                "events_published": self.events.published,
            }
