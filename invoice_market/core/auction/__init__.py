"""Invoice auction engine"""
from invoice_market.core.auction.invoice import (
    BID_SPREAD,
    Bid,
    Invoice,
    InvoiceStatus,
)
from invoice_market.core.auction.validator import (
    BidCheck,
    BidValidator,
    check_bid,
)
from invoice_market.core.auction.store import InvoiceStore
from invoice_market.core.auction.requests import InvoiceRequest, build_invoice_request
from invoice_market.core.auction.engine import AuctionEngine, Result, SweepReport
from invoice_market.core.auction.scheduler import SweepScheduler

__all__ = [
    "BID_SPREAD",
    "Bid",
    "Invoice",
    "InvoiceStatus",
    "BidCheck",
    "BidValidator",
    "check_bid",
    "InvoiceStore",
    "InvoiceRequest",
    "build_invoice_request",
    "AuctionEngine",
    "Result",
    "SweepReport",
    "SweepScheduler",
]
