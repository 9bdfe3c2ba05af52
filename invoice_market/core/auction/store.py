"""
InvoiceStore - the engine's invoice registry.

Owns id assignment and the insertion-ordered collection of invoices.
Invoices are never deleted. The store has no lock of its own: the owning
AuctionEngine serializes every call.
"""

from typing import Any, Dict, Iterator, List, Optional

from invoice_market.core.auction.invoice import Invoice, InvoiceStatus


class InvoiceStore:
    """In-memory invoice registry."""

    def __init__(self):
        self._invoices: Dict[int, Invoice] = {}
        self._next_id = 1

    def next_id(self) -> int:
        """Reserve the next invoice id."""
        invoice_id = self._next_id
        self._next_id += 1
        return invoice_id

    def add(self, invoice: Invoice) -> Invoice:
        if invoice.invoice_id in self._invoices:
            raise KeyError(f"Invoice {invoice.invoice_id} already stored")
        self._invoices[invoice.invoice_id] = invoice
        return invoice

    def get(self, invoice_id: Any) -> Optional[Invoice]:
        return self._invoices.get(invoice_id)

    def all(self) -> List[Invoice]:
        return list(self._invoices.values())

    def with_status(self, status: InvoiceStatus) -> List[Invoice]:
        return [inv for inv in self._invoices.values() if inv.status == status]

    def open_invoices(self) -> List[Invoice]:
        return self.with_status(InvoiceStatus.OPEN)

    def listable(self) -> List[Invoice]:
        """Invoices not yet finalized, as shown to bidders."""
        return [inv for inv in self._invoices.values() if inv.status != InvoiceStatus.FINALIZED]

    def for_owner(self, owner_id: Any) -> List[Invoice]:
        return [inv for inv in self._invoices.values() if inv.owner_id == owner_id]

    def __len__(self) -> int:
        return len(self._invoices)

    def __iter__(self) -> Iterator[Invoice]:
        return iter(list(self._invoices.values()))

    def stats(self) -> dict:
        counts = {status.name.lower(): 0 for status in InvoiceStatus}
        for inv in self._invoices.values():
            counts[inv.status.name.lower()] += 1
        return {"invoice_count": len(self._invoices), **counts}
