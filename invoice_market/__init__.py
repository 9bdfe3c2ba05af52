"""
Invoice Market

An in-memory reverse-auction engine for invoices:
- Invoice listing with automatic or manual resolution
- Bid validation against spread, floor and wallet balance
- Fund locking on bid acceptance
- Periodic expiry sweep driven by an injectable clock
"""
