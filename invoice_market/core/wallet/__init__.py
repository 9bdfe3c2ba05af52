"""Wallet balances and fund locking"""
from invoice_market.core.wallet.ledger import WalletAccount, WalletLedger

__all__ = [
    "WalletAccount",
    "WalletLedger",
]
