"""
WalletLedger - per-user balances for the invoice marketplace.

Balances are plain Decimals keyed by user id. Accepting a bid debits the
bidder immediately (funds are locked, not reserved), so the only
operations are:

1. **credit / deposit**: unconditional increase, positive amounts only
2. **debit**: decrease, refused when the balance would go negative

Every mutation is a read-modify-write under the ledger lock, so a balance
is never observed below zero and concurrent debits cannot both succeed
against the same funds.
"""

import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from invoice_market.core.errors import InsufficientFundsError, ValidationError
from invoice_market.utils.logger import get_logger
from invoice_market.utils.validation import parse_amount, parse_positive_amount

logger = get_logger("wallet")


@dataclass
class WalletAccount:
    """
    A user's wallet.

    Attributes:
        user_id: Owner of the wallet
        balance: Spendable funds, never negative
        display_name: Shown by profile views, not used by the engine
    """
    user_id: Any
    balance: Decimal = Decimal("0")
    display_name: str = ""


class WalletLedger:
    """
    In-memory wallet store.

    Owned by a single AuctionEngine; all access goes through these methods.
    """

    def __init__(self):
        self._accounts: Dict[Any, WalletAccount] = {}
        self._lock = threading.RLock()

    # =========================================================================
    # Accounts
    # =========================================================================

    def open_account(
        self,
        user_id: Any,
        initial_balance: Any = 0,
        display_name: str = "",
    ) -> WalletAccount:
        """
        Create a wallet for a newly onboarded user.

        Raises:
            ValidationError: if the account exists or the balance is invalid
        """
        balance = parse_amount(initial_balance, "initial_balance")
        if balance < 0:
            raise ValidationError(f"initial_balance must be >= 0, got {balance}")

        with self._lock:
            if user_id in self._accounts:
                raise ValidationError(f"Wallet for user {user_id} already exists")
            account = WalletAccount(user_id=user_id, balance=balance, display_name=display_name)
            self._accounts[user_id] = account

        logger.debug(f"Wallet opened: user={user_id}, balance={balance}")
        return account

    def get_account(self, user_id: Any) -> Optional[WalletAccount]:
        return self._accounts.get(user_id)

    def has_account(self, user_id: Any) -> bool:
        return user_id in self._accounts

    def balance(self, user_id: Any) -> Decimal:
        """Current balance; users without a wallet hold zero."""
        account = self._accounts.get(user_id)
        return account.balance if account else Decimal("0")

    # =========================================================================
    # Mutations
    # =========================================================================

    def debit(self, user_id: Any, amount: Any) -> Decimal:
        """
        Remove funds from a wallet.

        Args:
            user_id: Wallet owner
            amount: Amount to remove; zero is a no-op

        Returns:
            New balance

        Raises:
            ValidationError: amount is non-numeric or negative
            InsufficientFundsError: balance < amount
        """
        value = parse_amount(amount)
        if value < 0:
            raise ValidationError(f"amount must be >= 0, got {value}")

        with self._lock:
            account = self._accounts.get(user_id)
            available = account.balance if account else Decimal("0")
            if available < value:
                raise InsufficientFundsError(
                    f"Insufficient funds: have {available}, need {value}"
                )
            if account is None:
                # zero debit against a user without a wallet
                return available
            account.balance = available - value
            new_balance = account.balance

        logger.debug(f"Debited {value} from user {user_id}, balance={new_balance}")
        return new_balance

    def credit(self, user_id: Any, amount: Any) -> Decimal:
        """
        Add funds to a wallet, opening it if needed.

        Returns:
            New balance

        Raises:
            ValidationError: amount is non-numeric or <= 0
        """
        value = parse_positive_amount(amount)

        with self._lock:
            account = self._accounts.get(user_id)
            if account is None:
                account = WalletAccount(user_id=user_id)
                self._accounts[user_id] = account
            account.balance += value
            new_balance = account.balance

        logger.debug(f"Credited {value} to user {user_id}, balance={new_balance}")
        return new_balance

    def deposit(self, user_id: Any, amount: Any) -> Decimal:
        """
        Public top-up entry point.

        Accepts raw form input ("150", 150, 150.5) and rejects anything
        non-numeric, zero or negative with ValidationError.
        """
        value = parse_positive_amount(amount, "deposit amount")
        new_balance = self.credit(user_id, value)
        logger.info(f"Deposit: user={user_id}, amount={value}, balance={new_balance}")
        return new_balance

    # =========================================================================
    # Utility
    # =========================================================================

    def __len__(self) -> int:
        return len(self._accounts)

    def __repr__(self) -> str:
        return f"WalletLedger(accounts={len(self._accounts)})"

    def stats(self) -> dict:
        """Get ledger statistics."""
        with self._lock:
            return {
                "account_count": len(self._accounts),
                "total_balance": sum(
                    (a.balance for a in self._accounts.values()), Decimal("0")
                ),
            }
