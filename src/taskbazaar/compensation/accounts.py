"""Account registry — owns every participant's balance record.

Credits and debits are internal operations for the marketplace engine.
Each call site decides whether the movement counts toward lifetime
totals: payouts are earnings, postings are spending, top-ups and
refunds are neither.
"""

from __future__ import annotations

from typing import Iterator, Optional

from taskbazaar.errors import ErrorKind, MarketplaceError
from taskbazaar.models.account import Account


class AccountRegistry:
    """Mapping of account IDs to mutable Account records.

    Accounts are never removed during a session.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}

    def register(self, account: Account) -> Account:
        if not account.account_id:
            raise ValueError("Account ID must be non-empty")
        if account.account_id in self._accounts:
            raise ValueError(f"Account ID already exists: {account.account_id}")
        if account.coins < 0:
            raise ValueError("Account balance must be non-negative")
        self._accounts[account.account_id] = account
        return account

    def get(self, account_id: str) -> Account:
        """Look up an account, raising NOT_FOUND if absent."""
        account = self._accounts.get(account_id)
        if account is None:
            raise MarketplaceError(
                ErrorKind.NOT_FOUND, f"Account not found: {account_id}",
            )
        return account

    def find(self, account_id: str) -> Optional[Account]:
        return self._accounts.get(account_id)

    def exists(self, account_id: str) -> bool:
        return account_id in self._accounts

    def credit(self, account_id: str, amount: int, earned: bool = False) -> Account:
        """Add coins. ``earned`` marks the credit as a payout."""
        _require_positive(amount)
        account = self.get(account_id)
        account.coins += amount
        if earned:
            account.lifetime_earned += amount
        return account

    def debit(self, account_id: str, amount: int, spent: bool = False) -> Account:
        """Remove coins. ``spent`` marks the debit as spending.

        Raises INSUFFICIENT_FUNDS without mutating if the balance is short.
        """
        _require_positive(amount)
        account = self.get(account_id)
        if amount > account.coins:
            raise MarketplaceError(
                ErrorKind.INSUFFICIENT_FUNDS,
                f"Not enough coins. Need {amount}, have {account.coins}",
            )
        account.coins -= amount
        if spent:
            account.lifetime_spent += amount
        return account

    def total_coins(self) -> int:
        return sum(a.coins for a in self._accounts.values())

    def ids(self) -> list[str]:
        return list(self._accounts)

    def __iter__(self) -> Iterator[Account]:
        return iter(list(self._accounts.values()))

    def __len__(self) -> int:
        return len(self._accounts)


def _require_positive(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise MarketplaceError(
            ErrorKind.INVALID_ARGUMENT,
            f"Amount must be a positive whole number of coins, got {amount!r}",
        )
