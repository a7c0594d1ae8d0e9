"""Account model — a participant's spendable balance and lifetime totals.

Balances are whole coins. Lifetime counters only ever grow: payouts add
to lifetime_earned, task postings add to lifetime_spent. Top-ups and
refunds move coins without touching either counter.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass
class Account:
    """A marketplace participant.

    Mutable: the marketplace engine adjusts balances as coins move.
    Nothing else may mutate an account.
    """
    account_id: str
    display_name: str
    avatar_ref: str = ""
    coins: int = 0
    lifetime_earned: int = 0
    lifetime_spent: int = 0
    is_privileged: bool = False

    def copy(self) -> Account:
        """Return a detached snapshot of this account."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "display_name": self.display_name,
            "avatar_ref": self.avatar_ref,
            "coins": self.coins,
            "lifetime_earned": self.lifetime_earned,
            "lifetime_spent": self.lifetime_spent,
            "is_privileged": self.is_privileged,
        }
