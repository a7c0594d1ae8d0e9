"""Coin ledger — the append-only record of every coin movement.

Entries can only be appended, never modified or removed. The ledger is
the audit trail for balances: replaying every entry for an account
reproduces that account's balance changes since it was seeded.

Storage is in-memory. Entries serialise with a stable field order via
LedgerEntry.to_record(), so the sequence can be written out as a
durable log if persistence is ever added.
"""

from __future__ import annotations

from typing import Iterator, Optional

from taskbazaar.models.ledger import LedgerEntry


class CoinLedger:
    """In-memory append-only ledger.

    Usage:
        ledger = CoinLedger()
        ledger.append(entry)
        for entry in ledger.entries_for("U-00000001"):
            ...
    """

    def __init__(self) -> None:
        self._entries: list[LedgerEntry] = []
        self._entry_ids: set[str] = set()

    def append(self, entry: LedgerEntry) -> None:
        """Append an entry.

        Raises ValueError if entry_id is a duplicate (replay protection).
        """
        if entry.entry_id in self._entry_ids:
            raise ValueError(f"Duplicate ledger entry ID: {entry.entry_id}")
        self._entries.append(entry)
        self._entry_ids.add(entry.entry_id)

    def entries_for(self, account_ref: str) -> Iterator[LedgerEntry]:
        """Yield entries for one account in insertion order.

        Each call starts a fresh read, so entries appended after the call
        is made but before iteration reaches the end are still seen.
        """
        index = 0
        while index < len(self._entries):
            entry = self._entries[index]
            index += 1
            if entry.account_ref == account_ref:
                yield entry

    def entries(self) -> list[LedgerEntry]:
        """Return a copy of all entries in insertion order."""
        return list(self._entries)

    def total_delta(self, account_ref: str) -> int:
        """Net coin movement recorded for an account."""
        return sum(e.delta for e in self.entries_for(account_ref))

    @property
    def count(self) -> int:
        return len(self._entries)

    @property
    def last_entry(self) -> Optional[LedgerEntry]:
        return self._entries[-1] if self._entries else None
