"""Ledger entry model — one immutable record per coin movement.

Positive deltas add coins to the referenced account, negative deltas
remove them. Platform revenue is booked against PLATFORM_ACCOUNT.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


PLATFORM_ACCOUNT = "platform"


@dataclass(frozen=True)
class LedgerEntry:
    """A single auditable coin movement."""
    entry_id: str
    account_ref: str
    delta: int
    note: str
    at_utc: datetime

    def to_record(self) -> dict[str, Any]:
        """Serialise with the stable field order id, account_ref, delta, note, at."""
        return {
            "id": self.entry_id,
            "account_ref": self.account_ref,
            "delta": self.delta,
            "note": self.note,
            "at": self.at_utc.isoformat(),
        }
