"""Task model — a unit of paid work and its escrow.

Task lifecycle:
    OPEN → CLAIMED → SUBMITTED → APPROVED
                               → REJECTED

APPROVED and REJECTED are terminal. Escrow is positive while the task
is live and exactly zero once it reaches a terminal state.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional


class TaskStatus(str, enum.Enum):
    """Lifecycle state of a task."""
    OPEN = "open"
    CLAIMED = "claimed"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


# States in which the bounty is still held in escrow
LIVE_STATUSES = frozenset({
    TaskStatus.OPEN,
    TaskStatus.CLAIMED,
    TaskStatus.SUBMITTED,
})


@dataclass
class Task:
    """A task posted by a poster and fulfilled by a claimant.

    Mutable: the service layer updates status, claimant and escrow in place.
    The bounty and platform fee are fixed when the task is posted.
    """
    task_id: str
    title: str
    description: str
    bounty: int
    poster_id: str
    created_utc: datetime
    tags: list[str] = field(default_factory=list)
    status: TaskStatus = TaskStatus.OPEN
    claimed_by: Optional[str] = None
    submission_note: Optional[str] = None
    platform_fee: int = 0
    escrow: int = 0

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    def matches(self, query: str) -> bool:
        """Case-insensitive free-text match against title, description and tags."""
        needle = query.strip().lower()
        if not needle:
            return True
        haystack = " ".join([self.title, self.description, *self.tags]).lower()
        return needle in haystack

    def copy(self) -> Task:
        """Return a detached snapshot of this task."""
        return replace(self, tags=list(self.tags))

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "bounty": self.bounty,
            "poster_id": self.poster_id,
            "created_utc": self.created_utc.isoformat(),
            "status": self.status.value,
            "claimed_by": self.claimed_by,
            "submission_note": self.submission_note,
            "platform_fee": self.platform_fee,
            "escrow": self.escrow,
        }


def parse_tags(tags: Any) -> list[str]:
    """Normalise tags given as a comma-separated string or a sequence.

    Labels are stripped; blank labels are dropped; order is preserved.
    """
    if tags is None:
        return []
    if isinstance(tags, str):
        raw = tags.split(",")
    else:
        raw = [str(t) for t in tags]
    return [t.strip() for t in raw if t.strip()]
