"""Core data models for TaskBazaar."""

from taskbazaar.models.account import Account
from taskbazaar.models.ledger import PLATFORM_ACCOUNT, LedgerEntry
from taskbazaar.models.task import LIVE_STATUSES, Task, TaskStatus, parse_tags

__all__ = [
    "Account",
    "LIVE_STATUSES",
    "LedgerEntry",
    "PLATFORM_ACCOUNT",
    "Task",
    "TaskStatus",
    "parse_tags",
]
