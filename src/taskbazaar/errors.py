"""Error taxonomy for the marketplace core.

Every rejected command carries exactly one ErrorKind. Storage components
raise MarketplaceError; the service layer converts it into a failed
ServiceResult so no error crosses the command surface as an exception.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Classification of recoverable, caller-facing failures."""
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TASK_NOT_OPEN = "task_not_open"
    NOT_CLAIMANT = "not_claimant"
    NOT_AUTHORIZED = "not_authorized"
    NOT_FOUND = "not_found"
    INVALID_ARGUMENT = "invalid_argument"


class MarketplaceError(ValueError):
    """A precondition failure raised by a registry or the ledger."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
