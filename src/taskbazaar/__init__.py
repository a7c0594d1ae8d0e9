"""TaskBazaar — in-memory ledger and task-lifecycle engine for a micro-task marketplace."""

from taskbazaar.errors import ErrorKind, MarketplaceError
from taskbazaar.service import MarketplaceService, ServiceResult

__version__ = "0.1.0"

__all__ = [
    "ErrorKind",
    "MarketplaceError",
    "MarketplaceService",
    "ServiceResult",
]
