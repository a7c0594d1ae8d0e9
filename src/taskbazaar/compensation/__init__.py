"""Coin accounting primitives."""

from taskbazaar.compensation.accounts import AccountRegistry
from taskbazaar.compensation.fees import FeePolicy, compute_fee
from taskbazaar.compensation.ledger import CoinLedger

__all__ = [
    "AccountRegistry",
    "CoinLedger",
    "FeePolicy",
    "compute_fee",
]
