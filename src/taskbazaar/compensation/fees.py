"""Fee policy — the platform's cut, captured when a task is posted.

    fee = max(MIN_FEE, ceil(bounty × FEE_RATE))

Computed with Decimal so that a rate of 0.10 on a bounty of 30 yields
exactly 3, never 3.0000000000000004 rounded up to 4. The fee is stored
on the task at posting time; changing the policy later does not affect
tasks already posted.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, Decimal
from typing import Union


DEFAULT_FEE_RATE = Decimal("0.10")
DEFAULT_MIN_FEE = 3


def compute_fee(
    bounty: int,
    rate: Union[Decimal, str] = DEFAULT_FEE_RATE,
    minimum: int = DEFAULT_MIN_FEE,
) -> int:
    """Return the platform fee for a bounty. Pure and deterministic."""
    if bounty <= 0:
        raise ValueError("Bounty must be positive")
    scaled = Decimal(bounty) * Decimal(rate)
    return max(minimum, int(scaled.to_integral_value(rounding=ROUND_CEILING)))


class FeePolicy:
    """Fee computation bound to a configured rate and minimum.

    Usage:
        policy = FeePolicy(Decimal("0.10"), 3)
        fee = policy.fee_for(60)          # 6
        total = policy.total_cost(60)     # 66
    """

    def __init__(
        self,
        rate: Decimal = DEFAULT_FEE_RATE,
        minimum: int = DEFAULT_MIN_FEE,
    ) -> None:
        if not (Decimal("0") <= rate < Decimal("1")):
            raise ValueError(f"Fee rate must be in [0, 1), got {rate}")
        if minimum < 0:
            raise ValueError(f"Minimum fee must be >= 0, got {minimum}")
        self._rate = rate
        self._minimum = minimum

    @property
    def rate(self) -> Decimal:
        return self._rate

    @property
    def minimum(self) -> int:
        return self._minimum

    def fee_for(self, bounty: int) -> int:
        return compute_fee(bounty, self._rate, self._minimum)

    def total_cost(self, bounty: int) -> int:
        """Coins the poster must hold to post: bounty plus fee."""
        return bounty + self.fee_for(bounty)
