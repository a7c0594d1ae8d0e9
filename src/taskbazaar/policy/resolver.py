"""Policy resolver — loads marketplace_policy.json and exposes every
runtime setting as a typed method call.

No magic. If a value is missing from the config, it fails loud.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from taskbazaar.compensation.fees import DEFAULT_FEE_RATE, DEFAULT_MIN_FEE, FeePolicy


POLICY_FILENAME = "marketplace_policy.json"


@dataclass(frozen=True)
class SeedAccount:
    """An account present when the marketplace starts."""
    account_id: str
    display_name: str
    avatar_seed: str
    coins: int
    is_privileged: bool = False


@dataclass(frozen=True)
class SeedTask:
    """A funded task present when the marketplace starts."""
    task_id: str
    title: str
    description: str
    bounty: int
    poster_id: str
    age_minutes: int
    tags: list[str] = field(default_factory=list)


class PolicyResolver:
    """Loads and resolves marketplace policy.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        fees = resolver.fee_policy()
        seeds = resolver.seed_accounts()
    """

    def __init__(self, policy: dict[str, Any]) -> None:
        self._policy = policy
        self._validate_version()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load from the canonical config directory."""
        return cls(_load_json(config_dir / POLICY_FILENAME))

    @classmethod
    def default(cls) -> PolicyResolver:
        """Built-in fee and balance settings with no seed data."""
        return cls({
            "version": "builtin",
            "platform_account_id": "platform",
            "fee": {"rate": str(DEFAULT_FEE_RATE), "minimum": DEFAULT_MIN_FEE},
            "accounts": {"starting_coins": 120, "default_display_name": "Poster"},
            "seed": {"accounts": [], "tasks": []},
        })

    def _validate_version(self) -> None:
        if "version" not in self._policy:
            raise ValueError(f"{POLICY_FILENAME} missing version")

    @property
    def version(self) -> str:
        return str(self._policy["version"])

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    def fee_rate(self) -> Decimal:
        raw = self._policy["fee"]["rate"]
        try:
            return Decimal(str(raw))
        except InvalidOperation:
            raise ValueError(f"fee.rate is not a decimal: {raw!r}") from None

    def minimum_fee(self) -> int:
        return int(self._policy["fee"]["minimum"])

    def fee_policy(self) -> FeePolicy:
        return FeePolicy(self.fee_rate(), self.minimum_fee())

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def platform_account_id(self) -> str:
        return self._policy["platform_account_id"]

    def starting_coins(self) -> int:
        """Balance granted to an account created at login."""
        return int(self._policy["accounts"]["starting_coins"])

    def default_display_name(self) -> str:
        return self._policy["accounts"]["default_display_name"]

    # ------------------------------------------------------------------
    # Seed data
    # ------------------------------------------------------------------

    def seed_accounts(self) -> list[SeedAccount]:
        return [
            SeedAccount(
                account_id=a["id"],
                display_name=a["display_name"],
                avatar_seed=a.get("avatar_seed", a["id"]),
                coins=int(a["coins"]),
                is_privileged=bool(a.get("is_privileged", False)),
            )
            for a in self._policy["seed"]["accounts"]
        ]

    def seed_tasks(self) -> list[SeedTask]:
        return [
            SeedTask(
                task_id=t["id"],
                title=t["title"],
                description=t["description"],
                bounty=int(t["bounty"]),
                poster_id=t["poster_id"],
                age_minutes=int(t.get("age_minutes", 0)),
                tags=list(t.get("tags", [])),
            )
            for t in self._policy["seed"]["tasks"]
        ]

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def policy_errors(self) -> list[str]:
        """Check the loaded policy for structural problems. Empty = OK."""
        errors: list[str] = []

        try:
            rate = self.fee_rate()
            if not (Decimal("0") <= rate < Decimal("1")):
                errors.append(f"fee.rate must be in [0, 1), got {rate}")
        except ValueError as e:
            errors.append(str(e))
        if self.minimum_fee() < 0:
            errors.append(f"fee.minimum must be >= 0, got {self.minimum_fee()}")
        if self.starting_coins() < 0:
            errors.append("accounts.starting_coins must be >= 0")
        if not self.platform_account_id():
            errors.append("platform_account_id must be non-empty")

        account_ids: set[str] = set()
        for account in self.seed_accounts():
            if account.account_id in account_ids:
                errors.append(f"Duplicate seed account: {account.account_id}")
            if account.account_id == self.platform_account_id():
                errors.append(
                    f"Seed account collides with platform account: {account.account_id}"
                )
            if account.coins < 0:
                errors.append(f"Seed account {account.account_id} has negative coins")
            account_ids.add(account.account_id)

        task_ids: set[str] = set()
        for task in self.seed_tasks():
            if task.task_id in task_ids:
                errors.append(f"Duplicate seed task: {task.task_id}")
            if task.bounty <= 0:
                errors.append(f"Seed task {task.task_id} bounty must be > 0")
            if task.poster_id not in account_ids:
                errors.append(
                    f"Seed task {task.task_id} references unknown poster: {task.poster_id}"
                )
            task_ids.add(task.task_id)

        return errors


def _load_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
