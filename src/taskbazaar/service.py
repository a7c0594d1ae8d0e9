"""Marketplace service — the engine behind every coin movement.

This is the primary interface for programmatic access to TaskBazaar.
It orchestrates all subsystems:
- Account registry (balances, lifetime totals, login-created accounts)
- Task registry and task state machine (post, claim, submit, approve, reject)
- Fee policy (platform fee captured at posting time)
- Coin ledger (one append-only entry per coin movement)

All operations produce typed results. A command either applies in full
or is rejected before anything is touched: every precondition is
checked before the first mutation or ledger append, so a rejected
command leaves all engine state exactly as it was.

Conservation: the sum of all account balances, platform revenue and
live escrow always equals the coins present at construction plus every
top-up since. check_conservation() verifies this on demand.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Sequence, Union

from taskbazaar.compensation.accounts import AccountRegistry
from taskbazaar.compensation.ledger import CoinLedger
from taskbazaar.errors import ErrorKind, MarketplaceError
from taskbazaar.ids import IdSequence
from taskbazaar.market.task_registry import TaskRegistry
from taskbazaar.market.task_state_machine import TaskStateMachine
from taskbazaar.models.account import Account
from taskbazaar.models.ledger import LedgerEntry
from taskbazaar.models.task import Task, TaskStatus, parse_tags
from taskbazaar.policy.resolver import PolicyResolver


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation.

    On failure, ``error_kind`` names the failure class and ``errors``
    carries a human-readable message for the caller to surface.
    """
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[ErrorKind] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def avatar_ref_for(seed: str) -> str:
    """Deterministic avatar reference; image generation happens elsewhere."""
    slug = "-".join(seed.lower().split()) or "x"
    return f"avatar:{slug}"


class MarketplaceService:
    """Micro-task marketplace engine.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = MarketplaceService(resolver)

        result = service.post_task("Logo", "Vector logo", "design,logo", 60, "u_demoPoster")
        task_id = result.data["task"]["task_id"]
        service.claim_task(task_id, "u_demoWorker")
        service.submit_work(task_id, "u_demoWorker", "proof-url")
        service.approve_work(task_id, "u_demoPoster")

    One instance per session. Construct a fresh service per test rather
    than sharing one; nothing lives at module level.
    """

    def __init__(
        self,
        resolver: Optional[PolicyResolver] = None,
        clock: Optional[Callable[[], datetime]] = None,
        load_seed: bool = True,
    ) -> None:
        self._resolver = resolver if resolver is not None else PolicyResolver.default()
        self._fees = self._resolver.fee_policy()
        self._platform_id = self._resolver.platform_account_id()
        self._clock = clock if clock is not None else _utc_now

        # All mutating commands run under this lock
        self._lock = threading.RLock()

        self._accounts = AccountRegistry()
        self._tasks = TaskRegistry()
        self._ledger = CoinLedger()
        self._platform_revenue = 0

        # Coins present at construction or granted at registration,
        # and coins introduced by top-ups. Together they are the supply.
        self._seed_supply = 0
        self._topped_up = 0

        self._task_ids = IdSequence("T")
        self._entry_ids = IdSequence("L")
        self._account_ids = IdSequence("U")

        if load_seed:
            self._load_seed()

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def register_account(
        self,
        display_name: str = "",
        starting_coins: Optional[int] = None,
    ) -> ServiceResult:
        """Create an account for a user who has just logged in.

        The starting balance is an initial balance, not a top-up, and
        produces no ledger entry.
        """
        with self._lock:
            coins = self._resolver.starting_coins() if starting_coins is None else starting_coins
            if isinstance(coins, bool) or not isinstance(coins, int) or coins < 0:
                return self._reject(
                    "register_account", ErrorKind.INVALID_ARGUMENT,
                    f"Starting coins must be a non-negative whole number, got {coins!r}",
                )
            name = (display_name or "").strip() or self._resolver.default_display_name()

            account = Account(
                account_id=self._account_ids.next(),
                display_name=name,
                avatar_ref=avatar_ref_for(name),
                coins=coins,
            )
            self._accounts.register(account)
            self._seed_supply += coins

            logger.info("Registered account %s (%s) with %d coins", account.account_id, name, coins)
            return ServiceResult(success=True, data={"account": account.to_dict()})

    def add_coins(self, account_id: str, amount: int) -> ServiceResult:
        """Mock top-up: the only operation that introduces new coins."""
        with self._lock:
            if not _is_positive_int(amount):
                return self._reject(
                    "add_coins", ErrorKind.INVALID_ARGUMENT,
                    f"Top-up amount must be a positive whole number, got {amount!r}",
                )
            try:
                self._accounts.get(account_id)
            except MarketplaceError as e:
                return self._reject("add_coins", e.kind, str(e))

            account = self._accounts.credit(account_id, amount)
            self._topped_up += amount
            self._append_entry(account_id, amount, "Add Coins (mock top-up)")

            logger.info("Top-up of %d coins for %s", amount, account_id)
            return ServiceResult(success=True, data={"account": account.to_dict()})

    def get_account(self, account_id: str) -> Optional[Account]:
        """Retrieve a snapshot of an account by ID."""
        with self._lock:
            account = self._accounts.find(account_id)
            return account.copy() if account is not None else None

    # ------------------------------------------------------------------
    # Task lifecycle
    # ------------------------------------------------------------------

    def post_task(
        self,
        title: str,
        description: str,
        tags: Union[str, Sequence[str], None],
        bounty: int,
        poster_id: str,
    ) -> ServiceResult:
        """Fund and publish a task.

        The poster pays bounty + fee. The bounty is held in escrow on the
        task; the fee goes straight to platform revenue.
        """
        with self._lock:
            if not _is_positive_int(bounty):
                return self._reject(
                    "post_task", ErrorKind.INVALID_ARGUMENT,
                    f"Bounty must be a positive whole number, got {bounty!r}",
                )
            if not isinstance(title, str) or not title.strip():
                return self._reject(
                    "post_task", ErrorKind.INVALID_ARGUMENT, "Task title must be non-blank text",
                )
            if description is not None and not isinstance(description, str):
                return self._reject(
                    "post_task", ErrorKind.INVALID_ARGUMENT, "Task description must be text",
                )
            try:
                labels = parse_tags(tags)
            except TypeError:
                return self._reject(
                    "post_task", ErrorKind.INVALID_ARGUMENT,
                    f"Tags must be a comma-separated string or a list, got {tags!r}",
                )
            try:
                poster = self._accounts.get(poster_id)
            except MarketplaceError as e:
                return self._reject("post_task", e.kind, str(e))

            fee = self._fees.fee_for(bounty)
            need = bounty + fee
            if poster.coins < need:
                return self._reject(
                    "post_task", ErrorKind.INSUFFICIENT_FUNDS,
                    f"Not enough coins. Need {need}, you have {poster.coins}",
                )

            now = self._clock()
            title = title.strip()
            task = Task(
                task_id=self._task_ids.next(),
                title=title,
                description=(description or "").strip(),
                tags=labels,
                bounty=bounty,
                poster_id=poster_id,
                created_utc=now,
                status=TaskStatus.OPEN,
                platform_fee=fee,
                escrow=bounty,
            )
            self._accounts.debit(poster_id, need, spent=True)
            self._platform_revenue += fee
            self._tasks.add(task)
            self._append_entry(
                poster_id, -need,
                f'Post Task: "{title}" (bounty {bounty} + fee {fee})', now,
            )
            self._append_entry(self._platform_id, fee, "Platform fee captured", now)

            logger.info(
                "Posted %s for %s: bounty=%d fee=%d", task.task_id, poster_id, bounty, fee,
            )
            return ServiceResult(
                success=True,
                data={"task": task.to_dict(), "account": poster.to_dict()},
            )

    def claim_task(self, task_id: str, worker_id: str) -> ServiceResult:
        """Claim an open task. First claimant wins."""
        with self._lock:
            try:
                task = self._tasks.get(task_id)
                self._accounts.get(worker_id)
            except MarketplaceError as e:
                return self._reject("claim_task", e.kind, str(e))

            # First claimant wins: any later claim finds the task out of OPEN
            errors = TaskStateMachine.apply_transition(task, TaskStatus.CLAIMED)
            if errors:
                return self._reject("claim_task", ErrorKind.TASK_NOT_OPEN, "; ".join(errors))
            task.claimed_by = worker_id

            logger.info("Task %s claimed by %s", task_id, worker_id)
            return ServiceResult(success=True, data={"task": task.to_dict()})

    def submit_work(self, task_id: str, worker_id: str, note: str) -> ServiceResult:
        """Deliver work on a claimed task. Only the claimant may submit."""
        with self._lock:
            try:
                task = self._tasks.get(task_id)
            except MarketplaceError as e:
                return self._reject("submit_work", e.kind, str(e))

            if task.claimed_by != worker_id:
                return self._reject(
                    "submit_work", ErrorKind.NOT_CLAIMANT,
                    f"Task not claimed by you: {task_id}",
                )

            errors = TaskStateMachine.apply_transition(task, TaskStatus.SUBMITTED)
            if errors:
                return self._reject("submit_work", ErrorKind.NOT_CLAIMANT, "; ".join(errors))
            task.submission_note = note

            logger.info("Work submitted on %s by %s", task_id, worker_id)
            return ServiceResult(success=True, data={"task": task.to_dict()})

    def approve_work(self, task_id: str, poster_id: str) -> ServiceResult:
        """Accept submitted work and pay the escrow to the claimant."""
        with self._lock:
            try:
                task = self._tasks.get(task_id)
            except MarketplaceError as e:
                return self._reject("approve_work", e.kind, str(e))

            if task.poster_id != poster_id:
                return self._reject(
                    "approve_work", ErrorKind.NOT_AUTHORIZED,
                    f"Not eligible to approve: {task_id}",
                )
            errors = TaskStateMachine.validate_transition(task, TaskStatus.APPROVED)
            if errors:
                return self._reject("approve_work", ErrorKind.NOT_AUTHORIZED, "; ".join(errors))
            worker_id = task.claimed_by
            if worker_id is None or not self._accounts.exists(worker_id):
                return self._reject(
                    "approve_work", ErrorKind.NOT_FOUND,
                    f"Claimant account not found for task {task_id}",
                )

            payout = task.escrow
            TaskStateMachine.apply_transition(task, TaskStatus.APPROVED)
            worker = self._accounts.credit(worker_id, payout, earned=True)
            task.escrow = 0
            self._append_entry(worker_id, payout, f'Payout for "{task.title}"')

            logger.info("Approved %s: %d coins paid to %s", task_id, payout, worker_id)
            return ServiceResult(
                success=True,
                data={"task": task.to_dict(), "account": worker.to_dict()},
            )

    def reject_work(
        self,
        task_id: str,
        poster_id: str,
        reason: Optional[str] = None,
    ) -> ServiceResult:
        """Refuse submitted work and refund the escrow to the poster.

        Rejection is final: the task cannot be claimed again.
        """
        with self._lock:
            try:
                task = self._tasks.get(task_id)
            except MarketplaceError as e:
                return self._reject("reject_work", e.kind, str(e))

            if task.poster_id != poster_id:
                return self._reject(
                    "reject_work", ErrorKind.NOT_AUTHORIZED,
                    f"Not eligible to reject: {task_id}",
                )

            refund = task.escrow
            errors = TaskStateMachine.apply_transition(task, TaskStatus.REJECTED)
            if errors:
                return self._reject("reject_work", ErrorKind.NOT_AUTHORIZED, "; ".join(errors))
            # A refund is not income: lifetime counters stay as they are
            poster = self._accounts.credit(poster_id, refund)
            task.escrow = 0
            note = f'Refund on reject "{task.title}"'
            if reason:
                note += f" ({reason})"
            self._append_entry(poster_id, refund, note)

            logger.info("Rejected %s: %d coins refunded to %s", task_id, refund, poster_id)
            return ServiceResult(
                success=True,
                data={"task": task.to_dict(), "account": poster.to_dict()},
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Optional[Task]:
        """Retrieve a snapshot of a task by ID."""
        with self._lock:
            task = self._tasks.find(task_id)
            return task.copy() if task is not None else None

    def list_tasks(
        self,
        query: Optional[str] = None,
        status: Optional[TaskStatus] = None,
        poster_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> ServiceResult:
        """Browse tasks, most recent first, joined with poster display data."""
        with self._lock:
            if limit is not None and (
                isinstance(limit, bool) or not isinstance(limit, int) or limit < 0
            ):
                return self._reject(
                    "list_tasks", ErrorKind.INVALID_ARGUMENT,
                    f"Limit must be a non-negative whole number, got {limit!r}",
                )
            results: list[dict[str, Any]] = []
            for task in self._tasks.search(query=query, status=status, poster_id=poster_id):
                if limit is not None and len(results) >= limit:
                    break
                poster = self._accounts.find(task.poster_id)
                row = task.to_dict()
                row["poster_name"] = poster.display_name if poster else "User"
                row["poster_avatar"] = poster.avatar_ref if poster else avatar_ref_for("x")
                results.append(row)

            return ServiceResult(
                success=True,
                data={"tasks": results, "total": len(results)},
            )

    def ledger_for(self, account_ref: str) -> ServiceResult:
        """Ledger entries for an account (or the platform), oldest first."""
        with self._lock:
            if account_ref != self._platform_id and not self._accounts.exists(account_ref):
                return self._reject(
                    "ledger_for", ErrorKind.NOT_FOUND, f"Account not found: {account_ref}",
                )
            entries = [e.to_record() for e in self._ledger.entries_for(account_ref)]
            return ServiceResult(
                success=True,
                data={"account_ref": account_ref, "entries": entries, "total": len(entries)},
            )

    def platform_revenue(self, requester_id: str) -> ServiceResult:
        """Total fees captured. Privileged accounts only."""
        with self._lock:
            requester = self._accounts.find(requester_id)
            if requester is None:
                return self._reject(
                    "platform_revenue", ErrorKind.NOT_FOUND,
                    f"Account not found: {requester_id}",
                )
            if not requester.is_privileged:
                return self._reject(
                    "platform_revenue", ErrorKind.NOT_AUTHORIZED,
                    f"Account {requester_id} may not view platform revenue",
                )
            return ServiceResult(
                success=True,
                data={"platform_revenue": self._platform_revenue},
            )

    # ------------------------------------------------------------------
    # Invariants and status
    # ------------------------------------------------------------------

    def coin_supply(self) -> int:
        """Coins that should exist: seed supply plus all top-ups."""
        with self._lock:
            return self._seed_supply + self._topped_up

    def coins_in_circulation(self) -> int:
        """Coins that do exist: balances, platform revenue, live escrow."""
        with self._lock:
            return (
                self._accounts.total_coins()
                + self._platform_revenue
                + self._tasks.open_escrow()
            )

    def check_conservation(self) -> list[str]:
        """Verify coin conservation and escrow invariants. Empty = OK."""
        with self._lock:
            errors: list[str] = []

            supply = self.coin_supply()
            circulating = self.coins_in_circulation()
            if supply != circulating:
                errors.append(
                    f"Conservation violated: {circulating} coins in circulation, "
                    f"expected {supply}"
                )

            ledger_revenue = self._ledger.total_delta(self._platform_id)
            if ledger_revenue != self._platform_revenue:
                errors.append(
                    f"Platform ledger total {ledger_revenue} does not match "
                    f"platform revenue {self._platform_revenue}"
                )

            for account in self._accounts:
                if account.coins < 0:
                    errors.append(f"Negative balance on {account.account_id}: {account.coins}")

            for task in self._tasks.most_recent_first():
                if task.is_live and task.escrow <= 0:
                    errors.append(
                        f"Live task {task.task_id} ({task.status.value}) has no escrow"
                    )
                if not task.is_live and task.escrow != 0:
                    errors.append(
                        f"Closed task {task.task_id} ({task.status.value}) "
                        f"still holds {task.escrow} coins in escrow"
                    )
            return errors

    def snapshot(self) -> dict[str, Any]:
        """Full copy of engine state, for auditing and comparisons."""
        with self._lock:
            return {
                "accounts": {a.account_id: a.to_dict() for a in self._accounts},
                "tasks": [t.to_dict() for t in self._tasks.most_recent_first()],
                "platform_revenue": self._platform_revenue,
                "ledger": [e.to_record() for e in self._ledger.entries()],
                "coin_supply": self._seed_supply + self._topped_up,
            }

    def status(self) -> dict[str, Any]:
        """Return system-wide status summary."""
        with self._lock:
            return {
                "policy_version": self._resolver.version,
                "accounts": {"total": len(self._accounts)},
                "tasks": {
                    "total": len(self._tasks),
                    "by_status": self._count_tasks_by_status(),
                    "open_escrow": self._tasks.open_escrow(),
                },
                "ledger": {"entries": self._ledger.count},
                "coins": {
                    "supply": self.coin_supply(),
                    "in_circulation": self.coins_in_circulation(),
                },
            }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_seed(self) -> None:
        """Install seed accounts and funded seed tasks from the policy."""
        for seed in self._resolver.seed_accounts():
            if seed.account_id == self._platform_id:
                raise ValueError(
                    f"Seed account collides with platform account: {seed.account_id}"
                )
            self._accounts.register(Account(
                account_id=seed.account_id,
                display_name=seed.display_name,
                avatar_ref=avatar_ref_for(seed.avatar_seed),
                coins=seed.coins,
                is_privileged=seed.is_privileged,
            ))
            self._seed_supply += seed.coins

        now = self._clock()
        # Oldest first, so the most recent seed task ends up at the head
        for seed in sorted(self._resolver.seed_tasks(), key=lambda s: -s.age_minutes):
            if not self._accounts.exists(seed.poster_id):
                raise ValueError(
                    f"Seed task {seed.task_id} references unknown poster: {seed.poster_id}"
                )
            self._tasks.add(Task(
                task_id=seed.task_id,
                title=seed.title,
                description=seed.description,
                tags=list(seed.tags),
                bounty=seed.bounty,
                poster_id=seed.poster_id,
                created_utc=now - timedelta(minutes=seed.age_minutes),
                escrow=seed.bounty,
            ))
            self._seed_supply += seed.bounty

        self._task_ids.skip_past(self._tasks.ids())
        self._account_ids.skip_past(self._accounts.ids())

    def _append_entry(
        self,
        account_ref: str,
        delta: int,
        note: str,
        at_utc: Optional[datetime] = None,
    ) -> LedgerEntry:
        entry = LedgerEntry(
            entry_id=self._entry_ids.next(),
            account_ref=account_ref,
            delta=delta,
            note=note,
            at_utc=at_utc if at_utc is not None else self._clock(),
        )
        self._ledger.append(entry)
        return entry

    def _reject(self, operation: str, kind: ErrorKind, message: str) -> ServiceResult:
        logger.debug("%s rejected (%s): %s", operation, kind.value, message)
        return ServiceResult(success=False, errors=[message], error_kind=kind)

    def _count_tasks_by_status(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for t in self._tasks.most_recent_first():
            counts[t.status.value] = counts.get(t.status.value, 0) + 1
        return counts
