"""Conservation and failure-idempotence properties of the marketplace engine.

For any sequence of operations:
    Σ balances + platform revenue + Σ live escrow == seed supply + Σ top-ups
and a rejected operation never changes any observable state.
"""

import random

import pytest
from datetime import datetime, timezone
from pathlib import Path

from taskbazaar.errors import ErrorKind
from taskbazaar.models.task import TaskStatus
from taskbazaar.policy.resolver import PolicyResolver
from taskbazaar.service import MarketplaceService


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"
POSTER = "u_demoPoster"
WORKER = "u_demoWorker"


def _now() -> datetime:
    return datetime(2026, 2, 16, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def service() -> MarketplaceService:
    return MarketplaceService(PolicyResolver.from_config_dir(CONFIG_DIR), clock=_now)


def _total(service: MarketplaceService, admin: str = "u_admin") -> int:
    accounts = service.snapshot()["accounts"].values()
    revenue = service.platform_revenue(admin).data["platform_revenue"]
    escrow = sum(
        t["escrow"] for t in service.snapshot()["tasks"]
        if t["status"] in ("open", "claimed", "submitted")
    )
    return sum(a["coins"] for a in accounts) + revenue + escrow


class TestConservation:
    def test_seed_supply(self, service: MarketplaceService) -> None:
        # 250 + 80 + 0 seed balances, 60 + 50 + 70 seed escrow
        assert service.coin_supply() == 510
        assert _total(service) == 510
        assert service.check_conservation() == []

    def test_top_up_is_the_only_source(self, service: MarketplaceService) -> None:
        service.add_coins(WORKER, 40)
        assert _total(service) == 550
        assert service.coin_supply() == 550

    def test_registration_counts_as_seed(self, service: MarketplaceService) -> None:
        service.register_account("Newcomer")
        assert service.coin_supply() == 630
        assert service.check_conservation() == []

    def test_full_lifecycles(self, service: MarketplaceService) -> None:
        task_id = service.post_task("Logo", "", "", 60, POSTER).data["task"]["task_id"]
        assert _total(service) == 510
        service.claim_task(task_id, WORKER)
        service.submit_work(task_id, WORKER, "proof")
        service.approve_work(task_id, POSTER)
        assert _total(service) == 510

        service.claim_task("t2", WORKER)
        service.submit_work("t2", WORKER, "proof")
        service.reject_work("t2", POSTER, "no")
        assert _total(service) == 510
        assert service.check_conservation() == []

    @pytest.mark.parametrize("seed", [1, 7, 42, 2026])
    def test_random_operation_sequences(self, service: MarketplaceService, seed: int) -> None:
        rng = random.Random(seed)
        workers = [WORKER] + [
            service.register_account(f"worker{i}").data["account"]["account_id"]
            for i in range(3)
        ]
        posters = [POSTER] + workers[1:2]
        actors = posters + workers

        for _ in range(300):
            task_ids = [t["task_id"] for t in service.list_tasks().data["tasks"]]
            op = rng.choice(["post", "claim", "submit", "approve", "reject", "top_up"])
            task_id = rng.choice(task_ids)
            actor = rng.choice(actors)
            if op == "post":
                service.post_task("job", "", "", rng.randint(-5, 120), rng.choice(posters))
            elif op == "claim":
                service.claim_task(task_id, actor)
            elif op == "submit":
                service.submit_work(task_id, actor, "proof")
            elif op == "approve":
                service.approve_work(task_id, actor)
            elif op == "reject":
                service.reject_work(task_id, actor, rng.choice([None, "meh"]))
            else:
                service.add_coins(actor, rng.randint(-10, 50))

            assert service.check_conservation() == []
            assert service.coins_in_circulation() == service.coin_supply()

    def test_fee_ledger_matches_revenue(self, service: MarketplaceService) -> None:
        service.post_task("A", "", "", 10, POSTER)
        service.post_task("B", "", "", 95, POSTER)
        platform = service.ledger_for("platform").data["entries"]
        assert [e["delta"] for e in platform] == [3, 10]
        assert service.platform_revenue("u_admin").data["platform_revenue"] == 13


class TestEscrowClosure:
    @pytest.mark.parametrize("outcome", ["approve", "reject"])
    def test_escrow_zero_after_outcome(self, service: MarketplaceService, outcome: str) -> None:
        service.claim_task("t3", WORKER)
        service.submit_work("t3", WORKER, "proof")
        if outcome == "approve":
            service.approve_work("t3", POSTER)
        else:
            service.reject_work("t3", POSTER)
        assert service.get_task("t3").escrow == 0


class TestFailureIdempotence:
    def _assert_unchanged(self, service: MarketplaceService, call) -> None:
        before = service.snapshot()
        result = call()
        assert not result.success
        assert result.error_kind is not None
        assert service.snapshot() == before

    def test_failures_on_open_task(self, service: MarketplaceService) -> None:
        self._assert_unchanged(service, lambda: service.submit_work("t1", WORKER, "x"))
        self._assert_unchanged(service, lambda: service.approve_work("t1", POSTER))
        self._assert_unchanged(service, lambda: service.reject_work("t1", POSTER))
        self._assert_unchanged(service, lambda: service.post_task("x", "", "", 1000, WORKER))
        self._assert_unchanged(service, lambda: service.add_coins(WORKER, 0))

    @pytest.mark.parametrize("terminal", [TaskStatus.APPROVED, TaskStatus.REJECTED])
    def test_terminal_tasks_reject_everything(
        self, service: MarketplaceService, terminal: TaskStatus,
    ) -> None:
        service.claim_task("t1", WORKER)
        service.submit_work("t1", WORKER, "proof")
        if terminal == TaskStatus.APPROVED:
            service.approve_work("t1", POSTER)
        else:
            service.reject_work("t1", POSTER)

        calls = [
            (lambda: service.claim_task("t1", WORKER), ErrorKind.TASK_NOT_OPEN),
            (lambda: service.submit_work("t1", WORKER, "again"), ErrorKind.NOT_CLAIMANT),
            (lambda: service.approve_work("t1", POSTER), ErrorKind.NOT_AUTHORIZED),
            (lambda: service.reject_work("t1", POSTER), ErrorKind.NOT_AUTHORIZED),
        ]
        for call, kind in calls:
            before = service.snapshot()
            result = call()
            assert result.error_kind == kind
            assert service.snapshot() == before
