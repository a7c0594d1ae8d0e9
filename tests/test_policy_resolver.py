"""Tests for the policy resolver — proves config loads and fails loud."""

import json
import pytest
from decimal import Decimal
from pathlib import Path

from taskbazaar.policy.resolver import PolicyResolver


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


def _policy_dict() -> dict:
    with (CONFIG_DIR / "marketplace_policy.json").open(encoding="utf-8") as f:
        return json.load(f)


class TestLoading:
    def test_fee_settings(self, resolver: PolicyResolver) -> None:
        assert resolver.fee_rate() == Decimal("0.10")
        assert resolver.minimum_fee() == 3
        assert resolver.fee_policy().fee_for(60) == 6

    def test_account_settings(self, resolver: PolicyResolver) -> None:
        assert resolver.starting_coins() == 120
        assert resolver.platform_account_id() == "platform"
        assert resolver.default_display_name() == "Poster"

    def test_seed_accounts(self, resolver: PolicyResolver) -> None:
        seeds = {s.account_id: s for s in resolver.seed_accounts()}
        assert seeds["u_demoPoster"].coins == 250
        assert seeds["u_demoWorker"].coins == 80
        assert seeds["u_admin"].is_privileged
        assert not seeds["u_demoPoster"].is_privileged

    def test_seed_tasks(self, resolver: PolicyResolver) -> None:
        tasks = {t.task_id: t for t in resolver.seed_tasks()}
        assert tasks["t1"].bounty == 60
        assert tasks["t1"].tags == ["design", "youtube", "thumbnail"]
        assert tasks["t3"].age_minutes == 180

    def test_shipped_policy_is_valid(self, resolver: PolicyResolver) -> None:
        assert resolver.policy_errors() == []

    def test_default_has_no_seed(self) -> None:
        resolver = PolicyResolver.default()
        assert resolver.seed_accounts() == []
        assert resolver.seed_tasks() == []
        assert resolver.fee_policy().fee_for(30) == 3


class TestFailLoud:
    def test_missing_version(self) -> None:
        policy = _policy_dict()
        del policy["version"]
        with pytest.raises(ValueError, match="version"):
            PolicyResolver(policy)

    def test_missing_key_raises(self) -> None:
        policy = _policy_dict()
        del policy["fee"]
        with pytest.raises(KeyError):
            PolicyResolver(policy).fee_rate()

    def test_bad_rate(self) -> None:
        policy = _policy_dict()
        policy["fee"]["rate"] = "ten percent"
        with pytest.raises(ValueError, match="decimal"):
            PolicyResolver(policy).fee_rate()


class TestPolicyErrors:
    def test_unknown_seed_poster(self) -> None:
        policy = _policy_dict()
        policy["seed"]["tasks"][0]["poster_id"] = "nobody"
        errors = PolicyResolver(policy).policy_errors()
        assert any("unknown poster" in e for e in errors)

    def test_duplicate_seed_account(self) -> None:
        policy = _policy_dict()
        policy["seed"]["accounts"].append(dict(policy["seed"]["accounts"][0]))
        errors = PolicyResolver(policy).policy_errors()
        assert any("Duplicate seed account" in e for e in errors)

    def test_platform_collision(self) -> None:
        policy = _policy_dict()
        policy["seed"]["accounts"][2]["id"] = "platform"
        errors = PolicyResolver(policy).policy_errors()
        assert any("platform account" in e for e in errors)

    def test_rate_out_of_range(self) -> None:
        policy = _policy_dict()
        policy["fee"]["rate"] = "1.5"
        errors = PolicyResolver(policy).policy_errors()
        assert any("fee.rate" in e for e in errors)
