"""Tests for TaskBazaar CLI — proves CLI dispatches correctly."""

import json

import pytest
from pathlib import Path

from taskbazaar.cli import CONFIG_ENV_VAR, build_parser, main


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


def _run(*argv: str) -> int:
    return main(["--config", str(CONFIG_DIR), *argv])


class TestCLIParsing:
    def test_status_command(self) -> None:
        args = build_parser().parse_args(["status"])
        assert args.command == "status"

    def test_list_tasks_command(self) -> None:
        args = build_parser().parse_args(["list-tasks", "--query", "design", "--limit", "2"])
        assert args.command == "list-tasks"
        assert args.query == "design"
        assert args.limit == 2

    def test_demo_defaults(self) -> None:
        args = build_parser().parse_args(["demo"])
        assert args.task == "t1"
        assert args.poster == "u_demoPoster"
        assert args.worker == "u_demoWorker"
        assert args.reject is None

    def test_fee_requires_bounty(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["fee"])


class TestCLIExecution:
    def test_no_command_shows_help(self) -> None:
        assert main([]) == 0

    def test_status_runs(self, capsys) -> None:
        assert _run("status") == 0
        status = json.loads(capsys.readouterr().out)
        assert status["tasks"]["total"] == 3

    def test_list_tasks_filters(self, capsys) -> None:
        assert _run("list-tasks", "--query", "excel") == 0
        out = capsys.readouterr().out
        assert "t2" in out
        assert "1 task(s)" in out

    def test_list_tasks_zero_limit(self, capsys) -> None:
        assert _run("list-tasks", "--limit", "0") == 0
        assert capsys.readouterr().out.strip() == "0 task(s)"

    def test_list_tasks_negative_limit_fails(self, capsys) -> None:
        assert _run("list-tasks", "--limit", "-1") == 1
        assert "invalid_argument" in capsys.readouterr().err

    def test_fee(self, capsys) -> None:
        assert _run("fee", "--bounty", "60") == 0
        assert json.loads(capsys.readouterr().out) == {
            "bounty": 60, "fee": 6, "total_cost": 66,
        }

    def test_fee_rejects_zero(self) -> None:
        assert _run("fee", "--bounty", "0") == 1

    def test_demo_approve(self, capsys) -> None:
        assert _run("demo") == 0
        out = capsys.readouterr().out
        summary = json.loads(out[out.index("{"):])
        assert summary["task"]["status"] == "approved"
        assert summary["worker"]["coins"] == 140
        assert summary["conservation_errors"] == []

    def test_demo_reject(self, capsys) -> None:
        assert _run("demo", "--reject", "low quality") == 0
        out = capsys.readouterr().out
        summary = json.loads(out[out.index("{"):])
        assert summary["task"]["status"] == "rejected"
        assert summary["poster"]["coins"] == 310

    def test_demo_unknown_worker_fails(self, capsys) -> None:
        assert _run("demo", "--worker", "ghost") == 1
        assert "not_found" in capsys.readouterr().err

    def test_check_invariants_runs(self) -> None:
        assert _run("check-invariants") == 0

    def test_config_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, str(CONFIG_DIR))
        assert main(["status"]) == 0
