"""TaskBazaar CLI — command-line interface for the marketplace engine.

Usage:
    python -m taskbazaar.cli status
    python -m taskbazaar.cli list-tasks --query design
    python -m taskbazaar.cli fee --bounty 60
    python -m taskbazaar.cli demo --task t1 --poster u_demoPoster --worker u_demoWorker
    python -m taskbazaar.cli demo --reject "low quality"
    python -m taskbazaar.cli check-invariants

Every invocation starts from a freshly seeded in-memory marketplace;
nothing is persisted between runs. The config directory defaults to
config/ at the project root and can be overridden with --config or the
TASKBAZAAR_CONFIG_DIR environment variable (a .env file is honoured).
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from taskbazaar.models.task import TaskStatus
from taskbazaar.policy.resolver import PolicyResolver
from taskbazaar.service import MarketplaceService, ServiceResult


DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config"
CONFIG_ENV_VAR = "TASKBAZAAR_CONFIG_DIR"


def _resolve_config_dir(cli_value: Path | None) -> Path:
    if cli_value is not None:
        return cli_value
    env_value = os.getenv(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value)
    return DEFAULT_CONFIG


def _make_service(config_dir: Path) -> MarketplaceService:
    """Create a MarketplaceService seeded from the config directory."""
    resolver = PolicyResolver.from_config_dir(config_dir)
    return MarketplaceService(resolver)


def _print_failure(result: ServiceResult) -> int:
    kind = result.error_kind.value if result.error_kind else "error"
    print(f"Failed ({kind}): {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_list_tasks(args: argparse.Namespace) -> int:
    service = _make_service(args.config)
    status = TaskStatus(args.status) if args.status else None
    result = service.list_tasks(query=args.query, status=status, limit=args.limit)
    if not result.success:
        return _print_failure(result)
    for row in result.data["tasks"]:
        print(
            f"{row['task_id']:<12} {row['status']:<10} "
            f"bounty={row['bounty']:<4} fee={row['platform_fee']:<3} "
            f"escrow={row['escrow']:<4} {row['title']} [{', '.join(row['tags'])}]"
        )
    print(f"{result.data['total']} task(s)")
    return 0


def cmd_fee(args: argparse.Namespace) -> int:
    """Show the fee and total cost of posting a bounty."""
    resolver = PolicyResolver.from_config_dir(args.config)
    policy = resolver.fee_policy()
    if args.bounty <= 0:
        print("Failed: bounty must be positive", file=sys.stderr)
        return 1
    print(json.dumps({
        "bounty": args.bounty,
        "fee": policy.fee_for(args.bounty),
        "total_cost": policy.total_cost(args.bounty),
    }, indent=2))
    return 0


def cmd_demo(args: argparse.Namespace) -> int:
    """Run one task through claim, submit, and approve (or reject)."""
    service = _make_service(args.config)
    steps = [
        ("claim", lambda: service.claim_task(args.task, args.worker)),
        ("submit", lambda: service.submit_work(args.task, args.worker, args.note)),
    ]
    if args.reject is not None:
        steps.append(("reject", lambda: service.reject_work(args.task, args.poster, args.reject)))
    else:
        steps.append(("approve", lambda: service.approve_work(args.task, args.poster)))

    for label, step in steps:
        result = step()
        if not result.success:
            print(f"Step '{label}' failed", file=sys.stderr)
            return _print_failure(result)
        print(f"{label}: {result.data['task']['status']}")

    summary = {
        "task": service.get_task(args.task).to_dict(),
        "poster": service.get_account(args.poster).to_dict(),
        "worker": service.get_account(args.worker).to_dict(),
        "conservation_errors": service.check_conservation(),
    }
    print(json.dumps(summary, indent=2))
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Check policy structure and coin conservation of the seeded engine."""
    resolver = PolicyResolver.from_config_dir(args.config)
    errors = resolver.policy_errors()
    if not errors:
        errors = MarketplaceService(resolver).check_conservation()

    if errors:
        print("Invariant check FAILED:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1
    print("All invariants hold.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskbazaar",
        description="TaskBazaar — micro-task marketplace engine CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to config directory (default: ${CONFIG_ENV_VAR} or config/)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log engine activity at DEBUG level",
    )
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show marketplace status")

    # list-tasks
    p_list = sub.add_parser("list-tasks", help="Browse tasks, most recent first")
    p_list.add_argument("--query", help="Free-text filter on title, description, tags")
    p_list.add_argument(
        "--status", choices=[s.value for s in TaskStatus], help="Only tasks in this status",
    )
    p_list.add_argument("--limit", type=int, help="Maximum tasks to show")

    # fee
    p_fee = sub.add_parser("fee", help="Compute the platform fee for a bounty")
    p_fee.add_argument("--bounty", type=int, required=True, help="Bounty in coins")

    # demo
    p_demo = sub.add_parser("demo", help="Walk a seeded task through its lifecycle")
    p_demo.add_argument("--task", default="t1", help="Task ID (default: t1)")
    p_demo.add_argument("--poster", default="u_demoPoster", help="Poster account ID")
    p_demo.add_argument("--worker", default="u_demoWorker", help="Worker account ID")
    p_demo.add_argument("--note", default="proof-url", help="Submission note")
    p_demo.add_argument("--reject", metavar="REASON", help="Reject instead of approving")

    # check-invariants
    sub.add_parser("check-invariants", help="Run policy and conservation checks")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    args.config = _resolve_config_dir(args.config)

    commands = {
        "status": cmd_status,
        "list-tasks": cmd_list_tasks,
        "fee": cmd_fee,
        "demo": cmd_demo,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
