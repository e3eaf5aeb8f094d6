"""fulfillu CLI"""

import argparse
import asyncio
import json
import sys
from datetime import datetime, timedelta, timezone
from typing import Any

from common.config import CONFIG_DIR_ENV, load_config
from common.logging import setup_logging_from_config
from database.registry import DatabaseRegistry
from fulfillu import __version__
from fulfillu.runner import run
from fulfillu.wiring import build_manager
from retry.exception import InvalidTransitionError
from retry.manager import RetryManager


def _print_json(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


async def _process_pending(manager: RetryManager, args: argparse.Namespace) -> int:
    result = await manager.process_pending_batch(args.limit)
    _print_json(result.model_dump())
    return 0


async def _process(manager: RetryManager, args: argparse.Namespace) -> int:
    success = await manager.process_operation(args.operation_id)
    _print_json({"operation_id": args.operation_id, "success": success})
    return 0 if success else 1


async def _schedule(manager: RetryManager, args: argparse.Namespace) -> int:
    try:
        payload = json.loads(args.payload)
    except json.JSONDecodeError as e:
        print(f"Error: invalid payload JSON: {e}", file=sys.stderr)
        return 2
    if not isinstance(payload, dict):
        print("Error: payload must be a JSON object", file=sys.stderr)
        return 2

    operation_id = await manager.schedule_operation(
        args.type, args.subject_id, payload, immediate=args.immediate
    )
    operation = await manager.get_operation(operation_id)
    _print_json(operation.model_dump(mode="json"))
    return 0


async def _cancel(manager: RetryManager, args: argparse.Namespace) -> int:
    try:
        cancelled = await manager.cancel_operation(args.operation_id)
    except InvalidTransitionError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    if not cancelled:
        print(f"Error: operation not found: {args.operation_id}", file=sys.stderr)
        return 1
    _print_json({"operation_id": args.operation_id, "cancelled": True})
    return 0


async def _cancel_subject(manager: RetryManager, args: argparse.Namespace) -> int:
    cancelled = await manager.cancel_operations_for_subject(args.subject_id)
    _print_json({"subject_id": args.subject_id, "cancelled": cancelled})
    return 0


async def _requeue_failed(manager: RetryManager, args: argparse.Namespace) -> int:
    requeued = await manager.requeue_failed_operations(
        operation_type=args.type,
        max_age=timedelta(hours=args.max_age_hours),
        delay=timedelta(minutes=args.delay_minutes),
    )
    _print_json({"requeued": requeued})
    return 0


async def _recover_stuck(manager: RetryManager, args: argparse.Namespace) -> int:
    recovered = await manager.recover_stuck_operations(timedelta(minutes=args.stuck_after_minutes))
    _print_json({"recovered": recovered})
    return 0


async def _stats(manager: RetryManager, args: argparse.Namespace) -> int:
    window_start = datetime.now(timezone.utc) - timedelta(hours=args.hours)
    stats = await manager.get_stats(window_start)
    _print_json(stats.model_dump(mode="json"))
    return 0


async def _health(manager: RetryManager, args: argparse.Namespace) -> int:
    report = await manager.get_health()
    _print_json(report.model_dump(mode="json"))
    return 0 if report.status.value == "ok" else 1


COMMANDS = {
    "process-pending": _process_pending,
    "process": _process,
    "schedule": _schedule,
    "cancel": _cancel,
    "cancel-subject": _cancel_subject,
    "requeue-failed": _requeue_failed,
    "recover-stuck": _recover_stuck,
    "stats": _stats,
    "health": _health,
}


async def run_command(args: argparse.Namespace, config: dict[str, Any]) -> int:
    """관리 명령 1회 실행"""
    manager = await build_manager(config)
    try:
        return await COMMANDS[args.command](manager, args)
    finally:
        await DatabaseRegistry.close_all()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fulfillu",
        description="fulfillu - 풀필먼트 재시도 엔진 관리 도구"
    )
    parser.add_argument(
        "-c", "--config-dir",
        default=None,
        help=f"Config directory (default: ${CONFIG_DIR_ENV} or ./config)"
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    pending_parser = subparsers.add_parser("process-pending", help="Process due operations once")
    pending_parser.add_argument("--limit", type=int, default=None, help="Max operations to process")

    process_parser = subparsers.add_parser("process", help="Process a single operation")
    process_parser.add_argument("operation_id", help="Operation id")

    schedule_parser = subparsers.add_parser("schedule", help="Schedule a new operation")
    schedule_parser.add_argument("type", help="Operation type")
    schedule_parser.add_argument("subject_id", help="Order id")
    schedule_parser.add_argument("--payload", default="{}", help="Payload as a JSON object")
    schedule_parser.add_argument("--immediate", action="store_true", help="Process right away")

    cancel_parser = subparsers.add_parser("cancel", help="Cancel a pending operation")
    cancel_parser.add_argument("operation_id", help="Operation id")

    cancel_subject_parser = subparsers.add_parser(
        "cancel-subject", help="Cancel every pending operation of an order"
    )
    cancel_subject_parser.add_argument("subject_id", help="Order id")

    requeue_parser = subparsers.add_parser("requeue-failed", help="Requeue recently failed operations")
    requeue_parser.add_argument("--type", default=None, help="Operation type filter")
    requeue_parser.add_argument("--max-age-hours", type=float, default=24.0)
    requeue_parser.add_argument("--delay-minutes", type=float, default=60.0)

    recover_parser = subparsers.add_parser("recover-stuck", help="Recover operations stuck in processing")
    recover_parser.add_argument("--stuck-after-minutes", type=float, default=30.0)

    stats_parser = subparsers.add_parser("stats", help="Show operation statistics")
    stats_parser.add_argument("--hours", type=float, default=24.0, help="Window size in hours")

    subparsers.add_parser("health", help="Show retry system health")

    run_parser = subparsers.add_parser("run", help="Run the retry poller")
    run_parser.add_argument("--with-admin", action="store_true", help="Also serve the admin API")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    config = load_config(config_dir=args.config_dir)
    setup_logging_from_config(config)

    if args.command == "run":
        modules = ["poller", "admin"] if args.with_admin else ["poller"]
        try:
            asyncio.run(run(modules, config))
        except KeyboardInterrupt:
            print("\nShutdown requested by user")
        return 0

    return asyncio.run(run_command(args, config))


if __name__ == "__main__":
    sys.exit(main())
