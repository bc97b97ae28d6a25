"""
Command-line interface for managing scheduled exports.

Usage:
    python -m inventory_export.cli.schedule_cli create --config <file>
    python -m inventory_export.cli.schedule_cli list [--active-only]
    python -m inventory_export.cli.schedule_cli show --schedule-id <id>
    python -m inventory_export.cli.schedule_cli update --schedule-id <id> --config <file>
    python -m inventory_export.cli.schedule_cli pause|resume|run-now|delete --schedule-id <id>
    python -m inventory_export.cli.schedule_cli stats
    python -m inventory_export.cli.schedule_cli serve
"""

import argparse
import signal
import sys
import threading
from datetime import datetime

from inventory_export.cli.export_cli import load_document
from inventory_export.config import load_settings
from inventory_export.core.errors import ConfigurationError, ScheduleNotFoundError
from inventory_export.core.models import ScheduleResult
from inventory_export.observability.logger import configure_logging, get_logger
from inventory_export.service import ExportService
from inventory_export.utils.validation import validate_limit, validate_schedule_id

logger = get_logger(__name__)


def format_timestamp(ts: datetime | None) -> str:
    """Format timestamp for display."""
    return ts.strftime("%Y-%m-%d %H:%M:%S %Z").strip() if ts else "N/A"


def print_result(result: ScheduleResult) -> int:
    if result.success:
        print(f"\n{result.message}")
        if result.schedule_id:
            print(f"Schedule ID: {result.schedule_id}")
        if result.next_run:
            print(f"Next run:    {format_timestamp(result.next_run)}")
        if result.schedule and result.schedule.last_result:
            run = result.schedule.last_result
            print(f"Last run:    {'success' if run.success else 'failed'} - {run.message or run.error or ''}")
        print()
        return 0

    print(f"\n{result.message}")
    for error in result.errors:
        if error != result.message:
            print(f"  - {error}")
    print()
    return 1


def create_command(service: ExportService, args) -> int:
    logger.info(f"Creating schedule from {args.config}")
    return print_result(service.scheduler.create_schedule(load_document(args.config)))


def update_command(service: ExportService, args) -> int:
    logger.info(f"Updating schedule {args.schedule_id} from {args.config}")
    return print_result(service.scheduler.update_schedule(args.schedule_id, load_document(args.config)))


def list_command(service: ExportService, args) -> int:
    schedules = service.scheduler.get_all_schedules()
    if args.active_only:
        schedules = [s for s in schedules if s.is_active]
    total = len(schedules)
    if args.limit is not None:
        schedules = schedules[: validate_limit(args.limit)]

    if not schedules:
        print("\nNo schedules found.\n")
        return 0

    print(f"\n{'ID':<32} {'Name':<24} {'Type':<8} {'Format':<6} {'Active':<7} {'Next run'}")
    print(f"{'-' * 100}")
    for schedule in schedules:
        print(
            f"{schedule.id:<32} {schedule.name[:24]:<24} {schedule.recurrence.type:<8} "
            f"{schedule.export_format:<6} {'yes' if schedule.is_active else 'no':<7} "
            f"{format_timestamp(schedule.next_run)}"
        )
    print(f"\nShowing {len(schedules)} of {total}\n")
    return 0


def show_command(service: ExportService, args) -> int:
    schedule = service.require_schedule(args.schedule_id)
    print(schedule.model_dump_json(indent=2))
    return 0


def stats_command(service: ExportService, args) -> int:
    stats = service.scheduler.get_statistics()
    queue = service.retry_queue.status()

    print(f"\n{'=' * 60}")
    print("SCHEDULER STATISTICS")
    print(f"{'=' * 60}")
    print(f"Schedules:       {stats['total_schedules']} ({stats['active_schedules']} active)")
    print(f"Runs:            {stats['total_runs']}")
    print(f"Successful runs: {stats['successful_runs']}")
    print(f"Failed runs:     {stats['failed_runs']}")
    print(f"Success rate:    {stats['success_rate']}%")
    print(f"Retry queue:     {queue}")
    print(f"{'=' * 60}\n")
    return 0


def serve_command(service: ExportService, args) -> int:
    """Run the scheduler until interrupted."""
    stop = threading.Event()

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        stop.set()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    service.start()
    print("\nScheduler running. Press Ctrl+C to stop.\n")
    stop.wait()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scheduled export management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a daily schedule from a YAML definition
  python -m inventory_export.cli.schedule_cli create --config schedules/hardware_daily.yaml

  # Run a schedule immediately without changing its next run
  python -m inventory_export.cli.schedule_cli run-now --schedule-id schedule_1700000000000_ab12cd

  # Run the scheduler in the foreground
  python -m inventory_export.cli.schedule_cli serve
        """
    )
    parser.add_argument(
        "--env-file",
        help="Load settings from a .env file first"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    create_parser = subparsers.add_parser("create", help="Create a schedule")
    create_parser.add_argument(
        "--config",
        required=True,
        help="JSON or YAML schedule definition"
    )

    update_parser = subparsers.add_parser("update", help="Update a schedule")
    update_parser.add_argument("--schedule-id", required=True, help="Schedule ID")
    update_parser.add_argument(
        "--config",
        required=True,
        help="JSON or YAML document with the fields to change"
    )

    list_parser = subparsers.add_parser("list", help="List schedules")
    list_parser.add_argument(
        "--active-only",
        action="store_true",
        help="Only show active schedules"
    )
    list_parser.add_argument(
        "--limit",
        type=int,
        help="Show at most this many schedules"
    )

    for command, help_text in (
        ("show", "Show a schedule as JSON"),
        ("pause", "Pause a schedule"),
        ("resume", "Resume a paused schedule"),
        ("run-now", "Execute a schedule immediately"),
        ("delete", "Delete a schedule"),
    ):
        command_parser = subparsers.add_parser(command, help=help_text)
        command_parser.add_argument("--schedule-id", required=True, help="Schedule ID")

    subparsers.add_parser("stats", help="Show scheduler statistics")
    subparsers.add_parser("serve", help="Run the scheduler in the foreground")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    handlers = {
        "create": create_command,
        "update": update_command,
        "list": list_command,
        "show": show_command,
        "stats": stats_command,
        "serve": serve_command,
        "pause": lambda service, a: print_result(service.scheduler.pause_schedule(a.schedule_id)),
        "resume": lambda service, a: print_result(service.scheduler.resume_schedule(a.schedule_id)),
        "run-now": lambda service, a: print_result(service.scheduler.execute_now(a.schedule_id)),
        "delete": lambda service, a: print_result(service.scheduler.delete_schedule(a.schedule_id)),
    }

    service = None
    try:
        settings = load_settings(args.env_file)
        configure_logging(settings.log_level, settings.log_format, sys.stderr)
        if getattr(args, "schedule_id", None) is not None:
            args.schedule_id = validate_schedule_id(args.schedule_id)

        service = ExportService(settings)
        exit_code = handlers[args.command](service, args)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except ScheduleNotFoundError as e:
        print(f"\n{e}\n")
        sys.exit(1)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        logger.error(f"Error: {e}")
        print(f"\nError: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        print(f"\nError: {e}")
        sys.exit(1)
    finally:
        if service is not None:
            service.shutdown()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
