"""Main entry point with CLI."""
import argparse
import asyncio
import logging
import sys
from datetime import date, datetime
from typing import Optional

from expiry_reminder.config import Config, GUARD_MODES, POLICIES, config
from expiry_reminder.jobs.runner import build_runner
from expiry_reminder.logging_conf import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Expiry reminder sweep")

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Write messages to data/outbox instead of sending them; the run-once guard is not touched",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore the run-once guard for this invocation",
    )
    parser.add_argument(
        "--policy",
        choices=POLICIES,
        default=None,
        help=f"Reminder threshold policy (default: {config.REMINDER_POLICY})",
    )
    layout = parser.add_mutually_exclusive_group()
    layout.add_argument(
        "--grouped",
        dest="grouped",
        action="store_true",
        default=None,
        help="One summary email per owner",
    )
    layout.add_argument(
        "--per-product",
        dest="grouped",
        action="store_false",
        help="One email per matching product",
    )
    parser.set_defaults(grouped=None)
    parser.add_argument(
        "--guard-mode",
        choices=GUARD_MODES,
        default=None,
        help=f"When to record today's sweep (default: {config.GUARD_MODE})",
    )
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Evaluate as if today were YYYY-MM-DD (midnight); skips the run-once guard",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help=f"Parallel recipient dispatch (default: {config.CONCURRENCY})",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Debug logging",
    )

    return parser.parse_args(argv)


def apply_args(settings: Config, args: argparse.Namespace) -> None:
    """Override configuration from CLI arguments."""
    if args.policy:
        settings.REMINDER_POLICY = args.policy
    if args.grouped is not None:
        settings.GROUPED = args.grouped
    if args.guard_mode:
        settings.GUARD_MODE = args.guard_mode
    if args.concurrency is not None:
        settings.CONCURRENCY = args.concurrency
    # A pinned day is a backfill or a replay; it must not touch the real guard.
    if args.force or args.today:
        settings.RUN_ONCE = False


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    settings = Config()
    apply_args(settings, args)

    try:
        settings.validate(require_mail=not args.dry_run)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    if args.today:
        fixed_now = datetime(args.today.year, args.today.month, args.today.day)

        def clock() -> datetime:
            return fixed_now
    else:
        clock = datetime.now

    logger.info("=" * 60)
    logger.info("Expiry Reminder Starting")
    logger.info(f"Policy: {settings.REMINDER_POLICY}")
    logger.info(f"Grouped: {settings.GROUPED}")
    logger.info(f"Run once: {settings.RUN_ONCE} ({settings.GUARD_MODE}, {settings.RUN_STATE_BACKEND})")
    logger.info(f"Concurrency: {settings.CONCURRENCY}")
    logger.info(f"Dry-run: {args.dry_run}")
    logger.info("=" * 60)

    runner = build_runner(settings, dry_run=args.dry_run, clock=clock)
    try:
        result = asyncio.run(runner.run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)

    logger.info(f"Reminder job executed: {result.status}, {result.sent} sent, {result.failed} failed")


if __name__ == "__main__":
    main()
