"""
Command-line interface for cadence.

Provides commands for:
- Checking an expression and previewing its next occurrences
- Running a shell command on a schedule in the foreground
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from cadence.config import SchedulerConfig
from cadence.jobs import command_handler
from cadence.service import Scheduler

logger = logging.getLogger(__name__)


def setup_logging(log_file: str = None, verbose: bool = False, level: str = "INFO"):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else getattr(logging, str(level).upper(), logging.INFO)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)


def _parse_start(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid ISO timestamp: {value}")


def _build_scheduler(args, config: SchedulerConfig = None) -> Scheduler:
    config = config or SchedulerConfig(args.config)
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"  - {error}")
        raise ValueError("Invalid configuration")
    return Scheduler(args.start or datetime.now(), config=config)


def cmd_parse(args):
    """Print the frequency and next occurrences of an expression."""
    try:
        scheduler = _build_scheduler(args)
        recurrence = scheduler.parse(args.expression)
        occurrences = scheduler.preview(args.expression, count=args.count)
    except (OSError, ValueError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Expression: {args.expression}")
    print(f"Frequency:  {recurrence.frequency} ({recurrence.nanoseconds} ns)")
    print(f"\nNext {len(occurrences)} occurrence(s):")
    for occurrence in occurrences:
        print(f"  {occurrence.astimezone().isoformat()}")
    return 0


def cmd_run(args):
    """Run a shell command on a schedule until interrupted or it fails."""
    try:
        config = SchedulerConfig(args.config)
    except (OSError, ValueError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        log_file=args.log_file or config.logging.file,
        verbose=args.verbose,
        level=config.logging.level
    )

    try:
        scheduler = _build_scheduler(args, config)
        handle = scheduler.schedule(
            args.expression,
            command_handler(args.command, timeout=args.timeout, working_dir=args.cwd, job_name=args.name),
            name=args.name
        )
    except ValueError as e:
        logger.error(f"Failed to schedule command: {e}")
        return 1

    logger.info(f"Running '{args.command}' {args.expression}. Press Ctrl+C to stop.")
    logger.info(f"Next run at {handle.next_occurrence.astimezone().isoformat()}")

    try:
        handle.wait()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        handle.cancel()

    if handle.reason == 'failed':
        logger.error(f"Schedule stopped after failure: {handle.error}")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='cadence',
        description='Run tasks at fixed intervals described by @every / @daily expressions'
    )
    parser.add_argument('--config', help='Path to configuration file')
    parser.add_argument('--start', type=_parse_start, help='Anchor time (ISO 8601, default: now)')

    subparsers = parser.add_subparsers(dest='command_name', required=True)

    parse_parser = subparsers.add_parser('parse', help='Show the next occurrences of an expression')
    parse_parser.add_argument('expression', help='Expression, e.g. "@every 1h30m"')
    parse_parser.add_argument('--count', type=int, default=5, help='Number of occurrences to show')
    parse_parser.set_defaults(func=cmd_parse)

    run_parser = subparsers.add_parser('run', help='Run a shell command on a schedule')
    run_parser.add_argument('expression', help='Expression, e.g. "@every 10m"')
    run_parser.add_argument('command', help='Shell command to execute')
    run_parser.add_argument('--name', help='Name used in log messages')
    run_parser.add_argument('--timeout', type=float, default=3600, help='Command timeout in seconds')
    run_parser.add_argument('--cwd', help='Working directory for the command')
    run_parser.add_argument('--log-file', help="Log file (default: from configuration)")
    run_parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    run_parser.set_defaults(func=cmd_run)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
