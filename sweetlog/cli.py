#!/usr/bin/env python3
import argparse
import datetime
import logging
import os
import sys
from typing import List, Optional

from sweetlog.config import (
    DEFAULT_BOUNDARY,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_JITTER,
    DEFAULT_MAX_PASSES,
    DEFAULT_SINCE,
    DEFAULT_SKIP_WEEKENDS,
    DEFAULT_WORK_HOURS,
    DEFAULT_WORKSPACE,
    SweetlogConfig,
    parse_hour_range,
    parse_jitter_range,
)
from sweetlog.driver import FixedPointDriver
from sweetlog.errors import SweetlogError
from sweetlog.git import GitPublisher, GitRewriter
from sweetlog.ledger import GitLedgerSource, format_human_date
from sweetlog.policy import WorkHoursPolicy
from sweetlog.report import print_fixes

ONE_COMMIT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_driver(config: SweetlogConfig) -> FixedPointDriver:
    source = GitLedgerSource(
        config.workspace,
        config.since,
        retries=config.query_retries,
        timeout=config.command_timeout,
    )
    rewriter = GitRewriter(config.workspace, timeout=config.command_timeout)
    publisher = GitPublisher(
        config.workspace,
        timeout=config.command_timeout,
        retries=config.publish_retries,
    )
    policy = WorkHoursPolicy(config.work_hours, config.skip_weekends)
    return FixedPointDriver(source, rewriter, publisher, policy, config)


def resolve_workspace(path: str) -> str:
    if not os.path.exists(path):
        raise SweetlogError(f"Workspace path not found: {path}")
    return os.path.realpath(path)


def parse_one_commit_date(value: str) -> datetime.datetime:
    try:
        date = datetime.datetime.strptime(value, ONE_COMMIT_DATE_FORMAT)
    except ValueError:
        raise SweetlogError("--only-one-commit-date format should be as: YYYY-MM-DD HH:MM:SS")
    # Interpret the date in the local timezone
    return date.astimezone()


def check_command(args: argparse.Namespace) -> int:
    """Check if there are commits during work hours."""
    config = SweetlogConfig.from_args(args)
    config.workspace = resolve_workspace(config.workspace)
    driver = build_driver(config)

    ledger, fixes = driver.plan()
    print(f"{len(ledger)} commit(s) since \"{config.since}\"")
    if fixes:
        print(f"Found commits during work hours ({config.work_hours[0]}:00-{config.work_hours[1]}:59):")
        for fix in fixes:
            print(f"  {fix.record.short_hash} - {format_human_date(fix.record.author_date)}")
        print("\nUse 'sweetlog fix' to update these commit times.")
        return 1

    print("No commits during work hours found.")
    return 0


def dry_run_command(args: argparse.Namespace) -> int:
    """Show what would be done without making changes."""
    config = SweetlogConfig.from_args(args)
    config.workspace = resolve_workspace(config.workspace)
    driver = build_driver(config)

    def show(pass_number, ledger, fixes):
        print(f"{len(ledger)} commit(s) since \"{config.since}\"")
        print_fixes(fixes)

    driver.run(dry_run=True, on_pass=show)
    return 0


def fix_command(args: argparse.Namespace) -> int:
    """Fix commit timestamps to be outside work hours."""
    config = SweetlogConfig.from_args(args)
    config.workspace = resolve_workspace(config.workspace)
    print(f"Workspace used: {config.workspace}")
    driver = build_driver(config)

    if args.only_one_commit:
        if not args.only_one_commit_date:
            raise SweetlogError("If --only-one-commit is set, --only-one-commit-date should be set too.")
        new_date = parse_one_commit_date(args.only_one_commit_date)
        if not confirm(args, f"Rewrite {args.only_one_commit} to {format_human_date(new_date)}?"):
            return 0
        driver.fix_one_commit(args.only_one_commit, new_date)
        print(f"Commit {args.only_one_commit} rewritten.")
        return 0

    ledger, fixes = driver.plan()
    print(f"{len(ledger)} commit(s) since \"{config.since}\"")
    print_fixes(fixes)
    if not fixes:
        return 0
    if not confirm(args, "Proceed with rewriting history?"):
        return 0

    def show(pass_number, ledger, fixes):
        if fixes:
            fix = fixes[0]
            print(
                f"Pass {pass_number}: {fix.record.short_hash} "
                f"{format_human_date(fix.record.author_date)} -> "
                f"{format_human_date(fix.author_date_fixed)} "
                f"({len(fixes) - 1} more to go)"
            )

    result = driver.run(on_pass=show, first_pass=(ledger, fixes))
    print(f"Successfully updated {len(result.applied)} commit timestamp(s) in {result.passes} pass(es).")
    if not config.push:
        print("NOTE: You may need to force push your changes with 'git push -f'")
    return 0


def confirm(args: argparse.Namespace, question: str) -> bool:
    if args.yes:
        return True
    confirmation = input(f"\n{question} (y/N): ")
    if confirmation.lower() != 'y':
        print("Operation cancelled.")
        return False
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sweetlog",
        description="Rewrite git commit dates so that none falls in working hours."
    )

    # Common arguments
    parser.add_argument(
        '--workspace',
        type=str,
        default=DEFAULT_WORKSPACE,
        help="Path to the local git checkout (default: current directory)"
    )
    parser.add_argument(
        '--since',
        type=str,
        default=DEFAULT_SINCE,
        help=f"Only rewrite commits newer than this git date expression (default: {DEFAULT_SINCE})"
    )
    parser.add_argument(
        '--work-hours',
        type=parse_hour_range,
        default=DEFAULT_WORK_HOURS,
        help=f"Disallowed hours as 'start-end', both inclusive (default: {DEFAULT_WORK_HOURS[0]}-{DEFAULT_WORK_HOURS[1]})"
    )
    parser.add_argument(
        '--no-skip-weekends',
        action='store_false',
        dest='skip_weekends',
        default=DEFAULT_SKIP_WEEKENDS,
        help="Treat weekends as workdays too"
    )
    parser.add_argument(
        '--jitter',
        type=parse_jitter_range,
        default=DEFAULT_JITTER,
        help=f"Seconds added after the previous allowed commit, as 'min-max' (default: {DEFAULT_JITTER[0]}-{DEFAULT_JITTER[1]})"
    )
    parser.add_argument(
        '--boundary',
        choices=['skip', 'abort'],
        default=DEFAULT_BOUNDARY,
        help="What to do when the oldest commit is in work hours (default: skip with a warning)"
    )
    parser.add_argument(
        '--max-passes',
        type=int,
        default=DEFAULT_MAX_PASSES,
        help=f"Give up after this many rewrite passes (default: {DEFAULT_MAX_PASSES})"
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=DEFAULT_COMMAND_TIMEOUT,
        help=f"Timeout in seconds for each git command (default: {DEFAULT_COMMAND_TIMEOUT:g})"
    )
    parser.add_argument(
        '--no-push',
        action='store_false',
        dest='push',
        help="Do not force push after each rewrite"
    )
    parser.add_argument(
        '--strict-push',
        action='store_true',
        help="Abort when a force push fails instead of ignoring it"
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help="Show the git commands being run and their output"
    )
    parser.add_argument(
        '-y', '--yes',
        action='store_true',
        help="Skip confirmation prompt"
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    subparsers.add_parser('check', help='Check for commits during work hours')
    subparsers.add_parser('dry-run', help='Show what would be done without making changes')

    fix_parser = subparsers.add_parser('fix', help='Fix commit timestamps to be outside work hours')
    fix_parser.add_argument(
        '--only-one-commit',
        metavar='HASH',
        help="Only rewrite this commit, skipping the log scan"
    )
    fix_parser.add_argument(
        '--only-one-commit-date',
        metavar='DATE',
        help="New date for --only-one-commit, as 'YYYY-MM-DD HH:MM:SS'"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    commands = {
        'check': check_command,
        'dry-run': dry_run_command,
        'fix': fix_command,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    try:
        return command(args)
    except SweetlogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted between rewrite passes.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
