import argparse
from dataclasses import dataclass
from typing import Tuple


# Default configuration
DEFAULT_WORKSPACE = "."
DEFAULT_SINCE = "2.weeks"
DEFAULT_WORK_HOURS = (9, 18)  # 9am to 6pm, both hours inclusive
DEFAULT_SKIP_WEEKENDS = True
DEFAULT_JITTER = (10, 50)  # seconds
DEFAULT_BOUNDARY = "skip"
DEFAULT_MAX_PASSES = 500
DEFAULT_COMMAND_TIMEOUT = 300.0  # seconds
DEFAULT_QUERY_RETRIES = 3
DEFAULT_PUBLISH_RETRIES = 2


@dataclass
class SweetlogConfig:
    workspace: str = DEFAULT_WORKSPACE
    since: str = DEFAULT_SINCE
    work_hours: Tuple[int, int] = DEFAULT_WORK_HOURS
    skip_weekends: bool = DEFAULT_SKIP_WEEKENDS
    jitter: Tuple[int, int] = DEFAULT_JITTER
    boundary: str = DEFAULT_BOUNDARY
    max_passes: int = DEFAULT_MAX_PASSES
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    query_retries: int = DEFAULT_QUERY_RETRIES
    publish_retries: int = DEFAULT_PUBLISH_RETRIES
    push: bool = True
    ignore_publish_errors: bool = True

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "SweetlogConfig":
        return cls(
            workspace=args.workspace,
            since=args.since,
            work_hours=args.work_hours,
            skip_weekends=args.skip_weekends,
            jitter=args.jitter,
            boundary=args.boundary,
            max_passes=args.max_passes,
            command_timeout=args.timeout,
            push=args.push,
            ignore_publish_errors=not args.strict_push,
        )


def parse_hour_range(value: str) -> Tuple[int, int]:
    """Parse a range of hours as 'start-end'."""
    try:
        start, end = map(int, value.split('-'))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid hour range: {value}. Expected format: 'start-end'")
    if not (0 <= start < 24 and 0 <= end < 24):
        raise argparse.ArgumentTypeError(f"Invalid hour range: {value}. Hours must be 0-23")
    return (start, end)


def parse_jitter_range(value: str) -> Tuple[int, int]:
    """Parse a jitter range in seconds as 'min-max'."""
    try:
        low, high = map(int, value.split('-'))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid jitter range: {value}. Expected format: 'min-max'")
    if low < 1 or high < low:
        raise argparse.ArgumentTypeError(f"Invalid jitter range: {value}. Expected 1 <= min <= max")
    return (low, high)
