import datetime
from typing import Tuple

from sweetlog.config import DEFAULT_SKIP_WEEKENDS, DEFAULT_WORK_HOURS


def is_workday(date: datetime.datetime, skip_weekends: bool = True) -> bool:
    """Check if the given date is a workday (not a weekend)."""
    if not skip_weekends:
        return True

    # 0 = Monday, 6 = Sunday in Python's datetime
    return date.weekday() < 5  # Monday to Friday


def is_work_hours(date: datetime.datetime, work_hours: Tuple[int, int]) -> bool:
    """Check if the given time falls within work hours, both bounds inclusive."""
    work_start, work_end = work_hours
    hour = date.hour

    # Handle work hours spanning midnight
    if work_start <= work_end:
        return work_start <= hour <= work_end
    else:
        return hour >= work_start or hour <= work_end


class WorkHoursPolicy:
    """Decides whether a commit timestamp falls in the disallowed window.

    The timestamp is judged in its own timezone, as recorded by git, so a
    commit made at 10:00 +0200 is disallowed even though it is 08:00 UTC.
    """

    def __init__(
        self,
        work_hours: Tuple[int, int] = DEFAULT_WORK_HOURS,
        skip_weekends: bool = DEFAULT_SKIP_WEEKENDS,
    ):
        start, end = work_hours
        if not (0 <= start < 24 and 0 <= end < 24):
            raise ValueError(f"Work hours must be 0-23, got {start}-{end}")
        self.work_hours = (start, end)
        self.skip_weekends = skip_weekends

    def is_disallowed(self, timestamp: datetime.datetime) -> bool:
        return is_workday(timestamp, self.skip_weekends) and is_work_hours(timestamp, self.work_hours)

    def __repr__(self) -> str:
        return f"WorkHoursPolicy(work_hours={self.work_hours}, skip_weekends={self.skip_weekends})"
