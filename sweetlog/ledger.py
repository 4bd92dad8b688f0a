import datetime
import email.utils
import logging
import shlex
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

from sweetlog.config import DEFAULT_COMMAND_TIMEOUT, DEFAULT_QUERY_RETRIES
from sweetlog.errors import CommandFailed, CommandTimeout, SourceUnavailable
from sweetlog.shell import run_command

logger = logging.getLogger(__name__)

HUMAN_DATE_FORMAT = "%a %d %b %H:%M:%S"

# Unit separator between fields, record separator between commits
FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"
LOG_FORMAT = "%H%x1f%an%x1f%ae%x1f%aI%x1f%cI%x1f%s%x1e"
LOG_FIELDS = 6


@dataclass(frozen=True)
class CommitRecord:
    hash: str
    author_date: datetime.datetime
    committer_date: datetime.datetime
    message: str = ""
    author_name: str = ""
    author_email: str = ""

    def __post_init__(self):
        if not self.hash or not self.hash.strip():
            raise ValueError("Commit hash must not be empty")
        for field_name in ("author_date", "committer_date"):
            value = getattr(self, field_name)
            if not isinstance(value, datetime.datetime):
                raise ValueError(f"{field_name} of {self.hash} must be a datetime, got {value!r}")
            if value.tzinfo is None or value.utcoffset() is None:
                raise ValueError(f"{field_name} of {self.hash} has no timezone: {value}")

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


class Ledger:
    """Commits of one normalization pass, oldest first.

    The order is the order git reported them in and is never re-sorted:
    commit dates in a history are not guaranteed to be monotonic.
    """

    def __init__(self, records: Iterable[CommitRecord] = ()):
        records = tuple(records)
        seen = set()
        for position, record in enumerate(records):
            if not isinstance(record, CommitRecord):
                raise ValueError(f"Ledger entry {position} is not a CommitRecord: {record!r}")
            if record.hash in seen:
                raise ValueError(f"Duplicate commit {record.hash} in ledger")
            seen.add(record.hash)
        self._records = records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CommitRecord]:
        return iter(self._records)

    def __getitem__(self, index: int) -> CommitRecord:
        return self._records[index]

    def __bool__(self) -> bool:
        return bool(self._records)

    def __repr__(self) -> str:
        return f"Ledger({len(self._records)} commits)"


def parse_git_date(date_str: str) -> datetime.datetime:
    """Parse git date strings in various formats, keeping the timezone offset."""
    date_str = date_str.strip()

    # Try ISO 8601 format first
    try:
        return datetime.datetime.fromisoformat(date_str.replace('Z', '+00:00'))
    except ValueError:
        pass

    # Try RFC 2822 format, e.g. "Mon, 10 Mar 2025 16:08:59 +0000"
    try:
        return email.utils.parsedate_to_datetime(date_str)
    except (TypeError, ValueError):
        pass

    # git log's default format, e.g. "Mon Mar 10 16:08:59 2025 +0000"
    try:
        return datetime.datetime.strptime(date_str, "%a %b %d %H:%M:%S %Y %z")
    except ValueError:
        raise ValueError(f"Unable to parse git date: {date_str}")


def format_human_date(date: datetime.datetime) -> str:
    return date.strftime(HUMAN_DATE_FORMAT)


def parse_log_output(output: str) -> Ledger:
    """Turn `git log --format=LOG_FORMAT` output into a Ledger."""
    records = []
    for chunk in output.split(RECORD_SEP):
        chunk = chunk.strip("\n")
        if not chunk.strip():
            continue

        parts = chunk.split(FIELD_SEP)
        if len(parts) != LOG_FIELDS:
            raise SourceUnavailable(f"Malformed git log entry: {chunk!r}")

        commit_hash, author_name, author_email, author_date, committer_date, message = parts
        try:
            records.append(CommitRecord(
                hash=commit_hash.strip(),
                author_date=parse_git_date(author_date),
                committer_date=parse_git_date(committer_date),
                message=message,
                author_name=author_name,
                author_email=author_email,
            ))
        except ValueError as e:
            raise SourceUnavailable(f"Malformed git log entry {commit_hash.strip()!r}: {e}")

    try:
        return Ledger(records)
    except ValueError as e:
        raise SourceUnavailable(str(e))


class GitLedgerSource:
    """Loads the commits made since a given point from a git checkout."""

    def __init__(
        self,
        path: str = ".",
        since: Optional[str] = None,
        runner: Callable[..., str] = run_command,
        retries: int = DEFAULT_QUERY_RETRIES,
        timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT,
    ):
        self.path = path
        self.since = since
        self.runner = runner
        self.retries = max(1, retries)
        self.timeout = timeout

    def log_command(self) -> str:
        cmd = ["git", "log", "--reverse", f"--format={LOG_FORMAT}"]
        if self.since:
            cmd.append(f"--since={self.since}")
        return " ".join(shlex.quote(part) for part in cmd)

    def load(self) -> Ledger:
        cmd = self.log_command()
        for attempt in range(1, self.retries + 1):
            try:
                output = self.runner(cmd, cwd=self.path, timeout=self.timeout)
                break
            except CommandTimeout as e:
                logger.warning("git log timed out (attempt %d of %d)", attempt, self.retries)
                if attempt == self.retries:
                    raise SourceUnavailable(str(e))
            except CommandFailed as e:
                raise SourceUnavailable(f"Unable to read the git log in {self.path}: {e}")

        ledger = parse_log_output(output)
        logger.info("%d commit(s) since %r", len(ledger), self.since)
        return ledger
