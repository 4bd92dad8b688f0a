import datetime
import enum
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sweetlog.config import DEFAULT_JITTER
from sweetlog.errors import AnchorNotFound, BoundaryUnfixable
from sweetlog.ledger import CommitRecord, Ledger, format_human_date
from sweetlog.policy import WorkHoursPolicy

logger = logging.getLogger(__name__)


class BoundaryMode(enum.Enum):
    """What to do with a disallowed commit at the start of the ledger."""
    SKIP = "skip"
    ABORT = "abort"


@dataclass(frozen=True)
class FixedCommit:
    record: CommitRecord
    anchor: datetime.datetime
    author_date_fixed: datetime.datetime
    committer_date_fixed: datetime.datetime

    @property
    def hash(self) -> str:
        return self.record.hash


def previous_allowed_timestamp(
    ledger: Ledger,
    index: int,
    policy: WorkHoursPolicy,
    proposed: Dict[str, datetime.datetime],
) -> datetime.datetime:
    """
    Find the timestamp a fix for ledger[index] should be anchored to.

    Scans backward from the commit right before `index` and returns the
    first date that is either already proposed in this pass or an
    original date outside the disallowed window.

    Args:
        ledger: Commits of the current pass
        index: Position of the disallowed commit, at least 1
        policy: Policy deciding which dates are disallowed
        proposed: Hash to proposed date for commits fixed earlier in the pass

    Returns:
        The closest preceding usable timestamp

    Raises:
        AnchorNotFound: if every earlier commit is disallowed and unfixed
    """
    if index < 1:
        raise ValueError(f"Cannot search for an anchor before index {index}")

    for position in range(index - 1, -1, -1):
        record = ledger[position]
        if record.hash in proposed:
            return proposed[record.hash]
        if not policy.is_disallowed(record.author_date):
            return record.author_date

    record = ledger[index]
    raise AnchorNotFound(
        f"No previous allowed commit found for {record.hash} "
        f"({format_human_date(record.author_date)}, position {index})"
    )


def normalize(
    ledger: Ledger,
    policy: WorkHoursPolicy,
    rng: Optional[random.Random] = None,
    jitter: Tuple[int, int] = DEFAULT_JITTER,
    boundary: BoundaryMode = BoundaryMode.SKIP,
) -> List[FixedCommit]:
    """
    Compute replacement dates for the commits made in the disallowed window.

    Each fix is placed a random number of seconds (within `jitter`) after
    the closest preceding allowed date. A run of consecutive disallowed
    commits chains: each one is anchored to the fix of the one before it.

    Returns:
        Fixes in ledger order
    """
    low, high = jitter
    if low < 1 or high < low:
        raise ValueError(f"Invalid jitter range: {low}-{high} seconds")
    if rng is None:
        rng = random.Random()
    boundary = BoundaryMode(boundary)

    proposed: Dict[str, datetime.datetime] = {}
    fixes = []

    for index, record in enumerate(ledger):
        if not policy.is_disallowed(record.author_date):
            continue

        if index == 0:
            message = (
                f"commit {record.hash} ({format_human_date(record.author_date)}) "
                f"cannot be fixed because no earlier commit is known"
            )
            if boundary is BoundaryMode.ABORT:
                raise BoundaryUnfixable(message)
            logger.warning(message)
            continue

        anchor = previous_allowed_timestamp(ledger, index, policy, proposed)
        new_date = anchor + datetime.timedelta(seconds=rng.randint(low, high))
        proposed[record.hash] = new_date
        fixes.append(FixedCommit(record, anchor, new_date, new_date))

    return fixes
