"""Repeat rewrite passes until no commit falls in the disallowed window.

Rewriting one commit with filter-branch changes the hash of every commit
after it, so a list of fixes is stale as soon as its first entry has been
applied. Each pass therefore applies a single fix and reloads the ledger
from the repository before computing the next one.
"""
import contextlib
import datetime
import logging
import random
import signal
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from sweetlog.config import SweetlogConfig
from sweetlog.errors import MaxPassesExceeded, PublishFailed
from sweetlog.git import GitPublisher, GitRewriter
from sweetlog.ledger import GitLedgerSource, Ledger, format_human_date
from sweetlog.normalizer import BoundaryMode, FixedCommit, normalize
from sweetlog.policy import WorkHoursPolicy

logger = logging.getLogger(__name__)


@dataclass
class DriverResult:
    passes: int = 0
    applied: List[FixedCommit] = field(default_factory=list)
    pending: List[FixedCommit] = field(default_factory=list)


@contextlib.contextmanager
def deferred_interrupt():
    """Hold back SIGINT until the block is done, then raise KeyboardInterrupt."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    received = []

    def handler(signum, frame):
        logger.warning("Interrupt received, stopping once the current rewrite is done")
        received.append(signum)

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)
    if received:
        raise KeyboardInterrupt


class FixedPointDriver:
    def __init__(
        self,
        source: GitLedgerSource,
        rewriter: GitRewriter,
        publisher: GitPublisher,
        policy: WorkHoursPolicy,
        config: Optional[SweetlogConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.source = source
        self.rewriter = rewriter
        self.publisher = publisher
        self.policy = policy
        self.config = config or SweetlogConfig()
        self.rng = rng or random.Random()

    def plan(self) -> Tuple[Ledger, List[FixedCommit]]:
        ledger = self.source.load()
        fixes = normalize(
            ledger,
            self.policy,
            rng=self.rng,
            jitter=self.config.jitter,
            boundary=BoundaryMode(self.config.boundary),
        )
        return ledger, fixes

    def run(
        self,
        dry_run: bool = False,
        on_pass: Optional[Callable[[int, Ledger, List[FixedCommit]], None]] = None,
        first_pass: Optional[Tuple[Ledger, List[FixedCommit]]] = None,
    ) -> DriverResult:
        """Run passes until the history is clean.

        `first_pass` is a plan the caller already holds (e.g. the one shown
        to the operator for confirmation); it is applied as-is instead of
        being recomputed with fresh jitter.
        """
        result = DriverResult()

        while True:
            if result.passes >= self.config.max_passes:
                raise MaxPassesExceeded(self.stuck_message(result))

            if first_pass is not None:
                ledger, fixes = first_pass
                first_pass = None
            else:
                ledger, fixes = self.plan()
            result.passes += 1
            logger.info("Pass %d: %d commit(s) to fix", result.passes, len(fixes))
            if on_pass:
                on_pass(result.passes, ledger, fixes)

            if dry_run or not fixes:
                result.pending = fixes
                return result

            fix = fixes[0]
            self.apply(fix.hash, fix.author_date_fixed, fix.committer_date_fixed)
            result.applied.append(fix)

    def stuck_message(self, result: DriverResult) -> str:
        message = f"History still has commits to fix after {result.passes} passes"
        if result.applied:
            fix = result.applied[-1]
            message += (
                f"; last fix was {fix.hash} "
                f"({format_human_date(fix.record.author_date)} -> "
                f"{format_human_date(fix.author_date_fixed)})"
            )
        return message + "; check the work hours and jitter settings"

    def fix_one_commit(self, commit_hash: str, new_date: datetime.datetime) -> None:
        """Rewrite a single named commit to `new_date` without scanning the log."""
        self.apply(commit_hash, new_date, new_date)

    def apply(
        self,
        commit_hash: str,
        author_date: datetime.datetime,
        committer_date: datetime.datetime,
    ) -> None:
        with deferred_interrupt():
            self.rewriter.rewrite(commit_hash, author_date, committer_date)
            if self.config.push:
                self.publish(commit_hash, author_date)

    def publish(self, commit_hash: str, author_date: datetime.datetime) -> None:
        try:
            self.publisher.publish()
        except PublishFailed as e:
            if not self.config.ignore_publish_errors:
                raise PublishFailed(
                    f"{e} (after rewriting {commit_hash}, {format_human_date(author_date)})"
                )
            logger.warning("Ignoring push failure: %s", e)
