import datetime
import logging
import shlex
from typing import Callable, Optional

from jinja2 import Template

from sweetlog.config import DEFAULT_COMMAND_TIMEOUT, DEFAULT_PUBLISH_RETRIES
from sweetlog.errors import CommandFailed, CommandTimeout, PublishFailed, RewriteFailed
from sweetlog.ledger import format_human_date
from sweetlog.shell import run_command

logger = logging.getLogger(__name__)

# git filter-branch otherwise pauses for ten seconds to print a warning
FILTER_BRANCH_TEMPLATE = """FILTER_BRANCH_SQUELCH_WARNING=1 git filter-branch -f --env-filter \\
    'if [ "$GIT_COMMIT" = "{{ commit_hash }}" ]
     then
         export GIT_AUTHOR_DATE="{{ author_date }}"
         export GIT_COMMITTER_DATE="{{ committer_date }}"
     fi'"""

PUSH_COMMAND = "git push --force"


def format_git_date(dt: datetime.datetime) -> str:
    """Format a datetime in the ISO 8601 format that Git expects."""
    if not dt.tzinfo:
        # Use local timezone if none provided
        dt = dt.astimezone()
    return dt.isoformat()


def generate_filter_branch_command(
    commit_hash: str,
    author_date: datetime.datetime,
    committer_date: datetime.datetime,
) -> str:
    """
    Generate the git filter-branch command that rewrites the dates of one commit.

    Every other commit passes through the env filter unchanged, though its
    hash changes if it descends from the rewritten one.
    """
    template = Template(FILTER_BRANCH_TEMPLATE)
    return template.render(
        commit_hash=commit_hash,
        author_date=format_git_date(author_date),
        committer_date=format_git_date(committer_date),
    )


class GitRewriter:
    def __init__(
        self,
        path: str = ".",
        runner: Callable[..., str] = run_command,
        timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT,
    ):
        self.path = path
        self.runner = runner
        self.timeout = timeout

    def resolve(self, commit_hash: str) -> str:
        """Expand an abbreviated or symbolic name to the full commit hash.

        The env filter compares against $GIT_COMMIT verbatim, so anything
        but the full hash would match nothing and rewrite nothing.
        """
        command = "git rev-parse --verify --quiet " + shlex.quote(f"{commit_hash}^{{commit}}")
        try:
            full_hash = self.runner(command, cwd=self.path, timeout=self.timeout).strip()
        except (CommandFailed, CommandTimeout) as e:
            raise RewriteFailed(f"Unknown commit {commit_hash} in {self.path}: {e}")
        if not full_hash:
            raise RewriteFailed(f"Unknown commit {commit_hash} in {self.path}")
        return full_hash

    def rewrite(
        self,
        commit_hash: str,
        author_date: datetime.datetime,
        committer_date: datetime.datetime,
    ) -> None:
        full_hash = self.resolve(commit_hash)
        command = generate_filter_branch_command(full_hash, author_date, committer_date)
        logger.info("Rewriting %s to %s", commit_hash, format_git_date(author_date))
        try:
            self.runner(command, cwd=self.path, timeout=self.timeout)
        except CommandTimeout as e:
            # A killed filter-branch may leave refs half rewritten, never retry
            raise RewriteFailed(
                f"Rewrite of {commit_hash} ({format_human_date(author_date)}) timed out: {e}"
            )
        except CommandFailed as e:
            raise RewriteFailed(
                f"Rewrite of {commit_hash} ({format_human_date(author_date)}) failed: {e}"
            )


class GitPublisher:
    def __init__(
        self,
        path: str = ".",
        runner: Callable[..., str] = run_command,
        timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT,
        retries: int = DEFAULT_PUBLISH_RETRIES,
    ):
        self.path = path
        self.runner = runner
        self.timeout = timeout
        self.retries = max(1, retries)

    def publish(self) -> None:
        for attempt in range(1, self.retries + 1):
            try:
                self.runner(PUSH_COMMAND, cwd=self.path, timeout=self.timeout)
                return
            except CommandTimeout as e:
                logger.warning("git push timed out (attempt %d of %d)", attempt, self.retries)
                if attempt == self.retries:
                    raise PublishFailed(f"Force push timed out: {e}")
            except CommandFailed as e:
                raise PublishFailed(f"Force push failed: {e}")
