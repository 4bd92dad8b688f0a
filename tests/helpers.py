import datetime
import random

from sweetlog.errors import PublishFailed, RewriteFailed
from sweetlog.ledger import CommitRecord, Ledger

TZ = datetime.timezone(datetime.timedelta(hours=2))

# 2024-01-15 is a Monday
MONDAY = datetime.date(2024, 1, 15)


def at(day_offset, hour, minute=0, second=0, tz=TZ):
    day = MONDAY + datetime.timedelta(days=day_offset)
    return datetime.datetime(day.year, day.month, day.day, hour, minute, second, tzinfo=tz)


def record(commit_hash, date, message="", committer_date=None):
    return CommitRecord(
        hash=commit_hash,
        author_date=date,
        committer_date=committer_date or date,
        message=message,
        author_name="Dev",
        author_email="dev@example.com",
    )


class FixedRandom(random.Random):
    """Returns the same jitter every time."""

    def __init__(self, value):
        super().__init__(0)
        self.value = value

    def randint(self, a, b):
        assert a <= self.value <= b
        return self.value


class FakeRepository:
    """In-memory history; rewriting a commit renames it and every later one."""

    def __init__(self, records):
        self.records = list(records)
        self.loads = 0
        self.rewrites = []
        self.generation = 0

    def load(self):
        self.loads += 1
        return Ledger(self.records)

    def rewrite(self, commit_hash, author_date, committer_date):
        self.rewrites.append((commit_hash, author_date, committer_date))
        hashes = [r.hash for r in self.records]
        if commit_hash not in hashes:
            raise RewriteFailed(f"unknown commit {commit_hash}")
        self.generation += 1
        position = hashes.index(commit_hash)
        rewritten = []
        for index, r in enumerate(self.records):
            if index < position:
                rewritten.append(r)
                continue
            new_hash = f"{r.hash.split('~')[0]}~{self.generation}"
            if index == position:
                rewritten.append(CommitRecord(new_hash, author_date, committer_date, r.message))
            else:
                rewritten.append(CommitRecord(new_hash, r.author_date, r.committer_date, r.message))
        self.records = rewritten


class FakePublisher:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = 0

    def publish(self):
        self.calls += 1
        if self.fail:
            raise PublishFailed("remote rejected")
