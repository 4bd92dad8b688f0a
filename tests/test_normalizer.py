import logging
import random

import pytest

from sweetlog.errors import AnchorNotFound, BoundaryUnfixable
from sweetlog.ledger import Ledger
from sweetlog.normalizer import BoundaryMode, normalize, previous_allowed_timestamp
from sweetlog.policy import WorkHoursPolicy
from tests.helpers import at, record

POLICY = WorkHoursPolicy()


def seconds(delta):
    return delta.total_seconds()


class TestNormalize:
    def test_clean_ledger_needs_no_fix(self):
        ledger = Ledger([record("a", at(0, 8)), record("b", at(0, 20)), record("c", at(5, 11))])
        assert normalize(ledger, POLICY) == []

    def test_empty_ledger(self):
        assert normalize(Ledger(), POLICY) == []

    def test_chained_fixes(self, fixed_random):
        # h1 Mon 08:00 allowed, h2 Mon 10:00 and h3 Mon 10:05 disallowed
        ledger = Ledger([
            record("h1", at(0, 8)),
            record("h2", at(0, 10)),
            record("h3", at(0, 10, 5)),
        ])
        fixes = normalize(ledger, POLICY, rng=fixed_random)

        assert [fix.hash for fix in fixes] == ["h2", "h3"]
        h2, h3 = fixes
        assert h2.anchor == at(0, 8)
        assert h2.author_date_fixed == at(0, 8, 0, 30)
        assert h3.anchor == h2.author_date_fixed
        assert h3.author_date_fixed == at(0, 8, 1, 0)
        assert h3.author_date_fixed > h2.author_date_fixed

    def test_author_and_committer_dates_match(self, fixed_random):
        ledger = Ledger([
            record("a", at(0, 8)),
            record("b", at(0, 11), committer_date=at(0, 12)),
        ])
        (fix,) = normalize(ledger, POLICY, rng=fixed_random)
        assert fix.author_date_fixed == fix.committer_date_fixed

    def test_long_run_is_strictly_increasing_and_chained(self):
        ledger = Ledger(
            [record("start", at(1, 7))]
            + [record(f"c{minute}", at(1, 10, minute)) for minute in range(20)]
        )
        fixes = normalize(ledger, POLICY, rng=random.Random(1234))

        assert len(fixes) == 20
        assert fixes[0].anchor == at(1, 7)
        for previous, current in zip(fixes, fixes[1:]):
            assert current.anchor == previous.author_date_fixed
            assert current.author_date_fixed > previous.author_date_fixed

    def test_jitter_stays_in_bounds(self):
        ledger = Ledger(
            [record("start", at(2, 6))]
            + [record(f"c{i}", at(2, 12, i)) for i in range(50)]
        )
        for fix in normalize(ledger, POLICY, rng=random.Random(7), jitter=(10, 50)):
            gap = seconds(fix.author_date_fixed - fix.anchor)
            assert 10 <= gap <= 50
            assert fix.author_date_fixed > fix.anchor

    def test_anchor_is_closest_allowed_commit(self, fixed_random):
        ledger = Ledger([
            record("a", at(0, 7)),
            record("b", at(0, 10)),
            record("c", at(0, 20)),
            record("d", at(1, 9, 30)),
        ])
        fixes = normalize(ledger, POLICY, rng=fixed_random)

        assert [fix.hash for fix in fixes] == ["b", "d"]
        # d must follow c, not jump back to b's fix or a
        assert fixes[1].anchor == at(0, 20)
        assert fixes[1].author_date_fixed > ledger[2].author_date

    def test_does_not_mutate_records(self, fixed_random):
        records = [record("a", at(0, 8)), record("b", at(0, 10))]
        ledger = Ledger(records)
        (fix,) = normalize(ledger, POLICY, rng=fixed_random)
        assert ledger[1].author_date == at(0, 10)
        assert fix.record is records[1]

    def test_idempotent_once_rewritten(self, fixed_random):
        ledger = Ledger([record("h1", at(0, 8)), record("h2", at(0, 10)), record("h3", at(0, 10, 5))])
        fixes = {fix.hash: fix.author_date_fixed for fix in normalize(ledger, POLICY, rng=fixed_random)}

        rewritten = Ledger(
            record(r.hash, fixes.get(r.hash, r.author_date)) for r in ledger
        )
        assert normalize(rewritten, POLICY, rng=fixed_random) == []

    def test_uses_configured_upper_bound(self, fixed_random):
        ledger = Ledger([record("a", at(0, 8)), record("b", at(0, 19, 10))])
        assert normalize(ledger, WorkHoursPolicy(work_hours=(9, 18)), rng=fixed_random) == []
        assert len(normalize(ledger, WorkHoursPolicy(work_hours=(9, 19)), rng=fixed_random)) == 1

    @pytest.mark.parametrize("jitter", [(0, 10), (20, 10), (-5, 5)])
    def test_invalid_jitter(self, jitter):
        with pytest.raises(ValueError):
            normalize(Ledger(), POLICY, jitter=jitter)


class TestBoundary:
    def test_first_commit_skipped_with_warning(self, caplog):
        ledger = Ledger([record("h1", at(0, 10))])
        with caplog.at_level(logging.WARNING, logger="sweetlog.normalizer"):
            fixes = normalize(ledger, POLICY, boundary=BoundaryMode.SKIP)
        assert fixes == []
        assert "h1" in caplog.text

    def test_first_commit_aborts(self):
        ledger = Ledger([record("h1", at(0, 10))])
        with pytest.raises(BoundaryUnfixable, match="h1"):
            normalize(ledger, POLICY, boundary=BoundaryMode.ABORT)

    def test_boundary_mode_accepts_strings(self):
        ledger = Ledger([record("h1", at(0, 10))])
        with pytest.raises(BoundaryUnfixable):
            normalize(ledger, POLICY, boundary="abort")

    def test_run_after_skipped_boundary_cannot_be_anchored(self):
        # h2 follows an unfixed disallowed h1, nothing earlier to anchor to
        ledger = Ledger([record("h1", at(0, 10)), record("h2", at(0, 11))])
        with pytest.raises(AnchorNotFound, match="h2"):
            normalize(ledger, POLICY, boundary=BoundaryMode.SKIP)


class TestPreviousAllowedTimestamp:
    def test_prefers_proposed_date(self):
        ledger = Ledger([record("a", at(0, 7)), record("b", at(0, 10)), record("c", at(0, 11))])
        proposed = {"b": at(0, 7, 0, 40)}
        assert previous_allowed_timestamp(ledger, 2, POLICY, proposed) == at(0, 7, 0, 40)

    def test_falls_back_to_original(self):
        ledger = Ledger([record("a", at(0, 7)), record("b", at(0, 10)), record("c", at(0, 11))])
        assert previous_allowed_timestamp(ledger, 2, POLICY, {}) == at(0, 7)

    def test_not_found(self):
        ledger = Ledger([record("a", at(0, 10)), record("b", at(0, 11))])
        with pytest.raises(AnchorNotFound):
            previous_allowed_timestamp(ledger, 1, POLICY, {})

    def test_index_zero_rejected(self):
        ledger = Ledger([record("a", at(0, 10))])
        with pytest.raises(ValueError):
            previous_allowed_timestamp(ledger, 0, POLICY, {})
