"""Tests for bucket tables, quarterly/annual rollups and projection totals."""

from __future__ import annotations

import random
from datetime import date

import pytest

from royaltyforecast.aggregation import build_bucket_table, buckets_frame, projection_totals, rollup
from royaltyforecast.bucketing import add_months, build_buckets
from royaltyforecast.config import EngineConfig
from royaltyforecast.types import Bucket, Entity, EntityValues


def _monthly(start: date, months: int, values: dict[str, float]) -> list[Bucket]:
    return [
        Bucket(start=add_months(start, k), granularity="month", values=EntityValues(values)) for k in range(months)
    ]


class TestEntityValues:
    def test_total_tracks_every_mutation(self):
        ev = EntityValues({"a": 1.5, "b": 2.0})
        assert ev.total == 3.5
        ev.set("a", 4.0)
        assert ev.total == 6.0
        ev.add("c", 1.0)
        assert ev.total == 7.0
        ev.merge(EntityValues({"a": 1.0, "d": 2.0}))
        assert ev.total == 10.0
        ev.ensure(["e"])
        assert ev["e"] == 0.0
        assert ev.total == 10.0

    def test_bucket_total_matches_values(self):
        b = Bucket(start=date(2025, 1, 1), granularity="day", values=EntityValues({"a": 0.1, "b": 0.2}))
        assert b.total == 0.3


class TestBucketTable:
    def test_series_land_in_their_buckets(self):
        starts = build_buckets(date(2025, 1, 1), date(2025, 3, 1), "month")
        entities = [
            Entity("p1", "One", "Film", 0.0),
            Entity("p2", "Two", "Music", 0.0),
        ]
        series = {
            "p1": [(s, 10.0) for s in starts],
            "p2": [(s, 5.25) for s in starts],
        }
        buckets = build_bucket_table(entities, starts, series, "month")
        assert [b.start for b in buckets] == starts
        assert all(b.total == 15.25 for b in buckets)
        assert buckets[0].values.to_dict() == {"p1": 10.0, "p2": 5.25}

    def test_point_off_grid_raises(self):
        starts = [date(2025, 1, 1)]
        entities = [Entity("p1", "One", "Film", 0.0)]
        with pytest.raises(ValueError, match="outside the bucket grid"):
            build_bucket_table(entities, starts, {"p1": [(date(2025, 1, 2), 1.0)]}, "day")

    def test_frame_fills_missing_entities_with_zero(self):
        buckets = [
            Bucket(date(2025, 1, 1), "month", EntityValues({"a": 1.0})),
            Bucket(date(2025, 2, 1), "month", EntityValues({"a": 1.0, "b": 2.0})),
        ]
        frame = buckets_frame(buckets, ["a", "b"])
        assert list(frame.columns) == ["a", "b"]
        assert frame.loc[date(2025, 1, 1), "b"] == 0.0


class TestQuarterlyRollup:
    def test_full_year_quarters(self):
        buckets = _monthly(date(2025, 1, 1), 12, {"p1": 100.0, "p2": 50.0})
        quarters = rollup(buckets, "quarter")

        assert [q.label for q in quarters] == ["2025-Q1", "2025-Q2", "2025-Q3", "2025-Q4"]
        assert [q.quarter for q in quarters] == [1, 2, 3, 4]
        for q in quarters:
            assert q.values.to_dict() == {"p1": 300.0, "p2": 150.0}
            assert q.total == 450.0
        assert quarters[1].start == date(2025, 4, 1)

    def test_entity_introduced_mid_range_contributes_zero_earlier(self):
        early = _monthly(date(2025, 1, 1), 6, {"p1": 10.0})
        late = _monthly(date(2025, 7, 1), 6, {"p1": 10.0, "p2": 7.0})
        quarters = rollup(early + late, "quarter", entity_ids=["p1", "p2"])

        assert quarters[0].values["p2"] == 0.0
        assert quarters[0].total == 30.0
        assert quarters[2].values["p2"] == 21.0
        assert quarters[2].total == 51.0

    def test_total_recomputed_from_entity_sums(self):
        buckets = _monthly(date(2025, 1, 1), 3, {"p1": 0.1, "p2": 0.2})
        (q1,) = rollup(buckets, "quarter")
        assert q1.total == round(sum(q1.values.values()), 2)
        assert q1.total == pytest.approx(0.9)

    def test_year_boundary_sorts_numerically(self):
        buckets = _monthly(date(2025, 10, 1), 6, {"p1": 1.0})
        random.Random(3).shuffle(buckets)
        quarters = rollup(buckets, "quarter")

        assert [q.label for q in quarters] == ["2025-Q4", "2026-Q1"]
        keys = [q.sort_key for q in quarters]
        assert keys == sorted(keys)

    def test_partial_quarters_kept_as_is(self):
        starts = build_buckets(date(2025, 2, 15), date(2025, 4, 10), "week")
        buckets = [Bucket(s, "week", EntityValues({"p1": 1.0})) for s in starts]
        quarters = rollup(buckets, "quarter")

        assert [q.label for q in quarters] == ["2025-Q1", "2025-Q2"]
        assert sum(q.total for q in quarters) == len(starts)

    def test_weekly_bucket_assigned_by_start_date(self):
        # Week starting Mar 29 spills into April but belongs to Q1
        buckets = [Bucket(date(2025, 3, 29), "week", EntityValues({"p1": 5.0}))]
        (q,) = rollup(buckets, "quarter")
        assert q.label == "2025-Q1"

    def test_empty_entity_set_still_lists_periods(self):
        buckets = _monthly(date(2025, 1, 1), 4, {})
        quarters = rollup(buckets, "quarter", entity_ids=[])
        assert [q.label for q in quarters] == ["2025-Q1", "2025-Q2"]
        assert all(q.total == 0.0 for q in quarters)

    def test_no_buckets(self):
        assert rollup([], "quarter") == []

    def test_unknown_target_raises(self):
        with pytest.raises(ValueError, match="Unknown rollup target"):
            rollup(_monthly(date(2025, 1, 1), 1, {"p1": 1.0}), "month")  # type: ignore[arg-type]


class TestAnnualRollup:
    def test_partial_years(self):
        buckets = _monthly(date(2025, 11, 1), 4, {"p1": 2.5})
        years = rollup(buckets, "year")

        assert [y.label for y in years] == ["2025", "2026"]
        assert [y.quarter for y in years] == [None, None]
        assert [y.total for y in years] == [5.0, 5.0]

    def test_quarters_conserve_into_years(self):
        rng = random.Random(17)
        buckets = [
            Bucket(
                add_months(date(2024, 5, 1), k),
                "month",
                EntityValues({"p1": round(rng.uniform(1, 1000), 2), "p2": round(rng.uniform(1, 1000), 2)}),
            )
            for k in range(20)
        ]
        quarters = rollup(buckets, "quarter")
        years = rollup(buckets, "year")

        for y in years:
            q_sum = sum(q.total for q in quarters if q.year == y.year)
            assert q_sum == pytest.approx(y.total, abs=0.05)
            for entity_id in ("p1", "p2"):
                q_entity = sum(q.values[entity_id] for q in quarters if q.year == y.year)
                assert q_entity == pytest.approx(y.values[entity_id], abs=0.05)

        for period in quarters + years:
            assert period.total == pytest.approx(sum(period.values.values()), abs=0.01)


class TestProjectionTotals:
    def test_totals_and_bands(self):
        buckets = _monthly(date(2025, 1, 1), 3, {"p1": 100.0, "p2": 50.0})
        totals = projection_totals(buckets, ["p1", "p2"], EngineConfig())

        assert totals.per_entity == {"p1": 300.0, "p2": 150.0}
        assert totals.total == 450.0
        assert totals.best_case == 540.0
        assert totals.worst_case == 360.0

    def test_unseen_entity_reports_zero(self):
        buckets = _monthly(date(2025, 1, 1), 2, {"p1": 1.0})
        totals = projection_totals(buckets, ["p1", "p2"])
        assert totals.per_entity["p2"] == 0.0
