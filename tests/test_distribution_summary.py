"""Tests for percentage distributions and period summaries."""

from __future__ import annotations

import math

import numpy as np
import pytest

from royaltyforecast.distribution import breakdown, category_breakdown, distribute
from royaltyforecast.errors import NonFiniteValueError
from royaltyforecast.summary import assert_finite, entity_performance, summarize
from royaltyforecast.types import Entity


class TestDistribute:
    def test_simple_split_keeps_input_order(self):
        out = distribute([{"label": "Spotify", "value": 25.0}, {"label": "Netflix", "value": 75.0}])
        assert [(s.label, s.value, s.percentage) for s in out] == [("Spotify", 25.0, 25.0), ("Netflix", 75.0, 75.0)]

    def test_zero_total_gives_zero_percentages(self):
        out = distribute([{"label": "a", "value": 0.0}, {"label": "b", "value": 0.0}])
        assert [s.percentage for s in out] == [0.0, 0.0]

    def test_empty_input(self):
        assert distribute([]) == []

    def test_thirds_sum_to_exactly_100(self):
        out = distribute([{"label": x, "value": 1.0} for x in "abc"])
        assert [s.percentage for s in out] == [33.34, 33.33, 33.33]
        assert sum(s.percentage for s in out) == pytest.approx(100.0, abs=1e-9)

    @pytest.mark.parametrize("seed", range(10))
    def test_random_slices_normalise(self, seed):
        rng = np.random.default_rng(seed)
        values = rng.uniform(1, 50_000, size=7)
        out = distribute({"label": f"s{i}", "value": float(v)} for i, v in enumerate(values))
        assert sum(s.percentage for s in out) == pytest.approx(100.0, abs=0.01)
        for s, v in zip(out, values):
            assert s.percentage == pytest.approx(v / values.sum() * 100, abs=0.01)

    def test_sort_by_value_descending(self):
        out = distribute(
            [{"label": "a", "value": 1.0}, {"label": "b", "value": 3.0}, {"label": "c", "value": 2.0}], sort="value"
        )
        assert [s.label for s in out] == ["b", "c", "a"]

    def test_sort_by_label(self):
        out = distribute([{"label": "z", "value": 1.0}, {"label": "m", "value": 1.0}], sort="label")
        assert [s.label for s in out] == ["m", "z"]

    def test_unknown_sort_raises(self):
        with pytest.raises(ValueError):
            distribute([{"label": "a", "value": 1.0}], sort="size")  # type: ignore[arg-type]


class TestBreakdown:
    RECORDS = [
        {"platform": "Spotify", "territory": "Europe", "category": "Music", "amount": 100.0},
        {"platform": "Netflix", "territory": "Asia", "category": "Film", "amount": 300.0},
        {"platform": "Spotify", "territory": "Asia", "category": "Music", "amount": 100.0},
    ]

    def test_groups_in_first_seen_order(self):
        out = breakdown(self.RECORDS, by="platform")
        assert [(s.label, s.value, s.percentage) for s in out] == [("Spotify", 200.0, 40.0), ("Netflix", 300.0, 60.0)]

    def test_territory(self):
        out = breakdown(self.RECORDS, by="territory")
        assert [s.label for s in out] == ["Europe", "Asia"]
        assert out[1].percentage == 80.0

    def test_missing_key_raises(self):
        with pytest.raises(ValueError, match="no 'currency'"):
            breakdown(self.RECORDS, by="currency")

    def test_no_records(self):
        assert breakdown([], by="platform") == []

    def test_category_breakdown_from_entity_totals(self):
        entities = [
            Entity("p1", "One", "Film", 0.0),
            Entity("p2", "Two", "Music", 0.0),
            Entity("p3", "Three", "Film", 0.0),
        ]
        out = category_breakdown(entities, {"p1": 10.0, "p2": 20.0, "p3": 10.0})
        assert [(s.label, s.value, s.percentage) for s in out] == [("Film", 20.0, 50.0), ("Music", 20.0, 50.0)]


class TestSummarize:
    def test_growth(self):
        s = summarize(120.0, 100.0)
        assert (s.current_total, s.previous_total, s.absolute_change, s.percentage_change) == (120.0, 100.0, 20.0, 20.0)

    def test_decline(self):
        s = summarize(80.0, 100.0)
        assert s.absolute_change == -20.0
        assert s.percentage_change == -20.0

    def test_zero_previous_reports_zero_percent(self):
        s = summarize(500.0, 0.0)
        assert s.percentage_change == 0
        assert math.isfinite(s.percentage_change)
        assert s.absolute_change == 500.0

    def test_rounded_to_cents(self):
        s = summarize(100.0, 30.0)
        assert s.percentage_change == 233.33

    @pytest.mark.parametrize("current,previous", [(1.0, float("inf")), (float("nan"), 1.0)])
    def test_non_finite_inputs_rejected(self, current, previous):
        with pytest.raises(NonFiniteValueError):
            summarize(current, previous)

    def test_entity_performance(self):
        entities = [
            Entity("p1", "One", "Film", 0.0, previous_value=50.0),
            Entity("p2", "Two", "Music", 0.0),
        ]
        rows = entity_performance(entities, {"p1": 75.0, "p2": 10.0})
        assert rows[0]["percentageChange"] == 50.0
        assert rows[1]["previousTotal"] == 0.0
        assert rows[1]["percentageChange"] == 0.0


class TestAssertFinite:
    def test_passes_on_clean_payload(self):
        assert_finite({"a": [1.0, {"b": 2.5}], "c": "text"})

    def test_flags_nan_with_path(self):
        with pytest.raises(AssertionError, match=r"result.a\[1\]"):
            assert_finite({"a": [1.0, float("nan")]})
