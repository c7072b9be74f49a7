"""Royalty analytics engine: one pure call from request to payload.

The caller resolves identity, loads entities and any previous-period
figures, then hands a plain ``EngineRequest`` (or its camelCase mapping)
to ``run_engine``. Nothing here touches storage, logs, or keeps state
between calls.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Any, Mapping

import numpy as np
import pandas as pd

from .aggregation import build_bucket_table, projection_totals, rollup
from .bucketing import add_months, build_buckets, month_steps, select_granularity
from .config import EngineConfig, default_engine_config
from .distribution import breakdown, category_breakdown, distribute
from .errors import EmptyEntitySetError, InvalidRangeError, NonFiniteValueError
from .scenarios import default_scenarios, run_scenarios
from .series import generate_series, make_rng
from .summary import assert_finite, entity_performance, summarize
from .types import GRANULARITIES, MODES, DistributionSlice, Entity, EngineRequest, EngineResult, ScenarioSpec

HISTORICAL_PERIODS = ("7d", "30d", "90d", "6m", "1y", "2y", "ytd")
FORECAST_PERIODS = {"3m": 3, "6m": 6, "12m": 12, "24m": 24, "5y": 60}
RECORD_BREAKDOWNS = {"platform": "platforms", "territory": "territories"}


def resolve_window(period: str | None, today: date | None = None, mode: str = "historical") -> tuple[date, date]:
    """Map a dashboard period code to a ``(start, end)`` window.

    Historical codes look back from ``today``; forecast codes start next
    month and run for the coded number of months. Unknown codes fall back
    to one year back or twelve months ahead.
    """
    today = today or date.today()
    if mode == "forecast":
        months = FORECAST_PERIODS.get(period or "", 12)
        return add_months(today, 1), add_months(today, months)

    if period in ("7d", "30d", "90d"):
        return today - timedelta(days=int(period[:-1])), today
    if period == "6m":
        return add_months(today, -6), today
    if period == "2y":
        return add_months(today, -24), today
    if period == "ytd":
        return date(today.year, 1, 1), today
    return add_months(today, -12), today


def filter_entities(entities: list[Entity], query: str | None) -> list[Entity]:
    if not query:
        return list(entities)
    q = query.lower()
    return [e for e in entities if q in e.name.lower()]


def require_entities(entities: list[Entity]) -> list[Entity]:
    """For callers that treat "no entities" as a malformed request."""
    if not entities:
        raise EmptyEntitySetError()
    return entities


def _get(raw: Mapping[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    if camel in raw:
        return raw[camel]
    return raw.get(snake, default)


def _opt_float(value: Any) -> float | None:
    return None if value is None else float(value)


def entity_from_mapping(raw: Mapping[str, Any]) -> Entity:
    return Entity(
        id=str(raw["id"]),
        name=str(raw.get("name", raw["id"])),
        category=str(raw.get("category", "")),
        annual_growth_rate_percent=float(_get(raw, "annualGrowthRatePercent", "annual_growth_rate_percent", 0.0)),
        anchor_value=_opt_float(_get(raw, "anchorValue", "anchor_value")),
        previous_value=_opt_float(_get(raw, "previousValue", "previous_value")),
    )


def scenario_from_mapping(raw: Mapping[str, Any]) -> ScenarioSpec:
    return ScenarioSpec(
        name=str(raw["name"]),
        probability_weight=float(_get(raw, "probabilityWeight", "probability_weight", 0.0)),
        growth_adjustment_factor=float(_get(raw, "growthAdjustmentFactor", "growth_adjustment_factor", 1.0)),
    )


def request_from_mapping(raw: Mapping[str, Any]) -> EngineRequest:
    mode = str(raw.get("mode", "forecast"))
    if mode not in MODES:
        raise ValueError(f"Unknown mode '{mode}'. Known: {list(MODES)}")
    granularity = raw.get("granularity")
    if granularity is not None and granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity '{granularity}'. Known: {list(GRANULARITIES)}")
    scenarios_raw = raw.get("scenarios")
    return EngineRequest(
        window_start=pd.Timestamp(_get(raw, "windowStart", "window_start")).date(),
        window_end=pd.Timestamp(_get(raw, "windowEnd", "window_end")).date(),
        entities=[entity_from_mapping(e) for e in raw.get("entities", []) or []],
        mode=mode,  # type: ignore[arg-type]
        granularity=granularity,
        scenarios=[scenario_from_mapping(s) for s in scenarios_raw] if scenarios_raw is not None else None,
        entity_filter=_get(raw, "entityFilter", "entity_filter"),
        previous_total=float(_get(raw, "previousTotal", "previous_total", 0.0) or 0.0),
        revenue_records=_get(raw, "revenueRecords", "revenue_records"),
    )


def _distribution(request: EngineRequest, entities: list[Entity], per_entity: Mapping[str, float]) -> dict[str, list[DistributionSlice]]:
    out = {
        "categories": category_breakdown(entities, per_entity),
        "projects": distribute({"label": e.name, "value": per_entity.get(e.id, 0.0)} for e in entities),
    }
    records = request.revenue_records or []
    if records:
        present = set().union(*(r.keys() for r in records))
        for key, name in RECORD_BREAKDOWNS.items():
            if key in present:
                out[name] = breakdown(records, by=key)
    return out


def run_engine(
    request: EngineRequest,
    config: EngineConfig | None = None,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
) -> EngineResult:
    config = config or default_engine_config()
    start, end = request.window_start, request.window_end
    if start > end:
        raise InvalidRangeError(start, end)
    if not math.isfinite(request.previous_total):
        raise NonFiniteValueError("previous_total", request.previous_total)

    entities = filter_entities(request.entities, request.entity_filter)
    ids = [e.id for e in entities]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Duplicate entity ids: {sorted({i for i in ids if ids.count(i) > 1})}")

    granularity = request.granularity or select_granularity(start, end, config)
    starts = build_buckets(start, end, granularity, config)

    rng = rng if rng is not None else make_rng(seed)
    series_rng, scenario_rng = rng.spawn(2)
    # One child stream per entity: entities are independent of each other.
    series_by_entity = {
        e.id: generate_series(e, starts, request.mode, child, config, granularity)
        for e, child in zip(entities, series_rng.spawn(len(entities)))
    }

    buckets = build_bucket_table(entities, starts, series_by_entity, granularity)
    totals = projection_totals(buckets, ids, config)

    scenarios = None
    if request.mode == "forecast" or request.scenarios is not None:
        scenarios = run_scenarios(
            entities,
            month_steps(start, end),
            request.scenarios if request.scenarios is not None else default_scenarios(config),
            rng=scenario_rng,
            start=start,
            config=config,
        )

    result = EngineResult(
        mode=request.mode,
        granularity=granularity,
        window_start=start,
        window_end=end,
        entity_ids=ids,
        buckets=buckets,
        quarterly=rollup(buckets, "quarter", ids),
        annual=rollup(buckets, "year", ids),
        totals=totals,
        summary=summarize(totals.total, request.previous_total),
        distribution=_distribution(request, entities, totals.per_entity),
        scenarios=scenarios,
        performance=entity_performance(entities, totals.per_entity),
    )
    assert_finite(result.to_dict())
    return result
