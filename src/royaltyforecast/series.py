"""Per-entity series generation.

Two modes share the same output shape, a list of ``(bucket_start, value)``
pairs with values rounded to cents at emission:

* forward projection: ``base * (1 + monthly_rate) ** step * seasonal(month)``
  where the base is re-drawn every step and the monthly rate is the true
  monthly-compounded equivalent of the entity's annual rate;
* historical backfill: a noisy linear walk from a fraction of the entity's
  anchor value up to the anchor, with the last point pinned to the anchor.

All randomness comes from the ``numpy.random.Generator`` passed in.
"""

from __future__ import annotations

import math
from datetime import date

import numpy as np

from .config import EngineConfig
from .errors import InvalidGrowthRateError
from .types import Entity, Granularity, Mode

# Mean Gregorian month length, used to express day/week buckets in months
DAYS_PER_MONTH = 365.2425 / 12


def make_rng(seed: int | None = None) -> np.random.Generator:
    return np.random.default_rng(seed)


def monthly_rate(annual_rate_percent: float, entity_id: str | None = None) -> float:
    if not math.isfinite(annual_rate_percent) or annual_rate_percent <= -100.0:
        raise InvalidGrowthRateError(annual_rate_percent, entity_id)
    return (1.0 + annual_rate_percent / 100.0) ** (1.0 / 12.0) - 1.0


def growth_factor(rate: float, step: float) -> float:
    return (1.0 + rate) ** step


def seasonal_factor(month: int, rng: np.random.Generator, config: EngineConfig) -> float:
    """Multiplier for a calendar month (1-12): boosted in Q4, damped in Q1."""
    if 10 <= month <= 12:
        lo, hi = config.q4_range
    elif 1 <= month <= 3:
        lo, hi = config.q1_range
    else:
        return 1.0
    return _draw(rng, (lo, hi))


def _draw(rng: np.random.Generator, bounds: tuple[float, float]) -> float:
    lo, hi = bounds
    return float(rng.uniform(lo, hi)) if hi > lo else lo


def step_index(buckets: list[date], i: int, granularity: Granularity) -> float:
    if granularity == "month":
        return float(i)
    return (buckets[i] - buckets[0]).days / DAYS_PER_MONTH


def forward_values(
    entity: Entity,
    buckets: list[date],
    rng: np.random.Generator,
    config: EngineConfig,
    granularity: Granularity = "month",
    growth_adjustment: float = 1.0,
) -> list[float]:
    """Unrounded forward values, one per bucket; callers that accumulate sum these."""
    adjusted = entity.annual_growth_rate_percent * growth_adjustment
    rate = monthly_rate(adjusted, entity.id)

    out: list[float] = []
    for i, start in enumerate(buckets):
        base = _draw(rng, config.base_range)
        value = base * growth_factor(rate, step_index(buckets, i, granularity)) * seasonal_factor(start.month, rng, config)
        out.append(value)
    return out


def generate_forward_series(
    entity: Entity,
    buckets: list[date],
    rng: np.random.Generator,
    config: EngineConfig,
    granularity: Granularity = "month",
    growth_adjustment: float = 1.0,
) -> list[tuple[date, float]]:
    values = forward_values(entity, buckets, rng, config, granularity, growth_adjustment)
    return [(start, round(value, 2)) for start, value in zip(buckets, values)]


def generate_historical_series(
    entity: Entity,
    buckets: list[date],
    rng: np.random.Generator,
    config: EngineConfig,
) -> list[tuple[date, float]]:
    anchor = entity.anchor_value if entity.anchor_value is not None else config.default_anchor
    if not math.isfinite(anchor):
        raise ValueError(f"Anchor value for entity '{entity.id}' must be finite, got {anchor}")
    initial = anchor * config.initial_fraction
    n = len(buckets)

    out: list[tuple[date, float]] = []
    for i, start in enumerate(buckets):
        if i == n - 1:
            out.append((start, anchor))
            break
        trend = i / (n - 1)
        perturbation = float(rng.uniform(-config.noise_band, config.noise_band)) if config.noise_band > 0 else 0.0
        value = (initial + (anchor - initial) * trend) * (1.0 + perturbation)
        out.append((start, round(value, 2)))
    return out


def generate_series(
    entity: Entity,
    buckets: list[date],
    mode: Mode,
    rng: np.random.Generator,
    config: EngineConfig,
    granularity: Granularity = "month",
    growth_adjustment: float = 1.0,
) -> list[tuple[date, float]]:
    if mode == "historical":
        return generate_historical_series(entity, buckets, rng, config)
    if mode == "forecast":
        return generate_forward_series(entity, buckets, rng, config, granularity, growth_adjustment)
    raise ValueError(f"Unknown mode '{mode}'. Known: ['historical', 'forecast']")
