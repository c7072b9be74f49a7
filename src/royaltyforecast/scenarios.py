from __future__ import annotations

from datetime import date

import numpy as np

from .bucketing import add_months
from .config import EngineConfig
from .series import forward_values, make_rng
from .types import Entity, EntityValues, ScenarioResult, ScenarioSpec

DEFAULT_SCENARIOS: list[ScenarioSpec] = [
    ScenarioSpec(name="Base Case", probability_weight=0.6, growth_adjustment_factor=1.0),
    ScenarioSpec(name="Optimistic", probability_weight=0.2, growth_adjustment_factor=1.5),
    ScenarioSpec(name="Pessimistic", probability_weight=0.2, growth_adjustment_factor=0.5),
]


def default_scenarios(config: EngineConfig | None = None) -> list[ScenarioSpec]:
    if config is not None and config.scenarios:
        return list(config.scenarios)
    return list(DEFAULT_SCENARIOS)


def run_scenario(
    entities: list[Entity],
    starts: list[date],
    scenario: ScenarioSpec,
    rng: np.random.Generator,
    config: EngineConfig,
) -> ScenarioResult:
    per_entity = EntityValues()
    for entity in entities:
        values = forward_values(
            entity, starts, rng, config, granularity="month", growth_adjustment=scenario.growth_adjustment_factor
        )
        per_entity.set(entity.id, sum(values))
    # Full precision until here; cents only on the way out
    return ScenarioResult(
        name=scenario.name,
        probability_weight=scenario.probability_weight,
        growth_adjustment_factor=scenario.growth_adjustment_factor,
        total_projection=round(per_entity.total, 2),
        per_entity=per_entity.rounded().to_dict(),
    )


def run_scenarios(
    entities: list[Entity],
    months: int,
    scenarios: list[ScenarioSpec] | None = None,
    rng: np.random.Generator | None = None,
    start: date | None = None,
    config: EngineConfig | None = None,
) -> list[ScenarioResult]:
    """Project every entity ``months`` monthly steps under each scenario.

    Each scenario gets its own child generator, so base-noise is drawn
    independently per scenario and adding or reweighting one scenario does
    not shift the draws of another. Probability weights are carried through
    untouched; they are annotations, not a distribution.
    """
    if months < 0:
        raise ValueError(f"months must be >= 0, got {months}")
    config = config or EngineConfig()
    scenarios = default_scenarios(config) if scenarios is None else scenarios
    rng = rng if rng is not None else make_rng()
    start = start or add_months(date.today().replace(day=1), 1)
    starts = [add_months(start, k) for k in range(months)]

    children = rng.spawn(len(scenarios))
    return [run_scenario(entities, starts, spec, child, config) for spec, child in zip(scenarios, children)]
