from __future__ import annotations

import math
from typing import Any, Mapping

from .errors import NonFiniteValueError
from .types import Entity, PeriodSummary


def summarize(current: float, previous: float) -> PeriodSummary:
    """Current vs previous period; no prior revenue reports 0% change."""
    for name, value in (("current total", current), ("previous total", previous)):
        if not math.isfinite(value):
            raise NonFiniteValueError(name, value)
    change = current - previous
    pct = change / previous * 100.0 if previous > 0 else 0.0
    return PeriodSummary(
        current_total=round(current, 2),
        previous_total=round(previous, 2),
        absolute_change=round(change, 2),
        percentage_change=round(pct, 2),
    )


def entity_performance(entities: list[Entity], per_entity_totals: Mapping[str, float]) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for entity in entities:
        previous = entity.previous_value if entity.previous_value is not None else 0.0
        if not math.isfinite(previous):
            raise NonFiniteValueError(f"previous_value for entity '{entity.id}'", previous)
        s = summarize(per_entity_totals.get(entity.id, 0.0), previous)
        rows.append({"id": entity.id, "name": entity.name, "category": entity.category, **s.to_dict()})
    return rows


def assert_finite(payload: Any, path: str = "result") -> None:
    """Raise AssertionError if any float anywhere in ``payload`` is NaN or infinite."""
    if isinstance(payload, float):
        if not math.isfinite(payload):
            raise AssertionError(f"Non-finite value at {path}: {payload}")
    elif isinstance(payload, Mapping):
        for key, value in payload.items():
            assert_finite(value, f"{path}.{key}")
    elif isinstance(payload, (list, tuple)):
        for i, value in enumerate(payload):
            assert_finite(value, f"{path}[{i}]")
