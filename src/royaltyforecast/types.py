from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Iterator, Literal, Mapping

Granularity = Literal["day", "week", "month"]
RollupTarget = Literal["quarter", "year"]
Mode = Literal["historical", "forecast"]

GRANULARITIES: tuple[str, ...] = ("day", "week", "month")
MODES: tuple[str, ...] = ("historical", "forecast")


@dataclass(frozen=True)
class Entity:
    id: str
    name: str
    category: str
    annual_growth_rate_percent: float
    anchor_value: float | None = None  # known current value, used by historical backfill
    previous_value: float | None = None  # prior-period figure for performance summaries


class EntityValues:
    """Per-entity amounts with a total kept in step on every mutation."""

    __slots__ = ("_values", "_total")

    def __init__(self, values: Mapping[str, float] | None = None) -> None:
        self._values: dict[str, float] = {}
        self._total = 0.0
        if values:
            for entity_id, value in values.items():
                self._values[entity_id] = float(value)
            self._reconcile()

    def _reconcile(self) -> None:
        self._total = sum(self._values.values())

    @property
    def total(self) -> float:
        return self._total

    def set(self, entity_id: str, value: float) -> None:
        self._values[entity_id] = float(value)
        self._reconcile()

    def add(self, entity_id: str, value: float) -> None:
        self._values[entity_id] = self._values.get(entity_id, 0.0) + float(value)
        self._reconcile()

    def merge(self, other: "EntityValues") -> None:
        for entity_id, value in other.items():
            self._values[entity_id] = self._values.get(entity_id, 0.0) + value
        self._reconcile()

    def ensure(self, entity_ids: Iterable[str]) -> None:
        for entity_id in entity_ids:
            self._values.setdefault(entity_id, 0.0)
        self._reconcile()

    def rounded(self, ndigits: int = 2) -> "EntityValues":
        return EntityValues({k: round(v, ndigits) for k, v in self._values.items()})

    def get(self, entity_id: str, default: float = 0.0) -> float:
        return self._values.get(entity_id, default)

    def items(self):
        return self._values.items()

    def keys(self):
        return self._values.keys()

    def values(self):
        return self._values.values()

    def to_dict(self) -> dict[str, float]:
        return dict(self._values)

    def __getitem__(self, entity_id: str) -> float:
        return self._values[entity_id]

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"EntityValues({self._values!r}, total={self._total!r})"


@dataclass
class Bucket:
    start: date
    granularity: Granularity
    values: EntityValues = field(default_factory=EntityValues)

    @property
    def total(self) -> float:
        return round(self.values.total, 2)

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.start.isoformat(), "perEntity": self.values.to_dict(), "total": self.total}


@dataclass
class RollupPeriod:
    label: str
    year: int
    quarter: int | None
    start: date
    values: EntityValues = field(default_factory=EntityValues)

    @property
    def total(self) -> float:
        return round(self.values.total, 2)

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.year, self.quarter or 0)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"label": self.label, "year": self.year}
        if self.quarter is not None:
            out["quarter"] = f"Q{self.quarter}"
        out["perEntity"] = self.values.to_dict()
        out["total"] = self.total
        return out


@dataclass(frozen=True)
class ScenarioSpec:
    name: str
    probability_weight: float
    growth_adjustment_factor: float


@dataclass(frozen=True)
class ScenarioResult:
    name: str
    probability_weight: float
    growth_adjustment_factor: float
    total_projection: float
    per_entity: dict[str, float]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "probabilityWeight": self.probability_weight,
            "growthAdjustmentFactor": self.growth_adjustment_factor,
            "totalProjection": self.total_projection,
            "perEntity": dict(self.per_entity),
        }


@dataclass(frozen=True)
class DistributionSlice:
    label: str
    value: float
    percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "value": self.value, "percentage": self.percentage}


@dataclass(frozen=True)
class PeriodSummary:
    current_total: float
    previous_total: float
    absolute_change: float
    percentage_change: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentTotal": self.current_total,
            "previousTotal": self.previous_total,
            "absoluteChange": self.absolute_change,
            "percentageChange": self.percentage_change,
        }


@dataclass(frozen=True)
class ProjectionTotals:
    total: float
    best_case: float
    worst_case: float
    per_entity: dict[str, float]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "bestCase": self.best_case,
            "worstCase": self.worst_case,
            "perEntity": dict(self.per_entity),
        }


@dataclass(frozen=True)
class EngineRequest:
    window_start: date
    window_end: date
    entities: list[Entity]
    mode: Mode = "forecast"
    granularity: Granularity | None = None
    scenarios: list[ScenarioSpec] | None = None
    entity_filter: str | None = None
    previous_total: float = 0.0
    # Flat payment rows ({platform, territory, category, project, amount}) for distribution breakdowns
    revenue_records: list[dict[str, Any]] | None = None


@dataclass(frozen=True)
class EngineResult:
    mode: Mode
    granularity: Granularity
    window_start: date
    window_end: date
    entity_ids: list[str]
    buckets: list[Bucket]
    quarterly: list[RollupPeriod]
    annual: list[RollupPeriod]
    totals: ProjectionTotals
    summary: PeriodSummary
    distribution: dict[str, list[DistributionSlice]]
    scenarios: list[ScenarioResult] | None = None
    performance: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "mode": self.mode,
            "granularity": self.granularity,
            "window": {"start": self.window_start.isoformat(), "end": self.window_end.isoformat()},
            "buckets": [b.to_dict() for b in self.buckets],
            "rollups": {
                "quarterly": [p.to_dict() for p in self.quarterly],
                "annual": [p.to_dict() for p in self.annual],
            },
            "totals": self.totals.to_dict(),
            "distribution": {k: [s.to_dict() for s in v] for k, v in self.distribution.items()},
            "summary": self.summary.to_dict(),
            "performance": [dict(row) for row in self.performance],
        }
        if self.scenarios is not None:
            out["scenarios"] = [s.to_dict() for s in self.scenarios]
        return out
