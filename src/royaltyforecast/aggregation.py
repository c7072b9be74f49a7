from __future__ import annotations

from datetime import date
from typing import Iterable

import pandas as pd

from .config import EngineConfig
from .types import Bucket, Entity, EntityValues, Granularity, ProjectionTotals, RollupPeriod, RollupTarget

_PERIOD_FREQ = {"quarter": "Q", "year": "Y"}


def build_bucket_table(
    entities: list[Entity],
    starts: list[date],
    series_by_entity: dict[str, list[tuple[date, float]]],
    granularity: Granularity,
) -> list[Bucket]:
    buckets = [Bucket(start=s, granularity=granularity) for s in starts]
    by_start = {b.start: b for b in buckets}
    for entity in entities:
        for start, value in series_by_entity.get(entity.id, []):
            bucket = by_start.get(start)
            if bucket is None:
                raise ValueError(f"Series for '{entity.id}' has a point at {start} outside the bucket grid.")
            bucket.values.set(entity.id, value)
    return buckets


def buckets_frame(buckets: list[Bucket], entity_ids: Iterable[str] | None = None) -> pd.DataFrame:
    """Date x EntityId frame; entities absent from a bucket read as 0."""
    ids = list(entity_ids) if entity_ids is not None else []
    for bucket in buckets:
        ids.extend(k for k in bucket.values if k not in ids)
    index = pd.Index([b.start for b in buckets], name="Date")
    data = {entity_id: [b.values.get(entity_id, 0.0) for b in buckets] for entity_id in ids}
    return pd.DataFrame(data, index=index, columns=ids, dtype=float)


def rollup(
    buckets: list[Bucket],
    target: RollupTarget,
    entity_ids: Iterable[str] | None = None,
) -> list[RollupPeriod]:
    if target not in _PERIOD_FREQ:
        raise ValueError(f"Unknown rollup target '{target}'. Known: {list(_PERIOD_FREQ)}")
    if not buckets:
        return []

    freq = _PERIOD_FREQ[target]
    ids = list(entity_ids) if entity_ids is not None else None
    frame = buckets_frame(buckets, ids)
    periods = pd.PeriodIndex([pd.Period(d, freq=freq) for d in frame.index], freq=freq)
    sums = frame.groupby(periods).sum() if len(frame.columns) else None

    out: list[RollupPeriod] = []
    for period in sorted(set(periods)):
        values = EntityValues()
        if sums is not None:
            for entity_id in sums.columns:
                values.set(str(entity_id), round(float(sums.loc[period, entity_id]), 2))
        if ids:
            values.ensure(ids)
        quarter = int(period.quarter) if target == "quarter" else None
        out.append(
            RollupPeriod(
                label=f"{period.year}-Q{quarter}" if quarter else str(period.year),
                year=int(period.year),
                quarter=quarter,
                start=period.start_time.date(),
                values=values,
            )
        )
    # (year, quarter) as integers; never the label string
    return sorted(out, key=lambda p: p.sort_key)


def projection_totals(
    buckets: list[Bucket],
    entity_ids: Iterable[str],
    config: EngineConfig | None = None,
) -> ProjectionTotals:
    config = config or EngineConfig()
    per_entity = EntityValues()
    per_entity.ensure(entity_ids)
    for bucket in buckets:
        per_entity.merge(bucket.values)
    per_entity = per_entity.rounded()
    total = round(per_entity.total, 2)
    return ProjectionTotals(
        total=total,
        best_case=round(total * config.best_case_factor, 2),
        worst_case=round(total * config.worst_case_factor, 2),
        per_entity=per_entity.to_dict(),
    )
