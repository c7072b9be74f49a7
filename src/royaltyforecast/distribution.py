from __future__ import annotations

from typing import Any, Iterable, Literal, Mapping

import numpy as np
import pandas as pd

from .types import DistributionSlice, Entity


def _hundredths(values: np.ndarray, total: float) -> np.ndarray:
    # Largest-remainder rounding to 0.01 so the slices add back to exactly 100.
    if len(values) == 0 or total == 0:
        return np.zeros(len(values))
    exact = values / total * 10_000.0
    floors = np.floor(exact)
    missing = int(round(10_000.0 - floors.sum()))
    order = np.argsort(-(exact - floors), kind="stable")
    floors[order[:missing]] += 1
    return floors / 100.0


def distribute(
    slices: Iterable[Mapping[str, Any]],
    sort: Literal["value", "label"] | None = None,
) -> list[DistributionSlice]:
    """Percentage-of-total for each ``{label, value}`` slice.

    Input order is kept unless ``sort`` is given ("value" sorts descending).
    Percentages are rounded to 0.01 by largest remainder so they sum to
    exactly 100; a single slice may therefore differ by 0.01 from rounding
    its own share (three equal thirds give 33.34, 33.33, 33.33). A zero
    total yields 0% everywhere.
    """
    rows = [(str(s["label"]), float(s["value"])) for s in slices]
    total = sum(v for _, v in rows)
    percentages = _hundredths(np.array([v for _, v in rows], dtype=float), total)
    out = [
        DistributionSlice(label=label, value=round(value, 2), percentage=float(pct))
        for (label, value), pct in zip(rows, percentages)
    ]
    if sort == "value":
        out.sort(key=lambda s: s.value, reverse=True)
    elif sort == "label":
        out.sort(key=lambda s: s.label)
    elif sort is not None:
        raise ValueError(f"Unknown sort '{sort}'. Known: ['value', 'label']")
    return out


def breakdown(
    records: list[Mapping[str, Any]],
    by: str,
    value_key: str = "amount",
    sort: Literal["value", "label"] | None = None,
) -> list[DistributionSlice]:
    """Group flat payment records by one key, then distribute."""
    if not records:
        return []
    df = pd.DataFrame(records)
    if by not in df.columns:
        raise ValueError(f"Records have no '{by}' field. Known: {list(df.columns)}")
    if value_key not in df.columns:
        raise ValueError(f"Records have no '{value_key}' field.")
    df[value_key] = pd.to_numeric(df[value_key], errors="coerce").fillna(0.0)
    df[by] = df[by].fillna("Unknown").astype(str)
    grouped = df.groupby(by, sort=False)[value_key].sum()
    return distribute(({"label": k, "value": float(v)} for k, v in grouped.items()), sort=sort)


def category_breakdown(entities: list[Entity], per_entity_totals: Mapping[str, float]) -> list[DistributionSlice]:
    records = [{"category": e.category, "amount": per_entity_totals.get(e.id, 0.0)} for e in entities]
    return breakdown(records, by="category")
