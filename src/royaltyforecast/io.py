from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from .engine import entity_from_mapping
from .types import Entity

ENTITY_COLUMNS = ["id", "name", "category", "annual_growth_rate_percent"]
_CAMEL_TO_SNAKE = {
    "annualGrowthRatePercent": "annual_growth_rate_percent",
    "growthRate": "annual_growth_rate_percent",
    "anchorValue": "anchor_value",
    "previousValue": "previous_value",
}


def _read_csv(path: Path, **kwargs: Any) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Missing required input: {path}")
    return pd.read_csv(path, **kwargs)


def _entity_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    df = df.rename(columns=_CAMEL_TO_SNAKE)
    for required in ENTITY_COLUMNS:
        if required not in df.columns:
            raise ValueError(f"Entities file missing required column: {required}")
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def load_entities(path: str | Path) -> list[Entity]:
    """Read entities from CSV, YAML or JSON (a list, or a mapping with an ``entities`` key)."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        # Keep ids like "007" intact
        rows = _entity_rows(_read_csv(path, dtype={"id": str}))
    elif suffix in (".yaml", ".yml", ".json"):
        if not path.exists():
            raise FileNotFoundError(f"Missing required input: {path}")
        text = path.read_text(encoding="utf-8")
        raw = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
        if isinstance(raw, dict):
            raw = raw.get("entities", [])
        rows = _entity_rows(pd.DataFrame(raw or [], columns=None if raw else ENTITY_COLUMNS))
    else:
        raise ValueError(f"Unsupported entities file type: {path.suffix}")
    return [entity_from_mapping(r) for r in rows]


def load_revenue_records(path: str | Path) -> list[dict[str, Any]]:
    df = _read_csv(Path(path))
    if "amount" not in df.columns:
        raise ValueError(f"{Path(path).name} missing required column: amount")
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0.0)
    return df.to_dict(orient="records")
