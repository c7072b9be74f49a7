from __future__ import annotations

from dataclasses import dataclass, field
import importlib.resources
from pathlib import Path
from typing import Any, Mapping

import yaml

from .types import ScenarioSpec


def _range(raw: Any, name: str) -> tuple[float, float]:
    lo, hi = (float(x) for x in raw)
    if lo > hi:
        raise ValueError(f"{name} range is inverted: {lo} > {hi}")
    return lo, hi


@dataclass(frozen=True)
class EngineConfig:
    # Whole-month span thresholds for granularity auto-selection
    daily_max_months: int = 1
    weekly_max_months: int = 6
    base_range: tuple[float, float] = (5000.0, 10000.0)
    q4_range: tuple[float, float] = (1.2, 1.5)
    q1_range: tuple[float, float] = (0.8, 0.9)
    default_anchor: float = 300.0
    initial_fraction: float = 1.0 / 3.0
    noise_band: float = 0.2
    best_case_factor: float = 1.2
    worst_case_factor: float = 0.8
    scenarios: list[ScenarioSpec] = field(default_factory=list)

    @staticmethod
    def from_mapping(raw: Mapping[str, Any]) -> "EngineConfig":
        gran = raw.get("granularity", {}) or {}
        forecast = raw.get("forecast", {}) or {}
        season = raw.get("seasonality", {}) or {}
        hist = raw.get("historical", {}) or {}
        bands = raw.get("projection_bands", {}) or {}
        defaults = EngineConfig()

        noise_band = float(hist.get("noise_band", defaults.noise_band))
        if not 0.0 <= noise_band < 1.0:
            raise ValueError(f"historical.noise_band must be in [0, 1), got {noise_band}")
        initial_fraction = float(hist.get("initial_fraction", defaults.initial_fraction))
        if initial_fraction < 0.0:
            raise ValueError(f"historical.initial_fraction must be >= 0, got {initial_fraction}")

        scenarios = [
            ScenarioSpec(
                name=str(s["name"]),
                probability_weight=float(s.get("probability_weight", 0.0)),
                growth_adjustment_factor=float(s.get("growth_adjustment_factor", 1.0)),
            )
            for s in raw.get("scenarios", []) or []
        ]
        return EngineConfig(
            daily_max_months=int(gran.get("daily_max_months", defaults.daily_max_months)),
            weekly_max_months=int(gran.get("weekly_max_months", defaults.weekly_max_months)),
            base_range=_range(forecast.get("base_range", defaults.base_range), "forecast.base_range"),
            q4_range=_range(season.get("q4_range", defaults.q4_range), "seasonality.q4_range"),
            q1_range=_range(season.get("q1_range", defaults.q1_range), "seasonality.q1_range"),
            default_anchor=float(hist.get("default_anchor", defaults.default_anchor)),
            initial_fraction=initial_fraction,
            noise_band=noise_band,
            best_case_factor=float(bands.get("best_case", defaults.best_case_factor)),
            worst_case_factor=float(bands.get("worst_case", defaults.worst_case_factor)),
            scenarios=scenarios,
        )

    @staticmethod
    def from_yaml(path: str | Path) -> "EngineConfig":
        path = Path(path)
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        return EngineConfig.from_mapping(raw or {})


def default_engine_config() -> EngineConfig:
    text = importlib.resources.files("royaltyforecast.resources").joinpath("default_engine.yaml").read_text(encoding="utf-8")
    return EngineConfig.from_mapping(yaml.safe_load(text))
