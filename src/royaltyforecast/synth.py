from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

DEMO_PROJECTS = [
    ("project-001", "Urban Dreamscape", "Film", 8.5),
    ("project-002", "Harmonic Waves", "Music", 6.2),
    ("project-003", "Digital Renaissance", "Art", 12.3),
    ("project-004", "Neon Horizons", "Gaming", 15.7),
    ("project-005", "Ethereal Chronicles", "Literature", 4.8),
]
PLATFORMS = ["Spotify", "Apple Music", "Netflix", "YouTube", "Amazon", "Tidal", "Disney+"]
TERRITORIES = ["Global", "North America", "Europe", "Asia", "Latin America", "Oceania"]


@dataclass(frozen=True)
class DemoSpec:
    start: str  # YYYY-MM-DD
    days: int
    payments: int
    seed: int


def generate_demo_dataset(out_dir: str | Path, spec: DemoSpec) -> Path:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    rng = np.random.default_rng(spec.seed)
    entities = pd.DataFrame(
        [
            [pid, name, category, rate, round(float(rng.uniform(15_000, 65_000)), 2)]
            for pid, name, category, rate in DEMO_PROJECTS
        ],
        columns=["id", "name", "category", "annual_growth_rate_percent", "anchor_value"],
    )
    entities["previous_value"] = (entities["anchor_value"] * rng.uniform(0.7, 1.0, size=len(entities))).round(2)
    entities.to_csv(out_dir / "entities.csv", index=False)

    start = pd.Timestamp(spec.start)
    rows = []
    for i in range(spec.payments):
        offset = int(rng.integers(0, spec.days + 1))
        _, name, category, _ = DEMO_PROJECTS[int(rng.integers(0, len(DEMO_PROJECTS)))]
        # Later payments skew larger
        amount = 100.0 * (1 + offset / max(spec.days, 1)) * float(rng.uniform(0.5, 1.5))
        rows.append(
            [
                f"payment-{i + 1}",
                (start + pd.Timedelta(days=offset)).date().isoformat(),
                name,
                category,
                PLATFORMS[int(rng.integers(0, len(PLATFORMS)))],
                TERRITORIES[int(rng.integers(0, len(TERRITORIES)))],
                round(amount, 2),
            ]
        )
    payments = pd.DataFrame(rows, columns=["id", "date", "project", "category", "platform", "territory", "amount"])
    payments.sort_values("date").to_csv(out_dir / "payments.csv", index=False)

    return out_dir
