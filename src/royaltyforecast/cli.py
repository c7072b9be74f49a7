from __future__ import annotations

import logging
import time
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from .config import EngineConfig, default_engine_config
from .engine import FORECAST_PERIODS, HISTORICAL_PERIODS, filter_entities, resolve_window, run_engine
from .io import load_entities, load_revenue_records
from .reporting import write_excel_pack, write_result_json
from .scenarios import run_scenarios
from .series import make_rng
from .synth import DemoSpec, generate_demo_dataset
from .types import GRANULARITIES, MODES, EngineRequest

app = typer.Typer(add_completion=False, help="Royalty analytics and forecasting engine.")
console = Console()
logger = logging.getLogger("royaltyforecast.cli")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log run details to stderr.")):
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config: Optional[Path]) -> EngineConfig:
    return EngineConfig.from_yaml(config) if config else default_engine_config()


def _window(mode: str, period: Optional[str], start: Optional[str], end: Optional[str]) -> tuple[date, date]:
    if start or end:
        if not (start and end):
            raise typer.BadParameter("--start and --end must be given together.")
        return pd.Timestamp(start).date(), pd.Timestamp(end).date()
    return resolve_window(period, mode=mode)


@app.command()
def synth(
    out: Path = typer.Option(..., help="Output directory for the demo entities and payments CSVs."),
    start: str = typer.Option("2025-01-01", help="First payment date (YYYY-MM-DD)."),
    days: int = typer.Option(90, min=1, help="Days spanned by payments."),
    payments: int = typer.Option(100, min=1, help="Number of payment records."),
    seed: int = typer.Option(42, help="RNG seed."),
):
    generate_demo_dataset(out, DemoSpec(start=start, days=days, payments=payments, seed=seed))
    console.print(f"Wrote demo dataset to {out}")


@app.command()
def run(
    entities: Path = typer.Option(..., exists=True, dir_okay=False, help="Entities file (CSV, YAML or JSON)."),
    out: Path = typer.Option(..., help="Output directory for result.json and the Excel pack."),
    mode: str = typer.Option("forecast", help=f"One of {', '.join(MODES)}."),
    period: Optional[str] = typer.Option(
        None,
        help=f"Preset window. Historical: {', '.join(HISTORICAL_PERIODS)}; forecast: {', '.join(FORECAST_PERIODS)}.",
    ),
    start: Optional[str] = typer.Option(None, help="Window start (YYYY-MM-DD); overrides --period."),
    end: Optional[str] = typer.Option(None, help="Window end (YYYY-MM-DD)."),
    granularity: Optional[str] = typer.Option(None, help="day, week or month (forecasts default to month)."),
    project: Optional[str] = typer.Option(None, help="Only projects whose name contains this text."),
    payments: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Payments CSV for platform/territory breakdowns."),
    previous_total: float = typer.Option(0.0, help="Previous-period total for the summary."),
    config: Optional[Path] = typer.Option(None, help="Engine config YAML (default uses packaged config)."),
    seed: Optional[int] = typer.Option(None, help="RNG seed for reproducible output."),
):
    if mode not in MODES:
        raise typer.BadParameter(f"--mode must be one of {list(MODES)}")
    if granularity is not None and granularity not in GRANULARITIES:
        raise typer.BadParameter(f"--granularity must be one of {list(GRANULARITIES)}")
    if granularity is None and mode == "forecast":
        granularity = "month"

    window_start, window_end = _window(mode, period, start, end)

    t0 = time.perf_counter()
    try:
        request = EngineRequest(
            window_start=window_start,
            window_end=window_end,
            entities=load_entities(entities),
            mode=mode,  # type: ignore[arg-type]
            granularity=granularity,  # type: ignore[arg-type]
            entity_filter=project,
            previous_total=previous_total,
            revenue_records=load_revenue_records(payments) if payments else None,
        )
        result = run_engine(request, config=_load_config(config), seed=seed)
    # Engine errors are ValueErrors; bad input files and config land here too
    except ValueError as exc:
        logger.exception("Engine run failed mode=%s window=%s..%s", mode, window_start, window_end)
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    logger.info(
        "Engine run mode=%s granularity=%s buckets=%d entities=%d in %.2fms",
        result.mode,
        result.granularity,
        len(result.buckets),
        len(result.entity_ids),
        (time.perf_counter() - t0) * 1000.0,
    )

    out.mkdir(parents=True, exist_ok=True)
    write_result_json(out / "result.json", result)
    write_excel_pack(out / "royalty_pack.xlsx", result)

    s = result.summary
    console.print(
        f"{len(result.buckets)} {result.granularity} buckets, total {s.current_total:,.2f} "
        f"({s.percentage_change:+.2f}% vs previous)"
    )
    console.print(f"Wrote results to {out}")


@app.command()
def scenarios(
    entities: Path = typer.Option(..., exists=True, dir_okay=False, help="Entities file (CSV, YAML or JSON)."),
    period: str = typer.Option("12m", help=f"Forecast horizon: {', '.join(FORECAST_PERIODS)}."),
    project: Optional[str] = typer.Option(None, help="Only projects whose name contains this text."),
    config: Optional[Path] = typer.Option(None, help="Engine config YAML (default uses packaged config)."),
    seed: Optional[int] = typer.Option(None, help="RNG seed for reproducible output."),
):
    """Print base/optimistic/pessimistic projections as a table."""
    start, _ = resolve_window(period, mode="forecast")
    try:
        cfg = _load_config(config)
        ents = filter_entities(load_entities(entities), project)
        results = run_scenarios(ents, FORECAST_PERIODS.get(period, 12), rng=make_rng(seed), start=start, config=cfg)
    except ValueError as exc:
        logger.exception("Scenario run failed period=%s", period)
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    table = Table(title=f"Scenario projections ({period})")
    table.add_column("Scenario")
    table.add_column("Weight", justify="right")
    table.add_column("Growth x", justify="right")
    table.add_column("Total", justify="right")
    for r in results:
        table.add_row(r.name, f"{r.probability_weight:.2f}", f"{r.growth_adjustment_factor:.2f}", f"{r.total_projection:,.2f}")
    console.print(table)
