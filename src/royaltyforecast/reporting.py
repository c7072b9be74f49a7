from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
from openpyxl import Workbook
from openpyxl.utils.dataframe import dataframe_to_rows

from .aggregation import buckets_frame
from .bucketing import bucket_spans
from .types import EngineResult, RollupPeriod


def write_result_json(path: str | Path, result: EngineResult) -> None:
    path = Path(path)
    path.write_text(json.dumps(result.to_dict(), indent=2, default=str), encoding="utf-8")


def write_excel_pack(path: str | Path, result: EngineResult) -> None:
    path = Path(path)
    wb = Workbook()
    wb.remove(wb.active)

    buckets = buckets_frame(result.buckets, result.entity_ids)
    buckets["Total"] = [b.total for b in result.buckets]
    if result.buckets:
        # Exclusive upper bound of each bucket; the last closes the day after the window end
        ends = [e for _, e in bucket_spans([b.start for b in result.buckets], result.window_end)]
        buckets.insert(0, "Until", ends)
    _add_df_sheet(wb, "Buckets", buckets.reset_index())
    _add_df_sheet(wb, "Quarterly", _rollup_df(result.quarterly, result.entity_ids))
    _add_df_sheet(wb, "Annual", _rollup_df(result.annual, result.entity_ids))
    if result.scenarios is not None:
        _add_df_sheet(
            wb,
            "Scenarios",
            pd.DataFrame(
                [
                    {
                        "Scenario": s.name,
                        "ProbabilityWeight": s.probability_weight,
                        "GrowthAdjustment": s.growth_adjustment_factor,
                        **s.per_entity,
                        "TotalProjection": s.total_projection,
                    }
                    for s in result.scenarios
                ]
            ),
        )
    dist_rows = [
        {"Breakdown": name, "Label": s.label, "Value": s.value, "Percentage": s.percentage}
        for name, slices in result.distribution.items()
        for s in slices
    ]
    _add_df_sheet(wb, "Distribution", pd.DataFrame(dist_rows, columns=["Breakdown", "Label", "Value", "Percentage"]))
    if result.performance:
        _add_df_sheet(wb, "Performance", pd.DataFrame(result.performance))

    wb.save(path)


def _rollup_df(periods: list[RollupPeriod], entity_ids: list[str]) -> pd.DataFrame:
    rows = [{"Period": p.label, **{e: p.values.get(e) for e in entity_ids}, "Total": p.total} for p in periods]
    return pd.DataFrame(rows, columns=["Period", *entity_ids, "Total"])


def _add_df_sheet(wb: Workbook, title: str, df: pd.DataFrame) -> None:
    ws = wb.create_sheet(title=title[:31])
    for r in dataframe_to_rows(df, index=False, header=True):
        ws.append(r)
    ws.freeze_panes = "A2"
