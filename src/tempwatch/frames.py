# turn annotated rows into pandas frames for line charts and summary tables

from __future__ import annotations
from typing import Iterable, List, Mapping, Optional, Sequence
import pandas as pd
from .aggregate import max_column, min_column
from .models import ForecastClass, MergedRow, Region, SnapshotReading, YearlySummary
from .regions import display_name


def series_columns(regions: Sequence[str], forecast_class: ForecastClass) -> List[str]:
    forecast_class = ForecastClass(forecast_class)
    if forecast_class is ForecastClass.MEDIUM_RANGE:
        return [c for k in regions for c in (min_column(k), max_column(k))]
    return list(regions)


def _column_label(column: str, table: Optional[Mapping[str, Region]]) -> str:
    for suffix, tag in (("_min", "min"), ("_max", "max")):
        if column.endswith(suffix):
            return f"{display_name(column[: -len(suffix)], table)} ({tag})"
    return display_name(column, table)


def forecast_frame(
    rows: Iterable[MergedRow],
    regions: Sequence[str],
    forecast_class: ForecastClass,
    table: Optional[Mapping[str, Region]] = None,
) -> pd.DataFrame:
    """One column per region series, indexed by time; absent values are NaN."""
    rows = list(rows)
    columns = series_columns(regions, forecast_class)
    frame = pd.DataFrame(
        [[row.get(c) for c in columns] for row in rows],
        index=pd.Index([pd.Timestamp(row.time_key) for row in rows], name="time"),
        columns=columns,
        dtype="float64",
    )
    return frame.rename(columns=lambda c: _column_label(c, table))


def extremes_frame(rows: Iterable[MergedRow], table: Optional[Mapping[str, Region]] = None) -> pd.DataFrame:
    rows = list(rows)

    def region_names(keys):
        # object dtype keeps None for rows without data instead of a string NaN
        return pd.Series([display_name(k, table) if k else None for k in keys], dtype=object)

    return pd.DataFrame(
        {
            "time": [row.label for row in rows],
            "max": pd.Series([row.max_overall for row in rows], dtype="float64"),
            "max region": region_names(row.max_overall_region for row in rows),
            "min": pd.Series([row.min_overall for row in rows], dtype="float64"),
            "min region": region_names(row.min_overall_region for row in rows),
        }
    )


def snapshot_frame(readings: Iterable[SnapshotReading]) -> pd.DataFrame:
    records = [
        {"region": r.display_name, "lat": r.lat, "lon": r.lon, "temperature": r.temperature}
        for r in readings
    ]
    return pd.DataFrame(records, columns=["region", "lat", "lon", "temperature"])


def history_frame(summaries: Iterable[YearlySummary]) -> pd.DataFrame:
    records = [
        {"year": s.year, "avg": s.avg_temp, "max": s.max_temp, "min": s.min_temp}
        for s in summaries
    ]
    return pd.DataFrame(records, columns=["year", "avg", "max", "min"]).set_index("year")
