# pure merge / annotate steps between the fetch and the rendering layer
# inputs are never mutated, every call returns fresh rows

from __future__ import annotations
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from .models import (
    DailySample,
    FetchBatchResult,
    ForecastClass,
    MergedRow,
    Sample,
    SnapshotReading,
    TimeKey,
    mean,
)

MIN_SUFFIX = "_min"
MAX_SUFFIX = "_max"


def min_column(region_key: str) -> str:
    return f"{region_key}{MIN_SUFFIX}"


def max_column(region_key: str) -> str:
    return f"{region_key}{MAX_SUFFIX}"


def merge_series(batch: FetchBatchResult, forecast_class: ForecastClass) -> List[MergedRow]:
    """Align every successful region's samples into one row per time key.

    Rows come back ordered by their real ``date``/``datetime`` key, so a
    Dec 31 -> Jan 1 boundary sorts correctly. A region that has no sample
    for a time key simply has no column in that row.
    """
    forecast_class = ForecastClass(forecast_class)
    table: Dict[TimeKey, Dict[str, float]] = {}

    for region_key, samples in batch.successes.items():
        for sample in samples:
            columns = table.setdefault(sample.time_key, {})
            if forecast_class is ForecastClass.MEDIUM_RANGE:
                daily = _as_daily(sample).normalized()
                columns[min_column(region_key)] = daily.min_value
                columns[max_column(region_key)] = daily.max_value
            else:
                columns[region_key] = _as_hourly(sample).value

    return [MergedRow(time_key=k, values=table[k]) for k in sorted(table)]


def _as_daily(sample) -> DailySample:
    if not isinstance(sample, DailySample):
        raise TypeError(f"medium-range merge expects DailySample, got {type(sample).__name__}")
    return sample


def _as_hourly(sample) -> Sample:
    if not isinstance(sample, Sample):
        raise TypeError(f"short-range merge expects Sample, got {type(sample).__name__}")
    return sample


def annotate_extremes(
    rows: Iterable[MergedRow],
    selected_regions: Iterable[str],
    forecast_class: ForecastClass,
) -> List[MergedRow]:
    """Fill in the overall max/min and the region achieving each, per row.

    Only currently selected regions count, even if other columns are still
    present. Regions are scanned in key order and comparisons are strict, so
    on a tie the lexicographically first region wins. Rows where no selected
    region has a value keep ``None`` extremes.
    """
    forecast_class = ForecastClass(forecast_class)
    order = sorted(set(selected_regions))
    if forecast_class is ForecastClass.MEDIUM_RANGE:
        max_cols = [(k, max_column(k)) for k in order]
        min_cols = [(k, min_column(k)) for k in order]
    else:
        max_cols = min_cols = [(k, k) for k in order]

    annotated = []
    for row in rows:
        hi, hi_region = _extreme(row, max_cols, lambda a, b: a > b)
        lo, lo_region = _extreme(row, min_cols, lambda a, b: a < b)
        annotated.append(
            replace(
                row,
                max_overall=hi,
                max_overall_region=hi_region,
                min_overall=lo,
                min_overall_region=lo_region,
            )
        )
    return annotated


def _extreme(row: MergedRow, columns: Sequence[Tuple[str, str]], better) -> Tuple[Optional[float], Optional[str]]:
    best: Optional[float] = None
    best_region: Optional[str] = None
    for region_key, column in columns:
        value = row.get(column)
        if value is None:
            continue
        if best is None or better(value, best):
            best, best_region = value, region_key
    return best, best_region


def summarize_snapshot(
    readings: Sequence[SnapshotReading],
) -> Tuple[Optional[SnapshotReading], Optional[SnapshotReading], float]:
    # hottest, coolest, average; ties go to the first region key
    ordered = sorted(readings, key=lambda r: r.region_key)
    hottest = coolest = None
    for reading in ordered:
        if hottest is None or reading.temperature > hottest.temperature:
            hottest = reading
        if coolest is None or reading.temperature < coolest.temperature:
            coolest = reading
    return hottest, coolest, mean([r.temperature for r in ordered])
