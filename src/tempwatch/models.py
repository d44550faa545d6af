# models and tiny stats helper to keep data shapes explicit and reusable across the app

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Union


class ForecastClass(str, Enum):
    SHORT_RANGE = "short_range"
    MEDIUM_RANGE = "medium_range"


@dataclass(frozen=True)
class GridPoint:
    # KMA forecast grid cell
    nx: int
    ny: int


@dataclass(frozen=True)
class Region:
    # static configuration row, loaded once and never mutated
    key: str
    display_name: str
    grid: GridPoint
    mid_reg_id: str
    lat: float
    lon: float


@dataclass(frozen=True)
class ForecastWindow:
    start: date
    end: date
    forecast_class: ForecastClass

    @property
    def span_days(self) -> int:
        # 0 means a single calendar day
        return (self.end - self.start).days

    def dates(self) -> Iterator[date]:
        day = self.start
        while day <= self.end:
            yield day
            day += timedelta(days=1)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class Sample:
    # one hourly short-range value for one region
    region_key: str
    timestamp: datetime
    value: float

    @property
    def time_key(self) -> datetime:
        return self.timestamp


@dataclass(frozen=True)
class DailySample:
    # one medium-range day for one region
    region_key: str
    date: date
    min_value: float
    max_value: float

    @property
    def time_key(self) -> date:
        return self.date

    def normalized(self) -> "DailySample":
        # an inverted range from the source is swapped, never propagated
        if self.min_value > self.max_value:
            return replace(self, min_value=self.max_value, max_value=self.min_value)
        return self

    def as_dict(self) -> dict:
        return {
            "region_key": self.region_key,
            "date": self.date.isoformat(),
            "min_value": self.min_value,
            "max_value": self.max_value,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "DailySample":
        return cls(
            region_key=data["region_key"],
            date=date.fromisoformat(data["date"]),
            min_value=float(data["min_value"]),
            max_value=float(data["max_value"]),
        )


TimeKey = Union[datetime, date]
AnySample = Union[Sample, DailySample]


@dataclass(frozen=True)
class MergedRow:
    """One aligned time slot across regions.

    ``values`` maps a column name (a region key for short-range, or
    ``<key>_min`` / ``<key>_max`` for medium-range) to its value. A column is
    absent when that region had no sample for this time key. The overall
    extremes stay ``None`` until annotated, and stay ``None`` when no selected
    region has a value in the row.
    """

    time_key: TimeKey
    values: Mapping[str, float] = field(default_factory=dict)
    max_overall: Optional[float] = None
    max_overall_region: Optional[str] = None
    min_overall: Optional[float] = None
    min_overall_region: Optional[str] = None

    @property
    def label(self) -> str:
        if isinstance(self.time_key, datetime):
            return self.time_key.strftime("%Y-%m-%d %H:%M")
        return self.time_key.isoformat()

    def get(self, column: str) -> Optional[float]:
        return self.values.get(column)

    def as_record(self) -> Dict[str, object]:
        # flat record for charts and tables
        key_name = "dateTime" if isinstance(self.time_key, datetime) else "date"
        record: Dict[str, object] = {key_name: self.label}
        record.update(self.values)
        record.update(
            maxOverall=self.max_overall,
            maxOverallRegion=self.max_overall_region,
            minOverall=self.min_overall,
            minOverallRegion=self.min_overall_region,
        )
        return record


class FetchFailureKind(str, Enum):
    UNKNOWN_REGION = "unknown_region"
    PROVIDER_FAILURE = "provider_failure"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class RegionFailure:
    region_key: str
    kind: FetchFailureKind
    message: str


@dataclass(frozen=True)
class FetchBatchResult:
    # one fetch cycle's outcome; superseded entirely by the next cycle
    successes: Mapping[str, Sequence[AnySample]] = field(default_factory=dict)
    failures: Mapping[str, RegionFailure] = field(default_factory=dict)

    @property
    def failed_keys(self) -> List[str]:
        return sorted(self.failures)

    def failure_summary(self, regions: Optional[Mapping[str, Region]] = None) -> Optional[str]:
        # non-fatal message naming the regions that failed, None when all succeeded
        if not self.failures:
            return None
        names = []
        for key in self.failed_keys:
            region = regions.get(key) if regions else None
            names.append(region.display_name if region else key)
        return f"Some regions failed to load: {', '.join(names)}"


@dataclass(frozen=True)
class SnapshotReading:
    region_key: str
    display_name: str
    lat: float
    lon: float
    temperature: float


@dataclass(frozen=True)
class YearlySummary:
    year: int
    avg_temp: float
    max_temp: float
    min_temp: float


def mean(values: List[float]) -> float:
    # simple average that returns NaN on empty input to avoid zero division
    return sum(values) / len(values) if values else float("nan")
