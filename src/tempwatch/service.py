# orchestration and business rules.
# fan out one fetch per region on the event loop, wait for all of them to settle,
# then hand the batch to the pure merge/annotate functions

from __future__ import annotations
import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import date
from functools import partial
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from .aggregate import annotate_extremes, merge_series
from .models import (
    FetchBatchResult,
    FetchFailureKind,
    ForecastClass,
    ForecastWindow,
    MergedRow,
    Region,
    RegionFailure,
    SnapshotReading,
    YearlySummary,
)
from .providers import ProviderError, ProviderTimeout, TemperatureProvider
from .regions import REGIONS
from .validation import DateLike, to_date, validate_regions, validate_request, validate_year_range

logger = logging.getLogger(__name__)

# fetch(region, window) -> samples; plain callables run in a worker thread
RegionFetcher = Callable[[Region, ForecastWindow], object]


class BatchFetchError(RuntimeError):
    # the orchestration itself failed, as opposed to a single region
    pass


async def _call(fetch: RegionFetcher, *args):
    if inspect.iscoroutinefunction(fetch):
        return await fetch(*args)
    result = await asyncio.to_thread(fetch, *args)
    if inspect.isawaitable(result):
        return await result
    return result


async def _fetch_one(
    key: str,
    window: ForecastWindow,
    fetch: RegionFetcher,
    region_table: Mapping[str, Region],
    timeout: Optional[float],
) -> Tuple[str, object]:
    region = region_table.get(key)
    if region is None:
        logger.warning("No grid point configured for region %r, skipping", key)
        return key, RegionFailure(key, FetchFailureKind.UNKNOWN_REGION, f"unknown region {key!r}")

    try:
        if timeout:
            samples = await asyncio.wait_for(_call(fetch, region, window), timeout)
        else:
            samples = await _call(fetch, region, window)
    except (asyncio.TimeoutError, ProviderTimeout) as exc:
        message = str(exc) or f"timed out after {timeout}s"
        logger.warning("Fetch for %r timed out: %s", key, message)
        return key, RegionFailure(key, FetchFailureKind.TIMEOUT, message)
    except ProviderError as exc:
        logger.warning("Fetch for %r failed: %s", key, exc)
        return key, RegionFailure(key, FetchFailureKind.PROVIDER_FAILURE, str(exc))
    return key, list(samples)


async def fetch_all(
    region_keys: Iterable[str],
    window: ForecastWindow,
    fetch: RegionFetcher,
    *,
    region_table: Optional[Mapping[str, Region]] = None,
    timeout: Optional[float] = None,
) -> FetchBatchResult:
    """Fetch every region concurrently and collect per-region outcomes.

    Returns only after every issued fetch has settled. Provider errors,
    timeouts and unknown region keys become ``RegionFailure`` entries; any
    other exception is treated as a failure of the whole batch and raised as
    ``BatchFetchError`` once the remaining fetches are done.
    """
    table = REGIONS if region_table is None else region_table
    keys = list(dict.fromkeys(region_keys))
    outcomes = await asyncio.gather(
        *(_fetch_one(k, window, fetch, table, timeout) for k in keys),
        return_exceptions=True,
    )

    successes: Dict[str, list] = {}
    failures: Dict[str, RegionFailure] = {}
    for key, outcome in zip(keys, outcomes):
        if isinstance(outcome, BaseException):
            raise BatchFetchError(f"Fetch cycle aborted while loading {key!r}: {outcome}") from outcome
        _, payload = outcome
        if isinstance(payload, RegionFailure):
            failures[key] = payload
        else:
            successes[key] = payload

    if failures:
        logger.info("Fetch cycle finished: %d ok, %d failed (%s)", len(successes), len(failures), ", ".join(sorted(failures)))
    return FetchBatchResult(successes=successes, failures=failures)


@dataclass(frozen=True)
class ForecastResult:
    # annotated rows ready for charts and tables, plus the non-fatal failures
    window: ForecastWindow
    regions: Sequence[str]
    rows: List[MergedRow]
    batch: FetchBatchResult
    region_table: Mapping[str, Region] = field(default_factory=lambda: REGIONS)

    @property
    def warning(self) -> Optional[str]:
        return self.batch.failure_summary(self.region_table)


async def run_forecast(
    provider: TemperatureProvider,
    forecast_class: ForecastClass,
    start: DateLike,
    end: DateLike,
    selected: Iterable[str],
    *,
    today: Optional[DateLike] = None,
    base_time: str = "1700",
    region_table: Optional[Mapping[str, Region]] = None,
    timeout: Optional[float] = None,
) -> ForecastResult:
    # validate -> fetch -> merge -> annotate; ValidationError escapes before any fetch
    window, keys = validate_request(start, end, forecast_class, selected, today=today)
    if window.forecast_class is ForecastClass.SHORT_RANGE:
        fetch = partial(provider.fetch_hourly, base_time=base_time)
    else:
        fetch = provider.fetch_daily
    table = REGIONS if region_table is None else region_table
    batch = await fetch_all(keys, window, fetch, region_table=table, timeout=timeout)
    rows = annotate_extremes(merge_series(batch, window.forecast_class), keys, window.forecast_class)
    return ForecastResult(window=window, regions=keys, rows=rows, batch=batch, region_table=table)


async def run_short_range(provider: TemperatureProvider, start, end, selected, **kwargs) -> ForecastResult:
    return await run_forecast(provider, ForecastClass.SHORT_RANGE, start, end, selected, **kwargs)


async def run_medium_range(provider: TemperatureProvider, start, end, selected, **kwargs) -> ForecastResult:
    return await run_forecast(provider, ForecastClass.MEDIUM_RANGE, start, end, selected, **kwargs)


@dataclass(frozen=True)
class SnapshotResult:
    day: date
    readings: List[SnapshotReading] = field(default_factory=list)
    batch: FetchBatchResult = field(default_factory=FetchBatchResult)
    region_table: Mapping[str, Region] = field(default_factory=lambda: REGIONS)

    @property
    def warning(self) -> Optional[str]:
        return self.batch.failure_summary(self.region_table)


async def run_snapshot(
    provider: TemperatureProvider,
    day: DateLike,
    selected: Optional[Iterable[str]] = None,
    *,
    region_table: Optional[Mapping[str, Region]] = None,
    timeout: Optional[float] = None,
) -> SnapshotResult:
    # same fan-out as the forecasts, one current reading per region
    table = REGIONS if region_table is None else region_table
    keys = validate_regions(table if selected is None else selected)
    window = _single_day_window(day)

    def fetch_current(region: Region, w: ForecastWindow):
        return [provider.fetch_current(region, w.start)]

    batch = await fetch_all(keys, window, fetch_current, region_table=table, timeout=timeout)
    readings = []
    for key in sorted(batch.successes):
        region = table[key]
        for sample in batch.successes[key]:
            readings.append(SnapshotReading(key, region.display_name, region.lat, region.lon, sample.value))
    return SnapshotResult(day=window.start, readings=readings, batch=batch, region_table=table)


def _single_day_window(day: DateLike) -> ForecastWindow:
    d = to_date(day)
    return ForecastWindow(start=d, end=d, forecast_class=ForecastClass.SHORT_RANGE)


async def run_history(
    provider: TemperatureProvider,
    region_key: str,
    start_year: int,
    end_year: int,
    *,
    current_year: Optional[int] = None,
    region_table: Optional[Mapping[str, Region]] = None,
) -> List[YearlySummary]:
    # one region at a time, so a failure here is the whole view's failure
    start_year, end_year = validate_year_range(start_year, end_year, current_year)
    keys = validate_regions([region_key])
    table = REGIONS if region_table is None else region_table
    region = table.get(keys[0])
    if region is None:
        raise BatchFetchError(f"unknown region {region_key!r}")
    try:
        summaries = await asyncio.to_thread(provider.fetch_yearly, region, start_year, end_year)
    except NotImplementedError as exc:
        raise BatchFetchError(f"The {provider.name} provider has no yearly history") from exc
    except ProviderError as exc:
        raise BatchFetchError(f"History for {region_key!r} failed: {exc}") from exc
    except Exception as exc:
        raise BatchFetchError(f"History for {region_key!r} failed unexpectedly: {exc!r}") from exc
    return sorted(summaries, key=lambda s: s.year)
