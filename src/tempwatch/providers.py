# provider boundary: every temperature source implements TemperatureProvider
# SimulatedProvider stands in for the real service when no API key is configured

from __future__ import annotations
import random
from datetime import date, datetime, time
from typing import Iterable, List, Optional
from .models import DailySample, ForecastWindow, Region, Sample, YearlySummary

# KMA short-range issuance times (HHMM)
BASE_TIMES = ("0200", "0500", "0800", "1100", "1400", "1700", "2000", "2300")


class ProviderError(RuntimeError):
    # single error type used to propagate clear messages from the provider layer
    pass


class ProviderTimeout(ProviderError):
    pass


class TemperatureProvider:
    name = "base"

    def fetch_hourly(self, region: Region, window: ForecastWindow, base_time: str = "1700") -> List[Sample]:
        raise NotImplementedError

    def fetch_daily(self, region: Region, window: ForecastWindow) -> List[DailySample]:
        raise NotImplementedError

    def fetch_current(self, region: Region, day: date) -> Sample:
        raise NotImplementedError

    def fetch_yearly(self, region: Region, start_year: int, end_year: int) -> List[YearlySummary]:
        raise NotImplementedError


def check_base_time(base_time: str) -> str:
    if base_time not in BASE_TIMES:
        raise ProviderError(f"base_time must be one of {', '.join(BASE_TIMES)} (got {base_time!r})")
    return base_time


def _is_urban(region: Region) -> bool:
    return region.key.startswith("daegu")


class SimulatedProvider(TemperatureProvider):
    """Plausible sample data for the Daegu / Gyeongbuk regions.

    Hourly values follow a night / morning / afternoon pattern, Daegu
    districts run warmer than the outlying cities (urban heat island), and
    yearly averages drift upward by 0.2 degC a year. A fixed ``seed`` makes
    every call reproducible; regions listed in ``fail_regions`` raise
    ``ProviderError`` so partial failures can be exercised end to end.
    """

    name = "simulated"
    HOURS = tuple(range(0, 24, 3))

    def __init__(self, seed: Optional[int] = None, fail_regions: Iterable[str] = ()):
        self.seed = seed
        self.fail_regions = frozenset(fail_regions)

    def _rng(self, *parts) -> random.Random:
        # independent stream per call so concurrent fetches stay deterministic
        if self.seed is None:
            return random.Random()
        return random.Random(f"{self.seed}:" + ":".join(str(p) for p in parts))

    def _check(self, region: Region) -> None:
        if region.key in self.fail_regions:
            raise ProviderError(f"simulated outage for {region.key!r}")

    def _hourly_value(self, rng: random.Random, region: Region, hour: int) -> float:
        if hour >= 21 or hour < 6:
            temp = 18 + rng.random() * 5 - 2
        elif hour < 12:
            temp = 25 + rng.random() * 5 - 2
        else:
            temp = 28 + rng.random() * 5 - 2
        if _is_urban(region):
            temp += rng.random() * 1.5 + 0.5
        else:
            temp -= rng.random()
        # small fixed per-region offset
        temp += (len(region.key) % 5) * 0.1 - 0.2
        return round(temp, 1)

    def fetch_hourly(self, region: Region, window: ForecastWindow, base_time: str = "1700") -> List[Sample]:
        check_base_time(base_time)
        self._check(region)
        rng = self._rng("hourly", region.key, window.start, window.end, base_time)
        return [
            Sample(region.key, datetime.combine(day, time(hour)), self._hourly_value(rng, region, hour))
            for day in window.dates()
            for hour in self.HOURS
        ]

    def fetch_daily(self, region: Region, window: ForecastWindow) -> List[DailySample]:
        self._check(region)
        rng = self._rng("daily", region.key, window.start, window.end)
        samples = []
        for day in window.dates():
            low = 10 + rng.random() * 8 - 4
            high = 20 + rng.random() * 8 - 4
            if _is_urban(region):
                low += rng.random() + 0.5
                high += rng.random() * 1.5 + 0.5
            else:
                low -= rng.random() * 0.5
                high -= rng.random() * 0.5
            samples.append(DailySample(region.key, day, round(low, 1), round(high, 1)))
        return samples

    def fetch_current(self, region: Region, day: date) -> Sample:
        self._check(region)
        rng = self._rng("current", region.key, day)
        base = 28.5 if _is_urban(region) else 27.0
        return Sample(region.key, datetime.combine(day, time(12)), round(base + rng.random() * 4 - 2, 1))

    def fetch_yearly(self, region: Region, start_year: int, end_year: int) -> List[YearlySummary]:
        self._check(region)
        rng = self._rng("yearly", region.key, start_year, end_year)
        base = 15.0 if _is_urban(region) else 14.0
        reference = date.today().year - 2
        summaries = []
        for year in range(start_year, end_year + 1):
            avg = base + (year - reference) * 0.2 + (rng.random() - 0.5)
            summaries.append(
                YearlySummary(
                    year=year,
                    avg_temp=round(avg, 1),
                    max_temp=round(base + 15 + rng.random() * 5, 1),
                    min_temp=round(base - 15 - rng.random() * 5, 1),
                )
            )
        return summaries
