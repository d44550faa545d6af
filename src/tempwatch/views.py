# per-view state owned by the caller (dashboard session, cli run)
# every refresh is a new cycle tagged with a generation number; a cycle that
# resolves after a newer one started is dropped instead of overwriting it

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, Iterable, Mapping, Optional, Tuple
from .models import ForecastClass, Region, RegionFailure
from .providers import TemperatureProvider
from .service import run_forecast, run_history, run_snapshot
from .validation import DateLike, ValidationError

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Could not load temperature data. Please try again."


@dataclass(frozen=True)
class ViewState:
    rows: Tuple = ()
    failures: Mapping[str, RegionFailure] = field(default_factory=dict)
    warning: Optional[str] = None
    error: Optional[str] = None
    error_reason: Optional[str] = None
    loading: bool = False
    generation: int = 0
    extra: Mapping[str, object] = field(default_factory=dict)


class _View:
    def __init__(
        self,
        provider: TemperatureProvider,
        *,
        region_table: Optional[Mapping[str, Region]] = None,
        timeout: Optional[float] = None,
    ):
        self.provider = provider
        self.region_table = region_table
        self.timeout = timeout
        self.state = ViewState()
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _run_cycle(self, work: Callable[[], Awaitable[object]], publish) -> ViewState:
        self._generation += 1
        generation = self._generation
        # previous rows stay visible while loading, error is cleared
        self.state = ViewState(
            rows=self.state.rows, extra=self.state.extra, loading=True, generation=generation
        )

        try:
            result = await work()
            if not self._is_current(generation):
                logger.debug(
                    "Discarding stale %s cycle %d (latest is %d)", type(self).__name__, generation, self._generation
                )
                return self.state
            self.state = publish(result, generation)
        except ValidationError as exc:
            if self._is_current(generation):
                self.state = ViewState(error=exc.message, error_reason=exc.reason.value, generation=generation)
        except Exception:
            # BatchFetchError or anything else the pipeline did not expect
            logger.exception("%s refresh failed", type(self).__name__)
            if self._is_current(generation):
                self.state = ViewState(error=GENERIC_FAILURE, generation=generation)
        finally:
            # a cancelled cycle must not leave the view spinning
            if self._is_current(generation) and self.state.loading:
                self.state = replace(self.state, loading=False)
        return self.state


class ForecastView(_View):
    """Short- or medium-range forecast view for a set of selected regions."""

    def __init__(self, forecast_class: ForecastClass, provider: TemperatureProvider, **kwargs):
        super().__init__(provider, **kwargs)
        self.forecast_class = ForecastClass(forecast_class)

    async def refresh(
        self,
        start: DateLike,
        end: DateLike,
        selected: Iterable[str],
        *,
        today: Optional[DateLike] = None,
        base_time: str = "1700",
    ) -> ViewState:
        selected = list(selected)

        async def work():
            return await run_forecast(
                self.provider,
                self.forecast_class,
                start,
                end,
                selected,
                today=today,
                base_time=base_time,
                region_table=self.region_table,
                timeout=self.timeout,
            )

        def publish(result, generation):
            return ViewState(
                rows=tuple(result.rows),
                failures=dict(result.batch.failures),
                warning=result.warning,
                generation=generation,
                extra={"window": result.window, "regions": tuple(result.regions)},
            )

        return await self._run_cycle(work, publish)


class SnapshotView(_View):
    async def refresh(self, day: DateLike, selected: Optional[Iterable[str]] = None) -> ViewState:
        selected = None if selected is None else list(selected)

        async def work():
            return await run_snapshot(
                self.provider, day, selected, region_table=self.region_table, timeout=self.timeout
            )

        def publish(result, generation):
            return ViewState(
                rows=tuple(result.readings),
                failures=dict(result.batch.failures),
                warning=result.warning,
                generation=generation,
                extra={"day": result.day},
            )

        return await self._run_cycle(work, publish)


class HistoryView(_View):
    async def refresh(
        self, region_key: str, start_year: int, end_year: int, *, current_year: Optional[int] = None
    ) -> ViewState:
        async def work():
            return await run_history(
                self.provider,
                region_key,
                start_year,
                end_year,
                current_year=current_year,
                region_table=self.region_table,
            )

        def publish(result, generation):
            return ViewState(rows=tuple(result), generation=generation, extra={"region": region_key})

        return await self._run_cycle(work, publish)
