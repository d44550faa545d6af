# per-view state: validation clears data, failures become warnings, stale cycles are dropped

import asyncio
import pytest
from datetime import date, datetime, time
from tempwatch.models import ForecastClass, Sample
from tempwatch.providers import SimulatedProvider, TemperatureProvider
from tempwatch.views import GENERIC_FAILURE, ForecastView, HistoryView, SnapshotView, ViewState


class GatedProvider(TemperatureProvider):
    # each call blocks until the test releases the gate for that region set
    def __init__(self):
        self.gates = {}

    async def fetch_hourly(self, region, window, base_time="1700"):
        await self.gates[window.start].wait()
        value = 10.0 if window.start == date(2024, 1, 1) else 30.0
        return [Sample(region.key, datetime.combine(window.start, time(0)), value)]


def test_refresh_publishes_annotated_rows():
    view = ForecastView(ForecastClass.SHORT_RANGE, SimulatedProvider(seed=3))
    state = asyncio.run(view.refresh("2024-01-01", "2024-01-01", ["gumi", "andong"]))
    assert state.error is None and state.warning is None
    assert not state.loading
    assert len(state.rows) == 8
    assert state.extra["regions"] == ("andong", "gumi")
    assert all(r.max_overall is not None for r in state.rows)


def test_validation_error_clears_previous_rows():
    view = ForecastView(ForecastClass.SHORT_RANGE, SimulatedProvider(seed=3))
    asyncio.run(view.refresh("2024-01-01", "2024-01-01", ["gumi"]))
    assert view.state.rows

    state = asyncio.run(view.refresh("2024-01-01", "2024-01-01", []))
    assert state.rows == ()
    assert state.error_reason == "no_regions_selected"
    assert state.error


def test_medium_range_start_too_soon():
    view = ForecastView(ForecastClass.MEDIUM_RANGE, SimulatedProvider(seed=3))
    state = asyncio.run(view.refresh("2024-01-02", "2024-01-05", ["gumi"], today="2024-01-01"))
    assert state.error_reason == "start_too_soon"
    assert state.rows == ()


def test_partial_failure_becomes_a_warning():
    view = ForecastView(ForecastClass.SHORT_RANGE, SimulatedProvider(seed=3, fail_regions={"gimcheon"}))
    state = asyncio.run(view.refresh("2024-01-01", "2024-01-01", ["gumi", "gimcheon", "andong"]))
    assert state.error is None
    assert state.warning == "Some regions failed to load: Gimcheon"
    assert set(state.failures) == {"gimcheon"}
    assert all(set(r.values) == {"gumi", "andong"} for r in state.rows)


def test_stale_cycle_does_not_overwrite_newer_result():
    provider = GatedProvider()

    async def scenario():
        view = ForecastView(ForecastClass.SHORT_RANGE, provider)
        old_gate, new_gate = asyncio.Event(), asyncio.Event()
        provider.gates = {date(2024, 1, 1): old_gate, date(2024, 1, 2): new_gate}

        old = asyncio.ensure_future(view.refresh("2024-01-01", "2024-01-01", ["gumi"]))
        await asyncio.sleep(0)
        new = asyncio.ensure_future(view.refresh("2024-01-02", "2024-01-02", ["gumi"]))
        await asyncio.sleep(0)

        # the newer cycle resolves first, then the older one
        new_gate.set()
        await new
        old_gate.set()
        await old
        return view

    view = asyncio.run(scenario())
    assert view.generation == 2
    assert view.state.generation == 2
    [row] = view.state.rows
    assert row.get("gumi") == 30.0


def test_batch_failure_clears_rows_with_generic_error():
    class Broken(SimulatedProvider):
        def fetch_current(self, region, day):
            raise RuntimeError("unexpected payload")

    view = SnapshotView(Broken())
    state = asyncio.run(view.refresh(date(2024, 7, 1), ["gumi"]))
    assert state.rows == ()
    assert state.error == GENERIC_FAILURE
    assert state.error_reason is None


def test_history_view():
    view = HistoryView(SimulatedProvider(seed=5))
    state = asyncio.run(view.refresh("andong", 2022, 2024, current_year=2024))
    assert [s.year for s in state.rows] == [2022, 2023, 2024]

    state = asyncio.run(view.refresh("andong", 2024, 2022, current_year=2024))
    assert state.error_reason == "start_after_end"
    assert state.rows == ()


def test_unexpected_history_error_resets_loading_and_clears_rows():
    class Broken(SimulatedProvider):
        def fetch_yearly(self, region, start_year, end_year):
            raise RuntimeError("unexpected payload")

    view = HistoryView(Broken(seed=5))
    view.state = ViewState(rows=("stale",))
    state = asyncio.run(view.refresh("andong", 2022, 2024, current_year=2024))
    assert state.error == GENERIC_FAILURE
    assert state.rows == ()
    assert not state.loading


def test_malformed_date_clears_rows_with_validation_error():
    view = ForecastView(ForecastClass.SHORT_RANGE, SimulatedProvider(seed=3))
    asyncio.run(view.refresh("2024-01-01", "2024-01-01", ["gumi"]))
    assert view.state.rows

    state = asyncio.run(view.refresh("2024-02-30", "2024-03-01", ["gumi"]))
    assert state.error_reason == "invalid_date"
    assert state.rows == ()
    assert not state.loading


def test_cancelled_cycle_does_not_stay_loading():
    provider = GatedProvider()
    view = ForecastView(ForecastClass.SHORT_RANGE, provider)

    async def scenario():
        provider.gates[date(2024, 1, 1)] = asyncio.Event()
        task = asyncio.create_task(view.refresh("2024-01-01", "2024-01-01", ["gumi"]))
        await asyncio.sleep(0.01)
        assert view.state.loading
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert not view.state.loading
