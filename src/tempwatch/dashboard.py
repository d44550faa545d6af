"""Streamlit dashboard for regional temperatures (Daegu / Gyeongbuk).

Four tabs: daily snapshot, short-range forecast, medium-range forecast and
historical trend. Each tab owns its view object in ``st.session_state`` so
its state survives reruns and stale cycles are discarded by the view.

Run with: streamlit run src/tempwatch/dashboard.py
"""

import asyncio
from datetime import date, timedelta

import streamlit as st

from tempwatch.aggregate import summarize_snapshot
from tempwatch.config import Settings, build_provider
from tempwatch.frames import extremes_frame, forecast_frame, history_frame, snapshot_frame
from tempwatch.identity import resolve_session_id
from tempwatch.models import ForecastClass
from tempwatch.providers import BASE_TIMES, SimulatedProvider
from tempwatch.regions import DEFAULT_REGION, REGIONS, region_keys
from tempwatch.validation import HISTORY_YEARS
from tempwatch.views import ForecastView, HistoryView, SnapshotView

# Session state keys
SESSION_ID_KEY = "session_id"
VIEWS_KEY = "views"

st.set_page_config(
    page_title="Daegu / Gyeongbuk Temperatures",
    page_icon="🌡️",
    layout="wide",
)


def _views() -> dict:
    if VIEWS_KEY not in st.session_state:
        settings = Settings.from_env()
        provider = build_provider(settings.provider)
        st.session_state[VIEWS_KEY] = {
            "snapshot": SnapshotView(provider, timeout=settings.fetch_timeout),
            "short": ForecastView(ForecastClass.SHORT_RANGE, provider, timeout=settings.fetch_timeout),
            "medium": ForecastView(ForecastClass.MEDIUM_RANGE, provider, timeout=settings.fetch_timeout),
            # yearly history only exists as sample data
            "history": HistoryView(SimulatedProvider()),
            "base_time": settings.base_time,
        }
    return st.session_state[VIEWS_KEY]


def _show_messages(state) -> bool:
    if state.error:
        st.error(state.error)
        return False
    if state.warning:
        st.warning(state.warning)
    return bool(state.rows)


def _region_picker(label: str, key: str):
    return st.multiselect(
        label,
        options=region_keys(),
        default=[DEFAULT_REGION],
        format_func=lambda k: REGIONS[k].display_name,
        key=key,
    )


def render_snapshot(view: SnapshotView) -> None:
    day = st.date_input("Date", value=date.today(), key="snapshot_date")
    with st.spinner("Loading daily temperatures..."):
        state = asyncio.run(view.refresh(day))
    if not _show_messages(state):
        return
    frame = snapshot_frame(state.rows)
    st.map(frame, latitude="lat", longitude="lon", size=2000)
    hottest, coolest, avg = summarize_snapshot(state.rows)
    cols = st.columns(3)
    cols[0].metric("Hottest", f"{hottest.temperature:.1f} °C", hottest.display_name)
    cols[1].metric("Coolest", f"{coolest.temperature:.1f} °C", coolest.display_name)
    cols[2].metric("Average", f"{avg:.1f} °C")
    st.dataframe(frame, hide_index=True, use_container_width=True)


def render_forecast(view: ForecastView, base_time_default: str) -> None:
    today = date.today()
    medium = view.forecast_class is ForecastClass.MEDIUM_RANGE
    prefix = "medium" if medium else "short"
    start_default = today + timedelta(days=3) if medium else today
    span = 6 if medium else 2

    c1, c2, c3 = st.columns(3)
    start = c1.date_input("Start", value=start_default, key=f"{prefix}_start")
    end = c2.date_input("End", value=start_default + timedelta(days=span), key=f"{prefix}_end")
    kwargs = {}
    if not medium:
        kwargs["base_time"] = c3.selectbox(
            "Base time", BASE_TIMES, index=BASE_TIMES.index(base_time_default), key="short_base_time"
        )
    regions = _region_picker("Regions", key=f"{prefix}_regions")

    with st.spinner("Loading forecast..."):
        state = asyncio.run(view.refresh(start, end, regions, **kwargs))
    if not _show_messages(state):
        return

    selected = state.extra.get("regions", ())
    st.line_chart(forecast_frame(state.rows, selected, view.forecast_class, REGIONS))
    st.subheader("Overall max / min per " + ("day" if medium else "time slot"))
    st.dataframe(extremes_frame(state.rows, REGIONS), hide_index=True, use_container_width=True)


def render_history(view: HistoryView) -> None:
    this_year = date.today().year
    years = list(range(this_year - HISTORY_YEARS + 1, this_year + 1))
    c1, c2, c3 = st.columns(3)
    region = c1.selectbox(
        "Region", region_keys(), index=region_keys().index(DEFAULT_REGION),
        format_func=lambda k: REGIONS[k].display_name, key="history_region",
    )
    start_year = c2.selectbox("Start year", years, index=len(years) - 6, key="history_start")
    end_year = c3.selectbox("End year", years, index=len(years) - 1, key="history_end")

    with st.spinner("Loading history..."):
        state = asyncio.run(view.refresh(region, start_year, end_year))
    if _show_messages(state):
        st.line_chart(history_frame(state.rows))


def main() -> None:
    if SESSION_ID_KEY not in st.session_state:
        st.session_state[SESSION_ID_KEY] = resolve_session_id()

    st.title("Temperatures: Daegu / Gyeongbuk")
    st.caption(f"session {st.session_state[SESSION_ID_KEY][:8]}")
    views = _views()

    tabs = st.tabs(["Daily snapshot", "Short-range forecast", "Medium-range forecast", "History"])
    with tabs[0]:
        render_snapshot(views["snapshot"])
    with tabs[1]:
        render_forecast(views["short"], views["base_time"])
    with tabs[2]:
        render_forecast(views["medium"], views["base_time"])
    with tabs[3]:
        render_history(views["history"])


main()
