# connects command-line input (dates, regions) to the views and prints plain text tables

from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from datetime import date, timedelta
from typing import List, Optional, Sequence
from .aggregate import max_column, min_column, summarize_snapshot
from .config import PROVIDERS, Settings, build_provider
from .models import ForecastClass, MergedRow
from .providers import BASE_TIMES, ProviderError, SimulatedProvider
from .regions import DEFAULT_REGION, REGIONS, display_name, region_keys
from .views import ForecastView, HistoryView, SnapshotView, ViewState

EXIT_VALIDATION = 2
EXIT_FAILURE = 1


def _fmt(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.1f}"


def _print_forecast(state: ViewState, forecast_class: ForecastClass) -> None:
    regions = state.extra.get("regions", ())
    if forecast_class is ForecastClass.MEDIUM_RANGE:
        header = ["date"] + [f"{k} min/max" for k in regions]
    else:
        header = ["time"] + list(regions)
    header += ["max", "max region", "min", "min region"]
    print(" | ".join(header))
    for row in state.rows:
        print(" | ".join(_forecast_cells(row, regions, forecast_class)))


def _forecast_cells(row: MergedRow, regions: Sequence[str], forecast_class: ForecastClass) -> List[str]:
    cells = [row.label]
    for key in regions:
        if forecast_class is ForecastClass.MEDIUM_RANGE:
            cells.append(f"{_fmt(row.get(min_column(key)))}/{_fmt(row.get(max_column(key)))}")
        else:
            cells.append(_fmt(row.get(key)))
    cells += [
        _fmt(row.max_overall),
        display_name(row.max_overall_region) if row.max_overall_region else "-",
        _fmt(row.min_overall),
        display_name(row.min_overall_region) if row.min_overall_region else "-",
    ]
    return cells


def _report(state: ViewState) -> int:
    # warnings and errors go to stderr so stdout stays a clean table
    if state.warning:
        print(f"warning: {state.warning}", file=sys.stderr)
    if state.error:
        print(f"error: {state.error}", file=sys.stderr)
        return EXIT_VALIDATION if state.error_reason else EXIT_FAILURE
    return 0


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    today = date.today()
    parser = argparse.ArgumentParser(prog="tempwatch", description="Regional temperature snapshot, forecasts and trends")
    parser.add_argument("--provider", choices=PROVIDERS, default=settings.provider)
    parser.add_argument("--seed", type=int, default=None, help="seed for the simulated provider")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("regions", help="list region keys")

    snap = sub.add_parser("snapshot", help="same-day temperature per region")
    snap.add_argument("--date", default=today.isoformat())
    snap.add_argument("--region", action="append", dest="regions", help="repeatable; default all regions")

    short = sub.add_parser("short", help="hourly forecast for up to 3 days")
    short.add_argument("--start", default=today.isoformat())
    short.add_argument("--end", default=(today + timedelta(days=2)).isoformat())
    short.add_argument("--region", action="append", dest="regions", default=None)
    short.add_argument("--base-time", choices=BASE_TIMES, default=settings.base_time)

    medium = sub.add_parser("medium", help="daily min/max forecast, 3 to 9 days out")
    medium.add_argument("--start", default=(today + timedelta(days=3)).isoformat())
    medium.add_argument("--end", default=(today + timedelta(days=9)).isoformat())
    medium.add_argument("--region", action="append", dest="regions", default=None)

    history = sub.add_parser("history", help="yearly trend for one region")
    history.add_argument("--region", default=DEFAULT_REGION)
    history.add_argument("--start-year", type=int, default=today.year - 5)
    history.add_argument("--end-year", type=int, default=today.year)
    return parser


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "regions":
        for key in region_keys():
            print(f"{key}\t{REGIONS[key].display_name}")
        return 0

    if args.command == "history":
        # yearly history is only simulated; the KMA forecast services carry no archive
        view = HistoryView(SimulatedProvider(seed=args.seed))
        state = await view.refresh(args.region, args.start_year, args.end_year)
        if state.rows:
            print(f"{display_name(args.region)} | avg | max | min")
            for s in state.rows:
                print(f"{s.year} | {s.avg_temp:.1f} | {s.max_temp:.1f} | {s.min_temp:.1f}")
        return _report(state)

    provider = build_provider(args.provider, seed=args.seed)

    if args.command == "snapshot":
        view = SnapshotView(provider, timeout=settings.fetch_timeout)
        state = await view.refresh(args.date, args.regions)
        if state.rows:
            for r in state.rows:
                print(f"{r.display_name}: {r.temperature:.1f}")
            hottest, coolest, avg = summarize_snapshot(state.rows)
            print(f"hottest: {hottest.display_name} {hottest.temperature:.1f}")
            print(f"coolest: {coolest.display_name} {coolest.temperature:.1f}")
            print(f"average: {avg:.1f}")
        return _report(state)

    forecast_class = ForecastClass.SHORT_RANGE if args.command == "short" else ForecastClass.MEDIUM_RANGE
    regions = args.regions if args.regions is not None else [DEFAULT_REGION]
    view = ForecastView(forecast_class, provider, timeout=settings.fetch_timeout)
    kwargs = {"base_time": args.base_time} if forecast_class is ForecastClass.SHORT_RANGE else {}
    state = await view.refresh(args.start, args.end, regions, **kwargs)
    if state.rows:
        _print_forecast(state, forecast_class)
    return _report(state)


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = build_parser(settings).parse_args(argv)
    try:
        return asyncio.run(_run(args, settings))
    except ProviderError as exc:
        # e.g. missing KMA_API_KEY when --provider kma
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
