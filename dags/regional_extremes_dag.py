# dags/regional_extremes_dag.py
from __future__ import annotations
import os
from datetime import date, datetime, timedelta
from typing import List
from airflow.decorators import dag, task
from airflow.exceptions import AirflowFailException
from tempwatch.aggregate import annotate_extremes, merge_series
from tempwatch.client import KMAClient
from tempwatch.models import DailySample, FetchBatchResult, FetchFailureKind, ForecastClass, RegionFailure
from tempwatch.providers import ProviderError
from tempwatch.regions import REGIONS, display_name, region_keys
from tempwatch.validation import validate_window

REGION_KEYS = region_keys()


@dag(
    dag_id="regional_extremes",
    start_date=datetime(2025, 1, 1),
    schedule="30 6 * * *",  # after the 06:00 medium-range issuance
    catchup=False,
    default_args={"owner": "tempwatch", "retries": 0},
    tags=["weather", "kma", "medium-range"],
)
def regional_extremes():
    @task
    def window_bounds() -> dict:
        today = date.today()
        window = validate_window(today + timedelta(days=3), today + timedelta(days=9), ForecastClass.MEDIUM_RANGE, today)
        return {"start": window.start.isoformat(), "end": window.end.isoformat(), "today": today.isoformat()}

    @task(pool="kma", execution_timeout=timedelta(seconds=30))
    def fetch_region(region_key: str, bounds: dict) -> dict:
        api_key = os.getenv("KMA_API_KEY")
        if not api_key:
            raise AirflowFailException("KMA_API_KEY not set in task environment")

        window = validate_window(bounds["start"], bounds["end"], ForecastClass.MEDIUM_RANGE, bounds["today"])
        client = KMAClient(api_key=api_key)
        try:
            samples = client.fetch_daily(REGIONS[region_key], window, issue_date=date.fromisoformat(bounds["today"]))
        except ProviderError as e:
            # one region failing must not fail the briefing; report it as data
            return {"region": region_key, "error": str(e)}
        return {"region": region_key, "samples": [s.as_dict() for s in samples]}

    @task
    def publish(results: List[dict]) -> None:
        successes, failures = {}, {}
        for r in results:
            if "error" in r:
                failures[r["region"]] = RegionFailure(r["region"], FetchFailureKind.PROVIDER_FAILURE, r["error"])
            else:
                successes[r["region"]] = [DailySample.from_dict(s) for s in r["samples"]]
        batch = FetchBatchResult(successes=successes, failures=failures)
        if not successes:
            raise AirflowFailException(batch.failure_summary(REGIONS) or "no regions fetched")

        rows = annotate_extremes(merge_series(batch, ForecastClass.MEDIUM_RANGE), REGION_KEYS, ForecastClass.MEDIUM_RANGE)
        for row in rows:
            if row.max_overall is None:
                continue
            print(
                f"{row.label} max {row.max_overall:.1f} ({display_name(row.max_overall_region)}) "
                f"min {row.min_overall:.1f} ({display_name(row.min_overall_region)})"
            )
        summary = batch.failure_summary(REGIONS)
        if summary:
            print(summary)

    bounds = window_bounds()
    results = fetch_region.partial(bounds=bounds).expand(region_key=REGION_KEYS)
    publish(results)


dag = regional_extremes()
