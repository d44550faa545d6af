# OOP boundary for external i/o against the KMA API hub
# all http/keys/params live here, so the rest of the code is pure and testable
# use a thread-local session per worker thread (fetches are offloaded with asyncio.to_thread)

from __future__ import annotations
import logging
import os
import threading
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
import requests
from dotenv import load_dotenv
from .models import DailySample, ForecastWindow, Region, Sample
from .providers import ProviderError, ProviderTimeout, TemperatureProvider, check_base_time

load_dotenv()  # in production, environment variables are injected by docker, kubernetes, cloud provider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://apihub.kma.go.kr/api/typ02/openApi"


class KMAClient(TemperatureProvider):
    # this class encapsulates provider details like base URL, params, auth
    # a single best-effort attempt per call, no retries
    name = "kma"
    SHORT_RANGE_PATH = "VilageFcstInfoService_2.0/getVilageFcst"
    NOWCAST_PATH = "VilageFcstInfoService_2.0/getUltraSrtNcst"
    MEDIUM_RANGE_PATH = "MidFcstInfoService/getMidTa"
    DEFAULT_TIMEOUT = 10.0
    MID_ISSUE_TIME = "0600"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = "tempwatch/0.1",
    ):
        self.api_key = api_key or os.getenv("KMA_API_KEY")
        if not self.api_key:
            # fail when key is missing to avoid confusing downstream errors
            raise ProviderError("KMA_API_KEY not set")

        self.base_url = (base_url or os.getenv("KMA_API_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent

        # each worker thread lazily obtains its own session through _session()
        self._local = threading.local()

    def _build_session(self) -> requests.Session:
        s = requests.Session()
        s.headers.update({"User-Agent": self.user_agent, "Accept": "application/json"})
        return s

    def _session(self) -> requests.Session:
        sess = getattr(self._local, "session", None)
        if sess is None:
            sess = self._build_session()
            self._local.session = sess
        return sess

    def _get_items(self, path: str, params: Dict[str, Any], what: str) -> List[Dict[str, Any]]:
        # shared request, status and envelope checks for every KMA endpoint
        url = f"{self.base_url}/{path}"
        logger.debug("GET %s (%s)", path, what)
        query = {"authKey": self.api_key, "dataType": "JSON", "pageNo": 1, "numOfRows": 1000, **params}

        try:
            resp = self._session().get(url, params=query, timeout=self.timeout)
        except requests.Timeout as exc:
            raise ProviderTimeout(f"Timed out after {self.timeout}s for {what}") from exc
        except requests.RequestException as exc:
            # wrap requests exceptions with context for easier debugging
            raise ProviderError(f"Request error for {what}: {exc}") from exc

        if resp.status_code >= 400:
            # include a short response snippet to speed up triage
            snippet = (resp.text or "")[:300]
            raise ProviderError(f"HTTP {resp.status_code} for {what}. Body: {snippet}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(f"Invalid JSON for {what}: {exc}") from exc

        try:
            header = data["response"]["header"]
        except (KeyError, TypeError) as exc:
            raise ProviderError(f"Unexpected API shape for {what}: missing response.header") from exc

        code = str(header.get("resultCode", ""))
        if code == "03":
            # NO_DATA is an empty result, not an error
            return []
        if code != "00":
            raise ProviderError(f"KMA error {code} for {what}: {header.get('resultMsg', '')}")

        try:
            items = data["response"]["body"]["items"]["item"]
        except (KeyError, TypeError) as exc:
            raise ProviderError(f"Unexpected API shape for {what}: missing response.body.items.item") from exc
        # a single record may come back as a bare object
        return items if isinstance(items, list) else [items]

    def fetch_hourly(self, region: Region, window: ForecastWindow, base_time: str = "1700") -> List[Sample]:
        check_base_time(base_time)
        params = {
            "base_date": window.start.strftime("%Y%m%d"),
            "base_time": base_time,
            "nx": region.grid.nx,
            "ny": region.grid.ny,
        }
        items = self._get_items(self.SHORT_RANGE_PATH, params, f"short-range {region.key!r}")
        return parse_short_range(items, region.key, window)

    def fetch_daily(self, region: Region, window: ForecastWindow, issue_date: Optional[date] = None) -> List[DailySample]:
        if issue_date is not None:
            issued = datetime.combine(issue_date, datetime.min.time()).replace(hour=int(self.MID_ISSUE_TIME[:2]))
        else:
            issued = latest_mid_issuance(datetime.now())
        params = {"regId": region.mid_reg_id, "tmFc": issued.strftime("%Y%m%d%H%M")}
        items = self._get_items(self.MEDIUM_RANGE_PATH, params, f"medium-range {region.key!r}")
        return parse_medium_range(items, region.key, window, issued.date())

    def fetch_current(self, region: Region, day: date) -> Sample:
        now = datetime.now()
        # observations are published a little after the hour
        if day == now.date():
            observed = (now - timedelta(minutes=40)).replace(minute=0, second=0, microsecond=0)
        else:
            observed = datetime.combine(day, datetime.min.time()).replace(hour=12)
        params = {
            "base_date": observed.strftime("%Y%m%d"),
            "base_time": observed.strftime("%H00"),
            "nx": region.grid.nx,
            "ny": region.grid.ny,
        }
        items = self._get_items(self.NOWCAST_PATH, params, f"nowcast {region.key!r}")
        for item in items:
            if item.get("category") == "T1H":
                try:
                    return Sample(region.key, observed, float(item["obsrValue"]))
                except (KeyError, TypeError, ValueError) as exc:
                    raise ProviderError(f"Bad T1H value for {region.key!r}: {item!r}") from exc
        raise ProviderError(f"No T1H observation for {region.key!r} at {observed:%Y-%m-%d %H:%M}")


def latest_mid_issuance(now: datetime) -> datetime:
    # mid-term forecasts are issued at 06:00 and 18:00; before 06:00 only yesterday's 18:00 run exists
    day = now.replace(minute=0, second=0, microsecond=0)
    if now.hour >= 18:
        return day.replace(hour=18)
    if now.hour >= 6:
        return day.replace(hour=6)
    return (day - timedelta(days=1)).replace(hour=18)


# transform raw provider payloads into our small, typed value objects
def parse_short_range(items: List[Dict[str, Any]], region_key: str, window: ForecastWindow) -> List[Sample]:
    # getVilageFcst rows: {"category": "TMP", "fcstDate": "20240101", "fcstTime": "0300", "fcstValue": "-2"}
    samples = []
    for item in items:
        if item.get("category") != "TMP":
            continue
        try:
            ts = datetime.strptime(f"{item['fcstDate']}{item['fcstTime']}", "%Y%m%d%H%M")
            value = float(item["fcstValue"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderError(f"Bad TMP row for {region_key!r}: {item!r}") from exc
        if window.contains(ts.date()):
            samples.append(Sample(region_key, ts, value))
    return samples


def parse_medium_range(
    items: List[Dict[str, Any]], region_key: str, window: ForecastWindow, issued: date
) -> List[DailySample]:
    # getMidTa returns one row with taMin<n>/taMax<n> for n days after issuance
    if not items:
        return []
    row = items[0]
    samples = []
    for offset in range(3, 11):
        low, high = row.get(f"taMin{offset}"), row.get(f"taMax{offset}")
        if low is None or high is None:
            continue
        day = issued + timedelta(days=offset)
        if not window.contains(day):
            continue
        try:
            samples.append(DailySample(region_key, day, float(low), float(high)))
        except (TypeError, ValueError) as exc:
            raise ProviderError(f"Bad taMin/taMax{offset} for {region_key!r}: {low!r}/{high!r}") from exc
    return samples
