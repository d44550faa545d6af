# KMA client tests against local fixtures so tests never hit the network

import json
from datetime import date, datetime
from pathlib import Path
import pytest
import requests
from tempwatch.aggregate import merge_series
from tempwatch.client import KMAClient, latest_mid_issuance, parse_medium_range
from tempwatch.models import FetchBatchResult, ForecastClass, ForecastWindow
from tempwatch.providers import ProviderError, ProviderTimeout
from tempwatch.regions import REGIONS

DATA = Path(__file__).parent / "data"


def _payload(name):
    return json.loads((DATA / name).read_text())


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=None):
        self._payload = payload
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.fixture
def make_client(monkeypatch):
    def make(response=None, exc=None):
        client = KMAClient(api_key="test-key", base_url="https://kma.test/api/")
        session = FakeSession(response, exc)
        monkeypatch.setattr(client, "_session", lambda: session)
        return client, session

    return make


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("KMA_API_KEY", raising=False)
    with pytest.raises(ProviderError, match="KMA_API_KEY"):
        KMAClient()


def test_short_range_keeps_tmp_rows_inside_window(make_client):
    client, session = make_client(FakeResponse(_payload("vilage_fcst.json")))
    window = ForecastWindow(date(2024, 1, 1), date(2024, 1, 2), ForecastClass.SHORT_RANGE)

    samples = client.fetch_hourly(REGIONS["daegu-jung"], window, base_time="1700")

    assert [(s.timestamp, s.value) for s in samples] == [
        (datetime(2024, 1, 1, 18), 3.0),
        (datetime(2024, 1, 1, 21), -1.0),
        (datetime(2024, 1, 2, 0), -2.0),
        (datetime(2024, 1, 2, 15), 6.0),
    ]
    url, params, timeout = session.calls[0]
    assert url == "https://kma.test/api/VilageFcstInfoService_2.0/getVilageFcst"
    assert params["base_date"] == "20240101"
    assert params["base_time"] == "1700"
    assert (params["nx"], params["ny"]) == (89, 90)
    assert params["authKey"] == "test-key"
    assert timeout == KMAClient.DEFAULT_TIMEOUT


def test_short_range_rejects_unknown_base_time(make_client):
    client, session = make_client(FakeResponse(_payload("vilage_fcst.json")))
    window = ForecastWindow(date(2024, 1, 1), date(2024, 1, 1), ForecastClass.SHORT_RANGE)
    with pytest.raises(ProviderError, match="base_time"):
        client.fetch_hourly(REGIONS["gumi"], window, base_time="1230")
    assert session.calls == []


def test_medium_range_maps_offsets_to_dates(make_client):
    client, session = make_client(FakeResponse(_payload("mid_ta.json")))
    window = ForecastWindow(date(2024, 1, 4), date(2024, 1, 10), ForecastClass.MEDIUM_RANGE)

    samples = client.fetch_daily(REGIONS["daegu-jung"], window, issue_date=date(2024, 1, 1))

    assert [s.date for s in samples] == [date(2024, 1, d) for d in range(4, 11)]
    assert (samples[0].min_value, samples[0].max_value) == (-5.0, 4.0)
    _, params, _ = session.calls[0]
    assert params["regId"] == "11H10701"
    assert params["tmFc"] == "202401010600"


def test_medium_range_inverted_day_is_swapped_by_the_merge(make_client):
    client, _ = make_client(FakeResponse(_payload("mid_ta.json")))
    window = ForecastWindow(date(2024, 1, 7), date(2024, 1, 7), ForecastClass.MEDIUM_RANGE)
    samples = client.fetch_daily(REGIONS["daegu-jung"], window, issue_date=date(2024, 1, 1))

    [row] = merge_series(FetchBatchResult(successes={"daegu-jung": samples}), ForecastClass.MEDIUM_RANGE)
    assert row.get("daegu-jung_min") == 2.0
    assert row.get("daegu-jung_max") == 7.0


def test_parse_medium_range_skips_missing_offsets():
    window = ForecastWindow(date(2024, 1, 4), date(2024, 1, 10), ForecastClass.MEDIUM_RANGE)
    samples = parse_medium_range([{"taMin4": 1, "taMax4": 9}], "gumi", window, date(2024, 1, 1))
    assert [(s.date, s.min_value, s.max_value) for s in samples] == [(date(2024, 1, 5), 1.0, 9.0)]
    assert parse_medium_range([], "gumi", window, date(2024, 1, 1)) == []


def test_current_reads_t1h(make_client):
    client, _ = make_client(FakeResponse(_payload("ultra_ncst.json")))
    sample = client.fetch_current(REGIONS["daegu-jung"], date(2024, 7, 1))
    assert sample.value == 29.4
    assert sample.timestamp == datetime(2024, 7, 1, 12)


def test_error_result_code(make_client):
    client, _ = make_client(FakeResponse(_payload("error_key.json")))
    window = ForecastWindow(date(2024, 1, 1), date(2024, 1, 1), ForecastClass.SHORT_RANGE)
    with pytest.raises(ProviderError, match="SERVICE_KEY_IS_NOT_REGISTERED_ERROR"):
        client.fetch_hourly(REGIONS["gumi"], window)


def test_no_data_result_is_empty(make_client):
    payload = {"response": {"header": {"resultCode": "03", "resultMsg": "NO_DATA"}}}
    client, _ = make_client(FakeResponse(payload))
    window = ForecastWindow(date(2024, 1, 1), date(2024, 1, 1), ForecastClass.SHORT_RANGE)
    assert client.fetch_hourly(REGIONS["gumi"], window) == []


def test_http_and_json_errors(make_client):
    window = ForecastWindow(date(2024, 1, 1), date(2024, 1, 1), ForecastClass.SHORT_RANGE)

    client, _ = make_client(FakeResponse(status_code=502, text="Bad Gateway"))
    with pytest.raises(ProviderError, match="HTTP 502"):
        client.fetch_hourly(REGIONS["gumi"], window)

    client, _ = make_client(FakeResponse(payload=None, text="<OpenAPI_ServiceResponse/>"))
    with pytest.raises(ProviderError, match="Invalid JSON"):
        client.fetch_hourly(REGIONS["gumi"], window)


def test_request_timeouts_are_distinguished(make_client):
    window = ForecastWindow(date(2024, 1, 1), date(2024, 1, 1), ForecastClass.SHORT_RANGE)

    client, _ = make_client(exc=requests.ReadTimeout("read timed out"))
    with pytest.raises(ProviderTimeout):
        client.fetch_hourly(REGIONS["gumi"], window)

    client, _ = make_client(exc=requests.ConnectionError("refused"))
    with pytest.raises(ProviderError) as err:
        client.fetch_hourly(REGIONS["gumi"], window)
    assert not isinstance(err.value, ProviderTimeout)


@pytest.mark.parametrize(
    "now, expected",
    [
        (datetime(2024, 1, 2, 5, 59), datetime(2024, 1, 1, 18, 0)),
        (datetime(2024, 1, 2, 6, 0), datetime(2024, 1, 2, 6, 0)),
        (datetime(2024, 1, 2, 17, 30), datetime(2024, 1, 2, 6, 0)),
        (datetime(2024, 1, 2, 18, 5), datetime(2024, 1, 2, 18, 0)),
        (datetime(2024, 1, 1, 0, 10), datetime(2023, 12, 31, 18, 0)),
    ],
)
def test_latest_mid_issuance(now, expected):
    assert latest_mid_issuance(now) == expected
