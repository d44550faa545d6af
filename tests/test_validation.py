# unit tests for the pure date-window and selection checks

from datetime import date, datetime, timedelta
import pytest
from tempwatch.models import ForecastClass
from tempwatch.validation import (
    ValidationError,
    ValidationReason,
    validate_regions,
    validate_request,
    validate_window,
    validate_year_range,
)

TODAY = date(2024, 1, 1)
SHORT = ForecastClass.SHORT_RANGE
MEDIUM = ForecastClass.MEDIUM_RANGE


@pytest.mark.parametrize("forecast_class", [SHORT, MEDIUM])
@pytest.mark.parametrize("gap", [1, 2, 30])
def test_end_before_start_is_rejected_for_every_class(forecast_class, gap):
    start = date(2024, 1, 20)
    with pytest.raises(ValidationError) as err:
        validate_window(start, start - timedelta(days=gap), forecast_class, TODAY)
    assert err.value.reason is ValidationReason.START_AFTER_END


@pytest.mark.parametrize("span", [0, 1, 2])
def test_short_range_accepts_up_to_three_days(span):
    window = validate_window(date(2024, 1, 1), date(2024, 1, 1 + span), SHORT, TODAY)
    assert window.span_days == span
    assert window.forecast_class is SHORT


@pytest.mark.parametrize("span", [3, 4, 10])
def test_short_range_rejects_longer_spans(span):
    with pytest.raises(ValidationError) as err:
        validate_window(date(2024, 1, 1), date(2024, 1, 1) + timedelta(days=span), SHORT, TODAY)
    assert err.value.reason is ValidationReason.RANGE_TOO_LONG


def test_short_range_has_no_lower_bound_on_start():
    # a start in the past is the caller's concern, not the validator's
    window = validate_window(date(2023, 12, 1), date(2023, 12, 2), SHORT, TODAY)
    assert window.start == date(2023, 12, 1)


def test_medium_range_lead_time():
    # today + 3 (2024-01-04) is the earliest accepted start
    assert validate_window(date(2024, 1, 4), date(2024, 1, 4), MEDIUM, TODAY).start == date(2024, 1, 4)
    assert validate_window("2024-01-04", "2024-01-06", MEDIUM, TODAY).start == date(2024, 1, 4)
    for start in ("2024-01-03", "2024-01-02"):
        with pytest.raises(ValidationError) as err:
            validate_window(start, "2024-01-05", MEDIUM, TODAY)
        assert err.value.reason is ValidationReason.START_TOO_SOON


@pytest.mark.parametrize("bad", ["2024-02-30", "tomorrow", ""])
def test_malformed_dates_are_validation_errors(bad):
    with pytest.raises(ValidationError) as err:
        validate_window(bad, "2024-03-01", SHORT, TODAY)
    assert err.value.reason is ValidationReason.INVALID_DATE
    assert repr(bad) in err.value.message


def test_medium_range_span_limit():
    window = validate_window(date(2024, 1, 4), date(2024, 1, 10), MEDIUM, TODAY)
    assert window.span_days == 6
    assert len(list(window.dates())) == 7
    with pytest.raises(ValidationError) as err:
        validate_window(date(2024, 1, 4), date(2024, 1, 11), MEDIUM, TODAY)
    assert err.value.reason is ValidationReason.RANGE_TOO_LONG


def test_inputs_are_normalized_to_dates():
    window = validate_window(datetime(2024, 1, 1, 17, 30), "2024-01-02", SHORT)
    assert window.start == date(2024, 1, 1)
    assert window.end == date(2024, 1, 2)


def test_empty_region_selection_is_its_own_error():
    with pytest.raises(ValidationError) as err:
        validate_regions([])
    assert err.value.reason is ValidationReason.NO_REGIONS_SELECTED


def test_region_selection_is_deduplicated_and_sorted():
    assert validate_regions(["pohang", "gumi", "pohang", ""]) == ["gumi", "pohang"]


def test_request_checks_regions_before_dates():
    # both inputs are bad; the missing selection wins
    with pytest.raises(ValidationError) as err:
        validate_request(date(2024, 1, 5), date(2024, 1, 1), SHORT, [], TODAY)
    assert err.value.reason is ValidationReason.NO_REGIONS_SELECTED


def test_year_range():
    assert validate_year_range(2020, 2024, current_year=2024) == (2020, 2024)
    with pytest.raises(ValidationError) as err:
        validate_year_range(2024, 2020, current_year=2024)
    assert err.value.reason is ValidationReason.START_AFTER_END
    with pytest.raises(ValidationError) as err:
        validate_year_range(2014, 2020, current_year=2024)
    assert err.value.reason is ValidationReason.YEAR_OUT_OF_RANGE
