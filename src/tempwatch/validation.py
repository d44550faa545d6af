# pure checks run before any fetch is issued
# each returns a normalized value or raises ValidationError carrying a machine-readable reason

from __future__ import annotations
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union
from .models import ForecastClass, ForecastWindow

DateLike = Union[date, datetime, str]

# inclusive span limits: end - start in days
MAX_SPAN_DAYS = {
    ForecastClass.SHORT_RANGE: 2,   # at most 3 calendar days
    ForecastClass.MEDIUM_RANGE: 6,  # at most 7 calendar days
}
MEDIUM_RANGE_MIN_LEAD_DAYS = 3
HISTORY_YEARS = 10


class ValidationReason(str, Enum):
    START_AFTER_END = "start_after_end"
    RANGE_TOO_LONG = "range_too_long"
    START_TOO_SOON = "start_too_soon"
    NO_REGIONS_SELECTED = "no_regions_selected"
    YEAR_OUT_OF_RANGE = "year_out_of_range"
    INVALID_DATE = "invalid_date"


class ValidationError(ValueError):
    # user-facing input error; no fetch is issued when this is raised
    def __init__(self, reason: ValidationReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


def to_date(value: DateLike) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValidationError(ValidationReason.INVALID_DATE, f"Not a valid date: {value!r} ({exc})") from exc


def validate_window(
    start: DateLike,
    end: DateLike,
    forecast_class: ForecastClass,
    today: Optional[DateLike] = None,
) -> ForecastWindow:
    start_d, end_d = to_date(start), to_date(end)
    forecast_class = ForecastClass(forecast_class)

    if start_d > end_d:
        raise ValidationError(
            ValidationReason.START_AFTER_END,
            f"Start date {start_d} is after end date {end_d}",
        )

    max_span = MAX_SPAN_DAYS[forecast_class]
    if (end_d - start_d).days > max_span:
        raise ValidationError(
            ValidationReason.RANGE_TOO_LONG,
            f"{forecast_class.value} forecasts cover at most {max_span + 1} days (got {start_d} to {end_d})",
        )

    if forecast_class is ForecastClass.MEDIUM_RANGE:
        today_d = to_date(today) if today is not None else date.today()
        earliest = today_d + timedelta(days=MEDIUM_RANGE_MIN_LEAD_DAYS)
        if start_d < earliest:
            raise ValidationError(
                ValidationReason.START_TOO_SOON,
                f"Medium-range forecasts must start on or after {earliest}",
            )

    return ForecastWindow(start=start_d, end=end_d, forecast_class=forecast_class)


def validate_regions(selected: Iterable[str]) -> List[str]:
    # sorted keys are the documented tie-break order for extremes
    keys = sorted({k for k in selected if k})
    if not keys:
        raise ValidationError(
            ValidationReason.NO_REGIONS_SELECTED,
            "Select at least one region to see a forecast",
        )
    return keys


def validate_request(
    start: DateLike,
    end: DateLike,
    forecast_class: ForecastClass,
    selected: Iterable[str],
    today: Optional[DateLike] = None,
) -> Tuple[ForecastWindow, List[str]]:
    # region selection is checked before the dates
    keys = validate_regions(selected)
    window = validate_window(start, end, forecast_class, today=today)
    return window, keys


def validate_year_range(start_year: int, end_year: int, current_year: Optional[int] = None) -> Tuple[int, int]:
    current = current_year if current_year is not None else date.today().year
    start_year, end_year = int(start_year), int(end_year)
    if start_year > end_year:
        raise ValidationError(
            ValidationReason.START_AFTER_END,
            f"Start year {start_year} is after end year {end_year}",
        )
    earliest = current - (HISTORY_YEARS - 1)
    if start_year < earliest or end_year > current:
        raise ValidationError(
            ValidationReason.YEAR_OUT_OF_RANGE,
            f"Years must fall between {earliest} and {current}",
        )
    return start_year, end_year
