from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from enum import StrEnum

MAX_CHART_FETCH_DAYS = 36_500


class ChartRange(StrEnum):
    ONE_DAY = "1D"
    FIVE_DAYS = "5D"
    ONE_MONTH = "1M"
    SIX_MONTHS = "6M"
    YTD = "YTD"
    ONE_YEAR = "1Y"
    FIVE_YEARS = "5Y"
    ALL = "ALL"

    def start_date(self, end_date: date) -> date | None:
        """First day covered by the preset, or None for an unbounded range."""

        match self:
            case ChartRange.ONE_DAY:
                return days_before(end_date, 1)
            case ChartRange.FIVE_DAYS:
                return days_before(end_date, 5)
            case ChartRange.YTD:
                return date(end_date.year, 1, 1)
            case ChartRange.ALL:
                return None

        months, fallback_days = _MONTH_PRESETS[self]
        shifted = subtract_months(end_date, months)
        if shifted is None:
            return days_before(end_date, fallback_days)
        return shifted


_MONTH_PRESETS: dict[ChartRange, tuple[int, int]] = {
    ChartRange.ONE_MONTH: (1, 30),
    ChartRange.SIX_MONTHS: (6, 182),
    ChartRange.ONE_YEAR: (12, 365),
    ChartRange.FIVE_YEARS: (60, 365 * 5),
}


def subtract_months(value: date, months: int) -> date | None:
    """Calendar month subtraction, clamping the day to the target month's length.

    Returns None when the result falls outside the supported date range.
    """

    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    if year < 1:
        return None
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def days_before(value: date, days: int) -> date:
    """Subtract whole days, clamping at the first representable date."""

    try:
        return value - timedelta(days=days)
    except OverflowError:
        return date.min


def compute_fetch_days(start_date: date | None, today: date | None = None) -> int:
    if start_date is None:
        return MAX_CHART_FETCH_DAYS
    current = today or datetime.now(timezone.utc).date()
    days = max((current - start_date).days, 1)
    return min(days, MAX_CHART_FETCH_DAYS)


def window_bounds(start_date: date | None, end_date: date) -> tuple[datetime | None, datetime]:
    """Expand calendar dates into an inclusive UTC timestamp window."""

    start_ts = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None
    end_ts = datetime.combine(end_date, time(23, 59, 59), tzinfo=timezone.utc)
    return start_ts, end_ts


def format_range_label(start_date: date | None, end_date: date, preset: ChartRange) -> str:
    if start_date is None:
        return preset.value
    return f"{start_date.isoformat()}..{end_date.isoformat()}"


__all__ = [
    "MAX_CHART_FETCH_DAYS",
    "ChartRange",
    "compute_fetch_days",
    "days_before",
    "format_range_label",
    "subtract_months",
    "window_bounds",
]
