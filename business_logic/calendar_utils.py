"""
Calendar arithmetic for block plans.

All functions work on calendar dates (datetime.date), never on instants, so
results do not drift across daylight-saving changes or time zones.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from models.data_models import DateRange, Timegrain, WeekStartDay

logger = logging.getLogger(__name__)

# Fortnight buckets are counted from this Monday so every plan shares the same boundaries.
FORTNIGHT_EPOCH = date(2000, 1, 3)

DateLike = Union[date, datetime, str]


@dataclass(frozen=True)
class CalendarBucket:
    """A contiguous run of days used as a matrix column or a plan week."""
    start: date
    end: date
    key: str
    label: str = ""


def parse_iso_date(value: DateLike) -> date:
    """
    Convert an ISO date string, datetime or date into a calendar date.

    Timestamps such as '2025-01-05T13:00:00Z' keep their written date part;
    no time zone conversion is applied.

    Raises:
        ValueError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value) >= 10:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise ValueError(f"Invalid ISO date: {value!r}")


def to_iso_date(value: date) -> str:
    return value.isoformat()


def add_days(value: date, amount: int) -> date:
    return value + timedelta(days=amount)


def start_of_week(value: date, week_start_day: WeekStartDay = WeekStartDay.MONDAY) -> date:
    """Return the first day of the week containing ``value``."""
    if week_start_day == WeekStartDay.SUNDAY:
        offset = (value.weekday() + 1) % 7
    else:
        offset = value.weekday()
    return value - timedelta(days=offset)


def end_of_week(value: date, week_start_day: WeekStartDay = WeekStartDay.MONDAY) -> date:
    return start_of_week(value, week_start_day) + timedelta(days=6)


def inclusive_days_between(start: date, end: date) -> int:
    """Number of days in [start, end]; 0 when the range is reversed."""
    if end < start:
        return 0
    return (end - start).days + 1


def overlap_days(a: DateRange, b: DateRange) -> int:
    """Inclusive day count of the intersection of two closed ranges."""
    start = max(a.start, b.start)
    end = min(a.end, b.end)
    if a.end < a.start or b.end < b.start:
        return 0
    return inclusive_days_between(start, end)


def format_date_range(start: date, end: date) -> str:
    """Short label such as 'Jan 1 - Jan 14'."""
    return f"{start:%b} {start.day} - {end:%b} {end.day}"


def enumerate_weeks(start: date, end: date,
                    week_start_day: WeekStartDay = WeekStartDay.SUNDAY) -> List[CalendarBucket]:
    """
    List the full weeks that intersect [start, end].

    Weeks are not clipped: the first and last week may extend past the range
    so that every key is a real week start.

    Args:
        start: First day that must be covered
        end: Last day that must be covered
        week_start_day: Week anchoring convention

    Returns:
        Ordered, contiguous weeks keyed by their ISO start date
    """
    weeks: List[CalendarBucket] = []
    if end < start:
        return weeks

    cursor = start_of_week(start, week_start_day)
    limit = start_of_week(end, week_start_day)
    while cursor <= limit:
        week_end = cursor + timedelta(days=6)
        weeks.append(CalendarBucket(
            start=cursor,
            end=week_end,
            key=to_iso_date(cursor),
            label=format_date_range(cursor, week_end)
        ))
        cursor = cursor + timedelta(days=7)
    return weeks


def enumerate_plan_weeks(plan_start: Optional[DateLike], plan_end: Optional[DateLike],
                         week_start_day: WeekStartDay) -> List[CalendarBucket]:
    """Weeks spanning a plan's date range, or an empty list when the plan has no range."""
    if plan_start is None or plan_end is None:
        return []
    return enumerate_weeks(parse_iso_date(plan_start), parse_iso_date(plan_end), week_start_day)


def _month_end(value: date) -> date:
    return value.replace(day=calendar.monthrange(value.year, value.month)[1])


def _fortnight_start(value: date) -> date:
    offset = (value - FORTNIGHT_EPOCH).days
    return FORTNIGHT_EPOCH + timedelta(days=(offset // 14) * 14)


def compute_blocks(date_range: DateRange, grain: Timegrain,
                   week_start_day: WeekStartDay = WeekStartDay.MONDAY) -> List[CalendarBucket]:
    """
    Split a range into ordered, contiguous buckets clipped to the range.

    Week buckets follow ``week_start_day``. Fortnight buckets are anchored to
    FORTNIGHT_EPOCH so two ranges covering the same days share boundaries.
    Month buckets follow calendar months.

    Args:
        date_range: Range to cover
        grain: Bucket size
        week_start_day: Week anchoring for Week grain

    Returns:
        Buckets covering the range, empty when the range is reversed
    """
    start, end = date_range.start, date_range.end
    buckets: List[CalendarBucket] = []
    if end < start:
        return buckets

    if grain == Timegrain.WEEK:
        cursor = start_of_week(start, week_start_day)
    elif grain == Timegrain.FORTNIGHT:
        cursor = _fortnight_start(start)
    else:
        cursor = start.replace(day=1)

    while cursor <= end:
        if grain == Timegrain.WEEK:
            period_end = cursor + timedelta(days=6)
        elif grain == Timegrain.FORTNIGHT:
            period_end = cursor + timedelta(days=13)
        else:
            period_end = _month_end(cursor)

        bucket_start = max(cursor, start)
        bucket_end = min(period_end, end)
        buckets.append(CalendarBucket(
            start=bucket_start,
            end=bucket_end,
            key=to_iso_date(bucket_start),
            label=format_date_range(bucket_start, bucket_end)
        ))
        cursor = period_end + timedelta(days=1)

    logger.debug(f"Computed {len(buckets)} {grain.value} buckets for {start} to {end}")
    return buckets
