"""
Date helpers for analytics: period tokens, previous periods and percent change.

All instants are naive UTC datetimes. Stored records carry ISO-8601 strings,
so ``parse_instant`` accepts either form.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union

from dateutil.relativedelta import relativedelta

from app.core.errors import InvalidRangeError

Instant = Union[datetime, date, str]

ONE_MS = timedelta(milliseconds=1)

PERIOD_LABELS = {
    "today": "Today",
    "yesterday": "Yesterday",
    "week": "This Week",
    "last-week": "Last Week",
    "month": "This Month",
    "last-month": "Last Month",
    "quarter": "This Quarter",
    "year": "This Year",
    "last-year": "Last Year",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_instant(value: Instant) -> datetime:
    """Coerce a datetime, date or ISO string into a naive UTC datetime."""
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_naive_utc(datetime.fromisoformat(text))


def to_iso(value: datetime) -> str:
    """Millisecond ISO format; sorts lexicographically in the store."""
    return to_naive_utc(value).isoformat(timespec="milliseconds")


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def parse_date_bound(value: Instant, end: bool = False) -> datetime:
    """A range bound from user input; an end bound covers the whole of its day."""
    try:
        parsed = parse_instant(value)
    except ValueError:
        raise InvalidRangeError("Date range bounds must be ISO-8601 dates")
    return end_of_day(parsed) if end else parsed


def resolve_date_range(
    period: Optional[str] = "month",
    start: Optional[Instant] = None,
    end: Optional[Instant] = None,
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """
    Map a period token to an inclusive (start, end) pair.

    Weeks start on Sunday. Unknown tokens resolve to the current month.
    """
    now = to_naive_utc(now) if now else utcnow()
    today = start_of_day(now)

    if period == "today":
        return today, end_of_day(today)

    if period == "yesterday":
        day = today - timedelta(days=1)
        return day, end_of_day(day)

    if period == "week":
        # isoweekday: Monday=1 .. Sunday=7
        week_start = today - timedelta(days=today.isoweekday() % 7)
        return week_start, end_of_day(today)

    if period == "last-week":
        last_saturday = today - timedelta(days=today.isoweekday() % 7 + 1)
        return last_saturday - timedelta(days=6), end_of_day(last_saturday)

    if period == "last-month":
        first = today.replace(day=1) - relativedelta(months=1)
        return first, end_of_day(first + relativedelta(months=1, days=-1))

    if period == "quarter":
        first_month = (today.month - 1) // 3 * 3 + 1
        first = today.replace(month=first_month, day=1)
        return first, end_of_day(first + relativedelta(months=3, days=-1))

    if period == "year":
        first = today.replace(month=1, day=1)
        return first, end_of_day(first.replace(month=12, day=31))

    if period == "last-year":
        first = today.replace(year=today.year - 1, month=1, day=1)
        return first, end_of_day(first.replace(month=12, day=31))

    if period == "custom":
        if not start or not end:
            raise InvalidRangeError("Custom date range requires both start and end dates")
        start_dt = parse_date_bound(start)
        end_dt = parse_date_bound(end, end=True)
        if end_dt < start_dt:
            raise InvalidRangeError("Custom date range end must not be before its start")
        return start_dt, end_dt

    first = today.replace(day=1)
    return first, end_of_day(first + relativedelta(months=1, days=-1))


def previous_period(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    """The range of identical duration ending 1 ms before ``start``."""
    duration = end - start
    prev_end = start - ONE_MS
    return prev_end - duration, prev_end


def percentage_change(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 2)


def date_label(period: Optional[str]) -> str:
    return PERIOD_LABELS.get(period or "", "Custom Range")
