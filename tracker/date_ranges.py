"""
Report date windows.

Every report takes an explicit DateWindow instead of reading view state.
Windows are inclusive on both ends and record dates are compared as
calendar instants (a bare ``YYYY-MM-DD`` is midnight of that day).

Named ranges
------------
  today     [midnight today, now]
  1week     [now - 7 days, now]
  15days    [now - 15 days, now]
  1month    [now - 1 calendar month, now]
  6months   [now - 6 calendar months, now]
  custom    [start-of-day(start), end-of-day(end)]; end defaults to now,
            start defaults to now when not supplied
"""
import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, Optional, TypeVar

RANGE_TODAY   = "today"
RANGE_1WEEK   = "1week"
RANGE_15DAYS  = "15days"
RANGE_1MONTH  = "1month"
RANGE_6MONTHS = "6months"
RANGE_CUSTOM  = "custom"
ALL_RANGES = (RANGE_TODAY, RANGE_1WEEK, RANGE_15DAYS, RANGE_1MONTH, RANGE_6MONTHS, RANGE_CUSTOM)

T = TypeVar("T")


@dataclass(frozen=True)
class DateWindow:
    start: datetime
    end: datetime

    def contains(self, value: datetime) -> bool:
        return self.start <= value <= self.end


def parse_record_date(value: str | date | datetime) -> datetime:
    """
    Parse a stored date into a naive datetime.

    Accepts ``YYYY-MM-DD``, full ISO 8601 datetimes (a trailing ``Z`` or
    offset is dropped after conversion) and date/datetime objects.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min)
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def subtract_months(moment: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day to the target month."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def resolve_window(
    range_name: str,
    custom_start: Optional[str] = None,
    custom_end: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DateWindow:
    """Turn a named range (plus optional custom bounds) into a DateWindow."""
    now = now or datetime.now()

    if range_name == RANGE_TODAY:
        start = datetime.combine(now.date(), time.min)
    elif range_name == RANGE_1WEEK:
        start = now - timedelta(days=7)
    elif range_name == RANGE_15DAYS:
        start = now - timedelta(days=15)
    elif range_name == RANGE_1MONTH:
        start = subtract_months(now, 1)
    elif range_name == RANGE_6MONTHS:
        start = subtract_months(now, 6)
    elif range_name == RANGE_CUSTOM:
        start = (
            datetime.combine(parse_record_date(custom_start).date(), time.min)
            if custom_start else now
        )
        end = (
            datetime.combine(parse_record_date(custom_end).date(), time.max)
            if custom_end else now
        )
        return DateWindow(start=start, end=end)
    else:
        raise ValueError(f"Invalid date range {range_name!r}. Must be one of {ALL_RANGES}")

    return DateWindow(start=start, end=now)


def filter_by_date(
    records: Iterable[T],
    window: DateWindow,
    get_date: Callable[[T], str] = lambda r: r.date,
) -> list[T]:
    """Keep records whose date falls inside *window*; unparseable dates are skipped."""
    kept: list[T] = []
    for rec in records:
        try:
            when = parse_record_date(get_date(rec))
        except (TypeError, ValueError):
            continue
        if window.contains(when):
            kept.append(rec)
    return kept


def format_display_date(value: str) -> str:
    """Render a record date for tables and search (``DD/MM/YYYY``)."""
    try:
        return parse_record_date(value).strftime("%d/%m/%Y")
    except (TypeError, ValueError):
        return value or ""
