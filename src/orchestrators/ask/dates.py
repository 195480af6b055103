"""Temporal phrases in a question → absolute date window."""

import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from src.core.schemas.ask import DateRange

_YESTERDAY_RE = re.compile(r"\b(yesterday|a day ago)\b")
_TODAY_RE = re.compile(r"\btoday\b")
_LAST_N_DAYS_RE = re.compile(r"last\s+(\d{1,2})\s*days?")
_LAST_WEEK_RE = re.compile(r"last\s+week")
_LAST_MONTH_RE = re.compile(r"last\s+month")
_EXPLICIT_DATE_RE = re.compile(r"\b(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})\b")


def start_of_day(d: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(d, time.min, tzinfo=tz)


def end_of_day(d: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(d, time.max, tzinfo=tz)


def _window(first: date, last: date, tz: ZoneInfo, description: str) -> DateRange:
    return DateRange(
        after=start_of_day(first, tz),
        before=end_of_day(last, tz),
        description=description,
    )


def parse_date_range(text: str, now: datetime | None = None, tz: str = "UTC") -> DateRange | None:
    """Map the first matching temporal phrase in ``text`` to a DateRange.

    Rules are checked in a fixed order: yesterday, today, last N days
    (N clamped to 1..30), last week, last month, explicit YYYY-MM-DD.
    """
    zone = ZoneInfo(tz)
    t = (text or "").lower()
    now = now.astimezone(zone) if now else datetime.now(zone)
    today = now.date()

    if _YESTERDAY_RE.search(t):
        day = today - timedelta(days=1)
        return _window(day, day, zone, "yesterday")
    if _TODAY_RE.search(t):
        return _window(today, today, zone, "today")

    n_days = _LAST_N_DAYS_RE.search(t)
    if n_days:
        n = max(1, min(30, int(n_days.group(1))))
        return _window(today - timedelta(days=n), today, zone, f"last {n} day(s)")
    if _LAST_WEEK_RE.search(t):
        return _window(today - timedelta(days=7), today, zone, "last week")
    if _LAST_MONTH_RE.search(t):
        return _window(today - timedelta(days=30), today, zone, "last month")

    explicit = _EXPLICIT_DATE_RE.search(t)
    if explicit:
        try:
            day = date(int(explicit.group(1)), int(explicit.group(2)), int(explicit.group(3)))
        except ValueError:
            return None
        return _window(day, day, zone, day.strftime("%a %b %d %Y"))
    return None


def fmt_ymd(d: datetime) -> str:
    return d.strftime("%Y/%m/%d")


def date_query(date_range: DateRange | None) -> str:
    """Provider constraint for a window; ``before:`` is exclusive, so it is the next day."""
    if date_range is None:
        return ""
    exclusive_end = date_range.before.date() + timedelta(days=1)
    return f"after:{fmt_ymd(date_range.after)} before:{exclusive_end.strftime('%Y/%m/%d')}"
