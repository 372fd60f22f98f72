# dashboard/app/services/calendar.py
"""
Calendar view model.

Pure functions of (appointments, reference date, view mode).
Weeks start on Monday. Nothing here mutates its input or keeps state.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Iterable, Optional, Protocol, TypeVar

from dateutil.relativedelta import relativedelta


class ViewMode(str, Enum):
    MONTH = "month"
    WEEK = "week"
    DAY = "day"


class HasStart(Protocol):
    start_date_time: datetime


T = TypeVar("T", bound=HasStart)


@dataclass(frozen=True)
class CalendarDay:
    date: date
    in_current_month: bool


# ── Date helpers ─────────────────────────────────────────────────────────


def start_of_week(d: date) -> date:
    return d - timedelta(days=d.weekday())


def end_of_week(d: date) -> date:
    return start_of_week(d) + timedelta(days=6)


def start_of_month(d: date) -> date:
    return d.replace(day=1)


def end_of_month(d: date) -> date:
    return start_of_month(d) + relativedelta(months=1, days=-1)


def each_day(start: date, end: date) -> list[date]:
    """All dates in [start, end]."""
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def local_date(dt: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of dt in tz (naive datetimes are taken as already local)."""
    if tz is not None and dt.tzinfo is not None:
        dt = dt.astimezone(tz)
    return dt.date()


def local_time(dt: datetime, tz: Optional[tzinfo] = None) -> str:
    """Wall-clock "HH:MM" of dt in tz."""
    if tz is not None and dt.tzinfo is not None:
        dt = dt.astimezone(tz)
    return dt.strftime("%H:%M")


# ── Grids ────────────────────────────────────────────────────────────────


def month_days(reference: date) -> list[CalendarDay]:
    """
    Days of the month grid, padded with days of the adjacent months so that
    every row is a full Monday–Sunday week.
    """
    first = start_of_month(reference)
    last = end_of_month(reference)
    return [
        CalendarDay(date=d, in_current_month=(d.year, d.month) == (reference.year, reference.month))
        for d in each_day(start_of_week(first), end_of_week(last))
    ]


def week_days(reference: date) -> list[CalendarDay]:
    return [
        CalendarDay(date=d, in_current_month=(d.year, d.month) == (reference.year, reference.month))
        for d in each_day(start_of_week(reference), end_of_week(reference))
    ]


def view_days(reference: date, view: ViewMode) -> list[CalendarDay]:
    view = ViewMode(view)
    if view is ViewMode.MONTH:
        return month_days(reference)
    if view is ViewMode.WEEK:
        return week_days(reference)
    return [CalendarDay(date=reference, in_current_month=True)]


def bounds(reference: date, view: ViewMode) -> tuple[date, date]:
    """
    Inclusive date range to request for a view.

    Month view covers the whole visible grid, leading and trailing days included.
    """
    view = ViewMode(view)
    if view is ViewMode.MONTH:
        return start_of_week(start_of_month(reference)), end_of_week(end_of_month(reference))
    if view is ViewMode.WEEK:
        return start_of_week(reference), end_of_week(reference)
    return reference, reference


# ── Bucketing ────────────────────────────────────────────────────────────


def group_by_day(appointments: Iterable[T], tz: Optional[tzinfo] = None) -> dict[date, list[T]]:
    """
    Bucket appointments by the local date of their start.

    Buckets are ordered by date, their contents by start time. The input is
    not modified; every appointment lands in exactly one bucket.
    """
    buckets: dict[date, list[T]] = {}
    for appointment in appointments:
        key = local_date(appointment.start_date_time, tz)
        buckets.setdefault(key, []).append(appointment)

    return {
        day: sorted(items, key=lambda a: a.start_date_time)
        for day, items in sorted(buckets.items())
    }


# ── Navigation ───────────────────────────────────────────────────────────


def navigate_next(reference: date, view: ViewMode) -> date:
    view = ViewMode(view)
    if view is ViewMode.MONTH:
        return reference + relativedelta(months=1)
    if view is ViewMode.WEEK:
        return reference + timedelta(weeks=1)
    return reference + timedelta(days=1)


def navigate_prev(reference: date, view: ViewMode) -> date:
    view = ViewMode(view)
    if view is ViewMode.MONTH:
        return reference - relativedelta(months=1)
    if view is ViewMode.WEEK:
        return reference - timedelta(weeks=1)
    return reference - timedelta(days=1)


def today(tz: Optional[tzinfo] = None) -> date:
    return datetime.now(tz).date()


# ── Labels ───────────────────────────────────────────────────────────────


def format_title(reference: date, view: ViewMode) -> str:
    """
    Header text:
    - month → "March 2026"
    - week  → "Mar 2 - Mar 8, 2026"
    - day   → "Monday, March 2, 2026"
    """
    view = ViewMode(view)
    if view is ViewMode.MONTH:
        return reference.strftime("%B %Y")
    if view is ViewMode.WEEK:
        start, end = start_of_week(reference), end_of_week(reference)
        return f"{start.strftime('%b')} {start.day} - {end.strftime('%b')} {end.day}, {end.year}"
    return f"{reference.strftime('%A, %B')} {reference.day}, {reference.year}"


def time_slots() -> list[str]:
    """Hourly labels for the day view: "00:00" … "23:00"."""
    return [f"{hour:02d}:00" for hour in range(24)]
