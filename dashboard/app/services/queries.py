# dashboard/app/services/queries.py
"""
Read side of the dashboard: calendar and list views loaded through the
query cache.

A failed remote query raises RemoteFetchFailed; it is never turned into an
empty result.
"""

import logging
from dataclasses import dataclass
from datetime import date, tzinfo
from typing import Any, Awaitable, Callable, Optional

from ..schemas.appointments import Appointment, PaginatedAppointments
from ..utils.api import ApiClient, ApiError
from ..utils.pagination import PageWindow, build_page_window
from . import calendar
from .errors import RemoteFetchFailed
from .filters import FilterState, compose_list_query, status_tabs
from .query_cache import (
    QueryCache,
    QueryKey,
    appointment_calendar_key,
    appointment_detail_key,
)
from .viewer import Viewer

logger = logging.getLogger(__name__)

# Upper bound of appointments requested for one calendar range
CALENDAR_FETCH_LIMIT = 500


async def fetch_query(
    cache: QueryCache,
    key: QueryKey,
    fetcher: Callable[[], Awaitable[Any]],
    what: str,
) -> Any:
    try:
        return await cache.fetch(key, fetcher)
    except ApiError as e:
        logger.warning(f"Could not load {what}: {e.message}")
        raise RemoteFetchFailed(f"Could not load {what}", status_code=e.status_code) from e


async def load_appointment(
    api: ApiClient,
    cache: QueryCache,
    store_id: str,
    appointment_id: str,
) -> Appointment:
    return await fetch_query(
        cache,
        appointment_detail_key(store_id, appointment_id),
        lambda: api.get_appointment(store_id, appointment_id),
        "appointment",
    )


# ── Calendar ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CalendarView:
    view: calendar.ViewMode
    reference: date
    title: str
    start: date
    end: date
    days: list[calendar.CalendarDay]
    appointments_by_day: dict[date, list[Appointment]]


async def load_calendar(
    api: ApiClient,
    cache: QueryCache,
    store_id: str,
    viewer: Viewer,
    reference: date,
    view: calendar.ViewMode,
    staff_id: Optional[str] = None,
    tz: Optional[tzinfo] = None,
) -> CalendarView:
    """Appointments of the visible range, bucketed by day."""
    if viewer.is_restricted:
        staff_id = viewer.staff_id

    start, end = calendar.bounds(reference, view)
    result: PaginatedAppointments = await fetch_query(
        cache,
        appointment_calendar_key(store_id, start, end, staff_id),
        lambda: api.get_appointments(
            store_id,
            page=1,
            limit=CALENDAR_FETCH_LIMIT,
            start_date=start,
            end_date=end,
            staff_id=staff_id,
        ),
        "calendar",
    )
    if result.total > len(result.data):
        logger.warning(
            f"Calendar {start}..{end} in store={store_id} truncated: "
            f"{len(result.data)} of {result.total} appointments"
        )

    return CalendarView(
        view=calendar.ViewMode(view),
        reference=reference,
        title=calendar.format_title(reference, view),
        start=start,
        end=end,
        days=calendar.view_days(reference, view),
        appointments_by_day=calendar.group_by_day(result.data, tz),
    )


# ── List ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AppointmentListView:
    state: FilterState
    appointments: list[Appointment]
    window: PageWindow
    tabs: list[dict[str, Any]]
    query_string: str


async def load_appointment_list(
    api: ApiClient,
    cache: QueryCache,
    store_id: str,
    viewer: Viewer,
    state: FilterState,
) -> AppointmentListView:
    query = compose_list_query(store_id, state, viewer)
    result: PaginatedAppointments = await fetch_query(
        cache,
        query.key,
        lambda: api.get_appointments(store_id, **query.params()),
        "appointments",
    )
    return AppointmentListView(
        state=state,
        appointments=result.data,
        window=build_page_window(state.page, result.total, query.limit),
        tabs=status_tabs(result.status_counts),
        query_string=state.to_query_string(),
    )
