# dashboard/app/routers/calendar.py

from datetime import date, tzinfo
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_api, get_cache, get_tz, get_viewer
from ..schemas.views import CalendarDayRead, CalendarRead
from ..services import calendar
from ..services.queries import load_calendar
from ..services.query_cache import QueryCache
from ..services.viewer import Viewer
from ..utils.api import ApiClient

router = APIRouter(prefix="/stores/{store_id}/calendar", tags=["calendar"])


@router.get("", response_model=CalendarRead)
async def get_calendar(
    store_id: str,
    view: calendar.ViewMode = Query(calendar.ViewMode.MONTH),
    reference: Optional[date] = Query(None, alias="date"),
    staff_id: Optional[str] = Query(None, alias="staffId"),
    api: ApiClient = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    viewer: Viewer = Depends(get_viewer),
    tz: Optional[tzinfo] = Depends(get_tz),
):
    """
    Month/week/day grid with appointments bucketed by local date.

    `date` defaults to today in the store timezone.
    """
    reference = reference or calendar.today(tz)
    result = await load_calendar(api, cache, store_id, viewer, reference, view, staff_id, tz)

    return CalendarRead(
        view=result.view.value,
        reference=result.reference,
        title=result.title,
        start_date=result.start,
        end_date=result.end,
        previous=calendar.navigate_prev(reference, view),
        next=calendar.navigate_next(reference, view),
        days=[
            CalendarDayRead(
                day=day.date,
                in_current_month=day.in_current_month,
                appointments=result.appointments_by_day.get(day.date, []),
            )
            for day in result.days
        ],
        time_slots=calendar.time_slots() if result.view is calendar.ViewMode.DAY else [],
    )
