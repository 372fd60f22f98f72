# dashboard/app/routers/form.py
"""
Appointment form resolution.

The browser posts its current selection plus the field it just changed; the
response carries the re-derived selection, the options still valid for it and
the availability of the resulting (service, staff, date).
"""

import logging
from datetime import date, tzinfo
from typing import Optional

from fastapi import APIRouter, Depends

from ..dependencies import get_api, get_cache, get_tz, get_viewer
from ..schemas.views import AvailabilityRead, FormResolveRequest, FormSelectionBody, FormStateRead
from ..services.appointments import AppointmentFormController, FormCatalog, FormSelection
from ..services.errors import RemoteFetchFailed, ValidationFailed
from ..services.queries import load_appointment
from ..services.query_cache import QueryCache
from ..services.viewer import Viewer
from ..utils.api import ApiClient, ApiError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stores/{store_id}/appointment-form", tags=["appointment-form"])


async def open_form(
    api: ApiClient,
    cache: QueryCache,
    store_id: str,
    viewer: Viewer,
    tz: Optional[tzinfo],
    selection: Optional[FormSelectionBody] = None,
    appointment_id: Optional[str] = None,
) -> AppointmentFormController:
    """
    Rebuild the form controller for a request.

    Without an explicit selection the form starts from its defaults
    (edit mode: the appointment; create mode: today and the viewer's own staff).
    """
    try:
        catalog = await FormCatalog.load(api, cache, store_id)
    except ApiError as e:
        logger.warning(f"Could not load form options for store={store_id}: {e.message}")
        raise RemoteFetchFailed("Could not load services and staff", status_code=e.status_code) from e

    appointment = None
    if appointment_id:
        appointment = await load_appointment(api, cache, store_id, appointment_id)

    controller = AppointmentFormController(
        api, cache, store_id, catalog, viewer=viewer, appointment=appointment, tz=tz
    )
    if selection is not None and selection.model_fields_set:
        controller.restore(FormSelection(
            service_id=selection.service_id,
            location_id=selection.location_id,
            staff_id=selection.staff_id,
            target_date=selection.target_date,
            time=selection.time,
        ))
    return controller


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationFailed("date", f"Invalid date '{value}'") from None


def form_state(controller: AppointmentFormController) -> FormStateRead:
    selection = controller.selection
    availability = controller.availability
    return FormStateRead(
        selection=FormSelectionBody(
            service_id=selection.service_id,
            location_id=selection.location_id,
            staff_id=selection.staff_id,
            target_date=selection.target_date,
            time=selection.time,
        ),
        service_options=controller.service_options,
        location_options=controller.location_options,
        staff_options=controller.staff_options,
        availability=AvailabilityRead(
            status=availability.status.value,
            slots=list(availability.slots),
            error=availability.error,
            can_select_time=availability.can_select_time,
        ),
        is_editing=controller.is_editing,
    )


@router.post("/resolve", response_model=FormStateRead)
async def resolve_form(
    store_id: str,
    data: FormResolveRequest,
    api: ApiClient = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    viewer: Viewer = Depends(get_viewer),
    tz: Optional[tzinfo] = Depends(get_tz),
):
    controller = await open_form(
        api, cache, store_id, viewer, tz, data.selection, appointment_id=data.appointment_id
    )

    change = data.change
    if change is not None and change.field != "time":
        if change.field == "service":
            controller.select_service(change.value)
        elif change.field == "location":
            controller.select_location(change.value)
        elif change.field == "staff":
            controller.select_staff(change.value)
        elif change.field == "date":
            controller.select_date(_parse_date(change.value))

    await controller.refresh_availability()

    if change is not None and change.field == "time":
        controller.select_time(change.value or "")

    return form_state(controller)
