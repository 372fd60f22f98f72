# dashboard/app/routers/appointments.py
"""
Appointment list, detail and writes.

Writes go through AppointmentMutations: local validation first, then the
remote call, then invalidation of the store's cached views.
"""

from datetime import tzinfo
from typing import Optional

from fastapi import APIRouter, Depends, Request, status

from ..config import settings
from ..dependencies import get_api, get_cache, get_tz, get_viewer
from ..schemas.appointments import Appointment
from ..schemas.views import (
    AppointmentDetailRead,
    AppointmentFormSubmit,
    AppointmentListItem,
    AppointmentListRead,
    PageWindowRead,
    SettlePaymentRequest,
    StatusChangeRequest,
    StatusTab,
)
from ..services.appointments import AppointmentMutations, allowed_targets, is_terminal
from ..services.appointments.payments import UNSETTLEABLE_STATUSES
from ..services.errors import ValidationFailed
from ..services.filters import FilterState
from ..services.queries import load_appointment, load_appointment_list
from ..services.query_cache import QueryCache
from ..services.viewer import Viewer
from ..utils.api import ApiClient
from ..utils.formatting import format_amount, format_appointment_number
from .form import open_form

router = APIRouter(prefix="/stores/{store_id}/appointments", tags=["appointments"])


def _list_item(appointment: Appointment) -> AppointmentListItem:
    return AppointmentListItem.model_validate({
        **appointment.model_dump(),
        "display_number": format_appointment_number(
            appointment.public_number, settings.store_country
        ),
    })


def _detail(appointment: Appointment) -> AppointmentDetailRead:
    return AppointmentDetailRead(
        appointment=appointment,
        display_number=format_appointment_number(appointment.public_number, settings.store_country),
        display_total=format_amount(appointment.total_price),
        display_remaining=format_amount(appointment.remaining_amount),
        allowed_statuses=allowed_targets(appointment.status),
        is_final=is_terminal(appointment.status),
        can_settle_payment=appointment.status not in UNSETTLEABLE_STATUSES,
    )


def _check_access(viewer: Viewer, appointment: Appointment) -> None:
    if viewer.is_restricted and appointment.staff_id != viewer.staff_id:
        raise ValidationFailed("staff_id", "This appointment belongs to another staff member")


# ── Reads ──


@router.get("", response_model=AppointmentListRead)
async def list_appointments(
    store_id: str,
    request: Request,
    api: ApiClient = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    viewer: Viewer = Depends(get_viewer),
):
    """
    Filtered, paginated list.

    Query parameters mirror the dashboard URL:
    status, search, startDate, endDate, staffIds (comma-separated), page.
    """
    state = FilterState.from_url_params(request.query_params)
    result = await load_appointment_list(api, cache, store_id, viewer, state)

    window = result.window
    return AppointmentListRead(
        data=[_list_item(a) for a in result.appointments],
        pagination=PageWindowRead(
            page=window.page,
            total_pages=window.total_pages,
            total_items=window.total_items,
            start_index=window.start_index,
            end_index=window.end_index,
            can_go_previous=window.can_go_previous,
            can_go_next=window.can_go_next,
        ),
        status_tabs=[StatusTab(**tab) for tab in result.tabs],
        query_string=result.query_string,
    )


@router.get("/{appointment_id}", response_model=AppointmentDetailRead)
async def get_appointment(
    store_id: str,
    appointment_id: str,
    api: ApiClient = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    viewer: Viewer = Depends(get_viewer),
):
    appointment = await load_appointment(api, cache, store_id, appointment_id)
    _check_access(viewer, appointment)
    return _detail(appointment)


# ── Writes ──


@router.post("", response_model=AppointmentDetailRead, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    store_id: str,
    data: AppointmentFormSubmit,
    api: ApiClient = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    viewer: Viewer = Depends(get_viewer),
    tz: Optional[tzinfo] = Depends(get_tz),
):
    controller = await open_form(api, cache, store_id, viewer, tz, data.selection)
    await controller.refresh_availability()

    created = await controller.submit(
        customer_id=data.customer_id,
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        phone=data.phone,
        number_of_people=data.number_of_people or 1,
        customer_notes=data.customer_notes,
    )
    return _detail(created)


@router.patch("/{appointment_id}", response_model=AppointmentDetailRead)
async def update_appointment(
    store_id: str,
    appointment_id: str,
    data: AppointmentFormSubmit,
    api: ApiClient = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    viewer: Viewer = Depends(get_viewer),
    tz: Optional[tzinfo] = Depends(get_tz),
):
    controller = await open_form(
        api, cache, store_id, viewer, tz, data.selection, appointment_id=appointment_id
    )
    _check_access(viewer, controller.appointment)
    await controller.refresh_availability()

    updated = await controller.submit(
        number_of_people=data.number_of_people,
        customer_notes=data.customer_notes,
    )
    return _detail(updated)


@router.patch("/{appointment_id}/status", response_model=AppointmentDetailRead)
async def change_status(
    store_id: str,
    appointment_id: str,
    data: StatusChangeRequest,
    api: ApiClient = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    viewer: Viewer = Depends(get_viewer),
):
    appointment = await load_appointment(api, cache, store_id, appointment_id)
    _check_access(viewer, appointment)

    updated = await AppointmentMutations(api, cache).change_status(
        store_id,
        appointment,
        data.status,
        reason=data.cancellation_reason,
        internal_notes=data.internal_notes,
    )
    return _detail(updated)


@router.patch("/{appointment_id}/settle-payment", response_model=AppointmentDetailRead)
async def settle_payment(
    store_id: str,
    appointment_id: str,
    data: SettlePaymentRequest,
    api: ApiClient = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    viewer: Viewer = Depends(get_viewer),
):
    appointment = await load_appointment(api, cache, store_id, appointment_id)
    _check_access(viewer, appointment)

    updated = await AppointmentMutations(api, cache).settle_payment(
        store_id,
        appointment,
        data.final_total_price,
        payment_method=data.payment_method,
        mark_as_paid=data.mark_as_paid,
        internal_notes=data.internal_notes,
    )
    return _detail(updated)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    store_id: str,
    appointment_id: str,
    api: ApiClient = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    viewer: Viewer = Depends(get_viewer),
):
    if not viewer.is_admin:
        raise ValidationFailed("role", "Only administrators can delete appointments")
    await AppointmentMutations(api, cache).delete(store_id, appointment_id)
