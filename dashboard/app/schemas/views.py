# dashboard/app/schemas/views.py
# JSON shapes of the dashboard HTTP surface (camelCase on the wire).

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .appointments import REMOTE_MODEL_CONFIG, Appointment, PaymentMethod, SelectableStatus
from .availability import AvailabilitySlot
from .catalog import LocationOption, ServiceOption, StaffOption


# ── Calendar ──

class CalendarDayRead(BaseModel):
    day: date
    in_current_month: bool
    appointments: list[Appointment] = Field(default_factory=list)

    model_config = REMOTE_MODEL_CONFIG


class CalendarRead(BaseModel):
    view: str
    reference: date
    title: str
    start_date: date
    end_date: date
    previous: date
    next: date
    days: list[CalendarDayRead]
    time_slots: list[str] = Field(default_factory=list)

    model_config = REMOTE_MODEL_CONFIG


# ── List ──

class StatusTab(BaseModel):
    value: str
    label: str
    count: int

    model_config = REMOTE_MODEL_CONFIG


class PageWindowRead(BaseModel):
    page: int
    total_pages: int
    total_items: int
    start_index: int
    end_index: int
    can_go_previous: bool
    can_go_next: bool

    model_config = REMOTE_MODEL_CONFIG


class AppointmentListItem(Appointment):
    display_number: str


class AppointmentListRead(BaseModel):
    data: list[AppointmentListItem]
    pagination: PageWindowRead
    status_tabs: list[StatusTab]
    query_string: str

    model_config = REMOTE_MODEL_CONFIG


# ── Detail / transitions ──

class AppointmentDetailRead(BaseModel):
    appointment: Appointment
    display_number: str
    display_total: str
    display_remaining: str
    allowed_statuses: list[SelectableStatus]
    is_final: bool
    can_settle_payment: bool

    model_config = REMOTE_MODEL_CONFIG


class StatusChangeRequest(BaseModel):
    status: str
    cancellation_reason: Optional[str] = None
    internal_notes: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG


class SettlePaymentRequest(BaseModel):
    final_total_price: Decimal
    payment_method: Optional[PaymentMethod] = None
    mark_as_paid: bool = True
    internal_notes: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG


# ── Form ──

FormField = Literal["service", "location", "staff", "date", "time"]


class FormSelectionBody(BaseModel):
    service_id: Optional[str] = None
    location_id: Optional[str] = None
    staff_id: Optional[str] = None
    target_date: Optional[date] = None
    time: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG


class FormChange(BaseModel):
    field: FormField
    value: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG


class FormResolveRequest(BaseModel):
    """Current form selection plus the one field the user just changed."""
    selection: FormSelectionBody = Field(default_factory=FormSelectionBody)
    change: Optional[FormChange] = None
    appointment_id: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG


class AvailabilityRead(BaseModel):
    status: str
    slots: list[AvailabilitySlot] = Field(default_factory=list)
    error: Optional[str] = None
    can_select_time: bool = False

    model_config = REMOTE_MODEL_CONFIG


class FormStateRead(BaseModel):
    selection: FormSelectionBody
    service_options: list[ServiceOption]
    location_options: list[LocationOption]
    staff_options: list[StaffOption]
    availability: AvailabilityRead
    is_editing: bool

    model_config = REMOTE_MODEL_CONFIG


class AppointmentFormSubmit(BaseModel):
    selection: FormSelectionBody
    customer_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    number_of_people: Optional[int] = None
    customer_notes: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG
