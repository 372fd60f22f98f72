# dashboard/app/schemas/appointments.py

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel


REMOTE_MODEL_CONFIG = {
    "from_attributes": True,
    "populate_by_name": True,
    "alias_generator": to_camel,
    "coerce_numbers_to_str": True,
}


class AppointmentStatus(str, Enum):
    """Every status an appointment can hold, including backend-only ones."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    # Assigned by the backend only
    EXPIRED = "expired"


class SelectableStatus(str, Enum):
    """Statuses a user may pick as a transition target. No `expired` member."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    @property
    def status(self) -> AppointmentStatus:
        return AppointmentStatus(self.value)


# Statuses for which a cancellation reason is meaningful
REASON_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW})


class Appointment(BaseModel):
    id: str
    store_id: Optional[str] = None
    public_number: Optional[str] = None

    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    service_id: Optional[str] = None
    service_name: Optional[str] = None
    staff_id: Optional[str] = None
    staff_name: Optional[str] = None
    location_id: Optional[str] = None
    location_name: Optional[str] = None

    start_date_time: datetime
    end_date_time: datetime
    number_of_people: int = 1

    status: AppointmentStatus

    total_price: Decimal = Decimal("0")
    deposit_amount: Optional[Decimal] = None
    remaining_amount: Optional[Decimal] = None
    payment_method: Optional[str] = None
    is_paid: bool = False
    paid_at: Optional[datetime] = None

    customer_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    feedback: Optional[dict[str, Any]] = None
    files: list[dict[str, Any]] = Field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = REMOTE_MODEL_CONFIG

    @model_validator(mode="after")
    def _check_span_and_amounts(self) -> "Appointment":
        if self.end_date_time <= self.start_date_time:
            raise ValueError("end_date_time must be after start_date_time")
        if self.remaining_amount is None:
            self.remaining_amount = self.total_price - (self.deposit_amount or Decimal("0"))
        return self

    @property
    def effective_cancellation_reason(self) -> Optional[str]:
        """Cancellation reason, only when the status gives it meaning."""
        if self.status in REASON_STATUSES:
            return self.cancellation_reason
        return None


class AppointmentCreate(BaseModel):
    service_id: str
    staff_id: str
    location_id: Optional[str] = None
    customer_id: Optional[str] = None

    guest_first_name: Optional[str] = Field(default=None, max_length=100)
    guest_last_name: Optional[str] = Field(default=None, max_length=100)
    guest_email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    guest_phone: Optional[str] = None

    start_date_time: str  # local "YYYY-MM-DDTHH:MM:00"
    number_of_people: int = Field(default=1, ge=1, le=10)
    customer_notes: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG

    @model_validator(mode="after")
    def _require_customer(self) -> "AppointmentCreate":
        if not self.customer_id and not (self.guest_first_name and self.guest_last_name and self.guest_email):
            raise ValueError("either customer_id or guest first name, last name and email are required")
        return self


class AppointmentUpdate(BaseModel):
    service_id: Optional[str] = None
    staff_id: Optional[str] = None
    location_id: Optional[str] = None
    start_date_time: Optional[str] = None
    number_of_people: Optional[int] = Field(default=None, ge=1, le=10)
    customer_notes: Optional[str] = None
    internal_notes: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG


class AppointmentStatusUpdate(BaseModel):
    status: SelectableStatus
    cancellation_reason: Optional[str] = None
    internal_notes: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG


PaymentMethod = Literal["cash", "card", "online", "stripe", "paypal"]


class SettlePayment(BaseModel):
    final_total_price: Decimal = Field(ge=0)
    payment_method: Optional[PaymentMethod] = None
    mark_as_paid: bool = True
    internal_notes: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG


class AppointmentStatusCounts(BaseModel):
    all: int = 0
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0
    no_show: int = 0
    expired: int = 0

    model_config = {"from_attributes": True}


class PaginatedAppointments(BaseModel):
    data: list[Appointment] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 0
    total_pages: int = 1
    status_counts: AppointmentStatusCounts = Field(default_factory=AppointmentStatusCounts)

    model_config = REMOTE_MODEL_CONFIG
