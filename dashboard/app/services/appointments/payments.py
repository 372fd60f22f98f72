# dashboard/app/services/appointments/payments.py
"""
Recording the settled amount of an appointment.

No payment processing happens here: the dashboard only records the final
price (and optionally marks it paid) through the remote API.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import ValidationError

from ...config import get_dashboard_config
from ...schemas.appointments import Appointment, AppointmentStatus, SettlePayment
from ..errors import ValidationFailed

# Settling a booking that never took place makes no sense
UNSETTLEABLE_STATUSES = frozenset({
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
    AppointmentStatus.EXPIRED,
})


def build_settlement(
    appointment: Appointment,
    final_total_price: Decimal | float | str,
    payment_method: Optional[str] = None,
    mark_as_paid: bool = True,
    internal_notes: Optional[str] = None,
) -> SettlePayment:
    """
    Validate a settlement locally before it is sent.

    Raises:
        ValidationFailed: wrong status, negative/invalid price, unknown method
    """
    if appointment.status in UNSETTLEABLE_STATUSES:
        raise ValidationFailed(
            "status", f"A {appointment.status.value} appointment cannot be settled"
        )

    try:
        price = Decimal(str(final_total_price))
    except InvalidOperation:
        raise ValidationFailed("final_total_price", "Price must be a number") from None

    notes = internal_notes.strip() if internal_notes else None
    max_notes = get_dashboard_config().max_notes_length
    if notes and len(notes) > max_notes:
        raise ValidationFailed(
            "internal_notes", f"Internal notes must be at most {max_notes} characters"
        )

    try:
        return SettlePayment(
            final_total_price=price,
            payment_method=payment_method,
            mark_as_paid=mark_as_paid,
            internal_notes=notes or None,
        )
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error.get("loc") else "payment"
        if field == "final_total_price":
            raise ValidationFailed(field, "Price must be at least 0") from None
        raise ValidationFailed(field, error["msg"]) from None
