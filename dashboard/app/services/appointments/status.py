# dashboard/app/services/appointments/status.py
"""
Appointment status transitions.

    pending ──► confirmed ──► completed
       │            │
       ├────────────┴──► cancelled
       └────────────┴──► no_show

completed / cancelled / no_show are terminal for manual edits.
expired is assigned by the backend only and is terminal as well; it is not
a member of SelectableStatus, so it can never be proposed as a target.
"""

from dataclasses import dataclass
from typing import Optional

from ...config import get_dashboard_config
from ...schemas.appointments import (
    REASON_STATUSES,
    AppointmentStatus,
    AppointmentStatusUpdate,
    SelectableStatus,
)
from ..errors import ValidationFailed

S = AppointmentStatus

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED, S.NO_SHOW}),
    S.CONFIRMED: frozenset({S.COMPLETED, S.CANCELLED, S.NO_SHOW}),
}

TERMINAL_STATUSES = frozenset({S.COMPLETED, S.CANCELLED, S.NO_SHOW, S.EXPIRED})


@dataclass(frozen=True)
class ApprovedTransition:
    """A transition that passed local validation and may be sent to the API."""
    current: AppointmentStatus
    target: SelectableStatus
    cancellation_reason: Optional[str] = None
    internal_notes: Optional[str] = None

    def to_payload(self) -> AppointmentStatusUpdate:
        return AppointmentStatusUpdate(
            status=self.target,
            cancellation_reason=self.cancellation_reason,
            internal_notes=self.internal_notes,
        )


def is_terminal(status: AppointmentStatus) -> bool:
    return AppointmentStatus(status) in TERMINAL_STATUSES


def allowed_targets(current: AppointmentStatus) -> list[SelectableStatus]:
    """Targets a user may pick from `current`, in declaration order."""
    targets = TRANSITIONS.get(AppointmentStatus(current), frozenset())
    return [s for s in SelectableStatus if s.status in targets]


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


def propose_transition(
    current: AppointmentStatus,
    target: SelectableStatus,
    reason: Optional[str] = None,
    internal_notes: Optional[str] = None,
) -> ApprovedTransition:
    """
    Validate a requested status change.

    Args:
        current: Status the appointment holds now
        target: Requested status (user-selectable only)
        reason: Optional cancellation / no-show reason
        internal_notes: Optional staff-only notes

    Returns:
        ApprovedTransition with cleaned side data

    Raises:
        ValidationFailed: the transition or its side data is not allowed
    """
    config = get_dashboard_config()
    current = AppointmentStatus(current)

    try:
        target = SelectableStatus(target)
    except ValueError:
        raise ValidationFailed("status", f"'{target}' cannot be selected as a status") from None

    if current is S.COMPLETED:
        raise ValidationFailed("status", "Completed appointments can no longer be changed")

    if target.status is current:
        raise ValidationFailed("status", "Appointment already has this status")

    if is_terminal(current):
        raise ValidationFailed("status", f"A {current.value} appointment can no longer be changed")

    if target.status not in TRANSITIONS.get(current, frozenset()):
        raise ValidationFailed(
            "status", f"Cannot change status from {current.value} to {target.value}"
        )

    cleaned_reason = _clean(reason) if target.status in REASON_STATUSES else None
    if cleaned_reason and len(cleaned_reason) > config.max_reason_length:
        raise ValidationFailed(
            "cancellation_reason",
            f"Reason must be at most {config.max_reason_length} characters",
        )

    cleaned_notes = _clean(internal_notes)
    if cleaned_notes and len(cleaned_notes) > config.max_notes_length:
        raise ValidationFailed(
            "internal_notes",
            f"Internal notes must be at most {config.max_notes_length} characters",
        )

    return ApprovedTransition(
        current=current,
        target=target,
        cancellation_reason=cleaned_reason,
        internal_notes=cleaned_notes,
    )
