# dashboard/app/services/appointments/__init__.py
"""
Appointment scheduling core.

status      : which status changes are legal
availability: slot lookup, last input wins
form        : cascading service/location/staff/date/time selection
mutations   : writes followed by cache invalidation
payments    : recording a settled amount
"""

from .status import ApprovedTransition, allowed_targets, is_terminal, propose_transition
from .availability import (
    AvailabilityRequest,
    AvailabilityResolver,
    AvailabilityState,
    AvailabilityStatus,
)
from .form import AppointmentFormController, FormCatalog, FormSelection, derive
from .mutations import AppointmentMutations
from .payments import build_settlement

__all__ = [
    "ApprovedTransition",
    "allowed_targets",
    "is_terminal",
    "propose_transition",
    "AvailabilityRequest",
    "AvailabilityResolver",
    "AvailabilityState",
    "AvailabilityStatus",
    "AppointmentFormController",
    "FormCatalog",
    "FormSelection",
    "derive",
    "AppointmentMutations",
    "build_settlement",
]
