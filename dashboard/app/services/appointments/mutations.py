# dashboard/app/services/appointments/mutations.py
"""
Appointment writes.

Every write follows the same order:
1. validate locally (ValidationFailed, nothing sent)
2. call the API
3. on success, invalidate the store's cached views, then return
4. on failure, leave the cache untouched and raise MutationFailed
   carrying the user's draft for retry

A 2xx answer whose body does not parse still counts as written: the cache
is invalidated before MutationFailed is raised.

There is no optimistic update: callers show the new status only once
the API confirmed it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ...schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentUpdate,
    SelectableStatus,
)
from ...utils.api import ApiClient, ApiError
from ..errors import MutationFailed
from ..query_cache import QueryCache, invalidate_after_appointment_change
from .payments import build_settlement
from .status import propose_transition

logger = logging.getLogger(__name__)


@dataclass
class AppointmentMutations:
    api: ApiClient
    cache: QueryCache

    def _failed(
        self,
        action: str,
        store_id: str,
        error: ApiError,
        draft: Optional[dict[str, Any]] = None,
    ) -> MutationFailed:
        logger.warning(f"{action} failed in store={store_id}: {error.message}")
        if error.accepted:
            invalidate_after_appointment_change(self.cache, store_id)
        return MutationFailed(
            f"{action} failed: {error.message}",
            status_code=error.status_code,
            draft=draft,
        )

    async def change_status(
        self,
        store_id: str,
        appointment: Appointment,
        target: SelectableStatus,
        reason: Optional[str] = None,
        internal_notes: Optional[str] = None,
    ) -> Appointment:
        """
        Move an appointment to a new status.

        Raises:
            ValidationFailed: illegal transition or oversized side data
            MutationFailed: the API rejected the change
        """
        transition = propose_transition(appointment.status, target, reason, internal_notes)
        draft = {
            "status": transition.target.value,
            "cancellation_reason": reason or "",
            "internal_notes": internal_notes or "",
        }

        try:
            updated = await self.api.update_appointment_status(
                store_id, appointment.id, transition.to_payload()
            )
        except ApiError as e:
            raise self._failed("Status update", store_id, e, draft) from e

        invalidate_after_appointment_change(self.cache, store_id)
        logger.info(
            f"Appointment {appointment.id}: {transition.current.value} → {transition.target.value}"
        )
        return updated

    async def create(self, store_id: str, payload: AppointmentCreate) -> Appointment:
        try:
            created = await self.api.create_appointment(store_id, payload)
        except ApiError as e:
            raise self._failed(
                "Appointment creation", store_id, e, payload.model_dump(mode="json")
            ) from e

        invalidate_after_appointment_change(self.cache, store_id)
        logger.info(f"Appointment {created.id} created in store={store_id}")
        return created

    async def update(
        self,
        store_id: str,
        appointment_id: str,
        payload: AppointmentUpdate,
    ) -> Appointment:
        try:
            updated = await self.api.update_appointment(store_id, appointment_id, payload)
        except ApiError as e:
            raise self._failed(
                "Appointment update", store_id, e, payload.model_dump(mode="json", exclude_none=True)
            ) from e

        invalidate_after_appointment_change(self.cache, store_id)
        return updated

    async def delete(self, store_id: str, appointment_id: str) -> None:
        try:
            await self.api.delete_appointment(store_id, appointment_id)
        except ApiError as e:
            raise self._failed("Appointment deletion", store_id, e) from e

        invalidate_after_appointment_change(self.cache, store_id)
        logger.info(f"Appointment {appointment_id} deleted in store={store_id}")

    async def settle_payment(
        self,
        store_id: str,
        appointment: Appointment,
        final_total_price,
        payment_method: Optional[str] = None,
        mark_as_paid: bool = True,
        internal_notes: Optional[str] = None,
    ) -> Appointment:
        """Record the settled price of an appointment."""
        payload = build_settlement(
            appointment, final_total_price, payment_method, mark_as_paid, internal_notes
        )
        try:
            updated = await self.api.settle_appointment_payment(store_id, appointment.id, payload)
        except ApiError as e:
            raise self._failed(
                "Payment settlement", store_id, e, payload.model_dump(mode="json")
            ) from e

        invalidate_after_appointment_change(self.cache, store_id)
        return updated
