# dashboard/app/services/appointments/availability.py
"""
Availability resolution for the appointment form.

The actual conflict computation lives in the remote API; this module only
decides when a lookup may be issued, keeps the slots marked available and
makes sure a response for outdated inputs is never applied.

States:
    not_resolvable: service, staff or date missing, no request issued
    loading       : request for the current inputs in flight
    ready         : slots received (possibly none)
    unavailable   : the lookup failed; time selection is disabled
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from ...schemas.availability import AvailabilitySlot
from ...utils.api import ApiClient, ApiError
from ..query_cache import QueryCache, QueryKey, availability_key

logger = logging.getLogger(__name__)


class AvailabilityStatus(str, Enum):
    NOT_RESOLVABLE = "not_resolvable"
    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class AvailabilityRequest:
    store_id: str
    service_id: Optional[str] = None
    staff_id: Optional[str] = None
    target_date: Optional[date] = None
    location_id: Optional[str] = None
    exclude_appointment_id: Optional[str] = None

    @property
    def is_resolvable(self) -> bool:
        return bool(self.service_id and self.staff_id and self.target_date)

    @property
    def key(self) -> QueryKey:
        return availability_key(
            self.store_id,
            self.service_id,
            self.staff_id,
            self.target_date,
            self.exclude_appointment_id,
        )


@dataclass(frozen=True)
class AvailabilityState:
    status: AvailabilityStatus
    slots: tuple[AvailabilitySlot, ...] = ()
    key: Optional[QueryKey] = None
    error: Optional[str] = None

    @property
    def times(self) -> list[str]:
        return [slot.start_time for slot in self.slots]

    @property
    def has_slots(self) -> bool:
        return bool(self.slots)

    @property
    def is_empty(self) -> bool:
        """Lookup succeeded and found nothing (not the same as a failed lookup)."""
        return self.status is AvailabilityStatus.READY and not self.slots

    @property
    def can_select_time(self) -> bool:
        return self.status is AvailabilityStatus.READY and bool(self.slots)


NOT_RESOLVABLE = AvailabilityState(AvailabilityStatus.NOT_RESOLVABLE)


def available_slots(slots: list[AvailabilitySlot]) -> tuple[AvailabilitySlot, ...]:
    """Keep slots flagged available, in the order the API returned them."""
    return tuple(slot for slot in slots if slot.available)


@dataclass
class AvailabilityResolver:
    """
    Resolves slots for the latest requested inputs.

    Last input wins: a response is applied only if its request key is still
    the most recently requested one when it arrives.
    """
    api: ApiClient
    cache: Optional[QueryCache] = None
    state: AvailabilityState = field(default=NOT_RESOLVABLE)
    _latest_key: Optional[QueryKey] = field(default=None, repr=False)

    def reset(self) -> None:
        self._latest_key = None
        self.state = NOT_RESOLVABLE

    async def resolve(self, request: AvailabilityRequest) -> AvailabilityState:
        """
        Resolve slots for request.

        Returns:
            The resolver state after this call. When the request was
            superseded while in flight, that is the state of the newer request.
        """
        if not request.is_resolvable:
            self.reset()
            return self.state

        key = request.key
        self._latest_key = key
        self.state = AvailabilityState(AvailabilityStatus.LOADING, key=key)

        try:
            slots = await self._fetch(request)
        except ApiError as e:
            if self._latest_key != key:
                logger.debug(f"Discarding failed availability lookup for stale inputs {key}")
                return self.state
            logger.warning(f"Availability lookup failed for {key}: {e.message}")
            self.state = AvailabilityState(
                AvailabilityStatus.UNAVAILABLE,
                key=key,
                error="Availability could not be loaded",
            )
            return self.state

        if self._latest_key != key:
            logger.debug(f"Discarding availability response for stale inputs {key}")
            return self.state

        self.state = AvailabilityState(AvailabilityStatus.READY, slots=slots, key=key)
        return self.state

    async def _fetch(self, request: AvailabilityRequest) -> tuple[AvailabilitySlot, ...]:
        async def fetcher() -> tuple[AvailabilitySlot, ...]:
            response = await self.api.get_availability(
                request.store_id,
                request.service_id,
                request.staff_id,
                request.target_date,
                location_id=request.location_id,
                exclude_appointment_id=request.exclude_appointment_id,
            )
            return available_slots(response.slots)

        if self.cache is None:
            return await fetcher()
        return await self.cache.fetch(request.key, fetcher)
