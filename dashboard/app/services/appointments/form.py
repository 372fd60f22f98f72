# dashboard/app/services/appointments/form.py
"""
Appointment form: cascading selection of service → location → staff → date → time.

The fields form a dependency graph:

    service ──► location ──► staff ──┐
       │                             ├──► time
       └────────────────────► staff  │
    date ────────────────────────────┘

When a field changes, every field downstream of it is re-validated by a pure
function of its ancestors, in graph order. Time depends on the remote slot
list, so it is reconciled once the availability lookup for the current inputs
has landed.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import date, tzinfo
from typing import Callable, Mapping, Optional

from pydantic import ValidationError

from ...schemas.appointments import Appointment, AppointmentCreate, AppointmentUpdate
from ...schemas.catalog import LocationOption, ServiceOption, StaffOption
from ...utils.api import ApiClient
from ..calendar import local_date, local_time, today as current_date
from ..errors import ValidationFailed
from ..query_cache import QueryCache, locations_key, services_key, staff_by_service_key
from ..viewer import Viewer
from .availability import (
    NOT_RESOLVABLE,
    AvailabilityRequest,
    AvailabilityResolver,
    AvailabilityState,
    AvailabilityStatus,
)
from .mutations import AppointmentMutations

logger = logging.getLogger(__name__)


FIELD_ORDER = ("service", "location", "staff", "date", "time")

DEPENDS_ON: dict[str, tuple[str, ...]] = {
    "service": (),
    "location": ("service",),
    "staff": ("service", "location"),
    "date": (),
    "time": ("service", "staff", "date"),
}

FIELD_ATTRS = {
    "service": "service_id",
    "location": "location_id",
    "staff": "staff_id",
    "date": "target_date",
    "time": "time",
}


def downstream_of(name: str) -> list[str]:
    """Fields transitively depending on `name`, in graph order."""
    affected = {name}
    result = []
    for candidate in FIELD_ORDER:
        if any(dep in affected for dep in DEPENDS_ON[candidate]):
            affected.add(candidate)
            result.append(candidate)
    return result


@dataclass(frozen=True)
class FormSelection:
    service_id: Optional[str] = None
    location_id: Optional[str] = None
    staff_id: Optional[str] = None
    target_date: Optional[date] = None
    time: Optional[str] = None  # "HH:MM"


@dataclass(frozen=True)
class FormCatalog:
    """
    Options the form chooses from; staff are listed per service they offer.

    Hidden services stay in the catalog so an appointment booked on one can
    still be edited; they are left out of the offered options.
    """
    services: tuple[ServiceOption, ...] = ()
    locations: tuple[LocationOption, ...] = ()
    staff_by_service: Mapping[str, tuple[StaffOption, ...]] = field(default_factory=dict)

    def service_options(self, keep: Optional[str] = None) -> list[ServiceOption]:
        """Visible services, plus `keep` when it is hidden."""
        return [s for s in self.services if s.is_visible or s.id == keep]

    def locations_for(self, service_id: Optional[str]) -> list[LocationOption]:
        """
        Locations eligible for a service: those where one of its staff works.
        All locations when none of its staff is tied to a location.
        """
        if not service_id:
            return []
        staff = self.staff_by_service.get(service_id, ())
        location_ids = {member.location_id for member in staff if member.location_id}
        if not location_ids:
            return list(self.locations)
        return [loc for loc in self.locations if loc.id in location_ids]

    def staff_for(self, service_id: Optional[str], location_id: Optional[str] = None) -> list[StaffOption]:
        """Staff offering the service, narrowed to the location when one is chosen."""
        if not service_id:
            return []
        staff = self.staff_by_service.get(service_id, ())
        if not location_id:
            return list(staff)
        return [m for m in staff if not m.location_id or m.location_id == location_id]

    @classmethod
    async def load(cls, api: ApiClient, cache: QueryCache, store_id: str) -> "FormCatalog":
        """Fetch services, locations and staff-by-service through the query cache."""
        services, locations = await asyncio.gather(
            cache.fetch(services_key(store_id), lambda: api.get_services(store_id)),
            cache.fetch(locations_key(store_id), lambda: api.get_locations(store_id)),
        )

        def staff_fetcher(service_id: str):
            return lambda: api.get_staff(store_id, service_id=service_id)

        staff_lists = await asyncio.gather(*(
            cache.fetch(staff_by_service_key(store_id, s.id), staff_fetcher(s.id))
            for s in services
        ))
        return cls(
            services=tuple(services),
            locations=tuple(locations),
            staff_by_service={s.id: tuple(staff) for s, staff in zip(services, staff_lists)},
        )


# ── Pure re-validation ───────────────────────────────────────────────────


def _validate_location(selection: FormSelection, catalog: FormCatalog) -> Optional[str]:
    if not selection.location_id or not selection.service_id:
        return selection.location_id
    eligible = {loc.id for loc in catalog.locations_for(selection.service_id)}
    return selection.location_id if selection.location_id in eligible else None


def _validate_staff(selection: FormSelection, catalog: FormCatalog) -> Optional[str]:
    if not selection.staff_id or not selection.service_id:
        return selection.staff_id
    eligible = {m.id for m in catalog.staff_for(selection.service_id, selection.location_id)}
    return selection.staff_id if selection.staff_id in eligible else None


VALIDATORS: dict[str, Callable[[FormSelection, FormCatalog], Optional[str]]] = {
    "location": _validate_location,
    "staff": _validate_staff,
}


def derive(selection: FormSelection, changed: str, catalog: FormCatalog) -> FormSelection:
    """Re-validate every field downstream of `changed`."""
    for name in downstream_of(changed):
        validator = VALIDATORS.get(name)
        if validator is None:
            continue
        selection = replace(selection, **{FIELD_ATTRS[name]: validator(selection, catalog)})
    return selection


def reconcile_time(time: Optional[str], availability: AvailabilityState) -> Optional[str]:
    """
    Time after a lookup landed: kept when still offered, else the first
    offered slot, else cleared. Unchanged while no slot list is known.
    """
    if availability.status is not AvailabilityStatus.READY:
        return time
    times = availability.times
    if not times:
        return None
    if time in times:
        return time
    return times[0]


def selection_from_appointment(appointment: Appointment, tz: Optional[tzinfo] = None) -> FormSelection:
    return FormSelection(
        service_id=appointment.service_id,
        location_id=appointment.location_id,
        staff_id=appointment.staff_id,
        target_date=local_date(appointment.start_date_time, tz),
        time=local_time(appointment.start_date_time, tz),
    )


def _first_error(e: ValidationError) -> ValidationFailed:
    error = e.errors()[0]
    loc = error.get("loc") or ("form",)
    return ValidationFailed(str(loc[0]), error["msg"])


# ── Controller ───────────────────────────────────────────────────────────


class AppointmentFormController:
    """
    State of one open appointment form (create or edit).

    Selection mutators are synchronous; `refresh_availability` is the only
    suspension point besides `submit`.
    """

    def __init__(
        self,
        api: ApiClient,
        cache: QueryCache,
        store_id: str,
        catalog: FormCatalog,
        viewer: Optional[Viewer] = None,
        appointment: Optional[Appointment] = None,
        tz: Optional[tzinfo] = None,
        initial_date: Optional[date] = None,
    ):
        self.api = api
        self.cache = cache
        self.store_id = store_id
        self.catalog = catalog
        self.viewer = viewer
        self.appointment = appointment
        self.tz = tz
        self.resolver = AvailabilityResolver(api, cache)

        if appointment is not None:
            # Edit mode: seeded as is, no default population
            self.selection = selection_from_appointment(appointment, tz)
        else:
            default_staff = viewer.staff_id if viewer is not None and viewer.is_restricted else None
            self.selection = FormSelection(
                staff_id=default_staff,
                target_date=initial_date or current_date(tz),
            )

    @property
    def is_editing(self) -> bool:
        return self.appointment is not None

    # ── Options ──────────────────────────────────────────────────────────

    @property
    def service_options(self) -> list[ServiceOption]:
        keep = self.appointment.service_id if self.appointment is not None else None
        return self.catalog.service_options(keep)

    @property
    def location_options(self) -> list[LocationOption]:
        return self.catalog.locations_for(self.selection.service_id)

    @property
    def staff_options(self) -> list[StaffOption]:
        return self.catalog.staff_for(self.selection.service_id, self.selection.location_id)

    # ── Selection ────────────────────────────────────────────────────────

    def restore(self, selection: FormSelection) -> FormSelection:
        """Adopt a selection made earlier, re-validated against the current catalog."""
        self.selection = derive(selection, "service", self.catalog)
        return self.selection

    def _select(self, name: str, value) -> FormSelection:
        updated = replace(self.selection, **{FIELD_ATTRS[name]: value})
        if updated != self.selection:
            derived = derive(updated, name, self.catalog)
            cleared = [
                downstream for downstream in downstream_of(name)
                if getattr(updated, FIELD_ATTRS[downstream]) and not getattr(derived, FIELD_ATTRS[downstream])
            ]
            if cleared:
                logger.debug(f"Changing {name} cleared {', '.join(cleared)}")
            self.selection = derived
        return self.selection

    def select_service(self, service_id: Optional[str]) -> FormSelection:
        return self._select("service", service_id or None)

    def select_location(self, location_id: Optional[str]) -> FormSelection:
        return self._select("location", location_id or None)

    def select_staff(self, staff_id: Optional[str]) -> FormSelection:
        return self._select("staff", staff_id or None)

    def select_date(self, target_date: Optional[date]) -> FormSelection:
        return self._select("date", target_date)

    def select_time(self, time: str) -> FormSelection:
        availability = self.availability
        if availability.status is AvailabilityStatus.UNAVAILABLE:
            raise ValidationFailed("time", "Availability could not be loaded")
        if time not in availability.times:
            raise ValidationFailed("time", f"{time} is not an available time")
        self.selection = replace(self.selection, time=time)
        return self.selection

    # ── Availability ─────────────────────────────────────────────────────

    def availability_request(self) -> AvailabilityRequest:
        return AvailabilityRequest(
            store_id=self.store_id,
            service_id=self.selection.service_id,
            staff_id=self.selection.staff_id,
            target_date=self.selection.target_date,
            location_id=self.selection.location_id,
            exclude_appointment_id=self.appointment.id if self.appointment else None,
        )

    @property
    def availability(self) -> AvailabilityState:
        """Availability for the current inputs (loading while not yet looked up)."""
        request = self.availability_request()
        if not request.is_resolvable:
            return NOT_RESOLVABLE
        state = self.resolver.state
        if state.key != request.key:
            return AvailabilityState(AvailabilityStatus.LOADING, key=request.key)
        return state

    async def refresh_availability(self) -> AvailabilityState:
        """Look up slots for the current inputs and reconcile the chosen time."""
        await self.resolver.resolve(self.availability_request())
        availability = self.availability
        if availability.status is AvailabilityStatus.READY:
            self.selection = replace(
                self.selection, time=reconcile_time(self.selection.time, availability)
            )
        return availability

    # ── Submission ───────────────────────────────────────────────────────

    def _check_submittable(self) -> FormSelection:
        selection = self.selection
        if not selection.service_id:
            raise ValidationFailed("service_id", "Service is required")
        if not selection.staff_id:
            raise ValidationFailed("staff_id", "Staff member is required")
        if not selection.target_date:
            raise ValidationFailed("date", "Date is required")

        availability = self.availability
        if availability.status is AvailabilityStatus.UNAVAILABLE:
            raise ValidationFailed("time", "Availability could not be loaded")
        if availability.status is not AvailabilityStatus.READY:
            raise ValidationFailed("time", "Availability has not been loaded yet")
        if not availability.has_slots:
            raise ValidationFailed("time", "No available time slots")
        if not selection.time or selection.time not in availability.times:
            raise ValidationFailed("time", "Time is required")
        return selection

    def start_date_time(self) -> str:
        selection = self._check_submittable()
        return f"{selection.target_date.isoformat()}T{selection.time}:00"

    def build_create(
        self,
        customer_id: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        number_of_people: int = 1,
        customer_notes: Optional[str] = None,
    ) -> AppointmentCreate:
        start = self.start_date_time()
        try:
            return AppointmentCreate(
                service_id=self.selection.service_id,
                staff_id=self.selection.staff_id,
                location_id=self.selection.location_id,
                customer_id=customer_id,
                guest_first_name=(first_name or "").strip() or None,
                guest_last_name=(last_name or "").strip() or None,
                guest_email=(email or "").strip() or None,
                guest_phone=(phone or "").strip() or None,
                start_date_time=start,
                number_of_people=number_of_people,
                customer_notes=(customer_notes or "").strip() or None,
            )
        except ValidationError as e:
            raise _first_error(e) from None

    def build_update(
        self,
        number_of_people: Optional[int] = None,
        customer_notes: Optional[str] = None,
    ) -> AppointmentUpdate:
        start = self.start_date_time()
        try:
            return AppointmentUpdate(
                service_id=self.selection.service_id,
                staff_id=self.selection.staff_id,
                location_id=self.selection.location_id,
                start_date_time=start,
                number_of_people=number_of_people,
                customer_notes=customer_notes,
            )
        except ValidationError as e:
            raise _first_error(e) from None

    async def submit(self, **details) -> Appointment:
        """
        Create or update the appointment.

        Raises:
            ValidationFailed: before any request when the form is incomplete
            MutationFailed: the API rejected the write (selection kept for retry)
        """
        mutations = AppointmentMutations(self.api, self.cache)
        if self.is_editing:
            payload = self.build_update(
                number_of_people=details.get("number_of_people"),
                customer_notes=details.get("customer_notes"),
            )
            return await mutations.update(self.store_id, self.appointment.id, payload)

        payload = self.build_create(**details)
        return await mutations.create(self.store_id, payload)
