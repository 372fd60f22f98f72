"""
dashboard/app/utils/api.py

Async HTTP client for the remote booking API.

Dashboard → API (/stores/{store_id}/...)

Failures are logged and raised as ApiError; query/mutation boundaries
map them to user-facing states.
"""

import logging
from datetime import date
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from ..config import settings
from ..schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    PaginatedAppointments,
    SettlePayment,
)
from ..schemas.availability import AvailabilityResponse
from ..schemas.catalog import LocationOption, ServiceOption, StaffOption

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """HTTP or transport failure talking to the remote API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def accepted(self) -> bool:
        """The API answered 2xx but the body could not be read."""
        return self.status_code is not None and 200 <= self.status_code < 300


def _drop_none(params: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


def _list_of(model):
    def parse(data) -> list:
        return [model.model_validate(item) for item in data or []]
    return parse


class ApiClient:
    """Async client for the booking API."""

    def __init__(
        self,
        base_url: str = settings.api_url,
        token: Optional[str] = settings.api_token,
        timeout: float = settings.api_timeout,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        headers: dict = None,
        parse: Optional[Callable[[Any], Any]] = None,
        **kwargs
    ) -> Any:
        """
        Base HTTP request.

        parse turns the decoded body into schema objects; a body that does
        not fit the schema raises ApiError like any other bad response.
        """
        url = f"{self.base_url}{path}"

        _headers = {"Content-Type": "application/json"}
        if self.token:
            _headers["Authorization"] = f"Bearer {self.token}"
        if headers:
            _headers.update(headers)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                resp = await client.request(method, url, headers=_headers, **kwargs)
            except httpx.HTTPError as e:
                logger.error(f"API request failed: {method} {path} -> {e}")
                raise ApiError(f"Request failed: {e}") from e

        if resp.status_code >= 400:
            logger.error(f"API error: {method} {path} -> {resp.status_code}")
            raise ApiError(_error_message(resp), status_code=resp.status_code)

        data = None
        if resp.status_code != 204 and resp.content:
            try:
                data = resp.json()
            except ValueError as e:
                logger.error(f"API returned invalid JSON: {method} {path}")
                raise ApiError("Invalid response from server", status_code=resp.status_code) from e

        if parse is None:
            return data

        try:
            return parse(data)
        except (ValidationError, TypeError) as e:
            logger.error(f"API returned an unexpected payload: {method} {path} -> {e}")
            raise ApiError("Invalid response from server", status_code=resp.status_code) from e

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------

    async def get_appointments(
        self,
        store_id: str,
        page: int = 1,
        limit: int = 8,
        status: Optional[str] = None,
        search: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        staff_id: Optional[str] = None,
        staff_ids: Optional[list[str]] = None,
    ) -> PaginatedAppointments:
        """GET /stores/{store_id}/appointments"""
        params = _drop_none({
            "page": page,
            "limit": limit,
            "status": status,
            "search": search,
            "startDate": start_date.isoformat() if start_date else None,
            "endDate": end_date.isoformat() if end_date else None,
            "staffId": staff_id,
            # Comma-separated so the API parses it regardless of array notation
            "staffIds": ",".join(staff_ids) if staff_ids else None,
        })
        return await self._request(
            "GET",
            f"/stores/{store_id}/appointments",
            params=params,
            parse=lambda data: PaginatedAppointments.model_validate(data or {}),
        )

    async def get_appointment(self, store_id: str, appointment_id: str) -> Appointment:
        """GET /stores/{store_id}/appointments/{id}"""
        return await self._request(
            "GET",
            f"/stores/{store_id}/appointments/{appointment_id}",
            parse=Appointment.model_validate,
        )

    async def create_appointment(self, store_id: str, data: AppointmentCreate) -> Appointment:
        """POST /stores/{store_id}/appointments"""
        return await self._request(
            "POST",
            f"/stores/{store_id}/appointments",
            json=data.model_dump(mode="json", by_alias=True, exclude_none=True),
            parse=Appointment.model_validate,
        )

    async def update_appointment(
        self,
        store_id: str,
        appointment_id: str,
        data: AppointmentUpdate,
    ) -> Appointment:
        """PATCH /stores/{store_id}/appointments/{id}"""
        return await self._request(
            "PATCH",
            f"/stores/{store_id}/appointments/{appointment_id}",
            json=data.model_dump(mode="json", by_alias=True, exclude_none=True),
            parse=Appointment.model_validate,
        )

    async def update_appointment_status(
        self,
        store_id: str,
        appointment_id: str,
        data: AppointmentStatusUpdate,
    ) -> Appointment:
        """PATCH /stores/{store_id}/appointments/{id}/status"""
        return await self._request(
            "PATCH",
            f"/stores/{store_id}/appointments/{appointment_id}/status",
            json=data.model_dump(mode="json", by_alias=True, exclude_none=True),
            parse=Appointment.model_validate,
        )

    async def settle_appointment_payment(
        self,
        store_id: str,
        appointment_id: str,
        data: SettlePayment,
    ) -> Appointment:
        """PATCH /stores/{store_id}/appointments/{id}/settle-payment"""
        return await self._request(
            "PATCH",
            f"/stores/{store_id}/appointments/{appointment_id}/settle-payment",
            json=data.model_dump(mode="json", by_alias=True, exclude_none=True),
            parse=Appointment.model_validate,
        )

    async def delete_appointment(self, store_id: str, appointment_id: str) -> None:
        """DELETE /stores/{store_id}/appointments/{id}"""
        await self._request("DELETE", f"/stores/{store_id}/appointments/{appointment_id}")

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def get_availability(
        self,
        store_id: str,
        service_id: str,
        staff_id: str,
        target_date: date,
        location_id: Optional[str] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> AvailabilityResponse:
        """GET /stores/{store_id}/availability"""
        params = _drop_none({
            "serviceId": service_id,
            "staffId": staff_id,
            "date": target_date.isoformat(),
            "locationId": location_id,
            "excludeAppointmentId": exclude_appointment_id,
        })
        return await self._request(
            "GET",
            f"/stores/{store_id}/availability",
            params=params,
            parse=lambda data: AvailabilityResponse.model_validate(data or {}),
        )

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def get_services(self, store_id: str) -> list[ServiceOption]:
        """GET /stores/{store_id}/services"""
        return await self._request("GET", f"/stores/{store_id}/services", parse=_list_of(ServiceOption))

    async def get_locations(self, store_id: str) -> list[LocationOption]:
        """GET /stores/{store_id}/locations"""
        return await self._request("GET", f"/stores/{store_id}/locations", parse=_list_of(LocationOption))

    async def get_staff(
        self,
        store_id: str,
        service_id: Optional[str] = None,
        include_hidden: bool = False,
    ) -> list[StaffOption]:
        """GET /stores/{store_id}/staff"""
        params = _drop_none({
            "includeHidden": "true" if include_hidden else "false",
            "serviceId": service_id,
        })
        return await self._request(
            "GET", f"/stores/{store_id}/staff", params=params, parse=_list_of(StaffOption)
        )


def _error_message(resp: httpx.Response) -> str:
    """Pull a user-facing message out of an error response."""
    try:
        body = resp.json()
    except ValueError:
        return f"Request failed with status {resp.status_code}"

    if isinstance(body, dict):
        message = body.get("message") or body.get("detail")
        if isinstance(message, list):
            message = "; ".join(str(m) for m in message)
        if message:
            return str(message)
    return f"Request failed with status {resp.status_code}"
