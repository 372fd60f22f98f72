"""
Tests for the remote API client (httpx.MockTransport).
"""

import json
from datetime import date

import httpx
import pytest

from dashboard.app.schemas.appointments import AppointmentStatus, AppointmentStatusUpdate, SelectableStatus
from dashboard.app.utils.api import ApiClient, ApiError

from conftest import STORE_ID, appointment_payload, list_payload

BASE = f"/stores/{STORE_ID}"


class TestAppointments:

    async def test_list_query_parameters(self, api, remote):
        remote.add("GET", f"{BASE}/appointments", list_payload([appointment_payload()], total=9))

        result = await api.get_appointments(
            STORE_ID,
            page=2,
            limit=8,
            status="pending",
            search="ali",
            start_date=date(2026, 3, 1),
            end_date=date(2026, 3, 31),
            staff_ids=["s1", "s2"],
        )

        request = remote.calls("GET", f"{BASE}/appointments")[0]
        assert dict(request.url.params) == {
            "page": "2",
            "limit": "8",
            "status": "pending",
            "search": "ali",
            "startDate": "2026-03-01",
            "endDate": "2026-03-31",
            "staffIds": "s1,s2",
        }
        assert request.headers["Authorization"] == "Bearer secret"
        assert result.total == 9
        assert result.total_pages == 2
        assert result.data[0].status is AppointmentStatus.PENDING
        assert result.status_counts.pending == 9

    async def test_appointment_parsing(self, api, remote):
        remote.add("GET", f"{BASE}/appointments/apt-1", appointment_payload(publicNumber=12))

        appointment = await api.get_appointment(STORE_ID, "apt-1")

        assert appointment.public_number == "12"
        assert str(appointment.remaining_amount) == "80.00"

    async def test_status_update_body(self, api, remote):
        remote.add(
            "PATCH", f"{BASE}/appointments/apt-1/status",
            appointment_payload(status="cancelled", cancellationReason="Sick"),
        )

        updated = await api.update_appointment_status(
            STORE_ID, "apt-1",
            AppointmentStatusUpdate(status=SelectableStatus.CANCELLED, cancellation_reason="Sick"),
        )

        request = remote.calls("PATCH", f"{BASE}/appointments/apt-1/status")[0]
        assert json.loads(request.content) == {"status": "cancelled", "cancellationReason": "Sick"}
        assert updated.effective_cancellation_reason == "Sick"

    async def test_delete_returns_none_on_204(self, api, remote):
        remote.add("DELETE", f"{BASE}/appointments/apt-1", None, status_code=204)
        assert await api.delete_appointment(STORE_ID, "apt-1") is None


class TestAvailabilityAndCatalog:

    async def test_availability_parameters(self, api, remote):
        remote.add("GET", f"{BASE}/availability", {
            "date": "2026-03-04",
            "slots": [
                {"startTime": "10:00", "endTime": "11:00", "available": True},
                {"startTime": "11:00", "endTime": "12:00", "available": False, "reason": "booked"},
            ],
        })

        response = await api.get_availability(
            STORE_ID, "svc-1", "staff-1", date(2026, 3, 4), exclude_appointment_id="apt-1"
        )

        params = dict(remote.calls("GET", f"{BASE}/availability")[0].url.params)
        assert params == {
            "serviceId": "svc-1",
            "staffId": "staff-1",
            "date": "2026-03-04",
            "excludeAppointmentId": "apt-1",
        }
        assert [s.available for s in response.slots] == [True, False]
        assert response.slots[1].reason == "booked"

    async def test_staff_by_service(self, api, remote):
        remote.add("GET", f"{BASE}/staff", [
            {"id": 5, "userId": 9, "locationId": None, "firstName": "Ayse", "lastName": "Kaya"},
        ])

        staff = await api.get_staff(STORE_ID, service_id="svc-1")

        assert dict(remote.calls("GET", f"{BASE}/staff")[0].url.params) == {
            "includeHidden": "false",
            "serviceId": "svc-1",
        }
        assert staff[0].id == "5"
        assert staff[0].display_name == "Ayse Kaya"


class TestErrors:

    async def test_http_error_carries_message(self, api, remote):
        remote.add("PATCH", f"{BASE}/appointments/apt-1/status", {"message": "Slot taken"}, status_code=409)

        with pytest.raises(ApiError) as exc:
            await api.update_appointment_status(
                STORE_ID, "apt-1", AppointmentStatusUpdate(status=SelectableStatus.CONFIRMED)
            )

        assert exc.value.status_code == 409
        assert exc.value.message == "Slot taken"

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        api = ApiClient(base_url="http://api.test", transport=httpx.MockTransport(handler))

        with pytest.raises(ApiError) as exc:
            await api.get_services(STORE_ID)
        assert exc.value.status_code is None

    async def test_invalid_json(self):
        api = ApiClient(
            base_url="http://api.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>")),
        )

        with pytest.raises(ApiError, match="Invalid response"):
            await api.get_locations(STORE_ID)

    async def test_payload_not_matching_schema(self, api, remote):
        remote.add("GET", f"{BASE}/availability", {"slots": [{"startTime": "10:00", "endTime": "11:00"}]})

        with pytest.raises(ApiError, match="Invalid response") as exc:
            await api.get_availability(STORE_ID, "svc-1", "staff-1", date(2026, 3, 4))

        assert exc.value.status_code == 200
        assert exc.value.accepted

    async def test_list_item_with_invalid_range(self, api, remote):
        broken = appointment_payload(endDateTime="2026-03-04T10:00:00+03:00")
        remote.add("GET", f"{BASE}/appointments", list_payload([broken]))

        with pytest.raises(ApiError, match="Invalid response"):
            await api.get_appointments(STORE_ID)

    async def test_empty_body_on_write(self, api, remote):
        remote.add("PATCH", f"{BASE}/appointments/apt-1/status", None)

        with pytest.raises(ApiError) as exc:
            await api.update_appointment_status(
                STORE_ID, "apt-1", AppointmentStatusUpdate(status=SelectableStatus.CONFIRMED)
            )
        assert exc.value.accepted

    async def test_rejection_is_not_accepted(self):
        assert not ApiError("Slot taken", status_code=409).accepted
        assert not ApiError("Request failed").accepted
