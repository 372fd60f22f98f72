"""
HTTP surface tests (FastAPI TestClient, remote API on httpx.MockTransport).
"""

import json

import pytest
from fastapi.testclient import TestClient

from dashboard.app.dependencies import get_api, get_cache, get_tz
from dashboard.app.main import app

from conftest import ISTANBUL, STORE_ID, appointment_payload, list_payload

BASE = f"/stores/{STORE_ID}"
ADMIN = {"X-User-Role": "admin"}
STAFF = {"X-User-Role": "staff", "X-Staff-Id": "staff-7"}


@pytest.fixture
def client(api, cache):
    app.dependency_overrides[get_api] = lambda: api
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_tz] = lambda: ISTANBUL
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def catalog(remote):
    remote.add("GET", f"{BASE}/services", [
        {"id": "svc-1", "name": "Haircut", "duration": 60, "price": "100", "isVisible": True},
        {"id": "svc-hidden", "name": "Internal", "duration": 30, "isVisible": False},
    ])
    remote.add("GET", f"{BASE}/locations", [
        {"id": "loc-1", "name": "Kadikoy"},
        {"id": "loc-2", "name": "Besiktas"},
    ])
    remote.add("GET", f"{BASE}/staff", lambda request: (
        [{"id": "staff-1", "locationId": "loc-1", "fullName": "Ayse"}]
        if request.url.params.get("serviceId") == "svc-1" else []
    ))

    def availability(request):
        if request.url.params["date"] == "2026-03-05":
            return {"slots": [{"startTime": "10:00", "endTime": "11:00", "available": False}]}
        return {"slots": [
            {"startTime": "10:00", "endTime": "11:00", "available": True},
            {"startTime": "11:00", "endTime": "12:00", "available": False},
            {"startTime": "14:00", "endTime": "15:00", "available": True},
        ]}

    remote.add("GET", f"{BASE}/availability", availability)
    return remote


SELECTION = {
    "serviceId": "svc-1",
    "locationId": "loc-1",
    "staffId": "staff-1",
    "targetDate": "2026-03-04",
}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestList:

    def test_filters_are_forwarded(self, client, remote):
        remote.add("GET", f"{BASE}/appointments", list_payload([appointment_payload()], total=12))

        response = client.get(
            f"{BASE}/appointments",
            params={"status": "pending", "search": "ali", "page": "2", "staffIds": "s1,s2"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        sent = dict(remote.calls("GET", f"{BASE}/appointments")[0].url.params)
        assert sent == {
            "page": "2", "limit": "8", "status": "pending", "search": "ali", "staffIds": "s1,s2",
        }

        body = response.json()
        assert body["data"][0]["displayNumber"] == "#RV-007"
        assert body["pagination"]["totalPages"] == 2
        assert body["pagination"]["startIndex"] == 9
        assert body["statusTabs"][0] == {"value": "all", "label": "All", "count": 12}
        assert body["queryString"] == "status=pending&search=ali&staffIds=s1%2Cs2"

    def test_staff_viewer_sees_only_own_appointments(self, client, remote):
        remote.add("GET", f"{BASE}/appointments", list_payload([]))

        response = client.get(f"{BASE}/appointments", params={"staffIds": "s1"}, headers=STAFF)

        assert response.status_code == 200
        sent = dict(remote.calls("GET", f"{BASE}/appointments")[0].url.params)
        assert sent["staffId"] == "staff-7"
        assert "staffIds" not in sent

    def test_role_header_required(self, client):
        assert client.get(f"{BASE}/appointments").status_code == 422

    def test_remote_failure_is_not_an_empty_list(self, client, remote):
        remote.add("GET", f"{BASE}/appointments", {"message": "boom"}, status_code=500)

        response = client.get(f"{BASE}/appointments", headers=ADMIN)

        assert response.status_code == 502
        assert "Could not load" in response.json()["detail"]

    def test_unreadable_list_item_is_a_load_failure(self, client, remote):
        broken = appointment_payload(endDateTime="2026-03-04T10:00:00+03:00")
        remote.add("GET", f"{BASE}/appointments", list_payload([broken]))

        response = client.get(f"{BASE}/appointments", headers=ADMIN)

        assert response.status_code == 502
        assert "Could not load" in response.json()["detail"]

    def test_collection_root_is_served_without_redirect(self, client, remote):
        remote.add("GET", f"{BASE}/appointments", list_payload([]))

        response = client.get(f"{BASE}/appointments", headers=ADMIN, follow_redirects=False)

        assert response.status_code == 200

    def test_unknown_status_filter(self, client):
        response = client.get(f"{BASE}/appointments", params={"status": "archived"}, headers=ADMIN)
        assert response.status_code == 422
        assert response.json()["field"] == "status"


class TestCalendar:

    def test_month_grid(self, client, remote):
        remote.add("GET", f"{BASE}/appointments", list_payload([
            appointment_payload(
                startDateTime="2026-04-15T10:00:00+03:00",
                endDateTime="2026-04-15T11:00:00+03:00",
            ),
        ]))

        response = client.get(
            f"{BASE}/calendar", params={"view": "month", "date": "2026-04-15"}, headers=ADMIN
        )

        assert response.status_code == 200
        sent = dict(remote.calls("GET", f"{BASE}/appointments")[0].url.params)
        assert (sent["startDate"], sent["endDate"], sent["limit"]) == ("2026-03-30", "2026-05-03", "500")

        body = response.json()
        assert body["title"] == "April 2026"
        assert body["next"] == "2026-05-15"
        assert len(body["days"]) == 35
        assert body["days"][0]["inCurrentMonth"] is False
        by_day = {day["day"]: day["appointments"] for day in body["days"]}
        assert len(by_day["2026-04-15"]) == 1
        assert by_day["2026-04-14"] == []

    def test_day_view_has_time_slots(self, client, remote):
        remote.add("GET", f"{BASE}/appointments", list_payload([]))

        body = client.get(
            f"{BASE}/calendar", params={"view": "day", "date": "2026-04-15"}, headers=STAFF
        ).json()

        assert len(body["timeSlots"]) == 24
        sent = dict(remote.calls("GET", f"{BASE}/appointments")[0].url.params)
        assert sent["staffId"] == "staff-7"


class TestStatus:

    def test_cancel_with_reason(self, client, remote):
        remote.add("GET", f"{BASE}/appointments/apt-1", appointment_payload())
        remote.add(
            "PATCH", f"{BASE}/appointments/apt-1/status",
            appointment_payload(status="cancelled", cancellationReason="Sick"),
        )

        response = client.patch(
            f"{BASE}/appointments/apt-1/status",
            json={"status": "cancelled", "cancellationReason": "  Sick  "},
            headers=ADMIN,
        )

        assert response.status_code == 200
        sent = json.loads(remote.calls("PATCH", f"{BASE}/appointments/apt-1/status")[0].content)
        assert sent == {"status": "cancelled", "cancellationReason": "Sick"}
        body = response.json()
        assert body["allowedStatuses"] == []
        assert body["canSettlePayment"] is False
        assert body["isFinal"] is True

    def test_completed_is_final(self, client, remote):
        remote.add("GET", f"{BASE}/appointments/apt-1", appointment_payload(status="completed"))

        response = client.patch(
            f"{BASE}/appointments/apt-1/status", json={"status": "cancelled"}, headers=ADMIN
        )

        assert response.status_code == 422
        assert response.json()["field"] == "status"
        assert remote.calls("PATCH", f"{BASE}/appointments/apt-1/status") == []

    def test_rejected_change_returns_draft(self, client, remote):
        remote.add("GET", f"{BASE}/appointments/apt-1", appointment_payload())
        remote.add(
            "PATCH", f"{BASE}/appointments/apt-1/status",
            {"message": "Appointment was modified"}, status_code=409,
        )

        response = client.patch(
            f"{BASE}/appointments/apt-1/status",
            json={"status": "confirmed", "internalNotes": "call first"},
            headers=ADMIN,
        )

        assert response.status_code == 409
        body = response.json()
        assert "Appointment was modified" in body["detail"]
        assert body["draft"]["internal_notes"] == "call first"

    def test_staff_cannot_touch_other_staff_appointments(self, client, remote):
        remote.add("GET", f"{BASE}/appointments/apt-1", appointment_payload(staffId="staff-1"))

        response = client.patch(
            f"{BASE}/appointments/apt-1/status", json={"status": "confirmed"}, headers=STAFF
        )

        assert response.status_code == 422

    def test_settle_payment(self, client, remote):
        remote.add("GET", f"{BASE}/appointments/apt-1", appointment_payload(status="completed"))
        remote.add(
            "PATCH", f"{BASE}/appointments/apt-1/settle-payment",
            appointment_payload(status="completed", isPaid=True, totalPrice="120.00"),
        )

        response = client.patch(
            f"{BASE}/appointments/apt-1/settle-payment",
            json={"finalTotalPrice": "120.00", "paymentMethod": "cash"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        sent = json.loads(remote.calls("PATCH", f"{BASE}/appointments/apt-1/settle-payment")[0].content)
        assert sent == {"finalTotalPrice": "120.00", "paymentMethod": "cash", "markAsPaid": True}
        assert response.json()["displayTotal"] == "₺120.00"

    def test_delete_requires_admin(self, client, remote):
        remote.add("DELETE", f"{BASE}/appointments/apt-1", None, status_code=204)

        assert client.delete(f"{BASE}/appointments/apt-1", headers=STAFF).status_code == 422
        assert client.delete(f"{BASE}/appointments/apt-1", headers=ADMIN).status_code == 204
        assert len(remote.calls("DELETE", f"{BASE}/appointments/apt-1")) == 1


class TestForm:

    def test_resolve_picks_first_slot(self, client, catalog):
        response = client.post(
            f"{BASE}/appointment-form/resolve", json={"selection": SELECTION}, headers=ADMIN
        )

        assert response.status_code == 200
        body = response.json()
        assert body["selection"]["time"] == "10:00"
        assert body["availability"]["status"] == "ready"
        assert [s["startTime"] for s in body["availability"]["slots"]] == ["10:00", "14:00"]
        assert [s["id"] for s in body["staffOptions"]] == ["staff-1"]
        assert [loc["id"] for loc in body["locationOptions"]] == ["loc-1"]
        assert [s["id"] for s in body["serviceOptions"]] == ["svc-1"]

    def test_edit_keeps_staff_of_hidden_service(self, client, catalog):
        catalog.add("GET", f"{BASE}/staff", [{"id": "staff-1", "locationId": "loc-1", "fullName": "Ayse"}])
        catalog.add("GET", f"{BASE}/appointments/apt-1", appointment_payload(serviceId="svc-hidden"))

        response = client.post(
            f"{BASE}/appointment-form/resolve", json={"appointmentId": "apt-1"}, headers=ADMIN
        )

        assert response.status_code == 200
        body = response.json()
        assert body["isEditing"] is True
        assert body["selection"]["serviceId"] == "svc-hidden"
        assert body["selection"]["staffId"] == "staff-1"
        assert [s["id"] for s in body["staffOptions"]] == ["staff-1"]
        assert [s["id"] for s in body["serviceOptions"]] == ["svc-1", "svc-hidden"]
        assert body["availability"]["status"] == "ready"
        params = catalog.calls("GET", f"{BASE}/availability")[0].url.params
        assert params["excludeAppointmentId"] == "apt-1"

    def test_changing_to_a_full_day_clears_time(self, client, catalog):
        response = client.post(
            f"{BASE}/appointment-form/resolve",
            json={
                "selection": {**SELECTION, "time": "14:00"},
                "change": {"field": "date", "value": "2026-03-05"},
            },
            headers=ADMIN,
        )

        body = response.json()
        assert body["availability"]["status"] == "ready"
        assert body["availability"]["slots"] == []
        assert body["availability"]["canSelectTime"] is False
        assert body["selection"]["time"] is None

    def test_not_resolvable_without_staff(self, client, catalog):
        response = client.post(
            f"{BASE}/appointment-form/resolve",
            json={"selection": {"serviceId": "svc-1", "targetDate": "2026-03-04"}},
            headers=ADMIN,
        )

        assert response.json()["availability"]["status"] == "not_resolvable"
        assert catalog.calls("GET", f"{BASE}/availability") == []

    def test_unoffered_time_rejected(self, client, catalog):
        response = client.post(
            f"{BASE}/appointment-form/resolve",
            json={"selection": SELECTION, "change": {"field": "time", "value": "11:00"}},
            headers=ADMIN,
        )

        assert response.status_code == 422
        assert response.json()["field"] == "time"

    def test_create_appointment(self, client, catalog):
        catalog.add("POST", f"{BASE}/appointments", appointment_payload(id="apt-9"), status_code=201)

        response = client.post(
            f"{BASE}/appointments",
            json={
                "selection": {**SELECTION, "time": "14:00"},
                "firstName": "Ayse",
                "lastName": "Kaya",
                "email": "ayse@example.com",
            },
            headers=ADMIN,
        )

        assert response.status_code == 201
        assert response.json()["appointment"]["id"] == "apt-9"
        sent = json.loads(catalog.calls("POST", f"{BASE}/appointments")[0].content)
        assert sent["startDateTime"] == "2026-03-04T14:00:00"
        assert sent["guestEmail"] == "ayse@example.com"
        assert sent["numberOfPeople"] == 1

    def test_create_blocked_on_full_day(self, client, catalog):
        response = client.post(
            f"{BASE}/appointments",
            json={
                "selection": {**SELECTION, "targetDate": "2026-03-05", "time": "10:00"},
                "customerId": "cust-1",
            },
            headers=ADMIN,
        )

        assert response.status_code == 422
        assert response.json()["field"] == "time"
        assert catalog.calls("POST", f"{BASE}/appointments") == []
