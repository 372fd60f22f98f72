"""
Shared fixtures: appointment factories, a fake clock for the query cache and
an API client backed by httpx.MockTransport.
"""

import json
from datetime import timedelta, timezone

import httpx
import pytest

from dashboard.app.schemas.appointments import Appointment
from dashboard.app.services.query_cache import QueryCache
from dashboard.app.utils.api import ApiClient

STORE_ID = "store-1"
ISTANBUL = timezone(timedelta(hours=3))


def appointment_payload(**overrides) -> dict:
    """Appointment as the remote API returns it (camelCase)."""
    data = {
        "id": "apt-1",
        "storeId": STORE_ID,
        "publicNumber": "7",
        "serviceId": "svc-1",
        "serviceName": "Haircut",
        "staffId": "staff-1",
        "locationId": "loc-1",
        "customerId": "cust-1",
        "startDateTime": "2026-03-04T10:00:00+03:00",
        "endDateTime": "2026-03-04T11:00:00+03:00",
        "status": "pending",
        "totalPrice": "100.00",
        "depositAmount": "20.00",
    }
    data.update(overrides)
    return data


def make_appointment(**overrides) -> Appointment:
    return Appointment.model_validate(appointment_payload(**overrides))


def list_payload(items: list[dict], total: int = None, page: int = 1, limit: int = 8) -> dict:
    total = len(items) if total is None else total
    return {
        "data": items,
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": max(1, -(-total // limit)),
        "statusCounts": {"all": total, "pending": total},
    }


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingHandler:
    """MockTransport handler returning canned JSON per (method, path) and recording requests."""

    def __init__(self):
        self.routes: dict[tuple[str, str], object] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, body=None, status_code: int = 200):
        self.routes[(method, path)] = (status_code, body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "Not found"})
        status_code, body = route
        if callable(body):
            body = body(request)
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, content=json.dumps(body), headers={"Content-Type": "application/json"})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return QueryCache(stale_seconds=300, clock=clock)


@pytest.fixture
def remote():
    return RecordingHandler()


@pytest.fixture
def api(remote):
    return ApiClient(
        base_url="http://api.test",
        token="secret",
        timeout=5,
        transport=httpx.MockTransport(remote),
    )
