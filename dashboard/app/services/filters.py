# dashboard/app/services/filters.py
"""
Appointment list filters, search debounce and query composition.

FilterState is immutable: every `with_*` returns a new state. Changing any
filter (status, search, date range, staff) returns to page 1; changing only
the page keeps every filter.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from ..config import get_dashboard_config
from ..schemas.appointments import AppointmentStatus, AppointmentStatusCounts
from .errors import ValidationFailed
from .query_cache import QueryKey, appointment_list_key
from .viewer import Viewer

logger = logging.getLogger(__name__)

ALL_STATUSES = "all"

STATUS_TAB_LABELS = {
    ALL_STATUSES: "All",
    AppointmentStatus.PENDING.value: "Pending",
    AppointmentStatus.CONFIRMED.value: "Confirmed",
    AppointmentStatus.COMPLETED.value: "Completed",
    AppointmentStatus.CANCELLED.value: "Cancelled",
    AppointmentStatus.NO_SHOW.value: "No Show",
    AppointmentStatus.EXPIRED.value: "Expired",
}


def normalize_search(value: Optional[str], min_length: Optional[int] = None) -> str:
    """Trimmed search term, or "" when shorter than the minimum length."""
    if min_length is None:
        min_length = get_dashboard_config().search_min_length
    normalized = (value or "").strip()
    return normalized if len(normalized) >= min_length else ""


def parse_status_filter(value: Optional[str]) -> str:
    if not value or value == ALL_STATUSES:
        return ALL_STATUSES
    try:
        return AppointmentStatus(value).value
    except ValueError:
        raise ValidationFailed("status", f"Unknown status filter '{value}'") from None


# ── Debounce ─────────────────────────────────────────────────────────────


class DebouncedSearch:
    """
    Debounced, length-gated view of a search input.

    A pure function of the input stream and time: feed keystrokes with
    `push(value, at)` and read the settled term with `value_at(now)`.
    Input shorter than the minimum clears the term immediately; anything
    else settles once no further input arrived for `delay` seconds.
    """

    def __init__(self, delay: Optional[float] = None, min_length: Optional[int] = None):
        config = get_dashboard_config()
        self.delay = config.search_debounce_seconds if delay is None else delay
        self.min_length = config.search_min_length if min_length is None else min_length
        self._settled = ""
        self._pending: Optional[tuple[str, float]] = None

    def push(self, value: str, at: float) -> None:
        """Record a keystroke; restarts the quiet period."""
        normalized = normalize_search(value, self.min_length)
        if not normalized:
            self._settled = ""
            self._pending = None
            return
        self._pending = (normalized, at + self.delay)

    def value_at(self, now: float) -> str:
        if self._pending is not None and now >= self._pending[1]:
            self._settled = self._pending[0]
            self._pending = None
        return self._settled

    @property
    def is_pending(self) -> bool:
        return self._pending is not None


# ── Filter state ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            start, end = self.end, self.start
            object.__setattr__(self, "start", start)
            object.__setattr__(self, "end", end)


@dataclass(frozen=True)
class FilterState:
    status: str = ALL_STATUSES
    search: str = ""  # settled search term, already length-gated
    date_range: Optional[DateRange] = None
    staff_ids: tuple[str, ...] = ()
    page: int = 1

    def _with_filter(self, **changes) -> "FilterState":
        updated = replace(self, **changes)
        if updated == self:
            return self
        return replace(updated, page=1)

    def with_status(self, status: Optional[str]) -> "FilterState":
        return self._with_filter(status=parse_status_filter(status))

    def with_search(self, term: Optional[str]) -> "FilterState":
        return self._with_filter(search=normalize_search(term))

    def with_date_range(self, date_range: Optional[DateRange]) -> "FilterState":
        return self._with_filter(date_range=date_range)

    def with_staff(self, staff_id: str, selected: bool) -> "FilterState":
        if selected:
            staff_ids = self.staff_ids if staff_id in self.staff_ids else (*self.staff_ids, staff_id)
        else:
            staff_ids = tuple(s for s in self.staff_ids if s != staff_id)
        return self._with_filter(staff_ids=staff_ids)

    def with_page(self, page: int) -> "FilterState":
        return replace(self, page=max(1, int(page)))

    @property
    def status_filter(self) -> Optional[str]:
        return None if self.status == ALL_STATUSES else self.status

    # ── URL mirroring ────────────────────────────────────────────────────

    def to_url_params(self) -> dict[str, str]:
        """Query-string parameters reproducing this view (page excluded)."""
        params: dict[str, str] = {}
        if self.status != ALL_STATUSES:
            params["status"] = self.status
        if self.search:
            params["search"] = self.search
        if self.date_range:
            params["startDate"] = self.date_range.start.isoformat()
            params["endDate"] = self.date_range.end.isoformat()
        if self.staff_ids:
            params["staffIds"] = ",".join(self.staff_ids)
        return params

    def to_query_string(self) -> str:
        return urlencode(self.to_url_params())

    @classmethod
    def from_url_params(cls, params: Mapping[str, str]) -> "FilterState":
        """
        Restore filters from a query string mapping.

        A missing end date means a single-day range; malformed dates are ignored.
        """
        date_range = None
        start = _parse_date(params.get("startDate"))
        end = _parse_date(params.get("endDate"))
        if start:
            date_range = DateRange(start, end or start)

        staff_param = params.get("staffIds") or ""
        staff_ids = tuple(s for s in staff_param.split(",") if s)

        page = params.get("page")
        return cls(
            status=parse_status_filter(params.get("status")),
            search=normalize_search(params.get("search")),
            date_range=date_range,
            staff_ids=staff_ids,
            page=max(1, int(page)) if page and str(page).isdigit() else 1,
        )


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        logger.debug(f"Ignoring malformed date in query string: {value!r}")
        return None


# ── Query composition ────────────────────────────────────────────────────


@dataclass(frozen=True)
class AppointmentListQuery:
    """One list request: cache key plus API parameters."""
    store_id: str
    state: FilterState
    viewer: Viewer
    limit: int = field(default_factory=lambda: get_dashboard_config().page_size)

    @property
    def forced_staff_id(self) -> Optional[str]:
        return self.viewer.staff_id if self.viewer.is_restricted else None

    @property
    def staff_ids(self) -> tuple[str, ...]:
        # Staff selection is an admin-only filter
        return self.state.staff_ids if self.viewer.is_admin else ()

    @property
    def key(self) -> QueryKey:
        date_range = self.state.date_range
        return appointment_list_key(
            self.store_id,
            self.state.page,
            self.state.status_filter,
            self.state.search or None,
            date_range.start if date_range else None,
            date_range.end if date_range else None,
            self.staff_ids,
            self.forced_staff_id,
        )

    def params(self) -> dict[str, Any]:
        date_range = self.state.date_range
        return {
            "page": self.state.page,
            "limit": self.limit,
            "status": self.state.status_filter,
            "search": self.state.search or None,
            "start_date": date_range.start if date_range else None,
            "end_date": date_range.end if date_range else None,
            "staff_id": self.forced_staff_id,
            "staff_ids": list(self.staff_ids) or None,
        }


def compose_list_query(
    store_id: str,
    state: FilterState,
    viewer: Viewer,
    limit: Optional[int] = None,
) -> AppointmentListQuery:
    """
    Compose the list query for a viewer.

    A restricted viewer always queries their own staff identity, whatever
    the filter state says.

    Raises:
        ValidationFailed: restricted viewer without a staff identity
    """
    if viewer.is_restricted and not viewer.staff_id:
        raise ValidationFailed("staff_id", "No staff profile is linked to this account")
    if limit is None:
        return AppointmentListQuery(store_id=store_id, state=state, viewer=viewer)
    return AppointmentListQuery(store_id=store_id, state=state, viewer=viewer, limit=limit)


def status_tabs(counts: AppointmentStatusCounts) -> list[dict[str, Any]]:
    """Status filter tabs with their counts, "all" first."""
    return [
        {"value": value, "label": label, "count": getattr(counts, value)}
        for value, label in STATUS_TAB_LABELS.items()
    ]
