# dashboard/app/services/query_cache.py
"""
In-process query cache.

Keys are tuples built by the key builders below, one per query family:
    ("appointments", store_id, "list", ...)
    ("appointments", store_id, "calendar", start, end, staff_id)
    ("availability", store_id, service_id, staff_id, date, exclude_id)
    ...

Invalidation marks every entry whose key starts with a prefix as stale.
A stale entry is re-fetched on its next read. Entries are never mutated in place.
An entry not re-fetched within the gc window is dropped on the next fetch
or invalidation.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, Hashable, Optional

from ..config import get_dashboard_config

logger = logging.getLogger(__name__)

QueryKey = tuple[Hashable, ...]


# ── Key builders ─────────────────────────────────────────────────────────


def appointments_key(store_id: str) -> QueryKey:
    """Prefix covering every appointment list, calendar and detail of a store."""
    return ("appointments", store_id)


def appointment_list_key(
    store_id: str,
    page: int,
    status: Optional[str],
    search: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date],
    staff_ids: tuple[str, ...],
    staff_id: Optional[str],
) -> QueryKey:
    return (
        *appointments_key(store_id), "list",
        page, status, search, start_date, end_date, tuple(sorted(staff_ids)), staff_id,
    )


def appointment_calendar_key(
    store_id: str,
    start_date: date,
    end_date: date,
    staff_id: Optional[str],
) -> QueryKey:
    return (*appointments_key(store_id), "calendar", start_date, end_date, staff_id)


def appointment_detail_key(store_id: str, appointment_id: str) -> QueryKey:
    return (*appointments_key(store_id), "detail", appointment_id)


def availability_key(
    store_id: str,
    service_id: Optional[str],
    staff_id: Optional[str],
    target_date: Optional[date],
    exclude_appointment_id: Optional[str],
) -> QueryKey:
    return ("availability", store_id, service_id, staff_id, target_date, exclude_appointment_id)


def services_key(store_id: str) -> QueryKey:
    return ("services", store_id)


def locations_key(store_id: str) -> QueryKey:
    return ("locations", store_id)


def staff_by_service_key(store_id: str, service_id: str) -> QueryKey:
    return ("staff-by-service", store_id, service_id)


def customers_key(store_id: str) -> QueryKey:
    return ("customers", store_id)


def dashboard_stats_key(store_id: str) -> QueryKey:
    return ("dashboard-stats", store_id)


def appointment_analytics_key(store_id: str) -> QueryKey:
    return ("appointmentAnalytics", store_id)


def revenue_analytics_key(store_id: str) -> QueryKey:
    return ("revenueAnalytics", store_id)


# ── Cache ────────────────────────────────────────────────────────────────


@dataclass
class CacheEntry:
    data: Any
    fetched_at: float
    stale: bool = False


class QueryCache:
    """Query results keyed by tuple; read through `fetch`, written only by fetches."""

    def __init__(
        self,
        stale_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        gc_seconds: float | None = None,
    ):
        config = get_dashboard_config()
        self.stale_seconds = stale_seconds if stale_seconds is not None else config.query_stale_seconds
        self.gc_seconds = gc_seconds if gc_seconds is not None else config.query_gc_seconds
        self.clock = clock
        self._entries: dict[QueryKey, CacheEntry] = {}

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    def get(self, key: QueryKey) -> Any:
        """Cached data for key (fresh or stale), or None."""
        entry = self._entries.get(key)
        return entry.data if entry else None

    def is_fresh(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        if entry is None or entry.stale:
            return False
        return self.clock() - entry.fetched_at < self.stale_seconds

    def set(self, key: QueryKey, data: Any) -> None:
        self._entries[key] = CacheEntry(data=data, fetched_at=self.clock())

    async def fetch(self, key: QueryKey, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return fresh cached data for key, or call fetcher and cache its result.

        Fetch errors propagate; the previous entry (if any) is left as is.
        """
        self.collect()
        if self.is_fresh(key):
            return self._entries[key].data

        data = await fetcher()
        self.set(key, data)
        return data

    def invalidate(self, prefix: QueryKey) -> int:
        """
        Mark every entry whose key starts with prefix as stale.

        Returns:
            Number of invalidated entries
        """
        self.collect()
        count = 0
        n = len(prefix)
        for key, entry in self._entries.items():
            if key[:n] == prefix:
                entry.stale = True
                count += 1
        if count:
            logger.debug(f"Invalidated {count} cached queries under {prefix}")
        return count

    def collect(self) -> int:
        """Drop entries not re-fetched within the gc window."""
        cutoff = self.clock() - self.gc_seconds
        expired = [key for key, entry in self._entries.items() if entry.fetched_at <= cutoff]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Dropped {len(expired)} unused cached queries")
        return len(expired)

    def remove(self, prefix: QueryKey) -> int:
        """Drop every entry whose key starts with prefix."""
        n = len(prefix)
        doomed = [key for key in self._entries if key[:n] == prefix]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()


def invalidate_after_appointment_change(cache: QueryCache, store_id: str) -> int:
    """
    Invalidate every cached view that depends on a store's appointments.

    Covers appointment lists/calendars/details, availability, customers,
    dashboard stats and analytics of that store.
    """
    prefixes = (
        appointments_key(store_id),
        ("availability", store_id),
        customers_key(store_id),
        dashboard_stats_key(store_id),
        appointment_analytics_key(store_id),
        revenue_analytics_key(store_id),
    )
    total = sum(cache.invalidate(prefix) for prefix in prefixes)
    logger.info(f"Appointment change in store={store_id}: {total} cached queries invalidated")
    return total
