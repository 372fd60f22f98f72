# dashboard/app/events/appointments.py

import logging

from . import register_event
from ..schemas.notifications import NotificationEvent
from ..services.query_cache import QueryCache, appointments_key, dashboard_stats_key

logger = logging.getLogger(__name__)

APPOINTMENT_EVENTS = (
    "appointment_created",
    "appointment_cancelled",
    "appointment_status_changed",
)


def invalidate_appointment_views(event: NotificationEvent, cache: QueryCache) -> None:
    """Mark the store's appointment views and dashboard stats stale."""
    stale = cache.invalidate(appointments_key(event.store_id))
    stale += cache.invalidate(dashboard_stats_key(event.store_id))
    logger.info(
        f"{event.type} (id={event.id}): {stale} cached queries "
        f"marked stale for store={event.store_id}"
    )


for _event_type in APPOINTMENT_EVENTS:
    register_event(_event_type)(invalidate_appointment_views)
