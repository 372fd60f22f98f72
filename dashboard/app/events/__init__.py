"""
Live invalidation listener.

Push notifications arrive on a Redis list (see consumer.py) and are
dispatched here. An event only triggers a re-fetch when it belongs to the
active store and its type has a registered handler; everything else is
logged and ignored.
"""

import logging
from typing import Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from ..schemas.notifications import NotificationEvent
from ..services.query_cache import QueryCache

logger = logging.getLogger(__name__)

EventHandler = Callable[[NotificationEvent, QueryCache], Union[None, Awaitable[None]]]

# Registry of event handlers
EVENT_HANDLERS: dict[str, EventHandler] = {}


def register_event(event_type: str):
    """Decorator to register an event handler."""
    def decorator(func: EventHandler):
        EVENT_HANDLERS[event_type] = func
        logger.debug(f"Registered event handler: {event_type}")
        return func
    return decorator


async def process_event(
    data: dict,
    cache: QueryCache,
    active_store_id: Optional[str],
) -> bool:
    """
    Dispatch a notification to its registered handler.

    Args:
        data: {"storeId": "...", "type": "event_type", "id": "...", ...}

    Returns:
        True when the event was handled (caches invalidated), False when ignored.
    """
    try:
        event = NotificationEvent.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Malformed notification skipped: {e.error_count()} error(s)")
        return False

    if not active_store_id or event.store_id != active_store_id:
        logger.debug(f"Notification for store={event.store_id} ignored (active={active_store_id})")
        return False

    handler = EVENT_HANDLERS.get(event.type)
    if not handler:
        logger.debug(f"No handler for notification type: {event.type}")
        return False

    logger.info(f"Processing notification: {event.type} store={event.store_id}")
    result = handler(event, cache)
    if result is not None:
        await result
    return True


# Import handlers to trigger registration via decorators
from . import appointments  # noqa: E402, F401
