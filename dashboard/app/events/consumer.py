"""
Redis notification consumer loop.

Reads push notifications from a Redis list with BRPOP (5s timeout to avoid
busy-waiting) and hands them to process_event(). Malformed payloads are
logged and dropped; a failing handler never stops the loop.

Started as an asyncio task in the FastAPI lifespan (see main.py).
"""

import asyncio
import json
import logging
from typing import Optional

import redis.asyncio as aioredis

from . import process_event
from ..services.query_cache import QueryCache

logger = logging.getLogger(__name__)

BRPOP_TIMEOUT = 5
ERROR_BACKOFF = 2.0


async def notification_consumer_loop(
    redis_url: str,
    cache: QueryCache,
    active_store_id: Optional[str],
    queue: str,
    client: Optional[aioredis.Redis] = None,
) -> None:
    """
    Consume notifications from `queue` until cancelled.

    Args:
        client: Pre-built Redis client (tests); created from redis_url otherwise
    """
    r = client or aioredis.from_url(redis_url, decode_responses=True)
    logger.info(f"notification_consumer_loop started (queue={queue}, store={active_store_id})")

    try:
        while True:
            try:
                result = await r.brpop(queue, timeout=BRPOP_TIMEOUT)
                if result is None:
                    continue

                _, raw = result
                await handle_raw_notification(raw, cache, active_store_id)

            except asyncio.CancelledError:
                logger.info("notification_consumer_loop cancelled")
                raise
            except Exception:
                logger.exception(f"notification_consumer_loop error, retrying in {ERROR_BACKOFF:g}s")
                await asyncio.sleep(ERROR_BACKOFF)
    finally:
        await r.aclose()


async def handle_raw_notification(
    raw,
    cache: QueryCache,
    active_store_id: Optional[str],
) -> bool:
    """Decode one queue item and dispatch it. Returns True when handled."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.error(f"Invalid JSON in notification queue: {str(raw)[:200]}")
        return False

    if not isinstance(data, dict):
        logger.error(f"Notification is not a JSON object: {str(raw)[:200]}")
        return False

    return await process_event(data, cache, active_store_id)
