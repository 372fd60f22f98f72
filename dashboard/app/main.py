# dashboard/app/main.py

import asyncio
import logging
from contextlib import asynccontextmanager

from dateutil import tz as dateutil_tz
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import get_dashboard_config, settings
from .events.consumer import notification_consumer_loop
from .routers import appointments, calendar, form
from .services.errors import MutationFailed, RemoteFetchFailed, ValidationFailed
from .services.query_cache import QueryCache
from .utils.api import ApiClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.api = ApiClient()
    config = get_dashboard_config()
    app.state.cache = QueryCache(
        stale_seconds=config.query_stale_seconds, gc_seconds=config.query_gc_seconds
    )
    app.state.tz = dateutil_tz.gettz(settings.timezone)

    consumer = None
    if settings.redis_url and settings.active_store_id:
        consumer = asyncio.create_task(notification_consumer_loop(
            settings.redis_url,
            app.state.cache,
            settings.active_store_id,
            settings.notifications_queue,
        ))
    else:
        logger.info("Notification consumer disabled (redis_url or active_store_id not set)")

    try:
        yield
    finally:
        if consumer is not None:
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass


app = FastAPI(title="Booking Dashboard", lifespan=lifespan)

app.include_router(calendar.router)
app.include_router(appointments.router)
app.include_router(form.router)


# ===== Error mapping =====

@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    return JSONResponse(
        status_code=422,
        content={"detail": exc.message, "field": exc.field},
    )


@app.exception_handler(RemoteFetchFailed)
async def remote_fetch_failed_handler(request: Request, exc: RemoteFetchFailed):
    status_code = 404 if exc.status_code == 404 else 502
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.exception_handler(MutationFailed)
async def mutation_failed_handler(request: Request, exc: MutationFailed):
    # 4xx from the API means the write was refused (409); anything else is an outage (502)
    status_code = 409 if exc.status_code and 400 <= exc.status_code < 500 else 502
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "draft": exc.draft},
    )


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "cached_queries": len(app.state.cache),
        "notifications": bool(settings.redis_url and settings.active_store_id),
    }
