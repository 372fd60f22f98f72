# dashboard/app/dependencies.py
# Shared objects live on app.state (built in main.lifespan); routers reach them through Depends.

from datetime import tzinfo
from typing import Optional

from fastapi import Header, Request

from .services.query_cache import QueryCache
from .services.viewer import Viewer
from .utils.api import ApiClient


def get_api(request: Request) -> ApiClient:
    return request.app.state.api


def get_cache(request: Request) -> QueryCache:
    return request.app.state.cache


def get_tz(request: Request) -> Optional[tzinfo]:
    return request.app.state.tz


def get_viewer(
    x_user_role: str = Header(...),
    x_staff_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
) -> Viewer:
    """Acting user as forwarded by the authenticating proxy."""
    return Viewer(role=x_user_role.strip().lower(), staff_id=x_staff_id or None, user_id=x_user_id)
