# dashboard/app/schemas/notifications.py

from typing import Any, Optional

from pydantic import BaseModel

from .appointments import REMOTE_MODEL_CONFIG


class NotificationEvent(BaseModel):
    """Push event; only used to decide whether to re-fetch."""
    store_id: str
    type: str
    id: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    model_config = REMOTE_MODEL_CONFIG
