# dashboard/app/config.py

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    api_url: str = "http://localhost:8080/api"
    api_token: Optional[str] = None
    api_timeout: float = 30.0

    redis_url: Optional[str] = None
    notifications_queue: str = "notifications:dashboard"

    # Store the dashboard session is bound to (push events for other stores are ignored)
    active_store_id: Optional[str] = None
    store_country: str = "TR"
    timezone: str = "Europe/Istanbul"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_prefix="DASHBOARD_",
        extra="ignore",
    )


settings = Settings()


@dataclass(frozen=True)
class DashboardConfig:
    """
    Tunable constants of the scheduling core.

    Attributes:
        search_debounce_seconds: Quiet period before a search term is sent upstream
        search_min_length: Shorter search input is treated as "no search term"
        page_size: Appointments per list page
        query_stale_seconds: How long a cached query result is served without re-fetch
        query_gc_seconds: How long an entry not re-fetched is kept before it is dropped
        max_reason_length: Cancellation / no-show reason limit
        max_notes_length: Internal notes limit
    """
    search_debounce_seconds: float = 0.4
    search_min_length: int = 2
    page_size: int = 8
    query_stale_seconds: float = 300.0
    query_gc_seconds: float = 600.0
    max_reason_length: int = 500
    max_notes_length: int = 1000

    def __post_init__(self):
        if self.search_min_length < 0:
            raise ValueError(f"search_min_length must be >= 0, got {self.search_min_length}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self.page_size}")
        if self.query_gc_seconds < self.query_stale_seconds:
            raise ValueError(
                f"query_gc_seconds ({self.query_gc_seconds}) must be >= "
                f"query_stale_seconds ({self.query_stale_seconds})"
            )


@lru_cache
def get_dashboard_config() -> DashboardConfig:
    """Get dashboard configuration (singleton)."""
    return DashboardConfig()
