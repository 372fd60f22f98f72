# dashboard/app/schemas/availability.py
"""
Pydantic schemas for the remote availability lookup.
"""

from typing import Optional

from pydantic import BaseModel, Field

from .appointments import REMOTE_MODEL_CONFIG


class AvailabilitySlot(BaseModel):
    """A candidate interval for one (service, staff, date) triple."""
    start_time: str  # "HH:MM"
    end_time: str
    available: bool
    reason: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG


class AvailabilityResponse(BaseModel):
    date: Optional[str] = None
    service_id: Optional[str] = None
    staff_id: Optional[str] = None
    location_id: Optional[str] = None
    slots: list[AvailabilitySlot] = Field(default_factory=list)

    model_config = REMOTE_MODEL_CONFIG
