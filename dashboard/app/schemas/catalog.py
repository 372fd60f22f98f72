# dashboard/app/schemas/catalog.py
"""
Services, locations and staff as the appointment form sees them.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .appointments import REMOTE_MODEL_CONFIG


class ServiceOption(BaseModel):
    id: str
    name: str
    duration: int = Field(default=0, description="Duration in minutes")
    price: Decimal = Decimal("0")
    is_visible: bool = True

    model_config = REMOTE_MODEL_CONFIG


class LocationOption(BaseModel):
    id: str
    name: str

    model_config = REMOTE_MODEL_CONFIG


class StaffOption(BaseModel):
    id: str
    user_id: Optional[str] = None
    location_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None

    model_config = REMOTE_MODEL_CONFIG

    @property
    def display_name(self) -> str:
        if self.full_name:
            return self.full_name
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or f"Staff {self.id}"
