# dashboard/app/services/viewer.py

from dataclasses import dataclass
from typing import Optional

ADMIN_ROLE = "admin"
STAFF_ROLE = "staff"


@dataclass(frozen=True)
class Viewer:
    """
    The acting dashboard user, as resolved by the auth layer.

    Any role other than admin is restricted to its own staff identity.
    """
    role: str
    staff_id: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @property
    def is_restricted(self) -> bool:
        return not self.is_admin
