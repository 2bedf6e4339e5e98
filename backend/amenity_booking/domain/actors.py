from dataclasses import dataclass
from typing import Optional

from ..models import UserRole


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as resolved from the bearer token."""

    user_id: int
    role: UserRole
    location_id: Optional[int]

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPERADMIN

    def belongs_to(self, location_id: int) -> bool:
        return self.is_superadmin or self.location_id == location_id

    def administers(self, location_id: int) -> bool:
        if self.is_superadmin:
            return True
        return self.role == UserRole.ADMIN and self.location_id == location_id
