from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fleetbook.models.profile import Profile, ProfileRole


@dataclass(frozen=True)
class SessionContext:
    """The signed-in actor, passed explicitly to every service that checks permissions."""

    user_id: str
    role: str = ProfileRole.USER.value
    full_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ProfileRole.ADMIN.value

    @classmethod
    def from_profile(cls, profile: Profile) -> "SessionContext":
        return cls(user_id=str(profile.id), role=profile.role, full_name=profile.full_name)
