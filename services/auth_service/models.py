"""
Identity and session data models for the authentication service.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional


class Role(str, Enum):
    """Roles a profile can hold"""
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    CLIENT = "client"

    @classmethod
    def parse(cls, value) -> "Role":
        """Parse a role from its stored value, raising ValueError for unknown roles"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown role: {value}") from None


STAFF_ROLES = (Role.ADMIN, Role.MANAGER, Role.STAFF)


def initials(name: str) -> str:
    """Up to two upper-cased initials from the alphanumeric words of a name"""
    return "".join(word[0] for word in name.split() if word[:1].isalnum())[:2].upper()


class AuthEvent(str, Enum):
    """Auth state change events emitted by the auth provider"""
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


@dataclass
class Identity:
    """Profile of an authenticated user"""
    id: str
    full_name: str
    role: Role
    avatar_url: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def initials(self) -> str:
        return initials(self.full_name)

    @property
    def avatar(self) -> str:
        """Avatar reference, falling back to initials"""
        return self.avatar_url or self.initials

    @property
    def is_client(self) -> bool:
        return self.role == Role.CLIENT


@dataclass
class AuthSession:
    """Authenticated session issued by the auth provider"""
    access_token: str
    user_id: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) >= self.expires_at


class SessionState(NamedTuple):
    """Snapshot of the session store"""
    identity: Optional[Identity]
    session: Optional[AuthSession]
    loading: bool
