"""Users and the authenticated actor."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    return datetime.now(UTC)


class UserRole(str, Enum):
    EMPLOYEE = "EMPLOYEE"
    ADMIN = "ADMIN"


@dataclass
class User:
    """A registered user.

    The role is fixed at registration or seed time; nothing in the
    expense workflow changes it.
    """

    email: str
    name: str
    role: UserRole = UserRole.EMPLOYEE
    id: UUID = field(default_factory=uuid4)
    password_hash: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def rename(self, name: str) -> None:
        self.name = name
        self.updated_at = _utc_now()

    def set_password_hash(self, password_hash: str) -> None:
        self.password_hash = password_hash
        self.updated_at = _utc_now()

    def summary(self) -> dict[str, Any]:
        """Owner summary nested under expenses and top-N lists."""
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass(frozen=True)
class Actor:
    """The authenticated identity performing an operation."""

    id: UUID
    role: UserRole
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role, email=user.email)
