"""
User model.

WHY: A user row binds an identity-provider subject to exactly one
organization with a role. The id is the identity provider's stable
username, not the email, because email is mutable.
"""

import enum
from typing import Optional

from sqlalchemy import Column, String, ForeignKey, Boolean

from wickops.models.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    MEMBER is a legacy role from early onboarding; it is read but never
    assigned to new users.
    """

    ADMIN = "ADMIN"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"
    MEMBER = "MEMBER"

    @classmethod
    def parse(cls, value: Optional[str], default: "UserRole" = None) -> Optional["UserRole"]:
        """Normalize a stored/requested role string; unknown values map to default."""
        normalized = str(value or "").strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            return default


# Roles an invite may grant
INVITABLE_ROLES = frozenset({UserRole.ADMIN, UserRole.EDITOR, UserRole.VIEWER})

# Roles allowed to send invites (OWNER/ACCOUNT_OWNER are legacy admin aliases)
INVITE_SENDER_ROLES = frozenset({"ADMIN", "OWNER", "ACCOUNT_OWNER"})

LEAST_PRIVILEGED_ROLE = UserRole.VIEWER


class User(Base, TimestampMixin):
    """
    User model.

    At most one row per id; creation is always create-if-absent.
    """

    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    display_name = Column(String(255), nullable=False)

    organization_id = Column(
        String(64), ForeignKey("organizations.id"), nullable=False, index=True
    )
    role = Column(String(32), nullable=False, default=UserRole.VIEWER.value)

    # Cleared on read once the organization is entitled (read-and-fix-up)
    access_suspended = Column(Boolean, nullable=False, default=True)

    @property
    def normalized_role(self) -> str:
        return str(self.role or "").strip().upper()

    @property
    def can_invite_users(self) -> bool:
        return self.normalized_role in INVITE_SENDER_ROLES

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
