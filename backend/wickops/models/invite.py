"""
Invite model.

WHY: An invite reserves a seat in an organization for an email address
until the invitee confirms their identity or the invite expires. The id
is the normalized invitee email, which makes the email the natural dedup
key. An expired PENDING invite holds no seat and can be issued again.
"""

import enum
from datetime import timedelta
from typing import Optional

from sqlalchemy import Column, String, DateTime, ForeignKey

from wickops.models.base import Base, utcnow


class InviteStatus(str, enum.Enum):
    """
    Invite lifecycle.

    Transitions are monotonic: PENDING -> ACCEPTED or PENDING -> REVOKED.
    """

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REVOKED = "REVOKED"


def normalize_email(email: Optional[str]) -> str:
    """Trim and lowercase an email address."""
    return str(email or "").strip().lower()


def default_expiry(days: int):
    return utcnow() + timedelta(days=days)


class Invite(Base):
    """
    Invite model.

    Legacy rows may have an id that is not the normalized email; those are
    only reachable through InviteDAO's bounded scan fallback.
    """

    __tablename__ = "invites"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    organization_id = Column(
        String(64), ForeignKey("organizations.id"), nullable=False, index=True
    )
    role = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False, default=InviteStatus.PENDING.value, index=True)
    invited_by = Column(String(128), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    accepted_user_id = Column(String(128), nullable=True)

    @property
    def is_pending(self) -> bool:
        return str(self.status or "").upper() == InviteStatus.PENDING.value

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at <= utcnow()

    @property
    def is_usable(self) -> bool:
        """PENDING and not yet expired: holds a seat and can be accepted."""
        return self.is_pending and not self.is_expired

    def __repr__(self) -> str:
        return f"<Invite(id={self.id}, organization_id={self.organization_id}, status={self.status})>"
