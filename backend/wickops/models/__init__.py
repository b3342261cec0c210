"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from wickops.models.base import Base, TimestampMixin, utcnow
from wickops.models.organization import (
    Organization,
    OrganizationType,
    PaymentStatus,
    is_paid,
    new_organization_id,
)
from wickops.models.user import User, UserRole, INVITABLE_ROLES, INVITE_SENDER_ROLES, LEAST_PRIVILEGED_ROLE
from wickops.models.invite import Invite, InviteStatus, normalize_email

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "Organization",
    "OrganizationType",
    "PaymentStatus",
    "is_paid",
    "new_organization_id",
    "User",
    "UserRole",
    "INVITABLE_ROLES",
    "INVITE_SENDER_ROLES",
    "LEAST_PRIVILEGED_ROLE",
    "Invite",
    "InviteStatus",
    "normalize_email",
]
