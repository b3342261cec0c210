"""
Organization model.

WHY: Organizations are the tenants of the system. Each one owns users,
pending invites, a seat limit tied to its billing plan and a pair of
lazily provisioned storage tables.
"""

import enum
import uuid

from sqlalchemy import Column, String, Integer

from wickops.models.base import Base, TimestampMixin


class OrganizationType(str, enum.Enum):
    """Organization kind chosen at onboarding."""

    PERSONAL = "personal"
    ORG = "org"


class PaymentStatus(str, enum.Enum):
    """
    Payment status values written by the billing sink.

    Legacy rows may carry capitalized values ("Paid"); comparisons are
    case-insensitive, see is_paid().
    """

    PENDING = "pending"
    ACTIVE = "active"
    PAID = "paid"
    UNPAID = "unpaid"


ENTITLED_PAYMENT_STATUSES = frozenset({PaymentStatus.ACTIVE.value, PaymentStatus.PAID.value})


def is_paid(payment_status) -> bool:
    """True when a payment status entitles the organization (active/paid)."""
    if payment_status is None:
        return False
    value = payment_status.value if isinstance(payment_status, enum.Enum) else str(payment_status)
    return value.strip().lower() in ENTITLED_PAYMENT_STATUSES


def new_organization_id() -> str:
    """
    Generate an opaque organization id.

    Never derived from the organization name or an email address, so ids
    cannot collide on display text or be enumerated.
    """
    return f"org_{uuid.uuid4().hex}"


class Organization(Base, TimestampMixin):
    """
    Organization model representing a tenant.

    seats_used is an advisory cache. The authoritative seat count is
    users + pending invites, recomputed by SeatAccountingService.
    """

    __tablename__ = "organizations"

    id = Column(String(64), primary_key=True, default=new_organization_id)
    name = Column(String(255), nullable=False)
    type = Column(String(16), nullable=False, default=OrganizationType.ORG.value)

    seat_limit = Column(Integer, nullable=False, default=1)
    seats_used = Column(Integer, nullable=False, default=0)

    plan = Column(String(64), nullable=False, default="Free")
    payment_status = Column(String(16), nullable=False, default=PaymentStatus.PENDING.value)
    stripe_customer_id = Column(String(255), nullable=True, index=True)

    @property
    def is_entitled(self) -> bool:
        return is_paid(self.payment_status)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name}, payment_status={self.payment_status})>"
