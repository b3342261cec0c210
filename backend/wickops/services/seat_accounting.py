"""
Seat Accounting.

WHAT: Computes seats used (users + pending invites) and keeps the
organization's seats_used cache roughly in sync.

WHY: Seat enforcement is best-effort. The cache can drift under racing
increments, so every decision prefers a live count and only falls back
to the cache when counting itself fails.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wickops.dao.invite import InviteDAO
from wickops.dao.organization import OrganizationDAO
from wickops.dao.user import UserDAO
from wickops.models.organization import Organization

logger = logging.getLogger(__name__)


@dataclass
class SeatUsage:
    """Seat usage snapshot of one organization."""

    seat_limit: int
    seats_used: int
    live: bool = True

    @property
    def seats_remaining(self) -> int:
        return max(0, self.seat_limit - self.seats_used)


class SeatAccountingService:
    """Seat math and cache maintenance for organizations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.org_dao = OrganizationDAO(session)
        self.user_dao = UserDAO(session)
        self.invite_dao = InviteDAO(session)

    async def compute_seats_used(self, organization_id: str) -> int:
        """Authoritative seat count: users plus pending invites."""
        users = await self.user_dao.count_by_organization(organization_id)
        pending = await self.invite_dao.count_pending_by_organization(organization_id)
        return users + pending

    @staticmethod
    def can_send_invites(
        organization: Organization,
        pending_count: int,
        requested_count: int,
        user_count: int,
    ) -> bool:
        """
        Check whether requested_count more invites fit the seat limit.

        Example: limit 5 with 3 users and 1 pending invite leaves 1 seat,
        so 1 invite is allowed and 2 are not.
        """
        remaining = max(0, (organization.seat_limit or 0) - (user_count + pending_count))
        return requested_count <= remaining

    async def seats_remaining(self, organization: Organization) -> SeatUsage:
        """
        Current seat usage for an organization.

        Falls back to the cached seats_used when the live count fails. The
        count runs in a savepoint so a failure rolls back only the count and
        the caller's transaction can keep writing.
        """
        try:
            async with self.session.begin_nested():
                used = await self.compute_seats_used(organization.id)
            return SeatUsage(seat_limit=organization.seat_limit or 0, seats_used=used)
        except SQLAlchemyError as e:
            logger.warning(
                f"Live seat count failed for {organization.id}, using cached value: {e}",
                extra={"organization_id": organization.id},
            )
            return SeatUsage(
                seat_limit=organization.seat_limit or 0,
                seats_used=organization.seats_used or 0,
                live=False,
            )

    async def increment_cached(self, organization_id: str) -> None:
        """Atomically add one seat to the cached count."""
        if not await self.org_dao.increment_seats_used(organization_id):
            logger.warning(f"Seat increment for missing organization {organization_id}")

    async def refresh_cache(self, organization: Organization, usage: Optional[SeatUsage] = None) -> int:
        """
        Write the live seat count back to the cache when it differs.

        Args:
            organization: Organization whose cache to refresh
            usage: Already computed usage; a cached (non-live) snapshot is not written back

        Returns:
            The seat count reported to callers
        """
        if usage is not None and not usage.live:
            return usage.seats_used
        used = usage.seats_used if usage is not None else await self.compute_seats_used(organization.id)
        if used != organization.seats_used:
            logger.info(
                f"Refreshing seats_used for {organization.id}: {organization.seats_used} -> {used}"
            )
            await self.org_dao.set_seats_used(organization.id, used)
        return used
