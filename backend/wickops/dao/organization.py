"""
Organization Data Access Object.

WHY: OrganizationDAO wraps the organization row operations the engine
needs: create-if-absent on onboarding (with cleanup when the user row is
lost to a concurrent delivery), atomic seat cache increments and
payment field updates from the billing sink.
"""

import logging
from typing import Optional

from sqlalchemy import delete, exists
from sqlalchemy.ext.asyncio import AsyncSession

from wickops.dao.base import BaseDAO
from wickops.models.invite import Invite
from wickops.models.organization import Organization, PaymentStatus
from wickops.models.user import User

logger = logging.getLogger(__name__)


class OrganizationDAO(BaseDAO[Organization]):
    """Data Access Object for Organization model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Organization, session)

    async def create_organization(
        self,
        organization_id: str,
        name: str,
        type: str,
        seat_limit: int,
        plan: str,
        seats_used: int = 1,
        payment_status: str = PaymentStatus.PENDING.value,
    ) -> bool:
        """
        Create an organization unless the id is already taken.

        Returns:
            True if created, False if a row with this id already existed
        """
        return await self.create_if_absent(
            id=organization_id,
            name=name,
            type=type,
            seat_limit=seat_limit,
            seats_used=seats_used,
            plan=plan,
            payment_status=payment_status,
        )

    async def delete_if_unused(self, organization_id: str) -> bool:
        """
        Delete an organization that no user or invite references.

        Used by onboarding when a concurrent delivery won the user row and
        the organization created alongside it has no members.

        Returns:
            True if the row was deleted, False if it is missing or referenced
        """
        table = Organization.__table__
        users = User.__table__
        invites = Invite.__table__
        stmt = delete(table).where(
            table.c.id == organization_id,
            ~exists().where(users.c.organization_id == organization_id),
            ~exists().where(invites.c.organization_id == organization_id),
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def increment_seats_used(self, organization_id: str, amount: int = 1) -> bool:
        """
        Atomically bump the seats_used cache.

        The cache is advisory; drift from racing increments is corrected by
        SeatAccountingService.refresh_cache.
        """
        return await self.conditional_update(
            organization_id,
            seats_used=Organization.__table__.c.seats_used + amount,
        )

    async def set_seats_used(self, organization_id: str, seats_used: int) -> bool:
        """Overwrite the seats_used cache with a recomputed value."""
        return await self.conditional_update(organization_id, seats_used=seats_used)

    async def update_payment(
        self,
        organization_id: str,
        payment_status: str,
        stripe_customer_id: Optional[str] = None,
        plan: Optional[str] = None,
        seat_limit: Optional[int] = None,
    ) -> bool:
        """
        Update billing-owned fields of an organization.

        Only non-None arguments are written.

        Returns:
            True if the organization exists
        """
        values = {"payment_status": payment_status}
        if stripe_customer_id:
            values["stripe_customer_id"] = stripe_customer_id
        if plan:
            values["plan"] = plan
        if seat_limit is not None:
            values["seat_limit"] = seat_limit
        updated = await self.conditional_update(organization_id, **values)
        if not updated:
            logger.warning(
                f"Payment update for unknown organization {organization_id}",
                extra={"organization_id": organization_id, "payment_status": payment_status},
            )
        return updated
