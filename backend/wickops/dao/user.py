"""
User Data Access Object.

WHY: UserDAO provides database operations for the User model, following
the DAO pattern for separation of concerns and testability.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wickops.dao.base import BaseDAO
from wickops.models.invite import normalize_email
from wickops.models.user import User


class UserDAO(BaseDAO[User]):
    """
    Data Access Object for User model.

    User ids are identity-provider subjects; emails are stored normalized.
    """

    def __init__(self, session: AsyncSession):
        """Initialize UserDAO with session."""
        super().__init__(User, session)

    async def create_user(
        self,
        user_id: str,
        email: str,
        display_name: str,
        organization_id: str,
        role: str,
        access_suspended: bool,
    ) -> bool:
        """
        Create a user unless one with this id already exists.

        A False result means a prior (or concurrent) delivery already
        created the user; callers treat that as completion.

        Returns:
            True if this call created the user
        """
        return await self.create_if_absent(
            id=user_id,
            email=normalize_email(email),
            display_name=display_name,
            organization_id=organization_id,
            role=role,
            access_suspended=access_suspended,
        )

    async def count_by_organization(self, organization_id: str) -> int:
        """Count users that belong to an organization."""
        return await self.count(organization_id=organization_id)

    async def list_ids_by_organization(self, organization_id: str) -> List[str]:
        """List user ids of an organization."""
        result = await self.session.execute(
            select(User.id).where(User.organization_id == organization_id)
        )
        return list(result.scalars().all())

    async def clear_suspension(self, user_id: str) -> bool:
        """
        Clear a stale access_suspended flag.

        Guarded on the flag still being set so concurrent status checks
        write at most once.

        Returns:
            True if this call cleared the flag
        """
        return await self.conditional_update(
            user_id,
            conditions=[User.access_suspended.is_(True)],
            access_suspended=False,
        )

    async def set_suspension_for_organization(self, organization_id: str, suspended: bool) -> int:
        """
        Set access_suspended for every user of an organization.

        Each user row is updated individually; there is no multi-row atomicity.

        Returns:
            Number of rows whose flag changed
        """
        changed = 0
        for user_id in await self.list_ids_by_organization(organization_id):
            if await self.conditional_update(
                user_id,
                conditions=[User.access_suspended.is_(not suspended)],
                access_suspended=suspended,
            ):
                changed += 1
        return changed
