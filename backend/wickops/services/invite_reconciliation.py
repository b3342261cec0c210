"""
Invite Reconciliation Service.

WHAT: Marks a user's pending invite(s) as accepted.

WHY: Two entry points reconcile invites for the same identity: the
identity-confirmation trigger and every status check. Either may run
first, both may run concurrently and either may be replayed. The guarded
PENDING -> ACCEPTED update is the single serialization point, so the
invite is consumed at most once and the caller that won bumps the seat
cache.

HOW: reconcile() is split into a lookup phase (find_candidates) and an
accept phase (accept_candidates). Both are public so concurrent callers
can be exercised deterministically.
"""

import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from wickops.dao.invite import InviteDAO
from wickops.models.invite import Invite, normalize_email

logger = logging.getLogger(__name__)


def normalize_organization_id(organization_id) -> str:
    """Case-fold and trim an organization id for comparison."""
    return str(organization_id or "").strip().casefold()


class InviteReconciliationService:
    """Idempotent invite acceptance for a (user, email, organization) triple."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.invite_dao = InviteDAO(session)

    async def find_candidates(self, email: str) -> List[Invite]:
        """PENDING invites for an email, direct match first."""
        return await self.invite_dao.find_pending_candidates(normalize_email(email))

    async def accept_candidates(
        self,
        candidates: List[Invite],
        user_id: str,
        organization_id: str,
    ) -> bool:
        """
        Accept every candidate that belongs to organization_id.

        Returns:
            True if at least one invite transitioned in this call
        """
        target = normalize_organization_id(organization_id)
        accepted = False
        for invite in candidates:
            if normalize_organization_id(invite.organization_id) != target:
                continue
            if await self.invite_dao.accept(invite.id, user_id):
                logger.info(
                    f"Invite {invite.id} accepted by {user_id}",
                    extra={"organization_id": invite.organization_id},
                )
                accepted = True
            else:
                logger.debug(f"Invite {invite.id} already consumed")
        return accepted

    async def reconcile(self, user_id: str, email: str, organization_id: str) -> bool:
        """
        Accept pending invites for this user in their organization.

        Safe to call repeatedly; once the invite is accepted later calls
        find no candidates and return False.

        Returns:
            True if this call accepted an invite (caller increments seats)
        """
        if not email or not organization_id:
            return False
        candidates = await self.find_candidates(email)
        if not candidates:
            return False
        return await self.accept_candidates(candidates, user_id, organization_id)
