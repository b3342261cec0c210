"""
Invite Data Access Object.

WHY: Invites are the one place where two independent entry points
(identity-confirmation trigger and status checks) race for the same row.
All state transitions go through guarded single-row updates so the
PENDING -> ACCEPTED transition happens at most once.

An invite is usable while it is PENDING and its expires_at (if any) lies
in the future. Expired invites are invisible to lookups, hold no seat and
cannot be accepted; re-inviting the address takes the row over.

Lookup is two-tier:
1. Direct primary-key lookup on the normalized email.
2. A bounded scan over PENDING rows comparing trimmed/lowercased emails.
   This only exists for legacy rows whose id is not the normalized email
   and should be dropped once those rows are migrated.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Set

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from wickops.core.config import settings
from wickops.dao.base import BaseDAO
from wickops.models.base import utcnow
from wickops.models.invite import Invite, InviteStatus, default_expiry, normalize_email

logger = logging.getLogger(__name__)


def is_pending_clause() -> ColumnElement:
    return func.upper(Invite.status) == InviteStatus.PENDING.value


def is_unexpired_clause(now: Optional[datetime] = None) -> ColumnElement:
    return or_(Invite.expires_at.is_(None), Invite.expires_at > (now or utcnow()))


class InviteDAO(BaseDAO[Invite]):
    """Data Access Object for Invite model."""

    def __init__(self, session: AsyncSession, scan_limit: Optional[int] = None):
        super().__init__(Invite, session)
        self.scan_limit = scan_limit or settings.INVITE_SCAN_LIMIT

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_pending(self, email: str) -> Optional[Invite]:
        """Direct lookup of a usable invite keyed by normalized email."""
        invite = await self.get_by_id(normalize_email(email))
        if invite is not None and invite.is_usable:
            return invite
        return None

    async def scan_pending_by_email(self, email: str) -> List[Invite]:
        """
        Bounded scan for usable invites whose stored email matches.

        Reads at most scan_limit rows. Matches beyond the limit are missed;
        the next reconciliation attempt retries.
        """
        normalized = normalize_email(email)
        query = (
            select(Invite)
            .where(
                is_pending_clause(),
                is_unexpired_clause(),
                or_(
                    func.lower(func.trim(Invite.email)) == normalized,
                    func.lower(func.trim(Invite.id)) == normalized,
                ),
            )
            .order_by(Invite.created_at)
            .limit(self.scan_limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_pending_candidates(self, email: str) -> List[Invite]:
        """
        Two-tier lookup of usable invites for an email.

        Returns:
            Candidates with the direct match first, deduplicated by id
        """
        normalized = normalize_email(email)
        if not normalized:
            return []

        candidates: List[Invite] = []
        direct = await self.get_pending(normalized)
        if direct is not None:
            candidates.append(direct)

        seen = {invite.id for invite in candidates}
        for invite in await self.scan_pending_by_email(normalized):
            if invite.id not in seen:
                seen.add(invite.id)
                candidates.append(invite)

        if len(candidates) > 1:
            logger.warning(
                f"Multiple pending invites for {normalized}",
                extra={"invite_ids": [invite.id for invite in candidates]},
            )
        return candidates

    async def count_pending_by_organization(self, organization_id: str) -> int:
        """Count usable invites of an organization; expired ones hold no seat."""
        query = (
            select(func.count())
            .select_from(Invite)
            .where(
                Invite.organization_id == organization_id,
                is_pending_clause(),
                is_unexpired_clause(),
            )
        )
        result = await self.session.execute(query)
        return int(result.scalar_one())

    async def pending_ids_in_organization(
        self, organization_id: str, invite_ids: Iterable[str]
    ) -> Set[str]:
        """Which of the given ids are usable invites of this organization."""
        ids = list(invite_ids)
        if not ids:
            return set()
        query = select(Invite.id).where(
            Invite.id.in_(ids),
            Invite.organization_id == organization_id,
            is_pending_clause(),
            is_unexpired_clause(),
        )
        result = await self.session.execute(query)
        return set(result.scalars().all())

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def accept(self, invite_id: str, user_id: str, accepted_at: Optional[datetime] = None) -> bool:
        """
        PENDING -> ACCEPTED, stamped with the accepting user.

        Guard: status is PENDING, the invite has not expired, and
        accepted_user_id is unset or already this user. A failed guard means
        another invocation consumed the invite (or it lapsed); it is not an
        error.

        Returns:
            True if this call performed the transition
        """
        now = accepted_at or utcnow()
        return await self.conditional_update(
            invite_id,
            conditions=[
                is_pending_clause(),
                is_unexpired_clause(now),
                or_(Invite.accepted_user_id.is_(None), Invite.accepted_user_id == user_id),
            ],
            status=InviteStatus.ACCEPTED.value,
            accepted_user_id=user_id,
            accepted_at=now,
        )

    async def revoke(self, invite_id: str, organization_id: str) -> bool:
        """PENDING -> REVOKED for an invite of the given organization, expired or not."""
        return await self.conditional_update(
            invite_id,
            conditions=[
                is_pending_clause(),
                Invite.organization_id == organization_id,
            ],
            status=InviteStatus.REVOKED.value,
        )

    async def create_or_refresh_pending(
        self,
        email: str,
        organization_id: str,
        role: str,
        invited_by: Optional[str],
        expiry_days: Optional[int] = None,
    ) -> bool:
        """
        Write a PENDING invite keyed by normalized email.

        A PENDING invite of the same organization has its role and expiry
        refreshed. An expired PENDING invite is taken over by whichever
        organization invites the address next. A live invite of another
        organization, or one that is no longer pending, is left untouched.

        Returns:
            True if a usable invite for this organization now exists
        """
        invite_id = normalize_email(email)
        now = utcnow()
        expires_at = default_expiry(expiry_days or settings.INVITE_EXPIRY_DAYS)

        created = await self.create_if_absent(
            id=invite_id,
            email=invite_id,
            organization_id=organization_id,
            role=role,
            status=InviteStatus.PENDING.value,
            invited_by=invited_by,
            expires_at=expires_at,
        )
        if created:
            return True

        return await self.conditional_update(
            invite_id,
            conditions=[
                is_pending_clause(),
                or_(
                    Invite.organization_id == organization_id,
                    ~is_unexpired_clause(now),
                ),
            ],
            organization_id=organization_id,
            role=role,
            invited_by=invited_by,
            expires_at=expires_at,
        )
