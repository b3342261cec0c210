"""
Invite Service.

WHAT: Sends and revokes organization invites.

WHY: Invites reserve seats. The service:
1. Restricts sending to organization admins (and legacy owner roles)
2. Rejects a batch that does not fit the remaining seats, as a whole
3. Creates the invitee's identity so the directory delivers the email
4. Writes one PENDING invite per address and reports per-address results

HOW: Seat checks use the live count (users + pending invites). Two admins
inviting concurrently can still overshoot the limit; enforcement is
best-effort and the seat cache self-heals on the next status check.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from wickops.core.exceptions import (
    AuthorizationError,
    IdentityDirectoryError,
    InviteNotFoundError,
    OrganizationNotFoundError,
    SeatLimitExceededError,
    UserNotFoundError,
    ValidationError,
)
from wickops.dao.invite import InviteDAO
from wickops.dao.organization import OrganizationDAO
from wickops.dao.user import UserDAO
from wickops.models.invite import normalize_email
from wickops.models.organization import Organization
from wickops.models.user import INVITABLE_ROLES, LEAST_PRIVILEGED_ROLE, User, UserRole
from wickops.services.identity_directory import IdentityDirectoryClient
from wickops.services.seat_accounting import SeatAccountingService

logger = logging.getLogger(__name__)


@dataclass
class InviteBatchResult:
    """Per-address outcome of send_invites."""

    invited: List[Tuple[str, str]] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def invited_count(self) -> int:
        return len(self.invited)


def normalize_invite_batch(entries) -> Dict[str, str]:
    """
    Deduplicate requested invites by normalized email.

    Blank emails and roles outside ADMIN/EDITOR/VIEWER are dropped; a
    missing role means VIEWER. When an email repeats, the last role wins.

    Args:
        entries: Iterable of (email, role) pairs

    Returns:
        Ordered mapping of normalized email to role value
    """
    batch: Dict[str, str] = {}
    for email, role in entries:
        normalized = normalize_email(email)
        if not normalized:
            continue
        if role is None or not str(role).strip():
            parsed = LEAST_PRIVILEGED_ROLE
        else:
            parsed = UserRole.parse(role)
        if parsed not in INVITABLE_ROLES:
            continue
        batch[normalized] = parsed.value
    return batch


class InviteService:
    """Service for invite operations initiated by organization admins."""

    def __init__(self, session: AsyncSession, identity_directory: IdentityDirectoryClient):
        self.session = session
        self.identity_directory = identity_directory
        self.user_dao = UserDAO(session)
        self.org_dao = OrganizationDAO(session)
        self.invite_dao = InviteDAO(session)
        self.seats = SeatAccountingService(session)

    async def _load_sender(self, requester_id: str) -> Tuple[User, Organization]:
        requester = await self.user_dao.get_by_id(requester_id)
        if requester is None:
            raise UserNotFoundError(user_id=requester_id)
        if not requester.can_invite_users:
            raise AuthorizationError("Only admins or account owners can invite users")
        organization = await self.org_dao.get_by_id(requester.organization_id)
        if organization is None:
            raise OrganizationNotFoundError(organization_id=requester.organization_id)
        return requester, organization

    async def send_invites(
        self,
        requester_id: str,
        entries,
        user_pool_id: Optional[str] = None,
    ) -> InviteBatchResult:
        """
        Invite a batch of addresses into the requester's organization.

        Args:
            requester_id: Identity id of the admin sending invites
            entries: Iterable of (email, role) pairs
            user_pool_id: Identity pool of the requester, if known

        Raises:
            ValidationError: Nothing valid to invite
            AuthorizationError: Requester is not allowed to invite
            SeatLimitExceededError: Batch needs more new seats than remain
        """
        batch = normalize_invite_batch(entries)
        if not batch:
            raise ValidationError("No invites provided")

        requester, organization = await self._load_sender(requester_id)

        user_count = await self.user_dao.count_by_organization(organization.id)
        pending_count = await self.invite_dao.count_pending_by_organization(organization.id)
        # Re-inviting an address with a live invite here refreshes it in place
        refreshes = await self.invite_dao.pending_ids_in_organization(organization.id, batch)
        new_seats = len(batch) - len(refreshes)
        if not self.seats.can_send_invites(organization, pending_count, new_seats, user_count):
            available = max(0, organization.seat_limit - (user_count + pending_count))
            logger.info(
                f"Invite batch of {new_seats} new seat(s) rejected for {organization.id}: {available} seat(s) left"
            )
            raise SeatLimitExceededError(seats_available=available, requested=new_seats)

        result = InviteBatchResult()
        for email, role in batch.items():
            try:
                await self.identity_directory.create_invited_user(
                    email, organization.name, user_pool_id=user_pool_id
                )
            except IdentityDirectoryError as e:
                logger.error(f"Invite failed for {email}: {e.message}", extra={"context": e.context})
                result.failed.append((email, e.context.get("error_code") or e.message))
                continue

            written = await self.invite_dao.create_or_refresh_pending(
                email=email,
                organization_id=organization.id,
                role=role,
                invited_by=requester.id,
            )
            if written:
                result.invited.append((email, role))
            else:
                result.failed.append((email, "InviteExists"))

        if result.invited:
            await self.seats.refresh_cache(organization)

        logger.info(
            f"Invited {result.invited_count} of {len(batch)} address(es) to {organization.id}",
            extra={"failed": [email for email, _ in result.failed]},
        )
        return result

    async def revoke_invite(self, requester_id: str, email: str) -> str:
        """
        Revoke a PENDING invite of the requester's organization.

        Returns:
            The normalized email of the revoked invite

        Raises:
            InviteNotFoundError: No pending invite for this email in the organization
        """
        _, organization = await self._load_sender(requester_id)
        invite_id = normalize_email(email)
        if not await self.invite_dao.revoke(invite_id, organization.id):
            raise InviteNotFoundError(email=invite_id)
        await self.seats.refresh_cache(organization)
        logger.info(f"Invite {invite_id} revoked in {organization.id}")
        return invite_id
