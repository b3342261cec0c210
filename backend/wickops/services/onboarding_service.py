"""
Onboarding Reconciler.

WHAT: Turns an identity-confirmation event into exactly one User, either
joining the organization of a pending invite or founding a new one.

WHY: The identity directory may deliver the confirmation more than once,
and a status check may reconcile the same invite concurrently. Every side
effect therefore goes through a conditional write:
1. User creation is create-if-absent keyed by the identity id
2. Invite consumption is the guarded PENDING -> ACCEPTED update
3. Only the caller that consumed the invite increments the seat cache

HOW: A replayed event finds the User and stops. Store errors other than
lost races propagate so the upstream retries the trigger, and the retry
lands in the replay path or finishes the remaining steps.
"""

import enum
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from wickops.core.config import settings
from wickops.core.exceptions import OrganizationNotFoundError
from wickops.core.plans import DEFAULT_PLAN_CATALOG, PlanCatalog
from wickops.dao.organization import OrganizationDAO
from wickops.dao.user import UserDAO
from wickops.models.organization import (
    OrganizationType,
    PaymentStatus,
    is_paid,
    new_organization_id,
)
from wickops.models.user import LEAST_PRIVILEGED_ROLE, INVITABLE_ROLES, UserRole
from wickops.schemas.identity import IdentityConfirmedEvent
from wickops.services.identity_directory import IdentityDirectoryClient
from wickops.services.invite_reconciliation import InviteReconciliationService
from wickops.services.seat_accounting import SeatAccountingService

logger = logging.getLogger(__name__)


class OnboardingOutcome(str, enum.Enum):
    """What on_identity_confirmed did."""

    REPLAY = "replay"
    JOINED_INVITE = "joined_invite"
    CREATED_ORGANIZATION = "created_organization"


class OnboardingReconciler:
    """
    Service handling identity-confirmation events.

    Args:
        session: Async database session
        identity_directory: Client used to grant the administrative group
        plan_catalog: Seat limits for fresh organizations
    """

    def __init__(
        self,
        session: AsyncSession,
        identity_directory: IdentityDirectoryClient,
        plan_catalog: PlanCatalog = DEFAULT_PLAN_CATALOG,
    ):
        self.session = session
        self.identity_directory = identity_directory
        self.plan_catalog = plan_catalog
        self.org_dao = OrganizationDAO(session)
        self.user_dao = UserDAO(session)
        self.invites = InviteReconciliationService(session)
        self.seats = SeatAccountingService(session)

    async def on_identity_confirmed(self, event: IdentityConfirmedEvent) -> OnboardingOutcome:
        """
        Onboard the confirmed identity.

        Raises:
            OrganizationNotFoundError: If the invite points at a missing organization
        """
        existing = await self.user_dao.get_by_id(event.identity_id)
        if existing is not None:
            logger.info(
                f"Identity {event.identity_id} already onboarded",
                extra={"organization_id": existing.organization_id},
            )
            return OnboardingOutcome.REPLAY

        candidates = await self.invites.find_candidates(event.email)
        if candidates:
            return await self._join_invited_organization(event, candidates)
        return await self._create_organization(event)

    # =========================================================================
    # Invite path
    # =========================================================================

    async def _join_invited_organization(self, event, candidates) -> OnboardingOutcome:
        invite = candidates[0]
        organization = await self.org_dao.get_by_id(invite.organization_id)
        if organization is None:
            logger.error(
                f"Invite {invite.id} references missing organization {invite.organization_id}"
            )
            raise OrganizationNotFoundError(
                organization_id=invite.organization_id, invite_id=invite.id
            )

        role = UserRole.parse(invite.role)
        if role not in INVITABLE_ROLES:
            role = LEAST_PRIVILEGED_ROLE

        won_invite = await self.invites.accept_candidates(
            candidates, event.identity_id, organization.id
        )

        created = await self.user_dao.create_user(
            user_id=event.identity_id,
            email=event.email,
            display_name=event.display_name_or_email,
            organization_id=organization.id,
            role=role.value,
            access_suspended=not is_paid(organization.payment_status),
        )
        if not created:
            # Another delivery created the user after our replay check.
            user = await self.user_dao.get_by_id(event.identity_id)
            logger.info(
                f"User {event.identity_id} created concurrently",
                extra={"organization_id": user.organization_id if user else None},
            )

        if won_invite:
            await self.seats.increment_cached(organization.id)

        logger.info(
            f"Identity {event.identity_id} joined {organization.id} as {role.value}",
            extra={"won_invite": won_invite},
        )
        return OnboardingOutcome.JOINED_INVITE

    # =========================================================================
    # Fresh organization path
    # =========================================================================

    async def _create_organization(self, event: IdentityConfirmedEvent) -> OnboardingOutcome:
        name_hint = event.organization_name_hint
        is_personal = name_hint is None
        name = f"Personal - {event.display_name_or_email}" if is_personal else name_hint

        organization_id = new_organization_id()
        await self.org_dao.create_organization(
            organization_id=organization_id,
            name=name,
            type=(OrganizationType.PERSONAL if is_personal else OrganizationType.ORG).value,
            seat_limit=self.plan_catalog.initial_seat_limit(is_personal),
            plan=self.plan_catalog.default_plan,
            seats_used=1,
            payment_status=PaymentStatus.PENDING.value,
        )

        created = await self.user_dao.create_user(
            user_id=event.identity_id,
            email=event.email,
            display_name=event.display_name_or_email,
            organization_id=organization_id,
            role=UserRole.ADMIN.value,
            access_suspended=True,
        )
        if not created:
            # Lost to a concurrent delivery; its organization is the user's.
            removed = await self.org_dao.delete_if_unused(organization_id)
            logger.warning(
                f"User {event.identity_id} created concurrently; discarded organization {organization_id}",
                extra={"organization_removed": removed},
            )
            return OnboardingOutcome.REPLAY

        await self.identity_directory.add_user_to_group(
            event.identity_id,
            group_name=settings.ADMIN_GROUP_NAME,
            user_pool_id=event.user_pool_id,
        )

        logger.info(
            f"Created organization {organization_id} for {event.identity_id}",
            extra={"personal": is_personal},
        )
        return OnboardingOutcome.CREATED_ORGANIZATION
