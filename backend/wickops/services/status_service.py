"""
Subscription Status Service.

WHAT: Answers "what is my organization's status" for an authenticated
identity, fixing up derived state on the way.

WHY: Every status check is also a reconciliation point:
1. A pending invite missed by the identity trigger is accepted here
2. The seat cache is refreshed from the live count
3. A stale access_suspended flag is cleared once the organization pays
4. Tenant storage is provisioned on first paid access

HOW: All fix-ups are idempotent conditional writes, so a check racing the
identity trigger (or another check) converges to the same state.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from wickops.core.auth import IdentityClaims
from wickops.core.exceptions import OrganizationNotFoundError, UserNotFoundError
from wickops.core.plans import DEFAULT_PLAN_CATALOG, PlanCatalog
from wickops.dao.organization import OrganizationDAO
from wickops.dao.user import UserDAO
from wickops.schemas.subscription import SubscriptionStatusResponse
from wickops.services.billing_service import BillingStatusSink
from wickops.services.invite_reconciliation import InviteReconciliationService
from wickops.services.seat_accounting import SeatAccountingService
from wickops.services.tenant_storage import TenantStorageProvisioner

logger = logging.getLogger(__name__)


class SubscriptionStatusService:
    """Service behind GET /api/subscriptions/status."""

    def __init__(
        self,
        session: AsyncSession,
        provisioner: TenantStorageProvisioner,
        plan_catalog: PlanCatalog = DEFAULT_PLAN_CATALOG,
    ):
        self.session = session
        self.provisioner = provisioner
        self.user_dao = UserDAO(session)
        self.org_dao = OrganizationDAO(session)
        self.invites = InviteReconciliationService(session)
        self.seats = SeatAccountingService(session)
        self.billing = BillingStatusSink(session, plan_catalog)

    async def get_status(self, claims: IdentityClaims) -> SubscriptionStatusResponse:
        """
        Reconcile and report the caller's subscription status.

        Raises:
            UserNotFoundError: The identity was never onboarded
            OrganizationNotFoundError: The user's organization is missing
            ProvisioningPending: Paid organization whose storage is not ready yet
        """
        user = await self.user_dao.get_by_id(claims.sub)
        if user is None:
            raise UserNotFoundError(user_id=claims.sub)

        organization = await self.org_dao.get_by_id(user.organization_id)
        if organization is None:
            raise OrganizationNotFoundError(organization_id=user.organization_id)

        email = claims.email or user.email
        if await self.invites.reconcile(user.id, email, organization.id):
            await self.seats.increment_cached(organization.id)
            organization = await self.org_dao.get_by_id(organization.id)

        usage = await self.seats.seats_remaining(organization)
        seats_used = await self.seats.refresh_cache(organization, usage)

        access_suspended = bool(user.access_suspended)
        if await self.billing.clear_stale_suspension(user, organization):
            access_suspended = False

        subscribed = organization.is_entitled
        if subscribed:
            # Persist the fix-ups above even if provisioning is still pending.
            await self.session.commit()
            await self.provisioner.ensure_provisioned(organization.id)

        return SubscriptionStatusResponse(
            display_name=user.display_name,
            organization_id=organization.id,
            org_name=organization.name,
            subscribed=subscribed,
            access_suspended=access_suspended,
            plan=organization.plan,
            seat_limit=organization.seat_limit,
            seats_used=seats_used,
            payment_status=organization.payment_status,
            role=user.normalized_role,
            can_invite_users=user.can_invite_users,
        )
