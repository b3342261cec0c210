"""
Subscription status endpoint.

WHAT: GET /subscriptions/status - the caller's organization, seats and
payment state.

WHY: The frontend polls this after sign-in and after checkout. It is also
the read-and-fix-up point for invites, seat cache, suspension and storage
(see SubscriptionStatusService). While storage is provisioning the
response is 503 with Retry-After.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wickops.core.auth import IdentityClaims
from wickops.core.deps import get_current_identity, get_plan_catalog, get_storage_provisioner
from wickops.core.plans import PlanCatalog
from wickops.db.session import get_db
from wickops.schemas.subscription import SubscriptionStatusResponse
from wickops.services.status_service import SubscriptionStatusService
from wickops.services.tenant_storage import TenantStorageProvisioner

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.get(
    "/status",
    response_model=SubscriptionStatusResponse,
    summary="Get subscription status",
    responses={503: {"description": "Tenant storage is still provisioning"}},
)
async def get_subscription_status(
    claims: IdentityClaims = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    provisioner: TenantStorageProvisioner = Depends(get_storage_provisioner),
    plan_catalog: PlanCatalog = Depends(get_plan_catalog),
) -> SubscriptionStatusResponse:
    service = SubscriptionStatusService(db, provisioner, plan_catalog)
    return await service.get_status(claims)
