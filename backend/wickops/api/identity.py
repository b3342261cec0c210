"""
Identity directory trigger endpoint.

WHAT: POST /identity/events/confirmed - onboards a confirmed identity.

WHY: The identity directory calls this after sign-up confirmation (and
after an invited user's first login). Deliveries can repeat; the
reconciler is idempotent. Store failures are NOT swallowed: a 5xx makes
the directory retry, and the retry converges.

SECURITY: Authenticated by a shared secret header, not a bearer token.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wickops.core.deps import (
    get_identity_directory,
    get_plan_catalog,
    verify_identity_hook_secret,
)
from wickops.core.plans import PlanCatalog
from wickops.db.session import get_db
from wickops.schemas.identity import IdentityConfirmedEvent, IdentityEventResponse
from wickops.services.identity_directory import IdentityDirectoryClient
from wickops.services.onboarding_service import OnboardingReconciler

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/identity",
    tags=["Identity"],
    dependencies=[Depends(verify_identity_hook_secret)],
)


@router.post(
    "/events/confirmed",
    response_model=IdentityEventResponse,
    summary="Identity confirmed trigger",
)
async def identity_confirmed(
    event: IdentityConfirmedEvent,
    db: AsyncSession = Depends(get_db),
    identity_directory: IdentityDirectoryClient = Depends(get_identity_directory),
    plan_catalog: PlanCatalog = Depends(get_plan_catalog),
) -> IdentityEventResponse:
    logger.info(f"Identity confirmed: {event.identity_id}")
    reconciler = OnboardingReconciler(db, identity_directory, plan_catalog)
    outcome = await reconciler.on_identity_confirmed(event)
    return IdentityEventResponse(outcome=outcome.value)
