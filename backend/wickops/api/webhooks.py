"""
Billing webhook endpoint.

WHAT: POST /webhooks/stripe - applies Stripe billing events.

WHY: Webhooks are the source of truth for payment status. Signature
verification happens before anything is parsed (OWASP A02). Event types
we do not act on are acknowledged with 200 so Stripe stops retrying.
Store errors propagate as 5xx so Stripe retries the delivery.
"""

import logging
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from wickops.core.deps import get_plan_catalog
from wickops.core.exceptions import ValidationError
from wickops.core.plans import PlanCatalog
from wickops.db.session import get_db
from wickops.schemas.billing import WebhookResponse, parse_billing_event
from wickops.services.billing_service import BillingStatusSink, construct_webhook_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/stripe", response_model=WebhookResponse, summary="Stripe billing webhook")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    plan_catalog: PlanCatalog = Depends(get_plan_catalog),
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
) -> WebhookResponse:
    payload = await request.body()
    raw_event = construct_webhook_event(payload, stripe_signature)
    event_type = raw_event.get("type")

    try:
        event = parse_billing_event(raw_event)
    except pydantic.ValidationError as e:
        logger.warning(f"Malformed billing event {event_type}: {e}")
        raise ValidationError("Malformed billing event", event_type=event_type)

    if event is None:
        logger.info(f"Ignoring billing event type {event_type}", extra={"event_id": raw_event.get("id")})
        return WebhookResponse(handled=False, event_type=event_type)

    logger.info(
        f"Processing billing event: {event_type}",
        extra={"event_id": event.id, "organization_id": event.organization_id},
    )
    sink = BillingStatusSink(db, plan_catalog)
    handled = await sink.handle_event(event)
    return WebhookResponse(handled=handled, event_type=event_type)
