"""
Billing Status Sink.

WHAT: Applies Stripe billing events to organizations and their users, and
fixes stale per-user suspension flags on read.

WHY: Payment status is the only input that entitles an organization to
storage and unsuspended access. Webhooks are delivered at least once and
out of order, so every write is a plain overwrite of the current status
and replays are harmless.

HOW: Events arrive as a validated discriminated union (schemas/billing.py)
and are dispatched by type. Events without an organization id fail closed.
"""

import logging
from typing import Optional

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from wickops.core.config import settings
from wickops.core.exceptions import StripeError, ValidationError
from wickops.core.plans import DEFAULT_PLAN_CATALOG, PlanCatalog
from wickops.dao.organization import OrganizationDAO
from wickops.dao.user import UserDAO
from wickops.models.organization import Organization, PaymentStatus, is_paid
from wickops.models.user import User
from wickops.schemas.billing import (
    BillingEvent,
    CheckoutSessionCompleted,
    InvoicePaid,
    InvoicePaymentFailed,
    SubscriptionDeleted,
)

logger = logging.getLogger(__name__)


def construct_webhook_event(payload: bytes, signature: Optional[str]) -> dict:
    """
    Verify a Stripe webhook signature and decode the event.

    Raises:
        StripeError: Missing secret/signature, bad signature or bad payload
    """
    if not settings.STRIPE_WEBHOOK_SECRET:
        raise StripeError("Stripe webhook secret is not configured")
    if not signature:
        raise StripeError("Missing Stripe-Signature header")
    try:
        event = stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
    except ValueError as e:
        raise StripeError("Invalid webhook payload") from e
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Stripe signature verification failed: {e}")
        raise StripeError("Invalid webhook signature") from e
    return event.to_dict()


class BillingStatusSink:
    """Service writing payment state driven by billing events."""

    def __init__(self, session: AsyncSession, plan_catalog: PlanCatalog = DEFAULT_PLAN_CATALOG):
        self.session = session
        self.plan_catalog = plan_catalog
        self.org_dao = OrganizationDAO(session)
        self.user_dao = UserDAO(session)

    @staticmethod
    def is_paid(payment_status) -> bool:
        return is_paid(payment_status)

    async def handle_event(self, event: BillingEvent) -> bool:
        """
        Apply one billing event.

        Returns:
            True if the organization existed and was updated

        Raises:
            ValidationError: If the event carries no organizationId metadata
        """
        organization_id = event.organization_id
        if not organization_id:
            logger.error(f"Billing event {event.type} missing organizationId", extra={"event_id": event.id})
            raise ValidationError("Billing event missing organizationId", event_type=event.type)

        if isinstance(event, CheckoutSessionCompleted):
            return await self._checkout_completed(organization_id, event)
        if isinstance(event, InvoicePaid):
            return await self._set_status(organization_id, PaymentStatus.PAID, suspended=False)
        if isinstance(event, (InvoicePaymentFailed, SubscriptionDeleted)):
            return await self._set_status(organization_id, PaymentStatus.UNPAID, suspended=True)
        return False

    async def _checkout_completed(self, organization_id: str, event: CheckoutSessionCompleted) -> bool:
        session_object = event.data.object
        plan = self.plan_catalog.get(session_object.plan) or self.plan_catalog.plan_for_price(
            session_object.price_id
        )
        updated = await self.org_dao.update_payment(
            organization_id,
            PaymentStatus.PAID.value,
            stripe_customer_id=session_object.customer,
            plan=plan.key if plan else None,
            seat_limit=plan.max_users if plan else None,
        )
        if not updated:
            return False
        changed = await self.user_dao.set_suspension_for_organization(organization_id, False)
        logger.info(
            f"Organization {organization_id} marked paid",
            extra={"plan": plan.key if plan else None, "users_reactivated": changed},
        )
        return True

    async def _set_status(self, organization_id: str, status: PaymentStatus, suspended: bool) -> bool:
        if not await self.org_dao.update_payment(organization_id, status.value):
            return False
        changed = await self.user_dao.set_suspension_for_organization(organization_id, suspended)
        logger.info(
            f"Organization {organization_id} marked {status.value}",
            extra={"users_changed": changed, "suspended": suspended},
        )
        return True

    async def clear_stale_suspension(self, user: User, organization: Organization) -> bool:
        """
        Clear access_suspended for a user of an entitled organization.

        Returns:
            True if the flag was cleared by this call
        """
        if not user.access_suspended or not organization.is_entitled:
            return False
        cleared = await self.user_dao.clear_suspension(user.id)
        if cleared:
            logger.info(f"Cleared stale suspension for {user.id}")
        return cleared
