"""
Billing event schemas.

WHAT: Typed view of the Stripe webhook events the billing sink acts on.

WHY: A discriminated union on ``type`` lets the sink dispatch on a
validated model instead of poking into nested dicts. Event types outside
the union are acknowledged and ignored (see parse_billing_event).

HOW: Stripe objects carry far more fields than we use; they are ignored
(extra="ignore"). The organization id travels in object metadata, with
subscription_details.metadata as a fallback for invoice events.
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class SubscriptionDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    metadata: Dict[str, Any] = Field(default_factory=dict)


class BillingObject(BaseModel):
    """The ``data.object`` of a billing event (checkout session, invoice or subscription)."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    customer: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    subscription_details: Optional[SubscriptionDetails] = None

    def _metadata_value(self, key: str) -> Optional[str]:
        value = self.metadata.get(key)
        if not value and self.subscription_details is not None:
            value = self.subscription_details.metadata.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @property
    def organization_id(self) -> Optional[str]:
        return self._metadata_value("organizationId")

    @property
    def plan(self) -> Optional[str]:
        return self._metadata_value("plan")

    @property
    def price_id(self) -> Optional[str]:
        return self._metadata_value("priceId")


class BillingEventData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: BillingObject


class _BillingEventBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    data: BillingEventData

    @property
    def organization_id(self) -> Optional[str]:
        return self.data.object.organization_id


class CheckoutSessionCompleted(_BillingEventBase):
    type: Literal["checkout.session.completed"]


class InvoicePaid(_BillingEventBase):
    type: Literal["invoice.paid"]


class InvoicePaymentFailed(_BillingEventBase):
    type: Literal["invoice.payment_failed"]


class SubscriptionDeleted(_BillingEventBase):
    type: Literal["customer.subscription.deleted"]


BillingEvent = Annotated[
    Union[CheckoutSessionCompleted, InvoicePaid, InvoicePaymentFailed, SubscriptionDeleted],
    Field(discriminator="type"),
]

HANDLED_EVENT_TYPES = frozenset(
    {
        "checkout.session.completed",
        "invoice.paid",
        "invoice.payment_failed",
        "customer.subscription.deleted",
    }
)

_billing_event_adapter = TypeAdapter(BillingEvent)


def parse_billing_event(payload: Dict[str, Any]) -> Optional[BillingEvent]:
    """
    Validate a raw event payload.

    Returns:
        The typed event, or None for event types the sink does not handle

    Raises:
        pydantic.ValidationError: If a handled event type is malformed
    """
    if payload.get("type") not in HANDLED_EVENT_TYPES:
        return None
    return _billing_event_adapter.validate_python(payload)


class WebhookResponse(BaseModel):
    """Response to a Stripe webhook delivery."""

    received: bool = True
    handled: bool = False
    event_type: Optional[str] = None
