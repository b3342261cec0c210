"""
Subscription status schemas.

WHAT: Response of the status endpoint, serialized in camelCase.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionStatusResponse(BaseModel):
    """
    Status of the authenticated user and their organization.

    Field names are snake_case in Python and camelCase on the wire.
    """

    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field(..., serialization_alias="displayName")
    organization_id: str = Field(..., serialization_alias="organizationId")
    org_name: str = Field(..., serialization_alias="orgName")
    subscribed: bool
    access_suspended: bool = Field(..., serialization_alias="accessSuspended")
    plan: Optional[str] = None
    seat_limit: int = Field(..., serialization_alias="seatLimit")
    seats_used: int = Field(..., serialization_alias="seatsUsed")
    payment_status: str = Field(..., serialization_alias="paymentStatus")
    role: str
    can_invite_users: bool = Field(..., serialization_alias="canInviteUsers")
