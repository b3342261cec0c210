"""
Identity directory event schemas.

WHAT: Payload of the identity-confirmation trigger.

WHY: The trigger is delivered by the identity directory and may be
replayed. Validating it at the boundary (and rejecting unknown fields)
keeps malformed deliveries out of the onboarding reconciler.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IdentityConfirmedEvent(BaseModel):
    """A user confirmed their identity (sign-up or invited first login)."""

    model_config = ConfigDict(extra="forbid")

    event_type: Literal["user.confirmed"] = "user.confirmed"
    identity_id: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=3, max_length=255)
    display_name: Optional[str] = Field(None, max_length=255)
    organization_name: Optional[str] = Field(None, max_length=255)
    user_pool_id: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        value = v.strip().lower()
        if "@" not in value:
            raise ValueError("email must contain '@'")
        return value

    @property
    def display_name_or_email(self) -> str:
        name = (self.display_name or "").strip()
        return name or self.email

    @property
    def organization_name_hint(self) -> Optional[str]:
        """Trimmed organization name; None means a personal organization."""
        name = (self.organization_name or "").strip()
        return name or None


class IdentityEventResponse(BaseModel):
    """Acknowledgement returned to the identity directory."""

    status: str = "ok"
    outcome: str
