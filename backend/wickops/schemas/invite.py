"""
Invite schemas for API request/response validation.

Requests are deliberately lenient: blank emails and unknown roles are
dropped by InviteService rather than failing the whole batch.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class InviteEntry(BaseModel):
    """One address to invite."""

    email: str = Field("", max_length=255)
    role: Optional[str] = None


class InviteRequest(BaseModel):
    """Batch of invites sent by an organization admin."""

    invites: List[InviteEntry] = Field(default_factory=list, max_length=100)


class InvitedAddress(BaseModel):
    email: str
    role: str


class InviteFailure(BaseModel):
    email: str
    error: str


class InviteResponse(BaseModel):
    """Per-address outcome of an invite batch."""

    model_config = ConfigDict(populate_by_name=True)

    invited_count: int = Field(..., serialization_alias="invitedCount")
    invited: List[InvitedAddress] = Field(default_factory=list)
    failed: List[InviteFailure] = Field(default_factory=list)


class InviteRevokeResponse(BaseModel):
    email: str
    revoked: bool
