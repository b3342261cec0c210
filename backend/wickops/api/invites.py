"""
Invite API endpoints.

WHAT:
1. POST /invites - invite a batch of addresses
2. DELETE /invites/{email} - revoke a pending invite

SECURITY (OWASP A01): Only organization admins (and legacy owner roles)
may invite or revoke; the organization is always the requester's own.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wickops.core.auth import IdentityClaims
from wickops.core.deps import get_current_identity, get_identity_directory
from wickops.db.session import get_db
from wickops.schemas.invite import (
    InviteFailure,
    InviteRequest,
    InviteResponse,
    InviteRevokeResponse,
    InvitedAddress,
)
from wickops.services.identity_directory import IdentityDirectoryClient
from wickops.services.invite_service import InviteService

router = APIRouter(prefix="/invites", tags=["Invites"])


@router.post("", response_model=InviteResponse, summary="Send invites")
async def send_invites(
    request: InviteRequest,
    claims: IdentityClaims = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    identity_directory: IdentityDirectoryClient = Depends(get_identity_directory),
) -> InviteResponse:
    """
    Invite addresses into the caller's organization.

    The whole batch is rejected with 422 when it exceeds the remaining
    seats; otherwise each address succeeds or fails on its own.
    """
    service = InviteService(db, identity_directory)
    result = await service.send_invites(
        claims.sub,
        [(entry.email, entry.role) for entry in request.invites],
        user_pool_id=claims.user_pool_id,
    )
    return InviteResponse(
        invited_count=result.invited_count,
        invited=[InvitedAddress(email=email, role=role) for email, role in result.invited],
        failed=[InviteFailure(email=email, error=error) for email, error in result.failed],
    )


@router.delete("/{email}", response_model=InviteRevokeResponse, summary="Revoke an invite")
async def revoke_invite(
    email: str,
    claims: IdentityClaims = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    identity_directory: IdentityDirectoryClient = Depends(get_identity_directory),
) -> InviteRevokeResponse:
    service = InviteService(db, identity_directory)
    revoked = await service.revoke_invite(claims.sub, email)
    return InviteRevokeResponse(email=revoked, revoked=True)
