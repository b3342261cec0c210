"""
FastAPI dependencies for authentication and service construction.

WHY: Dependencies provide reusable authentication and wiring that can be
injected into route handlers. Tests override the external-service
providers (identity directory, storage provisioner) with fakes.
"""

import hmac
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from wickops.core.auth import IdentityClaims, claims_from_payload, verify_token
from wickops.core.config import settings
from wickops.core.exceptions import AuthenticationError, TokenExpiredError, TokenInvalidError
from wickops.core.plans import DEFAULT_PLAN_CATALOG, PlanCatalog
from wickops.services.identity_directory import IdentityDirectoryClient
from wickops.services.tenant_storage import TenantStorageProvisioner

# HTTP Bearer token security scheme
# auto_error=False so a missing header renders through AuthenticationError
security = HTTPBearer(auto_error=False)


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> IdentityClaims:
    """
    Verify the bearer token and return the caller's identity claims.

    Raises:
        AuthenticationError: Missing, expired or invalid token
    """
    if credentials is None:
        raise AuthenticationError("Missing bearer token")
    try:
        payload = verify_token(credentials.credentials)
        return claims_from_payload(payload)
    except (TokenExpiredError, TokenInvalidError) as e:
        raise AuthenticationError(message=e.message, status_code=e.status_code)


async def verify_identity_hook_secret(
    x_identity_hook_secret: Optional[str] = Header(None, alias="X-Identity-Hook-Secret"),
) -> None:
    """
    Authenticate identity-directory trigger deliveries by shared secret.

    Raises:
        AuthenticationError: If the header is missing or wrong
    """
    if not x_identity_hook_secret or not hmac.compare_digest(
        x_identity_hook_secret.encode("utf-8"), settings.IDENTITY_HOOK_SECRET.encode("utf-8")
    ):
        raise AuthenticationError("Invalid identity hook secret")


_identity_directory: Optional[IdentityDirectoryClient] = None
_provisioner: Optional[TenantStorageProvisioner] = None


def get_identity_directory() -> IdentityDirectoryClient:
    """Process-wide identity directory client (boto3 clients are thread-safe)."""
    global _identity_directory
    if _identity_directory is None:
        _identity_directory = IdentityDirectoryClient()
    return _identity_directory


def get_storage_provisioner() -> TenantStorageProvisioner:
    """Process-wide tenant storage provisioner."""
    global _provisioner
    if _provisioner is None:
        _provisioner = TenantStorageProvisioner()
    return _provisioner


def get_plan_catalog() -> PlanCatalog:
    return DEFAULT_PLAN_CATALOG
