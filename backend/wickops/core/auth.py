"""
Bearer token verification.

WHY: Tokens are issued by the identity directory; this service only
verifies them and extracts the identity claims it needs:
1. sub - the stable identity id (User primary key)
2. email - used to reconcile pending invites
3. iss - the issuer URL, whose last path segment is the user pool id
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError

from wickops.core.config import settings
from wickops.core.exceptions import TokenExpiredError, TokenInvalidError


@dataclass(frozen=True)
class IdentityClaims:
    """Verified claims of the caller."""

    sub: str
    email: Optional[str] = None
    issuer: Optional[str] = None

    @property
    def user_pool_id(self) -> Optional[str]:
        if not self.issuer:
            return None
        return self.issuer.rstrip("/").split("/")[-1] or None


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a bearer token.

    Raises:
        TokenExpiredError: If token has expired
        TokenInvalidError: If token is malformed or signature invalid
    """
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError as e:
        raise TokenInvalidError(error=str(e))


def claims_from_payload(payload: Dict[str, Any]) -> IdentityClaims:
    """
    Build IdentityClaims from a decoded token.

    Raises:
        TokenInvalidError: If the token has no subject
    """
    sub = str(payload.get("sub") or "").strip()
    if not sub:
        raise TokenInvalidError("Invalid token: missing sub")
    email = payload.get("email")
    return IdentityClaims(
        sub=sub,
        email=str(email).strip().lower() if email else None,
        issuer=payload.get("iss"),
    )


def create_access_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a token with the configured secret.

    Only used for local development and tests; production tokens come
    from the identity directory.
    """
    now = datetime.now(timezone.utc)
    to_encode = dict(claims)
    to_encode.update(
        {
            "exp": now + (expires_delta or timedelta(hours=1)),
            "iat": now,
        }
    )
    if settings.JWT_AUDIENCE and "aud" not in to_encode:
        to_encode["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
