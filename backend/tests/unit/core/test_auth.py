"""
Tests for bearer token verification.

WHY: Every authenticated endpoint trusts sub/email/iss from these helpers.
"""

from datetime import timedelta

import pytest

from wickops.core.auth import (
    IdentityClaims,
    claims_from_payload,
    create_access_token,
    verify_token,
)
from wickops.core.exceptions import TokenExpiredError, TokenInvalidError


class TestVerifyToken:
    def test_round_trip(self):
        token = create_access_token({"sub": "identity-1", "email": "Alice@Example.com"})
        payload = verify_token(token)
        assert payload["sub"] == "identity-1"

    def test_expired(self):
        token = create_access_token({"sub": "identity-1"}, expires_delta=timedelta(seconds=-10))
        with pytest.raises(TokenExpiredError):
            verify_token(token)

    def test_garbage(self):
        with pytest.raises(TokenInvalidError):
            verify_token("not-a-token")

    def test_wrong_secret(self, monkeypatch):
        token = create_access_token({"sub": "identity-1"})
        monkeypatch.setattr("wickops.core.auth.settings.JWT_SECRET", "another-secret")
        with pytest.raises(TokenInvalidError):
            verify_token(token)


class TestClaims:
    def test_claims_normalize_email(self):
        claims = claims_from_payload(
            {
                "sub": "identity-1",
                "email": " Alice@Example.com ",
                "iss": "https://cognito-idp.us-east-2.amazonaws.com/us-east-2_Pool",
            }
        )
        assert claims.sub == "identity-1"
        assert claims.email == "alice@example.com"
        assert claims.user_pool_id == "us-east-2_Pool"

    def test_missing_sub(self):
        with pytest.raises(TokenInvalidError):
            claims_from_payload({"email": "alice@example.com"})

    def test_no_issuer(self):
        assert IdentityClaims(sub="identity-1").user_pool_id is None
