"""
Integration tests for the identity confirmation trigger.

WHY: The trigger is retried upstream. Deliveries must be authenticated,
validated strictly and idempotent.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from wickops.dao.user import UserDAO

from tests.factories import TEST_USER_POOL_ID, InviteFactory, OrganizationFactory, hook_headers

CONFIRMED_URL = "/api/identity/events/confirmed"


def confirmed_event(**overrides) -> dict:
    event = {
        "identity_id": "identity-abc",
        "email": "Alice@Example.com",
        "display_name": "Alice",
        "organization_name": "Acme",
        "user_pool_id": TEST_USER_POOL_ID,
    }
    event.update(overrides)
    return event


class TestIdentityConfirmed:
    @pytest.mark.asyncio
    async def test_creates_organization(self, client: AsyncClient, db_session: AsyncSession, cognito_stub):
        response = await client.post(CONFIRMED_URL, json=confirmed_event(), headers=hook_headers())

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "outcome": "created_organization"}
        user = await UserDAO(db_session).get_by_id("identity-abc")
        assert user.email == "alice@example.com"
        assert user.role == "ADMIN"
        cognito_stub.admin_add_user_to_group.assert_called_once()

    @pytest.mark.asyncio
    async def test_replay(self, client: AsyncClient, cognito_stub):
        first = await client.post(CONFIRMED_URL, json=confirmed_event(), headers=hook_headers())
        second = await client.post(CONFIRMED_URL, json=confirmed_event(), headers=hook_headers())

        assert first.json()["outcome"] == "created_organization"
        assert second.json()["outcome"] == "replay"
        assert cognito_stub.admin_add_user_to_group.call_count == 1

    @pytest.mark.asyncio
    async def test_joins_invited_organization(self, client: AsyncClient, db_session: AsyncSession, cognito_stub):
        org = await OrganizationFactory.create(db_session, name="Invited Org")
        await InviteFactory.create(db_session, org, email="alice@example.com", role="EDITOR")

        response = await client.post(CONFIRMED_URL, json=confirmed_event(), headers=hook_headers())

        assert response.json()["outcome"] == "joined_invite"
        user = await UserDAO(db_session).get_by_id("identity-abc")
        assert user.organization_id == org.id
        assert user.role == "EDITOR"
        cognito_stub.admin_add_user_to_group.assert_not_called()

    @pytest.mark.asyncio
    async def test_bad_secret(self, client: AsyncClient):
        response = await client.post(
            CONFIRMED_URL, json=confirmed_event(), headers={"X-Identity-Hook-Secret": "wrong"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_secret(self, client: AsyncClient):
        response = await client.post(CONFIRMED_URL, json=confirmed_event())

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, client: AsyncClient):
        response = await client.post(
            CONFIRMED_URL, json=confirmed_event(role="ADMIN"), headers=hook_headers()
        )

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_invalid_email_rejected(self, client: AsyncClient):
        response = await client.post(
            CONFIRMED_URL, json=confirmed_event(email="not-an-email"), headers=hook_headers()
        )

        assert response.status_code == 400
