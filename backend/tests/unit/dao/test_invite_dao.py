"""
Tests for InviteDAO.

WHY: The invite row is the single serialization point between the
identity trigger and status checks. These tests pin down:
1. Two-tier lookup (direct key, then bounded scan for legacy rows)
2. The PENDING -> ACCEPTED guard
3. Revocation and re-invite rules
4. Expired invites being invisible, seatless and re-issuable
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from wickops.dao.invite import InviteDAO
from wickops.models.invite import InviteStatus

from tests.factories import InviteFactory, OrganizationFactory


class TestPendingLookup:
    """Test two-tier pending invite lookup."""

    @pytest.mark.asyncio
    async def test_direct_lookup_normalizes_email(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        await InviteFactory.create(db_session, org, email="bob@example.com")
        dao = InviteDAO(db_session)

        invite = await dao.get_pending("  Bob@Example.COM ")

        assert invite is not None
        assert invite.id == "bob@example.com"

    @pytest.mark.asyncio
    async def test_accepted_invite_is_not_pending(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        await InviteFactory.create(
            db_session, org, email="bob@example.com", status=InviteStatus.ACCEPTED.value
        )
        dao = InviteDAO(db_session)

        assert await dao.get_pending("bob@example.com") is None
        assert await dao.find_pending_candidates("bob@example.com") == []

    @pytest.mark.asyncio
    async def test_scan_finds_legacy_row(self, db_session: AsyncSession):
        """
        WHY: Legacy rows were keyed by the raw email (mixed case, padding)
        and are only reachable by scanning.
        """
        org = await OrganizationFactory.create(db_session)
        await InviteFactory.create(
            db_session, org, id=" Carol@Example.com", email=" Carol@Example.com"
        )
        dao = InviteDAO(db_session)

        assert await dao.get_pending("carol@example.com") is None
        candidates = await dao.find_pending_candidates("carol@example.com")

        assert [c.id for c in candidates] == [" Carol@Example.com"]

    @pytest.mark.asyncio
    async def test_candidates_deduplicated_direct_first(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        other = await OrganizationFactory.create(db_session, name="Other")
        await InviteFactory.create(db_session, other, id="DAVE@example.com", email="DAVE@example.com")
        await InviteFactory.create(db_session, org, email="dave@example.com")
        dao = InviteDAO(db_session)

        candidates = await dao.find_pending_candidates("dave@example.com")

        assert [c.id for c in candidates] == ["dave@example.com", "DAVE@example.com"]

    @pytest.mark.asyncio
    async def test_scan_is_bounded(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        for i in range(3):
            await InviteFactory.create(db_session, org, id=f"legacy-{i}", email="erin@example.com")
        dao = InviteDAO(db_session, scan_limit=2)

        assert len(await dao.scan_pending_by_email("erin@example.com")) == 2

    @pytest.mark.asyncio
    async def test_blank_email_has_no_candidates(self, db_session: AsyncSession):
        dao = InviteDAO(db_session)
        assert await dao.find_pending_candidates("   ") == []


class TestAccept:
    """Test the PENDING -> ACCEPTED guard."""

    @pytest.mark.asyncio
    async def test_accept_once(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        invite = await InviteFactory.create(db_session, org, email="bob@example.com")
        dao = InviteDAO(db_session)

        assert await dao.accept(invite.id, "user-1") is True
        assert await dao.accept(invite.id, "user-1") is False

        stored = await dao.get_by_id(invite.id)
        assert stored.status == InviteStatus.ACCEPTED.value
        assert stored.accepted_user_id == "user-1"
        assert stored.accepted_at is not None

    @pytest.mark.asyncio
    async def test_second_user_cannot_take_accepted_invite(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        invite = await InviteFactory.create(db_session, org, email="bob@example.com")
        dao = InviteDAO(db_session)

        await dao.accept(invite.id, "user-1")

        assert await dao.accept(invite.id, "user-2") is False
        assert (await dao.get_by_id(invite.id)).accepted_user_id == "user-1"

    @pytest.mark.asyncio
    async def test_revoked_invite_cannot_be_accepted(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        invite = await InviteFactory.create(db_session, org, email="bob@example.com")
        dao = InviteDAO(db_session)

        assert await dao.revoke(invite.id, org.id) is True
        assert await dao.accept(invite.id, "user-1") is False
        assert (await dao.get_by_id(invite.id)).status == InviteStatus.REVOKED.value


class TestRevoke:
    @pytest.mark.asyncio
    async def test_revoke_requires_same_organization(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        other = await OrganizationFactory.create(db_session, name="Other")
        invite = await InviteFactory.create(db_session, org, email="bob@example.com")
        dao = InviteDAO(db_session)

        assert await dao.revoke(invite.id, other.id) is False
        assert (await dao.get_by_id(invite.id)).is_pending


class TestCreateOrRefresh:
    """Test invite writes from invite-send."""

    @pytest.mark.asyncio
    async def test_creates_pending_invite(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        dao = InviteDAO(db_session)

        written = await dao.create_or_refresh_pending(
            email="New@Example.com", organization_id=org.id, role="EDITOR", invited_by="admin-1"
        )

        assert written is True
        invite = await dao.get_pending("new@example.com")
        assert invite.role == "EDITOR"
        assert invite.invited_by == "admin-1"
        assert invite.expires_at > invite.created_at

    @pytest.mark.asyncio
    async def test_refreshes_pending_invite_of_same_org(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        await InviteFactory.create(db_session, org, email="bob@example.com", role="VIEWER")
        dao = InviteDAO(db_session)

        written = await dao.create_or_refresh_pending(
            email="bob@example.com", organization_id=org.id, role="ADMIN", invited_by="admin-1"
        )

        assert written is True
        assert (await dao.get_by_id("bob@example.com")).role == "ADMIN"

    @pytest.mark.asyncio
    async def test_does_not_steal_other_org_invite(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        other = await OrganizationFactory.create(db_session, name="Other")
        await InviteFactory.create(db_session, other, email="bob@example.com", role="VIEWER")
        dao = InviteDAO(db_session)

        written = await dao.create_or_refresh_pending(
            email="bob@example.com", organization_id=org.id, role="ADMIN", invited_by="admin-1"
        )

        assert written is False
        invite = await dao.get_by_id("bob@example.com")
        assert invite.organization_id == other.id
        assert invite.role == "VIEWER"

    @pytest.mark.asyncio
    async def test_count_pending_by_organization(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        await InviteFactory.create(db_session, org, email="a@example.com")
        await InviteFactory.create(db_session, org, email="b@example.com")
        await InviteFactory.create(
            db_session, org, email="c@example.com", status=InviteStatus.ACCEPTED.value
        )
        dao = InviteDAO(db_session)

        assert await dao.count_pending_by_organization(org.id) == 2

    @pytest.mark.asyncio
    async def test_pending_ids_in_organization(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        other = await OrganizationFactory.create(db_session, name="Other")
        await InviteFactory.create(db_session, org, email="a@example.com")
        await InviteFactory.create(db_session, other, email="b@example.com")
        await InviteFactory.create_expired(db_session, org, email="c@example.com")
        dao = InviteDAO(db_session)

        ids = await dao.pending_ids_in_organization(
            org.id, ["a@example.com", "b@example.com", "c@example.com", "d@example.com"]
        )

        assert ids == {"a@example.com"}


class TestExpiry:
    """Test that an expired PENDING invite stops counting as an invite."""

    @pytest.mark.asyncio
    async def test_expired_invite_is_not_found(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        await InviteFactory.create_expired(db_session, org, email="bob@example.com")
        await InviteFactory.create_expired(
            db_session, org, id=" Bob@Example.com", email=" Bob@Example.com"
        )
        dao = InviteDAO(db_session)

        assert await dao.get_pending("bob@example.com") is None
        assert await dao.find_pending_candidates("bob@example.com") == []

    @pytest.mark.asyncio
    async def test_invite_without_expiry_never_lapses(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        await InviteFactory.create(db_session, org, email="bob@example.com")
        dao = InviteDAO(db_session)
        await dao.conditional_update("bob@example.com", expires_at=None)

        assert (await dao.get_pending("bob@example.com")) is not None
        assert await dao.count_pending_by_organization(org.id) == 1

    @pytest.mark.asyncio
    async def test_expired_invite_holds_no_seat(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        await InviteFactory.create(db_session, org, email="a@example.com")
        await InviteFactory.create_expired(db_session, org, email="b@example.com")
        dao = InviteDAO(db_session)

        assert await dao.count_pending_by_organization(org.id) == 1

    @pytest.mark.asyncio
    async def test_expired_invite_cannot_be_accepted(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        invite = await InviteFactory.create_expired(db_session, org, email="bob@example.com")
        dao = InviteDAO(db_session)

        assert await dao.accept(invite.id, "user-1") is False
        stored = await dao.get_by_id(invite.id)
        assert stored.status == InviteStatus.PENDING.value
        assert stored.accepted_user_id is None

    @pytest.mark.asyncio
    async def test_expired_invite_can_still_be_revoked(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)
        invite = await InviteFactory.create_expired(db_session, org, email="bob@example.com")
        dao = InviteDAO(db_session)

        assert await dao.revoke(invite.id, org.id) is True

    @pytest.mark.asyncio
    async def test_reinvite_takes_over_expired_invite_of_other_org(self, db_session: AsyncSession):
        """
        WHY: An invite nobody accepted in time must not lock the address
        out of every other organization forever.
        """
        org = await OrganizationFactory.create(db_session)
        other = await OrganizationFactory.create(db_session, name="Other")
        await InviteFactory.create_expired(db_session, other, email="bob@example.com", role="VIEWER")
        dao = InviteDAO(db_session)

        written = await dao.create_or_refresh_pending(
            email="bob@example.com", organization_id=org.id, role="ADMIN", invited_by="admin-1"
        )

        assert written is True
        invite = await dao.get_pending("bob@example.com")
        assert invite.organization_id == org.id
        assert invite.role == "ADMIN"
        assert invite.is_expired is False
