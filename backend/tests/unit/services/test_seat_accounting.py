"""
Tests for SeatAccountingService.

WHY: Seat math decides whether invites may be sent. The live count
(users + pending invites) is authoritative; the cached seats_used is only
a fallback.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from wickops.dao.organization import OrganizationDAO
from wickops.services.seat_accounting import SeatAccountingService, SeatUsage

from tests.factories import InviteFactory, OrganizationFactory, UserFactory


class TestCanSendInvites:
    """Limit 5 with 3 users and 1 pending invite leaves one seat."""

    def test_one_more_allowed(self):
        org = SimpleNamespace(seat_limit=5)
        assert SeatAccountingService.can_send_invites(org, pending_count=1, requested_count=1, user_count=3)

    def test_two_more_rejected(self):
        org = SimpleNamespace(seat_limit=5)
        assert not SeatAccountingService.can_send_invites(
            org, pending_count=1, requested_count=2, user_count=3
        )

    def test_over_limit_never_negative(self):
        org = SimpleNamespace(seat_limit=1)
        assert not SeatAccountingService.can_send_invites(org, pending_count=2, requested_count=1, user_count=3)
        assert SeatAccountingService.can_send_invites(org, pending_count=2, requested_count=0, user_count=3)


class TestSeatUsage:
    def test_remaining_is_clamped(self):
        assert SeatUsage(seat_limit=1, seats_used=3).seats_remaining == 0
        assert SeatUsage(seat_limit=5, seats_used=3).seats_remaining == 2


class TestLiveCount:
    @pytest.mark.asyncio
    async def test_compute_counts_users_and_pending_invites(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session, seat_limit=5)
        for _ in range(3):
            await UserFactory.create(db_session, org)
        await InviteFactory.create(db_session, org, email="pending@example.com")
        await InviteFactory.create(db_session, org, email="done@example.com", status="ACCEPTED")
        service = SeatAccountingService(db_session)

        assert await service.compute_seats_used(org.id) == 4
        usage = await service.seats_remaining(org)
        assert usage.live is True
        assert usage.seats_remaining == 1

    @pytest.mark.asyncio
    async def test_falls_back_to_cache_on_database_error(
        self, db_session: AsyncSession, monkeypatch
    ):
        org = await OrganizationFactory.create(db_session, seat_limit=5, seats_used=2)
        service = SeatAccountingService(db_session)

        async def broken(_organization_id):
            raise OperationalError("SELECT count(*)", {}, Exception("connection lost"))

        monkeypatch.setattr(service, "compute_seats_used", broken)

        usage = await service.seats_remaining(org)

        assert usage.live is False
        assert usage.seats_used == 2
        assert usage.seats_remaining == 3

    @pytest.mark.asyncio
    async def test_failed_count_leaves_session_usable(self, db_session: AsyncSession, monkeypatch):
        """
        WHY: On PostgreSQL a failed statement aborts the whole transaction.
        The live count must fail inside a savepoint so the status check can
        still write afterwards.
        """
        org = await OrganizationFactory.create(db_session, seat_limit=5, seats_used=2)
        service = SeatAccountingService(db_session)
        nested = []

        async def broken(_organization_id):
            nested.append(db_session.in_nested_transaction())
            raise OperationalError("SELECT count(*)", {}, Exception("connection lost"))

        monkeypatch.setattr(service, "compute_seats_used", broken)

        usage = await service.seats_remaining(org)

        assert nested == [True]
        assert usage.live is False
        assert db_session.in_nested_transaction() is False
        assert await OrganizationDAO(db_session).set_seats_used(org.id, 3) is True
        assert (await OrganizationDAO(db_session).get_by_id(org.id)).seats_used == 3


class TestCache:
    @pytest.mark.asyncio
    async def test_refresh_writes_live_count(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session, seats_used=7)
        await UserFactory.create(db_session, org)
        service = SeatAccountingService(db_session)

        assert await service.refresh_cache(org) == 1
        assert (await OrganizationDAO(db_session).get_by_id(org.id)).seats_used == 1

    @pytest.mark.asyncio
    async def test_refresh_skips_cached_snapshot(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session, seats_used=7)
        service = SeatAccountingService(db_session)

        used = await service.refresh_cache(org, SeatUsage(seat_limit=5, seats_used=7, live=False))

        assert used == 7
        assert (await OrganizationDAO(db_session).get_by_id(org.id)).seats_used == 7

    @pytest.mark.asyncio
    async def test_increment_cached(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session, seats_used=1)
        service = SeatAccountingService(db_session)

        await service.increment_cached(org.id)

        assert (await OrganizationDAO(db_session).get_by_id(org.id)).seats_used == 2
