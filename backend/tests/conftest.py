"""
Shared fixtures.

The tenant store runs on in-memory SQLite (one fresh schema per test).
AWS never gets called: the Cognito client is a MagicMock behind the real
IdentityDirectoryClient, and DynamoDB is replaced by FakeStorageBackend.
"""

from typing import AsyncGenerator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from wickops.core.deps import get_identity_directory, get_storage_provisioner
from wickops.db.session import get_db
from wickops.main import app
from wickops.models import Base
from wickops.services.identity_directory import IdentityDirectoryClient
from wickops.services.tenant_storage import TenantStorageProvisioner

from tests.factories import TEST_USER_POOL_ID
from tests.fakes import FakeStorageBackend, no_sleep

# StaticPool: every connection sees the same in-memory database
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Tenant store
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(TEST_ASYNC_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Session shared by factories, services and (through get_db) the API.

    Services never commit except where production does, so assertions read
    through the same session the code under test wrote with.
    """
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# External services
# ---------------------------------------------------------------------------


@pytest.fixture
def cognito_stub() -> MagicMock:
    """boto3 cognito-idp client; configure side_effect to simulate ClientErrors."""
    return MagicMock(name="cognito-idp")


@pytest.fixture
def identity_directory(cognito_stub) -> IdentityDirectoryClient:
    return IdentityDirectoryClient(user_pool_id=TEST_USER_POOL_ID, client=cognito_stub)


@pytest.fixture
def storage_backend() -> FakeStorageBackend:
    return FakeStorageBackend()


@pytest.fixture
def provisioner(storage_backend) -> TenantStorageProvisioner:
    return TenantStorageProvisioner(backend=storage_backend, sleep=no_sleep)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    identity_directory: IdentityDirectoryClient,
    provisioner: TenantStorageProvisioner,
) -> AsyncGenerator[AsyncClient, None]:
    """In-process client against the real app with store and AWS overridden."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_directory] = lambda: identity_directory
    app.dependency_overrides[get_storage_provisioner] = lambda: provisioner

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
