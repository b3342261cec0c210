"""
Tenant Storage Provisioner.

WHAT: Lazily creates the per-organization inventory tables (columns and
items) the first time a paid organization is served.

WHY: Table creation is asynchronous on the backend; a table reports
CREATING for a while before it becomes ACTIVE. Two concurrent status
checks may both try to create it. Neither case is a failure:
- "already exists / being created" counts as success
- polling is bounded by one budget per call; if a table is still not
  ready the caller gets ProvisioningPending and retries after the
  suggested delay

HOW: Table names are derived from a salted hash of the organization id so
no user-controlled text reaches the backend. The DynamoDB backend wraps
boto3, running each blocking call in a worker thread.
"""

import asyncio
import enum
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Protocol

import boto3
from botocore.exceptions import ClientError

from wickops.core.config import Settings, settings
from wickops.core.exceptions import ProvisioningPending, TenantStorageError

logger = logging.getLogger(__name__)


# ============================================================================
# Resource naming
# ============================================================================


class ResourceState(str, enum.Enum):
    """Lifecycle of a storage table as reported by the backend."""

    MISSING = "MISSING"
    CREATING = "CREATING"
    ACTIVE = "ACTIVE"
    UPDATING = "UPDATING"
    DELETING = "DELETING"

    @property
    def is_usable(self) -> bool:
        return self in (ResourceState.ACTIVE, ResourceState.UPDATING)


@dataclass(frozen=True)
class TableLayout:
    """Secondary index layout of one tenant table."""

    suffix: str
    index_name: str
    sort_key: str


COLUMNS_LAYOUT = TableLayout(suffix="columns", index_name="ByModuleSortOrder", sort_key="sortOrder")
ITEMS_LAYOUT = TableLayout(suffix="items", index_name="ByModulePosition", sort_key="position")


@dataclass(frozen=True)
class TenantStorageNames:
    """Deterministic table names of one organization."""

    columns: str
    items: str


def _name_digest(organization_id: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}:{organization_id}".encode("utf-8")).hexdigest()[:24]


def resource_names(organization_id: str, config: Settings = settings) -> TenantStorageNames:
    """
    Derive the storage table names for an organization.

    Same input always yields the same names; the organization id itself
    never appears in them.
    """
    digest = _name_digest(organization_id, config.TENANT_STORAGE_SALT)
    prefix = config.TENANT_STORAGE_PREFIX
    return TenantStorageNames(
        columns=f"{prefix}-{digest}-{COLUMNS_LAYOUT.suffix}",
        items=f"{prefix}-{digest}-{ITEMS_LAYOUT.suffix}",
    )


# ============================================================================
# Backends
# ============================================================================


class TenantStorageBackend(Protocol):
    """Storage backend used by the provisioner."""

    async def describe(self, name: str) -> ResourceState:
        ...

    async def create(self, name: str, layout: TableLayout) -> None:
        """Start creating a table; must tolerate the table already existing."""
        ...


class DynamoDBStorageBackend:
    """
    DynamoDB tables via boto3.

    ResourceNotFoundException on describe means MISSING;
    ResourceInUseException on create means someone else already started it.
    """

    def __init__(self, client: Any = None):
        self.client = client or boto3.client(
            "dynamodb",
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION,
            endpoint_url=settings.DYNAMODB_ENDPOINT_URL,
        )

    async def describe(self, name: str) -> ResourceState:
        try:
            response = await asyncio.to_thread(self.client.describe_table, TableName=name)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code == "ResourceNotFoundException":
                return ResourceState.MISSING
            raise TenantStorageError(f"Failed to describe {name}", error_code=code) from e

        status = response.get("Table", {}).get("TableStatus", "")
        try:
            return ResourceState(status)
        except ValueError:
            # ARCHIVING/INACCESSIBLE_ENCRYPTION_CREDENTIALS and friends: not ready
            logger.warning(f"Table {name} in unexpected state {status}")
            return ResourceState.CREATING

    async def create(self, name: str, layout: TableLayout) -> None:
        try:
            await asyncio.to_thread(
                self.client.create_table,
                TableName=name,
                BillingMode="PAY_PER_REQUEST",
                AttributeDefinitions=[
                    {"AttributeName": "id", "AttributeType": "S"},
                    {"AttributeName": "module", "AttributeType": "S"},
                    {"AttributeName": layout.sort_key, "AttributeType": "N"},
                ],
                KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
                GlobalSecondaryIndexes=[
                    {
                        "IndexName": layout.index_name,
                        "KeySchema": [
                            {"AttributeName": "module", "KeyType": "HASH"},
                            {"AttributeName": layout.sort_key, "KeyType": "RANGE"},
                        ],
                        "Projection": {"ProjectionType": "ALL"},
                    }
                ],
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code == "ResourceInUseException":
                logger.info(f"Table {name} already being created")
                return
            raise TenantStorageError(f"Failed to create {name}", error_code=code) from e
        logger.info(f"Started creating table {name}")


# ============================================================================
# Provisioner
# ============================================================================


class TenantStorageProvisioner:
    """
    Ensures both tenant tables exist and are usable.

    Args:
        backend: Storage backend (DynamoDB in production, a fake in tests)
        config: Settings supplying naming and poll budget
        sleep: Awaitable sleep, injectable for tests
    """

    def __init__(
        self,
        backend: Optional[TenantStorageBackend] = None,
        config: Settings = settings,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.backend = backend or DynamoDBStorageBackend()
        self.config = config
        self.sleep = sleep

    def resource_names(self, organization_id: str) -> TenantStorageNames:
        return resource_names(organization_id, self.config)

    async def ensure_provisioned(self, organization_id: str) -> TenantStorageNames:
        """
        Create missing tables and wait until both are usable.

        Both tables share one poll budget, so a call never waits longer than
        PROVISION_POLL_ATTEMPTS sleeps however many tables are still coming up.

        Raises:
            ProvisioningPending: A table is still not usable after the poll budget
            TenantStorageError: The backend failed for any other reason
        """
        names = self.resource_names(organization_id)
        waiting = []
        for name, layout in ((names.columns, COLUMNS_LAYOUT), (names.items, ITEMS_LAYOUT)):
            if not await self._start_table(name, layout):
                waiting.append(name)
        if waiting:
            await self._wait_until_usable(waiting)
        return names

    async def _start_table(self, name: str, layout: TableLayout) -> bool:
        """Request creation of a missing table; True if it is already usable."""
        state = await self.backend.describe(name)
        if state.is_usable:
            return True
        if state == ResourceState.MISSING:
            await self.backend.create(name, layout)
        return False

    async def _wait_until_usable(self, names: List[str]) -> None:
        waiting = list(names)
        delay = self.config.PROVISION_POLL_BASE_SECONDS
        for attempt in range(1, self.config.PROVISION_POLL_ATTEMPTS + 1):
            await self.sleep(delay)
            still_waiting = []
            for name in waiting:
                state = await self.backend.describe(name)
                if state.is_usable:
                    logger.info(f"Table {name} usable after {attempt} poll(s)")
                    continue
                if state == ResourceState.MISSING:
                    logger.debug(f"Table {name} not visible yet (poll {attempt})")
                still_waiting.append(name)
            waiting = still_waiting
            if not waiting:
                return
            delay = min(delay * 2, self.config.PROVISION_POLL_MAX_SECONDS)

        logger.info(
            f"Tables still provisioning after {self.config.PROVISION_POLL_ATTEMPTS} polls",
            extra={"resource_names": waiting},
        )
        raise ProvisioningPending(
            retry_after=self.config.PROVISION_RETRY_AFTER_SECONDS,
            resource_name=waiting[0],
        )
