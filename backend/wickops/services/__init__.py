"""
Service layer.

WHY: Services hold the business rules; they coordinate DAOs and external
clients and are the only layer routers talk to.
"""

from wickops.services.billing_service import BillingStatusSink, construct_webhook_event
from wickops.services.identity_directory import IdentityDirectoryClient
from wickops.services.invite_reconciliation import InviteReconciliationService
from wickops.services.invite_service import InviteBatchResult, InviteService
from wickops.services.onboarding_service import OnboardingOutcome, OnboardingReconciler
from wickops.services.seat_accounting import SeatAccountingService, SeatUsage
from wickops.services.status_service import SubscriptionStatusService
from wickops.services.tenant_storage import (
    DynamoDBStorageBackend,
    ResourceState,
    TenantStorageNames,
    TenantStorageProvisioner,
    resource_names,
)

__all__ = [
    "BillingStatusSink",
    "construct_webhook_event",
    "IdentityDirectoryClient",
    "InviteReconciliationService",
    "InviteBatchResult",
    "InviteService",
    "OnboardingOutcome",
    "OnboardingReconciler",
    "SeatAccountingService",
    "SeatUsage",
    "SubscriptionStatusService",
    "DynamoDBStorageBackend",
    "ResourceState",
    "TenantStorageNames",
    "TenantStorageProvisioner",
    "resource_names",
]
