"""
Identity Directory client.

WHAT: Thin async wrapper over the Cognito user pool admin API.

WHY: Onboarding grants the administrative group to the founder of a
fresh organization, and invite-send pre-creates the invitee's account so
the identity directory delivers the invitation email.

HOW: boto3 clients are synchronous; each call runs in a worker thread via
asyncio.to_thread. botocore ClientErrors are mapped onto
IdentityDirectoryError (502, retryable).
"""

import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from wickops.core.config import settings
from wickops.core.exceptions import IdentityDirectoryError

logger = logging.getLogger(__name__)


class IdentityDirectoryClient:
    """
    Admin operations against the identity directory.

    Args:
        user_pool_id: Default user pool; events may carry their own
        client: Optional pre-built boto3 cognito-idp client (tests pass a stub)
    """

    def __init__(self, user_pool_id: Optional[str] = None, client: Any = None):
        self.user_pool_id = user_pool_id or settings.IDENTITY_USER_POOL_ID
        self.client = client or boto3.client(
            "cognito-idp",
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION,
        )

    def _pool(self, user_pool_id: Optional[str]) -> str:
        pool = user_pool_id or self.user_pool_id
        if not pool:
            raise IdentityDirectoryError("Identity user pool is not configured")
        return pool

    async def add_user_to_group(
        self,
        username: str,
        group_name: Optional[str] = None,
        user_pool_id: Optional[str] = None,
    ) -> None:
        """
        Add an identity to a group (idempotent on the directory side).

        Raises:
            IdentityDirectoryError: If the directory rejects the request
        """
        group = group_name or settings.ADMIN_GROUP_NAME
        pool = self._pool(user_pool_id)
        try:
            await asyncio.to_thread(
                self.client.admin_add_user_to_group,
                UserPoolId=pool,
                Username=username,
                GroupName=group,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(
                f"Failed to add {username} to group {group}: {code}",
                extra={"username": username, "group": group},
            )
            raise IdentityDirectoryError(
                f"Failed to add user to group {group}", error_code=code
            ) from e
        logger.info(f"Added {username} to group {group}")

    async def create_invited_user(
        self,
        email: str,
        organization_name: str,
        user_pool_id: Optional[str] = None,
    ) -> bool:
        """
        Create the invitee's account so the directory emails the invitation.

        Returns:
            True if the account was created, False if it already existed

        Raises:
            IdentityDirectoryError: For any other directory failure
        """
        pool = self._pool(user_pool_id)
        try:
            await asyncio.to_thread(
                self.client.admin_create_user,
                UserPoolId=pool,
                Username=email,
                UserAttributes=[
                    {"Name": "email", "Value": email},
                    {"Name": "email_verified", "Value": "true"},
                    {"Name": "custom:organizationName", "Value": organization_name},
                ],
                DesiredDeliveryMediums=["EMAIL"],
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            if code == "UsernameExistsException":
                logger.info(f"Identity for {email} already exists")
                return False
            raise IdentityDirectoryError(
                f"Failed to create identity for {email}", error_code=code
            ) from e
        return True
