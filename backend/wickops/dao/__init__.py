"""Data Access Objects."""

from wickops.dao.base import BaseDAO
from wickops.dao.organization import OrganizationDAO
from wickops.dao.user import UserDAO
from wickops.dao.invite import InviteDAO

__all__ = ["BaseDAO", "OrganizationDAO", "UserDAO", "InviteDAO"]
