"""Database package"""

from wickops.db.session import AsyncSessionLocal, engine, get_db
from wickops.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
