"""
Base Data Access Object (DAO) class.

WHY: The DAO pattern separates database operations from business logic.
On top of plain CRUD this base exposes the only two atomicity primitives
the engine relies on:

- create_if_absent: a single-row insert that silently does nothing when the
  primary key already exists (INSERT ... ON CONFLICT DO NOTHING).
- conditional_update: a single-row UPDATE guarded by a predicate on the
  current row state; it reports whether the guard held.

There are no multi-row transactions across collaborators. Every mutation
the services perform is one of these single-row writes.
"""

from typing import Generic, TypeVar, Type, Optional, List, Any, Sequence

from sqlalchemy import select, update, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from wickops.models.base import Base

# Type variable for model class
ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType]):
    """
    Base Data Access Object providing keyed access and conditional writes.

    Type Parameters:
        ModelType: The SQLAlchemy model class this DAO manages
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize DAO with model class and database session.

        Args:
            model: The SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """
        Retrieve a single record by primary key.

        populate_existing makes sure a row changed by a conditional write
        earlier in the same session is re-read, not served stale from the
        identity map.

        Args:
            id: Primary key value

        Returns:
            The model instance if found, None otherwise
        """
        return await self.session.get(self.model, id, populate_existing=True)

    async def count(self, **filters: Any) -> int:
        """
        Count records matching equality filters.

        Args:
            **filters: Field name to value filters

        Returns:
            Number of records matching the filters
        """
        query = select(func.count()).select_from(self.model).where(*self._filters(filters))
        result = await self.session.execute(query)
        return int(result.scalar_one())

    # ------------------------------------------------------------------
    # Conditional writes
    # ------------------------------------------------------------------

    async def create_if_absent(self, **values: Any) -> bool:
        """
        Insert a row unless one with the same primary key already exists.

        Args:
            **values: Column values for the new row (must include the primary key)

        Returns:
            True if this call created the row, False if it already existed
        """
        stmt = (
            self._insert()
            .values(**values)
            .on_conflict_do_nothing(index_elements=[self.model.__table__.c.id])
            .returning(self.model.__table__.c.id)
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def conditional_update(
        self,
        id: str,
        conditions: Sequence[ColumnElement] = (),
        **values: Any,
    ) -> bool:
        """
        Update a single row only if the guard conditions hold.

        Args:
            id: Primary key of the row
            conditions: Extra predicates on the current row state
            **values: Columns to set

        Returns:
            True if the row existed and the guard held, False otherwise
        """
        table = self.model.__table__
        stmt = update(table).where(table.c.id == id, *conditions).values(**values)
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _filters(self, filters: dict) -> List[ColumnElement]:
        clauses = []
        for field, value in filters.items():
            if not hasattr(self.model, field):
                raise AttributeError(f"{self.model.__name__} has no field '{field}'")
            clauses.append(getattr(self.model, field) == value)
        return clauses

    def _insert(self):
        """Dialect-specific INSERT supporting ON CONFLICT DO NOTHING."""
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(self.model.__table__)
        if dialect == "sqlite":
            return sqlite.insert(self.model.__table__)
        raise NotImplementedError(f"create_if_absent is not supported on {dialect}")

