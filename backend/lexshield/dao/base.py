"""
Base Data Access Object (DAO) class.

WHY: The DAO pattern keeps SQL out of the security stages; stages talk to
store protocols and the DAOs implement them.
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lexshield.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType]):
    """
    Base Data Access Object with the lookups the security core needs.

    Type Parameters:
        ModelType: The SQLAlchemy model class this DAO manages
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Args:
            model: The SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def create(self, **kwargs: Any) -> ModelType:
        """
        Create a new record.

        Args:
            **kwargs: Field values for the new record

        Returns:
            The created model instance with database-generated fields populated
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def get_by_id(self, id: int) -> Optional[ModelType]:
        """
        Retrieve a single record by primary key.

        Returns:
            The model instance if found, None otherwise
        """
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_by_id_and_firm(self, id: int, firm_id: int) -> Optional[ModelType]:
        """
        Retrieve a record by ID only if it belongs to ``firm_id``.

        WHY: Cross-firm rows must look exactly like missing rows, so callers
        cannot probe for other tenants' ids.

        Raises:
            AttributeError: If the model is not firm-scoped
        """
        if not hasattr(self.model, "firm_id"):
            raise AttributeError(
                f"{self.model.__name__} is not a firm-scoped model (no firm_id field)"
            )

        result = await self.session.execute(
            select(self.model).where(
                self.model.id == id,
                self.model.firm_id == firm_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_all(self, skip: int = 0, limit: int = 100, **filters: Any) -> List[ModelType]:
        """
        Retrieve records with offset pagination and equality filters.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return
            **filters: Field name to value filters (e.g., firm_id=1)

        Returns:
            Records ordered by primary key
        """
        query = self._filtered(select(self.model), filters)
        query = query.order_by(self.model.id).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self, **filters: Any) -> int:
        """Count records matching equality filters."""
        query = self._filtered(select(func.count()).select_from(self.model), filters)
        result = await self.session.execute(query)
        return int(result.scalar_one())

    async def delete(self, id: int) -> bool:
        """
        Delete a record by primary key.

        Returns:
            True if a record was deleted, False if not found
        """
        result = await self.session.execute(delete(self.model).where(self.model.id == id))
        return result.rowcount > 0

    def _filtered(self, query, filters: Dict[str, Any]):
        for field, value in filters.items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)
        return query
