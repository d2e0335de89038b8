"""
Base repository interfaces and utilities.

This module provides the foundational repository patterns and interfaces
used across all repository implementations in the centralized database layer.
Built with async SQLAlchemy so route handlers never block the event loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import asc, desc, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

# Generic type for SQLModel entities
EntityType = TypeVar("EntityType", bound=SQLModel)


class AsyncBaseRepository(ABC, Generic[EntityType]):
    """Base async repository interface with common CRUD operations using SQLModel."""

    def __init__(self, session: AsyncSession, model: Type[EntityType]) -> None:
        """Initialize repository with async database session and SQLModel entity class.

        Args:
            session: Async SQLAlchemy session for database operations
            model: SQLModel entity class for this repository
        """
        self.session = session
        self.model = model

    @abstractmethod
    async def create(self, entity: EntityType) -> EntityType:
        """Create a new entity record.

        Args:
            entity: SQLModel instance to persist

        Returns:
            Persisted entity with generated fields populated
        """

    @abstractmethod
    async def get_by_id(self, entity_id: str) -> Optional[EntityType]:
        """Get entity by its primary identifier.

        Args:
            entity_id: Primary key value

        Returns:
            Entity instance or None if not found
        """

    @abstractmethod
    async def update(self, entity: EntityType) -> EntityType:
        """Update an existing entity record.

        Args:
            entity: SQLModel instance with updated fields

        Returns:
            Updated entity instance
        """

    @abstractmethod
    async def delete(self, entity_id: str) -> Optional[EntityType]:
        """Delete entity by its primary identifier.

        Args:
            entity_id: Primary key value

        Returns:
            The deleted entity, or None if not found
        """

    @abstractmethod
    async def list(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[str] = None,
        order: str = "ASC",
    ) -> List[EntityType]:
        """List entities with optional pagination, filtering and sorting.

        Args:
            limit: Maximum number of records to return
            offset: Number of records to skip
            filters: Dictionary of field filters
            sort: Attribute name to sort by
            order: ``ASC`` or ``DESC``

        Returns:
            List of entity instances
        """


class QueryBuilder:
    """Utility class for building SQLModel-based database queries."""

    @staticmethod
    def apply_filters(stmt, model: Type[EntityType], filters: Dict[str, Any]):
        """Apply equality filters to a select statement.

        Keys that are not model fields and ``None`` values are ignored. Sequence values
        become ``IN`` clauses.
        """
        for key, value in filters.items():
            if value is None or key not in model.model_fields:
                continue
            column = getattr(model, key)
            if isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(column.in_(list(value)))
            else:
                stmt = stmt.where(column == value)
        return stmt

    @staticmethod
    def apply_sorting(stmt, model: Type[EntityType], sort: Optional[str], order: str = "ASC"):
        """Apply ``ORDER BY`` for a model field; anything else is ignored."""
        if not sort or sort not in model.model_fields:
            return stmt
        column = getattr(model, sort)
        return stmt.order_by(desc(column) if order.upper() == "DESC" else asc(column))

    @staticmethod
    def apply_pagination(stmt, limit: Optional[int], offset: Optional[int]):
        """Apply pagination to a select statement.

        Args:
            stmt: SQLModel select statement
            limit: Maximum number of records
            offset: Number of records to skip

        Returns:
            Modified select statement with pagination applied
        """
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset is not None:
            stmt = stmt.offset(offset)
        return stmt


class SQLModelRepository(AsyncBaseRepository[EntityType]):
    """Concrete CRUD repository usable for any SQLModel table."""

    async def create(self, entity: EntityType) -> EntityType:
        self.session.add(entity)
        await self.session.commit()
        await self.session.refresh(entity)
        return entity

    async def get_by_id(self, entity_id: str) -> Optional[EntityType]:
        return await self.session.get(self.model, entity_id)

    async def update(self, entity: EntityType) -> EntityType:
        self.session.add(entity)
        await self.session.commit()
        await self.session.refresh(entity)
        return entity

    async def delete(self, entity_id: str) -> Optional[EntityType]:
        entity = await self.get_by_id(entity_id)
        if entity is None:
            return None
        await self.session.delete(entity)
        await self.session.commit()
        return entity

    async def list(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[str] = None,
        order: str = "ASC",
    ) -> List[EntityType]:
        stmt = select(self.model)
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, self.model, filters)
        stmt = QueryBuilder.apply_sorting(stmt, self.model, sort, order)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count rows matching ``filters``."""
        stmt = select(func.count()).select_from(self.model)
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, self.model, filters)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def first(self, **filters: Any) -> Optional[EntityType]:
        """Return the first row matching the equality ``filters``."""
        rows = await self.list(limit=1, filters=filters)
        return rows[0] if rows else None

    async def add_all(self, entities: Sequence[EntityType]) -> List[EntityType]:
        """Persist several new rows in one commit."""
        self.session.add_all(list(entities))
        await self.session.commit()
        for entity in entities:
            await self.session.refresh(entity)
        return list(entities)
