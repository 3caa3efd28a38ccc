"""
Base Repository.

Base class for all repositories with common CRUD operations keyed by
the model's primary key.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cloudnote.core.logging import get_logger
from cloudnote.models.base import Base

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common CRUD operations.

    Subclasses set the model class and its primary key column name:

        class NoteRepository(BaseRepository[Note]):
            model = Note
            key_column = "path"
    """

    model: type[ModelType]
    key_column: str = "id"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @property
    def _key(self) -> Any:
        return getattr(self.model, self.key_column)

    async def get_or_none(self, key: Any) -> ModelType | None:
        """Get a single record by primary key, returning None if not found."""
        result = await self.session.execute(
            select(self.model).where(self._key == key)
        )
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> ModelType:
        """Create a new record."""
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete_by_key(self, key: Any) -> bool:
        """
        Delete a record by primary key.

        Returns:
            True when a row was removed
        """
        result = await self.session.execute(
            delete(self.model).where(self._key == key)
        )
        return (result.rowcount or 0) > 0

    async def exists(self, key: Any) -> bool:
        """Check if a record exists by primary key."""
        result = await self.session.execute(
            select(self._key).where(self._key == key)
        )
        return result.scalar_one_or_none() is not None

    async def count_all(self) -> int:
        """Count every record in the table."""
        result = await self.session.execute(
            select(func.count()).select_from(self.model)
        )
        return result.scalar_one()
