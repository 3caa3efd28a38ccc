"""
Note Repository.

Data access layer for notes. Handles all query shapes for the Note
model; sessions and commits are owned by the storage adapter.
"""

from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cloudnote.core.utils import escape_like
from cloudnote.models.note import Note
from cloudnote.repositories.base import BaseRepository

UPDATABLE_FIELDS = frozenset({"content", "is_locked", "lock_type", "password_hash", "view_count"})


class NoteRepository(BaseRepository[Note]):
    """
    Repository for Note model.

    Inherits standard CRUD operations from BaseRepository
    and adds note-specific queries.
    """

    model = Note
    key_column = "path"

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    def _search_clause(self, search: str) -> Any:
        pattern = f"%{escape_like(search.lower())}%"
        return or_(
            func.lower(Note.path).like(pattern, escape="\\"),
            func.lower(func.coalesce(Note.content, "")).like(pattern, escape="\\"),
        )

    async def update_fields(self, path: str, **fields: Any) -> Note | None:
        """
        Apply a partial update; unspecified fields keep their value.

        updated_at is stamped by the column's onupdate hook.

        Returns:
            The refreshed note, or None when the path does not exist
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown note fields: {sorted(unknown)}")

        if fields:
            result = await self.session.execute(
                update(Note).where(Note.path == path).values(**fields)
            )
            if (result.rowcount or 0) == 0:
                return None
        return await self.get_or_none(path)

    async def increment_view_count(self, path: str) -> bool:
        """
        Add one view without touching updated_at.

        Returns:
            True when the note exists
        """
        result = await self.session.execute(
            update(Note)
            .where(Note.path == path)
            .values(view_count=Note.view_count + 1, updated_at=Note.updated_at)
        )
        return (result.rowcount or 0) > 0

    async def list_recent(
        self,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Note]:
        """
        List notes, most recently updated first.

        Args:
            search: Case-insensitive substring over path or content
            limit: Maximum number of notes to return
            offset: Number of notes to skip

        Returns:
            List of notes
        """
        query = select(Note)
        if search:
            query = query.where(self._search_clause(search))
        result = await self.session.execute(
            query.order_by(Note.updated_at.desc(), Note.path)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count_matching(
        self,
        search: str | None = None,
        locked: bool | None = None,
    ) -> int:
        """Count notes matching an optional search term and lock state."""
        query = select(func.count()).select_from(Note)
        if search:
            query = query.where(self._search_clause(search))
        if locked is not None:
            query = query.where(Note.is_locked == locked)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def sum_views(self) -> int:
        """Total view count across all notes."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Note.view_count), 0))
        )
        return int(result.scalar_one())

    async def latest_blank(self) -> Note | None:
        """Newest note by created_at whose content is empty or missing."""
        result = await self.session.execute(
            select(Note)
            .where(or_(Note.content.is_(None), Note.content == ""))
            .order_by(Note.created_at.desc(), Note.path.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Note]:
        """Every note, oldest first, for export and backup."""
        result = await self.session.execute(
            select(Note).order_by(Note.created_at, Note.path)
        )
        return list(result.scalars().all())
