"""
SQL Note Store.

NoteStore and AdminLogStore over an SQLAlchemy async session factory.
The same classes serve both runtime targets; only the engine differs
(SQLite file locally, PostgreSQL when managed).

Each operation opens its own session and commits before returning, so a
fire-and-forget view count increment never shares a request's transaction.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cloudnote.core.exceptions import ConflictError, DatabaseError
from cloudnote.core.logging import get_logger
from cloudnote.models.admin_log import AdminLog
from cloudnote.models.note import Note
from cloudnote.repositories.admin_log import AdminLogRepository
from cloudnote.repositories.note import NoteRepository
from cloudnote.storage.base import AdminLogRecord, AdminLogStore, NoteRecord, NoteStore

logger = get_logger(__name__)


def to_note_record(note: Note) -> NoteRecord:
    return NoteRecord(
        path=note.path,
        content=note.content or "",
        is_locked=bool(note.is_locked),
        lock_type=note.lock_type,
        password_hash=note.password_hash,
        view_count=note.view_count or 0,
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


def to_log_record(entry: AdminLog) -> AdminLogRecord:
    return AdminLogRecord(
        id=entry.id,
        action=entry.action,
        target_path=entry.target_path,
        timestamp=entry.timestamp,
        details=entry.details,
    )


class _SessionScope:
    """Opens one session per operation and maps engine errors."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], name: str) -> None:
        self._session_factory = session_factory
        self._name = name

    @asynccontextmanager
    async def session(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    f"{self._name} operation failed",
                    extra={"operation": operation, "error": str(e), "error_type": type(e).__name__},
                )
                raise DatabaseError(f"{self._name} unavailable") from e


class SqlNoteStore(NoteStore):
    """
    NoteStore backed by the notes table.

    Args:
        session_factory: Async session factory bound to the target engine
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._scope = _SessionScope(session_factory, "Note store")

    async def get(self, path: str) -> NoteRecord | None:
        async with self._scope.session("get") as session:
            note = await NoteRepository(session).get_or_none(path)
            return to_note_record(note) if note else None

    async def insert(
        self,
        path: str,
        content: str = "",
        *,
        is_locked: bool = False,
        lock_type: str | None = None,
        password_hash: str | None = None,
        view_count: int = 0,
    ) -> NoteRecord:
        try:
            async with self._scope.session("insert") as session:
                note = await NoteRepository(session).create(
                    path=path,
                    content=content,
                    is_locked=is_locked,
                    lock_type=lock_type,
                    password_hash=password_hash,
                    view_count=view_count,
                )
                return to_note_record(note)
        except IntegrityError as e:
            if await self.exists(path):
                raise ConflictError(f"Note '{path}' already exists") from e
            logger.error("Note insert rejected", extra={"path": path, "error": str(e)})
            raise DatabaseError("Note store rejected the write") from e

    async def update(self, path: str, **fields: Any) -> NoteRecord | None:
        try:
            async with self._scope.session("update") as session:
                note = await NoteRepository(session).update_fields(path, **fields)
                return to_note_record(note) if note else None
        except IntegrityError as e:
            logger.error("Note update rejected", extra={"path": path, "error": str(e)})
            raise DatabaseError("Note store rejected the write") from e

    async def increment_view_count(self, path: str) -> None:
        async with self._scope.session("increment_view_count") as session:
            await NoteRepository(session).increment_view_count(path)

    async def delete(self, path: str) -> bool:
        async with self._scope.session("delete") as session:
            return await NoteRepository(session).delete_by_key(path)

    async def list(
        self,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[NoteRecord]:
        async with self._scope.session("list") as session:
            notes = await NoteRepository(session).list_recent(search, limit, offset)
            return [to_note_record(n) for n in notes]

    async def count(self, search: str | None = None, locked: bool | None = None) -> int:
        async with self._scope.session("count") as session:
            return await NoteRepository(session).count_matching(search, locked)

    async def total_views(self) -> int:
        async with self._scope.session("total_views") as session:
            return await NoteRepository(session).sum_views()

    async def find_latest_blank(self) -> NoteRecord | None:
        async with self._scope.session("find_latest_blank") as session:
            note = await NoteRepository(session).latest_blank()
            return to_note_record(note) if note else None

    async def all_notes(self) -> list[NoteRecord]:
        async with self._scope.session("all_notes") as session:
            return [to_note_record(n) for n in await NoteRepository(session).list_all()]

    async def exists(self, path: str) -> bool:
        async with self._scope.session("exists") as session:
            return await NoteRepository(session).exists(path)


class SqlAdminLogStore(AdminLogStore):
    """AdminLogStore backed by the admin_logs table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._scope = _SessionScope(session_factory, "Admin log")

    async def append(
        self,
        action: str,
        target_path: str | None = None,
        details: str | None = None,
    ) -> None:
        async with self._scope.session("append") as session:
            await AdminLogRepository(session).create(
                action=action,
                target_path=target_path,
                details=details,
            )

    async def recent(self, limit: int = 100) -> list[AdminLogRecord]:
        async with self._scope.session("recent") as session:
            entries = await AdminLogRepository(session).recent(limit)
            return [to_log_record(e) for e in entries]
