"""
Blob Store Adapters.

FileSystemBlobStore is the local target: one file per key under a root
directory, with blocking I/O run on the shared thread pool.
DatabaseBlobStore is the managed target: rows in the blob_objects table
of the managed database.

Both accept the same keys: "/"-separated segments, none of them empty,
"." or "..". On disk each segment is percent-encoded into a file name,
so listings return the keys callers wrote.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from concurrent.futures import Executor
from functools import partial
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cloudnote.core.concurrency import get_io_pool
from cloudnote.core.exceptions import BlobStorageError
from cloudnote.core.logging import get_logger
from cloudnote.core.utils import escape_like, utc_now
from cloudnote.models.blob import BlobObject
from cloudnote.storage.base import BlobInfo, BlobStore

logger = get_logger(__name__)


def _to_bytes(data: bytes | str) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


def key_segments(key: str) -> list[str]:
    """
    Split a logical blob key into its segments.

    Raises:
        BlobStorageError: If the key is empty or has an empty, "." or ".." segment
    """
    parts = key.split("/") if key else []
    if not parts or any(part in ("", ".", "..") for part in parts):
        raise BlobStorageError(f"Invalid blob key: {key!r}")
    return parts


def encode_segment(part: str) -> str:
    """Percent-encode one key segment into a file name; a leading dot is encoded too."""
    encoded = quote(part, safe="")
    if encoded.startswith("."):
        encoded = "%2E" + encoded[1:]
    return encoded


class FileSystemBlobStore(BlobStore):
    """
    Blob store over a directory tree.

    Args:
        root: Directory holding the blobs, created on first write
        executor: Pool for blocking file I/O; the shared I/O pool by default
    """

    def __init__(self, root: str | Path, executor: Executor | None = None) -> None:
        self.root = Path(root)
        self._executor = executor

    def _resolve(self, key: str) -> Path:
        return self.root.joinpath(*(encode_segment(part) for part in key_segments(key)))

    async def _run(self, operation: str, key: str | None, fn: Any, *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        executor = self._executor or get_io_pool()
        try:
            return await loop.run_in_executor(executor, partial(fn, *args))
        except OSError as e:
            logger.error(
                "Blob store operation failed",
                extra={"operation": operation, "key": key, "error": str(e)},
            )
            raise BlobStorageError("Blob storage unavailable") from e

    async def put(self, key: str, data: bytes | str) -> bool:
        target = self._resolve(key)
        await self._run("put", key, self._write_file, target, _to_bytes(data))
        return True

    async def get(self, key: str) -> bytes | None:
        target = self._resolve(key)
        return await self._run("get", key, self._read_file, target)

    async def delete(self, key: str) -> None:
        target = self._resolve(key)
        await self._run("delete", key, self._remove_file, target)

    async def list(self, prefix: str | None = None) -> list[BlobInfo]:
        return await self._run("list", prefix, self._walk, prefix or "")

    @staticmethod
    def _write_file(target: Path, payload: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(tmp_name, target)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    @staticmethod
    def _read_file(target: Path) -> bytes | None:
        try:
            return target.read_bytes()
        except FileNotFoundError:
            return None

    @staticmethod
    def _remove_file(target: Path) -> None:
        target.unlink(missing_ok=True)

    def _walk(self, prefix: str) -> list[BlobInfo]:
        if not self.root.exists():
            return []
        found = []
        for path in self.root.rglob("*"):
            if not path.is_file() or path.name.startswith("."):
                continue
            key = "/".join(unquote(part) for part in path.relative_to(self.root).parts)
            if key.startswith(prefix):
                found.append(BlobInfo(key=key, size=path.stat().st_size))
        return sorted(found, key=lambda info: info.key)


class DatabaseBlobStore(BlobStore):
    """
    Blob store over the blob_objects table.

    Args:
        session_factory: Async session factory bound to the managed engine
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _execute(self, operation: str, key: str | None, fn: Any) -> Any:
        async with self._session_factory() as session:
            try:
                result = await fn(session)
                await session.commit()
                return result
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    "Blob store operation failed",
                    extra={"operation": operation, "key": key, "error": str(e)},
                )
                raise BlobStorageError("Blob storage unavailable") from e

    async def put(self, key: str, data: bytes | str) -> bool:
        key_segments(key)
        payload = _to_bytes(data)

        async def _upsert(session: AsyncSession) -> None:
            values = {"key": key, "data": payload, "size": len(payload), "created_at": utc_now()}
            dialect = session.get_bind().dialect.name
            insert_fn = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = insert_fn(BlobObject).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[BlobObject.key],
                set_={"data": payload, "size": len(payload), "created_at": values["created_at"]},
            )
            await session.execute(stmt)

        await self._execute("put", key, _upsert)
        return True

    async def get(self, key: str) -> bytes | None:
        key_segments(key)

        async def _select(session: AsyncSession) -> bytes | None:
            result = await session.execute(select(BlobObject.data).where(BlobObject.key == key))
            return result.scalar_one_or_none()

        return await self._execute("get", key, _select)

    async def delete(self, key: str) -> None:
        key_segments(key)

        async def _delete(session: AsyncSession) -> None:
            await session.execute(delete(BlobObject).where(BlobObject.key == key))

        await self._execute("delete", key, _delete)

    async def list(self, prefix: str | None = None) -> list[BlobInfo]:
        async def _list(session: AsyncSession) -> list[BlobInfo]:
            query = select(BlobObject.key, BlobObject.size)
            if prefix:
                query = query.where(BlobObject.key.like(f"{escape_like(prefix)}%", escape="\\"))
            result = await session.execute(query.order_by(BlobObject.key))
            return [BlobInfo(key=row.key, size=row.size) for row in result]

        return await self._execute("list", prefix, _list)
