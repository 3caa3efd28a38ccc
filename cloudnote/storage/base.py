"""
Storage Adapter Interface.

The three capability contracts the note and admin services depend on,
plus the admin audit log. Both runtime targets implement every contract
with identical call shapes, so services are written once and the target
is chosen only where the application is composed.

    NoteStore      - durable notes keyed by path, single source of truth
    Cache          - string values with per-entry TTL, best effort only
    BlobStore      - bytes keyed by slash-separated names (exports, backups)
    AdminLogStore  - append-only admin audit trail
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class NoteRecord:
    """A note detached from any database session."""

    path: str
    content: str
    is_locked: bool = False
    lock_type: str | None = None
    password_hash: str | None = None
    view_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_read_locked(self) -> bool:
        return self.is_locked and self.lock_type == "read"

    @property
    def is_blank(self) -> bool:
        return not self.content


@dataclass
class AdminLogRecord:
    """One admin audit entry."""

    id: int
    action: str
    target_path: str | None
    timestamp: datetime
    details: str | None = None


@dataclass(frozen=True)
class BlobInfo:
    """Listing entry for a stored blob."""

    key: str
    size: int


class NoteStore(ABC):
    """
    Relational note store.

    Every failure of the underlying engine surfaces as DatabaseError.
    Callers must not assume a partial write succeeded.
    """

    @abstractmethod
    async def get(self, path: str) -> NoteRecord | None:
        """Point lookup by path."""

    @abstractmethod
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
        """Create a note. Raises ConflictError when the path is taken."""

    @abstractmethod
    async def update(self, path: str, **fields: Any) -> NoteRecord | None:
        """
        Partial update. Unspecified fields keep their value and updated_at
        is set by the store. Returns None when the path does not exist.
        """

    @abstractmethod
    async def increment_view_count(self, path: str) -> None:
        """Add one view. A missing path is ignored."""

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """Remove a note. Returns True when a row was removed."""

    @abstractmethod
    async def list(
        self,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[NoteRecord]:
        """Notes ordered by updated_at descending, optionally filtered by a
        case-insensitive substring over path and content."""

    @abstractmethod
    async def count(self, search: str | None = None, locked: bool | None = None) -> int:
        """Count notes matching the same filter as list()."""

    @abstractmethod
    async def total_views(self) -> int:
        """Sum of view_count over all notes."""

    @abstractmethod
    async def find_latest_blank(self) -> NoteRecord | None:
        """Newest note by created_at with empty or missing content."""

    @abstractmethod
    async def all_notes(self) -> list[NoteRecord]:
        """Every note, for export and backup."""

    async def exists(self, path: str) -> bool:
        return await self.get(path) is not None

    async def ping(self) -> None:
        """Raise DatabaseError when the store is unreachable."""
        await self.count()


class Cache(ABC):
    """
    Ephemeral key to string cache with per-entry TTL.

    Implementations must never raise: backend failures are logged and
    degrade to a miss (get) or a no-op (put, delete).
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the live value or None."""

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value, replacing any existing entry and its TTL."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key. Idempotent and final."""

    async def ping(self) -> bool:
        """True when the backend answered."""
        return True


class BlobStore(ABC):
    """
    Blob storage for export and backup artifacts.

    Keys are logical, slash-separated names. Failures surface as
    BlobStorageError; a missing key is None from get() and a no-op
    for delete().
    """

    @abstractmethod
    async def put(self, key: str, data: bytes | str) -> bool:
        """Store data under key. Returns True when stored."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Read a blob back."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a blob."""

    @abstractmethod
    async def list(self, prefix: str | None = None) -> list[BlobInfo]:
        """Blobs whose key starts with prefix, sorted by key."""


class AdminLogStore(ABC):
    """Append-only admin audit trail."""

    @abstractmethod
    async def append(
        self,
        action: str,
        target_path: str | None = None,
        details: str | None = None,
    ) -> None:
        """Record an admin action."""

    @abstractmethod
    async def recent(self, limit: int = 100) -> list[AdminLogRecord]:
        """Newest entries first."""


@dataclass(frozen=True)
class Storage:
    """The adapters of one runtime target, built once at startup."""

    notes: NoteStore
    cache: Cache
    blobs: BlobStore
    logs: AdminLogStore
    backend: str = "local"
    closers: tuple[Callable[[], Awaitable[Any]], ...] = field(default_factory=tuple)

    async def close(self) -> None:
        """Release engines and connections in reverse creation order."""
        for closer in reversed(self.closers):
            await closer()
