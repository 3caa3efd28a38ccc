"""
Note Service.

Public note operations on top of the storage adapters: read-through,
popularity-gated caching of note views, write invalidation, password
locks and random path allocation.

Cache policy:
    A read that finds a note with at least ``min_views`` views before its
    own increment stores the response payload under ``note:<path>`` for
    ``clamp(views * seconds_per_view, min_ttl, max_ttl)`` seconds. Every
    save, lock, unlock and delete deletes that key after the store write.
    Read-locked notes are never cached.
"""

import json
from dataclasses import dataclass
from typing import Any

from cloudnote.core.concurrency import spawn_background
from cloudnote.core.config import AppConfig, get_app_config
from cloudnote.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    PathAllocationError,
    ValidationError,
)
from cloudnote.core.utils import isoformat_utc
from cloudnote.models.note import LOCK_TYPES
from cloudnote.services.base import CACHE_KEY_PREFIX, BaseService
from cloudnote.services.paths import PathPolicy
from cloudnote.services.sanitize import sanitize_html
from cloudnote.storage.base import NoteRecord, Storage


@dataclass(frozen=True)
class CachePolicy:
    """Constants of the popularity-gated cache."""

    key_prefix: str = CACHE_KEY_PREFIX
    min_views: int = 2
    seconds_per_view: int = 180
    min_ttl: int = 300
    max_ttl: int = 86400

    @classmethod
    def from_config(cls, app_config: AppConfig | None = None) -> "CachePolicy":
        cache_config = (app_config or get_app_config()).notes.cache
        return cls(
            key_prefix=cache_config.key_prefix,
            min_views=cache_config.min_views,
            seconds_per_view=cache_config.seconds_per_view,
            min_ttl=cache_config.min_ttl,
            max_ttl=cache_config.max_ttl,
        )


DEFAULT_CACHE_POLICY = CachePolicy()


def should_cache(view_count: int, policy: CachePolicy = DEFAULT_CACHE_POLICY) -> bool:
    """Whether a read that observed view_count (before its own increment) may populate the cache."""
    return view_count >= policy.min_views


def ttl_for_views(view_count: int, policy: CachePolicy = DEFAULT_CACHE_POLICY) -> int:
    """Cache lifetime in seconds: more views, longer residency, within [min_ttl, max_ttl]."""
    return min(policy.max_ttl, max(policy.min_ttl, view_count * policy.seconds_per_view))


def note_view(note: NoteRecord, view_count: int | None = None) -> dict[str, Any]:
    """JSON-ready payload of a readable note."""
    return {
        "exists": True,
        "path": note.path,
        "content": note.content,
        "is_locked": note.is_locked,
        "lock_type": note.lock_type if note.is_locked else None,
        "view_count": note.view_count if view_count is None else view_count,
        "created_at": isoformat_utc(note.created_at),
        "updated_at": isoformat_utc(note.updated_at),
    }


def read_lock_challenge() -> dict[str, Any]:
    """Payload for a read-locked note: existence and lock metadata only."""
    return {
        "exists": True,
        "is_locked": True,
        "requires_password": True,
        "lock_type": "read",
    }


class NoteService(BaseService):
    """
    Service for public note operations.

    Args:
        storage: Adapters of the configured runtime target
        path_policy: Path rules, loaded from notes.yaml when omitted
        cache_policy: Cache constants, loaded from notes.yaml when omitted
    """

    def __init__(
        self,
        storage: Storage,
        path_policy: PathPolicy | None = None,
        cache_policy: CachePolicy | None = None,
    ) -> None:
        self.cache_policy = cache_policy or CachePolicy.from_config()
        super().__init__(storage, path_policy, cache_key_prefix=self.cache_policy.key_prefix)

    def _schedule_view_increment(self, path: str) -> None:
        spawn_background(
            self.storage.notes.increment_view_count(path),
            name=f"view-count:{path}",
        )

    async def _read_cached(self, path: str) -> dict[str, Any] | None:
        raw = await self.storage.cache.get(self.cache_key(path))
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError):
            self._logger.warning("Discarding undecodable cache entry", extra={"path": path})
            return None
        if not isinstance(payload, dict):
            return None
        return payload

    async def get_note(self, path: str) -> dict[str, Any]:
        """
        Read a note through the cache.

        Returns:
            Note view, read-lock challenge, or {"exists": False}

        Raises:
            ValidationError: If the path is invalid
            DatabaseError: If the note store fails
        """
        self.path_policy.validate(path)

        cached = await self._read_cached(path)
        if cached is not None:
            # TTL is not re-armed on a hit
            self._schedule_view_increment(path)
            self._log_debug("Note served from cache", path=path)
            return cached

        note = await self.storage.notes.get(path)
        if note is None:
            return {"exists": False}

        if note.is_read_locked:
            return read_lock_challenge()

        observed_views = note.view_count
        self._schedule_view_increment(path)
        payload = note_view(note, view_count=observed_views + 1)

        if should_cache(observed_views, self.cache_policy):
            ttl = ttl_for_views(observed_views, self.cache_policy)
            await self.storage.cache.put(self.cache_key(path), json.dumps(payload), ttl)
            self._log_debug("Note cached", path=path, ttl=ttl, view_count=observed_views)

        return payload

    async def _require_password(self, note: NoteRecord, password: str | None) -> None:
        if not password:
            raise AuthorizationError("Password required")
        if not await self._verify_password(password, note.password_hash or ""):
            self._log_operation("Note password rejected", path=note.path)
            raise AuthorizationError("Invalid password")

    async def save_note(self, path: str, content: str | None, password: str | None = None) -> NoteRecord:
        """
        Create or update note content.

        Raises:
            ValidationError: Invalid path or whitespace-only content
            AuthorizationError: Locked note with missing or wrong password
        """
        self.path_policy.validate(path)
        clean = sanitize_html(content)
        if not clean.strip():
            raise ValidationError("Content cannot be empty", details={"path": path})

        existing = await self.storage.notes.get(path)
        if existing is not None:
            if existing.is_locked and existing.password_hash:
                await self._require_password(existing, password)
            saved = await self.storage.notes.update(path, content=clean)
            if saved is None:
                raise NotFoundError("Note not found")
        else:
            saved = await self.storage.notes.insert(path, clean)
            self._log_operation("Note created", path=path)

        await self._invalidate(path)
        return saved

    async def _get_existing(self, path: str) -> NoteRecord:
        self.path_policy.validate(path)
        note = await self.storage.notes.get(path)
        if note is None:
            raise NotFoundError("Note not found")
        return note

    async def unlock_note(self, path: str, password: str | None) -> dict[str, Any]:
        """
        Verify the password of a locked note and return its full view.

        Raises:
            NotFoundError: If the note does not exist
            ValidationError: If the note is not locked
            AuthorizationError: Missing or wrong password
        """
        note = await self._get_existing(path)
        if not note.is_locked or not note.password_hash:
            raise ValidationError("Note is not locked")

        await self._require_password(note, password)

        self._schedule_view_increment(path)
        await self._invalidate(path)
        self._log_operation("Note unlocked for reading", path=path)
        return note_view(note, view_count=note.view_count + 1)

    async def lock_note(self, path: str, password: str | None, lock_type: str | None) -> NoteRecord:
        """
        Lock a note for reading or writing.

        An already locked note can only be re-locked with its current password.

        Raises:
            ValidationError: Missing password or lock_type, or unknown lock_type
            NotFoundError: If the note does not exist
            AuthorizationError: Wrong current password
        """
        self._validate_required(
            {"password": password, "lock_type": lock_type},
            ["password", "lock_type"],
            message="Password and lock_type required",
        )
        if lock_type not in LOCK_TYPES:
            raise ValidationError("Invalid lock_type", details={"allowed": list(LOCK_TYPES)})

        note = await self._get_existing(path)
        if note.is_locked and note.password_hash:
            await self._require_password(note, password)

        password_hash = await self._hash_password(password)
        locked = await self.storage.notes.update(
            path,
            is_locked=True,
            lock_type=lock_type,
            password_hash=password_hash,
        )
        if locked is None:
            raise NotFoundError("Note not found")

        await self._invalidate(path)
        self._log_operation("Note locked", path=path, lock_type=lock_type)
        return locked

    async def remove_lock(self, path: str, password: str | None) -> NoteRecord:
        """
        Remove a note's lock.

        Raises:
            NotFoundError: If the note does not exist
            ValidationError: If the note is not locked
            AuthorizationError: Missing or wrong password
        """
        note = await self._get_existing(path)
        if not note.is_locked or not note.password_hash:
            raise ValidationError("Note is not locked")

        await self._require_password(note, password)

        unlocked = await self.storage.notes.update(
            path,
            is_locked=False,
            lock_type=None,
            password_hash=None,
        )
        if unlocked is None:
            raise NotFoundError("Note not found")

        await self._invalidate(path)
        self._log_operation("Note lock removed", path=path)
        return unlocked

    async def generate_path(self) -> str:
        """
        Random unused path.

        Raises:
            PathAllocationError: When every attempt collided
        """
        attempts = self.path_policy.generation_attempts
        for _ in range(attempts):
            candidate = self.path_policy.random_path()
            if self.path_policy.is_reserved(candidate):
                continue
            if not await self.storage.notes.exists(candidate):
                return candidate

        self._logger.error("Random path generation exhausted", extra={"attempts": attempts})
        raise PathAllocationError()

    async def allocate_path(self) -> tuple[str, bool]:
        """
        Path for a visit to the root URL.

        The newest blank note is reused when one exists, otherwise a fresh
        random path is generated.

        Returns:
            Tuple of (path, reused)
        """
        blank = await self.storage.notes.find_latest_blank()
        if blank is not None:
            return blank.path, True
        return await self.generate_path(), False
