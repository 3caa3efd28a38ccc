"""
Admin Service.

Administrative note management: login, statistics, listing and search,
direct create/update/delete, bulk export/import and backups to the blob
store, and the admin audit log.

Admin reads always go to the note store. Every mutation invalidates the
note's cache entry after the store write and appends an audit entry.
"""

import json
from typing import Any

from cloudnote.core.config import get_app_config
from cloudnote.core.exceptions import (
    ApplicationError,
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from cloudnote.core.security import create_access_token, verify_admin_credentials
from cloudnote.core.utils import epoch_millis, isoformat_utc, utc_now
from cloudnote.models.note import LOCK_TYPES
from cloudnote.services.base import BaseService
from cloudnote.services.sanitize import sanitize_html
from cloudnote.storage.base import AdminLogRecord, BlobInfo, NoteRecord

EXPORT_FORMAT_VERSION = "1.0"
EXPORT_PREFIX = "exports/"
BACKUP_PREFIX = "backups/"
DEFAULT_LOCK_TYPE = "write"


def admin_note_view(note: NoteRecord, include_hash: bool = False) -> dict[str, Any]:
    """Full note record for admin responses and artifacts."""
    view = {
        "path": note.path,
        "content": note.content,
        "is_locked": note.is_locked,
        "lock_type": note.lock_type,
        "view_count": note.view_count,
        "created_at": isoformat_utc(note.created_at),
        "updated_at": isoformat_utc(note.updated_at),
    }
    if include_hash:
        view["password_hash"] = note.password_hash
    return view


class AdminService(BaseService):
    """Service for administrative operations. Callers must already be authenticated."""

    async def _audit(self, action: str, target_path: str | None = None, details: str | None = None) -> None:
        await self.storage.logs.append(action, target_path=target_path, details=details)
        self._log_operation("Admin action", action=action, target_path=target_path)

    async def login(self, username: str, password: str) -> tuple[str, int]:
        """
        Exchange admin credentials for a bearer token.

        Returns:
            Tuple of (token, expires_in seconds)

        Raises:
            AuthenticationError: On any credential mismatch
        """
        if not verify_admin_credentials(username or "", password or ""):
            self._logger.warning("Admin login rejected", extra={"username": username})
            raise AuthenticationError("Invalid credentials")

        expires_in = get_app_config().security.jwt.session_duration_seconds
        token = create_access_token(username)
        await self._audit("login", details=f"Admin {username} logged in")
        return token, expires_in

    async def stats(self) -> dict[str, int]:
        notes = self.storage.notes
        return {
            "total_notes": await notes.count(),
            "locked_notes": await notes.count(locked=True),
            "total_views": await notes.total_views(),
        }

    async def list_notes(
        self,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[NoteRecord], int]:
        """
        List notes with total count for pagination.

        Returns:
            Tuple of (notes list, total count)
        """
        search = search.strip() if search else None
        notes = await self.storage.notes.list(search=search, limit=limit, offset=offset)
        total = await self.storage.notes.count(search=search)
        return notes, total

    async def get_note(self, path: str) -> NoteRecord:
        note = await self.storage.notes.get(path)
        if note is None:
            raise NotFoundError("Note not found")
        return note

    async def create_note(
        self,
        path: str,
        content: str = "",
        is_locked: bool = False,
        lock_type: str | None = None,
        password: str | None = None,
    ) -> NoteRecord:
        """
        Insert a note directly. Empty content is allowed here.

        Raises:
            ValidationError: Invalid path, or a lock without password
            ConflictError: If the path already exists
        """
        self.path_policy.validate(path)
        if await self.storage.notes.exists(path):
            raise ConflictError("Note already exists")

        lock_fields = await self._lock_fields(is_locked, lock_type, password)
        note = await self.storage.notes.insert(path, sanitize_html(content), **lock_fields)

        await self._invalidate(path)
        await self._audit("create", path, f"Created note: {path}")
        return note

    async def update_note(
        self,
        path: str,
        content: str | None = None,
        is_locked: bool | None = None,
        lock_type: str | None = None,
        password: str | None = None,
    ) -> NoteRecord:
        """
        Partially update a note.

        Lock fields always move together: unlocking clears type and hash,
        locking needs a password unless the note already carries a hash.

        Raises:
            NotFoundError: If the note does not exist
            ValidationError: Nothing to update, or a lock without password
        """
        note = await self.get_note(path)
        if content is None and is_locked is None and lock_type is None and password is None:
            raise ValidationError("No updates provided")

        fields: dict[str, Any] = {}
        if content is not None:
            fields["content"] = sanitize_html(content)

        locking = is_locked if is_locked is not None else note.is_locked
        if not locking:
            if note.is_locked or is_locked is not None:
                fields.update(is_locked=False, lock_type=None, password_hash=None)
        elif is_locked is not None or lock_type is not None or password is not None:
            if lock_type is not None and lock_type not in LOCK_TYPES:
                raise ValidationError("Invalid lock_type", details={"allowed": list(LOCK_TYPES)})
            if password:
                password_hash = await self._hash_password(password)
            elif note.password_hash:
                password_hash = note.password_hash
            else:
                raise ValidationError("Password required to lock a note")
            fields.update(
                is_locked=True,
                lock_type=lock_type or note.lock_type or DEFAULT_LOCK_TYPE,
                password_hash=password_hash,
            )

        updated = await self.storage.notes.update(path, **fields) if fields else note
        if updated is None:
            raise NotFoundError("Note not found")

        await self._invalidate(path)
        await self._audit("update", path, f"Updated note: {path} ({', '.join(sorted(fields)) or 'no changes'})")
        return updated

    async def delete_note(self, path: str) -> None:
        """
        Delete a note.

        Raises:
            NotFoundError: If nothing was deleted
        """
        if not await self.storage.notes.delete(path):
            raise NotFoundError("Note not found")
        await self._invalidate(path)
        await self._audit("delete", path, f"Deleted note: {path}")

    async def _lock_fields(
        self,
        is_locked: bool,
        lock_type: str | None,
        password: str | None,
    ) -> dict[str, Any]:
        if not is_locked:
            return {"is_locked": False, "lock_type": None, "password_hash": None}
        if not password:
            raise ValidationError("Password required to lock a note")
        lock_type = lock_type or DEFAULT_LOCK_TYPE
        if lock_type not in LOCK_TYPES:
            raise ValidationError("Invalid lock_type", details={"allowed": list(LOCK_TYPES)})
        return {
            "is_locked": True,
            "lock_type": lock_type,
            "password_hash": await self._hash_password(password),
        }

    async def export_notes(self) -> dict[str, Any]:
        """
        Write every note, without password hashes, to the blob store.

        Returns:
            Dict with filename, count and the exported document
        """
        notes = await self.storage.notes.all_notes()
        document = {
            "version": EXPORT_FORMAT_VERSION,
            "exported_at": isoformat_utc(utc_now()),
            "notes": [admin_note_view(n) for n in notes],
        }
        filename = f"{EXPORT_PREFIX}export-{epoch_millis()}.json"
        await self.storage.blobs.put(filename, json.dumps(document, ensure_ascii=False))

        await self._audit("export", details=f"Exported {len(notes)} notes to {filename}")
        return {"filename": filename, "count": len(notes), "data": document}

    async def _import_one(self, entry: dict[str, Any]) -> None:
        path = self.path_policy.validate(entry.get("path"))
        content = sanitize_html(entry.get("content") or "")
        exists = await self.storage.notes.exists(path)

        if exists and "is_locked" not in entry:
            # No lock fields: the current lock stays
            await self.storage.notes.update(path, content=content)
            await self._invalidate(path)
            return

        is_locked = bool(entry.get("is_locked"))
        lock_type = entry.get("lock_type") if is_locked else None
        password_hash = None
        if is_locked:
            lock_type = lock_type or DEFAULT_LOCK_TYPE
            if lock_type not in LOCK_TYPES:
                raise ValidationError("Invalid lock_type")
            if entry.get("password"):
                password_hash = await self._hash_password(str(entry["password"]))
            elif entry.get("password_hash"):
                password_hash = str(entry["password_hash"])
            else:
                raise ValidationError("Locked note without password")

        fields = {"is_locked": is_locked, "lock_type": lock_type, "password_hash": password_hash}
        if exists:
            await self.storage.notes.update(path, content=content, **fields)
        else:
            await self.storage.notes.insert(
                path,
                content,
                view_count=max(int(entry.get("view_count") or 0), 0),
                **fields,
            )
        await self._invalidate(path)

    async def import_notes(self, entries: list[Any]) -> dict[str, int]:
        """
        Import notes one at a time; existing paths are replaced.

        An entry without an is_locked key only replaces the content of an
        existing note and leaves its lock in place.

        There is no batch atomicity: failures are counted, not rolled back.

        Returns:
            Dict with imported, failed and total counts
        """
        imported = 0
        failed = 0
        for entry in entries:
            try:
                if not isinstance(entry, dict):
                    raise ValidationError("Import entry must be an object")
                await self._import_one(entry)
                imported += 1
            except (ApplicationError, TypeError, ValueError) as e:
                failed += 1
                path = entry.get("path") if isinstance(entry, dict) else None
                self._logger.warning(
                    "Note import failed",
                    extra={"path": path, "error": str(e)},
                )

        await self._audit("import", details=f"Imported {imported} notes, {failed} failed")
        return {"imported": imported, "failed": failed, "total": len(entries)}

    async def backup(self) -> dict[str, Any]:
        """
        Write a full backup, password hashes included, to the blob store.

        Returns:
            Dict with filename, size in bytes and note count
        """
        notes = await self.storage.notes.all_notes()
        document = {
            "version": EXPORT_FORMAT_VERSION,
            "created_at": isoformat_utc(utc_now()),
            "notes": [admin_note_view(n, include_hash=True) for n in notes],
        }
        payload = json.dumps(document, ensure_ascii=False).encode("utf-8")
        filename = f"{BACKUP_PREFIX}backup-{epoch_millis()}.json"
        await self.storage.blobs.put(filename, payload)

        await self._audit("backup", details=f"Backed up {len(notes)} notes to {filename}")
        return {"filename": filename, "size": len(payload), "count": len(notes)}

    async def list_backups(self) -> list[BlobInfo]:
        """Stored backups and exports, sorted by key."""
        backups = await self.storage.blobs.list(BACKUP_PREFIX)
        exports = await self.storage.blobs.list(EXPORT_PREFIX)
        return sorted(backups + exports, key=lambda info: info.key)

    async def recent_logs(self, limit: int = 100) -> list[AdminLogRecord]:
        return await self.storage.logs.recent(limit)
