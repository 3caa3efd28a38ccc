"""
Note Schemas.

Request bodies of the public note API and request/response models of
the admin API.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Public note API
# =============================================================================


class SaveNoteRequest(BaseModel):
    """Body of POST /api/note/{path}."""

    content: str = ""
    password: str | None = None


class UnlockRequest(BaseModel):
    """Body of POST /api/note/{path}/unlock."""

    password: str | None = None


class LockRequest(BaseModel):
    """Body of POST /api/note/{path}/lock. Both fields are checked by the service."""

    password: str | None = None
    lock_type: str | None = None


class RemoveLockRequest(BaseModel):
    """Body of DELETE /api/note/{path}/lock."""

    password: str | None = None


# =============================================================================
# Admin API
# =============================================================================


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    token: str
    expires_in: int


class StatsResponse(BaseModel):
    total_notes: int
    locked_notes: int
    total_views: int


class AdminNoteResponse(BaseModel):
    """A note as the admin sees it. The password hash never leaves the service."""

    path: str
    content: str
    is_locked: bool
    lock_type: str | None = None
    view_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AdminNoteSummary(BaseModel):
    """Listing row: everything but the content."""

    path: str
    is_locked: bool
    lock_type: str | None = None
    view_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AdminNoteCreate(BaseModel):
    path: str = Field(..., min_length=1, max_length=255)
    content: str = ""
    is_locked: bool = False
    lock_type: Literal["read", "write"] | None = None
    password: str | None = None


class AdminNoteUpdate(BaseModel):
    """Partial update; omitted fields are left alone."""

    content: str | None = None
    is_locked: bool | None = None
    lock_type: Literal["read", "write"] | None = None
    password: str | None = None


class ImportRequest(BaseModel):
    """Import body: bare entries are validated one at a time by the service."""

    notes: list[Any]


class ImportResponse(BaseModel):
    imported: int
    failed: int
    total: int


class ExportResponse(BaseModel):
    filename: str
    count: int
    data: dict[str, Any]


class BackupResponse(BaseModel):
    filename: str
    size: int
    count: int


class BlobInfoResponse(BaseModel):
    key: str
    size: int

    model_config = ConfigDict(from_attributes=True)


class AdminLogResponse(BaseModel):
    id: int
    action: str
    target_path: str | None = None
    timestamp: datetime
    details: str | None = None

    model_config = ConfigDict(from_attributes=True)
