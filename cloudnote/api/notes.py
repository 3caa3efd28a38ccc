"""
Public Note API.

Flat JSON bodies consumed by the editor page. Mutating requests pass
the per-client rate limit gate.
"""

from typing import Any

from fastapi import APIRouter, Depends

from cloudnote.core.dependencies import NoteServiceDep
from cloudnote.core.rate_limit import enforce_rate_limit
from cloudnote.schemas.note import LockRequest, RemoveLockRequest, SaveNoteRequest, UnlockRequest

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])


@router.get(
    "/note/{path}",
    summary="Read a note",
    description="Note content, a read-lock challenge, or {exists: false}.",
)
async def get_note(path: str, service: NoteServiceDep) -> dict[str, Any]:
    return await service.get_note(path)


@router.post(
    "/note/{path}",
    summary="Save a note",
    description="Create or update note content. Locked notes need their password.",
)
async def save_note(path: str, data: SaveNoteRequest, service: NoteServiceDep) -> dict[str, Any]:
    await service.save_note(path, data.content, data.password)
    return {"success": True}


@router.post(
    "/note/{path}/unlock",
    summary="Unlock a note",
    description="Verify the note password and return the full note.",
)
async def unlock_note(path: str, data: UnlockRequest, service: NoteServiceDep) -> dict[str, Any]:
    note = await service.unlock_note(path, data.password)
    return {"success": True, "note": note}


@router.post(
    "/note/{path}/lock",
    summary="Lock a note",
    description="Lock a note for reading or writing with a password.",
)
async def lock_note(path: str, data: LockRequest, service: NoteServiceDep) -> dict[str, Any]:
    await service.lock_note(path, data.password, data.lock_type)
    return {"success": True}


@router.delete(
    "/note/{path}/lock",
    summary="Remove a note lock",
)
async def remove_lock(path: str, data: RemoveLockRequest, service: NoteServiceDep) -> dict[str, Any]:
    await service.remove_lock(path, data.password)
    return {"success": True}


@router.get(
    "/generate-path",
    summary="Generate an unused random path",
)
async def generate_path(service: NoteServiceDep) -> dict[str, str]:
    return {"path": await service.generate_path()}
