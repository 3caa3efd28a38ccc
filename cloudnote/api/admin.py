"""
Admin API Endpoints.

Bearer-token protected note management. Every response uses the
ApiResponse envelope; the listing uses the paginated envelope.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from cloudnote.core.dependencies import AdminClaims, AdminServiceDep, RequestId
from cloudnote.core.pagination import (
    PaginationParams,
    create_paginated_response,
    get_pagination_params,
)
from cloudnote.schemas.base import ApiResponse, ResponseMetadata
from cloudnote.schemas.note import (
    AdminLogResponse,
    AdminNoteCreate,
    AdminNoteResponse,
    AdminNoteSummary,
    AdminNoteUpdate,
    BackupResponse,
    BlobInfoResponse,
    ExportResponse,
    ImportRequest,
    ImportResponse,
    LoginRequest,
    LoginResponse,
    StatsResponse,
)

router = APIRouter()


def _meta(request_id: str | None) -> ResponseMetadata:
    return ResponseMetadata(request_id=request_id)


@router.post(
    "/login",
    response_model=ApiResponse[LoginResponse],
    summary="Admin login",
)
async def login(
    data: LoginRequest,
    service: AdminServiceDep,
    request_id: RequestId,
) -> ApiResponse[LoginResponse]:
    token, expires_in = await service.login(data.username, data.password)
    return ApiResponse(
        data=LoginResponse(token=token, expires_in=expires_in),
        metadata=_meta(request_id),
    )


@router.get(
    "/stats",
    response_model=ApiResponse[StatsResponse],
    summary="Note statistics",
)
async def stats(
    _: AdminClaims,
    service: AdminServiceDep,
    request_id: RequestId,
) -> ApiResponse[StatsResponse]:
    return ApiResponse(data=StatsResponse(**await service.stats()), metadata=_meta(request_id))


@router.get(
    "/notes",
    summary="List notes (paginated)",
    description="Newest updates first, optionally filtered by a substring of path or content.",
)
async def list_notes(
    _: AdminClaims,
    service: AdminServiceDep,
    request_id: RequestId,
    pagination: PaginationParams = Depends(get_pagination_params),
    search: str | None = Query(default=None, max_length=200, description="Substring of path or content"),
) -> dict[str, Any]:
    notes, total = await service.list_notes(
        search=search,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return create_paginated_response(
        items=notes,
        item_schema=AdminNoteSummary,
        total=total,
        limit=pagination.limit,
        offset=pagination.offset,
        request_id=request_id,
    )


@router.post(
    "/notes",
    response_model=ApiResponse[AdminNoteResponse],
    status_code=201,
    summary="Create a note",
)
async def create_note(
    data: AdminNoteCreate,
    _: AdminClaims,
    service: AdminServiceDep,
    request_id: RequestId,
) -> ApiResponse[AdminNoteResponse]:
    note = await service.create_note(
        data.path,
        data.content,
        is_locked=data.is_locked,
        lock_type=data.lock_type,
        password=data.password,
    )
    return ApiResponse(data=AdminNoteResponse.model_validate(note), metadata=_meta(request_id))


@router.get(
    "/notes/{path}",
    response_model=ApiResponse[AdminNoteResponse],
    summary="Get a note",
)
async def get_note(
    path: str,
    _: AdminClaims,
    service: AdminServiceDep,
    request_id: RequestId,
) -> ApiResponse[AdminNoteResponse]:
    note = await service.get_note(path)
    return ApiResponse(data=AdminNoteResponse.model_validate(note), metadata=_meta(request_id))


@router.put(
    "/notes/{path}",
    response_model=ApiResponse[AdminNoteResponse],
    summary="Update a note",
    description="Only provided fields are updated.",
)
async def update_note(
    path: str,
    data: AdminNoteUpdate,
    _: AdminClaims,
    service: AdminServiceDep,
    request_id: RequestId,
) -> ApiResponse[AdminNoteResponse]:
    note = await service.update_note(
        path,
        content=data.content,
        is_locked=data.is_locked,
        lock_type=data.lock_type,
        password=data.password,
    )
    return ApiResponse(data=AdminNoteResponse.model_validate(note), metadata=_meta(request_id))


@router.delete(
    "/notes/{path}",
    response_model=ApiResponse[dict[str, str]],
    summary="Delete a note",
)
async def delete_note(
    path: str,
    _: AdminClaims,
    service: AdminServiceDep,
    request_id: RequestId,
) -> ApiResponse[dict[str, str]]:
    await service.delete_note(path)
    return ApiResponse(data={"path": path}, metadata=_meta(request_id))


@router.get(
    "/export",
    response_model=ApiResponse[ExportResponse],
    summary="Export all notes to the blob store",
)
async def export_notes(
    _: AdminClaims,
    service: AdminServiceDep,
    request_id: RequestId,
) -> ApiResponse[ExportResponse]:
    result = await service.export_notes()
    return ApiResponse(data=ExportResponse(**result), metadata=_meta(request_id))


@router.post(
    "/import",
    response_model=ApiResponse[ImportResponse],
    summary="Import notes",
    description="Notes are imported one at a time; failures are counted, not rolled back.",
)
async def import_notes(
    data: ImportRequest,
    _: AdminClaims,
    service: AdminServiceDep,
    request_id: RequestId,
) -> ApiResponse[ImportResponse]:
    result = await service.import_notes(data.notes)
    return ApiResponse(data=ImportResponse(**result), metadata=_meta(request_id))


@router.post(
    "/backup",
    response_model=ApiResponse[BackupResponse],
    summary="Write a full backup to the blob store",
)
async def backup(
    _: AdminClaims,
    service: AdminServiceDep,
    request_id: RequestId,
) -> ApiResponse[BackupResponse]:
    result = await service.backup()
    return ApiResponse(data=BackupResponse(**result), metadata=_meta(request_id))


@router.get(
    "/backups",
    response_model=ApiResponse[list[BlobInfoResponse]],
    summary="List stored backups and exports",
)
async def list_backups(
    _: AdminClaims,
    service: AdminServiceDep,
    request_id: RequestId,
) -> ApiResponse[list[BlobInfoResponse]]:
    blobs = await service.list_backups()
    return ApiResponse(
        data=[BlobInfoResponse.model_validate(b) for b in blobs],
        metadata=_meta(request_id),
    )


@router.get(
    "/logs",
    response_model=ApiResponse[list[AdminLogResponse]],
    summary="Recent admin actions",
)
async def logs(
    _: AdminClaims,
    service: AdminServiceDep,
    request_id: RequestId,
    limit: int = Query(default=100, ge=1, le=500),
) -> ApiResponse[list[AdminLogResponse]]:
    entries = await service.recent_logs(limit)
    return ApiResponse(
        data=[AdminLogResponse.model_validate(e) for e in entries],
        metadata=_meta(request_id),
    )
