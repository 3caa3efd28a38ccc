"""
FastAPI Dependencies.

Shared dependencies for request handling. Storage is composed once at
startup and stored on app.state; services are built per request on top
of it.
"""

from typing import Annotated, Any

from fastapi import Depends, Header, Request

from cloudnote.core.logging import get_logger
from cloudnote.core.security import decode_token, extract_bearer_token
from cloudnote.services.admin import AdminService
from cloudnote.services.note import CachePolicy, NoteService
from cloudnote.services.paths import PathPolicy
from cloudnote.storage.base import Storage

logger = get_logger(__name__)


def get_storage(request: Request) -> Storage:
    """The storage adapters composed at startup."""
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise RuntimeError("Storage not initialised; application lifespan has not run")
    return storage


def get_path_policy(request: Request) -> PathPolicy:
    policy = getattr(request.app.state, "path_policy", None)
    return policy or PathPolicy.from_config()


def get_cache_policy(request: Request) -> CachePolicy:
    policy = getattr(request.app.state, "cache_policy", None)
    return policy or CachePolicy.from_config()


StorageDep = Annotated[Storage, Depends(get_storage)]
PathPolicyDep = Annotated[PathPolicy, Depends(get_path_policy)]


def get_note_service(
    storage: StorageDep,
    path_policy: PathPolicyDep,
    cache_policy: Annotated[CachePolicy, Depends(get_cache_policy)],
) -> NoteService:
    return NoteService(storage, path_policy, cache_policy)


def get_admin_service(storage: StorageDep, path_policy: PathPolicyDep) -> AdminService:
    return AdminService(storage, path_policy)


NoteServiceDep = Annotated[NoteService, Depends(get_note_service)]
AdminServiceDep = Annotated[AdminService, Depends(get_admin_service)]


async def get_request_id(request: Request, x_request_id: str | None = Header(None)) -> str | None:
    """
    Request ID for response metadata.

    Set by RequestContextMiddleware, falling back to the inbound header.
    """
    return getattr(request.state, "request_id", None) or x_request_id


RequestId = Annotated[str | None, Depends(get_request_id)]


async def require_admin(authorization: str | None = Header(None)) -> dict[str, Any]:
    """
    Validate the admin bearer token.

    Raises:
        AuthenticationError: Missing, malformed, expired or non-admin token
    """
    token = extract_bearer_token(authorization)
    return decode_token(token)


AdminClaims = Annotated[dict[str, Any], Depends(require_admin)]
