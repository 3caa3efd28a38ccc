"""
Health Check Endpoints.

Provides liveness and readiness checks.

Endpoints:
- /health: Liveness check (process running)
- /health/ready: Readiness check (note store reachable, cache answering)
"""

import asyncio
import time
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from cloudnote.core.dependencies import StorageDep
from cloudnote.core.exceptions import DatabaseError
from cloudnote.core.logging import get_logger
from cloudnote.core.utils import isoformat_utc, utc_now
from cloudnote.storage.base import Storage

router = APIRouter()
logger = get_logger(__name__)

READY_TIMEOUT_SECONDS = 5


async def check_note_store(storage: Storage) -> dict[str, Any]:
    """
    Check note store connectivity.

    Returns:
        Dict with status, latency, and optional error message
    """
    start = time.perf_counter()
    try:
        await storage.notes.ping()
    except DatabaseError as e:
        logger.warning("Note store health check failed", extra={"error": e.message})
        return {"status": "unhealthy", "error": e.message}
    return {
        "status": "healthy",
        "latency_ms": int((time.perf_counter() - start) * 1000),
    }


async def check_cache(storage: Storage) -> dict[str, Any]:
    """
    Check cache connectivity. A failing cache degrades, it never blocks readiness.
    """
    start = time.perf_counter()
    answered = await storage.cache.ping()
    return {
        "status": "healthy" if answered else "degraded",
        "latency_ms": int((time.perf_counter() - start) * 1000),
    }


@router.get("/health")
async def health_check() -> dict[str, str]:
    """
    Liveness check.

    Returns 200 if the process is running.
    No dependency checks - this endpoint should always respond quickly.
    """
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check(storage: StorageDep) -> Any:
    """
    Readiness check.

    Checks the note store and the cache in parallel.
    Returns 503 if the note store is unhealthy.
    """
    store_result: dict[str, Any] = {"status": "unhealthy", "error": "check did not run"}
    cache_result: dict[str, Any] = {"status": "degraded", "error": "check did not run"}

    try:
        async with asyncio.timeout(READY_TIMEOUT_SECONDS):
            async with asyncio.TaskGroup() as tg:
                store_task = tg.create_task(check_note_store(storage))
                cache_task = tg.create_task(check_cache(storage))
            store_result = store_task.result()
            cache_result = cache_task.result()
    except TimeoutError:
        logger.warning("Readiness check timed out", extra={"timeout": READY_TIMEOUT_SECONDS})

    checks = {
        "note_store": store_result,
        "cache": cache_result,
    }
    body = {
        "status": "healthy" if store_result["status"] == "healthy" else "unhealthy",
        "backend": storage.backend,
        "checks": checks,
        "timestamp": isoformat_utc(utc_now()),
    }

    if store_result["status"] != "healthy":
        logger.warning("Readiness check failed", extra={"checks": checks})
        return JSONResponse(status_code=503, content=body)
    return body
