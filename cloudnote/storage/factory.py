"""
Storage Factory.

Composes the adapters of one runtime target. This is the only place the
target is decided; services receive the resulting Storage and never
branch on it.
"""

from __future__ import annotations

from redis.asyncio import Redis

from cloudnote.core.config import AppConfig, get_app_config, get_redis_url, resolve_project_path
from cloudnote.core.database import create_engine_for_backend, create_session_factory, init_models
from cloudnote.core.logging import get_logger
from cloudnote.core.resilience import create_circuit_breaker
from cloudnote.storage.base import Storage
from cloudnote.storage.blob import DatabaseBlobStore, FileSystemBlobStore
from cloudnote.storage.cache import MemoryCache, RedisCache
from cloudnote.storage.sql import SqlAdminLogStore, SqlNoteStore

logger = get_logger(__name__)


async def create_storage(app_config: AppConfig | None = None) -> Storage:
    """
    Build the storage adapters for the configured backend.

    Tables are created when missing.

    Args:
        app_config: Configuration to use, the cached one by default

    Returns:
        Storage bundle ready for injection

    Raises:
        ValueError: If the backend is not supported
    """
    app_config = app_config or get_app_config()
    db_config = app_config.database
    backend = db_config.storage.backend

    if backend not in ("local", "managed"):
        raise ValueError(f"Unknown storage backend: {backend}")

    engine = create_engine_for_backend(app_config)
    await init_models(engine)
    session_factory = create_session_factory(engine)

    notes = SqlNoteStore(session_factory)
    logs = SqlAdminLogStore(session_factory)

    if backend == "local":
        storage = Storage(
            notes=notes,
            cache=MemoryCache(
                default_ttl=db_config.cache.default_ttl,
                check_period=db_config.cache.check_period,
            ),
            blobs=FileSystemBlobStore(resolve_project_path(db_config.blobs.root)),
            logs=logs,
            backend=backend,
            closers=(engine.dispose,),
        )
    else:
        breaker_config = db_config.redis.circuit_breaker
        client = Redis.from_url(get_redis_url(app_config), decode_responses=True)
        cache = RedisCache(
            client,
            create_circuit_breaker(
                "redis",
                fail_max=breaker_config.fail_max,
                timeout_duration=breaker_config.timeout_duration,
            ),
        )
        storage = Storage(
            notes=notes,
            cache=cache,
            blobs=DatabaseBlobStore(session_factory),
            logs=logs,
            backend=backend,
            closers=(engine.dispose, cache.close),
        )

    logger.info("Storage composed", extra={"backend": backend})
    return storage
