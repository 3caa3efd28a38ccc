"""
Root Pytest Fixtures.

Shared fixtures available to all test types.

Test Storage Configuration:
    Tests run against the local target: a temporary SQLite file (per-test,
    so fire-and-forget view count increments run on their own sessions),
    an in-process MemoryCache on a controllable clock, and a temporary
    blob directory. Secrets come from the process environment, never from
    config/.env.
"""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from cloudnote.core import rate_limit
from cloudnote.core.concurrency import drain_background_tasks
from cloudnote.core.config import get_app_config, get_settings
from cloudnote.core.database import create_session_factory, create_sqlite_engine, init_models
from cloudnote.services.note import CachePolicy
from cloudnote.services.paths import PathPolicy
from cloudnote.storage.base import Storage
from cloudnote.storage.blob import FileSystemBlobStore
from cloudnote.storage.cache import MemoryCache
from cloudnote.storage.sql import SqlAdminLogStore, SqlNoteStore

TEST_JWT_SECRET = "test-secret-key-that-is-long-enough-for-testing-purposes"
TEST_ADMIN_USER = "admin"
TEST_ADMIN_PASSWORD = "test-admin-password"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _test_secrets(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Provide secrets through the environment and rebuild the cached Settings."""
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("ADMIN_USER", TEST_ADMIN_USER)
    monkeypatch.setenv("ADMIN_PASSWORD", TEST_ADMIN_PASSWORD)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True, scope="session")
def _fast_password_hashing() -> Generator[None, None, None]:
    """Use the minimum bcrypt cost so lock tests stay fast."""
    passwords = get_app_config().security.passwords
    original = passwords.bcrypt_rounds
    passwords.bcrypt_rounds = 4
    yield
    passwords.bcrypt_rounds = original


@pytest.fixture(autouse=True)
def _reset_rate_limiter() -> Generator[None, None, None]:
    """Every test starts with an empty rate limit window."""
    rate_limit.reset_rate_limiter()
    yield
    rate_limit.reset_rate_limiter()


# =============================================================================
# Clock Fixture
# =============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """SQLite file engine with every table created."""
    engine = create_sqlite_engine(f"sqlite+aiosqlite:///{tmp_path / 'cloudnote.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


@pytest.fixture
def memory_cache(clock: FakeClock) -> MemoryCache:
    return MemoryCache(default_ttl=3600, check_period=600, clock=clock)


@pytest.fixture
def blob_root(tmp_path: Path) -> Path:
    return tmp_path / "blobs"


@pytest.fixture
def blob_store(blob_root: Path) -> FileSystemBlobStore:
    return FileSystemBlobStore(blob_root)


@pytest.fixture
async def storage(
    session_factory: async_sessionmaker[AsyncSession],
    memory_cache: MemoryCache,
    blob_store: FileSystemBlobStore,
) -> AsyncGenerator[Storage, None]:
    """
    Local-target storage bundle.

    Background tasks are drained before the engine is disposed.

    Usage:
        async def test_insert(storage: Storage):
            await storage.notes.insert("abc", "hello")
    """
    storage = Storage(
        notes=SqlNoteStore(session_factory),
        cache=memory_cache,
        blobs=blob_store,
        logs=SqlAdminLogStore(session_factory),
        backend="local",
    )
    yield storage
    await drain_background_tasks(timeout=5)


@pytest.fixture
def path_policy() -> PathPolicy:
    return PathPolicy()


@pytest.fixture
def cache_policy() -> CachePolicy:
    return CachePolicy()


# =============================================================================
# Utility Fixtures
# =============================================================================


@pytest.fixture
def anyio_backend() -> str:
    """Specify the async backend for anyio."""
    return "asyncio"
