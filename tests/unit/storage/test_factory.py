"""
Unit Tests for storage composition.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cloudnote.core.config import AppConfig
from cloudnote.storage.blob import DatabaseBlobStore, FileSystemBlobStore
from cloudnote.storage.cache import MemoryCache, RedisCache
from cloudnote.storage.factory import create_storage
from cloudnote.storage.sql import SqlNoteStore


@pytest.fixture
def app_config(tmp_path):
    """Fresh configuration whose local files live under tmp_path."""
    config = AppConfig()
    config.database.sqlite.path = str(tmp_path / "data" / "notes.db")
    config.database.blobs.root = str(tmp_path / "blobs")
    return config


class TestLocalTarget:
    @pytest.mark.asyncio
    async def test_composes_local_adapters(self, app_config, tmp_path):
        storage = await create_storage(app_config)
        try:
            assert storage.backend == "local"
            assert isinstance(storage.notes, SqlNoteStore)
            assert isinstance(storage.cache, MemoryCache)
            assert isinstance(storage.blobs, FileSystemBlobStore)

            await storage.notes.insert("abc", "hello")
            assert (await storage.notes.get("abc")).content == "hello"
            assert (tmp_path / "data" / "notes.db").exists()
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_tables_survive_recomposition(self, app_config):
        first = await create_storage(app_config)
        await first.notes.insert("abc", "hello")
        await first.close()

        second = await create_storage(app_config)
        try:
            assert await second.notes.exists("abc")
        finally:
            await second.close()


class TestManagedTarget:
    @pytest.mark.asyncio
    async def test_composes_managed_adapters(self, app_config):
        app_config.database.storage.backend = "managed"
        engine = MagicMock()
        engine.dispose = AsyncMock()

        with patch("cloudnote.storage.factory.create_engine_for_backend", return_value=engine), \
             patch("cloudnote.storage.factory.init_models", new=AsyncMock()) as mock_init, \
             patch("cloudnote.storage.factory.Redis") as mock_redis_cls:
            mock_redis_cls.from_url.return_value.aclose = AsyncMock()
            storage = await create_storage(app_config)

        assert storage.backend == "managed"
        assert isinstance(storage.cache, RedisCache)
        assert isinstance(storage.blobs, DatabaseBlobStore)
        mock_init.assert_awaited_once_with(engine)
        assert mock_redis_cls.from_url.call_args.args[0].startswith("redis://")

        await storage.close()
        engine.dispose.assert_awaited_once()
        mock_redis_cls.from_url.return_value.aclose.assert_awaited_once()


class TestUnknownBackend:
    @pytest.mark.asyncio
    async def test_rejected(self, app_config):
        app_config.database.storage.backend = "s3"
        with pytest.raises(ValueError, match="Unknown storage backend"):
            await create_storage(app_config)
