"""
Unit Test Fixtures.

Fixtures for unit tests. Remote backends (Redis) are mocked; the local
target's SQLite file and blob directory come from the root conftest.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest


# =============================================================================
# Redis Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_redis() -> MagicMock:
    """
    Mock redis.asyncio client for unit tests.

    Usage:
        def test_cache(mock_redis):
            mock_redis.get.return_value = "cached"
            cache = RedisCache(mock_redis, breaker)
    """
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.ping = AsyncMock(return_value=True)
    redis.aclose = AsyncMock()
    return redis


# =============================================================================
# Logging Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_logger() -> MagicMock:
    """
    Mock logger for testing logging calls.

    Usage:
        def test_logging(mock_logger):
            with patch("module.logger", mock_logger):
                # Test code that logs
                mock_logger.warning.assert_called_once()
    """
    logger = MagicMock()
    logger.debug = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    return logger
