"""
Base Service.

Base class for the note and admin services. Services receive the
storage adapters explicitly at construction and implement business
rules on top of them; they never open sessions or pick a backend.

Usage:
    from cloudnote.services.base import BaseService

    class ReportService(BaseService):
        async def count_locked(self) -> int:
            return await self.storage.notes.count(locked=True)
"""

import asyncio
from typing import Any

from cloudnote.core.concurrency import get_io_pool
from cloudnote.core.exceptions import ValidationError
from cloudnote.core.logging import get_logger
from cloudnote.core.security import hash_password, verify_password
from cloudnote.services.paths import PathPolicy
from cloudnote.storage.base import Storage

CACHE_KEY_PREFIX = "note:"


class BaseService:
    """
    Base class for all services.

    Provides:
    - Access to the injected storage adapters
    - Cache key construction and unconditional invalidation
    - Password hashing off the event loop
    - Common validation and logging helpers
    """

    def __init__(
        self,
        storage: Storage,
        path_policy: PathPolicy | None = None,
        cache_key_prefix: str = CACHE_KEY_PREFIX,
    ) -> None:
        """
        Initialize the service with its storage adapters.

        Args:
            storage: Adapters of the configured runtime target
            path_policy: Path rules, loaded from notes.yaml when omitted
            cache_key_prefix: Prefix of note cache keys
        """
        self._storage = storage
        self._path_policy = path_policy or PathPolicy.from_config()
        self._cache_key_prefix = cache_key_prefix
        self._logger = get_logger(self.__class__.__module__)

    @property
    def storage(self) -> Storage:
        """Get the storage adapters."""
        return self._storage

    @property
    def path_policy(self) -> PathPolicy:
        return self._path_policy

    def cache_key(self, path: str) -> str:
        return f"{self._cache_key_prefix}{path}"

    async def _invalidate(self, path: str) -> None:
        """Drop the cached view of path. Issued only after the store write returned."""
        await self._storage.cache.delete(self.cache_key(path))

    async def _hash_password(self, password: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(get_io_pool(), hash_password, password)

    async def _verify_password(self, password: str, password_hash: str) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(get_io_pool(), verify_password, password, password_hash)

    def _validate_required(
        self,
        fields: dict[str, Any],
        field_names: list[str],
        message: str = "Required fields missing",
    ) -> None:
        """
        Validate that required fields are present and not empty.

        Raises:
            ValidationError: If any required field is missing or empty
        """
        missing = []
        for name in field_names:
            value = fields.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)

        if missing:
            raise ValidationError(
                message,
                details={"missing_fields": missing},
            )

    def _log_operation(
        self,
        operation: str,
        **context: Any,
    ) -> None:
        """Log a service operation with context."""
        self._logger.info(
            operation,
            extra={"service": self.__class__.__name__, **context},
        )

    def _log_debug(
        self,
        message: str,
        **context: Any,
    ) -> None:
        """Log debug information."""
        self._logger.debug(
            message,
            extra={"service": self.__class__.__name__, **context},
        )
