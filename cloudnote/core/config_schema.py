"""
Configuration Schemas.

Pydantic models defining the expected structure of each YAML config file.
Used by AppConfig to validate configuration at load time. If a YAML file
has missing keys, wrong types, or unknown fields, a clear ValidationError
is raised at startup instead of a cryptic KeyError deep in application code.

Each top-level class corresponds to one file in config/settings/:
    ApplicationSchema  → application.yaml
    DatabaseSchema     → database.yaml
    LoggingSchema      → logging.yaml
    SecuritySchema     → security.yaml
    NotesSchema        → notes.yaml
    ConcurrencySchema  → concurrency.yaml
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _StrictBase(BaseModel):
    """Base with extra='forbid' so unknown YAML keys are caught immediately."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# application.yaml
# =============================================================================


class ServerSchema(_StrictBase):
    host: str
    port: int


class CorsSchema(_StrictBase):
    origins: list[str]


class PaginationSchema(_StrictBase):
    default_limit: int
    max_limit: int


class ApplicationSchema(_StrictBase):
    name: str
    version: str
    description: str
    environment: str
    debug: bool
    docs_enabled: bool
    server: ServerSchema
    cors: CorsSchema
    pagination: PaginationSchema


# =============================================================================
# database.yaml
# =============================================================================


class StorageSchema(_StrictBase):
    backend: Literal["local", "managed"]


class SqliteSchema(_StrictBase):
    path: str
    busy_timeout_ms: int


class BlobsSchema(_StrictBase):
    root: str


class PostgresSchema(_StrictBase):
    host: str
    port: int
    name: str
    user: str
    pool_size: int
    max_overflow: int
    pool_timeout: int
    pool_recycle: int
    echo: bool


class CircuitBreakerSchema(_StrictBase):
    fail_max: int
    timeout_duration: int


class RedisSchema(_StrictBase):
    host: str
    port: int
    db: int
    circuit_breaker: CircuitBreakerSchema


class CacheDefaultsSchema(_StrictBase):
    default_ttl: int
    check_period: int


class DatabaseSchema(_StrictBase):
    storage: StorageSchema
    sqlite: SqliteSchema
    blobs: BlobsSchema
    postgres: PostgresSchema
    redis: RedisSchema
    cache: CacheDefaultsSchema


# =============================================================================
# logging.yaml
# =============================================================================


class ConsoleHandlerSchema(_StrictBase):
    enabled: bool


class FileHandlerSchema(_StrictBase):
    enabled: bool
    path: str
    max_bytes: int
    backup_count: int


class HandlersSchema(_StrictBase):
    console: ConsoleHandlerSchema
    file: FileHandlerSchema


class LoggingSchema(_StrictBase):
    level: str
    format: str
    handlers: HandlersSchema


# =============================================================================
# security.yaml
# =============================================================================


class JwtSchema(_StrictBase):
    algorithm: str
    session_duration_seconds: int
    audience: str


class PasswordsSchema(_StrictBase):
    bcrypt_rounds: int = Field(ge=4, le=31)


class ApiRateLimitSchema(_StrictBase):
    requests_per_minute: int


class RateLimitingSchema(_StrictBase):
    api: ApiRateLimitSchema


class SecretsValidationSchema(_StrictBase):
    jwt_secret_min_length: int


class SecuritySchema(_StrictBase):
    jwt: JwtSchema
    passwords: PasswordsSchema
    rate_limiting: RateLimitingSchema
    secrets_validation: SecretsValidationSchema


# =============================================================================
# notes.yaml
# =============================================================================


class PathSchema(_StrictBase):
    min_length: int = Field(ge=1)
    max_length: int = Field(ge=1)
    reserved: list[str]
    generation_attempts: int = Field(ge=1)

    @model_validator(mode="after")
    def _check_bounds(self) -> "PathSchema":
        if self.min_length > self.max_length:
            raise ValueError("path.min_length must not exceed path.max_length")
        return self


class NoteCacheSchema(_StrictBase):
    key_prefix: str
    min_views: int
    seconds_per_view: int
    min_ttl: int
    max_ttl: int


class NotesSchema(_StrictBase):
    path: PathSchema
    cache: NoteCacheSchema


# =============================================================================
# concurrency.yaml
# =============================================================================


class ThreadPoolSchema(_StrictBase):
    max_workers: int


class ShutdownSchema(_StrictBase):
    drain_seconds: int


class ConcurrencySchema(_StrictBase):
    thread_pool: ThreadPoolSchema
    shutdown: ShutdownSchema
