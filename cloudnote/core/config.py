"""
Configuration Management.

Loads secrets from config/.env and settings from config/settings/*.yaml.
No hardcoded values in code. All configuration comes from these sources.

Secrets (.env or process environment):
    JWT_SECRET, ADMIN_USER, ADMIN_PASSWORD, DB_PASSWORD, REDIS_PASSWORD

Settings (YAML):
    application.yaml   - App identity, server, cors, pagination
    database.yaml      - Storage backend selection and per-target locations
    logging.yaml       - Logging configuration
    security.yaml      - JWT, password hashing, rate limiting
    notes.yaml         - Path rules and cache policy constants
    concurrency.yaml   - Thread pool size, shutdown drain timing
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from cloudnote.core.config_schema import (
    ApplicationSchema,
    ConcurrencySchema,
    DatabaseSchema,
    LoggingSchema,
    NotesSchema,
    SecuritySchema,
)


def find_project_root() -> Path:
    """Find project root by looking for .project_root marker file."""
    current = Path.cwd()
    while current != current.parent:
        if (current / ".project_root").exists():
            return current
        current = current.parent
    raise RuntimeError("Project root not found. Ensure .project_root file exists.")


def validate_project_root() -> Path:
    """
    Validate that the project root can be found.

    Raises SystemExit with a clear message if .project_root is not found.
    Use this in entry scripts before any configuration loading.
    """
    try:
        return find_project_root()
    except RuntimeError as e:
        raise SystemExit(f"Error: {e}") from e


def load_yaml_config(filename: str) -> dict[str, Any]:
    """Load a YAML configuration file from config/settings/."""
    project_root = find_project_root()
    config_path = project_root / "config" / "settings" / filename

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def resolve_project_path(configured_path: str) -> Path:
    """Resolve a path from YAML relative to the project root (absolute paths pass through)."""
    path = Path(configured_path)
    if path.is_absolute():
        return path
    return find_project_root() / path


class Settings(BaseSettings):
    """Secrets loaded from config/.env. Only passwords, tokens, and keys."""

    jwt_secret: str
    admin_user: str = "admin"
    admin_password: str
    db_password: str = ""
    redis_password: str = ""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def _load_validated(schema_cls: type, filename: str) -> Any:
    """Load YAML and validate against schema. Returns typed model instance."""
    raw = load_yaml_config(filename)
    try:
        return schema_cls(**raw)
    except ValidationError as e:
        raise ValueError(
            f"Invalid configuration in {filename}:\n{e}"
        ) from e


class AppConfig:
    """
    Application configuration loaded from YAML files.

    Each YAML file is validated against its Pydantic schema at load time.
    Missing keys, wrong types, or unknown fields raise a clear error
    immediately instead of causing cryptic KeyErrors later.

    Properties return typed Pydantic model instances with attribute access.
    """

    def __init__(self) -> None:
        self._application = _load_validated(ApplicationSchema, "application.yaml")
        self._database = _load_validated(DatabaseSchema, "database.yaml")
        self._logging = _load_validated(LoggingSchema, "logging.yaml")
        self._security = _load_validated(SecuritySchema, "security.yaml")
        self._notes = _load_validated(NotesSchema, "notes.yaml")
        self._concurrency = _load_validated(ConcurrencySchema, "concurrency.yaml")

    @property
    def application(self) -> ApplicationSchema:
        """Application settings."""
        return self._application

    @property
    def database(self) -> DatabaseSchema:
        """Storage backend settings."""
        return self._database

    @property
    def logging(self) -> LoggingSchema:
        """Logging settings."""
        return self._logging

    @property
    def security(self) -> SecuritySchema:
        """Security settings."""
        return self._security

    @property
    def notes(self) -> NotesSchema:
        """Note path rules and cache policy."""
        return self._notes

    @property
    def concurrency(self) -> ConcurrencySchema:
        """Concurrency settings (thread pool, shutdown)."""
        return self._concurrency


@lru_cache
def get_settings() -> Settings:
    """Get cached secrets instance. Resolves .env path from project root."""
    env_path = find_project_root() / "config" / ".env"
    return Settings(_env_file=str(env_path))


@lru_cache
def get_app_config() -> AppConfig:
    """Get cached application configuration."""
    return AppConfig()


def get_database_url(app_config: AppConfig | None = None) -> str:
    """
    Construct the note store URL for the configured storage backend.

    Returns:
        SQLAlchemy async connection URL string.
    """
    app_config = app_config or get_app_config()
    db = app_config.database

    if db.storage.backend == "local":
        sqlite_path = resolve_project_path(db.sqlite.path)
        return f"sqlite+aiosqlite:///{sqlite_path}"

    pg = db.postgres
    password = get_settings().db_password
    return f"postgresql+asyncpg://{pg.user}:{password}@{pg.host}:{pg.port}/{pg.name}"


def get_redis_url(app_config: AppConfig | None = None) -> str:
    """
    Construct Redis URL from YAML config and secrets.

    Returns:
        Redis connection URL string.
    """
    redis = (app_config or get_app_config()).database.redis
    password = get_settings().redis_password
    return f"redis://:{password}@{redis.host}:{redis.port}/{redis.db}"
