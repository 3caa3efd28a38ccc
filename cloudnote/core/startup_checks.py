"""
Startup Security Validation.

Checks security invariants before the application accepts traffic.
If any check fails, the application refuses to start with a clear
error message.

Called during FastAPI lifespan initialization.
"""

from cloudnote.core.config import AppConfig, Settings, get_app_config, get_settings
from cloudnote.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ADMIN_PASSWORDS = frozenset({"admin", "admin123", "password", "changeme"})


class StartupSecurityError(RuntimeError):
    """Raised when a startup security check fails."""

    pass


def run_startup_checks(
    app_config: AppConfig | None = None,
    settings: Settings | None = None,
) -> None:
    """
    Validate all security invariants at startup.

    Raises:
        StartupSecurityError: If any check fails
    """
    app_config = app_config or get_app_config()
    settings = settings or get_settings()
    environment = app_config.application.environment
    is_production = environment == "production"

    errors: list[str] = []

    _check_secret_strength(settings, app_config, errors)
    _check_admin_credentials(settings, errors)
    _check_production_safety(app_config, settings, is_production, errors)

    if errors:
        for error in errors:
            logger.error("Startup security check failed", extra={"check": error})
        raise StartupSecurityError(
            f"Startup blocked: {len(errors)} security check(s) failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    logger.info(
        "Startup security checks passed",
        extra={"environment": environment, "checks_run": 3},
    )


def _check_secret_strength(settings: Settings, app_config: AppConfig, errors: list[str]) -> None:
    """Validate that the JWT signing secret meets the minimum length."""
    jwt_min = app_config.security.secrets_validation.jwt_secret_min_length
    if len(settings.jwt_secret) < jwt_min:
        errors.append(
            f"JWT_SECRET is {len(settings.jwt_secret)} chars, "
            f"minimum is {jwt_min}"
        )


def _check_admin_credentials(settings: Settings, errors: list[str]) -> None:
    """Admin login must be possible and non-trivial."""
    if not settings.admin_user:
        errors.append("ADMIN_USER is empty")
    if not settings.admin_password:
        errors.append("ADMIN_PASSWORD is empty")


def _check_production_safety(
    app_config: AppConfig,
    settings: Settings,
    is_production: bool,
    errors: list[str],
) -> None:
    """Validate production environment safety constraints."""
    if not is_production:
        return

    app = app_config.application
    if app.debug:
        errors.append("debug is true in production environment")

    if app.docs_enabled:
        errors.append("docs_enabled is true in production environment")

    if "*" in app.cors.origins:
        errors.append("CORS origins contain '*' in production environment")

    if settings.admin_password.lower() in DEFAULT_ADMIN_PASSWORDS:
        errors.append("ADMIN_PASSWORD is a well-known default in production environment")
