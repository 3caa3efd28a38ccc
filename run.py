#!/usr/bin/env python3
"""
Application Entry Script.

Main entry point for CloudNote. All functionality is accessible
through command-line options.

Usage:
    python run.py --help
    python run.py --action server --verbose
    python run.py --action health --debug
    python run.py --action config
    python run.py --action backup
"""

import asyncio
import subprocess
import sys
from pathlib import Path

import click

# Ensure project root is in path for absolute imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from cloudnote.core.logging import get_logger, setup_logging


def validate_project_root() -> Path:
    """Validate that we're running from the project root."""
    if not (PROJECT_ROOT / ".project_root").exists():
        click.echo(
            click.style("Error: .project_root not found. Run from project root.", fg="red"),
            err=True,
        )
        sys.exit(1)
    return PROJECT_ROOT


@click.command()
@click.option(
    "--action",
    type=click.Choice(["server", "health", "config", "backup", "info"]),
    default="info",
    help="Action to perform.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output (INFO level logging).",
)
@click.option(
    "--debug", "-d",
    is_flag=True,
    help="Enable debug output (DEBUG level logging).",
)
@click.option(
    "--host",
    default=None,
    help="Server host (for server action).",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Server port (for server action).",
)
@click.option(
    "--reload",
    is_flag=True,
    help="Enable auto-reload (for server action).",
)
def main(
    action: str,
    verbose: bool,
    debug: bool,
    host: str | None,
    port: int | None,
    reload: bool,
) -> None:
    """
    CloudNote Entry Point.

    Run the application server, check health, view configuration,
    or write a backup of every note to the blob store.

    Examples:

        # Start development server
        python run.py --action server --reload --verbose

        # Check application health
        python run.py --action health --debug

        # View loaded configuration
        python run.py --action config

        # Back up all notes
        python run.py --action backup

        # Show application info
        python run.py --action info
    """
    validate_project_root()

    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = "WARNING"

    setup_logging(level=log_level, format_type="console")
    logger = get_logger(__name__)

    logger.debug("Starting application", extra={"action": action, "log_level": log_level})

    if action == "server":
        run_server(logger, host, port, reload)
    elif action == "health":
        check_health(logger)
    elif action == "config":
        show_config(logger)
    elif action == "backup":
        run_backup(logger)
    elif action == "info":
        show_info(logger)


def run_server(logger, host: str | None, port: int | None, reload: bool) -> None:
    """Start the FastAPI server with uvicorn."""
    from cloudnote.core.config import get_app_config

    server = get_app_config().application.server
    server_host = host or server.host
    server_port = port or server.port

    logger.info(
        "Starting server",
        extra={"host": server_host, "port": server_port, "reload": reload},
    )

    cmd = [
        sys.executable, "-m", "uvicorn",
        "cloudnote.main:app",
        "--host", server_host,
        "--port", str(server_port),
    ]

    if reload:
        cmd.append("--reload")

    click.echo(f"Starting server at http://{server_host}:{server_port}")
    click.echo("Press Ctrl+C to stop\n")

    try:
        subprocess.run(cmd, check=True)
    except KeyboardInterrupt:
        logger.info("Server stopped")
    except subprocess.CalledProcessError as e:
        logger.error("Server failed to start", extra={"exit_code": e.returncode})
        sys.exit(e.returncode)


def check_health(logger) -> None:
    """Check application health by testing imports and configuration."""
    click.echo("Checking application health...\n")

    checks = []

    try:
        from cloudnote.core.config import get_app_config, get_settings
        from cloudnote.core.exceptions import ApplicationError  # noqa: F401
        checks.append(("Core imports", True, None))
        logger.debug("Core imports successful")
    except ImportError as e:
        checks.append(("Core imports", False, str(e)))
        logger.error("Core imports failed", extra={"error": str(e)})
        get_app_config = get_settings = None

    if get_app_config is not None:
        try:
            app_config = get_app_config()
            backend = app_config.database.storage.backend
            checks.append(("YAML configuration", True, f"App: {app_config.application.name}"))
            checks.append(("Storage backend", True, backend))
            logger.debug("Configuration loaded", extra={"backend": backend})
        except (FileNotFoundError, RuntimeError, ValueError) as e:
            checks.append(("YAML configuration", False, str(e)))
            logger.error("Configuration failed", extra={"error": str(e)})

        try:
            get_settings()
            checks.append(("Environment secrets", True, None))
        except ValueError as e:
            checks.append(("Environment secrets", False, str(e)))
            logger.warning("Environment secrets not configured")

    try:
        from cloudnote.main import create_app
        app = create_app()
        checks.append(("FastAPI application", True, f"Title: {app.title}"))
        logger.debug("FastAPI app loaded", extra={"title": app.title})
    except (ImportError, RuntimeError, ValueError) as e:
        checks.append(("FastAPI application", False, str(e)))
        logger.error("FastAPI app failed", extra={"error": str(e)})

    click.echo("Health Check Results:")
    click.echo("-" * 50)

    all_passed = True
    for name, passed, detail in checks:
        status = click.style("✓ PASS", fg="green") if passed else click.style("✗ FAIL", fg="red")
        detail_str = f" ({detail})" if detail else ""
        click.echo(f"  {status}  {name}{detail_str}")
        if not passed:
            all_passed = False

    click.echo("-" * 50)

    if all_passed:
        click.echo(click.style("\nAll checks passed!", fg="green"))
    else:
        click.echo(click.style("\nSome checks failed. See details above.", fg="yellow"))
        click.echo("Note: secrets are read from config/.env (see config/.env.example).")
        sys.exit(1)


def _echo_section(title: str, values: dict) -> None:
    click.echo(f"\n{title}:")
    click.echo("-" * 40)
    for key, value in values.items():
        if isinstance(value, dict):
            click.echo(f"  {key}:")
            for k, v in value.items():
                click.echo(f"    {k}: {v}")
        else:
            click.echo(f"  {key}: {value}")


def show_config(logger) -> None:
    """Display loaded configuration."""
    click.echo("Application Configuration:")

    try:
        from cloudnote.core.config import get_app_config

        app_config = get_app_config()
    except (FileNotFoundError, RuntimeError, ValueError) as e:
        logger.error("Failed to load configuration", extra={"error": str(e)})
        click.echo(click.style(f"Error loading configuration: {e}", fg="red"))
        sys.exit(1)

    _echo_section("Application Settings", app_config.application.model_dump())
    _echo_section("Storage Settings", app_config.database.model_dump())
    _echo_section("Logging Settings", app_config.logging.model_dump())
    _echo_section("Note Settings", app_config.notes.model_dump())

    logger.info("Configuration displayed successfully")


async def _backup() -> dict:
    from cloudnote.services.admin import AdminService
    from cloudnote.storage.factory import create_storage

    storage = await create_storage()
    try:
        return await AdminService(storage).backup()
    finally:
        await storage.close()


def run_backup(logger) -> None:
    """Write a full backup of every note to the configured blob store."""
    from cloudnote.core.exceptions import ApplicationError

    try:
        result = asyncio.run(_backup())
    except ApplicationError as e:
        logger.error("Backup failed", extra={"error": e.message})
        click.echo(click.style(f"Backup failed: {e.message}", fg="red"), err=True)
        sys.exit(1)

    logger.info("Backup written", extra=result)
    click.echo(f"Backup written: {result['filename']} ({result['count']} notes, {result['size']} bytes)")


def show_info(logger) -> None:
    """Display application information."""
    click.echo("CloudNote")
    click.echo("=" * 40)

    try:
        from cloudnote.core.config import get_app_config
        app_config = get_app_config()
        click.echo(f"Name: {app_config.application.name}")
        click.echo(f"Version: {app_config.application.version}")
        click.echo(f"Description: {app_config.application.description}")
        click.echo(f"Storage backend: {app_config.database.storage.backend}")
    except (FileNotFoundError, RuntimeError, ValueError):
        click.echo("Name: CloudNote")

    click.echo()
    click.echo("Available Actions:")
    click.echo("  --action server   Start the server")
    click.echo("  --action health   Check application health")
    click.echo("  --action config   Display configuration")
    click.echo("  --action backup   Back up all notes to the blob store")
    click.echo("  --action info     Show this information")
    click.echo()
    click.echo("Logging Options:")
    click.echo("  --verbose, -v     Enable INFO level logging")
    click.echo("  --debug, -d       Enable DEBUG level logging")
    click.echo()
    click.echo("Examples:")
    click.echo("  python run.py --action server --reload --verbose")
    click.echo("  python run.py --action health --debug")
    click.echo("  python run.py --action backup")

    logger.debug("Info displayed")


if __name__ == "__main__":
    main()
