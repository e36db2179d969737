"""Command-line interface for Folio.

This module provides the CLI commands for running and managing
the Folio application.
"""

import asyncio
import json
import sys
import uuid
from datetime import timedelta
from typing import Any, NoReturn

import click

from folio.core.config import get_settings
from folio.core.logging import configure_logging, get_logger


@click.group()
@click.version_option(version="0.1.0", prog_name="Folio")
def cli() -> None:
    """Folio - declarative compositions over workspace collections.

    Settings are read from FOLIO_* environment variables and .env files.
    """


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind to (overrides config)")
@click.option("--port", type=int, default=None, help="Port to bind to (overrides config)")
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Number of worker processes (overrides config)",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
def serve(host: str | None, port: int | None, workers: int | None, reload: bool) -> None:
    """Start the Folio server."""
    import uvicorn

    settings = get_settings()

    bind_host = host or settings.host
    bind_port = port or settings.port
    bind_workers = workers or settings.workers

    # Configure logging before starting server
    configure_logging(settings)

    logger = get_logger(__name__)
    logger.info(
        "Starting Folio server",
        host=bind_host,
        port=bind_port,
        workers=bind_workers,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "folio.infrastructure.api.app:app",
        host=bind_host,
        port=bind_port,
        workers=1 if reload else bind_workers,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


@cli.command()
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
def init_db(force: bool) -> None:
    """Initialize the database.

    Creates all database tables. Use this only in development.
    """
    from folio.infrastructure.persistence.database import get_db_manager, init_database

    settings = get_settings()
    configure_logging(settings)

    if settings.is_production and not force:
        click.echo("ERROR: Running in production mode. Pass --force to create tables.", err=True)
        raise SystemExit(1)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    async def initialize() -> None:
        try:
            await init_database(create_tables=True)
            click.echo("Database initialized successfully.")
        finally:
            await get_db_manager().disconnect()

    asyncio.run(initialize())


@cli.command()
@click.argument("slug")
@click.option("--name", type=str, default=None, help="Display name (defaults to the slug)")
def create_workspace(slug: str, name: str | None) -> None:
    """Create a workspace and print its ID."""
    from folio.infrastructure.persistence.database import get_db_manager
    from folio.infrastructure.persistence.models import WorkspaceModel
    from folio.infrastructure.persistence.repositories import WorkspaceRepository

    configure_logging(get_settings())

    async def create() -> str:
        db = get_db_manager()
        try:
            async with db.session() as session:
                repo = WorkspaceRepository(session)
                if await repo.get_by_slug(slug) is not None:
                    click.echo(f"Error: workspace '{slug}' already exists", err=True)
                    raise SystemExit(1)
                workspace = WorkspaceModel(id=str(uuid.uuid4()), slug=slug, name=name or slug)
                await repo.create(workspace)
                await session.commit()
                return workspace.id
        finally:
            await db.disconnect()

    workspace_id = asyncio.run(create())
    click.echo(workspace_id)


@cli.command()
@click.option("--user-id", type=str, required=True, help="User ID (token subject)")
@click.option("--workspace-id", type=str, required=True, help="Workspace the user belongs to")
@click.option("--email", type=str, required=True, help="User email")
@click.option(
    "--expires-minutes",
    type=int,
    default=None,
    help="Lifetime in minutes (defaults to FOLIO_ACCESS_TOKEN_EXPIRE_MINUTES)",
)
def token(user_id: str, workspace_id: str, email: str, expires_minutes: int | None) -> None:
    """Issue an access token for development and testing."""
    from folio.infrastructure.auth import jwt_service

    expires_delta = timedelta(minutes=expires_minutes) if expires_minutes else None
    click.echo(
        jwt_service.create_access_token(
            user_id=user_id,
            workspace_id=workspace_id,
            email=email,
            expires_delta=expires_delta,
        )
    )


def _parse_params(values: tuple[str, ...]) -> dict[str, Any]:
    params: dict[str, Any] = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=VALUE, got '{item}'", param_hint="--param")
        if name in params:
            existing = params[name]
            params[name] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            params[name] = value
    return params


@cli.command("compile")
@click.argument("config_file", type=click.File("r"))
@click.option("--workspace", "workspace_slug", type=str, required=True, help="Workspace slug")
@click.option(
    "--param",
    "param_values",
    multiple=True,
    help="Runtime param as NAME=VALUE; repeat a name to pass a list",
)
def compile_command(config_file, workspace_slug: str, param_values: tuple[str, ...]) -> None:
    """Compile a composition config and print the SQL it runs.

    CONFIG_FILE is a JSON document ('-' reads stdin). Compile errors are
    printed one per line and the command exits with status 1.
    """
    from folio.application.services.composition_service import CompositionService
    from folio.core.exceptions import FolioError
    from folio.core.query.binding import bind_params, wrap_query_string_params
    from folio.core.query.exceptions import CompilationError
    from folio.infrastructure.persistence.database import get_db_manager
    from folio.infrastructure.persistence.repositories import WorkspaceRepository
    from folio.infrastructure.persistence.sql_builder import SQLBuilder

    configure_logging(get_settings())

    try:
        config = json.load(config_file)
    except json.JSONDecodeError as e:
        click.echo(f"Error: config is not valid JSON: {e}", err=True)
        raise SystemExit(1)
    params = _parse_params(param_values)

    async def run() -> None:
        db = get_db_manager()
        try:
            async with db.session() as session:
                workspace = await WorkspaceRepository(session).get_by_slug(workspace_slug)
                if workspace is None:
                    click.echo(f"Error: workspace '{workspace_slug}' not found", err=True)
                    raise SystemExit(1)

                service = CompositionService(session)
                try:
                    plan = await service.compile_config(workspace.id, config)
                    bound = bind_params(plan, wrap_query_string_params(plan, params))
                    built = SQLBuilder(db.dialect_name).build(plan, bound)
                except CompilationError as e:
                    for error in e.errors:
                        click.echo(f"{error.field}: {error.message} [{error.code}]", err=True)
                    raise SystemExit(1)
                except FolioError as e:
                    click.echo(f"Error: {e.message}", err=True)
                    if e.details:
                        click.echo(json.dumps(e.details, default=str), err=True)
                    raise SystemExit(1)

            click.echo(built.sql)
            click.echo(json.dumps(built.params, indent=2, default=str))
        finally:
            await db.disconnect()

    asyncio.run(run())


@cli.command()
def info() -> None:
    """Display Folio configuration."""
    settings = get_settings()

    click.echo(f"""
Folio v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}
  API Prefix:   {settings.api_prefix}

Server:
  Host:         {settings.host}
  Port:         {settings.port}
  Workers:      {settings.workers}

Database:
  URL:          {settings.database_url}
  Pool Size:    {settings.db_pool_size}
  Echo:         {settings.db_echo}

Compositions:
  Max Limit:    {settings.composition_max_limit}
  Timeout:      {settings.composition_timeout_seconds}s
  Schema TTL:   {settings.schema_cache_ttl_seconds}s

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `folio` command is run
    or when using `python -m folio`.
    """
    cli()


if __name__ == "__main__":
    sys.exit(main())
