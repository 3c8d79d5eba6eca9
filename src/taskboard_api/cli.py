"""Taskboard command line: run the API server and apply migrations."""

from __future__ import annotations

import typer
import uvicorn

from taskboard_api.db.migrations import run_migrations
from taskboard_api.settings import get_settings

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Taskboard API CLI (start, migrate).",
)


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command(name="start", help="Start the API server (requires migrations).")
def start(
    host: str | None = typer.Option(None, "--host", help="Host/interface for the API server."),
    port: int | None = typer.Option(None, "--port", help="Port for the API server.", min=1),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
) -> None:
    settings = get_settings()
    host = host or settings.server_host
    port = port or settings.server_port
    typer.echo(f"Starting Taskboard API on http://{host}:{port}")
    uvicorn.run(
        "taskboard_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.logging_level.lower(),
        proxy_headers=settings.server_proxy_headers_enabled,
        forwarded_allow_ips=settings.server_forwarded_allow_ips,
        timeout_graceful_shutdown=int(settings.shutdown_timeout.total_seconds()) or None,
    )


@app.command(name="migrate", help="Apply database migrations up to a revision.")
def migrate(
    revision: str = typer.Argument("head", help="Target Alembic revision."),
) -> None:
    run_migrations(get_settings(), revision=revision)
    typer.echo(f"Database migrated to {revision}")


__all__ = ["app"]
