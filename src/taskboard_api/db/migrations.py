"""Programmatic Alembic runner for Taskboard migrations."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from alembic import command
from alembic.config import Config
from sqlalchemy.engine import make_url

from taskboard_api.settings import Settings, get_settings

from .database import DatabaseConfig, _ensure_sqlite_parent_dir, build_sync_url


@contextmanager
def alembic_config(settings: Settings | None = None) -> Iterator[Config]:
    resolved = settings or get_settings()
    alembic_ini = resolved.alembic_ini_path
    migrations_dir = alembic_ini.parent / "migrations"
    if not alembic_ini.exists():
        raise FileNotFoundError(f"Alembic config not found at {alembic_ini}")
    if not migrations_dir.exists():
        raise FileNotFoundError(f"Alembic migrations not found at {migrations_dir}")

    alembic_cfg = Config(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str(migrations_dir))
    alembic_cfg.attributes["settings"] = resolved
    alembic_cfg.attributes["configure_logger"] = False
    # ConfigParser treats % as interpolation; escape to preserve URL encoding.
    url = build_sync_url(DatabaseConfig.from_settings(resolved))
    if make_url(url).get_backend_name() == "sqlite":
        _ensure_sqlite_parent_dir(make_url(url))
    alembic_cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    yield alembic_cfg


def run_migrations(settings: Settings | None = None, *, revision: str = "head") -> None:
    with alembic_config(settings) as alembic_cfg:
        command.upgrade(alembic_cfg, revision)


__all__ = ["alembic_config", "run_migrations"]
