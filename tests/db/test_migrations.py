"""Alembic migration tests."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, inspect

from taskboard_api.db import metadata
from taskboard_api.db.migrations import run_migrations
from taskboard_api.settings import Settings


def test_upgrade_head_creates_every_table(tmp_path: Path) -> None:
    database_path = tmp_path / "nested" / "db" / "migrated.sqlite"
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite:///{database_path}",
        jwt_secret="migration-secret-0123456789",
    )

    run_migrations(settings)

    assert database_path.exists()
    engine = create_engine(f"sqlite:///{database_path}")
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert set(metadata.tables) <= tables
    assert "alembic_version" in tables


def test_upgrade_is_repeatable(tmp_path: Path) -> None:
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'twice.sqlite'}",
        jwt_secret="migration-secret-0123456789",
    )

    run_migrations(settings)
    run_migrations(settings)
