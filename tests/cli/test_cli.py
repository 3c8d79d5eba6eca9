"""CLI command tests."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from typer.testing import CliRunner

from taskboard_api import cli
from taskboard_api.settings import reload_settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TASKBOARD_JWT_SECRET", "cli-secret-0123456789abcdef")
    monkeypatch.setenv("TASKBOARD_DATABASE_URL", f"sqlite:///{tmp_path / 'cli.sqlite'}")
    reload_settings()
    yield
    monkeypatch.undo()
    reload_settings()


def test_no_command_prints_help() -> None:
    result = runner.invoke(cli.app, [])

    assert result.exit_code == 0
    assert "start" in result.output
    assert "migrate" in result.output


def test_start_runs_uvicorn_factory(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []
    monkeypatch.setattr(cli.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))
    monkeypatch.setenv("TASKBOARD_SHUTDOWN_TIMEOUT", "7s")
    reload_settings()

    result = runner.invoke(cli.app, ["start", "--port", "4500"])

    assert result.exit_code == 0, result.output
    assert "http://0.0.0.0:4500" in result.output
    (args, kwargs), = calls
    assert args == ("taskboard_api.main:create_app",)
    assert kwargs["factory"] is True
    assert kwargs["port"] == 4500
    assert kwargs["timeout_graceful_shutdown"] == 7
    assert kwargs["proxy_headers"] is True
    assert kwargs["forwarded_allow_ips"] == "127.0.0.1"


def test_start_passes_trusted_proxy_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(cli.uvicorn, "run", lambda *args, **kwargs: calls.append(kwargs))
    monkeypatch.setenv("TASKBOARD_SERVER_PROXY_HEADERS_ENABLED", "false")
    monkeypatch.setenv("TASKBOARD_SERVER_FORWARDED_ALLOW_IPS", "10.0.0.1,10.0.0.2")
    reload_settings()

    result = runner.invoke(cli.app, ["start"])

    assert result.exit_code == 0, result.output
    (kwargs,) = calls
    assert kwargs["proxy_headers"] is False
    assert kwargs["forwarded_allow_ips"] == "10.0.0.1,10.0.0.2"


def test_migrate_applies_requested_revision(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[str] = []
    monkeypatch.setattr(
        cli, "run_migrations", lambda settings, revision="head": seen.append(revision)
    )

    result = runner.invoke(cli.app, ["migrate"])

    assert result.exit_code == 0, result.output
    assert seen == ["head"]
    assert "Database migrated to head" in result.output


def test_migrate_creates_database(tmp_path) -> None:
    result = runner.invoke(cli.app, ["migrate"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "cli.sqlite").exists()
