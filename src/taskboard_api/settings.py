"""Taskboard settings (conventional Pydantic v2)."""

from __future__ import annotations

import json
import secrets
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar
from urllib.parse import urlparse

from pydantic import Field, PrivateAttr, SecretStr, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import DotEnvSettingsSource, EnvSettingsSource

# ---- Defaults ---------------------------------------------------------------

MODULE_DIR = Path(__file__).resolve().parent


def _detect_project_root() -> Path:
    """Pick the directory that actually contains the Alembic assets."""

    candidates = [
        MODULE_DIR.parent.parent,  # source layout: <root>/src/taskboard_api
        MODULE_DIR,
        Path.cwd(),
    ]
    for candidate in candidates:
        try:
            resolved = candidate.expanduser().resolve()
        except OSError:
            continue
        if (resolved / "alembic.ini").exists() and (resolved / "migrations").exists():
            return resolved
    return MODULE_DIR.parent.parent


DEFAULT_PROJECT_ROOT = _detect_project_root()
DEFAULT_ALEMBIC_INI = DEFAULT_PROJECT_ROOT / "alembic.ini"
DEFAULT_DATABASE_URL = "sqlite:///./data/db/taskboard.sqlite"
DEFAULT_CORS_ORIGINS = ["http://localhost:5173"]
DEFAULT_FRONTEND_URL = "http://localhost:5173"
DEFAULT_AI_BASE_URL = "https://generativelanguage.googleapis.com/v1"

_LENIENT_LIST_FIELDS = {"server_cors_origins"}

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


# ---- Helpers ----------------------------------------------------------------

def _parse_duration(value: Any, *, field_name: str) -> timedelta:
    """Accept seconds (int/float/str) or '60s'/'5m'/'1h'/'7d'."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            raise ValueError(f"{field_name} must not be blank")
        try:
            seconds = float(s)
        except ValueError:
            unit = s[-1].lower()
            num = s[:-1].strip()
            if unit not in _UNIT_SECONDS or not num:
                raise ValueError(
                    f"{field_name} must be secs or 'Xs','Xm','Xh','Xd'"
                ) from None
            try:
                seconds = float(num) * _UNIT_SECONDS[unit]
            except ValueError as exc:
                raise ValueError(
                    f"{field_name} must be secs or 'Xs','Xm','Xh','Xd'"
                ) from exc
    else:
        raise TypeError(f"{field_name} must be number, duration string, or timedelta")
    if seconds <= 0:
        raise ValueError(f"{field_name} must be > 0 seconds")
    return timedelta(seconds=seconds)


def _list_from_env(value: Any, *, default: list[str]) -> list[str]:
    """JSON array or comma string; strip empties; dedupe preserving order."""
    if value in (None, "", []):
        items = list(default)
    elif isinstance(value, str):
        s = value.strip()
        if s.startswith("["):
            try:
                parsed = json.loads(s)
            except json.JSONDecodeError as exc:
                raise ValueError("Expected a JSON array") from exc
            if not isinstance(parsed, list):
                raise ValueError("Expected a JSON array")
            items = [str(x).strip() for x in parsed if str(x).strip()]
        else:
            items = [seg.strip() for seg in s.split(",") if seg.strip()]
    elif isinstance(value, (list, tuple, set)):
        items = [str(x).strip() for x in value if str(x).strip()]
    else:
        raise TypeError("Expected string or list")

    seen, out = set(), []
    for x in items:
        if x not in seen:
            seen.add(x)
            out.append(x)
    return out


def _http_url(value: Any, *, field_name: str) -> str | None:
    if value in (None, ""):
        return None
    s = str(value).strip()
    p = urlparse(s)
    if p.scheme not in {"http", "https"} or not p.netloc:
        raise ValueError(f"TASKBOARD_{field_name.upper()} must be an http(s) URL")
    return s.rstrip("/")


# ---- Settings ---------------------------------------------------------------

class _LenientEnvSettingsSource(EnvSettingsSource):
    """Environment source that preserves raw strings for list-like fields."""

    lenient_fields: ClassVar[set[str]] = _LENIENT_LIST_FIELDS

    def prepare_field_value(self, field_name: str, field, value: Any, value_is_complex: bool) -> Any:
        if field_name in self.lenient_fields and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)


class _LenientDotEnvSettingsSource(DotEnvSettingsSource):
    """Dotenv source that preserves raw strings for list-like fields."""

    lenient_fields: ClassVar[set[str]] = _LENIENT_LIST_FIELDS

    def prepare_field_value(self, field_name: str, field, value: Any, value_is_complex: bool) -> Any:
        if field_name in self.lenient_fields and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)


class Settings(BaseSettings):
    """FastAPI settings loaded from TASKBOARD_* environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TASKBOARD_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    _jwt_secret_generated: bool = PrivateAttr(default=False)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        env_source = _LenientEnvSettingsSource(
            settings_cls,
            case_sensitive=getattr(env_settings, "case_sensitive", None),
            env_prefix=getattr(env_settings, "env_prefix", None),
            env_ignore_empty=getattr(env_settings, "env_ignore_empty", None),
        )
        dotenv_source = _LenientDotEnvSettingsSource(
            settings_cls,
            env_file=getattr(dotenv_settings, "env_file", None),
            case_sensitive=getattr(dotenv_settings, "case_sensitive", None),
            env_prefix=getattr(dotenv_settings, "env_prefix", None),
            env_ignore_empty=getattr(dotenv_settings, "env_ignore_empty", None),
        )
        return (init_settings, env_source, dotenv_source, file_secret_settings)

    # Core
    app_name: str = "Taskboard API"
    app_version: str = "0.1.0"
    debug: bool = False
    api_docs_enabled: bool = True
    docs_url: str = "/docs"
    redoc_url: str = "/redoc"
    openapi_url: str = "/openapi.json"
    logging_level: str = "INFO"
    audit_log_path: Path | None = None

    # Server
    server_host: str = "0.0.0.0"
    server_port: int = Field(4000, ge=1, le=65535)
    server_cors_origins: list[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    frontend_url: str = DEFAULT_FRONTEND_URL
    shutdown_timeout: timedelta = Field(default=timedelta(seconds=5))
    server_proxy_headers_enabled: bool = True
    server_forwarded_allow_ips: str = "127.0.0.1"

    # Paths
    alembic_ini_path: Path = Field(default=DEFAULT_ALEMBIC_INI)

    # Database
    database_url: str = DEFAULT_DATABASE_URL
    database_echo: bool = False
    database_pool_size: int = Field(5, ge=1)
    database_max_overflow: int = Field(10, ge=0)
    database_pool_timeout: int = Field(30, gt=0)
    database_sqlite_busy_timeout_ms: int = Field(30_000, ge=0)

    # JWT
    jwt_secret: SecretStr | None = None
    jwt_algorithm: str = "HS256"
    jwt_access_ttl: timedelta = Field(default=timedelta(days=1))
    jwt_refresh_ttl: timedelta = Field(default=timedelta(days=7))

    # Auth policy
    signup_rate_limit: int = Field(5, ge=1)
    signup_rate_window: timedelta = Field(default=timedelta(seconds=60))
    login_rate_limit: int = Field(5, ge=1)
    login_rate_window: timedelta = Field(default=timedelta(seconds=60))
    password_reset_ttl: timedelta = Field(default=timedelta(hours=1))

    # Email
    smtp_host: str | None = None
    smtp_port: int = Field(587, ge=1, le=65535)
    smtp_username: str | None = None
    smtp_password: SecretStr | None = None
    smtp_use_tls: bool = True
    email_from: str = "Taskboard <no-reply@taskboard.local>"

    # Push
    push_gateway_url: str | None = None
    push_timeout: timedelta = Field(default=timedelta(seconds=10))

    # Text generation
    ai_api_key: SecretStr | None = None
    ai_model: str = "gemini-2.5-flash"
    ai_base_url: str = DEFAULT_AI_BASE_URL
    ai_timeout: timedelta = Field(default=timedelta(seconds=30))

    # ---- Validators ----

    @field_validator("logging_level", mode="before")
    @classmethod
    def _v_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v).strip()).upper()
        return s or "INFO"

    @field_validator("server_cors_origins", mode="before")
    @classmethod
    def _v_cors(cls, v: Any) -> list[str]:
        return _list_from_env(v, default=DEFAULT_CORS_ORIGINS)

    @field_validator("server_forwarded_allow_ips", mode="before")
    @classmethod
    def _v_forwarded_allow_ips(cls, v: Any) -> str:
        if v is None:
            return "127.0.0.1"
        raw = str(v).strip()
        if not raw:
            raise ValueError("TASKBOARD_SERVER_FORWARDED_ALLOW_IPS must not be empty.")
        return raw

    @field_validator("frontend_url", "ai_base_url", mode="before")
    @classmethod
    def _v_required_url(cls, v: Any, info: ValidationInfo) -> str:
        url = _http_url(v, field_name=info.field_name)
        if url is None:
            raise ValueError(f"TASKBOARD_{info.field_name.upper()} must not be blank")
        return url

    @field_validator("push_gateway_url", mode="before")
    @classmethod
    def _v_optional_url(cls, v: Any, info: ValidationInfo) -> str | None:
        return _http_url(v, field_name=info.field_name)

    @field_validator("jwt_secret", mode="before")
    @classmethod
    def _v_jwt_secret(cls, v: Any) -> SecretStr | None:
        if v is None:
            return None  # handled in finalize
        raw = v.get_secret_value() if isinstance(v, SecretStr) else str(v or "").strip()
        if raw and len(raw) < 16:
            raise ValueError("TASKBOARD_JWT_SECRET must be at least 16 characters.")
        return SecretStr(raw) if raw else None

    @field_validator(
        "jwt_access_ttl",
        "jwt_refresh_ttl",
        "signup_rate_window",
        "login_rate_window",
        "password_reset_ttl",
        "shutdown_timeout",
        "push_timeout",
        "ai_timeout",
        mode="before",
    )
    @classmethod
    def _v_durations(cls, v: Any, info: ValidationInfo) -> timedelta:
        return _parse_duration(v, field_name=info.field_name)

    @model_validator(mode="after")
    def _finalize(self) -> Settings:
        self.alembic_ini_path = self.alembic_ini_path.expanduser().resolve()
        if self.audit_log_path is not None:
            self.audit_log_path = self.audit_log_path.expanduser().resolve()

        if self.jwt_secret is None or not self.jwt_secret.get_secret_value().strip():
            self.jwt_secret = SecretStr(secrets.token_urlsafe(64))
            self._jwt_secret_generated = True
        return self

    # ---- Convenience ----

    @property
    def jwt_secret_value(self) -> str:
        return self.jwt_secret.get_secret_value()

    @property
    def jwt_secret_generated(self) -> bool:
        return self._jwt_secret_generated


@lru_cache(maxsize=1)
def _build_settings() -> Settings:
    return Settings()


def get_settings() -> Settings:
    return _build_settings()


def reload_settings() -> Settings:
    _build_settings.cache_clear()
    return _build_settings()


__all__ = [
    "DEFAULT_CORS_ORIGINS",
    "DEFAULT_DATABASE_URL",
    "Settings",
    "get_settings",
    "reload_settings",
]
