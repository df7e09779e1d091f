"""
Runtime configuration and logging setup.
Values come straight from the environment the Deployment provides.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping

from sqlalchemy.engine import URL, make_url

DEFAULT_CORS_ORIGINS = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://0.0.0.0:5173",
    "http://[::1]:5173",
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConfigError(ValueError):
    """Raised when an environment variable holds an unusable value."""


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _log_level_env(env: Mapping[str, str]) -> str:
    level = env.get("LOG_LEVEL", "").strip().upper() or "INFO"
    if level not in LOG_LEVELS:
        raise ConfigError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {level!r}")
    return level


def _bool_env(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    mysql_user: str = "user"
    mysql_password: str = ""
    mysql_host: str = "localhost"
    mysql_port: int = 3306
    mysql_database: str = "db_test"
    port: int = 5000
    database_url_override: str | None = None
    log_level: str = "INFO"
    reload: bool = False
    cors_origins: tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        origins = tuple(o.strip() for o in env.get("CORS_ORIGINS", "").split(",") if o.strip())
        return cls(
            mysql_user=env.get("MYSQLUSER", "user"),
            mysql_password=env.get("MYSQLPASSWORD", ""),
            mysql_host=env.get("MYSQLHOST", "localhost"),
            mysql_port=_int_env(env, "MYSQLPORT", 3306),
            mysql_database=env.get("MYSQLDATABASE", "db_test"),
            port=_int_env(env, "PORT", 5000),
            database_url_override=env.get("DATABASE_URL") or None,
            log_level=_log_level_env(env),
            reload=_bool_env(env, "RELOAD"),
            cors_origins=origins or DEFAULT_CORS_ORIGINS,
        )

    def database_url(self) -> URL:
        """SQLAlchemy URL for the pool. DATABASE_URL wins over the MYSQL* values."""
        if self.database_url_override:
            return make_url(self.database_url_override)
        return URL.create(
            "mysql+pymysql",
            username=self.mysql_user,
            password=self.mysql_password or None,
            host=self.mysql_host,
            port=self.mysql_port,
            database=self.mysql_database,
        )


_settings: Settings | None = None


def set_settings(settings: Settings | None) -> None:
    """Override process settings. None means re-read the environment on next access."""
    global _settings
    _settings = settings


def get_settings() -> Settings:
    """Return the current settings, reading the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
