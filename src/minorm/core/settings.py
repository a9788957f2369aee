"""Centralized settings for minorm.

``OrmSettings`` is the single, validated source of configuration for the
data source factory, the connection layer and the CLI.  Values come from
``MINORM_*`` environment variables or a ``.env`` file.

Fields
──────
database_url : Where ``DataSource.from_url()`` connects by default
echo_sql     : Log every executed statement at debug level
log_level    : structlog log level
log_format   : ``json`` or ``console``
service_name : ``service.name`` stamped on every log line

Examples:
    >>> import os
    >>> os.environ["MINORM_DATABASE_URL"] = "sqlite:///app.db"
    >>> get_settings(_force_reload=True).database_url
    'sqlite:///app.db'

Tags:
    settings, configuration, pydantic, environment, minorm
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OrmSettings(BaseSettings):
    """minorm configuration, read from ``MINORM_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MINORM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///:memory:")
    echo_sql: bool = Field(default=False)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    service_name: str = Field(default="minorm")

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level


_settings_cache: dict[str, OrmSettings] = {}


def get_settings(*, _force_reload: bool = False) -> OrmSettings:
    """Load, validate, and cache an :class:`OrmSettings` instance."""
    if _force_reload or "default" not in _settings_cache:
        _settings_cache["default"] = OrmSettings()
    return _settings_cache["default"]


def clear_settings_cache() -> None:
    """Drop the cached settings (tests, reloading ``.env``)."""
    _settings_cache.clear()


__all__ = [
    "OrmSettings",
    "clear_settings_cache",
    "get_settings",
]
