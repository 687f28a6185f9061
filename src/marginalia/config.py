"""Centralised configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# src/marginalia/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class StoreConfig(BaseModel):
    """Where annotation sets are persisted."""

    backend: Literal["memory", "json", "sql"] = "json"
    path: Path = Path("highlights.json")
    url: str = "sqlite:///highlights.db"


class HighlightConfig(BaseModel):
    """Marker appearance and captured-record options."""

    default_color: str = "#ffeb3b"
    preview_length: int = Field(default=50, ge=1)
    marker_tag: str = "mark"
    marker_class: str = "highlight-span"

    @field_validator("marker_tag")
    @classmethod
    def _tag_is_lowercase_name(cls, value: str) -> str:
        if not value.isalnum():
            msg = f"marker_tag must be a plain element name, got {value!r}"
            raise ValueError(msg)
        return value.lower()


class RenderConfig(BaseModel):
    """Render pipeline toggles."""

    wrap_mode: Literal["auto", "original"] = "auto"
    markdown_extensions: tuple[str, ...] = (".md", ".markdown")


class AppConfig(BaseModel):
    """Application runtime configuration."""

    log_dir: Path = Path("logs")


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``STORE__BACKEND``, ``HIGHLIGHT__DEFAULT_COLOR``, ``RENDER__WRAP_MODE``.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    store: StoreConfig = StoreConfig()
    highlight: HighlightConfig = HighlightConfig()
    render: RenderConfig = RenderConfig()
    app: AppConfig = AppConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.info("Settings: no .env file found, using env vars and defaults")

    return settings
