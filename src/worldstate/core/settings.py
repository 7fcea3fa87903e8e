"""
Centralized settings for the worldstate pipeline.

All fields can be set via ``WORLDSTATE_*`` environment variables (e.g.
``WORLDSTATE_IMAGE_PROVIDER=http``) or a ``.env`` file in the working
directory.

Tags:
    worldstate, configuration, settings, pydantic
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorldStateSettings(BaseSettings):
    """Pipeline configuration.

    Fields
    ──────
    log_level           : structlog log level
    log_json            : force JSON (True) / console (False) output; None = auto
    data_dir            : root for the local object store and the index db
    quote_base_url      : DexScreener-compatible token endpoint
    image_provider      : ``mock`` or ``http``
    public_path_prefix  : prefix of public artifact URLs
    generation_rate     : fraction of minutes that produce an image (cost model)
    """

    model_config = SettingsConfigDict(
        env_prefix="WORLDSTATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".worldstate",
        description="Persistent data directory",
    )
    database_path: Path | None = Field(
        default=None, description="Archive index database (default: data_dir/archive.db)"
    )
    object_store_dir: Path | None = Field(
        default=None, description="Local object store root (default: data_dir/objects)"
    )
    public_path_prefix: str = "/api/r2"

    # ── Market data ──────────────────────────────────────────────
    quote_base_url: str = "https://api.dexscreener.com/latest/dex/tokens"
    quote_timeout: float = 10.0

    # ── Image generation ─────────────────────────────────────────
    image_provider: Literal["mock", "http"] = "mock"
    image_provider_url: str | None = None
    image_model: str = "runware:100@1"
    image_timeout: float = 15.0

    # ── Cost model ───────────────────────────────────────────────
    generation_rate: float = Field(default=1.0, ge=0.0)

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value

    @property
    def resolved_database_path(self) -> Path:
        return self.database_path or self.data_dir / "archive.db"

    @property
    def resolved_object_store_dir(self) -> Path:
        return self.object_store_dir or self.data_dir / "objects"


_settings_cache: dict[str, WorldStateSettings] = {}


def get_settings(*, _force_reload: bool = False) -> WorldStateSettings:
    """Load, validate, and cache a :class:`WorldStateSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = WorldStateSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    _settings_cache.clear()


__all__ = ["WorldStateSettings", "get_settings", "clear_settings_cache"]
