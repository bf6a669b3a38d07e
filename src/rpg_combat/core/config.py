"""Configuration management for the RPG combat core.

Application settings come from pydantic-settings: environment variables,
an optional ``.env`` file, and keyword overrides. Game balance is not
configured here; it travels with the loaded content (``GameConfig.balance``)
and is passed explicitly to the engine.

Example:
    >>> from rpg_combat.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.engine.default_rng_seed
    1

Environment Variables:
    RPG_COMBAT_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    RPG_COMBAT_LOG_JSON: Render diagnostics as JSON lines
    RPG_COMBAT_CONTENT_PATH: Path to the JSON game content document
    RPG_COMBAT_ENGINE_DEFAULT_RNG_SEED: Seed for battles created without one
    RPG_COMBAT_ENGINE_STRICT_CONTENT: Abort content loading on the first bad entry
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rpg_combat.core.exceptions import ConfigurationError


class EngineSettings(BaseSettings):
    """Configuration for battle engine behavior.

    Attributes:
        default_rng_seed: Seed used when a battle is created without one.
        strict_content: Abort the whole content compile on the first error.
        max_log_lines: Display hint for presentation layers.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_COMBAT_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_rng_seed: int = Field(
        default=1,
        ge=0,
        lt=2**32,
        description="Seed for battles created without an explicit seed",
    )
    strict_content: bool = Field(
        default=True,
        description="Abort content compilation on the first failing entry",
    )
    max_log_lines: int | None = Field(
        default=None,
        ge=1,
        description="Number of battle log lines a presentation layer should show",
    )


class Settings(BaseSettings):
    """Main settings object.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Diagnostic logging level.
        log_json: Render diagnostics as JSON.
        content_path: JSON game content document to load by default.
        engine: Battle engine settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_COMBAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="RPG Combat Core",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Render diagnostics as JSON lines",
    )
    content_path: Path | None = Field(
        default=None,
        description="Path to the JSON game content document",
    )

    engine: EngineSettings = Field(default_factory=EngineSettings)

    @model_validator(mode="after")
    def validate_content_path(self) -> "Settings":
        """Reject a content path that names a directory.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If content_path is an existing directory.
        """
        if self.content_path is not None and self.content_path.is_dir():
            raise ConfigurationError(
                f"content_path must point at a JSON file, got directory {self.content_path}",
                config_key="content_path",
            )
        return self

    @property
    def effective_log_level(self) -> str:
        """Log level after applying debug mode."""
        return "DEBUG" if self.debug else self.log_level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the settings singleton.

    Returns:
        The cached Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "EngineSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
