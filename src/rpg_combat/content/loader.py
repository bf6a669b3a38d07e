"""Load game content documents from dicts or JSON files.

Example:
    >>> config = load_game_config("content/game.json")
    >>> content = compile_content(config)
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from rpg_combat.content.compiler import compile_content
from rpg_combat.core.config import get_settings
from rpg_combat.core.exceptions import ConfigurationError, ValidationError
from rpg_combat.core.logging import get_logger
from rpg_combat.models.content import GameConfig


if TYPE_CHECKING:
    from rpg_combat.core.config import Settings
    from rpg_combat.models.runtime import RuntimeContent


logger = get_logger(__name__)


def parse_game_config(data: Mapping[str, Any]) -> GameConfig:
    """Validate a raw content document.

    Missing tables and balance keys take their defaults.

    Args:
        data: Decoded JSON document.

    Returns:
        The validated GameConfig.

    Raises:
        ValidationError: If the document does not match the schema. The
            first failing location is reported as ``field_name``.
    """
    try:
        return GameConfig.model_validate(dict(data))
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "<root>"
        value = first.get("input")
        raise ValidationError(
            f"Invalid game config at {location}: {first['msg']}",
            field_name=location,
            invalid_value=value if isinstance(value, str | int | float | bool) else None,
            details={"error_count": exc.error_count()},
        ) from exc


def load_game_config(path: str | Path) -> GameConfig:
    """Read and validate a JSON content document.

    Raises:
        ConfigurationError: If the file does not exist.
        ValidationError: If the file is not a valid content document.
    """
    source = Path(path)
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(
            f"Content file not found: {source}",
            config_key="content_path",
        ) from exc
    except json.JSONDecodeError as exc:
        raise ValidationError(
            f"Content file {source} is not valid JSON (line {exc.lineno}): {exc.msg}",
            field_name="<root>",
        ) from exc

    if not isinstance(raw, dict):
        raise ValidationError(
            f"Content file {source} must contain a JSON object",
            field_name="<root>",
        )
    config = parse_game_config(raw)
    logger.info("Game config loaded", path=str(source), version=config.version)
    return config


def load_runtime_content(settings: Settings | None = None) -> RuntimeContent:
    """Load and compile the content document named by the settings.

    Raises:
        ConfigurationError: If no content path is configured.
    """
    settings = settings or get_settings()
    if settings.content_path is None:
        raise ConfigurationError(
            "No content document configured (set RPG_COMBAT_CONTENT_PATH)",
            config_key="content_path",
        )
    config = load_game_config(settings.content_path)
    return compile_content(config, strict=settings.engine.strict_content)


__all__ = [
    "parse_game_config",
    "load_game_config",
    "load_runtime_content",
]
