"""Core infrastructure: configuration, logging, and the exception hierarchy.

Exports:
    Exceptions:
        RpgCombatError: Base exception for all package errors.
        ConfigurationError: Configuration-related errors.
        ValidationError: Content validation errors.

    Configuration:
        Settings: Main settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up diagnostic logging.
        configure_from_settings: Set up logging from Settings.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from rpg_combat.core.config import (
    EngineSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from rpg_combat.core.exceptions import (
    CombatError,
    ConfigurationError,
    ContentCompileError,
    ContentError,
    FormulaError,
    FormulaEvaluationError,
    FormulaSyntaxError,
    GameEngineError,
    InvalidBattleStateError,
    RpgCombatError,
    UnknownIdentifierError,
    ValidationError,
)
from rpg_combat.core.logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
)


__all__ = [
    # Base exception
    "RpgCombatError",
    # Formula exceptions
    "FormulaError",
    "FormulaSyntaxError",
    "FormulaEvaluationError",
    "UnknownIdentifierError",
    # Content exceptions
    "ContentError",
    "ContentCompileError",
    # Game engine exceptions
    "GameEngineError",
    "InvalidBattleStateError",
    "CombatError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Configuration
    "Settings",
    "EngineSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
]
