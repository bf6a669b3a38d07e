"""Custom exception hierarchy for the RPG combat core.

Every error raised by the package inherits from RpgCombatError so callers
can catch everything at the application boundary while keeping the
domain-specific context each subclass records in ``details``.

Gameplay rejections (not enough MP, no valid targets, cooldowns) are not
exceptions. They are reported through ``UseResult.ok`` and the battle log.

Example:
    >>> from rpg_combat.core.exceptions import FormulaSyntaxError
    >>> raise FormulaSyntaxError("Unexpected ')'", expression="1 + )", position=4)
"""

from __future__ import annotations

from typing import Any


class RpgCombatError(Exception):
    """Base exception for all RPG combat errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Formula Exceptions
# =============================================================================


class FormulaError(RpgCombatError):
    """Base exception for formula compilation and evaluation errors."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize formula error with the offending expression.

        Args:
            message: Human-readable error description.
            expression: The formula source text.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class FormulaSyntaxError(FormulaError):
    """Raised when a formula cannot be tokenized or parsed.

    These errors surface at content compile time, never mid-battle.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        position: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize syntax error with source position.

        Args:
            message: Human-readable error description.
            expression: The formula source text.
            position: Character offset of the offending token.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if position is not None:
            combined_details["position"] = position
        super().__init__(message, expression=expression, details=combined_details)


class FormulaEvaluationError(FormulaError):
    """Raised when a compiled formula cannot produce a finite number.

    The action executor and status engine recover from this per
    evaluation: the failure is written to the battle log and the effect
    contributes nothing for that target.
    """


class UnknownIdentifierError(FormulaEvaluationError):
    """Raised when an identifier path does not resolve against its root."""

    def __init__(
        self,
        message: str,
        *,
        identifier: str | None = None,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize unknown identifier error.

        Args:
            message: Human-readable error description.
            identifier: The dotted path that failed to resolve.
            expression: The formula source text.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if identifier is not None:
            combined_details["identifier"] = identifier
        super().__init__(message, expression=expression, details=combined_details)


# =============================================================================
# Content Exceptions
# =============================================================================


class ContentError(RpgCombatError):
    """Base exception for content loading and compilation errors."""


class ContentCompileError(ContentError):
    """Raised when a content entry cannot be compiled to its runtime form."""

    def __init__(
        self,
        message: str,
        *,
        entry_kind: str | None = None,
        entry_id: str | None = None,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize compile error with the entry location.

        Args:
            message: Human-readable error description.
            entry_kind: Content table of the entry (skill, item, status, enemy).
            entry_id: Id of the failing entry.
            path: Location inside the entry, e.g. ``effects[0]``.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if entry_kind:
            combined_details["entry_kind"] = entry_kind
        if entry_id:
            combined_details["entry_id"] = entry_id
        if path:
            combined_details["path"] = path
        super().__init__(message, details=combined_details)


# =============================================================================
# Game Engine Exceptions
# =============================================================================


class GameEngineError(RpgCombatError):
    """Base exception for battle engine errors."""


class InvalidBattleStateError(GameEngineError):
    """Raised when a battle state is structurally inconsistent."""

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid state error.

        Args:
            message: Human-readable error description.
            current_state: Description of the offending state.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_state:
            combined_details["current_state"] = current_state
        super().__init__(message, details=combined_details)


class CombatError(GameEngineError):
    """Raised when combat resolution hits an unrecoverable condition."""

    def __init__(
        self,
        message: str,
        *,
        actor_id: str | None = None,
        turn: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize combat error with actor context.

        Args:
            message: Human-readable error description.
            actor_id: Id of the actor involved.
            turn: Battle turn when the error occurred.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if actor_id:
            combined_details["actor_id"] = actor_id
        if turn is not None:
            combined_details["turn"] = turn
        super().__init__(message, details=combined_details)


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(RpgCombatError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(RpgCombatError):
    """Raised when a content document fails schema validation."""

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Dotted location of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


__all__ = [
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
]
