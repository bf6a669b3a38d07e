"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

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


class TestRpgCombatError:
    """Tests for the base RpgCombatError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = RpgCombatError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = RpgCombatError(
            "Test error",
            details={"key": "value", "count": 42},
        )
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        exc = RpgCombatError("Test", details={"x": 1})
        repr_str = repr(exc)
        assert "RpgCombatError" in repr_str
        assert "Test" in repr_str
        assert "x" in repr_str


class TestFormulaExceptions:
    """Tests for formula exceptions."""

    def test_syntax_error_with_position(self) -> None:
        """Test FormulaSyntaxError records expression and position."""
        exc = FormulaSyntaxError("Mismatched ')'", expression="1 + )", position=4)
        assert exc.details["expression"] == "1 + )"
        assert exc.details["position"] == 4

    def test_unknown_identifier(self) -> None:
        """Test UnknownIdentifierError records the identifier."""
        exc = UnknownIdentifierError("Unknown identifier", identifier="t.mana")
        assert exc.details["identifier"] == "t.mana"

    def test_inheritance(self) -> None:
        """Test syntax and evaluation errors are distinct branches."""
        assert issubclass(FormulaSyntaxError, FormulaError)
        assert issubclass(UnknownIdentifierError, FormulaEvaluationError)
        assert issubclass(FormulaEvaluationError, FormulaError)
        assert not issubclass(UnknownIdentifierError, FormulaSyntaxError)
        assert issubclass(FormulaError, RpgCombatError)


class TestContentExceptions:
    """Tests for content exceptions."""

    def test_compile_error_context(self) -> None:
        """Test ContentCompileError records the failing entry."""
        exc = ContentCompileError(
            "Invalid formula",
            entry_kind="skill",
            entry_id="slash",
            path="effects[0]",
        )
        assert exc.details == {
            "entry_kind": "skill",
            "entry_id": "slash",
            "path": "effects[0]",
        }
        assert isinstance(exc, ContentError)


class TestGameEngineExceptions:
    """Tests for game engine exceptions."""

    def test_invalid_battle_state(self) -> None:
        """Test InvalidBattleStateError with state description."""
        exc = InvalidBattleStateError("Bad order", current_state="order")
        assert exc.details["current_state"] == "order"
        assert isinstance(exc, GameEngineError)

    def test_combat_error_context(self) -> None:
        """Test CombatError with actor and turn."""
        exc = CombatError("Unknown actor", actor_id="e1", turn=3)
        assert exc.details["actor_id"] == "e1"
        assert exc.details["turn"] == 3

    def test_combat_error_turn_zero_kept(self) -> None:
        """Test that a falsy turn number is still recorded."""
        exc = CombatError("Oops", turn=0)
        assert exc.details["turn"] == 0


class TestConfigurationExceptions:
    """Tests for configuration and validation exceptions."""

    def test_configuration_error_key(self) -> None:
        """Test ConfigurationError with config key."""
        exc = ConfigurationError("Missing", config_key="content_path")
        assert exc.details["config_key"] == "content_path"

    def test_validation_error_fields(self) -> None:
        """Test ValidationError with field and value."""
        exc = ValidationError("Bad value", field_name="skills.slash", invalid_value=5)
        assert exc.details["field_name"] == "skills.slash"
        assert exc.details["invalid_value"] == 5

    def test_catch_all(self) -> None:
        """Test that every package error is caught by the base class."""
        with pytest.raises(RpgCombatError):
            raise ValidationError("Bad value")
