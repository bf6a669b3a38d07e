"""Tests for the formula tokenizer, parser and evaluator."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from rpg_combat.core.exceptions import (
    FormulaEvaluationError,
    FormulaSyntaxError,
    UnknownIdentifierError,
)
from rpg_combat.engine.formula import (
    TokenType,
    compile_formula,
    resolve_identifier,
    to_rpn,
    tokenize,
)


class TestTokenize:
    """Tests for the tokenizer."""

    def test_basic_tokens(self) -> None:
        """Test numbers, identifiers and operators are split."""
        tokens = tokenize("u.atk * 2.5 + 1")
        assert [t.type for t in tokens] == [
            TokenType.IDENTIFIER,
            TokenType.OPERATOR,
            TokenType.NUMBER,
            TokenType.OPERATOR,
            TokenType.NUMBER,
        ]
        assert tokens[0].text == "u.atk"
        assert tokens[2].value == 2.5

    def test_unary_minus_becomes_neg(self) -> None:
        """Test a leading minus is the unary operator."""
        tokens = tokenize("-3 - -2")
        assert [t.text for t in tokens] == ["neg", "3", "-", "neg", "2"]

    def test_unary_plus_dropped(self) -> None:
        """Test a unary plus produces no token."""
        assert [t.text for t in tokenize("+4")] == ["4"]

    def test_function_token(self) -> None:
        """Test a known name before a parenthesis is a function."""
        tokens = tokenize("max(1, 2)")
        assert tokens[0].type == TokenType.FUNCTION
        assert tokens[2].type == TokenType.NUMBER

    def test_unknown_function(self) -> None:
        """Test unknown functions are rejected at tokenize time."""
        with pytest.raises(FormulaSyntaxError) as exc_info:
            tokenize("explode(3)")
        assert exc_info.value.details["position"] == 0

    def test_unexpected_character(self) -> None:
        """Test stray characters are rejected with their position."""
        with pytest.raises(FormulaSyntaxError) as exc_info:
            tokenize("1 $ 2")
        assert exc_info.value.details["position"] == 2


class TestToRpn:
    """Tests for the shunting-yard parser."""

    def test_precedence(self) -> None:
        """Test multiplication binds tighter than addition."""
        rpn = to_rpn(tokenize("1 + 2 * 3"))
        assert [t.text for t in rpn] == ["1", "2", "3", "*", "+"]

    def test_parentheses(self) -> None:
        """Test parentheses override precedence."""
        rpn = to_rpn(tokenize("(1 + 2) * 3"))
        assert [t.text for t in rpn] == ["1", "2", "+", "3", "*"]

    def test_function_arity(self) -> None:
        """Test function tokens carry their argument count."""
        rpn = to_rpn(tokenize("max(1, 2, 3)"))
        assert rpn[-1].text == "max"
        assert rpn[-1].arity == 3

    @pytest.mark.parametrize(
        "expression",
        ["(1 + 2", "1 + 2)", "1 +", "2 3", "()", "", "floor(1, 2)", "max()", "1, 2"],
    )
    def test_malformed(self, expression: str) -> None:
        """Test malformed expressions raise syntax errors."""
        with pytest.raises(FormulaSyntaxError):
            to_rpn(tokenize(expression), expression)


class TestEvaluation:
    """Tests for compiled formula evaluation."""

    def test_round_trip_example(self, make_actor: Callable[..., Any]) -> None:
        """Test floor(u.atk * 2 - t.def) with atk 10 and def 3."""
        user = make_actor("user", atk=10)
        target = make_actor("target", defense=3)
        formula = compile_formula("floor(u.atk * 2 - t.def)")

        assert formula(user, target) == 17
        assert formula(user, target) == 17

    @pytest.mark.parametrize(
        ("expression", "expected"),
        [
            ("2 ^ 3 ^ 2", 512.0),
            ("-2 + 5", 3.0),
            ("7 % 4", 3.0),
            ("round(2.5)", 3.0),
            ("round(-2.5)", -2.0),
            ("clamp(15, 0, 10)", 10.0),
            ("min(4, 2, 8)", 2.0),
            ("pow(2, 10)", 1024.0),
            ("sqrt(16) + abs(-1)", 5.0),
            ("ceil(1.2) + floor(1.8)", 3.0),
        ],
    )
    def test_operators_and_functions(self, expression: str, expected: float) -> None:
        """Test operator and function semantics."""
        assert compile_formula(expression)(None, None) == pytest.approx(expected)

    def test_stats_prefix_and_percent(self, make_actor: Callable[..., Any]) -> None:
        """Test the optional stats prefix and derived percentages."""
        target = make_actor("target", hp=25, max_hp=100)
        assert compile_formula("t.stats.hp + t.hpPct")(None, target) == pytest.approx(25.25)

    def test_context_values(self) -> None:
        """Test ctx identifiers read the context mapping."""
        formula = compile_formula("ctx.stacks * 2")
        assert formula(None, None, {"stacks": 3}) == 6

    def test_constants(self) -> None:
        """Test PI is available as a constant."""
        assert compile_formula("floor(PI * 100)")(None, None) == 314

    def test_unknown_field(self, make_actor: Callable[..., Any]) -> None:
        """Test unknown actor fields fail at evaluation time."""
        formula = compile_formula("t.mana * 2")
        with pytest.raises(UnknownIdentifierError) as exc_info:
            formula(None, make_actor("target"))
        assert exc_info.value.details["identifier"] == "t.mana"

    def test_unknown_root(self) -> None:
        """Test identifiers must start with u, t or ctx."""
        with pytest.raises(UnknownIdentifierError):
            resolve_identifier("q.hp", None, None)

    def test_missing_actor(self) -> None:
        """Test a missing user cannot be read."""
        with pytest.raises(UnknownIdentifierError):
            compile_formula("u.atk")(None, None)

    def test_division_by_zero(self) -> None:
        """Test arithmetic errors become evaluation errors."""
        with pytest.raises(FormulaEvaluationError):
            compile_formula("1 / 0")(None, None)

    def test_non_finite_result(self) -> None:
        """Test overflowing results are rejected."""
        with pytest.raises(FormulaEvaluationError):
            compile_formula("10 ^ 400")(None, None)
