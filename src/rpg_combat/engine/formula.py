"""Arithmetic formula compiler for effect values.

Content authors write effect amounts as small expressions over the acting
user (``u``), the target (``t``) and an event context bag (``ctx``)::

    floor(u.atk * 2 - t.def)
    clamp(t.maxHp * 0.1, 5, 40)
    ctx.stacks * 3

Compilation happens once, when content is loaded: the expression is
tokenized, converted to Reverse Polish Notation with a shunting-yard
parser, and validated (parentheses, function arity, operand balance).
Syntax problems raise FormulaSyntaxError at that point, never mid-battle.
Evaluation walks the RPN with a value stack and raises
FormulaEvaluationError for unresolvable identifiers or non-finite results.

Example:
    >>> formula = compile_formula("floor(u.atk * 2 - t.def)")
    >>> formula(user, target)
    17.0
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from rpg_combat.core.exceptions import (
    FormulaEvaluationError,
    FormulaSyntaxError,
    UnknownIdentifierError,
)
from rpg_combat.core.logging import get_logger


if TYPE_CHECKING:
    from rpg_combat.models.battle import Actor


logger = get_logger(__name__)


# =============================================================================
# Tokens
# =============================================================================


class TokenType(StrEnum):
    """Lexical token categories."""

    NUMBER = "number"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    FUNCTION = "function"
    LPAREN = "lparen"
    RPAREN = "rparen"
    COMMA = "comma"


@dataclass(frozen=True)
class Token:
    """A lexical token.

    Attributes:
        type: Token category.
        text: Source text (``neg`` for unary minus).
        position: Character offset in the expression.
        value: Parsed value for numbers.
        arity: Argument count for function tokens in RPN output.
    """

    type: TokenType
    text: str
    position: int
    value: float | None = None
    arity: int | None = None


@dataclass(frozen=True)
class OperatorSpec:
    """Precedence, associativity and implementation of an operator."""

    precedence: int
    right_assoc: bool
    arity: int
    apply: Callable[..., float]


@dataclass(frozen=True)
class FunctionSpec:
    """Callable exposed to formulas with its accepted argument counts."""

    min_args: int
    max_args: int | None
    apply: Callable[..., float]


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


OPERATORS: dict[str, OperatorSpec] = {
    "+": OperatorSpec(1, False, 2, lambda a, b: a + b),
    "-": OperatorSpec(1, False, 2, lambda a, b: a - b),
    "*": OperatorSpec(2, False, 2, lambda a, b: a * b),
    "/": OperatorSpec(2, False, 2, lambda a, b: a / b),
    "%": OperatorSpec(2, False, 2, math.fmod),
    "^": OperatorSpec(3, True, 2, math.pow),
    "neg": OperatorSpec(4, True, 1, lambda a: -a),
}

FUNCTIONS: dict[str, FunctionSpec] = {
    "min": FunctionSpec(1, None, min),
    "max": FunctionSpec(1, None, max),
    "floor": FunctionSpec(1, 1, lambda x: float(math.floor(x))),
    "ceil": FunctionSpec(1, 1, lambda x: float(math.ceil(x))),
    "abs": FunctionSpec(1, 1, abs),
    "round": FunctionSpec(1, 1, _round_half_up),
    "sqrt": FunctionSpec(1, 1, math.sqrt),
    "pow": FunctionSpec(2, 2, math.pow),
    "clamp": FunctionSpec(3, 3, _clamp),
}

CONSTANTS: dict[str, float] = {
    "PI": math.pi,
    "E": math.e,
}

_NUMBER_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*")


# =============================================================================
# Tokenizer
# =============================================================================


def tokenize(expression: str) -> list[Token]:
    """Split an expression into tokens.

    A ``-`` where an operand is expected becomes the unary ``neg``
    operator; a unary ``+`` is dropped. An identifier directly followed
    by ``(`` must name a known function.

    Args:
        expression: Formula source text.

    Returns:
        Tokens in source order.

    Raises:
        FormulaSyntaxError: On unknown characters, functions or misplaced operators.
    """
    tokens: list[Token] = []
    length = len(expression)
    expect_operand = True
    i = 0

    while i < length:
        ch = expression[i]

        if ch.isspace():
            i += 1
            continue

        number = _NUMBER_RE.match(expression, i)
        if number:
            text = number.group()
            tokens.append(Token(TokenType.NUMBER, text, i, value=float(text)))
            expect_operand = False
            i = number.end()
            continue

        identifier = _IDENTIFIER_RE.match(expression, i)
        if identifier:
            text = identifier.group()
            end = identifier.end()
            lookahead = end
            while lookahead < length and expression[lookahead].isspace():
                lookahead += 1
            if lookahead < length and expression[lookahead] == "(":
                if text not in FUNCTIONS:
                    raise FormulaSyntaxError(
                        f"Unknown function '{text}'",
                        expression=expression,
                        position=i,
                    )
                tokens.append(Token(TokenType.FUNCTION, text, i))
                expect_operand = True
            else:
                tokens.append(Token(TokenType.IDENTIFIER, text, i))
                expect_operand = False
            i = end
            continue

        if ch in "+-*/%^":
            if expect_operand:
                if ch == "-":
                    tokens.append(Token(TokenType.OPERATOR, "neg", i))
                elif ch != "+":
                    raise FormulaSyntaxError(
                        f"Unexpected operator '{ch}'",
                        expression=expression,
                        position=i,
                    )
            else:
                tokens.append(Token(TokenType.OPERATOR, ch, i))
                expect_operand = True
            i += 1
            continue

        if ch == "(":
            tokens.append(Token(TokenType.LPAREN, ch, i))
            expect_operand = True
        elif ch == ")":
            tokens.append(Token(TokenType.RPAREN, ch, i))
            expect_operand = False
        elif ch == ",":
            tokens.append(Token(TokenType.COMMA, ch, i))
            expect_operand = True
        else:
            raise FormulaSyntaxError(
                f"Unexpected character '{ch}'",
                expression=expression,
                position=i,
            )
        i += 1

    return tokens


# =============================================================================
# Parser
# =============================================================================


@dataclass
class _ParenFrame:
    function: Token | None
    commas: int = 0
    has_content: bool = False


def _should_pop(top: Token, incoming: OperatorSpec) -> bool:
    if top.type != TokenType.OPERATOR:
        return False
    stacked = OPERATORS[top.text]
    if stacked.precedence > incoming.precedence:
        return True
    return stacked.precedence == incoming.precedence and not incoming.right_assoc


def to_rpn(tokens: list[Token], expression: str = "") -> list[Token]:
    """Convert infix tokens to Reverse Polish Notation.

    Args:
        tokens: Output of :func:`tokenize`.
        expression: Source text, used in error details.

    Returns:
        Tokens in evaluation order. Function tokens carry their arity.

    Raises:
        FormulaSyntaxError: On mismatched parentheses, misplaced commas,
            wrong function arity or operand/operator imbalance.
    """
    if not tokens:
        raise FormulaSyntaxError("Empty expression", expression=expression)

    output: list[Token] = []
    stack: list[Token] = []
    frames: list[_ParenFrame] = []
    pending_function: Token | None = None

    for token in tokens:
        if frames and token.type != TokenType.RPAREN:
            frames[-1].has_content = True

        if token.type in (TokenType.NUMBER, TokenType.IDENTIFIER):
            output.append(token)

        elif token.type == TokenType.FUNCTION:
            pending_function = token

        elif token.type == TokenType.LPAREN:
            frames.append(_ParenFrame(function=pending_function))
            pending_function = None
            stack.append(token)

        elif token.type == TokenType.COMMA:
            while stack and stack[-1].type != TokenType.LPAREN:
                output.append(stack.pop())
            if not frames or frames[-1].function is None:
                raise FormulaSyntaxError(
                    "Comma outside of a function call",
                    expression=expression,
                    position=token.position,
                )
            frames[-1].commas += 1

        elif token.type == TokenType.OPERATOR:
            incoming = OPERATORS[token.text]
            while stack and _should_pop(stack[-1], incoming):
                output.append(stack.pop())
            stack.append(token)

        elif token.type == TokenType.RPAREN:
            while stack and stack[-1].type != TokenType.LPAREN:
                output.append(stack.pop())
            if not stack or not frames:
                raise FormulaSyntaxError(
                    "Mismatched ')'",
                    expression=expression,
                    position=token.position,
                )
            stack.pop()
            frame = frames.pop()
            if frame.function is not None:
                arity = frame.commas + 1 if frame.has_content else 0
                _check_arity(frame.function, arity, expression)
                output.append(
                    Token(
                        TokenType.FUNCTION,
                        frame.function.text,
                        frame.function.position,
                        arity=arity,
                    )
                )
            elif not frame.has_content:
                raise FormulaSyntaxError(
                    "Empty parentheses",
                    expression=expression,
                    position=token.position,
                )

    while stack:
        token = stack.pop()
        if token.type == TokenType.LPAREN:
            raise FormulaSyntaxError(
                "Mismatched '('",
                expression=expression,
                position=token.position,
            )
        output.append(token)

    _check_balance(output, expression)
    return output


def _check_arity(function: Token, arity: int, expression: str) -> None:
    spec = FUNCTIONS[function.text]
    too_few = arity < spec.min_args
    too_many = spec.max_args is not None and arity > spec.max_args
    if too_few or too_many:
        expected = (
            f"at least {spec.min_args}"
            if spec.max_args is None
            else str(spec.min_args)
            if spec.min_args == spec.max_args
            else f"{spec.min_args}-{spec.max_args}"
        )
        raise FormulaSyntaxError(
            f"{function.text}() takes {expected} argument(s), got {arity}",
            expression=expression,
            position=function.position,
        )


def _check_balance(rpn: list[Token], expression: str) -> None:
    depth = 0
    for token in rpn:
        if token.type in (TokenType.NUMBER, TokenType.IDENTIFIER):
            depth += 1
            continue
        needed = OPERATORS[token.text].arity if token.type == TokenType.OPERATOR else token.arity
        if needed is None or depth < needed:
            raise FormulaSyntaxError(
                f"Missing operand for '{token.text}'",
                expression=expression,
                position=token.position,
            )
        depth -= needed - 1
    if depth != 1:
        raise FormulaSyntaxError(
            "Malformed expression: operands and operators do not balance",
            expression=expression,
        )


# =============================================================================
# Identifier resolution
# =============================================================================


class FormulaRoot(StrEnum):
    """Root names an identifier path may start with."""

    USER = "u"
    TARGET = "t"
    CONTEXT = "ctx"


_ACTOR_FIELDS: dict[str, Callable[[Actor], float]] = {
    "hp": lambda a: a.stats.hp,
    "maxHp": lambda a: a.stats.max_hp,
    "sta": lambda a: a.stats.sta,
    "maxSta": lambda a: a.stats.max_sta,
    "mp": lambda a: a.stats.mp,
    "maxMp": lambda a: a.stats.max_mp,
    "atk": lambda a: a.stats.atk,
    "def": lambda a: a.stats.defense,
    "lv": lambda a: a.stats.lv,
    "level": lambda a: a.stats.lv,
    "xp": lambda a: a.stats.xp,
    "gold": lambda a: a.stats.gold,
    "hpPct": lambda a: a.hp_pct,
    "staPct": lambda a: a.sta_pct,
    "mpPct": lambda a: a.mp_pct,
    "alive": lambda a: 1.0 if a.alive else 0.0,
}

_MISSING = object()


def _resolve_actor(actor: Actor | None, path: str, name: str, expression: str) -> float:
    if actor is None:
        raise UnknownIdentifierError(
            f"'{name}' refers to a missing actor",
            identifier=name,
            expression=expression,
        )
    field = path.removeprefix("stats.")
    getter = _ACTOR_FIELDS.get(field)
    if getter is None:
        raise UnknownIdentifierError(
            f"Unknown actor field '{name}'",
            identifier=name,
            expression=expression,
        )
    return float(getter(actor))


def _resolve_context(
    context: Mapping[str, Any] | None,
    path: str,
    name: str,
    expression: str,
) -> float:
    value: Any = context if context is not None else {}
    for segment in path.split("."):
        if isinstance(value, Mapping):
            value = value.get(segment, _MISSING)
        else:
            value = getattr(value, segment, _MISSING)
        if value is _MISSING or value is None:
            raise UnknownIdentifierError(
                f"Unknown context value '{name}'",
                identifier=name,
                expression=expression,
            )
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, int | float):
        return float(value)
    raise FormulaEvaluationError(
        f"Context value '{name}' is not numeric",
        expression=expression,
        details={"identifier": name, "type": type(value).__name__},
    )


def resolve_identifier(
    name: str,
    user: Actor | None,
    target: Actor | None,
    context: Mapping[str, Any] | None = None,
    *,
    expression: str = "",
) -> float:
    """Resolve a dotted identifier to a number.

    Args:
        name: Identifier such as ``u.atk``, ``t.stats.def`` or ``ctx.stacks``.
        user: Acting actor bound to ``u``.
        target: Target actor bound to ``t``.
        context: Mapping bound to ``ctx``.
        expression: Source text, used in error details.

    Returns:
        The resolved numeric value.

    Raises:
        UnknownIdentifierError: If the root or path does not resolve.
        FormulaEvaluationError: If the resolved value is not numeric.
    """
    if name in CONSTANTS:
        return CONSTANTS[name]

    root_name, _, path = name.partition(".")
    try:
        root = FormulaRoot(root_name)
    except ValueError:
        raise UnknownIdentifierError(
            f"Unknown identifier '{name}'",
            identifier=name,
            expression=expression,
        ) from None
    if not path:
        raise UnknownIdentifierError(
            f"'{name}' needs a field, e.g. '{name}.hp'",
            identifier=name,
            expression=expression,
        )

    match root:
        case FormulaRoot.USER:
            return _resolve_actor(user, path, name, expression)
        case FormulaRoot.TARGET:
            return _resolve_actor(target, path, name, expression)
        case FormulaRoot.CONTEXT:
            return _resolve_context(context, path, name, expression)


# =============================================================================
# Evaluation
# =============================================================================


def evaluate_rpn(
    rpn: list[Token] | tuple[Token, ...],
    user: Actor | None,
    target: Actor | None,
    context: Mapping[str, Any] | None = None,
    *,
    expression: str = "",
) -> float:
    """Evaluate an RPN token list.

    Args:
        rpn: Output of :func:`to_rpn`.
        user: Actor bound to ``u``.
        target: Actor bound to ``t``.
        context: Mapping bound to ``ctx``.
        expression: Source text, used in error details.

    Returns:
        The finite numeric result.

    Raises:
        FormulaEvaluationError: On unresolvable identifiers, arithmetic
            errors or a non-finite result.
    """
    stack: list[float] = []

    for token in rpn:
        if token.type == TokenType.NUMBER:
            stack.append(float(token.value or 0.0))
            continue
        if token.type == TokenType.IDENTIFIER:
            stack.append(
                resolve_identifier(token.text, user, target, context, expression=expression)
            )
            continue

        if token.type == TokenType.OPERATOR:
            count = OPERATORS[token.text].arity
            apply = OPERATORS[token.text].apply
        else:
            count = token.arity or 0
            apply = FUNCTIONS[token.text].apply
        if len(stack) < count:
            raise FormulaEvaluationError(
                f"Stack underflow at '{token.text}'",
                expression=expression,
            )
        args = stack[len(stack) - count :]
        del stack[len(stack) - count :]
        try:
            stack.append(float(apply(*args)))
        except (ArithmeticError, ValueError) as exc:
            raise FormulaEvaluationError(
                f"Cannot evaluate '{token.text}': {exc}",
                expression=expression,
            ) from exc

    if len(stack) != 1:
        raise FormulaEvaluationError("Malformed expression", expression=expression)
    result = stack[0]
    if not math.isfinite(result):
        raise FormulaEvaluationError(
            f"Formula produced a non-finite result ({result})",
            expression=expression,
        )
    return result


@dataclass(frozen=True)
class CompiledFormula:
    """A parsed formula ready for repeated evaluation.

    Attributes:
        expression: Original source text.
        rpn: Validated RPN token sequence.
    """

    expression: str
    rpn: tuple[Token, ...]

    def __call__(
        self,
        user: Actor | None,
        target: Actor | None,
        context: Mapping[str, Any] | None = None,
    ) -> float:
        """Evaluate against a user, target and context."""
        return evaluate_rpn(self.rpn, user, target, context, expression=self.expression)


def compile_formula(expression: str) -> CompiledFormula:
    """Tokenize and parse a formula once.

    Args:
        expression: Formula source text.

    Returns:
        A callable CompiledFormula.

    Raises:
        FormulaSyntaxError: If the expression is malformed.
    """
    source = expression.strip()
    rpn = to_rpn(tokenize(source), source)
    logger.debug("Formula compiled", expression=source, rpn_length=len(rpn))
    return CompiledFormula(expression=source, rpn=tuple(rpn))


__all__ = [
    "TokenType",
    "Token",
    "OperatorSpec",
    "FunctionSpec",
    "OPERATORS",
    "FUNCTIONS",
    "CONSTANTS",
    "FormulaRoot",
    "tokenize",
    "to_rpn",
    "resolve_identifier",
    "evaluate_rpn",
    "CompiledFormula",
    "compile_formula",
]
