"""Deterministic random number source stored on the battle state.

A 32-bit linear congruential generator. The seed lives in
``BattleState.rng_seed`` and advances exactly once per draw, so replaying
the same seed and the same sequence of calls reproduces a battle exactly.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from rpg_combat.models.battle import BattleState


LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
LCG_MODULUS = 2**32


def next_seed(seed: int) -> int:
    """Advance an LCG state by one step."""
    return (seed * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS


def draw(state: BattleState) -> float:
    """Advance the battle's seed and return a float in ``[0, 1)``.

    Args:
        state: Battle whose ``rng_seed`` is advanced in place.

    Returns:
        The new seed divided by 2**32.

    Example:
        >>> state.rng_seed = 123
        >>> round(draw(state), 4)
        0.2837
    """
    state.rng_seed = next_seed(state.rng_seed)
    return state.rng_seed / LCG_MODULUS


@contextmanager
def preserved_seed(state: BattleState) -> Iterator[None]:
    """Run a block without consuming randomness.

    Used for previews (AI planning, target listing) that may call the
    resolver but must not change what the real action will roll.
    """
    saved = state.rng_seed
    try:
        yield
    finally:
        state.rng_seed = saved


__all__ = [
    "LCG_MULTIPLIER",
    "LCG_INCREMENT",
    "LCG_MODULUS",
    "next_seed",
    "draw",
    "preserved_seed",
]
