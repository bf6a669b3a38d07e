"""Pure combat formulas: hit, crit and damage multipliers.

All functions read the balance table they were built with and never touch
battle state, so the same inputs always give the same numbers.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from rpg_combat.models.content import Balance


if TYPE_CHECKING:
    from rpg_combat.models.battle import Actor


LEVEL_HIT_STEP = 0.02
STAT_HIT_STEP = 0.01
LEVEL_CRIT_STEP = 0.01
STAT_CRIT_STEP = 0.005
NEUTRAL_ELEMENT = "neutral"


def clamp(value: float, low: float, high: float) -> float:
    """Clamp a value to ``[low, high]``; non-finite values map to ``low``."""
    if not math.isfinite(value):
        return low
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up."""
    return int(math.floor(value + 0.5))


class CombatRules:
    """Combat math bound to one balance table.

    Example:
        >>> rules = CombatRules(Balance())
        >>> rules.element_multiplier(None, goblin)
        1.0
    """

    def __init__(self, balance: Balance | None = None) -> None:
        """Initialize with a balance table.

        Args:
            balance: Balance constants; library defaults when omitted.
        """
        self.balance = balance or Balance()

    def hit_chance(self, user: Actor, target: Actor) -> float:
        """Chance that ``user`` hits ``target``.

        ``BASE_HIT + 0.02 * level gap + 0.01 * (atk - def)`` clamped to
        ``[DODGE_FLOOR, HIT_CEIL]``.
        """
        raw = (
            self.balance.base_hit
            + (user.stats.lv - target.stats.lv) * LEVEL_HIT_STEP
            + (user.stats.atk - target.stats.defense) * STAT_HIT_STEP
        )
        return clamp(raw, self.balance.dodge_floor, self.balance.hit_ceil)

    def crit_chance(self, user: Actor, target: Actor) -> float:
        """Chance that a hit from ``user`` on ``target`` is critical.

        Only positive level and attack advantages raise the chance.
        """
        raw = (
            self.balance.base_crit
            + max(0, user.stats.lv - target.stats.lv) * LEVEL_CRIT_STEP
            + max(0, user.stats.atk - target.stats.defense) * STAT_CRIT_STEP
        )
        return clamp(raw, 0.0, 1.0)

    def element_multiplier(self, element: str | None, target: Actor) -> float:
        """Elemental damage multiplier against a target.

        The first target tag present in the element's matrix row wins,
        then the row's ``neutral`` entry, then 1.
        """
        if not element:
            return 1.0
        row = self.balance.element_matrix.get(element)
        if not row:
            return 1.0
        for tag in target.tags:
            if tag in row:
                return row[tag]
        return row.get(NEUTRAL_ELEMENT, 1.0)

    def tag_resistance_multiplier(self, target: Actor) -> float:
        """Product of the resistance multipliers of every target tag."""
        multiplier = 1.0
        for tag in target.tags:
            multiplier *= self.balance.resists_by_tag.get(tag, 1.0)
        return multiplier

    def damage_multiplier(self, element: str | None, target: Actor) -> float:
        """Element and tag resistance multipliers combined."""
        return self.element_multiplier(element, target) * self.tag_resistance_multiplier(target)


__all__ = [
    "clamp",
    "round_half_up",
    "CombatRules",
]
