"""Post-battle rewards.

Experience, gold and loot are derived from the defeated enemies and the
balance curves. Nothing here mutates the battle; applying rewards to a
persistent profile is left to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rpg_combat.engine.rules import round_half_up
from rpg_combat.models.battle import InventoryEntry
from rpg_combat.models.content import Balance, XpCurve
from rpg_combat.models.enums import EndReason


if TYPE_CHECKING:
    from rpg_combat.models.battle import BattleState


MAX_LEVEL = 99


@dataclass(frozen=True)
class BattleRewards:
    """Rewards earned from a battle.

    Attributes:
        xp: Total experience.
        gold: Total gold.
        loot: Item drops merged by id, in first-seen order.
    """

    xp: int = 0
    gold: int = 0
    loot: list[InventoryEntry] = field(default_factory=list)


def calculate_rewards(state: BattleState, balance: Balance | None = None) -> BattleRewards:
    """Sum rewards for every defeated enemy.

    Per enemy of level ``lv``: ``round(base + growth * lv)`` XP and
    ``max(0, round(mean + variance * lv))`` gold. Each drop list is granted
    ``max(1, LOOT_ROLLS)`` times.
    """
    balance = balance or Balance()
    rolls = max(1, balance.loot_rolls)
    xp = 0
    gold = 0
    loot: dict[str, int] = {}

    for enemy_id in state.side_enemy:
        enemy = state.actor(enemy_id)
        if enemy is None or enemy.alive:
            continue
        level = enemy.stats.lv
        xp += max(0, round_half_up(balance.xp_curve.base + balance.xp_curve.growth * level))
        gold += max(0, round_half_up(balance.gold_drop.mean + balance.gold_drop.variance * level))
        for drop in enemy.meta.item_drops:
            loot[drop.id] = loot.get(drop.id, 0) + drop.qty * rolls

    return BattleRewards(
        xp=xp,
        gold=gold,
        loot=[InventoryEntry(id=item_id, qty=qty) for item_id, qty in loot.items() if qty > 0],
    )


def xp_threshold(level: int, curve: XpCurve) -> int:
    """Experience needed to advance past ``level``."""
    return max(1, round_half_up(curve.base * curve.growth ** (level - 1)))


def level_for_xp(xp: int, curve: XpCurve | None = None) -> int:
    """Level reached with ``xp`` total experience, starting from 1."""
    curve = curve or XpCurve()
    level = 1
    remaining = xp
    while level < MAX_LEVEL:
        needed = xp_threshold(level, curve)
        if remaining < needed:
            break
        remaining -= needed
        level += 1
    return level


def summarize_outcome(state: BattleState, balance: Balance | None = None) -> list[str]:
    """Human-readable summary of how the battle ended."""
    if state.ended is None:
        return ["The battle continues."]
    match state.ended.reason:
        case EndReason.VICTORY:
            rewards = calculate_rewards(state, balance)
            lines = [f"Victory! +{rewards.xp} XP, +{rewards.gold} gold."]
            if rewards.loot:
                items = ", ".join(f"{entry.qty} x {entry.id}" for entry in rewards.loot)
                lines.append(f"Loot: {items}.")
            return lines
        case EndReason.DEFEAT:
            return ["Defeated."]
        case EndReason.FLED:
            return ["You fled the battle."]


__all__ = [
    "MAX_LEVEL",
    "BattleRewards",
    "calculate_rewards",
    "xp_threshold",
    "level_for_xp",
    "summarize_outcome",
]
