"""Effect primitives shared by the action executor and status hooks.

Each helper mutates one actor (or the shared inventory), clamps the
result to the actor's bounds, and returns what actually changed. Helpers
whose outcome is the same wherever the effect came from also write their
battle log line; damage and heal wording differs between actions and
status ticks, so those callers log for themselves.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from rpg_combat.engine.rules import round_half_up
from rpg_combat.models.battle import InventoryEntry
from rpg_combat.models.enums import Resource, StatKey


if TYPE_CHECKING:
    from rpg_combat.models.battle import Actor, BattleState


ALL_CATEGORY = "all"
HEAL_CATEGORY = "heal"


def modifier_multiplier(modifiers: Mapping[str, float], categories: Iterable[str | None]) -> float:
    """Combine percentage modifiers into a multiplier.

    ``1 + sum`` over the ``all`` key and each listed category, floored at 0.

    Example:
        >>> modifier_multiplier({"all": -0.25, "fire": 0.5}, ["fire"])
        1.25
    """
    keys = [ALL_CATEGORY, *(c for c in categories if c and c != ALL_CATEGORY)]
    return max(0.0, 1.0 + sum(modifiers.get(key, 0.0) for key in keys))


def take_damage(target: Actor, amount: int) -> tuple[int, bool]:
    """Subtract HP.

    Returns:
        ``(hp_lost, died)`` where ``died`` is True if this hit killed.
    """
    amount = max(0, amount)
    before = target.stats.hp
    target.stats.hp = max(0, before - amount)
    died = target.alive and target.stats.hp == 0
    if died:
        target.alive = False
    return before - target.stats.hp, died


def restore_hp(target: Actor, amount: int) -> int:
    """Add HP up to the maximum. Dead actors are not healed.

    Returns:
        HP actually restored.
    """
    if not target.alive or amount <= 0:
        return 0
    before = target.stats.hp
    target.stats.hp = min(target.stats.max_hp, before + amount)
    return target.stats.hp - before


def shift_resource(target: Actor, resource: Resource, amount: int) -> int:
    """Add or remove a resource within ``[0, max]``.

    Draining HP to 0 defeats the actor.

    Returns:
        Signed change actually applied.
    """
    if resource == Resource.HP:
        if amount >= 0:
            return restore_hp(target, amount)
        lost, _ = take_damage(target, -amount)
        return -lost
    before = target.stats.current(resource)
    after = max(0, min(target.stats.maximum(resource), before + amount))
    setattr(target.stats, resource.current_field, after)
    return after - before


def change_resource(
    state: BattleState,
    target: Actor,
    resource: Resource,
    amount: float,
    *,
    source: str | None = None,
) -> int:
    """Apply a resource effect and log the outcome."""
    applied = shift_resource(target, resource, round_half_up(amount))
    origin = f" from {source}" if source else ""
    name = target.display_name
    if applied > 0:
        state.emit(f"{name} recovers {applied} {resource.label}{origin}.")
    elif applied < 0:
        line = f"{name} loses {-applied} {resource.label}{origin}."
        if resource == Resource.HP and not target.alive:
            line += f" {name} was defeated."
        state.emit(line)
    else:
        state.emit(f"{name}'s {resource.label} is unchanged{origin}.")
    return applied


def shift_stat(target: Actor, field_name: str, delta: int) -> int:
    """Add to a stat, never below 0.

    Returns:
        Change actually applied.
    """
    before = getattr(target.stats, field_name)
    after = max(0, before + delta)
    setattr(target.stats, field_name, after)
    return after - before


def modify_stat(state: BattleState, target: Actor, stat: StatKey, amount: float) -> int:
    """Permanently change a stat for the battle and log it.

    Lowering a maximum pulls the current value down with it. Max HP
    never drops below 1.
    """
    delta = round_half_up(amount)
    if stat == StatKey.MAX_HP:
        delta = max(delta, 1 - target.stats.max_hp)
    applied = shift_stat(target, stat.field_name, delta)
    stats = target.stats
    stats.hp = min(stats.hp, stats.max_hp)
    stats.sta = min(stats.sta, stats.max_sta)
    stats.mp = min(stats.mp, stats.max_mp)

    name = target.display_name
    if applied > 0:
        state.emit(f"{name}'s {stat.value} rises by {applied}.")
    elif applied < 0:
        state.emit(f"{name}'s {stat.value} falls by {-applied}.")
    else:
        state.emit(f"{name}'s {stat.value} is unchanged.")
    return applied


def revive(state: BattleState, target: Actor, amount: float) -> bool:
    """Bring a defeated actor back with ``amount`` HP (at least 1).

    Returns:
        True if the actor was revived.
    """
    name = target.display_name
    if target.alive:
        state.emit(f"{name} is not defeated.")
        return False
    hp = max(1, min(target.stats.max_hp, round_half_up(amount)))
    target.stats.hp = hp
    target.alive = True
    state.emit(f"{name} was revived with {hp} HP.")
    return True


def give_item(state: BattleState, item_id: str, qty: int) -> int:
    """Add items to the shared inventory and log it."""
    qty = max(1, qty)
    entry = state.inventory_entry(item_id)
    if entry is None:
        state.inventory.append(InventoryEntry(id=item_id, qty=qty))
    else:
        entry.qty += qty
    state.emit(f"Received {qty} x {item_id}.")
    return qty


def take_item(state: BattleState, item_id: str, qty: int) -> int:
    """Remove up to ``qty`` items; empty stacks leave the inventory.

    Returns:
        Quantity actually removed.
    """
    entry = state.inventory_entry(item_id)
    if entry is None or entry.qty <= 0:
        return 0
    removed = min(entry.qty, max(1, qty))
    entry.qty -= removed
    if entry.qty <= 0:
        state.inventory.remove(entry)
    return removed


def remove_item(state: BattleState, item_id: str, qty: int) -> int:
    """Remove items as an effect and log it."""
    removed = take_item(state, item_id, qty)
    if removed:
        state.emit(f"Lost {removed} x {item_id}.")
    else:
        state.emit(f"No {item_id} to remove.")
    return removed


__all__ = [
    "ALL_CATEGORY",
    "HEAL_CATEGORY",
    "modifier_multiplier",
    "take_damage",
    "restore_hp",
    "shift_resource",
    "change_resource",
    "shift_stat",
    "modify_stat",
    "revive",
    "give_item",
    "take_item",
    "remove_item",
]
