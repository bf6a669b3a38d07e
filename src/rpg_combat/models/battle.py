"""Pydantic V2 schemas for live battle state.

Actors, status entries, shields, taunts, cooldowns and the battle log all
live on a single mutable ``BattleState``. The engine mutates it in place;
models validate every assignment so an out-of-range value fails loudly
instead of silently corrupting the battle.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rpg_combat.models.enums import EndReason, Resource


class StateModel(BaseModel):
    """Base for mutable battle-state models."""

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _ratio(current: int, maximum: int) -> float:
    return current / maximum if maximum > 0 else 0.0


class Stats(StateModel):
    """Actor statistics.

    Current resources never exceed their maxima; the engine clamps every
    change, and ``ge=0`` rejects negative values outright.
    """

    max_hp: Annotated[int, Field(ge=0)] = 1
    hp: Annotated[int, Field(ge=0)] = 1
    max_sta: Annotated[int, Field(ge=0)] = 0
    sta: Annotated[int, Field(ge=0)] = 0
    max_mp: Annotated[int, Field(ge=0)] = 0
    mp: Annotated[int, Field(ge=0)] = 0
    atk: Annotated[int, Field(ge=0)] = 0
    defense: Annotated[int, Field(ge=0, alias="def")] = 0
    lv: Annotated[int, Field(ge=1)] = 1
    xp: Annotated[int, Field(ge=0)] = 0
    gold: Annotated[int, Field(ge=0)] = 0

    def current(self, resource: Resource) -> int:
        """Current value of a resource."""
        return getattr(self, resource.current_field)

    def maximum(self, resource: Resource) -> int:
        """Maximum value of a resource."""
        return getattr(self, resource.max_field)

    def pct(self, resource: Resource) -> float:
        """Current/max ratio of a resource, 0 when the maximum is 0."""
        return _ratio(self.current(resource), self.maximum(resource))


class ModifierSnapshot(StateModel):
    """Modifiers one status entry is currently contributing."""

    atk: int = 0
    defense: int = Field(default=0, alias="def")
    damage_taken_pct: dict[str, float] = Field(default_factory=dict)
    damage_dealt_pct: dict[str, float] = Field(default_factory=dict)
    resource_regen: dict[Resource, float] = Field(default_factory=dict)
    dodge_bonus: float = 0.0
    crit_chance_bonus: float = 0.0
    shield_id: str | None = None


class StatusModifierCache(StateModel):
    """Aggregate of all active status modifiers on an actor."""

    damage_taken_pct: dict[str, float] = Field(default_factory=dict)
    damage_dealt_pct: dict[str, float] = Field(default_factory=dict)
    resource_regen: dict[Resource, float] = Field(default_factory=dict)
    dodge_bonus: float = 0.0
    crit_chance_bonus: float = 0.0


class StatusEntry(StateModel):
    """An active status on an actor.

    Attributes:
        id: Status template id.
        turns: Remaining turns; the entry expires when this reaches 0.
        stacks: Current stack count, within ``[1, maxStacks]``.
        source_id: Actor that applied the status, if known.
        applied: Modifiers currently applied on behalf of this entry.
    """

    id: str
    turns: int = Field(ge=0)
    stacks: int = Field(default=1, ge=1)
    source_id: str | None = None
    applied: ModifierSnapshot | None = None


class InventoryEntry(StateModel):
    """Stack of items in the shared party inventory."""

    id: str
    qty: int = Field(default=1, ge=0)


class ActorMeta(StateModel):
    """Content-derived bookkeeping for spawned actors."""

    enemy_id: str | None = None
    skill_ids: list[str] = Field(default_factory=list)
    item_drops: list[InventoryEntry] = Field(default_factory=list)
    prefer_tags: list[str] = Field(default_factory=list)
    avoid_tags: list[str] = Field(default_factory=list)


class Actor(StateModel):
    """A combatant.

    Attributes:
        id: Unique id within the battle.
        name: Display name used in log lines.
        clazz: Class name for players (``knight``, ``mage`` ...).
        stats: Current statistics.
        statuses: Active status entries, in application order.
        alive: False once HP reaches 0; only ``revive`` sets it back.
        tags: Free-form tags (``player``, ``undead``, ``beast`` ...).
        meta: Enemy bookkeeping (skills, drops, AI preferences).
        modifiers: Aggregated status modifiers.
    """

    id: str = Field(min_length=1)
    name: str = ""
    clazz: str | None = None
    stats: Stats = Field(default_factory=Stats)
    statuses: list[StatusEntry] = Field(default_factory=list)
    alive: bool = True
    tags: list[str] = Field(default_factory=list)
    meta: ActorMeta = Field(default_factory=ActorMeta)
    modifiers: StatusModifierCache = Field(default_factory=StatusModifierCache)

    @property
    def display_name(self) -> str:
        """Name for log lines, falling back to the id."""
        return self.name or self.id

    @property
    def hp_pct(self) -> float:
        """Current HP as a fraction of max HP."""
        return self.stats.pct(Resource.HP)

    @property
    def sta_pct(self) -> float:
        """Current STA as a fraction of max STA."""
        return self.stats.pct(Resource.STA)

    @property
    def mp_pct(self) -> float:
        """Current MP as a fraction of max MP."""
        return self.stats.pct(Resource.MP)

    def get_status(self, status_id: str) -> StatusEntry | None:
        """Return the active entry for a status, if any."""
        for entry in self.statuses:
            if entry.id == status_id:
                return entry
        return None

    def has_status(self, status_id: str) -> bool:
        """Check whether a status is active."""
        return self.get_status(status_id) is not None


class ShieldState(StateModel):
    """A named shield pool absorbing incoming damage."""

    id: str
    hp: int = Field(ge=0)
    element: str | None = None


class TauntState(StateModel):
    """Forces an actor's targeting onto ``source_id``."""

    source_id: str
    turns: int = Field(ge=0)


class ChargeState(StateModel):
    """Remaining uses of a charge-limited action."""

    remaining: int = Field(ge=0)
    max: int = Field(ge=0)


class BattleEnd(StateModel):
    """Terminal battle outcome."""

    reason: EndReason


class BattleState(StateModel):
    """Complete mutable state of one battle.

    Attributes:
        turn: Round counter, incremented when the turn order wraps.
        order: Actor ids in turn order.
        current: Index into ``order`` of the acting actor.
        rng_seed: LCG state; advanced once per random draw.
        actors: Actor id -> actor.
        side_player: Ids on the player side.
        side_enemy: Ids on the enemy side.
        inventory: Shared player inventory.
        log: Append-only battle log.
        cooldowns: Actor id -> action id -> remaining turns.
        charges: Actor id -> action id -> remaining charges.
        shields: Actor id -> shield id -> pool, in insertion order.
        taunts: Taunted actor id -> taunt.
        ended: Set at most once when the battle finishes.
    """

    turn: int = Field(default=1, ge=1)
    order: list[str] = Field(default_factory=list)
    current: int = Field(default=0, ge=0)
    rng_seed: int = Field(default=1, ge=0, lt=2**32)
    actors: dict[str, Actor] = Field(default_factory=dict)
    side_player: list[str] = Field(default_factory=list)
    side_enemy: list[str] = Field(default_factory=list)
    inventory: list[InventoryEntry] = Field(default_factory=list)
    log: list[str] = Field(default_factory=list)
    cooldowns: dict[str, dict[str, int]] = Field(default_factory=dict)
    charges: dict[str, dict[str, ChargeState]] = Field(default_factory=dict)
    shields: dict[str, dict[str, ShieldState]] = Field(default_factory=dict)
    taunts: dict[str, TauntState] = Field(default_factory=dict)
    ended: BattleEnd | None = None

    def actor(self, actor_id: str) -> Actor | None:
        """Look up an actor by id."""
        return self.actors.get(actor_id)

    def emit(self, line: str) -> None:
        """Append a line to the battle log."""
        self.log.append(line)

    def finish(self, reason: EndReason) -> bool:
        """Mark the battle as ended unless it already is.

        Returns:
            True if this call ended the battle.
        """
        if self.ended is not None:
            return False
        self.ended = BattleEnd(reason=reason)
        return True

    @property
    def current_actor_id(self) -> str | None:
        """Id of the actor whose turn it is."""
        if not self.order:
            return None
        return self.order[self.current % len(self.order)]

    def is_player_side(self, actor_id: str) -> bool:
        """Whether an actor fights on the player side."""
        return actor_id in self.side_player

    def allies_of(self, actor_id: str) -> list[str]:
        """Ids on the same side as ``actor_id``."""
        return list(self.side_enemy if actor_id in self.side_enemy else self.side_player)

    def enemies_of(self, actor_id: str) -> list[str]:
        """Ids on the opposing side of ``actor_id``."""
        return list(self.side_player if actor_id in self.side_enemy else self.side_enemy)

    def living(self, ids: list[str]) -> list[Actor]:
        """Living actors among ``ids``, skipping unknown ids."""
        return [a for a in (self.actors.get(i) for i in ids) if a is not None and a.alive]

    def inventory_entry(self, item_id: str) -> InventoryEntry | None:
        """Inventory stack for an item, if held."""
        for entry in self.inventory:
            if entry.id == item_id:
                return entry
        return None

    def inventory_qty(self, item_id: str) -> int:
        """Held quantity of an item."""
        entry = self.inventory_entry(item_id)
        return entry.qty if entry else 0


__all__ = [
    "StateModel",
    "Stats",
    "ModifierSnapshot",
    "StatusModifierCache",
    "StatusEntry",
    "ActorMeta",
    "Actor",
    "ShieldState",
    "TauntState",
    "ChargeState",
    "InventoryEntry",
    "BattleEnd",
    "BattleState",
]
