"""Pydantic V2 schemas for authored game content.

These models describe skills, items, statuses, enemies and balance tables
as a content author writes them (camelCase JSON keys). They are immutable
once validated; the content compiler turns them into runtime forms.

Example:
    >>> skill = SkillDef.model_validate({
    ...     "id": "slash",
    ...     "name": "Slash",
    ...     "targeting": {"side": "enemy", "mode": "single"},
    ...     "effects": [{"kind": "damage", "amount": 8}],
    ... })
    >>> skill.effects[0].kind
    <EffectKind.DAMAGE: 'damage'>
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from rpg_combat.models.enums import (
    CompareKey,
    ConditionOp,
    EffectKind,
    Resource,
    StackRule,
    StatKey,
    TargetMode,
    TargetSide,
    ValueType,
)


class ContentModel(BaseModel):
    """Base for authored content: frozen, camelCase keys, unknown keys ignored."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Targeting
# =============================================================================


class FilterTest(ContentModel):
    """A single comparison against one actor attribute.

    Attributes:
        key: Attribute to read.
        op: Comparison operator.
        value: Right-hand side. A list for ``in``/``notIn``.
    """

    key: CompareKey
    op: ConditionOp
    value: Any = None


class Filter(ContentModel):
    """Recursive boolean predicate over an actor.

    Present clauses combine with AND. An empty filter matches everything.

    Attributes:
        all_of: Every sub-filter must match.
        any_of: At least one sub-filter must match.
        negate: Sub-filter that must not match.
        test: Leaf comparison.
    """

    all_of: list[Filter] | None = Field(default=None, alias="all")
    any_of: list[Filter] | None = Field(default=None, alias="any")
    negate: Filter | None = Field(default=None, alias="not")
    test: FilterTest | None = None


class TargetSelector(ContentModel):
    """Declarative description of which actors an action affects."""

    side: TargetSide = TargetSide.ENEMY
    mode: TargetMode = TargetMode.SINGLE
    count: int | None = Field(default=None, ge=0)
    of_what: CompareKey | None = None
    condition: Filter | None = None
    include_dead: bool = False


# =============================================================================
# Effects & Costs
# =============================================================================


class FormulaSpec(ContentModel):
    """Wrapper around a formula expression string."""

    expr: str = Field(min_length=1)


class Effect(ContentModel):
    """One effect of an action or status hook.

    Only the fields relevant to ``kind`` are read; the rest are ignored.
    """

    kind: EffectKind
    value_type: ValueType | None = None
    amount: float | None = None
    percent: float | None = None
    formula: FormulaSpec | None = None
    min: float | None = None
    max: float | None = None
    element: str | None = None
    can_miss: bool = False
    can_crit: bool = False
    shared_accuracy_roll: bool = False
    resource: Resource | None = None
    stat: StatKey | None = None
    status_id: str | None = None
    status_turns: int | None = None
    cleanse_tags: list[str] = Field(default_factory=list)
    shield_id: str | None = None
    item_id: str | None = None
    message: str | None = None
    selector: TargetSelector | None = None
    only_if: Filter | None = None

    @field_validator("formula", mode="before")
    @classmethod
    def coerce_formula_string(cls, value: Any) -> Any:
        """Accept a bare expression string in place of ``{"expr": ...}``."""
        if isinstance(value, str):
            return {"expr": value}
        return value


class ItemCost(ContentModel):
    """Inventory item consumed when an action is used."""

    id: str
    qty: int = Field(default=1, ge=1)


class Cost(ContentModel):
    """Resources, items, cooldown and charges an action consumes."""

    sta: int = Field(default=0, ge=0)
    mp: int = Field(default=0, ge=0)
    item: ItemCost | None = None
    cooldown: int = Field(default=0, ge=0)
    charges: int | None = Field(default=None, ge=0)


# =============================================================================
# Actions
# =============================================================================


class ActionDef(ContentModel):
    """Fields shared by skills and items."""

    id: str = ""
    name: str = ""
    desc: str = ""
    element: str | None = None
    targeting: TargetSelector = Field(default_factory=TargetSelector)
    effects: list[Effect] = Field(default_factory=list)
    can_use: Filter | None = None
    costs: Cost | None = None
    ai_weight: float | None = None


class SkillDef(ActionDef):
    """A skill an actor can use from its skill list."""

    type: Literal["skill"] = "skill"


class ItemDef(ActionDef):
    """A usable inventory item."""

    type: Literal["item"] = "item"
    consumable: bool = False


# =============================================================================
# Statuses
# =============================================================================


class StatusShieldSpec(ContentModel):
    """Shield granted while a status is active."""

    id: str
    hp: float = Field(ge=0)
    element: str | None = None


class StatusModifiers(ContentModel):
    """Passive modifiers an active status contributes to its owner.

    Attributes:
        atk: Flat attack delta.
        defense: Flat defence delta.
        damage_taken_pct: Category -> fractional change in damage taken.
        damage_dealt_pct: Category -> fractional change in damage dealt.
        resource_regen_per_turn: Resource -> amount restored each turn end.
        dodge_bonus: Subtracted from attackers' hit chance.
        crit_chance_bonus: Added to the owner's crit chance.
        shield: Shield pool granted while active.
    """

    atk: float | None = None
    defense: float | None = Field(default=None, alias="def")
    damage_taken_pct: dict[str, float] = Field(default_factory=dict)
    damage_dealt_pct: dict[str, float] = Field(default_factory=dict)
    resource_regen_per_turn: dict[Resource, float] = Field(default_factory=dict)
    dodge_bonus: float | None = None
    crit_chance_bonus: float | None = None
    shield: StatusShieldSpec | None = None


class StatusHooks(ContentModel):
    """Effect lists run at status lifecycle events."""

    on_apply: list[Effect] = Field(default_factory=list)
    on_turn_start: list[Effect] = Field(default_factory=list)
    on_turn_end: list[Effect] = Field(default_factory=list)
    on_deal_damage: list[Effect] = Field(default_factory=list)
    on_take_damage: list[Effect] = Field(default_factory=list)
    on_expire: list[Effect] = Field(default_factory=list)


class StatusDef(ContentModel):
    """A status effect template."""

    id: str = ""
    name: str = ""
    desc: str = ""
    icon: str | None = None
    tags: list[str] = Field(default_factory=list)
    max_stacks: int | None = Field(default=None, ge=1)
    stack_rule: StackRule | None = None
    duration_turns: int | None = Field(default=None, ge=0)
    modifiers: StatusModifiers | None = None
    hooks: StatusHooks = Field(default_factory=StatusHooks)


# =============================================================================
# Enemies
# =============================================================================


class StatBlock(ContentModel):
    """Base or per-level stat values."""

    max_hp: float = Field(default=0, ge=0)
    max_sta: float = Field(default=0, ge=0)
    max_mp: float = Field(default=0, ge=0)
    atk: float = Field(default=0, ge=0)
    defense: float = Field(default=0, ge=0, alias="def")


class DropSpec(ContentModel):
    """Item dropped on defeat."""

    id: str
    qty: int = Field(default=1, ge=1)


class EnemyAIDef(ContentModel):
    """Tag preferences for enemy decision making."""

    prefer_tags: list[str] = Field(default_factory=list)
    avoid_tags: list[str] = Field(default_factory=list)


class EnemyDef(ContentModel):
    """An enemy template, scaled by level when spawned."""

    id: str = ""
    name: str = ""
    color: int | None = None
    base: StatBlock = Field(default_factory=StatBlock)
    scale: StatBlock = Field(default_factory=StatBlock)
    skills: list[str] = Field(default_factory=list)
    items: list[DropSpec] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    ai: EnemyAIDef | None = None


# =============================================================================
# Balance
# =============================================================================


class XpCurve(ContentModel):
    """Experience reward and level threshold curve."""

    base: float = Field(default=5, ge=0)
    growth: float = Field(default=1.6, ge=0)


class GoldDrop(ContentModel):
    """Gold reward per defeated enemy: ``mean + variance * level``."""

    mean: float = 5
    variance: float = 2


def _default_element_matrix() -> dict[str, dict[str, float]]:
    return {"neutral": {"neutral": 1.0}}


class Balance(ContentModel):
    """Tunable combat constants.

    Attributes:
        base_hit: Hit chance before level and stat adjustments.
        base_crit: Crit chance before adjustments.
        crit_mult: Damage multiplier on a critical hit.
        dodge_floor: Minimum hit chance.
        hit_ceil: Maximum hit chance.
        element_matrix: Attack element -> target tag (or ``neutral``) -> multiplier.
        resists_by_tag: Target tag -> damage multiplier.
        flee_base: Chance that a flee attempt succeeds.
        xp_curve: Experience curve.
        gold_drop: Gold reward curve.
        loot_rolls: Times each enemy's drop list is granted.
    """

    base_hit: float = Field(default=0.85, ge=0, le=1, alias="BASE_HIT")
    base_crit: float = Field(default=0.05, ge=0, le=1, alias="BASE_CRIT")
    crit_mult: float = Field(default=1.5, ge=1, alias="CRIT_MULT")
    dodge_floor: float = Field(default=0.05, ge=0, le=1, alias="DODGE_FLOOR")
    hit_ceil: float = Field(default=0.99, ge=0, le=1, alias="HIT_CEIL")
    element_matrix: dict[str, dict[str, float]] = Field(
        default_factory=_default_element_matrix, alias="ELEMENT_MATRIX"
    )
    resists_by_tag: dict[str, float] = Field(default_factory=dict, alias="RESISTS_BY_TAG")
    flee_base: float = Field(default=0.25, ge=0, le=1, alias="FLEE_BASE")
    xp_curve: XpCurve = Field(default_factory=XpCurve, alias="XP_CURVE")
    gold_drop: GoldDrop = Field(default_factory=GoldDrop, alias="GOLD_DROP")
    loot_rolls: int = Field(default=1, ge=0, alias="LOOT_ROLLS")

    @model_validator(mode="after")
    def validate_hit_bounds(self) -> "Balance":
        """Ensure the hit chance window is not inverted."""
        if self.dodge_floor > self.hit_ceil:
            raise ValueError(
                f"DODGE_FLOOR ({self.dodge_floor}) must not exceed HIT_CEIL ({self.hit_ceil})"
            )
        return self


# =============================================================================
# Game Config
# =============================================================================


class GameConfig(ContentModel):
    """Root content document: every table keyed by entry id."""

    version: int = Field(default=1, alias="__version")
    skills: dict[str, SkillDef] = Field(default_factory=dict)
    items: dict[str, ItemDef] = Field(default_factory=dict)
    statuses: dict[str, StatusDef] = Field(default_factory=dict)
    enemies: dict[str, EnemyDef] = Field(default_factory=dict)
    balance: Balance = Field(default_factory=Balance)
    elements: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def fill_entry_ids(cls, data: Any) -> Any:
        """Default each entry's ``id`` (and ``name``) from its table key."""
        if not isinstance(data, dict):
            return data
        filled = dict(data)
        for table in ("skills", "items", "statuses", "enemies"):
            entries = filled.get(table)
            if not isinstance(entries, dict):
                continue
            patched: dict[str, Any] = {}
            for key, entry in entries.items():
                if isinstance(entry, dict):
                    entry = {"id": key, "name": key, **entry}
                    if not entry.get("id"):
                        entry["id"] = key
                    if not entry.get("name"):
                        entry["name"] = entry["id"]
                patched[key] = entry
            filled[table] = patched
        return filled


__all__ = [
    "ContentModel",
    "FilterTest",
    "Filter",
    "TargetSelector",
    "FormulaSpec",
    "Effect",
    "ItemCost",
    "Cost",
    "ActionDef",
    "SkillDef",
    "ItemDef",
    "StatusShieldSpec",
    "StatusModifiers",
    "StatusHooks",
    "StatusDef",
    "StatBlock",
    "DropSpec",
    "EnemyAIDef",
    "EnemyDef",
    "XpCurve",
    "GoldDrop",
    "Balance",
    "GameConfig",
]
