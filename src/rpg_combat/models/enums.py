"""Enumeration types for the RPG combat core.

The string values match the keys used in authored JSON content, so
``EffectKind("applyStatus")`` parses straight from a content document.
"""

from __future__ import annotations

from enum import StrEnum


class TargetSide(StrEnum):
    """Which side of the battle a selector draws candidates from.

    Sides are relative to the acting user: ``ally`` is the user's own
    side and ``enemy`` the opposing one.
    """

    SELF = "self"
    ALLY = "ally"
    ENEMY = "enemy"
    ANY = "any"


class TargetMode(StrEnum):
    """How a selector narrows its candidate list."""

    SELF = "self"
    SINGLE = "single"
    ALL = "all"
    RANDOM = "random"
    LOWEST = "lowest"
    HIGHEST = "highest"
    CONDITION = "condition"


class CompareKey(StrEnum):
    """Actor attributes a filter test or metric sort can read."""

    HP_PCT = "hpPct"
    STA_PCT = "staPct"
    MP_PCT = "mpPct"
    ATK = "atk"
    DEF = "def"
    LV = "lv"
    HAS_STATUS = "hasStatus"
    TAG = "tag"
    CLAZZ = "clazz"

    @property
    def is_numeric(self) -> bool:
        """Whether the key reads a number rather than a membership fact."""
        return self not in (CompareKey.HAS_STATUS, CompareKey.TAG, CompareKey.CLAZZ)


class ConditionOp(StrEnum):
    """Comparison operators for filter tests."""

    LT = "lt"
    LTE = "lte"
    EQ = "eq"
    GTE = "gte"
    GT = "gt"
    NE = "ne"
    IN = "in"
    NOT_IN = "notIn"


class Resource(StrEnum):
    """Spendable actor resources."""

    HP = "hp"
    STA = "sta"
    MP = "mp"

    @property
    def max_field(self) -> str:
        """Name of the stats field holding this resource's maximum."""
        return {"hp": "max_hp", "sta": "max_sta", "mp": "max_mp"}[self.value]

    @property
    def current_field(self) -> str:
        """Name of the stats field holding the current value."""
        return self.value

    @property
    def label(self) -> str:
        """Upper-case label used in battle log lines."""
        return self.value.upper()


class StatKey(StrEnum):
    """Stats that ``modifyStat`` effects may change."""

    ATK = "atk"
    DEF = "def"
    MAX_HP = "maxHp"
    MAX_STA = "maxSta"
    MAX_MP = "maxMp"

    @property
    def field_name(self) -> str:
        """Name of the matching ``Stats`` attribute."""
        return {
            "atk": "atk",
            "def": "defense",
            "maxHp": "max_hp",
            "maxSta": "max_sta",
            "maxMp": "max_mp",
        }[self.value]


class EffectKind(StrEnum):
    """Every effect an action or status hook can carry."""

    DAMAGE = "damage"
    HEAL = "heal"
    RESOURCE = "resource"
    APPLY_STATUS = "applyStatus"
    CLEANSE_STATUS = "cleanseStatus"
    DISPEL = "dispel"
    MODIFY_STAT = "modifyStat"
    SHIELD = "shield"
    TAUNT = "taunt"
    FLEE = "flee"
    REVIVE = "revive"
    SUMMON = "summon"
    GIVE_ITEM = "giveItem"
    REMOVE_ITEM = "removeItem"
    PREVENT_ACTION = "preventAction"


class ValueType(StrEnum):
    """How an effect's numeric amount is produced."""

    FLAT = "flat"
    PERCENT = "percent"
    FORMULA = "formula"


class StackRule(StrEnum):
    """What happens when a status is applied to an actor that already has it."""

    IGNORE = "ignore"
    RENEW = "renew"
    STACK_COUNT = "stackCount"
    STACK_MAGNITUDE = "stackMagnitude"


class HookName(StrEnum):
    """Status lifecycle events that can run effects."""

    ON_APPLY = "onApply"
    ON_TURN_START = "onTurnStart"
    ON_TURN_END = "onTurnEnd"
    ON_DEAL_DAMAGE = "onDealDamage"
    ON_TAKE_DAMAGE = "onTakeDamage"
    ON_EXPIRE = "onExpire"


class ActionType(StrEnum):
    """Kinds of usable actions."""

    SKILL = "skill"
    ITEM = "item"


class EndReason(StrEnum):
    """Why a battle ended."""

    FLED = "fled"
    DEFEAT = "defeat"
    VICTORY = "victory"


__all__ = [
    "TargetSide",
    "TargetMode",
    "CompareKey",
    "ConditionOp",
    "Resource",
    "StatKey",
    "EffectKind",
    "ValueType",
    "StackRule",
    "HookName",
    "ActionType",
    "EndReason",
]
