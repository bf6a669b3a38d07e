"""Data models: enums, authored content schemas and live battle state."""

from __future__ import annotations

from rpg_combat.models.battle import (
    Actor,
    ActorMeta,
    BattleEnd,
    BattleState,
    ChargeState,
    InventoryEntry,
    ModifierSnapshot,
    ShieldState,
    Stats,
    StatusEntry,
    StatusModifierCache,
    TauntState,
)
from rpg_combat.models.content import (
    Balance,
    Cost,
    DropSpec,
    Effect,
    EnemyDef,
    Filter,
    FilterTest,
    GameConfig,
    ItemDef,
    SkillDef,
    StatBlock,
    StatusDef,
    StatusHooks,
    StatusModifiers,
    TargetSelector,
)
from rpg_combat.models.enums import (
    ActionType,
    CompareKey,
    ConditionOp,
    EffectKind,
    EndReason,
    HookName,
    Resource,
    StackRule,
    StatKey,
    TargetMode,
    TargetSide,
    ValueType,
)


__all__ = [
    # Enums
    "ActionType",
    "CompareKey",
    "ConditionOp",
    "EffectKind",
    "EndReason",
    "HookName",
    "Resource",
    "StackRule",
    "StatKey",
    "TargetMode",
    "TargetSide",
    "ValueType",
    # Content
    "Balance",
    "Cost",
    "DropSpec",
    "Effect",
    "EnemyDef",
    "Filter",
    "FilterTest",
    "GameConfig",
    "ItemDef",
    "SkillDef",
    "StatBlock",
    "StatusDef",
    "StatusHooks",
    "StatusModifiers",
    "TargetSelector",
    # Battle state
    "Actor",
    "ActorMeta",
    "BattleEnd",
    "BattleState",
    "ChargeState",
    "InventoryEntry",
    "ModifierSnapshot",
    "ShieldState",
    "Stats",
    "StatusEntry",
    "StatusModifierCache",
    "TauntState",
]
