"""Runtime forms of compiled content.

Everything here is immutable and fully normalized: defaults are filled,
formulas are parsed, percent values know which maximum they scale. The
engine reads only these forms, never the authored models.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from rpg_combat.models.enums import (
    ActionType,
    CompareKey,
    EffectKind,
    HookName,
    Resource,
    StackRule,
    StatKey,
    TargetMode,
    TargetSide,
    ValueType,
)


if TYPE_CHECKING:
    from rpg_combat.core.exceptions import ContentCompileError
    from rpg_combat.models.battle import Actor
    from rpg_combat.models.content import Balance, Filter, StatusModifiers


class ValueResolver(Protocol):
    """Signature of a compiled effect value."""

    def __call__(
        self,
        user: Actor | None,
        target: Actor | None,
        context: Mapping[str, Any] | None = None,
    ) -> float: ...


@dataclass(frozen=True)
class RuntimeValue:
    """A compiled numeric value.

    Attributes:
        kind: How the value was authored.
        resolve: Returns the clamped, finite amount for a user/target pair.
        raw: Authored amount, percent or expression, for display.
    """

    kind: ValueType
    resolve: ValueResolver
    raw: float | str | None = None

    def __call__(
        self,
        user: Actor | None,
        target: Actor | None,
        context: Mapping[str, Any] | None = None,
    ) -> float:
        return self.resolve(user, target, context)


@dataclass(frozen=True)
class RuntimeSelector:
    """Normalized targeting selector.

    ``count`` is None when the mode takes every match.
    """

    side: TargetSide = TargetSide.ENEMY
    mode: TargetMode = TargetMode.SINGLE
    count: int | None = 1
    of_what: CompareKey = CompareKey.HP_PCT
    condition: Filter | None = None
    include_dead: bool = False


@dataclass(frozen=True)
class RuntimeCost:
    """Normalized action costs."""

    sta: int = 0
    mp: int = 0
    cooldown: int = 0
    charges: int | None = None
    item_id: str | None = None
    item_qty: int = 1


@dataclass(frozen=True)
class RuntimeEffect:
    """A compiled effect."""

    kind: EffectKind
    value: RuntimeValue
    element: str | None = None
    can_miss: bool = False
    can_crit: bool = False
    shared_accuracy_roll: bool = False
    resource: Resource | None = None
    stat: StatKey | None = None
    status_id: str | None = None
    status_turns: int | None = None
    cleanse_tags: tuple[str, ...] = ()
    shield_id: str | None = None
    item_id: str | None = None
    message: str | None = None
    selector: RuntimeSelector | None = None
    only_if: Filter | None = None


@dataclass(frozen=True, kw_only=True)
class RuntimeAction:
    """Fields shared by compiled skills and items."""

    id: str
    name: str
    type: ActionType
    targeting: RuntimeSelector
    effects: tuple[RuntimeEffect, ...]
    costs: RuntimeCost
    description: str = ""
    element: str | None = None
    can_use: Filter | None = None
    ai_weight: float = 1.0


@dataclass(frozen=True, kw_only=True)
class RuntimeSkill(RuntimeAction):
    """A compiled skill."""

    type: ActionType = ActionType.SKILL


@dataclass(frozen=True, kw_only=True)
class RuntimeItem(RuntimeAction):
    """A compiled item."""

    type: ActionType = ActionType.ITEM
    consumable: bool = False


@dataclass(frozen=True)
class RuntimeStatusTemplate:
    """A compiled status definition."""

    id: str
    name: str
    tags: tuple[str, ...] = ()
    stack_rule: StackRule = StackRule.RENEW
    max_stacks: int = 1
    duration_turns: int | None = None
    modifiers: StatusModifiers | None = None
    hooks: Mapping[HookName, tuple[RuntimeEffect, ...]] = field(default_factory=dict)

    def hook(self, name: HookName) -> tuple[RuntimeEffect, ...]:
        """Effects for a hook, empty when absent."""
        return self.hooks.get(name, ())


EnemyFactoryFn = Callable[..., "Actor"]


@dataclass(frozen=True)
class RuntimeContent:
    """All compiled tables.

    Attributes:
        skills: Skill id -> compiled skill.
        items: Item id -> compiled item.
        statuses: Status id -> compiled template.
        enemies: Enemy id -> factory ``(level, *, actor_id=None) -> Actor``.
        balance: Balance constants the content was authored against.
        errors: Entries skipped by a non-strict compile.
    """

    skills: Mapping[str, RuntimeSkill]
    items: Mapping[str, RuntimeItem]
    statuses: Mapping[str, RuntimeStatusTemplate]
    enemies: Mapping[str, EnemyFactoryFn]
    balance: Balance
    errors: tuple[ContentCompileError, ...] = ()


__all__ = [
    "ValueResolver",
    "RuntimeValue",
    "RuntimeSelector",
    "RuntimeCost",
    "RuntimeEffect",
    "RuntimeAction",
    "RuntimeSkill",
    "RuntimeItem",
    "RuntimeStatusTemplate",
    "EnemyFactoryFn",
    "RuntimeContent",
]
