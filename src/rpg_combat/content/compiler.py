"""Compile authored content into runtime tables.

One pure pass over a validated GameConfig: selectors and costs get their
defaults, effect values become resolvers (formulas parsed once here),
status hooks are compiled with the same effect compiler, and each enemy
definition becomes a level-scaling factory.

Example:
    >>> content = compile_content(config)
    >>> goblin = content.enemies["goblin"](3)
    >>> goblin.stats.lv
    3
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from rpg_combat.core.exceptions import ContentCompileError, FormulaSyntaxError
from rpg_combat.core.logging import get_logger
from rpg_combat.engine.formula import compile_formula
from rpg_combat.engine.rules import round_half_up
from rpg_combat.engine.state import ENEMY_TAG
from rpg_combat.engine.targeting import as_runtime_selector
from rpg_combat.models.battle import Actor, ActorMeta, InventoryEntry, Stats
from rpg_combat.models.content import (
    ActionDef,
    Cost,
    Effect,
    EnemyDef,
    GameConfig,
    ItemDef,
    SkillDef,
    StatusDef,
    TargetSelector,
)
from rpg_combat.models.enums import (
    EffectKind,
    HookName,
    Resource,
    StackRule,
    ValueType,
)
from rpg_combat.models.runtime import (
    RuntimeContent,
    RuntimeCost,
    RuntimeEffect,
    RuntimeItem,
    RuntimeSelector,
    RuntimeSkill,
    RuntimeStatusTemplate,
    RuntimeValue,
    ValueResolver,
)


logger = get_logger(__name__)

T = TypeVar("T")
D = TypeVar("D")

_HOOK_FIELDS: dict[HookName, str] = {
    HookName.ON_APPLY: "on_apply",
    HookName.ON_TURN_START: "on_turn_start",
    HookName.ON_TURN_END: "on_turn_end",
    HookName.ON_DEAL_DAMAGE: "on_deal_damage",
    HookName.ON_TAKE_DAMAGE: "on_take_damage",
    HookName.ON_EXPIRE: "on_expire",
}


# =============================================================================
# Selectors, costs and values
# =============================================================================


def compile_selector(selector: TargetSelector) -> RuntimeSelector:
    """Fill selector defaults.

    Count defaults to 1, except ``all`` and ``condition`` which take every
    match. Sorting modes default to ``hpPct``.
    """
    return as_runtime_selector(selector)


def compile_cost(cost: Cost | None, *, consumes_self: str | None = None) -> RuntimeCost:
    """Normalize costs.

    Args:
        cost: Authored costs, possibly absent.
        consumes_self: Item id consumed when no explicit item cost is given.
    """
    if cost is None:
        return RuntimeCost(item_id=consumes_self)
    item_id = cost.item.id if cost.item else consumes_self
    item_qty = cost.item.qty if cost.item else 1
    return RuntimeCost(
        sta=cost.sta,
        mp=cost.mp,
        cooldown=cost.cooldown,
        charges=cost.charges,
        item_id=item_id,
        item_qty=item_qty,
    )


def _within(value: float, low: float | None, high: float | None) -> float:
    if not math.isfinite(value):
        value = 0.0
    if low is not None:
        value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def _bounded(resolve: ValueResolver, low: float | None, high: float | None) -> ValueResolver:
    def resolver(user: Any, target: Any, context: Mapping[str, Any] | None = None) -> float:
        return _within(resolve(user, target, context), low, high)

    return resolver


def _value_type(effect: Effect) -> ValueType:
    if effect.value_type is not None:
        return effect.value_type
    if effect.formula is not None:
        return ValueType.FORMULA
    if effect.percent is not None:
        return ValueType.PERCENT
    return ValueType.FLAT


def compile_value(effect: Effect) -> RuntimeValue:
    """Compile an effect's amount into a clamped resolver.

    Percent values clamp the fraction ``percent / 100`` by min and max, then
    scale the target's maximum of the effect resource for ``resource``
    effects and the target's max HP otherwise.

    Raises:
        FormulaSyntaxError: If the formula is malformed or missing.
    """
    kind = _value_type(effect)

    match kind:
        case ValueType.FLAT:
            amount = float(effect.amount or 0.0)
            raw: float | str | None = amount

            def base(user: Any, target: Any, context: Mapping[str, Any] | None = None) -> float:
                return amount

        case ValueType.PERCENT:
            percent = effect.percent if effect.percent is not None else effect.amount or 0.0
            fraction = _within(percent / 100.0, effect.min, effect.max)
            scaled = (
                effect.resource
                if effect.kind == EffectKind.RESOURCE and effect.resource
                else Resource.HP
            )
            raw = percent

            def base(user: Any, target: Any, context: Mapping[str, Any] | None = None) -> float:
                if target is None:
                    return 0.0
                return fraction * target.stats.maximum(scaled)

            return RuntimeValue(kind=kind, resolve=base, raw=raw)

        case ValueType.FORMULA:
            if effect.formula is None:
                raise FormulaSyntaxError("valueType 'formula' requires a formula")
            base = compile_formula(effect.formula.expr)
            raw = effect.formula.expr

    return RuntimeValue(kind=kind, resolve=_bounded(base, effect.min, effect.max), raw=raw)


# =============================================================================
# Effects, actions and statuses
# =============================================================================


def compile_effect(
    effect: Effect,
    *,
    entry_kind: str,
    entry_id: str,
    path: str,
    action_element: str | None = None,
) -> RuntimeEffect:
    """Compile one effect.

    Raises:
        ContentCompileError: If the effect's formula does not parse.
    """
    try:
        value = compile_value(effect)
    except FormulaSyntaxError as exc:
        raise ContentCompileError(
            f"Invalid formula in {entry_kind} '{entry_id}' at {path}: {exc.message}",
            entry_kind=entry_kind,
            entry_id=entry_id,
            path=path,
            details=dict(exc.details),
        ) from exc

    return RuntimeEffect(
        kind=effect.kind,
        value=value,
        element=effect.element or action_element,
        can_miss=effect.can_miss,
        can_crit=effect.can_crit,
        shared_accuracy_roll=effect.shared_accuracy_roll,
        resource=effect.resource,
        stat=effect.stat,
        status_id=effect.status_id,
        status_turns=effect.status_turns,
        cleanse_tags=tuple(effect.cleanse_tags),
        shield_id=effect.shield_id,
        item_id=effect.item_id,
        message=effect.message,
        selector=compile_selector(effect.selector) if effect.selector else None,
        only_if=effect.only_if,
    )


def _compile_effects(
    effects: list[Effect],
    *,
    entry_kind: str,
    entry_id: str,
    prefix: str,
    action_element: str | None = None,
) -> tuple[RuntimeEffect, ...]:
    return tuple(
        compile_effect(
            effect,
            entry_kind=entry_kind,
            entry_id=entry_id,
            path=f"{prefix}[{index}]",
            action_element=action_element,
        )
        for index, effect in enumerate(effects)
    )


def _action_fields(action: ActionDef, entry_kind: str) -> dict[str, Any]:
    return {
        "id": action.id,
        "name": action.name or action.id,
        "description": action.desc,
        "element": action.element,
        "targeting": compile_selector(action.targeting),
        "effects": _compile_effects(
            action.effects,
            entry_kind=entry_kind,
            entry_id=action.id,
            prefix="effects",
            action_element=action.element,
        ),
        "can_use": action.can_use,
        "ai_weight": action.ai_weight if action.ai_weight is not None else 1.0,
    }


def compile_skill(skill: SkillDef) -> RuntimeSkill:
    """Compile a skill definition."""
    return RuntimeSkill(**_action_fields(skill, "skill"), costs=compile_cost(skill.costs))


def compile_item(item: ItemDef) -> RuntimeItem:
    """Compile an item definition.

    A consumable item with no explicit item cost consumes one of itself.
    """
    return RuntimeItem(
        **_action_fields(item, "item"),
        costs=compile_cost(item.costs, consumes_self=item.id if item.consumable else None),
        consumable=item.consumable,
    )


def compile_status(status: StatusDef) -> RuntimeStatusTemplate:
    """Compile a status definition and its hooks."""
    hooks = {
        hook: _compile_effects(
            getattr(status.hooks, field_name),
            entry_kind="status",
            entry_id=status.id,
            prefix=f"hooks.{hook.value}",
        )
        for hook, field_name in _HOOK_FIELDS.items()
    }
    return RuntimeStatusTemplate(
        id=status.id,
        name=status.name or status.id,
        tags=tuple(status.tags),
        stack_rule=status.stack_rule or StackRule.RENEW,
        max_stacks=status.max_stacks or 1,
        duration_turns=status.duration_turns,
        modifiers=status.modifiers,
        hooks={hook: effects for hook, effects in hooks.items() if effects},
    )


# =============================================================================
# Enemies
# =============================================================================


class EnemyFactory:
    """Spawns level-scaled actors from an enemy definition.

    Each stat is ``base + scale * level``, rounded half up. Every call
    returns a fresh actor with its own tag and skill lists, always tagged
    ``enemy``.
    """

    def __init__(self, definition: EnemyDef) -> None:
        self.definition = definition

    def _scaled(self, field_name: str, level: int) -> int:
        base = getattr(self.definition.base, field_name)
        per_level = getattr(self.definition.scale, field_name)
        return max(0, round_half_up(base + per_level * level))

    def __call__(self, level: int = 1, *, actor_id: str | None = None) -> Actor:
        level = max(1, int(level))
        definition = self.definition
        max_hp = max(1, self._scaled("max_hp", level))
        max_sta = self._scaled("max_sta", level)
        max_mp = self._scaled("max_mp", level)
        ai = definition.ai
        return Actor(
            id=actor_id or definition.id,
            name=definition.name or definition.id,
            stats=Stats(
                max_hp=max_hp,
                hp=max_hp,
                max_sta=max_sta,
                sta=max_sta,
                max_mp=max_mp,
                mp=max_mp,
                atk=self._scaled("atk", level),
                defense=self._scaled("defense", level),
                lv=level,
            ),
            tags=[*definition.tags, *([] if ENEMY_TAG in definition.tags else [ENEMY_TAG])],
            meta=ActorMeta(
                enemy_id=definition.id,
                skill_ids=list(definition.skills),
                item_drops=[InventoryEntry(id=d.id, qty=d.qty) for d in definition.items],
                prefer_tags=list(ai.prefer_tags) if ai else [],
                avoid_tags=list(ai.avoid_tags) if ai else [],
            ),
        )


# =============================================================================
# Compiler
# =============================================================================


class ContentCompiler:
    """Turns a GameConfig into RuntimeContent.

    In strict mode the first failing entry aborts compilation. Otherwise
    failing entries are skipped, logged, and returned in
    ``RuntimeContent.errors``.
    """

    def __init__(self, *, strict: bool = True) -> None:
        self.strict = strict

    def compile(self, config: GameConfig) -> RuntimeContent:
        """Compile every content table.

        Raises:
            ContentCompileError: In strict mode, on the first bad entry.
        """
        errors: list[ContentCompileError] = []
        statuses = self._compile_table("status", config.statuses, compile_status, errors)
        skills = self._compile_table("skill", config.skills, compile_skill, errors)
        items = self._compile_table("item", config.items, compile_item, errors)
        enemies = {enemy_id: EnemyFactory(enemy) for enemy_id, enemy in config.enemies.items()}

        self._warn_unknown_references(skills, items, statuses, enemies)
        logger.info(
            "Content compiled",
            skills=len(skills),
            items=len(items),
            statuses=len(statuses),
            enemies=len(enemies),
            errors=len(errors),
        )
        return RuntimeContent(
            skills=skills,
            items=items,
            statuses=statuses,
            enemies=enemies,
            balance=config.balance,
            errors=tuple(errors),
        )

    def _compile_table(
        self,
        entry_kind: str,
        entries: Mapping[str, D],
        compile_entry: Callable[[D], T],
        errors: list[ContentCompileError],
    ) -> dict[str, T]:
        compiled: dict[str, T] = {}
        for entry_id, entry in entries.items():
            try:
                compiled[entry_id] = compile_entry(entry)
            except ContentCompileError as exc:
                if self.strict:
                    raise
                logger.error(
                    "Content entry skipped",
                    entry_kind=entry_kind,
                    entry_id=entry_id,
                    error=exc.message,
                )
                errors.append(exc)
        return compiled

    @staticmethod
    def _warn_unknown_references(
        skills: Mapping[str, RuntimeSkill],
        items: Mapping[str, RuntimeItem],
        statuses: Mapping[str, RuntimeStatusTemplate],
        enemies: Mapping[str, EnemyFactory],
    ) -> None:
        owners: list[tuple[str, tuple[RuntimeEffect, ...]]] = [
            (action.id, action.effects) for action in (*skills.values(), *items.values())
        ]
        for status in statuses.values():
            owners.extend((status.id, effects) for effects in status.hooks.values())
        for owner_id, effects in owners:
            for effect in effects:
                if effect.kind == EffectKind.APPLY_STATUS and effect.status_id not in statuses:
                    logger.warning(
                        "Unknown status reference",
                        entry_id=owner_id,
                        status_id=effect.status_id,
                    )
        for factory in enemies.values():
            for skill_id in factory.definition.skills:
                if skill_id not in skills:
                    logger.warning(
                        "Unknown enemy skill reference",
                        enemy_id=factory.definition.id,
                        skill_id=skill_id,
                    )


def compile_content(config: GameConfig, *, strict: bool = True) -> RuntimeContent:
    """Compile a GameConfig with a fresh ContentCompiler."""
    return ContentCompiler(strict=strict).compile(config)


__all__ = [
    "compile_selector",
    "compile_cost",
    "compile_value",
    "compile_effect",
    "compile_skill",
    "compile_item",
    "compile_status",
    "EnemyFactory",
    "ContentCompiler",
    "compile_content",
]
