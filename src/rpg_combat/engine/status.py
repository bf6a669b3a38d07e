"""Status effect lifecycle: application, stacking, ticking, hooks, shields.

The StatusEngine owns everything that happens to an actor *because* of a
status: stack rules on reapplication, passive modifiers, start/end of turn
hooks, expiry, shields and taunts. Status templates come from the compiled
content tables and are bound at construction.

Hook effects are resolved without hit or crit rolls. Their targets are:

* ``onDealDamage``: the status owner.
* ``onTakeDamage``: the attacker.
* every other hook: the owner.

An effect with its own selector resolves it relative to the owner.

Example:
    >>> engine = StatusEngine(content.statuses, CombatRules(content.balance))
    >>> engine.apply_status(state, "hero", "burn", 3)
    >>> engine.tick_end_of_turn(state, "hero")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rpg_combat.core.exceptions import FormulaEvaluationError
from rpg_combat.core.logging import get_logger
from rpg_combat.engine import effects
from rpg_combat.engine.rules import CombatRules, round_half_up
from rpg_combat.engine.targeting import evaluate_filter, resolve_targets
from rpg_combat.models.battle import (
    ModifierSnapshot,
    ShieldState,
    StatusEntry,
    StatusModifierCache,
    TauntState,
)
from rpg_combat.models.enums import EffectKind, EndReason, HookName, Resource, StackRule


if TYPE_CHECKING:
    from rpg_combat.models.battle import Actor, BattleState
    from rpg_combat.models.runtime import RuntimeEffect, RuntimeStatusTemplate


logger = get_logger(__name__)

MAX_HOOK_DEPTH = 8


@dataclass(frozen=True)
class ShieldAbsorption:
    """Outcome of routing damage through shields.

    Attributes:
        remaining: Damage left for HP.
        absorbed: Damage soaked by shields.
    """

    remaining: int
    absorbed: int


@dataclass
class HookControl:
    """Mutable flags a start-of-turn hook can raise."""

    prevented: bool = False


def resolve_duration(turns: int | None, template: RuntimeStatusTemplate) -> int:
    """Explicit positive turns win, then the template default, then 0."""
    if turns is not None and turns > 0:
        return turns
    return template.duration_turns or 0


class StatusEngine:
    """Applies and ticks statuses for one set of status templates."""

    def __init__(
        self,
        statuses: Mapping[str, RuntimeStatusTemplate],
        rules: CombatRules | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            statuses: Status id -> compiled template.
            rules: Combat rules for hook damage multipliers.
        """
        self.statuses = statuses
        self.rules = rules or CombatRules()
        self._depth = 0

    # =========================================================================
    # Application
    # =========================================================================

    def apply_status(
        self,
        state: BattleState,
        target_id: str,
        status_id: str,
        turns: int | None = None,
        *,
        stacks: int = 1,
        source_id: str | None = None,
    ) -> StatusEntry | None:
        """Apply or reapply a status.

        Args:
            state: Battle state to mutate.
            target_id: Actor receiving the status.
            status_id: Template id.
            turns: Duration; non-positive falls back to the template default.
            stacks: Stacks requested, clamped to ``[1, maxStacks]``.
            source_id: Actor credited with the application.

        Returns:
            The active entry, or None if nothing was applied.
        """
        target = state.actor(target_id)
        if target is None:
            logger.warning("Status target not found", actor_id=target_id, status_id=status_id)
            return None
        template = self.statuses.get(status_id)
        if template is None:
            state.emit(f"Status {status_id} is not defined.")
            logger.warning("Unknown status", status_id=status_id)
            return None

        duration = resolve_duration(turns, template)
        if duration <= 0:
            state.emit(f"{template.name} had no effect.")
            return None

        requested = max(1, min(template.max_stacks, stacks))
        name = target.display_name
        entry = target.get_status(status_id)

        if entry is None:
            entry = StatusEntry(id=status_id, turns=duration, stacks=requested, source_id=source_id)
            target.statuses.append(entry)
            self._sync_modifiers(state, target, entry, template)
            state.emit(f"{name} is afflicted by {template.name} for {duration} turns.")
        else:
            match template.stack_rule:
                case StackRule.IGNORE:
                    state.emit(f"{template.name} is already affecting {name}.")
                    return entry
                case StackRule.RENEW:
                    entry.turns = duration
                    entry.stacks = requested
                    state.emit(f"{name}'s {template.name} was refreshed ({duration} turns).")
                case StackRule.STACK_COUNT | StackRule.STACK_MAGNITUDE:
                    entry.stacks = min(template.max_stacks, entry.stacks + requested)
                    entry.turns = duration
                    state.emit(
                        f"{name}'s {template.name} was refreshed ({duration} turns, "
                        f"{entry.stacks} stacks)."
                    )
            if source_id:
                entry.source_id = source_id
            self._sync_modifiers(state, target, entry, template)

        logger.debug(
            "Status applied",
            actor_id=target_id,
            status_id=status_id,
            turns=entry.turns,
            stacks=entry.stacks,
        )
        self._run_hooks(state, target, entry, template, HookName.ON_APPLY)
        return entry

    def cleanse_statuses(
        self,
        state: BattleState,
        actor_id: str,
        tags: Iterable[str] | None = None,
    ) -> list[str]:
        """Remove statuses sharing any of ``tags`` (every status if none).

        Removed statuses fire their onExpire hooks.

        Returns:
            Names of the removed statuses.
        """
        actor = state.actor(actor_id)
        if actor is None:
            return []
        wanted = set(tags or ())
        removed: list[str] = []
        for entry in list(actor.statuses):
            template = self.statuses.get(entry.id)
            status_tags = set(template.tags) if template else set()
            if wanted and not wanted & status_tags:
                continue
            name = template.name if template else entry.id
            self._remove_entry(state, actor, entry)
            state.emit(f"{actor.display_name} was cleansed of {name}.")
            removed.append(name)
            if template is not None:
                self._run_hooks(state, actor, entry, template, HookName.ON_EXPIRE)
        if not removed:
            state.emit(f"{actor.display_name} had nothing to cleanse.")
        return removed

    # =========================================================================
    # Ticking
    # =========================================================================

    def tick_start_of_turn(self, state: BattleState, actor_id: str) -> bool:
        """Run onTurnStart hooks.

        Returns:
            True if a hook prevented the actor from acting this turn.
        """
        actor = state.actor(actor_id)
        if actor is None or not actor.alive:
            return False
        control = HookControl()
        for entry in list(actor.statuses):
            if not self._is_active(actor, entry):
                continue
            template = self.statuses.get(entry.id)
            if template is None:
                continue
            self._run_hooks(state, actor, entry, template, HookName.ON_TURN_START, control=control)
        return control.prevented

    def tick_end_of_turn(self, state: BattleState, actor_id: str) -> None:
        """Run onTurnEnd hooks, count statuses down, regenerate, tick taunts."""
        actor = state.actor(actor_id)
        if actor is None:
            return

        for entry in list(actor.statuses):
            if not self._is_active(actor, entry):
                continue
            template = self.statuses.get(entry.id)
            if template is None:
                logger.warning("Dropping status without template", status_id=entry.id)
                self._remove_entry(state, actor, entry)
                continue
            if actor.alive:
                self._run_hooks(state, actor, entry, template, HookName.ON_TURN_END)
            if not self._is_active(actor, entry):
                continue
            entry.turns = max(0, entry.turns - 1)
            if entry.turns == 0:
                self._remove_entry(state, actor, entry)
                state.emit(f"{template.name} expired on {actor.display_name}.")
                self._run_hooks(state, actor, entry, template, HookName.ON_EXPIRE)

        self._regenerate(state, actor)
        self._tick_taunt(state, actor)

    def trigger_hooks(
        self,
        state: BattleState,
        actor_id: str,
        hook: HookName,
        *,
        other_id: str | None = None,
        amount: float = 0.0,
        element: str | None = None,
    ) -> None:
        """Run one hook for every status on an actor.

        Used by the action executor for onDealDamage and onTakeDamage.
        """
        actor = state.actor(actor_id)
        if actor is None:
            return
        other = state.actor(other_id) if other_id else None
        for entry in list(actor.statuses):
            if not self._is_active(actor, entry):
                continue
            template = self.statuses.get(entry.id)
            if template is None:
                continue
            self._run_hooks(
                state, actor, entry, template, hook, other=other, amount=amount, element=element
            )

    # =========================================================================
    # Shields & taunts
    # =========================================================================

    def grant_shield(
        self,
        state: BattleState,
        actor_id: str,
        shield_id: str,
        amount: float,
        element: str | None = None,
        *,
        replace: bool = False,
    ) -> int:
        """Add to (or replace) a named shield pool.

        Returns:
            The pool's HP afterwards.
        """
        value = max(0, round_half_up(amount))
        pools = state.shields.setdefault(actor_id, {})
        existing = pools.get(shield_id)
        if replace or existing is None:
            if value <= 0:
                pools.pop(shield_id, None)
                return 0
            pools[shield_id] = ShieldState(id=shield_id, hp=value, element=element)
            return value
        existing.hp += value
        if element:
            existing.element = element
        return existing.hp

    def absorb_damage_with_shields(
        self,
        state: BattleState,
        actor_id: str,
        amount: int,
    ) -> ShieldAbsorption:
        """Route incoming damage through shields in insertion order.

        Each pool soaks what it can. Absorption lines are logged first, then
        one line per depleted pool, which is removed.
        """
        pools = state.shields.get(actor_id)
        actor = state.actor(actor_id)
        if amount <= 0 or not pools:
            return ShieldAbsorption(remaining=max(0, amount), absorbed=0)

        name = actor.display_name if actor else actor_id
        remaining = amount
        absorbed = 0
        shattered: list[str] = []
        for shield_id, pool in list(pools.items()):
            if remaining <= 0:
                break
            soaked = min(pool.hp, remaining)
            if soaked <= 0:
                continue
            pool.hp -= soaked
            remaining -= soaked
            absorbed += soaked
            state.emit(f"{name}'s {shield_id} absorbed {soaked} damage.")
            if pool.hp <= 0:
                del pools[shield_id]
                shattered.append(shield_id)
        for shield_id in shattered:
            state.emit(f"{name}'s {shield_id} shattered.")
        if not pools:
            del state.shields[actor_id]
        return ShieldAbsorption(remaining=remaining, absorbed=absorbed)

    def apply_taunt(
        self,
        state: BattleState,
        target_id: str,
        source_id: str,
        turns: int,
    ) -> None:
        """Force ``target_id`` to target ``source_id`` for some turns.

        Non-positive turns clear any taunt.
        """
        if turns <= 0:
            state.taunts.pop(target_id, None)
            return
        state.taunts[target_id] = TauntState(source_id=source_id, turns=turns)

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _is_active(actor: Actor, entry: StatusEntry) -> bool:
        return any(existing is entry for existing in actor.statuses)

    def _remove_entry(self, state: BattleState, actor: Actor, entry: StatusEntry) -> None:
        for index, existing in enumerate(actor.statuses):
            if existing is entry:
                del actor.statuses[index]
                break
        self._release_snapshot(state, actor, entry)
        self._rebuild_cache(actor)

    def _release_snapshot(self, state: BattleState, actor: Actor, entry: StatusEntry) -> None:
        snapshot = entry.applied
        if snapshot is None:
            return
        effects.shift_stat(actor, "atk", -snapshot.atk)
        effects.shift_stat(actor, "defense", -snapshot.defense)
        if snapshot.shield_id:
            pools = state.shields.get(actor.id)
            if pools is not None:
                pools.pop(snapshot.shield_id, None)
                if not pools:
                    del state.shields[actor.id]
        entry.applied = None

    def _sync_modifiers(
        self,
        state: BattleState,
        actor: Actor,
        entry: StatusEntry,
        template: RuntimeStatusTemplate,
    ) -> None:
        mods = template.modifiers
        previous_atk = entry.applied.atk if entry.applied else 0
        previous_def = entry.applied.defense if entry.applied else 0
        if mods is None:
            self._rebuild_cache(actor)
            return

        scale = entry.stacks if template.stack_rule == StackRule.STACK_MAGNITUDE else 1
        effects.shift_stat(actor, "atk", -previous_atk)
        effects.shift_stat(actor, "defense", -previous_def)
        applied_atk = effects.shift_stat(actor, "atk", round_half_up((mods.atk or 0) * scale))
        applied_def = effects.shift_stat(
            actor, "defense", round_half_up((mods.defense or 0) * scale)
        )
        entry.applied = ModifierSnapshot(
            atk=applied_atk,
            defense=applied_def,
            damage_taken_pct={k: v * scale for k, v in mods.damage_taken_pct.items()},
            damage_dealt_pct={k: v * scale for k, v in mods.damage_dealt_pct.items()},
            resource_regen={k: v * scale for k, v in mods.resource_regen_per_turn.items()},
            dodge_bonus=(mods.dodge_bonus or 0.0) * scale,
            crit_chance_bonus=(mods.crit_chance_bonus or 0.0) * scale,
            shield_id=mods.shield.id if mods.shield else None,
        )
        if mods.shield:
            self.grant_shield(
                state,
                actor.id,
                mods.shield.id,
                mods.shield.hp * scale,
                mods.shield.element,
                replace=True,
            )
        self._rebuild_cache(actor)

    @staticmethod
    def _rebuild_cache(actor: Actor) -> None:
        taken: dict[str, float] = {}
        dealt: dict[str, float] = {}
        regen: dict[Resource, float] = {}
        dodge = 0.0
        crit = 0.0
        for entry in actor.statuses:
            snapshot = entry.applied
            if snapshot is None:
                continue
            for key, value in snapshot.damage_taken_pct.items():
                taken[key] = taken.get(key, 0.0) + value
            for key, value in snapshot.damage_dealt_pct.items():
                dealt[key] = dealt.get(key, 0.0) + value
            for resource, value in snapshot.resource_regen.items():
                regen[resource] = regen.get(resource, 0.0) + value
            dodge += snapshot.dodge_bonus
            crit += snapshot.crit_chance_bonus
        actor.modifiers = StatusModifierCache(
            damage_taken_pct=taken,
            damage_dealt_pct=dealt,
            resource_regen=regen,
            dodge_bonus=dodge,
            crit_chance_bonus=crit,
        )

    def _regenerate(self, state: BattleState, actor: Actor) -> None:
        if not actor.alive:
            return
        for resource, amount in actor.modifiers.resource_regen.items():
            delta = round_half_up(amount)
            if delta == 0:
                continue
            applied = effects.shift_resource(actor, resource, delta)
            if applied > 0:
                state.emit(f"{actor.display_name} regenerates {applied} {resource.label}.")
            elif applied < 0:
                state.emit(f"{actor.display_name} loses {-applied} {resource.label}.")

    @staticmethod
    def _tick_taunt(state: BattleState, actor: Actor) -> None:
        taunt = state.taunts.get(actor.id)
        if taunt is None:
            return
        taunt.turns = max(0, taunt.turns - 1)
        if taunt.turns == 0:
            del state.taunts[actor.id]
            state.emit(f"{actor.display_name} is no longer taunted.")

    # =========================================================================
    # Hooks
    # =========================================================================

    def _run_hooks(
        self,
        state: BattleState,
        owner: Actor,
        entry: StatusEntry,
        template: RuntimeStatusTemplate,
        hook: HookName,
        *,
        other: Actor | None = None,
        amount: float = 0.0,
        element: str | None = None,
        control: HookControl | None = None,
    ) -> None:
        hook_effects = template.hook(hook)
        if not hook_effects:
            return
        if self._depth >= MAX_HOOK_DEPTH:
            logger.warning("Hook depth exceeded", status_id=template.id, hook=hook.value)
            return

        if hook in (HookName.ON_DEAL_DAMAGE, HookName.ON_TAKE_DAMAGE):
            source = owner
            default_target = owner if hook == HookName.ON_DEAL_DAMAGE else other
        else:
            attributed = state.actor(entry.source_id) if entry.source_id else None
            source = attributed or owner
            default_target = owner

        context: dict[str, Any] = {
            "stacks": entry.stacks,
            "turns": entry.turns,
            "maxStacks": template.max_stacks,
            "amount": amount,
            "turn": state.turn,
        }

        self._depth += 1
        try:
            for effect in hook_effects:
                if effect.selector is not None:
                    ids = resolve_targets(state, effect.selector, owner.id)
                    targets = [t for t in (state.actor(i) for i in ids) if t is not None]
                else:
                    targets = [default_target] if default_target is not None else []
                for target in targets:
                    if not evaluate_filter(target, effect.only_if):
                        logger.debug(
                            "Hook target filtered out",
                            status_id=template.id,
                            actor_id=target.id,
                        )
                        continue
                    try:
                        value = effect.value(source, target, context)
                    except FormulaEvaluationError as exc:
                        state.emit(f"{template.name} failed to resolve value: {exc.message}")
                        logger.warning(
                            "Hook formula failed",
                            status_id=template.id,
                            hook=hook.value,
                            error=str(exc),
                        )
                        continue
                    self._apply_hook_effect(
                        state,
                        effect,
                        template,
                        owner=owner,
                        source=source,
                        target=target,
                        value=value,
                        element=element,
                        control=control,
                    )
        finally:
            self._depth -= 1

    def _apply_hook_effect(
        self,
        state: BattleState,
        effect: RuntimeEffect,
        template: RuntimeStatusTemplate,
        *,
        owner: Actor,
        source: Actor,
        target: Actor,
        value: float,
        element: str | None,
        control: HookControl | None,
    ) -> None:
        name = target.display_name
        match effect.kind:
            case EffectKind.DAMAGE:
                if not target.alive:
                    return
                hit_element = effect.element or element
                multiplier = self.rules.damage_multiplier(
                    hit_element, target
                ) * effects.modifier_multiplier(target.modifiers.damage_taken_pct, [hit_element])
                lost, died = effects.take_damage(target, max(0, round_half_up(value * multiplier)))
                line = f"{name} suffers {lost} damage from {template.name}."
                if died:
                    line += f" {name} was defeated."
                state.emit(line)
            case EffectKind.HEAL:
                if not target.alive:
                    logger.debug("Hook heal skipped on defeated actor", actor_id=target.id)
                    return
                multiplier = effects.modifier_multiplier(
                    target.modifiers.damage_taken_pct, [effects.HEAL_CATEGORY]
                )
                healed = effects.restore_hp(target, round_half_up(value * multiplier))
                state.emit(f"{name} recovers {healed} HP from {template.name}.")
            case EffectKind.RESOURCE:
                if effect.resource is None:
                    logger.warning("Resource effect without resource", status_id=template.id)
                    return
                effects.change_resource(
                    state, target, effect.resource, value, source=template.name
                )
            case EffectKind.APPLY_STATUS:
                if effect.status_id:
                    stacks = round_half_up(value) if value >= 1 else 1
                    self.apply_status(
                        state,
                        target.id,
                        effect.status_id,
                        effect.status_turns,
                        stacks=stacks,
                        source_id=source.id,
                    )
            case EffectKind.CLEANSE_STATUS | EffectKind.DISPEL:
                self.cleanse_statuses(state, target.id, effect.cleanse_tags or None)
            case EffectKind.MODIFY_STAT:
                if effect.stat is not None:
                    effects.modify_stat(state, target, effect.stat, value)
            case EffectKind.SHIELD:
                shield_id = effect.shield_id or template.id
                total = self.grant_shield(state, target.id, shield_id, value, effect.element)
                state.emit(f"{name} gains a {shield_id} shield ({total}).")
            case EffectKind.TAUNT:
                turns = effect.status_turns or round_half_up(value)
                self.apply_taunt(state, target.id, source.id, turns)
                if turns > 0:
                    state.emit(f"{name} is taunted by {source.display_name} for {turns} turns.")
            case EffectKind.FLEE:
                if state.finish(EndReason.FLED):
                    state.emit(f"{owner.display_name} fled the battle.")
            case EffectKind.REVIVE:
                effects.revive(state, target, value)
            case EffectKind.SUMMON:
                state.emit(f"{template.name} tried to summon, but summoning is not supported.")
            case EffectKind.GIVE_ITEM:
                if effect.item_id:
                    effects.give_item(state, effect.item_id, round_half_up(value))
            case EffectKind.REMOVE_ITEM:
                if effect.item_id:
                    effects.remove_item(state, effect.item_id, round_half_up(value))
            case EffectKind.PREVENT_ACTION:
                if control is None:
                    logger.debug("preventAction outside turn start", status_id=template.id)
                elif not control.prevented:
                    control.prevented = True
                    state.emit(effect.message or f"{owner.display_name} is unable to act.")


__all__ = [
    "MAX_HOOK_DEPTH",
    "ShieldAbsorption",
    "HookControl",
    "resolve_duration",
    "StatusEngine",
]
