"""Action execution: skills and items applied to a battle.

``ActionExecutor.use`` validates an action (battle state, user, canUse,
cooldown, charges, item stock, STA, MP, targets), pays its costs in one
step, then runs each effect in declaration order and finally checks for
victory or defeat. Gameplay rejections are not exceptions: they return
``UseResult(ok=False)`` with an explanation in the battle log and leave
the battle untouched apart from that line.

Example:
    >>> executor = ActionExecutor.from_content(content)
    >>> result = executor.use_skill(state, "fireball", "hero")
    >>> result.ok, result.log[0]
    (True, 'Hero used Fireball.')
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rpg_combat.core.exceptions import FormulaEvaluationError
from rpg_combat.core.logging import get_logger
from rpg_combat.engine import effects
from rpg_combat.engine.rng import draw
from rpg_combat.engine.rules import CombatRules, clamp, round_half_up
from rpg_combat.engine.status import StatusEngine
from rpg_combat.engine.targeting import evaluate_filter, resolve_targets
from rpg_combat.models.battle import ChargeState
from rpg_combat.models.content import Balance
from rpg_combat.models.enums import EffectKind, EndReason, HookName


if TYPE_CHECKING:
    from rpg_combat.models.battle import Actor, BattleState
    from rpg_combat.models.runtime import (
        RuntimeAction,
        RuntimeContent,
        RuntimeEffect,
        RuntimeItem,
        RuntimeSkill,
        RuntimeStatusTemplate,
    )


logger = get_logger(__name__)


@dataclass(frozen=True)
class UseResult:
    """Outcome of an executor call.

    Attributes:
        ok: False when the call was rejected and nothing was paid.
        log: Battle log lines appended by this call.
        state: The (mutated) battle state.
    """

    ok: bool
    log: list[str]
    state: BattleState


@dataclass
class _AccuracyRoll:
    value: float | None = None


def validate_use(state: BattleState, action: RuntimeAction, user_id: str) -> str | None:
    """Check whether ``user_id`` may use ``action`` right now.

    Returns:
        The rejection message, or None when the action is usable.
    """
    if state.ended is not None:
        return "The battle is already over."
    user = state.actor(user_id)
    if user is None:
        return f"Unknown actor {user_id}."
    name = user.display_name
    if not user.alive:
        return f"{name} cannot act while defeated."
    if not evaluate_filter(user, action.can_use):
        return f"{name} cannot use {action.name}."

    costs = action.costs
    cooldown = state.cooldowns.get(user_id, {}).get(action.id, 0)
    if cooldown > 0:
        return f"{action.name} is on cooldown ({cooldown} turns)."
    if costs.charges is not None:
        charge = state.charges.get(user_id, {}).get(action.id)
        remaining = charge.remaining if charge else costs.charges
        if remaining <= 0:
            return f"{action.name} has no charges left."
    if costs.item_id and state.inventory_qty(costs.item_id) < costs.item_qty:
        return f"Not enough {costs.item_id}."
    if user.stats.sta < costs.sta:
        return f"Not enough STA to use {action.name}."
    if user.stats.mp < costs.mp:
        return f"Not enough MP to use {action.name}."
    return None


class ActionExecutor:
    """Resolves skills, items, flee attempts and turn advancement."""

    def __init__(
        self,
        statuses: Mapping[str, RuntimeStatusTemplate] | None = None,
        balance: Balance | None = None,
        *,
        skills: Mapping[str, RuntimeSkill] | None = None,
        items: Mapping[str, RuntimeItem] | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            statuses: Status templates for applyStatus effects and hooks.
            balance: Balance constants.
            skills: Skill table for lookups by id.
            items: Item table for lookups by id.
        """
        self.balance = balance or Balance()
        self.rules = CombatRules(self.balance)
        self.status_engine = StatusEngine(statuses or {}, self.rules)
        self.skills = skills or {}
        self.items = items or {}

    @classmethod
    def from_content(cls, content: RuntimeContent) -> ActionExecutor:
        """Build an executor bound to compiled content tables."""
        return cls(
            content.statuses,
            content.balance,
            skills=content.skills,
            items=content.items,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def use_skill(
        self,
        state: BattleState,
        skill: RuntimeSkill | str,
        user_id: str,
        target_ids: list[str] | None = None,
    ) -> UseResult:
        """Use a skill, given directly or by id."""
        if isinstance(skill, str):
            found = self.skills.get(skill)
            if found is None:
                return self._reject(state, f"Unknown skill {skill}.")
            skill = found
        return self.use(state, skill, user_id, target_ids)

    def use_item(
        self,
        state: BattleState,
        item: RuntimeItem | str,
        user_id: str,
        target_ids: list[str] | None = None,
    ) -> UseResult:
        """Use an item, given directly or by id."""
        if isinstance(item, str):
            found = self.items.get(item)
            if found is None:
                return self._reject(state, f"Unknown item {item}.")
            item = found
        return self.use(state, item, user_id, target_ids)

    def use(
        self,
        state: BattleState,
        action: RuntimeAction,
        user_id: str,
        target_ids: list[str] | None = None,
    ) -> UseResult:
        """Validate, pay for and resolve an action.

        Args:
            state: Battle state to mutate.
            action: Compiled skill or item.
            user_id: Acting actor.
            target_ids: Explicit targets. When omitted the action's own
                selector picks them.

        Returns:
            UseResult with the lines this call appended.
        """
        start = len(state.log)
        rejection = validate_use(state, action, user_id)
        if rejection is not None:
            return self._reject(state, rejection)

        user = state.actors[user_id]
        targets = self._base_targets(state, action, user_id, target_ids)
        if not targets:
            return self._reject(state, f"{action.name} has no valid targets.")

        self._pay_costs(state, user, action)
        state.emit(f"{user.display_name} used {action.name}.")
        logger.debug(
            "Action used",
            action_id=action.id,
            user_id=user_id,
            targets=targets,
            turn=state.turn,
        )

        for effect in action.effects:
            if state.ended is not None:
                break
            self._run_effect(state, action, effect, user, targets)

        self.check_outcome(state)
        return UseResult(ok=True, log=state.log[start:], state=state)

    def end_turn(self, state: BattleState) -> UseResult:
        """Advance to the next actor in the turn order.

        Every active cooldown counts down by one. Wrapping past the end of
        the order starts a new turn.
        """
        start = len(state.log)
        for actor_id, table in list(state.cooldowns.items()):
            for action_id in list(table):
                table[action_id] -= 1
                if table[action_id] <= 0:
                    del table[action_id]
            if not table:
                del state.cooldowns[actor_id]

        if not state.order:
            return UseResult(ok=False, log=state.log[start:], state=state)

        state.current = (state.current + 1) % len(state.order)
        if state.current == 0:
            state.turn += 1
            state.emit(f"Turn {state.turn} begins.")
        return UseResult(ok=True, log=state.log[start:], state=state)

    def attempt_flee(self, state: BattleState, user_id: str) -> UseResult:
        """Roll once against FLEE_BASE to escape the battle."""
        start = len(state.log)
        if state.ended is not None:
            return self._reject(state, "The battle is already over.")
        user = state.actor(user_id)
        if user is None:
            return self._reject(state, f"Unknown actor {user_id}.")
        if not user.alive:
            return self._reject(state, f"{user.display_name} cannot act while defeated.")

        if draw(state) < self.balance.flee_base:
            state.finish(EndReason.FLED)
            state.emit(f"{user.display_name} fled the battle.")
            logger.info("Battle ended", reason=EndReason.FLED.value, turn=state.turn)
        else:
            state.emit(f"{user.display_name} failed to flee.")
        return UseResult(ok=True, log=state.log[start:], state=state)

    def check_outcome(self, state: BattleState) -> EndReason | None:
        """End the battle if one side has no living actors.

        Returns:
            The end reason, if the battle is over.
        """
        if state.ended is not None:
            return state.ended.reason
        if not state.living(state.side_enemy):
            state.finish(EndReason.VICTORY)
            state.emit("Victory!")
        elif not state.living(state.side_player):
            state.finish(EndReason.DEFEAT)
            state.emit("Defeat...")
        else:
            return None
        logger.info("Battle ended", reason=state.ended.reason.value, turn=state.turn)
        return state.ended.reason

    # =========================================================================
    # Validation & costs
    # =========================================================================

    @staticmethod
    def _reject(state: BattleState, message: str) -> UseResult:
        state.emit(message)
        logger.debug("Action rejected", reason=message)
        return UseResult(ok=False, log=[message], state=state)

    @staticmethod
    def _base_targets(
        state: BattleState,
        action: RuntimeAction,
        user_id: str,
        target_ids: list[str] | None,
    ) -> list[str]:
        if target_ids is None:
            return resolve_targets(state, action.targeting, user_id)
        include_dead = action.targeting.include_dead
        chosen: list[str] = []
        for target_id in target_ids:
            actor = state.actor(target_id)
            if actor is None:
                logger.debug("Ignoring unknown target", target_id=target_id)
                continue
            if actor.alive or include_dead:
                chosen.append(target_id)
        return chosen

    @staticmethod
    def _pay_costs(state: BattleState, user: Actor, action: RuntimeAction) -> None:
        costs = action.costs
        user.stats.sta -= costs.sta
        user.stats.mp -= costs.mp
        if costs.item_id:
            effects.take_item(state, costs.item_id, costs.item_qty)
        if costs.cooldown > 0:
            state.cooldowns.setdefault(user.id, {})[action.id] = costs.cooldown
        if costs.charges is not None:
            table = state.charges.setdefault(user.id, {})
            charge = table.get(action.id)
            if charge is None:
                charge = ChargeState(remaining=costs.charges, max=costs.charges)
                table[action.id] = charge
            charge.remaining -= 1

    # =========================================================================
    # Effects
    # =========================================================================

    def _run_effect(
        self,
        state: BattleState,
        action: RuntimeAction,
        effect: RuntimeEffect,
        user: Actor,
        base_targets: list[str],
    ) -> None:
        ids = (
            resolve_targets(state, effect.selector, user.id)
            if effect.selector is not None
            else base_targets
        )
        targets = [actor for actor in (state.actor(i) for i in ids) if actor is not None]
        if not targets:
            state.emit(f"{action.name} found no targets for its {effect.kind.value} effect.")
            return

        accuracy = _AccuracyRoll()
        for index, target in enumerate(targets):
            if not evaluate_filter(target, effect.only_if):
                state.emit(f"{action.name} has no effect on {target.display_name}.")
                continue
            context: dict[str, Any] = {
                "turn": state.turn,
                "targetIndex": index,
                "targetCount": len(targets),
            }
            try:
                value = effect.value(user, target, context)
            except FormulaEvaluationError as exc:
                state.emit(f"{action.name} failed to resolve value: {exc.message}")
                logger.warning(
                    "Effect formula failed",
                    action_id=action.id,
                    target_id=target.id,
                    error=str(exc),
                )
                continue
            self._apply_effect(state, action, effect, user, target, value, accuracy)

    def _apply_effect(
        self,
        state: BattleState,
        action: RuntimeAction,
        effect: RuntimeEffect,
        user: Actor,
        target: Actor,
        value: float,
        accuracy: _AccuracyRoll,
    ) -> None:
        name = target.display_name
        match effect.kind:
            case EffectKind.DAMAGE:
                self._deal_damage(state, action, effect, user, target, value, accuracy)
            case EffectKind.HEAL:
                if not target.alive:
                    state.emit(f"{name} cannot be healed while defeated.")
                    return
                multiplier = effects.modifier_multiplier(
                    target.modifiers.damage_taken_pct, [effects.HEAL_CATEGORY]
                )
                healed = effects.restore_hp(target, round_half_up(value * multiplier))
                state.emit(f"{name} was healed for {healed} HP.")
            case EffectKind.RESOURCE:
                if effect.resource is None:
                    state.emit(f"{action.name} does not name a resource.")
                elif not target.alive:
                    state.emit(f"{name} is defeated.")
                else:
                    effects.change_resource(state, target, effect.resource, value)
            case EffectKind.APPLY_STATUS:
                if not effect.status_id:
                    state.emit(f"{action.name} does not name a status.")
                elif not target.alive:
                    state.emit(f"{name} is defeated.")
                else:
                    self.status_engine.apply_status(
                        state,
                        target.id,
                        effect.status_id,
                        effect.status_turns,
                        stacks=round_half_up(value) if value >= 1 else 1,
                        source_id=user.id,
                    )
            case EffectKind.CLEANSE_STATUS | EffectKind.DISPEL:
                self.status_engine.cleanse_statuses(state, target.id, effect.cleanse_tags or None)
            case EffectKind.MODIFY_STAT:
                if effect.stat is None:
                    state.emit(f"{action.name} does not name a stat.")
                else:
                    effects.modify_stat(state, target, effect.stat, value)
            case EffectKind.SHIELD:
                shield_id = effect.shield_id or action.id
                total = self.status_engine.grant_shield(
                    state, target.id, shield_id, value, effect.element
                )
                state.emit(f"{name} gains a {shield_id} shield ({total}).")
            case EffectKind.TAUNT:
                turns = effect.status_turns or round_half_up(value)
                self.status_engine.apply_taunt(state, target.id, user.id, turns)
                if turns > 0:
                    state.emit(f"{name} is taunted by {user.display_name} for {turns} turns.")
                else:
                    state.emit(f"{name} is no longer taunted.")
            case EffectKind.FLEE:
                if state.finish(EndReason.FLED):
                    state.emit(f"{user.display_name} fled the battle.")
                    logger.info("Battle ended", reason=EndReason.FLED.value, turn=state.turn)
            case EffectKind.REVIVE:
                effects.revive(state, target, value)
            case EffectKind.SUMMON:
                state.emit(f"{action.name} tried to summon, but summoning is not supported.")
            case EffectKind.GIVE_ITEM:
                if effect.item_id:
                    effects.give_item(state, effect.item_id, round_half_up(value))
                else:
                    state.emit(f"{action.name} does not name an item.")
            case EffectKind.REMOVE_ITEM:
                if effect.item_id:
                    effects.remove_item(state, effect.item_id, round_half_up(value))
                else:
                    state.emit(f"{action.name} does not name an item.")
            case EffectKind.PREVENT_ACTION:
                state.emit(f"{action.name} can only prevent actions through a status.")

    def _deal_damage(
        self,
        state: BattleState,
        action: RuntimeAction,
        effect: RuntimeEffect,
        user: Actor,
        target: Actor,
        value: float,
        accuracy: _AccuracyRoll,
    ) -> None:
        name = target.display_name
        if not target.alive:
            state.emit(f"{name} is already defeated.")
            return

        if effect.can_miss:
            chance = clamp(
                self.rules.hit_chance(user, target) - target.modifiers.dodge_bonus,
                self.balance.dodge_floor,
                self.balance.hit_ceil,
            )
            if effect.shared_accuracy_roll:
                if accuracy.value is None:
                    accuracy.value = draw(state)
                roll = accuracy.value
            else:
                roll = draw(state)
            if roll >= chance:
                state.emit(f"{user.display_name}'s {action.name} missed {name}.")
                return

        element = effect.element
        amount = value * self.rules.damage_multiplier(element, target)
        amount *= effects.modifier_multiplier(user.modifiers.damage_dealt_pct, [element])
        amount *= effects.modifier_multiplier(target.modifiers.damage_taken_pct, [element])

        critical = False
        if effect.can_crit:
            crit_chance = clamp(
                self.rules.crit_chance(user, target) + user.modifiers.crit_chance_bonus,
                0.0,
                1.0,
            )
            if draw(state) < crit_chance:
                critical = True
                amount *= self.balance.crit_mult

        incoming = max(0, round_half_up(amount))
        absorption = self.status_engine.absorb_damage_with_shields(state, target.id, incoming)
        lost, died = effects.take_damage(target, absorption.remaining)

        line = f"{user.display_name}'s {action.name} hits {name} for {lost} damage."
        if critical:
            line += " Critical hit!"
        state.emit(line)
        if died:
            state.emit(f"{name} was defeated.")

        if incoming > 0:
            self.status_engine.trigger_hooks(
                state,
                user.id,
                HookName.ON_DEAL_DAMAGE,
                other_id=target.id,
                amount=incoming,
                element=element,
            )
            self.status_engine.trigger_hooks(
                state,
                target.id,
                HookName.ON_TAKE_DAMAGE,
                other_id=user.id,
                amount=incoming,
                element=element,
            )


__all__ = [
    "UseResult",
    "validate_use",
    "ActionExecutor",
]
