"""Enemy turn selection.

An enemy considers every skill listed in its ``meta.skill_ids`` and picks
the usable one with the highest ``aiWeight``; the first listed skill wins
ties. A skill is usable when the executor would accept it and it has at
least one target. When the enemy is taunted the taunter becomes its
explicit target; otherwise single-target skills lean on the enemy's
``preferTags`` and ``avoidTags``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from rpg_combat.core.exceptions import CombatError
from rpg_combat.core.logging import get_logger
from rpg_combat.engine.actions import UseResult, validate_use
from rpg_combat.engine.targeting import collect_targets
from rpg_combat.models.enums import TargetMode


if TYPE_CHECKING:
    from rpg_combat.engine.actions import ActionExecutor
    from rpg_combat.models.battle import BattleState
    from rpg_combat.models.runtime import RuntimeSkill


logger = get_logger(__name__)

_AREA_MODES = (TargetMode.SELF, TargetMode.ALL, TargetMode.CONDITION)


def choose_enemy_skill(
    state: BattleState,
    actor_id: str,
    skills: Mapping[str, RuntimeSkill],
) -> RuntimeSkill | None:
    """Pick the skill an enemy should use this turn.

    Args:
        state: Current battle. Not modified.
        actor_id: Acting enemy.
        skills: Compiled skill table.

    Returns:
        The chosen skill, or None when nothing is usable.
    """
    actor = state.actor(actor_id)
    if actor is None:
        return None

    chosen: RuntimeSkill | None = None
    for skill_id in actor.meta.skill_ids:
        skill = skills.get(skill_id)
        if skill is None:
            logger.warning("Enemy skill not found", actor_id=actor_id, skill_id=skill_id)
            continue
        if validate_use(state, skill, actor_id) is not None:
            continue
        if not collect_targets(state, skill.targeting, actor_id, honor_taunt=False):
            continue
        if chosen is None or skill.ai_weight > chosen.ai_weight:
            chosen = skill
    return chosen


def choose_enemy_targets(
    state: BattleState,
    actor_id: str,
    skill: RuntimeSkill,
) -> list[str] | None:
    """Explicit targets for an enemy's skill, or None to let it resolve.

    Area skills always resolve on their own. Otherwise a live taunt wins.
    For single-target skills, a candidate carrying one of the actor's
    preferred tags is picked first, and candidates carrying an avoided tag
    are passed over while others remain.
    """
    actor = state.actor(actor_id)
    if actor is None:
        return None

    if skill.targeting.mode in _AREA_MODES:
        return None
    candidates = collect_targets(state, skill.targeting, actor_id)
    taunt = state.taunts.get(actor_id)
    if taunt is not None and candidates == [taunt.source_id]:
        return candidates
    if skill.targeting.mode != TargetMode.SINGLE or not candidates:
        return None

    prefer = set(actor.meta.prefer_tags)
    avoid = set(actor.meta.avoid_tags)
    if not prefer and not avoid:
        return None

    tolerable = [
        target_id for target_id in candidates if not avoid & set(state.actors[target_id].tags)
    ] or candidates
    for target_id in tolerable:
        if prefer & set(state.actors[target_id].tags):
            return [target_id]
    return [tolerable[0]]


def run_enemy_turn(
    executor: ActionExecutor,
    state: BattleState,
    actor_id: str,
    skills: Mapping[str, RuntimeSkill] | None = None,
) -> UseResult:
    """Let an enemy act.

    Args:
        executor: Executor that resolves the chosen skill.
        state: Battle state to mutate.
        actor_id: Acting enemy.
        skills: Skill table. Defaults to the executor's.

    Returns:
        The skill's result, or an ``ok`` result holding the wait line.

    Raises:
        CombatError: If ``actor_id`` is not in the battle.
    """
    if state.actor(actor_id) is None:
        raise CombatError(f"Unknown enemy actor: {actor_id}", actor_id=actor_id, turn=state.turn)

    table = executor.skills if skills is None else skills
    skill = choose_enemy_skill(state, actor_id, table)
    if skill is not None:
        targets = choose_enemy_targets(state, actor_id, skill)
        logger.debug("Enemy chose skill", actor_id=actor_id, skill_id=skill.id, targets=targets)
        return executor.use(state, skill, actor_id, targets)

    line = f"{state.actors[actor_id].display_name} waits cautiously."
    state.emit(line)
    return UseResult(ok=True, log=[line], state=state)


__all__ = [
    "choose_enemy_skill",
    "choose_enemy_targets",
    "run_enemy_turn",
]
