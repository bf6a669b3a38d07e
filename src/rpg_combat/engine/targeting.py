"""Target resolution for selectors.

``resolve_targets`` turns a selector into a concrete list of actor ids:

1. Gather candidates by side, relative to the user (``any`` lists the
   user's own side first).
2. Drop dead actors unless the selector includes them.
3. Apply the optional condition filter.
4. Narrow by mode: the user, the first candidate, everyone, a seeded
   random sample, a metric sort, or every filter match.

Random sampling draws from the battle's LCG, one draw per pick, so
resolution advances ``state.rng_seed`` deterministically. Taunts are not
applied here; :func:`collect_targets` does that for callers that present
a target choice.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from rpg_combat.core.logging import get_logger
from rpg_combat.engine.rng import draw, preserved_seed
from rpg_combat.models.content import Filter, FilterTest, TargetSelector
from rpg_combat.models.enums import CompareKey, ConditionOp, TargetMode, TargetSide
from rpg_combat.models.runtime import RuntimeSelector


if TYPE_CHECKING:
    from rpg_combat.models.battle import Actor, BattleState


logger = get_logger(__name__)


# =============================================================================
# Metrics & filters
# =============================================================================


def actor_metric(actor: Actor, key: CompareKey) -> float:
    """Numeric value of an actor attribute.

    Non-numeric keys (``hasStatus``, ``tag``, ``clazz``) read as 0.
    """
    match key:
        case CompareKey.HP_PCT:
            return actor.hp_pct
        case CompareKey.STA_PCT:
            return actor.sta_pct
        case CompareKey.MP_PCT:
            return actor.mp_pct
        case CompareKey.ATK:
            return float(actor.stats.atk)
        case CompareKey.DEF:
            return float(actor.stats.defense)
        case CompareKey.LV:
            return float(actor.stats.lv)
        case CompareKey.HAS_STATUS | CompareKey.TAG | CompareKey.CLAZZ:
            return 0.0


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list | tuple | set | frozenset):
        return list(value)
    return [value]


def _compare_numbers(left: float, op: ConditionOp, value: Any) -> bool:
    if op in (ConditionOp.IN, ConditionOp.NOT_IN):
        members = [float(v) for v in _as_list(value) if isinstance(v, int | float)]
        hit = any(math.isclose(left, member) for member in members)
        return hit if op == ConditionOp.IN else not hit
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    right = float(value)
    match op:
        case ConditionOp.LT:
            return left < right
        case ConditionOp.LTE:
            return left <= right
        case ConditionOp.EQ:
            return left == right
        case ConditionOp.GTE:
            return left >= right
        case ConditionOp.GT:
            return left > right
        case ConditionOp.NE:
            return left != right
    return False


def _compare_membership(present: set[str], op: ConditionOp, value: Any) -> bool:
    wanted = {str(v) for v in _as_list(value) if v is not None}
    match op:
        case ConditionOp.EQ | ConditionOp.IN:
            return bool(present & wanted)
        case ConditionOp.NE | ConditionOp.NOT_IN:
            return not present & wanted
    return False


def evaluate_test(actor: Actor, test: FilterTest) -> bool:
    """Evaluate a single filter comparison against an actor."""
    match test.key:
        case CompareKey.HAS_STATUS:
            return _compare_membership({s.id for s in actor.statuses}, test.op, test.value)
        case CompareKey.TAG:
            return _compare_membership(set(actor.tags), test.op, test.value)
        case CompareKey.CLAZZ:
            present = {actor.clazz} if actor.clazz else set()
            return _compare_membership(present, test.op, test.value)
        case _:
            return _compare_numbers(actor_metric(actor, test.key), test.op, test.value)


def evaluate_filter(actor: Actor, condition: Filter | None) -> bool:
    """Evaluate a recursive filter. Present clauses must all hold.

    An absent or empty filter matches.
    """
    if condition is None:
        return True
    if condition.all_of is not None and not all(
        evaluate_filter(actor, sub) for sub in condition.all_of
    ):
        return False
    if condition.any_of is not None and not any(
        evaluate_filter(actor, sub) for sub in condition.any_of
    ):
        return False
    if condition.negate is not None and evaluate_filter(actor, condition.negate):
        return False
    if condition.test is not None and not evaluate_test(actor, condition.test):
        return False
    return True


# =============================================================================
# Resolution
# =============================================================================


def as_runtime_selector(selector: RuntimeSelector | TargetSelector) -> RuntimeSelector:
    """Accept authored selectors by filling runtime defaults."""
    if isinstance(selector, RuntimeSelector):
        return selector
    count = selector.count
    if count is None and selector.mode not in (TargetMode.ALL, TargetMode.CONDITION):
        count = 1
    return RuntimeSelector(
        side=selector.side,
        mode=selector.mode,
        count=count,
        of_what=selector.of_what or CompareKey.HP_PCT,
        condition=selector.condition,
        include_dead=selector.include_dead,
    )


def _side_ids(state: BattleState, side: TargetSide, user_id: str) -> list[str]:
    match side:
        case TargetSide.SELF:
            return [user_id]
        case TargetSide.ALLY:
            return state.allies_of(user_id)
        case TargetSide.ENEMY:
            return state.enemies_of(user_id)
        case TargetSide.ANY:
            return state.allies_of(user_id) + state.enemies_of(user_id)


def candidate_actors(state: BattleState, selector: RuntimeSelector, user_id: str) -> list[Actor]:
    """Actors eligible before mode narrowing, in side order."""
    if selector.mode == TargetMode.SELF:
        ids = [user_id]
    else:
        ids = _side_ids(state, selector.side, user_id)

    candidates: list[Actor] = []
    for actor_id in ids:
        actor = state.actor(actor_id)
        if actor is None:
            logger.debug("Skipping unknown actor id", actor_id=actor_id)
            continue
        if not actor.alive and not selector.include_dead:
            continue
        if not evaluate_filter(actor, selector.condition):
            continue
        candidates.append(actor)
    return candidates


def _random_sample(state: BattleState, pool: list[Actor], count: int) -> list[Actor]:
    picks = list(pool)
    for i in range(min(count, len(picks))):
        j = i + math.floor(draw(state) * (len(picks) - i))
        picks[i], picks[j] = picks[j], picks[i]
    return picks[: min(count, len(picks))]


def resolve_targets(
    state: BattleState,
    selector: RuntimeSelector | TargetSelector,
    user_id: str,
) -> list[str]:
    """Resolve a selector to target ids.

    Args:
        state: Battle state. ``rng_seed`` advances once per random pick.
        selector: Runtime or authored selector.
        user_id: Acting actor; sides are relative to it.

    Returns:
        Target ids, possibly empty.
    """
    selector = as_runtime_selector(selector)
    candidates = candidate_actors(state, selector, user_id)
    count = selector.count

    match selector.mode:
        case TargetMode.SELF:
            chosen = candidates[:1]
        case TargetMode.SINGLE:
            chosen = candidates[:1]
        case TargetMode.ALL:
            chosen = candidates if count is None else candidates[:count]
        case TargetMode.RANDOM:
            chosen = _random_sample(state, candidates, 1 if count is None else count)
        case TargetMode.LOWEST | TargetMode.HIGHEST:
            ranked = sorted(
                candidates,
                key=lambda actor: actor_metric(actor, selector.of_what),
                reverse=selector.mode == TargetMode.HIGHEST,
            )
            chosen = ranked[: 1 if count is None else count]
        case TargetMode.CONDITION:
            chosen = candidates if count is None else candidates[:count]

    return [actor.id for actor in chosen]


def collect_targets(
    state: BattleState,
    selector: RuntimeSelector | TargetSelector,
    user_id: str,
    *,
    honor_taunt: bool = True,
) -> list[str]:
    """List every valid target for a manual choice, honoring taunts.

    Every candidate the selector's side and condition allow is listed,
    whatever its mode or count, without consuming randomness. When the
    user is taunted and the taunter is a valid candidate, only the taunter
    is returned; a taunt whose source is dead or missing is cleared.
    """
    selector = as_runtime_selector(selector)
    preview = RuntimeSelector(
        side=TargetSide.SELF if selector.mode == TargetMode.SELF else selector.side,
        mode=TargetMode.CONDITION,
        count=None,
        of_what=selector.of_what,
        condition=selector.condition,
        include_dead=selector.include_dead,
    )

    with preserved_seed(state):
        targets = resolve_targets(state, preview, user_id)

    if not honor_taunt:
        return targets
    taunt = state.taunts.get(user_id)
    if taunt is None:
        return targets
    source = state.actor(taunt.source_id)
    if source is None or not source.alive:
        del state.taunts[user_id]
        logger.debug("Cleared stale taunt", actor_id=user_id, source_id=taunt.source_id)
        return targets
    if taunt.source_id in targets:
        return [taunt.source_id]
    return targets


__all__ = [
    "actor_metric",
    "evaluate_test",
    "evaluate_filter",
    "as_runtime_selector",
    "candidate_actors",
    "resolve_targets",
    "collect_targets",
]
