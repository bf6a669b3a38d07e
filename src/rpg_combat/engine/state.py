"""Battle state construction.

Callers assemble actors (players built by hand, enemies spawned through
compiled enemy factories) and hand them to :func:`create_battle_state`,
which fills in sides, turn order and the RNG seed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from rpg_combat.core.config import get_settings
from rpg_combat.core.exceptions import InvalidBattleStateError
from rpg_combat.core.logging import get_logger
from rpg_combat.models.battle import Actor, BattleState, InventoryEntry


logger = get_logger(__name__)

PLAYER_TAG = "player"
ENEMY_TAG = "enemy"


def _check_known(ids: list[str], actors: Mapping[str, Actor], label: str) -> None:
    missing = [actor_id for actor_id in ids if actor_id not in actors]
    if missing:
        raise InvalidBattleStateError(
            f"{label} references unknown actors: {', '.join(missing)}",
            current_state=label,
            details={"missing": missing},
        )


def create_battle_state(
    actors: Iterable[Actor] | Mapping[str, Actor],
    *,
    side_player: list[str] | None = None,
    side_enemy: list[str] | None = None,
    rng_seed: int | None = None,
    inventory: Iterable[InventoryEntry] | None = None,
    order: list[str] | None = None,
) -> BattleState:
    """Create a fresh battle.

    Args:
        actors: Combatants, as a list or an id -> actor mapping.
        side_player: Player-side ids. Defaults to actors tagged ``player``.
        side_enemy: Enemy-side ids. Defaults to actors tagged ``enemy``.
        rng_seed: Initial LCG seed. Defaults to the configured engine seed.
        inventory: Shared player inventory; copied into the state.
        order: Turn order. Defaults to players then enemies.

    Returns:
        A battle at turn 1 with the first actor in ``order`` to act.

    Raises:
        InvalidBattleStateError: If ids repeat or sides/order name
            actors that were not supplied.
    """
    if isinstance(actors, Mapping):
        roster = dict(actors)
    else:
        roster = {}
        for actor in actors:
            if actor.id in roster:
                raise InvalidBattleStateError(
                    f"Duplicate actor id: {actor.id}",
                    current_state="actors",
                )
            roster[actor.id] = actor

    if side_player is None:
        side_player = [a.id for a in roster.values() if PLAYER_TAG in a.tags]
    if side_enemy is None:
        side_enemy = [a.id for a in roster.values() if ENEMY_TAG in a.tags]
    _check_known(side_player, roster, "side_player")
    _check_known(side_enemy, roster, "side_enemy")

    overlap = set(side_player) & set(side_enemy)
    if overlap:
        raise InvalidBattleStateError(
            f"Actors cannot fight on both sides: {', '.join(sorted(overlap))}",
            current_state="sides",
        )

    turn_order = list(order) if order else [*side_player, *side_enemy]
    _check_known(turn_order, roster, "order")

    if rng_seed is None:
        rng_seed = get_settings().engine.default_rng_seed

    state = BattleState(
        order=turn_order,
        rng_seed=rng_seed,
        actors=roster,
        side_player=list(side_player),
        side_enemy=list(side_enemy),
        inventory=[entry.model_copy() for entry in inventory or ()],
    )
    logger.info(
        "Battle created",
        players=len(side_player),
        enemies=len(side_enemy),
        rng_seed=rng_seed,
    )
    return state


__all__ = [
    "PLAYER_TAG",
    "ENEMY_TAG",
    "create_battle_state",
]
