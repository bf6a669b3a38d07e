"""Pytest configuration and shared fixtures.

This module provides common fixtures for the combat core test suite: a
sample content document, its compiled tables, actors and a ready-made
one-on-one battle.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from rpg_combat.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "RPG_COMBAT_DEBUG": "true",
        "RPG_COMBAT_LOG_LEVEL": "WARNING",
        "RPG_COMBAT_ENGINE__DEFAULT_RNG_SEED": "777",
        "RPG_COMBAT_ENGINE__STRICT_CONTENT": "false",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Content Fixtures
# =============================================================================


@pytest.fixture
def sample_content_data() -> dict[str, Any]:
    """Provide a small but complete content document.

    Returns:
        Dictionary shaped like an authored JSON content file.
    """
    return {
        "__version": 1,
        "balance": {
            "ELEMENT_MATRIX": {"fire": {"undead": 2.0, "neutral": 1.0}},
            "RESISTS_BY_TAG": {"armored": 0.5},
            "XP_CURVE": {"base": 5, "growth": 1.6},
            "GOLD_DROP": {"mean": 5, "variance": 2},
            "LOOT_ROLLS": 1,
        },
        "statuses": {
            "burn": {
                "name": "Burn",
                "tags": ["dot", "fire"],
                "durationTurns": 3,
                "stackRule": "renew",
                "hooks": {"onTurnEnd": [{"kind": "damage", "amount": 5}]},
            },
            "poison": {
                "name": "Poison",
                "tags": ["dot"],
                "durationTurns": 3,
                "stackRule": "stackCount",
                "maxStacks": 3,
                "hooks": {"onTurnEnd": [{"kind": "damage", "formula": "2 * ctx.stacks"}]},
            },
            "guarded": {
                "name": "Guarded",
                "tags": ["buff"],
                "durationTurns": 2,
                "stackRule": "ignore",
                "modifiers": {"def": 5, "damageTakenPct": {"all": -0.5}},
            },
            "stun": {
                "name": "Stun",
                "tags": ["control"],
                "durationTurns": 1,
                "hooks": {"onTurnStart": [{"kind": "preventAction"}]},
            },
            "thorns": {
                "name": "Thorns",
                "durationTurns": 3,
                "hooks": {"onTakeDamage": [{"kind": "damage", "amount": 3}]},
            },
            "regen": {
                "name": "Regen",
                "tags": ["buff"],
                "durationTurns": 3,
                "modifiers": {"resourceRegenPerTurn": {"hp": 4, "mp": 2}},
            },
            "barrier": {
                "name": "Barrier",
                "durationTurns": 2,
                "modifiers": {"shield": {"id": "barrier", "hp": 10}},
            },
        },
        "skills": {
            "slash": {
                "name": "Slash",
                "targeting": {"side": "enemy", "mode": "single"},
                "effects": [{"kind": "damage", "formula": "floor(u.atk * 2 - t.def)", "min": 1}],
            },
            "fireball": {
                "name": "Fireball",
                "element": "fire",
                "targeting": {"side": "enemy", "mode": "all"},
                "costs": {"mp": 5},
                "effects": [
                    {"kind": "damage", "amount": 10},
                    {"kind": "applyStatus", "statusId": "burn"},
                ],
            },
            "mend": {
                "name": "Mend",
                "targeting": {"side": "ally", "mode": "lowest", "ofWhat": "hpPct"},
                "costs": {"mp": 3},
                "effects": [{"kind": "heal", "percent": 50}],
            },
            "power_strike": {
                "name": "Power Strike",
                "costs": {"sta": 4, "cooldown": 2},
                "effects": [{"kind": "damage", "amount": 15}],
            },
            "last_stand": {
                "name": "Last Stand",
                "targeting": {"side": "self", "mode": "self"},
                "canUse": {"test": {"key": "hpPct", "op": "lte", "value": 0.5}},
                "costs": {"charges": 1},
                "effects": [{"kind": "heal", "amount": 20}],
            },
            "provoke": {
                "name": "Provoke",
                "targeting": {"side": "enemy", "mode": "all"},
                "effects": [{"kind": "taunt", "statusTurns": 2}],
            },
            "bite": {
                "name": "Bite",
                "aiWeight": 1,
                "effects": [{"kind": "damage", "amount": 4}],
            },
            "rend": {
                "name": "Rend",
                "aiWeight": 3,
                "costs": {"sta": 5},
                "effects": [{"kind": "damage", "amount": 8}],
            },
        },
        "items": {
            "potion": {
                "name": "Potion",
                "consumable": True,
                "targeting": {"side": "self", "mode": "self"},
                "effects": [{"kind": "heal", "amount": 10000}],
            },
            "phoenix_down": {
                "name": "Phoenix Down",
                "consumable": True,
                "targeting": {"side": "ally", "mode": "single", "includeDead": True},
                "effects": [{"kind": "revive", "amount": 10}],
            },
            "smoke_bomb": {
                "name": "Smoke Bomb",
                "consumable": True,
                "targeting": {"side": "self", "mode": "self"},
                "effects": [{"kind": "flee"}],
            },
        },
        "enemies": {
            "goblin": {
                "name": "Goblin",
                "base": {"maxHp": 20, "maxSta": 10, "atk": 4, "def": 1},
                "scale": {"maxHp": 5, "atk": 1},
                "skills": ["bite", "rend"],
                "items": [{"id": "potion", "qty": 1}],
                "tags": ["beast"],
            },
            "skeleton": {
                "name": "Skeleton",
                "base": {"maxHp": 30, "atk": 5, "def": 2},
                "tags": ["undead"],
            },
        },
    }


@pytest.fixture
def game_config(sample_content_data: dict[str, Any]) -> Any:
    """Validate the sample content document.

    Returns:
        GameConfig instance.
    """
    from rpg_combat.content.loader import parse_game_config

    return parse_game_config(sample_content_data)


@pytest.fixture
def runtime_content(game_config: Any) -> Any:
    """Compile the sample content.

    Returns:
        RuntimeContent instance.
    """
    from rpg_combat.content.compiler import compile_content

    return compile_content(game_config)


@pytest.fixture
def executor(runtime_content: Any) -> Any:
    """Create an ActionExecutor bound to the sample content.

    Returns:
        ActionExecutor instance.
    """
    from rpg_combat.engine.actions import ActionExecutor

    return ActionExecutor.from_content(runtime_content)


# =============================================================================
# Actor Fixtures
# =============================================================================


@pytest.fixture
def make_actor() -> Callable[..., Any]:
    """Provide a factory for simple actors.

    Returns:
        Callable ``(actor_id, *, hp=..., max_hp=..., tags=..., **stats)``.
    """
    from rpg_combat.models.battle import Actor, Stats

    def factory(
        actor_id: str,
        *,
        name: str | None = None,
        hp: int | None = None,
        max_hp: int = 100,
        tags: list[str] | None = None,
        clazz: str | None = None,
        alive: bool | None = None,
        **stats: int,
    ) -> Any:
        current = max_hp if hp is None else hp
        values = {"max_sta": 20, "sta": 20, "max_mp": 20, "mp": 20, **stats}
        return Actor(
            id=actor_id,
            name=name or actor_id.title(),
            clazz=clazz,
            stats=Stats(max_hp=max_hp, hp=current, **values),
            alive=current > 0 if alive is None else alive,
            tags=tags or [],
        )

    return factory


@pytest.fixture
def hero(make_actor: Callable[..., Any]) -> Any:
    """Create the player character used across tests.

    Returns:
        Actor with 40 max HP, 10 ATK and 3 DEF.
    """
    return make_actor(
        "hero",
        name="Hero",
        max_hp=40,
        atk=10,
        defense=3,
        tags=["player"],
        clazz="knight",
    )


@pytest.fixture
def goblin(runtime_content: Any) -> Any:
    """Spawn a level 1 goblin from the sample content.

    Returns:
        Actor with 25 max HP, 5 ATK and 1 DEF.
    """
    return runtime_content.enemies["goblin"](1)


@pytest.fixture
def battle(hero: Any, goblin: Any) -> Any:
    """Create a hero-versus-goblin battle with seed 123.

    Returns:
        BattleState instance.
    """
    from rpg_combat.engine.state import create_battle_state

    return create_battle_state([hero, goblin], rng_seed=123)
