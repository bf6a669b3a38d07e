"""rpg-combat - Data-driven turn-based RPG combat resolver.

Authored JSON content (skills, items, statuses, enemies, balance) is
validated and compiled once into immutable runtime tables. A pure engine
then resolves actions against a mutable battle state, writing every
outcome to an append-only battle log.

DETERMINISM:
- All randomness comes from a seeded LCG stored on the battle state
- Identical content, seed and call sequence produce identical logs
- Rejected actions explain themselves in the log and pay no costs

Example:
    >>> from rpg_combat import ActionExecutor, create_battle_state, load_runtime_content
    >>>
    >>> content = load_runtime_content()
    >>> goblin = content.enemies["goblin"](level=2, actor_id="e1")
    >>> state = create_battle_state([hero, goblin], rng_seed=123)
    >>> executor = ActionExecutor.from_content(content)
    >>> result = executor.use_skill(state, "slash", "hero")
    >>> print("\\n".join(result.log))

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 content schemas, battle state and runtime forms.
    content: Content loading and compilation.
    engine: Formulas, targeting, rules, statuses and action execution.
"""

from __future__ import annotations

# Core
from rpg_combat.core.config import Settings, get_settings
from rpg_combat.core.exceptions import RpgCombatError
from rpg_combat.core.logging import configure_logging, get_logger

# Models
from rpg_combat.models.battle import Actor, BattleState, Stats
from rpg_combat.models.content import GameConfig
from rpg_combat.models.runtime import RuntimeContent

# Content pipeline
from rpg_combat.content.compiler import compile_content
from rpg_combat.content.loader import load_game_config, load_runtime_content

# Engine
from rpg_combat.engine.actions import ActionExecutor, UseResult
from rpg_combat.engine.ai import run_enemy_turn
from rpg_combat.engine.formula import compile_formula
from rpg_combat.engine.rewards import calculate_rewards, summarize_outcome
from rpg_combat.engine.state import create_battle_state
from rpg_combat.engine.status import StatusEngine
from rpg_combat.engine.targeting import collect_targets, resolve_targets


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "RpgCombatError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "Actor",
    "BattleState",
    "Stats",
    "GameConfig",
    "RuntimeContent",
    # Content
    "compile_content",
    "load_game_config",
    "load_runtime_content",
    # Engine
    "ActionExecutor",
    "UseResult",
    "run_enemy_turn",
    "compile_formula",
    "calculate_rewards",
    "summarize_outcome",
    "create_battle_state",
    "StatusEngine",
    "collect_targets",
    "resolve_targets",
]
