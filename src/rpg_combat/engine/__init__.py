"""Battle engine for the combat resolver.

Submodules:
    formula: Arithmetic formula tokenizer, parser and evaluator.
    rng: Seeded linear congruential generator stored on the battle state.
    rules: Pure hit, crit, element and resistance calculations.
    targeting: Selector filters and target resolution.
    effects: Resource, stat and inventory primitives.
    status: Status application, ticking, hooks, shields and taunts.
    actions: Skill and item execution, turn advancement and outcomes.
    state: Battle state construction.
    ai: Enemy skill and target selection.
    rewards: Experience, gold and loot after a battle.

Example:
    >>> from rpg_combat.engine import ActionExecutor, create_battle_state
    >>>
    >>> state = create_battle_state([hero, goblin], rng_seed=123)
    >>> executor = ActionExecutor.from_content(content)
    >>> result = executor.use_skill(state, "slash", "hero")
    >>> executor.end_turn(state)
"""

from __future__ import annotations

# =============================================================================
# Formulas & Randomness
# =============================================================================
from rpg_combat.engine.formula import (
    CompiledFormula,
    compile_formula,
    to_rpn,
    tokenize,
)
from rpg_combat.engine.rng import draw, next_seed, preserved_seed

# =============================================================================
# Rules & Targeting
# =============================================================================
from rpg_combat.engine.rules import CombatRules, clamp, round_half_up
from rpg_combat.engine.targeting import (
    collect_targets,
    evaluate_filter,
    resolve_targets,
)

# =============================================================================
# Status & Actions
# =============================================================================
from rpg_combat.engine.status import ShieldAbsorption, StatusEngine
from rpg_combat.engine.actions import ActionExecutor, UseResult, validate_use

# =============================================================================
# Battle Flow
# =============================================================================
from rpg_combat.engine.state import create_battle_state
from rpg_combat.engine.ai import choose_enemy_skill, run_enemy_turn
from rpg_combat.engine.rewards import (
    BattleRewards,
    calculate_rewards,
    level_for_xp,
    summarize_outcome,
)


__all__ = [
    # Formulas & randomness
    "CompiledFormula",
    "compile_formula",
    "to_rpn",
    "tokenize",
    "draw",
    "next_seed",
    "preserved_seed",
    # Rules & targeting
    "CombatRules",
    "clamp",
    "round_half_up",
    "collect_targets",
    "evaluate_filter",
    "resolve_targets",
    # Status & actions
    "ShieldAbsorption",
    "StatusEngine",
    "ActionExecutor",
    "UseResult",
    "validate_use",
    # Battle flow
    "create_battle_state",
    "choose_enemy_skill",
    "run_enemy_turn",
    "BattleRewards",
    "calculate_rewards",
    "level_for_xp",
    "summarize_outcome",
]
