"""Content pipeline: load authored JSON and compile it to runtime tables.

Submodules:
    loader: Parse content documents into validated GameConfig models.
    compiler: Compile a GameConfig into RuntimeContent.
"""

from __future__ import annotations

from rpg_combat.content.compiler import (
    ContentCompiler,
    EnemyFactory,
    compile_content,
)
from rpg_combat.content.loader import (
    load_game_config,
    load_runtime_content,
    parse_game_config,
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
)


__all__ = [
    "ContentCompiler",
    "EnemyFactory",
    "compile_content",
    "load_game_config",
    "load_runtime_content",
    "parse_game_config",
    "RuntimeContent",
    "RuntimeCost",
    "RuntimeEffect",
    "RuntimeItem",
    "RuntimeSelector",
    "RuntimeSkill",
    "RuntimeStatusTemplate",
    "RuntimeValue",
]
