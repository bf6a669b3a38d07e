"""Tests for selector filters and target resolution."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from rpg_combat.engine.state import create_battle_state
from rpg_combat.engine.targeting import (
    collect_targets,
    evaluate_filter,
    resolve_targets,
)
from rpg_combat.models.battle import BattleState, StatusEntry, TauntState
from rpg_combat.models.content import Filter, TargetSelector


def _selector(**data: Any) -> TargetSelector:
    return TargetSelector.model_validate(data)


@pytest.fixture
def party_battle(make_actor: Callable[..., Any]) -> BattleState:
    """Two heroes against three enemies at 90%, 10% and 50% HP."""
    actors = [
        make_actor("hero", tags=["player"], max_hp=40),
        make_actor("mage", tags=["player"], max_hp=30, hp=15, clazz="mage"),
        make_actor("e90", tags=["enemy", "beast"], hp=90),
        make_actor("e10", tags=["enemy", "undead"], hp=10),
        make_actor("e50", tags=["enemy", "beast"], hp=50),
    ]
    return create_battle_state(actors, rng_seed=123)


class TestFilters:
    """Tests for filter evaluation."""

    def test_empty_filter_matches(self, make_actor: Callable[..., Any]) -> None:
        """Test absent and empty filters match everything."""
        actor = make_actor("a")
        assert evaluate_filter(actor, None)
        assert evaluate_filter(actor, Filter())

    def test_numeric_test(self, make_actor: Callable[..., Any]) -> None:
        """Test numeric comparisons on hpPct."""
        actor = make_actor("a", hp=30)
        condition = Filter.model_validate({"test": {"key": "hpPct", "op": "lt", "value": 0.5}})
        assert evaluate_filter(actor, condition)

    def test_membership_tests(self, make_actor: Callable[..., Any]) -> None:
        """Test tag, clazz and hasStatus comparisons."""
        actor = make_actor("a", tags=["undead"], clazz="mage")
        actor.statuses.append(StatusEntry(id="burn", turns=2))

        assert evaluate_filter(
            actor, Filter.model_validate({"test": {"key": "tag", "op": "eq", "value": "undead"}})
        )
        assert evaluate_filter(
            actor,
            Filter.model_validate(
                {"test": {"key": "clazz", "op": "in", "value": ["mage", "priest"]}}
            ),
        )
        assert evaluate_filter(
            actor,
            Filter.model_validate({"test": {"key": "hasStatus", "op": "eq", "value": "burn"}}),
        )
        assert not evaluate_filter(
            actor,
            Filter.model_validate(
                {"test": {"key": "hasStatus", "op": "notIn", "value": ["burn", "poison"]}}
            ),
        )

    def test_composite_filter(self, make_actor: Callable[..., Any]) -> None:
        """Test all, any and not combine."""
        actor = make_actor("a", lv=5, tags=["beast"])
        condition = Filter.model_validate(
            {
                "all": [{"test": {"key": "lv", "op": "gte", "value": 3}}],
                "any": [
                    {"test": {"key": "tag", "op": "eq", "value": "undead"}},
                    {"test": {"key": "tag", "op": "eq", "value": "beast"}},
                ],
                "not": {"test": {"key": "hpPct", "op": "lt", "value": 0.5}},
            }
        )
        assert evaluate_filter(actor, condition)
        actor.stats.hp = 10
        assert not evaluate_filter(actor, condition)


class TestResolveTargets:
    """Tests for resolve_targets."""

    def test_lowest_hp_pct(self, party_battle: BattleState) -> None:
        """Test lowest picks the 10% enemy regardless of order."""
        selector = _selector(side="enemy", mode="lowest", ofWhat="hpPct", count=1)
        assert resolve_targets(party_battle, selector, "hero") == ["e10"]

    def test_highest_with_count(self, party_battle: BattleState) -> None:
        """Test highest returns the top N in descending order."""
        selector = _selector(side="enemy", mode="highest", ofWhat="hpPct", count=2)
        assert resolve_targets(party_battle, selector, "hero") == ["e90", "e50"]

    def test_single_takes_first(self, party_battle: BattleState) -> None:
        """Test single mode picks the first living candidate."""
        assert resolve_targets(party_battle, _selector(), "hero") == ["e90"]

    def test_sides_are_relative(self, party_battle: BattleState) -> None:
        """Test enemy-side actors see players as enemies."""
        selector = _selector(side="enemy", mode="all")
        assert resolve_targets(party_battle, selector, "e10") == ["hero", "mage"]
        assert resolve_targets(party_battle, _selector(side="ally", mode="all"), "e10") == [
            "e90",
            "e10",
            "e50",
        ]

    def test_any_lists_own_side_first(self, party_battle: BattleState) -> None:
        """Test side any starts with the user's allies."""
        targets = resolve_targets(party_battle, _selector(side="any", mode="all"), "hero")
        assert targets == ["hero", "mage", "e90", "e10", "e50"]

    def test_self_mode(self, party_battle: BattleState) -> None:
        """Test self mode returns the user."""
        assert resolve_targets(party_battle, _selector(side="enemy", mode="self"), "mage") == [
            "mage"
        ]

    def test_dead_excluded(self, party_battle: BattleState) -> None:
        """Test dead actors are skipped unless included."""
        party_battle.actors["e90"].alive = False
        party_battle.actors["e90"].stats.hp = 0

        assert "e90" not in resolve_targets(party_battle, _selector(mode="all"), "hero")
        assert "e90" in resolve_targets(
            party_battle, _selector(mode="all", includeDead=True), "hero"
        )

    def test_condition_before_mode(self, party_battle: BattleState) -> None:
        """Test the condition narrows candidates before sorting."""
        selector = _selector(
            mode="lowest",
            condition={"test": {"key": "tag", "op": "eq", "value": "beast"}},
        )
        assert resolve_targets(party_battle, selector, "hero") == ["e50"]

    def test_condition_mode_uncapped(self, party_battle: BattleState) -> None:
        """Test condition mode returns every match by default."""
        selector = _selector(
            mode="condition",
            condition={"test": {"key": "hpPct", "op": "gte", "value": 0.5}},
        )
        assert resolve_targets(party_battle, selector, "hero") == ["e90", "e50"]

    def test_random_is_seeded(self, party_battle: BattleState) -> None:
        """Test random picks use one draw each and repeat for equal seeds."""
        selector = _selector(mode="random")

        first = resolve_targets(party_battle, selector, "hero")

        assert first == ["e90"]
        assert party_battle.rng_seed == 1218640798

    def test_random_count_distinct(self, party_battle: BattleState) -> None:
        """Test a multi-pick random sample has no repeats."""
        targets = resolve_targets(party_battle, _selector(mode="random", count=3), "hero")
        assert sorted(targets) == ["e10", "e50", "e90"]

    def test_empty_when_no_candidates(self, party_battle: BattleState) -> None:
        """Test an empty candidate list yields no targets."""
        selector = _selector(condition={"test": {"key": "lv", "op": "gt", "value": 50}})
        assert resolve_targets(party_battle, selector, "hero") == []


class TestCollectTargets:
    """Tests for collect_targets."""

    def test_lists_all_without_drawing(self, party_battle: BattleState) -> None:
        """Test single and random selectors list every candidate."""
        seed = party_battle.rng_seed

        targets = collect_targets(party_battle, _selector(mode="random"), "hero")

        assert targets == ["e90", "e10", "e50"]
        assert party_battle.rng_seed == seed

    def test_taunt_narrows(self, party_battle: BattleState) -> None:
        """Test a taunted actor may only pick its taunter."""
        party_battle.taunts["e10"] = TauntState(source_id="mage", turns=2)

        assert collect_targets(party_battle, _selector(), "e10") == ["mage"]
        assert collect_targets(party_battle, _selector(), "e10", honor_taunt=False) == [
            "hero",
            "mage",
        ]

    def test_taunt_overrides_sorted_mode(self, party_battle: BattleState) -> None:
        """Test a taunter wins even when a lowest pick would skip it."""
        party_battle.taunts["e10"] = TauntState(source_id="hero", turns=2)
        weakest = _selector(side="enemy", mode="lowest", ofWhat="hpPct")

        assert resolve_targets(party_battle, weakest, "e10") == ["mage"]
        assert collect_targets(party_battle, weakest, "e10") == ["hero"]

    def test_sorted_modes_list_every_candidate(self, party_battle: BattleState) -> None:
        """Test mode and count do not cut the listed candidates."""
        strongest = _selector(side="enemy", mode="highest", ofWhat="hpPct", count=1)

        assert collect_targets(party_battle, strongest, "hero") == ["e90", "e10", "e50"]

    def test_stale_taunt_cleared(self, party_battle: BattleState) -> None:
        """Test a taunt from a defeated source is dropped."""
        party_battle.taunts["e10"] = TauntState(source_id="mage", turns=2)
        party_battle.actors["mage"].alive = False

        assert collect_targets(party_battle, _selector(), "e10") == ["hero"]
        assert "e10" not in party_battle.taunts
