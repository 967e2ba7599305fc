from __future__ import annotations

from hypothesis import given, settings

from frontline.domain.models import RoadStage
from frontline.domain.types import Direction
from frontline.rules.ruleset import MilitaryRules
from frontline.systems.threat import (
    Threat,
    ceil_scaled,
    converging_strength_by_turn,
    floor_scaled,
    is_suicidal,
    same_turn_strength,
    threat_ahead,
    turns_until_arrival,
)
from tests.helpers.factories import army, army_on_road, loc, make_world, road
from tests.helpers.strategies import strength_strategy

RULES = MilitaryRules.default()


def test_bonus_needs_manning() -> None:
    assert Threat(troops=400, bonus=1000).effective == 400
    assert Threat(troops=500, bonus=1000).effective == 1500
    assert Threat(troops=0, bonus=4000).effective == 0


def test_overwhelming_defense_is_suicidal() -> None:
    threat = Threat(troops=600, bonus=1500)
    assert not is_suicidal(threat, 1800, RULES)
    assert is_suicidal(threat, 1000, RULES)


def test_bonus_alone_outweighing_the_attack_is_suicidal() -> None:
    assert is_suicidal(Threat(troops=600, bonus=2500), 2400, RULES)


def test_empty_defense_is_never_suicidal() -> None:
    assert not is_suicidal(Threat(troops=0, bonus=4000), 0, RULES)


def test_scaled_rounding() -> None:
    assert ceil_scaled(1400, 1.1) == 1540
    assert floor_scaled(1000, 1.2) == 1200
    assert floor_scaled(50, 0.5) == 25


@given(troops=strength_strategy(0, 6000), bonus=strength_strategy(0, 4000), friendly=strength_strategy(1, 6000))
@settings(max_examples=60)
def test_safe_advance_is_never_outnumbered(troops: int, bonus: int, friendly: int) -> None:
    threat = Threat(troops=troops, bonus=bonus)
    if not is_suicidal(threat, friendly, RULES):
        assert threat.effective <= friendly * 1.5


def test_arrival_turns_and_convergence() -> None:
    r = road("r", "A", "T", stages=3)
    back = road("back", "T", "B", stages=2)
    world = make_world(
        [loc("A", "F"), loc("T", "E"), loc("B", "F")],
        [r, back],
        [
            army_on_road("x", "F", 300, r, 0),
            army_on_road("y", "F", 400, r, 2),
            army("z", "F", 500, "T"),
            army_on_road("w", "F", 600, back, 1, direction=Direction.BACKWARD),
        ],
    )
    assert turns_until_arrival(world, world.army("x")) == 3
    assert turns_until_arrival(world, world.army("y")) == 1
    assert turns_until_arrival(world, world.army("w")) == 2

    assert converging_strength_by_turn(world, "T", "F") == {0: 500, 1: 400, 3: 300, 2: 600}
    assert same_turn_strength(world, world.army("y"), "T") == 400


def test_threat_ahead_reads_next_stage_then_destination() -> None:
    r = road("r", "A", "T", stage_defs=[RoadStage("near"), RoadStage("pass", natural_defense=2000)])
    world = make_world(
        [loc("A", "F"), loc("T", "E", fortification_level=1)],
        [r],
        [
            army_on_road("scout", "F", 300, r, 0),
            army_on_road("blocker", "E", 700, r, 1),
            army_on_road("last", "F", 300, r, 1),
            army("holder", "E", 900, "T"),
        ],
    )
    on_pass = threat_ahead(world, world.army("scout"))
    assert on_pass.troops == 700
    assert on_pass.bonus == 2000

    at_gate = threat_ahead(world, world.army("last"))
    assert at_gate.troops == 900
    assert at_gate.bonus == 500
