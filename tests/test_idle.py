from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from frontline.domain.models import Mission, SingleStaging
from frontline.domain.types import Direction, MissionStatus, MissionType
from frontline.rules.ruleset import MilitaryRules
from frontline.systems.idle import check_moving_armies, handle_idle_armies
from frontline.systems.threat import is_suicidal, same_turn_strength, threat_ahead
from tests.helpers.factories import army, army_on_road, local, loc, make_ctx, make_world, road
from tests.helpers.strategies import strength_strategy

WEST = road("r", "A", "T", stages=2)
EAST = road("r2", "B", "T", stages=1)


def _approach(*armies, fort: int = 0):
    return make_world(
        [loc("A", "F"), loc("B", "F"), loc("T", "E", fortification_level=fort)],
        [WEST, EAST],
        list(armies),
    )


def test_lone_army_halts_before_a_superior_garrison() -> None:
    world = _approach(
        army_on_road("x", "F", 500, WEST, 1),
        army("foe", "E", 1200, "T"),
    )
    ctx = make_ctx(world)

    handle_idle_armies(ctx)

    assert world.army("x").garrisoned
    assert world.army("x").road.stage_index == 1
    assert ctx.is_assigned("x")


def test_converging_armies_are_judged_together() -> None:
    world = _approach(
        army_on_road("x", "F", 500, WEST, 1),
        army_on_road("y", "F", 400, EAST, 0),
        army("foe", "E", 1200, "T"),
    )

    handle_idle_armies(make_ctx(world))

    assert not world.army("x").garrisoned
    assert not world.army("y").garrisoned


def test_stalled_army_turns_back_from_a_hopeless_advance() -> None:
    world = _approach(
        army_on_road("x", "F", 500, WEST, 1, garrisoned=True),
        army("foe", "E", 3000, "T"),
    )

    handle_idle_armies(make_ctx(world))

    x = world.army("x")
    assert x.destination_id == "A"
    assert x.road.direction is Direction.BACKWARD
    assert not x.garrisoned


def test_stalled_army_advances_when_the_way_clears() -> None:
    world = _approach(
        army_on_road("x", "F", 500, WEST, 1, garrisoned=True),
        army("foe", "E", 100, "T"),
    )

    handle_idle_armies(make_ctx(world))

    x = world.army("x")
    assert x.destination_id == "T"
    assert not x.garrisoned


@given(
    x=strength_strategy(100, 3000),
    y=strength_strategy(100, 3000),
    foe=strength_strategy(0, 5000),
    fort=st.integers(min_value=0, max_value=2),
)
@settings(max_examples=60)
def test_advancing_armies_are_never_outmatched(x: int, y: int, foe: int, fort: int) -> None:
    units = [army_on_road("x", "F", x, WEST, 1), army_on_road("y", "F", y, EAST, 0)]
    if foe:
        units.append(army("foe", "E", foe, "T"))
    world = _approach(*units, fort=fort)

    halted = {a.id for a in check_moving_armies(make_ctx(world))}

    for army_id in ("x", "y"):
        unit = world.army(army_id)
        threat = threat_ahead(world, unit)
        combined = same_turn_strength(world, unit, "T")
        if army_id in halted:
            assert is_suicidal(threat, combined, world.rules)
        else:
            assert threat.effective <= combined * 1.5


def test_needed_garrison_stays_home() -> None:
    world = make_world([loc("H", "F")], armies=[army("a", "F", 400, "H")])

    handle_idle_armies(make_ctx(world))

    assert world.army("a").garrisoned


def _campaign_map(*armies, rules=None):
    missions = {
        "F": [
            Mission(
                id="m",
                type=MissionType.CAMPAIGN,
                target_id="T",
                plan=SingleStaging("H"),
                status=MissionStatus.ACTIVE,
            )
        ]
    }
    return make_world(
        [loc("R", "F"), loc("H", "F"), loc("T", "E")],
        [local("rh", "R", "H"), road("ht", "H", "T")],
        list(armies),
        missions=missions,
        rules=rules,
    )


def test_surplus_joins_the_nearest_campaign() -> None:
    world = _campaign_map(army("a", "F", 2000, "R"), army("b", "F", 600, "R"))

    handle_idle_armies(make_ctx(world))

    assert world.army("a").location_id == "H"
    assert world.army("b").location_id == "R"
    assert world.army("b").garrisoned


def test_armies_at_a_rally_point_stay_put() -> None:
    world = _campaign_map(army("h1", "F", 2000, "H"), army("h2", "F", 1500, "H"))

    handle_idle_armies(make_ctx(world))

    for army_id in ("h1", "h2"):
        assert world.army(army_id).location_id == "H"
        assert not world.army(army_id).garrisoned


def test_without_campaigns_armies_redeploy_to_strategic_points() -> None:
    rules = MilitaryRules.from_dict({"deployment_targets": {"F": ["S"]}})
    world = make_world(
        [loc("R", "F"), loc("S", "F")],
        [local("rs", "R", "S")],
        [army("a", "F", 2000, "R"), army("b", "F", 600, "R")],
        rules=rules,
    )

    handle_idle_armies(make_ctx(world))

    assert world.army("a").location_id == "S"
    assert world.army("b").location_id == "R"
