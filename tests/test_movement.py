from __future__ import annotations

from dataclasses import replace

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from frontline.domain.models import Character
from frontline.domain.types import Direction, Trait
from frontline.systems.movement import move_armies_to, pull_reinforcements, split_army
from tests.helpers.factories import (
    army,
    faction_strength,
    local,
    loc,
    make_ctx,
    make_world,
    road,
)
from tests.helpers.strategies import army_strengths_strategy


def test_local_road_is_crossed_at_once() -> None:
    world = make_world(
        [loc("A", "F"), loc("B", "F")],
        [local("ab", "A", "B")],
        [army("a", "F", 800, "A", garrisoned=True, sieging=True)],
    )
    ctx = make_ctx(world)

    moved = move_armies_to(ctx, [world.army("a")], "B")

    a = world.army("a")
    assert moved == [a]
    assert a.location_id == "B"
    assert not a.garrisoned
    assert not a.sieging
    assert ctx.is_assigned("a")


def test_regional_road_puts_army_on_the_nearest_stage() -> None:
    world = make_world(
        [loc("A", "F"), loc("B", "F")],
        [road("r", "A", "B", stages=3)],
        [army("fwd", "F", 800, "A"), army("back", "F", 600, "B")],
    )
    ctx = make_ctx(world)

    move_armies_to(ctx, [world.army("fwd")], "B")
    move_armies_to(ctx, [world.army("back")], "A")

    fwd = world.army("fwd").road
    assert fwd.stage_index == 0
    assert fwd.direction is Direction.FORWARD
    assert (fwd.origin_id, fwd.destination_id) == ("A", "B")
    assert world.army("fwd").just_moved

    back = world.army("back").road
    assert back.stage_index == 2
    assert back.direction is Direction.BACKWARD
    assert (back.origin_id, back.destination_id) == ("B", "A")


def test_army_without_a_path_stays_put() -> None:
    world = make_world(
        [loc("A", "F"), loc("E1", "E"), loc("T", "E")],
        [road("r1", "A", "E1"), road("r2", "E1", "T")],
        [army("a", "F", 800, "A")],
    )
    ctx = make_ctx(world)

    assert move_armies_to(ctx, [world.army("a")], "T") == []
    assert world.army("a").location_id == "A"
    assert not ctx.is_assigned("a")


def test_split_keeps_everything_but_id_and_strength() -> None:
    world = make_world([loc("A", "F")], armies=[army("a", "F", 1000, "A", garrisoned=True)])
    ctx = make_ctx(world)
    original = replace(world.army("a"))

    detachment = split_army(ctx, world.army("a"), 300, prefix="reinf")

    assert detachment.id == "reinf-1"
    assert detachment.strength == 300
    assert world.army("a").strength == 700
    assert world.army("reinf-1") is detachment
    assert replace(detachment, id=original.id, strength=original.strength) == original


@pytest.mark.parametrize("amount", [0, -5, 1000, 1200])
def test_split_rejects_degenerate_amounts(amount: int) -> None:
    world = make_world([loc("A", "F")], armies=[army("a", "F", 1000, "A")])
    with pytest.raises(ValueError):
        split_army(make_ctx(world), world.army("a"), amount, prefix="x")


@given(data=st.data(), strength=st.integers(min_value=2, max_value=10_000))
@settings(max_examples=50)
def test_split_conserves_strength(data: st.DataObject, strength: int) -> None:
    amount = data.draw(st.integers(min_value=1, max_value=strength - 1))
    world = make_world([loc("A", "F")], armies=[army("a", "F", strength, "A")])

    detachment = split_army(make_ctx(world), world.army("a"), amount, prefix="x")

    assert detachment.strength + world.army("a").strength == strength
    assert detachment.strength > 0 and world.army("a").strength > 0


def test_pull_splits_surplus_above_the_floor() -> None:
    world = make_world(
        [loc("T", "F"), loc("S", "F")],
        [local("st", "S", "T")],
        [army("s1", "F", 1500, "S")],
    )
    ctx = make_ctx(world)

    assert pull_reinforcements(ctx, "T") == 1000

    assert world.army("reinf-1").location_id == "T"
    assert world.army("reinf-1").strength == 1000
    assert world.strength_at("S", "F") == 500
    assert world.army("s1").garrisoned


def test_pull_moves_whole_armies_when_the_floor_holds() -> None:
    world = make_world(
        [loc("T", "F"), loc("S", "F")],
        [local("st", "S", "T")],
        [army("s1", "F", 800, "S"), army("s2", "F", 700, "S")],
    )
    ctx = make_ctx(world)

    assert pull_reinforcements(ctx, "T") == 800

    assert world.army("s1").location_id == "T"
    assert world.army("s2").location_id == "S"


def test_pull_stops_at_max_amount_and_prefers_nearer_sources() -> None:
    world = make_world(
        [loc("T", "F"), loc("S1", "F"), loc("M", "F"), loc("S2", "F")],
        [local("t1", "S1", "T"), local("tm", "M", "T"), local("m2", "S2", "M")],
        [
            army("a1", "F", 1000, "S1"),
            army("b1", "F", 500, "S1"),
            army("a2", "F", 1000, "S2"),
            army("b2", "F", 500, "S2"),
        ],
    )
    ctx = make_ctx(world)

    assert pull_reinforcements(ctx, "T", max_amount=1000) == 1000

    assert world.army("a1").location_id == "T"
    assert world.army("a2").location_id == "S2"


def test_pull_never_strips_a_frontier_below_1000() -> None:
    keeper = Character(
        id="keeper", name="Keeper", faction="F", location_id="S",
        traits=frozenset({Trait.GARRISON_SUBSTITUTE}),
    )
    world = make_world(
        [loc("T", "F"), loc("S", "F"), loc("E1", "E")],
        [local("st", "S", "T"), road("se", "S", "E1")],
        [army("s1", "F", 800, "S")],
        characters=[keeper],
    )

    assert pull_reinforcements(make_ctx(world), "T") == 0
    assert world.army("s1").location_id == "S"


def test_pull_skips_assigned_armies() -> None:
    world = make_world(
        [loc("T", "F"), loc("S", "F")],
        [local("st", "S", "T")],
        [army("s1", "F", 3000, "S")],
    )
    ctx = make_ctx(world)
    ctx.assign("s1")

    assert pull_reinforcements(ctx, "T") == 0


@given(first=army_strengths_strategy(), second=army_strengths_strategy())
@settings(max_examples=50)
def test_pull_respects_source_floors(first: list[int], second: list[int]) -> None:
    armies = [army(f"p{i}", "F", s, "S1") for i, s in enumerate(first)]
    armies += [army(f"q{i}", "F", s, "S2") for i, s in enumerate(second)]
    world = make_world(
        [loc("T", "F"), loc("S1", "F"), loc("S2", "F")],
        [local("t1", "S1", "T"), local("t2", "S2", "T")],
        armies,
    )
    before = {site: world.strength_at(site, "F") for site in ("S1", "S2")}
    total = faction_strength(world, "F")

    recruited = pull_reinforcements(make_ctx(world), "T")

    assert faction_strength(world, "F") == total
    assert world.strength_at("T", "F") == recruited
    for site, start in before.items():
        after = world.strength_at(site, "F")
        if start > 500:
            assert after >= 500
        else:
            assert after == start
