from __future__ import annotations

from hypothesis import given, settings

from frontline.domain.models import Convergent, Mission, SingleStaging
from frontline.domain.types import CampaignStage, MissionStatus, MissionType
from frontline.systems.convergent import handle_convergent, is_convergent
from tests.helpers.factories import army, local, loc, make_ctx, make_world, road
from tests.helpers.strategies import strength_strategy


def _pincer(stage: CampaignStage = CampaignStage.GATHERING, roster: list[str] | None = None) -> Mission:
    return Mission(
        id="pincer",
        type=MissionType.CAMPAIGN,
        target_id="T",
        plan=Convergent(staging_ids=["A", "B"], required_strength=2000),
        status=MissionStatus.ACTIVE,
        stage=stage,
        assigned_army_ids=list(roster or []),
    )


def _world(*armies, extra_locations=(), extra_roads=()):
    return make_world(
        [loc("A", "F"), loc("B", "F"), loc("T", "E"), *extra_locations],
        [road("at", "A", "T", stages=1), road("bt", "B", "T", stages=1), *extra_roads],
        list(armies),
    )


def test_all_points_ready_launch_together() -> None:
    world = _world(army("a", "F", 800, "A"), army("b", "F", 900, "B"))
    mission = _pincer()

    handle_convergent(make_ctx(world), mission)

    assert mission.stage is CampaignStage.MOVING
    assert mission.plan.readiness == {"A": True, "B": True}
    assert sorted(mission.assigned_army_ids) == ["a", "b"]
    for army_id in ("a", "b"):
        assert world.army(army_id).destination_id == "T"


def test_one_point_short_holds_everyone() -> None:
    world = _world(army("a", "F", 800, "A"), army("b", "F", 300, "B"))
    mission = _pincer()
    ctx = make_ctx(world)

    handle_convergent(ctx, mission)

    assert mission.stage is CampaignStage.GATHERING
    assert mission.plan.readiness == {"A": True, "B": False}
    assert world.army("a").location_id == "A"
    assert world.army("b").location_id == "B"
    assert ctx.is_assigned("a") and ctx.is_assigned("b")


def test_short_point_pulls_its_shortfall() -> None:
    world = _world(
        army("a", "F", 800, "A"),
        army("b", "F", 300, "B"),
        army("r", "F", 2000, "R"),
        extra_locations=[loc("R", "F")],
        extra_roads=[local("rb", "R", "B")],
    )

    handle_convergent(make_ctx(world), _pincer())

    assert world.army("reinf-1").location_id == "B"


@given(a=strength_strategy(100, 2000), b=strength_strategy(100, 2000))
@settings(max_examples=60)
def test_launch_only_when_every_point_reaches_readiness(a: int, b: int) -> None:
    world = _world(army("a", "F", a, "A"), army("b", "F", b, "B"))
    mission = _pincer()

    handle_convergent(make_ctx(world), mission)

    launched = mission.stage is CampaignStage.MOVING
    assert launched == (a >= 700 and b >= 700)


def test_zombie_pincer_clears_its_roster() -> None:
    world = _world()
    mission = _pincer(CampaignStage.MOVING, roster=["gone"])

    handle_convergent(make_ctx(world), mission)

    assert mission.stage is CampaignStage.GATHERING
    assert mission.assigned_army_ids == []


def test_arrival_moves_the_campaign_on() -> None:
    world = _world(army("a", "F", 1500, "T"))
    mission = _pincer(CampaignStage.MOVING, roster=["a"])

    handle_convergent(make_ctx(world), mission)

    assert mission.stage_history == ["SIEGING", "ASSAULTING"]


def test_launched_pincer_keeps_refilling_its_staging_points() -> None:
    world = _world(
        army("a", "F", 1500, "T"),
        army("r", "F", 3000, "R"),
        extra_locations=[loc("R", "F")],
        extra_roads=[local("ra", "R", "A"), local("rb", "R", "B")],
    )
    mission = _pincer(CampaignStage.MOVING, roster=["a"])
    mission.plan.readiness.update({"A": True, "B": True})

    handle_convergent(make_ctx(world), mission)

    assert mission.plan.readiness == {"A": False, "B": False}
    refill = world.army("reinf-1")
    assert refill.location_id == "A"
    assert refill.strength == 2500
    # the force at the target is not drawn back
    assert world.army("a").location_id == "T"
    assert world.army("a").strength == 1500


def test_is_convergent_needs_two_points() -> None:
    pincer = _pincer()
    single = Mission(id="s", type=MissionType.CAMPAIGN, target_id="T", plan=SingleStaging("A"))
    lone = Mission(id="l", type=MissionType.CAMPAIGN, target_id="T", plan=Convergent(["A"]))
    assert is_convergent(pincer)
    assert not is_convergent(single)
    assert not is_convergent(lone)
