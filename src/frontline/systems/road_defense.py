"""ROAD_DEFENSE missions: post an army on a road stage and hold it."""

from __future__ import annotations

import logging
from dataclasses import replace

from frontline.domain.models import Army, Mission, OnRoad, Road, RoadPost
from frontline.domain.types import (
    ArmyAction,
    Direction,
    MissionStatus,
    RoadDefenseStage,
)
from frontline.sim.state import TurnContext
from frontline.systems.movement import move_armies_to
from frontline.systems.pathfinding import UNREACHABLE, hop_distance

logger = logging.getLogger(__name__)


def handle_road_defense(ctx: TurnContext, mission: Mission) -> None:
    """GATHERING -> MOVING -> GARRISONING, then COMPLETED once the post needs no more work.

    A missing road or stage leaves the mission untouched for the strategy
    layer to expire.
    """
    post = mission.plan
    if not isinstance(post, RoadPost):
        logger.debug("[%s] Road defense %s: no road post", ctx.faction, mission.id)
        return
    road = ctx.world.road(post.road_id)
    if road is None or not 0 <= post.stage_index < len(road.stages):
        logger.debug("[%s] Road defense %s: unknown road stage %s/%d", ctx.faction, mission.id, post.road_id, post.stage_index)
        return

    if not isinstance(mission.stage, RoadDefenseStage):
        mission.stage = RoadDefenseStage.GATHERING

    if mission.stage is RoadDefenseStage.GATHERING:
        _gather(ctx, mission, road, post)
    if mission.stage is RoadDefenseStage.MOVING:
        _march(ctx, mission, road, post)
    if mission.stage is RoadDefenseStage.GARRISONING:
        _hold(ctx, mission, road, post)


def _holds_post(army: Army, post: RoadPost) -> bool:
    pos = army.road
    return pos is not None and pos.road_id == post.road_id and pos.stage_index == post.stage_index


def _roster_army(ctx: TurnContext, mission: Mission) -> Army | None:
    for army_id in mission.assigned_army_ids:
        army = ctx.world.army(army_id)
        if army is not None:
            return army
    return None


def _claim(ctx: TurnContext, mission: Mission, army: Army, stage: RoadDefenseStage) -> None:
    mission.assigned_army_ids[:] = [army.id]
    ctx.assign(army.id)
    mission.set_stage(stage)


def _gather(ctx: TurnContext, mission: Mission, road: Road, post: RoadPost) -> None:
    manning = ctx.rules.threat.manning_threshold
    for army in ctx.own_armies():
        if _holds_post(army, post) and army.strength >= manning and not ctx.is_assigned(army.id):
            logger.debug("[%s] Road defense %s: %s already holds the stage", ctx.faction, mission.id, army.id)
            _claim(ctx, mission, army, RoadDefenseStage.GARRISONING)
            return

    candidates: list[tuple[int, Army]] = []
    for army in ctx.own_armies():
        if army.location_id is None or ctx.is_assigned(army.id):
            continue
        if army.spent or army.sieging or army.insurgent or army.action is not None:
            continue
        if army.strength < manning:
            continue
        dist = min(
            hop_distance(ctx.world, army.location_id, road.from_id),
            hop_distance(ctx.world, army.location_id, road.to_id),
        )
        if dist >= UNREACHABLE:
            continue
        candidates.append((dist, army))
    if not candidates:
        logger.debug("[%s] Road defense %s: no army available", ctx.faction, mission.id)
        return

    strong = [c for c in candidates if c[1].strength >= post.required_strength]
    pool = strong or candidates
    _, chosen = min(pool, key=lambda c: (c[0], -c[1].strength))
    logger.debug("[%s] Road defense %s: assigned %s (%d)", ctx.faction, mission.id, chosen.id, chosen.strength)
    _claim(ctx, mission, chosen, RoadDefenseStage.MOVING)


def _march(ctx: TurnContext, mission: Mission, road: Road, post: RoadPost) -> None:
    army = _roster_army(ctx, mission)
    if army is None:
        mission.assigned_army_ids.clear()
        mission.set_stage(RoadDefenseStage.GATHERING)
        return
    ctx.assign(army.id)

    if _holds_post(army, post):
        mission.set_stage(RoadDefenseStage.GARRISONING)
        return
    if army.spent:
        return

    pos = army.road
    if pos is None:
        here = army.location_id
        if road.touches(here):
            army.position = OnRoad(
                road_id=road.id,
                stage_index=road.entry_stage(here),
                direction=road.direction_from(here),
                destination_id=road.other_end(here),
                origin_id=here,
            )
            army.garrisoned = False
            army.just_moved = True
            army.spent = True
        else:
            entry = min(
                (road.from_id, road.to_id),
                key=lambda end: hop_distance(ctx.world, here, end),
            )
            move_armies_to(ctx, [army], entry)
    elif pos.road_id == road.id:
        direction = Direction.FORWARD if post.stage_index > pos.stage_index else Direction.BACKWARD
        army.position = replace(
            pos,
            stage_index=pos.stage_index + direction.step,
            direction=direction,
            destination_id=road.end_for(direction),
            origin_id=road.start_for(direction),
        )
        army.garrisoned = False
        army.just_moved = True
        army.spent = True
    else:
        # another road: the road advance brings it to a location first
        return

    if _holds_post(army, post):
        mission.set_stage(RoadDefenseStage.GARRISONING)


def _hold(ctx: TurnContext, mission: Mission, road: Road, post: RoadPost) -> None:
    army = _roster_army(ctx, mission)
    if army is None:
        mission.assigned_army_ids.clear()
        mission.set_stage(RoadDefenseStage.GATHERING)
        return
    ctx.assign(army.id)
    if not _holds_post(army, post):
        mission.set_stage(RoadDefenseStage.MOVING)
        return

    army.garrisoned = True
    army.action = ArmyAction.ROAD_POST
    stage = road.stages[post.stage_index]
    if not post.fortify or stage.natural_defense > 0 or stage.fortification_level >= 1:
        logger.debug("[%s] Road defense %s: post established at %s", ctx.faction, mission.id, stage.name)
        mission.status = MissionStatus.COMPLETED
        mission.set_stage(RoadDefenseStage.COMPLETED)
    else:
        # fortification is built by the economy layer around a posted army
        mission.status = MissionStatus.ACTIVE
