"""DEFEND missions: hold the target, sortie against weak besiegers, screen the approaches."""

from __future__ import annotations

import logging

from frontline.domain.models import Army, DefensePlan, Mission, OnRoad
from frontline.domain.types import ArmyAction, RoadQuality
from frontline.sim.state import TurnContext
from frontline.systems.movement import pull_reinforcements
from frontline.systems.threat import floor_scaled

logger = logging.getLogger(__name__)


def handle_defense(ctx: TurnContext, mission: Mission) -> None:
    world = ctx.world
    faction = ctx.faction
    target = world.location(mission.target_id)
    if target is None:
        logger.debug("[%s] Defend %s: unknown target %s", faction, mission.id, mission.target_id)
        return

    cfg = ctx.rules.defense
    required = cfg.required_strength
    if isinstance(mission.plan, DefensePlan):
        required = mission.plan.required_strength

    for screen in _screens(ctx, target.id):
        ctx.assign(screen.id)

    defenders = [
        a for a in ctx.free_at(target.id)
        if not (a.insurgent or a.sieging)
    ]
    current = sum(a.strength for a in defenders)

    # cities are besieged from their linked rural area
    sites = [target.id]
    partner_id = world.linked_partner(target.id)
    if partner_id is not None:
        sites.append(partner_id)
    besiegers = [a for site in sites for a in world.foreign_armies_at(site, faction) if a.sieging]
    besieging = sum(a.strength for a in besiegers)
    if besieging > 0 and current > besieging * cfg.sortie_ratio:
        logger.debug("[%s] Defend %s: sortie from %s (%d vs %d)", faction, mission.id, target.id, current, besieging)
        for army in defenders:
            army.action = ArmyAction.SORTIE
            army.garrisoned = False
            ctx.assign(army.id)
        world.record(faction, f"{faction} sorties from {target.name}!", kind="sortie")
        return

    cap = floor_scaled(required, cfg.buffer)
    held = 0
    for army in sorted(defenders, key=lambda a: a.strength, reverse=True):
        if held >= cap:
            break
        ctx.assign(army.id)
        held += army.strength

    if current < required:
        logger.debug("[%s] Defend %s: under strength (%d/%d)", faction, mission.id, current, required)
        pull_reinforcements(ctx, target.id, required - current)
    elif current > required + cfg.screen_margin:
        deploy_screens(ctx, target.id, defenders, current, required)


def _screens(ctx: TurnContext, location_id: str) -> list[Army]:
    roads = {road.id for road in ctx.world.roads_at(location_id)}
    return [
        a for a in ctx.own_armies()
        if a.action is ArmyAction.SCREEN and a.road is not None and a.road.road_id in roads
    ]


def deploy_screens(
    ctx: TurnContext, location_id: str, defenders: list[Army], current: int, required: int
) -> list[Army]:
    """Post a small regiment on the first stage of every adjacent road without a screen."""
    world = ctx.world
    screened = {a.road.road_id for a in _screens(ctx, location_id)}
    placed: list[Army] = []
    for road in world.roads_at(location_id):
        if road.id in screened or road.quality is not RoadQuality.REGIONAL or not road.stages:
            continue
        spare = next(
            (
                a for a in defenders
                if not ctx.is_assigned(a.id)
                and a.is_at(location_id)
                and a.strength <= ctx.rules.defense.screen_max_strength
                and current - a.strength >= required
            ),
            None,
        )
        if spare is None:
            break
        spare.position = OnRoad(
            road_id=road.id,
            stage_index=road.entry_stage(location_id),
            direction=road.direction_from(location_id),
            destination_id=road.other_end(location_id),
            origin_id=location_id,
        )
        spare.garrisoned = True
        spare.action = ArmyAction.SCREEN
        ctx.assign(spare.id)
        current -= spare.strength
        placed.append(spare)
        logger.debug("[%s] Screening road %s from %s with %d", ctx.faction, road.id, location_id, spare.strength)
    return placed
