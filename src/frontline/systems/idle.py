"""Armies no mission claimed this turn.

Road armies are checked first: a moving army is frozen in place when the next
step would be suicidal for everything arriving with it, and an army already
frozen on a road either advances or turns back to its origin. Armies at a
location stay as garrison when needed, otherwise they join the nearest
campaign or redeploy to a strategic point.
"""

from __future__ import annotations

import logging

from frontline.domain.models import Army, Mission
from frontline.domain.types import CampaignStage, MissionType
from frontline.sim.state import TurnContext
from frontline.systems.garrison import min_garrison
from frontline.systems.movement import move_armies_to
from frontline.systems.pathfinding import UNREACHABLE, hop_distance
from frontline.systems.threat import is_suicidal, same_turn_strength, threat_ahead

logger = logging.getLogger(__name__)


def handle_idle_armies(ctx: TurnContext) -> None:
    check_moving_armies(ctx)
    resolve_stalled_armies(ctx)
    redeploy_idle_armies(ctx)


def _advance_is_suicidal(ctx: TurnContext, army: Army) -> tuple[bool, int, int]:
    threat = threat_ahead(ctx.world, army)
    if threat is None:
        return False, 0, 0
    combined = same_turn_strength(ctx.world, army, army.destination_id)
    return is_suicidal(threat, combined, ctx.rules), threat.effective, combined


def check_moving_armies(ctx: TurnContext) -> list[Army]:
    """Halt road armies whose combined same-turn arrival cannot beat what waits ahead."""
    halted: list[Army] = []
    for army in ctx.own_armies():
        if not army.on_road or army.garrisoned or army.spent or army.action is not None:
            continue
        if ctx.is_assigned(army.id):
            continue
        suicidal, defense, combined = _advance_is_suicidal(ctx, army)
        if not suicidal:
            continue
        logger.debug(
            "[%s] Moving army %s halted: %d (combined %d) vs %d",
            ctx.faction, army.id, army.strength, combined, defense,
        )
        army.garrisoned = True
        ctx.assign(army.id)
        halted.append(army)
    return halted


def resolve_stalled_armies(ctx: TurnContext) -> list[Army]:
    """Garrisoned road armies advance when the combined force suffices, otherwise turn back."""
    reversed_armies: list[Army] = []
    for army in ctx.own_armies():
        if not army.on_road or not army.garrisoned or army.action is not None:
            continue
        if ctx.is_assigned(army.id):
            continue
        suicidal, defense, combined = _advance_is_suicidal(ctx, army)
        if suicidal:
            logger.debug(
                "[%s] Road army %s retreating: %d (combined %d) vs %d",
                ctx.faction, army.id, army.strength, combined, defense,
            )
            army.position = army.road.reversed()
            reversed_armies.append(army)
        else:
            logger.debug("[%s] Road army %s advancing (combined %d vs %d)", ctx.faction, army.id, combined, defense)
        army.garrisoned = False
        ctx.assign(army.id)
    return reversed_armies


def _open_campaigns(ctx: TurnContext) -> list[Mission]:
    return [
        m for m in ctx.world.missions_for(ctx.faction)
        if m.type is MissionType.CAMPAIGN
        and m.status.is_open
        and m.stage is not CampaignStage.COMPLETED
    ]


def _nearest(ctx: TurnContext, origin: str, points: list[str], limit: int) -> tuple[str | None, int]:
    best, best_dist = None, UNREACHABLE
    for point in points:
        if point == origin:
            continue
        dist = hop_distance(ctx.world, origin, point)
        if dist <= limit and dist < best_dist:
            best, best_dist = point, dist
    return best, best_dist


def redeploy_idle_armies(ctx: TurnContext) -> None:
    world = ctx.world
    idle_cfg = ctx.rules.idle
    campaigns = _open_campaigns(ctx)
    rally_points: list[str] = []
    for mission in campaigns:
        rally_points.extend(mission.staging_ids or [mission.target_id])
    strategic = list(ctx.rules.deployment_targets.get(ctx.faction, ()))

    idle = [
        a for a in ctx.own_armies()
        if a.location_id is not None
        and not ctx.is_assigned(a.id)
        and not a.garrisoned
        and not (a.spent or a.sieging or a.insurgent or a.action is not None)
    ]
    idle.sort(key=lambda a: a.strength, reverse=True)

    for army in idle:
        if world.army(army.id) is None or ctx.is_assigned(army.id):
            continue
        here = army.location_id
        loc = world.location(here)
        if loc is None:
            continue

        floor = min_garrison(world, loc, ctx.faction)
        if world.strength_at(here, ctx.faction) - army.strength < floor:
            army.garrisoned = True
            ctx.assign(army.id)
            continue

        if here in rally_points:
            continue

        target, dist = _nearest(ctx, here, rally_points, idle_cfg.campaign_radius - 1)
        if target is not None:
            logger.debug("[%s] Idle army %s joining campaign at %s (dist %d)", ctx.faction, army.id, target, dist)
            if move_armies_to(ctx, [army], target):
                continue

        target, dist = _nearest(ctx, here, strategic, idle_cfg.strategic_radius)
        if target is not None:
            logger.debug("[%s] Idle army %s redeploying to %s (dist %d)", ctx.faction, army.id, target, dist)
            move_armies_to(ctx, [army], target)
