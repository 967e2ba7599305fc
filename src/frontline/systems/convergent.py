"""Convergent campaigns: several staging points launch together against one target."""

from __future__ import annotations

import logging

from frontline.domain.models import Army, Convergent, Mission
from frontline.domain.types import CampaignStage
from frontline.sim.state import TurnContext
from frontline.systems.campaign import (
    DEFAULT_REQUIRED_STRENGTH,
    check_zombie,
    committed_strength,
)
from frontline.systems.movement import move_armies_to, pull_reinforcements
from frontline.systems.siege import advance_stage, decide_siege, mark_captured

logger = logging.getLogger(__name__)


def is_convergent(mission: Mission) -> bool:
    return isinstance(mission.plan, Convergent) and len(mission.plan.staging_ids) >= 2


def _ready_armies(ctx: TurnContext, staging_id: str) -> list[Army]:
    return [
        a for a in ctx.free_at(staging_id)
        if not (a.spent or a.sieging or a.insurgent or a.action is not None)
    ]


def update_readiness(ctx: TurnContext, mission: Mission) -> bool:
    """Mark each staging point ready at 70% of its share; pull the shortfall where not.

    Returns True only when every point is ready this turn.
    """
    plan = mission.plan
    required = plan.required_strength or DEFAULT_REQUIRED_STRENGTH
    share = required // len(plan.staging_ids)
    threshold = share * ctx.rules.campaign.convergent_readiness

    all_ready = True
    for staging_id in plan.staging_ids:
        present = sum(a.strength for a in _ready_armies(ctx, staging_id))
        ready = present >= threshold
        plan.readiness[staging_id] = ready
        if not ready:
            all_ready = False
            shortfall = share - present
            logger.debug(
                "[%s] Convergent %s: %s not ready (%d/%d), pulling %d",
                ctx.faction, mission.id, staging_id, present, share, shortfall,
            )
            pull_reinforcements(ctx, staging_id, shortfall)
    return all_ready


def launch(ctx: TurnContext, mission: Mission) -> list[Army]:
    """Commit every worthwhile army from every staging point at once."""
    min_army = ctx.rules.campaign.convergent_min_army
    committed: list[Army] = []
    for staging_id in mission.plan.staging_ids:
        for army in _ready_armies(ctx, staging_id):
            if army.strength < min_army:
                continue
            if army.id not in mission.assigned_army_ids:
                mission.assigned_army_ids.append(army.id)
            ctx.assign(army.id)
            committed.append(army)
    advance_stage(ctx, mission, CampaignStage.MOVING)
    logger.debug(
        "[%s] Convergent %s: all staging points ready, launching %d armies",
        ctx.faction, mission.id, len(committed),
    )
    return committed


def march(ctx: TurnContext, mission: Mission) -> None:
    """Each committed army finds its own way to the target."""
    world = ctx.world
    for army_id in mission.assigned_army_ids:
        army = world.army(army_id)
        if army is None or army.spent or army.location_id is None:
            continue
        if army.is_at(mission.target_id):
            continue
        move_armies_to(ctx, [army], mission.target_id)


def handle_convergent(ctx: TurnContext, mission: Mission) -> None:
    world = ctx.world
    target = world.location(mission.target_id)
    if target is None or not isinstance(mission.plan, Convergent):
        logger.debug("[%s] Convergent %s: aborted, no target", ctx.faction, mission.id)
        return

    if mark_captured(ctx, mission, target):
        return

    mission.assigned_army_ids[:] = [i for i in mission.assigned_army_ids if world.army(i) is not None]
    check_zombie(ctx, mission, committed_strength(world, mission, ctx.faction))

    stage = mission.stage
    if isinstance(stage, CampaignStage) and stage.is_offensive:
        # committed forces are never pulled back to refill the staging points
        for army_id in mission.assigned_army_ids:
            ctx.assign(army_id)
        for army in world.armies_at(target.id, ctx.faction):
            ctx.assign(army.id)
    all_ready = update_readiness(ctx, mission)

    if mission.stage is CampaignStage.GATHERING:
        if all_ready:
            launch(ctx, mission)
        else:
            for staging_id in mission.plan.staging_ids:
                for army in ctx.free_at(staging_id):
                    ctx.assign(army.id)
            return

    if mission.stage in (CampaignStage.MOVING, CampaignStage.SIEGING):
        march(ctx, mission)
        if mission.stage is CampaignStage.MOVING and world.strength_at(target.id, ctx.faction) > 0:
            advance_stage(ctx, mission, CampaignStage.SIEGING)

    stage = mission.stage
    if isinstance(stage, CampaignStage) and stage.is_offensive:
        decide_siege(ctx, mission, target)
