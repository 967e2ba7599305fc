"""Single-staging campaign state machine.

GATHERING -> MOVING -> SIEGING -> ASSAULTING -> COMPLETED, with one back-edge:
an offensive campaign whose committed strength collapses regresses to
GATHERING. Forces mass at the staging point, leave it without breaching its
garrison floor, and stop short of any advance the threat model calls suicidal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from frontline.domain.models import Army, Location, Mission
from frontline.domain.types import CampaignStage
from frontline.sim.state import TurnContext, WorldState
from frontline.systems.garrison import min_garrison
from frontline.systems.movement import move_armies_to, pull_reinforcements, split_army
from frontline.systems.pathfinding import find_safe_path
from frontline.systems.siege import advance_stage, decide_siege, mark_captured
from frontline.systems.threat import (
    Threat,
    ceil_scaled,
    floor_scaled,
    is_suicidal,
    stage_bonus,
)

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_STRENGTH = 1000


@dataclass()
class Deployment:
    """Armies chosen to leave a staging point this turn; the split is deferred to commit."""

    staging_id: str
    armies: list[Army] = field(default_factory=list)
    overflow: Army | None = None
    overflow_amount: int = 0
    min_garrison: int = 0
    total_at_staging: int = 0

    @property
    def strength(self) -> int:
        return sum(a.strength for a in self.armies) + self.overflow_amount

    @property
    def empty(self) -> bool:
        return not self.armies and self.overflow is None


@dataclass(frozen=True)
class GuardResult:
    halted: bool
    threat: Threat | None = None
    friendly: int = 0
    requested: int = 0


def _deployable(army: Army) -> bool:
    return not (army.spent or army.sieging or army.insurgent or army.action is not None)


def plan_deployment(ctx: TurnContext, staging_id: str) -> Deployment:
    """Pack the biggest free armies into a send-force that leaves the staging floor intact.

    The army that would overflow the surplus is marked to be split so the
    force matches the surplus exactly, provided the piece is worth moving.
    """
    world = ctx.world
    staging = world.location(staging_id)
    at_staging = world.armies_at(staging_id, ctx.faction)
    total = sum(a.strength for a in at_staging)
    floor = min_garrison(world, staging, ctx.faction)
    plan = Deployment(staging_id=staging_id, min_garrison=floor, total_at_staging=total)

    available = total - floor
    candidates = sorted(
        (a for a in at_staging if not ctx.is_assigned(a.id) and _deployable(a)),
        key=lambda a: a.strength,
        reverse=True,
    )
    sending = 0
    for army in candidates:
        room = available - sending
        if room <= 0:
            break
        if army.strength <= room:
            plan.armies.append(army)
            sending += army.strength
        elif room >= ctx.rules.campaign.deploy_min_split:
            plan.overflow = army
            plan.overflow_amount = room
            sending += room
    return plan


def commit_deployment(
    ctx: TurnContext, mission: Mission, deployment: Deployment, target_id: str
) -> list[Army]:
    world = ctx.world
    if deployment.empty:
        return []
    if not find_safe_path(world, deployment.staging_id, target_id, ctx.faction):
        logger.debug("[%s] Campaign %s: no path from %s", ctx.faction, mission.id, deployment.staging_id)
        return []

    movers = [a for a in (world.army(x.id) for x in deployment.armies) if a is not None]
    overflow = deployment.overflow
    if overflow is not None and world.army(overflow.id) is not None:
        if overflow.strength > deployment.overflow_amount:
            detachment = split_army(ctx, overflow, deployment.overflow_amount, prefix="deploy")
            overflow.garrisoned = True
            ctx.assign(overflow.id)
            logger.debug(
                "[%s] Splitting %s to fill campaign capacity (taking %d, leaving %d)",
                ctx.faction, overflow.id, detachment.strength, overflow.strength,
            )
            movers.append(detachment)

    for army in movers:
        army.garrisoned = False
        army.action = None
    moved = move_armies_to(ctx, movers, target_id)
    for army in moved:
        if army.id not in mission.assigned_army_ids:
            mission.assigned_army_ids.append(army.id)
    logger.debug(
        "[%s] Campaign %s: moving %d armies (%d troops) to %s, leaving %d garrison",
        ctx.faction, mission.id, len(moved), sum(a.strength for a in moved),
        target_id, deployment.min_garrison,
    )
    return moved


def committed_strength(world: WorldState, mission: Mission, faction: str) -> int:
    """Strength at the target, on the road to it, or on the roster somewhere past staging."""
    target_id = mission.target_id
    staging = set(mission.staging_ids)
    counted: dict[str, Army] = {}
    for army in world.faction_armies(faction):
        if army.is_at(target_id) or army.destination_id == target_id:
            counted[army.id] = army
    for army_id in mission.assigned_army_ids:
        army = world.army(army_id)
        if army is None or army.faction != faction:
            continue
        if army.location_id is not None and army.location_id in staging:
            continue
        counted[army.id] = army
    return sum(a.strength for a in counted.values())


def check_zombie(ctx: TurnContext, mission: Mission, committed: int) -> bool:
    """Regress a collapsed offensive to GATHERING. Returns True when it did."""
    stage = mission.stage
    if not isinstance(stage, CampaignStage) or not stage.is_offensive:
        return False
    cfg = ctx.rules.campaign
    required = mission.required_strength or DEFAULT_REQUIRED_STRENGTH
    threshold = max(cfg.zombie_floor, required * cfg.zombie_ratio)
    if committed >= threshold:
        return False
    logger.debug(
        "[%s] Campaign %s: zombie detected (%d < %s), reverting to GATHERING",
        ctx.faction, mission.id, committed, threshold,
    )
    mission.set_stage(CampaignStage.GATHERING)
    mission.assigned_army_ids.clear()
    return True


def sustain(ctx: TurnContext, mission: Mission, committed: int, staging_id: str) -> int:
    stage = mission.stage
    if not isinstance(stage, CampaignStage) or not stage.is_offensive:
        return 0
    cfg = ctx.rules.campaign
    required = mission.required_strength or DEFAULT_REQUIRED_STRENGTH
    if committed >= required * cfg.sustain_trigger:
        return 0
    deficit = floor_scaled(required, cfg.sustain_target) - committed
    if deficit <= cfg.sustain_min_deficit:
        return 0
    logger.debug("[%s] Campaign %s (%s): sustaining, deficit %d", ctx.faction, mission.id, stage.value, deficit)
    return pull_reinforcements(ctx, staging_id, deficit)


def min_attack_force(ctx: TurnContext, enemy_garrison: int) -> float:
    cfg = ctx.rules.campaign
    return min(cfg.attack_force_max, max(cfg.attack_force_min, enemy_garrison * cfg.attack_force_ratio))


def campaign_threat(
    world: WorldState, target: Location, faction: str, en_route: list[Army]
) -> Threat:
    """Enemies holding or approaching the target, plus the first defended stage ahead."""
    troops = sum(a.strength for a in world.foreign_armies_at(target.id, faction))
    troops += sum(
        a.strength for a in world.armies_heading_to(target.id) if a.faction != faction
    )
    bonus = target.defense
    for army in en_route:
        pos = army.road
        road = world.road(pos.road_id) if pos is not None else None
        if road is None:
            continue
        ahead = pos.stage_index + pos.direction.step
        blockers = [
            a for a in world.armies_on_stage(road.id, ahead)
            if a.faction != faction and (a.garrisoned or not a.just_moved)
        ]
        if blockers:
            troops += sum(a.strength for a in blockers)
            bonus += stage_bonus(world, road, ahead)
            break
    return Threat(troops=troops, bonus=bonus, manning_threshold=world.rules.threat.manning_threshold)


def movement_guard(
    ctx: TurnContext,
    target: Location,
    deployment: Deployment,
    stragglers: Sequence[Army] = (),
) -> GuardResult:
    """Judge this turn's advance against everything that arrives with it."""
    world = ctx.world
    en_route = [
        a for a in world.armies_heading_to(target.id, ctx.faction) if a.on_road
    ]
    moving = deployment.strength + sum(a.strength for a in en_route) + sum(a.strength for a in stragglers)
    if moving <= 0:
        return GuardResult(halted=False)

    friendly = moving + world.strength_at(target.id, ctx.faction)
    threat = campaign_threat(world, target, ctx.faction, en_route)
    if not is_suicidal(threat, friendly, ctx.rules):
        return GuardResult(halted=False, threat=threat, friendly=friendly)

    requested = ceil_scaled(threat.effective, ctx.rules.campaign.reinforce_ratio) - friendly
    return GuardResult(halted=True, threat=threat, friendly=friendly, requested=requested)


def handle_campaign(ctx: TurnContext, mission: Mission) -> None:
    world = ctx.world
    faction = ctx.faction
    target = world.location(mission.target_id)
    staging_ids = mission.staging_ids
    if target is None or not staging_ids or world.location(staging_ids[0]) is None:
        logger.debug("[%s] Campaign %s: aborted, no target or staging", faction, mission.id)
        return
    staging_id = staging_ids[0]

    if mark_captured(ctx, mission, target):
        return

    deployment = plan_deployment(ctx, staging_id)
    enemy_garrison = sum(a.strength for a in world.foreign_armies_at(target.id, faction))
    mission.assigned_army_ids[:] = [i for i in mission.assigned_army_ids if world.army(i) is not None]

    committed = committed_strength(world, mission, faction)
    check_zombie(ctx, mission, committed)
    sustain(ctx, mission, committed, staging_id)

    if mission.stage is CampaignStage.GATHERING:
        _gather(ctx, mission, target, staging_id, deployment, enemy_garrison)

    if mission.stage in (CampaignStage.MOVING, CampaignStage.SIEGING):
        if not _advance(ctx, mission, target, staging_id, deployment):
            return

    stage = mission.stage
    if isinstance(stage, CampaignStage) and stage.is_offensive:
        decide_siege(ctx, mission, target)


def _gather(
    ctx: TurnContext,
    mission: Mission,
    target: Location,
    staging_id: str,
    deployment: Deployment,
    enemy_garrison: int,
) -> None:
    cfg = ctx.rules.campaign
    needed = min_attack_force(ctx, enemy_garrison)
    at_target = ctx.world.strength_at(target.id, ctx.faction)
    sending = deployment.strength
    if sending >= needed or at_target > cfg.launch_at_target or sending > cfg.launch_mass:
        logger.debug(
            "[%s] Campaign %s: launching (sending %d, needed %d)",
            ctx.faction, mission.id, sending, int(needed),
        )
        advance_stage(ctx, mission, CampaignStage.MOVING)
        return

    logger.debug(
        "[%s] Campaign %s: gathering (have %d/%d at staging)",
        ctx.faction, mission.id, deployment.total_at_staging, int(needed),
    )
    pull_reinforcements(ctx, staging_id)
    for army in ctx.free_at(staging_id):
        ctx.assign(army.id)


def _advance(
    ctx: TurnContext,
    mission: Mission,
    target: Location,
    staging_id: str,
    deployment: Deployment,
) -> bool:
    world = ctx.world
    stragglers = [
        a for a in (world.army(i) for i in mission.assigned_army_ids)
        if a is not None
        and a.location_id is not None
        and a.location_id not in (target.id, staging_id)
        and not a.spent
        and not ctx.is_assigned(a.id)
    ]

    guard = movement_guard(ctx, target, deployment, stragglers)
    if guard.halted:
        logger.debug(
            "[%s] Campaign %s: suicide prevention, defense %d (troops %d, bonus %d) vs %d",
            ctx.faction, mission.id, guard.threat.effective, guard.threat.troops,
            guard.threat.bonus, guard.friendly,
        )
        for army in deployment.armies:
            ctx.assign(army.id)
        if deployment.overflow is not None:
            ctx.assign(deployment.overflow.id)
        if guard.requested > 0:
            pull_reinforcements(ctx, staging_id, guard.requested)
        return False

    commit_deployment(ctx, mission, deployment, target.id)
    if stragglers:
        move_armies_to(ctx, stragglers, target.id)

    if mission.stage is CampaignStage.MOVING and world.strength_at(target.id, ctx.faction) > 0:
        advance_stage(ctx, mission, CampaignStage.SIEGING)
    return True
