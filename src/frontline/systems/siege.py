"""Siege decision, siege execution and the non-siege resolution of a campaign."""

from __future__ import annotations

import logging

from frontline.domain.events import SiegeNotification
from frontline.domain.models import Army, Location, Mission
from frontline.domain.types import (
    NEUTRAL,
    CampaignStage,
    LocationKind,
    MissionStatus,
    Trait,
)
from frontline.sim.state import TurnContext, WorldState
from frontline.systems.movement import split_army
from frontline.systems.pathfinding import hop_distance
from frontline.systems.threat import floor_scaled

logger = logging.getLogger(__name__)


def advance_stage(ctx: TurnContext, mission: Mission, stage: CampaignStage) -> bool:
    """Move a campaign forward; never backwards. Returns True on change."""
    current = mission.stage
    if isinstance(current, CampaignStage) and current.rank >= stage.rank:
        return False
    logger.debug("[%s] Campaign %s: %s -> %s", ctx.faction, mission.id, current.value, stage.value)
    mission.set_stage(stage)
    return True


def mark_captured(ctx: TurnContext, mission: Mission, target: Location) -> bool:
    if target.faction != ctx.faction:
        return False
    mission.status = MissionStatus.COMPLETED
    mission.set_stage(CampaignStage.COMPLETED)
    logger.info("[%s] Campaign %s: %s captured", ctx.faction, mission.id, target.id)
    return True


def siege_forces(world: WorldState, target: Location, faction: str) -> list[Army]:
    """Armies that can besiege the target: from the linked rural area for cities, else at the target."""
    if target.kind is LocationKind.CITY:
        partner_id = world.linked_partner(target.id)
        if partner_id is not None:
            outside = [a for a in world.armies_at(partner_id, faction) if _can_siege(a)]
            if outside:
                return outside
    return [a for a in world.armies_at(target.id, faction) if _can_siege(a)]


def _can_siege(army: Army) -> bool:
    return not (army.spent or army.sieging or army.insurgent or army.action is not None)


def prefers_negotiation(world: WorldState, target: Location, faction: str) -> bool:
    """Neutral targets near a well-fed faction city are better bought than besieged."""
    siege = world.rules.siege
    if target.faction != NEUTRAL or faction in siege.negotiation_excluded_factions:
        return False
    for loc in world.locations.values():
        if loc.faction != faction or loc.kind is not LocationKind.CITY:
            continue
        if loc.food_stock < siege.negotiation_food_stock or loc.food_income <= 0:
            continue
        if hop_distance(world, loc.id, target.id) <= siege.negotiation_distance:
            return True
    return False


def siege_cost(world: WorldState, target: Location, forces: list[Army], faction: str) -> int:
    siege = world.rules.siege
    cost = siege.cost_for(target.fortification_level)
    army_ids = {a.id for a in forces}
    places = {a.location_id for a in forces}
    for character in world.characters.values():
        if character.faction != faction or not character.has_trait(Trait.SIEGE_COST_REDUCTION):
            continue
        if character.army_id in army_ids or character.location_id in places:
            return cost - floor_scaled(cost, siege.cost_reduction_pct)
    return cost


def decide_siege(ctx: TurnContext, mission: Mission, target: Location) -> None:
    """Besiege a defended fortification when affordable, otherwise try to resolve directly.

    A fortified target needs a siege when it has an active garrison or when the
    force at the target cannot beat its effective defense. Neutral targets may
    instead be left to negotiation. Insufficient gold or manpower falls through
    to the non-siege branch.
    """
    world = ctx.world
    faction = ctx.faction
    rules = ctx.rules

    enemy_garrison = sum(a.strength for a in world.foreign_armies_at(target.id, faction))
    has_defenders = enemy_garrison >= rules.threat.manning_threshold
    bonus = rules.fortification_bonus(target.fortification_level) if has_defenders else 0
    at_target = world.strength_at(target.id, faction)
    can_assault = at_target > enemy_garrison + bonus

    needs_siege = (
        target.fortification_level > 0
        and (has_defenders or not can_assault)
        and faction != NEUTRAL
        and mission.stage is not CampaignStage.ASSAULTING
    )
    if needs_siege and target.sieged_this_turn:
        logger.debug("[%s] %s already besieged this turn", faction, target.id)
        needs_siege = False

    if needs_siege and prefers_negotiation(world, target, faction):
        logger.debug("[%s] Skipping siege at %s (neutral): preferring negotiation", faction, target.id)
        mission.negotiation_requested = True
        needs_siege = False

    if needs_siege:
        forces = siege_forces(world, target, faction)
        manpower = sum(a.strength for a in forces)
        required = rules.siege.manpower_for(target.fortification_level)
        cost = siege_cost(world, target, forces, faction)
        gold = world.gold.get(faction, 0)
        if gold >= cost and manpower >= required:
            logger.debug(
                "[%s] Siege check passed at %s: level=%d cost=%d manpower=%d/%d",
                faction, target.id, target.fortification_level, cost, manpower, required,
            )
            execute_siege(ctx, mission, target, forces, cost, required, enemy_garrison)
            return
        logger.debug(
            "[%s] Siege check failed at %s: gold=%d/%d manpower=%d/%d",
            faction, target.id, gold, cost, manpower, required,
        )

    resolve_without_siege(ctx, mission, target)


def execute_siege(
    ctx: TurnContext,
    mission: Mission,
    target: Location,
    forces: list[Army],
    cost: int,
    required_manpower: int,
    enemy_garrison: int,
) -> None:
    world = ctx.world
    faction = ctx.faction
    rules = ctx.rules
    if not forces:
        return

    world.gold[faction] = world.gold.get(faction, 0) - cost
    target.fortification_level = max(0, target.fortification_level - 1)
    target.defense = rules.fortification_bonus(target.fortification_level)
    target.sieged_this_turn = True

    besieger = sorted(forces, key=lambda a: a.strength, reverse=True)[0]
    if besieger.strength > required_manpower + rules.siege.split_margin:
        detachment = split_army(ctx, besieger, required_manpower, prefix="siege")
        detachment.sieging = True
        detachment.garrisoned = False
        ctx.assign(detachment.id)
    else:
        besieger.sieging = True
    ctx.assign(besieger.id)

    player = world.player_faction
    if player is not None and (
        target.faction == player or world.armies_at(target.id, player)
    ):
        world.notifications.append(
            SiegeNotification(target_id=target.id, target_name=target.name, attacker_name=faction)
        )

    world.record(
        faction,
        f"{faction} lays siege to {target.name}! Defenses reduce to Level {target.fortification_level}.",
        kind="siege",
    )
    logger.info("[%s] Siege at %s: cost=%d manpower=%d", faction, target.id, cost, required_manpower)

    attackers = [
        a for a in world.armies_at(target.id, faction)
        if not (a.sieging or a.spent or a.insurgent or a.action is not None)
    ]
    offensive = sum(a.strength for a in attackers)
    post_bonus = target.defense if enemy_garrison >= rules.threat.manning_threshold else 0
    defenders = enemy_garrison + post_bonus

    if attackers and offensive > defenders:
        logger.debug("[%s] Post-siege attack at %s: %d vs %d", faction, target.id, offensive, defenders)
        for army in attackers:
            army.garrisoned = False
            ctx.assign(army.id)
        _begin_assault(ctx, mission, target)
    else:
        logger.debug("[%s] Post-siege hold at %s: %d vs %d", faction, target.id, offensive, defenders)
        for army in attackers:
            army.garrisoned = True
            ctx.assign(army.id)


def resolve_without_siege(ctx: TurnContext, mission: Mission, target: Location) -> None:
    world = ctx.world
    rules = ctx.rules

    at_target = world.armies_at(target.id, ctx.faction)
    for army in at_target:
        army.sieging = False
        ctx.assign(army.id)
    strength = sum(a.strength for a in at_target)

    overwhelming = strength > (target.defense + rules.campaign.assault_margin) * rules.campaign.assault_ratio

    if strength > 0 and (target.fortification_level == 0 or overwhelming):
        _begin_assault(ctx, mission, target)

    mark_captured(ctx, mission, target)


def _begin_assault(ctx: TurnContext, mission: Mission, target: Location) -> None:
    if advance_stage(ctx, mission, CampaignStage.ASSAULTING):
        ctx.world.record(ctx.faction, f"{ctx.faction} storms {target.name}!", kind="assault")
