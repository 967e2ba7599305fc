"""Military orchestrator: one atomic pass per faction over the shared world."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from frontline.domain.models import Mission
from frontline.domain.reports import MilitaryReport
from frontline.domain.types import FactionId, MissionStatus, MissionType
from frontline.sim.state import TurnContext, WorldState
from frontline.systems.campaign import handle_campaign
from frontline.systems.consolidation import consolidate
from frontline.systems.convergent import handle_convergent, is_convergent
from frontline.systems.defense import handle_defense
from frontline.systems.idle import handle_idle_armies
from frontline.systems.reversal import handle_reversals
from frontline.systems.road_defense import handle_road_defense

logger = logging.getLogger(__name__)

MissionHandler = Callable[[TurnContext, Mission], None]


def _dispatch_campaign(ctx: TurnContext, mission: Mission) -> None:
    if is_convergent(mission):
        handle_convergent(ctx, mission)
    else:
        handle_campaign(ctx, mission)


HANDLERS: dict[MissionType, MissionHandler] = {
    MissionType.CAMPAIGN: _dispatch_campaign,
    MissionType.DEFEND: handle_defense,
    MissionType.COUNTER_INSURRECTION: handle_defense,
    MissionType.ROAD_DEFENSE: handle_road_defense,
}


def mission_order(world: WorldState, missions: Iterable[Mission]) -> list[Mission]:
    """Type priority first, then mission priority; stable for equal keys."""
    return sorted(
        missions,
        key=lambda m: (-world.rules.type_priority(m.type), -m.priority),
    )


def manage_military(world: WorldState, faction: FactionId) -> MilitaryReport:
    """Run one faction's military pass.

    Reversals of threatened road armies come first, then missions by priority,
    then idle armies, then consolidation. Missions are mutated in place.
    """
    ctx = TurnContext(world=world, faction=faction)
    missions = world.missions_for(faction)
    logger.debug("[%s] Military pass: %d missions", faction, len(missions))

    reversed_armies = handle_reversals(ctx)

    processed: list[str] = []
    for mission in mission_order(world, missions):
        if not mission.status.is_open:
            continue
        if mission.status is MissionStatus.PLANNING:
            mission.status = MissionStatus.ACTIVE
            logger.debug("[%s] Mission %s activated", faction, mission.id)
        handler = HANDLERS.get(mission.type)
        if handler is None:
            logger.warning("[%s] Mission %s has no handler for %s", faction, mission.id, mission.type)
            continue
        handler(ctx, mission)
        processed.append(mission.id)

    handle_idle_armies(ctx)
    merged = consolidate(world, faction)
    pruned = world.prune_empty()

    return MilitaryReport(
        faction=faction,
        processed_missions=processed,
        assigned_armies=sorted(ctx.assigned),
        merged_armies=[a.id for a in merged],
        reversed_armies=[a.id for a in reversed_armies],
        pruned_armies=pruned,
    )


def run_military_phase(world: WorldState, factions: Iterable[FactionId]) -> list[MilitaryReport]:
    """Process factions strictly in order, each against the state the previous one left."""
    return [manage_military(world, faction) for faction in factions]
