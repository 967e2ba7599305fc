"""Turn road armies back when their home base falls and the road ahead is too hard."""

from __future__ import annotations

import logging

from frontline.domain.models import Army
from frontline.sim.state import TurnContext, WorldState

logger = logging.getLogger(__name__)


def destination_defense(world: WorldState, location_id: str) -> int:
    """Garrison of the holder (besiegers excluded) plus a flat deterrent for walls."""
    loc = world.location(location_id)
    if loc is None:
        return 0
    troops = sum(
        a.strength for a in world.armies_at(location_id, loc.faction) if not a.sieging
    )
    walls = world.rules.reversal.wall_deterrent if loc.fortification_level > 0 else 0
    return troops + walls


def handle_reversals(ctx: TurnContext) -> list[Army]:
    world = ctx.world
    cfg = ctx.rules.reversal
    reversed_armies: list[Army] = []
    for army in ctx.own_armies():
        pos = army.road
        if pos is None or army.action is not None:
            continue
        origin = world.location(pos.origin_id)
        if origin is None or not origin.is_hostile_to(ctx.faction):
            continue
        target = world.location(pos.destination_id)
        if target is None or target.faction == ctx.faction:
            continue

        defense = destination_defense(world, target.id)
        if army.strength >= defense * cfg.confidence:
            continue

        army.position = pos.reversed()
        army.garrisoned = False
        ctx.assign(army.id)
        reversed_armies.append(army)
        logger.debug(
            "[%s] Army %s reversing: origin %s captured by %s, %s too strong (%d vs %d)",
            ctx.faction, army.id, origin.name, origin.faction, target.name, defense, army.strength,
        )
    return reversed_armies
