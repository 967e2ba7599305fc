"""Army movement, splitting and reinforcement pulling."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Iterable

from frontline.domain.models import Army, AtLocation, OnRoad
from frontline.domain.types import RoadQuality
from frontline.sim.state import TurnContext
from frontline.systems.garrison import is_frontier, min_garrison
from frontline.systems.pathfinding import UNREACHABLE, find_safe_path, hop_distance

logger = logging.getLogger(__name__)


def move_armies_to(ctx: TurnContext, armies: Iterable[Army], target_id: str) -> list[Army]:
    """Commit each army to the first step of its safe path toward target_id.

    LOCAL roads and city/rural links are crossed instantly; REGIONAL roads put
    the army on the stage nearest its origin, to be advanced by the external road
    process. Armies without a path are left untouched. Returns the moved armies.
    """
    world = ctx.world
    moved: list[Army] = []
    for selected in armies:
        army = world.army(selected.id)
        if army is None or army.location_id is None:
            continue
        origin_id = army.location_id
        path = find_safe_path(world, origin_id, target_id, army.faction)
        if not path:
            logger.debug("Army %s at %s: no path to %s", army.id, origin_id, target_id)
            continue

        step = path[0]
        if step.is_link:
            _arrive(army, step.to_id)
        else:
            road = world.road(step.road_id)
            if road is None:
                logger.warning("Army %s: road %s vanished from the registry", army.id, step.road_id)
                continue
            if road.quality is RoadQuality.LOCAL:
                _arrive(army, step.to_id)
            else:
                army.position = OnRoad(
                    road_id=road.id,
                    stage_index=road.entry_stage(origin_id),
                    direction=road.direction_from(origin_id),
                    destination_id=step.to_id,
                    origin_id=origin_id,
                )
                army.garrisoned = False
                army.sieging = False
                army.just_moved = True
        logger.debug("Army %s (%d) leaves %s toward %s", army.id, army.strength, origin_id, target_id)
        ctx.assign(army.id)
        moved.append(army)
    return moved


def _arrive(army: Army, location_id: str) -> None:
    army.position = AtLocation(location_id)
    army.garrisoned = False
    army.sieging = False
    army.just_moved = False


def split_army(ctx: TurnContext, army: Army, amount: int, *, prefix: str) -> Army:
    """Detach `amount` strength into a new army that copies everything but id and strength."""
    if not 0 < amount < army.strength:
        raise ValueError(f"Cannot split {amount} from army {army.id} of strength {army.strength}")
    detachment = replace(army, id=ctx.world.ids.next(prefix), strength=amount)
    army.strength -= amount
    ctx.world.add_army(detachment)
    return detachment


def pull_reinforcements(
    ctx: TurnContext, target_id: str, max_amount: int | None = None
) -> int:
    """Send surplus strength from other locations toward target_id.

    Candidates are unassigned armies whose home holds more than its garrison
    floor, biggest first and nearest on ties. Whole armies move when the home
    keeps its floor (and a frontier home keeps 1000); otherwise exactly the
    surplus is split off when it is worth a regiment. Returns strength sent.
    """
    world = ctx.world
    faction = ctx.faction
    rules = ctx.rules
    limit = math.inf if max_amount is None else max_amount
    if limit <= 0:
        return 0

    candidates: list[tuple[Army, int]] = []
    for army in ctx.own_armies():
        home_id = army.location_id
        if home_id is None or home_id == target_id or ctx.is_assigned(army.id):
            continue
        if army.sieging or army.insurgent or army.spent or army.action is not None:
            continue
        home = world.location(home_id)
        if home is None:
            continue
        if world.strength_at(home_id, faction) <= min_garrison(world, home, faction):
            continue
        dist = hop_distance(world, home_id, target_id)
        if dist >= UNREACHABLE:
            continue
        candidates.append((army, dist))

    candidates.sort(key=lambda c: (-c[0].strength, c[1]))

    recruited = 0
    for army, dist in candidates:
        if recruited >= limit:
            break
        if world.army(army.id) is None or ctx.is_assigned(army.id):
            continue
        home = world.location(army.location_id)
        if home is None:
            continue
        if not find_safe_path(world, home.id, target_id, faction):
            continue

        total = world.strength_at(home.id, faction)
        floor = min_garrison(world, home, faction)
        remainder = total - army.strength
        frontier_breach = remainder < rules.reinforcement.frontier_floor and is_frontier(
            world, home.id, faction
        )

        if remainder >= floor and not frontier_breach:
            logger.debug(
                "[%s] Reinforcing %s from %s with %d (dist %d)",
                faction, target_id, home.id, army.strength, dist,
            )
            if move_armies_to(ctx, [army], target_id):
                recruited += army.strength
            continue

        surplus = total - floor
        if surplus >= rules.reinforcement.min_split and army.strength > surplus:
            detachment = split_army(ctx, army, surplus, prefix="reinf")
            detachment.garrisoned = False
            army.garrisoned = True
            logger.debug(
                "[%s] Reinforcing %s from %s by splitting (taking %d, leaving %d)",
                faction, target_id, home.id, surplus, army.strength,
            )
            if move_armies_to(ctx, [detachment], target_id):
                recruited += surplus

    return recruited
