"""Merge crowded locations into single armies."""

from __future__ import annotations

import logging
from collections import defaultdict

from frontline.domain.models import Army, AtLocation
from frontline.sim.state import WorldState

logger = logging.getLogger(__name__)


def merge_at(world: WorldState, location_id: str, faction: str) -> Army | None:
    """Fold every mergeable faction army at a location into a new one.

    Characters and mission rosters that pointed at a folded army point at the
    merged army afterwards.
    """
    eligible = [a for a in world.armies_at(location_id, faction) if a.can_merge]
    if len(eligible) < 2:
        return None

    merged = Army(
        id=world.ids.next("merged"),
        faction=faction,
        strength=sum(a.strength for a in eligible),
        position=AtLocation(location_id),
    )
    folded = {a.id for a in eligible}
    for army_id in folded:
        world.remove_army(army_id)
    world.add_army(merged)

    for character in world.characters.values():
        if character.army_id in folded:
            character.army_id = merged.id
    for mission in world.missions_for(faction):
        if any(army_id in folded for army_id in mission.assigned_army_ids):
            kept = [i for i in mission.assigned_army_ids if i not in folded]
            mission.assigned_army_ids[:] = kept + [merged.id]

    loc = world.location(location_id)
    logger.debug(
        "[%s] Regiments merged in %s: %d armies into %s (%d)",
        faction, loc.name if loc else location_id, len(folded), merged.id, merged.strength,
    )
    return merged


def consolidate(world: WorldState, faction: str) -> list[Army]:
    """Merge wherever enough eligible armies share a location."""
    counts: dict[str, int] = defaultdict(int)
    for army in world.faction_armies(faction):
        if army.location_id is not None and army.can_merge:
            counts[army.location_id] += 1

    merged: list[Army] = []
    for location_id, count in counts.items():
        if count < world.rules.consolidation_min_armies:
            continue
        army = merge_at(world, location_id, faction)
        if army is not None:
            merged.append(army)
    return merged
