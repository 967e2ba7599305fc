"""Minimum garrison requirements."""

from __future__ import annotations

from frontline.domain.models import Location
from frontline.domain.types import FactionId, Trait
from frontline.sim.state import WorldState


def is_frontier(world: WorldState, location_id: str, faction: FactionId) -> bool:
    """True when any road neighbour is held by a hostile (non-neutral) faction."""
    for neighbor_id in world.neighbors(location_id):
        neighbor = world.location(neighbor_id)
        if neighbor is not None and neighbor.is_hostile_to(faction):
            return True
    return False


def min_garrison(world: WorldState, location: Location | None, faction: FactionId) -> int:
    """Minimum strength the faction must keep at a location, in [0, cap].

    Base need is 10 * (population / 100000) * (120 - stability) + 100, clamped to
    [floor, cap]. Strategic points and frontier locations need at least 1000. A
    faction character who substitutes for a garrison drops the need to zero.
    Always computed fresh: population and stability drift between turns.
    """
    cfg = world.rules.garrison
    if location is None:
        return cfg.floor

    for character in world.characters_at(location.id, faction):
        if character.has_trait(Trait.GARRISON_SUBSTITUTE):
            return 0

    population = location.population if location.population > 0 else cfg.default_population
    stability = max(0, min(100, location.stability))

    base_need = (10 * (population / 100000)) * (120 - stability) + 100
    required = min(cfg.cap, max(cfg.floor, int(base_need)))

    if location.id in world.rules.strategic_locations.get(faction, ()):
        required = max(required, cfg.strategic_floor)
    if is_frontier(world, location.id, faction):
        required = max(required, cfg.frontier_floor)

    return min(required, cfg.cap)
