"""Threat model shared by campaigns and idle armies.

Effective defense counts the defending troops plus fortification and terrain
bonuses, the bonus only when the defenders can man it. An advance is suicidal
when the effective defense overwhelms the friendly force, or when the bonus
alone outweighs it. The friendly side is always the combined strength that
arrives together, never a single army in isolation.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass

from frontline.domain.models import Army, Road
from frontline.domain.types import FactionId
from frontline.rules.ruleset import MilitaryRules
from frontline.sim.state import WorldState

NEVER = 999


def ceil_scaled(value: int | float, ratio: float) -> int:
    # Rounding first keeps 1400 * 1.1 at 1540 instead of 1541.
    return math.ceil(round(value * ratio, 6))


def floor_scaled(value: int | float, ratio: float) -> int:
    return math.floor(round(value * ratio, 6))


@dataclass(frozen=True)
class Threat:
    troops: int
    bonus: int
    manning_threshold: int = 500

    @property
    def manned(self) -> bool:
        return self.troops >= self.manning_threshold

    @property
    def effective(self) -> int:
        return self.troops + (self.bonus if self.manned else 0)


def is_suicidal(threat: Threat, friendly_strength: int, rules: MilitaryRules) -> bool:
    effective = threat.effective
    if effective <= 0:
        return False
    overwhelmed = effective > friendly_strength * rules.threat.overwhelm_ratio
    no_impact = threat.manned and threat.bonus > friendly_strength
    return overwhelmed or no_impact


def stage_bonus(world: WorldState, road: Road, stage_index: int) -> int:
    if not 0 <= stage_index < len(road.stages):
        return 0
    stage = road.stages[stage_index]
    return world.rules.fortification_bonus(stage.fortification_level) + stage.natural_defense


def threat_at_location(world: WorldState, location_id: str, faction: FactionId) -> Threat:
    loc = world.location(location_id)
    troops = sum(a.strength for a in world.foreign_armies_at(location_id, faction))
    return Threat(
        troops=troops,
        bonus=loc.defense if loc is not None else 0,
        manning_threshold=world.rules.threat.manning_threshold,
    )


def threat_on_stage(world: WorldState, road: Road, stage_index: int, faction: FactionId) -> Threat:
    troops = sum(
        a.strength for a in world.armies_on_stage(road.id, stage_index) if a.faction != faction
    )
    return Threat(
        troops=troops,
        bonus=stage_bonus(world, road, stage_index),
        manning_threshold=world.rules.threat.manning_threshold,
    )


def threat_ahead(world: WorldState, army: Army) -> Threat | None:
    """What the army meets on its next step: the next stage, or the destination."""
    pos = army.road
    if pos is None:
        return None
    road = world.road(pos.road_id)
    if road is None:
        return None
    next_index = pos.stage_index + pos.direction.step
    if 0 <= next_index < len(road.stages):
        return threat_on_stage(world, road, next_index, army.faction)
    return threat_at_location(world, pos.destination_id, army.faction)


def turns_until_arrival(world: WorldState, army: Army) -> int:
    pos = army.road
    if pos is None:
        return 0
    road = world.road(pos.road_id)
    if road is None:
        return NEVER
    if pos.direction.step > 0:
        return len(road.stages) - pos.stage_index
    return pos.stage_index + 1


def converging_strength_by_turn(
    world: WorldState, destination_id: str, faction: FactionId
) -> dict[int, int]:
    """Friendly strength reaching a destination, keyed by turns until arrival.

    Armies already there arrive at turn 0; halted road armies still count.
    """
    arrivals: dict[int, int] = defaultdict(int)
    for army in world.faction_armies(faction):
        if army.is_at(destination_id):
            arrivals[0] += army.strength
        elif army.destination_id == destination_id:
            arrivals[turns_until_arrival(world, army)] += army.strength
    return dict(arrivals)


def same_turn_strength(world: WorldState, army: Army, destination_id: str) -> int:
    arrivals = converging_strength_by_turn(world, destination_id, army.faction)
    return arrivals.get(turns_until_arrival(world, army), 0)
