"""World state container and the per-faction turn context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from frontline.domain.events import MilitaryLogEntry, SiegeNotification
from frontline.domain.models import Army, Character, Location, Mission, Road
from frontline.domain.types import NEUTRAL, FactionId
from frontline.rules.ruleset import MilitaryRules
from frontline.sim.ids import IdSequence


@dataclass()
class WorldState:
    """Registries of everything the military pass reads and mutates, keyed by id."""

    turn: int
    locations: dict[str, Location]
    roads: dict[str, Road]
    armies: dict[str, Army]
    characters: dict[str, Character]
    missions: dict[FactionId, list[Mission]]
    gold: dict[FactionId, int]
    rules: MilitaryRules
    player_faction: FactionId | None = None
    ids: IdSequence = field(default_factory=IdSequence)
    log: list[MilitaryLogEntry] = field(default_factory=list)
    notifications: list[SiegeNotification] = field(default_factory=list)

    @staticmethod
    def build(
        *,
        locations: Iterable[Location] = (),
        roads: Iterable[Road] = (),
        armies: Iterable[Army] = (),
        characters: Iterable[Character] = (),
        missions: dict[FactionId, list[Mission]] | None = None,
        gold: dict[FactionId, int] | None = None,
        rules: MilitaryRules | None = None,
        player_faction: FactionId | None = None,
        turn: int = 1,
    ) -> "WorldState":
        return WorldState(
            turn=turn,
            locations={loc.id: loc for loc in locations},
            roads={road.id: road for road in roads},
            armies={army.id: army for army in armies},
            characters={c.id: c for c in characters},
            missions=dict(missions or {}),
            gold=dict(gold or {}),
            rules=rules or MilitaryRules.default(),
            player_faction=player_faction,
        )

    # -- lookups -----------------------------------------------------------

    def location(self, location_id: str | None) -> Location | None:
        if location_id is None:
            return None
        return self.locations.get(location_id)

    def road(self, road_id: str | None) -> Road | None:
        if road_id is None:
            return None
        return self.roads.get(road_id)

    def army(self, army_id: str) -> Army | None:
        return self.armies.get(army_id)

    def roads_at(self, location_id: str) -> list[Road]:
        return [road for road in self.roads.values() if road.touches(location_id)]

    def neighbors(self, location_id: str) -> list[str]:
        return [road.other_end(location_id) for road in self.roads_at(location_id)]

    def linked_partner(self, location_id: str) -> str | None:
        """The paired city/rural location, following the link in either direction."""
        loc = self.locations.get(location_id)
        if loc is not None and loc.linked_location_id in self.locations:
            return loc.linked_location_id
        for other in self.locations.values():
            if other.linked_location_id == location_id:
                return other.id
        return None

    def missions_for(self, faction: FactionId) -> list[Mission]:
        return self.missions.get(faction, [])

    def characters_at(self, location_id: str, faction: FactionId) -> list[Character]:
        return [
            c for c in self.characters.values()
            if c.location_id == location_id and c.faction == faction
        ]

    # -- army queries --------------------------------------------------------

    def faction_armies(self, faction: FactionId) -> list[Army]:
        return [a for a in self.armies.values() if a.faction == faction]

    def armies_at(self, location_id: str, faction: FactionId | None = None) -> list[Army]:
        return [
            a for a in self.armies.values()
            if a.location_id == location_id and (faction is None or a.faction == faction)
        ]

    def strength_at(self, location_id: str, faction: FactionId) -> int:
        return sum(a.strength for a in self.armies_at(location_id, faction))

    def foreign_armies_at(self, location_id: str, faction: FactionId) -> list[Army]:
        """Armies of any other faction (neutral garrisons included)."""
        return [a for a in self.armies_at(location_id) if a.faction != faction]

    def hostile_armies_at(self, location_id: str, faction: FactionId) -> list[Army]:
        return [a for a in self.armies_at(location_id) if a.faction not in (faction, NEUTRAL)]

    def armies_heading_to(self, location_id: str, faction: FactionId | None = None) -> list[Army]:
        return [
            a for a in self.armies.values()
            if a.destination_id == location_id and (faction is None or a.faction == faction)
        ]

    def armies_on_stage(self, road_id: str, stage_index: int) -> list[Army]:
        return [
            a for a in self.armies.values()
            if a.road is not None and a.road.road_id == road_id and a.road.stage_index == stage_index
        ]

    # -- mutation ------------------------------------------------------------

    def add_army(self, army: Army) -> Army:
        if army.id in self.armies:
            raise ValueError(f"Duplicate army id {army.id}")
        self.armies[army.id] = army
        return army

    def remove_army(self, army_id: str) -> Army | None:
        return self.armies.pop(army_id, None)

    def prune_empty(self) -> list[str]:
        empty = [army_id for army_id, army in self.armies.items() if army.strength <= 0]
        for army_id in empty:
            del self.armies[army_id]
        return empty

    def record(self, faction: FactionId, message: str, kind: str) -> None:
        self.log.append(MilitaryLogEntry(turn=self.turn, faction=faction, message=message, kind=kind))


@dataclass()
class TurnContext:
    """One faction's military pass: the live world plus the assigned-set."""

    world: WorldState
    faction: FactionId
    assigned: set[str] = field(default_factory=set)

    @property
    def rules(self) -> MilitaryRules:
        return self.world.rules

    def assign(self, army_id: str) -> None:
        self.assigned.add(army_id)

    def is_assigned(self, army_id: str) -> bool:
        return army_id in self.assigned

    def own_armies(self) -> list[Army]:
        return self.world.faction_armies(self.faction)

    def own_at(self, location_id: str) -> list[Army]:
        return self.world.armies_at(location_id, self.faction)

    def free_at(self, location_id: str) -> list[Army]:
        return [a for a in self.own_at(location_id) if a.id not in self.assigned]
