"""Map, army and mission records."""

from __future__ import annotations

from dataclasses import dataclass, field

from frontline.domain.types import (
    NEUTRAL,
    ArmyAction,
    CampaignStage,
    Direction,
    FactionId,
    LocationKind,
    MissionStatus,
    MissionType,
    RoadDefenseStage,
    RoadQuality,
    Trait,
)


@dataclass()
class RoadStage:
    name: str
    fortification_level: int = 0
    natural_defense: int = 0


@dataclass()
class Road:
    """A road between two locations, walked stage by stage when REGIONAL."""

    id: str
    from_id: str
    to_id: str
    quality: RoadQuality = RoadQuality.REGIONAL
    stages: list[RoadStage] = field(default_factory=list)
    travel_turns: int = 1

    def touches(self, location_id: str) -> bool:
        return location_id in (self.from_id, self.to_id)

    def other_end(self, location_id: str) -> str:
        return self.to_id if location_id == self.from_id else self.from_id

    def direction_from(self, location_id: str) -> Direction:
        return Direction.FORWARD if location_id == self.from_id else Direction.BACKWARD

    def entry_stage(self, location_id: str) -> int:
        """Stage index nearest to the given endpoint."""
        return 0 if location_id == self.from_id else max(0, len(self.stages) - 1)

    def end_for(self, direction: Direction) -> str:
        return self.to_id if direction is Direction.FORWARD else self.from_id

    def start_for(self, direction: Direction) -> str:
        return self.from_id if direction is Direction.FORWARD else self.to_id


@dataclass()
class Location:
    id: str
    name: str
    faction: FactionId
    kind: LocationKind = LocationKind.RURAL
    fortification_level: int = 0
    defense: int = 0  # current defense bonus from fortifications
    population: int = 5000
    stability: int = 50
    linked_location_id: str | None = None
    food_stock: int = 0
    food_income: int = 0
    sieged_this_turn: bool = False

    def is_hostile_to(self, faction: FactionId) -> bool:
        return self.faction != faction and self.faction != NEUTRAL


@dataclass()
class Character:
    id: str
    name: str
    faction: FactionId
    location_id: str | None = None
    army_id: str | None = None
    traits: frozenset[Trait] = frozenset()

    def has_trait(self, trait: Trait) -> bool:
        return trait in self.traits


@dataclass(frozen=True)
class AtLocation:
    location_id: str


@dataclass(frozen=True)
class OnRoad:
    road_id: str
    stage_index: int
    direction: Direction
    destination_id: str
    origin_id: str

    def reversed(self) -> "OnRoad":
        return OnRoad(
            road_id=self.road_id,
            stage_index=self.stage_index,
            direction=self.direction.reversed(),
            destination_id=self.origin_id,
            origin_id=self.destination_id,
        )


Position = AtLocation | OnRoad


@dataclass()
class Army:
    id: str
    faction: FactionId
    strength: int
    position: Position
    garrisoned: bool = False
    spent: bool = False
    sieging: bool = False
    insurgent: bool = False
    action: ArmyAction | None = None
    just_moved: bool = False

    def __post_init__(self) -> None:
        if self.strength < 0:
            raise ValueError(f"Army {self.id} strength must be non-negative, got {self.strength}")

    @property
    def location_id(self) -> str | None:
        if isinstance(self.position, AtLocation):
            return self.position.location_id
        return None

    @property
    def road(self) -> OnRoad | None:
        if isinstance(self.position, OnRoad):
            return self.position
        return None

    @property
    def on_road(self) -> bool:
        return isinstance(self.position, OnRoad)

    @property
    def destination_id(self) -> str | None:
        if isinstance(self.position, OnRoad):
            return self.position.destination_id
        return None

    def is_at(self, location_id: str) -> bool:
        return self.location_id == location_id

    @property
    def can_merge(self) -> bool:
        return not (self.spent or self.insurgent or self.sieging or self.action is not None)


@dataclass()
class SingleStaging:
    staging_id: str
    required_strength: int = 1000


@dataclass()
class Convergent:
    staging_ids: list[str]
    required_strength: int = 1000
    readiness: dict[str, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.staging_ids:
            raise ValueError("Convergent plan needs at least one staging id")


@dataclass()
class DefensePlan:
    required_strength: int = 1500


@dataclass()
class RoadPost:
    road_id: str
    stage_index: int
    required_strength: int = 1000
    fortify: bool = False


MissionPlan = SingleStaging | Convergent | DefensePlan | RoadPost


@dataclass()
class Mission:
    """A directive from the strategy layer; status and stage are mutated in place."""

    id: str
    type: MissionType
    target_id: str
    plan: MissionPlan | None = None
    priority: int = 0
    status: MissionStatus = MissionStatus.PLANNING
    stage: CampaignStage | RoadDefenseStage = CampaignStage.GATHERING
    assigned_army_ids: list[str] = field(default_factory=list)
    negotiation_requested: bool = False
    stage_history: list[str] = field(default_factory=list)

    def set_stage(self, stage: CampaignStage | RoadDefenseStage) -> None:
        if stage != self.stage:
            self.stage_history.append(stage.value)
        self.stage = stage

    @property
    def staging_ids(self) -> list[str]:
        if isinstance(self.plan, SingleStaging):
            return [self.plan.staging_id]
        if isinstance(self.plan, Convergent):
            return list(self.plan.staging_ids)
        return []

    @property
    def required_strength(self) -> int | None:
        if self.plan is None:
            return None
        return self.plan.required_strength
