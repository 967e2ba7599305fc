"""Common types and enums."""

from __future__ import annotations

from enum import Enum

FactionId = str

NEUTRAL: FactionId = "NEUTRAL"


class LocationKind(str, Enum):
    CITY = "CITY"
    RURAL = "RURAL"


class RoadQuality(str, Enum):
    """LOCAL roads are crossed instantly; REGIONAL roads are walked stage by stage."""

    LOCAL = "LOCAL"
    REGIONAL = "REGIONAL"


class Direction(str, Enum):
    FORWARD = "FORWARD"  # from -> to
    BACKWARD = "BACKWARD"  # to -> from

    @property
    def step(self) -> int:
        return 1 if self is Direction.FORWARD else -1

    def reversed(self) -> "Direction":
        return Direction.BACKWARD if self is Direction.FORWARD else Direction.FORWARD


class MissionType(str, Enum):
    CAMPAIGN = "CAMPAIGN"
    DEFEND = "DEFEND"
    COUNTER_INSURRECTION = "COUNTER_INSURRECTION"
    ROAD_DEFENSE = "ROAD_DEFENSE"


class MissionStatus(str, Enum):
    PLANNING = "PLANNING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_open(self) -> bool:
        return self in (MissionStatus.PLANNING, MissionStatus.ACTIVE)


class CampaignStage(str, Enum):
    GATHERING = "GATHERING"
    MOVING = "MOVING"
    SIEGING = "SIEGING"
    ASSAULTING = "ASSAULTING"
    COMPLETED = "COMPLETED"

    @property
    def rank(self) -> int:
        return _CAMPAIGN_ORDER.index(self)

    @property
    def is_offensive(self) -> bool:
        return self in (CampaignStage.MOVING, CampaignStage.SIEGING, CampaignStage.ASSAULTING)


_CAMPAIGN_ORDER = [
    CampaignStage.GATHERING,
    CampaignStage.MOVING,
    CampaignStage.SIEGING,
    CampaignStage.ASSAULTING,
    CampaignStage.COMPLETED,
]


class RoadDefenseStage(str, Enum):
    GATHERING = "GATHERING"
    MOVING = "MOVING"
    GARRISONING = "GARRISONING"
    COMPLETED = "COMPLETED"


class Trait(str, Enum):
    """Character capabilities that matter to military planning."""

    GARRISON_SUBSTITUTE = "garrison_substitute"
    SIEGE_COST_REDUCTION = "siege_cost_reduction"


class ArmyAction(str, Enum):
    """Standing orders that pin an army in place for external resolution."""

    SORTIE = "sortie"
    SCREEN = "screen"
    ROAD_POST = "road_post"
