"""Data-driven military tunables."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from frontline.domain.types import MissionType


class RulesError(ValueError):
    """Error loading or validating rules."""


@dataclass(frozen=True)
class SiegeConfig:
    cost_table: dict[int, int]
    default_cost: int
    manpower: int
    heavy_manpower: int
    heavy_level: int
    split_margin: int
    cost_reduction_pct: float
    negotiation_excluded_factions: frozenset[str]
    negotiation_food_stock: int
    negotiation_distance: int

    def cost_for(self, fortification_level: int) -> int:
        return self.cost_table.get(fortification_level, self.default_cost)

    def manpower_for(self, fortification_level: int) -> int:
        return self.heavy_manpower if fortification_level >= self.heavy_level else self.manpower


@dataclass(frozen=True)
class GarrisonConfig:
    floor: int
    cap: int
    strategic_floor: int
    frontier_floor: int
    default_population: int
    default_stability: int


@dataclass(frozen=True)
class CampaignConfig:
    attack_force_ratio: float
    attack_force_min: int
    attack_force_max: int
    launch_at_target: int
    launch_mass: int
    zombie_floor: int
    zombie_ratio: float
    sustain_trigger: float
    sustain_target: float
    sustain_min_deficit: int
    reinforce_ratio: float
    deploy_min_split: int
    assault_margin: int
    assault_ratio: float
    convergent_readiness: float
    convergent_min_army: int


@dataclass(frozen=True)
class ThreatConfig:
    overwhelm_ratio: float
    manning_threshold: int


@dataclass(frozen=True)
class ReinforcementConfig:
    min_split: int
    frontier_floor: int


@dataclass(frozen=True)
class IdleConfig:
    campaign_radius: int
    strategic_radius: int


@dataclass(frozen=True)
class DefenseConfig:
    required_strength: int
    buffer: float
    sortie_ratio: float
    screen_margin: int
    screen_max_strength: int


@dataclass(frozen=True)
class ReversalConfig:
    confidence: float
    wall_deterrent: int


@dataclass(frozen=True)
class MilitaryRules:
    """Loaded and validated military rules."""

    fortification_levels: dict[int, int]
    siege: SiegeConfig
    garrison: GarrisonConfig
    campaign: CampaignConfig
    threat: ThreatConfig
    reinforcement: ReinforcementConfig
    defense: DefenseConfig
    idle: IdleConfig
    reversal: ReversalConfig
    consolidation_min_armies: int
    strategic_locations: dict[str, tuple[str, ...]]
    deployment_targets: dict[str, tuple[str, ...]]
    mission_priority: dict[str, int]

    def fortification_bonus(self, level: int) -> int:
        return self.fortification_levels.get(level, 0)

    def type_priority(self, mission_type: MissionType | str) -> int:
        key = mission_type.value if isinstance(mission_type, MissionType) else str(mission_type)
        return self.mission_priority.get(key, 0)

    @staticmethod
    def default() -> "MilitaryRules":
        return MilitaryRules.from_dict({})

    @staticmethod
    def load(path: Path) -> "MilitaryRules":
        """Load rules from a JSON file."""
        return MilitaryRules.from_dict(_load_json(path), source=str(path))

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "<rules>") -> "MilitaryRules":
        if not isinstance(data, dict):
            raise RulesError(f"{source}: rules root must be object")
        return MilitaryRules(
            fortification_levels=_int_table(
                data.get("fortification_levels", {0: 0, 1: 500, 2: 1500, 3: 4000, 4: 10000}),
                source,
                "fortification_levels",
            ),
            siege=_load_siege(_section(data, "siege", source), source),
            garrison=_load_garrison(_section(data, "garrison", source)),
            campaign=_load_campaign(_section(data, "campaign", source)),
            threat=ThreatConfig(
                overwhelm_ratio=float(_section(data, "threat", source).get("overwhelm_ratio", 1.5)),
                manning_threshold=int(_section(data, "threat", source).get("manning_threshold", 500)),
            ),
            reinforcement=ReinforcementConfig(
                min_split=int(_section(data, "reinforcement", source).get("min_split", 500)),
                frontier_floor=int(_section(data, "reinforcement", source).get("frontier_floor", 1000)),
            ),
            defense=_load_defense(_section(data, "defense", source)),
            idle=IdleConfig(
                campaign_radius=int(_section(data, "idle", source).get("campaign_radius", 10)),
                strategic_radius=int(_section(data, "idle", source).get("strategic_radius", 4)),
            ),
            reversal=ReversalConfig(
                confidence=float(_section(data, "reversal", source).get("confidence", 1.1)),
                wall_deterrent=int(_section(data, "reversal", source).get("wall_deterrent", 2000)),
            ),
            consolidation_min_armies=int(
                _section(data, "consolidation", source).get("min_armies", 5)
            ),
            strategic_locations=_faction_lists(data.get("strategic_locations", {}), source, "strategic_locations"),
            deployment_targets=_faction_lists(data.get("deployment_targets", {}), source, "deployment_targets"),
            mission_priority={
                str(k): int(v)
                for k, v in dict(
                    data.get(
                        "mission_priority",
                        {
                            MissionType.CAMPAIGN.value: 100,
                            MissionType.DEFEND.value: 50,
                            MissionType.COUNTER_INSURRECTION.value: 45,
                            MissionType.ROAD_DEFENSE.value: 40,
                        },
                    )
                ).items()
            },
        )


def _load_json(path: Path) -> dict[str, Any]:
    """Load JSON file."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise RulesError(f"Rules file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise RulesError(f"Invalid JSON in {path}: {exc}") from exc


def _section(data: dict[str, Any], key: str, source: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise RulesError(f"{source}: '{key}' must be object")
    return value


def _int_table(value: Any, source: str, key: str) -> dict[int, int]:
    if not isinstance(value, dict):
        raise RulesError(f"{source}: '{key}' must be object")
    try:
        return {int(k): int(v) for k, v in value.items()}
    except (TypeError, ValueError) as exc:
        raise RulesError(f"{source}: '{key}' must map integers to integers") from exc


def _faction_lists(value: Any, source: str, key: str) -> dict[str, tuple[str, ...]]:
    if not isinstance(value, dict):
        raise RulesError(f"{source}: '{key}' must be object")
    result: dict[str, tuple[str, ...]] = {}
    for faction, ids in value.items():
        if not isinstance(ids, list):
            raise RulesError(f"{source}: '{key}.{faction}' must be array")
        result[str(faction)] = tuple(str(i) for i in ids)
    return result


def _load_siege(data: dict[str, Any], source: str) -> SiegeConfig:
    excluded = data.get("negotiation_excluded_factions", ["NOBLES"])
    if not isinstance(excluded, list):
        raise RulesError(f"{source}: siege.negotiation_excluded_factions must be array")
    return SiegeConfig(
        cost_table=_int_table(data.get("cost_table", {1: 25, 2: 50, 3: 100, 4: 200}), source, "siege.cost_table"),
        default_cost=int(data.get("default_cost", 100)),
        manpower=int(data.get("manpower", 500)),
        heavy_manpower=int(data.get("heavy_manpower", 1000)),
        heavy_level=int(data.get("heavy_level", 3)),
        split_margin=int(data.get("split_margin", 500)),
        cost_reduction_pct=float(data.get("cost_reduction_pct", 0.5)),
        negotiation_excluded_factions=frozenset(str(f) for f in excluded),
        negotiation_food_stock=int(data.get("negotiation_food_stock", 150)),
        negotiation_distance=int(data.get("negotiation_distance", 3)),
    )


def _load_garrison(data: dict[str, Any]) -> GarrisonConfig:
    return GarrisonConfig(
        floor=int(data.get("floor", 500)),
        cap=int(data.get("cap", 4000)),
        strategic_floor=int(data.get("strategic_floor", 1000)),
        frontier_floor=int(data.get("frontier_floor", 1000)),
        default_population=int(data.get("default_population", 5000)),
        default_stability=int(data.get("default_stability", 50)),
    )


def _load_campaign(data: dict[str, Any]) -> CampaignConfig:
    return CampaignConfig(
        attack_force_ratio=float(data.get("attack_force_ratio", 1.25)),
        attack_force_min=int(data.get("attack_force_min", 1000)),
        attack_force_max=int(data.get("attack_force_max", 3000)),
        launch_at_target=int(data.get("launch_at_target", 500)),
        launch_mass=int(data.get("launch_mass", 2000)),
        zombie_floor=int(data.get("zombie_floor", 500)),
        zombie_ratio=float(data.get("zombie_ratio", 0.3)),
        sustain_trigger=float(data.get("sustain_trigger", 1.1)),
        sustain_target=float(data.get("sustain_target", 1.2)),
        sustain_min_deficit=int(data.get("sustain_min_deficit", 200)),
        reinforce_ratio=float(data.get("reinforce_ratio", 1.1)),
        deploy_min_split=int(data.get("deploy_min_split", 200)),
        assault_margin=int(data.get("assault_margin", 2000)),
        assault_ratio=float(data.get("assault_ratio", 1.5)),
        convergent_readiness=float(data.get("convergent_readiness", 0.7)),
        convergent_min_army=int(data.get("convergent_min_army", 200)),
    )


def _load_defense(data: dict[str, Any]) -> DefenseConfig:
    return DefenseConfig(
        required_strength=int(data.get("required_strength", 1500)),
        buffer=float(data.get("buffer", 1.2)),
        sortie_ratio=float(data.get("sortie_ratio", 1.5)),
        screen_margin=int(data.get("screen_margin", 1000)),
        screen_max_strength=int(data.get("screen_max_strength", 1000)),
    )
