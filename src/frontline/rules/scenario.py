from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from frontline.domain.models import (
    Army,
    AtLocation,
    Character,
    Convergent,
    DefensePlan,
    Location,
    Mission,
    MissionPlan,
    OnRoad,
    Road,
    RoadPost,
    RoadStage,
    SingleStaging,
)
from frontline.domain.types import (
    CampaignStage,
    Direction,
    LocationKind,
    MissionStatus,
    MissionType,
    RoadDefenseStage,
    RoadQuality,
    Trait,
)
from frontline.rules.ruleset import MilitaryRules, RulesError
from frontline.sim.state import WorldState


class ScenarioError(ValueError):
    pass


def load_world(path: Path) -> WorldState:
    data = _load_json(path)
    if not isinstance(data, dict):
        raise ScenarioError("Scenario root must be an object")

    # Scenarios live in data/scenarios, rules in data/rules.
    rules_path = path.parent.parent / "rules" / "military.json"
    try:
        rules = MilitaryRules.load(rules_path) if rules_path.exists() else MilitaryRules.default()
    except RulesError as exc:
        raise ScenarioError(str(exc)) from exc

    locations = [_parse_location(item, rules) for item in _require_list(data, "locations")]
    location_ids = _unique_ids(locations, "location")

    roads = [_parse_road(item) for item in data.get("roads", [])]
    _unique_ids(roads, "road")
    for road in roads:
        for end in (road.from_id, road.to_id):
            if end not in location_ids:
                raise ScenarioError(f"road {road.id} references unknown location {end}")
    road_map = {road.id: road for road in roads}

    armies = [_parse_army(item, location_ids, road_map) for item in data.get("armies", [])]
    _unique_ids(armies, "army")

    characters = [_parse_character(item) for item in data.get("characters", [])]

    missions_raw = data.get("missions", {})
    if not isinstance(missions_raw, dict):
        raise ScenarioError("missions must be an object keyed by faction")
    missions = {
        str(faction): [_parse_mission(item) for item in items]
        for faction, items in missions_raw.items()
    }

    gold_raw = data.get("gold", {})
    if not isinstance(gold_raw, dict):
        raise ScenarioError("gold must be an object keyed by faction")

    return WorldState.build(
        locations=locations,
        roads=roads,
        armies=armies,
        characters=characters,
        missions=missions,
        gold={str(k): int(v) for k, v in gold_raw.items()},
        rules=rules,
        player_faction=data.get("player_faction"),
        turn=int(data.get("turn", 1)),
    )


def _load_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise ScenarioError(f"Scenario not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ScenarioError(f"Invalid JSON in scenario: {exc}") from exc


def _unique_ids(items: list, label: str) -> set[str]:
    seen: set[str] = set()
    for item in items:
        if item.id in seen:
            raise ScenarioError(f"duplicate {label} id {item.id}")
        seen.add(item.id)
    return seen


def _parse_location(data: object, rules: MilitaryRules) -> Location:
    if not isinstance(data, dict):
        raise ScenarioError("locations entries must be objects")
    level = int(data.get("fortification_level", 0))
    return Location(
        id=_require_str(data, "id"),
        name=str(data.get("name", data["id"])),
        faction=_require_str(data, "faction"),
        kind=_enum(LocationKind, data.get("kind", "RURAL"), "location.kind"),
        fortification_level=level,
        defense=int(data.get("defense", rules.fortification_bonus(level))),
        population=int(data.get("population", rules.garrison.default_population)),
        stability=int(data.get("stability", rules.garrison.default_stability)),
        linked_location_id=data.get("linked_location_id"),
        food_stock=int(data.get("food_stock", 0)),
        food_income=int(data.get("food_income", 0)),
    )


def _parse_road(data: object) -> Road:
    if not isinstance(data, dict):
        raise ScenarioError("roads entries must be objects")
    stages = []
    for item in data.get("stages", []):
        if not isinstance(item, dict):
            raise ScenarioError("road stages must be objects")
        stages.append(
            RoadStage(
                name=str(item.get("name", "")),
                fortification_level=int(item.get("fortification_level", 0)),
                natural_defense=int(item.get("natural_defense", 0)),
            )
        )
    return Road(
        id=_require_str(data, "id"),
        from_id=_require_str(data, "from"),
        to_id=_require_str(data, "to"),
        quality=_enum(RoadQuality, data.get("quality", "REGIONAL"), "road.quality"),
        stages=stages,
        travel_turns=max(1, int(data.get("travel_turns", 1))),
    )


def _parse_army(data: object, location_ids: set[str], roads: dict[str, Road]) -> Army:
    if not isinstance(data, dict):
        raise ScenarioError("armies entries must be objects")
    army_id = _require_str(data, "id")
    if "road" in data:
        pos = data["road"]
        if not isinstance(pos, dict):
            raise ScenarioError(f"army {army_id}: road must be an object")
        road = roads.get(str(pos.get("road_id")))
        if road is None:
            raise ScenarioError(f"army {army_id} is on unknown road {pos.get('road_id')}")
        direction = _enum(Direction, pos.get("direction", "FORWARD"), "army.road.direction")
        position = OnRoad(
            road_id=road.id,
            stage_index=int(pos.get("stage_index", 0)),
            direction=direction,
            destination_id=str(pos.get("destination_id", road.end_for(direction))),
            origin_id=str(pos.get("origin_id", road.start_for(direction))),
        )
    else:
        location_id = _require_str(data, "location")
        if location_id not in location_ids:
            raise ScenarioError(f"army {army_id} is at unknown location {location_id}")
        position = AtLocation(location_id)

    try:
        return Army(
            id=army_id,
            faction=_require_str(data, "faction"),
            strength=_require_int(data, "strength"),
            position=position,
            garrisoned=bool(data.get("garrisoned", False)),
            spent=bool(data.get("spent", False)),
            sieging=bool(data.get("sieging", False)),
            insurgent=bool(data.get("insurgent", False)),
        )
    except ValueError as exc:
        raise ScenarioError(str(exc)) from exc


def _parse_character(data: object) -> Character:
    if not isinstance(data, dict):
        raise ScenarioError("characters entries must be objects")
    traits = data.get("traits", [])
    if not isinstance(traits, list):
        raise ScenarioError("character.traits must be a list")
    return Character(
        id=_require_str(data, "id"),
        name=str(data.get("name", data["id"])),
        faction=_require_str(data, "faction"),
        location_id=data.get("location_id"),
        army_id=data.get("army_id"),
        traits=frozenset(_enum(Trait, t, "character.traits") for t in traits),
    )


def _parse_mission(data: object) -> Mission:
    if not isinstance(data, dict):
        raise ScenarioError("missions entries must be objects")
    mission_type = _enum(MissionType, _require_str(data, "type"), "mission.type")
    stage_enum = RoadDefenseStage if mission_type is MissionType.ROAD_DEFENSE else CampaignStage
    return Mission(
        id=_require_str(data, "id"),
        type=mission_type,
        target_id=_require_str(data, "target_id"),
        plan=_parse_plan(mission_type, data.get("plan", {})),
        priority=int(data.get("priority", 0)),
        status=_enum(MissionStatus, data.get("status", "PLANNING"), "mission.status"),
        stage=_enum(stage_enum, data.get("stage", "GATHERING"), "mission.stage"),
        assigned_army_ids=[str(i) for i in data.get("assigned_army_ids", [])],
    )


def _parse_plan(mission_type: MissionType, data: object) -> MissionPlan | None:
    if not isinstance(data, dict):
        raise ScenarioError("mission.plan must be an object")
    if mission_type is MissionType.CAMPAIGN:
        required = int(data.get("required_strength", 1000))
        if "staging_ids" in data:
            staging_ids = data["staging_ids"]
            if not isinstance(staging_ids, list) or not staging_ids:
                raise ScenarioError("mission.plan.staging_ids must be a non-empty list")
            return Convergent(staging_ids=[str(s) for s in staging_ids], required_strength=required)
        if "staging_id" in data:
            return SingleStaging(staging_id=str(data["staging_id"]), required_strength=required)
        return None
    if mission_type is MissionType.ROAD_DEFENSE:
        return RoadPost(
            road_id=_require_str(data, "road_id"),
            stage_index=_require_int(data, "stage_index"),
            required_strength=int(data.get("required_strength", 1000)),
            fortify=bool(data.get("fortify", False)),
        )
    return DefensePlan(required_strength=int(data.get("required_strength", 1500)))


def _enum(enum_type, value: object, label: str):
    try:
        return enum_type(value)
    except ValueError as exc:
        raise ScenarioError(f"{label} has unknown value {value!r}") from exc


def _require_str(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ScenarioError(f"{key} must be a non-empty string")
    return value


def _require_int(data: dict, key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ScenarioError(f"{key} must be an integer")
    return value


def _require_list(data: dict, key: str) -> list:
    value = data.get(key)
    if not isinstance(value, list):
        raise ScenarioError(f"{key} must be a list")
    return value
