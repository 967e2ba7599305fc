from __future__ import annotations

from hypothesis import settings
from hypothesis import strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, precondition, rule, run_state_machine_as_test

from frontline.domain.models import Mission, SingleStaging
from frontline.domain.types import MissionStatus, MissionType
from frontline.sim.military import run_military_phase
from tests.helpers.factories import advance_roads, army, faction_strength, local, loc, make_world, road
from tests.helpers.invariants import assert_campaign_transitions, assert_strengths_non_negative


class MilitaryStateMachine(RuleBasedStateMachine):
    def __init__(self) -> None:
        super().__init__()
        self.mission = Mission(
            id="m",
            type=MissionType.CAMPAIGN,
            target_id="T",
            plan=SingleStaging(staging_id="H", required_strength=1500),
        )
        self.world = make_world(
            [loc("R", "F"), loc("H", "F"), loc("T", "E", fortification_level=1)],
            [local("rh", "R", "H"), road("ht", "H", "T", stages=2)],
            [army("a", "F", 900, "H"), army("b", "F", 700, "R"), army("foe", "E", 600, "T")],
            missions={"F": [self.mission]},
            gold={"F": 250},
        )
        self.levies = 0
        self.expected = {f: faction_strength(self.world, f) for f in ("F", "E")}

    @rule()
    def run_pass(self) -> None:
        reports = run_military_phase(self.world, ["F", "E"])
        assert [r.faction for r in reports] == ["F", "E"]
        for faction, total in self.expected.items():
            assert faction_strength(self.world, faction) == total

    @rule()
    def end_turn(self) -> None:
        advance_roads(self.world)

    @rule(strength=st.integers(min_value=1, max_value=1500))
    def raise_levy(self, strength: int) -> None:
        self.levies += 1
        self.world.add_army(army(f"levy-{self.levies}", "F", strength, "R"))
        self.expected["F"] += strength

    @precondition(lambda self: bool(self.world.armies_at("T", "F")))
    @rule(loss=st.floats(min_value=0.0, max_value=1.0))
    def battle_losses(self, loss: float) -> None:
        for unit in self.world.armies_at("T", "F"):
            remaining = int(unit.strength * (1 - loss))
            self.expected["F"] -= unit.strength - remaining
            unit.strength = remaining

    @invariant()
    def invariants_hold(self) -> None:
        assert_strengths_non_negative(self.world)
        assert self.world.gold["F"] >= 0
        assert self.mission.status in (MissionStatus.PLANNING, MissionStatus.ACTIVE, MissionStatus.COMPLETED)
        assert_campaign_transitions(self.mission.stage_history)


def test_military_state_machine() -> None:
    run_state_machine_as_test(
        MilitaryStateMachine,
        settings=settings(max_examples=20, stateful_step_count=30, deadline=None),
    )
