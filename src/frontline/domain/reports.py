"""Per-faction summary of a military pass."""

from __future__ import annotations

from dataclasses import dataclass, field

from frontline.domain.types import FactionId


@dataclass(frozen=True)
class MilitaryReport:
    faction: FactionId
    processed_missions: list[str] = field(default_factory=list)
    assigned_armies: list[str] = field(default_factory=list)
    merged_armies: list[str] = field(default_factory=list)
    reversed_armies: list[str] = field(default_factory=list)
    pruned_armies: list[str] = field(default_factory=list)
