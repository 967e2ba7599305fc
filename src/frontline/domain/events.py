"""Game-facing records produced by the military pass."""

from __future__ import annotations

from dataclasses import dataclass

from frontline.domain.types import FactionId


@dataclass(frozen=True)
class SiegeNotification:
    """Raised for the UI when a siege touches a human-controlled target."""

    target_id: str
    target_name: str
    attacker_name: FactionId


@dataclass(frozen=True)
class MilitaryLogEntry:
    turn: int
    faction: FactionId
    message: str
    kind: str  # "siege" | "assault" | "sortie"
