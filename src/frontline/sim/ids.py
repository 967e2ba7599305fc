from __future__ import annotations

from dataclasses import dataclass


@dataclass()
class IdSequence:
    """Monotonic id source for armies created by splits and merges."""

    next_value: int = 1

    def next(self, prefix: str) -> str:
        value = self.next_value
        self.next_value += 1
        return f"{prefix}-{value}"
