"""Step/depth/duration limits that guarantee a traversal terminates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

STEPS = "steps"
DEPTH = "depth"
DURATION = "duration"


@dataclass(frozen=True)
class TraversalBudget:
    max_steps: int = 200
    max_depth: int = 10
    max_duration: float = 120.0  # seconds

    def __post_init__(self):
        if self.max_steps < 1:
            raise ValueError(f"max_steps must be >= 1, got {self.max_steps}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.max_duration <= 0:
            raise ValueError(f"max_duration must be > 0, got {self.max_duration}")

    def exceeded(self, step_count: int, depth: int, elapsed: float) -> Optional[str]:
        """Name of the first dimension that forbids one more visit, else None.

        *step_count* is the number of visits already made; *depth* is the
        depth of the context about to be entered.
        """
        if step_count >= self.max_steps:
            return STEPS
        if elapsed >= self.max_duration:
            return DURATION
        if depth > self.max_depth:
            return DEPTH
        return None

    @classmethod
    def from_dict(cls, data: dict | None) -> "TraversalBudget":
        data = data or {}
        defaults = cls()
        return cls(
            max_steps=int(data.get("max_steps", defaults.max_steps)),
            max_depth=int(data.get("max_depth", defaults.max_depth)),
            max_duration=float(data.get("max_duration_seconds", defaults.max_duration)),
        )
