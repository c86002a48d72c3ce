"""Run report for a single hunt."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from contexthunt.explorer.graph_explorer import TraversalResult


@dataclass
class HuntMetrics:
    """What one exploration found, and how it ended."""
    target: str
    mode: str
    solution: str = ""
    artifacts: list[str] = field(default_factory=list)
    origins: dict[str, list[str]] = field(default_factory=dict)
    visited_count: int = 0
    step_count: int = 0
    truncated: bool = False
    halt_reason: Optional[str] = None
    errors: int = 0
    submitted: bool = False
    error: Optional[str] = None
    total_elapsed_seconds: float = 0.0
    start_time: float = 0.0

    def start(self):
        self.start_time = time.time()

    def finish(self):
        self.total_elapsed_seconds = time.time() - self.start_time

    def record(self, result: TraversalResult, solution: str):
        self.artifacts = list(result.artifacts)
        self.origins = dict(result.origins)
        self.visited_count = result.visited_count
        self.step_count = result.step_count
        self.truncated = result.truncated
        self.halt_reason = result.halt_reason
        self.errors = result.errors
        self.solution = solution

    @property
    def complete(self) -> bool:
        return not self.truncated and self.error is None

    def to_dict(self) -> dict:
        return {
            "summary": {
                "target": self.target,
                "mode": self.mode,
                "solution": self.solution,
                "artifacts_found": len(self.artifacts),
                "contexts_visited": self.visited_count,
                "steps": self.step_count,
                "truncated": self.truncated,
                "halt_reason": self.halt_reason,
                "recovered_errors": self.errors,
                "submitted": self.submitted,
                "total_elapsed_seconds": round(self.total_elapsed_seconds, 1),
            },
            "artifacts": [
                {"payload": a, "origins": self.origins.get(a, [])}
                for a in self.artifacts
            ],
            "error": self.error,
        }

    def save(self, path: str | Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def print_summary(self):
        d = self.to_dict()["summary"]
        print(f"\n{'='*50}")
        print("Hunt Summary")
        print(f"{'='*50}")
        for k, v in d.items():
            print(f"  {k}: {v}")
        print(f"{'='*50}")
