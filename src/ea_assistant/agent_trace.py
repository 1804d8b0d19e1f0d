"""
agent_trace.py — Lightweight audit log for research runs
========================================================
Every analysis module fired by the TechnologyResearchAgent emits an
AgentStep record; the agent collects them into a RunTrace that the UI renders
as a timing table and that history.py stores as part of the history entry.

Data model
----------
  AgentStep      One module's contribution: timing, status, decisions, warnings.
  RunTrace       Full trace for a single research run; ordered list of AgentSteps.

Key fields
----------
  AgentStep.status          "success" | "failed"
  AgentStep.duration_ms     Wall-clock milliseconds for that module
  AgentStep.decisions       Human-readable notes on what was extracted
  AgentStep.warnings        Non-fatal issues (empty sections, fallback vendor set)
  AgentStep.detail          Module-specific metadata (tokens, model, timing status)
  RunTrace.total_ms         End-to-end wall time of the run
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class AgentStep:
    """One analysis module's contribution inside a research run."""
    module_id:      str
    module_name:    str
    icon:           str
    start_ms:       float            # relative to run start
    duration_ms:    float
    status:         str              # "success" | "failed"
    input_summary:  str
    output_summary: str
    decisions:      list[str] = field(default_factory=list)
    warnings:       list[str] = field(default_factory=list)
    detail:         dict[str, Any] = field(default_factory=dict)


@dataclass
class RunTrace:
    """Full trace for a single research run."""
    run_id:     str
    technology: str
    timestamp:  str
    total_ms:   float = 0
    steps:      list[AgentStep] = field(default_factory=list)

    def append(self, step: AgentStep) -> None:
        self.steps.append(step)

    @property
    def failed_steps(self) -> list[AgentStep]:
        return [s for s in self.steps if s.status == "failed"]

    @property
    def total_tokens(self) -> int:
        return sum(
            s.detail.get("tokens", {}).get("input_tokens", 0)
            + s.detail.get("tokens", {}).get("output_tokens", 0)
            for s in self.steps
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "RunTrace":
        steps = [AgentStep(**s) for s in data.get("steps", [])]
        return cls(
            run_id     = data["run_id"],
            technology = data["technology"],
            timestamp  = data["timestamp"],
            total_ms   = data.get("total_ms", 0),
            steps      = steps,
        )
