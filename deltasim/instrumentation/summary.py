"""Simulation summary generated after a run completes.

SimulationSummary provides a structured overview of what happened during
a run, including per-process statistics. It's returned by Simulator.run()
and also accessible via Simulator.summary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ProcessSummary:
    """Per-process statistics from a simulation run."""
    name: str
    state: str
    activations: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state,
            "activations": self.activations,
        }


@dataclass
class SimulationSummary:
    """Auto-generated summary of a simulation run.

    Returned by Simulator.run() and also accessible via Simulator.summary.
    """
    final_time: int
    resumptions: int
    delta_cycles: int
    signal_commits: int
    finished_by_request: bool
    wall_clock_seconds: float
    processes: dict[str, ProcessSummary] = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [
            "Simulation Summary",
            f"  Final time: {self.final_time} ticks / {self.wall_clock_seconds:.3f}s (wall)",
            f"  Resumptions: {self.resumptions}",
            f"  Delta cycles: {self.delta_cycles} ({self.signal_commits} signal commits)",
            f"  Stopped by: {'finish()' if self.finished_by_request else 'queue drained'}",
        ]
        if self.processes:
            lines.append("  Processes:")
            for name, ps in self.processes.items():
                lines.append(f"    {name} ({ps.state}): {ps.activations} activations")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "final_time": self.final_time,
            "resumptions": self.resumptions,
            "delta_cycles": self.delta_cycles,
            "signal_commits": self.signal_commits,
            "finished_by_request": self.finished_by_request,
            "wall_clock_seconds": self.wall_clock_seconds,
            "processes": {
                name: ps.to_dict() for name, ps in self.processes.items()
            },
        }
