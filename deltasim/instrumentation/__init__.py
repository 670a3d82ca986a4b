"""Instrumentation for observing simulation runs."""

from deltasim.instrumentation.summary import ProcessSummary, SimulationSummary
from deltasim.instrumentation.waveform import Waveform

__all__ = [
    "ProcessSummary",
    "SimulationSummary",
    "Waveform",
]
