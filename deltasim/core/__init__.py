"""Core simulation engine components."""

from deltasim.core.errors import (
    DuplicateProcessError,
    NoCurrentProcessError,
    QueueIntegrityError,
    SimulationClosedError,
    SimulationError,
)
from deltasim.core.event_queue import EventQueue
from deltasim.core.process import Delay, Process, ProcessState, SimCommand, Wait, WaitOn
from deltasim.core.signal import Edge, Sensitivity, Signal, Trigger
from deltasim.core.simulator import SignalObserver, Simulator

__all__ = [
    "Simulator",
    "SignalObserver",
    "EventQueue",
    "Process",
    "ProcessState",
    "SimCommand",
    "Delay",
    "Wait",
    "WaitOn",
    "Signal",
    "Sensitivity",
    "Edge",
    "Trigger",
    "SimulationError",
    "NoCurrentProcessError",
    "DuplicateProcessError",
    "QueueIntegrityError",
    "SimulationClosedError",
]
