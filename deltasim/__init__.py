"""deltasim: a delta-cycle discrete-event simulation kernel.

Processes are generator functions that model digital logic. They suspend
by yielding ``sim.delay(n)`` or ``sim.wait_on(signal.posedge, ...)``; the
simulator resumes them in time order and wakes them when the signals they
watch change. Signal writes take effect at delta-cycle boundaries, so all
processes running at one instant observe the same values.
"""

import logging

from deltasim.core import (
    Delay,
    DuplicateProcessError,
    Edge,
    EventQueue,
    NoCurrentProcessError,
    Process,
    ProcessState,
    QueueIntegrityError,
    Sensitivity,
    Signal,
    SignalObserver,
    SimulationClosedError,
    SimulationError,
    Simulator,
    Trigger,
    Wait,
    WaitOn,
)
from deltasim.instrumentation import ProcessSummary, SimulationSummary, Waveform
from deltasim.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_logging,
    set_level,
    set_module_level,
)
from deltasim.tracing import InMemoryTraceRecorder, NullTraceRecorder, TraceRecorder

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Core
    "Simulator",
    "Signal",
    "Edge",
    "Trigger",
    "Sensitivity",
    "Process",
    "ProcessState",
    "EventQueue",
    "Delay",
    "Wait",
    "WaitOn",
    "SignalObserver",
    # Errors
    "SimulationError",
    "NoCurrentProcessError",
    "DuplicateProcessError",
    "QueueIntegrityError",
    "SimulationClosedError",
    # Instrumentation
    "SimulationSummary",
    "ProcessSummary",
    "Waveform",
    # Tracing
    "TraceRecorder",
    "InMemoryTraceRecorder",
    "NullTraceRecorder",
    # Logging
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]
