"""Tracing infrastructure for simulation engine instrumentation.

Engine-level spans record scheduling decisions (queue insertions, wakeups,
resumptions, signal commits) separately from the logging stream.
"""

from deltasim.tracing.recorder import (
    TraceRecorder,
    InMemoryTraceRecorder,
    NullTraceRecorder,
)

__all__ = [
    "TraceRecorder",
    "InMemoryTraceRecorder",
    "NullTraceRecorder",
]
