"""Recorders for scheduler trace spans.

The simulator reports each scheduling decision (queue insertion, wakeup,
resumption, signal commit, clock advance) as one flat dict span. Spans are
independent of the logging stream and cost nothing with NullTraceRecorder.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol


class TraceRecorder(Protocol):
    """Anything with a ``record`` method accepting scheduler spans.

    Implementations may keep spans in memory, stream them elsewhere, or
    drop them.
    """

    def record(
        self,
        *,
        time: int,
        kind: str,
        process: str | None = None,
        signal: str | None = None,
        **data: Any,
    ) -> None:
        """Record one span.

        Args:
            time: Logical clock (ticks) when the span occurred.
            kind: Dotted category, e.g. "queue.wake" or "signal.commit".
            process: Name of the process involved, if any.
            signal: Name of the signal involved, if any.
            **data: Extra fields, stored under the span's "data" key.
        """


@dataclass
class InMemoryTraceRecorder:
    """Keeps every span in a list, in the order the scheduler emitted them.

    Mostly used by tests asserting on scheduling order.
    """

    spans: list[dict[str, Any]] = field(default_factory=list)

    def record(
        self,
        *,
        time: int,
        kind: str,
        process: str | None = None,
        signal: str | None = None,
        **data: Any,
    ) -> None:
        span: dict[str, Any] = {"time": time, "kind": kind}
        if process is not None:
            span["process"] = process
        if signal is not None:
            span["signal"] = signal
        if data:
            span["data"] = data
        self.spans.append(span)

    def clear(self) -> None:
        self.spans.clear()

    def filter_by_kind(self, kind: str) -> list[dict[str, Any]]:
        return [s for s in self.spans if s["kind"] == kind]

    def filter_by_process(self, name: str) -> list[dict[str, Any]]:
        return [s for s in self.spans if s.get("process") == name]

    def filter_by_signal(self, name: str) -> list[dict[str, Any]]:
        return [s for s in self.spans if s.get("signal") == name]

    def resume_order(self) -> list[str]:
        """Names of processes in the order they were resumed."""
        return [s["process"] for s in self.spans if s["kind"] == "process.resume"]


@dataclass
class NullTraceRecorder:
    """Discards every span. The default when no recorder is given."""

    def record(
        self,
        *,
        time: int,
        kind: str,
        process: str | None = None,
        signal: str | None = None,
        **data: Any,
    ) -> None:
        pass
