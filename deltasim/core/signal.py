"""Signals and the sensitivity bindings that watch them.

A Signal is a named value cell. Writes made by processes are held as a
pending value and only become visible when the simulator settles the
current delta cycle, so every reader within one cycle sees the same value.

A Sensitivity binds one process to one signal with an edge filter. The
bindings of a signal form an intrusive doubly linked list headed by the
signal, giving O(1) attach and detach from any position.
"""

from __future__ import annotations

import logging
from enum import IntFlag
from typing import TYPE_CHECKING, Any, NamedTuple

if TYPE_CHECKING:
    from deltasim.core.process import Process

logger = logging.getLogger(__name__)


class Edge(IntFlag):
    """Which value transitions wake a waiting process.

    ``ANY`` (no edge bits set) passes every transition the simulator
    settles. A signal only reaches settlement after a write that differed
    from its committed value, so ANY never fires on a no-op write, but it
    does fire when a later write in the same cycle restores the old value.
    """

    ANY = 0
    POSEDGE = 1
    NEGEDGE = 2
    BOTH = POSEDGE | NEGEDGE

    def matches(self, old: Any, new: Any) -> bool:
        """Return True if a transition from ``old`` to ``new`` passes this filter."""
        if not self:
            return True
        rising = old == 0 and new != 0
        falling = old != 0 and new == 0
        return bool((self & Edge.POSEDGE and rising) or (self & Edge.NEGEDGE and falling))


class Trigger(NamedTuple):
    """A single wait condition: a signal and the edges of interest."""

    signal: Signal
    edge: Edge = Edge.ANY


class Signal:
    """A named value with deferred (delta-cycle) updates.

    Attributes:
        name: Identifier for logging and waveforms.
        value: The committed value visible to readers.
        pending_value: The value that takes effect at the next settlement.
        is_pending: True while the signal sits on the active list.
    """

    __slots__ = (
        "_hooks",
        "_next_active",
        "is_pending",
        "name",
        "pending_value",
        "value",
    )

    def __init__(self, name: str, value: Any = 0):
        self.name = name
        self.value = value
        self.pending_value = value
        self.is_pending = False
        self._next_active: Signal | None = None
        self._hooks: Sensitivity | None = None

    def __repr__(self) -> str:
        if self.is_pending:
            return f"Signal({self.name!r}, value={self.value!r}, pending={self.pending_value!r})"
        return f"Signal({self.name!r}, value={self.value!r})"

    def get(self) -> Any:
        """Return the committed value."""
        return self.value

    @property
    def posedge(self) -> Trigger:
        return Trigger(self, Edge.POSEDGE)

    @property
    def negedge(self) -> Trigger:
        return Trigger(self, Edge.NEGEDGE)

    @property
    def bothedges(self) -> Trigger:
        return Trigger(self, Edge.BOTH)

    @property
    def changed(self) -> Trigger:
        return Trigger(self, Edge.ANY)

    @property
    def bindings(self) -> list[Sensitivity]:
        """Snapshot of the bindings currently watching this signal."""
        result = []
        hook = self._hooks
        while hook is not None:
            result.append(hook)
            hook = hook.next
        return result

    def _commit(self) -> None:
        self.value = self.pending_value
        self.is_pending = False
        self._next_active = None


class Sensitivity:
    """Binds a process to a signal for the duration of a wait.

    New bindings are pushed at the head of the signal's list. Detaching
    patches both neighbours and the list head, and is a no-op for a
    binding that is not attached.

    Can be used as a context manager to guarantee the binding is released::

        with Sensitivity(process, clk, Edge.POSEDGE):
            ...
    """

    __slots__ = ("_attached", "edge", "next", "prev", "process", "signal")

    def __init__(self, process: Process, signal: Signal, edge: Edge = Edge.ANY):
        self.process = process
        self.signal = signal
        self.edge = Edge(edge)
        self.prev: Sensitivity | None = None
        self.next: Sensitivity | None = None
        self._attached = False

    def __repr__(self) -> str:
        return (
            f"Sensitivity(process={self.process.name!r}, "
            f"signal={self.signal.name!r}, edge={self.edge!r})"
        )

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self) -> Sensitivity:
        """Insert this binding at the head of its signal's list."""
        if self._attached:
            return self
        signal = self.signal
        self.prev = None
        self.next = signal._hooks
        if self.next is not None:
            self.next.prev = self
        signal._hooks = self
        self._attached = True
        logger.debug("[%s] Sensitive to %s (%s)", self.process.name, signal.name, self.edge)
        return self

    def detach(self) -> None:
        """Unlink this binding from its signal's list."""
        if not self._attached:
            return
        if self.next is not None:
            self.next.prev = self.prev
        if self.prev is not None:
            self.prev.next = self.next
        if self.signal._hooks is self:
            self.signal._hooks = self.next
        self.prev = None
        self.next = None
        self._attached = False
        logger.debug("[%s] Released %s", self.process.name, self.signal.name)

    def fires(self, old: Any, new: Any) -> bool:
        """Whether a transition ``old -> new`` on the signal wakes the process."""
        return self.edge.matches(old, new)

    def __enter__(self) -> Sensitivity:
        return self.attach()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.detach()
