"""Process descriptors and the commands a process yields to the scheduler.

A process routine is a generator function. It runs until it yields one of
the commands below, which tells the simulator how to suspend it:

    def clock(sim, clk):
        while True:
            sim.write(clk, 1)
            yield sim.delay(1)
            sim.write(clk, 0)
            yield sim.delay(1)

Yields are interpreted as:
- ``yield sim.delay(n)`` (or a bare ``yield n``) - resume after n ticks
- ``yield sim.wait_on(sig.posedge, other.changed)`` - resume on a matching
  transition of any listed signal; the waking signal is sent back
- ``yield sim.wait()`` - resume on a transition of a binding held with
  ``sim.sensitive(...)``
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from deltasim.core.signal import Sensitivity, Signal, Trigger

if TYPE_CHECKING:
    from deltasim.core.signal import Edge

logger = logging.getLogger(__name__)


class ProcessState(Enum):
    CREATED = "created"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    SUSPENDED = "suspended"
    FINISHED = "finished"
    FAILED = "failed"


@dataclass(frozen=True)
class Delay:
    """Suspend the current process for ``ticks`` ticks of logical time."""

    ticks: int


@dataclass(frozen=True)
class WaitOn:
    """Suspend until one of ``triggers`` sees a matching transition."""

    triggers: tuple[Trigger, ...]


@dataclass(frozen=True)
class Wait:
    """Suspend until a persistent binding of the process fires."""


SimCommand = Union[Delay, WaitOn, Wait, int]
"""Type alias for the values a process routine may yield."""

ProcessRoutine = Generator[SimCommand, Union[Signal, None], None]


def normalize_triggers(triggers: tuple[Any, ...], edge: Edge) -> tuple[Trigger, ...]:
    """Turn ``Signal`` / ``(Signal, Edge)`` / ``Trigger`` arguments into Triggers.

    Bare signals take the ``edge`` given by the caller.
    """
    result = []
    for item in triggers:
        if isinstance(item, Trigger):
            result.append(item)
        elif isinstance(item, Signal):
            result.append(Trigger(item, edge))
        elif isinstance(item, tuple) and len(item) == 2 and isinstance(item[0], Signal):
            result.append(Trigger(item[0], item[1]))
        else:
            raise TypeError(f"Cannot wait on {item!r}; expected a Signal or (Signal, Edge).")
    if not result:
        raise ValueError("wait_on() requires at least one signal")
    return tuple(result)


class Process:
    """A schedulable unit of simulated behaviour.

    The descriptor is created once at registration and lives as long as the
    simulator. Queue membership is intrusive: ``next`` links to the following
    queued process and ``delay`` holds the delay relative to the process
    before it.

    Attributes:
        name: Unique identifier, used in logs and traces.
        generator: The suspended routine (the continuation).
        delay: Ticks relative to the previous queue entry; 0 once due.
        queued: True while the process is on the event queue.
        state: Lifecycle state.
        activations: Number of times the process has been resumed.
    """

    __slots__ = (
        "_bindings",
        "_trigger",
        "activations",
        "delay",
        "generator",
        "name",
        "next",
        "queued",
        "state",
    )

    def __init__(self, name: str, generator: ProcessRoutine):
        self.name = name
        self.generator = generator
        self.delay = 0
        self.next: Process | None = None
        self.queued = False
        self.state = ProcessState.CREATED
        self.activations = 0
        self._bindings: list[Sensitivity] = []
        self._trigger: Signal | None = None

    def __repr__(self) -> str:
        return f"Process({self.name!r}, state={self.state.value})"

    @property
    def alive(self) -> bool:
        return self.state not in (ProcessState.FINISHED, ProcessState.FAILED)

    def bind(self, triggers: tuple[Trigger, ...]) -> None:
        """Create one scoped binding per trigger for the upcoming wait."""
        for trigger in triggers:
            self._bindings.append(Sensitivity(self, trigger.signal, trigger.edge).attach())

    def release(self) -> Signal | None:
        """Drop the bindings of the last wait and return the waking signal."""
        bindings = self._bindings
        self._bindings = []
        for binding in bindings:
            binding.detach()
        trigger = self._trigger
        self._trigger = None
        return trigger

    def close(self) -> None:
        """Release bindings and close the generator if it is still suspended."""
        self.release()
        if self.generator.gi_frame is not None:
            logger.debug("[%s] Closed while %s", self.name, self.state.value)
            self.generator.close()
        if self.alive:
            self.state = ProcessState.FINISHED
