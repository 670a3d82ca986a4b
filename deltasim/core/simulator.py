"""Main simulation engine that orchestrates process execution.

The Simulator owns the registered processes, the event queue, the list of
signals with pending writes and the logical clock. It repeatedly resumes
the next due process; whenever the next process is due at a later tick, it
first settles the current delta cycle: pending signal values are committed
and processes waiting on a matching transition are queued to run now.

Time only moves forward when a process with a nonzero relative delay is
taken off the queue.

Example::

    def toggler(sim, sig):
        for _ in range(4):
            sim.write(sig, 1 - sim.read(sig))
            yield sim.delay(1)

    def watcher(sim, sig):
        while True:
            yield sim.wait_on(sig.posedge)
            print(sim.now, "rising")

    sig = Signal("sig")
    sim = Simulator()
    sim.register_process("toggler", toggler, sig)
    sim.register_process("watcher", watcher, sig)
    sim.run()
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager
from typing import Any, NoReturn, Protocol

from deltasim.core.errors import (
    DuplicateProcessError,
    NoCurrentProcessError,
    SimulationClosedError,
    SimulationError,
)
from deltasim.core.event_queue import EventQueue
from deltasim.core.process import (
    Delay,
    Process,
    ProcessRoutine,
    ProcessState,
    SimCommand,
    Wait,
    WaitOn,
    normalize_triggers,
)
from deltasim.core.signal import Edge, Sensitivity, Signal
from deltasim.instrumentation.summary import ProcessSummary, SimulationSummary
from deltasim.tracing.recorder import NullTraceRecorder, TraceRecorder

logger = logging.getLogger(__name__)


def _check_ticks(ticks: Any) -> None:
    if isinstance(ticks, bool) or not isinstance(ticks, int):
        raise TypeError(f"Delay must be a whole number of ticks, got {ticks!r}")
    if ticks < 0:
        raise ValueError(f"Delay must be non-negative, got {ticks}")


class SignalObserver(Protocol):
    """Receives every committed signal change."""

    def on_commit(self, time: int, signal: Signal, old: Any, new: Any) -> None: ...


class Simulator:
    """Discrete-event scheduler for generator-based processes.

    Register every process before calling run(). Process routines are
    generator functions called as ``routine(sim, *args, **kwargs)``; they
    interact with the simulation only through this object.

    Args:
        trace_recorder: Optional recorder for engine-level trace spans.
    """

    def __init__(self, trace_recorder: TraceRecorder | None = None):
        self._processes: dict[str, Process] = {}
        self._queue = EventQueue()
        self._active_head: Signal | None = None
        self._active_tail: Signal | None = None
        self._current: Process | None = None
        self._time = 0

        self._trace = trace_recorder or NullTraceRecorder()
        self._observers: list[SignalObserver] = []

        self._started = False
        self._running = False
        self._finish_requested = False
        self._closed = False

        self._resumptions = 0
        self._delta_cycles = 0
        self._signal_commits = 0
        self._wall_clock = 0.0
        self._summary: SimulationSummary | None = None

    # --- Introspection ---

    @property
    def now(self) -> int:
        """Current logical time in ticks."""
        return self._time

    def current_time(self) -> int:
        return self._time

    @property
    def current_process(self) -> Process | None:
        """The process being executed, or None outside a process."""
        return self._current

    @property
    def processes(self) -> list[Process]:
        return list(self._processes.values())

    def get_process(self, name: str) -> Process:
        return self._processes[name]

    @property
    def event_queue(self) -> EventQueue:
        return self._queue

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def finish_requested(self) -> bool:
        return self._finish_requested

    @property
    def summary(self) -> SimulationSummary | None:
        """Summary of the last run, or None if run() has not completed."""
        return self._summary

    def add_observer(self, observer: SignalObserver) -> None:
        """Register an observer notified of every committed signal change."""
        self._observers.append(observer)

    # --- Setup ---

    def register_process(
        self,
        name: str,
        routine: Callable[..., ProcessRoutine],
        *args: Any,
        **kwargs: Any,
    ) -> Process:
        """Create a process from a generator function.

        The routine is called immediately to create its generator, but its
        body does not start executing until run() resumes it.

        Raises:
            DuplicateProcessError: If the name is already registered.
            SimulationError: If the simulation has already started.
            TypeError: If the routine does not return a generator.
        """
        self._check_open()
        if self._started:
            raise SimulationError(
                f"Cannot register process {name!r} after the simulation has started."
            )
        if name in self._processes:
            logger.error("Process %r registered twice", name)
            raise DuplicateProcessError(f"Process {name!r} is already registered")

        generator = routine(self, *args, **kwargs)
        if not isinstance(generator, Generator):
            raise TypeError(
                f"Process routine for {name!r} must be a generator function, "
                f"got {type(generator).__name__}"
            )

        process = Process(name, generator)
        self._processes[name] = process
        self._trace.record(time=self._time, kind="process.register", process=name)
        logger.debug("Registered process %s", name)
        return process

    # --- Operations available to process bodies ---

    def delay(self, ticks: int) -> Delay:
        """Return a command suspending the current process for ``ticks`` ticks.

        Use as ``yield sim.delay(n)``.
        """
        self._require_process("delay")
        _check_ticks(ticks)
        return Delay(ticks)

    def wait_on(self, *triggers: Any, edge: Edge = Edge.ANY) -> WaitOn:
        """Return a command suspending the current process until a transition.

        Each trigger is a ``Signal`` (filtered by ``edge``), a ``(Signal, Edge)``
        pair, or a ``Trigger`` such as ``clk.posedge``. The bindings exist
        only while the process waits. Use as ``changed = yield sim.wait_on(...)``;
        the signal that woke the process is sent back.
        """
        self._require_process("wait_on")
        return WaitOn(normalize_triggers(triggers, Edge(edge)))

    def wait(self) -> Wait:
        """Return a command suspending the current process until one of its
        persistent bindings (see sensitive()) fires."""
        self._require_process("wait")
        return Wait()

    @contextmanager
    def sensitive(self, signal: Signal, edge: Edge = Edge.ANY) -> Iterator[Sensitivity]:
        """Keep the current process bound to ``signal`` for a whole block.

        Example::

            with sim.sensitive(clk, Edge.POSEDGE):
                while True:
                    yield sim.wait()
                    ...
        """
        process = self._require_process("sensitive")
        with Sensitivity(process, signal, edge) as binding:
            yield binding

    def write(self, signal: Signal, value: Any) -> None:
        """Set the value a signal takes at the next delta-cycle settlement.

        Only the last value written before settlement matters; writing the
        committed value to a signal that is not pending has no effect.
        """
        self._require_process("write")
        signal.pending_value = value
        if value != signal.value and not signal.is_pending:
            signal.is_pending = True
            signal._next_active = None
            if self._active_tail is None:
                self._active_head = signal
            else:
                self._active_tail._next_active = signal
            self._active_tail = signal

    def read(self, signal: Signal) -> Any:
        """Return the committed value of a signal."""
        return signal.value

    def finish(self) -> None:
        """Stop the simulation once the current process gives up control.

        Empties the event queue; the command the calling process yields next
        is not scheduled. Calling it more than once is harmless.
        """
        self._require_process("finish")
        dropped = self._queue.clear()
        for process in dropped:
            process.state = ProcessState.SUSPENDED
        if not self._finish_requested:
            self._finish_requested = True
            self._trace.record(
                time=self._time,
                kind="simulation.finish",
                process=self._current.name,
                dropped=len(dropped),
            )
            logger.info("[%d] Finish requested by %s", self._time, self._current.name)

    # --- Main loop ---

    def run(self) -> SimulationSummary:
        """Execute processes until the queue drains or finish() is called.

        Returns:
            SimulationSummary with statistics about the run.

        Raises:
            Exception: Whatever a process body raised; the run stops there.
        """
        self._check_open()
        if self._running:
            raise SimulationError("Simulator.run() is not reentrant")

        if not self._started:
            self._started = True
            for process in self._processes.values():
                process.state = ProcessState.SCHEDULED
                self._queue.push_front(process)

        logger.info(
            "Simulation starting at tick %d with %d processes",
            self._time,
            len(self._processes),
        )
        wall_start = time.perf_counter()
        self._running = True
        try:
            while self._queue:
                if self._queue.peek().delay != 0:
                    self._settle()

                process = self._queue.pop()
                if process.delay != 0:
                    self._time += process.delay
                    self._trace.record(time=self._time, kind="clock.advance", ticks=process.delay)
                    process.delay = 0
                self._resume(process)
        finally:
            self._running = False
            self._wall_clock += time.perf_counter() - wall_start

        self._summary = self._build_summary()
        logger.info(
            "Simulation stopped at tick %d after %d resumptions",
            self._time,
            self._resumptions,
        )
        return self._summary

    def _resume(self, process: Process) -> None:
        send_value = process.release()
        process.state = ProcessState.RUNNING
        process.activations += 1
        self._resumptions += 1
        self._current = process
        self._trace.record(time=self._time, kind="process.resume", process=process.name)
        logger.debug(
            "[%d] Resume %s",
            self._time,
            process.name,
            extra={"sim_tick": self._time, "sim_process": process.name},
        )

        try:
            command = process.generator.send(send_value)
        except StopIteration:
            process.state = ProcessState.FINISHED
            self._trace.record(time=self._time, kind="process.finish", process=process.name)
            logger.debug("[%d] Process %s finished", self._time, process.name)
            return
        except Exception as exc:
            process.state = ProcessState.FAILED
            self._trace.record(
                time=self._time,
                kind="process.error",
                process=process.name,
                error=type(exc).__name__,
                message=str(exc),
            )
            logger.exception(
                "[%d] Process %s failed",
                self._time,
                process.name,
                extra={"sim_tick": self._time, "sim_process": process.name},
            )
            raise
        finally:
            self._current = None

        self._suspend(process, command)

    def _suspend(self, process: Process, command: SimCommand) -> None:
        """Act on the command a process yielded."""
        if isinstance(command, int) and not isinstance(command, bool):
            command = Delay(command)

        if isinstance(command, Delay):
            try:
                _check_ticks(command.ticks)
            except (TypeError, ValueError) as exc:
                self._reject(process, exc)
            process.state = ProcessState.SUSPENDED
            if self._finish_requested:
                return
            self._queue.schedule(process, command.ticks)
            process.state = ProcessState.SCHEDULED
            self._trace.record(
                time=self._time,
                kind="queue.schedule",
                process=process.name,
                ticks=command.ticks,
            )
        elif isinstance(command, WaitOn):
            process.bind(command.triggers)
            process.state = ProcessState.SUSPENDED
            self._trace.record(
                time=self._time,
                kind="process.wait",
                process=process.name,
                signals=[t.signal.name for t in command.triggers],
            )
        elif isinstance(command, Wait):
            process.state = ProcessState.SUSPENDED
            self._trace.record(time=self._time, kind="process.wait", process=process.name)
        else:
            self._reject(
                process,
                TypeError(
                    f"Process {process.name!r} yielded unsupported value {command!r}; "
                    "expected sim.delay(), sim.wait_on() or sim.wait()"
                ),
            )

    def _reject(self, process: Process, error: Exception) -> NoReturn:
        """Fail a process whose yielded command cannot be honoured.

        The generator is closed so its ``with``/``finally`` blocks release
        any persistent bindings; a failed process can never be woken again.
        """
        process.state = ProcessState.FAILED
        process.release()
        process.generator.close()
        self._trace.record(
            time=self._time,
            kind="process.error",
            process=process.name,
            error=type(error).__name__,
            message=str(error),
        )
        logger.error(
            "[%d] Process %s yielded an invalid command: %s",
            self._time,
            process.name,
            error,
            extra={"sim_tick": self._time, "sim_process": process.name},
        )
        raise error

    def _settle(self) -> None:
        """Run one delta cycle: wake sensitive processes, then commit values.

        Every binding of a signal is evaluated against the pre-settlement
        value before that signal commits. A process already on the queue is
        not queued again.
        """
        signal = self._active_head
        if signal is None:
            return
        self._delta_cycles += 1
        self._trace.record(time=self._time, kind="delta.cycle")

        while signal is not None:
            old, new = signal.value, signal.pending_value
            hook = signal._hooks
            while hook is not None:
                following = hook.next
                process = hook.process
                if not process.queued and hook.fires(old, new):
                    process._trigger = signal
                    self._queue.push_front(process)
                    process.state = ProcessState.SCHEDULED
                    self._trace.record(
                        time=self._time,
                        kind="queue.wake",
                        process=process.name,
                        signal=signal.name,
                    )
                hook = following

            # The active list always starts at the first uncommitted signal.
            following_signal = signal._next_active
            self._active_head = following_signal
            if following_signal is None:
                self._active_tail = None
            signal._commit()
            if old != new:
                self._signal_commits += 1
                self._trace.record(
                    time=self._time,
                    kind="signal.commit",
                    signal=signal.name,
                    old=old,
                    new=new,
                )
                logger.debug(
                    "[%d] %s: %r -> %r",
                    self._time,
                    signal.name,
                    old,
                    new,
                    extra={"sim_tick": self._time, "sim_signal": signal.name},
                )
                for observer in self._observers:
                    observer.on_commit(self._time, signal, old, new)
            signal = following_signal

    # --- Teardown ---

    def close(self) -> None:
        """Release every process, closing generators that are still suspended.

        The simulator cannot be used afterwards. Closing twice is a no-op.
        """
        if self._closed:
            return
        if self._running:
            raise SimulationError("Cannot close the simulator while it is running")
        self._queue.clear()
        for process in self._processes.values():
            process.close()
        self._closed = True
        logger.debug("Simulator closed (%d processes)", len(self._processes))

    def __enter__(self) -> Simulator:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- Helpers ---

    def _require_process(self, operation: str) -> Process:
        if self._current is None:
            logger.error("%s() called outside of a running process", operation)
            raise NoCurrentProcessError(operation)
        return self._current

    def _check_open(self) -> None:
        if self._closed:
            raise SimulationClosedError("The simulator has been closed")

    def _build_summary(self) -> SimulationSummary:
        return SimulationSummary(
            final_time=self._time,
            resumptions=self._resumptions,
            delta_cycles=self._delta_cycles,
            signal_commits=self._signal_commits,
            finished_by_request=self._finish_requested,
            wall_clock_seconds=self._wall_clock,
            processes={
                name: ProcessSummary(
                    name=name,
                    state=p.state.value,
                    activations=p.activations,
                )
                for name, p in self._processes.items()
            },
        )
