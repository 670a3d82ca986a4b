"""Exceptions raised by the simulation kernel."""


class SimulationError(RuntimeError):
    """Base class for kernel errors."""


class NoCurrentProcessError(SimulationError):
    """A process-only operation was called while no process was executing."""

    def __init__(self, operation: str):
        super().__init__(
            f"{operation}() can only be called from within a running process."
        )
        self.operation = operation


class DuplicateProcessError(SimulationError, ValueError):
    """A process with the same name is already registered."""


class QueueIntegrityError(SimulationError):
    """The event queue or a sensitivity list is internally inconsistent."""


class SimulationClosedError(SimulationError):
    """The simulator has been torn down and can no longer be used."""
