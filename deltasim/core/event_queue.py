"""Delay-ordered queue of processes awaiting activation.

The queue is a singly linked list threaded through the Process descriptors.
Each entry stores its delay relative to the entry before it, so only the
head's delay means "ticks from now" and inserting never renormalizes the
rest of the list.

    head -> A(2) -> B(0) -> C(3)

Here A is due in 2 ticks, B at the same tick as A, and C 5 ticks from now.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from deltasim.core.errors import QueueIntegrityError

if TYPE_CHECKING:
    from deltasim.core.process import Process

logger = logging.getLogger(__name__)


class EventQueue:
    def __init__(self) -> None:
        self._head: Process | None = None
        self._size = 0

    def schedule(self, process: Process, ticks: int) -> None:
        """Queue ``process`` to become due ``ticks`` ticks from now.

        Walks past every entry due no later than the new one, consuming
        their delays; the first entry due strictly later gets its delay
        reduced by what remains. The new entry lands behind entries due at
        the same tick, but signal wakeups use push_front(), so callers must
        not rely on any order among processes due at one tick.

        Raises:
            ValueError: If ticks is negative.
            QueueIntegrityError: If the process is already queued.
        """
        if ticks < 0:
            raise ValueError(f"Delay must be non-negative, got {ticks}")
        self._check_not_queued(process)

        prev: Process | None = None
        node = self._head
        while node is not None:
            if node.delay > ticks:
                node.delay -= ticks
                break
            ticks -= node.delay
            prev = node
            node = node.next

        process.delay = ticks
        process.next = node
        if prev is None:
            self._head = process
        else:
            prev.next = process
        process.queued = True
        self._size += 1

    def push_front(self, process: Process) -> None:
        """Queue ``process`` as due now, ahead of everything else.

        A zero relative delay leaves every other entry's offset unchanged.
        """
        self._check_not_queued(process)
        process.delay = 0
        process.next = self._head
        process.queued = True
        self._head = process
        self._size += 1

    def peek(self) -> Process | None:
        return self._head

    def pop(self) -> Process:
        """Remove and return the next due process.

        The returned process keeps its relative delay so the caller can
        advance the clock by it.
        """
        process = self._head
        if process is None:
            raise IndexError("pop from an empty EventQueue")
        self._head = process.next
        process.next = None
        process.queued = False
        self._size -= 1
        return process

    def clear(self) -> list[Process]:
        """Drop every entry and return the processes that were queued."""
        dropped = []
        node = self._head
        while node is not None:
            following = node.next
            node.next = None
            node.queued = False
            node.delay = 0
            dropped.append(node)
            node = following
        self._head = None
        self._size = 0
        return dropped

    def has_events(self) -> bool:
        return self._head is not None

    def __len__(self) -> int:
        return self._size

    def __bool__(self) -> bool:
        return self._head is not None

    def __iter__(self) -> Iterator[tuple[Process, int]]:
        """Yield ``(process, ticks_from_now)`` in activation order."""
        offset = 0
        node = self._head
        while node is not None:
            offset += node.delay
            yield node, offset
            node = node.next

    def __repr__(self) -> str:
        entries = ", ".join(f"{p.name}@+{t}" for p, t in self)
        return f"EventQueue([{entries}])"

    @staticmethod
    def _check_not_queued(process: Process) -> None:
        if process.queued:
            logger.error("[%s] Attempted to queue a process twice", process.name)
            raise QueueIntegrityError(f"Process {process.name!r} is already queued")
