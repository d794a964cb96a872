"""Deferred one-shot callbacks driven by simulation time.

TimerQueue is the "wait N seconds then act" primitive for the behavior layer.
It never sleeps and never uses threads: time only moves when the owner calls
advance(), and due callbacks run inside that call, on the same logical thread
as the behavior ticks.

A pending timer is never revoked when a newer one is scheduled. Callers that
can be superseded must re-check their own state when the callback runs; see
BehaviorStateMachine for the pattern. cancel() exists only so that a despawned
agent can drop its outstanding callbacks.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class TimerHandle:
    """Handle to a scheduled callback.

    Attributes:
        due_time: Simulation time at or after which the callback runs.
        label: Free-form name used in log messages.
        fired: True once the callback has been invoked.
        cancelled: True if cancel() was called before the timer fired.
    """

    due_time: float
    callback: Callable[[], None]
    label: str = ""
    fired: bool = False
    cancelled: bool = False

    @property
    def pending(self) -> bool:
        return not (self.fired or self.cancelled)

    def cancel(self) -> None:
        """Prevent the callback from running. No effect once fired."""
        if not self.fired:
            self.cancelled = True


@dataclass(order=True)
class _Entry:
    due_time: float
    sequence: int
    handle: TimerHandle = field(compare=False)


class TimerQueue:
    """Priority queue of deferred callbacks keyed by simulation time.

    Callbacks fire in due-time order; timers due at the same instant fire in
    the order they were scheduled. A callback may schedule further timers. A
    new timer that is already due fires within the same advance() call.
    """

    def __init__(self) -> None:
        self.current_time: float = 0.0
        self._heap: list[_Entry] = []
        self._sequence = itertools.count()

    def schedule(
        self, duration: float, callback: Callable[[], None], *, label: str = ""
    ) -> TimerHandle:
        """Run ``callback`` once, at least ``duration`` seconds from now."""
        if duration < 0:
            raise ValueError(f"Timer duration must be >= 0, got {duration}")
        handle = TimerHandle(self.current_time + duration, callback, label)
        entry = _Entry(handle.due_time, next(self._sequence), handle)
        heapq.heappush(self._heap, entry)
        return handle

    def call_deferred(
        self, callback: Callable[[], None], *, label: str = ""
    ) -> TimerHandle:
        """Run ``callback`` at the start of the next advance()."""
        return self.schedule(0.0, callback, label=label)

    @property
    def pending(self) -> int:
        """Number of timers that have neither fired nor been cancelled."""
        return sum(1 for entry in self._heap if entry.handle.pending)

    def advance(self, delta_time: float) -> int:
        """Move simulation time forward and fire everything that became due.

        Returns:
            The number of callbacks invoked.
        """
        if delta_time < 0:
            raise ValueError(f"Cannot advance time by a negative amount: {delta_time}")
        self.current_time += delta_time

        fired = 0
        while self._heap and self._heap[0].due_time <= self.current_time:
            handle = heapq.heappop(self._heap).handle
            if handle.cancelled:
                continue
            handle.fired = True
            if handle.label:
                logger.debug(
                    f"Timer '{handle.label}' fired at t={self.current_time:.3f}"
                )
            handle.callback()
            fired += 1
        return fired

    def clear(self) -> None:
        """Cancel and drop every pending timer."""
        for entry in self._heap:
            entry.handle.cancel()
        self._heap.clear()
