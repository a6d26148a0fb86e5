"""Deferred execution for timers and queued effects.

The engine never sleeps. Everything that happens later is handed to a
``Scheduler``: the callback queue's delayed effects and the timers' ticks.
Two implementations are provided:

- ``AsyncioScheduler`` runs callbacks on an asyncio event loop.
- ``ManualScheduler`` keeps a virtual clock that only moves when
  ``advance`` is called, which makes sessions fully deterministic.
"""

import asyncio
import heapq
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    """Handle of a scheduled call."""

    def cancel(self) -> None:
        """Prevent the call from running. Idempotent."""
        ...


class Scheduler(Protocol):
    """Protocol for objects that run callbacks after a delay."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> Cancellable:
        """Run callback after delay_ms milliseconds."""
        ...

    def now_ms(self) -> float:
        """Current time of this scheduler in milliseconds."""
        ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        # Bound lazily so the scheduler can be built outside the loop it runs on
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay_ms) / 1000, callback)

    def now_ms(self) -> float:
        return self.loop.time() * 1000


@dataclass(order=True)
class ScheduledCall:
    """A call registered on a ManualScheduler."""

    due_ms: float
    sequence: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Scheduler with a virtual clock.

    Calls fire in order of due time, ties broken by registration order.
    Calls registered while advancing fire in the same ``advance`` if they
    fall due before its end.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = start_ms
        self._heap: list[ScheduledCall] = []
        self._sequence = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(self._now + max(0.0, delay_ms), next(self._sequence), callback)
        heapq.heappush(self._heap, call)
        return call

    def now_ms(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        """Number of calls that are still due to fire."""
        return sum(1 for call in self._heap if not call.cancelled)

    def advance(self, delta_ms: float) -> int:
        """
        Move the clock forward and fire every call that falls due.

        Args:
            delta_ms: Milliseconds to move forward

        Returns:
            Number of callbacks fired
        """
        target = self._now + max(0.0, delta_ms)
        fired = 0
        while self._heap and self._heap[0].due_ms <= target:
            call = heapq.heappop(self._heap)
            if call.cancelled:
                continue
            self._now = max(self._now, call.due_ms)
            call.callback()
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, limit_ms: float = 3_600_000) -> int:
        """
        Fire calls until none is pending or ``limit_ms`` of virtual time passed.

        Periodic timers re-arm themselves, so the limit keeps this finite.
        """
        deadline = self._now + limit_ms
        fired = 0
        while self._heap and self._now < deadline:
            next_due = min(
                (call.due_ms for call in self._heap if not call.cancelled), default=None
            )
            if next_due is None:
                self._heap.clear()
                break
            fired += self.advance(min(next_due, deadline) - self._now)
        return fired
