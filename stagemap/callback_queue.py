"""Ordering of visible effects while the exercise overlay is open."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from stagemap.scheduler import Cancellable, Scheduler

logger = logging.getLogger(__name__)


@dataclass
class QueueItem:
    """A callback waiting for the queue to be scheduled."""

    callback: Callable[[], None]
    delay: float = 0
    block: float = 0


@dataclass
class CallbackQueue:
    """
    Buffer of deferred callbacks with skip and flush semantics.

    While skippable, added callbacks run immediately. Otherwise they are
    kept in FIFO order until ``schedule_queued`` hands them to the scheduler,
    each one starting after the ``delay + block`` of all items before it.
    With delays not respected, everything fires at once.

    Attributes:
        scheduler: Runs the scheduled callbacks
        is_skippable: Run added callbacks immediately
        respects_delay: Space scheduled callbacks out in time
        is_closed: Ignore added callbacks
    """

    scheduler: Scheduler
    is_skippable: bool = True
    respects_delay: bool = True
    is_closed: bool = False
    _queued: list[QueueItem] = field(default_factory=list, repr=False)
    _scheduled: list[Cancellable] = field(default_factory=list, repr=False)

    def add(
        self,
        callback: Callable[[], None],
        delay: float = 0,
        block: float = 0,
        skip_queue: bool = False,
    ) -> None:
        """
        Add a callback.

        Args:
            callback: Function without arguments
            delay: Milliseconds this effect takes before the next one starts
            block: Extra milliseconds before the next effect starts
            skip_queue: Run immediately even if the queue is not skippable
        """
        if self.is_closed or not callable(callback):
            return

        if self.is_skippable or skip_queue:
            callback()
            return

        self._queued.append(QueueItem(callback, delay or 0, block or 0))

    def schedule_queued(self) -> None:
        """Schedule every queued callback and empty the queue.

        Callbacks added while the scheduled ones fire are queued again (or run
        immediately when skippable); they are never part of this batch.
        """
        batch, self._queued = self._queued, []

        offset = 0.0
        for item in batch:
            handle_box: list[Cancellable] = []
            handle = self.scheduler.call_later(
                offset if self.respects_delay else 0,
                self._make_runner(item.callback, handle_box),
            )
            handle_box.append(handle)
            self._scheduled.append(handle)
            if self.respects_delay:
                offset += item.delay + item.block

    def _make_runner(
        self, callback: Callable[[], None], handle_box: list[Cancellable]
    ) -> Callable[[], None]:
        def run() -> None:
            for handle in handle_box:
                if handle in self._scheduled:
                    self._scheduled.remove(handle)
            callback()

        return run

    def clear_queued(self) -> None:
        """Drop all queued callbacks."""
        if self._queued:
            logger.debug("Dropping %d queued callbacks", len(self._queued))
        self._queued = []

    def clear_scheduled(self) -> None:
        """Cancel all scheduled callbacks that did not fire yet."""
        scheduled, self._scheduled = self._scheduled, []
        for handle in scheduled:
            handle.cancel()
        if scheduled:
            logger.debug("Cancelled %d scheduled callbacks", len(scheduled))

    def open(self) -> None:
        self.is_closed = False

    def close(self) -> None:
        self.is_closed = True

    def set_skippable(self, is_skippable: bool) -> None:
        if not isinstance(is_skippable, bool):
            return
        self.is_skippable = is_skippable

    def set_respects_delay(self, respects_delay: bool) -> None:
        if not isinstance(respects_delay, bool):
            return
        self.respects_delay = respects_delay

    @property
    def queued_count(self) -> int:
        return len(self._queued)

    @property
    def scheduled_count(self) -> int:
        return len(self._scheduled)
