"""Countdown and stopwatch clock driven by a scheduler."""

import math
from collections.abc import Callable

from stagemap.constants import DEFAULT_TIMER_INTERVAL_MS, MIN_TIMER_INTERVAL_MS, MS_IN_S
from stagemap.models import TimerMode, TimerState
from stagemap.scheduler import Cancellable, Scheduler


def _noop(*_args) -> None:
    pass


class Timer:
    """
    Clock that ticks on a fixed interval.

    In ``timer`` mode the time counts down and ``on_expired`` fires once it
    reaches zero. In ``stopwatch`` mode it counts up and never expires.
    Elapsed time is measured on the scheduler's clock, so ticks that fire
    late still account for the real time passed.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        mode: TimerMode = TimerMode.TIMER,
        interval_ms: int = DEFAULT_TIMER_INTERVAL_MS,
        on_state_changed: Callable[[TimerState, float], None] | None = None,
        on_expired: Callable[[float], None] | None = None,
        on_tick: Callable[[float], None] | None = None,
    ):
        self.scheduler = scheduler
        self.mode = mode
        self.interval_ms = max(MIN_TIMER_INTERVAL_MS, interval_ms)
        self.on_state_changed = on_state_changed or _noop
        self.on_expired = on_expired or _noop
        self.on_tick = on_tick or _noop

        self.state = TimerState.ENDED
        self._time_ms: float = 0
        self._last_update_ms: float = 0
        self._handle: Cancellable | None = None

    @property
    def direction(self) -> int:
        return 1 if self.mode == TimerMode.STOPWATCH else -1

    def _set_state(self, state: TimerState) -> None:
        self.state = state
        self.on_state_changed(state, self.get_time())

    def _arm(self) -> None:
        self._handle = self.scheduler.call_later(self.interval_ms, self.update)

    def _disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def start(self, default_time_ms: float | None = None) -> None:
        """Start the clock, optionally at a given time. Only from ENDED."""
        if self.state != TimerState.ENDED:
            return

        self._last_update_ms = self.scheduler.now_ms()
        if default_time_ms:
            self.set_time(default_time_ms)

        self._set_state(TimerState.PLAYING)
        self._arm()

    def pause(self) -> None:
        if self.state != TimerState.PLAYING:
            return

        self._advance()
        self._disarm()
        self._set_state(TimerState.PAUSED)

    def resume(self) -> None:
        if self.state != TimerState.PAUSED:
            return

        self._last_update_ms = self.scheduler.now_ms()
        self._set_state(TimerState.PLAYING)
        self._arm()

    def stop(self) -> None:
        """Stop the clock. Idempotent."""
        self._disarm()
        if self.state != TimerState.ENDED:
            self._set_state(TimerState.ENDED)

    def reset(self) -> None:
        self.stop()
        self.set_time(0)

    def set_time(self, time_ms: float) -> None:
        self._time_ms = time_ms

    def get_time(self) -> float:
        return max(0, self._time_ms)

    def add_time(self, delta_ms: float) -> None:
        self.set_time(self.get_time() + delta_ms)

    def _advance(self) -> float:
        now = self.scheduler.now_ms()
        elapsed = now - self._last_update_ms
        self._last_update_ms = now
        new_time = self.get_time() + elapsed * self.direction
        self.set_time(new_time)
        return new_time

    def update(self) -> None:
        """One tick: move the time and re-arm, or expire."""
        self._handle = None
        if self.state == TimerState.PLAYING:
            self.on_tick(self._advance())

        if self.mode == TimerMode.TIMER and self.get_time() <= 0:
            self.stop()
            self.on_expired(0)
            return

        if self.state == TimerState.PLAYING:
            self._arm()

    @staticmethod
    def to_timecode(time_ms: float) -> str:
        """Format milliseconds as ``M:SS`` or ``H:MM:SS``, rounding seconds up."""
        total_seconds = max(0, math.ceil(time_ms / MS_IN_S))
        hours, rest = divmod(total_seconds, 3600)
        minutes, seconds = divmod(rest, 60)
        if hours:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"
