"""Unit tests for stagemap.timer."""

import pytest

from stagemap.models import TimerMode, TimerState
from stagemap.timer import Timer


class TestCountdown:
    def test_countdown_expires_once_at_zero(self, scheduler):
        expired = []
        timer = Timer(scheduler, interval_ms=500, on_expired=expired.append)

        timer.start(1000)
        scheduler.advance(500)
        assert timer.get_time() == 500
        assert expired == []

        scheduler.advance(500)
        assert expired == [0]
        assert timer.state == TimerState.ENDED

        scheduler.advance(5000)
        assert expired == [0]

    def test_ticks_report_the_remaining_time(self, scheduler):
        ticks = []
        timer = Timer(scheduler, interval_ms=500, on_tick=ticks.append)
        timer.start(1500)
        scheduler.advance(1500)
        assert ticks == [1000, 500, 0]

    def test_pause_freezes_the_time(self, scheduler):
        timer = Timer(scheduler, interval_ms=500)
        timer.start(2000)
        scheduler.advance(700)
        timer.pause()

        assert timer.state == TimerState.PAUSED
        assert timer.get_time() == 1300

        scheduler.advance(5000)
        assert timer.get_time() == 1300

        timer.resume()
        scheduler.advance(500)
        assert timer.get_time() == 800

    def test_start_only_from_ended(self, scheduler):
        timer = Timer(scheduler, interval_ms=500)
        timer.start(1000)
        timer.start(9000)
        assert timer.get_time() == 1000

    def test_stop_is_idempotent(self, scheduler):
        changes = []
        timer = Timer(scheduler, on_state_changed=lambda state, _time: changes.append(state))
        timer.start(1000)
        timer.stop()
        timer.stop()
        assert changes == [TimerState.PLAYING, TimerState.ENDED]

    def test_add_time_extends_the_countdown(self, scheduler):
        expired = []
        timer = Timer(scheduler, interval_ms=500, on_expired=expired.append)
        timer.start(1000)
        timer.add_time(1000)
        scheduler.advance(1500)
        assert expired == []
        scheduler.advance(500)
        assert expired == [0]

    def test_interval_has_a_lower_bound(self, scheduler):
        timer = Timer(scheduler, interval_ms=1)
        assert timer.interval_ms == 50


class TestStopwatch:
    def test_stopwatch_counts_up_and_never_expires(self, scheduler):
        expired = []
        timer = Timer(scheduler, mode=TimerMode.STOPWATCH, interval_ms=500, on_expired=expired.append)
        timer.start()
        scheduler.advance(1500)
        assert timer.get_time() == 1500
        assert expired == []
        assert timer.state == TimerState.PLAYING


class TestTimecode:
    @pytest.mark.parametrize(
        "time_ms, expected",
        [
            (0, "0:00"),
            (1, "0:01"),
            (59_000, "0:59"),
            (61_000, "1:01"),
            (3_600_000, "1:00:00"),
            (3_725_000, "1:02:05"),
            (-500, "0:00"),
        ],
    )
    def test_to_timecode(self, time_ms, expected):
        assert Timer.to_timecode(time_ms) == expected
