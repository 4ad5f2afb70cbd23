# tests/unit/supervisor/test_countdown.py
"""Tests for CountdownTimer and format_hms."""

from datetime import datetime, timedelta

import pytest

from components.state.room_state import TimerState
from components.supervisor.countdown import MIN_TOTAL_SECONDS, CountdownTimer, format_hms


@pytest.fixture
def timer():
    return CountdownTimer(TimerState(remaining_seconds=3, total_seconds=3600))


# ================================================================
# TRANSITION TESTS
# ================================================================
class TestCountdownTransitions:
    """Test tick/start/stop/toggle/reset/sync."""

    def test_tick_requires_running(self, timer):
        assert timer.tick() is False
        assert timer.state.remaining_seconds == 3

    def test_tick_counts_down_and_completes(self, timer):
        """Test completion stops the countdown and raises the alarm.

        WHY: The cycle must end exactly once, at zero.
        """
        timer.start()

        assert timer.tick() is False
        assert timer.tick() is False
        assert timer.tick() is True

        assert timer.state.remaining_seconds == 0
        assert timer.state.running is False
        assert timer.state.alarm_active is True
        assert timer.tick() is False

    def test_start_at_zero_refused(self):
        timer = CountdownTimer(TimerState(remaining_seconds=0, total_seconds=3600))

        assert timer.start() is False
        assert timer.state.running is False

    def test_start_and_stop_report_transitions(self, timer):
        assert timer.start() is True
        assert timer.start() is False
        assert timer.stop() is True
        assert timer.stop() is False
        assert timer.state.remaining_seconds == 3

    def test_toggle_from_zero_rearms(self):
        timer = CountdownTimer(
            TimerState(remaining_seconds=0, total_seconds=3600, alarm_active=True)
        )

        assert timer.toggle(7200) is True
        assert timer.state.remaining_seconds == 7200
        assert timer.state.total_seconds == 7200
        assert timer.state.alarm_active is False

    def test_toggle_pauses_and_resumes(self, timer):
        assert timer.toggle(7200) is True
        timer.tick()
        assert timer.toggle(7200) is False
        assert timer.state.remaining_seconds == 2

    def test_reset(self, timer):
        timer.start()
        timer.reset(7200)

        assert timer.state.running is False
        assert timer.state.remaining_seconds == 7200
        assert timer.state.total_seconds == 7200

    def test_reset_enforces_minimum(self, timer):
        timer.reset(10)
        assert timer.state.total_seconds == MIN_TOTAL_SECONDS

    def test_sync_keeps_paused_cycle(self):
        timer = CountdownTimer(TimerState(remaining_seconds=100, total_seconds=7200))

        assert timer.sync(7200) is False
        assert timer.state.remaining_seconds == 100

    @pytest.mark.parametrize(
        "remaining,total", [(100, 3600), (0, 7200)]
    )
    def test_sync_rearms(self, remaining, total):
        timer = CountdownTimer(TimerState(remaining_seconds=remaining, total_seconds=total))

        assert timer.sync(7200) is True
        assert timer.state.remaining_seconds == 7200

    def test_bind(self, timer):
        other = TimerState(remaining_seconds=50, total_seconds=3600)
        timer.bind(other)
        timer.start()

        assert other.running is True


# ================================================================
# DERIVED VALUE TESTS
# ================================================================
class TestCountdownDerivedValues:
    """Test progress, completion estimate and formatting."""

    def test_progress(self):
        timer = CountdownTimer(TimerState(remaining_seconds=1800, total_seconds=3600))
        assert timer.progress() == 0.5

    def test_progress_zero_total(self):
        timer = CountdownTimer(TimerState(remaining_seconds=0, total_seconds=0))
        assert timer.progress() == 0.0

    def test_estimated_completion(self):
        now = datetime(2024, 1, 1, 8, 0, 0)
        timer = CountdownTimer(TimerState(remaining_seconds=5400, total_seconds=7200))

        assert timer.estimated_completion(now) == now + timedelta(minutes=90)

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "00:00:00"),
            (59, "00:00:59"),
            (3661, "01:01:01"),
            (86400, "24:00:00"),
            (259200, "72:00:00"),
            (-5, "00:00:00"),
        ],
    )
    def test_format_hms(self, seconds, expected):
        assert format_hms(seconds) == expected
