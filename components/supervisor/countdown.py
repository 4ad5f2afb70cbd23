# components/supervisor/countdown.py
"""
Drying countdown.

A one-shot interval counter over a TimerState: ticks once per second while
running, stops and raises the completion alarm at zero. Estimated
completion and progress are derived on demand, never stored.
"""

from datetime import datetime, timedelta

from components.state.room_state import DRYING_DURATION_RANGE_MINUTES, TimerState

MIN_TOTAL_SECONDS = DRYING_DURATION_RANGE_MINUTES[0] * 60


class CountdownTimer:
    """Operations on a room's TimerState.

    The timer does not own its state; RoomSupervisor rebinds it whenever the
    room state object is replaced (e.g. on restore).
    """

    def __init__(self, state: TimerState):
        self.state = state

    def bind(self, state: TimerState) -> None:
        self.state = state

    # ----------------------------------------------------------------
    # Transitions
    # ----------------------------------------------------------------

    def tick(self) -> bool:
        """Advance the countdown by one second.

        Returns:
            True if this tick completed the cycle
        """
        if not self.state.running or self.state.remaining_seconds <= 0:
            return False

        self.state.remaining_seconds -= 1
        if self.state.remaining_seconds == 0:
            self.state.running = False
            self.state.alarm_active = True
            return True
        return False

    def start(self) -> bool:
        """Start ticking. Returns True if the timer was not already running."""
        if self.state.running or self.state.remaining_seconds <= 0:
            return False
        self.state.running = True
        return True

    def stop(self) -> bool:
        """Stop ticking without touching the remaining time."""
        if not self.state.running:
            return False
        self.state.running = False
        return True

    def toggle(self, total_seconds: int) -> bool:
        """Flip the running flag.

        Starting from zero re-arms the cycle with ``total_seconds`` first.

        Returns:
            The new running flag
        """
        if self.state.running:
            self.stop()
            return False

        if self.state.remaining_seconds <= 0:
            self.reset(total_seconds)
        self.start()
        return self.state.running

    def reset(self, total_seconds: int) -> None:
        """Stop, re-arm with ``total_seconds`` and clear the completion alarm."""
        total_seconds = max(MIN_TOTAL_SECONDS, int(total_seconds))
        self.state.running = False
        self.state.total_seconds = total_seconds
        self.state.remaining_seconds = total_seconds
        self.state.alarm_active = False

    def sync(self, total_seconds: int) -> bool:
        """Re-arm only if the cycle length changed or the cycle is finished.

        A paused cycle of the same length keeps its remaining time.

        Returns:
            True if the timer was re-armed
        """
        if (
            self.state.total_seconds != total_seconds
            or self.state.remaining_seconds <= 0
        ):
            self.reset(total_seconds)
            return True
        return False

    # ----------------------------------------------------------------
    # Derived values
    # ----------------------------------------------------------------

    def progress(self) -> float:
        """Remaining fraction of the cycle, clamped to [0, 1]."""
        total = self.state.total_seconds
        if total <= 0:
            return 0.0
        return max(0.0, min(1.0, self.state.remaining_seconds / total))

    def estimated_completion(self, now: datetime | None = None) -> datetime:
        return (now or datetime.now()) + timedelta(
            seconds=self.state.remaining_seconds
        )

    def format_remaining(self) -> str:
        return format_hms(self.state.remaining_seconds)


def format_hms(seconds: int) -> str:
    """Format seconds as HH:MM:SS (hours may exceed 24)."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
