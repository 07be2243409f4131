# flowzone/timer.py

"""
Pomodoro-style focus timer.

The timer alternates between a focus period and a break period. It holds no
clock of its own: every call that needs the time takes `now` (seconds, e.g.
from time.monotonic()), which keeps it deterministic and easy to drive from a
request handler or a test.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from flowzone.models import UserPreference


class TimerMode(str, Enum):
    focus = "focus"
    rest = "break"


class TimerEvent(str, Enum):
    focus_complete = "focus_complete"
    break_complete = "break_complete"


def format_time(seconds: int) -> str:
    """Formats a number of seconds as MM:SS."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def whole_minutes(seconds: float) -> int:
    return int(seconds // 60)


@dataclass
class FocusTimer:
    focus_seconds: int = 25 * 60
    break_seconds: int = 5 * 60
    mode: TimerMode = TimerMode.focus
    elapsed: int = 0
    running: bool = False
    # Minutes credited to the task by completed focus periods
    focus_minutes: int = 0
    _started_at: Optional[float] = None

    @classmethod
    def from_preferences(cls, prefs: UserPreference) -> "FocusTimer":
        return cls(focus_seconds=prefs.focusTime * 60, break_seconds=prefs.breakTime * 60)

    @property
    def period_seconds(self) -> int:
        return self.focus_seconds if self.mode == TimerMode.focus else self.break_seconds

    def start(self, now: float) -> None:
        if self.running:
            return
        self.running = True
        # Resume from whatever has already elapsed
        self._started_at = now - self.elapsed

    def pause(self, now: float) -> int:
        if self.running:
            self.elapsed = int(now - self._started_at)
            self.running = False
            self._started_at = None
        return self.elapsed

    def reset(self) -> None:
        self.running = False
        self._started_at = None
        self.elapsed = 0

    def tick(self, now: float) -> Optional[TimerEvent]:
        """
        Advances the timer. Returns the event raised when the current period
        runs out, after switching to the other mode; returns None otherwise.
        """
        if not self.running:
            return None
        self.elapsed = int(now - self._started_at)
        if self.elapsed < self.period_seconds:
            return None

        if self.mode == TimerMode.focus:
            self.focus_minutes += whole_minutes(self.elapsed)
            event = TimerEvent.focus_complete
            self.mode = TimerMode.rest
        else:
            event = TimerEvent.break_complete
            self.mode = TimerMode.focus
        self.reset()
        return event

    def progress(self) -> float:
        """Percentage of the current period that has elapsed."""
        return min(100.0, self.elapsed / self.period_seconds * 100)

    def display(self) -> str:
        return format_time(self.elapsed)
