"""Logical one-second countdown for timed attempts."""

from __future__ import annotations

from datetime import datetime

from quizshare.constants.quiz_constants import TICK_INTERVAL_SECONDS


class Countdown:
    """Counts down whole seconds; reaching zero only flips ``expired``.

    Ticks are delivered either one at a time with :meth:`tick` or in bulk from
    wall-clock time with :meth:`advance_to`. A cancelled countdown ignores all
    further ticks.
    """

    def __init__(self, total_seconds: int) -> None:
        if total_seconds <= 0:
            raise ValueError("Countdown must start from a positive number of seconds.")
        self._total_seconds = total_seconds
        self._remaining_seconds = total_seconds
        self._started_at: datetime | None = None
        self._ticks_applied = 0
        self._cancelled = False

    @property
    def total_seconds(self) -> int:
        return self._total_seconds

    @property
    def remaining_seconds(self) -> int:
        return self._remaining_seconds

    @property
    def expired(self) -> bool:
        return self._remaining_seconds == 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self, now: datetime) -> None:
        self._started_at = now
        self._ticks_applied = 0

    def tick(self) -> bool:
        """Apply one tick. Returns True if the remaining time changed."""
        if self._cancelled or self._remaining_seconds == 0:
            return False
        self._remaining_seconds -= 1
        return True

    def advance_to(self, now: datetime) -> int:
        """Deliver every tick that has elapsed since :meth:`start`."""
        if self._started_at is None or self._cancelled:
            return 0
        elapsed = int((now - self._started_at).total_seconds()) // TICK_INTERVAL_SECONDS
        due = max(0, elapsed - self._ticks_applied)
        self._ticks_applied += due
        applied = 0
        for _ in range(min(due, self._remaining_seconds)):
            if self.tick():
                applied += 1
        return applied

    def cancel(self) -> None:
        self._cancelled = True
