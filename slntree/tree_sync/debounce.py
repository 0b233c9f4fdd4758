"""Clock-driven debounce window and rapid-update detection.

Both take an injected ``monotonic`` callable so callers and tests control
time. Nothing here sleeps or spawns threads; owners poll ``take``.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable


class Debouncer:
    """Coalesce a burst of triggers into one action after a quiet window."""

    def __init__(self, window_seconds: float, monotonic: Callable[[], float] = time.monotonic) -> None:
        self.window_seconds = window_seconds
        self.monotonic = monotonic
        self._deadline: float | None = None
        self._reasons: list[str] = []

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    def trigger(self, reason: str) -> None:
        """Start or extend the window."""
        self._deadline = self.monotonic() + self.window_seconds
        if reason not in self._reasons:
            self._reasons.append(reason)

    def take(self, force: bool = False) -> list[str] | None:
        """Return the coalesced reasons once the window has elapsed, else ``None``."""
        if self._deadline is None:
            return None
        if not force and self.monotonic() < self._deadline:
            return None
        reasons = self._reasons
        self._deadline = None
        self._reasons = []
        return reasons

    def cancel(self) -> None:
        self._deadline = None
        self._reasons = []


class RapidUpdateGuard:
    """Report when more than ``threshold`` updates land within ``window_seconds``."""

    def __init__(
        self,
        threshold: int,
        window_seconds: float,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = threshold
        self.window_seconds = window_seconds
        self.monotonic = monotonic
        self._stamps: deque[float] = deque()

    def record(self) -> bool:
        now = self.monotonic()
        self._stamps.append(now)
        while self._stamps and now - self._stamps[0] > self.window_seconds:
            self._stamps.popleft()
        return len(self._stamps) > self.threshold

    def reset(self) -> None:
        self._stamps.clear()
