"""Fixed-window request counters, one per provider."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ai_orchestrator.models import RateLimit


@dataclass
class RateWindow:
    """Requests issued since `window_start`."""

    rate_limit: RateLimit
    window_start: float
    count: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class FixedWindowRateLimiter:
    """Per-provider fixed-window limiter.

    Up to ``max_requests`` reservations are granted per window and the window
    restarts the first time a reservation sees it has aged past
    ``window_seconds``. Bursts at the start of a window are allowed; this is
    a counter, not a token bucket.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}

    def configure(self, name: str, rate_limit: RateLimit) -> None:
        """Create or replace the window for a provider."""
        self._windows[name] = RateWindow(rate_limit=rate_limit, window_start=self._clock())

    def try_reserve(self, name: str) -> bool:
        """Reserve one request slot; False means skip this provider for now."""
        window = self._windows[name]
        with window.lock:
            now = self._clock()
            if now - window.window_start >= window.rate_limit.window_seconds:
                window.window_start = now
                window.count = 0

            if window.count < window.rate_limit.max_requests:
                window.count += 1
                return True
            return False

    def requests_in_window(self, name: str) -> int:
        """Slots used in the current window, without rolling it over."""
        window = self._windows[name]
        with window.lock:
            if self._clock() - window.window_start >= window.rate_limit.window_seconds:
                return 0
            return window.count

    def remaining(self, name: str) -> int:
        window = self._windows[name]
        return window.rate_limit.max_requests - self.requests_in_window(name)

    def reset(self, name: str) -> None:
        window = self._windows[name]
        with window.lock:
            window.window_start = self._clock()
            window.count = 0

    def remove(self, name: str) -> None:
        self._windows.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._windows
