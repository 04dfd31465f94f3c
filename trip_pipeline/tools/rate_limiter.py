"""Sliding-window admission control keyed by subject id."""
from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict


class RateLimiter:
    """Admit at most ``max_requests`` per subject within a trailing window.

    State is process-local. Windows are created on the first check for a
    subject and only ever shrink through lazy pruning. ``clock`` returns
    seconds and can be swapped for a fake in tests.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 0:
            raise ValueError("max_requests must be non-negative")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def is_allowed(self, subject_id: str) -> bool:
        with self._lock:
            now = self._clock()
            window = self._prune(subject_id, now)
            if len(window) >= self.max_requests:
                return False
            window.append(now)
            return True

    def remaining(self, subject_id: str) -> int:
        with self._lock:
            window = self._prune(subject_id, self._clock())
            return max(0, self.max_requests - len(window))

    def _prune(self, subject_id: str, now: float) -> Deque[float]:
        window = self._windows.setdefault(subject_id, deque())
        cutoff = now - self.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()
        return window
