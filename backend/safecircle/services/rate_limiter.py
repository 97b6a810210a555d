"""In-memory sliding-window rate limiting for auth endpoints."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Deque, Dict, Iterable, Tuple

from safecircle.core.exceptions import RateLimitExceededError

# (max hits, window seconds, message when exceeded)
Limit = Tuple[int, int, str]


class InMemoryRateLimiter:
    """Per-key sliding windows; suitable for single-node deployments."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits: Dict[str, Deque[float]] = {}

    def _window(self, key: str, window_seconds: int, now: float) -> Deque[float]:
        hits = self._hits.setdefault(key, deque())
        cutoff = now - window_seconds
        while hits and hits[0] < cutoff:
            hits.popleft()
        return hits

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        now = time.time()
        with self._lock:
            hits = self._window(key, window_seconds, now)
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def enforce(self, scope: str, client: str, limits: Iterable[Limit]) -> None:
        """Record one hit per window for ``client`` or raise on the first exhausted window."""
        for limit, window_seconds, message in limits:
            if not self.allow(f"{scope}:{window_seconds}:{client}", limit, window_seconds):
                raise RateLimitExceededError(message)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


rate_limiter = InMemoryRateLimiter()
