"""
In‑process, per‑client‑IP request throttling.

``RateLimiter`` keeps a deque of request timestamps per client and
rejects requests once ``max_requests`` have been seen inside the
sliding ``window_seconds``.  Instances are used as FastAPI dependencies.
State lives in memory, so limits apply per worker process.
"""

import logging
import threading
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional

from fastapi import Request

from .errors import RateLimitExceeded


logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding‑window limiter keyed by client IP."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        message: str,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock or time.monotonic
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = self._clock()
        self._lock = threading.Lock()

    def _sweep(self, now: float) -> None:
        # Forget clients whose newest request has left the window.
        stale = [k for k, hits in self._hits.items() if not hits or now - hits[-1] >= self.window_seconds]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now

    def hit(self, key: str) -> None:
        """Record a request for ``key`` or raise ``RateLimitExceeded``."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            hits = self._hits[key]
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()
            if len(hits) >= self.max_requests:
                retry_after = int(self.window_seconds - (now - hits[0])) + 1
                logger.warning("Rate limit exceeded for IP: %s", key)
                raise RateLimitExceeded(self.message, retry_after)
            hits.append(now)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_sweep = self._clock()

    async def __call__(self, request: Request) -> None:
        client = request.client.host if request.client else "unknown"
        self.hit(client)
