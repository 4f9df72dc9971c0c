from __future__ import annotations

import asyncio
import math
import time
from collections import defaultdict, deque


class SlidingWindowLimiter:
    """In-process request counter keyed by client identity.

    State lives in one worker process; running several workers multiplies the
    effective limit by the worker count.
    """

    def __init__(self, limit: int, window_seconds: int) -> None:
        self.limit = limit
        self.window_seconds = max(1, window_seconds)
        self._lock = asyncio.Lock()
        self._windows: dict[str, deque[float]] = defaultdict(deque)

    async def hit(self, identity: str) -> tuple[bool, int]:
        """Count one request. Returns ``(allowed, retry_after_seconds)``.

        Rejected requests are not counted against the window.
        """
        now = time.monotonic()
        cutoff = now - self.window_seconds
        async with self._lock:
            queue = self._windows[identity]
            while queue and queue[0] <= cutoff:
                queue.popleft()
            if len(queue) >= self.limit:
                return False, max(1, math.ceil(queue[0] - cutoff))
            queue.append(now)
            return True, 0

    def reset(self) -> None:
        self._windows.clear()
