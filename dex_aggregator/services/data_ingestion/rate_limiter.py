"""
Per-provider request budget.

Fixed-window counter: each provider may make `max_requests` calls per
window. Calls past the budget fail fast with RateLimitError instead of
queueing, so the aggregator can move on without that provider.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Dict, Optional

from dex_aggregator.services.base import RateLimitError


@dataclass
class _Window:
    requests: int
    reset_at: float


class RateLimiter:
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = asyncio.Lock()

    async def acquire(self, service: str, max_requests: int, window_seconds: float = 60.0) -> None:
        """Count one request against `service`, raising if the budget is spent."""
        async with self._lock:
            now = self._clock()
            window = self._windows.get(service)

            if window is None or now >= window.reset_at:
                window = _Window(requests=0, reset_at=now + window_seconds)
                self._windows[service] = window

            if window.requests >= max_requests:
                raise RateLimitError(service, retry_after=window.reset_at - now)

            window.requests += 1

    def status(self, service: str) -> Optional[dict]:
        window = self._windows.get(service)
        if window is None:
            return None
        return {"requests": window.requests, "reset_in": max(0.0, window.reset_at - self._clock())}


# Shared across adapters so all calls to one provider draw from one budget
rate_limiter = RateLimiter()
