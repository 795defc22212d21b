"""
Header-driven rate limiting for GitHub API calls.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

from .logger import logger


@dataclass
class RateLimitInfo:
    """Last rate-limit state reported by the remote."""

    limit: int = 5000
    remaining: int = 5000
    used: int = 0
    reset_time: Optional[datetime] = None

    @property
    def is_exhausted(self) -> bool:
        return self.remaining <= 10

    @property
    def reset_in_seconds(self) -> float:
        if not self.reset_time:
            return 0.0
        return max(0.0, (self.reset_time - datetime.now()).total_seconds())


class RateLimiter:
    """
    Paces requests and waits out exhausted primary rate limits.

    State is updated from ``x-ratelimit-*`` response headers; updates are
    serialised with an ``asyncio.Lock`` so concurrent requests never leave
    a half-written snapshot. When the remote reports an exhausted budget
    without a usable reset time, the pause doubles for every exhausted
    response in a row, starting at ``backoff_base`` seconds.
    """

    def __init__(
        self,
        min_interval: float = 0.0,
        max_wait: float = 3600.0,
        backoff_base: float = 1.0,
    ):
        self.min_interval = min_interval
        self.max_wait = max_wait
        self.backoff_base = backoff_base
        self.rate_limit_info = RateLimitInfo()
        self._last_request = 0.0
        self._consecutive_limits = 0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until the next request may be issued."""

        async with self._lock:
            if self.rate_limit_info.is_exhausted:
                wait = self.rate_limit_info.reset_in_seconds
                if wait <= 0 and self._consecutive_limits:
                    # no usable reset time: double the pause per exhausted response in a row
                    wait = self.backoff_base * 2 ** (self._consecutive_limits - 1)
                wait = min(wait, self.max_wait)
                if wait > 0:
                    logger.warning(
                        f"Rate limit nearly exhausted "
                        f"({self.rate_limit_info.remaining} left), waiting {wait:.0f}s"
                    )
                    await asyncio.sleep(wait)

            now = time.time()
            if self.min_interval > 0 and self._last_request:
                elapsed = now - self._last_request
                if elapsed < self.min_interval:
                    await asyncio.sleep(self.min_interval - elapsed)
            self._last_request = time.time()

    async def update_rate_limit_info(self, headers: Mapping[str, str]) -> None:
        """Refresh the snapshot from response headers."""

        async with self._lock:
            info = self.rate_limit_info
            if "x-ratelimit-limit" in headers:
                info.limit = int(headers["x-ratelimit-limit"])
            if "x-ratelimit-remaining" in headers:
                info.remaining = int(headers["x-ratelimit-remaining"])
            if "x-ratelimit-used" in headers:
                info.used = int(headers["x-ratelimit-used"])
            if "x-ratelimit-reset" in headers:
                info.reset_time = datetime.fromtimestamp(int(headers["x-ratelimit-reset"]))

            if info.is_exhausted:
                self._consecutive_limits += 1
            else:
                self._consecutive_limits = 0


__all__ = ["RateLimiter", "RateLimitInfo"]
