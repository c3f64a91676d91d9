"""
In-memory sliding-window rate limiter.

Limits are per process: with several service instances each one enforces
its own window.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from greenloop.core.config import settings
from greenloop.core.errors import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self) -> None:
        self._requests: dict[tuple[str, str], list[float]] = {}
        self._lock = threading.Lock()

    def is_rate_limited(
        self,
        key: str,
        command: str = "general",
        max_requests: int = 10,
        window_seconds: int = 60,
        now: Optional[float] = None,
    ) -> tuple[bool, Optional[int]]:
        """
        Record one call for (key, command) unless the window is full.

        Returns:
            (is_limited, seconds_until_a_slot_frees_up)
        """
        now = time.time() if now is None else now
        cutoff = now - window_seconds
        bucket_key = (key, command)

        with self._lock:
            bucket = [t for t in self._requests.get(bucket_key, []) if t > cutoff]
            if len(bucket) >= max_requests:
                self._requests[bucket_key] = bucket
                reset_time = int(min(bucket) + window_seconds - now)
                return True, max(1, reset_time)
            bucket.append(now)
            self._requests[bucket_key] = bucket
            return False, None

    def check(
        self,
        key: str,
        command: str,
        max_requests: int,
        window_seconds: int,
        now: Optional[float] = None,
    ) -> None:
        limited, retry_after = self.is_rate_limited(key, command, max_requests, window_seconds, now)
        if limited:
            logger.warning("Rate limit exceeded for %s on %s", key, command)
            raise RateLimitError(retry_after=retry_after or 1)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._requests.clear()
                return
            for bucket_key in [k for k in self._requests if k[0] == key]:
                del self._requests[bucket_key]


rate_limiter = RateLimiter()


def throttle_action_log(user_id: int, limiter: Optional[RateLimiter] = None) -> None:
    (limiter or rate_limiter).check(
        str(user_id),
        "action_log",
        settings.ACTION_LOG_RATE_LIMIT,
        settings.ACTION_LOG_RATE_WINDOW_SECONDS,
    )
