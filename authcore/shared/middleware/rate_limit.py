# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from threading import Lock

from flask import request

from authcore.shared.errors import rate_limited
from authcore.shared.logging import logger
from authcore.shared.middleware.proxy import client_address


@dataclass
class Bucket:
    timestamps: deque[float]


class InMemoryRateLimiter:
    """Sliding-window limiter; process-local and lost on restart.

    Buckets that fall empty are dropped, and idle keys are swept at most
    once per window, so memory tracks only recently active clients.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limit = max(1, int(limit))
        self._window = max(0.1, float(window_seconds))
        self._clock = clock
        self._buckets: dict[str, Bucket] = {}
        self._last_sweep = clock()
        self._lock = Lock()

    def hit(self, key: str) -> float:
        """Count one request for ``key``; return 0.0 if allowed, else seconds to wait."""

        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self._window:
                self._sweep(now)
            bucket = self._buckets.get(key)
            if bucket is not None:
                self._prune(bucket, now)
            else:
                bucket = self._buckets[key] = Bucket(deque(maxlen=self._limit))
            if len(bucket.timestamps) >= self._limit:
                return max(self._window - (now - bucket.timestamps[0]), 0.001)
            bucket.timestamps.append(now)
            return 0.0

    def allow(self, key: str) -> bool:
        return self.hit(key) == 0.0

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _prune(self, bucket: Bucket, now: float) -> None:
        while bucket.timestamps and (now - bucket.timestamps[0]) >= self._window:
            bucket.timestamps.popleft()

    def _sweep(self, now: float) -> None:
        for key in list(self._buckets):
            bucket = self._buckets[key]
            self._prune(bucket, now)
            if not bucket.timestamps:
                del self._buckets[key]
        self._last_sweep = now


def rate_limit(limiter: InMemoryRateLimiter | None):
    """Wrap a Flask view so that each client address is held to ``limiter``."""

    def decorator(f: Callable):
        if limiter is None:
            return f

        @wraps(f)
        def wrapper(*args, **kwargs):
            key = f"{request.path}:{client_address()}"
            retry_after = limiter.hit(key)
            if retry_after:
                logger.warning(f"rate_limit: exceeded on {request.path} by {client_address()}")
                raise rate_limited(retry_after)
            return f(*args, **kwargs)

        return wrapper

    return decorator


__all__ = ["Bucket", "InMemoryRateLimiter", "rate_limit"]
