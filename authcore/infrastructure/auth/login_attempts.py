# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from authcore.shared.logging import logger


@dataclass
class AuthAttemptCounter:
    """Failure bookkeeping for one source address.

    Either ``is_blocked`` is False and ``blocked_until`` is None, or
    ``is_blocked`` is True and ``blocked_until`` holds the unblock time.
    """

    attempt_count: int = 0
    last_attempt: float | None = None
    is_blocked: bool = False
    blocked_until: float | None = None

    def block(self, until: float) -> None:
        self.is_blocked = True
        self.blocked_until = until

    def unblock(self) -> None:
        self.is_blocked = False
        self.blocked_until = None
        self.attempt_count = 0


class LoginAttemptsTracker:
    """Process-local, best-effort brute-force guard keyed by client IP.

    A counter that is not blocked and has seen no failure for a full block
    window is forgotten, so stray failures decay and idle addresses do not
    accumulate.
    """

    def __init__(
        self,
        *,
        max_failures: int = 5,
        block_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_failures = max(1, int(max_failures))
        self._block_seconds = float(block_seconds)
        self._clock = clock
        self._counters: dict[str, AuthAttemptCounter] = {}
        self._last_sweep = clock()
        self._lock = Lock()

    def record_failure(self, ip_address: str | None) -> None:
        if not ip_address:
            return
        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)
            counter = self._live_counter(ip_address, now)
            if counter is None:
                counter = self._counters[ip_address] = AuthAttemptCounter()
            counter.attempt_count += 1
            counter.last_attempt = now
            if not counter.is_blocked and counter.attempt_count >= self._max_failures:
                counter.block(now + self._block_seconds)
                logger.warning(
                    f"login_attempts: BLOCKED ip={ip_address} "
                    f"failed_attempts={counter.attempt_count} "
                    f"block_duration={self._block_seconds}s"
                )

    def record_success(self, ip_address: str | None) -> None:
        if not ip_address:
            return
        with self._lock:
            if self._counters.pop(ip_address, None) is not None:
                logger.debug(f"login_attempts: cleared counter for ip={ip_address}")

    def blocked_for(self, ip_address: str | None) -> float:
        """Seconds until ``ip_address`` may try again; 0.0 when not blocked."""

        if not ip_address:
            return 0.0
        with self._lock:
            now = self._clock()
            counter = self._live_counter(ip_address, now)
            if counter is None or not counter.is_blocked:
                return 0.0
            return max(0.0, counter.blocked_until - now)

    def snapshot(self, ip_address: str) -> AuthAttemptCounter | None:
        with self._lock:
            counter = self._counters.get(ip_address)
            if counter is None:
                return None
            return AuthAttemptCounter(
                attempt_count=counter.attempt_count,
                last_attempt=counter.last_attempt,
                is_blocked=counter.is_blocked,
                blocked_until=counter.blocked_until,
            )

    def clear(self, ip_address: str) -> None:
        with self._lock:
            self._counters.pop(ip_address, None)
            logger.info(f"login_attempts: cleared all attempts for ip={ip_address}")

    def tracked_addresses(self) -> int:
        with self._lock:
            return len(self._counters)

    def _live_counter(self, ip_address: str, now: float) -> AuthAttemptCounter | None:
        counter = self._counters.get(ip_address)
        if counter is None:
            return None
        self._expire(counter, now)
        if self._is_stale(counter, now):
            del self._counters[ip_address]
            return None
        return counter

    def _is_stale(self, counter: AuthAttemptCounter, now: float) -> bool:
        if counter.is_blocked:
            return False
        return counter.last_attempt is None or now - counter.last_attempt >= self._block_seconds

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep < self._block_seconds:
            return
        for ip_address in list(self._counters):
            self._live_counter(ip_address, now)
        self._last_sweep = now

    @staticmethod
    def _expire(counter: AuthAttemptCounter, now: float) -> None:
        if counter.is_blocked and counter.blocked_until is not None and now >= counter.blocked_until:
            counter.unblock()


__all__ = ["AuthAttemptCounter", "LoginAttemptsTracker"]
