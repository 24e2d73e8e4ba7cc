# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Retries for transient store failures (lock contention, dropped connections)."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from authcore.shared.logging import logger

T = TypeVar("T")

_TRANSIENT_MARKERS = ("database is locked", "database is busy", "deadlock", "could not serialize")


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, OperationalError):
        text = str(exc.orig or exc).lower()
        return any(marker in text for marker in _TRANSIENT_MARKERS)
    return False


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning(
        f"resilience: transient store error, retry attempt={state.attempt_number} "
        f"error={type(exc).__name__ if exc else '-'}"
    )


@dataclass(slots=True, frozen=True)
class TransientRetry:
    """Re-runs a whole unit of work when the store reports a transient error.

    The callable must be safe to repeat: every attempt opens its own
    transaction, and a failed attempt has already rolled back.
    """

    max_retries: int = 3
    backoff_base: float = 0.05
    backoff_cap: float = 1.0

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.backoff_base, max=self.backoff_cap),
            retry=retry_if_exception(is_transient),
            before_sleep=_log_retry,
            reraise=True,
        )

    def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return self._retrying()(func, *args, **kwargs)


NO_RETRY = TransientRetry(max_retries=0)


__all__ = ["NO_RETRY", "TransientRetry", "is_transient"]
