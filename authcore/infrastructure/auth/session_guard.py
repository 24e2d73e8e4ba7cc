# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import g, make_response, request

from authcore.domain.users.entities import Role, SessionClaims
from authcore.domain.users.repositories import TokenService, UnitOfWork
from authcore.shared.errors import AppError, ErrorKind, rate_limited
from authcore.shared.logging import logger
from authcore.shared.middleware.proxy import client_address
from authcore.shared.middleware.rate_limit import InMemoryRateLimiter

REFRESH_HEADER = "X-Refresh-Token"


@dataclass(slots=True, frozen=True)
class SessionContext:

    user_id: int
    role: Role
    claims: SessionClaims
    refreshed_token: str | None = None


def extract_bearer(authorization: str | None) -> str:
    if not authorization:
        raise AppError(ErrorKind.MISSING_TOKEN)
    scheme, _, value = authorization.strip().partition(" ")
    token = value.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise AppError(ErrorKind.MISSING_TOKEN)
    return token


class SessionGuard:
    """Per-request gate in front of every protected operation."""

    def __init__(
        self,
        *,
        tokens: TokenService,
        uow_factory: Callable[[], UnitOfWork],
        rate_limiter: InMemoryRateLimiter | None = None,
    ) -> None:
        self._tokens = tokens
        self._uow_factory = uow_factory
        self._rate_limiter = rate_limiter

    def authenticate(self, authorization: str | None, client: str) -> SessionContext:
        if self._rate_limiter is not None:
            retry_after = self._rate_limiter.hit(f"session:{client}")
            if retry_after:
                logger.warning(f"session_guard: rate limit exceeded for {client}")
                raise rate_limited(retry_after)

        token = extract_bearer(authorization)
        claims = self._tokens.verify(token)

        try:
            with self._uow_factory() as uow:
                user = uow.users.find_by_id(claims.user_id)
        except Exception as exc:
            logger.exception(f"session_guard: user lookup failed for user={claims.user_id}")
            raise AppError(ErrorKind.INTERNAL_FAILURE) from exc

        if user is None or not user.is_active:
            logger.info(f"session_guard: rejected token for inactive/missing user={claims.user_id}")
            raise AppError(ErrorKind.USER_INACTIVE)

        refreshed = None
        if self._tokens.needs_refresh(claims):
            refreshed = self._tokens.issue(user.id, user.role)
            logger.debug(f"session_guard: issued replacement token for user={user.id}")

        return SessionContext(
            user_id=user.id, role=user.role, claims=claims, refreshed_token=refreshed
        )

    def protect(self, view: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            context = self.authenticate(
                request.headers.get("Authorization"), client_address()
            )
            g.user_id = context.user_id
            g.user_role = context.role
            g.session_context = context

            response = make_response(view(*args, **kwargs))
            if context.refreshed_token:
                response.headers[REFRESH_HEADER] = context.refreshed_token
            return response

        return wrapper


__all__ = ["REFRESH_HEADER", "SessionContext", "SessionGuard", "extract_bearer"]
