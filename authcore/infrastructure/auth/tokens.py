# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Stateless session tokens (JWT, HMAC-signed)."""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime

import jwt

from authcore.domain.users.entities import Role, SessionClaims
from authcore.domain.users.repositories import TokenService
from authcore.shared.errors import AppError, ErrorKind
from authcore.shared.logging import logger

SUPPORTED_ALGORITHMS: tuple[str, ...] = ("HS256", "HS384", "HS512")

# Expiry is checked against the injected clock, not PyJWT's wall clock.
_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "require": ["sub", "iat", "exp"],
}


class JwtTokenService(TokenService):
    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl_seconds: int = 3600,
        refresh_threshold_seconds: int = 600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"unsupported token algorithm: {algorithm}")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = int(ttl_seconds)
        self._refresh_threshold = int(refresh_threshold_seconds)
        self._clock = clock

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def issue(self, user_id: int, role: Role, ttl: int | None = None) -> str:
        issued_at = int(self._clock())
        lifetime = self._ttl if ttl is None else int(ttl)
        payload = {
            "sub": str(user_id),
            "role": Role(role).value,
            "iat": issued_at,
            "exp": issued_at + lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> SessionClaims:
        if not isinstance(token, str) or not token:
            raise AppError(ErrorKind.MALFORMED_TOKEN)

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options=_DECODE_OPTIONS,
            )
        except jwt.InvalidTokenError as exc:
            logger.debug(f"tokens: rejected token ({type(exc).__name__})")
            raise AppError(ErrorKind.MALFORMED_TOKEN) from exc

        try:
            user_id = int(payload["sub"])
            role = Role(payload.get("role", Role.USER.value))
            issued_at = float(payload["iat"])
            expires_at = float(payload["exp"])
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("tokens: rejected token with unusable claims")
            raise AppError(ErrorKind.MALFORMED_TOKEN) from exc

        if self._clock() > expires_at:
            raise AppError(ErrorKind.TOKEN_EXPIRED)

        return SessionClaims(
            user_id=user_id,
            role=role,
            issued_at=datetime.fromtimestamp(issued_at, UTC),
            expires_at=datetime.fromtimestamp(expires_at, UTC),
        )

    def remaining_seconds(self, claims: SessionClaims) -> float:
        return claims.expires_at.timestamp() - self._clock()

    def needs_refresh(self, claims: SessionClaims) -> bool:
        return self.remaining_seconds(claims) < self._refresh_threshold


__all__ = ["JwtTokenService", "SUPPORTED_ALGORITHMS"]
