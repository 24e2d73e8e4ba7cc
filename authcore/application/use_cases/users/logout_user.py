# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Use-case for ending a client session.

Tokens are stateless: logging out discards the client's copy (and any auth
cookie) but a token already handed out stays verifiable until its ``exp``.
"""

from __future__ import annotations

from authcore.domain.users.repositories import TokenService
from authcore.shared.errors import AppError
from authcore.shared.logging import logger


class LogoutUserUseCase:
    def __init__(self, *, tokens: TokenService) -> None:
        self._tokens = tokens

    def execute(self, token: str | None) -> int | None:
        """Return the user id the presented token belonged to, if it still verifies."""

        if not token:
            return None
        try:
            claims = self._tokens.verify(token)
        except AppError as exc:
            logger.debug(f"logout: ignoring unusable token ({exc.code})")
            return None
        return claims.user_id
