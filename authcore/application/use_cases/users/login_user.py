# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from authcore.application.use_cases.users.schemas import LoginRequest
from authcore.domain.users.entities import AuthResult, User
from authcore.domain.users.repositories import PasswordHasher, TokenService, UnitOfWork
from authcore.infrastructure.auth.login_attempts import LoginAttemptsTracker
from authcore.infrastructure.resilience import NO_RETRY, TransientRetry
from authcore.shared.errors import AppError, ErrorKind, raise_validation_error, rate_limited
from authcore.shared.logging import logger


class LoginUserUseCase:
    def __init__(
        self,
        *,
        uow_factory: Callable[[], UnitOfWork],
        tokens: TokenService,
        password_hasher: PasswordHasher,
        attempts: LoginAttemptsTracker | None = None,
        retry: TransientRetry = NO_RETRY,
    ) -> None:
        self._uow_factory = uow_factory
        self._tokens = tokens
        self._password_hasher = password_hasher
        self._attempts = attempts
        self._retry = retry

    def execute(self, payload: Mapping[str, Any] | Any, ip_address: str | None = None) -> AuthResult:
        try:
            request = LoginRequest.model_validate(payload)
        except ValidationError as exc:
            raise_validation_error(exc)

        if self._attempts is not None:
            remaining = self._attempts.blocked_for(ip_address)
            if remaining:
                raise rate_limited(remaining)

        try:
            user, token = self._retry.run(self._authenticate, request)
        except AppError as exc:
            if exc.kind is ErrorKind.INVALID_CREDENTIALS and self._attempts is not None:
                self._attempts.record_failure(ip_address)
            raise
        except Exception as exc:
            logger.exception("auth.login: store failure, transaction rolled back")
            raise AppError(ErrorKind.INTERNAL_FAILURE) from exc

        if self._attempts is not None:
            self._attempts.record_success(ip_address)

        logger.info(f"auth.login: ok user_id={user.id}")
        return AuthResult(user=user.to_public(), token=token)

    def _authenticate(self, request: LoginRequest) -> tuple[User, str]:
        with self._uow_factory() as uow:
            user = uow.users.find_by_email(request.email)
            if user is None:
                # Unknown accounts pay the same KDF cost as a real check.
                password_valid = self._password_hasher.verify_decoy(request.password)
            else:
                password_valid = self._password_hasher.verify(request.password, user.password_hash)

            if not password_valid:
                raise AppError(ErrorKind.INVALID_CREDENTIALS)

            if not user.is_active:
                raise AppError(ErrorKind.ACCOUNT_INACTIVE)

            uow.users.touch_last_login(user.id, datetime.now(UTC))
            token = self._tokens.issue(user.id, user.role)
        return user, token
