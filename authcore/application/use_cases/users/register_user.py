# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from authcore.application.use_cases.users.schemas import RegistrationRequest
from authcore.domain.users.entities import AuthResult, Role, User
from authcore.domain.users.exceptions import DuplicateUserError
from authcore.domain.users.policies import PasswordPolicy
from authcore.domain.users.repositories import PasswordHasher, TokenService, UnitOfWork
from authcore.infrastructure.resilience import NO_RETRY, TransientRetry
from authcore.shared.errors import AppError, ErrorKind, raise_validation_error
from authcore.shared.logging import logger


class RegisterUserUseCase:
    """Validate, check for duplicates, hash, insert and issue a token.

    Everything after validation runs inside one unit of work, so a failure at
    any step leaves no user row behind. The store's unique indexes are the
    final arbiter between concurrent registrations.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], UnitOfWork],
        tokens: TokenService,
        password_hasher: PasswordHasher,
        password_policy: PasswordPolicy | None = None,
        retry: TransientRetry = NO_RETRY,
    ) -> None:
        self._uow_factory = uow_factory
        self._tokens = tokens
        self._password_hasher = password_hasher
        self._password_policy = password_policy or PasswordPolicy()
        self._retry = retry

    def validate(self, payload: Mapping[str, Any] | Any) -> RegistrationRequest:
        try:
            return RegistrationRequest.model_validate(
                payload, context={"policy": self._password_policy}
            )
        except ValidationError as exc:
            raise_validation_error(exc)

    def execute(self, payload: Mapping[str, Any] | Any) -> AuthResult:
        request = self.validate(payload)

        try:
            # Outside the transaction: the KDF never runs while a write lock is held.
            hashed = self._password_hasher.hash(request.password)
            user, token = self._retry.run(self._persist, request, hashed)
        except DuplicateUserError as exc:
            logger.info("auth.register: uniqueness constraint rejected concurrent insert")
            raise AppError(ErrorKind.USER_EXISTS) from exc
        except AppError:
            raise
        except Exception as exc:
            logger.exception("auth.register: store failure, transaction rolled back")
            raise AppError(ErrorKind.INTERNAL_FAILURE) from exc

        logger.info(f"auth.register: created user_id={user.id}")
        return AuthResult(user=user.to_public(), token=token)

    def _persist(self, request: RegistrationRequest, hashed: str) -> tuple[User, str]:
        with self._uow_factory() as uow:
            if uow.users.find_by_email_or_username(request.email, request.username):
                raise AppError(ErrorKind.USER_EXISTS)
            user = uow.users.add(request.email, request.username, hashed, Role.USER)
            token = self._tokens.issue(user.id, user.role)
        return user, token
