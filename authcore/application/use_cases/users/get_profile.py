# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Use-case for resolving the signed-in user's public profile."""

from __future__ import annotations

from collections.abc import Callable

from authcore.domain.users.entities import PublicUser
from authcore.domain.users.repositories import UnitOfWork
from authcore.shared.errors import AppError, ErrorKind


class GetProfileUseCase:
    def __init__(self, *, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, user_id: int) -> PublicUser:
        with self._uow_factory() as uow:
            user = uow.users.find_by_id(user_id)
        if user is None or not user.is_active:
            raise AppError(ErrorKind.USER_INACTIVE)
        return user.to_public()
