# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from authcore.domain.users.entities import AuthResult, PublicUser


class UserPublicDTO(BaseModel):
    id: int
    email: str
    username: str
    role: str
    created_at: datetime

    @classmethod
    def from_domain(cls, user: PublicUser) -> UserPublicDTO:
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            role=user.role.value,
            created_at=user.created_at,
        )


class AuthSuccessDTO(BaseModel):
    user: UserPublicDTO
    token: str

    @classmethod
    def from_result(cls, result: AuthResult) -> AuthSuccessDTO:
        return cls(user=UserPublicDTO.from_domain(result.user), token=result.token)


class ProfileDTO(BaseModel):
    success: bool = True
    user: UserPublicDTO


class SessionStatusDTO(BaseModel):
    valid: bool = True
    user: UserPublicDTO


class LogoutDTO(BaseModel):
    success: bool = True
    message: str = "Logged out successfully"


class HealthDTO(BaseModel):
    status: str
    service: str
    database: bool
    timestamp: datetime
