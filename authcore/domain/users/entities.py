# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CLOSED = "closed"


@dataclass(slots=True, frozen=True)
class User:

    id: int
    email: str
    username: str
    password_hash: str
    role: Role
    status: AccountStatus
    created_at: datetime
    last_login_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status is AccountStatus.ACTIVE

    def to_public(self) -> PublicUser:
        return PublicUser(
            id=self.id,
            email=self.email,
            username=self.username,
            role=self.role,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"User(id={self.id}, username={self.username!r}, role={self.role.value}, status={self.status.value})"


@dataclass(slots=True, frozen=True)
class PublicUser:
    """Client-visible projection of a user; never carries the password hash."""

    id: int
    email: str
    username: str
    role: Role
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "role": self.role.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class SessionClaims:

    user_id: int
    role: Role
    issued_at: datetime
    expires_at: datetime


@dataclass(slots=True, frozen=True)
class AuthResult:

    user: PublicUser
    token: str
