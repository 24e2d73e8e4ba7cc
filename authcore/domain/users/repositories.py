# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .entities import Role, SessionClaims, User


class UserRepository(Protocol):
    def find_by_email_or_username(self, email: str, username: str) -> User | None: ...
    def find_by_email(self, email: str) -> User | None: ...
    def find_by_id(self, user_id: int) -> User | None: ...
    def add(self, email: str, username: str, password_hash: str, role: Role = Role.USER) -> User: ...
    def touch_last_login(self, user_id: int, when: datetime) -> None: ...


class UnitOfWork(Protocol):
    users: UserRepository

    def __enter__(self) -> UnitOfWork: ...
    def __exit__(self, exc_type, exc, tb) -> None: ...


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...
    def verify(self, password: str, hashed: str) -> bool: ...
    def verify_decoy(self, password: str) -> bool: ...


class TokenService(Protocol):
    def issue(self, user_id: int, role: Role, ttl: int | None = None) -> str: ...
    def verify(self, token: str) -> SessionClaims: ...
    def needs_refresh(self, claims: SessionClaims) -> bool: ...
