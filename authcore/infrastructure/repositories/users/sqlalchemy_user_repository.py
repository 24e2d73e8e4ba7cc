# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from authcore.domain.users.entities import AccountStatus, Role
from authcore.domain.users.entities import User as DomainUser
from authcore.domain.users.exceptions import DuplicateUserError
from authcore.domain.users.repositories import UserRepository
from authcore.infrastructure.db.models import User


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _is_unique_violation(exc: IntegrityError) -> bool:
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if sqlstate:
        return sqlstate == "23505"
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message


def _to_domain(row: User) -> DomainUser:
    return DomainUser(
        id=row.id,
        email=row.email,
        username=row.username,
        password_hash=row.password_hash,
        role=Role(row.role),
        status=AccountStatus(row.status),
        created_at=_aware(row.created_at),
        last_login_at=_aware(row.last_login_at),
    )


class SqlAlchemyUserRepository(UserRepository):
    """User lookups and inserts bound to the caller's unit-of-work session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_by_email_or_username(self, email: str, username: str) -> DomainUser | None:
        stmt = (
            select(User)
            .where(
                or_(
                    func.lower(User.email) == email.strip().lower(),
                    func.lower(User.username) == username.strip().lower(),
                )
            )
            .limit(1)
        )
        row = self._session.scalars(stmt).first()
        return _to_domain(row) if row else None

    def find_by_email(self, email: str) -> DomainUser | None:
        stmt = select(User).where(func.lower(User.email) == email.strip().lower()).limit(1)
        row = self._session.scalars(stmt).first()
        return _to_domain(row) if row else None

    def find_by_id(self, user_id: int) -> DomainUser | None:
        row = self._session.get(User, user_id)
        return _to_domain(row) if row else None

    def add(
        self, email: str, username: str, password_hash: str, role: Role = Role.USER
    ) -> DomainUser:
        row = User(
            email=email.strip().lower(),
            username=username.strip(),
            password_hash=password_hash,
            role=Role(role).value,
            status=AccountStatus.ACTIVE.value,
        )
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise DuplicateUserError() from exc
        self._session.refresh(row)
        return _to_domain(row)

    def touch_last_login(self, user_id: int, when: datetime) -> None:
        self._session.execute(update(User).where(User.id == user_id).values(last_login_at=when))
