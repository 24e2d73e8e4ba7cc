# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Database unit of work implementation."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from authcore.domain.users.repositories import UnitOfWork
from authcore.infrastructure.repositories.users.sqlalchemy_user_repository import (
    SqlAlchemyUserRepository,
)
from authcore.shared.logging import logger


@dataclass(slots=True)
class SqlAlchemyUnitOfWork(AbstractContextManager, UnitOfWork):
    """One session, one transaction: commit on clean exit, rollback otherwise."""

    session_factory: Callable[[], Session]
    _session: Session | None = field(default=None, init=False, repr=False)
    _users: SqlAlchemyUserRepository | None = field(default=None, init=False, repr=False)

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        if self._session is not None:
            raise RuntimeError("UnitOfWork is not re-entrant")
        self._session = self.session_factory()
        self._users = SqlAlchemyUserRepository(self._session)
        logger.debug("uow: session opened")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        assert self._session is not None
        try:
            if exc:
                logger.debug(f"uow: rollback due to {exc_type.__name__}")
                self._session.rollback()
            else:
                self._session.commit()
                logger.debug("uow: committed")
        except Exception:
            logger.exception("uow: exception while finalising")
            self._session.rollback()
            raise
        finally:
            self._session.close()
            logger.debug("uow: session closed")
            self._session = None
            self._users = None

    @property
    def session(self) -> Session:
        if self._session is None:
            msg = "UnitOfWork session accessed before entering context"
            raise RuntimeError(msg)
        return self._session

    @property
    def users(self) -> SqlAlchemyUserRepository:
        if self._users is None:
            raise RuntimeError("UnitOfWork not started")
        return self._users

    def commit(self) -> None:
        if self._session is None:
            raise RuntimeError("UnitOfWork not started")
        self._session.commit()
        logger.debug("uow: manual commit")

    def rollback(self) -> None:
        if self._session is None:
            return
        self._session.rollback()
        logger.debug("uow: manual rollback")


def unit_of_work_factory(session_factory: Callable[[], Session]) -> Callable[[], SqlAlchemyUnitOfWork]:
    def _factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(session_factory)

    return _factory


__all__ = ["SqlAlchemyUnitOfWork", "unit_of_work_factory"]
