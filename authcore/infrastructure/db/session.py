# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from authcore.shared.config import DatabaseConfig
from authcore.shared.logging import logger


class Base(DeclarativeBase):
    pass


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_sqlite_memory(url: str) -> bool:
    return _is_sqlite(url) and (":memory:" in url or url.split("://", 1)[-1] in ("", "/"))


def build_engine(config: DatabaseConfig) -> Engine:
    url = config.url
    kwargs: dict[str, object] = {"echo": False, "future": True, "pool_pre_ping": True}

    if _is_sqlite_memory(url):
        # One shared connection, otherwise every session sees an empty database.
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_size"] = config.pool_size
        kwargs["max_overflow"] = config.max_overflow
        kwargs["pool_timeout"] = config.pool_timeout
        if _is_sqlite(url):
            kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": int(config.pool_timeout),
            }

    engine = create_engine(url, **kwargs)

    if _is_sqlite(url):
        event.listen(engine, "connect", _set_sqlite_pragmas)

    logger.debug(f"db.engine: created for dialect={engine.dialect.name}")
    return engine


def _set_sqlite_pragmas(dbapi_conn, _):
    cur = dbapi_conn.cursor()
    try:
        cur.execute("PRAGMA busy_timeout=30000;")
        cur.execute("PRAGMA foreign_keys=ON;")
        cur.execute("PRAGMA journal_mode=WAL;")
        cur.execute("PRAGMA synchronous=NORMAL;")
    except Exception:
        logger.exception("Failed to apply SQLite PRAGMAs")
    finally:
        cur.close()


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    # Models must be registered on Base.metadata before create_all.
    from authcore.infrastructure.db import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ensured")


__all__ = ["Base", "build_engine", "build_session_factory", "init_db"]
