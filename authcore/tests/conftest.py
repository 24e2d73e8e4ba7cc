from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
from flask import Flask
from flask.testing import FlaskClient
from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from authcore.app import create_app
from authcore.application.services.password_hashing import WerkzeugPasswordHasher
from authcore.infrastructure.auth.tokens import JwtTokenService
from authcore.infrastructure.db import build_engine, build_session_factory, init_db
from authcore.infrastructure.db.models import User
from authcore.infrastructure.unit_of_work import SqlAlchemyUnitOfWork, unit_of_work_factory
from authcore.shared.config import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    ObservabilityConfig,
    SecurityConfig,
)

SECRET = "test-signing-secret-0123456789-abcdefghij"
FAST_WORK_FACTOR = 1_000
T0 = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def hasher() -> WerkzeugPasswordHasher:
    return WerkzeugPasswordHasher(work_factor=FAST_WORK_FACTOR)


@pytest.fixture()
def tokens(clock: FakeClock) -> JwtTokenService:
    return JwtTokenService(SECRET, ttl_seconds=3600, refresh_threshold_seconds=600, clock=clock)


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = build_engine(DatabaseConfig(url="sqlite:///:memory:"))
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture()
def uow_factory(session_factory: sessionmaker[Session]) -> Callable[[], SqlAlchemyUnitOfWork]:
    return unit_of_work_factory(session_factory)


@pytest.fixture()
def set_status(session_factory: sessionmaker[Session]) -> Callable[[int, str], None]:
    def _set(user_id: int, status: str) -> None:
        with session_factory() as session:
            session.execute(update(User).where(User.id == user_id).values(status=status))
            session.commit()

    return _set


def make_config(**security: object) -> AppConfig:
    return AppConfig(
        app_env="test",
        database=DatabaseConfig(url="sqlite:///:memory:"),
        security=SecurityConfig(**security),
        auth=AuthConfig(jwt_secret=SECRET, password_work_factor=FAST_WORK_FACTOR),
        observability=ObservabilityConfig(metrics_enabled=True),
    )


@pytest.fixture()
def app_config() -> AppConfig:
    return make_config()


@pytest.fixture()
def app(app_config: AppConfig, engine: Engine) -> Flask:
    flask_app = create_app(app_config, engine=engine)
    flask_app.testing = True
    return flask_app


@pytest.fixture()
def client(app: Flask) -> Iterator[FlaskClient]:
    with app.test_client() as test_client:
        yield test_client
