# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Application dependency container.

One container per process: it owns the engine, the signing secret and the
in-memory limiters, and hands them to components explicitly.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import cached_property

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from authcore.application.services.password_hashing import WerkzeugPasswordHasher
from authcore.application.use_cases.users.get_profile import GetProfileUseCase
from authcore.application.use_cases.users.login_user import LoginUserUseCase
from authcore.application.use_cases.users.logout_user import LogoutUserUseCase
from authcore.application.use_cases.users.register_user import RegisterUserUseCase
from authcore.domain.users.policies import PasswordPolicy
from authcore.infrastructure.audit import AuditLogger
from authcore.infrastructure.auth.login_attempts import LoginAttemptsTracker
from authcore.infrastructure.auth.session_guard import SessionGuard
from authcore.infrastructure.auth.tokens import JwtTokenService
from authcore.infrastructure.db import build_engine, build_session_factory
from authcore.infrastructure.health import check_database
from authcore.infrastructure.resilience import TransientRetry
from authcore.infrastructure.unit_of_work import SqlAlchemyUnitOfWork, unit_of_work_factory
from authcore.interfaces.http.controllers.auth_controller import AuthController
from authcore.shared.config import AppConfig
from authcore.shared.middleware.rate_limit import InMemoryRateLimiter


class Container:
    def __init__(self, config: AppConfig, *, engine: Engine | None = None) -> None:
        self.config = config
        self._engine = engine

    @cached_property
    def engine(self) -> Engine:
        return self._engine or build_engine(self.config.database)

    @cached_property
    def session_factory(self) -> sessionmaker[Session]:
        return build_session_factory(self.engine)

    @cached_property
    def uow_factory(self) -> Callable[[], SqlAlchemyUnitOfWork]:
        return unit_of_work_factory(self.session_factory)

    @cached_property
    def password_hasher(self) -> WerkzeugPasswordHasher:
        return WerkzeugPasswordHasher(
            method=self.config.auth.password_hash_method,
            work_factor=self.config.auth.password_work_factor,
        )

    @cached_property
    def password_policy(self) -> PasswordPolicy:
        return PasswordPolicy(
            min_length=self.config.auth.password_min_length,
            require_digit=self.config.auth.password_require_digit,
            require_uppercase=self.config.auth.password_require_uppercase,
        )

    @cached_property
    def token_service(self) -> JwtTokenService:
        return JwtTokenService(
            self.config.auth.jwt_secret,
            algorithm=self.config.auth.jwt_algorithm,
            ttl_seconds=self.config.auth.token_ttl_seconds,
            refresh_threshold_seconds=self.config.auth.refresh_threshold_seconds,
        )

    @cached_property
    def login_attempts(self) -> LoginAttemptsTracker:
        return LoginAttemptsTracker(
            max_failures=self.config.auth.login_max_failures,
            block_seconds=self.config.auth.login_block_seconds,
        )

    @cached_property
    def session_rate_limiter(self) -> InMemoryRateLimiter | None:
        security = self.config.security
        if not security.enable_rate_limit:
            return None
        return InMemoryRateLimiter(security.rate_limit_requests, security.rate_limit_window)

    @cached_property
    def auth_rate_limiter(self) -> InMemoryRateLimiter | None:
        security = self.config.security
        if not security.enable_rate_limit:
            return None
        return InMemoryRateLimiter(
            security.auth_rate_limit_requests, security.auth_rate_limit_window
        )

    @cached_property
    def transient_retry(self) -> TransientRetry:
        resilience = self.config.resilience
        return TransientRetry(
            max_retries=resilience.max_retries,
            backoff_base=resilience.backoff_base,
            backoff_cap=resilience.backoff_cap,
        )

    @cached_property
    def audit(self) -> AuditLogger:
        return AuditLogger(self.session_factory)

    @cached_property
    def register_user_use_case(self) -> RegisterUserUseCase:
        return RegisterUserUseCase(
            uow_factory=self.uow_factory,
            tokens=self.token_service,
            password_hasher=self.password_hasher,
            password_policy=self.password_policy,
            retry=self.transient_retry,
        )

    @cached_property
    def login_user_use_case(self) -> LoginUserUseCase:
        return LoginUserUseCase(
            uow_factory=self.uow_factory,
            tokens=self.token_service,
            password_hasher=self.password_hasher,
            attempts=self.login_attempts,
            retry=self.transient_retry,
        )

    @cached_property
    def logout_user_use_case(self) -> LogoutUserUseCase:
        return LogoutUserUseCase(tokens=self.token_service)

    @cached_property
    def get_profile_use_case(self) -> GetProfileUseCase:
        return GetProfileUseCase(uow_factory=self.uow_factory)

    @cached_property
    def session_guard(self) -> SessionGuard:
        return SessionGuard(
            tokens=self.token_service,
            uow_factory=self.uow_factory,
            rate_limiter=self.session_rate_limiter,
        )

    @cached_property
    def auth_controller(self) -> AuthController:
        return AuthController(
            register_use_case=self.register_user_use_case,
            login_use_case=self.login_user_use_case,
            logout_use_case=self.logout_user_use_case,
            profile_use_case=self.get_profile_use_case,
            session_guard=self.session_guard,
            audit=self.audit,
            auth_limiter=self.auth_rate_limiter,
            health_check=lambda: check_database(self.engine),
            service_name=self.config.service_name,
            cookie_secure=self.config.security.cookie_secure,
            cookie_samesite=self.config.security.cookie_samesite,
            metrics_enabled=self.config.observability.metrics_enabled,
        )


__all__ = ["Container"]
