# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from flask import Blueprint, Response, g, jsonify, request

from authcore.application.use_cases.users.get_profile import GetProfileUseCase
from authcore.application.use_cases.users.login_user import LoginUserUseCase
from authcore.application.use_cases.users.logout_user import LogoutUserUseCase
from authcore.application.use_cases.users.register_user import RegisterUserUseCase
from authcore.infrastructure.audit import AuditAction, AuditLogger
from authcore.infrastructure.auth.session_guard import SessionGuard, extract_bearer
from authcore.infrastructure.observability import record_auth_event
from authcore.interfaces.http.dto.auth import (
    AuthSuccessDTO,
    HealthDTO,
    LogoutDTO,
    ProfileDTO,
    SessionStatusDTO,
    UserPublicDTO,
)
from authcore.shared.errors import AppError, ErrorKind
from authcore.shared.logging import logger
from authcore.shared.middleware.proxy import client_address
from authcore.shared.middleware.rate_limit import InMemoryRateLimiter, rate_limit


AUTH_COOKIE = "token"


def _presented_token() -> str | None:
    authorization = request.headers.get("Authorization")
    if not authorization:
        return request.cookies.get(AUTH_COOKIE)
    try:
        return extract_bearer(authorization)
    except AppError:
        return None


def _json_payload() -> object:
    payload = request.get_json(silent=True)
    return {} if payload is None else payload


class AuthController:
    def __init__(
        self,
        *,
        register_use_case: RegisterUserUseCase,
        login_use_case: LoginUserUseCase,
        logout_use_case: LogoutUserUseCase,
        profile_use_case: GetProfileUseCase,
        session_guard: SessionGuard,
        audit: AuditLogger,
        auth_limiter: InMemoryRateLimiter | None = None,
        health_check: Callable[[], bool] | None = None,
        service_name: str = "authcore",
        cookie_secure: bool = False,
        cookie_samesite: str = "Strict",
        metrics_enabled: bool = False,
    ) -> None:
        self._register_use_case = register_use_case
        self._login_use_case = login_use_case
        self._logout_use_case = logout_use_case
        self._profile_use_case = profile_use_case
        self._session_guard = session_guard
        self._audit = audit
        self._auth_limiter = auth_limiter
        self._health_check = health_check
        self._service_name = service_name
        self._metrics_enabled = metrics_enabled
        self._cookie_secure = cookie_secure
        self._cookie_samesite = cookie_samesite

    def _count(self, operation: str, outcome: str) -> None:
        if self._metrics_enabled:
            record_auth_event(operation, outcome)

    def register(self) -> tuple[Response, int]:
        ip_address = client_address()

        try:
            result = self._register_use_case.execute(_json_payload())
        except AppError as exc:
            self._count("register", exc.code)
            if exc.kind is ErrorKind.USER_EXISTS:
                self._audit.log(
                    AuditAction.REGISTER_FAILED,
                    ip_address=ip_address,
                    details={"reason": exc.code},
                    success=False,
                )
            raise

        self._audit.log(
            AuditAction.REGISTER,
            user_id=result.user.id,
            ip_address=ip_address,
            details={"username": result.user.username},
            success=True,
        )

        self._count("register", "success")
        payload = AuthSuccessDTO.from_result(result).model_dump(mode="json")
        logger.info(f"auth.register: ok user_id={result.user.id}")
        return jsonify(payload), 201

    def login(self) -> tuple[Response, int]:
        ip_address = client_address()

        try:
            result = self._login_use_case.execute(_json_payload(), ip_address)
        except AppError as exc:
            self._count("login", exc.code)
            if exc.kind is not ErrorKind.INVALID_INPUT:
                action = (
                    AuditAction.LOGIN_BLOCKED
                    if exc.kind is ErrorKind.RATE_LIMITED
                    else AuditAction.LOGIN_FAILED
                )
                self._audit.log(
                    action,
                    ip_address=ip_address,
                    details={"reason": exc.code},
                    success=False,
                )
            raise

        self._audit.log(
            AuditAction.LOGIN_SUCCESS,
            user_id=result.user.id,
            ip_address=ip_address,
            success=True,
        )

        self._count("login", "success")
        payload = AuthSuccessDTO.from_result(result).model_dump(mode="json")
        logger.info(f"auth.login: ok user_id={result.user.id}")
        return jsonify(payload), 200

    def logout(self) -> tuple[Response, int]:
        user_id = self._logout_use_case.execute(_presented_token())

        self._audit.log(AuditAction.LOGOUT, user_id=user_id, ip_address=client_address())
        self._count("logout", "success")

        response = jsonify(LogoutDTO().model_dump(mode="json"))
        response.delete_cookie(
            AUTH_COOKIE,
            httponly=True,
            secure=self._cookie_secure,
            samesite=self._cookie_samesite,
        )
        logger.info(f"auth.logout: ok user_id={user_id}")
        return response, 200

    def me(self) -> tuple[Response, int]:
        user = self._profile_use_case.execute(g.user_id)
        payload = ProfileDTO(user=UserPublicDTO.from_domain(user)).model_dump(mode="json")
        return jsonify(payload), 200

    def verify_session(self) -> tuple[Response, int]:
        user = self._profile_use_case.execute(g.user_id)
        payload = SessionStatusDTO(user=UserPublicDTO.from_domain(user)).model_dump(mode="json")
        return jsonify(payload), 200

    def health(self) -> tuple[Response, int]:
        database_ok = self._health_check() if self._health_check else True
        payload = HealthDTO(
            status="healthy" if database_ok else "degraded",
            service=self._service_name,
            database=database_ok,
            timestamp=datetime.now(UTC),
        ).model_dump(mode="json")
        return jsonify(payload), 200 if database_ok else 503

    def as_blueprint(self) -> Blueprint:
        limited = rate_limit(self._auth_limiter)
        protected = self._session_guard.protect

        bp = Blueprint("auth", __name__, url_prefix="/api/auth")
        bp.add_url_rule("/register", view_func=limited(self.register), methods=["POST"])
        bp.add_url_rule("/login", view_func=limited(self.login), methods=["POST"])
        bp.add_url_rule("/logout", view_func=self.logout, methods=["POST"])
        bp.add_url_rule("/me", view_func=protected(self.me), methods=["GET"])
        bp.add_url_rule("/verify-session", view_func=protected(self.verify_session), methods=["GET"])
        bp.add_url_rule("/health", view_func=self.health, methods=["GET"])
        return bp
