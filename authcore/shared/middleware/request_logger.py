# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import hashlib
import secrets
import time

from flask import Flask, Response, g, request

from authcore.infrastructure.observability import observe_request
from authcore.shared.logging import clear_correlation_id, logger, set_correlation_id
from authcore.shared.middleware.proxy import client_address

REQUEST_ID_HEADER = "X-Request-ID"

_SENSITIVE_HEADERS = {"authorization", "cookie", "x-refresh-token", "x-api-key"}


def _fingerprint(value: str) -> str:
    return f"<hashed:{hashlib.sha256(value.encode()).hexdigest()[:8]}>"


def _safe_headers() -> dict[str, str]:
    return {
        key: _fingerprint(value) if key.lower() in _SENSITIVE_HEADERS else value
        for key, value in request.headers.items()
    }


def configure_request_logging(
    app: Flask, *, debug_mode: bool = False, metrics_enabled: bool = False
) -> None:
    @app.before_request
    def _before_request() -> None:
        incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
        g.request_id = incoming[:64] or secrets.token_urlsafe(8)
        g.request_start_time = time.perf_counter()
        set_correlation_id(g.request_id)

        if debug_mode:
            logger.debug(
                f"Request started: {request.method} {request.path} from {client_address()} "
                f"headers={_safe_headers()} body_size={request.content_length or 0}"
            )

    @app.after_request
    def _after_request(response: Response) -> Response:
        started = getattr(g, "request_start_time", time.perf_counter())
        duration_ms = (time.perf_counter() - started) * 1000.0
        user_id = getattr(g, "user_id", None)

        logger.info(
            f"{request.method} {request.path} -> {response.status_code} "
            f"in {duration_ms:.1f} ms from {client_address()} user={user_id}"
        )
        if metrics_enabled:
            endpoint = request.url_rule.rule if request.url_rule else "unmatched"
            observe_request(endpoint, response.status_code, duration_ms / 1000.0)
        response.headers.setdefault(REQUEST_ID_HEADER, getattr(g, "request_id", "-"))
        return response

    @app.teardown_request
    def _teardown_request(exc: BaseException | None) -> None:
        if exc is not None:
            logger.error(
                f"Request error: {type(exc).__name__} on {request.method} {request.path}"
            )
        clear_correlation_id()


__all__ = ["REQUEST_ID_HEADER", "configure_request_logging"]
