# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import math
from http import HTTPStatus

from flask import Flask, Response, g, jsonify, request
from werkzeug.exceptions import HTTPException

from authcore.shared.logging import logger
from authcore.shared.middleware.proxy import client_address

from .base import AppError, ErrorKind


def handle_app_error(error: AppError) -> tuple[Response, HTTPStatus]:
    response = jsonify(error.to_dict())
    if error.retry_after is not None:
        response.headers["Retry-After"] = str(max(1, math.ceil(error.retry_after)))
    return response, error.status


def register_error_handler(
    app: Flask,
    *,
    debug_mode: bool = False,
    default_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR,
) -> None:
    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        if exc.kind is ErrorKind.INTERNAL_FAILURE:
            logger.error(f"Internal failure surfaced on {request.method} {request.path}")
        else:
            logger.info(f"Handled application error {exc.code} on {request.method} {request.path}")
        return handle_app_error(exc)

    @app.errorhandler(HTTPException)
    def _handle_http(exc: HTTPException):
        if exc.code is None or exc.code < 400:
            return exc
        code = exc.name.lower().replace(" ", "_").replace("'", "")
        response = jsonify({"error": code, "message": exc.name})
        for name, value in exc.get_headers():
            if name.lower() != "content-type":
                response.headers[name] = value
        return response, exc.code

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        user_id = getattr(g, "user_id", None)

        if debug_mode:
            logger.exception(
                f"Unhandled exception: {request.method} {request.path} "
                f"from {client_address()}, user={user_id}, "
                f"query={dict(request.args)}, body_size={len(request.data)}"
            )
        else:
            logger.error(f"Error: {type(exc).__name__} on {request.method} {request.path}")

        response = jsonify({"error": "internal_error", "message": "Internal server error"})
        return response, default_status


__all__ = ["handle_app_error", "register_error_handler"]
