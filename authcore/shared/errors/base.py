# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from typing import Any


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    USER_EXISTS = "user_exists"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_INACTIVE = "account_inactive"
    MISSING_TOKEN = "missing_token"
    MALFORMED_TOKEN = "malformed_token"
    TOKEN_EXPIRED = "token_expired"
    USER_INACTIVE = "user_inactive"
    RATE_LIMITED = "rate_limited"
    INTERNAL_FAILURE = "internal_failure"


_STATUS: dict[ErrorKind, HTTPStatus] = {
    ErrorKind.INVALID_INPUT: HTTPStatus.UNPROCESSABLE_ENTITY,
    ErrorKind.USER_EXISTS: HTTPStatus.CONFLICT,
    ErrorKind.INVALID_CREDENTIALS: HTTPStatus.UNAUTHORIZED,
    ErrorKind.ACCOUNT_INACTIVE: HTTPStatus.FORBIDDEN,
    ErrorKind.MISSING_TOKEN: HTTPStatus.UNAUTHORIZED,
    ErrorKind.MALFORMED_TOKEN: HTTPStatus.UNAUTHORIZED,
    ErrorKind.TOKEN_EXPIRED: HTTPStatus.UNAUTHORIZED,
    ErrorKind.USER_INACTIVE: HTTPStatus.FORBIDDEN,
    ErrorKind.RATE_LIMITED: HTTPStatus.TOO_MANY_REQUESTS,
    ErrorKind.INTERNAL_FAILURE: HTTPStatus.INTERNAL_SERVER_ERROR,
}

_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_INPUT: "Validation failed",
    ErrorKind.USER_EXISTS: "Email or username already in use",
    ErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    ErrorKind.ACCOUNT_INACTIVE: "Account is not active",
    ErrorKind.MISSING_TOKEN: "Authorization token required",
    ErrorKind.MALFORMED_TOKEN: "Invalid token",
    ErrorKind.TOKEN_EXPIRED: "Session expired. Please login again.",
    ErrorKind.USER_INACTIVE: "Account deactivated",
    ErrorKind.RATE_LIMITED: "Too many requests",
    ErrorKind.INTERNAL_FAILURE: "Internal server error",
}


@dataclass(slots=True, eq=False)
class AppError(Exception):
    """Single tagged error carried through every layer.

    ``kind`` selects the HTTP status and the default client-facing message;
    ``details`` must only ever hold data that is safe to show to the client.
    """

    kind: ErrorKind
    message: str = ""
    details: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if not self.message:
            self.message = _MESSAGES[self.kind]
        Exception.__init__(self, self.kind.value)

    @property
    def code(self) -> str:
        return self.kind.value

    @property
    def status(self) -> HTTPStatus:
        return _STATUS[self.kind]

    @property
    def retry_after(self) -> float | None:
        if self.kind is not ErrorKind.RATE_LIMITED or not self.details:
            return None
        value = self.details.get("retry_after")
        return float(value) if value is not None else None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = dict(self.details)
        return payload


def rate_limited(retry_after: float) -> AppError:
    return AppError(ErrorKind.RATE_LIMITED, details={"retry_after": round(max(retry_after, 0.0), 1)})


__all__ = ["AppError", "ErrorKind", "rate_limited"]
