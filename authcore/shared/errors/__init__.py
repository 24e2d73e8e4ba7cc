# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .base import AppError, ErrorKind, rate_limited
from .http import handle_app_error, register_error_handler
from .validation import format_pydantic_errors, raise_validation_error

__all__ = [
    "AppError",
    "ErrorKind",
    "format_pydantic_errors",
    "handle_app_error",
    "raise_validation_error",
    "rate_limited",
    "register_error_handler",
]
