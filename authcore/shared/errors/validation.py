# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from typing import Any, NoReturn

from pydantic import ValidationError as PydanticValidationError

from .base import AppError, ErrorKind


def format_pydantic_errors(exc: PydanticValidationError) -> dict[str, Any]:
    errors_list = []
    fields_set = set()

    # "input" is deliberately not copied: it would echo passwords back.
    for error in exc.errors(include_url=False, include_input=False):
        loc = error.get("loc", ())
        field_path = ".".join(str(part) for part in loc if part is not None)

        if field_path:
            fields_set.add(field_path)

        errors_list.append(
            {
                "field": field_path or "unknown",
                "type": error.get("type", "value_error"),
                "message": error.get("msg", ""),
            }
        )

    return {
        "fields": sorted(fields_set),
        "errors": errors_list,
    }


def raise_validation_error(exc: PydanticValidationError) -> NoReturn:
    context = format_pydantic_errors(exc)
    raise AppError(ErrorKind.INVALID_INPUT, details=context) from exc


__all__ = [
    "format_pydantic_errors",
    "raise_validation_error",
]
