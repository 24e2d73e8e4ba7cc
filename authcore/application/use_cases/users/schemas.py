# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from authcore.domain.users.policies import PasswordPolicy

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_MAX_LENGTH = 254
USERNAME_MAX_LENGTH = 50

_DEFAULT_POLICY = PasswordPolicy()


class RegistrationRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    email: str
    username: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise PydanticCustomError("missing", "Email is required", {})
        if len(value) > EMAIL_MAX_LENGTH:
            raise PydanticCustomError(
                "email_too_long",
                "Email must be at most {max_length} characters",
                {"max_length": EMAIL_MAX_LENGTH},
            )
        if not EMAIL_PATTERN.match(value):
            raise PydanticCustomError("email_invalid", "Invalid email format", {})
        return value

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise PydanticCustomError("missing", "Username cannot be empty", {})
        if len(value) > USERNAME_MAX_LENGTH:
            raise PydanticCustomError(
                "username_too_long",
                "Username must be at most {max_length} characters",
                {"max_length": USERNAME_MAX_LENGTH},
            )
        return value

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, value: str, info: ValidationInfo) -> str:
        if not value.strip():
            raise PydanticCustomError("missing", "Password cannot be empty", {})

        policy = (info.context or {}).get("policy", _DEFAULT_POLICY)
        problems = policy.violations(value)
        if problems:
            error_type, message = problems[0]
            raise PydanticCustomError(error_type, message, {})
        return value


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise PydanticCustomError("missing", "Email is required", {})
        return value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        # No strength check on login
        if not value:
            raise PydanticCustomError("missing", "Password is required", {})
        return value


__all__ = ["EMAIL_PATTERN", "LoginRequest", "RegistrationRequest"]
