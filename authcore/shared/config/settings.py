# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import os
import sys
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_SECRETS = ("dev", "development", "test", "change-me", "")


def _parse_bool(value: str | bool) -> bool:
    if isinstance(value, str):
        return value.lower() in ("1", "true", "yes")
    return bool(value)


class DatabaseConfig(BaseModel):
    url: str = Field("sqlite:///authcore.db", alias="DATABASE_URL")
    pool_size: int = Field(10, ge=1, alias="DATABASE_POOL_SIZE")
    max_overflow: int = Field(5, ge=0, alias="DATABASE_MAX_OVERFLOW")
    pool_timeout: float = Field(30.0, ge=0.1, alias="DATABASE_POOL_TIMEOUT")

    model_config = ConfigDict(validate_by_name=True)


class ResilienceConfig(BaseModel):
    # Retries of a whole unit of work on transient store errors (locked/busy)
    max_retries: int = Field(3, ge=0, alias="RESILIENCE_MAX_RETRIES")
    backoff_base: float = Field(0.05, ge=0.0, alias="RESILIENCE_BACKOFF_BASE")
    backoff_cap: float = Field(1.0, ge=0.0, alias="RESILIENCE_BACKOFF_CAP")

    model_config = ConfigDict(validate_by_name=True)


class ObservabilityConfig(BaseModel):
    metrics_enabled: bool = Field(True, alias="METRICS_ENABLED")

    model_config = ConfigDict(validate_by_name=True)

    @field_validator("metrics_enabled", mode="before")
    @classmethod
    def _parse_enabled(cls, value: str | bool) -> bool:
        return _parse_bool(value)


class SecurityConfig(BaseModel):
    allowed_origins: list[str] = Field(["*"], alias="ALLOWED_ORIGINS")
    enable_hsts: bool = Field(False, alias="ENABLE_HSTS")

    # Number of reverse proxies whose X-Forwarded-For entry is trusted
    trusted_proxy_hops: int = Field(0, ge=0, alias="TRUSTED_PROXY_HOPS")

    cookie_secure: bool = Field(False, alias="COOKIE_SECURE")
    cookie_samesite: Literal["Strict", "Lax", "None"] = Field("Strict", alias="COOKIE_SAMESITE")

    # Session guard ceiling, keyed by client address
    enable_rate_limit: bool = Field(True, alias="ENABLE_RATE_LIMIT")
    rate_limit_requests: int = Field(60, ge=1, alias="RL_LIMIT")
    rate_limit_window: float = Field(60.0, ge=0.1, alias="RL_WINDOW")

    # Login/register endpoints
    auth_rate_limit_requests: int = Field(20, ge=1, alias="AUTH_RL_LIMIT")
    auth_rate_limit_window: float = Field(15 * 60.0, ge=0.1, alias="AUTH_RL_WINDOW")

    model_config = ConfigDict(validate_by_name=True)

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("enable_rate_limit", "enable_hsts", "cookie_secure", mode="before")
    @classmethod
    def _parse_enabled(cls, value: str | bool) -> bool:
        return _parse_bool(value)


class AuthConfig(BaseModel):
    jwt_secret: str = Field("dev", alias="JWT_SECRET")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    token_ttl_seconds: int = Field(3600, ge=1, alias="JWT_TTL_SECONDS")
    refresh_threshold_seconds: int = Field(600, ge=0, alias="JWT_REFRESH_THRESHOLD_SECONDS")

    password_hash_method: str = Field("pbkdf2:sha256", alias="PASSWORD_HASH_METHOD")
    password_work_factor: int = Field(600_000, ge=1, alias="PASSWORD_WORK_FACTOR")
    password_min_length: int = Field(8, ge=1, alias="PASSWORD_MIN_LENGTH")
    password_require_digit: bool = Field(True, alias="PASSWORD_REQUIRE_DIGIT")
    password_require_uppercase: bool = Field(True, alias="PASSWORD_REQUIRE_UPPERCASE")

    login_max_failures: int = Field(5, ge=1, alias="LOGIN_MAX_FAILURES")
    login_block_seconds: float = Field(15 * 60.0, ge=1.0, alias="LOGIN_BLOCK_SECONDS")

    model_config = ConfigDict(validate_by_name=True)

    @field_validator("jwt_algorithm", mode="after")
    @classmethod
    def _hmac_only(cls, value: str) -> str:
        value = value.upper()
        if value not in ("HS256", "HS384", "HS512"):
            raise ValueError("JWT_ALGORITHM must be one of HS256, HS384, HS512")
        return value

    @field_validator("password_hash_method", mode="after")
    @classmethod
    def _known_method(cls, value: str) -> str:
        if value not in ("pbkdf2:sha256", "pbkdf2:sha512", "scrypt"):
            raise ValueError("PASSWORD_HASH_METHOD must be pbkdf2:sha256, pbkdf2:sha512 or scrypt")
        return value

    @field_validator("password_require_digit", "password_require_uppercase", mode="before")
    @classmethod
    def _parse_flags(cls, value: str | bool) -> bool:
        return _parse_bool(value)


def _database_config_factory() -> DatabaseConfig:
    return DatabaseConfig.model_validate(dict(os.environ))


def _resilience_config_factory() -> ResilienceConfig:
    return ResilienceConfig.model_validate(dict(os.environ))


def _observability_config_factory() -> ObservabilityConfig:
    return ObservabilityConfig.model_validate(dict(os.environ))


def _security_config_factory() -> SecurityConfig:
    return SecurityConfig.model_validate(dict(os.environ))


def _auth_config_factory() -> AuthConfig:
    return AuthConfig.model_validate(dict(os.environ))


class AppConfig(BaseSettings):
    app_env: str = Field("development", alias="APP_ENV")
    service_name: str = Field("authcore", alias="SERVICE_NAME")
    debug_logging: bool = Field(False, alias="DEBUG_LOGGING")

    database: DatabaseConfig = Field(default_factory=_database_config_factory)
    security: SecurityConfig = Field(default_factory=_security_config_factory)
    auth: AuthConfig = Field(default_factory=_auth_config_factory)
    resilience: ResilienceConfig = Field(default_factory=_resilience_config_factory)
    observability: ObservabilityConfig = Field(default_factory=_observability_config_factory)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        validate_by_name=True,
    )

    @field_validator("debug_logging", mode="before")
    @classmethod
    def _parse_debug_logging(cls, value: str | bool) -> bool:
        return _parse_bool(value)

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "AppConfig":
        if not self.is_production():
            return self

        if self.auth.jwt_secret in _INSECURE_SECRETS or len(self.auth.jwt_secret) < 32:
            print(
                "\n❌ CRITICAL SECURITY ERROR: Insecure JWT_SECRET detected in production!\n"
                "   JWT_SECRET must be a random value of at least 32 characters.\n"
                "   Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(48))\"\n",
                file=sys.stderr,
            )
            sys.exit(1)

        warnings = []
        if not self.security.enable_rate_limit:
            warnings.append("⚠️  Rate limiting is DISABLED")
        if "*" in self.security.allowed_origins:
            warnings.append("⚠️  CORS allows wildcard (*) origins")
        if not self.security.enable_hsts:
            warnings.append("⚠️  HSTS is DISABLED (recommended for HTTPS)")
        if not self.security.cookie_secure:
            warnings.append("⚠️  COOKIE_SECURE is off (cookies sent over plain HTTP)")

        if warnings:
            print("\n⚠️  PRODUCTION SECURITY WARNINGS:", file=sys.stderr)
            for warning in warnings:
                print(f"   {warning}", file=sys.stderr)
            print("", file=sys.stderr)

        return self

    def is_production(self) -> bool:
        return self.app_env.lower() in ("production", "prod")


@lru_cache(maxsize=1)
def load_config() -> AppConfig:
    return AppConfig()


__all__ = [
    "AppConfig",
    "AuthConfig",
    "DatabaseConfig",
    "ObservabilityConfig",
    "ResilienceConfig",
    "SecurityConfig",
    "load_config",
]
