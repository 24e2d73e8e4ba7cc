# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Password hashing strategies."""

from __future__ import annotations

import secrets

from werkzeug.security import check_password_hash, generate_password_hash

from authcore.domain.users.repositories import PasswordHasher


def _method_string(method: str, work_factor: int) -> str:
    if method == "scrypt":
        return f"scrypt:{work_factor}:8:1"
    return f"{method}:{work_factor}"


class WerkzeugPasswordHasher(PasswordHasher):
    """Salted KDF hashing with a configurable work factor.

    ``work_factor`` is the PBKDF2 iteration count, or the scrypt ``n``
    parameter (must then be a power of two). A decoy digest is computed once
    with the same parameters so that checking a password against "no user"
    costs exactly as much as checking it against a real account.
    """

    def __init__(self, method: str = "pbkdf2:sha256", work_factor: int = 600_000) -> None:
        self._method = _method_string(method, work_factor)
        self._decoy = generate_password_hash(secrets.token_urlsafe(32), method=self._method)

    @property
    def method(self) -> str:
        return self._method

    def hash(self, password: str) -> str:
        return str(generate_password_hash(password, method=self._method))

    def verify(self, password: str, hashed: str) -> bool:
        if not isinstance(password, str) or not isinstance(hashed, str):
            return False
        try:
            return bool(check_password_hash(hashed, password))
        except (ValueError, TypeError, OverflowError, MemoryError):
            return False

    def verify_decoy(self, password: str) -> bool:
        self.verify(password if isinstance(password, str) else "", self._decoy)
        return False
