# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .exceptions import DomainError
from .users.entities import AccountStatus, AuthResult, PublicUser, Role, SessionClaims, User
from .users.exceptions import DuplicateUserError
from .users.policies import PasswordPolicy

__all__ = [
    "AccountStatus",
    "AuthResult",
    "DomainError",
    "DuplicateUserError",
    "PasswordPolicy",
    "PublicUser",
    "Role",
    "SessionClaims",
    "User",
]
