# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import re
from dataclasses import dataclass

_DIGIT = re.compile(r"\d")
_UPPER = re.compile(r"[A-Z]")


@dataclass(slots=True, frozen=True)
class PasswordPolicy:
    min_length: int = 8
    max_length: int = 128
    require_digit: bool = True
    require_uppercase: bool = True

    def violations(self, password: str) -> list[tuple[str, str]]:
        """Return ``(type, message)`` pairs for every unmet requirement."""

        problems: list[tuple[str, str]] = []
        if len(password) < self.min_length:
            problems.append(
                ("password_too_short", f"Password must be at least {self.min_length} characters")
            )
        if len(password) > self.max_length:
            problems.append(
                ("password_too_long", f"Password must be at most {self.max_length} characters")
            )
        if self.require_digit and not _DIGIT.search(password):
            problems.append(("password_no_digit", "Password must contain at least one digit"))
        if self.require_uppercase and not _UPPER.search(password):
            problems.append(
                ("password_no_uppercase", "Password must contain at least one uppercase letter")
            )
        return problems
