# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import re
from typing import Any

SENSITIVE_PATTERNS = [
    # Signing secrets
    (r"(secret[_-]?key\s*[:=]\s*['\"]?)([a-zA-Z0-9_\-]{20,})(['\"]?)", r"\1***REDACTED***\3"),
    (r"(jwt[_-]?secret\s*[:=]\s*['\"]?)([^\s'\"]{6,})(['\"]?)", r"\1***REDACTED***\3", re.IGNORECASE),

    # Tokens
    (r"(bearer\s+)([a-zA-Z0-9_\-\.]{20,})", r"\1***REDACTED***", re.IGNORECASE),
    (r"eyJ[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]*", r"***JWT***"),
    (r"(token\s*[:=]\s*['\"]?)([a-zA-Z0-9_\-\.]{20,})(['\"]?)", r"\1***REDACTED***\3"),

    # Password digests (werkzeug format: method$salt$hex)
    (r"\b(pbkdf2:[a-z0-9]+(?::\d+)?|scrypt(?::\d+){0,3})\$[^\s$]+\$[0-9a-f]+", r"***HASH***"),

    # Passwords
    (r"(password(?:_hash)?['\"]?\s*[:=]\s*['\"]?)([^'\"\s,}]{1,})(['\"]?)", r"\1***REDACTED***\3", re.IGNORECASE),
    (r"(pwd\s*[:=]\s*['\"]?)([^'\"\s]{6,})(['\"]?)", r"\1***REDACTED***\3", re.IGNORECASE),

    # Database URLs with credentials
    (r"(postgres(?:ql)?(?:\+\w+)?|mysql(?:\+\w+)?)://([^:/]+):([^@]+)@", r"\1://\2:***REDACTED***@"),

    # Email addresses (partial masking)
    (r"([a-zA-Z0-9._%+-]+)@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})", r"***@\2"),

    # Authorization headers
    (r"(authorization\s*:\s*['\"]?)([^'\"]{10,})(['\"]?)", r"\1***REDACTED***\3", re.IGNORECASE),
]

_COMPILED = [
    (re.compile(pattern_tuple[0], pattern_tuple[2] if len(pattern_tuple) == 3 else 0), pattern_tuple[1])
    for pattern_tuple in SENSITIVE_PATTERNS
]


def sanitize_message(message: str) -> str:
    sanitized = message
    for pattern, replacement in _COMPILED:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def sanitize_record(record: dict[str, Any]) -> bool:
    if "message" in record:
        record["message"] = sanitize_message(record["message"])
    return True


__all__ = ["SENSITIVE_PATTERNS", "sanitize_message", "sanitize_record"]
