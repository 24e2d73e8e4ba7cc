# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from authcore.domain.exceptions import DomainError


class DuplicateUserError(DomainError):
    """Raised by the store when a uniqueness constraint rejects an insert."""
