from __future__ import annotations

import base64
import json

import jwt
import pytest

from authcore.domain.users.entities import Role
from authcore.infrastructure.auth.tokens import JwtTokenService
from authcore.shared.errors import AppError, ErrorKind

from conftest import SECRET, T0, FakeClock


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _claims(**overrides: object) -> dict:
    claims = {"sub": "1", "role": "user", "iat": int(T0), "exp": int(T0) + 60}
    claims.update(overrides)
    return claims


def test_issue_and_verify_round_trip(tokens: JwtTokenService) -> None:
    token = tokens.issue(42, Role.ADMIN)

    claims = tokens.verify(token)

    assert claims.user_id == 42
    assert claims.role is Role.ADMIN
    assert (claims.expires_at - claims.issued_at).total_seconds() == 3600


def test_explicit_ttl_overrides_default(tokens: JwtTokenService) -> None:
    claims = tokens.verify(tokens.issue(1, Role.USER, ttl=30))

    assert (claims.expires_at - claims.issued_at).total_seconds() == 30


def test_token_valid_up_to_expiry_and_rejected_after(
    tokens: JwtTokenService, clock: FakeClock
) -> None:
    token = tokens.issue(1, Role.USER, ttl=60)

    clock.now = T0 + 60
    assert tokens.verify(token).user_id == 1

    clock.now = T0 + 60.001
    with pytest.raises(AppError) as excinfo:
        tokens.verify(token)
    assert excinfo.value.kind is ErrorKind.TOKEN_EXPIRED


def test_token_signed_with_other_secret_is_malformed(tokens: JwtTokenService) -> None:
    forged = jwt.encode(_claims(), "another-secret-0123456789-abcdefghijklm", algorithm="HS256")

    with pytest.raises(AppError) as excinfo:
        tokens.verify(forged)
    assert excinfo.value.kind is ErrorKind.MALFORMED_TOKEN


def test_algorithm_in_header_is_not_trusted(tokens: JwtTokenService) -> None:
    other_alg = jwt.encode(_claims(), SECRET, algorithm="HS512")
    unsigned = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(_claims())}."

    for token in (other_alg, unsigned):
        with pytest.raises(AppError) as excinfo:
            tokens.verify(token)
        assert excinfo.value.kind is ErrorKind.MALFORMED_TOKEN


@pytest.mark.parametrize("cut", [slice(None, -4), slice(None, 20), slice(5, None)])
def test_tampered_token_is_malformed(tokens: JwtTokenService, cut: slice) -> None:
    token = tokens.issue(1, Role.USER)

    with pytest.raises(AppError) as excinfo:
        tokens.verify(token[cut])
    assert excinfo.value.kind is ErrorKind.MALFORMED_TOKEN


@pytest.mark.parametrize(
    "claims",
    [
        {"sub": "1", "iat": int(T0)},
        {"sub": "not-a-number", "iat": int(T0), "exp": int(T0) + 60},
        {"sub": "1", "role": "superuser", "iat": int(T0), "exp": int(T0) + 60},
    ],
)
def test_unusable_claims_are_malformed(tokens: JwtTokenService, claims: dict) -> None:
    token = jwt.encode(claims, SECRET, algorithm="HS256")

    with pytest.raises(AppError) as excinfo:
        tokens.verify(token)
    assert excinfo.value.kind is ErrorKind.MALFORMED_TOKEN


@pytest.mark.parametrize("token", ["", "abc", "a.b.c"])
def test_garbage_is_malformed(tokens: JwtTokenService, token: str) -> None:
    with pytest.raises(AppError) as excinfo:
        tokens.verify(token)
    assert excinfo.value.kind is ErrorKind.MALFORMED_TOKEN


def test_refresh_signal_below_threshold(tokens: JwtTokenService, clock: FakeClock) -> None:
    token = tokens.issue(1, Role.USER)

    clock.now = T0 + 3000
    assert tokens.needs_refresh(tokens.verify(token)) is False

    clock.now = T0 + 3001
    claims = tokens.verify(token)
    assert tokens.needs_refresh(claims) is True
    assert tokens.remaining_seconds(claims) == pytest.approx(599)


def test_constructor_rejects_unsafe_settings() -> None:
    with pytest.raises(ValueError):
        JwtTokenService("")
    with pytest.raises(ValueError):
        JwtTokenService(SECRET, algorithm="none")
    with pytest.raises(ValueError):
        JwtTokenService(SECRET, algorithm="RS256")
