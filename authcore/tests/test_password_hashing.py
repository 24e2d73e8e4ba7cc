from __future__ import annotations

import pytest

from authcore.application.services.password_hashing import WerkzeugPasswordHasher


def test_hash_round_trip(hasher: WerkzeugPasswordHasher) -> None:
    hashed = hasher.hash("Secret123")

    assert hashed != "Secret123"
    assert hasher.verify("Secret123", hashed) is True
    assert hasher.verify("Secret124", hashed) is False


def test_hashes_are_salted(hasher: WerkzeugPasswordHasher) -> None:
    assert hasher.hash("Secret123") != hasher.hash("Secret123")


def test_work_factor_is_encoded_in_digest() -> None:
    hasher = WerkzeugPasswordHasher("pbkdf2:sha512", work_factor=1_500)

    assert hasher.method == "pbkdf2:sha512:1500"
    assert hasher.hash("Secret123").startswith("pbkdf2:sha512:1500$")


def test_scrypt_method() -> None:
    hasher = WerkzeugPasswordHasher("scrypt", work_factor=1024)

    hashed = hasher.hash("Secret123")

    assert hasher.method == "scrypt:1024:8:1"
    assert hasher.verify("Secret123", hashed) is True


@pytest.mark.parametrize(
    "digest",
    [
        "",
        "not-a-hash",
        "pbkdf2:sha256:abc$salt$deadbeef",
        "unknown-method$salt$deadbeef",
        "pbkdf2:sha256:1000$$",
    ],
)
def test_malformed_digest_fails_closed(hasher: WerkzeugPasswordHasher, digest: str) -> None:
    assert hasher.verify("Secret123", digest) is False


def test_non_string_inputs_fail_closed(hasher: WerkzeugPasswordHasher) -> None:
    hashed = hasher.hash("Secret123")

    assert hasher.verify(None, hashed) is False  # type: ignore[arg-type]
    assert hasher.verify("Secret123", None) is False  # type: ignore[arg-type]


def test_decoy_never_matches(hasher: WerkzeugPasswordHasher) -> None:
    assert hasher.verify_decoy("Secret123") is False
    assert hasher.verify_decoy("") is False
