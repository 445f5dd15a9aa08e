import pytest

from hardware_store.core.errors import WeakInputError
from hardware_store.core.passwords import (
    generate_temporary_password,
    hash_password,
    validate_password_strength,
    verify_password,
)


def test_hash_and_verify():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert hashed.startswith("$argon2")
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_hashes_are_salted():
    assert hash_password("secret123") != hash_password("secret123")


def test_hash_rejects_short_password():
    with pytest.raises(WeakInputError):
        hash_password("abc12")


@pytest.mark.parametrize("plain,hashed", [("", "x"), ("secret123", ""), (None, None), ("secret123", "not-a-hash")])
def test_verify_returns_false_on_bad_input(plain, hashed):
    assert verify_password(plain, hashed) is False


def test_strength_reports_every_violation():
    result = validate_password_strength("abc")
    assert not result.valid
    assert result.violations == [
        "Password must be at least 6 characters long",
        "Password must contain at least one digit",
    ]


def test_strength_missing_password():
    result = validate_password_strength("")
    assert result.violations == ["Password is required"]


def test_strength_too_long_and_no_letter():
    result = validate_password_strength("1" * 129)
    assert "Password cannot exceed 128 characters" in result.violations
    assert "Password must contain at least one letter" in result.violations


def test_strong_password():
    assert validate_password_strength("achat2024").valid


def test_temporary_password_is_strong():
    password = generate_temporary_password()
    assert len(password) == 12
    assert validate_password_strength(password).valid
