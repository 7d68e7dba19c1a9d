"""Tests for password hashing and validation."""

import pytest

from perfo.auth.password import (
    PasswordStrengthError,
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("SecureP@ss1")
        assert verify_password("SecureP@ss1", hashed) is True

    def test_wrong_password_rejected(self):
        hashed = hash_password("CorrectP@ss1")
        assert verify_password("WrongP@ss1", hashed) is False

    def test_hash_is_argon2id(self):
        assert hash_password("TestP@ss1").startswith("$argon2id$")

    def test_check_needs_rehash(self):
        assert check_needs_rehash(hash_password("TestP@ss1")) is False

    def test_garbage_hash_does_not_verify(self):
        assert verify_password("TestP@ss1", "not-a-hash") is False


class TestPasswordStrength:
    def test_strong_password_accepted(self):
        validate_password_strength("StrongP@ss1")

    @pytest.mark.parametrize(
        "password",
        ["", "   ", "Short1", "nouppercase1", "NOLOWERCASE1", "NoDigitHere", "A" * 100 + "a" * 29 + "1"],
    )
    def test_weak_password_rejected(self, password):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength(password)
