"""
Password hashing (argon2id) and the account password policy.

A password must be 8-128 characters and contain an uppercase letter,
a lowercase letter, a number and one of the special characters @$!%*?&.
Letters and digits are ASCII only.
"""

from __future__ import annotations

from collections.abc import Callable

import argon2

SPECIAL_CHARACTERS = "@$!%*?&"
MIN_LENGTH = 8
MAX_LENGTH = 128

_hasher = argon2.PasswordHasher(type=argon2.Type.ID)

# Checked in order; the first failing rule is reported.
_RULES: list[tuple[Callable[[str], bool], str]] = [
    (lambda p: len(p) >= MIN_LENGTH, f"Password must be at least {MIN_LENGTH} characters long"),
    (lambda p: len(p) <= MAX_LENGTH, f"Password must not exceed {MAX_LENGTH} characters"),
    (lambda p: any("A" <= c <= "Z" for c in p), "Password must contain at least one uppercase letter"),
    (lambda p: any("a" <= c <= "z" for c in p), "Password must contain at least one lowercase letter"),
    (lambda p: any("0" <= c <= "9" for c in p), "Password must contain at least one number"),
    (
        lambda p: any(c in SPECIAL_CHARACTERS for c in p),
        f"Password must contain at least one special character ({SPECIAL_CHARACTERS})",
    ),
]


class PasswordStrengthError(ValueError):
    """Raised when a password breaks the password policy."""


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """True if ``password`` matches ``password_hash``. Malformed hashes never match."""
    try:
        return _hasher.verify(password_hash, password)
    except (argon2.exceptions.VerifyMismatchError, argon2.exceptions.InvalidHashError):
        return False


def check_needs_rehash(password_hash: str) -> bool:
    """True when the stored hash was made with older hasher parameters."""
    return _hasher.check_needs_rehash(password_hash)


def validate_password_strength(password: str) -> None:
    """Raise PasswordStrengthError naming the first policy rule ``password`` breaks."""
    if not password.strip():
        msg = "Password cannot be empty"
        raise PasswordStrengthError(msg)
    for check, message in _RULES:
        if not check(password):
            raise PasswordStrengthError(message)
