"""
security helpers:
- Argon2 password hashing via argon2-cffi
- SHA-256 hashing of refresh tokens for ledger storage/lookup
- JTI generation for refresh token identifiers
"""
from __future__ import annotations

import hashlib
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2 (salted, slow).
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def hash_token(token: str) -> str:
    """One-way, deterministic digest of a raw refresh token. Never use for passwords."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_jti() -> str:
    """Generate a random JTI (16 bytes, hex).
    """
    return secrets.token_hex(16)
