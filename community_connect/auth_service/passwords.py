"""
Password hashing helpers.

Passwords are stretched with Argon2id (memory-hard) using a fresh 16-byte
salt per password. The stored value is `<hex derived key>.<hex salt>`.
"""

import hmac
import os
from typing import Optional

from argon2.low_level import Type, hash_secret_raw

from community_connect.gateway import config

SALT_BYTES = 16
KEY_BYTES = 64

_dummy_hash: Optional[str] = None


def _derive(password: str, salt: bytes) -> bytes:
    return hash_secret_raw(
        secret=password.encode("utf-8"),
        salt=salt,
        time_cost=config.PASSWORD_TIME_COST,
        memory_cost=config.PASSWORD_MEMORY_COST,
        parallelism=config.PASSWORD_PARALLELISM,
        hash_len=KEY_BYTES,
        type=Type.ID,
    )


def hash_password(password: str) -> str:
    """
    Hash a password for storage.

    Args:
        password (str): Plain text password.

    Returns:
        str: "<hex derived key>.<hex salt>"

    Raises:
        ValueError: If the password is empty.
    """
    if not password:
        raise ValueError("Password cannot be empty")
    salt = os.urandom(SALT_BYTES)
    return f"{_derive(password, salt).hex()}.{salt.hex()}"


def verify_password(password: Optional[str], stored: Optional[str]) -> bool:
    """
    Check a password against a stored hash.

    Returns False instead of raising for missing input or a malformed
    stored value (no separator, bad hex, wrong key length).
    """
    if not password or not stored:
        return False

    hashed_hex, sep, salt_hex = stored.partition(".")
    if not sep or not hashed_hex or not salt_hex:
        return False

    try:
        expected = bytes.fromhex(hashed_hex)
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return False
    if len(expected) != KEY_BYTES:
        return False

    return hmac.compare_digest(_derive(password, salt), expected)


def verify_dummy(password: Optional[str]) -> bool:
    """
    Run a full verification against a throwaway hash.

    Used when the username is unknown so the response takes as long as a
    wrong-password attempt. Always returns False.
    """
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password(os.urandom(16).hex())
    verify_password(password or "", _dummy_hash)
    return False
