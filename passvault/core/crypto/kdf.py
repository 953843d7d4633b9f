"""
Key Derivation Functions
========================

Password-based derivation of the vault master key.

Implements:
    - PBKDF2-HMAC-SHA256 with a fixed iteration count
    - CSPRNG salt generation

The iteration count, salt size and key size are part of the vault file
format: they are not stored in the file, so changing any of them makes
existing vaults undecryptable.
"""

from __future__ import annotations

import secrets
from typing import Final

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from passvault.core.memory.zeroization import ZeroizeContext, secure_zero

PBKDF2_ITERATIONS: Final[int] = 100_000
SALT_LENGTH: Final[int] = 16
KEY_LENGTH: Final[int] = 32  # 256 bits for AES-256


class KeyDerivationError(Exception):
    """Raised when the derivation algorithm or its parameters fail."""
    pass


def generate_salt() -> bytes:
    """
    Generate a fresh vault salt.

    Returns:
        16 bytes from the OS CSPRNG
    """
    return secrets.token_bytes(SALT_LENGTH)


def derive_key(passphrase: bytearray, salt: bytes) -> bytearray:
    """
    Derive the 256-bit vault key from a passphrase using PBKDF2-HMAC-SHA256.

    The passphrase buffer is zeroed before this function returns, whether
    derivation succeeds or fails. Callers must not reuse it.

    Args:
        passphrase: UTF-8 passphrase bytes in a mutable buffer
        salt: The vault salt (16 bytes)

    Returns:
        Derived key in a mutable buffer, so it can be wiped later

    Raises:
        KeyDerivationError: On a parameter or backend fault. Passphrase
            content never causes a failure.
    """
    if not isinstance(passphrase, bytearray):
        raise KeyDerivationError("Passphrase must be a mutable bytearray")

    with ZeroizeContext(passphrase):
        if len(salt) != SALT_LENGTH:
            raise KeyDerivationError(f"Salt must be exactly {SALT_LENGTH} bytes")

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=bytes(salt),
            iterations=PBKDF2_ITERATIONS,
        )
        key = bytearray(KEY_LENGTH)
        try:
            kdf.derive_into(passphrase, key)
        except (TypeError, ValueError, UnsupportedAlgorithm) as e:
            secure_zero(key)
            raise KeyDerivationError(f"Key derivation failed: {e}") from e
        return key
