"""
PassVault Cryptographic Core
============================

Architecture:
    1. PBKDF2-HMAC-SHA256: master passphrase -> 256-bit vault key
    2. AES-256-GCM: authenticated encryption of the record payload

Security Properties:
    - All encryption is authenticated (AEAD)
    - Keys never touch disk (memory-only)
    - Secure RNG for all random values
    - Passphrase buffers are wiped by the derivation itself

WARNING: This module handles sensitive cryptographic material.
         Incorrect usage can compromise security.
"""

from passvault.core.crypto.aes_gcm import AesGcmCipher, DecryptionFailure
from passvault.core.crypto.kdf import (
    KeyDerivationError,
    derive_key,
    generate_salt,
)

__all__ = [
    "AesGcmCipher",
    "DecryptionFailure",
    "KeyDerivationError",
    "derive_key",
    "generate_salt",
]
