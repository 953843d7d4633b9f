"""
AES-256-GCM Authenticated Encryption
====================================

Implements AES-256-GCM over whole vault payloads with a fresh random
nonce per encryption.

Security Properties:
    - 256-bit key (128-bit security level)
    - 96-bit nonce (NIST recommended)
    - 128-bit authentication tag
    - Integrity verified before any plaintext is returned

Blob Format:
    nonce (12 bytes) || ciphertext || tag (16 bytes)

WARNING:
    - Never reuse (key, nonce) pairs
    - A failed decryption does not tell a wrong key from a corrupted blob
"""

from __future__ import annotations

import secrets
from typing import Final

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from passvault.core.memory.zeroization import secure_zero

# Constants following NIST recommendations
AES_KEY_SIZE: Final[int] = 32  # 256 bits
AES_NONCE_SIZE: Final[int] = 12  # 96 bits (NIST recommended for GCM)
AES_TAG_SIZE: Final[int] = 16  # 128 bits


class DecryptionFailure(Exception):
    """
    Raised when a blob cannot be decrypted.

    A wrong key and a tampered or truncated blob raise the same error.
    """
    pass


class AesGcmCipher:
    """
    AES-256-GCM Authenticated Encryption with a caller-supplied key.

    Usage:
        cipher = AesGcmCipher()

        blob = cipher.encrypt(key, plaintext)
        plaintext = cipher.decrypt(key, blob)

    Security Notes:
        - A new nonce is drawn for every encrypt() call, so encrypting the
          same plaintext twice never yields the same blob
        - The full payload is processed as one unit; there is no streaming
    """

    __slots__ = ()

    @staticmethod
    def generate_nonce() -> bytes:
        """
        Generate a cryptographically secure random nonce.

        Returns:
            12 bytes of cryptographic random data

        Security:
            96-bit nonces with random generation have negligible collision
            probability for up to 2^32 encryptions under same key.
        """
        return secrets.token_bytes(AES_NONCE_SIZE)

    def encrypt(self, key: bytes | bytearray, plaintext: bytes | bytearray) -> bytes:
        """
        Encrypt plaintext using AES-256-GCM.

        Args:
            key: 32-byte key
            plaintext: Data to encrypt (can be empty)

        Returns:
            nonce || ciphertext || tag

        Raises:
            ValueError: If the key has the wrong size
        """
        if len(key) != AES_KEY_SIZE:
            raise ValueError(f"Key must be exactly {AES_KEY_SIZE} bytes")

        nonce = self.generate_nonce()
        ciphertext = AESGCM(key).encrypt(nonce, plaintext, None)

        return nonce + ciphertext

    def decrypt(self, key: bytes | bytearray, blob: bytes | bytearray) -> bytearray:
        """
        Decrypt and verify a blob produced by encrypt().

        The plaintext is written straight into a buffer allocated here, so
        no immutable copy of it is ever created.

        Args:
            key: The 32-byte encryption key
            blob: nonce || ciphertext || tag

        Returns:
            Plaintext in a mutable buffer, so callers can wipe it

        Raises:
            DecryptionFailure: If the blob is malformed, the tag does not
                verify, or the key is unusable
        """
        if len(blob) < AES_NONCE_SIZE + AES_TAG_SIZE:
            raise DecryptionFailure("Ciphertext blob is too short")

        nonce = bytes(blob[:AES_NONCE_SIZE])
        ciphertext = bytes(blob[AES_NONCE_SIZE:])
        plaintext = bytearray(len(ciphertext) - AES_TAG_SIZE)

        try:
            AESGCM(key).decrypt_into(nonce, ciphertext, None, plaintext)
        except (InvalidTag, ValueError, TypeError) as e:
            secure_zero(plaintext)
            raise DecryptionFailure("Decryption failed") from e
        return plaintext
