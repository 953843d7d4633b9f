# Tests for master key derivation
#
# Coverage:
#   - PBKDF2-HMAC-SHA256 output matches an independent reference
#   - Determinism and salt sensitivity
#   - Passphrase buffer is wiped on success and failure
#   - Parameter validation

import hashlib

import pytest

from passvault.core.crypto.kdf import (
    KEY_LENGTH,
    PBKDF2_ITERATIONS,
    SALT_LENGTH,
    KeyDerivationError,
    derive_key,
    generate_salt,
)

SALT = bytes(range(16))


def _reference(passphrase: bytes, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", passphrase, salt, PBKDF2_ITERATIONS, KEY_LENGTH)


class TestGenerateSalt:
    def test_length(self):
        assert len(generate_salt()) == SALT_LENGTH == 16

    def test_fresh(self):
        assert generate_salt() != generate_salt()


class TestDeriveKey:
    def test_parameters(self):
        assert PBKDF2_ITERATIONS == 100_000
        assert KEY_LENGTH == 32

    def test_matches_reference(self):
        key = derive_key(bytearray(b"hunter2"), SALT)
        assert bytes(key) == _reference(b"hunter2", SALT)

    def test_utf8_passphrase(self):
        passphrase = "pässwörd ✓".encode("utf-8")
        key = derive_key(bytearray(passphrase), SALT)
        assert bytes(key) == _reference(passphrase, SALT)

    def test_empty_passphrase(self):
        key = derive_key(bytearray(), SALT)
        assert bytes(key) == _reference(b"", SALT)

    def test_returns_mutable_key(self):
        key = derive_key(bytearray(b"hunter2"), SALT)
        assert isinstance(key, bytearray)
        assert len(key) == KEY_LENGTH

    def test_deterministic(self):
        assert derive_key(bytearray(b"pw"), SALT) == derive_key(bytearray(b"pw"), SALT)

    def test_salt_changes_key(self):
        other_salt = bytes(reversed(SALT))
        assert derive_key(bytearray(b"pw"), SALT) != derive_key(bytearray(b"pw"), other_salt)

    def test_passphrase_wiped(self):
        passphrase = bytearray(b"hunter2")
        derive_key(passphrase, SALT)
        assert passphrase == bytearray(7)

    def test_wrong_salt_length(self):
        passphrase = bytearray(b"hunter2")
        with pytest.raises(KeyDerivationError):
            derive_key(passphrase, b"short")
        assert passphrase == bytearray(7)

    def test_rejects_immutable_passphrase(self):
        with pytest.raises(KeyDerivationError):
            derive_key(b"hunter2", SALT)
