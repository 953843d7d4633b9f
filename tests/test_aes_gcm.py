# Tests for AES-256-GCM payload encryption
#
# Coverage:
#   - Round trip, including empty plaintext
#   - Blob layout: nonce || ciphertext || tag
#   - Fresh nonce per encryption
#   - Tampering, wrong key and short blobs all fail the same way
#   - Plaintext only ever lands in the caller's mutable buffer

import secrets

import pytest

from passvault.core.crypto.aes_gcm import (
    AES_NONCE_SIZE,
    AES_TAG_SIZE,
    AesGcmCipher,
    DecryptionFailure,
)


@pytest.fixture
def cipher():
    return AesGcmCipher()


@pytest.fixture
def key():
    return bytearray(secrets.token_bytes(32))


class TestRoundTrip:
    def test_encrypt_decrypt(self, cipher, key):
        blob = cipher.encrypt(key, b"payload")
        assert cipher.decrypt(key, blob) == bytearray(b"payload")

    def test_empty_plaintext(self, cipher, key):
        blob = cipher.encrypt(key, b"")
        assert len(blob) == AES_NONCE_SIZE + AES_TAG_SIZE
        assert cipher.decrypt(key, blob) == bytearray()

    def test_decrypt_returns_bytearray(self, cipher, key):
        assert isinstance(cipher.decrypt(key, cipher.encrypt(key, b"x")), bytearray)

    def test_plaintext_is_written_into_returned_buffer(self, cipher, key, aead_recorder):
        blob = cipher.encrypt(key, b"payload")
        plaintext = cipher.decrypt(key, blob)
        assert len(aead_recorder.decrypted) == 1
        assert aead_recorder.decrypted[0] is plaintext

    def test_blob_size(self, cipher, key):
        blob = cipher.encrypt(key, b"a" * 100)
        assert len(blob) == AES_NONCE_SIZE + 100 + AES_TAG_SIZE

    def test_wrong_key_size(self, cipher):
        with pytest.raises(ValueError):
            cipher.encrypt(b"short", b"x")


class TestNonces:
    def test_nonce_size(self, cipher):
        assert len(cipher.generate_nonce()) == 12

    def test_same_plaintext_different_blobs(self, cipher, key):
        first = cipher.encrypt(key, b"same")
        second = cipher.encrypt(key, b"same")
        assert first[:AES_NONCE_SIZE] != second[:AES_NONCE_SIZE]
        assert first != second


class TestFailures:
    @pytest.mark.parametrize("position", [0, AES_NONCE_SIZE, -1])
    def test_tampered_byte(self, cipher, key, position):
        blob = bytearray(cipher.encrypt(key, b"payload"))
        blob[position] ^= 0x01
        with pytest.raises(DecryptionFailure):
            cipher.decrypt(key, bytes(blob))

    def test_wrong_key(self, cipher, key):
        blob = cipher.encrypt(key, b"payload")
        with pytest.raises(DecryptionFailure):
            cipher.decrypt(secrets.token_bytes(32), blob)

    def test_unusable_key(self, cipher, key):
        blob = cipher.encrypt(key, b"payload")
        with pytest.raises(DecryptionFailure):
            cipher.decrypt(b"bad", blob)

    def test_blob_shorter_than_nonce(self, cipher, key):
        with pytest.raises(DecryptionFailure):
            cipher.decrypt(key, b"\x00" * (AES_NONCE_SIZE - 1))

    def test_blob_without_tag(self, cipher, key):
        with pytest.raises(DecryptionFailure):
            cipher.decrypt(key, b"\x00" * AES_NONCE_SIZE)

    def test_blob_shorter_than_tag(self, cipher, key):
        with pytest.raises(DecryptionFailure):
            cipher.decrypt(key, b"\x00" * (AES_NONCE_SIZE + AES_TAG_SIZE - 1))

    def test_failed_decrypt_leaves_no_plaintext(self, cipher, key, aead_recorder):
        blob = cipher.encrypt(key, b"payload")
        with pytest.raises(DecryptionFailure):
            cipher.decrypt(secrets.token_bytes(32), blob)
        assert aead_recorder.decrypted == [bytearray(len(b"payload"))]
