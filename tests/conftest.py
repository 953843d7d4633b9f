"""
Shared pytest fixtures for the PassVault test suite.

Autouse fixtures below isolate tests from the user's environment:
  - PASSVAULT_* variables -> removed       (config defaults are predictable)
  - "passvault" logger     -> no handlers  (cli.main() installs fresh ones)
"""

import logging
import os

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from passvault.core.crypto import aes_gcm


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    for key in list(os.environ):
        if key.startswith("PASSVAULT_"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    logger = logging.getLogger("passvault")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    for handler in list(logger.handlers):
        if handler not in saved[0]:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


@pytest.fixture
def vault_path(tmp_path):
    """Location of a vault file that does not exist yet."""
    return tmp_path / "vault.dat"


class AeadRecorder:
    """
    Stand-in for AESGCM that keeps every plaintext buffer it touches.

    It has no decrypt(), so any code path that would return plaintext as
    immutable bytes fails loudly.
    """

    def __init__(self):
        self.encrypted = []
        self.decrypted = []

    def __call__(self, key):
        return _RecordingAead(self, AESGCM(key))


class _RecordingAead:
    def __init__(self, recorder, inner):
        self._recorder = recorder
        self._inner = inner

    def encrypt(self, nonce, data, associated_data):
        self._recorder.encrypted.append(data)
        return self._inner.encrypt(nonce, data, associated_data)

    def decrypt_into(self, nonce, data, associated_data, buf):
        self._recorder.decrypted.append(buf)
        return self._inner.decrypt_into(nonce, data, associated_data, buf)


@pytest.fixture
def aead_recorder(monkeypatch):
    """Route AesGcmCipher through an AeadRecorder for the test's duration."""
    recorder = AeadRecorder()
    monkeypatch.setattr(aes_gcm, "AESGCM", recorder)
    return recorder
