"""
PassVault - A Local Encrypted Password Store
============================================

Keeps (source, login, password) records in a single file encrypted with
AES-256-GCM under a key derived from a master passphrase.

Security Notice:
- No secrets are logged
- A wrong passphrase and a corrupt file fail the same way
- Decrypted passwords live in wipeable buffers
"""

from passvault.core.config import SecureConfig
from passvault.core.logging import get_secure_logger
from passvault.core.vault import (
    Record,
    UnlockFailedError,
    Vault,
    VaultError,
    VaultIOError,
    VaultLockedError,
    VaultState,
)

__version__ = "0.1.0"
__author__ = "PassVault Team"

__all__ = [
    "SecureConfig",
    "get_secure_logger",
    "Record",
    "UnlockFailedError",
    "Vault",
    "VaultError",
    "VaultIOError",
    "VaultLockedError",
    "VaultState",
    "__version__",
]
