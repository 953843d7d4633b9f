"""
PassVault Vault Engine
======================

Encrypted record store built on the crypto and memory modules.

Components:
- record.py: Record data model
- codec.py: Payload serialization with integrity marker
- vault_file.py: On-disk layout and atomic writes
- store.py: Vault state machine and record operations
"""

from passvault.core.vault.codec import FormatError, decode_records, encode_records
from passvault.core.vault.record import Record
from passvault.core.vault.store import (
    UnlockFailedError,
    Vault,
    VaultError,
    VaultIOError,
    VaultLockedError,
    VaultState,
)
from passvault.core.vault.vault_file import VaultFile

__all__ = [
    "FormatError",
    "decode_records",
    "encode_records",
    "Record",
    "UnlockFailedError",
    "Vault",
    "VaultError",
    "VaultIOError",
    "VaultLockedError",
    "VaultState",
    "VaultFile",
]
