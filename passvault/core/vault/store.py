"""
Vault Store
===========

Owns the decrypted record set and the derived key for one unlocked
session, and keeps the vault file in sync with every change.

State Machine:
    LOCKED -> UNLOCKING -> UNLOCKED | FAILED
    UNLOCKED -> LOCKED (close / wipe)

Unlock Flow:
    1. No vault file (or an empty one): new salt, derive key, empty
       record set, initial write
    2. Existing file: read salt, derive key, decrypt, decode
    3. Any decryption, format or read problem ends in FAILED with no
       further detail; a wrong passphrase and a corrupt file look the same

Persistence:
    Every mutation re-encodes and re-encrypts the whole record set under
    a fresh nonce and replaces the file. The new record set is committed
    in memory only after the write succeeded.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from pathlib import Path
from typing import List, Optional, Sequence

from passvault.core.crypto.aes_gcm import AesGcmCipher, DecryptionFailure
from passvault.core.crypto.kdf import KeyDerivationError, derive_key, generate_salt
from passvault.core.memory.secure_memory import SecretText
from passvault.core.memory.zeroization import WipeRegistry, ZeroizeContext, secure_zero
from passvault.core.vault.codec import FormatError, decode_records, encode_records
from passvault.core.vault.record import Record
from passvault.core.vault.vault_file import VaultFile, vault_exists


class VaultState(Enum):
    """Lifecycle states of a Vault instance."""
    LOCKED = auto()
    UNLOCKING = auto()
    UNLOCKED = auto()
    FAILED = auto()


class VaultError(Exception):
    """Base exception for vault store errors."""
    pass


class VaultIOError(VaultError):
    """Raised when the vault file cannot be written (or created)."""
    pass


class UnlockFailedError(VaultError):
    """Raised by Vault.open() when the vault cannot be unlocked."""
    pass


class VaultLockedError(VaultError):
    """Raised when an operation needs an unlocked vault."""
    pass


def _passphrase_buffer(passphrase: bytearray | str) -> bytearray:
    if isinstance(passphrase, bytearray):
        return passphrase
    if isinstance(passphrase, str):
        return bytearray(passphrase.encode("utf-8"))
    raise TypeError("passphrase must be a bytearray or str")


class Vault:
    """
    Encrypted single-file credential store.

    Usage:
        vault = Vault(path, bytearray(b"hunter2"))
        if not vault.is_unlocked():
            ...  # re-prompt with a new instance

        with vault:
            vault.add("example.com", "alice", "p@ss")
            with vault.find("example.com", "alice") as record:
                show(record.password.reveal())
        # vault written one last time, key and records wiped

    Security Notes:
        - The passphrase buffer is wiped during construction; do not reuse it
        - find(), search() and list_all() return detached copies; wipe them
          (or use them as context managers) once displayed
        - Operations after close() raise VaultLockedError
    """

    __slots__ = ("_path", "_cipher", "_records", "_salt", "_key", "_state", "_log", "__weakref__")

    def __init__(self, path: Path | str, passphrase: bytearray | str) -> None:
        """
        Unlock (or create) the vault at path.

        Args:
            path: Vault file location
            passphrase: Master passphrase; a bytearray is wiped in place

        Raises:
            VaultIOError: If a new vault cannot be written
            KeyDerivationError: On a key derivation fault
        """
        self._path = Path(path)
        self._cipher = AesGcmCipher()
        self._records: List[Record] = []
        self._salt: Optional[bytes] = None
        self._key: Optional[bytearray] = None
        self._state = VaultState.LOCKED
        self._log = logging.getLogger("passvault.vault")

        self._unlock(_passphrase_buffer(passphrase))

    @classmethod
    def open(cls, path: Path | str, passphrase: bytearray | str) -> "Vault":
        """
        Unlock the vault at path or raise.

        Raises:
            UnlockFailedError: Wrong passphrase, corrupt or unreadable file
        """
        vault = cls(path, passphrase)
        if not vault.is_unlocked():
            raise UnlockFailedError("Failed to unlock vault")
        return vault

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self._path

    @property
    def state(self) -> VaultState:
        return self._state

    def is_unlocked(self) -> bool:
        return self._state is VaultState.UNLOCKED

    def _unlock(self, passphrase: bytearray) -> None:
        self._state = VaultState.UNLOCKING
        with ZeroizeContext(passphrase):
            try:
                exists = vault_exists(self._path)
            except OSError:
                self._fail()
                return

            try:
                if exists:
                    self._load(passphrase)
                else:
                    self._create(passphrase)
            except (KeyDerivationError, VaultIOError):
                self._release()
                self._state = VaultState.FAILED
                raise

    def _create(self, passphrase: bytearray) -> None:
        self._salt = generate_salt()
        self._key = derive_key(passphrase, self._salt)
        self._records = []
        self._write(self._records)
        self._activate()
        self._log.info("Created new vault at %s", self._path)

    def _load(self, passphrase: bytearray) -> None:
        try:
            vault_file = VaultFile.load(self._path)
        except (OSError, FormatError):
            self._fail()
            return

        key = derive_key(passphrase, vault_file.salt)
        try:
            plaintext = self._cipher.decrypt(key, vault_file.blob)
            with ZeroizeContext(plaintext):
                records = decode_records(plaintext)
        except (DecryptionFailure, FormatError):
            secure_zero(key)
            self._fail()
            return

        self._salt = vault_file.salt
        self._key = key
        self._records = records
        self._activate()
        self._log.info("Unlocked vault at %s (%d records)", self._path, len(records))

    def _activate(self) -> None:
        self._state = VaultState.UNLOCKED
        WipeRegistry().register(self)

    def _fail(self) -> None:
        self._state = VaultState.FAILED
        self._log.warning("Failed to unlock vault at %s", self._path)

    def close(self) -> None:
        """
        Write the vault one last time and release key material.

        Does nothing unless the vault is unlocked. Key and records are
        wiped even if the final write fails.

        Raises:
            VaultIOError: If the final write fails
        """
        if not self.is_unlocked():
            return
        try:
            self._write(self._records)
        finally:
            self.wipe()
        self._log.info("Closed vault at %s", self._path)

    def wipe(self) -> None:
        """Wipe key and decrypted records without writing; the vault locks."""
        self._release()
        if self._state is VaultState.UNLOCKED:
            self._state = VaultState.LOCKED
        WipeRegistry().unregister(self)

    def _release(self) -> None:
        if self._key is not None:
            secure_zero(self._key)
            self._key = None
        for record in self._records:
            record.wipe()
        self._records = []

    def __enter__(self) -> "Vault":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Record operations
    # ------------------------------------------------------------------

    def add(self, source: str, login: str, password: str | SecretText) -> None:
        """
        Store a record, replacing any record with the same (source, login).

        A replaced record is removed and the new one appended at the end.

        Raises:
            VaultLockedError: If the vault is not unlocked
            VaultIOError: If the vault file cannot be written
            TypeError: If source or login is not str, or password is
                neither str nor SecretText
        """
        self._require_unlocked()
        record = Record.create(source, login, password)
        self._commit(self._without(source, login) + [record])
        self._log.debug("Record added (%d total)", len(self._records))

    def find(self, source: str, login: str) -> Optional[Record]:
        """Exact lookup by identity key; returns a detached copy or None."""
        self._require_unlocked()
        for record in self._records:
            if record.matches(source, login):
                return record.copy()
        return None

    def edit(
        self,
        old_source: str,
        old_login: str,
        new_source: str,
        new_login: str,
        new_password: str | SecretText,
    ) -> bool:
        """
        Replace the record at (old_source, old_login) with a new one.

        Does nothing when the old record does not exist. Otherwise the old
        record (and any record already holding the new key) is removed, the
        new record appended, and the file written once.

        Returns:
            True if a record was edited
        """
        self._require_unlocked()
        if not any(record.matches(old_source, old_login) for record in self._records):
            self._log.debug("Edit skipped, no matching record")
            return False

        record = Record.create(new_source, new_login, new_password)
        updated = [
            r for r in self._records
            if not r.matches(old_source, old_login) and not r.matches(new_source, new_login)
        ]
        self._commit(updated + [record])
        self._log.debug("Record edited")
        return True

    def delete(self, source: str, login: str) -> bool:
        """
        Remove the record with the given identity key.

        The file is only written if a record was removed.

        Returns:
            True if a record was removed
        """
        self._require_unlocked()
        updated = self._without(source, login)
        if len(updated) == len(self._records):
            return False
        self._commit(updated)
        self._log.debug("Record deleted (%d left)", len(self._records))
        return True

    def search(self, keyword: str) -> List[Record]:
        """
        Case-insensitive substring search over source and login.

        Passwords are never searched. An empty keyword returns every
        record, exactly like list_all().
        """
        self._require_unlocked()
        needle = keyword.lower()
        return [
            record.copy() for record in self._records
            if needle in record.source.lower() or needle in record.login.lower()
        ]

    def list_all(self) -> List[Record]:
        """All records, in current order, as detached copies."""
        self._require_unlocked()
        return [record.copy() for record in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"Vault(path={str(self._path)!r}, state={self._state.name}, records={len(self._records)})"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_unlocked(self) -> None:
        if self._state is not VaultState.UNLOCKED:
            raise VaultLockedError(f"Vault is {self._state.name.lower()}")

    def _without(self, source: str, login: str) -> List[Record]:
        return [record for record in self._records if not record.matches(source, login)]

    def _commit(self, updated: List[Record]) -> None:
        """Write updated, then make it the live record set."""
        try:
            self._write(updated)
        except BaseException:
            _wipe_unshared(updated, self._records)
            raise
        _wipe_unshared(self._records, updated)
        self._records = updated

    def _write(self, records: Sequence[Record]) -> None:
        payload = encode_records(records)
        with ZeroizeContext(payload):
            blob = self._cipher.encrypt(self._key, payload)

        try:
            VaultFile(salt=self._salt, blob=blob).save(self._path)
        except OSError as e:
            raise VaultIOError(f"Failed to write vault file: {e.strerror or e}") from e
        self._log.debug("Vault written to %s", self._path)


def _wipe_unshared(records: Sequence[Record], keep: Sequence[Record]) -> None:
    """Wipe every record in records that is not also in keep."""
    kept = {id(record) for record in keep}
    for record in records:
        if id(record) not in kept:
            record.wipe()
