"""
Vault File Layout
=================

File Format (big-endian):
    SALT_LEN: 4 bytes (uint32, always 16)
    SALT:     SALT_LEN bytes
    BLOB:     remaining bytes = nonce || AES-GCM ciphertext || tag

The file is always rewritten in full. Writes go to a temporary file in
the same directory which then replaces the vault, so a crash mid-write
leaves the previous vault in place.
"""

from __future__ import annotations

import contextlib
import os
import struct
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from passvault.core.crypto.kdf import SALT_LENGTH
from passvault.core.vault.codec import FormatError

_SALT_HEADER: Final[struct.Struct] = struct.Struct(">I")


@dataclass(frozen=True)
class VaultFile:
    """Raw contents of a vault file: the salt and the encrypted blob."""

    salt: bytes
    blob: bytes

    def to_bytes(self) -> bytes:
        return _SALT_HEADER.pack(len(self.salt)) + self.salt + self.blob

    @classmethod
    def from_bytes(cls, data: bytes) -> "VaultFile":
        """
        Parse a vault file.

        Raises:
            FormatError: If the header is truncated or the salt length is wrong
        """
        if len(data) < _SALT_HEADER.size:
            raise FormatError("Vault file too short for salt header")

        (salt_len,) = _SALT_HEADER.unpack_from(data)
        if salt_len != SALT_LENGTH:
            raise FormatError(f"Unexpected salt length: {salt_len}")

        salt_end = _SALT_HEADER.size + salt_len
        if len(data) < salt_end:
            raise FormatError("Vault file truncated (incomplete salt)")

        return cls(salt=bytes(data[_SALT_HEADER.size:salt_end]), blob=bytes(data[salt_end:]))

    @classmethod
    def load(cls, path: Path | str) -> "VaultFile":
        """Read and parse a vault file from disk."""
        return cls.from_bytes(Path(path).read_bytes())

    def save(self, path: Path | str) -> None:
        """Atomically replace the vault file at path."""
        write_atomic(Path(path), self.to_bytes())

    def __repr__(self) -> str:
        return f"VaultFile(salt_len={len(self.salt)}, blob_len={len(self.blob)})"


def vault_exists(path: Path | str) -> bool:
    """True if a non-empty vault file is present at path."""
    path = Path(path)
    return path.is_file() and path.stat().st_size > 0


def write_atomic(path: Path, data: bytes) -> None:
    """
    Write data to path via a temporary sibling file and os.replace().

    The temporary file is created owner-read/write only and removed if
    anything goes wrong before the rename.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise
