"""
Secure Memory Buffers
=====================

Provides wipeable containers for key material and password text.

Security Properties:
- Explicit zeroization (don't rely on Python GC)
- Memory locking where supported (prevent swapping)
- Automatic cleanup on context exit
- Masked repr/str so secrets never reach logs by accident

Limitations:
- Python's memory model copies data internally
- GC may leave copies in memory
- Best-effort security, not guaranteed
"""

from __future__ import annotations

import codecs
import ctypes
import hmac
import platform
import struct
from typing import Final, Optional

from passvault.core.memory.zeroization import secure_zero

# Platform detection
IS_WINDOWS: Final[bool] = platform.system() == "Windows"
IS_LINUX: Final[bool] = platform.system() == "Linux"
IS_MACOS: Final[bool] = platform.system() == "Darwin"

# Password text is stored as big-endian UTF-16 code units, the unit the
# vault payload is written in. surrogatepass keeps lone surrogates intact.
TEXT_ENCODING: Final[str] = "utf-16-be"
TEXT_ERRORS: Final[str] = "surrogatepass"
CODE_UNIT_SIZE: Final[int] = 2

_CODE_UNIT: Final[struct.Struct] = struct.Struct(">H")
_SUPPLEMENTARY_BASE: Final[int] = 0x10000


def utf16_length(text: str) -> int:
    """Length of text in UTF-16 code units."""
    return sum(2 if ord(ch) >= _SUPPLEMENTARY_BASE else 1 for ch in text)


def write_utf16(text: str, buffer: bytearray | memoryview, offset: int = 0) -> int:
    """
    Write text as UTF-16-BE code units into buffer at offset.

    Code units are packed one at a time, so no intermediate ``bytes``
    copy of the text is created. Lone surrogates are written unchanged.

    Returns:
        Offset just past the last unit written
    """
    for ch in text:
        code = ord(ch)
        if code >= _SUPPLEMENTARY_BASE:
            code -= _SUPPLEMENTARY_BASE
            _CODE_UNIT.pack_into(buffer, offset, 0xD800 | (code >> 10))
            offset += CODE_UNIT_SIZE
            code = 0xDC00 | (code & 0x3FF)
        _CODE_UNIT.pack_into(buffer, offset, code)
        offset += CODE_UNIT_SIZE
    return offset


def _libc() -> Optional[ctypes.CDLL]:
    if IS_LINUX:
        return ctypes.CDLL("libc.so.6", use_errno=True)
    if IS_MACOS:
        return ctypes.CDLL("libc.dylib", use_errno=True)
    return None


def _mlock(address: int, size: int) -> bool:
    """
    Lock memory pages to prevent swapping.

    Returns True if successful, False otherwise.
    """
    try:
        if IS_WINDOWS:
            kernel32 = ctypes.windll.kernel32
            return bool(kernel32.VirtualLock(ctypes.c_void_p(address), ctypes.c_size_t(size)))
        libc = _libc()
        if libc is not None:
            return libc.mlock(ctypes.c_void_p(address), ctypes.c_size_t(size)) == 0
    except (OSError, AttributeError):
        pass
    return False


def _munlock(address: int, size: int) -> bool:
    """Unlock memory pages."""
    try:
        if IS_WINDOWS:
            kernel32 = ctypes.windll.kernel32
            return bool(kernel32.VirtualUnlock(ctypes.c_void_p(address), ctypes.c_size_t(size)))
        libc = _libc()
        if libc is not None:
            return libc.munlock(ctypes.c_void_p(address), ctypes.c_size_t(size)) == 0
    except (OSError, AttributeError):
        pass
    return False


def _buffer_address(buffer: bytearray) -> int:
    return ctypes.addressof((ctypes.c_char * len(buffer)).from_buffer(buffer))


class SecureBuffer:
    """
    Secure byte buffer with explicit zeroization.

    Holds a private copy of the data it is created from. The copy is
    overwritten when wipe() is called, when a ``with`` block exits, or
    when the buffer is collected.

    Usage:
        with SecureBuffer(key_material) as buf:
            use_key(buf.data)
        # Buffer is now zeroed

    Security Notes:
        - .data returns a copy; prefer view() for transient access
        - The source passed to the constructor is NOT wiped
    """

    __slots__ = ("_buffer", "_wiped", "_locked", "__weakref__")

    def __init__(
        self,
        data: bytes | bytearray | memoryview = b"",
        lock_memory: bool = True,
    ) -> None:
        """
        Initialize a secure buffer.

        Args:
            data: Initial content (copied)
            lock_memory: Try to lock memory (prevent swapping)
        """
        self._buffer = bytearray(data)
        self._wiped = False
        self._locked = False

        if lock_memory and self._buffer:
            self._locked = _mlock(_buffer_address(self._buffer), len(self._buffer))

    @property
    def data(self) -> bytes:
        """
        Get buffer content as immutable bytes.

        Warning: This creates a copy.
        """
        self._check()
        return bytes(self._buffer)

    def view(self) -> memoryview:
        """Read-only view over the buffer without copying."""
        self._check()
        return memoryview(self._buffer).toreadonly()

    @property
    def is_wiped(self) -> bool:
        """Check if buffer has been wiped."""
        return self._wiped

    @property
    def is_locked(self) -> bool:
        """Check if memory is locked."""
        return self._locked

    def wipe(self) -> None:
        """Zero the buffer and release any page lock."""
        if self._wiped:
            return

        secure_zero(self._buffer)

        if self._locked and self._buffer:
            _munlock(_buffer_address(self._buffer), len(self._buffer))
            self._locked = False

        self._wiped = True

    def _check(self) -> None:
        if self._wiped:
            raise ValueError("Buffer has been wiped")

    def __enter__(self) -> "SecureBuffer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe()

    def __del__(self) -> None:
        if getattr(self, "_buffer", None) is not None:
            self.wipe()

    def __len__(self) -> int:
        return len(self._buffer)

    def __repr__(self) -> str:
        """Safe representation."""
        if self._wiped:
            return "SecureBuffer(WIPED)"
        return f"SecureBuffer(size={len(self._buffer)}, locked={self._locked})"


class SecretText:
    """
    Wipeable text value, stored as UTF-16 code units.

    Used for every password held by the vault. The text is only turned
    into a Python ``str`` on an explicit reveal(), which callers should do
    as late as possible and for display only.

    Usage:
        with SecretText("p@ss") as secret:
            show(secret.reveal())
        # Code units are now wiped

    Security Notes:
        - Python strings are immutable and may persist in memory;
          the string passed to the constructor is not wiped
        - Comparison is constant time
    """

    __slots__ = ("_buffer", "__weakref__")

    def __init__(self, value: str = "", lock_memory: bool = True) -> None:
        """
        Initialize with a string value.

        Args:
            value: Text to store
            lock_memory: Try to lock memory
        """
        if not isinstance(value, str):
            raise TypeError("SecretText expects str; use from_units() for raw code units")

        units = bytearray(utf16_length(value) * CODE_UNIT_SIZE)
        try:
            write_utf16(value, units)
            self._buffer = SecureBuffer(units, lock_memory=lock_memory)
        finally:
            secure_zero(units)

    @classmethod
    def from_units(
        cls,
        units: bytes | bytearray | memoryview,
        lock_memory: bool = True,
    ) -> "SecretText":
        """
        Build a SecretText from big-endian UTF-16 code units (copied).

        Raises:
            ValueError: If the byte count is not a whole number of code units
        """
        if len(units) % CODE_UNIT_SIZE:
            raise ValueError("UTF-16 data must have an even byte length")
        secret = cls.__new__(cls)
        secret._buffer = SecureBuffer(units, lock_memory=lock_memory)
        return secret

    def reveal(self) -> str:
        """Decode the stored text. The returned str cannot be wiped."""
        with self.units() as view:
            return codecs.decode(view, TEXT_ENCODING, TEXT_ERRORS)

    def units(self) -> memoryview:
        """Read-only view of the UTF-16-BE code units."""
        return self._buffer.view()

    @property
    def code_units(self) -> int:
        """Length of the text in UTF-16 code units."""
        return len(self._buffer) // CODE_UNIT_SIZE

    def copy(self) -> "SecretText":
        """Independent copy; wiping one does not affect the other."""
        with self.units() as view:
            return SecretText.from_units(view)

    @property
    def is_wiped(self) -> bool:
        return self._buffer.is_wiped

    def wipe(self) -> None:
        """Wipe the stored code units."""
        self._buffer.wipe()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretText):
            return NotImplemented
        with self.units() as mine, other.units() as theirs:
            return hmac.compare_digest(mine, theirs)

    __hash__ = None  # type: ignore[assignment]

    def __len__(self) -> int:
        return self.code_units

    def __enter__(self) -> "SecretText":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        """Safe representation - never show value."""
        if self.is_wiped:
            return "SecretText(WIPED)"
        return f"SecretText(len={self.code_units})"

    def __str__(self) -> str:
        """String conversion - returns masked value."""
        return "********"
