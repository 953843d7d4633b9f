"""
Memory Zeroization Utilities
============================

Provides explicit memory zeroization and exit-time wiping.

Security Properties:
- Explicit zeroization (no GC reliance)
- Exception-safe cleanup
- Wipe of every registered secret holder at interpreter exit

Key Concepts:
- Zeroization: Overwriting memory with zeros/patterns
- Context: Automatic cleanup on scope exit
- Registry: Last-chance wipe when the process is about to discard state
"""

from __future__ import annotations

import atexit
import ctypes
import threading
import weakref
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional

# Zeroization constants
_WIPE_PATTERNS = (0x00, 0xFF, 0x00)


def secure_zero(data: bytearray | memoryview) -> None:
    """
    Securely zero a mutable byte buffer in place.

    Uses ctypes for direct memory access where possible,
    with fallback to Python-level zeroing.

    Args:
        data: Mutable byte buffer to zero

    Raises:
        TypeError: If the buffer is immutable (bytes, read-only views)

    Security Notes:
        - This is best-effort; Python may hold other copies
        - Call immediately after use, before GC
    """
    if isinstance(data, memoryview):
        if data.readonly:
            raise TypeError("cannot zero a read-only memoryview")
        view = data.cast("B")
        view[:] = bytes(len(view))
        return

    if not isinstance(data, bytearray):
        raise TypeError(f"cannot zero immutable buffer of type {type(data).__name__}")

    size = len(data)
    if size == 0:
        return

    try:
        addr = ctypes.addressof((ctypes.c_char * size).from_buffer(data))
    except (TypeError, ValueError, BufferError):
        # Buffer could not be exported to ctypes
        data[:] = bytes(size)
        return

    for pattern in _WIPE_PATTERNS:
        ctypes.memset(addr, pattern, size)


@contextmanager
def ZeroizeContext(*buffers: bytearray) -> Iterator[None]:
    """
    Context manager that zeroizes buffers on exit.

    Always zeroizes, whether exit is normal or exceptional.

    Usage:
        passphrase = bytearray(b"...")

        with ZeroizeContext(passphrase):
            key = kdf.derive(passphrase)
        # passphrase is now zeroed
    """
    try:
        yield
    finally:
        for buf in buffers:
            if buf is not None:
                secure_zero(buf)


class WipeRegistry:
    """
    Process-wide registry of objects holding decrypted secrets.

    Every object registered here must provide a ``wipe()`` method. The
    registry keeps weak references only, so it never extends an object's
    lifetime. At interpreter exit all live objects are wiped.

    Usage:
        registry = WipeRegistry()
        registry.register(vault)

        # On shutdown (or explicitly):
        registry.wipe_all()
    """

    _instance: Optional["WipeRegistry"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "WipeRegistry":
        """Singleton pattern for the global registry."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self) -> None:
        if getattr(self, "_initialized", False):
            return

        self._registered: List[weakref.ref] = []
        self._initialized = True

        atexit.register(self.wipe_all)

    def register(self, obj: Any) -> None:
        """
        Register an object for exit-time wiping.

        Raises:
            TypeError: If the object has no wipe() method
        """
        if not callable(getattr(obj, "wipe", None)):
            raise TypeError(f"{type(obj).__name__} has no wipe() method")
        self._prune()
        self._registered.append(weakref.ref(obj))

    def unregister(self, obj: Any) -> None:
        """Unregister an object; unknown objects are ignored."""
        self._registered = [
            ref for ref in self._registered
            if ref() is not None and ref() is not obj
        ]

    def wipe_all(self) -> None:
        """Wipe every live registered object and clear the registry."""
        refs, self._registered = self._registered, []
        for ref in refs:
            obj = ref()
            if obj is not None:
                obj.wipe()

    def __len__(self) -> int:
        self._prune()
        return len(self._registered)

    def _prune(self) -> None:
        self._registered = [ref for ref in self._registered if ref() is not None]
