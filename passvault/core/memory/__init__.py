"""
PassVault Memory Security Module
================================

Provides secure memory handling primitives.

Security Features:
- Locked memory buffers (prevent swapping)
- Explicit zeroization (don't rely on GC)
- Exit-time wipe of unlocked vaults
- Exception-safe cleanup

Components:
- secure_memory.py: Secure buffer and secret text containers
- zeroization.py: Memory wiping utilities

WARNING:
- Python's memory model doesn't guarantee secure erasure
- These are best-effort mitigations
"""

from passvault.core.memory.secure_memory import (
    SecureBuffer,
    SecretText,
)
from passvault.core.memory.zeroization import (
    secure_zero,
    ZeroizeContext,
    WipeRegistry,
)

__all__ = [
    "SecureBuffer",
    "SecretText",
    "secure_zero",
    "ZeroizeContext",
    "WipeRegistry",
]
