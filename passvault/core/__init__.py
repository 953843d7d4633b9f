"""
Core module - Contains configuration, logging, crypto, memory and the vault engine.
"""

from passvault.core.config import SecureConfig
from passvault.core.logging import get_secure_logger, SecureLogFilter

__all__ = ["SecureConfig", "get_secure_logger", "SecureLogFilter"]
