"""
Configuration
=============

Immutable settings for where the vault lives and how PassVault logs.

Sources, in order of precedence:
1. PASSVAULT_SECTION__KEY environment variables
2. Per-platform defaults (XDG on Linux, Application Support on macOS,
   LOCALAPPDATA on Windows)

Cryptographic parameters are not configurable: they are part of the
vault file format and live as constants in passvault.core.crypto.
Anything that looks like a secret is never read from the environment.
"""

from __future__ import annotations

import hashlib
import os
import platform
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Final, Optional

_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "passphrase", "secret", "key", "token",
    "private", "credential", "auth", "salt",
})

_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})

_LOG_LEVELS: Final[frozenset[str]] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

_APP_DIR: Final[str] = "PassVault"

def _flag(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES

# section.key -> (section, field, converter)
_ENV_FIELDS: Final[dict[str, tuple[str, str, Callable[[str], Any]]]] = {
    "paths.data_dir": ("paths", "data_dir", Path),
    "paths.log_dir": ("paths", "log_dir", Path),
    "vault.filename": ("vault", "filename", str),
    "logging.level": ("logging", "level", str.upper),
    "logging.enable_console": ("logging", "enable_console", _flag),
    "logging.enable_file": ("logging", "enable_file", _flag),
    "logging.json_format": ("logging", "json_format", _flag),
}

def _is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(word in lowered for word in _SENSITIVE_KEYS)

def _platform_base_dirs() -> tuple[Path, Path]:
    """(data base, log base) for the current platform."""
    home = Path.home()
    system = platform.system()

    if system == "Windows":
        local = Path(os.environ.get("LOCALAPPDATA", home / "AppData" / "Local"))
        return local / _APP_DIR, local / _APP_DIR / "Logs"
    if system == "Darwin":
        return home / "Library" / "Application Support" / _APP_DIR, home / "Library" / "Logs" / _APP_DIR

    data = Path(os.environ.get("XDG_DATA_HOME", home / ".local" / "share"))
    state = Path(os.environ.get("XDG_STATE_HOME", home / ".local" / "state"))
    return data / _APP_DIR, state / _APP_DIR / "logs"

@dataclass(frozen=True, slots=True)
class PathConfig:
    """Data and log directories. Both must be absolute."""

    data_dir: Path = field(default_factory=lambda: _platform_base_dirs()[0])
    log_dir: Path = field(default_factory=lambda: _platform_base_dirs()[1])

    def __post_init__(self) -> None:
        for name in ("data_dir", "log_dir"):
            if not Path(getattr(self, name)).is_absolute():
                raise ValueError(f"{name} must be an absolute path: {getattr(self, name)}")

@dataclass(frozen=True, slots=True)
class VaultConfig:
    """Name of the vault file inside the data directory."""

    filename: str = "vault.dat"

    def __post_init__(self) -> None:
        if not self.filename or Path(self.filename).name != self.filename:
            raise ValueError(f"Vault filename must be a plain file name: {self.filename!r}")

@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: str = "WARNING"
    max_file_size_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = False
    json_format: bool = False

    def __post_init__(self) -> None:
        if self.level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.level}")
        if self.max_file_size_bytes <= 0 or self.backup_count < 0:
            raise ValueError("Log rotation limits must be positive")

class SecureConfig:
    """
    Read-only bundle of the configuration sections.

    Usage:
        config = SecureConfig.load()
        config.ensure_directories()
        vault = Vault(config.vault_path, passphrase)
    """

    __slots__ = ("_paths", "_vault", "_logging", "_config_hash", "_frozen")

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        vault: Optional[VaultConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        sections = {
            "_paths": paths or PathConfig(),
            "_vault": vault or VaultConfig(),
            "_logging": logging or LoggingConfig(),
        }
        for name, value in sections.items():
            object.__setattr__(self, name, value)

        digest = hashlib.sha256("|".join(map(repr, sections.values())).encode("utf-8"))
        object.__setattr__(self, "_config_hash", digest.hexdigest()[:16])
        object.__setattr__(self, "_frozen", True)

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def vault(self) -> VaultConfig:
        return self._vault

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def config_hash(self) -> str:
        """Short fingerprint of the settings, safe to log."""
        return self._config_hash

    @property
    def vault_path(self) -> Path:
        return self._paths.data_dir / self._vault.filename

    @classmethod
    def load(cls, env_prefix: str = "PASSVAULT") -> SecureConfig:
        """
        Build the configuration from defaults and environment overrides.

        Variables take the form PREFIX_SECTION__KEY, for example
        PASSVAULT_PATHS__DATA_DIR=/srv/vault or PASSVAULT_LOGGING__LEVEL=debug.
        Unknown keys are ignored.
        """
        sections: dict[str, dict[str, Any]] = {"paths": {}, "vault": {}, "logging": {}}
        for key, raw in cls._parse_env_overrides(env_prefix).items():
            target = _ENV_FIELDS.get(key)
            if target is None:
                continue
            section, name, convert = target
            sections[section][name] = convert(raw)

        return cls(
            paths=PathConfig(**sections["paths"]) if sections["paths"] else None,
            vault=VaultConfig(**sections["vault"]) if sections["vault"] else None,
            logging=LoggingConfig(**sections["logging"]) if sections["logging"] else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """PREFIX_SECTION__KEY variables as {"section.key": value}, minus sensitive keys."""
        marker = f"{prefix.upper()}_"
        overrides: dict[str, str] = {}
        for name, value in os.environ.items():
            if not name.startswith(marker):
                continue
            key = name[len(marker):].lower().replace("__", ".")
            if not _is_sensitive_key(key):
                overrides[key] = value
        return overrides

    def ensure_directories(self, include_data: bool = True) -> None:
        """
        Create the data directory, and the log directory when file logging
        is on. Directories created here are restricted to the owner on
        POSIX systems; existing directories are left as they are.

        Args:
            include_data: Skip the data directory when False, for a vault
                stored somewhere else
        """
        wanted = [self._paths.data_dir] if include_data else []
        if self._logging.enable_file:
            wanted.append(self._paths.log_dir)

        for directory in wanted:
            try:
                directory.mkdir(mode=stat.S_IRWXU, parents=True)
            except FileExistsError:
                continue
            if platform.system() != "Windows":
                directory.chmod(stat.S_IRWXU)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError("SecureConfig is immutable after initialization")
        object.__setattr__(self, name, value)

    def __repr__(self) -> str:
        return f"SecureConfig(hash={self._config_hash}, vault={self.vault_path})"
