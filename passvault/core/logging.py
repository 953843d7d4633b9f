"""
Secure Logging
==============

Logging setup for PassVault with redaction of anything that looks secret.

Security Properties:
- The engine never logs record fields, passphrases or keys; the redaction
  filter is a second line of defence for everything else
- Log directories are created owner-only
- Log files rotate at a fixed size

Output:
- Console: short human-readable lines on stderr
- File: rotating, plain text or one JSON object per line
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Final, Iterable, Optional, Pattern

_REDACTED: Final[str] = "[REDACTED]"


def _assignment(*words: str) -> Pattern[str]:
    """Match `word = value` / `word: "value"` for any of the given words."""
    alternatives = "|".join(words)
    return re.compile(rf'(?i)({alternatives})\s*[=:]\s*["\']?[^\s"\']+["\']?')


_REDACTIONS: Final[tuple[tuple[str, Pattern[str]], ...]] = (
    ("password", _assignment("password", "passwd", "pwd")),
    ("passphrase", _assignment("passphrase", r"master[_-]?key")),
    ("token", _assignment("token", "bearer")),
    ("secret", _assignment("secret", r"private[_-]?key")),
    ("salt", _assignment("salt", "nonce")),
    # Long base64 or hex runs are treated as key material
    ("base64_secret", re.compile(r"[A-Za-z0-9+/]{40,}={0,2}")),
    ("hex_secret", re.compile(r"(?i)(?:0x)?[a-f0-9]{32,}")),
)

_CONSOLE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_FILE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


class SecureLogFilter(logging.Filter):
    """
    Rewrites log records so password-, key- and token-like content is
    replaced by [REDACTED]. Records are never dropped.
    """

    def __init__(self, name: str = "", additional_patterns: Optional[Iterable[Pattern[str]]] = None) -> None:
        super().__init__(name)
        self._extra = list(additional_patterns or ())

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.redact(record.msg)

        if isinstance(record.args, dict):
            record.args = {key: self._scrub(value) for key, value in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(self._scrub(value) for value in record.args)

        return True

    def _scrub(self, value: Any) -> Any:
        return self.redact(value) if isinstance(value, str) else value

    def redact(self, text: str) -> str:
        for label, pattern in _REDACTIONS:
            text = pattern.sub(f"{label}={_REDACTED}", text)
        for pattern in self._extra:
            text = pattern.sub(_REDACTED, text)
        return text


class StructuredLogFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class SecureRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler that refuses traversal paths and creates its directory 0700."""

    def __init__(
        self,
        filename: str | Path,
        mode: str = "a",
        maxBytes: int = 10 * 1024 * 1024,
        backupCount: int = 5,
        encoding: str = "utf-8",
    ) -> None:
        path = Path(filename)
        if ".." in path.parts:
            raise ValueError("Log path cannot contain path traversal sequences")

        path = path.resolve()
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        super().__init__(path, mode=mode, maxBytes=maxBytes, backupCount=backupCount, encoding=encoding)


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    return handler


def _file_handler(path: Path, max_bytes: int, backups: int, as_json: bool) -> logging.Handler:
    handler = SecureRotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups)
    if as_json:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def get_secure_logger(
    name: str,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    enable_console: bool = True,
    enable_file: bool = True,
    enable_json: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure and return the logger called name.

    Every handler carries a SecureLogFilter. Child loggers such as
    "passvault.vault" reach these handlers through propagation; the
    logger itself does not propagate to the root logger. Calling this
    again for an already configured logger returns it unchanged.

    Args:
        name: Logger name, normally "passvault"
        log_dir: Directory for the log file; no file output without it
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_console: Log to stderr
        enable_file: Log to <log_dir>/<name>.log with rotation
        enable_json: JSON lines instead of text in the log file
        max_file_size: Rotation size in bytes
        backup_count: Rotated files to keep
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    handlers: list[logging.Handler] = []
    if enable_console:
        handlers.append(_console_handler())
    if enable_file and log_dir:
        log_file = Path(log_dir) / f"{name.replace('.', '_')}.log"
        handlers.append(_file_handler(log_file, max_file_size, backup_count, enable_json))

    redactor = SecureLogFilter()
    for handler in handlers:
        handler.setLevel(logging.DEBUG)
        handler.addFilter(redactor)
        logger.addHandler(handler)

    return logger
