"""
Vault Records
=============

A record is one (source, login, password) triple. Source and login form
the identity key and are plain text; the password lives in a wipeable
SecretText buffer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from passvault.core.memory.secure_memory import SecretText


@dataclass(repr=False)
class Record:
    """
    A single stored credential.

    Note: password is never exposed in repr or str.
    """
    source: str
    login: str
    password: SecretText

    @classmethod
    def create(cls, source: str, login: str, password: str | SecretText) -> "Record":
        """Build a record, taking a private copy of the password."""
        for name, value in (("source", source), ("login", login)):
            if not isinstance(value, str):
                raise TypeError(f"{name} must be str, not {type(value).__name__}")
        if isinstance(password, SecretText):
            secret = password.copy()
        elif isinstance(password, str):
            secret = SecretText(password)
        else:
            raise TypeError("password must be str or SecretText")
        return cls(source=source, login=login, password=secret)

    @property
    def key(self) -> Tuple[str, str]:
        """Identity key: exact (source, login) pair."""
        return (self.source, self.login)

    def matches(self, source: str, login: str) -> bool:
        return self.source == source and self.login == login

    def copy(self) -> "Record":
        """Detached copy whose password can be wiped independently."""
        return Record(self.source, self.login, self.password.copy())

    def wipe(self) -> None:
        """Wipe the password buffer."""
        self.password.wipe()

    def __enter__(self) -> "Record":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        """Safe representation without the password."""
        return f"Record(source={self.source!r}, login={self.login!r})"
