"""
PassVault Interactive Shell
===========================

Console front-end for the vault engine. Prompts for the master
passphrase, unlocks the vault, then reads commands until ``exit`` or EOF.

Commands:
    add <source> <login>                           store a password (prompted)
    get <source> <login>                           show a password
    search <keyword>                               find records by source/login
    list                                           show every record
    edit <source> <login> <new_source> <new_login> replace a record (prompted)
    delete <source> <login>                        remove a record
    help                                           show this list
    exit | quit                                    save and leave

Arguments may be quoted to include spaces.
"""

from __future__ import annotations

import argparse
import getpass
import shlex
import sys
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from passvault import __version__
from passvault.core.config import SecureConfig
from passvault.core.logging import get_secure_logger
from passvault.core.memory.secure_memory import SecretText
from passvault.core.vault.record import Record
from passvault.core.vault.store import Vault, VaultError

PROMPT = "> "

_USAGE = {
    "add": "add <source> <login>",
    "get": "get <source> <login>",
    "search": "search <keyword>",
    "list": "list",
    "edit": "edit <source> <login> <new_source> <new_login>",
    "delete": "delete <source> <login>",
    "help": "help",
    "exit": "exit",
}


class VaultShell:
    """Line-oriented command loop over an unlocked vault."""

    def __init__(
        self,
        vault: Vault,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        prompt_secret: Optional[Callable[[str], str]] = None,
    ) -> None:
        self._vault = vault
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._prompt_secret = prompt_secret or getpass.getpass
        self._commands = {
            "add": (self.cmd_add, 2),
            "get": (self.cmd_get, 2),
            "search": (self.cmd_search, 1),
            "list": (self.cmd_list, 0),
            "edit": (self.cmd_edit, 4),
            "delete": (self.cmd_delete, 2),
            "help": (self.cmd_help, 0),
        }

    def say(self, message: str = "") -> None:
        print(message, file=self._stdout)

    def run(self) -> None:
        """Read and execute commands until exit or end of input."""
        self.say("PassVault. Type 'help' for commands.")
        while True:
            self._stdout.write(PROMPT)
            self._stdout.flush()
            line = self._stdin.readline()
            if not line:
                self.say()
                return
            if not self.execute(line):
                return

    def execute(self, line: str) -> bool:
        """
        Run one command line.

        Returns:
            False when the shell should stop
        """
        try:
            parts = shlex.split(line)
        except ValueError as e:
            self.say(f"Parse error: {e}")
            return True
        if not parts:
            return True

        name, args = parts[0].lower(), parts[1:]
        if name in ("exit", "quit"):
            return False

        entry = self._commands.get(name)
        if entry is None:
            self.say(f"Unknown command: {name}. Type 'help' for commands.")
            return True

        handler, arity = entry
        if len(args) != arity:
            self.say(f"Usage: {_USAGE[name]}")
            return True

        try:
            handler(*args)
        except VaultError as e:
            self.say(f"Error: {e}")
        return True

    def _read_password(self, prompt: str) -> SecretText:
        return SecretText(self._prompt_secret(prompt))

    def _show_records(self, records: List[Record]) -> None:
        if not records:
            self.say("No matching records.")
            return
        for record in records:
            with record:
                self.say(f"Source: {record.source}, Login: {record.login}")

    def cmd_add(self, source: str, login: str) -> None:
        with self._read_password(f"Password for {source}/{login}: ") as password:
            self._vault.add(source, login, password)
        self.say("Added.")

    def cmd_get(self, source: str, login: str) -> None:
        record = self._vault.find(source, login)
        if record is None:
            self.say("Record not found.")
            return
        with record:
            self.say(f"Password: {record.password.reveal()}")

    def cmd_search(self, keyword: str) -> None:
        self._show_records(self._vault.search(keyword))

    def cmd_list(self) -> None:
        self._show_records(self._vault.list_all())

    def cmd_edit(self, source: str, login: str, new_source: str, new_login: str) -> None:
        existing = self._vault.find(source, login)
        if existing is None:
            self.say("Record not found.")
            return
        existing.wipe()
        with self._read_password(f"New password for {new_source}/{new_login}: ") as password:
            self._vault.edit(source, login, new_source, new_login, password)
        self.say("Updated.")

    def cmd_delete(self, source: str, login: str) -> None:
        if self._vault.delete(source, login):
            self.say("Deleted.")
        else:
            self.say("Record not found.")

    def cmd_help(self) -> None:
        for usage in _USAGE.values():
            self.say(f"  {usage}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="passvault",
        description="Local encrypted password store",
    )
    parser.add_argument("--vault", type=Path, help="Vault file (default: from configuration)")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level",
    )
    parser.add_argument("--gui", action="store_true", help="Open the desktop window instead of the shell")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = SecureConfig.load()
    config.ensure_directories(include_data=args.vault is None)
    get_secure_logger(
        "passvault",
        log_dir=config.paths.log_dir,
        level=args.log_level or config.logging.level,
        enable_console=config.logging.enable_console,
        enable_file=config.logging.enable_file,
        enable_json=config.logging.json_format,
        max_file_size=config.logging.max_file_size_bytes,
        backup_count=config.logging.backup_count,
    )

    vault_path = args.vault or config.vault_path

    if args.gui:
        try:
            from passvault.gui import run_gui
        except ImportError:
            print("The desktop window needs PySide6: pip install 'passvault[gui]'", file=sys.stderr)
            return 2
        return run_gui(vault_path)

    passphrase = bytearray(getpass.getpass("Master passphrase: ").encode("utf-8"))
    try:
        vault = Vault(vault_path, passphrase)
    except VaultError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not vault.is_unlocked():
        print("Invalid master passphrase.", file=sys.stderr)
        return 1

    try:
        VaultShell(vault).run()
    finally:
        vault.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
