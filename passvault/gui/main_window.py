"""
PassVault Desktop Window
========================

PySide6 front-end over the vault engine: a passphrase prompt, a
source/login table and buttons for the record operations.

Security Properties:
- Passwords are never placed in the table model
- A password is shown only on an explicit Get and wiped right after
- Closing the window writes and locks the vault
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt
from PySide6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from passvault.core.memory.secure_memory import SecretText
from passvault.core.vault.record import Record
from passvault.core.vault.store import Vault, VaultError

_log = logging.getLogger("passvault.gui")


class PassphraseDialog(QDialog):
    """Modal prompt for the master passphrase."""

    def __init__(self, parent: Optional[QWidget] = None, retry: bool = False) -> None:
        super().__init__(parent)
        self.setWindowTitle("Unlock PassVault")

        self._field = QLineEdit()
        self._field.setEchoMode(QLineEdit.EchoMode.Password)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)

        form = QFormLayout(self)
        if retry:
            form.addRow(QLabel("Invalid master passphrase."))
        form.addRow("Master passphrase:", self._field)
        form.addRow(buttons)

    def passphrase(self) -> bytearray:
        """Passphrase as UTF-8 bytes; the field is cleared."""
        value = bytearray(self._field.text().encode("utf-8"))
        self._field.clear()
        return value


class RecordDialog(QDialog):
    """Source / login / password entry form. Empty fields are rejected."""

    def __init__(
        self,
        parent: Optional[QWidget] = None,
        title: str = "Add Record",
        source: str = "",
        login: str = "",
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle(title)

        self.source_field = QLineEdit(source)
        self.login_field = QLineEdit(login)
        self.password_field = QLineEdit()
        self.password_field.setEchoMode(QLineEdit.EchoMode.Password)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)

        form = QFormLayout(self)
        form.addRow("Source:", self.source_field)
        form.addRow("Login:", self.login_field)
        form.addRow("Password:", self.password_field)
        form.addRow(buttons)

    def is_complete(self) -> bool:
        return all(
            field.text()
            for field in (self.source_field, self.login_field, self.password_field)
        )

    def accept(self) -> None:
        if not self.is_complete():
            QMessageBox.warning(self, "PassVault", "All fields are required.")
            return
        super().accept()

    def values(self) -> Tuple[str, str, SecretText]:
        """Entered source, login and password; the password field is cleared."""
        password = SecretText(self.password_field.text())
        self.password_field.clear()
        return self.source_field.text(), self.login_field.text(), password


class RecordTableModel(QAbstractTableModel):
    """Two-column (Source, Login) view of the vault's records."""

    HEADERS = ("Source", "Login")

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._rows: List[Tuple[str, str]] = []

    def set_records(self, records: List[Record]) -> None:
        """Replace the rows. Only keys are kept; the records are wiped."""
        self.beginResetModel()
        self._rows = []
        for record in records:
            with record:
                self._rows.append(record.key)
        self.endResetModel()

    def key_at(self, row: int) -> Optional[Tuple[str, str]]:
        if 0 <= row < len(self._rows):
            return self._rows[row]
        return None

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self.HEADERS)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        if not index.isValid() or role != Qt.ItemDataRole.DisplayRole:
            return None
        return self._rows[index.row()][index.column()]

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole):
        if role == Qt.ItemDataRole.DisplayRole and orientation == Qt.Orientation.Horizontal:
            return self.HEADERS[section]
        return None


class MainWindow(QMainWindow):
    """Record table with Add, Get, Edit, Delete, Search and Exit actions."""

    def __init__(self, vault: Vault) -> None:
        super().__init__()
        self._vault = vault
        self.setWindowTitle("PassVault")
        self.resize(640, 420)

        self.model = RecordTableModel(self)
        self.table = QTableView()
        self.table.setModel(self.model)
        self.table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)

        self.search_field = QLineEdit()
        self.search_field.setPlaceholderText("Search source or login")
        self.search_field.returnPressed.connect(self.on_search)

        buttons = QHBoxLayout()
        for label, slot in (
            ("Add", self.on_add),
            ("Get", self.on_get),
            ("Edit", self.on_edit),
            ("Delete", self.on_delete),
            ("Search", self.on_search),
            ("Exit", self.close),
        ):
            button = QPushButton(label)
            button.clicked.connect(slot)
            buttons.addWidget(button)

        layout = QVBoxLayout()
        layout.addWidget(self.search_field)
        layout.addWidget(self.table)
        layout.addLayout(buttons)

        central = QWidget()
        central.setLayout(layout)
        self.setCentralWidget(central)

        self.refresh()

    def refresh(self) -> None:
        """Reload the table, honouring the current search text."""
        keyword = self.search_field.text()
        self.model.set_records(self._vault.search(keyword))

    def selected_key(self) -> Optional[Tuple[str, str]]:
        rows = self.table.selectionModel().selectedRows()
        if not rows:
            return None
        return self.model.key_at(rows[0].row())

    def _require_selection(self) -> Optional[Tuple[str, str]]:
        key = self.selected_key()
        if key is None:
            QMessageBox.information(self, "PassVault", "Select a record first.")
        return key

    def _report(self, error: VaultError) -> None:
        QMessageBox.critical(self, "PassVault", str(error))

    def on_add(self) -> None:
        dialog = RecordDialog(self)
        if dialog.exec() != QDialog.DialogCode.Accepted:
            return
        source, login, password = dialog.values()
        with password:
            try:
                self._vault.add(source, login, password)
            except VaultError as e:
                self._report(e)
        self.refresh()

    def on_get(self) -> None:
        key = self._require_selection()
        if key is None:
            return
        record = self._vault.find(*key)
        if record is None:
            self.refresh()
            return
        with record:
            QMessageBox.information(
                self, record.source, f"Login: {record.login}\nPassword: {record.password.reveal()}"
            )

    def on_edit(self) -> None:
        key = self._require_selection()
        if key is None:
            return
        dialog = RecordDialog(self, title="Edit Record", source=key[0], login=key[1])
        if dialog.exec() != QDialog.DialogCode.Accepted:
            return
        source, login, password = dialog.values()
        with password:
            try:
                self._vault.edit(key[0], key[1], source, login, password)
            except VaultError as e:
                self._report(e)
        self.refresh()

    def on_delete(self) -> None:
        key = self._require_selection()
        if key is None:
            return
        answer = QMessageBox.question(self, "PassVault", f"Delete {key[0]} / {key[1]}?")
        if answer != QMessageBox.StandardButton.Yes:
            return
        try:
            self._vault.delete(*key)
        except VaultError as e:
            self._report(e)
        self.refresh()

    def on_search(self) -> None:
        self.refresh()

    def closeEvent(self, event) -> None:
        try:
            self._vault.close()
        except VaultError as e:
            _log.error("Final vault write failed: %s", e)
            self._report(e)
        super().closeEvent(event)


def unlock_interactively(path: Path) -> Optional[Vault]:
    """Prompt until the vault unlocks; None if the user cancels."""
    retry = False
    while True:
        dialog = PassphraseDialog(retry=retry)
        if dialog.exec() != QDialog.DialogCode.Accepted:
            return None
        vault = Vault(path, dialog.passphrase())
        if vault.is_unlocked():
            return vault
        retry = True


def run_gui(path: Path) -> int:
    """Open the desktop window on the vault at path. Returns an exit code."""
    app = QApplication.instance() or QApplication(sys.argv)

    try:
        vault = unlock_interactively(path)
    except VaultError as e:
        QMessageBox.critical(None, "PassVault", str(e))
        return 1
    if vault is None:
        return 1

    window = MainWindow(vault)
    window.show()
    return app.exec()
