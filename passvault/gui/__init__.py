"""
GUI module - PySide6 desktop window. Needs the ``gui`` extra.
"""

from passvault.gui.main_window import MainWindow, RecordDialog, RecordTableModel, run_gui

__all__ = ["MainWindow", "RecordDialog", "RecordTableModel", "run_gui"]
