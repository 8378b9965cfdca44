"""Calcpad - keypad calculator with persisted history.

This package contains the calculator core used by the Streamlit app:
- Arithmetic engine and display formatting
- Keystroke state machine with left-to-right operation chaining
- History persistence on top of a small key-value store (SQLite by default)
- Light/dark theme preference
"""

from .engine import Operation, compute, format_display, format_result
from .history import HistoryEntry, HistoryStore
from .machine import Calculator, CalculatorError, DisplayState, UnknownKeyError

__all__ = [
    "Operation",
    "compute",
    "format_display",
    "format_result",
    "HistoryEntry",
    "HistoryStore",
    "Calculator",
    "CalculatorError",
    "DisplayState",
    "UnknownKeyError",
]
