"""Keystroke state machine for the keypad calculator.

The session is five fields: the entry buffer (a string, parsed on demand),
the pending operation, the accumulator holding the first operand, the
waiting-for-operand flag and the expression text shown above the display.
Operations chain strictly left to right: ``2 + 3 × 4 =`` is ``(2 + 3) × 4``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional, Union

from calcpad.engine import (
    Operation,
    format_display,
    format_result,
    number_to_str,
    parse_number,
    strip_separators,
)
from calcpad.history import HistoryEntry, HistoryStore, generate_entry_id, utcnow

logger = logging.getLogger(__name__)

DIGITS = "0123456789"

_NUMBER_TEXT = re.compile(r"-?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:e[+-]?[0-9]+)?")


class CalculatorError(ValueError):
    pass


class UnknownKeyError(CalculatorError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Unknown key: {key!r}")
        self.key = key


@dataclass(frozen=True)
class DisplayState:
    """What the display collaborator renders."""

    current_value: str
    expression_text: str
    pending_symbol: Optional[str]

    @property
    def display_expression(self) -> str:
        # Completed calculations show the full "a op b =" line, in-progress
        # ones the expression with its trailing operator, otherwise the value.
        if "=" in self.expression_text:
            return self.expression_text
        if self.expression_text:
            if self.pending_symbol and not self.expression_text.endswith(self.pending_symbol):
                return f"{self.expression_text} {self.pending_symbol}"
            return self.expression_text
        return self.current_value


def _is_number_text(text: str) -> bool:
    return bool(_NUMBER_TEXT.fullmatch(text))


class Calculator:
    def __init__(
        self,
        history: Optional[HistoryStore] = None,
        *,
        id_factory: Callable[[], str] = generate_entry_id,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.history = history if history is not None else HistoryStore()
        self._id_factory = id_factory
        self._clock = clock
        self.history_visible = False
        self.clear()

    # ----- session -----

    def clear(self) -> None:
        self.buffer = "0"
        self.accumulator: Optional[float] = None
        self.operation: Optional[Operation] = None
        self.waiting_for_operand = False
        self.expression = ""

    @property
    def display(self) -> DisplayState:
        return DisplayState(
            current_value=format_display(self.buffer),
            expression_text=self.expression,
            pending_symbol=self.operation.symbol if self.operation else None,
        )

    # ----- entry -----

    def press_digit(self, digit: str) -> None:
        digit = str(digit)
        if len(digit) != 1 or digit not in DIGITS:
            raise CalculatorError(f"Not a digit: {digit!r}")

        if self.waiting_for_operand:
            self.buffer = digit
            self.waiting_for_operand = False
        elif self.buffer == "0" or not _is_number_text(self.buffer):
            self.buffer = digit
        else:
            self.buffer += digit

    def press_decimal(self) -> None:
        if self.waiting_for_operand or not _is_number_text(self.buffer):
            self.buffer = "0."
            self.waiting_for_operand = False
        elif "." not in self.buffer:
            self.buffer += "."

    def delete(self) -> None:
        if not _is_number_text(self.buffer) or len(self.buffer) <= 1:
            self.buffer = "0"
            return
        trimmed = self.buffer[:-1]
        self.buffer = trimmed if trimmed not in ("", "-") else "0"

    def toggle_sign(self) -> None:
        self.buffer = number_to_str(-parse_number(self.buffer))

    def percent(self) -> None:
        self.buffer = number_to_str(parse_number(self.buffer) / 100)

    # ----- operations -----

    def press_operation(self, operation: Union[Operation, str]) -> None:
        operation = Operation.from_symbol(operation)

        if self.accumulator is None or self.operation is None:
            self.accumulator = parse_number(self.buffer)
            self.operation = operation
            self.waiting_for_operand = True
            self.expression = f"{format_display(self.buffer)} {operation.symbol}"
            return

        if self.waiting_for_operand:
            # Switching operator before the second operand is typed.
            previous = self.operation.symbol
            if self.expression.endswith(previous):
                self.expression = self.expression[: -len(previous)] + operation.symbol
            else:
                self.expression = f"{format_display(number_to_str(self.accumulator))} {operation.symbol}"
            self.operation = operation
            return

        result = format_result(self.accumulator, parse_number(self.buffer), self.operation)
        self.accumulator = parse_number(result)
        self.buffer = result
        self.operation = operation
        self.waiting_for_operand = True
        self.expression = f"{format_display(result)} {operation.symbol}"

    def press_equals(self) -> Optional[HistoryEntry]:
        """Evaluate the pending operation and record it in history.

        Returns the new history entry, or None when nothing was pending.
        """
        if self.accumulator is None or self.operation is None:
            return None

        current = parse_number(self.buffer)
        result = format_result(self.accumulator, current, self.operation)
        self.expression = (
            f"{format_display(number_to_str(self.accumulator))} "
            f"{self.operation.symbol} "
            f"{format_display(number_to_str(current))} ="
        )
        self.buffer = result

        entry = HistoryEntry(
            id=self._id_factory(),
            expression=self.expression,
            result=format_display(result),
            timestamp=self._clock(),
        )
        self.history.append(entry)
        logger.debug("Evaluated %s %s", entry.expression, entry.result)

        self.accumulator = None
        self.operation = None
        self.waiting_for_operand = True
        return entry

    # ----- history -----

    def toggle_history(self) -> bool:
        self.history_visible = not self.history_visible
        return self.history_visible

    def select_history_item(self, item: Union[HistoryEntry, str]) -> None:
        """Recall a past result into the buffer.

        Accumulator, pending operation and expression are left as they are.
        """
        result = item.result if isinstance(item, HistoryEntry) else str(item)
        self.buffer = strip_separators(result)
        self.history_visible = False

    def clear_history(self) -> None:
        self.history.clear_all()

    # ----- keypad -----

    def press(self, key: str) -> None:
        """Dispatch a single keypad token."""
        token = str(key).strip()
        if len(token) == 1 and token in DIGITS:
            self.press_digit(token)
            return

        action = _KEY_ACTIONS.get(token.lower())
        if action is not None:
            action(self)
            return

        try:
            operation = Operation.from_symbol(token)
        except ValueError:
            raise UnknownKeyError(token) from None
        if operation is Operation.MODULO and token == "%":
            # The keypad "%" key is the standalone percent, not remainder.
            self.percent()
            return
        self.press_operation(operation)

    def press_sequence(self, keys: Iterable[str]) -> DisplayState:
        for key in keys:
            self.press(key)
        return self.display


_KEY_ACTIONS = {
    ".": Calculator.press_decimal,
    "=": Calculator.press_equals,
    "ac": Calculator.clear,
    "c": Calculator.clear,
    "clear": Calculator.clear,
    "⌫": Calculator.delete,
    "del": Calculator.delete,
    "backspace": Calculator.delete,
    "±": Calculator.toggle_sign,
    "+/-": Calculator.toggle_sign,
    "neg": Calculator.toggle_sign,
}
