"""Arithmetic engine: binary operations and display formatting.

Nothing in here raises on bad numeric input. Unparsable text reads as zero,
and singular results (division by zero, overflow) surface as the display
sentinel ``"Undefined"``.
"""

from __future__ import annotations

import math
import operator as op
import re
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


UNDEFINED = "Undefined"
SEPARATOR = ","


class Operation(str, Enum):
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "×"
    DIVIDE = "÷"
    MODULO = "%"

    @property
    def symbol(self) -> str:
        return self.value

    @classmethod
    def from_symbol(cls, symbol: Union[str, "Operation"]) -> "Operation":
        """Resolve a keypad symbol (or ASCII alias) to an Operation."""
        if isinstance(symbol, Operation):
            return symbol
        key = str(symbol).strip().lower()
        found = _ALIASES.get(key)
        if found is None:
            raise ValueError(f"Unknown operation: {symbol!r}")
        return found


_ALIASES = {
    "+": Operation.ADD,
    "-": Operation.SUBTRACT,
    "−": Operation.SUBTRACT,
    "×": Operation.MULTIPLY,
    "*": Operation.MULTIPLY,
    "x": Operation.MULTIPLY,
    "÷": Operation.DIVIDE,
    "/": Operation.DIVIDE,
    "%": Operation.MODULO,
    "mod": Operation.MODULO,
}


def _divide(a: float, b: float) -> float:
    if b == 0:
        return math.nan
    return a / b


def _remainder(a: float, b: float) -> float:
    # Sign follows the dividend (truncated division), unlike Python's %.
    if b == 0:
        return math.nan
    try:
        return math.fmod(a, b)
    except ValueError:
        return math.nan


_BINARY = {
    Operation.ADD: op.add,
    Operation.SUBTRACT: op.sub,
    Operation.MULTIPLY: op.mul,
    Operation.DIVIDE: _divide,
    Operation.MODULO: _remainder,
}


def compute(a: float, b: float, operation: Optional[Union[Operation, str]]) -> float:
    """Apply ``operation`` to ``a`` and ``b``.

    With no operation the second operand passes through unchanged. Division
    or remainder by zero yields NaN rather than raising.
    """
    if operation is None:
        return float(b)
    fn = _BINARY[Operation.from_symbol(operation)]
    return fn(float(a), float(b))


def format_result(a: float, b: float, operation: Optional[Union[Operation, str]]) -> str:
    """Compute and render as a plain decimal string, or ``"Undefined"``."""
    result = compute(a, b, operation)
    if math.isnan(result) or not math.isfinite(result):
        return UNDEFINED
    return number_to_str(result)


_EXPONENT = re.compile(r"e([+-])0*(\d)")


def number_to_str(value: float) -> str:
    """Shortest plain rendering of a number.

    Integral values drop the trailing ``.0``, negative zero renders as ``0``
    and exponent notation is only used outside [1e-6, 1e21).
    """
    value = float(value)
    if not math.isfinite(value):
        return UNDEFINED
    if value == 0:
        return "0"
    magnitude = abs(value)
    if value.is_integer() and magnitude < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" in text:
        if 1e-6 <= magnitude < 1e21:
            return format(Decimal(text), "f")
        return _EXPONENT.sub(r"e\1\2", text)
    return text


def strip_separators(text: str) -> str:
    return str(text).replace(SEPARATOR, "")


_NUMBER_PREFIX = re.compile(r"^\s*([+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")


def parse_number(text: Optional[str]) -> float:
    """Parse the numeric prefix of ``text``; anything unparsable reads as 0."""
    if text is None:
        return 0.0
    match = _NUMBER_PREFIX.match(strip_separators(text))
    if not match:
        return 0.0
    return float(match.group(1))


_LEADING_ZEROS = re.compile(r"^0+(?=[0-9])")
_DIGITS = re.compile(r"[0-9]+")


def format_display(raw: str) -> str:
    """Group the integer part with thousands separators.

    Leading zeros are dropped (``"0"`` and ``"0."`` survive), the fractional
    part is left as typed and non-numeric text such as ``"Undefined"`` or an
    operation symbol comes back unchanged.
    """
    value = strip_separators(raw)
    if value == "0":
        return value

    value = _LEADING_ZEROS.sub("", value)
    integer, dot, fraction = value.partition(".")

    sign = ""
    digits = integer
    if digits.startswith("-"):
        sign, digits = "-", digits[1:]
    if _DIGITS.fullmatch(digits):
        integer = f"{sign}{int(digits):,}"

    return f"{integer}{dot}{fraction}"
