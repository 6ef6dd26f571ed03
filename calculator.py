"""
Keypad Calculator core (no UI)

- Entry buffer with at most one decimal point, no leading zeros
- + − × ÷ with operator chaining, √, ±, backspace, clear
- Memory register (MC/MR/MS/M+/M−) and running history
- Power-of-multiplier unit conversion: data (1024), length (10), weight (1000)
- Closed Action enum + key/tag translation for front ends

Numbers are rendered the way a browser prints doubles: "8" not "8.0",
shortest round-trip digits, "1e+21", "NaN", "Infinity".
"""

from __future__ import annotations

import logging
import math
import operator
import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

log = logging.getLogger(__name__)

# ============================== Errors ======================================

class CalculationError(Exception):
    message = "Calculation error"
    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)

class DivisionByZero(CalculationError):
    message = "Cannot divide by zero"

class NegativeSqrt(CalculationError):
    message = "Cannot take the square root of a negative number"

# ============================== Settings ====================================

@dataclass
class Settings:
    history_window: int = 3       # history lines shown
    error_delay_ms: int = 2000    # lifetime of a flashed error
    def validate(self) -> None:
        if not (1 <= int(self.history_window) <= 50):
            raise ValueError("history_window must be 1..50")
        if not (0 <= int(self.error_delay_ms) <= 60000):
            raise ValueError("error_delay_ms must be 0..60000")

# ============================ Number text ===================================

DIGIT_TOKENS = frozenset("0123456789.")

_PLAIN_RE = re.compile(r"-?\d+(\.\d*)?\Z")
_NUMBER_RE = re.compile(r"-?(\d+(\.\d*)?|\.\d+)(e[+-]?\d+)?\Z|-?Infinity\Z|NaN\Z")

def parse_number(text: str) -> float:
    if not _NUMBER_RE.match(text):
        raise ValueError(f"not a number: {text!r}")
    return float(text)

def format_number(x: float) -> str:
    x = float(x)
    if math.isnan(x): return "NaN"
    if math.isinf(x): return "Infinity" if x > 0 else "-Infinity"
    if x == 0: return "0"
    sign = "-" if x < 0 else ""
    t = Decimal(repr(abs(x))).normalize().as_tuple()
    digits = "".join(map(str, t.digits)); k = len(digits)
    n = t.exponent + k   # x = 0.<digits> * 10**n
    if k <= n <= 21: return sign + digits + "0" * (n - k)
    if 0 < n <= 21:  return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:  return sign + "0." + "0" * (-n) + digits
    e = n - 1
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{sign}{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"

@dataclass
class InputBuffer:
    """Text of the number being typed; parsed only when an operation needs it."""
    text: str = "0"

    @property
    def has_decimal(self) -> bool: return "." in self.text
    @property
    def value(self) -> float: return parse_number(self.text)
    @property
    def editable(self) -> bool: return bool(_PLAIN_RE.match(self.text))

    def append(self, token: str) -> None:
        if token not in DIGIT_TOKENS or len(token) != 1:
            raise ValueError(f"not a digit token: {token!r}")
        # results like "1e+21" or "Infinity" are replaced, not extended
        if not self.editable: self.text = "0"
        if token == "." and self.has_decimal: return
        if self.text == "0" and token != ".": self.text = token
        else: self.text += token

    def pop(self) -> None:
        rest = self.text[:-1]
        self.text = rest if rest and _NUMBER_RE.match(rest) else "0"

    def set_value(self, x: float) -> None: self.text = format_number(x)
    def reset(self) -> None: self.text = "0"

# ============================ Operations ====================================

class Operation(Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"

    @property
    def symbol(self) -> str: return _SYMBOLS[self]

# subtraction uses the typographic minus (U+2212) to sit with × and ÷
_SYMBOLS: Dict[Operation, str] = {Operation.ADD: "+", Operation.SUBTRACT: "−",
                                  Operation.MULTIPLY: "×", Operation.DIVIDE: "÷"}
_APPLY: Dict[Operation, Callable[[float, float], float]] = {
    Operation.ADD: operator.add, Operation.SUBTRACT: operator.sub,
    Operation.MULTIPLY: operator.mul, Operation.DIVIDE: operator.truediv,
}

# ============================ Unit tables ===================================

@dataclass(frozen=True)
class UnitKind:
    multiplier: int
    units: Tuple[str, ...]

UNIT_KINDS: Dict[str, UnitKind] = {
    "data":   UnitKind(1024, ("B", "KB", "MB", "GB", "TB")),
    "length": UnitKind(10,   ("mm", "cm", "m", "km")),
    "weight": UnitKind(1000, ("mg", "g", "kg", "t")),
}
NO_KIND = "none"
PLACEHOLDER = "base"

def convert_between_units(value: float, from_unit: str, to_unit: str, kind: str) -> float:
    """Scale by multiplier**(steps between units); each adjacent pair differs by the same factor."""
    k = UNIT_KINDS[kind]
    try:
        steps = k.units.index(from_unit) - k.units.index(to_unit)
    except ValueError:
        raise ValueError(f"unknown {kind} unit: {from_unit!r} or {to_unit!r}") from None
    return value * k.multiplier ** steps

@dataclass
class UnitConversion:
    kind: str = NO_KIND
    from_unit: str = PLACEHOLDER
    to_unit: str = PLACEHOLDER

    @property
    def ready(self) -> bool:
        return self.kind != NO_KIND and PLACEHOLDER not in (self.from_unit, self.to_unit)

# ============================= Core Engine ==================================

class CalculatorEngine:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings(); self.settings.validate()
        self.current = InputBuffer()
        self.previous: str = ""
        self.operation: Optional[Operation] = None
        self.memory: float = 0.0
        self.history: List[str] = []
        self.unit_conversion = UnitConversion()

    # ---- Read side
    @property
    def display(self) -> str: return self.current.text
    @property
    def has_decimal(self) -> bool: return self.current.has_decimal
    @property
    def expression(self) -> str:
        return f"{self.previous} {self.operation.symbol} " if self.operation else ""
    @property
    def memory_indicator(self) -> str: return "M" if self.memory != 0 else ""

    def recent_history(self, n: Optional[int] = None) -> List[str]:
        n = self.settings.history_window if n is None else n
        return self.history[-n:] if n > 0 else []

    # ---- Entry
    def append_digit(self, token: str) -> None: self.current.append(token)
    def backspace(self) -> None: self.current.pop()

    def clear(self) -> None:
        self.current.reset(); self.previous = ""; self.operation = None

    # ---- Arithmetic
    def set_operation(self, op: Operation) -> None:
        op = Operation(op)
        error: Optional[CalculationError] = None
        if self.operation is not None:
            # a failed chained step still hands over to the new operator
            try: self.calculate()
            except CalculationError as exc: error = exc
        self.previous = self.current.text
        self.current.reset()
        self.operation = op
        if error is not None: raise error

    def calculate(self) -> Optional[float]:
        if self.operation is None or not self.previous: return None
        prev, cur = parse_number(self.previous), self.current.value
        if self.operation is Operation.DIVIDE and cur == 0:
            log.info("division by zero: %s ÷ %s", self.previous, self.current.text)
            raise DivisionByZero()
        result = _APPLY[self.operation](prev, cur)
        record = f"{format_number(prev)} {self.operation.symbol} {format_number(cur)} = {format_number(result)}"
        self.history.append(record)
        log.debug("calculated %s", record)
        self.current.set_value(result)
        self.operation = None; self.previous = ""
        return result

    def toggle_sign(self) -> None: self.current.set_value(-self.current.value)

    def sqrt(self) -> None:
        x = self.current.value
        if x < 0:
            log.info("square root of negative value %s", self.current.text)
            raise NegativeSqrt()
        self.current.set_value(math.sqrt(x))

    # ---- Memory
    def memory_clear(self) -> None: self.memory = 0.0; log.debug("memory cleared")
    def memory_recall(self) -> None: self.current.set_value(self.memory)
    def memory_store(self) -> None: self.memory = self.current.value; log.debug("memory = %s", self.memory)
    def memory_add(self) -> None: self.memory += self.current.value; log.debug("memory = %s", self.memory)
    def memory_subtract(self) -> None: self.memory -= self.current.value; log.debug("memory = %s", self.memory)

    # ---- Units
    def _check_unit(self, unit: str) -> None:
        kind = self.unit_conversion.kind
        if kind == NO_KIND:
            if unit != PLACEHOLDER: raise ValueError(f"no unit kind selected for {unit!r}")
        elif unit not in UNIT_KINDS[kind].units:
            raise ValueError(f"unknown {kind} unit: {unit!r}")

    def set_unit_kind(self, kind: str) -> None:
        if kind == NO_KIND:
            self.unit_conversion = UnitConversion()
        elif kind in UNIT_KINDS:
            first = UNIT_KINDS[kind].units[0]
            self.unit_conversion = UnitConversion(kind, first, first)
        else:
            raise ValueError(f"unknown unit kind: {kind!r}")

    def set_unit_from(self, unit: str) -> None:
        self._check_unit(unit); self.unit_conversion.from_unit = unit; self.convert_unit()

    def set_unit_to(self, unit: str) -> None:
        self._check_unit(unit); self.unit_conversion.to_unit = unit; self.convert_unit()

    def convert_unit(self) -> None:
        uc = self.unit_conversion
        if not uc.ready: return
        result = convert_between_units(self.current.value, uc.from_unit, uc.to_unit, uc.kind)
        log.debug("converted %s %s -> %s %s", self.current.text, uc.from_unit, format_number(result), uc.to_unit)
        self.current.set_value(result)

# ============================ Input mapping =================================

class Action(Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    CALCULATE = "calculate"
    CLEAR = "clear"
    BACKSPACE = "backspace"
    TOGGLE_SIGN = "toggle-sign"
    SQRT = "sqrt"
    MC = "mc"
    MR = "mr"
    MS = "ms"
    M_PLUS = "m-plus"
    M_MINUS = "m-minus"

_DISPATCH: Dict[Action, Callable[[CalculatorEngine], object]] = {
    Action.ADD:         lambda e: e.set_operation(Operation.ADD),
    Action.SUBTRACT:    lambda e: e.set_operation(Operation.SUBTRACT),
    Action.MULTIPLY:    lambda e: e.set_operation(Operation.MULTIPLY),
    Action.DIVIDE:      lambda e: e.set_operation(Operation.DIVIDE),
    Action.CALCULATE:   CalculatorEngine.calculate,
    Action.CLEAR:       CalculatorEngine.clear,
    Action.BACKSPACE:   CalculatorEngine.backspace,
    Action.TOGGLE_SIGN: CalculatorEngine.toggle_sign,
    Action.SQRT:        CalculatorEngine.sqrt,
    Action.MC:          CalculatorEngine.memory_clear,
    Action.MR:          CalculatorEngine.memory_recall,
    Action.MS:          CalculatorEngine.memory_store,
    Action.M_PLUS:      CalculatorEngine.memory_add,
    Action.M_MINUS:     CalculatorEngine.memory_subtract,
}

KEY_ACTIONS: Dict[str, Action] = {
    "+": Action.ADD, "-": Action.SUBTRACT, "*": Action.MULTIPLY, "/": Action.DIVIDE,
    "Enter": Action.CALCULATE, "Return": Action.CALCULATE, "KP_Enter": Action.CALCULATE,
    "Backspace": Action.BACKSPACE, "BackSpace": Action.BACKSPACE,
    "Escape": Action.CLEAR,
}

def action_for_tag(tag: str) -> Action:
    try: return Action(tag)
    except ValueError: raise ValueError(f"unknown action tag: {tag!r}") from None

def command_for_key(key: str, ctrl: bool = False, meta: bool = False) -> Union[str, Action, None]:
    """Digit token, Action, or None when the key is not ours (incl. any Ctrl/Meta chord)."""
    if ctrl or meta: return None
    if key in DIGIT_TOKENS and len(key) == 1: return key
    return KEY_ACTIONS.get(key)

def dispatch(engine: CalculatorEngine, action: Action) -> None:
    _DISPATCH[action](engine)
