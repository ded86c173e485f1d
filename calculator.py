#!/usr/bin/env python3
"""
Scientific Calculator Session
Owns the session state (angle mode, precision, memory, history) and drives
the normalizer and evaluator; also provides the interactive calculator loop
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from evaluator import AngleMode, EvalEnvironment, EvalResult, evaluate
from notation import normalize

logger = logging.getLogger(__name__)

DEFAULT_ANGLE_MODE = AngleMode.DEGREES
DEFAULT_PRECISION = 6
MAX_PRECISION = 15
ERROR_DISPLAY = "Error"
LOG_DIR = Path("logs")

_ANGLE_MODE_NAMES = {
    'deg': AngleMode.DEGREES,
    'degrees': AngleMode.DEGREES,
    'rad': AngleMode.RADIANS,
    'radians': AngleMode.RADIANS,
}


@dataclass
class HistoryEntry:
    expression: str
    value: float
    display: str

    def __str__(self) -> str:
        return f"{self.expression} = {self.display}"


def parse_angle_mode(mode: Union[AngleMode, str]) -> AngleMode:
    """Accept an AngleMode or one of DEG/RAD/degrees/radians"""
    if isinstance(mode, AngleMode):
        return mode
    key = str(mode).strip().lower()
    if key not in _ANGLE_MODE_NAMES:
        raise ValueError(f"Unknown angle mode: {mode}. Use DEG or RAD")
    return _ANGLE_MODE_NAMES[key]


def validate_precision(precision) -> int:
    if isinstance(precision, bool) or not isinstance(precision, int):
        raise ValueError("Precision must be a whole number")
    if not 0 <= precision <= MAX_PRECISION:
        raise ValueError(f"Precision must be between 0 and {MAX_PRECISION}")
    return precision


def format_number(value: Optional[float], precision: int = DEFAULT_PRECISION) -> str:
    """Round to ``precision`` fractional digits and drop the trailing zeros.

    Rounding uses Python's correctly rounded float formatting, which works on
    the exact binary value (ties on exactly representable halves go to even).
    """
    if value is None or not math.isfinite(value):
        return ERROR_DISPLAY

    rounded = float(f"{value:.{precision}f}")
    if rounded == 0:
        return "0"
    if rounded.is_integer() and abs(rounded) < 1e16:
        return str(int(rounded))
    return repr(rounded)


class Calculator:
    """Calculator session with memory register and history"""

    def __init__(self, angle_mode: Union[AngleMode, str] = DEFAULT_ANGLE_MODE,
                 precision: int = DEFAULT_PRECISION):
        self.angle_mode = parse_angle_mode(angle_mode)
        self.precision = validate_precision(precision)
        self.memory = 0.0
        self.history: List[HistoryEntry] = []
        self.last_result = 0.0
        self.last_error: Optional[EvalResult] = None

    @property
    def environment(self) -> EvalEnvironment:
        return EvalEnvironment(angle_mode=self.angle_mode, precision=self.precision)

    @property
    def display(self) -> str:
        """Current result line: the last good result, or Error after a failure"""
        if self.last_error is not None:
            return ERROR_DISPLAY
        return self.format(self.last_result)

    def format(self, value: Optional[float]) -> str:
        return format_number(value, self.precision)

    def compute(self, expression: str) -> EvalResult:
        """Evaluate expression; blank input re-evaluates the last result"""
        source = expression.strip() if expression else ''
        if not source:
            source = self.format(self.last_result)

        result = evaluate(normalize(source), self.environment)

        if not result.ok:
            logger.warning(f"Evaluation failed ({result.error.value}): {source!r} - {result.message}")
            self.last_error = result
            return result

        self.last_error = None
        self.last_result = result.value
        self.history.insert(0, HistoryEntry(source, result.value, self.format(result.value)))
        return result

    # ------------------------------------------
    # Memory register
    # ------------------------------------------

    def memory_clear(self):
        self.memory = 0.0
        logger.info("Memory cleared")

    def memory_recall(self) -> str:
        """Memory value as text, ready to be inserted into an expression"""
        return self.format(self.memory)

    def memory_store(self):
        """Store the last result; a zero result leaves memory unchanged"""
        self.memory = self.last_result or self.memory
        logger.info(f"Memory stored: {self.memory}")

    def memory_add(self, expression: str) -> EvalResult:
        result = self.compute(expression)
        if result.ok:
            self.memory += result.value
            logger.info(f"Memory updated: {self.memory}")
        return result

    def memory_subtract(self, expression: str) -> EvalResult:
        result = self.compute(expression)
        if result.ok:
            self.memory -= result.value
            logger.info(f"Memory updated: {self.memory}")
        return result

    # ------------------------------------------
    # Settings
    # ------------------------------------------

    def set_angle_mode(self, mode: Union[AngleMode, str]) -> AngleMode:
        self.angle_mode = parse_angle_mode(mode)
        logger.info(f"Angle mode set to {self.angle_mode.value}")
        return self.angle_mode

    def toggle_angle_mode(self) -> AngleMode:
        if self.angle_mode == AngleMode.DEGREES:
            return self.set_angle_mode(AngleMode.RADIANS)
        return self.set_angle_mode(AngleMode.DEGREES)

    def set_precision(self, precision: int) -> str:
        """Change display precision and return the reformatted result"""
        self.precision = validate_precision(precision)
        logger.info(f"Precision set to {self.precision}")
        return self.display

    @staticmethod
    def percent(expression: str) -> str:
        return f"{expression}/100"

    # ------------------------------------------
    # History
    # ------------------------------------------

    def show_history(self, n: int = 10):
        """Display last n calculations, newest first"""
        for entry in self.history[:n]:
            print(f"  {entry}")

    def clear_history(self):
        self.history = []


def _print_help(calc: Calculator):
    print("\nAvailable functions: sin cos tan asin acos atan log ln sqrt")
    print("Notation: × ÷ ^ π n!  and implicit multiplication like 2(3+4) or 2π")
    print(f"Angle mode: {calc.angle_mode.value}   Precision: {calc.precision}")
    print()


def main():
    LOG_DIR.mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(LOG_DIR / f'calculator_{datetime.now().strftime("%Y%m%d")}.log'),
        ]
    )

    calc = Calculator()

    print("=" * 60)
    print("SCIENTIFIC CALCULATOR")
    print("=" * 60)
    print()
    print("Commands:")
    print("  help          - Show this help")
    print("  mode [deg|rad] - Toggle or set angle mode")
    print("  precision N   - Set display precision (0-15)")
    print("  history       - Show calculation history")
    print("  clear         - Clear history")
    print("  mc / mr / ms  - Clear, recall, store memory")
    print("  m+ EXPR       - Add result of EXPR to memory")
    print("  m- EXPR       - Subtract result of EXPR from memory")
    print("  quit          - Exit calculator")
    print("=" * 60)
    print()

    while True:
        try:
            user_input = input(f"calc [{calc.angle_mode.value}]> ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        command = user_input.lower()
        try:
            if command == 'quit':
                print("Goodbye!")
                break
            elif command == 'help':
                _print_help(calc)
            elif command == 'mode':
                print(f"Angle mode: {calc.toggle_angle_mode().value}\n")
            elif command.startswith('mode '):
                print(f"Angle mode: {calc.set_angle_mode(command[5:]).value}\n")
            elif command.startswith('precision'):
                print(f"= {calc.set_precision(int(command[9:].strip()))}\n")
            elif command == 'history':
                if calc.history:
                    print("\nRecent calculations:")
                    calc.show_history()
                else:
                    print("No history yet")
                print()
            elif command == 'clear':
                calc.clear_history()
                print("Cleared history\n")
            elif command == 'mc':
                calc.memory_clear()
                print(f"M: {calc.memory_recall()}\n")
            elif command == 'mr':
                print(f"M: {calc.memory_recall()}\n")
            elif command == 'ms':
                calc.memory_store()
                print(f"M: {calc.memory_recall()}\n")
            elif command.startswith('m+') or command.startswith('m-'):
                if command.startswith('m+'):
                    result = calc.memory_add(user_input[2:])
                else:
                    result = calc.memory_subtract(user_input[2:])
                if result.ok:
                    print(f"= {calc.display}   M: {calc.memory_recall()}\n")
                else:
                    print(f"Error: {result.message}\n")
            else:
                result = calc.compute(user_input)
                if result.ok:
                    print(f"= {calc.display}\n")
                else:
                    print(f"Error: {result.message}\n")

        except ValueError as e:
            print(f"Error: {e}\n")


if __name__ == "__main__":
    main()
