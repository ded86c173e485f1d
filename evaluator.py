#!/usr/bin/env python3
"""
Expression Evaluator
Recursive descent parser producing an explicit expression tree, and a tree
walker that evaluates it with angle-mode aware trigonometry
"""

import logging
import math
import operator
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

MAX_NESTING_DEPTH = 128


# ==========================================
# ENVIRONMENT & RESULTS
# ==========================================

class AngleMode(Enum):
    DEGREES = "DEG"
    RADIANS = "RAD"


@dataclass(frozen=True)
class EvalEnvironment:
    """Per-call settings supplied by the caller"""
    angle_mode: AngleMode = AngleMode.DEGREES
    precision: int = 6

    def __post_init__(self):
        if not isinstance(self.angle_mode, AngleMode):
            raise ValueError(f"Unknown angle mode: {self.angle_mode}")
        if not isinstance(self.precision, int) or self.precision < 0:
            raise ValueError("Precision must be a non-negative integer")


class ErrorKind(Enum):
    SYNTAX = "SYNTAX"
    DOMAIN = "DOMAIN"
    NUMERIC_INDETERMINATE = "NUMERIC_INDETERMINATE"


class EvaluationError(ValueError):
    """Base class for every failure the evaluator can report"""
    kind = ErrorKind.SYNTAX


class ExpressionSyntaxError(EvaluationError):
    kind = ErrorKind.SYNTAX


class DomainError(EvaluationError):
    kind = ErrorKind.DOMAIN


class NumericIndeterminateError(EvaluationError):
    kind = ErrorKind.NUMERIC_INDETERMINATE


_ERRORS_BY_KIND = {
    ErrorKind.SYNTAX: ExpressionSyntaxError,
    ErrorKind.DOMAIN: DomainError,
    ErrorKind.NUMERIC_INDETERMINATE: NumericIndeterminateError,
}


@dataclass(frozen=True)
class EvalResult:
    """Either a finite number or a tagged failure.

    For NUMERIC_INDETERMINATE failures ``value`` keeps the non-finite
    float that was produced (inf, -inf or nan); for the other kinds it is None.
    """
    value: Optional[float] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def success(cls, value: float) -> 'EvalResult':
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, value: Optional[float] = None) -> 'EvalResult':
        return cls(value=value, error=kind, message=message)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> float:
        """Return the value or raise the matching EvaluationError"""
        if self.error is not None:
            raise _ERRORS_BY_KIND[self.error](self.message)
        return self.value


# ==========================================
# TOKENIZER
# ==========================================

class TokenType(Enum):
    NUMBER = "NUMBER"
    OPERATOR = "OPERATOR"
    FUNCTION = "FUNCTION"
    CONSTANT = "CONSTANT"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    COMMA = "COMMA"


@dataclass
class Token:
    type: TokenType
    value: Union[str, float]
    position: int


CONSTANTS: Dict[str, float] = {
    'pi': math.pi,
}

DIGITS = "0123456789"

CONSTANT_ALIASES = {
    'π': 'pi',
}


def tokenize(expression: str) -> List[Token]:
    """Convert canonical expression string into tokens"""
    tokens = []
    i = 0
    expression = expression.lower()

    while i < len(expression):
        char = expression[i]

        if char.isspace():
            i += 1

        # Numbers (integer or decimal, optional exponent)
        elif char in DIGITS or (char == '.' and i + 1 < len(expression) and expression[i + 1] in DIGITS):
            j = i
            has_dot = False
            while j < len(expression):
                if expression[j] in DIGITS:
                    j += 1
                elif expression[j] == '.' and not has_dot:
                    has_dot = True
                    j += 1
                else:
                    break

            # 1e+20 as produced by the result formatter
            if j < len(expression) and expression[j] == 'e':
                k = j + 1
                if k < len(expression) and expression[k] in '+-':
                    k += 1
                if k < len(expression) and expression[k] in DIGITS:
                    while k < len(expression) and expression[k] in DIGITS:
                        k += 1
                    j = k

            tokens.append(Token(TokenType.NUMBER, float(expression[i:j]), i))
            i = j

        elif char in CONSTANT_ALIASES:
            tokens.append(Token(TokenType.CONSTANT, CONSTANT_ALIASES[char], i))
            i += 1

        # Functions and constants
        elif char.isalpha():
            j = i
            while j < len(expression) and expression[j].isalpha():
                j += 1

            word = expression[i:j]
            if word in CONSTANTS:
                tokens.append(Token(TokenType.CONSTANT, word, i))
            elif word in FUNCTIONS:
                tokens.append(Token(TokenType.FUNCTION, word, i))
            else:
                raise ExpressionSyntaxError(f"Unknown identifier: {word}")
            i = j

        elif expression.startswith('**', i):
            tokens.append(Token(TokenType.OPERATOR, '^', i))
            i += 2
        elif char in '+-*/^':
            tokens.append(Token(TokenType.OPERATOR, char, i))
            i += 1
        elif char == '(':
            tokens.append(Token(TokenType.LPAREN, '(', i))
            i += 1
        elif char == ')':
            tokens.append(Token(TokenType.RPAREN, ')', i))
            i += 1
        elif char == ',':
            tokens.append(Token(TokenType.COMMA, ',', i))
            i += 1
        else:
            raise ExpressionSyntaxError(f"Unexpected character at position {i}: {char}")

    return tokens


# ==========================================
# EXPRESSION TREE
# ==========================================

@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Constant:
    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: 'Node'


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: 'Node'
    right: 'Node'


@dataclass(frozen=True)
class FunctionCall:
    name: str
    argument: 'Node'


Node = Union[Number, Constant, UnaryOp, BinaryOp, FunctionCall]


# ==========================================
# PARSER
# ==========================================

class Parser:
    """Recursive descent parser for canonical expressions.

    One instance per parse; holds the token cursor and the current nesting
    depth so that separate calls never share state.
    """

    def __init__(self, tokens: List[Token], max_depth: int = MAX_NESTING_DEPTH):
        self.tokens = tokens
        self.pos = 0
        self.depth = 0
        self.max_depth = max_depth

    def parse(self) -> Node:
        if not self.tokens:
            raise ExpressionSyntaxError("Empty expression")

        tree = self._parse_expression()

        if self.pos < len(self.tokens):
            token = self.tokens[self.pos]
            raise ExpressionSyntaxError(f"Unexpected token at position {token.position}: {token.value}")

        return tree

    def _current_token(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _consume_token(self) -> Optional[Token]:
        token = self._current_token()
        if token:
            self.pos += 1
        return token

    def _is_operator(self, symbols: str) -> bool:
        token = self._current_token()
        return token is not None and token.type == TokenType.OPERATOR and token.value in symbols

    def _expect(self, token_type: TokenType, message: str) -> Token:
        token = self._current_token()
        if not token or token.type != token_type:
            raise ExpressionSyntaxError(message)
        return self._consume_token()

    def _parse_expression(self) -> Node:
        """Additive expression (lowest precedence)"""
        left = self._parse_term()
        while self._is_operator('+-'):
            op = self._consume_token().value
            left = BinaryOp(op, left, self._parse_term())
        return left

    def _parse_term(self) -> Node:
        """Multiplicative expression"""
        left = self._parse_unary()
        while self._is_operator('*/'):
            op = self._consume_token().value
            left = BinaryOp(op, left, self._parse_unary())
        return left

    def _parse_unary(self) -> Node:
        # Every recursive path goes through here, so this is where depth is bounded
        self.depth += 1
        if self.depth > self.max_depth:
            raise ExpressionSyntaxError(f"Expression nested deeper than {self.max_depth} levels")
        try:
            if self._is_operator('+-'):
                op = self._consume_token().value
                return UnaryOp(op, self._parse_unary())
            return self._parse_power()
        finally:
            self.depth -= 1

    def _parse_power(self) -> Node:
        """Power binds tighter than unary minus and is right associative"""
        base = self._parse_atom()
        if self._is_operator('^'):
            self._consume_token()
            return BinaryOp('^', base, self._parse_unary())
        return base

    def _parse_atom(self) -> Node:
        token = self._current_token()

        if not token:
            raise ExpressionSyntaxError("Unexpected end of expression")

        if token.type == TokenType.NUMBER:
            self._consume_token()
            return Number(token.value)

        if token.type == TokenType.CONSTANT:
            self._consume_token()
            return Constant(token.value)

        if token.type == TokenType.FUNCTION:
            self._consume_token()
            self._expect(TokenType.LPAREN, f"Expected '(' after function {token.value}")

            args = [self._parse_expression()]
            while self._current_token() and self._current_token().type == TokenType.COMMA:
                self._consume_token()
                args.append(self._parse_expression())

            self._expect(TokenType.RPAREN, "Expected ')'")

            if len(args) != 1:
                raise ExpressionSyntaxError(f"Function {token.value} takes 1 argument, got {len(args)}")
            return FunctionCall(token.value, args[0])

        if token.type == TokenType.LPAREN:
            self._consume_token()
            inner = self._parse_expression()
            self._expect(TokenType.RPAREN, "Mismatched parentheses")
            return inner

        raise ExpressionSyntaxError(f"Unexpected token at position {token.position}: {token.value}")


def parse(canonical: str, max_depth: int = MAX_NESTING_DEPTH) -> Node:
    """Tokenize and parse a canonical expression into a tree"""
    return Parser(tokenize(canonical), max_depth).parse()


# ==========================================
# BUILT-IN FUNCTIONS
# ==========================================

def _ieee(func: Callable[[float], float]) -> Callable[[float], float]:
    """Make a math function return NaN/inf instead of raising"""
    def wrapper(x: float) -> float:
        try:
            return func(x)
        except ValueError:
            return math.nan
        except OverflowError:
            return math.inf
    wrapper.__name__ = func.__name__
    return wrapper


def factorial(x: float) -> float:
    """Iterative factorial restricted to non-negative integers"""
    if not float(x).is_integer() or x < 0:
        raise DomainError(f"factorial is only defined for non-negative integers, got {x:g}")

    result = 1.0
    i = 2
    while i <= x:
        result *= i
        if math.isinf(result):
            break
        i += 1
    return result


_log10 = _ieee(math.log10)
_ln = _ieee(math.log)


def log10(x: float) -> float:
    if x == 0:
        return -math.inf
    return _log10(x)


def ln(x: float) -> float:
    if x == 0:
        return -math.inf
    return _ln(x)


FORWARD_TRIG = {
    'sin': _ieee(math.sin),
    'cos': _ieee(math.cos),
    'tan': _ieee(math.tan),
}

INVERSE_TRIG = {
    'asin': _ieee(math.asin),
    'acos': _ieee(math.acos),
    'atan': _ieee(math.atan),
}

FUNCTIONS: Dict[str, Callable[[float], float]] = {
    **FORWARD_TRIG,
    **INVERSE_TRIG,

    # Logarithmic
    'log': log10,
    'ln': ln,

    # Power & Root
    'sqrt': _ieee(math.sqrt),

    'factorial': factorial,
}


# ==========================================
# ARITHMETIC
# ==========================================

def divide(left: float, right: float) -> float:
    """IEEE division: x/0 is a signed infinity, 0/0 is NaN"""
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def power(base: float, exponent: float) -> float:
    """Real power with IEEE results instead of exceptions or complex numbers"""
    try:
        return math.pow(base, exponent)
    except OverflowError:
        if base < 0 and float(exponent).is_integer() and exponent % 2 == 1:
            return -math.inf
        return math.inf
    except ValueError:
        # 0 to a negative power, or a negative base with a fractional exponent
        if base == 0:
            if float(exponent).is_integer() and exponent % 2 == 1:
                return math.copysign(math.inf, base)
            return math.inf
        return math.nan


_BIN_OPS: Dict[str, Callable[[float, float], float]] = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': divide,
    '^': power,
}

_UNARY_OPS: Dict[str, Callable[[float], float]] = {
    '+': operator.pos,
    '-': operator.neg,
}


# ==========================================
# EVALUATOR
# ==========================================

class Evaluator:
    """Walks an expression tree under a fixed environment"""

    def __init__(self, env: EvalEnvironment):
        self.env = env

    @property
    def degrees(self) -> bool:
        return self.env.angle_mode == AngleMode.DEGREES

    def visit(self, node: Node) -> float:
        """Post-order walk with an explicit stack; long flat chains never hit the recursion limit"""
        values: List[float] = []
        stack = [(node, False)]

        while stack:
            current, children_done = stack.pop()

            if isinstance(current, Number):
                values.append(float(current.value))
            elif isinstance(current, Constant):
                values.append(CONSTANTS[current.name])
            elif not isinstance(current, (BinaryOp, UnaryOp, FunctionCall)):
                raise ExpressionSyntaxError(f"Unsupported expression: {type(current).__name__}")

            elif not children_done:
                stack.append((current, True))
                if isinstance(current, BinaryOp):
                    # Left is popped first so operand order is kept on the value stack
                    stack.append((current.right, False))
                    stack.append((current.left, False))
                elif isinstance(current, UnaryOp):
                    stack.append((current.operand, False))
                else:
                    stack.append((current.argument, False))

            elif isinstance(current, BinaryOp):
                right = values.pop()
                left = values.pop()
                values.append(float(_BIN_OPS[current.op](left, right)))
            elif isinstance(current, UnaryOp):
                values.append(float(_UNARY_OPS[current.op](values.pop())))
            else:
                values.append(self.call(current.name, values.pop()))

        return values.pop()

    def call(self, name: str, x: float) -> float:
        if name in FORWARD_TRIG:
            if self.degrees:
                x = x * math.pi / 180
            return FORWARD_TRIG[name](x)

        if name in INVERSE_TRIG:
            result = INVERSE_TRIG[name](x)
            if self.degrees:
                result = result * 180 / math.pi
            return result

        if name not in FUNCTIONS:
            raise ExpressionSyntaxError(f"Unknown function: {name}")
        return float(FUNCTIONS[name](x))


def _as_environment(env: Union[EvalEnvironment, AngleMode, None]) -> EvalEnvironment:
    if env is None:
        return EvalEnvironment()
    if isinstance(env, AngleMode):
        return EvalEnvironment(angle_mode=env)
    return env


def evaluate(canonical: str, env: Union[EvalEnvironment, AngleMode, None] = None) -> EvalResult:
    """Parse and evaluate a canonical expression.

    Never raises for string input: every failure comes back as a tagged
    EvalResult. ``env`` may be a full EvalEnvironment or just an AngleMode.

    Examples:
        >>> evaluate('2^3^2').value
        512.0
        >>> evaluate('1/0').error
        <ErrorKind.NUMERIC_INDETERMINATE: 'NUMERIC_INDETERMINATE'>
    """
    env = _as_environment(env)

    try:
        tree = parse(canonical or '')
        value = Evaluator(env).visit(tree)
        if not math.isfinite(value):
            raise NumericIndeterminateError(f"Result is not a finite number: {value}")
    except NumericIndeterminateError as e:
        logger.debug(f"{e.kind.value} evaluating {canonical!r}: {e}")
        return EvalResult.failure(e.kind, str(e), value)
    except EvaluationError as e:
        logger.debug(f"{e.kind.value} evaluating {canonical!r}: {e}")
        return EvalResult.failure(e.kind, str(e))
    except RecursionError:
        logger.debug(f"Recursion limit hit evaluating {canonical!r}")
        return EvalResult.failure(ErrorKind.SYNTAX, "Expression is too deeply nested")

    return EvalResult.success(value)
