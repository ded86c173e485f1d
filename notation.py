#!/usr/bin/env python3
"""
Calculator Notation Normalizer
Rewrites calculator surface notation (×, ÷, ^, π, n!, implicit
multiplication) into the canonical form understood by the evaluator
"""

import re
from typing import Callable, List, Tuple, Union

PI_TOKEN = 'pi'
POW_TOKEN = '**'

FUNCTION_NAMES = ('log', 'ln', 'sqrt', 'sin', 'cos', 'tan', 'asin', 'acos', 'atan', 'factorial')

_FACTORIAL_RE = re.compile(r'([0-9]+\.?[0-9]*(?:[eE][+-]?[0-9]+)?)\s*!')
_FUNCTION_CALL_RE = re.compile(r'\b(' + '|'.join(FUNCTION_NAMES) + r')\s*\(')
_IMPLICIT_PAREN_RE = re.compile(r'([0-9])\s*\(')
_IMPLICIT_PI_RE = re.compile(r'([0-9])\s*(' + PI_TOKEN + r')\b')

Rule = Tuple[str, Callable[[str], str]]


def _replace_symbols(text: str) -> str:
    """× ÷ π and the exact two-character double negative"""
    return (text.replace('×', '*')
                .replace('÷', '/')
                .replace('π', PI_TOKEN)
                .replace('--', '+'))


def _replace_power(text: str) -> str:
    return text.replace('^', POW_TOKEN)


def _rewrite_factorial(text: str) -> str:
    # A literal number (1e+20 included) directly before '!' is rewritten; '(2+3)!' stays as is
    return _FACTORIAL_RE.sub(r'factorial(\1)', text)


def _tighten_function_calls(text: str) -> str:
    return _FUNCTION_CALL_RE.sub(r'\1(', text)


def _insert_implicit_multiplication(text: str) -> str:
    text = _IMPLICIT_PAREN_RE.sub(r'\1*(', text)
    return _IMPLICIT_PI_RE.sub(r'\1*\2', text)


# Order matters: each rule sees the whole output of the previous one
RULES: List[Rule] = [
    ('symbols', _replace_symbols),
    ('power', _replace_power),
    ('factorial', _rewrite_factorial),
    ('functions', _tighten_function_calls),
    ('implicit_multiplication', _insert_implicit_multiplication),
]


def normalize(raw: Union[str, None]) -> str:
    """Convert a raw calculator expression into canonical form.

    Never fails: text that cannot be made sense of is passed through and
    rejected later by the evaluator.

    Examples:
        >>> normalize('2×π')
        '2*pi'
        >>> normalize('5!+2(3)')
        'factorial(5)+2*(3)'
    """
    text = raw or ''
    for _name, rule in RULES:
        text = rule(text)
    return text
