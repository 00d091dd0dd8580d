from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional

from sched_core.rules.engine.errors import InvalidDateTimeFormat, TypeMismatch, UnknownOperator
from sched_core.rules.engine.timeofday import parse_clock_minutes, parse_instant

OPERATORS = ("=", "!=", "<", ">", "<=", ">=", "IN", "NOT_IN")
NUMERIC_OPERATORS = ("<", ">", "<=", ">=")
COUNT_OPERATORS = ("=", "!=", "<", ">", "<=", ">=")

_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_comparable_number(value: Any) -> Optional[float]:
    """
    Numeric view of an operand, tried in order:
      1) plain number / numeric string
      2) ISO datetime (epoch milliseconds)
      3) "HH:MM[:SS]" time of day (minutes since midnight)
    Returns None when nothing applies.
    """
    if _is_number(value):
        return float(value)

    if isinstance(value, datetime):
        return parse_instant(value).timestamp() * 1000

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    if _NUMBER.match(text):
        return float(text)

    try:
        return parse_instant(text).timestamp() * 1000
    except InvalidDateTimeFormat:
        pass

    return parse_clock_minutes(text)


def strict_equals(left: Any, right: Any) -> bool:
    """
    Structural equality without coercion: "1" != 1 and True != 1,
    while 1 == 1.0 (both numbers).
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right

    if _is_number(left) and _is_number(right):
        return left == right

    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(strict_equals(a, b) for a, b in zip(left, right))

    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(strict_equals(left[k], right[k]) for k in left)

    if type(left) is not type(right):
        return False
    return left == right


def stringify(value: Any) -> str:
    """
    Left operand of IN / NOT_IN, rendered the way it appears in JSON.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if value is None:
        return "null"
    return str(value)


def compare(left: Any, op: str, right: Any) -> bool:
    if op not in OPERATORS:
        raise UnknownOperator(op, OPERATORS)

    if op == "=":
        return strict_equals(left, right)
    if op == "!=":
        return not strict_equals(left, right)

    if op in ("IN", "NOT_IN"):
        if not isinstance(right, (list, tuple)):
            raise TypeMismatch(op, left, right, expected="a list on the right-hand side")
        found = stringify(left) in right
        return found if op == "IN" else not found

    lhs = to_comparable_number(left)
    rhs = to_comparable_number(right)
    if lhs is None or rhs is None:
        raise TypeMismatch(op, left, right)

    if op == "<":
        return lhs < rhs
    if op == ">":
        return lhs > rhs
    if op == "<=":
        return lhs <= rhs
    return lhs >= rhs
