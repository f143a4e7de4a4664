"""Condition evaluator for Filter/Conditional nodes.

Grammar (checked in this order):

- ``true`` / ``1`` and ``false`` / ``0`` / empty
- ``left OP right`` with OP one of ``==``, ``!=``, ``>=``, ``<=``, ``>``, ``<``
- ``value.contains("needle")``
- anything else non-empty is truthy

Operands that exactly match a run context key are replaced by that key's
value; otherwise they are literals with surrounding quotes stripped.
Numeric operators need both sides to parse as floats and evaluate to False
when they don't. Evaluation never raises.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Mapping
from typing import Any

from workflow_engine.context import stringify

_QUOTES = "\"'"
_CONTAINS = ".contains("

_EQUALITY: dict[str, Callable[[str, str], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
}
_NUMERIC: dict[str, Callable[[float, float], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
}
# Two-character operators must be tried before their one-character prefixes.
_OPERATOR_ORDER = ("==", "!=", ">=", "<=", ">", "<")


def resolve_operand(token: str, context: Mapping[str, Any]) -> str:
    token = token.strip().strip(_QUOTES)
    if token in context:
        return stringify(context[token])
    return token


def _to_float(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None


def _compare(op: str, left: str, right: str) -> bool:
    if op in _EQUALITY:
        return _EQUALITY[op](left, right)
    lnum, rnum = _to_float(left), _to_float(right)
    if lnum is None or rnum is None:
        return False
    return _NUMERIC[op](lnum, rnum)


def evaluate_condition(condition: str, context: Mapping[str, Any] | None = None) -> bool:
    context = context or {}
    condition = condition.strip()

    if condition in ("true", "1"):
        return True
    if condition in ("false", "0", ""):
        return False

    for op in _OPERATOR_ORDER:
        if op in condition:
            left, right = condition.split(op, 1)
            return _compare(
                op, resolve_operand(left, context), resolve_operand(right, context)
            )

    start = condition.find(_CONTAINS)
    if start != -1:
        rest = condition[start + len(_CONTAINS) :]
        end = rest.find(")")
        if end != -1:
            needle = rest[:end].strip().strip(_QUOTES)
            haystack = resolve_operand(condition[:start], context)
            return needle in haystack

    return True
