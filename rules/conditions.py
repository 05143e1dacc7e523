"""Evaluation of single property conditions.

Every operator takes the record's property value and the condition value and
returns a bool. String operators compare case-insensitively; numeric operators
coerce both sides with :func:`parse_number` and any failed coercion is simply a
non-match. Nothing in here raises for bad input.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Callable, Dict, List, Mapping

from .models import Condition, coerce_condition

logger = logging.getLogger(__name__)
detail_logger = logging.getLogger("detail")

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")

OperatorFn = Callable[[Any, Any], bool]


def as_text(value: Any) -> str:
    """Render a property value as the comparable string.

    ``None`` is the empty string; integral floats lose their ``.0`` so that
    ``1500.0`` compares equal to ``"1500"``.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_number(value: Any) -> float:
    """Coerce ``value`` to a float, ``nan`` when that is not possible.

    Non-numeric characters are dropped first (``"$1,500"`` -> ``1500.0``) and
    the leading decimal number is used. There is no locale handling:
    ``"1.500,00"`` parses as ``1.5``.
    """
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _NON_NUMERIC_RE.sub("", str(value))
    match = _LEADING_NUMBER_RE.match(cleaned)
    if not match:
        return math.nan
    try:
        return float(match.group(0))
    except ValueError:
        return math.nan


def _lower(value: Any) -> str:
    return as_text(value).lower()


def _split_list(value: Any) -> List[str]:
    return [part.strip().lower() for part in as_text(value).split(",")]


def _is_empty(value: Any, _: Any = None) -> bool:
    return value is None or as_text(value).strip() == ""


OPERATORS: Dict[str, OperatorFn] = {
    "equals": lambda a, b: _lower(a) == _lower(b),
    "not_equals": lambda a, b: _lower(a) != _lower(b),
    "contains": lambda a, b: _lower(b) in _lower(a),
    "not_contains": lambda a, b: _lower(b) not in _lower(a),
    "starts_with": lambda a, b: _lower(a).startswith(_lower(b)),
    "ends_with": lambda a, b: _lower(a).endswith(_lower(b)),
    # comparisons with nan are False, which is the intended non-match
    "greater_than": lambda a, b: parse_number(a) > parse_number(b),
    "less_than": lambda a, b: parse_number(a) < parse_number(b),
    "greater_equal": lambda a, b: parse_number(a) >= parse_number(b),
    "less_equal": lambda a, b: parse_number(a) <= parse_number(b),
    "is_empty": _is_empty,
    "is_not_empty": lambda a, b: not _is_empty(a),
    "in_list": lambda a, b: _lower(a) in _split_list(b),
    "not_in_list": lambda a, b: _lower(a) not in _split_list(b),
}


def evaluate_condition(
    condition: Condition | Mapping[str, Any],
    properties: Mapping[str, Any],
) -> bool:
    """Evaluate one condition against a flat property mapping."""
    cond = coerce_condition(condition)
    operator = str(cond.get("operator") or "").strip()
    operator_fn = OPERATORS.get(operator)
    if operator_fn is None:
        logger.warning("Unknown condition operator: %r", operator)
        return False

    prop = cond.get("property")
    record_value = properties.get(prop) if isinstance(prop, str) else None
    expected = cond.get("value")

    try:
        result = bool(operator_fn(record_value, expected))
    except (TypeError, ValueError) as exc:
        logger.debug("Condition %s %s failed to evaluate: %s", prop, operator, exc)
        result = False

    detail_logger.info(
        "Condition: %s %s %r | record value: %r | result: %s",
        prop,
        operator,
        expected,
        record_value,
        result,
    )
    return result
