"""
Connection condition evaluation.

Conditions are field/operator/value predicates resolved against the
execution context. Evaluation never raises: operands that cannot be
compared make the predicate false.
"""

import json
import math
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence

from ..models.workflow import Condition, ConditionLogic, ConditionOperator


class _Missing:
    """Marker for a path that does not resolve."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def resolve_path(context: Any, path: str) -> Any:
    """
    Walk a dot-separated path into nested mappings and sequences.

    Args:
        context: Execution data context
        path: Path such as "user.address.city" or "items.0.sku"

    Returns:
        The resolved value, or MISSING if any segment is absent
    """
    value = context
    for part in path.split("."):
        if isinstance(value, Mapping):
            if part not in value:
                return MISSING
            value = value[part]
        elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and part.isdigit():
            index = int(part)
            if index >= len(value):
                return MISSING
            value = value[index]
        else:
            return MISSING
    return value


def to_text(value: Any) -> str:
    """String form used by string operators and template substitution."""
    if value is MISSING or value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def _to_number(value: Any) -> Optional[float]:
    if value is MISSING or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def _numeric(compare: Callable[[float, float], bool]) -> Callable[[Any, str], bool]:
    def check(actual: Any, expected: str) -> bool:
        left = _to_number(actual)
        right = _to_number(expected)
        if left is None or right is None:
            return False
        return compare(left, right)
    return check


def _textual(compare: Callable[[str, str], bool]) -> Callable[[Any, str], bool]:
    def check(actual: Any, expected: str) -> bool:
        return compare(to_text(actual).lower(), to_text(expected).lower())
    return check


_OPERATORS: Dict[ConditionOperator, Callable[[Any, str], bool]] = {
    ConditionOperator.EQUALS: _textual(lambda a, b: a == b),
    ConditionOperator.NOT_EQUALS: _textual(lambda a, b: a != b),
    ConditionOperator.CONTAINS: _textual(lambda a, b: b in a),
    ConditionOperator.NOT_CONTAINS: _textual(lambda a, b: b not in a),
    ConditionOperator.STARTS_WITH: _textual(lambda a, b: a.startswith(b)),
    ConditionOperator.ENDS_WITH: _textual(lambda a, b: a.endswith(b)),
    ConditionOperator.GREATER_THAN: _numeric(lambda a, b: a > b),
    ConditionOperator.LESS_THAN: _numeric(lambda a, b: a < b),
}


def compare_values(actual: Any, operator: ConditionOperator, expected: str) -> bool:
    """Apply a single operator. Unknown operators evaluate to False."""
    try:
        check = _OPERATORS[ConditionOperator(operator)]
    except (KeyError, ValueError):
        return False
    return check(actual, expected)


def evaluate_condition(condition: Condition, context: Mapping[str, Any]) -> bool:
    """Evaluate one condition against the context."""
    actual = resolve_path(context, condition.field)
    return compare_values(actual, condition.operator, condition.value)


def evaluate_conditions(
    conditions: Iterable[Condition],
    logic: ConditionLogic,
    context: Mapping[str, Any],
) -> bool:
    """
    Decide whether a connection should be followed.

    Args:
        conditions: Predicates attached to the connection
        logic: AND requires every predicate, OR requires at least one
        context: Execution data context

    Returns:
        True for an empty condition list (unconditional edge)
    """
    conditions = list(conditions)
    if not conditions:
        return True

    results = [evaluate_condition(c, context) for c in conditions]
    if ConditionLogic(logic) == ConditionLogic.OR:
        return any(results)
    return all(results)
