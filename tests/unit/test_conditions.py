"""
Unit tests for connection condition evaluation.
"""
import pytest

from automation_engine.engine.conditions import (
    MISSING,
    compare_values,
    evaluate_conditions,
    resolve_path,
)
from automation_engine.models.workflow import Condition, ConditionLogic, ConditionOperator


def cond(field: str, operator: str, value: str) -> Condition:
    return Condition(id=f"{field}-{operator}", field=field, operator=ConditionOperator(operator), value=value)


AGE_AND_STATUS = [
    cond("status", "equals", "active"),
    cond("age", "greater_than", "18"),
]


class TestResolvePath:
    """Test dot-path lookup into the context."""

    def test_nested_mapping(self):
        assert resolve_path({"user": {"address": {"city": "Oslo"}}}, "user.address.city") == "Oslo"

    def test_list_index(self):
        assert resolve_path({"items": [{"sku": "a"}, {"sku": "b"}]}, "items.1.sku") == "b"

    def test_missing_segment(self):
        assert resolve_path({"user": {}}, "user.email") is MISSING
        assert resolve_path({"user": "text"}, "user.email") is MISSING
        assert resolve_path({"items": []}, "items.0") is MISSING

    def test_present_none_is_not_missing(self):
        assert resolve_path({"user": None}, "user") is None


class TestEvaluateConditions:
    """Test AND/OR combination of predicates."""

    @pytest.mark.parametrize("context", [{}, {"status": "anything"}, {"x": {"y": 1}}])
    def test_empty_conditions_always_true(self, context):
        assert evaluate_conditions([], ConditionLogic.AND, context) is True
        assert evaluate_conditions([], ConditionLogic.OR, context) is True

    def test_and_all_hold(self):
        assert evaluate_conditions(AGE_AND_STATUS, ConditionLogic.AND, {"status": "active", "age": 25}) is True

    def test_and_one_fails(self):
        assert evaluate_conditions(AGE_AND_STATUS, ConditionLogic.AND, {"status": "inactive", "age": 25}) is False

    def test_or_one_holds(self):
        assert evaluate_conditions(AGE_AND_STATUS, ConditionLogic.OR, {"status": "inactive", "age": 25}) is True

    def test_or_none_hold(self):
        assert evaluate_conditions(AGE_AND_STATUS, ConditionLogic.OR, {"status": "inactive", "age": 12}) is False

    def test_logic_accepts_plain_string(self):
        assert evaluate_conditions(AGE_AND_STATUS, "OR", {"status": "active", "age": 1}) is True


class TestStringOperators:
    """Test case-insensitive string comparisons."""

    def test_equals_ignores_case(self):
        assert compare_values("Active", ConditionOperator.EQUALS, "ACTIVE")

    def test_not_equals(self):
        assert compare_values("a", ConditionOperator.NOT_EQUALS, "b")
        assert not compare_values("A", ConditionOperator.NOT_EQUALS, "a")

    def test_contains_and_not_contains(self):
        assert compare_values("Hello World", ConditionOperator.CONTAINS, "world")
        assert compare_values("Hello World", ConditionOperator.NOT_CONTAINS, "mars")

    def test_starts_and_ends_with(self):
        assert compare_values("invoice-2024.pdf", ConditionOperator.STARTS_WITH, "INVOICE")
        assert compare_values("invoice-2024.pdf", ConditionOperator.ENDS_WITH, ".PDF")
        assert not compare_values("invoice-2024.pdf", ConditionOperator.ENDS_WITH, ".doc")

    def test_missing_value_is_empty_string(self):
        assert compare_values(MISSING, ConditionOperator.EQUALS, "")
        assert compare_values(MISSING, ConditionOperator.NOT_EQUALS, "x")
        assert compare_values(None, ConditionOperator.NOT_CONTAINS, "x")

    def test_numbers_and_booleans_coerced(self):
        assert compare_values(25, ConditionOperator.EQUALS, "25")
        assert compare_values(25.0, ConditionOperator.EQUALS, "25")
        assert compare_values(True, ConditionOperator.EQUALS, "true")


class TestNumericOperators:
    """Test numeric comparisons never raise."""

    def test_greater_and_less_than(self):
        assert compare_values(25, ConditionOperator.GREATER_THAN, "18")
        assert compare_values("3.5", ConditionOperator.LESS_THAN, "4")
        assert not compare_values(18, ConditionOperator.GREATER_THAN, "18")

    @pytest.mark.parametrize("value", [MISSING, None, "", "abc", {"a": 1}, "nan"])
    def test_non_numeric_is_false(self, value):
        assert compare_values(value, ConditionOperator.GREATER_THAN, "1") is False
        assert compare_values(value, ConditionOperator.LESS_THAN, "1") is False

    def test_non_numeric_expected_is_false(self):
        assert compare_values(5, ConditionOperator.GREATER_THAN, "five") is False

    def test_unknown_operator_is_false(self):
        assert compare_values("a", "between", "a") is False
