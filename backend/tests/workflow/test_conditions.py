# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the safe condition evaluator
"""

import pytest

from drivehub.workflow.conditions import coerce_value, evaluate_condition, evaluate_expression


class TestCoerceValue:
    """String variables are coerced before comparison"""

    def test_integers(self):
        assert coerce_value("42") == 42

    def test_floats(self):
        assert coerce_value("2.5") == 2.5

    def test_booleans(self):
        assert coerce_value("true") is True
        assert coerce_value("False") is False

    def test_other_strings_unchanged(self):
        assert coerce_value("done") == "done"


class TestEvaluateCondition:
    """Test evaluate_condition"""

    def test_numeric_comparison_on_string_variables(self):
        """Numbers stored as strings compare numerically"""
        assert evaluate_condition("count > 5", {"count": "10"}) is True
        assert evaluate_condition("count > 5", {"count": "2"}) is False

    def test_string_equality(self):
        assert evaluate_condition("status == 'done'", {"status": "done"}) is True

    def test_boolean_logic(self):
        variables = {"a": "1", "b": "0"}
        assert evaluate_condition("a == 1 and not b", variables) is True
        assert evaluate_condition("a == 0 or b == 0", variables) is True

    def test_chained_comparison(self):
        assert evaluate_condition("1 < x < 10", {"x": "5"}) is True
        assert evaluate_condition("1 < x < 10", {"x": "50"}) is False

    def test_membership(self):
        assert evaluate_condition("'err' in log", {"log": "an error occurred"}) is True

    def test_safe_functions(self):
        assert evaluate_condition("len(name) == 3", {"name": "abc"}) is True

    def test_bare_true_false_literals(self):
        assert evaluate_condition("true", {}) is True
        assert evaluate_condition("false", {}) is False

    def test_undefined_variable_raises(self):
        with pytest.raises(ValueError, match="Undefined variable"):
            evaluate_condition("missing > 1", {})

    def test_attribute_access_rejected(self):
        """Attribute access could reach arbitrary objects"""
        with pytest.raises(ValueError, match="not allowed"):
            evaluate_condition("name.__class__", {"name": "x"})

    def test_unknown_function_rejected(self):
        with pytest.raises(ValueError):
            evaluate_condition("open('x')", {})

    def test_syntax_error(self):
        with pytest.raises(ValueError, match="Invalid expression syntax"):
            evaluate_condition("a >", {"a": "1"})


class TestEvaluateExpression:
    """Raw expression values (used by set nodes)"""

    def test_arithmetic(self):
        assert evaluate_expression("2 + 3 * 4", {}) == 14

    def test_division_by_zero(self):
        with pytest.raises(ValueError, match="evaluation failed"):
            evaluate_expression("1 / 0", {})

    def test_string_repetition_rejected(self):
        with pytest.raises(ValueError, match="String repetition not allowed"):
            evaluate_expression("'x' * 999999999", {})
        with pytest.raises(ValueError, match="String repetition not allowed"):
            evaluate_condition("len(name * n) > 0", {"name": "ab", "n": "3"})

    def test_numeric_multiplication_still_allowed(self):
        assert evaluate_expression("a * b", {"a": "6", "b": "7"}) == 42
