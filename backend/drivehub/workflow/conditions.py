# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Expression evaluation for condition nodes, edge conditions and set nodes.

Expressions are parsed with `ast` and walked over a whitelist of node types;
names resolve to workflow variables, a few builtins, or true/false.
Variable values are strings, so "3", "2.5" and "true" are coerced first.
"""

import ast
import operator
from typing import Any, Callable, Dict

BINARY_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
    ast.Not: operator.not_,
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

COMPARISONS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda left, right: left in right,
    ast.NotIn: lambda left, right: left not in right,
}

BUILTINS = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
}

LITERALS = {"true": True, "false": False}


def coerce_value(value: Any) -> Any:
    """"3" -> 3, "2.5" -> 2.5, "true" -> True; anything else unchanged"""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text.lower() in LITERALS:
        return LITERALS[text.lower()]
    for number in (int, float):
        try:
            return number(text)
        except ValueError:
            continue
    return value


def _lookup(table: Dict[type, Any], op: ast.AST) -> Any:
    try:
        return table[type(op)]
    except KeyError:
        raise ValueError(f"Operator not allowed: {type(op).__name__}")


class _Evaluator:
    def __init__(self, variables: Dict[str, Any]):
        self.variables = variables

    def eval(self, node: ast.AST) -> Any:
        handler = getattr(self, f"_{type(node).__name__.lower()}", None)
        if handler is None:
            raise ValueError(f"Expression element not allowed: {type(node).__name__}")
        return handler(node)

    def _expression(self, node: ast.Expression) -> Any:
        return self.eval(node.body)

    def _constant(self, node: ast.Constant) -> Any:
        return node.value

    def _name(self, node: ast.Name) -> Any:
        if node.id in self.variables:
            return coerce_value(self.variables[node.id])
        if node.id in BUILTINS:
            return BUILTINS[node.id]
        if node.id in LITERALS:
            return LITERALS[node.id]
        raise ValueError(f"Undefined variable: {node.id}")

    def _binop(self, node: ast.BinOp) -> Any:
        apply = _lookup(BINARY_OPS, node.op)
        left, right = self.eval(node.left), self.eval(node.right)
        # no str repetition, e.g. 'x' * 999999999
        if isinstance(node.op, ast.Mult) and (isinstance(left, str) or isinstance(right, str)):
            raise ValueError("String repetition not allowed")
        return apply(left, right)

    def _unaryop(self, node: ast.UnaryOp) -> Any:
        apply = _lookup(UNARY_OPS, node.op)
        return apply(self.eval(node.operand))

    def _compare(self, node: ast.Compare) -> bool:
        # chained: 1 < x < 10
        left = self.eval(node.left)
        for op, right_node in zip(node.ops, node.comparators):
            right = self.eval(right_node)
            if not _lookup(COMPARISONS, op)(left, right):
                return False
            left = right
        return True

    def _boolop(self, node: ast.BoolOp) -> bool:
        values = (self.eval(v) for v in node.values)
        return all(values) if isinstance(node.op, ast.And) else any(values)

    def _call(self, node: ast.Call) -> Any:
        if node.keywords:
            raise ValueError("Keyword arguments not allowed")
        function = self.eval(node.func)
        if function not in BUILTINS.values():
            raise ValueError(f"Function not allowed: {getattr(node.func, 'id', '?')}")
        return function(*[self.eval(arg) for arg in node.args])


def evaluate_expression(expression: str, variables: Dict[str, Any]) -> Any:
    """
    Evaluate an expression and return its raw value.

    Raises:
        ValueError: Bad syntax, a disallowed construct, an undefined name, or
            a runtime failure such as division by zero
    """
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Invalid expression syntax: {e.msg}")
    try:
        return _Evaluator(variables).eval(tree)
    except (TypeError, ZeroDivisionError) as e:
        raise ValueError(f"Expression evaluation failed: {e}")


def evaluate_condition(condition: str, variables: Dict[str, Any]) -> bool:
    """
    Truthiness of an expression over workflow variables.

    >>> evaluate_condition("count > 5", {"count": "10"})
    True
    """
    return bool(evaluate_expression(condition, variables))
