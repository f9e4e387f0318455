# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Safe expression evaluation for rule tables.

Insight rules are written as small expressions over a flat mapping of named
numbers (metrics, snapshot fields, health score, ...). They are parsed with
``ast`` and walked node by node; nothing is ever passed to ``eval``.

Supported:
    - numeric literals and booleans (True/False)
    - variable names (keys of the variables mapping)
    - arithmetic: +, -, *, /, %, ** and unary minus / plus
    - comparisons: <, <=, >, >=, ==, != (chained comparisons allowed)
    - boolean logic: and, or, not
    - abs(), min(), max()
    - parentheses

Errors
------
ValueError for syntax errors and unsupported constructs.
UnknownVariableError (a KeyError) when a name is not in the mapping, so that
rule engines can tell 'cannot be evaluated here' apart from 'badly written'.
"""

import ast
import operator
from collections.abc import Callable, Mapping
from typing import Any

_BINARY_OPERATORS: dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
    ast.Mod: operator.mod,
}

_UNARY_OPERATORS: dict[type, Callable[[Any], Any]] = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Not: operator.not_,
}

_COMPARISONS: dict[type, Callable[[Any, Any], bool]] = {
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
}

_FUNCTIONS: dict[str, Callable[..., float]] = {
    "abs": abs,
    "min": min,
    "max": max,
}


class UnknownVariableError(KeyError):
    """An expression referenced a name that is not available."""


def parse_expression(expr: str) -> ast.Expression:
    """
    Parse ``expr`` and check that it only uses supported constructs.

    Raises:
        ValueError: on syntax errors or unsupported nodes.
    """
    try:
        tree = ast.parse(expr, mode="eval")
    except SyntaxError as exc:
        raise ValueError(f"Invalid expression syntax: {expr!r}") from exc

    allowed = (
        ast.Expression,
        ast.Constant,
        ast.Name,
        ast.Load,
        ast.BinOp,
        ast.UnaryOp,
        ast.BoolOp,
        ast.Compare,
        ast.Call,
        ast.And,
        ast.Or,
        *_BINARY_OPERATORS,
        *_UNARY_OPERATORS,
        *_COMPARISONS,
    )
    for node in ast.walk(tree):
        if not isinstance(node, allowed):
            raise ValueError(
                f"Unsupported expression node {type(node).__name__} in {expr!r}"
            )
        if isinstance(node, ast.Call):
            if (
                not isinstance(node.func, ast.Name)
                or node.func.id not in _FUNCTIONS
                or node.keywords
            ):
                raise ValueError(f"Unsupported function call in {expr!r}")
        if isinstance(node, ast.Constant) and not isinstance(
            node.value, (int, float, bool)
        ):
            raise ValueError(f"Unsupported constant in expression: {node.value!r}")
    return tree


def names_in(expr: str) -> set[str]:
    """Return the variable names referenced by ``expr``."""
    tree = parse_expression(expr)
    return {
        node.id
        for node in ast.walk(tree)
        if isinstance(node, ast.Name) and node.id not in _FUNCTIONS
    }


def _eval(node: ast.AST, variables: Mapping[str, float]) -> Any:
    if isinstance(node, ast.Expression):
        return _eval(node.body, variables)

    if isinstance(node, ast.Constant):
        return node.value

    if isinstance(node, ast.Name):
        if node.id not in variables:
            raise UnknownVariableError(node.id)
        return float(variables[node.id])

    if isinstance(node, ast.BinOp):
        op_func = _BINARY_OPERATORS[type(node.op)]
        return op_func(_eval(node.left, variables), _eval(node.right, variables))

    if isinstance(node, ast.UnaryOp):
        op_func = _UNARY_OPERATORS[type(node.op)]
        return op_func(_eval(node.operand, variables))

    if isinstance(node, ast.BoolOp):
        if isinstance(node.op, ast.And):
            return all(bool(_eval(v, variables)) for v in node.values)
        return any(bool(_eval(v, variables)) for v in node.values)

    if isinstance(node, ast.Compare):
        left = _eval(node.left, variables)
        for op, comparator in zip(node.ops, node.comparators):
            right = _eval(comparator, variables)
            if not _COMPARISONS[type(op)](left, right):
                return False
            left = right
        return True

    if isinstance(node, ast.Call):
        func = _FUNCTIONS[node.func.id]  # type: ignore[attr-defined]
        return func(*(_eval(arg, variables) for arg in node.args))

    raise ValueError(f"Unsupported expression node: {type(node).__name__}")


def evaluate(expr: str, variables: Mapping[str, float]) -> Any:
    """
    Evaluate ``expr`` against ``variables``.

    Returns a float for arithmetic expressions and a bool for conditions.

    Raises:
        ValueError: if the expression contains unsupported constructs.
        UnknownVariableError: if a referenced name is missing.
        ZeroDivisionError: if the expression divides by zero.
    """
    return _eval(parse_expression(expr), variables)


def evaluate_condition(expr: str, variables: Mapping[str, float]) -> bool:
    return bool(evaluate(expr, variables))


def evaluate_amount(expr: str, variables: Mapping[str, float]) -> float:
    return float(evaluate(expr, variables))
