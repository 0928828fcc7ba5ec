"""
Expression Evaluator - computes typed values of resolved expressions

Values are plain Python objects:
- int (INTEGER), float (FLOAT), str (TEXT), bool (BOOLEAN), None (NULL)

Row fields are stored as text and typed lazily when a column is read:
empty -> NULL, integer text -> INTEGER, decimal text -> FLOAT, anything else
-> TEXT. Logical operators use three-valued logic, so conditions evaluate to
True, False or None.
"""

from decimal import Decimal
from typing import Any, Sequence
import math
import re

from . import config
from .errors import EvaluationError, TypeMismatchError, DivisionByZeroError
from .parser import Expression, BinaryOp, UnaryOp, Literal, ColumnRef

INTEGER_RE = re.compile(r'^[+-]?\d+$')
DECIMAL_RE = re.compile(r'^[+-]?(\d+\.\d*|\.\d+)$')

ARITHMETIC_OPS = ('+', '-', '*', '/')
COMPARISON_OPS = ('=', '<>', '<', '>', '<=', '>=')


# ============================================================================
# Value helpers
# ============================================================================

def parse_field(text: str) -> Any:
    """Type a raw field: number if it parses as one, else text; empty is NULL"""
    if text is None:
        return None
    stripped = text.strip()
    if not stripped:
        return None
    if INTEGER_RE.match(stripped):
        try:
            return int(stripped)
        except ValueError:
            # Past the interpreter's integer digit limit
            return text
    if DECIMAL_RE.match(stripped):
        return float(stripped)
    return text


def is_numeric(value: Any) -> bool:
    # bool is a subclass of int but is not a number here
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def type_name(value: Any) -> str:
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return 'BOOLEAN'
    if isinstance(value, int):
        return 'INTEGER'
    if isinstance(value, float):
        return 'FLOAT'
    return 'TEXT'


def format_value(value: Any) -> str:
    """Render a value the way it is written to a table file"""
    if value is None:
        return config.NULL_TEXT
    if isinstance(value, bool):
        return config.TRUE_TEXT if value else config.FALSE_TEXT
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, int):
        try:
            return str(value)
        except ValueError as e:
            raise EvaluationError(f"Integer is too large to write: {e}") from e
    return str(value)


def _format_float(value: float) -> str:
    """Plain positional decimal text; exponent notation would read back as TEXT"""
    if math.isnan(value) or math.isinf(value):
        raise EvaluationError(f"Cannot store non-finite number {value!r}")
    text = repr(value)
    if 'e' in text or 'E' in text:
        text = format(Decimal(text), 'f')
    if '.' not in text:
        text += '.0'
    return text


def like_to_regex(pattern: str) -> 're.Pattern':
    """SQL LIKE pattern matching: % = any run, _ = single char"""
    parts = []
    for char in pattern:
        if char == '%':
            parts.append('.*')
        elif char == '_':
            parts.append('.')
        else:
            parts.append(re.escape(char))
    return re.compile(''.join(parts), re.DOTALL)


# ============================================================================
# Evaluation
# ============================================================================

def evaluate(expr: Expression, row: Sequence[str]) -> Any:
    """Evaluate a resolved expression against one row of raw fields"""
    if isinstance(expr, Literal):
        return expr.value

    elif isinstance(expr, ColumnRef):
        if expr.index is None:
            raise EvaluationError(f"Column '{expr.column_name}' was not resolved", str(expr))
        return parse_field(row[expr.index])

    elif isinstance(expr, UnaryOp):
        operand = evaluate(expr.operand, row)
        if expr.op == 'NOT':
            _check_logical(operand, expr)
            return None if operand is None else not operand
        if expr.op == '-':
            if operand is None:
                return None
            if not is_numeric(operand):
                raise _mismatch(expr, operand)
            return -operand
        raise EvaluationError(f"Unknown unary operator '{expr.op}'", str(expr))

    elif isinstance(expr, BinaryOp):
        # Both sides are always evaluated so errors do not depend on row data order
        left = evaluate(expr.left, row)
        right = evaluate(expr.right, row)

        if expr.op == 'AND':
            return _and(left, right, expr)
        elif expr.op == 'OR':
            return _or(left, right, expr)
        elif expr.op in COMPARISON_OPS:
            return _compare(expr, left, right)
        elif expr.op in ARITHMETIC_OPS:
            return _arithmetic(expr, left, right)
        elif expr.op == '||':
            return _concat(expr, left, right)
        elif expr.op == 'LIKE':
            return _like(expr, left, right)
        raise EvaluationError(f"Unknown operator '{expr.op}'", str(expr))

    raise EvaluationError(f"Cannot evaluate {type(expr).__name__}", str(expr))


def evaluate_condition(expr: Expression, row: Sequence[str]):
    """Evaluate a WHERE expression: True, False or None (unknown)"""
    result = evaluate(expr, row)
    if result is not None and not isinstance(result, bool):
        raise TypeMismatchError(
            f"WHERE clause evaluates to {type_name(result)}, expected BOOLEAN: {expr}",
            str(expr)
        )
    return result


def _mismatch(expr: Expression, *values: Any) -> TypeMismatchError:
    types = ', '.join(type_name(v) for v in values)
    op = expr.op if isinstance(expr, (BinaryOp, UnaryOp)) else ''
    return TypeMismatchError(f"Operator '{op}' cannot be applied to {types}: {expr}", str(expr))


def _check_logical(value: Any, expr: Expression):
    if value is not None and not isinstance(value, bool):
        raise _mismatch(expr, value)


def _and(left: Any, right: Any, expr: BinaryOp):
    _check_logical(left, expr)
    _check_logical(right, expr)
    if left is False or right is False:
        return False
    if left is None or right is None:
        return None
    return True


def _or(left: Any, right: Any, expr: BinaryOp):
    _check_logical(left, expr)
    _check_logical(right, expr)
    if left is True or right is True:
        return True
    if left is None or right is None:
        return None
    return False


def _compare(expr: BinaryOp, left: Any, right: Any):
    if left is None or right is None:
        return None

    comparable = (
        (is_numeric(left) and is_numeric(right))
        or (isinstance(left, str) and isinstance(right, str))
        or (isinstance(left, bool) and isinstance(right, bool))
    )
    if not comparable:
        raise _mismatch(expr, left, right)

    op = expr.op
    if op == '=':
        return left == right
    elif op == '<>':
        return left != right
    elif op == '<':
        return left < right
    elif op == '>':
        return left > right
    elif op == '<=':
        return left <= right
    return left >= right


def _arithmetic(expr: BinaryOp, left: Any, right: Any):
    if left is None or right is None:
        return None
    if not (is_numeric(left) and is_numeric(right)):
        raise _mismatch(expr, left, right)

    try:
        return _apply_arithmetic(expr, left, right)
    except OverflowError as e:
        raise EvaluationError(f"Numeric overflow in {expr}: {e}", str(expr)) from e


def _apply_arithmetic(expr: BinaryOp, left: Any, right: Any):
    op = expr.op
    if op == '+':
        return left + right
    elif op == '-':
        return left - right
    elif op == '*':
        return left * right

    if right == 0:
        raise DivisionByZeroError(f"Division by zero: {expr}", str(expr))
    if isinstance(left, int) and isinstance(right, int):
        # Integer division truncates toward zero
        quotient = abs(left) // abs(right)
        return quotient if (left < 0) == (right < 0) else -quotient
    return left / right


def _concat(expr: BinaryOp, left: Any, right: Any):
    if left is None or right is None:
        return None
    if isinstance(left, bool) or isinstance(right, bool):
        raise _mismatch(expr, left, right)
    return format_value(left) + format_value(right)


def _like(expr: BinaryOp, left: Any, right: Any):
    if left is None or right is None:
        return None
    if isinstance(left, bool) or not isinstance(right, str):
        raise _mismatch(expr, left, right)
    text = format_value(left) if is_numeric(left) else left
    return like_to_regex(right).fullmatch(text) is not None
