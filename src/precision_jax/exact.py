"""Gauss-Jordan elimination over exact field elements.

Integers are lifted into the field of the other entries: ``Fraction`` by
default, ``Decimal`` when the data already holds decimals. Every quotient
then stays in that field.
"""

from __future__ import annotations

from decimal import Decimal
from fractions import Fraction

from numpy.linalg import LinAlgError


def _field_of(*blocks) -> type:
    for block in blocks:
        for row in block:
            values = row if isinstance(row, (list, tuple)) else (row,)
            if any(isinstance(value, Decimal) for value in values):
                return Decimal
    return Fraction


def _lift(value, field: type):
    if isinstance(value, int):
        return field(value)
    return value


def _square(rows, field: type) -> list[list]:
    matrix = [[_lift(value, field) for value in row] for row in rows]
    size = len(matrix)
    if any(len(row) != size for row in matrix):
        raise LinAlgError("Last 2 dimensions of the array must be square")
    return matrix


def _pivot_row(matrix: list[list], col: int) -> int | None:
    for row in range(col, len(matrix)):
        if matrix[row][col] != 0:
            return row
    return None


def det(rows):
    field = _field_of(rows)
    matrix = _square(rows, field)
    if not matrix:
        return field(1)
    size = len(matrix)
    result = field(1)
    negate = False
    for col in range(size):
        pivot = _pivot_row(matrix, col)
        if pivot is None:
            return field(0)
        if pivot != col:
            matrix[col], matrix[pivot] = matrix[pivot], matrix[col]
            negate = not negate
        head = matrix[col][col]
        result = result * head
        for row in range(col + 1, size):
            factor = matrix[row][col] / head
            if factor:
                matrix[row] = [a - factor * b for a, b in zip(matrix[row], matrix[col])]
    return -result if negate else result


def _eliminate(matrix: list[list], rhs: list[list]) -> list[list]:
    for col in range(len(matrix)):
        pivot = _pivot_row(matrix, col)
        if pivot is None:
            raise LinAlgError("Singular matrix")
        if pivot != col:
            matrix[col], matrix[pivot] = matrix[pivot], matrix[col]
            rhs[col], rhs[pivot] = rhs[pivot], rhs[col]
        head = matrix[col][col]
        matrix[col] = [value / head for value in matrix[col]]
        rhs[col] = [value / head for value in rhs[col]]
        for row in range(len(matrix)):
            factor = matrix[row][col]
            if row == col or not factor:
                continue
            matrix[row] = [a - factor * b for a, b in zip(matrix[row], matrix[col])]
            rhs[row] = [a - factor * b for a, b in zip(rhs[row], rhs[col])]
    return rhs


def inverse(rows) -> list[list]:
    field = _field_of(rows)
    matrix = _square(rows, field)
    size = len(matrix)
    identity = [[field(1 if i == j else 0) for j in range(size)] for i in range(size)]
    return _eliminate(matrix, identity)


def solve(a, b):
    """Solve ``a @ x == b`` for a vector or matrix right-hand side."""
    field = _field_of(a, b)
    matrix = _square(a, field)
    is_vector = bool(b) and not isinstance(b[0], (list, tuple))
    if is_vector:
        rhs = [[_lift(value, field)] for value in b]
    else:
        rhs = [[_lift(value, field) for value in row] for row in b]
    if len(rhs) != len(matrix):
        raise ValueError(f"solve: {len(matrix)}x{len(matrix)} system with {len(rhs)} right-hand rows")
    out = _eliminate(matrix, rhs)
    if is_vector:
        return [row[0] for row in out]
    return out
