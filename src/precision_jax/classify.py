"""Promotion classifier: what a runtime value would do under a target precision."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from fractions import Fraction

import jax
import jax.numpy as jnp
import mpmath
import numpy as np

from .constants import ExactComplex, Irrational


class Category(str, Enum):
    HARDWARE_INTEGER = "HardwareInteger"
    EXACT_RATIONAL = "ExactRational"
    IRRATIONAL_CONSTANT = "IrrationalConstant"
    ALREADY_FLOATING = "AlreadyFloating"
    OPAQUE = "Opaque"


# Join order for array elements and complex parts.
_RANK: dict[Category, int] = {
    Category.HARDWARE_INTEGER: 0,
    Category.EXACT_RATIONAL: 1,
    Category.IRRATIONAL_CONSTANT: 2,
    Category.ALREADY_FLOATING: 3,
}
_PROMOTABLE = frozenset({Category.HARDWARE_INTEGER, Category.EXACT_RATIONAL, Category.IRRATIONAL_CONSTANT})
_INTEGER_LIKE = frozenset({Category.HARDWARE_INTEGER, Category.EXACT_RATIONAL})


@dataclass(frozen=True)
class Classification:
    category: Category
    is_complex: bool = False
    is_array: bool = False

    @property
    def promotable(self) -> bool:
        return self.category in _PROMOTABLE

    @property
    def integer_like(self) -> bool:
        return self.category in _INTEGER_LIKE

    @property
    def rational(self) -> bool:
        return self.category is Category.EXACT_RATIONAL

    @property
    def irrational(self) -> bool:
        return self.category is Category.IRRATIONAL_CONSTANT

    def __str__(self) -> str:
        text = self.category.value
        if self.is_complex:
            text = f"ComplexOf({text})"
        if self.is_array:
            text = f"ArrayOf({text})"
        return text


OPAQUE = Classification(Category.OPAQUE)
_FLOATING_SCALARS = (float, Decimal, np.floating, mpmath.mpf)
_COMPLEX_SCALARS = (complex, np.complexfloating, mpmath.mpc)


def _classify_dtype(dtype, *, is_array: bool) -> Classification:
    if jnp.issubdtype(dtype, np.bool_) or jnp.issubdtype(dtype, np.integer):
        return Classification(Category.HARDWARE_INTEGER, is_array=is_array)
    if jnp.issubdtype(dtype, np.complexfloating):
        return Classification(Category.ALREADY_FLOATING, is_complex=True, is_array=is_array)
    if jnp.issubdtype(dtype, np.floating):
        return Classification(Category.ALREADY_FLOATING, is_array=is_array)
    return Classification(Category.OPAQUE, is_array=is_array)


def _join(items: list[Classification]) -> Classification:
    if not items or any(item.category is Category.OPAQUE for item in items):
        return Classification(Category.OPAQUE, is_array=True)
    category = max((item.category for item in items), key=_RANK.__getitem__)
    is_complex = any(item.is_complex for item in items)
    return Classification(category, is_complex=is_complex, is_array=True)


def _classify_sequence(values) -> Classification:
    items: list[Classification] = []
    for value in values:
        item = classify(value)
        if item.is_array and item.category is Category.OPAQUE:
            return item
        items.append(item)
    return _join(items)


def classify(value: object) -> Classification:
    """Return the promotion category of ``value``.

    Scalars map directly; ``ExactComplex`` joins the categories of its parts;
    arrays (nested lists and tuples, NumPy and JAX arrays, mpmath matrices)
    join the categories of their elements.
    """
    if isinstance(value, (bool, int, np.integer, np.bool_)):
        return Classification(Category.HARDWARE_INTEGER)
    if isinstance(value, Fraction):
        return Classification(Category.EXACT_RATIONAL)
    if isinstance(value, Irrational):
        return Classification(Category.IRRATIONAL_CONSTANT)
    if isinstance(value, ExactComplex):
        category = Category.EXACT_RATIONAL if value.is_rational else Category.HARDWARE_INTEGER
        return Classification(category, is_complex=True)
    if isinstance(value, _FLOATING_SCALARS):
        return Classification(Category.ALREADY_FLOATING)
    if isinstance(value, _COMPLEX_SCALARS):
        return Classification(Category.ALREADY_FLOATING, is_complex=True)
    if isinstance(value, mpmath.matrix):
        return Classification(Category.ALREADY_FLOATING, is_array=True)
    if isinstance(value, (jax.Array, np.ndarray)):
        if value.dtype == np.dtype(object):
            return _classify_sequence(value.ravel().tolist())
        return _classify_dtype(value.dtype, is_array=value.ndim > 0)
    if isinstance(value, (list, tuple)):
        return _classify_sequence(value)
    return OPAQUE


def classify_all(values) -> tuple[Classification, ...]:
    return tuple(classify(value) for value in values)
