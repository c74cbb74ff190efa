"""Precision-carrying counterparts of the tracked operations.

Rewritten code calls ``__precision_jax__.<name>(target, *args)``. Each function
classifies its arguments, decides whether to promote them into ``target``,
and hands the result to the backend. Backend errors are never caught here.
"""

from __future__ import annotations

import functools
import operator
from fractions import Fraction
from itertools import repeat  # re-exported for rewritten map() calls

import numpy as np

from . import backend, constants
from .classify import Category, Classification, classify, classify_all
from .config import USE_EXACT_FAST_PATH
from .targets import TargetType, is_type_argument


def _promote(target: TargetType, value, cls: Classification):
    if cls.promotable:
        return target.convert(value, cls)
    return value


def _promote_each(target: TargetType, args) -> list:
    return [_promote(target, value, cls) for value, cls in zip(args, classify_all(args))]


# --- Random draws and array constructors ------------------------------------


def _is_dim(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, np.integer)):
        return True
    return isinstance(value, (tuple, list)) and all(
        isinstance(dim, (int, np.integer)) and not isinstance(dim, bool) for dim in value
    )


def _typed(name: str):
    backend_fn = getattr(backend, name)

    def shadow(target: TargetType, *args, **kwargs):
        if "dtype" in kwargs or any(is_type_argument(value) for value in args):
            return backend_fn(*args, **kwargs)
        if args and backend.is_key_source(args[0]):
            if all(_is_dim(value) for value in args[1:]):
                return backend_fn(args[0], target, *args[1:], **kwargs)
            return backend_fn(*args, **kwargs)
        if all(_is_dim(value) for value in args):
            return backend_fn(target, *args, **kwargs)
        return backend_fn(*args, **kwargs)

    shadow.__name__ = name
    shadow.__qualname__ = name
    return shadow


rand = _typed("rand")
randn = _typed("randn")
randexp = _typed("randexp")
ones = _typed("ones")
zeros = _typed("zeros")
eye = _typed("eye")


# --- Elementary functions ---------------------------------------------------


def _elementary(name: str):
    backend_fn = getattr(backend, name)

    def shadow(target: TargetType, *args, **kwargs):
        return backend_fn(*_promote_each(target, args), **kwargs)

    shadow.__name__ = name
    shadow.__qualname__ = name
    return shadow


sqrt = _elementary("sqrt")
cbrt = _elementary("cbrt")
exp = _elementary("exp")
exp2 = _elementary("exp2")
expm1 = _elementary("expm1")
log = _elementary("log")
log2 = _elementary("log2")
log10 = _elementary("log10")
log1p = _elementary("log1p")
sin = _elementary("sin")
cos = _elementary("cos")
tan = _elementary("tan")
asin = _elementary("asin")
acos = _elementary("acos")
atan = _elementary("atan")
sinh = _elementary("sinh")
cosh = _elementary("cosh")
tanh = _elementary("tanh")
asinh = _elementary("asinh")
acosh = _elementary("acosh")
atanh = _elementary("atanh")
lgamma = _elementary("lgamma")
gamma = _elementary("gamma")
atan2 = _elementary("atan2")
hypot = _elementary("hypot")


# --- Division ---------------------------------------------------------------


def _stays_exact(*classes: Classification) -> bool:
    return all(cls.integer_like for cls in classes) and any(cls.rational for cls in classes)


def divide(target: TargetType, x, y):
    cx, cy = classify(x), classify(y)
    if _stays_exact(cx, cy):
        return backend.divide(x, y)
    if cx.promotable and cy.promotable:
        return backend.divide(target.convert(x, cx), target.convert(y, cy))
    return backend.divide(x, y)


def inv(target: TargetType, x):
    cls = classify(x)
    if _stays_exact(cls):
        return backend.inv(x)
    return backend.inv(_promote(target, x, cls))


# --- Complex observers ------------------------------------------------------


def _observer(name: str):
    backend_fn = getattr(backend, name)

    def shadow(target: TargetType, x):
        cls = classify(x)
        if cls.is_complex and cls.integer_like:
            return backend_fn(target.convert(x, cls))
        return backend_fn(x)

    shadow.__name__ = name
    shadow.__qualname__ = name
    return shadow


abs_ = _observer("abs_")
angle = _observer("angle")


# --- Associative binary operators -------------------------------------------


def _pair(target: TargetType, op, x, cx: Classification, y, cy: Classification):
    # Exact arrays are promoted too when paired with an irrational constant.
    if cx.promotable and cy.promotable and (cx.irrational or cy.irrational):
        return op(target.convert(x, cx), target.convert(y, cy))
    return op(x, y)


def _associative(name: str, op):
    def shadow(target: TargetType, *args):
        classes = classify_all(args)
        if USE_EXACT_FAST_PATH and all(cls.integer_like for cls in classes):
            return functools.reduce(op, args)
        result, result_cls = args[0], classes[0]
        for value, cls in zip(args[1:], classes[1:]):
            result = _pair(target, op, result, result_cls, value, cls)
            result_cls = classify(result)
        return result

    shadow.__name__ = name
    shadow.__qualname__ = name
    return shadow


add = _associative("add", operator.add)
subtract = _associative("subtract", operator.sub)
multiply = _associative("multiply", operator.mul)


def _real_exact_scalar(cls: Classification) -> bool:
    return cls.integer_like and not (cls.is_array or cls.is_complex)


def _defaults_to_float(base_cls: Classification, exponent, exponent_cls: Classification) -> bool:
    """Whether ``base ** exponent`` on exact operands leaves the exact domain."""
    if not (_real_exact_scalar(base_cls) and _real_exact_scalar(exponent_cls)):
        return False
    if isinstance(exponent, Fraction) and exponent.denominator != 1:
        return True
    return base_cls.category is Category.HARDWARE_INTEGER and exponent < 0


def pow(target: TargetType, base, exponent):
    if base is constants.e:
        return exp(target, exponent)
    cb, ce = classify(base), classify(exponent)
    if _defaults_to_float(cb, exponent, ce):
        return backend.power(target.convert(base, cb), target.convert(exponent, ce))
    return _pair(target, backend.power, base, cb, exponent, ce)


def literal_pow(target: TargetType, base, n: int):
    if base is constants.e:
        return exp(target, n)
    cls = classify(base)
    if (cls.irrational and not cls.is_array) or (cls.category is Category.HARDWARE_INTEGER and n < 0):
        base = target.convert(base, cls)
    return backend.literal_pow(base, n)


# --- Conversion -------------------------------------------------------------


def convert(target: TargetType, x):
    if isinstance(x, str):
        return target.parse(x)
    return target.convert(x)


def float_(target: TargetType, x):
    if isinstance(x, str):
        return target.parse(x)
    cls = classify(x)
    if cls.promotable:
        return target.convert(x, cls)
    return backend.float_(x)


# --- Statistics and linear algebra ------------------------------------------

_EXACT_CAPABLE = frozenset({"mean", "median", "var", "cov", "det", "solve"})


def _data(name: str):
    backend_fn = getattr(backend, name)
    exact_capable = name in _EXACT_CAPABLE

    def shadow(target: TargetType, *args, **kwargs):
        classes = classify_all(args)
        positions = [i for i, cls in enumerate(classes) if cls.is_array] or list(range(len(args)))
        data = [classes[i] for i in positions]
        if exact_capable and _stays_exact(*data):
            return backend_fn(*args, **kwargs)
        if data and all(cls.promotable for cls in data):
            promoted = list(args)
            for i in positions:
                promoted[i] = target.convert(args[i], classes[i])
            return backend_fn(*promoted, **kwargs)
        return backend_fn(*args, **kwargs)

    shadow.__name__ = name
    shadow.__qualname__ = name
    return shadow


mean = _data("mean")
median = _data("median")
var = _data("var")
std = _data("std")
cov = _data("cov")
_promoted_cor = _data("cor")


def cor(target: TargetType, x, y=None):
    """Correlation; exact data keeps its moments exact up to the final root."""
    data = (x,) if y is None else (x, y)
    if _stays_exact(*classify_all(data)):
        covariance, spread = backend.cor_terms(x, y)
        return backend.divide(target.convert(covariance), sqrt(target, spread))
    return _promoted_cor(target, *data)


det = _data("det")
solve = _data("solve")
eigvals = _data("eigvals")
svdvals = _data("svdvals")
norm = _data("norm")


# --- File inclusion ---------------------------------------------------------


def include(target: TargetType, scope: dict, path: str, relative_to: str | None = None):
    from .runtime import include_file

    return include_file(target, scope, path, relative_to)
