"""Polymorphic numeric primitives behind every shadow operation.

Each function accepts whatever the rewritten or unrewritten program hands it:
Python scalars and nested lists, ``Fraction`` and the exact constants, JAX and
NumPy arrays, mpmath scalars and matrices, or text-parsed scalars such as
``Decimal``. Machine floats run through ``jax.numpy``; mpmath values stay in
mpmath; exact rational data takes the pure Python paths. Nothing here knows
about target precisions beyond the explicit type arguments of the random and
constructor families.
"""

from __future__ import annotations

import functools
import math
import operator
import threading
from decimal import Decimal
from fractions import Fraction
from typing import Callable, Final

import jax
import jax.numpy as jnp
import jax.scipy.special as jsp
import mpmath
import numpy as np
from jax import lax

from . import exact
from .config import DEFAULT_SEED, USE_INT_POWER_FAST_PATH
from .constants import ExactComplex, Irrational
from .targets import (
    TargetType,
    is_type_argument,
    nested_list,
    numeric_dtype_or_none,
    resolve_target,
    to_default_floats,
)

_EXACT_LEAVES = (Fraction, Decimal, ExactComplex, mpmath.mpf, mpmath.mpc)
_MP_SCALARS = (mpmath.mpf, mpmath.mpc)


def _as_jax(value):
    if isinstance(value, (jax.Array, np.ndarray)) and value.dtype != np.dtype(object):
        return value
    return jnp.asarray(to_default_floats(nested_list(value)))


def _leaves(value):
    if isinstance(value, (list, tuple)):
        for item in value:
            yield from _leaves(item)
    else:
        yield value


def _python_values(value) -> list | None:
    """Flat element list when the data needs the pure Python paths."""
    if isinstance(value, mpmath.matrix):
        return [value[i, j] for i in range(value.rows) for j in range(value.cols)]
    if isinstance(value, (list, tuple)):
        flat = list(_leaves(value))
        if any(isinstance(item, _EXACT_LEAVES) for item in flat):
            return flat
    return None


def _exact_matrix(value) -> bool:
    if not isinstance(value, (list, tuple)) or not value:
        return False
    if not all(isinstance(row, (list, tuple)) for row in value):
        return False
    flat = list(_leaves(value))
    return all(isinstance(item, (int, Fraction, Decimal)) for item in flat) and any(
        isinstance(item, (Fraction, Decimal)) for item in flat
    )


def _exact_system(*values) -> bool:
    flat = []
    for value in values:
        if not isinstance(value, (list, tuple)) or not value:
            return False
        flat.extend(_leaves(value))
    return all(isinstance(item, (int, Fraction, Decimal)) for item in flat) and any(
        isinstance(item, (Fraction, Decimal)) for item in flat
    )


# --- Random draws -----------------------------------------------------------


class KeyStream:
    """Thread-safe source of fresh JAX PRNG keys.

    The root key is created lazily from ``seed``; every ``next_key`` call
    splits it and hands out one half.
    """

    def __init__(self, seed: int = 0):
        self._seed = seed
        self._key = None
        self._lock = threading.Lock()

    def reseed(self, seed: int) -> None:
        with self._lock:
            self._seed = seed
            self._key = None

    def next_key(self):
        with self._lock:
            if self._key is None:
                self._key = jax.random.PRNGKey(self._seed)
            self._key, subkey = jax.random.split(self._key)
            return subkey


default_stream = KeyStream(DEFAULT_SEED)


def seed(value: int) -> None:
    default_stream.reseed(value)


def is_key_source(value: object) -> bool:
    if isinstance(value, KeyStream):
        return True
    if isinstance(value, jax.Array):
        if jnp.issubdtype(value.dtype, jax.dtypes.prng_key):
            return True
        return value.dtype == jnp.uint32 and value.shape == (2,)
    return False


def _take_key(source):
    if isinstance(source, KeyStream):
        return source.next_key()
    return source


def _dims(args) -> tuple[int, ...]:
    if len(args) == 1 and isinstance(args[0], (tuple, list)):
        return tuple(int(dim) for dim in args[0])
    return tuple(int(dim) for dim in args)


def _split_type(args) -> tuple[TargetType | None, object, tuple]:
    """Peel an explicit leading type off ``args``.

    Returns ``(target, dtype, rest)``: float types, ``mpf`` and other number
    classes (``Decimal``) resolve to a ``TargetType``; integer and complex
    types stay JAX dtypes.
    """
    if not args or not is_type_argument(args[0]):
        return None, None, tuple(args)
    spec = args[0]
    dtype = None
    if not isinstance(spec, TargetType) and spec is not mpmath.mpf:
        dtype = numeric_dtype_or_none(spec)
    if dtype is None or jnp.issubdtype(dtype, jnp.floating):
        return resolve_target(spec), None, tuple(args[1:])
    return None, dtype, tuple(args[1:])


_RANDOM_KINDS: Final[dict[str, str]] = {
    "rand": "uniform",
    "randn": "normal",
    "randexp": "exponential",
}


def _random(name: str) -> Callable:
    kind = _RANDOM_KINDS[name]

    def draw(*args, dtype=None):
        if args and is_key_source(args[0]):
            key, args = _take_key(args[0]), args[1:]
        else:
            key = default_stream.next_key()
        target, type_dtype, rest = _split_type(args)
        shape = _dims(rest)
        if target is not None:
            return target.random(kind, key, shape)
        dtype = type_dtype if dtype is None else dtype
        sampler = getattr(jax.random, kind)
        if dtype is None:
            return sampler(key, shape)
        return sampler(key, shape, dtype=jnp.dtype(dtype))

    draw.__name__ = name
    draw.__qualname__ = name
    return draw


rand = _random("rand")
randn = _random("randn")
randexp = _random("randexp")


# --- Array constructors -----------------------------------------------------


def _filled(name: str, fill: int) -> Callable:
    def build(*args, dtype=None):
        target, type_dtype, rest = _split_type(args)
        shape = _dims(rest)
        if target is not None:
            return target.full(shape, fill)
        dtype = type_dtype if dtype is None else dtype
        return jnp.full(shape, fill, dtype=None if dtype is None else jnp.dtype(dtype))

    build.__name__ = name
    build.__qualname__ = name
    return build


ones = _filled("ones", 1)
zeros = _filled("zeros", 0)


def eye(*args, dtype=None):
    target, type_dtype, rest = _split_type(args)
    rows = int(rest[0])
    cols = int(rest[1]) if len(rest) > 1 else None
    if target is not None:
        return target.eye(rows, cols)
    dtype = type_dtype if dtype is None else dtype
    return jnp.eye(rows, cols, dtype=None if dtype is None else jnp.dtype(dtype))


# --- Elementary functions ---------------------------------------------------

# name -> (jax function, mpmath function, method name on duck-typed scalars)
_ELEMENTARY: Final[dict[str, tuple[Callable, Callable, str | None]]] = {
    "sqrt": (jnp.sqrt, mpmath.sqrt, "sqrt"),
    "cbrt": (jnp.cbrt, mpmath.cbrt, None),
    "exp": (jnp.exp, mpmath.exp, "exp"),
    "exp2": (jnp.exp2, lambda x: mpmath.power(2, x), None),
    "expm1": (jnp.expm1, mpmath.expm1, None),
    "log": (jnp.log, mpmath.log, "ln"),
    "log2": (jnp.log2, lambda x: mpmath.log(x, 2), None),
    "log10": (jnp.log10, mpmath.log10, "log10"),
    "log1p": (jnp.log1p, mpmath.log1p, None),
    "sin": (jnp.sin, mpmath.sin, None),
    "cos": (jnp.cos, mpmath.cos, None),
    "tan": (jnp.tan, mpmath.tan, None),
    "asin": (jnp.arcsin, mpmath.asin, None),
    "acos": (jnp.arccos, mpmath.acos, None),
    "atan": (jnp.arctan, mpmath.atan, None),
    "sinh": (jnp.sinh, mpmath.sinh, None),
    "cosh": (jnp.cosh, mpmath.cosh, None),
    "tanh": (jnp.tanh, mpmath.tanh, None),
    "asinh": (jnp.arcsinh, mpmath.asinh, None),
    "acosh": (jnp.arccosh, mpmath.acosh, None),
    "atanh": (jnp.arctanh, mpmath.atanh, None),
    "lgamma": (jsp.gammaln, mpmath.loggamma, None),
    "gamma": (jsp.gamma, mpmath.gamma, None),
}

_JAX_NATIVE_LEAVES = (bool, int, float, complex, Fraction, Irrational, ExactComplex, np.generic, jax.Array)


def _apply_elementary(name: str, value):
    jax_fn, mp_fn, method = _ELEMENTARY[name]
    if isinstance(value, _MP_SCALARS):
        return mp_fn(value)
    if isinstance(value, mpmath.matrix):
        return value.apply(mp_fn)
    if isinstance(value, (list, tuple)) and not all(
        isinstance(item, _JAX_NATIVE_LEAVES) for item in _leaves(value)
    ):
        return [_apply_elementary(name, item) for item in value]
    if method is not None and not isinstance(value, _JAX_NATIVE_LEAVES + (list, tuple, np.ndarray)):
        bound = getattr(value, method, None)
        if bound is not None:
            return bound()
    return jax_fn(_as_jax(value))


def _elementary(name: str) -> Callable:
    def fn(x):
        return _apply_elementary(name, x)

    fn.__name__ = name
    fn.__qualname__ = name
    return fn


sqrt = _elementary("sqrt")
cbrt = _elementary("cbrt")
exp = _elementary("exp")
exp2 = _elementary("exp2")
expm1 = _elementary("expm1")
log2 = _elementary("log2")
log10 = _elementary("log10")
log1p = _elementary("log1p")
sin = _elementary("sin")
cos = _elementary("cos")
tan = _elementary("tan")
asin = _elementary("asin")
acos = _elementary("acos")
sinh = _elementary("sinh")
cosh = _elementary("cosh")
tanh = _elementary("tanh")
asinh = _elementary("asinh")
acosh = _elementary("acosh")
atanh = _elementary("atanh")
lgamma = _elementary("lgamma")
gamma = _elementary("gamma")


def log(x, base=None):
    if base is None:
        return _apply_elementary("log", x)
    return divide(_apply_elementary("log", x), _apply_elementary("log", base))


def _uses_mpmath(*values) -> bool:
    return any(isinstance(value, _MP_SCALARS + (mpmath.matrix,)) for value in values)


def atan2(y, x):
    if _uses_mpmath(y, x):
        return mpmath.atan2(y, x)
    return jnp.arctan2(_as_jax(y), _as_jax(x))


def atan(y, x=None):
    if x is None:
        return _apply_elementary("atan", y)
    return atan2(y, x)


def hypot(x, y):
    if _uses_mpmath(x, y):
        return mpmath.hypot(x, y)
    return jnp.hypot(_as_jax(x), _as_jax(y))


# --- Arithmetic -------------------------------------------------------------

divide = operator.truediv
subtract = operator.sub
power = operator.pow


def add(*args):
    return functools.reduce(operator.add, args)


def multiply(*args):
    return functools.reduce(operator.mul, args)


_JITTED_INT_POWER_OPS: dict[int, Callable[[jnp.ndarray], jnp.ndarray]] = {}


def _jitted_int_power_kernel(exponent: int) -> Callable[[jnp.ndarray], jnp.ndarray]:
    fn = _JITTED_INT_POWER_OPS.get(exponent)
    if fn is None:
        def kernel(value: jnp.ndarray) -> jnp.ndarray:
            return lax.integer_pow(value, exponent)

        fn = jax.jit(kernel)
        _JITTED_INT_POWER_OPS[exponent] = fn
    return fn


def literal_pow(x, n: int):
    """``x ** n`` for a literal integer exponent ``n``."""
    if USE_INT_POWER_FAST_PATH and isinstance(x, jax.Array):
        if jnp.issubdtype(x.dtype, jnp.inexact) or n >= 0:
            return _jitted_int_power_kernel(n)(x)
    return x ** n


def inv(x):
    if isinstance(x, mpmath.matrix):
        return mpmath.inverse(x)
    if _exact_matrix(x):
        return exact.inverse(x)
    if isinstance(x, (list, tuple)) or (isinstance(x, (jax.Array, np.ndarray)) and x.ndim >= 2):
        return jnp.linalg.inv(_as_jax(x))
    return 1 / x


# --- Conversion and complex observers ---------------------------------------


def float_(x):
    """Floating counterpart of ``x`` at the default precision."""
    if isinstance(x, str):
        return float(x)
    if isinstance(x, (jax.Array, np.ndarray)):
        if jnp.issubdtype(x.dtype, jnp.inexact):
            return x
        return jnp.asarray(x, dtype=jnp.result_type(float))
    if isinstance(x, (list, tuple)):
        return float_(_as_jax(x))
    if isinstance(x, ExactComplex):
        return complex(x)
    if isinstance(x, (complex, Decimal, np.inexact) + _MP_SCALARS):
        return x
    return float(x)


def abs_(x):
    if isinstance(x, (list, tuple)):
        return jnp.abs(_as_jax(x))
    if isinstance(x, mpmath.matrix):
        return x.apply(abs)
    return abs(x)


def angle(x):
    if isinstance(x, _MP_SCALARS):
        return mpmath.arg(x)
    if isinstance(x, mpmath.matrix):
        return x.apply(mpmath.arg)
    return jnp.angle(_as_jax(x))


# --- Statistics -------------------------------------------------------------


def _exact_quotient(total, count: int):
    if isinstance(total, int):
        return Fraction(total, count)
    return total / count


def _python_mean(values: list):
    return _exact_quotient(functools.reduce(operator.add, values), len(values))


def _abs2(value):
    if isinstance(value, ExactComplex):
        return value.real * value.real + value.imag * value.imag
    if isinstance(value, (complex, mpmath.mpc)):
        return abs(value) ** 2
    return value * value


def _python_var(values: list):
    # Sample variance of fewer than two values is nan, as on the JAX path.
    if len(values) < 2:
        return math.nan
    center = _python_mean(values)
    total = functools.reduce(operator.add, (_abs2(value - center) for value in values))
    return _exact_quotient(total, len(values) - 1)


def _python_cov(xs: list, ys: list):
    if len(xs) != len(ys):
        raise ValueError(f"cov: length mismatch ({len(xs)} vs {len(ys)})")
    if len(xs) < 2:
        return math.nan
    mx, my = _python_mean(xs), _python_mean(ys)
    total = functools.reduce(operator.add, ((a - mx) * (b - my) for a, b in zip(xs, ys)))
    return _exact_quotient(total, len(xs) - 1)


def _python_pair(x, y) -> tuple[list, list] | None:
    xs, ys = _python_values(x), _python_values(y)
    if xs is None and ys is None:
        return None
    if xs is None:
        xs = list(_leaves(nested_list(x)))
    if ys is None:
        ys = list(_leaves(nested_list(y)))
    return xs, ys


def mean(x):
    values = _python_values(x)
    if values is not None:
        return _python_mean(values)
    return jnp.mean(_as_jax(x))


def median(x):
    values = _python_values(x)
    if values is not None:
        ordered = sorted(values)
        middle = len(ordered) // 2
        if len(ordered) % 2:
            return ordered[middle]
        return _exact_quotient(ordered[middle - 1] + ordered[middle], 2)
    return jnp.median(_as_jax(x))


def var(x):
    values = _python_values(x)
    if values is not None:
        return _python_var(values)
    return jnp.var(_as_jax(x), ddof=1)


def std(x):
    values = _python_values(x)
    if values is not None:
        return sqrt(_python_var(values))
    return jnp.std(_as_jax(x), ddof=1)


def cov(x, y=None):
    if y is None:
        return var(x)
    pair = _python_pair(x, y)
    if pair is not None:
        return _python_cov(*pair)
    return jnp.cov(_as_jax(x), _as_jax(y))[0, 1]


def cor_terms(x, y=None) -> tuple:
    """``(cov(x, y), var(x) * var(y))`` on the pure Python paths.

    Exact data keeps both terms exact; only the final square root of the
    correlation needs a floating type.
    """
    if y is None:
        y = x
    xs = _python_values(x) or list(_leaves(nested_list(x)))
    ys = _python_values(y) or list(_leaves(nested_list(y)))
    return _python_cov(xs, ys), _python_var(xs) * _python_var(ys)


def cor(x, y=None):
    if y is None:
        y = x
    if _python_pair(x, y) is not None:
        numerator, spread = cor_terms(x, y)
        root = sqrt(spread)
        if isinstance(root, jax.Array) and isinstance(numerator, Fraction):
            numerator = float(numerator)
        return numerator / root
    return jnp.corrcoef(_as_jax(x), _as_jax(y))[0, 1]


# --- Linear algebra ---------------------------------------------------------


def _as_mp_matrix(value):
    if isinstance(value, mpmath.matrix):
        return value
    return mpmath.matrix(nested_list(value))


def det(a):
    if isinstance(a, mpmath.matrix):
        return mpmath.det(a)
    if _exact_matrix(a):
        return exact.det(a)
    return jnp.linalg.det(_as_jax(a))


def solve(a, b):
    if isinstance(a, mpmath.matrix) or isinstance(b, mpmath.matrix):
        return mpmath.lu_solve(_as_mp_matrix(a), _as_mp_matrix(b))
    if _exact_system(a, b):
        return exact.solve(nested_list(a), nested_list(b))
    return jnp.linalg.solve(_as_jax(a), _as_jax(b))


def eigvals(a):
    if isinstance(a, mpmath.matrix):
        return mpmath.eig(a, left=False, right=False)
    return jnp.linalg.eigvals(_as_jax(a))


def svdvals(a):
    if isinstance(a, mpmath.matrix):
        return mpmath.svd(a, compute_uv=False)
    return jnp.linalg.svd(_as_jax(a), compute_uv=False)


def norm(x, p=2):
    if isinstance(x, mpmath.matrix):
        return mpmath.norm(x, p)
    if isinstance(x, _MP_SCALARS):
        return abs(x)
    return jnp.linalg.norm(_as_jax(x).ravel(), ord=p)
