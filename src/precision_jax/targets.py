"""Target precision identifiers and conversion into them."""

from __future__ import annotations

import numbers
import re
from dataclasses import dataclass
from fractions import Fraction
from typing import Callable, Final

import jax
import jax.numpy as jnp
import mpmath
import numpy as np

from .classify import Category, Classification, classify
from .constants import ExactComplex, Irrational

_BINDING_UNSAFE = re.compile(r"[^0-9A-Za-z_]")


def to_default_floats(value):
    """Default-precision stand-in for exact values, recursing through lists."""
    if isinstance(value, list):
        return [to_default_floats(item) for item in value]
    if isinstance(value, ExactComplex):
        return complex(value)
    if isinstance(value, (Fraction, Irrational)):
        return float(value)
    return value


def nested_list(value):
    if isinstance(value, (jax.Array, np.ndarray)):
        return value.tolist()
    if isinstance(value, (list, tuple)):
        return [nested_list(item) for item in value]
    return value


def _map_nested(fn, value):
    if isinstance(value, list):
        return [_map_nested(fn, item) for item in value]
    return fn(value)


def _shape_tuple(shape) -> tuple[int, ...]:
    if isinstance(shape, int):
        return (shape,)
    return tuple(int(dim) for dim in shape)


def _is_array_value(value) -> bool:
    return isinstance(value, (list, tuple)) or (
        isinstance(value, (jax.Array, np.ndarray)) and value.ndim > 0
    )


@dataclass(frozen=True)
class TargetType:
    """A destination numeric type.

    Subclasses know how to parse decimal text, how to convert exact values
    (integers, fractions, irrational constants, exact complex numbers and
    arrays of those), how to cast values that are already floating point,
    and how to build filled arrays and random draws.
    """

    name: str

    @property
    def binding(self) -> str:
        """Name under which rewritten code refers to this target."""
        return f"__precision_{_BINDING_UNSAFE.sub('_', self.name)}__"

    @property
    def native_literals(self) -> bool:
        """Whether Python float literals already have this precision."""
        return False

    @property
    def has_complex(self) -> bool:
        return True

    def __str__(self) -> str:
        return self.name

    def __call__(self, value):
        return self.convert(value)

    def parse(self, text: str):
        raise NotImplementedError

    def parse_imaginary(self, text: str):
        raise NotImplementedError

    def scalar(self, value):
        raise NotImplementedError

    def complex(self, value):
        raise NotImplementedError

    def array(self, value, cls: Classification):
        raise NotImplementedError

    def cast(self, value):
        raise NotImplementedError

    def full(self, shape, fill: int):
        raise NotImplementedError

    def eye(self, rows: int, cols: int | None = None):
        raise NotImplementedError

    def random(self, kind: str, key, shape: tuple[int, ...]):
        raise NotImplementedError

    def convert(self, value, cls: Classification | None = None):
        """Bring ``value`` into this precision according to its classification."""
        if cls is None:
            cls = classify(value)
        if cls.promotable:
            if cls.is_array:
                return self.array(value, cls)
            if cls.is_complex:
                return self.complex(value)
            return self.scalar(value)
        if cls.category is Category.ALREADY_FLOATING:
            return self.cast(value)
        return value


_JAX_COMPLEX: Final[dict[str, str]] = {
    "float16": "complex64",
    "bfloat16": "complex64",
    "float32": "complex64",
    "float64": "complex128",
}


@dataclass(frozen=True)
class JaxFloat(TargetType):
    """A JAX floating dtype: float16, bfloat16, float32 or float64.

    Complex values use complex64 below float64; JAX has no narrower complex.
    """

    def __post_init__(self) -> None:
        if self.name not in _JAX_COMPLEX:
            raise ValueError(f"Unsupported JAX float dtype: {self.name}")
        if jax.dtypes.canonicalize_dtype(self.dtype) != self.dtype:
            raise ValueError(
                f"{self.name} target requires jax_enable_x64; unset PRECISION_JAX_DISABLE_X64"
            )

    @property
    def native_literals(self) -> bool:
        return self.name == "float64"

    @property
    def dtype(self) -> np.dtype:
        return jnp.dtype(getattr(jnp, self.name))

    @property
    def complex_dtype(self) -> np.dtype:
        return jnp.dtype(getattr(jnp, _JAX_COMPLEX[self.name]))

    def parse(self, text: str):
        return jnp.asarray(float(text), dtype=self.dtype)

    def parse_imaginary(self, text: str):
        return jnp.asarray(complex(text), dtype=self.complex_dtype)

    def scalar(self, value):
        if isinstance(value, (Fraction, Irrational)):
            return jnp.asarray(float(value), dtype=self.dtype)
        return jnp.asarray(float(int(value)), dtype=self.dtype)

    def complex(self, value):
        return jnp.asarray(complex(value), dtype=self.complex_dtype)

    def array(self, value, cls: Classification):
        dtype = self.complex_dtype if cls.is_complex else self.dtype
        if isinstance(value, (jax.Array, np.ndarray)) and value.dtype != np.dtype(object):
            return jnp.asarray(value, dtype=dtype)
        return jnp.asarray(to_default_floats(nested_list(value)), dtype=dtype)

    def cast(self, value):
        if isinstance(value, (mpmath.mpf, mpmath.mpc, mpmath.matrix)):
            return value
        is_complex = classify(value).is_complex
        dtype = self.complex_dtype if is_complex else self.dtype
        if not _is_array_value(value) and not isinstance(value, (jax.Array, np.ndarray)):
            value = complex(value) if is_complex else float(value)
        return jnp.asarray(value, dtype=dtype)

    def full(self, shape, fill: int):
        return jnp.full(_shape_tuple(shape), fill, dtype=self.dtype)

    def eye(self, rows: int, cols: int | None = None):
        return jnp.eye(rows, cols, dtype=self.dtype)

    def random(self, kind: str, key, shape: tuple[int, ...]):
        sampler = getattr(jax.random, kind)
        return sampler(key, shape, dtype=self.dtype)


@dataclass(frozen=True)
class MpmathFloat(TargetType):
    """Arbitrary precision through mpmath, at the ambient ``mp.prec``.

    Arrays are ``mpmath.matrix`` values; one-dimensional data becomes a column.
    """

    def parse(self, text: str):
        return mpmath.mpf(text)

    def parse_imaginary(self, text: str):
        return mpmath.mpc(0, mpmath.mpf(text.rstrip("jJ")))

    def scalar(self, value):
        if isinstance(value, Irrational):
            return value.mpf()
        if isinstance(value, Fraction):
            return mpmath.mpf(value.numerator) / value.denominator
        return mpmath.mpf(int(value))

    def complex(self, value):
        if isinstance(value, ExactComplex):
            return mpmath.mpc(self.scalar(value.real), self.scalar(value.imag))
        return mpmath.mpc(self.scalar(value), 0)

    def array(self, value, cls: Classification):
        convert = self.complex if cls.is_complex else self.scalar
        return mpmath.matrix(_map_nested(convert, nested_list(value)))

    def cast(self, value):
        if isinstance(value, (mpmath.mpf, mpmath.mpc, mpmath.matrix)):
            return value
        is_complex = classify(value).is_complex
        scalar = mpmath.mpc if is_complex else mpmath.mpf
        if _is_array_value(value):
            return mpmath.matrix(_map_nested(scalar, nested_list(value)))
        return scalar(complex(value) if is_complex else float(value))

    def full(self, shape, fill: int):
        dims = _shape_tuple(shape)
        if not dims:
            return mpmath.mpf(fill)
        if len(dims) > 2:
            raise ValueError("mpmath arrays have at most two dimensions")
        rows, cols = (dims[0], 1) if len(dims) == 1 else dims
        out = mpmath.matrix(rows, cols)
        if fill:
            for i in range(rows):
                for j in range(cols):
                    out[i, j] = mpmath.mpf(fill)
        return out

    def eye(self, rows: int, cols: int | None = None):
        if cols is None or cols == rows:
            return mpmath.eye(rows)
        out = mpmath.matrix(rows, cols)
        for i in range(min(rows, cols)):
            out[i, i] = mpmath.mpf(1)
        return out

    def random(self, kind: str, key, shape: tuple[int, ...]):
        # Draws come from mpmath's own generator; the key is not consumed.
        draw = _MPMATH_SAMPLERS[kind]
        if not shape:
            return draw()
        out = self.full(shape, 0)
        for i in range(out.rows):
            for j in range(out.cols):
                out[i, j] = draw()
        return out


def _mp_normal():
    u1 = 1 - mpmath.rand()
    u2 = mpmath.rand()
    return mpmath.sqrt(-2 * mpmath.log(u1)) * mpmath.cos(2 * mpmath.pi * u2)


def _mp_exponential():
    return -mpmath.log(1 - mpmath.rand())


_MPMATH_SAMPLERS: Final[dict[str, Callable[[], object]]] = {
    "uniform": mpmath.rand,
    "normal": _mp_normal,
    "exponential": _mp_exponential,
}


@dataclass(frozen=True)
class TextParsed(TargetType):
    """Any type constructible from decimal text, e.g. ``decimal.Decimal``.

    Arrays are nested Python lists. There is no complex counterpart, so
    imaginary literals and complex values are left alone.
    """

    constructor: Callable[[str], object] | None = None

    @property
    def has_complex(self) -> bool:
        return False

    def parse(self, text: str):
        return self.constructor(text)

    def parse_imaginary(self, text: str):
        return complex(text)

    def scalar(self, value):
        if isinstance(value, Irrational):
            return self.constructor(value.digits(40))
        if isinstance(value, Fraction):
            return self.constructor(str(value.numerator)) / self.constructor(str(value.denominator))
        return self.constructor(str(int(value)))

    def complex(self, value):
        return complex(value)

    def array(self, value, cls: Classification):
        convert = self.complex if cls.is_complex else self.scalar
        return _map_nested(convert, nested_list(value))

    def cast(self, value):
        if classify(value).is_complex or _is_array_value(value):
            return value
        if isinstance(value, (mpmath.mpf, mpmath.matrix)):
            return value
        return self.constructor(repr(float(value)))

    def full(self, shape, fill: int):
        dims = _shape_tuple(shape)
        if not dims:
            return self.scalar(fill)
        return [self.full(dims[1:], fill) for _ in range(dims[0])]

    def eye(self, rows: int, cols: int | None = None):
        cols = rows if cols is None else cols
        return [[self.scalar(1 if i == j else 0) for j in range(cols)] for i in range(rows)]

    def random(self, kind: str, key, shape: tuple[int, ...]):
        sampler = getattr(jax.random, kind)
        draws = sampler(key, shape, dtype=jnp.result_type(float))
        return _map_nested(lambda x: self.constructor(repr(x)), draws.tolist())


_ALIASES: Final[dict[str, str]] = {
    "half": "float16",
    "single": "float32",
    "double": "float64",
    "bigfloat": "mpf",
    "arbitrary": "mpf",
}
_NUMERIC_KINDS: Final[frozenset[str]] = frozenset("biufc")


def numeric_dtype_or_none(spec) -> np.dtype | None:
    try:
        dtype = jnp.dtype(spec)
    except (TypeError, ValueError):
        return None
    if dtype.kind not in _NUMERIC_KINDS and dtype.name != "bfloat16":
        return None
    return dtype


def resolve_target(spec) -> TargetType:
    """Turn a user-facing precision identifier into a ``TargetType``.

    Accepts a ``TargetType``, a name (``"float32"``, ``"mpf"``, ...), a NumPy or
    JAX float type or dtype, Python ``float``, ``mpmath.mpf``, or any other
    callable that builds a number from decimal text.
    """
    if isinstance(spec, TargetType):
        return spec
    if isinstance(spec, str):
        name = _ALIASES.get(spec.lower(), spec.lower())
        if name == "mpf":
            return MpmathFloat("mpf")
        if name in _JAX_COMPLEX:
            return JaxFloat(name)
        raise ValueError(f"Unknown target precision: {spec!r}")
    if spec is mpmath.mpf:
        return MpmathFloat("mpf")
    if isinstance(spec, (type, np.dtype)):
        dtype = numeric_dtype_or_none(spec)
        if dtype is not None:
            if dtype.name in _JAX_COMPLEX:
                return JaxFloat(dtype.name)
            raise ValueError(f"Target precision must be a float type, got {dtype.name}")
    if callable(spec):
        module = getattr(spec, "__module__", None) or ""
        qualname = getattr(spec, "__qualname__", None) or repr(spec)
        name = qualname if module in ("", "builtins") else f"{module}.{qualname}"
        return TextParsed(name, spec)
    raise ValueError(f"Unknown target precision: {spec!r}")


def is_type_argument(value: object) -> bool:
    """Whether ``value`` reads as an explicit destination type."""
    if isinstance(value, (TargetType, np.dtype)) or value is mpmath.mpf:
        return True
    if isinstance(value, type) and not issubclass(value, (str, bytes)):
        return issubclass(value, numbers.Number) or numeric_dtype_or_none(value) is not None
    return False
