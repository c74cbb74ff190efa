"""Exact scalar values that stay exact until a precision is chosen.

``Irrational`` constants behave like float64 numbers in ordinary arithmetic,
but the shadow operations recognise them and evaluate them directly in the
target precision. ``ExactComplex`` is a complex number whose parts are
integers or fractions; ``1 + 2*im`` builds one.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from fractions import Fraction

import jax.numpy as jnp
import mpmath


@dataclass(frozen=True)
class Irrational:
    name: str
    mp_name: str

    def __repr__(self) -> str:
        return self.name

    def __float__(self) -> float:
        with mpmath.workprec(53):
            return float(self.mpf())

    def __complex__(self) -> complex:
        return complex(float(self))

    def __jax_array__(self):
        return jnp.asarray(float(self))

    def mpf(self):
        """Value at the ambient mpmath precision."""
        return +getattr(mpmath.mp, self.mp_name)

    def digits(self, count: int) -> str:
        with mpmath.workdps(count + 5):
            return mpmath.nstr(self.mpf(), count)

    def __neg__(self):
        return -float(self)

    def __pos__(self):
        return float(self)

    def __abs__(self):
        return abs(float(self))

    def __add__(self, other):
        return float(self) + other

    def __radd__(self, other):
        return other + float(self)

    def __sub__(self, other):
        return float(self) - other

    def __rsub__(self, other):
        return other - float(self)

    def __mul__(self, other):
        return float(self) * other

    def __rmul__(self, other):
        return other * float(self)

    def __truediv__(self, other):
        return float(self) / other

    def __rtruediv__(self, other):
        return other / float(self)

    def __pow__(self, other):
        return float(self) ** other

    def __rpow__(self, other):
        return other ** float(self)


pi = Irrational("pi", "pi")
e = Irrational("e", "e")
golden = Irrational("golden", "phi")
eulergamma = Irrational("eulergamma", "euler")
catalan = Irrational("catalan", "catalan")

IRRATIONALS: tuple[Irrational, ...] = (pi, e, golden, eulergamma, catalan)


def _is_exact_part(value: object) -> bool:
    return isinstance(value, numbers.Rational)


@dataclass(frozen=True)
class ExactComplex:
    real: int | Fraction
    imag: int | Fraction = 0

    def __post_init__(self) -> None:
        if not (_is_exact_part(self.real) and _is_exact_part(self.imag)):
            raise TypeError("ExactComplex parts must be integers or fractions")

    def __str__(self) -> str:
        sign = "-" if self.imag < 0 else "+"
        return f"{self.real} {sign} {abs(self.imag)}im"

    @property
    def is_rational(self) -> bool:
        return isinstance(self.real, Fraction) or isinstance(self.imag, Fraction)

    def __complex__(self) -> complex:
        return complex(float(self.real), float(self.imag))

    def __jax_array__(self):
        return jnp.asarray(complex(self))

    def conjugate(self) -> "ExactComplex":
        return ExactComplex(self.real, -self.imag)

    def __neg__(self) -> "ExactComplex":
        return ExactComplex(-self.real, -self.imag)

    def __pos__(self) -> "ExactComplex":
        return self

    def __abs__(self) -> float:
        return abs(complex(self))

    def __add__(self, other):
        rhs = _coerce(other)
        if rhs is None:
            return complex(self) + other
        return ExactComplex(self.real + rhs.real, self.imag + rhs.imag)

    def __radd__(self, other):
        lhs = _coerce(other)
        if lhs is None:
            return other + complex(self)
        return lhs + self

    def __sub__(self, other):
        rhs = _coerce(other)
        if rhs is None:
            return complex(self) - other
        return ExactComplex(self.real - rhs.real, self.imag - rhs.imag)

    def __rsub__(self, other):
        lhs = _coerce(other)
        if lhs is None:
            return other - complex(self)
        return lhs - self

    def __mul__(self, other):
        rhs = _coerce(other)
        if rhs is None:
            return complex(self) * other
        return ExactComplex(
            self.real * rhs.real - self.imag * rhs.imag,
            self.real * rhs.imag + self.imag * rhs.real,
        )

    def __rmul__(self, other):
        lhs = _coerce(other)
        if lhs is None:
            return other * complex(self)
        return lhs * self

    def __truediv__(self, other):
        rhs = _coerce(other)
        if rhs is None:
            return complex(self) / other
        # Gaussian integers divide to a default-precision complex, only
        # rational parts keep the quotient exact.
        if not (self.is_rational or rhs.is_rational):
            return complex(self) / complex(rhs)
        norm = Fraction(rhs.real * rhs.real + rhs.imag * rhs.imag)
        if norm == 0:
            raise ZeroDivisionError("ExactComplex division by zero")
        return ExactComplex(
            (self.real * rhs.real + self.imag * rhs.imag) / norm,
            (self.imag * rhs.real - self.real * rhs.imag) / norm,
        )

    def __rtruediv__(self, other):
        lhs = _coerce(other)
        if lhs is None:
            return other / complex(self)
        return lhs / self

    def __pow__(self, other):
        if isinstance(other, int) and not isinstance(other, bool):
            if other < 0:
                return ExactComplex(1) / (self ** -other)
            result = ExactComplex(1)
            factor = self
            power = other
            while power:
                if power & 1:
                    result = result * factor
                power >>= 1
                if power:
                    factor = factor * factor
            return result
        return complex(self) ** other

    def __rpow__(self, other):
        return other ** complex(self)


def _coerce(value: object) -> ExactComplex | None:
    if isinstance(value, ExactComplex):
        return value
    if _is_exact_part(value):
        return ExactComplex(value, 0)
    return None


im = ExactComplex(0, 1)
