"""The fixed set of operations whose result precision is chosen by default."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Final, Mapping


class Family(str, Enum):
    RANDOM = "random"
    ARRAY_CONSTRUCTOR = "array_constructor"
    ELEMENTARY = "elementary"
    DIVISION = "division"
    COMPLEX_OBSERVER = "complex_observer"
    STATISTICAL = "statistical"
    LINEAR_ALGEBRA = "linear_algebra"
    ASSOCIATIVE_BINARY = "associative_binary"
    CONVERSION = "conversion"
    FILE_INCLUSION = "file_inclusion"


_ELEMENTARY_NAMES = (
    "sqrt", "cbrt", "exp", "exp2", "expm1", "log", "log2", "log10", "log1p",
    "sin", "cos", "tan", "asin", "acos", "atan", "sinh", "cosh", "tanh",
    "asinh", "acosh", "atanh", "lgamma", "gamma", "atan2", "hypot",
)


def _table() -> dict[str, tuple[Family, str]]:
    table: dict[str, tuple[Family, str]] = {}
    for name in ("rand", "randn", "randexp"):
        table[name] = (Family.RANDOM, name)
    for name in ("ones", "zeros", "eye"):
        table[name] = (Family.ARRAY_CONSTRUCTOR, name)
    for name in _ELEMENTARY_NAMES:
        table[name] = (Family.ELEMENTARY, name)
    table["inv"] = (Family.DIVISION, "inv")
    table["abs"] = (Family.COMPLEX_OBSERVER, "abs_")
    table["angle"] = (Family.COMPLEX_OBSERVER, "angle")
    for name in ("mean", "median", "var", "std", "cov", "cor"):
        table[name] = (Family.STATISTICAL, name)
    for name in ("det", "solve", "eigvals", "svdvals", "norm"):
        table[name] = (Family.LINEAR_ALGEBRA, name)
    table["float"] = (Family.CONVERSION, "float_")
    table["include"] = (Family.FILE_INCLUSION, "include")
    return table


# Bare-name calls the rewriter redirects, as name -> (family, shadow attribute).
TRACKED_OPERATIONS: Final[Mapping[str, tuple[Family, str]]] = MappingProxyType(_table())

# Operator nodes, keyed by ast operator class name.
TRACKED_OPERATORS: Final[Mapping[str, tuple[Family, str]]] = MappingProxyType(
    {
        "Div": (Family.DIVISION, "divide"),
        "Add": (Family.ASSOCIATIVE_BINARY, "add"),
        "Sub": (Family.ASSOCIATIVE_BINARY, "subtract"),
        "Mult": (Family.ASSOCIATIVE_BINARY, "multiply"),
        "Pow": (Family.ASSOCIATIVE_BINARY, "pow"),
    }
)

TYPED_FAMILIES: Final[frozenset[Family]] = frozenset({Family.RANDOM, Family.ARRAY_CONSTRUCTOR})


def family_of(name: str) -> Family | None:
    entry = TRACKED_OPERATIONS.get(name)
    return None if entry is None else entry[0]
