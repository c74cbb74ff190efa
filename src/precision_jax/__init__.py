"""precision-jax public API."""

from . import config  # noqa: F401  enables x64 before any target is built
from .classify import Category, Classification, classify
from .constants import ExactComplex, Irrational, catalan, e, eulergamma, golden, im, pi
from .errors import InclusionIOError, LiteralReparseError, PrecisionError, RewriteShapeError
from .operations import TRACKED_OPERATIONS, Family
from .rewriter import SHADOW_MODULE_NAME, rewrite, rewrite_source
from .runtime import (
    changeprecision,
    clear_compile_cache,
    compile_cache_info,
    evaluate,
    include_file,
    prelude,
)
from .targets import JaxFloat, MpmathFloat, TargetType, TextParsed, resolve_target
from .backend import KeyStream, seed

__all__ = [
    "Category",
    "Classification",
    "ExactComplex",
    "Family",
    "InclusionIOError",
    "Irrational",
    "JaxFloat",
    "KeyStream",
    "LiteralReparseError",
    "MpmathFloat",
    "PrecisionError",
    "RewriteShapeError",
    "SHADOW_MODULE_NAME",
    "TRACKED_OPERATIONS",
    "TargetType",
    "TextParsed",
    "catalan",
    "changeprecision",
    "classify",
    "clear_compile_cache",
    "compile_cache_info",
    "e",
    "eulergamma",
    "evaluate",
    "golden",
    "im",
    "include_file",
    "pi",
    "prelude",
    "resolve_target",
    "rewrite",
    "rewrite_source",
    "seed",
]
