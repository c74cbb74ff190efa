"""Entry points: evaluate rewritten fragments, include files, decorate functions."""

from __future__ import annotations

import ast
import functools
import inspect
import logging
import math
import os
import textwrap
from fractions import Fraction
from functools import lru_cache
from pathlib import Path
from types import CodeType

from . import backend, constants, shadow
from .config import COMPILE_CACHE_MAX
from .errors import InclusionIOError
from .operations import TRACKED_OPERATIONS, Family
from .rewriter import SHADOW_MODULE_NAME, rewrite, rewrite_source
from .targets import TargetType, resolve_target

logger = logging.getLogger(__name__)


def prelude() -> dict:
    """Fresh evaluation scope with the constants and every tracked function."""
    scope: dict = {
        "pi": constants.pi,
        "e": constants.e,
        "golden": constants.golden,
        "eulergamma": constants.eulergamma,
        "catalan": constants.catalan,
        "im": constants.im,
        "Fraction": Fraction,
        "ExactComplex": constants.ExactComplex,
        "KeyStream": backend.KeyStream,
        "seed": backend.seed,
        "inf": math.inf,
        "nan": math.nan,
    }
    for name, (family, attr) in TRACKED_OPERATIONS.items():
        if family is not Family.FILE_INCLUSION:
            scope[name] = getattr(backend, attr)
    return scope


def _prepare_scope(scope: dict, target: TargetType) -> None:
    scope[SHADOW_MODULE_NAME] = shadow
    scope[target.binding] = target


@lru_cache(maxsize=COMPILE_CACHE_MAX)
def _compile_fragment(target: TargetType, source: str, filename: str) -> tuple[CodeType, CodeType | None]:
    logger.debug("compile cache miss: %s under %s", filename, target.name)
    tree = rewrite_source(target, source, filename)
    tail = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        last = tree.body.pop()
        tail = compile(ast.fix_missing_locations(ast.Expression(body=last.value)), filename, "eval")
    body = compile(tree, filename, "exec")
    return body, tail


def compile_cache_info():
    return _compile_fragment.cache_info()


def clear_compile_cache() -> None:
    _compile_fragment.cache_clear()


def evaluate(target, source: str, scope: dict | None = None, *, filename: str = "<fragment>"):
    """Rewrite ``source`` for ``target`` and run it in ``scope``.

    ``scope`` is mutated in place; it defaults to a fresh ``prelude()``.
    Returns the value of a trailing expression statement, or ``None``.
    """
    resolved = resolve_target(target)
    if scope is None:
        scope = prelude()
    _prepare_scope(scope, resolved)
    body, tail = _compile_fragment(resolved, source, filename)
    exec(body, scope)
    if tail is None:
        return None
    return eval(tail, scope)


def include_file(target, scope: dict, path: str, relative_to: str | None = None):
    """Read, rewrite and evaluate the fragment at ``path`` inside ``scope``.

    Relative paths resolve against ``relative_to`` (the including file's
    directory) when given, else the working directory. Fragments included
    from the file resolve against its own directory in turn.
    """
    resolved = resolve_target(target)
    full = Path(path)
    if relative_to is not None and not full.is_absolute():
        full = Path(relative_to) / full
    try:
        source = full.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InclusionIOError(str(full), getattr(exc, "strerror", None) or str(exc)) from exc
    logger.debug("including %s under %s", full, resolved.name)
    return evaluate(resolved, source, scope, filename=os.fspath(full))


def changeprecision(target):
    """Decorator: recompile a function with ``target`` as its default precision.

    The function's source is re-read, rewritten and executed against the
    function's own globals. It must be the innermost decorator, and closures
    are rejected.
    """
    resolved = resolve_target(target)

    def decorate(fn):
        if fn.__closure__:
            raise ValueError(f"changeprecision cannot rewrite closure {fn.__qualname__!r}")
        source = textwrap.dedent(inspect.getsource(fn))
        tree = ast.parse(source)
        definition = tree.body[0]
        if not isinstance(definition, (ast.FunctionDef, ast.AsyncFunctionDef)):
            raise ValueError(f"changeprecision expects a function definition, got {type(definition).__name__}")
        definition.decorator_list = []
        filename = inspect.getsourcefile(fn) or "<changeprecision>"
        rewritten = rewrite(resolved, tree, source=source, filename=filename)
        ast.increment_lineno(rewritten, fn.__code__.co_firstlineno - 1)
        scope = fn.__globals__
        _prepare_scope(scope, resolved)
        namespace: dict = {}
        exec(compile(rewritten, filename, "exec"), scope, namespace)
        replacement = namespace[definition.name]
        functools.update_wrapper(replacement, fn)
        logger.debug("changeprecision: rewrote %s under %s", fn.__qualname__, resolved.name)
        return replacement

    return decorate
