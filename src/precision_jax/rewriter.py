"""Syntax tree rewriting: route default-precision operations through the shadow module.

``rewrite`` returns a new tree and never touches its input. Float literals
become ``<target>.parse("<text>")``, ``inf``/``nan`` become conversions, the
tracked operators and bare-name calls become ``__precision_jax__.<name>(<target>,
...)``, and everything else is rebuilt node by node.
"""

from __future__ import annotations

import ast
import copy
import logging
import os
import re
from typing import Final

from .errors import LiteralReparseError, RewriteShapeError
from .operations import TRACKED_OPERATIONS, TRACKED_OPERATORS, TYPED_FAMILIES, Family
from .targets import TargetType, resolve_target

logger = logging.getLogger(__name__)

SHADOW_MODULE_NAME: Final[str] = "__precision_jax__"
RESERVED_PREFIX: Final[str] = "__precision_"

# Identifiers read as an explicit element type in random/constructor calls.
_TYPE_NAMES: Final[frozenset[str]] = frozenset(
    {
        "float", "complex", "int", "bool",
        "float16", "bfloat16", "float32", "float64", "half", "single", "double",
        "complex64", "complex128",
        "int8", "int16", "int32", "int64", "uint8", "uint16", "uint32", "uint64",
        "mpf", "mpc", "Decimal", "Fraction",
    }
)
_SPECIAL_FLOATS: Final[frozenset[str]] = frozenset({"inf", "nan"})
_FLOAT_TEXT = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _load(name: str) -> ast.Name:
    return ast.Name(id=name, ctx=ast.Load())


def _shadow_attr(attr: str) -> ast.Attribute:
    return ast.Attribute(value=_load(SHADOW_MODULE_NAME), attr=attr, ctx=ast.Load())


def _literal_int(node: ast.expr) -> int | None:
    if isinstance(node, ast.Constant) and type(node.value) is int:
        return node.value
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
        value = _literal_int(node.operand)
        if value is not None and isinstance(node.operand, ast.Constant):
            return -value if isinstance(node.op, ast.USub) else value
    return None


def _names_type(node: ast.expr) -> bool:
    if isinstance(node, ast.Name):
        return node.id in _TYPE_NAMES or node.id.startswith(RESERVED_PREFIX)
    if isinstance(node, ast.Attribute):
        return node.attr in _TYPE_NAMES
    return False


def _explicitly_typed(call: ast.Call) -> bool:
    """Positional heuristic: a type name first, or second after a key."""
    if any(keyword.arg == "dtype" for keyword in call.keywords):
        return True
    return any(_names_type(arg) for arg in call.args[:2])


def _flatten(node: ast.expr, op_type: type) -> list[ast.expr]:
    operands: list[ast.expr] = []
    while isinstance(node, ast.BinOp) and isinstance(node.op, op_type):
        operands.append(node.right)
        node = node.left
    operands.append(node)
    operands.reverse()
    return operands


class _Rewriter:
    def __init__(self, target: TargetType, source: str | None, filename: str | None):
        self.target = target
        self.source = source
        self.filename = filename
        self.sites = 0

    # --- dispatch ---------------------------------------------------------

    def visit(self, node: ast.AST) -> ast.AST:
        method = getattr(self, f"visit_{type(node).__name__}", None)
        if method is not None:
            out = method(node)
            if out is not None:
                return out
        return self.generic_visit(node)

    def generic_visit(self, node: ast.AST) -> ast.AST:
        fields = {}
        for name, value in ast.iter_fields(node):
            if isinstance(value, list):
                fields[name] = [self.visit(item) if isinstance(item, ast.AST) else item for item in value]
            elif isinstance(value, ast.AST):
                fields[name] = self.visit(value)
            else:
                fields[name] = value
        return ast.copy_location(type(node)(**fields), node)

    def _visit_all(self, nodes) -> list:
        return [self.visit(node) for node in nodes]

    def _shadow_call(self, attr: str, args: list, keywords: list, like: ast.AST) -> ast.Call:
        self.sites += 1
        call = ast.Call(
            func=_shadow_attr(attr),
            args=[_load(self.target.binding), *args],
            keywords=keywords,
        )
        return ast.copy_location(call, like)

    # --- literals ---------------------------------------------------------

    def _literal_text(self, node: ast.Constant) -> str:
        if self.source is not None:
            segment = ast.get_source_segment(self.source, node)
            if segment is not None:
                text = segment.replace("_", "")
                is_imag = text[-1:] in ("j", "J")
                digits = text[:-1] if is_imag else text
                if _FLOAT_TEXT.fullmatch(digits):
                    value = complex(0, float(digits)) if is_imag else float(digits)
                    if value == node.value:
                        return text
        return repr(node.value)

    def _parse_call(self, method: str, text: str, node: ast.Constant) -> ast.Call:
        parser = getattr(self.target, method)
        try:
            parser(text)
        except (ArithmeticError, TypeError, ValueError) as exc:
            raise LiteralReparseError(text, self.target.name, str(exc), getattr(node, "lineno", None)) from exc
        self.sites += 1
        call = ast.Call(
            func=ast.Attribute(value=_load(self.target.binding), attr=method, ctx=ast.Load()),
            args=[ast.Constant(value=text)],
            keywords=[],
        )
        return ast.copy_location(call, node)

    def visit_Constant(self, node: ast.Constant) -> ast.AST | None:
        if self.target.native_literals:
            return None
        if type(node.value) is float:
            return self._parse_call("parse", self._literal_text(node), node)
        if type(node.value) is complex and self.target.has_complex:
            return self._parse_call("parse_imaginary", self._literal_text(node), node)
        return None

    def visit_Name(self, node: ast.Name) -> ast.AST | None:
        if node.id in _SPECIAL_FLOATS and isinstance(node.ctx, ast.Load):
            return self._shadow_call("convert", [self.generic_visit(node)], [], node)
        return None

    def visit_Attribute(self, node: ast.Attribute) -> ast.AST | None:
        if node.attr in _SPECIAL_FLOATS and isinstance(node.ctx, ast.Load):
            return self._shadow_call("convert", [self.generic_visit(node)], [], node)
        return None

    # --- operators --------------------------------------------------------

    def _binary_call(self, op: ast.operator, left: ast.expr, right: ast.expr, like: ast.AST) -> ast.Call:
        """Shadow call for ``left <op> right``; ``left`` is already rewritten."""
        if isinstance(op, ast.Pow):
            exponent = _literal_int(right)
            if exponent is not None:
                return self._shadow_call("literal_pow", [left, ast.Constant(value=exponent)], [], like)
        _, attr = TRACKED_OPERATORS[type(op).__name__]
        return self._shadow_call(attr, [left, self.visit(right)], [], like)

    def visit_BinOp(self, node: ast.BinOp) -> ast.AST | None:
        op_name = type(node.op).__name__
        if op_name not in TRACKED_OPERATORS:
            return None
        if isinstance(node.op, (ast.Add, ast.Mult)):
            operands = _flatten(node, type(node.op))
            if len(operands) > 2:
                _, attr = TRACKED_OPERATORS[op_name]
                return self._shadow_call(attr, self._visit_all(operands), [], node)
        return self._binary_call(node.op, self.visit(node.left), node.right, node)

    def visit_AugAssign(self, node: ast.AugAssign) -> ast.AST | None:
        # ``name op= value`` becomes ``name = <shadow>(T, name, value)``; attribute
        # and subscript targets keep their in-place semantics.
        if type(node.op).__name__ not in TRACKED_OPERATORS or not isinstance(node.target, ast.Name):
            return None
        value = self._binary_call(node.op, _load(node.target.id), node.value, node)
        assign = ast.Assign(targets=[ast.Name(id=node.target.id, ctx=ast.Store())], value=value)
        return ast.copy_location(assign, node)

    def visit_match_case(self, node: ast.match_case) -> ast.AST:
        # Patterns hold literals but not expressions; they are copied as is.
        case = ast.match_case(
            pattern=copy.deepcopy(node.pattern),
            guard=None if node.guard is None else self.visit(node.guard),
            body=self._visit_all(node.body),
        )
        return ast.copy_location(case, node)

    # --- calls ------------------------------------------------------------

    def _including_dir(self) -> ast.Constant:
        if not self.filename or self.filename.startswith("<"):
            return ast.Constant(value=None)
        return ast.Constant(value=os.path.dirname(os.path.abspath(self.filename)))

    def visit_Call(self, node: ast.Call) -> ast.AST | None:
        if not isinstance(node.func, ast.Name):
            return None
        name = node.func.id
        if name == "map" and node.args and not node.keywords:
            return self._rewrite_map(node)
        entry = TRACKED_OPERATIONS.get(name)
        if entry is None:
            return None
        family, attr = entry
        if family is Family.FILE_INCLUSION:
            if len(node.args) != 1 or node.keywords or isinstance(node.args[0], ast.Starred):
                return None
            scope = ast.Call(func=_load("globals"), args=[], keywords=[])
            return self._shadow_call(attr, [scope, self.visit(node.args[0]), self._including_dir()], [], node)
        if family in TYPED_FAMILIES and _explicitly_typed(node):
            return None
        return self._shadow_call(attr, self._visit_all(node.args), self._visit_all(node.keywords), node)

    def _rewrite_map(self, node: ast.Call) -> ast.AST | None:
        fn = node.args[0]
        if not isinstance(fn, ast.Name):
            return None
        entry = TRACKED_OPERATIONS.get(fn.id)
        if entry is None or entry[0] is Family.FILE_INCLUSION:
            return None
        self.sites += 1
        broadcast = ast.Call(func=_shadow_attr("repeat"), args=[_load(self.target.binding)], keywords=[])
        call = ast.Call(
            func=self.visit(node.func),
            args=[_shadow_attr(entry[1]), broadcast, *self._visit_all(node.args[1:])],
            keywords=[],
        )
        return ast.copy_location(call, node)


def rewrite(target, node: ast.AST, *, source: str | None = None, filename: str | None = None) -> ast.AST:
    """Return a rewritten copy of ``node`` for ``target`` precision.

    ``target`` is anything ``resolve_target`` accepts. ``source`` lets float
    literals keep their original spelling; ``filename`` anchors relative
    ``include`` paths.
    """
    if not isinstance(node, ast.AST):
        raise RewriteShapeError(f"cannot rewrite {type(node).__name__} object; expected an ast node")
    resolved = resolve_target(target)
    rewriter = _Rewriter(resolved, source, filename)
    out = rewriter.visit(node)
    ast.fix_missing_locations(out)
    logger.debug("rewrote %d site(s) for %s in %s", rewriter.sites, resolved.name, filename or "<tree>")
    return out


def rewrite_source(target, source: str, filename: str = "<fragment>") -> ast.Module:
    tree = ast.parse(source, filename=filename)
    return rewrite(target, tree, source=source, filename=filename)
