from __future__ import annotations

import ast
import importlib.util
import textwrap
import unittest


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None

T = "__precision_float32__"
S = "__precision_jax__"


def _strict(text):
    raise ValueError(f"refusing {text}")


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for rewriter tests")
class RewriterShapeTests(unittest.TestCase):
    def _show(self, source: str, target="float32") -> str:
        from precision_jax import rewrite_source

        return ast.unparse(rewrite_source(target, textwrap.dedent(source)))

    def test_float_literals_become_target_parses(self) -> None:
        self.assertEqual(self._show("x = 0.1"), f"x = {T}.parse('0.1')")
        self.assertEqual(self._show("x = 1e-3"), f"x = {T}.parse('1e-3')")
        self.assertEqual(self._show("x = 1_000.5"), f"x = {T}.parse('1000.5')")
        self.assertEqual(self._show("z = 2.5j"), f"z = {T}.parse_imaginary('2.5j')")
        self.assertEqual(self._show("n = 3"), "n = 3")

    def test_literal_text_falls_back_to_repr_without_source(self) -> None:
        from precision_jax import rewrite

        tree = rewrite("float32", ast.parse("x = 1e-3"))
        self.assertEqual(ast.unparse(tree), f"x = {T}.parse('0.001')")

    def test_native_width_leaves_literals_alone(self) -> None:
        self.assertEqual(self._show("x = 0.1", target="float64"), "x = 0.1")
        self.assertEqual(self._show("z = 2.5j", target="float64"), "z = 2.5j")
        self.assertEqual(
            self._show("y = 1 / 3", target="float64"),
            f"y = {S}.divide(__precision_float64__, 1, 3)",
        )

    def test_text_parsed_targets_keep_imaginary_literals(self) -> None:
        from decimal import Decimal

        out = self._show("z = 2.5j + 0.5", target=Decimal)
        self.assertIn("2.5j", out)
        self.assertIn("__precision_decimal_Decimal__.parse('0.5')", out)

    def test_operators(self) -> None:
        self.assertEqual(self._show("1 / 3"), f"{S}.divide({T}, 1, 3)")
        self.assertEqual(self._show("a + b + c"), f"{S}.add({T}, a, b, c)")
        self.assertEqual(self._show("a * b * c"), f"{S}.multiply({T}, a, b, c)")
        self.assertEqual(
            self._show("a - b - c"),
            f"{S}.subtract({T}, {S}.subtract({T}, a, b), c)",
        )
        self.assertEqual(self._show("a % b"), "a % b")
        self.assertEqual(self._show("a // b"), "a // b")

    def test_powers(self) -> None:
        self.assertEqual(self._show("x ** 2"), f"{S}.literal_pow({T}, x, 2)")
        self.assertEqual(self._show("x ** -2"), f"{S}.literal_pow({T}, x, -2)")
        self.assertEqual(self._show("x ** y"), f"{S}.pow({T}, x, y)")
        self.assertEqual(self._show("x ** 0.5"), f"{S}.pow({T}, x, {T}.parse('0.5'))")

    def test_augmented_assignment_on_names(self) -> None:
        self.assertEqual(self._show("x /= 2"), f"x = {S}.divide({T}, x, 2)")
        self.assertEqual(self._show("x += 1"), f"x = {S}.add({T}, x, 1)")
        self.assertEqual(self._show("x -= y"), f"x = {S}.subtract({T}, x, y)")
        self.assertEqual(self._show("x *= pi"), f"x = {S}.multiply({T}, x, pi)")
        self.assertEqual(self._show("x **= -1"), f"x = {S}.literal_pow({T}, x, -1)")
        self.assertEqual(self._show("x **= y"), f"x = {S}.pow({T}, x, y)")
        self.assertEqual(self._show("x += 0.5"), f"x = {S}.add({T}, x, {T}.parse('0.5'))")

    def test_augmented_assignment_elsewhere_is_untouched(self) -> None:
        self.assertEqual(self._show("a.b /= 2"), "a.b /= 2")
        self.assertEqual(self._show("a[0] *= 2"), "a[0] *= 2")
        self.assertEqual(self._show("x //= 2"), "x //= 2")

    def test_special_float_names(self) -> None:
        self.assertEqual(self._show("inf"), f"{S}.convert({T}, inf)")
        self.assertEqual(self._show("np.nan"), f"{S}.convert({T}, np.nan)")
        self.assertEqual(self._show("inf = 3"), "inf = 3")

    def test_tracked_calls(self) -> None:
        self.assertEqual(self._show("sqrt(2)"), f"{S}.sqrt({T}, 2)")
        self.assertEqual(self._show("abs(x)"), f"{S}.abs_({T}, x)")
        self.assertEqual(self._show("float(x)"), f"{S}.float_({T}, x)")
        self.assertEqual(self._show("mean(xs, *rest, k=1)"), f"{S}.mean({T}, xs, *rest, k=1)")
        self.assertEqual(self._show("sqrt(sqrt(x))"), f"{S}.sqrt({T}, {S}.sqrt({T}, x))")
        self.assertEqual(self._show("jnp.sqrt(2)"), "jnp.sqrt(2)")
        self.assertEqual(self._show("print(x)"), "print(x)")

    def test_explicitly_typed_constructors_are_left_alone(self) -> None:
        self.assertEqual(self._show("ones(2, 3)"), f"{S}.ones({T}, 2, 3)")
        self.assertEqual(self._show("rand(key, 3)"), f"{S}.rand({T}, key, 3)")
        for source in (
            "ones(float16, 2, 3)",
            "zeros(jnp.float64, 4)",
            "rand(key, float64, 3)",
            "zeros(3, dtype=jnp.int32)",
            "eye(Decimal, 2)",
        ):
            with self.subTest(source=source):
                self.assertEqual(self._show(source), source)
        self.assertEqual(
            self._show("ones(float16, 0.5 + 1)"),
            f"ones(float16, {S}.add({T}, {T}.parse('0.5'), 1))",
        )

    def test_map_broadcast(self) -> None:
        self.assertEqual(
            self._show("map(sqrt, xs)"),
            f"map({S}.sqrt, {S}.repeat({T}), xs)",
        )
        self.assertEqual(
            self._show("map(atan2, ys, xs)"),
            f"map({S}.atan2, {S}.repeat({T}), ys, xs)",
        )
        self.assertEqual(self._show("map(str, xs)"), "map(str, xs)")

    def test_include(self) -> None:
        from precision_jax import rewrite_source

        self.assertEqual(
            self._show("include('lib.py')"),
            f"{S}.include({T}, globals(), 'lib.py', None)",
        )
        tree = rewrite_source("float32", "include('lib.py')", filename="/work/main.py")
        self.assertEqual(
            ast.unparse(tree),
            f"{S}.include({T}, globals(), 'lib.py', '/work')",
        )

    def test_match_patterns_are_copied(self) -> None:
        out = self._show(
            """
            match x:
                case 1.5:
                    y = 2.5
            """
        )
        self.assertIn("case 1.5:", out)
        self.assertIn(f"y = {T}.parse('2.5')", out)

    def test_nested_structures_are_rebuilt(self) -> None:
        out = self._show(
            """
            def f(a=0.5):
                return [b / 2 for b in a if b > 0.25]
            """
        )
        self.assertIn(f"def f(a={T}.parse('0.5')):", out)
        self.assertIn(f"{S}.divide({T}, b, 2)", out)
        self.assertIn(f"b > {T}.parse('0.25')", out)


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for rewriter tests")
class RewriterContractTests(unittest.TestCase):
    SOURCE = textwrap.dedent(
        """
        x = 0.1 + 1 / 3
        y = sqrt(2) * pi ** 2
        z = ones(float16, 2) if x else inf
        """
    )

    def test_input_tree_is_not_mutated(self) -> None:
        from precision_jax import rewrite

        tree = ast.parse(self.SOURCE)
        before = ast.dump(tree, include_attributes=True)
        rewrite("float32", tree, source=self.SOURCE)
        self.assertEqual(before, ast.dump(tree, include_attributes=True))

    def test_rewriting_is_deterministic(self) -> None:
        from precision_jax import rewrite_source

        first = ast.dump(rewrite_source("float32", self.SOURCE))
        second = ast.dump(rewrite_source("float32", self.SOURCE))
        self.assertEqual(first, second)

    def test_rewritten_tree_compiles(self) -> None:
        from precision_jax import rewrite_source

        compile(rewrite_source("bfloat16", self.SOURCE), "<test>", "exec")

    def test_non_tree_input_raises_shape_error(self) -> None:
        from precision_jax import PrecisionError, RewriteShapeError, rewrite

        for value in ("x = 1", 3, None):
            with self.subTest(value=value):
                with self.assertRaises(RewriteShapeError) as ctx:
                    rewrite("float32", value)
                self.assertIsInstance(ctx.exception, PrecisionError)

    def test_unparseable_literal_raises(self) -> None:
        from precision_jax import LiteralReparseError, rewrite_source

        with self.assertRaises(LiteralReparseError) as ctx:
            rewrite_source(_strict, "n = 1\nx = 0.5\n")
        err = ctx.exception
        self.assertEqual(err.text, "0.5")
        self.assertEqual(err.lineno, 2)
        self.assertIsInstance(err.__cause__, ValueError)
        self.assertIn("0.5", str(err))

    def test_unknown_target_raises(self) -> None:
        from precision_jax import rewrite_source

        with self.assertRaises(ValueError):
            rewrite_source("float7", "x = 1.0")


if __name__ == "__main__":
    unittest.main()
