from __future__ import annotations

import importlib.util
import unittest
from decimal import Decimal
from fractions import Fraction


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


def _reject(text):
    raise ValueError(f"rejected {text}")


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for target tests")
class TargetResolutionTests(unittest.TestCase):
    def test_names_aliases_and_types(self) -> None:
        import jax.numpy as jnp
        import mpmath
        import numpy as np

        from precision_jax import JaxFloat, MpmathFloat, resolve_target

        self.assertEqual(resolve_target("float32"), JaxFloat("float32"))
        self.assertEqual(resolve_target("single"), JaxFloat("float32"))
        self.assertEqual(resolve_target("double"), JaxFloat("float64"))
        self.assertEqual(resolve_target("half"), JaxFloat("float16"))
        self.assertEqual(resolve_target("bfloat16"), JaxFloat("bfloat16"))
        self.assertEqual(resolve_target(jnp.float32), JaxFloat("float32"))
        self.assertEqual(resolve_target(np.dtype("float16")), JaxFloat("float16"))
        self.assertEqual(resolve_target(float), JaxFloat("float64"))
        self.assertEqual(resolve_target(mpmath.mpf), MpmathFloat("mpf"))
        self.assertEqual(resolve_target("bigfloat"), MpmathFloat("mpf"))

        target = JaxFloat("float32")
        self.assertIs(resolve_target(target), target)

    def test_text_parsed_targets(self) -> None:
        from precision_jax import TextParsed, resolve_target

        target = resolve_target(Decimal)
        self.assertIsInstance(target, TextParsed)
        self.assertEqual(target.name, "decimal.Decimal")
        self.assertEqual(target.binding, "__precision_decimal_Decimal__")
        self.assertFalse(target.has_complex)

    def test_rejects_unknown_and_non_float_identifiers(self) -> None:
        from precision_jax import resolve_target

        for spec in ("float8", "quad", int, complex, 3):
            with self.subTest(spec=spec):
                with self.assertRaises(ValueError):
                    resolve_target(spec)

    def test_type_argument_detection(self) -> None:
        import jax.numpy as jnp
        import mpmath

        from precision_jax import JaxFloat
        from precision_jax.targets import is_type_argument

        for value in (jnp.float32, jnp.int32, float, int, Decimal, mpmath.mpf, JaxFloat("float16")):
            with self.subTest(value=value):
                self.assertTrue(is_type_argument(value))
        for value in (3, "float32", [2, 3], None, str):
            with self.subTest(value=value):
                self.assertFalse(is_type_argument(value))


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for target tests")
class TargetConversionTests(unittest.TestCase):
    def test_jax_float_conversions(self) -> None:
        import jax.numpy as jnp

        from precision_jax import JaxFloat, im, pi

        target = JaxFloat("float32")
        self.assertEqual(target.binding, "__precision_float32__")
        self.assertFalse(target.native_literals)
        self.assertTrue(JaxFloat("float64").native_literals)

        parsed = target.parse("0.1")
        self.assertEqual(parsed.dtype, jnp.float32)
        self.assertEqual(float(parsed), float(jnp.float32(0.1)))

        third = target(Fraction(1, 3))
        self.assertEqual(third.dtype, jnp.float32)
        self.assertAlmostEqual(float(third), 1 / 3, places=6)

        self.assertEqual(float(target(pi)), float(jnp.float32(3.141592653589793)))

        vector = target([1, Fraction(1, 2)])
        self.assertEqual(vector.dtype, jnp.float32)
        self.assertEqual(vector.tolist(), [1.0, 0.5])

        gaussian = target(1 + 2 * im)
        self.assertEqual(gaussian.dtype, jnp.complex64)
        self.assertEqual(complex(gaussian), 1 + 2j)

        cast = target(jnp.ones(2, dtype=jnp.float64))
        self.assertEqual(cast.dtype, jnp.float32)

        self.assertEqual(target("text"), "text")

    def test_jax_float_constructors(self) -> None:
        import jax
        import jax.numpy as jnp

        from precision_jax import JaxFloat

        target = JaxFloat("float16")
        ones = target.full((2, 3), 1)
        self.assertEqual(ones.shape, (2, 3))
        self.assertEqual(ones.dtype, jnp.float16)
        eye = target.eye(2)
        self.assertEqual(eye.tolist(), [[1.0, 0.0], [0.0, 1.0]])
        draws = target.random("normal", jax.random.PRNGKey(0), (4,))
        self.assertEqual(draws.dtype, jnp.float16)
        self.assertEqual(draws.shape, (4,))

    def test_mpmath_conversions(self) -> None:
        import mpmath

        from precision_jax import MpmathFloat, pi

        target = MpmathFloat("mpf")
        with mpmath.workdps(40):
            self.assertEqual(target.parse("0.1"), mpmath.mpf("0.1"))
            self.assertEqual(target(Fraction(1, 3)), mpmath.mpf(1) / 3)
            self.assertEqual(target(pi), +mpmath.pi)
        column = target([1, 2])
        self.assertIsInstance(column, mpmath.matrix)
        self.assertEqual((column.rows, column.cols), (2, 1))
        square = target.full((2, 2), 1)
        self.assertEqual(square[1, 1], 1)
        with self.assertRaises(ValueError):
            target.full((2, 2, 2), 0)

    def test_text_parsed_conversions(self) -> None:
        from precision_jax import TextParsed, pi

        target = TextParsed("decimal.Decimal", Decimal)
        self.assertEqual(target.parse("0.1"), Decimal("0.1"))
        self.assertEqual(target(Fraction(1, 4)), Decimal("0.25"))
        self.assertEqual(target(3), Decimal(3))
        self.assertTrue(str(target(pi)).startswith("3.14159265358979323846"))
        self.assertEqual(target([1, 2]), [Decimal(1), Decimal(2)])
        self.assertEqual(target.full((2,), 0), [Decimal(0), Decimal(0)])
        self.assertEqual(target(1.5), Decimal("1.5"))

    def test_rejecting_constructor_raises_on_parse(self) -> None:
        from precision_jax import resolve_target

        target = resolve_target(_reject)
        with self.assertRaises(ValueError):
            target.parse("0.5")


if __name__ == "__main__":
    unittest.main()
