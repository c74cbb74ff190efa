from __future__ import annotations

import importlib.util
import unittest
from decimal import Decimal
from fractions import Fraction


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for classifier tests")
class ClassifierTests(unittest.TestCase):
    def test_scalar_categories(self) -> None:
        import mpmath
        import numpy as np

        from precision_jax import Category, classify, pi

        cases = [
            (3, Category.HARDWARE_INTEGER),
            (True, Category.HARDWARE_INTEGER),
            (np.int64(3), Category.HARDWARE_INTEGER),
            (Fraction(1, 3), Category.EXACT_RATIONAL),
            (pi, Category.IRRATIONAL_CONSTANT),
            (1.5, Category.ALREADY_FLOATING),
            (Decimal("1.1"), Category.ALREADY_FLOATING),
            (mpmath.mpf(1), Category.ALREADY_FLOATING),
            ("text", Category.OPAQUE),
            (None, Category.OPAQUE),
        ]
        for value, expected in cases:
            with self.subTest(value=value):
                cls = classify(value)
                self.assertIs(cls.category, expected)
                self.assertFalse(cls.is_array)
                self.assertFalse(cls.is_complex)

    def test_complex_values(self) -> None:
        from precision_jax import Category, ExactComplex, classify, im

        gaussian = 1 + 2 * im
        self.assertEqual(gaussian, ExactComplex(1, 2))
        cls = classify(gaussian)
        self.assertIs(cls.category, Category.HARDWARE_INTEGER)
        self.assertTrue(cls.is_complex)
        self.assertEqual(str(cls), "ComplexOf(HardwareInteger)")

        rational = classify(ExactComplex(Fraction(1, 2), 1))
        self.assertIs(rational.category, Category.EXACT_RATIONAL)
        self.assertTrue(rational.is_complex)

        native = classify(1 + 2j)
        self.assertIs(native.category, Category.ALREADY_FLOATING)
        self.assertTrue(native.is_complex)

    def test_arrays_join_element_categories(self) -> None:
        from precision_jax import Category, classify, pi

        cls = classify([1, Fraction(1, 2)])
        self.assertIs(cls.category, Category.EXACT_RATIONAL)
        self.assertTrue(cls.is_array)
        self.assertEqual(str(cls), "ArrayOf(ExactRational)")

        nested = classify([[1, 2], [3, pi]])
        self.assertIs(nested.category, Category.IRRATIONAL_CONSTANT)
        self.assertTrue(nested.is_array)

        floating = classify((1, 2.5))
        self.assertIs(floating.category, Category.ALREADY_FLOATING)

        opaque = classify([1, "a"])
        self.assertIs(opaque.category, Category.OPAQUE)
        self.assertTrue(opaque.is_array)
        self.assertFalse(opaque.promotable)

        self.assertIs(classify([]).category, Category.OPAQUE)

    def test_backend_arrays_classify_by_dtype(self) -> None:
        import jax.numpy as jnp
        import mpmath

        from precision_jax import Category, classify

        ints = classify(jnp.arange(3))
        self.assertIs(ints.category, Category.HARDWARE_INTEGER)
        self.assertTrue(ints.is_array)

        floats = classify(jnp.ones(2, dtype=jnp.float32))
        self.assertIs(floats.category, Category.ALREADY_FLOATING)
        self.assertTrue(floats.is_array)

        scalar = classify(jnp.asarray(1.0, dtype=jnp.float32))
        self.assertIs(scalar.category, Category.ALREADY_FLOATING)
        self.assertFalse(scalar.is_array)

        self.assertTrue(classify(jnp.ones(2, dtype=jnp.complex64)).is_complex)
        self.assertTrue(classify(mpmath.matrix([[1, 2]])).is_array)

    def test_predicates(self) -> None:
        from precision_jax import classify, pi

        self.assertTrue(classify(2).integer_like)
        self.assertTrue(classify(Fraction(1, 2)).rational)
        self.assertTrue(classify(pi).irrational)
        self.assertTrue(classify(pi).promotable)
        self.assertFalse(classify(pi).integer_like)
        self.assertFalse(classify(2.0).promotable)


if __name__ == "__main__":
    unittest.main()
