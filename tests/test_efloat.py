"""Unit tests for error-bounded floating-point arithmetic."""

import math
from fractions import Fraction

import pytest

from geometry.efloat import MACHINE_EPSILON, EFloat, gamma, quadratic


def contains(ef, exact):
    return Fraction(ef.lower_bound()) <= exact <= Fraction(ef.upper_bound())


class TestEFloat:
    """Tests for interval propagation."""

    def test_error_widens_interval(self):
        """An initial error bound is rounded outwards."""
        ef = EFloat(1.0, 0.1)
        assert ef.lower_bound() < 0.9
        assert ef.upper_bound() > 1.1
        assert float(ef) == 1.0

    def test_exact_value_has_point_interval(self):
        """Without error the interval collapses onto the value."""
        ef = EFloat(2.5)
        assert ef.lower_bound() == ef.upper_bound() == 2.5
        assert ef.absolute_error() >= 0.0

    def test_addition_contains_exact_sum(self):
        """The rounded sum's interval contains the real sum."""
        total = EFloat(0.1) + EFloat(0.2)
        assert contains(total, Fraction(0.1) + Fraction(0.2))

    def test_subtraction_contains_exact_difference(self):
        """Subtraction pairs the low end with the other's high end."""
        difference = EFloat(1.0, 0.25) - EFloat(0.5, 0.25)
        assert difference.lower_bound() <= 0.0
        assert difference.upper_bound() >= 1.0

    def test_multiplication_with_negative_interval(self):
        """All four endpoint products are considered."""
        product = EFloat(-2.0, 0.5) * EFloat(3.0)
        assert float(product) == -6.0
        assert product.lower_bound() <= -7.5
        assert product.upper_bound() >= -4.5

    def test_multiplication_contains_exact_product(self):
        """Rounding error of the product stays inside the interval."""
        product = EFloat(0.1) * EFloat(0.3)
        assert contains(product, Fraction(0.1) * Fraction(0.3))

    def test_division_by_interval_straddling_zero(self):
        """Dividing by something that may be zero gives an unbounded interval."""
        quotient = EFloat(1.0) / EFloat(0.0, 1.0)
        assert quotient.lower_bound() == -math.inf
        assert quotient.upper_bound() == math.inf

    def test_division_by_exact_zero_does_not_raise(self):
        """Division by zero is an infinite value, not an exception."""
        quotient = EFloat(1.0) / EFloat(0.0)
        assert float(quotient) == math.inf

    def test_division_contains_exact_quotient(self):
        """A regular quotient interval holds the real quotient."""
        quotient = EFloat(1.0) / EFloat(3.0)
        assert contains(quotient, Fraction(1, 1) / Fraction(3.0))

    def test_negation_and_abs(self):
        """Negation swaps the endpoints; abs of a straddling interval starts at zero."""
        ef = EFloat(-1.0, 2.0)
        negated = -ef
        assert negated.lower_bound() == -ef.upper_bound()
        assert negated.upper_bound() == -ef.lower_bound()
        magnitude = abs(ef)
        assert magnitude.lower_bound() == 0.0
        assert magnitude.upper_bound() >= 3.0

    def test_sqrt(self):
        """Square root keeps the value inside its bounds."""
        root = EFloat(4.0).sqrt()
        assert float(root) == 2.0
        assert root.lower_bound() <= 2.0 <= root.upper_bound()

    def test_mixed_with_plain_numbers(self):
        """Plain numbers on either side are promoted."""
        assert float(2.0 * EFloat(3.0)) == 6.0
        assert float(1.0 - EFloat(0.25)) == 0.75
        assert float(1.0 / EFloat(4.0)) == 0.25
        assert float(EFloat(1.0) + 1) == 2.0

    def test_gamma_grows_with_operation_count(self):
        """gamma(n) bounds n roundings and increases with n."""
        assert gamma(1) > MACHINE_EPSILON
        assert gamma(3) > 3 * MACHINE_EPSILON
        assert gamma(5) > gamma(3)


class TestQuadratic:
    """Tests for the root solver."""

    def test_two_roots_sorted(self):
        """t^2 - 10t + 24 has roots 4 and 6."""
        t0, t1 = quadratic(EFloat(1.0), EFloat(-10.0), EFloat(24.0))
        assert float(t0) == pytest.approx(4.0)
        assert float(t1) == pytest.approx(6.0)
        assert t0.lower_bound() <= 4.0 <= t0.upper_bound()

    def test_positive_b(self):
        """Roots come back sorted for either sign of b."""
        t0, t1 = quadratic(EFloat(1.0), EFloat(10.0), EFloat(24.0))
        assert float(t0) == pytest.approx(-6.0)
        assert float(t1) == pytest.approx(-4.0)

    def test_no_real_roots(self):
        """A negative discriminant yields None."""
        assert quadratic(EFloat(1.0), EFloat(0.0), EFloat(1.0)) is None

    def test_zero_leading_coefficient(self):
        """a = 0 is not a quadratic and yields None."""
        assert quadratic(EFloat(0.0), EFloat(1.0), EFloat(1.0)) is None

    def test_double_root_at_zero(self):
        """b = c = 0 gives a double root at zero without dividing by zero."""
        t0, t1 = quadratic(EFloat(1.0), EFloat(0.0), EFloat(0.0))
        assert float(t0) == 0.0
        assert float(t1) == 0.0

    def test_small_root_without_cancellation(self):
        """The root near zero is accurate even when b dominates."""
        t0, t1 = quadratic(EFloat(1.0), EFloat(-1e8), EFloat(1.0))
        assert float(t0) == pytest.approx(1e-8, rel=1e-9)
        assert float(t1) == pytest.approx(1e8)
