"""Floating-point values that carry a conservative bound on their rounding error.

Every EFloat keeps the value computed with ordinary float arithmetic plus an
interval ``[low, high]`` that is guaranteed to contain the exact result of the
same computation carried out in real arithmetic. Interval endpoints are
rounded outwards with ``math.nextafter`` after every operation.
"""
from __future__ import annotations

import math
from typing import Tuple, Union

import numpy as np

MACHINE_EPSILON: float = float(np.finfo(float).eps) * 0.5


def gamma(n: int) -> float:
    """Bound on the relative error of ``n`` successive rounded operations."""
    return (n * MACHINE_EPSILON) / (1.0 - n * MACHINE_EPSILON)


def next_float_up(v: float) -> float:
    return math.nextafter(v, math.inf)


def next_float_down(v: float) -> float:
    return math.nextafter(v, -math.inf)


def _divide(a: float, b: float) -> float:
    if b != 0.0:
        return a / b
    if a == 0.0 or math.isnan(a):
        return math.nan
    return math.copysign(math.inf, a) * math.copysign(1.0, b)


Number = Union[int, float, "EFloat"]


class EFloat:
    __slots__ = ("v", "low", "high")

    def __init__(self, v: float, err: float = 0.0) -> None:
        self.v = float(v)
        if err == 0.0:
            self.low = self.v
            self.high = self.v
        else:
            self.low = next_float_down(self.v - err)
            self.high = next_float_up(self.v + err)

    @classmethod
    def _from_interval(cls, v: float, low: float, high: float) -> "EFloat":
        result = cls(v)
        result.low = low
        result.high = high
        return result

    @staticmethod
    def _coerce(other: Number) -> "EFloat":
        if isinstance(other, EFloat):
            return other
        return EFloat(float(other))

    def __float__(self) -> float:
        return self.v

    def __repr__(self) -> str:
        return f"EFloat({self.v!r}, low={self.low!r}, high={self.high!r})"

    def lower_bound(self) -> float:
        return self.low

    def upper_bound(self) -> float:
        return self.high

    def absolute_error(self) -> float:
        return next_float_up(max(abs(self.high - self.v), abs(self.v - self.low)))

    def __add__(self, other: Number) -> "EFloat":
        ef = self._coerce(other)
        return EFloat._from_interval(
            self.v + ef.v,
            next_float_down(self.low + ef.low),
            next_float_up(self.high + ef.high),
        )

    __radd__ = __add__

    def __sub__(self, other: Number) -> "EFloat":
        ef = self._coerce(other)
        return EFloat._from_interval(
            self.v - ef.v,
            next_float_down(self.low - ef.high),
            next_float_up(self.high - ef.low),
        )

    def __rsub__(self, other: Number) -> "EFloat":
        return self._coerce(other) - self

    def __mul__(self, other: Number) -> "EFloat":
        ef = self._coerce(other)
        products = (
            self.low * ef.low,
            self.high * ef.low,
            self.low * ef.high,
            self.high * ef.high,
        )
        return EFloat._from_interval(
            self.v * ef.v,
            next_float_down(min(products)),
            next_float_up(max(products)),
        )

    __rmul__ = __mul__

    def __truediv__(self, other: Number) -> "EFloat":
        ef = self._coerce(other)
        value = _divide(self.v, ef.v)
        if ef.low < 0.0 < ef.high or ef.low == 0.0 or ef.high == 0.0:
            # the divisor interval touches zero; the quotient is unbounded
            return EFloat._from_interval(value, -math.inf, math.inf)
        quotients = (
            self.low / ef.low,
            self.high / ef.low,
            self.low / ef.high,
            self.high / ef.high,
        )
        return EFloat._from_interval(
            value,
            next_float_down(min(quotients)),
            next_float_up(max(quotients)),
        )

    def __rtruediv__(self, other: Number) -> "EFloat":
        return self._coerce(other) / self

    def __neg__(self) -> "EFloat":
        return EFloat._from_interval(-self.v, -self.high, -self.low)

    def __abs__(self) -> "EFloat":
        if self.low >= 0.0:
            return self
        if self.high <= 0.0:
            return -self
        return EFloat._from_interval(abs(self.v), 0.0, max(-self.low, self.high))

    def sqrt(self) -> "EFloat":
        return EFloat._from_interval(
            math.sqrt(self.v),
            next_float_down(math.sqrt(max(self.low, 0.0))),
            next_float_up(math.sqrt(self.high)),
        )

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EFloat):
            return self.v == other.v
        if isinstance(other, (int, float)):
            return self.v == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.v)


def quadratic(a: EFloat, b: EFloat, c: EFloat) -> Tuple[EFloat, EFloat] | None:
    """Solves a*t^2 + b*t + c = 0, returning the two roots sorted or None.

    Uses the cancellation-free form q = -(b +/- sqrt(disc)) / 2 so that the
    root nearer zero is computed as c / q rather than as a small difference.
    """
    if a.v == 0.0:
        return None
    discriminant = b.v * b.v - 4.0 * a.v * c.v
    if discriminant < 0.0:
        return None
    root_discriminant = math.sqrt(discriminant)
    float_root_discriminant = EFloat(root_discriminant, MACHINE_EPSILON * root_discriminant)

    if b.v < 0.0:
        q = -0.5 * (b - float_root_discriminant)
    else:
        q = -0.5 * (b + float_root_discriminant)
    t0 = q / a
    if q.v == 0.0:
        # b and the discriminant both vanish, so both roots coincide
        t1 = t0
    else:
        t1 = c / q
    if t0.v > t1.v:
        t0, t1 = t1, t0
    return t0, t1
