"""Axis-aligned bounding boxes in two and three dimensions.

A box is either empty (no points at all) or a pair of corners with
``min[i] <= max[i]`` on every axis. A degenerate box whose corners coincide
still contains exactly one point and is not the same thing as an empty box.
Integer corners stay integer, so ``Bounds2`` doubles as a pixel range.
"""
from __future__ import annotations

import itertools
import math
from enum import IntEnum
from typing import TYPE_CHECKING, Iterator, List, Tuple

import numpy as np

from geometry.efloat import gamma
from geometry.errors import UnorderableValueError
from geometry.ordering import check_orderable, ordered_max, ordered_min

if TYPE_CHECKING:
    from geometry.transform import Transform
    from typings.ray import Ray


class Axis(IntEnum):
    X = 0
    Y = 1
    Z = 2


def _as_point(p, dimension: int) -> np.ndarray:
    point = np.asarray(p)
    if point.dtype.kind not in "iuf":
        point = point.astype(float)
    if point.shape != (dimension,):
        raise ValueError("Expected a point with {} coordinates, got shape {}".format(dimension, point.shape))
    check_orderable(point, "point")
    return point


class _Bounds:
    __slots__ = ("min", "max")

    dimension: int = 0

    def __init__(self, min_point=None, max_point=None) -> None:
        if min_point is None or max_point is None:
            if min_point is not None or max_point is not None:
                raise ValueError("Both corners are required for a non-empty box")
            self.min = None
            self.max = None
            return
        p1 = _as_point(min_point, self.dimension)
        p2 = _as_point(max_point, self.dimension)
        self.min = ordered_min(p1, p2)
        self.max = ordered_max(p1, p2)

    @classmethod
    def empty(cls):
        return cls()

    @classmethod
    def from_point(cls, p):
        point = _as_point(p, cls.dimension)
        return cls(point, point)

    @classmethod
    def from_corners(cls, p1, p2):
        return cls(p1, p2)

    @classmethod
    def from_points(cls, points):
        bounds = cls.empty()
        for point in points:
            bounds = bounds.union_point(point)
        return bounds

    @property
    def is_empty(self) -> bool:
        return self.min is None

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        if self.is_empty or other.is_empty:
            return self.is_empty and other.is_empty
        return bool(np.array_equal(self.min, other.min) and np.array_equal(self.max, other.max))

    def __repr__(self) -> str:
        if self.is_empty:
            return "{}.empty()".format(type(self).__name__)
        return "{}({}, {})".format(type(self).__name__, self.min.tolist(), self.max.tolist())

    def _require_points(self, operation: str) -> None:
        if self.is_empty:
            raise ValueError("Cannot compute {} of an empty box".format(operation))

    def _check_same_kind(self, other) -> None:
        if type(other) is not type(self):
            raise TypeError("Cannot combine {} with {}".format(type(self).__name__, type(other).__name__))

    def union(self, other):
        self._check_same_kind(other)
        if self.is_empty:
            return type(self)(other.min, other.max) if not other.is_empty else type(self).empty()
        if other.is_empty:
            return type(self)(self.min, self.max)
        return type(self)(ordered_min(self.min, other.min), ordered_max(self.max, other.max))

    def union_point(self, p):
        return self.union(type(self).from_point(p))

    def intersection(self, other):
        """Returns the overlapping region, or None when the boxes are disjoint."""
        self._check_same_kind(other)
        if self.is_empty or other.is_empty:
            return None
        low = ordered_max(self.min, other.min)
        high = ordered_min(self.max, other.max)
        if np.all(low <= high):
            return type(self)(low, high)
        return None

    def overlaps(self, other) -> bool:
        self._check_same_kind(other)
        if self.is_empty or other.is_empty:
            return False
        return bool(np.all(self.min <= other.max) and np.all(self.max >= other.min))

    def inside(self, p) -> bool:
        point = _as_point(p, self.dimension)
        if self.is_empty:
            return False
        return bool(np.all(point >= self.min) and np.all(point <= self.max))

    def inside_exclusive(self, p) -> bool:
        """Half-open containment, [min, max) per axis, rather than fully open bounds.

        Points on a min face count as inside and points on a max face do not, so
        adjacent boxes such as neighbouring pixel ranges never share a point.
        """
        point = _as_point(p, self.dimension)
        if self.is_empty:
            return False
        return bool(np.all(point >= self.min) and np.all(point < self.max))

    def expand(self, delta) -> None:
        check_orderable(delta, "expansion delta")
        if self.is_empty or delta <= 0:
            return
        self.min = self.min - delta
        self.max = self.max + delta

    def diagonal(self) -> np.ndarray:
        if self.is_empty:
            return np.zeros(self.dimension)
        return self.max - self.min

    def maximum_extent(self) -> Axis:
        self._require_points("the maximum extent")
        d = self.diagonal()
        if self.dimension == 2:
            return Axis.X if d[0] > d[1] else Axis.Y
        if d[0] > d[1] and d[0] > d[2]:
            return Axis.X
        if d[1] > d[2]:
            return Axis.Y
        return Axis.Z

    def lerp(self, t) -> np.ndarray:
        """Point at parameter t along the diagonal; per-axis t is accepted too."""
        self._require_points("an interpolated point")
        check_orderable(t, "interpolation parameter")
        t = np.asarray(t, dtype=float)
        return (1.0 - t) * self.min + t * self.max

    def offset(self, p) -> np.ndarray:
        """Position of p relative to the box, 0 at the min corner and 1 at the max corner."""
        self._require_points("an offset")
        point = _as_point(p, self.dimension)
        o = (point - self.min).astype(float)
        extent = self.max - self.min
        positive = extent > 0
        o[positive] /= extent[positive]
        return o

    def corner(self, index: int) -> np.ndarray:
        """Corner number ``index``; bit i selects max (1) or min (0) on axis i."""
        self._require_points("a corner")
        return np.array(
            [self.max[axis] if index & (1 << axis) else self.min[axis] for axis in range(self.dimension)],
            dtype=self.min.dtype,
        )

    def corners(self) -> List[np.ndarray]:
        if self.is_empty:
            return []
        return [self.corner(index) for index in range(1 << self.dimension)]


class Bounds2(_Bounds):
    __slots__ = ()

    dimension = 2

    def area(self):
        d = self.diagonal()
        return d[0] * d[1]

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        """Iterates the integer lattice points of the half-open box, row by row."""
        if self.is_empty:
            return iter(())
        if self.min.dtype.kind not in "iu":
            raise TypeError("Only integer boxes can be iterated")
        x_range = range(int(self.min[0]), int(self.max[0]))
        y_range = range(int(self.min[1]), int(self.max[1]))
        return ((x, y) for y, x in itertools.product(y_range, x_range))


class Bounds3(_Bounds):
    __slots__ = ()

    dimension = 3

    def surface_area(self):
        d = self.diagonal()
        return 2 * (d[0] * d[1] + d[0] * d[2] + d[1] * d[2])

    def volume(self):
        d = self.diagonal()
        return d[0] * d[1] * d[2]

    def bounding_sphere(self) -> Tuple[np.ndarray, float]:
        self._require_points("a bounding sphere")
        center = (self.min + self.max) * 0.5
        return center, float(np.linalg.norm(self.max - center))

    def intersect_ray(self, ray: "Ray") -> Tuple[float, float] | None:
        """Slab test. Returns the parametric range (t0, t1) inside the box, or None.

        The range starts as [0, ray.t_max], so t0 is 0 whenever the origin is
        inside the box. An axis whose direction component is exactly zero only
        rejects the ray when the origin lies outside that slab.
        """
        if self.is_empty:
            return None
        check_orderable(ray.origin, "ray origin")
        check_orderable(ray.direction, "ray direction")
        if math.isnan(ray.t_max):
            raise UnorderableValueError("Cannot order a ray with a NaN t_max")

        t0 = 0.0
        t1 = ray.t_max
        for axis in range(3):
            origin_component = float(ray.origin[axis])
            direction_component = float(ray.direction[axis])
            if direction_component == 0.0:
                if origin_component < self.min[axis] or origin_component > self.max[axis]:
                    return None
                continue

            inv_d = 1.0 / direction_component
            t_near = (float(self.min[axis]) - origin_component) * inv_d
            t_far = (float(self.max[axis]) - origin_component) * inv_d
            if t_near > t_far:
                t_near, t_far = t_far, t_near
            t_far *= 1.0 + 2.0 * gamma(3)

            t0 = t_near if t_near > t0 else t0
            t1 = t_far if t_far < t1 else t1
            if t0 > t1:
                return None
        return t0, t1

    def transform(self, transform: "Transform") -> None:
        """Replaces the box in place with the union of its eight transformed corners."""
        warped = transform.apply_bounds(self)
        self.min = warped.min
        self.max = warped.max
