from __future__ import annotations

from typing import Iterable, Union

from geometry.bounds import Bounds3
from surfaces.sphere import Sphere
from surfaces.triangle import Triangle

ShapeType = Union[Sphere, Triangle]


def world_bounds(shapes: Iterable[ShapeType]) -> Bounds3:
    """Union of the world-space bounds of ``shapes``; empty for no shapes."""
    bounds = Bounds3.empty()
    for shape in shapes:
        bounds = bounds.union(shape.world_bound())
    return bounds
