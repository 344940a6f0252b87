from __future__ import annotations

from typing import Tuple

from geometry.bounds import Bounds3
from geometry.transform import Transform
from typings.interaction import SurfaceInteraction
from typings.ray import Ray

Intersection = Tuple[float, SurfaceInteraction]


class Shape:
    """Geometry defined in its own object space and placed in the world by a shared transform.

    Shapes only hold references to their transforms; any number of shapes can
    share one pair. Normals are flipped exactly when ``reverse_orientation``
    and ``transform_swaps_handedness`` disagree.
    """

    def __init__(self, object_to_world: Transform, world_to_object: Transform, reverse_orientation: bool) -> None:
        self.object_to_world: Transform = object_to_world
        self.world_to_object: Transform = world_to_object
        self.reverse_orientation: bool = bool(reverse_orientation)
        self.transform_swaps_handedness: bool = object_to_world.swaps_handedness

    def object_bound(self) -> Bounds3:
        raise NotImplementedError

    def world_bound(self) -> Bounds3:
        return self.object_to_world.apply_bounds(self.object_bound())

    def ray_intersection(self, ray: Ray, test_alpha_texture: bool = True) -> Intersection | None:
        """Nearest hit in (0, ray.t_max) as ``(t_hit, interaction)`` in world space, or None."""
        raise NotImplementedError

    def does_ray_intersect(self, ray: Ray, test_alpha_texture: bool = True) -> bool:
        return self.ray_intersection(ray, test_alpha_texture) is not None

    def surface_area(self) -> float:
        raise NotImplementedError
