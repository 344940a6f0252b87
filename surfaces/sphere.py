from __future__ import annotations

import logging
import math
from typing import Tuple

import numpy as np

from geometry.bounds import Bounds3
from geometry.efloat import EFloat, gamma, quadratic
from geometry.errors import InvalidShapeError
from geometry.transform import Transform
from geometry.vector_operations import vector_cross, vector_dot, vector_length
from kernel_settings import get_kernel_settings
from surfaces.shape import Intersection, Shape
from typings.interaction import SurfaceInteraction
from typings.ray import Ray

logger = logging.getLogger(__name__)

_Hit = Tuple[EFloat, np.ndarray, float, Ray]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class Sphere(Shape):
    """Sphere of ``radius`` centred at the object-space origin, optionally clipped.

    ``z_min``/``z_max`` cut the sphere with planes perpendicular to z and
    ``phi_max`` (degrees) limits the sweep around the z axis. The surface is
    parameterized by u = phi / phi_max and v running from theta_min to
    theta_max.
    """

    def __init__(
        self,
        object_to_world: Transform,
        world_to_object: Transform,
        reverse_orientation: bool,
        radius: float,
        z_min: float | None = None,
        z_max: float | None = None,
        phi_max: float = 360.0,
    ) -> None:
        super().__init__(object_to_world, world_to_object, reverse_orientation)
        radius = float(radius)
        if not math.isfinite(radius) or radius < 0.0:
            raise InvalidShapeError("Sphere radius must be a finite non-negative number, got {!r}".format(radius))
        z_min = -radius if z_min is None else float(z_min)
        z_max = radius if z_max is None else float(z_max)
        phi_max = float(phi_max)
        for name, value in (("z_min", z_min), ("z_max", z_max), ("phi_max", phi_max)):
            if math.isnan(value):
                raise InvalidShapeError("Sphere {} must not be NaN".format(name))

        self.radius: float = radius
        self.z_min: float = _clamp(min(z_min, z_max), -radius, radius)
        self.z_max: float = _clamp(max(z_min, z_max), -radius, radius)
        if radius > 0.0:
            self.theta_min: float = math.acos(_clamp(self.z_min / radius, -1.0, 1.0))
            self.theta_max: float = math.acos(_clamp(self.z_max / radius, -1.0, 1.0))
        else:
            self.theta_min = math.pi
            self.theta_max = 0.0
        self.phi_max: float = math.radians(_clamp(phi_max, 0.0, 360.0))
        if self.surface_area() == 0.0:
            logger.warning(
                "Sphere with zero surface area can never be hit (radius=%s, z=[%s, %s], phi_max=%s)",
                radius,
                self.z_min,
                self.z_max,
                phi_max,
            )

    def object_bound(self) -> Bounds3:
        return Bounds3.from_corners(
            (-self.radius, -self.radius, self.z_min),
            (self.radius, self.radius, self.z_max),
        )

    def surface_area(self) -> float:
        return self.phi_max * self.radius * (self.z_max - self.z_min)

    def ray_intersection(self, ray: Ray, test_alpha_texture: bool = True) -> Intersection | None:
        hit = self._find_hit(ray)
        if hit is None:
            return None
        t_shape_hit, p_hit, phi, object_ray = hit
        si = self._surface_interaction(object_ray, p_hit, phi)
        return float(t_shape_hit), self.object_to_world.apply_interaction(si)

    def does_ray_intersect(self, ray: Ray, test_alpha_texture: bool = True) -> bool:
        return self._find_hit(ray) is not None

    def _find_hit(self, ray: Ray) -> _Hit | None:
        if self.surface_area() == 0.0:
            return None
        object_ray, origin_error, direction_error = self.world_to_object.apply_ray_with_error(ray)

        ox, oy, oz = (EFloat(object_ray.origin[i], origin_error[i]) for i in range(3))
        dx, dy, dz = (EFloat(object_ray.direction[i], direction_error[i]) for i in range(3))
        a = dx * dx + dy * dy + dz * dz
        b = 2.0 * (dx * ox + dy * oy + dz * oz)
        c = ox * ox + oy * oy + oz * oz - EFloat(self.radius) * EFloat(self.radius)

        roots = quadratic(a, b, c)
        if roots is None:
            return None
        t0, t1 = roots
        if t0.upper_bound() > object_ray.t_max or t1.lower_bound() <= 0.0:
            return None

        t_shape_hit = t0
        if t_shape_hit.lower_bound() <= 0.0:
            t_shape_hit = t1
            if t_shape_hit.upper_bound() > object_ray.t_max:
                return None

        p_hit, phi = self._hit_point(object_ray, t_shape_hit)
        if self._is_clipped(p_hit, phi):
            # the near root is cut away; the far one may still be on the surface
            if t_shape_hit is t1:
                return None
            if t1.upper_bound() > object_ray.t_max:
                return None
            t_shape_hit = t1
            p_hit, phi = self._hit_point(object_ray, t_shape_hit)
            if self._is_clipped(p_hit, phi):
                return None
        return t_shape_hit, p_hit, phi, object_ray

    def _hit_point(self, object_ray: Ray, t: EFloat) -> Tuple[np.ndarray, float]:
        p_hit = object_ray.at(float(t))
        # reproject onto the surface to cut the error of the ray evaluation
        p_hit = p_hit * (self.radius / vector_length(p_hit))
        if p_hit[0] == 0.0 and p_hit[1] == 0.0:
            p_hit[0] = get_kernel_settings().sphere_pole_offset * self.radius
        phi = math.atan2(p_hit[1], p_hit[0])
        if phi < 0.0:
            phi += 2.0 * math.pi
        return p_hit, phi

    def _is_clipped(self, p_hit: np.ndarray, phi: float) -> bool:
        return (
            (self.z_min > -self.radius and p_hit[2] < self.z_min)
            or (self.z_max < self.radius and p_hit[2] > self.z_max)
            or phi > self.phi_max
        )

    def _surface_interaction(self, object_ray: Ray, p_hit: np.ndarray, phi: float) -> SurfaceInteraction:
        radius = self.radius
        theta_range = self.theta_max - self.theta_min
        u = phi / self.phi_max if self.phi_max > 0.0 else 0.0
        cos_theta = _clamp(p_hit[2] / radius, -1.0, 1.0)
        theta = math.acos(cos_theta)
        v = (theta - self.theta_min) / theta_range if theta_range != 0.0 else 0.0

        z_radius = math.sqrt(p_hit[0] * p_hit[0] + p_hit[1] * p_hit[1])
        cos_phi = p_hit[0] / z_radius
        sin_phi = p_hit[1] / z_radius
        sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))
        dpdu = np.array([-self.phi_max * p_hit[1], self.phi_max * p_hit[0], 0.0])
        dpdv = theta_range * np.array([p_hit[2] * cos_phi, p_hit[2] * sin_phi, -radius * sin_theta])

        # normal derivatives from the Weingarten equations
        d2pduu = -self.phi_max * self.phi_max * np.array([p_hit[0], p_hit[1], 0.0])
        d2pduv = theta_range * p_hit[2] * self.phi_max * np.array([-sin_phi, cos_phi, 0.0])
        d2pdvv = -theta_range * theta_range * p_hit
        e1 = vector_dot(dpdu, dpdu)
        f1 = vector_dot(dpdu, dpdv)
        g1 = vector_dot(dpdv, dpdv)
        n = vector_cross(dpdu, dpdv)
        n_length = vector_length(n)
        denominator = e1 * g1 - f1 * f1
        if n_length == 0.0 or denominator == 0.0:
            dndu = np.zeros(3)
            dndv = np.zeros(3)
        else:
            n = n / n_length
            e2 = vector_dot(n, d2pduu)
            f2 = vector_dot(n, d2pduv)
            g2 = vector_dot(n, d2pdvv)
            inv_egf2 = 1.0 / denominator
            dndu = (f2 * f1 - e2 * g1) * inv_egf2 * dpdu + (e2 * f1 - f2 * e1) * inv_egf2 * dpdv
            dndv = (g2 * f1 - f2 * g1) * inv_egf2 * dpdu + (f2 * f1 - g2 * e1) * inv_egf2 * dpdv

        p_error = gamma(5) * np.abs(p_hit)
        return SurfaceInteraction(
            p_hit,
            p_error,
            (u, v),
            -object_ray.direction,
            dpdu,
            dpdv,
            dndu,
            dndv,
            object_ray.time,
            self,
        )
