"""Affine transforms stored as a 4x4 matrix together with its inverse.

Points go through the full affine map, vectors through the linear part only,
and normals through the inverse-transpose of the linear part so they stay
perpendicular to surfaces under non-uniform scale and shear. Shapes share a
Transform by reference; nothing here mutates a Transform after construction.
"""
from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import TYPE_CHECKING, Tuple

import numpy as np

from geometry.bounds import Bounds3
from geometry.efloat import gamma
from geometry.errors import SingularTransformError
from geometry.vector_operations import face_forward, normalize_vector
from kernel_settings import get_kernel_settings
from typings.ray import Ray, RayDifferential

if TYPE_CHECKING:
    from typings.interaction import SurfaceInteraction

logger = logging.getLogger(__name__)


class Transform:
    __slots__ = ("m", "m_inv", "swaps_handedness")

    def __init__(self, matrix, inverse=None) -> None:
        m = np.array(matrix, dtype=float)
        if m.shape != (4, 4):
            raise ValueError("Transform matrix must be 4x4, got shape {}".format(m.shape))
        if not np.all(np.isfinite(m)):
            raise SingularTransformError("Transform matrix has non-finite entries")

        if inverse is None:
            tolerance = get_kernel_settings().singular_determinant_tolerance
            # |det| relative to the product of the row norms, which bounds it
            row_norms = np.prod(np.linalg.norm(m, axis=1))
            if abs(np.linalg.det(m)) <= tolerance * row_norms:
                raise SingularTransformError("Transform matrix is singular: {}".format(m.tolist()))
            try:
                m_inv = np.linalg.inv(m)
            except np.linalg.LinAlgError as exc:
                raise SingularTransformError("Transform matrix is singular: {}".format(m.tolist())) from exc
            if not np.all(np.isfinite(m_inv)):
                raise SingularTransformError("Transform matrix has no finite inverse: {}".format(m.tolist()))
        else:
            m_inv = np.array(inverse, dtype=float)
            if m_inv.shape != (4, 4) or not np.all(np.isfinite(m_inv)):
                raise SingularTransformError("Inverse matrix must be a finite 4x4 matrix")

        self.m = m
        self.m_inv = m_inv
        self.m.setflags(write=False)
        self.m_inv.setflags(write=False)
        self.swaps_handedness = bool(np.linalg.det(m[:3, :3]) < 0.0)
        logger.debug("Built transform (swaps handedness: %s)", self.swaps_handedness)

    def __repr__(self) -> str:
        return "Transform({})".format(self.m.tolist())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transform):
            return NotImplemented
        return bool(np.array_equal(self.m, other.m) and np.array_equal(self.m_inv, other.m_inv))

    def __hash__(self) -> int:
        return hash(self.m.tobytes())

    def __mul__(self, other: "Transform") -> "Transform":
        """Composition; ``(a * b)`` applies ``b`` first, then ``a``."""
        if not isinstance(other, Transform):
            return NotImplemented
        return Transform(self.m @ other.m, other.m_inv @ self.m_inv)

    def inverse(self) -> "Transform":
        return Transform(self.m_inv, self.m)

    def is_identity(self) -> bool:
        return bool(np.array_equal(self.m, np.eye(4)))

    # Points, vectors and normals

    def apply_point(self, p: np.ndarray) -> np.ndarray:
        point = np.asarray(p, dtype=float)
        homogeneous = self.m @ np.append(point, 1.0)
        w = homogeneous[3]
        if w == 1.0:
            return homogeneous[:3]
        return homogeneous[:3] / w

    def apply_point_with_error(self, p: np.ndarray, p_error: np.ndarray | None = None) -> Tuple[np.ndarray, np.ndarray]:
        """Transforms p and returns a conservative absolute error bound on the result.

        The bound covers the rounding of the matrix product itself and, when
        ``p_error`` is given, the error already present in p.
        """
        point = np.asarray(p, dtype=float)
        linear = self.m[:3, :3]
        translation = self.m[:3, 3]
        abs_terms = np.abs(linear) @ np.abs(point) + np.abs(translation)
        if p_error is None:
            error = gamma(3) * abs_terms
        else:
            incoming = np.asarray(p_error, dtype=float)
            error = (gamma(3) + 1.0) * (np.abs(linear) @ incoming) + gamma(3) * abs_terms
        return self.apply_point(point), error

    def apply_vector(self, v: np.ndarray) -> np.ndarray:
        return self.m[:3, :3] @ np.asarray(v, dtype=float)

    def apply_vector_with_error(self, v: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        vector = np.asarray(v, dtype=float)
        error = gamma(3) * (np.abs(self.m[:3, :3]) @ np.abs(vector))
        return self.apply_vector(vector), error

    def apply_normal(self, n: np.ndarray) -> np.ndarray:
        return self.m_inv[:3, :3].T @ np.asarray(n, dtype=float)

    # Compound values

    def apply_ray(self, ray: Ray) -> Ray:
        transformed, _, _ = self.apply_ray_with_error(ray)
        return transformed

    def apply_ray_with_error(self, ray: Ray) -> Tuple[Ray, np.ndarray, np.ndarray]:
        """Transforms the ray and reports the error bounds on its new origin and direction.

        t_max, time and medium carry over unchanged; the direction is not
        renormalized, so parametric distances keep their meaning.
        """
        origin, origin_error = self.apply_point_with_error(ray.origin)
        direction, direction_error = self.apply_vector_with_error(ray.direction)
        if isinstance(ray, RayDifferential):
            transformed = replace(
                ray,
                origin=origin,
                direction=direction,
                rx_origin=self.apply_point(ray.rx_origin),
                ry_origin=self.apply_point(ray.ry_origin),
                rx_direction=self.apply_vector(ray.rx_direction),
                ry_direction=self.apply_vector(ray.ry_direction),
            )
        else:
            transformed = replace(ray, origin=origin, direction=direction)
        return transformed, origin_error, direction_error

    def apply_bounds(self, bounds: Bounds3) -> Bounds3:
        """Union of the eight transformed corners; exact for shear, loose for rotations."""
        if bounds.is_empty:
            return Bounds3.empty()
        return Bounds3.from_points(self.apply_point(corner) for corner in bounds.corners())

    def apply_interaction(self, si: "SurfaceInteraction") -> "SurfaceInteraction":
        """Re-expresses a surface interaction in this transform's target space."""
        p, p_error = self.apply_point_with_error(si.p, si.p_error)
        transformed = si.copy()
        transformed.p = p
        transformed.p_error = p_error
        if si.wo is not None:
            transformed.wo = _normalize_or_zero(self.apply_vector(si.wo))
        transformed.n = _normalize_or_zero(self.apply_normal(si.n))
        transformed.dpdu = self.apply_vector(si.dpdu)
        transformed.dpdv = self.apply_vector(si.dpdv)
        transformed.dndu = self.apply_normal(si.dndu)
        transformed.dndv = self.apply_normal(si.dndv)

        shading = transformed.shading
        shading.n = _normalize_or_zero(self.apply_normal(si.shading.n))
        shading.dpdu = self.apply_vector(si.shading.dpdu)
        shading.dpdv = self.apply_vector(si.shading.dpdv)
        shading.dndu = self.apply_normal(si.shading.dndu)
        shading.dndv = self.apply_normal(si.shading.dndv)
        shading.n = face_forward(shading.n, transformed.n)

        transformed.dpdx = self.apply_vector(si.dpdx)
        transformed.dpdy = self.apply_vector(si.dpdy)
        return transformed


def _normalize_or_zero(v: np.ndarray) -> np.ndarray:
    try:
        return normalize_vector(v)
    except ValueError:
        return np.zeros(3)


# Factories


def identity() -> Transform:
    return Transform(np.eye(4), np.eye(4))


def translate(delta) -> Transform:
    dx, dy, dz = (float(c) for c in delta)
    m = np.eye(4)
    m[:3, 3] = (dx, dy, dz)
    m_inv = np.eye(4)
    m_inv[:3, 3] = (-dx, -dy, -dz)
    return Transform(m, m_inv)


def scale(x: float, y: float, z: float) -> Transform:
    if x == 0.0 or y == 0.0 or z == 0.0:
        raise SingularTransformError("Scale factors must be non-zero, got ({}, {}, {})".format(x, y, z))
    return Transform(np.diag([x, y, z, 1.0]), np.diag([1.0 / x, 1.0 / y, 1.0 / z, 1.0]))


def rotate_x(theta: float) -> Transform:
    """Rotation about the x axis by ``theta`` degrees."""
    sin_theta = math.sin(math.radians(theta))
    cos_theta = math.cos(math.radians(theta))
    m = np.array(
        [
            [1.0, 0.0, 0.0, 0.0],
            [0.0, cos_theta, -sin_theta, 0.0],
            [0.0, sin_theta, cos_theta, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    return Transform(m, m.T)


def rotate_y(theta: float) -> Transform:
    sin_theta = math.sin(math.radians(theta))
    cos_theta = math.cos(math.radians(theta))
    m = np.array(
        [
            [cos_theta, 0.0, sin_theta, 0.0],
            [0.0, 1.0, 0.0, 0.0],
            [-sin_theta, 0.0, cos_theta, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    return Transform(m, m.T)


def rotate_z(theta: float) -> Transform:
    sin_theta = math.sin(math.radians(theta))
    cos_theta = math.cos(math.radians(theta))
    m = np.array(
        [
            [cos_theta, -sin_theta, 0.0, 0.0],
            [sin_theta, cos_theta, 0.0, 0.0],
            [0.0, 0.0, 1.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    return Transform(m, m.T)


def rotate(theta: float, axis) -> Transform:
    """Rotation by ``theta`` degrees about an arbitrary axis through the origin."""
    a = normalize_vector(axis)
    sin_theta = math.sin(math.radians(theta))
    cos_theta = math.cos(math.radians(theta))
    m = np.eye(4)
    m[0, 0] = a[0] * a[0] + (1 - a[0] * a[0]) * cos_theta
    m[0, 1] = a[0] * a[1] * (1 - cos_theta) - a[2] * sin_theta
    m[0, 2] = a[0] * a[2] * (1 - cos_theta) + a[1] * sin_theta
    m[1, 0] = a[0] * a[1] * (1 - cos_theta) + a[2] * sin_theta
    m[1, 1] = a[1] * a[1] + (1 - a[1] * a[1]) * cos_theta
    m[1, 2] = a[1] * a[2] * (1 - cos_theta) - a[0] * sin_theta
    m[2, 0] = a[0] * a[2] * (1 - cos_theta) - a[1] * sin_theta
    m[2, 1] = a[1] * a[2] * (1 - cos_theta) + a[0] * sin_theta
    m[2, 2] = a[2] * a[2] + (1 - a[2] * a[2]) * cos_theta
    return Transform(m, m.T)


def look_at(position, look, up) -> Transform:
    """World-from-camera transform for a camera at ``position`` looking at ``look``."""
    pos = np.asarray(position, dtype=float)
    direction = normalize_vector(np.asarray(look, dtype=float) - pos)
    right = np.cross(normalize_vector(up), direction)
    if np.linalg.norm(right) == 0.0:
        raise SingularTransformError("Up vector and viewing direction are parallel")
    right = normalize_vector(right)
    new_up = np.cross(direction, right)
    camera_to_world = np.eye(4)
    camera_to_world[:3, 0] = right
    camera_to_world[:3, 1] = new_up
    camera_to_world[:3, 2] = direction
    camera_to_world[:3, 3] = pos
    return Transform(camera_to_world)
