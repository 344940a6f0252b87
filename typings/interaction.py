from __future__ import annotations

import copy
import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Tuple

import numpy as np

from geometry.efloat import next_float_down, next_float_up
from geometry.vector_operations import face_forward, normalize_vector, vector_cross, vector_dot
from typings.ray import Ray, RayDifferential

if TYPE_CHECKING:
    from surfaces.shape import Shape

SHADOW_EPSILON: float = 0.0001 # fraction of a shadow ray left unexplored before its target


def _zeros() -> np.ndarray:
    return np.zeros(3)


def _unit_or_zero(v: np.ndarray) -> np.ndarray:
    try:
        return normalize_vector(v)
    except ValueError:
        return np.zeros(3)


@dataclass(frozen=True, slots=True)
class MediumInterface:
    """Media on either side of a surface; opaque to the kernel."""

    inside: Any = None
    outside: Any = None

    def is_transition(self) -> bool:
        return self.inside is not self.outside


class Interaction:
    """A point where light interacts with the scene, on a surface or in a medium.

    ``p_error`` bounds the floating-point error in ``p`` per axis. It is
    non-zero for points computed by ray intersection and zero for points
    sampled inside participating media. ``wo`` is the negated direction of the
    ray that found the point and is ``None`` when the point was not found
    along a ray.
    """

    def __init__(
        self,
        p: np.ndarray,
        time: float = 0.0,
        p_error: np.ndarray | None = None,
        wo: np.ndarray | None = None,
        n: np.ndarray | None = None,
        medium_interface: MediumInterface | None = None,
        medium: Any = None,
    ) -> None:
        self.p: np.ndarray = np.asarray(p, dtype=float)
        self.time: float = float(time)
        self.p_error: np.ndarray = _zeros() if p_error is None else np.asarray(p_error, dtype=float)
        self.wo: np.ndarray | None = None if wo is None else _unit_or_zero(wo)
        self.n: np.ndarray = _zeros() if n is None else np.asarray(n, dtype=float)
        self.medium_interface: MediumInterface | None = medium_interface
        self.medium: Any = medium

    def is_surface_interaction(self) -> bool:
        return bool(np.any(self.n != 0.0))

    def offset_ray_origin(self, w: np.ndarray) -> np.ndarray:
        """Pushes p just past its error box along the normal, on the side w leaves from."""
        d = vector_dot(np.abs(self.n), self.p_error)
        offset = d * self.n
        if vector_dot(w, self.n) < 0.0:
            offset = -offset
        po = self.p + offset
        for axis in range(3):
            if offset[axis] > 0.0:
                po[axis] = next_float_up(po[axis])
            elif offset[axis] < 0.0:
                po[axis] = next_float_down(po[axis])
        return po

    def get_medium(self, w: np.ndarray | None = None) -> Any:
        if self.medium_interface is not None:
            if w is not None and vector_dot(w, self.n) > 0.0:
                return self.medium_interface.outside
            return self.medium_interface.inside
        return self.medium

    def spawn_ray(self, d: np.ndarray) -> Ray:
        origin = self.offset_ray_origin(d)
        return Ray(origin, d, math.inf, self.time, self.get_medium(d))

    def spawn_ray_to(self, p: np.ndarray) -> Ray:
        """Ray towards p that stops just short of it, for visibility tests."""
        target = np.asarray(p, dtype=float)
        origin = self.offset_ray_origin(target - self.p)
        d = target - origin
        return Ray(origin, d, 1.0 - SHADOW_EPSILON, self.time, self.get_medium(d))


@dataclass(slots=True)
class ShadingGeometry:
    n: np.ndarray
    dpdu: np.ndarray
    dpdv: np.ndarray
    dndu: np.ndarray
    dndv: np.ndarray


class SurfaceInteraction(Interaction):
    """Local differential geometry at a ray/shape hit.

    The geometric normal is ``cross(dpdu, dpdv)`` (or the ``normal`` passed
    in), flipped when the shape's ``reverse_orientation`` and its transform's
    handedness swap disagree. The shading frame starts as a copy of the
    geometric frame and may later be perturbed through set_shading_geometry.
    """

    def __init__(
        self,
        p: np.ndarray,
        p_error: np.ndarray,
        uv: Tuple[float, float],
        wo: np.ndarray | None,
        dpdu: np.ndarray,
        dpdv: np.ndarray,
        dndu: np.ndarray,
        dndv: np.ndarray,
        time: float,
        shape: "Shape | None" = None,
        face_index: int = 0,
        normal: np.ndarray | None = None,
    ) -> None:
        dpdu = np.asarray(dpdu, dtype=float)
        dpdv = np.asarray(dpdv, dtype=float)
        natural = vector_cross(dpdu, dpdv) if normal is None else np.asarray(normal, dtype=float)
        n = _unit_or_zero(natural)
        if shape is not None and (shape.reverse_orientation ^ shape.transform_swaps_handedness):
            n = -n
        super().__init__(p, time, p_error, wo, n)

        self.uv: np.ndarray = np.asarray(uv, dtype=float)
        self.dpdu: np.ndarray = dpdu
        self.dpdv: np.ndarray = dpdv
        self.dndu: np.ndarray = np.asarray(dndu, dtype=float)
        self.dndv: np.ndarray = np.asarray(dndv, dtype=float)
        self.shape = shape
        self.face_index: int = int(face_index)
        self.barycentric: Tuple[float, float, float] | None = None
        self.shading = ShadingGeometry(
            n=self.n.copy(),
            dpdu=self.dpdu.copy(),
            dpdv=self.dpdv.copy(),
            dndu=self.dndu.copy(),
            dndv=self.dndv.copy(),
        )

        # screen-space derivatives, filled in by compute_differentials
        self.dpdx: np.ndarray = _zeros()
        self.dpdy: np.ndarray = _zeros()
        self.dudx = self.dvdx = self.dudy = self.dvdy = 0.0

    def copy(self) -> "SurfaceInteraction":
        duplicate = copy.copy(self)
        duplicate.shading = replace(self.shading)
        return duplicate

    def set_shading_geometry(
        self,
        dpdus: np.ndarray,
        dpdvs: np.ndarray,
        dndus: np.ndarray,
        dndvs: np.ndarray,
        orientation_is_authoritative: bool,
    ) -> None:
        """Replaces the shading frame and brings both normals into one hemisphere.

        With ``orientation_is_authoritative`` the geometric normal is flipped
        to agree with the new shading normal; otherwise the shading normal is
        flipped to agree with the geometric one.
        """
        dpdus = np.asarray(dpdus, dtype=float)
        dpdvs = np.asarray(dpdvs, dtype=float)
        shading_n = _unit_or_zero(vector_cross(dpdus, dpdvs))
        if self.shape is not None and (self.shape.reverse_orientation ^ self.shape.transform_swaps_handedness):
            shading_n = -shading_n
        if orientation_is_authoritative:
            self.n = face_forward(self.n, shading_n)
        else:
            shading_n = face_forward(shading_n, self.n)

        self.shading.n = shading_n
        self.shading.dpdu = dpdus
        self.shading.dpdv = dpdvs
        self.shading.dndu = np.asarray(dndus, dtype=float)
        self.shading.dndv = np.asarray(dndvs, dtype=float)

    def compute_differentials(self, ray: RayDifferential) -> None:
        """Estimates how p and (u, v) change across one film sample in x and y."""
        if not (isinstance(ray, RayDifferential) and ray.has_differentials):
            self._clear_differentials()
            return

        d = vector_dot(self.n, self.p)
        rx_denominator = vector_dot(self.n, ray.rx_direction)
        ry_denominator = vector_dot(self.n, ray.ry_direction)
        if rx_denominator == 0.0 or ry_denominator == 0.0:
            self._clear_differentials()
            return
        tx = -(vector_dot(self.n, ray.rx_origin) - d) / rx_denominator
        ty = -(vector_dot(self.n, ray.ry_origin) - d) / ry_denominator
        if not (math.isfinite(tx) and math.isfinite(ty)):
            self._clear_differentials()
            return

        px = ray.rx_origin + tx * ray.rx_direction
        py = ray.ry_origin + ty * ray.ry_direction
        self.dpdx = px - self.p
        self.dpdy = py - self.p

        # project onto the two axes the normal is least aligned with
        abs_n = np.abs(self.n)
        if abs_n[0] > abs_n[1] and abs_n[0] > abs_n[2]:
            dim = (1, 2)
        elif abs_n[1] > abs_n[2]:
            dim = (0, 2)
        else:
            dim = (0, 1)
        a = ((self.dpdu[dim[0]], self.dpdv[dim[0]]), (self.dpdu[dim[1]], self.dpdv[dim[1]]))
        bx = (px[dim[0]] - self.p[dim[0]], px[dim[1]] - self.p[dim[1]])
        by = (py[dim[0]] - self.p[dim[0]], py[dim[1]] - self.p[dim[1]])
        self.dudx, self.dvdx = _solve_2x2(a, bx)
        self.dudy, self.dvdy = _solve_2x2(a, by)

    def _clear_differentials(self) -> None:
        self.dpdx = _zeros()
        self.dpdy = _zeros()
        self.dudx = self.dvdx = self.dudy = self.dvdy = 0.0


def _solve_2x2(a, b) -> Tuple[float, float]:
    determinant = a[0][0] * a[1][1] - a[0][1] * a[1][0]
    if abs(determinant) < 1e-10:
        return 0.0, 0.0
    x0 = (a[1][1] * b[0] - a[0][1] * b[1]) / determinant
    x1 = (a[0][0] * b[1] - a[1][0] * b[0]) / determinant
    if math.isnan(x0) or math.isnan(x1):
        return 0.0, 0.0
    return float(x0), float(x1)
