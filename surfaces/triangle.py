"""Triangle meshes and the per-triangle views used for intersection.

A TriangleMesh owns every buffer: vertex positions (cached in world space),
the index triples, and the optional per-vertex tangents, normals and UVs. A
Triangle is just the mesh plus an index into the triple list and never
copies vertex data.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Tuple

import numpy as np

from geometry.bounds import Bounds3
from geometry.efloat import gamma
from geometry.errors import InvalidMeshError
from geometry.transform import Transform
from geometry.vector_operations import (
    coordinate_system,
    length_squared,
    max_dimension,
    normalize_vector,
    permute,
    vector_cross,
    vector_length,
)
from kernel_settings import get_kernel_settings
from surfaces.shape import Intersection, Shape
from typings.interaction import SurfaceInteraction
from typings.ray import Ray

logger = logging.getLogger(__name__)

AlphaMask = Callable[[SurfaceInteraction], float]

_DEFAULT_UVS = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]])

_Hit = Tuple[float, float, float, float]


def _attribute_buffer(name: str, values, vertex_count: int, width: int) -> np.ndarray | None:
    if values is None:
        return None
    buffer = np.array(values, dtype=float)
    if buffer.shape != (vertex_count, width):
        raise InvalidMeshError(
            "Mesh {} must have shape ({}, {}), got {}".format(name, vertex_count, width, buffer.shape)
        )
    if not np.all(np.isfinite(buffer)):
        raise InvalidMeshError("Mesh {} contain non-finite values".format(name))
    return buffer


class TriangleMesh:
    def __init__(
        self,
        object_to_world: Transform,
        world_to_object: Transform,
        reverse_orientation: bool,
        vertex_indices,
        vertices,
        tangents=None,
        normals=None,
        uvs=None,
        alpha_mask: AlphaMask | None = None,
    ) -> None:
        object_vertices = np.asarray(vertices, dtype=float)
        if object_vertices.ndim != 2 or object_vertices.shape[1] != 3:
            raise InvalidMeshError("Mesh vertices must have shape (n, 3), got {}".format(object_vertices.shape))
        if not np.all(np.isfinite(object_vertices)):
            raise InvalidMeshError("Mesh vertices contain non-finite values")
        vertex_count = object_vertices.shape[0]

        indices = np.asarray(vertex_indices)
        if indices.size % 3 != 0:
            raise InvalidMeshError("Index buffer length {} is not a multiple of 3".format(indices.size))
        if indices.size and indices.dtype.kind not in "iu":
            raise InvalidMeshError("Vertex indices must be integers, got dtype {}".format(indices.dtype))
        indices = indices.astype(np.int64).reshape(-1, 3)
        if indices.size and (indices.min() < 0 or indices.max() >= vertex_count):
            raise InvalidMeshError(
                "Vertex indices must lie in [0, {}), got range [{}, {}]".format(
                    vertex_count, indices.min(), indices.max()
                )
            )

        self.object_to_world: Transform = object_to_world
        self.world_to_object: Transform = world_to_object
        self.reverse_orientation: bool = bool(reverse_orientation)
        self.vertex_indices: np.ndarray = indices
        self.vertices: np.ndarray = np.array([object_to_world.apply_point(p) for p in object_vertices]).reshape(-1, 3)

        tangent_buffer = _attribute_buffer("tangents", tangents, vertex_count, 3)
        normal_buffer = _attribute_buffer("normals", normals, vertex_count, 3)
        self.tangents: np.ndarray | None = (
            None if tangent_buffer is None else np.array([object_to_world.apply_vector(s) for s in tangent_buffer])
        )
        self.normals: np.ndarray | None = (
            None if normal_buffer is None else np.array([object_to_world.apply_normal(n) for n in normal_buffer])
        )
        self.uvs: np.ndarray | None = _attribute_buffer("uvs", uvs, vertex_count, 2)
        self.alpha_mask: AlphaMask | None = alpha_mask

        for buffer in (self.vertices, self.vertex_indices, self.tangents, self.normals, self.uvs):
            if buffer is not None:
                buffer.setflags(write=False)

        degenerate = sum(1 for triangle in self.triangles() if triangle.surface_area() == 0.0)
        if degenerate:
            logger.warning("Mesh has %d degenerate triangle(s) with zero area", degenerate)
        logger.debug("Built triangle mesh with %d triangles over %d vertices", len(self), vertex_count)

    def __len__(self) -> int:
        return int(self.vertex_indices.shape[0])

    def triangle_at(self, index: int) -> "Triangle":
        return Triangle(self, index)

    def triangles(self) -> List["Triangle"]:
        return [Triangle(self, index) for index in range(len(self))]


class Triangle(Shape):
    def __init__(self, mesh: TriangleMesh, index: int) -> None:
        if not 0 <= index < len(mesh):
            raise InvalidMeshError("Triangle index {} out of range for a mesh of {}".format(index, len(mesh)))
        super().__init__(mesh.object_to_world, mesh.world_to_object, mesh.reverse_orientation)
        self.mesh: TriangleMesh = mesh
        self.index: int = int(index)

    def __repr__(self) -> str:
        return "Triangle(index={})".format(self.index)

    def vertex_ids(self) -> Tuple[int, int, int]:
        v0, v1, v2 = self.mesh.vertex_indices[self.index]
        return int(v0), int(v1), int(v2)

    def world_space_vertices(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        v0, v1, v2 = self.vertex_ids()
        vertices = self.mesh.vertices
        return vertices[v0], vertices[v1], vertices[v2]

    def object_space_vertices(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        p0, p1, p2 = self.world_space_vertices()
        to_object = self.world_to_object
        return to_object.apply_point(p0), to_object.apply_point(p1), to_object.apply_point(p2)

    def uvs(self) -> np.ndarray:
        if self.mesh.uvs is None:
            return _DEFAULT_UVS
        return self.mesh.uvs[list(self.vertex_ids())]

    def object_bound(self) -> Bounds3:
        return Bounds3.from_points(self.object_space_vertices())

    def world_bound(self) -> Bounds3:
        return Bounds3.from_points(self.world_space_vertices())

    def surface_area(self) -> float:
        p0, p1, p2 = self.world_space_vertices()
        return 0.5 * vector_length(vector_cross(p1 - p0, p2 - p0))

    def does_ray_intersect(self, ray: Ray, test_alpha_texture: bool = True) -> bool:
        if test_alpha_texture and self.mesh.alpha_mask is not None:
            return self.ray_intersection(ray, test_alpha_texture) is not None
        return self._find_hit(ray) is not None

    def _find_hit(self, ray: Ray) -> _Hit | None:
        """Watertight test in a frame where the ray runs along +z from the origin.

        Returns (t, b0, b1, b2) or None. Edge functions are evaluated on the
        sheared vertices, so a ray through an edge shared by two triangles
        never slips between them.
        """
        p0, p1, p2 = self.world_space_vertices()

        p0t = p0 - ray.origin
        p1t = p1 - ray.origin
        p2t = p2 - ray.origin
        kz = max_dimension(np.abs(ray.direction))
        kx = (kz + 1) % 3
        ky = (kx + 1) % 3
        d = permute(ray.direction, kx, ky, kz)
        if d[2] == 0.0:
            return None
        p0t = permute(p0t, kx, ky, kz)
        p1t = permute(p1t, kx, ky, kz)
        p2t = permute(p2t, kx, ky, kz)

        shear_x = -d[0] / d[2]
        shear_y = -d[1] / d[2]
        shear_z = 1.0 / d[2]
        for pt in (p0t, p1t, p2t):
            pt[0] += shear_x * pt[2]
            pt[1] += shear_y * pt[2]

        e0 = p1t[0] * p2t[1] - p1t[1] * p2t[0]
        e1 = p2t[0] * p0t[1] - p2t[1] * p0t[0]
        e2 = p0t[0] * p1t[1] - p0t[1] * p1t[0]
        if (e0 < 0.0 or e1 < 0.0 or e2 < 0.0) and (e0 > 0.0 or e1 > 0.0 or e2 > 0.0):
            return None
        det = e0 + e1 + e2
        if det == 0.0:
            return None

        for pt in (p0t, p1t, p2t):
            pt[2] *= shear_z
        t_scaled = e0 * p0t[2] + e1 * p1t[2] + e2 * p2t[2]
        if det < 0.0 and (t_scaled >= 0.0 or t_scaled < ray.t_max * det):
            return None
        if det > 0.0 and (t_scaled <= 0.0 or t_scaled > ray.t_max * det):
            return None

        inv_det = 1.0 / det
        b0 = e0 * inv_det
        b1 = e1 * inv_det
        b2 = e2 * inv_det
        t = t_scaled * inv_det

        # reject t values that rounding alone could have pushed above zero
        max_zt = max(abs(p0t[2]), abs(p1t[2]), abs(p2t[2]))
        delta_z = gamma(3) * max_zt
        max_xt = max(abs(p0t[0]), abs(p1t[0]), abs(p2t[0]))
        max_yt = max(abs(p0t[1]), abs(p1t[1]), abs(p2t[1]))
        delta_x = gamma(5) * (max_xt + max_zt)
        delta_y = gamma(5) * (max_yt + max_zt)
        delta_e = 2.0 * (gamma(2) * max_xt * max_yt + delta_y * max_xt + delta_x * max_yt)
        max_e = max(abs(e0), abs(e1), abs(e2))
        delta_t = 3.0 * (gamma(3) * max_e * max_zt + delta_e * max_zt + delta_z * max_e) * abs(inv_det)
        if t <= delta_t:
            return None
        return t, b0, b1, b2

    def ray_intersection(self, ray: Ray, test_alpha_texture: bool = True) -> Intersection | None:
        hit = self._find_hit(ray)
        if hit is None:
            return None
        t, b0, b1, b2 = hit
        settings = get_kernel_settings()
        p0, p1, p2 = self.world_space_vertices()
        uv = self.uvs()

        duv02 = uv[0] - uv[2]
        duv12 = uv[1] - uv[2]
        dp02 = p0 - p2
        dp12 = p1 - p2
        determinant = duv02[0] * duv12[1] - duv02[1] * duv12[0]
        degenerate_uv = abs(determinant) < settings.degenerate_uv_tolerance
        if not degenerate_uv:
            inv_det = 1.0 / determinant
            dpdu = (duv12[1] * dp02 - duv02[1] * dp12) * inv_det
            dpdv = (duv02[0] * dp12 - duv12[0] * dp02) * inv_det
        if degenerate_uv or length_squared(vector_cross(dpdu, dpdv)) == 0.0:
            ng = vector_cross(p2 - p0, p1 - p0)
            if length_squared(ng) == 0.0:
                return None
            dpdu, dpdv = coordinate_system(normalize_vector(ng))

        abs_sum = np.abs(b0 * p0) + np.abs(b1 * p1) + np.abs(b2 * p2)
        p_error = gamma(7) * abs_sum
        p_hit = b0 * p0 + b1 * p1 + b2 * p2
        uv_hit = b0 * uv[0] + b1 * uv[1] + b2 * uv[2]

        if test_alpha_texture and self.mesh.alpha_mask is not None:
            local = SurfaceInteraction(
                p_hit, np.zeros(3), uv_hit, None, dpdu, dpdv, np.zeros(3), np.zeros(3), ray.time, self
            )
            if self.mesh.alpha_mask(local) == 0:
                return None

        si = SurfaceInteraction(
            p_hit,
            p_error,
            uv_hit,
            -ray.direction,
            dpdu,
            dpdv,
            np.zeros(3),
            np.zeros(3),
            ray.time,
            self,
            face_index=self.index,
            normal=vector_cross(dp02, dp12),
        )
        si.barycentric = (b0, b1, b2)
        if self.mesh.normals is not None or self.mesh.tangents is not None:
            self._apply_shading_geometry(si, b0, b1, b2, uv)
        return t, si

    def _apply_shading_geometry(self, si: SurfaceInteraction, b0: float, b1: float, b2: float, uv: np.ndarray) -> None:
        v0, v1, v2 = self.vertex_ids()
        normals = self.mesh.normals
        tangents = self.mesh.tangents

        # set_shading_geometry applies the orientation flip, so start unflipped
        ns = si.n
        if self.reverse_orientation ^ self.transform_swaps_handedness:
            ns = -ns
        if normals is not None:
            interpolated = b0 * normals[v0] + b1 * normals[v1] + b2 * normals[v2]
            if length_squared(interpolated) > 0.0:
                ns = normalize_vector(interpolated)

        ss = si.dpdu
        if tangents is not None:
            interpolated = b0 * tangents[v0] + b1 * tangents[v1] + b2 * tangents[v2]
            if length_squared(interpolated) > 0.0:
                ss = interpolated
        ss = normalize_vector(ss)

        ts = vector_cross(ss, ns)
        if length_squared(ts) > 0.0:
            ts = normalize_vector(ts)
            ss = vector_cross(ts, ns)
        else:
            ss, ts = coordinate_system(ns)

        dndu = np.zeros(3)
        dndv = np.zeros(3)
        if normals is not None:
            duv02 = uv[0] - uv[2]
            duv12 = uv[1] - uv[2]
            dn1 = normals[v0] - normals[v2]
            dn2 = normals[v1] - normals[v2]
            determinant = duv02[0] * duv12[1] - duv02[1] * duv12[0]
            if abs(determinant) < get_kernel_settings().degenerate_uv_tolerance:
                dn = vector_cross(normals[v2] - normals[v0], normals[v1] - normals[v0])
                if length_squared(dn) != 0.0:
                    dndu, dndv = coordinate_system(normalize_vector(dn))
            else:
                inv_det = 1.0 / determinant
                dndu = (duv12[1] * dn1 - duv02[1] * dn2) * inv_det
                dndv = (duv02[0] * dn2 - duv12[0] * dn1) * inv_det

        si.set_shading_geometry(ss, ts, dndu, dndv, True)
