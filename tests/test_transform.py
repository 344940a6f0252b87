"""Unit tests for affine transforms."""

import math

import numpy as np
import pytest

from geometry.bounds import Bounds3
from geometry.errors import SingularTransformError
from geometry.transform import (
    Transform,
    identity,
    look_at,
    rotate,
    rotate_x,
    rotate_z,
    scale,
    translate,
)
from geometry.vector_operations import vector_dot
from typings.interaction import SurfaceInteraction
from typings.ray import Ray, RayDifferential


class TestConstruction:
    """Tests for building transforms."""

    def test_identity(self):
        """The identity neither moves points nor swaps handedness."""
        transform = identity()
        assert transform.is_identity()
        assert not transform.swaps_handedness
        np.testing.assert_array_equal(transform.apply_point((1.0, 2.0, 3.0)), [1.0, 2.0, 3.0])

    def test_inverse_is_computed(self):
        """Omitting the inverse computes it."""
        transform = Transform(translate((1.0, 2.0, 3.0)).m)
        np.testing.assert_allclose(transform.m_inv, translate((-1.0, -2.0, -3.0)).m)

    def test_singular_matrix_raises(self):
        """A singular matrix is a construction-time error."""
        with pytest.raises(SingularTransformError):
            Transform(np.zeros((4, 4)))
        with pytest.raises(SingularTransformError):
            scale(0.0, 1.0, 1.0)

    def test_tiny_uniform_scale_is_invertible(self):
        """A raw matrix with a tiny but uniform scale is a valid transform."""
        transform = Transform(np.diag([1e-5, 1e-5, 1e-5, 1.0]))
        np.testing.assert_allclose(transform.apply_point((1.0, 2.0, 3.0)), [1e-5, 2e-5, 3e-5])
        np.testing.assert_allclose(transform.m_inv, np.diag([1e5, 1e5, 1e5, 1.0]))
        assert not transform.swaps_handedness

    def test_non_finite_matrix_raises(self):
        """NaN or infinite entries are rejected."""
        m = np.eye(4)
        m[0, 3] = math.nan
        with pytest.raises(SingularTransformError):
            Transform(m)

    def test_errors_are_value_errors(self):
        """Configuration errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            Transform(np.zeros((4, 4)))

    def test_matrix_is_read_only(self):
        """Shared transforms cannot be mutated through their matrices."""
        transform = translate((1.0, 0.0, 0.0))
        with pytest.raises(ValueError):
            transform.m[0, 0] = 2.0

    @pytest.mark.parametrize(
        "factors, swaps",
        [
            ((1.0, 1.0, 1.0), False),
            ((-1.0, 1.0, 1.0), True),
            ((-1.0, -1.0, 1.0), False),
            ((-1.0, -1.0, -1.0), True),
            ((2.0, 0.5, 3.0), False),
        ],
    )
    def test_swaps_handedness(self, factors, swaps):
        """The flag follows the sign of the linear part's determinant."""
        assert scale(*factors).swaps_handedness is swaps

    def test_rotations_preserve_handedness(self):
        """Rotations never swap handedness."""
        assert not rotate_x(30.0).swaps_handedness
        assert not rotate(123.0, (1.0, 2.0, 3.0)).swaps_handedness


class TestApplication:
    """Tests for points, vectors and normals."""

    def test_points_translate_vectors_do_not(self):
        """Translation moves points and leaves vectors alone."""
        transform = translate((1.0, 2.0, 3.0))
        np.testing.assert_allclose(transform.apply_point((0.0, 0.0, 0.0)), [1.0, 2.0, 3.0])
        np.testing.assert_allclose(transform.apply_vector((1.0, 0.0, 0.0)), [1.0, 0.0, 0.0])

    def test_rotation(self):
        """A quarter turn about z maps x onto y."""
        np.testing.assert_allclose(rotate_z(90.0).apply_point((1.0, 0.0, 0.0)), [0.0, 1.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(rotate(90.0, (0.0, 0.0, 1.0)).m, rotate_z(90.0).m, atol=1e-12)

    def test_composition_order(self):
        """(a * b) applies b first."""
        transform = translate((1.0, 0.0, 0.0)) * scale(2.0, 2.0, 2.0)
        np.testing.assert_allclose(transform.apply_point((1.0, 0.0, 0.0)), [3.0, 0.0, 0.0])
        np.testing.assert_allclose((transform * transform.inverse()).m, np.eye(4), atol=1e-12)

    def test_normals_stay_perpendicular_under_non_uniform_scale(self):
        """Normals use the inverse transpose, so they stay perpendicular to tangents."""
        transform = scale(2.0, 1.0, 1.0)
        normal = np.array([1.0, 1.0, 0.0])
        tangent = np.array([1.0, -1.0, 0.0])
        new_tangent = transform.apply_vector(tangent)
        new_normal = transform.apply_normal(normal)
        assert vector_dot(new_normal, new_tangent) == pytest.approx(0.0)
        # the forward linear map would not have been perpendicular
        assert vector_dot(transform.apply_vector(normal), new_tangent) != pytest.approx(0.0)

    def test_point_error_bound(self):
        """The transform's own rounding gets an error bound, and incoming error is propagated."""
        transform = translate((1.0, 2.0, 3.0))
        _, error = transform.apply_point_with_error((0.5, 0.5, 0.5))
        assert np.all(error > 0.0)
        _, propagated = transform.apply_point_with_error((0.5, 0.5, 0.5), np.full(3, 1e-3))
        assert np.all(propagated >= 1e-3)


class TestCompoundValues:
    """Tests for rays, boxes and interactions."""

    def test_ray_keeps_range_time_and_medium(self):
        """Only origin and direction change; the direction is not renormalized."""
        medium = object()
        ray = Ray((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), t_max=7.0, time=0.3, medium=medium)
        transformed = scale(2.0, 2.0, 2.0).apply_ray(ray)
        np.testing.assert_allclose(transformed.direction, [0.0, 0.0, 2.0])
        assert transformed.t_max == 7.0
        assert transformed.time == 0.3
        assert transformed.medium is medium

    def test_ray_with_error(self):
        """Origin and direction error bounds come back with the ray."""
        ray = Ray((1.0, 1.0, 1.0), (0.0, 0.0, 1.0))
        transformed, origin_error, direction_error = translate((5.0, 0.0, 0.0)).apply_ray_with_error(ray)
        np.testing.assert_allclose(transformed.origin, [6.0, 1.0, 1.0])
        assert np.all(origin_error > 0.0)
        assert np.all(direction_error >= 0.0)

    def test_ray_differential_auxiliaries_are_transformed(self):
        """Auxiliary rays follow the primary ray."""
        ray = RayDifferential(
            origin=(0.0, 0.0, 0.0),
            direction=(0.0, 0.0, 1.0),
            has_differentials=True,
            rx_origin=(1.0, 0.0, 0.0),
            ry_origin=(0.0, 1.0, 0.0),
            rx_direction=(0.0, 0.0, 1.0),
            ry_direction=(0.0, 0.0, 1.0),
        )
        transformed = translate((0.0, 0.0, 10.0)).apply_ray(ray)
        assert isinstance(transformed, RayDifferential)
        assert transformed.has_differentials
        np.testing.assert_allclose(transformed.rx_origin, [1.0, 0.0, 10.0])
        np.testing.assert_allclose(transformed.ry_direction, [0.0, 0.0, 1.0])

    def test_bounds_under_shear(self):
        """Corner warping is exact for shear."""
        m = np.eye(4)
        m[0, 2] = 1.0  # x' = x + z
        box = Transform(m).apply_bounds(Bounds3.from_corners((0.0, 0.0, 0.0), (1.0, 1.0, 1.0)))
        np.testing.assert_allclose(box.min, [0.0, 0.0, 0.0])
        np.testing.assert_allclose(box.max, [2.0, 1.0, 1.0])

    def test_interaction_normals_are_reconciled(self):
        """After a transform the shading normal shares the geometric normal's hemisphere."""
        si = SurfaceInteraction(
            (0.0, 0.0, 0.0),
            np.zeros(3),
            (0.0, 0.0),
            (0.0, 0.0, 1.0),
            (1.0, 0.0, 0.0),
            (0.0, 1.0, 0.0),
            np.zeros(3),
            np.zeros(3),
            0.0,
        )
        si.shading.n = np.array([0.0, 0.0, -1.0])
        transformed = identity().apply_interaction(si)
        np.testing.assert_allclose(transformed.n, [0.0, 0.0, 1.0])
        np.testing.assert_allclose(transformed.shading.n, [0.0, 0.0, 1.0])
        np.testing.assert_allclose(si.shading.n, [0.0, 0.0, -1.0])

    def test_interaction_point_error_grows_with_translation(self):
        """The error bound is carried through the transform."""
        si = SurfaceInteraction(
            (1.0, 1.0, 1.0),
            np.full(3, 1e-9),
            (0.0, 0.0),
            None,
            (1.0, 0.0, 0.0),
            (0.0, 1.0, 0.0),
            np.zeros(3),
            np.zeros(3),
            0.0,
        )
        transformed = translate((1e6, 0.0, 0.0)).apply_interaction(si)
        np.testing.assert_allclose(transformed.p, [1e6 + 1.0, 1.0, 1.0])
        assert transformed.p_error[0] > si.p_error[0]
        assert transformed.wo is None

    def test_look_at(self):
        """A camera at the origin looking down +z with +y up is the identity."""
        transform = look_at((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 1.0, 0.0))
        np.testing.assert_allclose(transform.m, np.eye(4), atol=1e-12)
        with pytest.raises(SingularTransformError):
            look_at((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 1.0, 0.0))
