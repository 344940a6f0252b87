"""Shared fixtures for the geometry kernel tests."""

import pytest

from geometry.transform import identity
from kernel_settings import configure_kernel, get_kernel_settings
from surfaces.sphere import Sphere
from surfaces.triangle import TriangleMesh


@pytest.fixture(autouse=True)
def restore_kernel_settings():
    """Put back the kernel settings after tests that reconfigure them."""
    settings = get_kernel_settings()
    yield
    configure_kernel(settings)


@pytest.fixture
def identity_pair():
    transform = identity()
    return transform, transform


@pytest.fixture
def unit_sphere(identity_pair):
    object_to_world, world_to_object = identity_pair
    return Sphere(object_to_world, world_to_object, False, 1.0)


@pytest.fixture
def unit_triangle_mesh(identity_pair):
    object_to_world, world_to_object = identity_pair
    return TriangleMesh(
        object_to_world,
        world_to_object,
        False,
        [0, 1, 2],
        [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)],
    )


@pytest.fixture
def unit_triangle(unit_triangle_mesh):
    return unit_triangle_mesh.triangle_at(0)
