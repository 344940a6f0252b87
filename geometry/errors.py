from __future__ import annotations


class GeometryError(ValueError):
    """Base class for invalid input handed to the geometry kernel."""


class UnorderableValueError(GeometryError):
    """Raised when a comparison involves a value with no total order (NaN)."""


class SingularTransformError(GeometryError):
    """Raised when a transform matrix cannot be inverted."""


class InvalidMeshError(GeometryError):
    """Raised for index or attribute buffers that do not fit the vertex buffer."""


class InvalidShapeError(GeometryError):
    """Raised for shape parameters outside their valid range."""
