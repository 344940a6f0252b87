from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np


def _as_array(value) -> np.ndarray:
    return np.asarray(value, dtype=float)


@dataclass(frozen=True, slots=True)
class Ray:
    """Semi-infinite line r(t) = origin + t * direction restricted to 0 < t < t_max.

    ``medium`` is an opaque handle to whatever medium contains the origin; the
    kernel carries it along and never looks inside it.
    """

    origin: np.ndarray
    direction: np.ndarray
    t_max: float = math.inf
    time: float = 0.0
    medium: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "origin", _as_array(self.origin))
        object.__setattr__(self, "direction", _as_array(self.direction))
        object.__setattr__(self, "t_max", float(self.t_max))
        object.__setattr__(self, "time", float(self.time))

    def at(self, t: float) -> np.ndarray:
        return self.origin + self.direction * t

    def with_t_max(self, t_max: float) -> "Ray":
        return replace(self, t_max=t_max)


@dataclass(frozen=True, slots=True)
class RayDifferential(Ray):
    """A primary ray plus two auxiliary rays offset by one film sample in x and y."""

    has_differentials: bool = False
    rx_origin: np.ndarray = field(default_factory=lambda: np.zeros(3))
    ry_origin: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rx_direction: np.ndarray = field(default_factory=lambda: np.zeros(3))
    ry_direction: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        Ray.__post_init__(self)
        for name in ("rx_origin", "ry_origin", "rx_direction", "ry_direction"):
            object.__setattr__(self, name, _as_array(getattr(self, name)))

    @classmethod
    def from_ray(cls, ray: Ray) -> "RayDifferential":
        return cls(
            origin=ray.origin,
            direction=ray.direction,
            t_max=ray.t_max,
            time=ray.time,
            medium=ray.medium,
        )

    def scale_sample_distance(self, factor: float) -> "RayDifferential":
        """Moves the auxiliary rays towards (factor < 1) or away from the primary ray."""
        return replace(
            self,
            rx_origin=self.origin + (self.rx_origin - self.origin) * factor,
            ry_origin=self.origin + (self.ry_origin - self.origin) * factor,
            rx_direction=self.direction + (self.rx_direction - self.direction) * factor,
            ry_direction=self.direction + (self.ry_direction - self.direction) * factor,
        )
