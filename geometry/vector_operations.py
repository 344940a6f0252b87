from __future__ import annotations

from typing import Tuple

import numpy as np

EPSILON: float = 1e-12 # below this magnitude a vector has no usable direction


def vector_length(v: np.ndarray) -> float: #Euclidean length (magnitude) of a vector
    vector_array = np.asarray(v, dtype=float)
    return float(np.linalg.norm(vector_array))


def length_squared(v: np.ndarray) -> float:
    vector_array = np.asarray(v, dtype=float)
    return float(np.dot(vector_array, vector_array))


def distance(a: np.ndarray, b: np.ndarray) -> float:
    return vector_length(np.asarray(a, dtype=float) - np.asarray(b, dtype=float))


def normalize_vector(v: np.ndarray) -> np.ndarray:
    vector_array = np.asarray(v, dtype=float)
    magnitude = np.linalg.norm(vector_array)
    if magnitude < EPSILON:
        raise ValueError("Cannot normalize near-zero vector")
    return vector_array / magnitude


def vector_dot(a: np.ndarray, b: np.ndarray) -> float:
    vector_a = np.asarray(a, dtype=float)
    vector_b = np.asarray(b, dtype=float)
    return float(np.dot(vector_a, vector_b))


def abs_dot(a: np.ndarray, b: np.ndarray) -> float:
    return abs(vector_dot(a, b))


def vector_cross(a: np.ndarray, b: np.ndarray) -> np.ndarray: #cross product of two vectors (3D)
    vector_a = np.asarray(a, dtype=float)
    vector_b = np.asarray(b, dtype=float)
    return np.cross(vector_a, vector_b)


def face_forward(v: np.ndarray, reference: np.ndarray) -> np.ndarray:
    """Returns ``v`` flipped if needed so it lies in the same hemisphere as ``reference``."""
    vector_v = np.asarray(v, dtype=float)
    if vector_dot(vector_v, reference) < 0.0:
        return -vector_v
    return vector_v


def coordinate_system(v: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Builds two vectors that complete an orthonormal frame around the unit vector v."""
    v1 = np.asarray(v, dtype=float)
    if abs(v1[0]) > abs(v1[1]):
        v2 = np.array([-v1[2], 0.0, v1[0]]) / np.sqrt(v1[0] * v1[0] + v1[2] * v1[2])
    else:
        v2 = np.array([0.0, v1[2], -v1[1]]) / np.sqrt(v1[1] * v1[1] + v1[2] * v1[2])
    v3 = vector_cross(v1, v2)
    return v2, v3


def max_dimension(v: np.ndarray) -> int:
    # strict comparisons, so ties go to the later axis
    x, y, z = (float(c) for c in v)
    if x > y:
        return 0 if x > z else 2
    return 1 if y > z else 2


def permute(v: np.ndarray, x: int, y: int, z: int) -> np.ndarray:
    vector_array = np.asarray(v, dtype=float)
    return np.array([vector_array[x], vector_array[y], vector_array[z]])
