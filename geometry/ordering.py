from __future__ import annotations

from typing import Union

import numpy as np

from geometry.errors import UnorderableValueError

Scalar = Union[int, float]


def check_orderable(values, what: str = "value") -> None:
    """Raises UnorderableValueError if any element of ``values`` is NaN."""
    array = np.asarray(values)
    if array.dtype.kind in "fc" and np.isnan(array).any():
        raise UnorderableValueError("Cannot order {} containing NaN: {!r}".format(what, values))


def compare(a: Scalar, b: Scalar) -> int:
    check_orderable((a, b))
    if a < b:
        return -1
    if b < a:
        return 1
    return 0


def ordered_min(a, b):
    """Element-wise minimum that refuses NaN instead of picking a branch."""
    check_orderable(a)
    check_orderable(b)
    if np.ndim(a) == 0 and np.ndim(b) == 0:
        return a if a <= b else b
    return np.minimum(a, b)


def ordered_max(a, b):
    check_orderable(a)
    check_orderable(b)
    if np.ndim(a) == 0 and np.ndim(b) == 0:
        return a if a >= b else b
    return np.maximum(a, b)
