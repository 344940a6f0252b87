from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KernelSettings:
    singular_determinant_tolerance: float = 1e-12 # |det| relative to the product of the matrix row norms
    degenerate_uv_tolerance: float = 1e-8
    sphere_pole_offset: float = 1e-5 # fraction of the radius used to nudge hits off the z axis

    def __post_init__(self) -> None:
        for name in ("singular_determinant_tolerance", "degenerate_uv_tolerance", "sphere_pole_offset"):
            value = getattr(self, name)
            if not value >= 0.0:
                raise ValueError("{} must be a non-negative number, got {!r}".format(name, value))


_KERNEL_SETTINGS = KernelSettings()


def configure_kernel(settings: KernelSettings) -> None:
    global _KERNEL_SETTINGS
    _KERNEL_SETTINGS = settings
    logger.debug("Kernel settings changed: %s", settings)


def get_kernel_settings() -> KernelSettings:
    return _KERNEL_SETTINGS
