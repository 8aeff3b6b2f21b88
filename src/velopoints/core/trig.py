from __future__ import annotations

from dataclasses import dataclass

import numpy as np

ROTATION_RESOLUTION = 0.01  # degrees per raw azimuth unit
ROTATION_MAX_UNITS = 36000  # raw azimuth units per revolution


@dataclass(frozen=True)
class TrigCache:
    """Sine/cosine of every representable raw azimuth, indexed by the raw value."""

    cos: np.ndarray
    sin: np.ndarray

    def __len__(self) -> int:
        return int(self.cos.shape[0])


def build_trig_cache() -> TrigCache:
    rotation = np.deg2rad(np.arange(ROTATION_MAX_UNITS, dtype=np.float64) * ROTATION_RESOLUTION)
    cos = np.cos(rotation)
    sin = np.sin(rotation)
    cos.setflags(write=False)
    sin.setflags(write=False)
    return TrigCache(cos=cos, sin=sin)
