from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from velopoints.core.trig import ROTATION_MAX_UNITS

logger = logging.getLogger(__name__)

DISTANCE_MAX = 130.0  # meters, beyond the sensor's rated range


@dataclass(frozen=True)
class DecodeWindow:
    """
    Range and azimuth acceptance window.

    `min_angle`/`max_angle` are raw azimuth units (hundredths of a degree in
    the sensor frame). When `min_angle > max_angle` the window wraps through
    zero. Equal bounds describe no usable window and are widened to the full
    circle.
    """

    min_range: float = 0.0
    max_range: float = DISTANCE_MAX
    min_angle: int = 0
    max_angle: int = ROTATION_MAX_UNITS

    def __post_init__(self) -> None:
        if self.min_angle == self.max_angle:
            object.__setattr__(self, "min_angle", 0)
            object.__setattr__(self, "max_angle", ROTATION_MAX_UNITS)

    @property
    def is_full_circle(self) -> bool:
        return self.min_angle == 0 and self.max_angle == ROTATION_MAX_UNITS

    def accepts_azimuth(self, raw_azimuth: np.ndarray) -> np.ndarray:
        az = np.asarray(raw_azimuth)
        lo, hi = self.min_angle, self.max_angle
        if lo < hi:
            ok = (az >= lo) & (az <= hi)
        else:
            ok = (az <= hi) | (az >= lo)
        # Azimuths past one revolution have no cache entry.
        return ok & (az < ROTATION_MAX_UNITS)

    def point_in_range(self, distance: np.ndarray) -> np.ndarray:
        d = np.asarray(distance)
        return (d >= self.min_range) & (d <= self.max_range)


def _positive_mod_2pi(angle: float) -> float:
    two_pi = 2.0 * math.pi
    return math.fmod(math.fmod(angle, two_pi) + two_pi, two_pi)


def _to_raw_units(angle_rad: float) -> int:
    # Sensor azimuth runs clockwise; +0.5 rounds to the nearest unit.
    return int(100.0 * (2.0 * math.pi - angle_rad) * 180.0 / math.pi + 0.5)


def set_parameters(
    min_range: float,
    max_range: float,
    view_center: float,
    left_most_angle: float,
    right_most_angle: float,
) -> DecodeWindow:
    """
    Derive a window from a view direction and its left/right extents (radians).

    A window whose raw bounds come out equal is treated as the full circle.
    """
    tmp_min = _positive_mod_2pi(view_center + left_most_angle)
    tmp_max = _positive_mod_2pi(view_center - right_most_angle)

    window = DecodeWindow(
        min_range=float(min_range),
        max_range=float(max_range),
        min_angle=_to_raw_units(tmp_min),
        max_angle=_to_raw_units(tmp_max),
    )
    logger.info("angle window in raw units: min_angle=%d max_angle=%d", window.min_angle, window.max_angle)
    return window
