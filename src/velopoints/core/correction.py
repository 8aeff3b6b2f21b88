from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from velopoints.calibration import ChannelArrays, ChannelCorrection
from velopoints.core.trig import TrigCache

DISTANCE_RESOLUTION = 0.002  # meters per raw range unit

# Reference distances (meters) of the two-point distance calibration. These
# are fixed by the calibration convention of the sensor, not by the unit.
TWO_POINT_NEAR_X = 2.4
TWO_POINT_NEAR_Y = 1.93
TWO_POINT_FAR = 25.04

# Focal intensity model constants.
FOCAL_SCALE = 256.0
FOCAL_DISTANCE_NORM = 13100.0
RAW_RANGE_MAX = 65535.0


@dataclass(frozen=True)
class CorrectedReadings:
    """
    Corrected readings, in the output frame (x forward, y left, z up).

    `distance` is the corrected range used by the range gate.
    """

    x: np.ndarray
    y: np.ndarray
    z: np.ndarray
    intensity: np.ndarray
    distance: np.ndarray


def rotation_terms(
    raw_azimuth: np.ndarray, cos_rot_correction: np.ndarray, sin_rot_correction: np.ndarray, trig: TrigCache
) -> tuple[np.ndarray, np.ndarray]:
    """
    cos/sin of (azimuth - rot_correction) from the cached azimuth terms.

      cos(a-b) = cos(a)cos(b) + sin(a)sin(b)
      sin(a-b) = sin(a)cos(b) - cos(a)sin(b)
    """
    idx = np.asarray(raw_azimuth, dtype=np.intp)
    cos_az = trig.cos[idx]
    sin_az = trig.sin[idx]
    cos_rot = cos_az * cos_rot_correction + sin_az * sin_rot_correction
    sin_rot = sin_az * cos_rot_correction - cos_az * sin_rot_correction
    return cos_rot, sin_rot


def two_point_corrections(
    xx: np.ndarray,
    yy: np.ndarray,
    dist_correction: np.ndarray,
    dist_correction_x: np.ndarray,
    dist_correction_y: np.ndarray,
    two_pt_correction_available: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Distance corrections along X and Y, linearly interpolated between the
    near and far reference distances. Zero where the channel has no
    two-point calibration.
    """
    xx = np.asarray(xx, dtype=np.float64)
    yy = np.asarray(yy, dtype=np.float64)
    corr_x = (dist_correction - dist_correction_x) * (xx - TWO_POINT_NEAR_X) / (
        TWO_POINT_FAR - TWO_POINT_NEAR_X
    ) + dist_correction_x
    corr_y = (dist_correction - dist_correction_y) * (yy - TWO_POINT_NEAR_Y) / (
        TWO_POINT_FAR - TWO_POINT_NEAR_Y
    ) + dist_correction_y
    available = np.asarray(two_pt_correction_available, dtype=bool)
    return np.where(available, corr_x, 0.0), np.where(available, corr_y, 0.0)


def corrected_intensity(
    raw_reflectivity: np.ndarray,
    raw_range: np.ndarray,
    focal_distance: np.ndarray,
    focal_slope: np.ndarray,
    min_intensity: np.ndarray,
    max_intensity: np.ndarray,
) -> np.ndarray:
    """Reflectivity plus the focal-distance term, clamped to the channel's intensity bounds."""
    raw_range = np.asarray(raw_range, dtype=np.float64)
    focal_offset = FOCAL_SCALE * (1.0 - focal_distance / FOCAL_DISTANCE_NORM) ** 2
    range_term = FOCAL_SCALE * (1.0 - raw_range / RAW_RANGE_MAX) ** 2
    intensity = np.asarray(raw_reflectivity, dtype=np.float64) + focal_slope * np.abs(focal_offset - range_term)
    intensity = np.clip(intensity, min_intensity, max_intensity)
    # Bounds outside the uint8 range must not wrap in the cast.
    intensity = np.clip(intensity, 0.0, 255.0)
    return np.trunc(intensity).astype(np.uint8)


def correct_readings(
    raw_range: np.ndarray,
    raw_reflectivity: np.ndarray,
    raw_azimuth: np.ndarray,
    channels: ChannelArrays,
    trig: TrigCache,
) -> CorrectedReadings:
    """
    Turn raw readings into calibrated points.

    All inputs broadcast together; `channels` holds the calibration of the
    channel behind each reading (see `CalibrationTable.gather`).
    """
    raw_range = np.asarray(raw_range, dtype=np.float64)
    distance = raw_range * DISTANCE_RESOLUTION + channels.dist_correction

    cos_rot, sin_rot = rotation_terms(raw_azimuth, channels.cos_rot_correction, channels.sin_rot_correction, trig)
    cos_vert = channels.cos_vert_correction
    horiz_offset = channels.horiz_offset_correction

    # Provisional planar position, unsigned; only the interpolation uses it.
    xy_distance = distance * cos_vert
    xx = np.abs(xy_distance * sin_rot - horiz_offset * cos_rot)
    yy = np.abs(xy_distance * cos_rot + horiz_offset * sin_rot)

    corr_x, corr_y = two_point_corrections(
        xx,
        yy,
        channels.dist_correction,
        channels.dist_correction_x,
        channels.dist_correction_y,
        channels.two_pt_correction_available,
    )

    xy_distance_x = (distance + corr_x) * cos_vert
    x = xy_distance_x * sin_rot + horiz_offset * cos_rot
    xy_distance_y = (distance + corr_y) * cos_vert
    y = xy_distance_y * cos_rot + horiz_offset * sin_rot
    z = distance * channels.sin_vert_correction + channels.vert_offset_correction

    intensity = corrected_intensity(
        raw_reflectivity,
        raw_range,
        channels.focal_distance,
        channels.focal_slope,
        channels.min_intensity,
        channels.max_intensity,
    )

    # Right-handed output frame: x forward, y left.
    return CorrectedReadings(x=y, y=-x, z=z, intensity=intensity, distance=distance)


def correct_reading(
    raw_range: int, raw_reflectivity: int, raw_azimuth: int, correction: ChannelCorrection, trig: TrigCache
) -> CorrectedReadings:
    """Single-reading convenience wrapper around `correct_readings`."""
    channels = ChannelArrays.from_channels([correction]).take(np.zeros((), dtype=np.intp))
    return correct_readings(raw_range, raw_reflectivity, raw_azimuth, channels, trig)
