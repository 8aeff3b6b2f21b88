from __future__ import annotations

import math

import numpy as np

from velopoints.calibration import ChannelArrays, ChannelCorrection
from velopoints.core.correction import (
    DISTANCE_RESOLUTION,
    corrected_intensity,
    correct_reading,
    correct_readings,
    two_point_corrections,
)
from velopoints.core.trig import build_trig_cache

TRIG = build_trig_cache()


def test_two_point_correction_disabled_is_exactly_zero():
    xx = np.array([0.0, 2.4, 10.0, 80.0])
    yy = np.array([1.0, 1.93, 50.0, 0.1])
    cx, cy = two_point_corrections(xx, yy, 0.3, 0.1, 0.2, False)
    assert np.all(cx == 0.0)
    assert np.all(cy == 0.0)


def test_two_point_correction_at_near_reference_returns_xy_corrections():
    cx, cy = two_point_corrections(2.4, 1.93, 0.3, 0.1, 0.2, True)
    assert cx == 0.1
    assert cy == 0.2


def test_two_point_correction_at_far_reference_returns_base_correction():
    cx, cy = two_point_corrections(25.04, 25.04, 0.3, 0.1, 0.2, True)
    assert abs(cx - 0.3) < 1e-12
    assert abs(cy - 0.3) < 1e-12


def test_intensity_is_clamped_to_channel_bounds():
    refl = np.array([0, 5, 100, 250, 255])
    out = corrected_intensity(refl, 1000, 0.0, 0.0, 10.0, 200.0)
    assert out.tolist() == [10, 10, 100, 200, 200]
    assert out.dtype == np.uint8

    # A steep focal slope pushes everything to the upper bound.
    out = corrected_intensity(refl, 1000, 0.0, 100.0, 10.0, 200.0)
    assert out.tolist() == [200] * 5


def test_intensity_saturates_at_uint8_range():
    # Bounds wider than 0..255 must not wrap in the uint8 output.
    out = corrected_intensity(250, 30000, 0.0, 10.0, 0.0, 400.0)
    assert int(out) == 255
    out = corrected_intensity(np.array([0, 10]), 30000, 0.0, -10.0, -50.0, 255.0)
    assert out.tolist() == [0, 0]


def test_intensity_focal_term():
    raw_range = 20000
    focal_distance = 1500.0
    focal_slope = 0.5
    expected = 40 + focal_slope * abs(
        256.0 * (1.0 - focal_distance / 13100.0) ** 2 - 256.0 * (1.0 - raw_range / 65535.0) ** 2
    )
    out = corrected_intensity(40, raw_range, focal_distance, focal_slope, 0.0, 255.0)
    assert int(out) == int(expected)


def test_final_coordinates_keep_their_sign():
    corr = ChannelCorrection(laser_id=0)
    d = 1000 * DISTANCE_RESOLUTION
    # 90 deg: sensor x is +d, output y is -d.
    r = correct_reading(1000, 0, 9000, corr, TRIG)
    assert abs(float(r.y) + d) < 1e-9
    assert abs(float(r.x)) < 1e-9
    # 270 deg: sensor x is -d, output y is +d.
    r = correct_reading(1000, 0, 27000, corr, TRIG)
    assert abs(float(r.y) - d) < 1e-9
    # 180 deg: sensor y is -d, output x is -d.
    r = correct_reading(1000, 0, 18000, corr, TRIG)
    assert abs(float(r.x) + d) < 1e-9


def test_vertical_angle_and_offsets():
    corr = ChannelCorrection(
        laser_id=0,
        vert_correction=0.1,
        vert_offset_correction=0.2,
        horiz_offset_correction=0.05,
        dist_correction=0.01,
    )
    r = correct_reading(5000, 0, 0, corr, TRIG)
    distance = 5000 * DISTANCE_RESOLUTION + 0.01
    assert abs(float(r.distance) - distance) < 1e-12
    assert abs(float(r.z) - (distance * math.sin(0.1) + 0.2)) < 1e-12
    # Azimuth 0: sensor y = xy_distance, sensor x = horiz_offset.
    assert abs(float(r.x) - distance * math.cos(0.1)) < 1e-12
    assert abs(float(r.y) + 0.05) < 1e-12


def test_rotation_correction_shifts_azimuth():
    corr = ChannelCorrection(laser_id=0, rot_correction=math.radians(-90.0))
    r = correct_reading(1000, 0, 0, corr, TRIG)
    plain = correct_reading(1000, 0, 9000, ChannelCorrection(laser_id=0), TRIG)
    assert abs(float(r.x) - float(plain.x)) < 1e-9
    assert abs(float(r.y) - float(plain.y)) < 1e-9


def test_two_point_correction_moves_xy_but_not_z():
    base = dict(laser_id=0, vert_correction=-0.05, dist_correction=0.2, dist_correction_x=0.1, dist_correction_y=0.15)
    off = correct_reading(4000, 0, 4500, ChannelCorrection(**base), TRIG)
    on = correct_reading(4000, 0, 4500, ChannelCorrection(two_pt_correction_available=True, **base), TRIG)
    assert float(on.z) == float(off.z)
    assert float(on.distance) == float(off.distance)
    assert float(on.x) != float(off.x)
    assert float(on.y) != float(off.y)


def test_vectorized_matches_single_reading():
    rng = np.random.default_rng(1)
    channels = [
        ChannelCorrection(
            laser_id=i,
            rot_correction=rng.uniform(-0.1, 0.1),
            vert_correction=rng.uniform(-0.4, 0.1),
            dist_correction=rng.uniform(0.5, 1.5),
            two_pt_correction_available=bool(i % 2),
            dist_correction_x=rng.uniform(0.5, 1.5),
            dist_correction_y=rng.uniform(0.5, 1.5),
            vert_offset_correction=rng.uniform(0.1, 0.3),
            horiz_offset_correction=rng.uniform(-0.03, 0.03),
            focal_distance=rng.uniform(0.0, 3000.0),
            focal_slope=rng.uniform(0.0, 2.0),
            laser_ring=i,
        )
        for i in range(8)
    ]
    arrays = ChannelArrays.from_channels(channels)
    raw_range = rng.integers(1, 65535, size=8)
    refl = rng.integers(0, 256, size=8)
    az = rng.integers(0, 36000, size=8)
    batch = correct_readings(raw_range, refl, az, arrays, TRIG)
    for i, c in enumerate(channels):
        one = correct_reading(int(raw_range[i]), int(refl[i]), int(az[i]), c, TRIG)
        assert abs(float(one.x) - batch.x[i]) < 1e-12
        assert abs(float(one.y) - batch.y[i]) < 1e-12
        assert abs(float(one.z) - batch.z[i]) < 1e-12
        assert int(one.intensity) == int(batch.intensity[i])
