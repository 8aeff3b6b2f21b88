import math

import numpy as np

from velopoints.core.trig import ROTATION_MAX_UNITS
from velopoints.core.window import DecodeWindow, set_parameters


def test_set_parameters_converts_view_to_raw_units():
    w = set_parameters(0.5, 80.0, 0.0, math.pi / 2, math.pi / 2)
    assert (w.min_angle, w.max_angle) == (27000, 9000)
    assert w.min_range == 0.5
    assert w.max_range == 80.0


def test_set_parameters_is_idempotent():
    a = set_parameters(1.0, 50.0, 0.3, 1.1, 0.7)
    b = set_parameters(1.0, 50.0, 0.3, 1.1, 0.7)
    assert (a.min_angle, a.max_angle) == (b.min_angle, b.max_angle)
    # Same view expressed one turn later.
    c = set_parameters(1.0, 50.0, 0.3 + 2.0 * math.pi, 1.1, 0.7)
    assert (c.min_angle, c.max_angle) == (a.min_angle, a.max_angle)


def test_equal_bounds_fall_back_to_full_circle():
    w = set_parameters(0.0, 100.0, 0.0, math.pi, math.pi)
    assert (w.min_angle, w.max_angle) == (0, ROTATION_MAX_UNITS)
    assert w.is_full_circle
    az = np.arange(ROTATION_MAX_UNITS)
    assert w.accepts_azimuth(az).all()


def test_equal_raw_bounds_widen_to_full_circle():
    w = DecodeWindow(min_angle=1234, max_angle=1234)
    assert (w.min_angle, w.max_angle) == (0, ROTATION_MAX_UNITS)


def test_wrap_around_gate():
    w = DecodeWindow(min_angle=35000, max_angle=1000)
    ok = w.accepts_azimuth(np.array([35500, 500, 20000, 35000, 1000, 1001, 34999]))
    assert ok.tolist() == [True, True, False, True, True, False, False]


def test_plain_gate_is_inclusive():
    w = DecodeWindow(min_angle=1000, max_angle=2000)
    ok = w.accepts_azimuth(np.array([999, 1000, 1500, 2000, 2001]))
    assert ok.tolist() == [False, True, True, True, False]


def test_azimuth_past_one_turn_is_rejected():
    w = DecodeWindow()
    assert not w.accepts_azimuth(np.array([ROTATION_MAX_UNITS]))[0]


def test_range_gate_is_inclusive():
    w = DecodeWindow(min_range=2.0, max_range=4.0)
    ok = w.point_in_range(np.array([2.0, 4.0, 2.0 - 0.002, 4.0 + 0.002, 3.0]))
    assert ok.tolist() == [True, True, False, False, True]
