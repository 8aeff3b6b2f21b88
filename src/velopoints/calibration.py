from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

import numpy as np


class CalibrationUnavailable(RuntimeError):
    """Raised when decoding is attempted without a usable calibration table."""


class CalibrationValidationError(ValueError):
    pass


@dataclass(frozen=True)
class ChannelCorrection:
    """
    Correction parameters of one laser (emitter/detector pair).

    Angles are radians, offsets and distance corrections meters. The sine and
    cosine of both correction angles are cached on construction.
    """

    laser_id: int
    rot_correction: float = 0.0
    vert_correction: float = 0.0
    dist_correction: float = 0.0
    two_pt_correction_available: bool = False
    dist_correction_x: float = 0.0
    dist_correction_y: float = 0.0
    vert_offset_correction: float = 0.0
    horiz_offset_correction: float = 0.0
    max_intensity: float = 255.0
    min_intensity: float = 0.0
    focal_distance: float = 0.0
    focal_slope: float = 0.0
    laser_ring: int = 0

    cos_rot_correction: float = field(init=False, repr=False)
    sin_rot_correction: float = field(init=False, repr=False)
    cos_vert_correction: float = field(init=False, repr=False)
    sin_vert_correction: float = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not 0.0 <= self.min_intensity <= self.max_intensity <= 255.0:
            raise CalibrationValidationError(
                f"laser {self.laser_id}: intensities must satisfy 0 <= min_intensity <= max_intensity <= 255"
            )
        object.__setattr__(self, "cos_rot_correction", math.cos(self.rot_correction))
        object.__setattr__(self, "sin_rot_correction", math.sin(self.rot_correction))
        object.__setattr__(self, "cos_vert_correction", math.cos(self.vert_correction))
        object.__setattr__(self, "sin_vert_correction", math.sin(self.vert_correction))


# Column arrays gathered by the vectorized corrector, one entry per channel id.
COLUMN_FIELDS = (
    "dist_correction",
    "dist_correction_x",
    "dist_correction_y",
    "two_pt_correction_available",
    "cos_rot_correction",
    "sin_rot_correction",
    "cos_vert_correction",
    "sin_vert_correction",
    "vert_offset_correction",
    "horiz_offset_correction",
    "min_intensity",
    "max_intensity",
    "focal_distance",
    "focal_slope",
    "laser_ring",
)


@dataclass(frozen=True)
class ChannelArrays:
    """Calibration parameters as parallel arrays (one element per reading or per channel)."""

    dist_correction: np.ndarray
    dist_correction_x: np.ndarray
    dist_correction_y: np.ndarray
    two_pt_correction_available: np.ndarray
    cos_rot_correction: np.ndarray
    sin_rot_correction: np.ndarray
    cos_vert_correction: np.ndarray
    sin_vert_correction: np.ndarray
    vert_offset_correction: np.ndarray
    horiz_offset_correction: np.ndarray
    min_intensity: np.ndarray
    max_intensity: np.ndarray
    focal_distance: np.ndarray
    focal_slope: np.ndarray
    laser_ring: np.ndarray

    @classmethod
    def from_channels(cls, channels: Sequence[ChannelCorrection]) -> "ChannelArrays":
        cols: dict[str, np.ndarray] = {}
        for name in COLUMN_FIELDS:
            values = [getattr(c, name) for c in channels]
            if name == "two_pt_correction_available":
                arr = np.asarray(values, dtype=bool)
            elif name == "laser_ring":
                arr = np.asarray(values, dtype=np.uint8)
            else:
                arr = np.asarray(values, dtype=np.float64)
            arr.setflags(write=False)
            cols[name] = arr
        return cls(**cols)

    def take(self, channel_ids: np.ndarray) -> "ChannelArrays":
        idx = np.asarray(channel_ids, dtype=np.intp)
        return ChannelArrays(**{name: getattr(self, name)[idx] for name in COLUMN_FIELDS})


class CalibrationTable:
    """
    Per-channel corrections indexed directly by channel id.

    The table is immutable once built and is meant to be shared read-only by
    every decode call of a session.
    """

    def __init__(self, channels: Sequence[ChannelCorrection], *, initialized: bool = True) -> None:
        channels = tuple(channels)
        ids = [c.laser_id for c in channels]
        if ids != list(range(len(channels))):
            raise CalibrationValidationError("channels must be ordered by laser_id 0..N-1 without gaps")
        rings = sorted(c.laser_ring for c in channels)
        if rings != list(range(len(channels))):
            raise CalibrationValidationError("laser_ring values must be a permutation of 0..N-1")
        self._channels = channels
        self.initialized = bool(initialized)
        self.columns = ChannelArrays.from_channels(channels)

    def __len__(self) -> int:
        return len(self._channels)

    def __getitem__(self, channel_id: int) -> ChannelCorrection:
        return self._channels[channel_id]

    def __iter__(self):
        return iter(self._channels)

    @property
    def num_lasers(self) -> int:
        return len(self._channels)

    def gather(self, channel_ids: np.ndarray) -> ChannelArrays:
        """Column arrays for the given channel ids (any shape)."""
        channel_ids = np.asarray(channel_ids, dtype=np.intp)
        if channel_ids.size and (channel_ids.min() < 0 or channel_ids.max() >= len(self._channels)):
            raise CalibrationUnavailable(
                f"no calibration for channel {int(channel_ids.max())} (table has {len(self._channels)} lasers)"
            )
        return self.columns.take(channel_ids)


def require_calibration(table: CalibrationTable | None) -> CalibrationTable:
    if table is None:
        raise CalibrationUnavailable("no calibration table supplied")
    if not table.initialized:
        raise CalibrationUnavailable("calibration table is not initialized")
    return table


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise CalibrationValidationError(msg)


def rings_from_vertical_angles(vert_corrections: Sequence[float]) -> list[int]:
    """
    Assign output rings by vertical angle: ring 0 is the lowest beam.

    Ties keep laser id order.
    """
    order = sorted(range(len(vert_corrections)), key=lambda i: (vert_corrections[i], i))
    rings = [0] * len(order)
    for ring, laser_id in enumerate(order):
        rings[laser_id] = ring
    return rings


def load_calibration(path: str | Path) -> CalibrationTable:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_calibration(data)


def parse_calibration(data: dict[str, Any]) -> CalibrationTable:
    _require(isinstance(data, dict), "calibration must be an object")
    lasers = data.get("lasers")
    _require(isinstance(lasers, list) and len(lasers) > 0, "lasers must be a non-empty list")

    num_lasers = int(data.get("num_lasers", len(lasers)))
    _require(num_lasers == len(lasers), f"num_lasers is {num_lasers} but {len(lasers)} lasers are listed")

    by_id: dict[int, dict[str, Any]] = {}
    for laser in lasers:
        _require(isinstance(laser, dict), "each laser must be an object")
        _require("laser_id" in laser, "laser.laser_id is required")
        laser_id = int(laser["laser_id"])
        _require(0 <= laser_id < num_lasers, f"laser_id {laser_id} out of range 0..{num_lasers - 1}")
        _require(laser_id not in by_id, f"duplicate laser_id {laser_id}")
        by_id[laser_id] = laser

    vert = [float(by_id[i].get("vert_correction", 0.0)) for i in range(num_lasers)]
    if all("laser_ring" in by_id[i] for i in range(num_lasers)):
        rings = [int(by_id[i]["laser_ring"]) for i in range(num_lasers)]
    else:
        rings = rings_from_vertical_angles(vert)

    channels = []
    for i in range(num_lasers):
        laser = by_id[i]
        focal_distance = float(laser.get("focal_distance", 0.0))
        _require(math.isfinite(focal_distance), f"laser {i}: focal_distance must be finite")
        channels.append(
            ChannelCorrection(
                laser_id=i,
                rot_correction=float(laser.get("rot_correction", 0.0)),
                vert_correction=vert[i],
                dist_correction=float(laser.get("dist_correction", 0.0)),
                two_pt_correction_available=bool(laser.get("two_pt_correction_available", False)),
                dist_correction_x=float(laser.get("dist_correction_x", 0.0)),
                dist_correction_y=float(laser.get("dist_correction_y", 0.0)),
                vert_offset_correction=float(laser.get("vert_offset_correction", 0.0)),
                horiz_offset_correction=float(laser.get("horiz_offset_correction", 0.0)),
                max_intensity=float(laser.get("max_intensity", 255.0)),
                min_intensity=float(laser.get("min_intensity", 0.0)),
                focal_distance=focal_distance,
                focal_slope=float(laser.get("focal_slope", 0.0)),
                laser_ring=rings[i],
            )
        )

    return CalibrationTable(channels)
