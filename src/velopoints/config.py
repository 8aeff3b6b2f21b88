from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from velopoints.core.trig import ROTATION_MAX_UNITS
from velopoints.core.window import DISTANCE_MAX, DecodeWindow, set_parameters

SCHEMA_VERSION = "velopoints.config.v0"


class ConfigValidationError(ValueError):
    pass


@dataclass(frozen=True)
class ViewConfig:
    """View direction and extents, radians in the output frame."""

    view_center: float
    left_most_angle: float
    right_most_angle: float


@dataclass(frozen=True)
class AngleConfig:
    """Raw azimuth bounds, hundredths of a degree in the sensor frame."""

    min_angle: int
    max_angle: int


@dataclass(frozen=True)
class DecoderConfig:
    schema_version: str
    calibration: Path | None
    min_range: float
    max_range: float
    view: ViewConfig | None = None
    angles: AngleConfig | None = None

    def window(self) -> DecodeWindow:
        if self.view is not None:
            return set_parameters(
                self.min_range,
                self.max_range,
                self.view.view_center,
                self.view.left_most_angle,
                self.view.right_most_angle,
            )
        if self.angles is not None:
            return DecodeWindow(
                min_range=self.min_range,
                max_range=self.max_range,
                min_angle=self.angles.min_angle,
                max_angle=self.angles.max_angle,
            )
        return DecodeWindow(min_range=self.min_range, max_range=self.max_range)


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigValidationError(msg)


def load_decoder_config(path: Path) -> DecoderConfig:
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    return parse_decoder_config(data, base_dir=path.parent)


def parse_decoder_config(data: dict[str, Any], base_dir: Path | None = None) -> DecoderConfig:
    schema_version = data.get("schema_version")
    _require(schema_version == SCHEMA_VERSION, f"schema_version must be {SCHEMA_VERSION}")

    calibration = data.get("calibration")
    calib_path = None
    if calibration is not None:
        _require(isinstance(calibration, str) and calibration != "", "calibration must be a file path")
        calib_path = Path(calibration)
        if base_dir is not None and not calib_path.is_absolute():
            calib_path = base_dir / calib_path

    min_range = float(data.get("min_range", 0.0))
    max_range = float(data.get("max_range", DISTANCE_MAX))
    _require(math.isfinite(min_range) and math.isfinite(max_range), "min_range/max_range must be finite")
    _require(0.0 <= min_range <= max_range, "ranges must satisfy 0 <= min_range <= max_range")

    view_raw = data.get("view")
    angles_raw = data.get("angles")
    _require(view_raw is None or angles_raw is None, "give either view or angles, not both")

    view = None
    if view_raw is not None:
        _require(isinstance(view_raw, dict), "view must be an object")
        for k in ("view_center", "left_most_angle", "right_most_angle"):
            _require(k in view_raw, f"view.{k} is required")
        view = ViewConfig(
            view_center=float(view_raw["view_center"]),
            left_most_angle=float(view_raw["left_most_angle"]),
            right_most_angle=float(view_raw["right_most_angle"]),
        )
        _require(
            all(math.isfinite(v) for v in (view.view_center, view.left_most_angle, view.right_most_angle)),
            "view angles must be finite",
        )

    angles = None
    if angles_raw is not None:
        _require(isinstance(angles_raw, dict), "angles must be an object")
        for k in ("min_angle", "max_angle"):
            _require(k in angles_raw, f"angles.{k} is required")
        angles = AngleConfig(min_angle=int(angles_raw["min_angle"]), max_angle=int(angles_raw["max_angle"]))
        _require(
            0 <= angles.min_angle <= ROTATION_MAX_UNITS and 0 <= angles.max_angle <= ROTATION_MAX_UNITS,
            f"angles must be within 0..{ROTATION_MAX_UNITS}",
        )

    return DecoderConfig(
        schema_version=schema_version,
        calibration=calib_path,
        min_range=min_range,
        max_range=max_range,
        view=view,
        angles=angles,
    )
