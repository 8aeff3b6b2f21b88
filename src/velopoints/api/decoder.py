from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from velopoints.calibration import CalibrationTable, require_calibration
from velopoints.core.correction import correct_readings
from velopoints.core.packet import DEFAULT_LAYOUT, PacketLayout, parse_packet
from velopoints.core.trig import TrigCache, build_trig_cache
from velopoints.core.window import DecodeWindow
from velopoints.points import POINT_DTYPE, PointCloud, make_points

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Decoder:
    """
    Packet decoder bound to one calibration, window and wire layout.

    Build it once with `Decoder.setup(...)`, then call `unpack` for every
    packet. Nothing is mutated after setup, so one decoder can serve several
    threads as long as each thread appends to its own `PointCloud`.
    """

    calibration: CalibrationTable
    window: DecodeWindow = field(default_factory=DecodeWindow)
    layout: PacketLayout = DEFAULT_LAYOUT
    trig: TrigCache = field(default_factory=build_trig_cache, repr=False)
    drop_zero_range: bool = False

    def __post_init__(self) -> None:
        require_calibration(self.calibration)

    @classmethod
    def setup(
        cls,
        calibration: CalibrationTable | None,
        window: DecodeWindow | None = None,
        *,
        layout: PacketLayout = DEFAULT_LAYOUT,
        drop_zero_range: bool = False,
    ) -> "Decoder":
        calibration = require_calibration(calibration)
        if window is None:
            window = DecodeWindow()
        logger.info(
            "decoder ready: %d lasers, ranges [%.3f, %.3f] m, raw angles [%d, %d]",
            calibration.num_lasers,
            window.min_range,
            window.max_range,
            window.min_angle,
            window.max_angle,
        )
        return cls(
            calibration=calibration,
            window=window,
            layout=layout,
            drop_zero_range=bool(drop_zero_range),
        )

    def decode(self, packet: bytes | bytearray | memoryview) -> np.ndarray:
        """
        Decode one packet into a `POINT_DTYPE` array.

        Points are ordered by block, then by slot within the block.
        """
        raw = parse_packet(packet, self.layout)

        keep_block = self.window.accepts_azimuth(raw.rotation)
        if not np.any(keep_block):
            return np.empty(0, dtype=POINT_DTYPE)

        raw_range = raw.raw_range[keep_block]
        reflectivity = raw.reflectivity[keep_block]
        azimuth = np.broadcast_to(raw.rotation[keep_block][:, None], raw_range.shape)
        channel_ids = raw.channel_ids()[keep_block]

        channels = self.calibration.gather(channel_ids)
        corrected = correct_readings(raw_range, reflectivity, azimuth, channels, self.trig)

        keep = self.window.point_in_range(corrected.distance)
        if self.drop_zero_range:
            keep &= raw_range != 0

        return make_points(
            corrected.x[keep],
            corrected.y[keep],
            corrected.z[keep],
            corrected.intensity[keep],
            channels.laser_ring[keep],
        )

    def unpack(self, packet: bytes | bytearray | memoryview, cloud: PointCloud) -> int:
        """Append the points of one packet to `cloud`; returns how many were added."""
        points = self.decode(packet)
        cloud.extend(points)
        logger.debug("packet decoded: %d points (cloud width %d)", points.shape[0], cloud.width)
        return int(points.shape[0])
