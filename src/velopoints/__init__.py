from velopoints import calibration, config
from velopoints.api import Decoder, load_points, save_points
from velopoints.calibration import CalibrationTable, CalibrationUnavailable, ChannelCorrection, load_calibration
from velopoints.core.packet import InvalidPacketSize, PacketLayout
from velopoints.core.window import DecodeWindow, set_parameters
from velopoints.points import OutputPoint, PointCloud

__all__ = [
    "calibration",
    "config",
    "CalibrationTable",
    "CalibrationUnavailable",
    "ChannelCorrection",
    "DecodeWindow",
    "Decoder",
    "InvalidPacketSize",
    "OutputPoint",
    "PacketLayout",
    "PointCloud",
    "load_calibration",
    "load_points",
    "save_points",
    "set_parameters",
]
